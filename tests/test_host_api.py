import plistlib

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from hostlink.host.api import get_catalog
from hostlink.host.catalog import AppCatalog
from hostlink.relay.node import app


@pytest.fixture
def catalog(tmp_path):
    apps = tmp_path / "Applications"
    contents = apps / "Chess.app" / "Contents"
    (contents / "Resources").mkdir(parents=True)
    with (contents / "Info.plist").open("wb") as fh:
        plistlib.dump(
            {
                "CFBundleName": "Chess",
                "CFBundleIdentifier": "com.apple.Chess",
                "CFBundleIconFile": "Chess.icns",
            },
            fh,
        )
    Image.new("RGBA", (8, 8), (0, 0, 255, 255)).save(contents / "Resources" / "Chess.icns", format="PNG")

    cat = AppCatalog(
        app_folders=[str(apps)],
        wanted_apps=["Chess"],
        icon_cache_dir=tmp_path / "app_icons",
        fallback_icon_dir=tmp_path / "icons",
        launch_command="true",
    )
    app.dependency_overrides[get_catalog] = lambda: cat
    yield cat
    app.dependency_overrides.clear()


def test_ping():
    with TestClient(app) as client:
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.text == "pong"


def test_applist_uses_client_field_names(catalog, tmp_path):
    with TestClient(app) as client:
        response = client.get("/applist")
        assert response.status_code == 200
        (entry,) = response.json()["apps"]
        assert entry["name"] == "Chess"
        assert entry["bundleId"] == "com.apple.Chess"
        assert entry["appPath"] == str(tmp_path / "Applications" / "Chess.app")
        assert entry["iconPath"] == str(tmp_path / "app_icons" / "Chess.png")


def test_get_icon_streams_png(catalog):
    with TestClient(app) as client:
        client.get("/applist")
        response = client.get("/getIcon", params={"name": "Chess"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")


def test_get_icon_errors(catalog):
    with TestClient(app) as client:
        missing_name = client.get("/getIcon")
        assert missing_name.status_code == 400
        assert "required" in missing_name.json()["error"]

        unknown = client.get("/getIcon", params={"name": "Blender"})
        assert unknown.status_code == 404


def test_launch(catalog, tmp_path):
    with TestClient(app) as client:
        ok = client.get("/launch", params={"path": str(tmp_path / "Applications" / "Chess.app")})
        assert ok.status_code == 200
        assert ok.json() == {"success": True, "message": "App launched successfully"}

        invalid = client.get("/launch", params={"path": str(tmp_path / "Nope.app")})
        assert invalid.status_code == 400
        assert client.get("/launch").status_code == 400

        catalog.launch_command = "false"
        failed = client.get("/launch", params={"path": str(tmp_path)})
        assert failed.status_code == 500
        assert failed.json()["error"] == "Failed to launch app"
