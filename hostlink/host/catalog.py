"""Discovery and launching of host applications from .app bundles."""

from __future__ import annotations

import asyncio
import logging
import os
import plistlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from xml.parsers.expat import ExpatError

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_DEFAULT_WANTED = (
    "Safari,Brave,Chess,Blender,GitHub Desktop,Xcode,Notes,Mail,Messages,Calculator"
)

APP_FOLDERS = [
    p
    for p in os.getenv(
        "HOSTLINK_APP_FOLDERS",
        os.pathsep.join(
            ["/Applications", "/System/Applications", str(Path.home() / "Applications")]
        ),
    ).split(os.pathsep)
    if p
]
WANTED_APPS = [
    a.strip() for a in os.getenv("HOSTLINK_WANTED_APPS", _DEFAULT_WANTED).split(",") if a.strip()
]
ICON_CACHE_DIR = Path(os.getenv("HOSTLINK_ICON_CACHE", "app_icons"))
FALLBACK_ICON_DIR = Path(os.getenv("HOSTLINK_FALLBACK_ICON_DIR", "icons"))
LAUNCH_COMMAND = os.getenv("HOSTLINK_LAUNCH_COMMAND", "open")


class LaunchError(RuntimeError):
    """The launcher command could not start the application."""


@dataclass
class AppEntry:
    name: str
    app_path: str
    icon_path: Optional[str]
    bundle_id: Optional[str]


def icon_file_name(app_name: str) -> str:
    return f"{app_name.replace(' ', '_')}.png"


def read_plist(path: Path) -> Optional[Dict[str, Any]]:
    """Load an Info.plist in XML or binary form; None if unreadable."""

    try:
        with path.open("rb") as fh:
            data = plistlib.load(fh)
    except (OSError, ValueError, ExpatError) as exc:
        logger.warning("failed to parse plist %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        return None
    return data


class AppCatalog:
    """
    Scans application folders for bundles the client is interested in and
    keeps a PNG copy of each bundle icon in *icon_cache_dir*.
    """

    def __init__(
        self,
        app_folders: Sequence[str] = APP_FOLDERS,
        wanted_apps: Optional[Sequence[str]] = WANTED_APPS,
        icon_cache_dir: Path = ICON_CACHE_DIR,
        fallback_icon_dir: Path = FALLBACK_ICON_DIR,
        launch_command: str = LAUNCH_COMMAND,
    ):
        self.app_folders = [Path(f) for f in app_folders]
        self.wanted_apps = set(wanted_apps) if wanted_apps else None
        self.icon_cache_dir = Path(icon_cache_dir)
        self.fallback_icon_dir = Path(fallback_icon_dir)
        self.launch_command = launch_command

    def list_apps(self) -> List[AppEntry]:
        results: List[AppEntry] = []
        for folder in self.app_folders:
            if not folder.is_dir():
                continue
            for bundle in sorted(folder.iterdir()):
                if bundle.suffix != ".app":
                    continue
                entry = self._read_bundle(bundle)
                if entry is not None:
                    results.append(entry)
        return results

    def _read_bundle(self, bundle: Path) -> Optional[AppEntry]:
        plist_path = bundle / "Contents" / "Info.plist"
        if not plist_path.is_file():
            return None
        info = read_plist(plist_path)
        if info is None:
            return None

        name = info.get("CFBundleName") or bundle.stem
        if self.wanted_apps is not None and name not in self.wanted_apps:
            return None

        icon_path = None
        icon_name = info.get("CFBundleIconFile") or info.get("CFBundleIconName")
        if icon_name:
            if not icon_name.endswith(".icns"):
                icon_name += ".icns"
            icns = bundle / "Contents" / "Resources" / icon_name
            if icns.is_file():
                icon_path = self.convert_icon(icns, name)

        # System apps often ship an asset catalog instead of an .icns
        if icon_path is None:
            fallback = self.fallback_icon_dir / f"{name.lower()}.png"
            if fallback.is_file():
                icon_path = fallback

        return AppEntry(
            name=name,
            app_path=str(bundle),
            icon_path=str(icon_path) if icon_path else None,
            bundle_id=info.get("CFBundleIdentifier"),
        )

    def convert_icon(self, icns_path: Path, app_name: str) -> Optional[Path]:
        target = self.icon_cache_dir / icon_file_name(app_name)
        if target.is_file():
            return target
        try:
            self.icon_cache_dir.mkdir(parents=True, exist_ok=True)
            with Image.open(icns_path) as img:
                img.save(target, format="PNG")
        except (OSError, UnidentifiedImageError) as exc:
            logger.error("error converting %s to PNG: %s", icns_path, exc)
            return None
        return target

    def cached_icon(self, app_name: str) -> Optional[Path]:
        path = self.icon_cache_dir / icon_file_name(app_name)
        # Names come from the query string; keep lookups inside the cache.
        if path.parent.resolve() != self.icon_cache_dir.resolve():
            return None
        return path if path.is_file() else None

    async def launch(self, app_path: str):
        try:
            proc = await asyncio.create_subprocess_exec(
                self.launch_command,
                app_path,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise LaunchError(f"cannot run {self.launch_command}: {exc}") from exc
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = stderr.decode("utf-8", "replace").strip()
            raise LaunchError(f"{self.launch_command} exited with {proc.returncode}: {detail}")
        logger.info("launched %s", app_path)


__all__ = ["AppCatalog", "AppEntry", "LaunchError", "icon_file_name", "read_plist"]
