"""HTTP routes for the host application catalog."""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from .catalog import AppCatalog, AppEntry, LaunchError

logger = logging.getLogger(__name__)

router = APIRouter()

_catalog: Optional[AppCatalog] = None


def get_catalog() -> AppCatalog:
    """Default catalog dependency; override it on the app in tests."""

    global _catalog
    if _catalog is None:
        _catalog = AppCatalog()
    return _catalog


class AppInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    app_path: str = Field(alias="appPath")
    icon_path: Optional[str] = Field(default=None, alias="iconPath")
    bundle_id: Optional[str] = Field(default=None, alias="bundleId")


class AppListResponse(BaseModel):
    apps: List[AppInfo]


class LaunchResponse(BaseModel):
    success: bool
    message: str


def _format_app(entry: AppEntry) -> AppInfo:
    return AppInfo(
        name=entry.name,
        app_path=entry.app_path,
        icon_path=entry.icon_path,
        bundle_id=entry.bundle_id,
    )


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    return "pong"


@router.get("/applist", response_model=AppListResponse)
def list_apps(catalog: AppCatalog = Depends(get_catalog)) -> AppListResponse:
    """Return the wanted applications found in the configured folders."""

    return AppListResponse(apps=[_format_app(entry) for entry in catalog.list_apps()])


@router.get("/getIcon")
def get_icon(name: Optional[str] = None, catalog: AppCatalog = Depends(get_catalog)):
    """Stream a cached PNG icon by application name."""

    if not name:
        return JSONResponse({"error": "App name is required"}, status_code=400)
    path = catalog.cached_icon(name)
    if path is None:
        return JSONResponse({"error": f"Icon not found: {name}"}, status_code=404)
    return FileResponse(path, media_type="image/png")


@router.get("/launch", response_model=LaunchResponse)
async def launch_app(path: Optional[str] = None, catalog: AppCatalog = Depends(get_catalog)):
    if not path or not os.path.exists(path):
        return JSONResponse({"error": "Invalid app path"}, status_code=400)
    try:
        await catalog.launch(path)
    except LaunchError as exc:
        logger.error("error launching %s: %s", path, exc)
        return JSONResponse({"error": "Failed to launch app"}, status_code=500)
    return LaunchResponse(success=True, message="App launched successfully")


__all__ = ["router", "get_catalog"]
