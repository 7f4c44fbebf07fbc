"""
Static Asset Resolution

Maps request paths onto files under the built asset root:

    /                   -> index.html
    /assets/app.js?v=1  -> assets/app.js (query string dropped)
    /anything/../x      -> 403, rejected before touching the filesystem
    /dashboard-view     -> index.html when absent (single-page-app routing)
    /missing.png        -> 404 (has an extension, so no fallback)
"""

from __future__ import annotations
from dataclasses import dataclass
from http import HTTPStatus
from pathlib import Path, PurePosixPath
from typing import Optional

MIME_TYPES = {
    ".html": "text/html",
    ".js": "application/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".eot": "application/vnd.ms-fontobject",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"
INDEX_FILE = "index.html"


def content_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


@dataclass(frozen=True)
class StaticResolution:
    status: HTTPStatus
    path: Optional[Path] = None

    @property
    def content_type(self) -> str:
        return content_type_for(self.path) if self.path else DEFAULT_CONTENT_TYPE


def resolve_static_path(asset_root: Path, request_path: str) -> StaticResolution:
    """Decide which file (if any) answers *request_path*."""
    path = request_path.split("?", 1)[0].split("#", 1)[0]
    if path in ("", "/"):
        path = "/" + INDEX_FILE

    if ".." in path:
        return StaticResolution(HTTPStatus.FORBIDDEN)

    full_path = asset_root / path.lstrip("/")
    if not full_path.exists() and not PurePosixPath(path).suffix:
        full_path = asset_root / INDEX_FILE

    if not full_path.is_file():
        return StaticResolution(HTTPStatus.NOT_FOUND)
    return StaticResolution(HTTPStatus.OK, full_path)
