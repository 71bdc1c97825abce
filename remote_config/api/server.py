"""
Development configuration server.

Serves each sub-directory of the serve root as a zip bundle, so a client can
be pointed at a local folder tree instead of the real configuration server:

    <serve_root>/<component>/**  ->  GET /get/<component>  (application/zip)
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Response

from remote_config.core.dependencies import get_settings

logger = logging.getLogger(__name__)
router = APIRouter()


def get_serve_root() -> Path:
    return get_settings().resolved_serve_root()


def build_bundle(component_dir: Path) -> bytes:
    """
    Zip every file below component_dir, with paths relative to it.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(component_dir.rglob("*")):
            if path.is_file():
                zf.write(path, arcname=path.relative_to(component_dir).as_posix())
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# GET /get/{component}
# ---------------------------------------------------------------------------

@router.get("/get/{component}")
async def get_component(component: str, serve_root: Path = Depends(get_serve_root)) -> Response:
    """
    Return the configuration bundle for a component as a zip archive.
    """
    root = serve_root.resolve()
    component_dir = (root / component).resolve()

    # Reject names like ".." that would escape the serve root.
    if component_dir == root or not component_dir.is_relative_to(root):
        raise HTTPException(status_code=404, detail="Component not found")
    if not component_dir.is_dir():
        raise HTTPException(status_code=404, detail="Component not found")

    content = build_bundle(component_dir)
    logger.info(f"Serving bundle for {component} ({len(content)} bytes)")
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{component}.zip"'},
    )


@router.get("/health")
async def health() -> dict:
    """
    Lightweight health check endpoint.
    """
    return {"status": "ok"}
