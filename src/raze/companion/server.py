"""FastAPI companion service exposing file primitives to the CLI."""

import logging
import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

logger = logging.getLogger(__name__)

TOOLS = ["read_file", "write_file", "list_directory", "execute"]


class WriteFileRequest(BaseModel):
    path: str
    content: str


class ExecuteRequest(BaseModel):
    tool: str | None = None
    args: dict[str, Any] | None = None


def _resolve(root: Path, raw_path: str) -> Path:
    """Resolve a request path against the service root, refusing escapes."""
    target = (root / raw_path).resolve()
    try:
        target.relative_to(root)
    except ValueError as exc:
        raise HTTPException(
            status_code=403, detail=f"Path escapes service root: {raw_path}"
        ) from exc
    return target


def create_app(root: str | Path | None = None) -> FastAPI:
    """Build the service app serving files below ``root`` (default: cwd)."""
    service_root = Path(root or os.environ.get("RAZE_COMPANION_ROOT") or Path.cwd()).resolve()
    app = FastAPI(title="raze-companion", version="0.1.0")

    # ── Routes ───────────────────────────────────────────────────────

    @app.get("/health")
    async def health():
        return {"status": "ok", "root": str(service_root)}

    @app.get("/tools")
    async def tools():
        return {"tools": TOOLS}

    @app.get("/read_file")
    async def read_file(path: str | None = Query(None, description="File to read")):
        if not path:
            raise HTTPException(status_code=400, detail="path required")
        target = _resolve(service_root, path)
        if not target.is_file():
            raise HTTPException(status_code=404, detail="not found")
        try:
            content = target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read %s: %s", target, e)
            raise HTTPException(status_code=500, detail=str(e)) from e
        return {"success": True, "path": str(target), "content": content}

    @app.post("/write_file")
    async def write_file(body: WriteFileRequest):
        if not body.path:
            raise HTTPException(status_code=400, detail="path and content required")
        target = _resolve(service_root, body.path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(body.content, encoding="utf-8")
        except OSError as e:
            logger.error("Failed to write %s: %s", target, e)
            raise HTTPException(status_code=500, detail=str(e)) from e
        return {"success": True, "path": str(target)}

    @app.get("/list_directory")
    async def list_directory(path: str = Query(".", description="Directory to list")):
        target = _resolve(service_root, path or ".")
        if not target.is_dir():
            raise HTTPException(status_code=404, detail="not found")
        items = sorted(entry.name for entry in target.iterdir())
        return {"success": True, "path": str(target), "items": items}

    @app.post("/execute")
    async def execute(body: ExecuteRequest):
        # Acknowledge only; the service never runs commands.
        return {"status": "ok", "tool": body.tool, "args": body.args, "note": "stub - no-op"}

    return app
