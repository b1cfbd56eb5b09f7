"""Run the companion service; spawned detached by the availability supervisor."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

if __package__ in (None, ""):
    # Executed as a plain script: make the ``raze`` package importable.
    PACKAGE_PARENT = str(Path(__file__).resolve().parents[2])
    if PACKAGE_PARENT not in sys.path:
        sys.path.insert(0, PACKAGE_PARENT)

from raze.companion.client import DEFAULT_PORT  # noqa: E402

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="raze-companion", description="raze companion service")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port to serve on.")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to.")
    parser.add_argument("--root", default=None, help="Directory served (default: cwd).")
    return parser


def serve(*, port: int, host: str = "127.0.0.1", root: str | None = None) -> None:
    import uvicorn

    from raze.companion.server import create_app

    LOGGER.info("companion_serving", extra={"host": host, "port": port, "root": root})
    uvicorn.run(create_app(root), host=host, port=port, log_level="warning")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    serve(port=args.port, host=args.host, root=args.root)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
