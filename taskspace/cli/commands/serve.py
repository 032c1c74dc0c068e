"""Run the workspace API under uvicorn."""

from __future__ import annotations

import os
from argparse import Namespace, _SubParsersAction

import uvicorn

from ..config import RuntimeConfig

__all__ = ["register", "APP_FACTORY"]

# uvicorn imports the factory itself, so reload and worker processes see
# the same settings through the environment.
APP_FACTORY = "taskspace.workspace.api:create_app"


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser("serve", help="Start the workspace API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8082, help="Port to bind (default: 8082)")
    parser.add_argument(
        "--reload", action="store_true", help="Restart on code changes (development)"
    )
    parser.set_defaults(handler=run)


def run(args: Namespace, runtime: RuntimeConfig) -> None:
    os.environ["TASKSPACE_DB_URL"] = runtime.settings.database_url

    print(f"Workspace API on http://{args.host}:{args.port} (docs at /docs)")
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=runtime.log_level.lower(),
    )
