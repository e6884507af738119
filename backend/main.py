"""Application entrypoint for the loan servicing FastAPI backend."""

import sys
from pathlib import Path

_BACKEND_DIR = Path(__file__).resolve().parent
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from api.router import build_router
from core import AppSettings, get_logger, load_settings, setup_logging


setup_logging()
logger = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None, **router_overrides: Any) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Settings to use instead of `config.yml`.
        router_overrides: Storage, resolver or clock overrides passed to `build_router`.
    """
    settings = settings or load_settings()
    if settings.debug:
        setup_logging(debug=True)
    app = FastAPI(title=settings.app_name, debug=settings.debug)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(build_router(settings, **router_overrides))

    logger.info("Application initialized: %s", settings.app_name)
    return app


app = create_app()


def run() -> None:
    """Start the ASGI server for local development."""
    settings = load_settings()
    try:
        uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
    except Exception:
        logger.exception("Failed to start uvicorn server.")
        raise


if __name__ == "__main__":
    run()
