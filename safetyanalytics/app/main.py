import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import CORS_ORIGINS, ENV_FILE_LOADED, LOG_LEVEL
from .services.state import SafetyStore

# Routers
from .routers import (
    uploads,
    records,
    analytics,
    actions,
    preferences,
    reports,
)

logger = logging.getLogger(__name__)


def create_app(store: Optional[SafetyStore] = None, preferences_path: Optional[Path] = None) -> FastAPI:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not ENV_FILE_LOADED:
        logger.debug("No .env file found, using process environment only")

    app = FastAPI(title="Safety Analytics API", version="0.1.0")
    app.state.store = store or SafetyStore(preferences_path)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # Include feature routers
    app.include_router(uploads.router)
    app.include_router(records.router)
    app.include_router(analytics.router)
    app.include_router(actions.router)
    app.include_router(preferences.router)
    app.include_router(reports.router)

    return app


app = create_app()
