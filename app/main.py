# app/main.py

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.config import get_settings
from app.logging_config import configure_logging
from app.middleware import RequestIDMiddleware
from app.routers import files_router
from app.storage import get_storage_gateway

settings = get_settings()
configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(title="Storage Gateway")

app.add_middleware(RequestIDMiddleware)

app.include_router(files_router)

# Local provider URLs are {APP_URL}/storage/<path>
Path(settings.LOCAL_STORAGE_PATH).mkdir(parents=True, exist_ok=True)
app.mount(
    "/storage",
    StaticFiles(directory=settings.LOCAL_STORAGE_PATH, check_dir=False),
    name="storage",
)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    gateway = get_storage_gateway()
    return {
        "status": "ok",
        "service": "storage-gateway",
        "providers": gateway.available_providers,
    }
