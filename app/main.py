from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from app.relay import router as relay_router
from datastore.reservation_store import build_default_store
from logging_config import configure_logging
from services.relay import build_default_relay


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    store = build_default_store()
    try:
        yield
    finally:
        store.shutdown()
        build_default_store.cache_clear()
        build_default_relay.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Parking Slot Sync",
        description="Slot occupancy, timed reservations and a WebSocket broadcast relay.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    app.include_router(relay_router)
    return app

app = create_app()
