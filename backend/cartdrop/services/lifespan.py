"""Process-wide collaborators and the FastAPI lifespan that owns them.

Built once on startup and stored on app.state:
  - storage   → LocalAssetStorage for order photos
  - http      → shared httpx.AsyncClient
  - notifier  → WebhookNotifier using that client

Handlers get them through get_storage() / get_notifier(), so tests can
swap them with app.dependency_overrides.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI, Request

from cartdrop.config import settings
from cartdrop.database import create_tables, engine
from cartdrop.services.notifier import WebhookNotifier
from cartdrop.services.storage import AssetStorage, LocalAssetStorage
from cartdrop.utils.redis import close_redis

logger = logging.getLogger("cartdrop.lifespan")


def build_storage() -> LocalAssetStorage:
    Path(settings.media_root).mkdir(parents=True, exist_ok=True)
    base_url = settings.public_base_url.rstrip("/") + settings.media_url_path
    return LocalAssetStorage(settings.media_root, settings.storage_bucket, base_url)


def build_notifier(client: httpx.AsyncClient) -> WebhookNotifier:
    return WebhookNotifier(
        client,
        settings.discord_webhook_url,
        batch_size=settings.notify_batch_size,
        batch_delay=settings.notify_batch_delay_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, build shared clients; close them on shutdown."""
    await create_tables()
    http = httpx.AsyncClient()
    app.state.http = http
    app.state.storage = build_storage()
    app.state.notifier = build_notifier(http)
    if not settings.discord_webhook_url:
        logger.warning("DISCORD_WEBHOOK_URL is not set; order notifications are disabled")
    logger.info("CartDrop started (bucket=%s)", settings.storage_bucket)
    try:
        yield
    finally:
        await http.aclose()
        await close_redis()
        await engine.dispose()
        logger.info("CartDrop stopped")


def get_storage(request: Request) -> AssetStorage:
    return request.app.state.storage


def get_notifier(request: Request) -> WebhookNotifier:
    return request.app.state.notifier
