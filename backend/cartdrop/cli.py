"""Management CLI.

Usage:
    python -m cartdrop.cli init-db        # Create any missing tables
    python -m cartdrop.cli test-webhook   # Post a test message to DISCORD_WEBHOOK_URL
"""

import asyncio
import sys

import httpx

from cartdrop.config import settings
from cartdrop.database import create_tables, engine
from cartdrop.services.lifespan import build_notifier


async def _init_db() -> None:
    try:
        await create_tables()
    finally:
        await engine.dispose()


def init_db():
    asyncio.run(_init_db())
    print("Tables created.")


async def _send_test_message() -> bool:
    async with httpx.AsyncClient() as client:
        return await build_notifier(client).send_test_message()


def send_webhook_test() -> int:
    if not settings.discord_webhook_url:
        print("DISCORD_WEBHOOK_URL is not set.")
        return 1
    if asyncio.run(_send_test_message()):
        print("  OK")
        return 0
    print("  FAILED (see log)")
    return 1


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "init-db":
        init_db()
    elif cmd == "test-webhook":
        sys.exit(send_webhook_test())
    else:
        print("Usage: python -m cartdrop.cli [init-db|test-webhook]")
