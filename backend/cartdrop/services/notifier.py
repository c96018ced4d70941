"""Webhook notifier: relays new orders to a Discord-style channel.

One notification is:
  1. a summary message (single embed with the order's fields), then
  2. the photo URLs in batches of `batch_size` image embeds, one message
     per batch, sleeping `batch_delay` seconds between batches to stay
     under the channel's rate limit.

Best-effort throughout: nothing is retried and notify() never raises for
channel failures. A failed batch is logged and skipped; a failed summary
ends the attempt before any batch is sent. The order itself is already
committed by the time this runs and is unaffected either way.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger("cartdrop.notifier")

EMBED_COLOR = 0x6B7280  # grey


@dataclass
class SubmissionSummary:
    submission_id: str
    name: str
    phone: str
    address: str
    delivery_instructions: str
    total_cost: Decimal
    tip: Decimal | None
    image_urls: list[str]
    user_id: str
    user_email: str | None = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class NotificationReport:
    skipped: bool = False
    summary_sent: bool = False
    batches_sent: int = 0
    batches_failed: int = 0

    @property
    def delivered(self) -> bool:
        return self.summary_sent and self.batches_failed == 0


def _money(value: Decimal | None) -> str:
    return "-" if value is None else f"${value:.2f}"


def build_summary_payload(summary: SubmissionSummary) -> dict:
    fields = [
        {"name": "Name", "value": summary.name, "inline": True},
        {"name": "Phone", "value": summary.phone, "inline": True},
        {"name": "Address", "value": summary.address, "inline": False},
        {"name": "Delivery Instructions", "value": summary.delivery_instructions, "inline": False},
        {"name": "Total Cost", "value": _money(summary.total_cost), "inline": True},
        {"name": "Tip", "value": _money(summary.tip), "inline": True},
        {"name": "Photos", "value": str(len(summary.image_urls)), "inline": True},
        {"name": "User ID", "value": summary.user_id, "inline": True},
    ]
    if summary.user_email:
        fields.append({"name": "User Email", "value": summary.user_email, "inline": True})
    fields.append({"name": "Submitted At", "value": summary.submitted_at.isoformat(), "inline": False})

    return {
        "content": "New order submission!",
        "embeds": [
            {
                "title": f"Order {summary.submission_id}",
                "description": f"New order from {summary.name}",
                "color": EMBED_COLOR,
                "fields": fields,
                "timestamp": summary.submitted_at.isoformat(),
            }
        ],
    }


def build_image_payload(urls: list[str], start: int, total: int) -> dict:
    end = start + len(urls)
    return {
        "content": f"Cart photos {start + 1}-{end} of {total}",
        "embeds": [{"url": url, "image": {"url": url}} for url in urls],
    }


def chunk(items: list, size: int) -> list[list]:
    if size < 1:
        raise ValueError("batch size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


class WebhookNotifier:
    def __init__(
        self,
        client: httpx.AsyncClient,
        webhook_url: str,
        batch_size: int = 10,
        batch_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.webhook_url = webhook_url
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep

    async def _post(self, payload: dict, what: str) -> bool:
        try:
            response = await self.client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Webhook %s failed: %s", what, exc)
            return False
        if not response.is_success:
            logger.error(
                "Webhook %s rejected: HTTP %d %s",
                what, response.status_code, response.text[:200],
            )
            return False
        return True

    async def notify(self, summary: SubmissionSummary) -> NotificationReport:
        report = NotificationReport()
        if not self.webhook_url:
            logger.info("No webhook configured; skipping notification for %s", summary.submission_id)
            report.skipped = True
            return report

        report.summary_sent = await self._post(build_summary_payload(summary), "summary")
        if not report.summary_sent:
            return report

        batches = chunk(summary.image_urls, self.batch_size)
        for index, batch in enumerate(batches):
            payload = build_image_payload(batch, index * self.batch_size, len(summary.image_urls))
            if await self._post(payload, f"image batch {index + 1}/{len(batches)}"):
                report.batches_sent += 1
            else:
                report.batches_failed += 1
            if index < len(batches) - 1:
                await self._sleep(self.batch_delay)

        logger.info(
            "Notified order %s: %d/%d image batches sent",
            summary.submission_id, report.batches_sent, len(batches),
        )
        return report

    async def send_test_message(self) -> bool:
        """Post a single test embed; used by `cli test-webhook`."""
        if not self.webhook_url:
            logger.warning("No webhook configured")
            return False
        payload = {
            "content": "Webhook test",
            "embeds": [
                {
                    "title": "CartDrop webhook test",
                    "description": "If you can read this, order notifications will arrive here.",
                    "color": EMBED_COLOR,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            ],
        }
        return await self._post(payload, "test message")
