"""
commonroom.services.broadcast_dispatcher — Outbound Broadcast Delivery
========================================================================

Delivery to email / push / SMS is owned by an external messaging
service.  The suggestion service hands a :class:`BroadcastRequest` to a
dispatcher and moves on: dispatch is fire-and-forget and its outcome is
not part of the broadcast result.  The dispatcher logs its own failures;
retries are the messaging service's business.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BroadcastRequest:
    broadcast_id: str
    community_id: str
    suggestion_id: str
    recipient_ids: tuple[str, ...]
    message: str
    channels: tuple[str, ...]
    scheduled_for: str


class BroadcastDispatcher(Protocol):
    def dispatch(self, request: BroadcastRequest) -> None: ...


class LoggingDispatcher:
    """Used when no messaging endpoint is configured."""

    def dispatch(self, request: BroadcastRequest) -> None:
        logger.info(
            "Broadcast %s (%s) → %d residents: %s",
            request.broadcast_id,
            ", ".join(request.channels),
            len(request.recipient_ids),
            request.message.splitlines()[0] if request.message else "",
        )


class WebhookDispatcher:
    """POSTs each request to the messaging service on a background thread."""

    def __init__(self, url: str, *, timeout: float = 10.0, max_workers: int = 2) -> None:
        self.url = url
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="broadcast"
        )

    def _post(self, request: BroadcastRequest) -> None:
        payload = asdict(request)
        payload["recipient_ids"] = list(request.recipient_ids)
        payload["channels"] = list(request.channels)
        resp = httpx.post(self.url, json=payload, timeout=self.timeout)
        resp.raise_for_status()

    def _log_outcome(self, broadcast_id: str, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Broadcast %s delivery to %s failed",
                broadcast_id,
                self.url,
                exc_info=exc,
            )
        else:
            logger.info("Broadcast %s handed to messaging service", broadcast_id)

    def dispatch(self, request: BroadcastRequest) -> Future:
        future = self._executor.submit(self._post, request)
        future.add_done_callback(
            lambda f: self._log_outcome(request.broadcast_id, f)
        )
        return future

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


def dispatcher_from_env() -> BroadcastDispatcher:
    url = os.getenv("BROADCAST_WEBHOOK_URL", "").strip()
    if url:
        return WebhookDispatcher(url)
    return LoggingDispatcher()
