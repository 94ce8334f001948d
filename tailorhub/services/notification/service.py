"""Push notifications for order status changes.

`PushNotifier` resolves a user's device token and hands the message to a
`PushSender`. `NotificationDispatcher` drains the order outbox after commit, so
a delivery problem can never undo or delay the status change that caused it.
Every failure here is logged and reported as a `NotifyResult`, never raised.
"""

import asyncio
from enum import Enum
from typing import Protocol

import httpx
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from tailorhub.common.db import insert_ignore, storage_errors
from tailorhub.common.logging import logger
from tailorhub.common.metrics import notifications_total
from tailorhub.common.outbox import (
    claim_outbox_batch,
    settle_outbox_event,
    update_outbox_backlog_metrics,
)
from tailorhub.services.notification.models import DeviceToken, NotificationLog
from tailorhub.services.orders.models import OutboxEvent


class NotifyResult(str, Enum):
    SENT = "SENT"
    NO_TOKEN = "NO_TOKEN"
    FAILED = "FAILED"


class PushSender(Protocol):
    def send(self, token: str, title: str, body: str) -> None:
        """Deliver one message; raise on failure."""


class HttpPushSender:
    """Posts messages to an HTTP push gateway."""

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self.url = url
        self.timeout = timeout

    def send(self, token: str, title: str, body: str) -> None:
        resp = httpx.post(
            self.url,
            json={"token": token, "notification": {"title": title, "body": body}},
            timeout=self.timeout,
        )
        resp.raise_for_status()


class LogOnlyPushSender:
    """Fallback when no push gateway is configured."""

    def send(self, token: str, title: str, body: str) -> None:
        logger.info("push not configured; message dropped title=%s", title)


class PushNotifier:
    """Looks up delivery tokens and sends best-effort push messages."""

    def __init__(self, session_factory, sender: PushSender) -> None:
        self.session_factory = session_factory
        self.sender = sender

    def register_token(self, user_id: str, token: str) -> None:
        with storage_errors("notification.register_token"), self.session_factory() as db:
            if not insert_ignore(db, DeviceToken, {"user_id": user_id, "token": token}):
                db.execute(update(DeviceToken).where(DeviceToken.user_id == user_id).values(token=token))
            db.commit()
        logger.info("device token registered user_id=%s", user_id)

    def _lookup_token(self, user_id: str) -> str | None:
        with self.session_factory() as db:
            return db.execute(select(DeviceToken.token).where(DeviceToken.user_id == user_id)).scalar_one_or_none()

    def _record(self, user_id: str, title: str, body: str, outcome: NotifyResult, error: str | None = None) -> None:
        notifications_total.labels(outcome=outcome.value).inc()
        try:
            with self.session_factory() as db:
                db.add(NotificationLog(user_id=user_id, title=title, body=body, outcome=outcome.value, error=error))
                db.commit()
        except SQLAlchemyError as exc:
            logger.warning("notification log write failed user_id=%s error=%s", user_id, exc)

    def notify(self, user_id: str, title: str, body: str) -> NotifyResult:
        try:
            token = self._lookup_token(user_id)
        except SQLAlchemyError as exc:
            logger.warning("device token lookup failed user_id=%s error=%s", user_id, exc)
            notifications_total.labels(outcome=NotifyResult.FAILED.value).inc()
            return NotifyResult.FAILED
        if not token:
            logger.warning("no delivery token for user_id=%s", user_id)
            self._record(user_id, title, body, NotifyResult.NO_TOKEN)
            return NotifyResult.NO_TOKEN
        try:
            self.sender.send(token, title, body)
        except Exception as exc:
            logger.error("push delivery failed user_id=%s error=%s", user_id, exc)
            self._record(user_id, title, body, NotifyResult.FAILED, error=str(exc))
            return NotifyResult.FAILED
        logger.info("notification sent user_id=%s title=%s", user_id, title)
        self._record(user_id, title, body, NotifyResult.SENT)
        return NotifyResult.SENT


class NotificationDispatcher:
    """Delivers status-change outbox rows through the notifier."""

    def __init__(self, session_factory, notifier: PushNotifier, max_attempts: int = 5, service_name: str = "tailorhub") -> None:
        self.session_factory = session_factory
        self.notifier = notifier
        self.max_attempts = max_attempts
        self.service_name = service_name

    def _settle(self, row: dict, result: NotifyResult) -> None:
        with self.session_factory() as db:
            if result is NotifyResult.SENT:
                settle_outbox_event(db, OutboxEvent, row["id"], "SENT")
            elif result is NotifyResult.NO_TOKEN:
                settle_outbox_event(db, OutboxEvent, row["id"], "SKIPPED")
            elif row["attempts"] >= self.max_attempts:
                logger.error("notification dropped after %s attempts outbox_id=%s", row["attempts"], row["id"])
                settle_outbox_event(db, OutboxEvent, row["id"], "FAILED")
            else:
                settle_outbox_event(db, OutboxEvent, row["id"], "PENDING")
            update_outbox_backlog_metrics(db, OutboxEvent, self.service_name)
            db.commit()

    def dispatch_pending(self, limit: int = 100) -> int:
        """Deliver one batch of pending notifications; return how many were claimed."""

        with self.session_factory() as db:
            rows = claim_outbox_batch(db, OutboxEvent, limit=limit)
            update_outbox_backlog_metrics(db, OutboxEvent, self.service_name)
            db.commit()
        for row in rows:
            payload = row["payload"]
            result = self.notifier.notify(payload["user_id"], payload["title"], payload["body"])
            self._settle(row, result)
        return len(rows)

    async def run_forever(self, interval_seconds: float = 0.5) -> None:
        """Continuously drain the outbox until cancelled."""

        while True:
            try:
                await asyncio.to_thread(self.dispatch_pending)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("notification dispatch failed: %s", exc)
            await asyncio.sleep(interval_seconds)
