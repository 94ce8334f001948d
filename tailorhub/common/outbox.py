"""Claim and settle helpers for the transactional notification outbox.

The order store writes `PENDING` rows in the same transaction as a status
change; the notification dispatcher claims them here after commit.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, or_, select, update

from tailorhub.common.metrics import outbox_oldest_pending_age_seconds, outbox_pending_total


PENDING_STATUSES = ("PENDING", "PROCESSING")


def claim_outbox_batch(db, outbox_model, limit: int = 100, processing_timeout_seconds: int = 30) -> list[dict]:
    """Atomically claim a batch of pending/stale rows for delivery."""

    table = outbox_model.__table__
    now = datetime.now(timezone.utc)
    stale_before = now - timedelta(seconds=processing_timeout_seconds)
    claim_ids = (
        select(table.c.id)
        .where(
            or_(
                table.c.status == "PENDING",
                (table.c.status == "PROCESSING") & (table.c.claimed_at.is_not(None)) & (table.c.claimed_at < stale_before),
            )
        )
        .order_by(table.c.created_at)
        .limit(limit)
        .with_for_update(skip_locked=True)
        .cte("claim_ids")
    )
    rows = db.execute(
        update(table)
        .where(table.c.id.in_(select(claim_ids.c.id)))
        .values(status="PROCESSING", claimed_at=now, attempts=table.c.attempts + 1)
        .returning(table.c.id, table.c.topic, table.c.payload, table.c.attempts)
    ).all()
    return [{"id": row.id, "topic": row.topic, "payload": row.payload, "attempts": row.attempts} for row in rows]


def settle_outbox_event(db, outbox_model, event_id: str, status: str) -> None:
    """Release one claimed row.

    `PENDING` puts the row back in the queue for another attempt; `SENT`,
    `SKIPPED` and `FAILED` are final.
    """

    table = outbox_model.__table__
    claimed_at = None if status == "PENDING" else datetime.now(timezone.utc)
    db.execute(
        update(table)
        .where(table.c.id == event_id, table.c.status == "PROCESSING")
        .values(status=status, claimed_at=claimed_at)
    )


def update_outbox_backlog_metrics(db, outbox_model, service_name: str) -> None:
    """Refresh the backlog depth and oldest-undelivered-age gauges."""

    table = outbox_model.__table__
    pending_count, oldest_pending = db.execute(
        select(func.count(), func.min(table.c.created_at)).where(table.c.status.in_(PENDING_STATUSES))
    ).one()
    age_seconds = 0.0
    if oldest_pending is not None:
        if oldest_pending.tzinfo is None:
            oldest_pending = oldest_pending.replace(tzinfo=timezone.utc)
        age_seconds = max(0.0, (datetime.now(timezone.utc) - oldest_pending).total_seconds())
    outbox_pending_total.labels(service=service_name).set(float(pending_count))
    outbox_oldest_pending_age_seconds.labels(service=service_name).set(age_seconds)
