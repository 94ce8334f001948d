"""Order persistence and the guarded status state machine.

Status writes are guarded by `(id, status, state_version)` so a stale concurrent
update can never overwrite a newer status. The history row and the notification
outbox row are committed in the same transaction as the status itself.
"""

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from tailorhub.common.db import storage_errors
from tailorhub.common.errors import (
    ConcurrencyConflict,
    InvalidAmount,
    InvalidTransition,
    NotFound,
    ValidationError,
    VerificationFailed,
)
from tailorhub.common.logging import logger
from tailorhub.common.metrics import order_transition_conflicts_total, order_transitions_total
from tailorhub.common.state_machine import (
    INITIAL_STATUSES,
    ORDER_STATUSES,
    PENDING,
    PENDING_PAYMENT,
    validate_transition,
)
from tailorhub.services.orders.models import Order, OrderStatusHistory, OutboxEvent


STATUS_CHANGED_TOPIC = "orders.status_changed"


class OrderStore:
    """Owns order rows, their timeline, and status-change outbox events."""

    def __init__(self, session_factory, max_retries: int = 3) -> None:
        self.session_factory = session_factory
        self.max_retries = max_retries

    def create(
        self,
        customer_id: str,
        service: str,
        amount: int,
        address: str,
        initial_status: str = PENDING_PAYMENT,
    ) -> Order:
        """Persist a new order in `PendingPayment` (or `Pending` for out-of-band payment)."""

        for name, value in (("customer_id", customer_id), ("service", service), ("address", address)):
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{name} is required")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")
        if initial_status not in INITIAL_STATUSES:
            raise ValidationError(f"initial status must be one of {sorted(INITIAL_STATUSES)}")

        with storage_errors("orders.create"), self.session_factory() as db:
            order = Order(
                customer_id=customer_id,
                service=service,
                amount=amount,
                address=address,
                status=initial_status,
            )
            db.add(order)
            db.flush()
            db.add(
                OrderStatusHistory(
                    order_id=order.id,
                    from_status=None,
                    to_status=initial_status,
                    reason="order_created",
                )
            )
            db.commit()
        logger.info("order created order_id=%s customer_id=%s status=%s", order.id, customer_id, initial_status)
        return order

    def get(self, order_id: str) -> Order:
        with storage_errors("orders.get"), self.session_factory() as db:
            order = db.get(Order, order_id)
        if order is None:
            raise NotFound(f"order {order_id} not found")
        return order

    def list_by_customer(self, customer_id: str) -> list[Order]:
        with storage_errors("orders.list"), self.session_factory() as db:
            return list(
                db.execute(
                    select(Order).where(Order.customer_id == customer_id).order_by(Order.created_at.desc())
                ).scalars()
            )

    def list_all(self) -> list[Order]:
        with storage_errors("orders.list"), self.session_factory() as db:
            return list(db.execute(select(Order).order_by(Order.created_at.desc())).scalars())

    def latest_pending_payment(self, customer_id: str) -> Order | None:
        """Most recent order of `customer_id` still waiting for payment."""

        with storage_errors("orders.lookup"), self.session_factory() as db:
            return db.execute(
                select(Order)
                .where(Order.customer_id == customer_id, Order.status == PENDING_PAYMENT)
                .order_by(Order.created_at.desc())
                .limit(1)
            ).scalar_one_or_none()

    def find_by_payment(self, payment_id: str) -> Order | None:
        with storage_errors("orders.lookup"), self.session_factory() as db:
            return db.execute(select(Order).where(Order.payment_id == payment_id)).scalar_one_or_none()

    def history(self, order_id: str) -> list[OrderStatusHistory]:
        with storage_errors("orders.history"), self.session_factory() as db:
            if db.get(Order, order_id) is None:
                raise NotFound(f"order {order_id} not found")
            return list(
                db.execute(
                    select(OrderStatusHistory)
                    .where(OrderStatusHistory.order_id == order_id)
                    .order_by(OrderStatusHistory.created_at)
                ).scalars()
            )

    def transition(
        self,
        order_id: str,
        target_status: str,
        payment_id: str | None = None,
        reason: str = "status_update",
    ) -> tuple[Order, bool]:
        """Move an order to `target_status`; return `(order, changed)`.

        Moving to the current status is a no-op. `PendingPayment -> Pending`
        requires `payment_id`, which is stored on the order exactly once. A
        repeated call carrying the payment id already attached succeeds without
        changes, whatever the order's later status.
        """

        for attempt in range(1, self.max_retries + 1):
            with storage_errors("orders.transition"), self.session_factory() as db:
                order = db.get(Order, order_id)
                if order is None:
                    raise NotFound(f"order {order_id} not found")
                if target_status not in ORDER_STATUSES:
                    raise InvalidTransition(order.status, target_status, "unknown status")

                if payment_id is not None:
                    if order.payment_id == payment_id:
                        return order, False
                    if order.payment_id is not None:
                        raise VerificationFailed(f"order {order_id} is already paid by another payment")
                    if order.status != PENDING_PAYMENT:
                        raise InvalidTransition(order.status, target_status, "order is not awaiting payment")

                if order.status == target_status:
                    return order, False
                validate_transition(order.status, target_status)
                if order.status == PENDING_PAYMENT and target_status == PENDING and payment_id is None:
                    raise InvalidTransition(order.status, target_status, "payment required")

                from_status = order.status
                current_version = order.state_version
                values = {
                    "status": target_status,
                    "state_version": current_version + 1,
                    "updated_at": datetime.now(timezone.utc),
                }
                if payment_id is not None:
                    values["payment_id"] = payment_id

                try:
                    result = db.execute(
                        update(Order)
                        .where(
                            Order.id == order_id,
                            Order.status == from_status,
                            Order.state_version == current_version,
                        )
                        .values(**values)
                        .execution_options(synchronize_session=False)
                    )
                except IntegrityError as exc:
                    db.rollback()
                    raise VerificationFailed(f"payment {payment_id} is already attached to another order") from exc
                if result.rowcount != 1:
                    db.rollback()
                    order_transition_conflicts_total.inc()
                    logger.warning(
                        "order transition conflict order_id=%s expected_version=%s attempt=%s",
                        order_id,
                        current_version,
                        attempt,
                    )
                    continue

                db.add(
                    OrderStatusHistory(
                        order_id=order_id,
                        from_status=from_status,
                        to_status=target_status,
                        reason=reason,
                    )
                )
                db.add(
                    OutboxEvent(
                        aggregate_type="order",
                        aggregate_id=order_id,
                        topic=STATUS_CHANGED_TOPIC,
                        payload={
                            "user_id": order.customer_id,
                            "title": "Order Update",
                            "body": f"Your order is now {target_status}",
                            "order_id": order_id,
                            "status": target_status,
                        },
                    )
                )
                db.commit()
                db.refresh(order)

            order_transitions_total.labels(from_status=from_status, to_status=target_status).inc()
            logger.info(
                "order transition order_id=%s from=%s to=%s reason=%s",
                order_id,
                from_status,
                target_status,
                reason,
            )
            return order, True

        raise ConcurrencyConflict(f"order {order_id} changed concurrently; retry")
