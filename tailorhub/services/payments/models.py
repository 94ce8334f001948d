"""Payment verification records; one row per gateway payment id."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tailorhub.common.db import Base


VERIFIED = "Verified"


class Payment(Base):
    """A payment accepted by signature or lookup verification.

    Rows are written only after the order transition (or wallet credit) they
    pay for has been applied, and only with status `Verified`.
    """

    __tablename__ = "payments"

    payment_id: Mapped[str] = mapped_column(String, primary_key=True)
    order_id: Mapped[str | None] = mapped_column(String, index=True, nullable=True)
    customer_id: Mapped[str | None] = mapped_column(String, index=True, nullable=True)
    signature: Mapped[str | None] = mapped_column(String, nullable=True)
    mode: Mapped[str] = mapped_column(String)
    purpose: Mapped[str] = mapped_column(String, default="order")
    amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String, default=VERIFIED)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
