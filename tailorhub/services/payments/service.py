"""Payment verification with idempotent side effects.

Each verification path follows the same order of work:

1. the claim is checked (HMAC signature, or trusted customer lookup);
2. an existing `Verified` record for the same payment id, purpose and claim
   short-circuits to success; one recorded for anything else is rejected;
3. the side effect is applied (order transition or wallet credit), itself
   idempotent for the same payment id;
4. the payment record is written.

Steps 3 and 4 commit separately. If step 4 fails, resubmitting the same payment
id repeats step 3 as a no-op and completes step 4.
"""

from dataclasses import dataclass

from tailorhub.common.db import insert_ignore, storage_errors
from tailorhub.common.errors import InvalidAmount, NotFound, VerificationFailed
from tailorhub.common.logging import logger, order_id_ctx, payment_id_ctx
from tailorhub.common.metrics import (
    duplicate_payments_skipped_total,
    payment_verification_seconds,
    payment_verifications_total,
)
from tailorhub.common.state_machine import PENDING
from tailorhub.services.orders.service import OrderStore
from tailorhub.services.payments.models import VERIFIED, Payment
from tailorhub.services.payments.signing import signature_matches
from tailorhub.services.wallet.service import WalletLedger


SIGNATURE = "signature"
LOOKUP = "lookup"
ORDER_PURPOSE = "order"
TOPUP_PURPOSE = "wallet_topup"


@dataclass(frozen=True)
class VerificationOutcome:
    payment_id: str
    order_id: str | None
    duplicate: bool = False


class PaymentVerifier:
    """Owns payment records; drives order transitions and wallet top-ups."""

    def __init__(
        self,
        session_factory,
        orders: OrderStore,
        wallet: WalletLedger,
        gateway_secret: str,
        verification_mode: str = SIGNATURE,
    ) -> None:
        self.session_factory = session_factory
        self.orders = orders
        self.wallet = wallet
        self.gateway_secret = gateway_secret
        self.verification_mode = verification_mode

    def get_payment(self, payment_id: str) -> Payment | None:
        with storage_errors("payments.get"), self.session_factory() as db:
            payment = db.get(Payment, payment_id)
        if payment is not None and payment.status == VERIFIED:
            return payment
        return None

    def _already_verified(self, payment_id: str, mode: str, purpose: str, **claim) -> VerificationOutcome | None:
        """Return a duplicate outcome when `payment_id` is verified for this same claim.

        A recorded payment used for another purpose, order or customer is a
        rejection, never a duplicate success.
        """

        payment = self.get_payment(payment_id)
        if payment is None:
            return None
        if payment.purpose != purpose:
            self._reject(mode, f"payment {payment_id} was already used for {payment.purpose}")
        for field, expected in claim.items():
            if getattr(payment, field) != expected:
                self._reject(mode, f"payment {payment_id} was already verified with another {field}")
        logger.info("duplicate payment skipped payment_id=%s mode=%s", payment_id, mode)
        duplicate_payments_skipped_total.labels(mode=mode).inc()
        payment_verifications_total.labels(mode=mode, outcome="duplicate").inc()
        return VerificationOutcome(payment_id=payment_id, order_id=payment.order_id, duplicate=True)

    def _require_mode(self, mode: str) -> None:
        if self.verification_mode not in (mode, "both"):
            payment_verifications_total.labels(mode=mode, outcome="disabled").inc()
            raise VerificationFailed(f"{mode} verification is disabled in this deployment")

    def _reject(self, mode: str, message: str) -> None:
        payment_verifications_total.labels(mode=mode, outcome="rejected").inc()
        logger.warning("payment verification rejected mode=%s reason=%s", mode, message)
        raise VerificationFailed(message)

    def _record(self, **values) -> None:
        with storage_errors("payments.record"), self.session_factory() as db:
            insert_ignore(db, Payment, {"status": VERIFIED, **values})
            db.commit()

    def verify_signature(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
        customer_id: str | None = None,
    ) -> VerificationOutcome:
        """Accept a gateway callback signed over `orderId|paymentId`."""

        payment_token = payment_id_ctx.set(payment_id)
        order_token = order_id_ctx.set(order_id)
        try:
            with payment_verification_seconds.labels(mode=SIGNATURE).time():
                self._require_mode(SIGNATURE)
                if not signature_matches(self.gateway_secret, signature, order_id, payment_id):
                    self._reject(SIGNATURE, "signature mismatch")
                claim = {"order_id": order_id}
                if customer_id is not None:
                    claim["customer_id"] = customer_id
                duplicate = self._already_verified(payment_id, SIGNATURE, ORDER_PURPOSE, **claim)
                if duplicate is not None:
                    return duplicate
                if customer_id is not None and self.orders.get(order_id).customer_id != customer_id:
                    self._reject(SIGNATURE, "order belongs to another customer")

                order, changed = self.orders.transition(
                    order_id, PENDING, payment_id=payment_id, reason="payment_verified"
                )
                self._record(
                    payment_id=payment_id,
                    order_id=order.id,
                    customer_id=order.customer_id,
                    signature=signature,
                    mode=SIGNATURE,
                    purpose=ORDER_PURPOSE,
                    amount=order.amount,
                )
            payment_verifications_total.labels(mode=SIGNATURE, outcome="verified").inc()
            logger.info("payment verified mode=signature order_changed=%s", changed)
            return VerificationOutcome(payment_id=payment_id, order_id=order.id)
        finally:
            order_id_ctx.reset(order_token)
            payment_id_ctx.reset(payment_token)

    def verify_lookup(self, payment_id: str, customer_id: str) -> VerificationOutcome:
        """Accept an upstream confirmation for the customer's latest unpaid order."""

        payment_token = payment_id_ctx.set(payment_id)
        try:
            with payment_verification_seconds.labels(mode=LOOKUP).time():
                self._require_mode(LOOKUP)
                duplicate = self._already_verified(payment_id, LOOKUP, ORDER_PURPOSE, customer_id=customer_id)
                if duplicate is not None:
                    return duplicate

                # A previous attempt may have attached the payment but not recorded it.
                order = self.orders.find_by_payment(payment_id)
                if order is None:
                    order = self.orders.latest_pending_payment(customer_id)
                if order is None:
                    payment_verifications_total.labels(mode=LOOKUP, outcome="not_found").inc()
                    raise NotFound(f"no order awaiting payment for customer {customer_id}")
                if order.customer_id != customer_id:
                    self._reject(LOOKUP, "payment belongs to another customer")

                order, changed = self.orders.transition(
                    order.id, PENDING, payment_id=payment_id, reason="payment_confirmed"
                )
                self._record(
                    payment_id=payment_id,
                    order_id=order.id,
                    customer_id=customer_id,
                    mode=LOOKUP,
                    purpose=ORDER_PURPOSE,
                    amount=order.amount,
                )
            payment_verifications_total.labels(mode=LOOKUP, outcome="verified").inc()
            logger.info("payment verified mode=lookup order_id=%s order_changed=%s", order.id, changed)
            return VerificationOutcome(payment_id=payment_id, order_id=order.id)
        finally:
            payment_id_ctx.reset(payment_token)

    def verify_wallet_topup(self, user_id: str, amount: int, payment_id: str, signature: str) -> VerificationOutcome:
        """Credit a wallet for a gateway payment signed over `userId|paymentId|amount`."""

        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")
        payment_token = payment_id_ctx.set(payment_id)
        try:
            with payment_verification_seconds.labels(mode=SIGNATURE).time():
                if not signature_matches(self.gateway_secret, signature, user_id, payment_id, amount):
                    self._reject(SIGNATURE, "signature mismatch")
                duplicate = self._already_verified(
                    payment_id, SIGNATURE, TOPUP_PURPOSE, customer_id=user_id, amount=amount
                )
                if duplicate is not None:
                    return duplicate

                self.wallet.credit(user_id, amount, reference=payment_id)
                self._record(
                    payment_id=payment_id,
                    customer_id=user_id,
                    signature=signature,
                    mode=SIGNATURE,
                    purpose=TOPUP_PURPOSE,
                    amount=amount,
                )
            payment_verifications_total.labels(mode=SIGNATURE, outcome="verified").inc()
            logger.info("wallet top-up verified user_id=%s amount=%s", user_id, amount)
            return VerificationOutcome(payment_id=payment_id, order_id=None)
        finally:
            payment_id_ctx.reset(payment_token)
