"""Wallet ledger: per-user balance with an append-only transaction log.

Every mutation is a single conditional UPDATE on the wallet row plus one
`wallet_transactions` insert in the same database transaction, so the balance
check and the decrement can never be split by a concurrent request.
"""

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from tailorhub.common.db import insert_ignore, storage_errors
from tailorhub.common.errors import InsufficientBalance, InvalidAmount
from tailorhub.common.logging import logger
from tailorhub.common.metrics import wallet_operations_total
from tailorhub.services.wallet.models import Wallet, WalletTransaction
from tailorhub.services.wallet.schemas import WalletHistory, WalletReconciliation, WalletTransactionView


CREDIT = "credit"
DEBIT = "debit"


def _require_positive(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")
    return amount


class WalletLedger:
    """Owns wallet rows and their transaction log."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def _find_reference(self, db, user_id: str, reference: str) -> WalletTransaction | None:
        return db.execute(
            select(WalletTransaction).where(
                WalletTransaction.user_id == user_id,
                WalletTransaction.reference == reference,
            )
        ).scalar_one_or_none()

    def _current_balance(self, db, user_id: str) -> int:
        balance = db.execute(select(Wallet.balance).where(Wallet.user_id == user_id)).scalar_one_or_none()
        return balance or 0

    def credit(self, user_id: str, amount: int, reference: str | None = None) -> int:
        """Add `amount` to the wallet, creating it on first use; return the new balance.

        A credit carrying a `reference` already present in the log is a no-op,
        which makes gateway-driven top-ups safe to repeat.
        """

        _require_positive(amount)
        with storage_errors("wallet.credit"), self.session_factory() as db:
            insert_ignore(db, Wallet, {"user_id": user_id, "balance": 0, "version": 0})
            if reference is not None and self._find_reference(db, user_id, reference):
                db.rollback()
                wallet_operations_total.labels(operation=CREDIT, outcome="duplicate").inc()
                logger.info("wallet credit skipped user_id=%s reference=%s", user_id, reference)
                return self._current_balance(db, user_id)

            balance = db.execute(
                update(Wallet)
                .where(Wallet.user_id == user_id)
                .values(
                    balance=Wallet.balance + amount,
                    version=Wallet.version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
                .returning(Wallet.balance)
            ).scalar_one()
            db.add(WalletTransaction(user_id=user_id, type=CREDIT, amount=amount, reference=reference))
            try:
                db.commit()
            except IntegrityError:
                # Concurrent credit with the same reference won the insert.
                db.rollback()
                wallet_operations_total.labels(operation=CREDIT, outcome="duplicate").inc()
                return self._current_balance(db, user_id)

        wallet_operations_total.labels(operation=CREDIT, outcome="success").inc()
        logger.info("wallet credit user_id=%s amount=%s balance=%s", user_id, amount, balance)
        return balance

    def debit(self, user_id: str, amount: int) -> int:
        """Subtract `amount` if the balance covers it; return the new balance."""

        _require_positive(amount)
        with storage_errors("wallet.debit"), self.session_factory() as db:
            balance = db.execute(
                update(Wallet)
                .where(Wallet.user_id == user_id, Wallet.balance >= amount)
                .values(
                    balance=Wallet.balance - amount,
                    version=Wallet.version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
                .returning(Wallet.balance)
            ).scalar_one_or_none()
            if balance is None:
                db.rollback()
                wallet_operations_total.labels(operation=DEBIT, outcome="insufficient_balance").inc()
                logger.info("wallet debit rejected user_id=%s amount=%s", user_id, amount)
                raise InsufficientBalance(user_id, amount)
            db.add(WalletTransaction(user_id=user_id, type=DEBIT, amount=amount))
            db.commit()

        wallet_operations_total.labels(operation=DEBIT, outcome="success").inc()
        logger.info("wallet debit user_id=%s amount=%s balance=%s", user_id, amount, balance)
        return balance

    def get_history(self, user_id: str) -> WalletHistory:
        """Return balance and ordered log; a never-created wallet reads as empty."""

        with storage_errors("wallet.history"), self.session_factory() as db:
            wallet = db.get(Wallet, user_id)
            if wallet is None:
                return WalletHistory()
            rows = db.execute(
                select(WalletTransaction)
                .where(WalletTransaction.user_id == user_id)
                .order_by(WalletTransaction.seq)
            ).scalars().all()
            return WalletHistory(
                balance=wallet.balance,
                transactions=[
                    WalletTransactionView(
                        type=row.type,
                        amount=row.amount,
                        reference=row.reference,
                        timestamp=row.created_at,
                    )
                    for row in rows
                ],
            )

    def reconcile(self, user_id: str) -> WalletReconciliation:
        """Compare the stored balance with the sum over the transaction log."""

        history = self.get_history(user_id)
        credits = sum(t.amount for t in history.transactions if t.type == CREDIT)
        debits = sum(t.amount for t in history.transactions if t.type == DEBIT)
        computed = credits - debits
        if computed != history.balance:
            logger.error(
                "wallet imbalance detected user_id=%s balance=%s computed=%s",
                user_id,
                history.balance,
                computed,
            )
        return WalletReconciliation(
            user_id=user_id,
            balance=history.balance,
            computed_balance=computed,
            transaction_count=len(history.transactions),
            balanced=computed == history.balance and history.balance >= 0,
        )
