"""Wallet ledger: balance arithmetic, idempotent credits and concurrent debits."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from tailorhub.common.errors import InsufficientBalance, InvalidAmount


def test_credit_then_overdraft_is_rejected(services):
    """Wallet at 0, credit 100, debit 150 fails and leaves 100."""

    wallet = services.wallet
    assert wallet.credit("u1", 100) == 100

    history = wallet.get_history("u1")
    assert history.balance == 100
    assert len(history.transactions) == 1

    with pytest.raises(InsufficientBalance):
        wallet.debit("u1", 150)

    history = wallet.get_history("u1")
    assert history.balance == 100
    assert [t.type for t in history.transactions] == ["credit"]


def test_unknown_wallet_reads_as_empty(services):
    history = services.wallet.get_history("nobody")
    assert history.balance == 0
    assert history.transactions == []


def test_debit_on_missing_wallet_does_not_create_it(services):
    with pytest.raises(InsufficientBalance):
        services.wallet.debit("ghost", 1)
    assert services.wallet.get_history("ghost").transactions == []


@pytest.mark.parametrize("amount", [0, -5, True, 1.5])
def test_non_positive_amounts_are_rejected(services, amount):
    with pytest.raises(InvalidAmount):
        services.wallet.credit("u1", amount)
    with pytest.raises(InvalidAmount):
        services.wallet.debit("u1", amount)
    assert services.wallet.get_history("u1").balance == 0


def test_history_keeps_insertion_order(services):
    wallet = services.wallet
    wallet.credit("u1", 50)
    wallet.credit("u1", 30)
    wallet.debit("u1", 60)
    wallet.credit("u1", 5)

    history = wallet.get_history("u1")
    assert [(t.type, t.amount) for t in history.transactions] == [
        ("credit", 50),
        ("credit", 30),
        ("debit", 60),
        ("credit", 5),
    ]
    assert history.balance == 25


def test_credit_with_same_reference_applies_once(services):
    wallet = services.wallet
    assert wallet.credit("u1", 200, reference="pay_1") == 200
    assert wallet.credit("u1", 200, reference="pay_1") == 200
    assert len(wallet.get_history("u1").transactions) == 1


def test_concurrent_debits_cannot_overdraw(services):
    """Two debits of 80 against 100: exactly one wins."""

    wallet = services.wallet
    wallet.credit("u1", 100)
    barrier = threading.Barrier(2)

    def attempt():
        barrier.wait()
        try:
            wallet.debit("u1", 80)
            return "ok"
        except InsufficientBalance:
            return "insufficient"

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = sorted(pool.map(lambda _: attempt(), range(2)))

    assert outcomes == ["insufficient", "ok"]
    assert wallet.get_history("u1").balance == 20


def test_mixed_concurrent_operations_reconcile(services):
    wallet = services.wallet
    wallet.credit("u1", 500)

    def op(i):
        try:
            if i % 3 == 0:
                wallet.credit("u1", 40)
            else:
                wallet.debit("u1", 70)
            return True
        except InsufficientBalance:
            return False

    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(op, range(24)))

    report = wallet.reconcile("u1")
    assert report.balanced
    assert report.balance >= 0
    assert report.balance == report.computed_balance


def test_reconcile_unknown_wallet_is_balanced(services):
    report = services.wallet.reconcile("nobody")
    assert report.balanced
    assert report.transaction_count == 0
