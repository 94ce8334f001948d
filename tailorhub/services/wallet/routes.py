"""HTTP surface for wallet credits, debits, top-ups and history."""

from fastapi import APIRouter, Depends

from tailorhub.bootstrap import Services
from tailorhub.services.api.deps import get_services
from tailorhub.services.payments.schemas import PaymentVerifyResponse
from tailorhub.services.wallet.schemas import (
    WalletAmountRequest,
    WalletHistory,
    WalletMutationResponse,
    WalletReconciliation,
    WalletTopupRequest,
)

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.post("/add", response_model=WalletMutationResponse)
def add_money(req: WalletAmountRequest, services: Services = Depends(get_services)):
    """Credit the wallet, creating it on first use."""

    balance = services.wallet.credit(req.user_id, req.amount)
    return WalletMutationResponse(message="Money added to wallet", balance=balance)


@router.post("/pay", response_model=WalletMutationResponse)
def pay_with_wallet(req: WalletAmountRequest, services: Services = Depends(get_services)):
    """Debit the wallet; 400 `InsufficientBalance` when it does not cover the amount."""

    balance = services.wallet.debit(req.user_id, req.amount)
    return WalletMutationResponse(message="Payment successful via wallet", balance=balance)


@router.post("/topup", response_model=PaymentVerifyResponse)
def topup(req: WalletTopupRequest, services: Services = Depends(get_services)):
    """Credit the wallet for a signed gateway payment, at most once per payment id."""

    outcome = services.payments.verify_wallet_topup(req.user_id, req.amount, req.payment_id, req.signature)
    return PaymentVerifyResponse(
        message="Wallet top-up verified",
        payment_id=outcome.payment_id,
        duplicate=outcome.duplicate,
    )


@router.get("/{user_id}", response_model=WalletHistory)
def wallet_history(user_id: str, services: Services = Depends(get_services)):
    return services.wallet.get_history(user_id)


@router.get("/{user_id}/reconciliation", response_model=WalletReconciliation)
def wallet_reconciliation(user_id: str, services: Services = Depends(get_services)):
    """Compare stored balance with the transaction log."""

    return services.wallet.reconcile(user_id)
