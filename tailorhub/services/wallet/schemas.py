"""API request/response schemas for wallet endpoints."""

from datetime import datetime

from pydantic import Field

from tailorhub.common.schemas import CamelModel


class WalletAmountRequest(CamelModel):
    """Payload accepted by `/wallet/add` and `/wallet/pay`."""

    user_id: str = Field(min_length=1)
    amount: int = Field(gt=0, strict=True)


class WalletTopupRequest(CamelModel):
    """Gateway-confirmed top-up, signed over `userId|paymentId|amount`."""

    user_id: str = Field(min_length=1)
    amount: int = Field(gt=0, strict=True)
    payment_id: str = Field(min_length=1)
    signature: str = Field(min_length=1)


class WalletMutationResponse(CamelModel):
    success: bool = True
    message: str
    balance: int


class WalletTransactionView(CamelModel):
    type: str
    amount: int
    reference: str | None = None
    timestamp: datetime


class WalletHistory(CamelModel):
    balance: int = 0
    transactions: list[WalletTransactionView] = Field(default_factory=list)


class WalletReconciliation(CamelModel):
    user_id: str
    balance: int
    computed_balance: int
    transaction_count: int
    balanced: bool
