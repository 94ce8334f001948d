"""API request/response schemas for payment verification."""

from pydantic import Field, model_validator

from tailorhub.common.schemas import CamelModel


class PaymentVerifyRequest(CamelModel):
    """Either a signed gateway callback or a trusted customer lookup.

    Signature mode: `orderId`, `paymentId`, `signature`.
    Lookup mode: `paymentId`, `customerId`.
    """

    payment_id: str = Field(min_length=1)
    order_id: str | None = None
    signature: str | None = None
    customer_id: str | None = None

    @model_validator(mode="after")
    def _check_mode_fields(self):
        if self.signature is not None:
            if not self.order_id:
                raise ValueError("orderId is required with a signature")
        elif not self.customer_id:
            raise ValueError("customerId is required without a signature")
        return self

    @property
    def mode(self) -> str:
        return "signature" if self.signature is not None else "lookup"


class PaymentVerifyResponse(CamelModel):
    success: bool = True
    message: str = "Payment verified"
    payment_id: str
    order_id: str | None = None
    duplicate: bool = False
