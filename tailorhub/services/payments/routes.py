"""HTTP surface for payment verification."""

from fastapi import APIRouter, Depends

from tailorhub.bootstrap import Services
from tailorhub.services.api.deps import get_services
from tailorhub.services.payments.schemas import PaymentVerifyRequest, PaymentVerifyResponse

router = APIRouter(prefix="/payment", tags=["payments"])


@router.post("/verify", response_model=PaymentVerifyResponse)
def verify_payment(req: PaymentVerifyRequest, services: Services = Depends(get_services)):
    """Verify a payment by signature or lookup; repeated payment ids succeed without side effects."""

    outcome = services.order_service.verify_payment(req)
    return PaymentVerifyResponse(
        payment_id=outcome.payment_id,
        order_id=outcome.order_id,
        duplicate=outcome.duplicate,
    )
