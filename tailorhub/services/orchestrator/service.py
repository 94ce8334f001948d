"""Order workflow facade.

Coordinates the order store, the payment verifier and the wallet ledger behind
the operations the HTTP layer needs. Wallet payments and order status stay
independent: paying from the wallet does not move an order.
"""

from tailorhub.common.state_machine import PENDING_PAYMENT
from tailorhub.services.orders.models import Order, OrderStatusHistory
from tailorhub.services.orders.service import OrderStore
from tailorhub.services.payments.schemas import PaymentVerifyRequest
from tailorhub.services.payments.service import PaymentVerifier, VerificationOutcome
from tailorhub.services.wallet.service import WalletLedger


class OrderService:
    def __init__(self, orders: OrderStore, payments: PaymentVerifier, wallet: WalletLedger) -> None:
        self.orders = orders
        self.payments = payments
        self.wallet = wallet

    def create_order(
        self,
        customer_id: str,
        service: str,
        amount: int,
        address: str,
        initial_status: str = PENDING_PAYMENT,
    ) -> Order:
        return self.orders.create(customer_id, service, amount, address, initial_status)

    def verify_payment(self, req: PaymentVerifyRequest) -> VerificationOutcome:
        """Route a verification request to signature or lookup mode."""

        if req.mode == "signature":
            return self.payments.verify_signature(
                req.order_id, req.payment_id, req.signature, customer_id=req.customer_id
            )
        return self.payments.verify_lookup(req.payment_id, req.customer_id)

    def update_status(self, order_id: str, status: str) -> Order:
        order, _ = self.orders.transition(order_id, status, reason="status_update")
        return order

    def get_order(self, order_id: str) -> Order:
        return self.orders.get(order_id)

    def list_orders(self) -> list[Order]:
        return self.orders.list_all()

    def list_customer_orders(self, customer_id: str) -> list[Order]:
        return self.orders.list_by_customer(customer_id)

    def order_history(self, order_id: str) -> list[OrderStatusHistory]:
        return self.orders.history(order_id)
