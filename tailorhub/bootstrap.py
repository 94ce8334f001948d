"""Construct the process-wide service graph from one `Settings` object."""

from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from tailorhub.common.config import Settings
from tailorhub.common.db import Base, create_db_engine, create_session_factory
from tailorhub.services.notification.service import (
    HttpPushSender,
    LogOnlyPushSender,
    NotificationDispatcher,
    PushNotifier,
    PushSender,
)
from tailorhub.services.orchestrator.service import OrderService
from tailorhub.services.orders.service import OrderStore
from tailorhub.services.payments.service import PaymentVerifier
from tailorhub.services.wallet.service import WalletLedger


@dataclass
class Services:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    wallet: WalletLedger
    orders: OrderStore
    payments: PaymentVerifier
    notifier: PushNotifier
    dispatcher: NotificationDispatcher
    order_service: OrderService


def build_services(settings: Settings, push_sender: PushSender | None = None) -> Services:
    """Create engine, session factory and services exactly once per process."""

    engine = create_db_engine(settings)
    if settings.create_schema:
        Base.metadata.create_all(engine)
    session_factory = create_session_factory(engine)

    if push_sender is None:
        if settings.push_gateway_url:
            push_sender = HttpPushSender(settings.push_gateway_url, timeout=settings.push_timeout_seconds)
        else:
            push_sender = LogOnlyPushSender()

    wallet = WalletLedger(session_factory)
    orders = OrderStore(session_factory, max_retries=settings.transition_max_retries)
    payments = PaymentVerifier(
        session_factory,
        orders,
        wallet,
        gateway_secret=settings.gateway_secret,
        verification_mode=settings.verification_mode,
    )
    notifier = PushNotifier(session_factory, push_sender)
    dispatcher = NotificationDispatcher(
        session_factory,
        notifier,
        max_attempts=settings.notification_max_attempts,
        service_name=settings.service_name,
    )
    return Services(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        wallet=wallet,
        orders=orders,
        payments=payments,
        notifier=notifier,
        dispatcher=dispatcher,
        order_service=OrderService(orders, payments, wallet),
    )
