"""Shared fixtures: a per-test SQLite file database and a recording push sender."""

import pytest
from fastapi.testclient import TestClient

from tailorhub.bootstrap import build_services
from tailorhub.common.config import Settings
from tailorhub.services.api.main import create_app
from tailorhub.services.payments.signing import sign


GATEWAY_SECRET = "test-gateway-secret"


class RecordingPushSender:
    """Collects delivered messages; raises while `fail` is set."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send(self, token: str, title: str, body: str) -> None:
        if self.fail:
            raise RuntimeError("push gateway unavailable")
        self.sent.append((token, title, body))


def order_signature(order_id: str, payment_id: str) -> str:
    return sign(GATEWAY_SECRET, order_id, payment_id)


def topup_signature(user_id: str, payment_id: str, amount: int) -> str:
    return sign(GATEWAY_SECRET, user_id, payment_id, amount)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'tailorhub.db'}",
        gateway_secret=GATEWAY_SECRET,
        verification_mode="both",
        run_background_workers=False,
        create_schema=True,
    )


@pytest.fixture
def sender():
    return RecordingPushSender()


@pytest.fixture
def services(settings, sender):
    services = build_services(settings, push_sender=sender)
    yield services
    services.engine.dispose()


@pytest.fixture
def client(settings, sender):
    app = create_app(settings, push_sender=sender)
    with TestClient(app) as test_client:
        yield test_client
