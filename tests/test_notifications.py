"""Push notifier outcomes and the post-commit outbox dispatcher."""

from sqlalchemy import select

from tailorhub.services.notification.models import DeviceToken, NotificationLog
from tailorhub.services.notification.service import NotifyResult
from tailorhub.services.orders.models import OutboxEvent


def _logs(services):
    with services.session_factory() as db:
        return list(db.execute(select(NotificationLog).order_by(NotificationLog.created_at)).scalars())


def _outbox_statuses(services):
    with services.session_factory() as db:
        return [(row.status, row.attempts) for row in db.execute(select(OutboxEvent)).scalars()]


def _paid_order(services, customer_id="c1"):
    order = services.orders.create(customer_id, "Saree fall", 250, "9 Lake Road")
    services.orders.transition(order.id, "Pending", payment_id=f"pay_{order.id}")
    return order


def test_notify_without_token(services, sender):
    assert services.notifier.notify("c1", "Hi", "there") is NotifyResult.NO_TOKEN
    assert sender.sent == []
    assert [log.outcome for log in _logs(services)] == ["NO_TOKEN"]


def test_notify_sends_to_registered_token(services, sender):
    services.notifier.register_token("c1", "device-a")
    assert services.notifier.notify("c1", "Hi", "there") is NotifyResult.SENT
    assert sender.sent == [("device-a", "Hi", "there")]
    assert [log.outcome for log in _logs(services)] == ["SENT"]


def test_notify_reports_delivery_failure(services, sender):
    services.notifier.register_token("c1", "device-a")
    sender.fail = True

    assert services.notifier.notify("c1", "Hi", "there") is NotifyResult.FAILED
    log = _logs(services)[0]
    assert log.outcome == "FAILED"
    assert "unavailable" in log.error


def test_register_token_replaces_previous(services, sender):
    services.notifier.register_token("c1", "device-a")
    services.notifier.register_token("c1", "device-b")

    with services.session_factory() as db:
        assert db.get(DeviceToken, "c1").token == "device-b"
    services.notifier.notify("c1", "Hi", "there")
    assert sender.sent[0][0] == "device-b"


def test_dispatcher_delivers_status_changes(services, sender):
    services.notifier.register_token("c1", "device-a")
    order = _paid_order(services)
    services.orders.transition(order.id, "InProgress")

    assert services.dispatcher.dispatch_pending() == 2
    assert sorted(body for _, _, body in sender.sent) == [
        "Your order is now InProgress",
        "Your order is now Pending",
    ]
    assert _outbox_statuses(services) == [("SENT", 1), ("SENT", 1)]
    assert services.dispatcher.dispatch_pending() == 0


def test_dispatcher_skips_users_without_token(services, sender):
    _paid_order(services)

    services.dispatcher.dispatch_pending()
    assert sender.sent == []
    assert _outbox_statuses(services) == [("SKIPPED", 1)]


def test_dispatcher_retries_then_gives_up(services, sender):
    services.notifier.register_token("c1", "device-a")
    _paid_order(services)
    sender.fail = True

    services.dispatcher.dispatch_pending()
    assert _outbox_statuses(services) == [("PENDING", 1)]

    for _ in range(services.dispatcher.max_attempts - 1):
        services.dispatcher.dispatch_pending()
    assert _outbox_statuses(services) == [("FAILED", services.dispatcher.max_attempts)]
    assert services.dispatcher.dispatch_pending() == 0


def test_delivery_failure_does_not_affect_order(services, sender):
    services.notifier.register_token("c1", "device-a")
    sender.fail = True
    order = _paid_order(services)

    services.dispatcher.dispatch_pending()
    assert services.orders.get(order.id).status == "Pending"


def test_dispatcher_recovers_after_transient_failure(services, sender):
    services.notifier.register_token("c1", "device-a")
    _paid_order(services)
    sender.fail = True
    services.dispatcher.dispatch_pending()

    sender.fail = False
    services.dispatcher.dispatch_pending()
    assert _outbox_statuses(services) == [("SENT", 2)]
    assert len(sender.sent) == 1
