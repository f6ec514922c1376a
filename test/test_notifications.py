import json
from datetime import datetime, timezone

import redis

from cafe_pos import notifications


class FakeRedis:
    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []

    def publish(self, channel, message):
        if self.fail:
            raise redis.ConnectionError("connection refused")
        self.messages.append((channel, json.loads(message)))


def test_publish_to_event_and_branch_channels(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(notifications, "get_redis", lambda: fake)

    created = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    notifications.publish(notifications.KITCHEN_NEW_ORDER, {
        "order_id": 7, "branch_id": 3, "created_at": created,
    })

    assert [channel for channel, _ in fake.messages] == [
        "pos:events:kitchen.new_order",
        "pos:branch:3",
    ]
    message = fake.messages[0][1]
    assert message["type"] == "kitchen.new_order"
    assert message["order_id"] == 7
    assert message["created_at"] == created.isoformat()


def test_publish_without_branch_uses_event_channel_only(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(notifications, "get_redis", lambda: fake)

    notifications.publish(notifications.ORDER_PAID, {"order_id": 1})

    assert [channel for channel, _ in fake.messages] == ["pos:events:orders.paid"]


def test_publish_failure_is_swallowed(monkeypatch, caplog):
    monkeypatch.setattr(notifications, "get_redis", lambda: FakeRedis(fail=True))

    notifications.publish(notifications.ORDER_PAID, {"order_id": 1, "branch_id": 1})

    assert "Failed to publish orders.paid" in caplog.text


def test_disabled_channel_is_a_no_op():
    # REDIS_URL is empty under test
    assert notifications.get_redis() is None
    notifications.publish(notifications.ORDER_PAID, {"order_id": 1})


def test_payment_survives_notification_failure(session, pos, open_pos_session, monkeypatch):
    from cafe_pos import order_service, payment_service
    from cafe_pos.models import OrderStatus, OrderType, PaymentMethod

    order = order_service.create_order(session, pos.branch_id, open_pos_session, OrderType.takeaway)
    monkeypatch.setattr(notifications, "get_redis", lambda: FakeRedis(fail=True))

    payment = payment_service.process_payment(session, order.id, 0, PaymentMethod.cash)

    assert payment.id is not None
    assert order_service.get_order(session, order.id).status == OrderStatus.completed


def test_malformed_redis_url_does_not_fail_payment(session, pos, open_pos_session, monkeypatch, caplog):
    from cafe_pos import order_service, payment_service
    from cafe_pos.models import OrderStatus, OrderType, PaymentMethod

    order = order_service.create_order(session, pos.branch_id, open_pos_session, OrderType.takeaway)
    # No scheme: redis.from_url raises ValueError
    monkeypatch.setattr(notifications.settings, "redis_url", "localhost:6379")
    monkeypatch.setattr(notifications, "redis_client", None)

    payment = payment_service.process_payment(session, order.id, 0, PaymentMethod.cash)

    assert payment.id is not None
    assert order_service.get_order(session, order.id).status == OrderStatus.completed
    assert notifications.redis_client is None
    assert "Redis unavailable at localhost:6379" in caplog.text
