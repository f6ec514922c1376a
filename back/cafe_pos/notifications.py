"""
Best-effort notifications for the kitchen display and floor view.

Events are JSON messages on Redis pub/sub. Publishing always happens after
the business transaction has committed and never raises: a failure is
logged and the caller carries on.
"""

import json
import logging
from datetime import datetime

import redis

from .settings import settings

logger = logging.getLogger(__name__)

KITCHEN_NEW_ORDER = "kitchen.new_order"
KITCHEN_ORDER_STATUS = "kitchen.order_status"
TABLE_STATUS_CHANGED = "floor.table_status"
ORDER_PAID = "orders.paid"

redis_client: redis.Redis | None = None


def get_redis() -> redis.Redis | None:
    global redis_client
    if not settings.redis_url:
        return None
    if redis_client is None:
        try:
            redis_client = redis.from_url(settings.redis_url)
            redis_client.ping()
        except Exception as e:
            logger.warning(f"Redis unavailable at {settings.redis_url}: {e}")
            redis_client = None
    return redis_client


def _default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return getattr(value, "value", str(value))


def publish(event_name: str, payload: dict) -> None:
    """Publish an event.

    Goes to `pos:events:{event_name}` and, if the payload names a branch,
    to `pos:branch:{branch_id}` as well.
    """
    r = get_redis()
    if r is None:
        logger.debug(f"Notification channel disabled, dropping {event_name}")
        return
    try:
        message = json.dumps({"type": event_name, **payload}, default=_default)
        r.publish(f"pos:events:{event_name}", message)
        branch_id = payload.get("branch_id")
        if branch_id is not None:
            r.publish(f"pos:branch:{branch_id}", message)
    except Exception as e:
        logger.warning(f"Failed to publish {event_name}: {e}")
