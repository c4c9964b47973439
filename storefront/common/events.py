"""
Domain events published to Kafka.

Publishing is fire-and-forget: a failure is logged and dropped, it never
rolls back the change that produced the event and it is not retried.
StockUpdated is additionally broadcast on the Redis stock channel for the
realtime feed.
"""
import json
import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import List

from .config import settings
from .kafka_client import get_producer
from .redis_client import get_redis

_logger = logging.getLogger(__name__)


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Event:
    topic = ""
    key_field = ""
    broadcast = False

    @property
    def event_type(self) -> str:
        return type(self).__name__

    @property
    def key(self) -> str:
        return str(getattr(self, self.key_field))

    def to_payload(self) -> dict:
        return {"type": self.event_type, **asdict(self)}

    def encode(self) -> str:
        return json.dumps(self.to_payload(), default=_json_default)


@dataclass
class ProductCreated(Event):
    product_id: int
    name: str
    price: Decimal
    stock: int

    topic = settings.PRODUCT_EVENTS_TOPIC
    key_field = "product_id"


@dataclass
class StockUpdated(Event):
    product_id: int
    new_stock: int

    topic = settings.PRODUCT_EVENTS_TOPIC
    key_field = "product_id"
    broadcast = True


@dataclass
class OrderPlaced(Event):
    order_id: int
    user_id: int
    total: Decimal
    product_ids: List[int] = field(default_factory=list)

    topic = settings.ORDER_EVENTS_TOPIC
    key_field = "order_id"


@dataclass
class OrderStatusChanged(Event):
    order_id: int
    old_status: str
    new_status: str

    topic = settings.ORDER_EVENTS_TOPIC
    key_field = "order_id"


async def _send(event: Event) -> None:
    producer = await get_producer()
    await producer.send_and_wait(event.topic, event.encode().encode("utf-8"), key=event.key.encode("utf-8"))


async def _broadcast(event: Event) -> None:
    r = await get_redis()
    await r.publish(settings.REDIS_STOCK_CHANNEL, event.encode())


async def publish(event: Event) -> bool:
    """Publish ``event``; returns False instead of raising when the bus is unavailable."""
    delivered = True
    try:
        await _send(event)
        _logger.info("Published event | event=%s topic=%s key=%s", event.event_type, event.topic, event.key)
    except Exception as e:
        delivered = False
        _logger.warning("Event publish failed, dropping | event=%s key=%s err=%s", event.event_type, event.key, e)
    if event.broadcast:
        try:
            await _broadcast(event)
        except Exception as e:
            _logger.warning("Realtime broadcast failed | event=%s key=%s err=%s", event.event_type, event.key, e)
    return delivered
