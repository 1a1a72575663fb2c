
from kafka import KafkaProducer
from kafka.errors import KafkaError
import json
from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)

_producer = None

def get_producer() -> KafkaProducer:
    global _producer
    if _producer is None:
        _producer = KafkaProducer(
            bootstrap_servers=[settings.KAFKA_BOOTSTRAP],
            value_serializer=lambda v: json.dumps(v, default=str).encode("utf-8"),
            key_serializer=lambda v: (v.encode("utf-8") if isinstance(v, str) else v),
            linger_ms=5,
            retries=3,
        )
    return _producer

def send(topic: str, key: str, value: dict):
    p = get_producer()
    p.send(topic, key=key, value=value)
    p.flush(5)

def emit_order_event(event: dict) -> bool:
    """Publish to order.events (configurable). The order is already committed
    when this runs, so broker trouble is logged rather than raised."""
    try:
        send(settings.TOPIC_ORDER_EVENTS, key=str(event.get("order_id", "")), value=event)
    except KafkaError as e:
        logger.warning("Failed to publish %s for order %s: %s", event.get("type"), event.get("order_id"), e)
        return False
    return True
