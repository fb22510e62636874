"""Order webhook processing."""

from .order_events import ORDER_CREATED_TOPIC, OrderEventProcessor, OrderOutcome, OrderPayloadError

__all__ = ["ORDER_CREATED_TOPIC", "OrderEventProcessor", "OrderOutcome", "OrderPayloadError"]
