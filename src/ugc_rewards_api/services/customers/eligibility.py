"""UGC eligibility rule based on paid order history."""

ELIGIBILITY_ORDER_THRESHOLD = 3


def is_eligible(orders_count: int) -> bool:
    return orders_count >= ELIGIBILITY_ORDER_THRESHOLD


__all__ = ["ELIGIBILITY_ORDER_THRESHOLD", "is_eligible"]
