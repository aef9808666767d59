from recurring.schemas.subscription import (
    LineItemCreate,
    LineItemResponse,
    LineItemUpdate,
    SubscriptionCreate,
    SubscriptionEventResponse,
    SubscriptionResponse,
    SubscriptionUpdate,
)

__all__ = [
    "LineItemCreate",
    "LineItemResponse",
    "LineItemUpdate",
    "SubscriptionCreate",
    "SubscriptionEventResponse",
    "SubscriptionResponse",
    "SubscriptionUpdate",
]
