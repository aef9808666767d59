from recurring.models.installment import (
    Installment,
    InstallmentDetail,
    InstallmentLineItem,
    InstallmentState,
)
from recurring.models.line_item import IntervalUnits, LineItem
from recurring.models.subscribable import Subscribable
from recurring.models.subscription import ProcessingState, Subscription, SubscriptionState
from recurring.models.subscription_event import SubscriptionEvent, SubscriptionEventType

__all__ = [
    "Installment",
    "InstallmentDetail",
    "InstallmentLineItem",
    "InstallmentState",
    "IntervalUnits",
    "LineItem",
    "ProcessingState",
    "Subscribable",
    "Subscription",
    "SubscriptionEvent",
    "SubscriptionEventType",
    "SubscriptionState",
]
