from recurring.repositories.installment_repository import InstallmentRepository
from recurring.repositories.line_item_repository import LineItemRepository
from recurring.repositories.subscribable_repository import SubscribableRepository
from recurring.repositories.subscription_event_repository import SubscriptionEventRepository
from recurring.repositories.subscription_repository import SubscriptionRepository

__all__ = [
    "InstallmentRepository",
    "LineItemRepository",
    "SubscribableRepository",
    "SubscriptionEventRepository",
    "SubscriptionRepository",
]
