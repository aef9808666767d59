"""Repository for the append-only subscription event log."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from recurring.models.subscription_event import SubscriptionEvent, SubscriptionEventType


class SubscriptionEventRepository:
    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        subscription_id: UUID,
        event_type: SubscriptionEventType,
        details: dict[str, Any] | None = None,
    ) -> SubscriptionEvent:
        """Stage an event in the caller's transaction.

        The caller commits it together with the state change it records.
        """
        event = SubscriptionEvent(
            subscription_id=subscription_id,
            event_type=event_type.value,
            details=details or {},
        )
        self.db.add(event)
        return event

    def get_by_subscription_id(self, subscription_id: UUID) -> list[SubscriptionEvent]:
        """Events for a subscription, oldest first."""
        return (
            self.db.query(SubscriptionEvent)
            .filter(SubscriptionEvent.subscription_id == subscription_id)
            .order_by(SubscriptionEvent.created_at)
            .all()
        )

    def count_for_subscription(self, subscription_id: UUID) -> int:
        return (
            self.db.query(SubscriptionEvent)
            .filter(SubscriptionEvent.subscription_id == subscription_id)
            .count()
        )
