from datetime import datetime
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Query, Session

from recurring.models.installment import Installment
from recurring.models.subscription import (
    SCHEDULABLE_STATES,
    ProcessingState,
    Subscription,
)


def parse_processing_state(state: str | ProcessingState) -> ProcessingState:
    """Coerce state to a ProcessingState, failing loudly on unknown values."""
    try:
        return ProcessingState(state)
    except ValueError:
        allowed = ", ".join(s.value for s in ProcessingState)
        raise ValueError(f"state must be one of {allowed}, got {state!r}") from None


class SubscriptionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        user_id: str | None = None,
        processing_state: str | ProcessingState | None = None,
    ) -> list[Subscription]:
        query = self.db.query(Subscription)
        if processing_state is not None:
            query = self._filter_processing_state(query, processing_state)
        if user_id is not None:
            query = query.filter(Subscription.user_id == user_id)
        return query.order_by(Subscription.created_at).offset(skip).limit(limit).all()

    def count(self) -> int:
        return self.db.query(Subscription).count()

    def get_by_id(self, subscription_id: UUID, for_update: bool = False) -> Subscription | None:
        """Load one subscription.

        A locking read reloads the row over any copy the session already holds.
        """
        query = self.db.query(Subscription).filter(Subscription.id == subscription_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def add(self, subscription: Subscription) -> Subscription:
        """Stage a subscription in the current transaction without committing."""
        self.db.add(subscription)
        return subscription

    def actionable(self, now: datetime) -> list[Subscription]:
        """Subscriptions that are still scheduled and whose actionable date has arrived."""
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.state.in_([state.value for state in SCHEDULABLE_STATES]),
                Subscription.actionable_date.isnot(None),
                Subscription.actionable_date <= now,
            )
            .all()
        )

    def in_processing_state(self, state: str | ProcessingState) -> list[Subscription]:
        """Subscriptions whose most recent installment is in the given state.

        Subscriptions without installments count as pending.
        """
        query = self._filter_processing_state(self.db.query(Subscription), state)
        return query.all()

    def _filter_processing_state(
        self, query: "Query[Subscription]", state: str | ProcessingState
    ) -> "Query[Subscription]":
        processing_state = parse_processing_state(state)
        latest_state = (
            select(Installment.state)
            .where(Installment.subscription_id == Subscription.id)
            .order_by(Installment.created_at.desc(), Installment.id.desc())
            .limit(1)
            .correlate(Subscription)
            .scalar_subquery()
        )
        if processing_state == ProcessingState.PENDING:
            return query.filter(
                or_(latest_state.is_(None), latest_state == ProcessingState.PENDING.value)
            )
        return query.filter(latest_state == processing_state.value)
