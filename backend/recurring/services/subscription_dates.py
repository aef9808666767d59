"""Service for actionable date scheduling of subscriptions."""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from recurring.models.line_item import LineItem
from recurring.models.shared import ensure_utc
from recurring.models.subscription import SCHEDULABLE_STATES, Subscription
from recurring.repositories.installment_repository import InstallmentRepository
from recurring.repositories.line_item_repository import LineItemRepository
from recurring.services.intervals import Interval, shortest_interval


def start_of_day(dt: datetime) -> datetime:
    """Midnight UTC of the day containing dt."""
    return ensure_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)


def line_item_interval(line_item: Any) -> Interval:
    interval = Interval.of(line_item.interval_length, line_item.interval_units)
    if interval is None:
        raise ValueError(f"Line item {line_item.id} has no interval")
    return interval


def line_item_next_actionable_date(line_item: Any, now: datetime | None = None) -> datetime:
    """When the line item would next be due if processed now."""
    if now is None:
        now = datetime.now(UTC)
    return line_item_interval(line_item).from_now(now)


class SubscriptionDatesService:
    """Computes and advances when a subscription next becomes due."""

    def __init__(self, db: Session):
        self.db = db
        self.line_item_repo = LineItemRepository(db)
        self.installment_repo = InstallmentRepository(db)

    def interval(
        self,
        subscription: Subscription,
        line_items: Sequence[LineItem] | None = None,
        reference: datetime | None = None,
    ) -> Interval | None:
        """The interval a subscription recurs on.

        The subscription's own interval wins when set; otherwise the shortest
        interval among its line items, first line item on ties.

        Args:
            subscription: The subscription.
            line_items: Line items to consider. Loaded from the store when omitted.
            reference: Datetime used to compare intervals of different units.

        Returns:
            The interval, or None when neither source defines one.
        """
        override = Interval.of(subscription.interval_length, subscription.interval_units)
        if override is not None:
            return override

        if line_items is None:
            line_items = self.line_item_repo.get_by_subscription_id(subscription.id)  # type: ignore[arg-type]
        if reference is None:
            reference = datetime.now(UTC)
        return shortest_interval([line_item_interval(li) for li in line_items], reference)

    def next_actionable_date(
        self,
        subscription: Subscription,
        now: datetime | None = None,
        line_items: Sequence[LineItem] | None = None,
    ) -> datetime | None:
        """Today plus one interval, or None when the subscription is not scheduled."""
        if subscription.subscription_state not in SCHEDULABLE_STATES:
            return None
        if now is None:
            now = datetime.now(UTC)
        today = start_of_day(now)
        interval = self.interval(subscription, line_items, reference=today)
        if interval is None:
            return None
        return interval.after(today)

    def advance_actionable_date(
        self,
        subscription: Subscription,
        now: datetime | None = None,
        commit: bool = True,
    ) -> datetime | None:
        """Move actionable_date one interval past today.

        Always recomputed from today, never from the previous actionable date.
        """
        next_date = self.next_actionable_date(subscription, now)
        if next_date is None:
            return None
        subscription.actionable_date = next_date  # type: ignore[assignment]
        if commit:
            self.db.commit()
            self.db.refresh(subscription)
        return next_date

    def initial_actionable_date(
        self,
        subscription: Subscription,
        line_items: Sequence[LineItem],
        created_at: datetime,
    ) -> datetime | None:
        """First due date of a new subscription: creation time plus one interval."""
        interval = self.interval(subscription, line_items, reference=created_at)
        if interval is None:
            return None
        return interval.after(created_at)

    def recompute_on_interval_change(
        self,
        subscription: Subscription,
        now: datetime | None = None,
    ) -> datetime | None:
        """Re-derive actionable_date after the recurrence interval changed.

        Anchors on the latest installment (or the subscription's creation
        when none exist). If anchor plus the new interval has already passed,
        the subscription becomes due today.

        Does not commit; the caller persists the change.
        """
        if subscription.subscription_state not in SCHEDULABLE_STATES:
            return subscription.actionable_date  # type: ignore[return-value]
        if now is None:
            now = datetime.now(UTC)

        latest = self.installment_repo.latest_for_subscription(subscription.id)  # type: ignore[arg-type]
        anchor = latest.created_at if latest is not None else subscription.created_at
        if anchor is None:
            anchor = now
        anchor = ensure_utc(anchor)  # type: ignore[arg-type]

        interval = self.interval(subscription, reference=anchor)
        if interval is None:
            return subscription.actionable_date  # type: ignore[return-value]

        candidate = interval.after(anchor)
        if candidate <= now:
            candidate = start_of_day(now)
        subscription.actionable_date = candidate  # type: ignore[assignment]
        return candidate


def is_due(subscription: Subscription, now: datetime) -> bool:
    """Whether the subscription's actionable date has arrived."""
    actionable_date = subscription.actionable_date
    if actionable_date is None:
        return False
    return ensure_utc(actionable_date) <= now  # type: ignore[arg-type]
