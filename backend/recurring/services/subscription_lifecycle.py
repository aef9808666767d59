"""Subscription lifecycle: state transitions, skips and their audit events."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from recurring.core.config import SubscriptionConfig, get_subscription_config
from recurring.models.shared import ensure_utc
from recurring.models.subscription import Subscription, SubscriptionState
from recurring.models.subscription_event import SubscriptionEventType
from recurring.repositories.subscription_event_repository import SubscriptionEventRepository
from recurring.services.skip_policy import SkipPolicy
from recurring.services.subscription_dates import SubscriptionDatesService, is_due

logger = logging.getLogger(__name__)

Guard = Callable[[Subscription, datetime], bool]


class LifecycleEvent(str, Enum):
    CANCEL = "cancel"
    EXPIRE_CANCELLATION = "expire_cancellation"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    BEGIN_PROCESSING = "begin_processing"


@dataclass(frozen=True)
class Transition:
    event: LifecycleEvent
    sources: frozenset[SubscriptionState]
    target: SubscriptionState
    guard: Guard
    emits: SubscriptionEventType | None = None
    clears_actionable_date: bool = False


def _always(subscription: Subscription, now: datetime) -> bool:
    return True


def _due_or_unscheduled(subscription: Subscription, now: datetime) -> bool:
    return subscription.actionable_date is None or is_due(subscription, now)


def _scheduled_ahead(subscription: Subscription, now: datetime) -> bool:
    return subscription.actionable_date is not None and not is_due(subscription, now)


def _not_due(subscription: Subscription, now: datetime) -> bool:
    return not is_due(subscription, now)


def _has_ended(subscription: Subscription, now: datetime) -> bool:
    end_date = subscription.end_date
    return end_date is not None and ensure_utc(end_date) <= now  # type: ignore[arg-type]


_PENDING = SubscriptionState.PENDING
_ACTIVE = SubscriptionState.ACTIVE
_INACTIVE = SubscriptionState.INACTIVE

# Order matters: the first entry whose source and guard match fires.
TRANSITIONS: tuple[Transition, ...] = (
    Transition(
        LifecycleEvent.CANCEL,
        frozenset({_PENDING, _ACTIVE, _INACTIVE}),
        SubscriptionState.CANCELED,
        guard=_due_or_unscheduled,
        emits=SubscriptionEventType.CANCELED,
        clears_actionable_date=True,
    ),
    Transition(
        LifecycleEvent.CANCEL,
        frozenset({_PENDING, _ACTIVE}),
        SubscriptionState.PENDING_CANCELLATION,
        guard=_scheduled_ahead,
        emits=SubscriptionEventType.CANCELED,
    ),
    Transition(
        LifecycleEvent.EXPIRE_CANCELLATION,
        frozenset({SubscriptionState.PENDING_CANCELLATION}),
        SubscriptionState.CANCELED,
        guard=is_due,
        clears_actionable_date=True,
    ),
    Transition(
        LifecycleEvent.ACTIVATE,
        frozenset({_PENDING, _ACTIVE, _INACTIVE}),
        SubscriptionState.ACTIVE,
        guard=_not_due,
        emits=SubscriptionEventType.ACTIVATED,
    ),
    Transition(
        LifecycleEvent.DEACTIVATE,
        frozenset({_PENDING, _ACTIVE}),
        SubscriptionState.INACTIVE,
        guard=_has_ended,
        emits=SubscriptionEventType.ENDED,
        clears_actionable_date=True,
    ),
    Transition(
        LifecycleEvent.BEGIN_PROCESSING,
        frozenset({_PENDING}),
        SubscriptionState.ACTIVE,
        guard=_always,
    ),
)


def find_transition(
    event: LifecycleEvent, subscription: Subscription, now: datetime
) -> Transition | None:
    """Return the transition that event would fire, or None if none applies."""
    state = subscription.subscription_state
    for transition in TRANSITIONS:
        if transition.event != event or state not in transition.sources:
            continue
        if transition.guard(subscription, now):
            return transition
    return None


class SubscriptionLifecycleService:
    """Service for cancel, activate, deactivate and skip requests."""

    def __init__(self, db: Session, config: SubscriptionConfig | None = None):
        self.db = db
        self.config = config or get_subscription_config()
        self.event_repo = SubscriptionEventRepository(db)
        self.dates_service = SubscriptionDatesService(db)
        self.skip_policy = SkipPolicy(self.config)

    def refresh_state(self, subscription: Subscription, now: datetime | None = None) -> bool:
        """Settle a pending cancellation whose actionable date has arrived.

        Run before reading or changing a subscription's state.

        Returns:
            True if the state changed.
        """
        if now is None:
            now = datetime.now(UTC)
        transition = find_transition(LifecycleEvent.EXPIRE_CANCELLATION, subscription, now)
        if transition is None:
            return False
        self._apply(transition, subscription)
        self.db.commit()
        self.db.refresh(subscription)
        return True

    def cancel(self, subscription: Subscription, now: datetime | None = None) -> bool:
        """Cancel now, or at the actionable date when one is still ahead.

        Canceling an already canceled or pending-cancellation subscription
        succeeds without recording another event.
        """
        if now is None:
            now = datetime.now(UTC)
        self.refresh_state(subscription, now)
        if subscription.is_state(
            SubscriptionState.CANCELED, SubscriptionState.PENDING_CANCELLATION
        ):
            return True
        return self._fire(LifecycleEvent.CANCEL, subscription, now)

    def activate(self, subscription: Subscription, now: datetime | None = None) -> bool:
        """Activate a subscription that is not currently due.

        Returns False, without raising, when activation is not allowed.
        """
        if now is None:
            now = datetime.now(UTC)
        self.refresh_state(subscription, now)
        return self._fire(LifecycleEvent.ACTIVATE, subscription, now)

    def deactivate(self, subscription: Subscription, now: datetime | None = None) -> bool:
        """End a subscription whose end_date has passed.

        Returns False as a no-op when the end date has not been reached.
        """
        if now is None:
            now = datetime.now(UTC)
        self.refresh_state(subscription, now)
        return self._fire(LifecycleEvent.DEACTIVATE, subscription, now)

    def begin_processing(self, subscription: Subscription, now: datetime | None = None) -> None:
        """Promote a pending subscription to active when its first installment is built.

        Does not commit and records no event.
        """
        if now is None:
            now = datetime.now(UTC)
        transition = find_transition(LifecycleEvent.BEGIN_PROCESSING, subscription, now)
        if transition is not None:
            self._apply(transition, subscription)

    def skip(self, subscription: Subscription, now: datetime | None = None) -> datetime | None:
        """Skip the next installment.

        Returns:
            The new actionable date, or None when the skip was rejected. The
            reason is recorded on subscription.errors.
        """
        if now is None:
            now = datetime.now(UTC)
        subscription.errors.clear()
        self.refresh_state(subscription, now)

        if not self.skip_policy.check(subscription):
            return None

        next_date = self.dates_service.next_actionable_date(subscription, now)
        if next_date is None:
            subscription.errors.add("actionable_date", "cannot be advanced without an interval")
            return None

        subscription.skip_count = int(subscription.skip_count or 0) + 1  # type: ignore[assignment]
        subscription.successive_skip_count = (  # type: ignore[assignment]
            int(subscription.successive_skip_count or 0) + 1
        )
        subscription.actionable_date = next_date  # type: ignore[assignment]
        self.event_repo.append(
            subscription.id,  # type: ignore[arg-type]
            SubscriptionEventType.SKIPPED,
            self._event_details(subscription, actionable_date=next_date.isoformat()),
        )
        self.db.commit()
        self.db.refresh(subscription)
        logger.info("Skipped subscription %s until %s", subscription.id, next_date)
        return next_date

    def _fire(self, event: LifecycleEvent, subscription: Subscription, now: datetime) -> bool:
        transition = find_transition(event, subscription, now)
        if transition is None:
            return False

        self._apply(transition, subscription)
        if (
            transition.target == SubscriptionState.ACTIVE
            and subscription.actionable_date is None
        ):
            self.dates_service.advance_actionable_date(subscription, now, commit=False)
        if transition.emits is not None:
            self.event_repo.append(
                subscription.id,  # type: ignore[arg-type]
                transition.emits,
                self._event_details(subscription),
            )
        self.db.commit()
        self.db.refresh(subscription)
        logger.info("Subscription %s transitioned to %s", subscription.id, subscription.state)
        return True

    def _apply(self, transition: Transition, subscription: Subscription) -> None:
        subscription.state = transition.target.value  # type: ignore[assignment]
        if transition.clears_actionable_date:
            subscription.actionable_date = None  # type: ignore[assignment]

    @staticmethod
    def _event_details(subscription: Subscription, **extra: Any) -> dict[str, Any]:
        details: dict[str, Any] = {"id": str(subscription.id), "state": subscription.state}
        details.update(extra)
        return details
