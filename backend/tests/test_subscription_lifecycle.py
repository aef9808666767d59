"""Tests for subscription state transitions, skips and their events."""

from datetime import UTC, datetime, timedelta

import pytest

from recurring.core.config import SubscriptionConfig
from recurring.models.subscription import SubscriptionState
from recurring.models.subscription_event import SubscriptionEventType
from recurring.repositories.subscription_event_repository import SubscriptionEventRepository
from recurring.services.subscription_lifecycle import (
    LifecycleEvent,
    SubscriptionLifecycleService,
    find_transition,
)
from tests.conftest import NOW, TODAY, create_subscription


@pytest.fixture
def service(db_session):
    return SubscriptionLifecycleService(db_session, SubscriptionConfig())


def _events(db_session, subscription):
    return SubscriptionEventRepository(db_session).get_by_subscription_id(subscription.id)


class TestFindTransition:
    def test_cancel_with_future_date_waits(self, db_session):
        subscription = create_subscription(db_session, actionable_date=NOW + timedelta(days=5))
        transition = find_transition(LifecycleEvent.CANCEL, subscription, NOW)
        assert transition.target == SubscriptionState.PENDING_CANCELLATION

    def test_cancel_when_due_is_immediate(self, db_session):
        subscription = create_subscription(db_session, actionable_date=NOW)
        transition = find_transition(LifecycleEvent.CANCEL, subscription, NOW)
        assert transition.target == SubscriptionState.CANCELED
        assert transition.clears_actionable_date

    def test_no_transition_from_canceled(self, db_session):
        subscription = create_subscription(db_session, state=SubscriptionState.CANCELED)
        assert find_transition(LifecycleEvent.ACTIVATE, subscription, NOW) is None
        assert find_transition(LifecycleEvent.DEACTIVATE, subscription, NOW) is None


class TestCancel:
    def test_future_actionable_date_becomes_pending_cancellation(self, db_session, service):
        actionable = NOW + timedelta(days=5)
        subscription = create_subscription(db_session, actionable_date=actionable)

        assert service.cancel(subscription, NOW) is True

        assert subscription.state == SubscriptionState.PENDING_CANCELLATION.value
        assert subscription.actionable_date == actionable
        events = _events(db_session, subscription)
        assert [e.event_type for e in events] == [SubscriptionEventType.CANCELED.value]
        assert events[0].details["state"] == "pending_cancellation"

    def test_due_subscription_is_canceled_immediately(self, db_session, service):
        subscription = create_subscription(db_session, actionable_date=NOW - timedelta(hours=1))

        assert service.cancel(subscription, NOW) is True

        assert subscription.state == SubscriptionState.CANCELED.value
        assert subscription.actionable_date is None
        assert len(_events(db_session, subscription)) == 1

    def test_unscheduled_subscription_is_canceled_immediately(self, db_session, service):
        subscription = create_subscription(db_session, state=SubscriptionState.PENDING)

        assert service.cancel(subscription, NOW) is True
        assert subscription.state == SubscriptionState.CANCELED.value

    def test_inactive_subscription_can_be_canceled(self, db_session, service):
        subscription = create_subscription(db_session, state=SubscriptionState.INACTIVE)

        assert service.cancel(subscription, NOW) is True
        assert subscription.state == SubscriptionState.CANCELED.value

    def test_repeated_cancel_records_one_event(self, db_session, service):
        subscription = create_subscription(db_session, actionable_date=NOW + timedelta(days=5))

        assert service.cancel(subscription, NOW) is True
        assert service.cancel(subscription, NOW) is True

        assert subscription.state == SubscriptionState.PENDING_CANCELLATION.value
        assert len(_events(db_session, subscription)) == 1


class TestRefreshState:
    def test_pending_cancellation_settles_once_due(self, db_session, service):
        subscription = create_subscription(
            db_session,
            state=SubscriptionState.PENDING_CANCELLATION,
            actionable_date=NOW - timedelta(minutes=1),
        )

        assert service.refresh_state(subscription, NOW) is True

        assert subscription.state == SubscriptionState.CANCELED.value
        assert subscription.actionable_date is None
        assert _events(db_session, subscription) == []

    def test_pending_cancellation_waits_until_due(self, db_session, service):
        subscription = create_subscription(
            db_session,
            state=SubscriptionState.PENDING_CANCELLATION,
            actionable_date=NOW + timedelta(days=1),
        )

        assert service.refresh_state(subscription, NOW) is False
        assert subscription.state == SubscriptionState.PENDING_CANCELLATION.value

    def test_other_states_untouched(self, db_session, service):
        subscription = create_subscription(db_session, actionable_date=NOW - timedelta(days=1))
        assert service.refresh_state(subscription, NOW) is False
        assert subscription.state == SubscriptionState.ACTIVE.value


class TestActivate:
    def test_inactive_subscription_is_rescheduled(self, db_session, service):
        subscription = create_subscription(db_session, state=SubscriptionState.INACTIVE)

        assert service.activate(subscription, NOW) is True

        assert subscription.state == SubscriptionState.ACTIVE.value
        assert subscription.actionable_date == datetime(2026, 4, 15, tzinfo=UTC)
        events = _events(db_session, subscription)
        assert [e.event_type for e in events] == [SubscriptionEventType.ACTIVATED.value]

    def test_keeps_existing_future_date(self, db_session, service):
        actionable = NOW + timedelta(days=3)
        subscription = create_subscription(
            db_session, state=SubscriptionState.PENDING, actionable_date=actionable
        )

        assert service.activate(subscription, NOW) is True
        assert subscription.actionable_date == actionable

    def test_due_subscription_cannot_be_activated(self, db_session, service):
        subscription = create_subscription(
            db_session, state=SubscriptionState.PENDING, actionable_date=NOW - timedelta(days=1)
        )

        assert service.activate(subscription, NOW) is False
        assert subscription.state == SubscriptionState.PENDING.value
        assert _events(db_session, subscription) == []

    def test_canceled_subscription_cannot_be_activated(self, db_session, service):
        subscription = create_subscription(db_session, state=SubscriptionState.CANCELED)
        assert service.activate(subscription, NOW) is False


class TestDeactivate:
    def test_ended_subscription_becomes_inactive(self, db_session, service):
        subscription = create_subscription(
            db_session,
            actionable_date=NOW + timedelta(days=3),
            end_date=NOW - timedelta(days=1),
        )

        assert service.deactivate(subscription, NOW) is True

        assert subscription.state == SubscriptionState.INACTIVE.value
        assert subscription.actionable_date is None
        events = _events(db_session, subscription)
        assert [e.event_type for e in events] == [SubscriptionEventType.ENDED.value]

    def test_future_end_date_is_a_no_op(self, db_session, service):
        subscription = create_subscription(db_session, end_date=NOW + timedelta(days=30))

        assert service.deactivate(subscription, NOW) is False
        assert subscription.state == SubscriptionState.ACTIVE.value
        assert _events(db_session, subscription) == []

    def test_without_end_date_is_a_no_op(self, db_session, service):
        subscription = create_subscription(db_session)
        assert service.deactivate(subscription, NOW) is False


class TestBeginProcessing:
    def test_pending_becomes_active_without_event(self, db_session, service):
        subscription = create_subscription(db_session, state=SubscriptionState.PENDING)

        service.begin_processing(subscription, NOW)
        db_session.commit()

        assert subscription.state == SubscriptionState.ACTIVE.value
        assert _events(db_session, subscription) == []

    def test_active_stays_active(self, db_session, service):
        subscription = create_subscription(db_session)
        service.begin_processing(subscription, NOW)
        assert subscription.state == SubscriptionState.ACTIVE.value


class TestSkip:
    def test_skip_advances_from_today(self, db_session, service):
        subscription = create_subscription(db_session, actionable_date=NOW + timedelta(days=2))

        result = service.skip(subscription, NOW)

        assert result == datetime(2026, 4, 15, tzinfo=UTC)
        assert subscription.actionable_date == result
        assert subscription.skip_count == 1
        assert subscription.successive_skip_count == 1
        events = _events(db_session, subscription)
        assert [e.event_type for e in events] == [SubscriptionEventType.SKIPPED.value]
        assert events[0].details["actionable_date"] == result.isoformat()

    def test_second_successive_skip_is_rejected(self, db_session, service):
        subscription = create_subscription(db_session, actionable_date=NOW + timedelta(days=2))

        first = service.skip(subscription, NOW)
        second = service.skip(subscription, NOW)

        assert first is not None
        assert second is None
        assert "successive_skip_count" in subscription.errors
        assert subscription.skip_count == 1
        assert subscription.actionable_date == first
        assert len(_events(db_session, subscription)) == 1

    def test_total_skip_limit(self, db_session):
        service = SubscriptionLifecycleService(
            db_session,
            SubscriptionConfig(maximum_successive_skips=10, maximum_total_skips=2),
        )
        subscription = create_subscription(db_session, skip_count=2)

        assert service.skip(subscription, NOW) is None
        assert subscription.errors["skip_count"] == ["exceeds the limit of 2 total skips"]

    def test_canceled_subscription_cannot_skip(self, db_session, service):
        subscription = create_subscription(db_session, state=SubscriptionState.CANCELED)

        assert service.skip(subscription, NOW) is None
        assert "state" in subscription.errors
        assert subscription.skip_count == 0

    def test_errors_cleared_on_next_attempt(self, db_session):
        service = SubscriptionLifecycleService(
            db_session, SubscriptionConfig(maximum_successive_skips=1)
        )
        subscription = create_subscription(db_session, successive_skip_count=1)

        assert service.skip(subscription, NOW) is None
        subscription.successive_skip_count = 0
        db_session.commit()

        assert service.skip(subscription, NOW) is not None
        assert not subscription.errors
