"""Tests for SubscriptionRepository queries."""

from datetime import timedelta

import pytest

from recurring.core import database
from recurring.models.subscription import SubscriptionState
from recurring.repositories.subscription_repository import SubscriptionRepository
from tests.conftest import NOW, create_subscription


@pytest.fixture
def repo(db_session):
    return SubscriptionRepository(db_session)


class TestActionable:
    def test_only_due_scheduled_subscriptions(self, db_session, repo):
        due_active = create_subscription(
            db_session, user_id="due_active", actionable_date=NOW - timedelta(days=1)
        )
        due_pending = create_subscription(
            db_session,
            user_id="due_pending",
            state=SubscriptionState.PENDING,
            actionable_date=NOW,
        )
        create_subscription(
            db_session, user_id="future", actionable_date=NOW + timedelta(days=1)
        )
        create_subscription(
            db_session,
            user_id="canceled",
            state=SubscriptionState.CANCELED,
            actionable_date=NOW - timedelta(days=1),
        )
        create_subscription(
            db_session,
            user_id="pending_cancellation",
            state=SubscriptionState.PENDING_CANCELLATION,
            actionable_date=NOW - timedelta(days=1),
        )
        create_subscription(
            db_session,
            user_id="inactive",
            state=SubscriptionState.INACTIVE,
            actionable_date=NOW - timedelta(days=1),
        )
        create_subscription(db_session, user_id="unscheduled")

        result = {s.id for s in repo.actionable(NOW)}

        assert result == {due_active.id, due_pending.id}


class TestQueries:
    def test_get_by_id(self, db_session, repo):
        subscription = create_subscription(db_session)
        assert repo.get_by_id(subscription.id).id == subscription.id
        assert repo.get_by_id(subscription.id, for_update=True).id == subscription.id

    def test_get_all_filters_by_user(self, db_session, repo):
        create_subscription(db_session, user_id="alice")
        create_subscription(db_session, user_id="bob")

        assert [s.user_id for s in repo.get_all(user_id="bob")] == ["bob"]
        assert repo.count() == 2

    def test_get_all_rejects_unknown_processing_state(self, repo):
        with pytest.raises(ValueError, match="state must be one of"):
            repo.get_all(processing_state="unknown")


    def test_locking_read_reloads_session_copy(self, db_session, repo):
        subscription = create_subscription(db_session, actionable_date=NOW)
        assert subscription.actionable_date == NOW

        other = database.SessionLocal()
        try:
            SubscriptionRepository(other).get_by_id(subscription.id).actionable_date = (
                NOW + timedelta(days=30)
            )
            other.commit()
        finally:
            other.close()

        locked = repo.get_by_id(subscription.id, for_update=True)

        assert locked is subscription
        assert locked.actionable_date == NOW + timedelta(days=30)
