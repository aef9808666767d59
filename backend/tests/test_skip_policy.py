"""Tests for the skip limits applied to subscriptions."""

import pytest

from recurring.core.config import SubscriptionConfig
from recurring.models.subscription import Subscription, SubscriptionState
from recurring.services.skip_policy import ACCEPTED, SkipPolicy


def _subscription(state=SubscriptionState.ACTIVE, skip_count=0, successive_skip_count=0):
    return Subscription(
        user_id="user_1",
        state=state.value,
        skip_count=skip_count,
        successive_skip_count=successive_skip_count,
    )


class TestSkipPolicy:
    def test_accepts_first_skip(self):
        policy = SkipPolicy(SubscriptionConfig())
        assert policy.evaluate(_subscription()) == ACCEPTED

    def test_rejects_successive_skip_over_limit(self):
        policy = SkipPolicy(SubscriptionConfig(maximum_successive_skips=1))
        decision = policy.evaluate(_subscription(skip_count=1, successive_skip_count=1))

        assert not decision.accepted
        assert decision.field == "successive_skip_count"

    def test_rejects_total_skip_over_limit(self):
        policy = SkipPolicy(
            SubscriptionConfig(maximum_successive_skips=10, maximum_total_skips=3)
        )
        decision = policy.evaluate(_subscription(skip_count=3, successive_skip_count=0))

        assert not decision.accepted
        assert decision.field == "skip_count"

    def test_successive_limit_checked_before_total(self):
        policy = SkipPolicy(
            SubscriptionConfig(maximum_successive_skips=1, maximum_total_skips=1)
        )
        decision = policy.evaluate(_subscription(skip_count=1, successive_skip_count=1))
        assert decision.field == "successive_skip_count"

    @pytest.mark.parametrize(
        "state",
        [
            SubscriptionState.CANCELED,
            SubscriptionState.INACTIVE,
            SubscriptionState.PENDING_CANCELLATION,
        ],
    )
    def test_rejects_unscheduled_states(self, state):
        decision = SkipPolicy(SubscriptionConfig()).evaluate(_subscription(state=state))

        assert not decision.accepted
        assert decision.field == "state"

    def test_check_records_error(self):
        subscription = _subscription(successive_skip_count=1)

        assert SkipPolicy(SubscriptionConfig()).check(subscription) is False
        assert "successive_skip_count" in subscription.errors
        assert subscription.errors["successive_skip_count"] == [
            "exceeds the limit of 1 successive skips"
        ]

    def test_check_leaves_errors_empty_when_accepted(self):
        subscription = _subscription()

        assert SkipPolicy(SubscriptionConfig()).check(subscription) is True
        assert not subscription.errors
