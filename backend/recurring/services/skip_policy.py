"""Decides whether a subscription may skip its next installment."""

from dataclasses import dataclass

from recurring.core.config import SubscriptionConfig
from recurring.models.subscription import SCHEDULABLE_STATES, Subscription


@dataclass(frozen=True)
class SkipDecision:
    """Outcome of a skip check. Rejections name the offending field."""

    accepted: bool
    field: str | None = None
    message: str | None = None


ACCEPTED = SkipDecision(accepted=True)


class SkipPolicy:
    """Applies the configured skip limits to a subscription's counters."""

    def __init__(self, config: SubscriptionConfig):
        self.config = config

    def evaluate(self, subscription: Subscription) -> SkipDecision:
        if subscription.subscription_state not in SCHEDULABLE_STATES:
            return SkipDecision(
                accepted=False,
                field="state",
                message=f"cannot skip a subscription that is {subscription.state}",
            )

        successive_limit = self.config.maximum_successive_skips
        if int(subscription.successive_skip_count or 0) + 1 > successive_limit:
            return SkipDecision(
                accepted=False,
                field="successive_skip_count",
                message=f"exceeds the limit of {successive_limit} successive skips",
            )

        total_limit = self.config.maximum_total_skips
        if int(subscription.skip_count or 0) + 1 > total_limit:
            return SkipDecision(
                accepted=False,
                field="skip_count",
                message=f"exceeds the limit of {total_limit} total skips",
            )

        return ACCEPTED

    def check(self, subscription: Subscription) -> bool:
        """Evaluate and record any rejection on subscription.errors."""
        decision = self.evaluate(subscription)
        if not decision.accepted:
            subscription.errors.add(decision.field or "base", decision.message or "is invalid")
        return decision.accepted
