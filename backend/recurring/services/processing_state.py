"""Derives a subscription's processing state from its installment history."""

from sqlalchemy.orm import Session

from recurring.models.installment import InstallmentState
from recurring.models.subscription import ProcessingState, Subscription
from recurring.repositories.installment_repository import InstallmentRepository
from recurring.repositories.subscription_repository import (
    SubscriptionRepository,
    parse_processing_state,
)


class ProcessingStateService:
    def __init__(self, db: Session):
        self.installment_repo = InstallmentRepository(db)
        self.subscription_repo = SubscriptionRepository(db)

    @staticmethod
    def processing_states() -> list[ProcessingState]:
        return list(ProcessingState)

    def processing_state(self, subscription: Subscription) -> ProcessingState:
        """Outcome of the most recent installment, or pending if never processed."""
        latest = self.installment_repo.latest_for_subscription(subscription.id)  # type: ignore[arg-type]
        if latest is None:
            return ProcessingState.PENDING
        if latest.state == InstallmentState.FAILED.value:
            return ProcessingState.FAILED
        if latest.state == InstallmentState.SUCCESS.value:
            return ProcessingState.SUCCESS
        return ProcessingState.PENDING

    def in_processing_state(self, state: str | ProcessingState) -> list[Subscription]:
        """Subscriptions currently in the given processing state.

        Raises:
            ValueError: If state is not one of pending, success, failed.
        """
        return self.subscription_repo.in_processing_state(parse_processing_state(state))
