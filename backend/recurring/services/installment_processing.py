"""Turns due subscriptions into installments and records checkout outcomes."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from recurring.core.config import SubscriptionConfig, get_subscription_config
from recurring.models.installment import Installment, InstallmentLineItem, InstallmentState
from recurring.models.subscription import SCHEDULABLE_STATES, Subscription
from recurring.repositories.installment_repository import InstallmentRepository
from recurring.repositories.line_item_repository import LineItemRepository
from recurring.repositories.subscription_repository import SubscriptionRepository
from recurring.services.checkout import CheckoutBase, CheckoutOutcome
from recurring.services.subscription_dates import SubscriptionDatesService, is_due
from recurring.services.subscription_lifecycle import SubscriptionLifecycleService

logger = logging.getLogger(__name__)


class InstallmentProcessingService:
    """Builds installments for due subscriptions and hands them to checkout.

    A checkout failure for one subscription is recorded on its installment
    and, unless the configured error handler re-raises, never stops the
    rest of the batch.
    """

    def __init__(
        self,
        db: Session,
        checkout: CheckoutBase,
        config: SubscriptionConfig | None = None,
    ):
        self.db = db
        self.checkout = checkout
        self.config = config or get_subscription_config()
        self.subscription_repo = SubscriptionRepository(db)
        self.line_item_repo = LineItemRepository(db)
        self.installment_repo = InstallmentRepository(db)
        self.dates_service = SubscriptionDatesService(db)
        self.lifecycle = SubscriptionLifecycleService(db, self.config)

    def process_actionable(self, now: datetime | None = None) -> int:
        """Process every subscription that is currently due.

        Returns:
            Number of installments created.
        """
        if now is None:
            now = datetime.now(UTC)
        subscription_ids = [s.id for s in self.subscription_repo.actionable(now)]
        count = 0
        for subscription_id in subscription_ids:
            if self.process_subscription(subscription_id, now) is not None:  # type: ignore[arg-type]
                count += 1
        return count

    def process_subscription(
        self, subscription_id: UUID, now: datetime | None = None
    ) -> Installment | None:
        """Create and check out one installment for a due subscription.

        The subscription row is locked and re-checked, so a subscription that
        another worker already advanced is left alone.

        Returns:
            The installment, or None when nothing was created.
        """
        if now is None:
            now = datetime.now(UTC)

        subscription = self.subscription_repo.get_by_id(subscription_id, for_update=True)
        if not subscription:
            logger.warning("Subscription %s not found for processing", subscription_id)
            return None

        if subscription.subscription_state not in SCHEDULABLE_STATES or not is_due(
            subscription, now
        ):
            self.db.rollback()
            return None

        if self.lifecycle.deactivate(subscription, now):
            logger.info("Subscription %s reached its end date", subscription_id)
            return None

        line_items = self.build_line_items(subscription)
        if not line_items:
            # Every line item used up its installments
            subscription.end_date = now  # type: ignore[assignment]
            self.lifecycle.deactivate(subscription, now)
            logger.info("Subscription %s has no remaining installments", subscription_id)
            return None

        installment = Installment(
            subscription_id=subscription.id,
            state=InstallmentState.PENDING.value,
            created_at=now,
        )
        self.lifecycle.begin_processing(subscription, now)
        self.dates_service.advance_actionable_date(subscription, now, commit=False)
        self.installment_repo.add(installment, line_items)
        self.db.commit()

        self._checkout(subscription, installment, line_items)
        return installment

    def process_installment(self, installment_id: UUID) -> Installment | None:
        """Run checkout again for an existing installment."""
        installment = self.installment_repo.get_by_id(installment_id)
        if not installment:
            logger.warning("Installment %s not found for processing", installment_id)
            return None
        subscription = self.subscription_repo.get_by_id(installment.subscription_id)  # type: ignore[arg-type]
        if not subscription:
            logger.warning("Subscription for installment %s not found", installment_id)
            return None
        line_items = self.installment_repo.get_line_items(installment.id)  # type: ignore[arg-type]
        self._checkout(subscription, installment, line_items)
        return installment

    def build_line_items(self, subscription: Subscription) -> list[InstallmentLineItem]:
        """One installment line per subscription line item still under its cap."""
        line_items = []
        for line_item in self.line_item_repo.get_by_subscription_id(subscription.id):  # type: ignore[arg-type]
            if line_item.max_installments is not None:
                used = self.installment_repo.count_for_line_item(line_item.id)  # type: ignore[arg-type]
                if used >= int(line_item.max_installments):
                    continue
            line_items.append(
                InstallmentLineItem(
                    subscription_line_item_id=line_item.id,
                    subscribable_id=line_item.subscribable_id,
                    quantity=line_item.quantity,
                )
            )
        return line_items

    def _checkout(
        self,
        subscription: Subscription,
        installment: Installment,
        line_items: list[InstallmentLineItem],
    ) -> None:
        try:
            outcome = self.checkout.process(installment, line_items)
        except Exception as exc:
            # The failed attempt is committed before the handler runs
            self.installment_repo.add_detail(
                installment, success=False, message=str(exc) or type(exc).__name__
            )
            self.db.commit()
            handler = self.config.process_job_error_handler
            if handler is not None:
                handler(exc)
            else:
                logger.exception("Checkout failed for installment %s", installment.id)
            return

        self._record_outcome(subscription, installment, outcome)
        self.db.commit()

    def _record_outcome(
        self,
        subscription: Subscription,
        installment: Installment,
        outcome: CheckoutOutcome,
    ) -> None:
        self.installment_repo.add_detail(
            installment,
            success=outcome.success,
            message=outcome.message,
            order_reference=outcome.order_reference,
        )
        if outcome.success:
            subscription.successive_skip_count = 0  # type: ignore[assignment]
        else:
            logger.warning(
                "Checkout declined installment %s: %s", installment.id, outcome.message
            )
