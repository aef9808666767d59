"""Creating, updating and serializing subscriptions with their line items."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from recurring.core.config import SubscriptionConfig, get_subscription_config
from recurring.core.errors import ErrorCollection
from recurring.models.line_item import LineItem
from recurring.models.subscribable import Subscribable
from recurring.models.subscription import Subscription, SubscriptionState
from recurring.models.subscription_event import SubscriptionEventType
from recurring.repositories.line_item_repository import LineItemRepository
from recurring.repositories.subscribable_repository import SubscribableRepository
from recurring.repositories.subscription_event_repository import SubscriptionEventRepository
from recurring.repositories.subscription_repository import SubscriptionRepository
from recurring.schemas.subscription import (
    LineItemResponse,
    LineItemUpdate,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
)
from recurring.services.processing_state import ProcessingStateService
from recurring.services.subscription_dates import (
    SubscriptionDatesService,
    line_item_next_actionable_date,
)
from recurring.services.subscription_lifecycle import SubscriptionLifecycleService

_INTERVAL_FIELDS = ("interval_length", "interval_units")


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


class SubscriptionService:
    """Service for creating and editing subscriptions.

    Invalid input is reported on ``subscription.errors`` and nothing is saved.
    """

    def __init__(self, db: Session, config: SubscriptionConfig | None = None):
        self.db = db
        self.config = config or get_subscription_config()
        self.subscription_repo = SubscriptionRepository(db)
        self.line_item_repo = LineItemRepository(db)
        self.subscribable_repo = SubscribableRepository(db)
        self.event_repo = SubscriptionEventRepository(db)
        self.dates_service = SubscriptionDatesService(db)
        self.lifecycle = SubscriptionLifecycleService(db, self.config)
        self.processing_state_service = ProcessingStateService(db)

    def get(self, subscription_id: UUID, now: datetime | None = None) -> Subscription:
        """Load a subscription with its lifecycle state settled.

        Raises:
            ValueError: If the subscription does not exist.
        """
        subscription = self.subscription_repo.get_by_id(subscription_id)
        if not subscription:
            raise ValueError(f"Subscription {subscription_id} not found")
        self.lifecycle.refresh_state(subscription, now)
        return subscription

    def create(self, data: SubscriptionCreate, now: datetime | None = None) -> Subscription:
        """Create a pending subscription and record a subscription_created event.

        The first actionable date is one interval after creation unless given.
        """
        if now is None:
            now = datetime.now(UTC)

        subscription = Subscription(
            user_id=data.user_id,
            state=SubscriptionState.PENDING.value,
            skip_count=0,
            successive_skip_count=0,
            interval_length=data.interval_length,
            interval_units=_enum_value(data.interval_units),
            end_date=data.end_date,
            payment_method_id=data.payment_method_id,
            payment_source_type=data.payment_source_type,
            payment_source_id=data.payment_source_id,
            shipping_address_id=data.shipping_address_id,
            billing_address_id=data.billing_address_id,
            created_at=now,
            updated_at=now,
        )

        errors = subscription.errors
        self._validate_subscription_fields(
            errors,
            user_id=data.user_id,
            interval_length=data.interval_length,
            interval_units=data.interval_units,
            payment_source_type=data.payment_source_type,
        )
        if not data.line_items:
            errors.add("line_items", "must contain at least one line item")
        subscribables = self.subscribable_repo.get_by_ids(
            [item.subscribable_id for item in data.line_items]
        )
        for item in data.line_items:
            self._validate_subscribable(errors, item.subscribable_id, subscribables)
        if errors:
            return subscription

        self.subscription_repo.add(subscription)
        self.db.flush()

        line_items = []
        for position, item in enumerate(data.line_items):
            line_item = LineItem(
                subscription_id=subscription.id,
                subscribable_id=item.subscribable_id,
                spree_line_item_id=item.spree_line_item_id,
                position=position,
                quantity=item.quantity,
                interval_length=item.interval_length,
                interval_units=item.interval_units.value,
                max_installments=item.max_installments,
                created_at=now,
                updated_at=now,
            )
            line_items.append(self.line_item_repo.add(line_item))

        if data.actionable_date is not None:
            subscription.actionable_date = data.actionable_date  # type: ignore[assignment]
        else:
            subscription.actionable_date = self.dates_service.initial_actionable_date(  # type: ignore[assignment]
                subscription, line_items, now
            )

        self.event_repo.append(
            subscription.id,  # type: ignore[arg-type]
            SubscriptionEventType.CREATED,
            {"id": str(subscription.id), "user_id": subscription.user_id},
        )
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def update(
        self,
        subscription_id: UUID,
        data: SubscriptionUpdate,
        now: datetime | None = None,
    ) -> Subscription:
        """Apply field and line item changes.

        A changed recurrence interval re-derives the actionable date from the
        installment history. Updates never record an event.

        Raises:
            ValueError: If the subscription does not exist.
        """
        if now is None:
            now = datetime.now(UTC)
        subscription = self.get(subscription_id, now)
        subscription.errors.clear()

        update_data = data.model_dump(exclude_unset=True, exclude={"line_items"})
        update_data = {key: _enum_value(value) for key, value in update_data.items()}
        line_item_changes = data.line_items or []

        interval_length = update_data.get("interval_length", subscription.interval_length)
        interval_units = update_data.get("interval_units", subscription.interval_units)
        self._validate_subscription_fields(
            subscription.errors,
            user_id=subscription.user_id,  # type: ignore[arg-type]
            interval_length=interval_length,
            interval_units=interval_units,
            payment_source_type=update_data.get("payment_source_type"),
        )
        existing = {li.id: li for li in self.line_item_repo.get_by_subscription_id(subscription.id)}  # type: ignore[arg-type]
        self._validate_line_item_changes(subscription.errors, existing, line_item_changes)
        if subscription.errors:
            return subscription

        interval_changed = any(
            key in update_data and update_data[key] != getattr(subscription, key)
            for key in _INTERVAL_FIELDS
        )
        interval_before = self.dates_service.interval(subscription, reference=now)
        for key, value in update_data.items():
            setattr(subscription, key, value)

        if self._apply_line_item_changes(subscription, existing, line_item_changes, now):
            self.db.flush()
            if self.dates_service.interval(subscription, reference=now) != interval_before:
                interval_changed = True

        if interval_changed:
            self.db.flush()
            self.dates_service.recompute_on_interval_change(subscription, now)

        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def serialize_line_item(
        self,
        line_item: LineItem,
        subscribable: Subscribable | None = None,
        now: datetime | None = None,
    ) -> LineItemResponse:
        if subscribable is None:
            subscribable = self.subscribable_repo.get_by_id(line_item.subscribable_id)  # type: ignore[arg-type]
        return LineItemResponse(
            id=line_item.id,  # type: ignore[arg-type]
            spree_line_item_id=line_item.spree_line_item_id,  # type: ignore[arg-type]
            subscription_id=line_item.subscription_id,  # type: ignore[arg-type]
            quantity=line_item.quantity,  # type: ignore[arg-type]
            max_installments=line_item.max_installments,  # type: ignore[arg-type]
            subscribable_id=line_item.subscribable_id,  # type: ignore[arg-type]
            created_at=line_item.created_at,  # type: ignore[arg-type]
            updated_at=line_item.updated_at,  # type: ignore[arg-type]
            interval_units=line_item.interval_units,  # type: ignore[arg-type]
            interval_length=line_item.interval_length,  # type: ignore[arg-type]
            price=float(subscribable.price) if subscribable else 0.0,
            next_actionable_date=line_item_next_actionable_date(line_item, now),
            name=str(subscribable.name) if subscribable else "",
        )

    def serialize(self, subscription: Subscription, now: datetime | None = None) -> SubscriptionResponse:
        line_items = self.line_item_repo.get_by_subscription_id(subscription.id)  # type: ignore[arg-type]
        subscribables = self.subscribable_repo.get_by_ids(
            [li.subscribable_id for li in line_items]  # type: ignore[misc]
        )
        return SubscriptionResponse(
            id=subscription.id,  # type: ignore[arg-type]
            user_id=subscription.user_id,  # type: ignore[arg-type]
            state=SubscriptionState(subscription.state),
            processing_state=self.processing_state_service.processing_state(subscription),
            actionable_date=subscription.actionable_date,  # type: ignore[arg-type]
            end_date=subscription.end_date,  # type: ignore[arg-type]
            skip_count=subscription.skip_count,  # type: ignore[arg-type]
            successive_skip_count=subscription.successive_skip_count,  # type: ignore[arg-type]
            interval_length=subscription.interval_length,  # type: ignore[arg-type]
            interval_units=subscription.interval_units,  # type: ignore[arg-type]
            payment_method_id=subscription.payment_method_id,  # type: ignore[arg-type]
            payment_source_type=subscription.payment_source_type,  # type: ignore[arg-type]
            payment_source_id=subscription.payment_source_id,  # type: ignore[arg-type]
            shipping_address_id=subscription.shipping_address_id,  # type: ignore[arg-type]
            billing_address_id=subscription.billing_address_id,  # type: ignore[arg-type]
            created_at=subscription.created_at,  # type: ignore[arg-type]
            updated_at=subscription.updated_at,  # type: ignore[arg-type]
            line_items=[
                self.serialize_line_item(li, subscribables.get(li.subscribable_id), now)  # type: ignore[call-overload]
                for li in line_items
            ],
        )

    def _validate_subscription_fields(
        self,
        errors: ErrorCollection,
        user_id: str | None,
        interval_length: int | None,
        interval_units: Any,
        payment_source_type: str | None,
    ) -> None:
        if not user_id:
            errors.add("user_id", "can't be blank")
        if interval_length is not None and interval_units is None:
            errors.add("interval_units", "can't be blank when interval_length is set")
        if interval_units is not None and interval_length is None:
            errors.add("interval_length", "can't be blank when interval_units is set")
        if payment_source_type and payment_source_type not in self.config.payment_source_types:
            errors.add("payment_source_type", "is not a valid payment source type")

    def _validate_subscribable(
        self,
        errors: ErrorCollection,
        subscribable_id: UUID,
        subscribables: dict[UUID, Subscribable],
    ) -> None:
        subscribable = subscribables.get(subscribable_id)
        if subscribable is None:
            errors.add("line_items", f"subscribable {subscribable_id} not found")
        elif not subscribable.subscribable:
            errors.add("line_items", f"subscribable {subscribable_id} cannot be subscribed to")

    def _validate_line_item_changes(
        self,
        errors: ErrorCollection,
        existing: dict[Any, LineItem],
        changes: list[LineItemUpdate],
    ) -> None:
        new_ids = [c.subscribable_id for c in changes if c.subscribable_id is not None]
        subscribables = self.subscribable_repo.get_by_ids(new_ids)
        remaining = len(existing)
        for change in changes:
            if change.id is not None and change.id not in existing:
                errors.add("line_items", f"line item {change.id} not found")
                continue
            if change.remove:
                remaining -= 1 if change.id is not None else 0
                continue
            if change.id is None:
                if change.subscribable_id is None:
                    errors.add("line_items", "subscribable_id can't be blank")
                    continue
                remaining += 1
            if change.subscribable_id is not None:
                self._validate_subscribable(errors, change.subscribable_id, subscribables)
        if remaining < 1:
            errors.add("line_items", "must contain at least one line item")

    def _apply_line_item_changes(
        self,
        subscription: Subscription,
        existing: dict[Any, LineItem],
        changes: list[LineItemUpdate],
        now: datetime,
    ) -> bool:
        """Apply nested line item edits. Returns True if any interval changed."""
        interval_changed = False
        position = len(existing)
        for change in changes:
            if change.id is not None:
                line_item = existing[change.id]
                if change.remove:
                    self.line_item_repo.delete(line_item)
                    interval_changed = True
                    continue
                for key, value in change.model_dump(
                    exclude_unset=True, exclude={"id", "remove"}
                ).items():
                    value = _enum_value(value)
                    if key in _INTERVAL_FIELDS and value != getattr(line_item, key):
                        interval_changed = True
                    setattr(line_item, key, value)
                continue
            if change.remove:
                continue

            line_item = LineItem(
                subscription_id=subscription.id,
                subscribable_id=change.subscribable_id,
                position=position,
                quantity=change.quantity or 1,
                interval_length=change.interval_length or 1,
                interval_units=_enum_value(change.interval_units) or "month",
                max_installments=change.max_installments,
                created_at=now,
                updated_at=now,
            )
            self.line_item_repo.add(line_item)
            position += 1
            interval_changed = True
        return interval_changed
