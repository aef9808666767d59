from enum import Enum

from sqlalchemy import Column, Integer, String

from recurring.core.database import Base
from recurring.core.errors import ErrorCollection
from recurring.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class SubscriptionState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELED = "canceled"
    PENDING_CANCELLATION = "pending_cancellation"


# States in which a subscription keeps being scheduled for installments.
SCHEDULABLE_STATES = frozenset({SubscriptionState.PENDING, SubscriptionState.ACTIVE})


class ProcessingState(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    user_id = Column(String(255), nullable=False, index=True)
    state = Column(
        String(30), nullable=False, default=SubscriptionState.PENDING.value, index=True
    )
    actionable_date = Column(UTCDateTime, nullable=True, index=True)
    end_date = Column(UTCDateTime, nullable=True)
    skip_count = Column(Integer, nullable=False, default=0)
    successive_skip_count = Column(Integer, nullable=False, default=0)
    interval_length = Column(Integer, nullable=True)
    interval_units = Column(String(10), nullable=True)

    # Pass-through references, never interpreted here
    payment_method_id = Column(String(255), nullable=True)
    payment_source_type = Column(String(255), nullable=True)
    payment_source_id = Column(String(255), nullable=True)
    shipping_address_id = Column(String(255), nullable=True)
    billing_address_id = Column(String(255), nullable=True)

    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)

    @property
    def errors(self) -> ErrorCollection:
        """Validation errors from the last operation (not persisted)."""
        errors = self.__dict__.get("_errors")
        if errors is None:
            errors = ErrorCollection()
            self.__dict__["_errors"] = errors
        return errors

    @property
    def subscription_state(self) -> SubscriptionState:
        return SubscriptionState(self.state)

    def is_state(self, *states: SubscriptionState) -> bool:
        return self.subscription_state in states
