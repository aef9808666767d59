"""Append-only audit log of subscription lifecycle events."""

from enum import Enum

from sqlalchemy import JSON, Column, ForeignKey, String

from recurring.core.database import Base
from recurring.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class SubscriptionEventType(str, Enum):
    CREATED = "subscription_created"
    CANCELED = "subscription_canceled"
    SKIPPED = "subscription_skipped"
    ACTIVATED = "subscription_activated"
    ENDED = "subscription_ended"


class SubscriptionEvent(Base):
    __tablename__ = "subscription_events"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    subscription_id = Column(
        UUIDType,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_type = Column(String(50), nullable=False, index=True)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(UTCDateTime, default=utc_now, index=True)
