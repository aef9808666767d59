from enum import Enum

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text

from recurring.core.database import Base
from recurring.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class InstallmentState(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Installment(Base):
    """One billing/fulfillment attempt spawned for a due subscription."""

    __tablename__ = "installments"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    subscription_id = Column(
        UUIDType,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Outcome of the most recent attempt detail
    state = Column(
        String(20), nullable=False, default=InstallmentState.PENDING.value, index=True
    )
    created_at = Column(UTCDateTime, default=utc_now, index=True)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)


class InstallmentLineItem(Base):
    """Snapshot of a subscription line item taken when the installment was built."""

    __tablename__ = "installment_line_items"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    installment_id = Column(
        UUIDType,
        ForeignKey("installments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subscription_line_item_id = Column(
        UUIDType,
        ForeignKey("subscription_line_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    subscribable_id = Column(UUIDType, nullable=False)
    quantity = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime, default=utc_now)


class InstallmentDetail(Base):
    """Append-only record of one checkout attempt for an installment."""

    __tablename__ = "installment_details"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    installment_id = Column(
        UUIDType,
        ForeignKey("installments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    success = Column(Boolean, nullable=False, default=False)
    message = Column(Text, nullable=True)
    order_reference = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, default=utc_now)
