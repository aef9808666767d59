from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer, String

from recurring.core.database import Base
from recurring.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class IntervalUnits(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class LineItem(Base):
    __tablename__ = "subscription_line_items"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    subscription_id = Column(
        UUIDType,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subscribable_id = Column(
        UUIDType,
        ForeignKey("subscribables.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    spree_line_item_id = Column(String(255), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=1)
    interval_length = Column(Integer, nullable=False, default=1)
    interval_units = Column(String(10), nullable=False, default=IntervalUnits.MONTH.value)
    max_installments = Column(Integer, nullable=True)
    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)
