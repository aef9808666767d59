from sqlalchemy import Boolean, Column, Numeric, String

from recurring.core.database import Base
from recurring.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class Subscribable(Base):
    """A purchasable item that line items can subscribe to."""

    __tablename__ = "subscribables"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    sku = Column(String(255), unique=True, index=True, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    subscribable = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=utc_now)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now)
