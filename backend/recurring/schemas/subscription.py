from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from recurring.models.line_item import IntervalUnits
from recurring.models.subscription import ProcessingState, SubscriptionState


class LineItemCreate(BaseModel):
    subscribable_id: UUID
    quantity: int = Field(default=1, gt=0)
    interval_length: int = Field(default=1, gt=0)
    interval_units: IntervalUnits = IntervalUnits.MONTH
    max_installments: int | None = Field(default=None, gt=0)
    spree_line_item_id: str | None = None


class LineItemUpdate(BaseModel):
    """Change to a subscription's line items; id omitted means a new line item."""

    id: UUID | None = None
    subscribable_id: UUID | None = None
    quantity: int | None = Field(default=None, gt=0)
    interval_length: int | None = Field(default=None, gt=0)
    interval_units: IntervalUnits | None = None
    max_installments: int | None = Field(default=None, gt=0)
    remove: bool = False


class SubscriptionCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=255)
    interval_length: int | None = Field(default=None, gt=0)
    interval_units: IntervalUnits | None = None
    actionable_date: datetime | None = None
    end_date: datetime | None = None
    payment_method_id: str | None = None
    payment_source_type: str | None = None
    payment_source_id: str | None = None
    shipping_address_id: str | None = None
    billing_address_id: str | None = None
    line_items: list[LineItemCreate] = Field(default_factory=list)


class SubscriptionUpdate(BaseModel):
    interval_length: int | None = Field(default=None, gt=0)
    interval_units: IntervalUnits | None = None
    end_date: datetime | None = None
    skip_count: int | None = Field(default=None, ge=0)
    successive_skip_count: int | None = Field(default=None, ge=0)
    payment_method_id: str | None = None
    payment_source_type: str | None = None
    payment_source_id: str | None = None
    shipping_address_id: str | None = None
    billing_address_id: str | None = None
    line_items: list[LineItemUpdate] | None = None


class LineItemResponse(BaseModel):
    """Line item representation; the field set is fixed for API clients."""

    id: UUID
    spree_line_item_id: str | None
    subscription_id: UUID
    quantity: int
    max_installments: int | None
    subscribable_id: UUID
    created_at: datetime
    updated_at: datetime
    interval_units: str
    interval_length: int
    price: float
    next_actionable_date: datetime
    name: str


class SubscriptionResponse(BaseModel):
    id: UUID
    user_id: str
    state: SubscriptionState
    processing_state: ProcessingState
    actionable_date: datetime | None
    end_date: datetime | None
    skip_count: int
    successive_skip_count: int
    interval_length: int | None
    interval_units: str | None
    payment_method_id: str | None
    payment_source_type: str | None
    payment_source_id: str | None
    shipping_address_id: str | None
    billing_address_id: str | None
    created_at: datetime
    updated_at: datetime
    line_items: list[LineItemResponse] = Field(default_factory=list)


class SubscriptionEventResponse(BaseModel):
    id: UUID
    subscription_id: UUID
    event_type: str
    details: dict[str, object]
    created_at: datetime

    model_config = {"from_attributes": True}
