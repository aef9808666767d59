"""Shared test fixtures for all test modules."""

import contextlib
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import recurring.models  # noqa: F401
from recurring.core import database as db_module
from recurring.core.database import Base, get_db
from recurring.models.line_item import LineItem
from recurring.models.subscribable import Subscribable
from recurring.models.subscription import Subscription, SubscriptionState

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

# Fixed clock shared by tests that need deterministic dates
NOW = datetime(2026, 3, 15, 10, 30, tzinfo=UTC)
TODAY = datetime(2026, 3, 15, tzinfo=UTC)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct service and repository testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


def create_subscribable(
    db: Session,
    name: str = "Coffee Beans",
    price: str = "19.99",
    subscribable: bool = True,
) -> Subscribable:
    """Helper to create a product that can be subscribed to."""
    item = Subscribable(name=name, price=Decimal(price), subscribable=subscribable)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def create_subscription(
    db: Session,
    state: SubscriptionState = SubscriptionState.ACTIVE,
    line_items: list[dict[str, Any]] | None = None,
    **kwargs: Any,
) -> Subscription:
    """Helper to create a subscription with line items.

    Each line item dict may override quantity, interval and max_installments.
    A single monthly line item is created when none are given.
    """
    defaults: dict[str, Any] = {
        "user_id": "user_1",
        "state": state.value,
        "skip_count": 0,
        "successive_skip_count": 0,
        "created_at": NOW,
    }
    defaults.update(kwargs)
    subscription = Subscription(**defaults)
    db.add(subscription)
    db.flush()

    if line_items is None:
        line_items = [{}]
    for position, overrides in enumerate(line_items):
        subscribable_id = overrides.pop("subscribable_id", None)
        if subscribable_id is None:
            subscribable_id = create_subscribable(db, name=f"Product {position}").id
        values: dict[str, Any] = {
            "subscription_id": subscription.id,
            "subscribable_id": subscribable_id,
            "position": position,
            "quantity": 1,
            "interval_length": 1,
            "interval_units": "month",
        }
        values.update(overrides)
        db.add(LineItem(**values))

    db.commit()
    db.refresh(subscription)
    return subscription
