import logging
from typing import Any
from uuid import UUID

from arq import cron

from recurring.core import database
from recurring.core.config import get_subscription_config, settings
from recurring.services.checkout import get_checkout
from recurring.services.installment_processing import InstallmentProcessingService
from recurring.tasks import redis_settings

logger = logging.getLogger(__name__)


def _processing_service(db: Any) -> InstallmentProcessingService:
    return InstallmentProcessingService(
        db,
        checkout=get_checkout(settings.CHECKOUT_BACKEND),
        config=get_subscription_config(),
    )


async def process_actionable_subscriptions_task(ctx: dict[str, Any]) -> int:
    """Background task: create installments for every due subscription.

    Runs hourly. A failing checkout is recorded on its installment and does
    not stop the remaining subscriptions.
    """
    db = database.SessionLocal()
    try:
        count = _processing_service(db).process_actionable()
        if count > 0:
            logger.info("Created %d installments", count)
        return count
    finally:
        db.close()


async def process_subscription_task(ctx: dict[str, Any], subscription_id: str) -> bool:
    """Background task: process a single subscription if it is still due.

    Returns:
        True if an installment was created.
    """
    db = database.SessionLocal()
    try:
        installment = _processing_service(db).process_subscription(UUID(subscription_id))
        return installment is not None
    finally:
        db.close()


async def process_installment_task(ctx: dict[str, Any], installment_id: str) -> bool:
    """Background task: run checkout again for an existing installment."""
    db = database.SessionLocal()
    try:
        installment = _processing_service(db).process_installment(UUID(installment_id))
        if installment is None:
            logger.warning("Installment %s could not be processed", installment_id)
        return installment is not None
    finally:
        db.close()


class WorkerSettings:
    functions = [
        process_actionable_subscriptions_task,
        process_subscription_task,
        process_installment_task,
    ]
    cron_jobs = [
        cron(process_actionable_subscriptions_task, minute={0}),  # hourly
    ]
    redis_settings = redis_settings
