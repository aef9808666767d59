"""Enqueue helpers for the installment worker."""

from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from recurring.core.config import settings

redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def get_redis_pool() -> ArqRedis:
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job:
    """Enqueue a worker job by function name.

    The pool is closed again whether or not the enqueue succeeds.
    """
    pool = await get_redis_pool()
    try:
        job = await pool.enqueue_job(task_name, *args, **kwargs)
        return job  # type: ignore[return-value]
    finally:
        await pool.close()


async def enqueue_process_actionable_subscriptions() -> Job:
    """Enqueue a run over every subscription that is currently due."""
    return await enqueue_task("process_actionable_subscriptions_task")


async def enqueue_process_subscription(subscription_id: str) -> Job:
    """Enqueue one subscription; the worker skips it if it is no longer due."""
    return await enqueue_task("process_subscription_task", subscription_id)


async def enqueue_process_installment(installment_id: str) -> Job:
    """Enqueue another checkout attempt for an existing installment."""
    return await enqueue_task("process_installment_task", installment_id)
