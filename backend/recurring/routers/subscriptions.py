from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from recurring.core.config import SubscriptionConfig, get_subscription_config
from recurring.core.database import get_db
from recurring.models.subscription import Subscription
from recurring.models.subscription_event import SubscriptionEvent
from recurring.repositories.subscription_event_repository import SubscriptionEventRepository
from recurring.repositories.subscription_repository import (
    SubscriptionRepository,
    parse_processing_state,
)
from recurring.schemas.subscription import (
    SubscriptionCreate,
    SubscriptionEventResponse,
    SubscriptionResponse,
    SubscriptionUpdate,
)
from recurring.services.subscription_lifecycle import SubscriptionLifecycleService
from recurring.services.subscription_service import SubscriptionService

router = APIRouter()


def _load(service: SubscriptionService, subscription_id: UUID) -> Subscription:
    try:
        return service.get(subscription_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Subscription not found") from None


def _errors_response(subscription: Subscription) -> JSONResponse:
    return JSONResponse(status_code=422, content=subscription.errors.to_dict())


@router.get(
    "/",
    response_model=list[SubscriptionResponse],
    summary="List subscriptions",
    responses={400: {"description": "Unknown processing state"}},
)
async def list_subscriptions(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    user_id: str | None = None,
    processing_state: str | None = None,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> list[SubscriptionResponse]:
    """List subscriptions, optionally filtered by owner or processing state."""
    if processing_state is not None:
        try:
            parse_processing_state(processing_state)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from None

    repo = SubscriptionRepository(db)
    service = SubscriptionService(db, config)
    response.headers["X-Total-Count"] = str(repo.count())
    subscriptions = repo.get_all(
        skip=skip, limit=limit, user_id=user_id, processing_state=processing_state
    )
    for subscription in subscriptions:
        service.lifecycle.refresh_state(subscription)
    return [service.serialize(subscription) for subscription in subscriptions]


@router.get(
    "/{subscription_id}",
    response_model=SubscriptionResponse,
    summary="Get subscription",
    responses={404: {"description": "Subscription not found"}},
)
async def get_subscription(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> SubscriptionResponse:
    """Get a subscription with its line items."""
    service = SubscriptionService(db, config)
    return service.serialize(_load(service, subscription_id))


@router.post(
    "/",
    response_model=SubscriptionResponse,
    summary="Create subscription",
    responses={422: {"description": "Validation error"}},
)
async def create_subscription(
    data: SubscriptionCreate,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> SubscriptionResponse | JSONResponse:
    """Create a subscription with its line items."""
    service = SubscriptionService(db, config)
    subscription = service.create(data)
    if subscription.errors:
        return _errors_response(subscription)
    return service.serialize(subscription)


@router.patch(
    "/{subscription_id}",
    response_model=SubscriptionResponse,
    summary="Update subscription",
    responses={
        404: {"description": "Subscription not found"},
        422: {"description": "Validation error"},
    },
)
async def update_subscription(
    subscription_id: UUID,
    data: SubscriptionUpdate,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> SubscriptionResponse | JSONResponse:
    """Update a subscription. Changing its interval re-derives the actionable date."""
    service = SubscriptionService(db, config)
    _load(service, subscription_id)
    subscription = service.update(subscription_id, data)
    if subscription.errors:
        return _errors_response(subscription)
    return service.serialize(subscription)


@router.post(
    "/{subscription_id}/skip",
    response_model=SubscriptionResponse,
    summary="Skip the next installment",
    responses={
        404: {"description": "Subscription not found"},
        422: {"description": "Skip limit reached"},
    },
)
async def skip_subscription(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> SubscriptionResponse | JSONResponse:
    service = SubscriptionService(db, config)
    subscription = _load(service, subscription_id)
    if service.lifecycle.skip(subscription) is None:
        return _errors_response(subscription)
    return service.serialize(subscription)


@router.post(
    "/{subscription_id}/cancel",
    response_model=SubscriptionResponse,
    summary="Cancel subscription",
    responses={404: {"description": "Subscription not found"}},
)
async def cancel_subscription(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> SubscriptionResponse:
    """Cancel now, or once the upcoming actionable date is reached."""
    service = SubscriptionService(db, config)
    subscription = _load(service, subscription_id)
    service.lifecycle.cancel(subscription)
    return service.serialize(subscription)


@router.post(
    "/{subscription_id}/activate",
    response_model=SubscriptionResponse,
    summary="Activate subscription",
    responses={
        404: {"description": "Subscription not found"},
        422: {"description": "Subscription cannot be activated"},
    },
)
async def activate_subscription(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> SubscriptionResponse:
    service = SubscriptionService(db, config)
    subscription = _load(service, subscription_id)
    if not service.lifecycle.activate(subscription):
        raise HTTPException(status_code=422, detail="Subscription cannot be activated")
    return service.serialize(subscription)


@router.post(
    "/{subscription_id}/deactivate",
    response_model=SubscriptionResponse,
    summary="Deactivate subscription",
    responses={
        404: {"description": "Subscription not found"},
        422: {"description": "Subscription cannot be deactivated"},
    },
)
async def deactivate_subscription(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> SubscriptionResponse:
    service = SubscriptionService(db, config)
    subscription = _load(service, subscription_id)
    if not service.lifecycle.deactivate(subscription):
        raise HTTPException(status_code=422, detail="Subscription cannot be deactivated")
    return service.serialize(subscription)


@router.get(
    "/{subscription_id}/events",
    response_model=list[SubscriptionEventResponse],
    summary="List subscription events",
    responses={404: {"description": "Subscription not found"}},
)
async def list_subscription_events(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> list[SubscriptionEvent]:
    service = SubscriptionService(db, config)
    _load(service, subscription_id)
    return SubscriptionEventRepository(db).get_by_subscription_id(subscription_id)
