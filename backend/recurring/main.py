from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recurring.core.config import settings
from recurring.routers import subscriptions

OPENAPI_TAGS = [
    {"name": "Subscriptions", "description": "Manage recurring subscriptions and their line items."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Recurring product subscriptions: line items, skips, cancellations "
        "and installment scheduling."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)

app.include_router(
    subscriptions.router, prefix="/api/v1/subscriptions", tags=["Subscriptions"]
)


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }
