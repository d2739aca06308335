"""Print-on-demand ordering FastAPI application.

Serves payment and fulfillment partner webhooks plus the order
administration routes. Every request runs inside the ordering domain's
context; provider clients are built once per application and shared
through ``app.state``.

PROTEAN_ENV controls which config overlay of ``[tool.protean]`` is applied:
    - unset        → sqlite database
    - "production" → postgresql at DATABASE_URL
    - "test"       → in-memory database

Usage:
    uvicorn app:serve --factory --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError

from fulfillment.api.routes import partner_router
from fulfillment.api.routes import webhook_router as fulfillment_webhook_router
from fulfillment.partner import build_partner
from fulfillment.partner.port import FulfillmentPartner
from fulfillment.submission.job import RetryPolicy
from ordering.api import order_router
from ordering.config import Settings, load_settings
from ordering.domain import ordering
from ordering.order.exceptions import OrderingError
from ordering.utils.logging import get_logger
from payments.api.routes import gateway_router
from payments.api.routes import webhook_router as payment_webhook_router
from payments.gateway import build_gateway
from payments.gateway.port import PaymentGateway

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Error code → HTTP status mapping
# ---------------------------------------------------------------------------
_STATUS_FOR_CODE = {
    "NOT_FOUND": 404,
    "VALIDATION_FAILURE": 422,
    "STALE_EVENT": 409,
    "PROVIDER_ERROR": 502,
}

_PROVIDER_ERROR_MESSAGE = "Fulfillment or payment provider unavailable, please try again later"


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    status_code = _STATUS_FOR_CODE.get(exc.code, 500)
    if exc.code == "PROVIDER_ERROR":
        # Provider detail stays in the logs
        logger.error("Provider error", path=request.url.path, error=str(exc))
        detail = _PROVIDER_ERROR_MESSAGE
    elif status_code == 500:
        logger.error("Unhandled ordering error", path=request.url.path, code=exc.code, error=str(exc))
        detail = "Internal error"
    else:
        detail = exc.message
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": exc.code})


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": exc.messages, "code": "VALIDATION_FAILURE"})


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
def create_app(
    settings: Settings | None = None,
    gateway: PaymentGateway | None = None,
    partner: FulfillmentPartner | None = None,
    retry_policy: RetryPolicy | None = None,
    sleep=None,
) -> FastAPI:
    """Assemble the application around an initialized ``ordering`` domain."""
    settings = settings or load_settings()

    app = FastAPI(
        title="Print-on-demand Ordering API",
        description="Order reconciliation between checkout, payment provider and fulfillment partner",
    )
    app.state.settings = settings
    app.state.gateway = gateway or build_gateway(settings)
    app.state.partner = partner or build_partner(settings)
    app.state.retry_policy = retry_policy
    app.state.sleep = sleep

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(OrderingError, ordering_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the ordering domain context for each request."""
        with ordering.domain_context():
            response = await call_next(request)
        return response

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(order_router)
    app.include_router(payment_webhook_router)
    app.include_router(fulfillment_webhook_router)
    app.include_router(gateway_router)
    app.include_router(partner_router)

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "env": app.state.settings.env,
                "domain": ordering.name,
                "providers": {
                    "payment_gateway": app.state.gateway.name,
                    "fulfillment_partner": app.state.partner.name,
                },
            }
        )

    return app


def serve() -> FastAPI:
    """Application factory for uvicorn: initializes the domain once per process."""
    ordering.init()
    return create_app()
