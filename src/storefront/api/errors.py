"""HTTP mapping for the errors the payment flow adds on top of Protean's.

``register_exception_handlers`` from Protean already answers domain
``ValidationError`` with 400. Declined cards and gateway outages need their
own status codes, unknown aggregates are pinned to 404, and a write that
lost an optimistic concurrency race answers 409 so the client retries.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.integrations.fastapi import register_exception_handlers

from storefront.errors import PaymentDeclined
from storefront.payments.gateway.port import GatewayUnavailable
from storefront.payments.settlement import RETRY_HINT

logger = structlog.get_logger(__name__)

CONFLICT_HINT = "The order changed while it was being updated, please try again"


async def payment_declined_handler(request: Request, exc: PaymentDeclined) -> JSONResponse:
    return JSONResponse(
        status_code=402,
        content={"error": exc.messages, "order_id": exc.order_id, "reason": exc.reason},
    )


async def gateway_unavailable_handler(request: Request, exc: GatewayUnavailable) -> JSONResponse:
    # Gateway detail stays in the logs
    return JSONResponse(status_code=503, content={"error": RETRY_HINT, "retryable": True})


async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("Concurrent update conflict", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=409, content={"error": CONFLICT_HINT, "retryable": True})


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


def register_storefront_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(PaymentDeclined, payment_declined_handler)
    app.add_exception_handler(GatewayUnavailable, gateway_unavailable_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(ExpectedVersionError, version_conflict_handler)
