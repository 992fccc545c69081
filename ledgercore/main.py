from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ledgercore.api.routes import router as api_router
from ledgercore.core.config import get_settings
from ledgercore.core.errors import InfrastructureError
from ledgercore.events import InternalEvent, event_bus
from ledgercore.logging import configure_logging
from ledgercore.middleware.correlation_id import CorrelationIdMiddleware
from ledgercore.middleware.request_logging import RequestLoggingMiddleware


configure_logging()
logger = logging.getLogger("ledgercore.lifecycle")
_subscriptions_registered = False


def _on_system_started(event: InternalEvent) -> None:
    logger.info("system_event", extra={"operation": event.name})


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _subscriptions_registered
    if not _subscriptions_registered:
        event_bus.subscribe("system.started", _on_system_started)
        _subscriptions_registered = True
    event_bus.publish("system.started", {"service": "ledger-core"})
    yield


settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)


@app.exception_handler(InfrastructureError)
async def infrastructure_error_handler(request: Request, exc: InfrastructureError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": {"error": exc.kind, "message": exc.message}},
    )
