from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from ledgercore.accounts.api import router as accounts_router
from ledgercore.core.config import get_settings
from ledgercore.installments.api import router as installments_router
from ledgercore.ledger.api import router as ledger_router
from ledgercore.metrics import generate_metrics_payload, metrics_content_type
from ledgercore.shifts.api import router as shifts_router
from ledgercore.statements.api import router as statements_router
from ledgercore.vouchers.api import router as vouchers_router

router = APIRouter()
router.include_router(accounts_router)
router.include_router(ledger_router)
router.include_router(vouchers_router)
router.include_router(statements_router)
router.include_router(installments_router)
router.include_router(shifts_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/metrics", tags=["system"])
def metrics() -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
