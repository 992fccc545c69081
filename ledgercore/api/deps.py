from __future__ import annotations

from typing import TypeVar

from fastapi import Header, HTTPException, Request, status

from ledgercore.actions import ActionResult
from ledgercore.context import get_correlation_id
from ledgercore.core.context import TenantContext


DataT = TypeVar("DataT")

_STATUS_BY_ERROR = {
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
}


def get_tenant_context(
    request: Request,
    tenant_id_header: str | None = Header(default=None, alias="x-tenant-id"),
    user_id_header: str | None = Header(default=None, alias="x-user-id"),
) -> TenantContext:
    """Build the caller context from headers set by the upstream gateway."""
    if not tenant_id_header or not user_id_header:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing tenant or user header")
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    return TenantContext(tenant_id=tenant_id_header, user_id=user_id_header, correlation_id=correlation_id)


def unwrap(result: ActionResult[DataT]) -> DataT:
    if result.success:
        return result.data  # type: ignore[return-value]
    status_code = _STATUS_BY_ERROR.get(result.error or "", status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=status_code, detail={"error": result.error, "message": result.message})
