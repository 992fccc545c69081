from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class TenantContext:
    """Caller identity handed to every core operation.

    The core trusts these values; authenticating them is the caller's job.
    """

    tenant_id: str
    user_id: str
    correlation_id: str | None = None
