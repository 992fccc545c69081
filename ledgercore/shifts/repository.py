from __future__ import annotations

from ledgercore.core.repository import TenantRepository
from ledgercore.shifts.models import Shift


class ShiftRepository(TenantRepository[Shift]):
    model = Shift
    resource = "shift"
