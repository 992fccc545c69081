from __future__ import annotations

from ledgercore.core.repository import TenantRepository
from ledgercore.vouchers.models import Voucher


class VoucherRepository(TenantRepository[Voucher]):
    model = Voucher
    resource = "voucher"
