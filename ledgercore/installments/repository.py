from __future__ import annotations

from ledgercore.core.repository import TenantRepository
from ledgercore.installments.models import Installment
from ledgercore.invoicing.models import Invoice


class InstallmentRepository(TenantRepository[Installment]):
    model = Installment
    resource = "installment"


class InvoiceRepository(TenantRepository[Invoice]):
    model = Invoice
    resource = "invoice"
