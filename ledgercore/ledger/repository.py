from __future__ import annotations

from ledgercore.core.repository import TenantRepository
from ledgercore.ledger.models import FiscalYear, JournalEntry


class FiscalYearRepository(TenantRepository[FiscalYear]):
    model = FiscalYear
    resource = "fiscal year"


class JournalEntryRepository(TenantRepository[JournalEntry]):
    model = JournalEntry
    resource = "journal entry"
