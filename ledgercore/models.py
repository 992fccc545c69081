from ledgercore.accounts.models import Account, AccountRoleMapping
from ledgercore.core.sequences import DocumentSequence
from ledgercore.installments.models import Installment
from ledgercore.invoicing.models import Invoice, PurchaseInvoice
from ledgercore.ledger.models import FiscalYear, JournalEntry, JournalLine
from ledgercore.parties.models import Customer, Supplier
from ledgercore.shifts.models import Shift
from ledgercore.vouchers.models import Voucher

__all__ = [
    "Account",
    "AccountRoleMapping",
    "Customer",
    "DocumentSequence",
    "FiscalYear",
    "Installment",
    "Invoice",
    "JournalEntry",
    "JournalLine",
    "PurchaseInvoice",
    "Shift",
    "Supplier",
    "Voucher",
]
