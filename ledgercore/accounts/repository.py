from __future__ import annotations

from ledgercore.accounts.models import Account, AccountRoleMapping
from ledgercore.core.repository import TenantRepository


class AccountRepository(TenantRepository[Account]):
    model = Account
    resource = "account"


class RoleMappingRepository(TenantRepository[AccountRoleMapping]):
    model = AccountRoleMapping
    resource = "role mapping"
