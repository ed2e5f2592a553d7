"""Per-request session context.

Built once from the bearer token and the account row, then passed explicitly
into service calls. Role checks live here so every component asks the same
question the same way.
"""

from dataclasses import dataclass

from src.rp_account.domain.models import Account
from src.rp_common.enums import AccountRole
from src.rp_common.errors import UnauthorizedError


@dataclass(frozen=True)
class Session:
    account_id: str
    role: str
    region: str

    @classmethod
    def for_account(cls, account: Account) -> "Session":
        return cls(account_id=account.id, role=account.role, region=account.region)

    @property
    def is_enterprise(self) -> bool:
        return self.role == AccountRole.ENTERPRISE

    def require_enterprise(self, action: str) -> None:
        if not self.is_enterprise:
            raise UnauthorizedError(f"only enterprise accounts may {action}")

    def require_individual(self, action: str) -> None:
        if self.is_enterprise:
            raise UnauthorizedError(f"only individual accounts may {action}")
