from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from smb_ledger.domain.value_objects import AccountType, NormalBalance


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Account:
    code: str
    name: str
    account_type: AccountType
    id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def normal_balance(self) -> NormalBalance:
        return self.account_type.normal_balance

    @property
    def is_income_statement_account(self) -> bool:
        return self.account_type in (AccountType.REVENUE, AccountType.EXPENSE)

    def deactivate(self) -> None:
        self.is_active = False

    def activate(self) -> None:
        self.is_active = True
