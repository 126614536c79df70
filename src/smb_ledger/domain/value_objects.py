from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from functools import total_ordering

CENT = Decimal("0.01")

# Residual below which a source counts as applied / a document as paid.
ALLOCATION_TOLERANCE = Decimal("0.005")

# Rounding epsilon for closing previews and reconciliation.
BALANCE_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal | int | float | str) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def is_effectively_zero(value: Decimal, tolerance: Decimal = BALANCE_TOLERANCE) -> bool:
    return abs(value) < tolerance


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    NZD = "NZD"
    MXN = "MXN"


class NormalBalance(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class AccountType(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def normal_balance(self) -> NormalBalance:
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT

    def signed_balance(self, debits: Decimal, credits: Decimal) -> Decimal:
        """Balance of an account of this type given its debit and credit totals."""
        if self.normal_balance == NormalBalance.DEBIT:
            return debits - credits
        return credits - debits


class JournalEntryStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"
    VOIDED = "voided"


class BalanceMode(str, Enum):
    """Which posted entries a balance query counts.

    OPERATING leaves out year-end closing entries, so revenue and expense
    accounts show the activity of the window. CUMULATIVE counts everything
    posted, so revenue and expense accounts read zero after a close.
    """

    OPERATING = "operating"
    CUMULATIVE = "cumulative"


@total_ordering
@dataclass(frozen=True, slots=True)
class Money:
    """A Decimal amount in one currency. Arithmetic across currencies is an error."""

    amount: Decimal
    currency: Currency | str = Currency.USD

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        if isinstance(self.currency, Currency):
            return
        try:
            object.__setattr__(self, "currency", Currency(self.currency.upper()))
        except (AttributeError, ValueError):
            raise ValueError(f"Invalid currency: {self.currency}") from None

    def _same_currency(self, other: "Money", verb: str) -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.value} and {other.currency.value}")

    def __add__(self, other: "Money") -> "Money":
        self._same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> "Money":
        return Money(-self.amount, self.currency)

    def __abs__(self) -> "Money":
        return Money(abs(self.amount), self.currency)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return (self.amount, self.currency) == (other.amount, other.currency)

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: "Money") -> bool:
        self._same_currency(other, "compare")
        return self.amount < other.amount

    def rounded(self) -> "Money":
        return Money(round_money(self.amount), self.currency)

    @property
    def is_zero(self) -> bool:
        return not self.amount

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    @classmethod
    def zero(cls, currency: Currency | str = Currency.USD) -> "Money":
        return cls(Decimal("0"), currency)


__all__ = [
    "ALLOCATION_TOLERANCE",
    "BALANCE_TOLERANCE",
    "CENT",
    "AccountType",
    "BalanceMode",
    "Currency",
    "JournalEntryStatus",
    "Money",
    "NormalBalance",
    "is_effectively_zero",
    "round_money",
    "to_decimal",
]
