"""Data models and type aliases for ``debt_ledger``.

Two families of types live here:

- Catalog entities (:class:`Account` and its nested schedule/loan models),
  validated with pydantic because they arrive from an external collaborator
  (a JSON file, a host application). Field aliases accept the camelCase
  spelling used by existing catalogs (``totalAmount``, ``isClosed``, ...).
- Ledger-side values (:class:`LedgerRecord`, create outcomes, projections),
  which are built by this package and kept as plain frozen dataclasses.

All money on the catalog side is ``Decimal`` in currency units. All money on
the ledger side is ``int`` in minor units (cents).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Catalog entities
# ---------------------------------------------------------------------------


class AccountCategory(str, Enum):
    """Kind of account as described by the catalog."""

    CREDIT_CARD = "CREDIT_CARD"
    LOAN = "LOAN"
    STUDENT_LOAN = "STUDENT_LOAN"
    IOU = "IOU"
    CHECKING = "CHECKING"
    DEBIT = "DEBIT"


DEBT_CATEGORIES: frozenset[AccountCategory] = frozenset(
    {
        AccountCategory.CREDIT_CARD,
        AccountCategory.LOAN,
        AccountCategory.STUDENT_LOAN,
        AccountCategory.IOU,
    }
)


def _decimal_from_number(v: Any) -> Any:
    # Floats go through ``str`` so 1471.76 stays 1471.76 rather than its binary expansion.
    if isinstance(v, float):
        return Decimal(str(v))
    return v


Money = Annotated[Decimal, BeforeValidator(_decimal_from_number)]


class _CatalogModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )


class PaymentSchedule(_CatalogModel):
    """Recurring payment terms; only read by the progress projection."""

    due_date: date | None = None
    frequency: str | None = None
    minimum_payment: Money | None = Field(default=None, ge=0)


class LoanDetail(_CatalogModel):
    """One note inside an aggregated loan (e.g., a student-loan servicer).

    Informational only: sub-loans are never synchronized individually.
    """

    name: str
    principal: Money = Field(ge=0)
    interest_rate: Money | None = None
    deferment: str | None = None


class Account(_CatalogModel):
    """A single catalog account.

    ``current_balance <= total_amount`` is expected but deliberately not
    enforced here; a violation surfaces later as a ledger verification
    mismatch rather than a local validation error.
    """

    id: str
    name: str
    category: AccountCategory
    account_number: str = ""
    total_amount: Money = Field(ge=0)
    current_balance: Money = Field(ge=0)
    is_active: bool = True
    is_closed: bool = False
    apr: Money | None = None
    payment_schedule: PaymentSchedule | None = None
    loan_details: tuple[LoanDetail, ...] = ()

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def is_debt(self) -> bool:
        return self.category in DEBT_CATEGORIES

    @property
    def payment_percentage(self) -> Decimal:
        """Share of ``total_amount`` already paid off, in percent (0–100)."""

        if self.total_amount == 0:
            return Decimal(100)
        return (self.total_amount - self.current_balance) / self.total_amount * 100


type Catalog = Sequence[Account]
"""An ordered, fully materialized account catalog. Position drives ledger ids."""


# ---------------------------------------------------------------------------
# Ledger-side values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LedgerRecord:
    """Balance record as sent to, and read back from, the ledger.

    Attributes
    ----------
    id:
        Ledger identifier (see :func:`debt_ledger.identifiers.ledger_id`).
    debits_posted:
        Current balance in minor units.
    credits_posted:
        Total amount (limit / principal / target) in minor units.
    code:
        Category code from :func:`debt_ledger.policy.category_code`.
    flags:
        Constraint bitmask from :func:`debt_ledger.policy.constraint_flags`.
    ledger:
        Ledger namespace shared by every record this package writes.
    user_data_32:
        Free-form tag; carries the category code for other ledger readers.
    """

    id: int
    debits_posted: int
    credits_posted: int
    code: int = 0
    flags: int = 0
    ledger: int = 1
    user_data_32: int = 0

    def balances_match(self, other: LedgerRecord) -> bool:
        return (
            self.debits_posted == other.debits_posted
            and self.credits_posted == other.credits_posted
        )

    @property
    def balances(self) -> tuple[int, int]:
        return (self.debits_posted, self.credits_posted)


class CreateOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    OTHER_ERROR = "other_error"


@dataclass(frozen=True, slots=True)
class CreateResult:
    """Per-record outcome of a gateway ``create`` call.

    ``code`` and ``detail`` carry the ledger's raw result for diagnostics; they
    are ``None``/empty for a plain ``CREATED``.
    """

    record_id: int
    outcome: CreateOutcome
    code: int | None = None
    detail: str = ""


@dataclass(frozen=True, slots=True)
class SyncResult:
    account_id: str
    ledger_id: int
    outcome: CreateOutcome


@dataclass(frozen=True, slots=True)
class VerifiedBalance:
    """Ledger balances converted back to currency units."""

    current_balance: Decimal
    total_amount: Decimal


@dataclass(frozen=True, slots=True)
class DebtProgress:
    """Payoff metrics for one debt-bearing account."""

    ledger_id: int
    account_id: str
    name: str
    category: AccountCategory
    total_amount: Decimal
    current_balance: Decimal
    percentage_paid: Decimal
    remaining_balance: Decimal
    next_payment_due: date | None = None
    minimum_payment: Decimal | None = None


__all__ = [
    "Account",
    "AccountCategory",
    "Catalog",
    "CreateOutcome",
    "CreateResult",
    "DEBT_CATEGORIES",
    "DebtProgress",
    "LedgerRecord",
    "LoanDetail",
    "PaymentSchedule",
    "SyncResult",
    "VerifiedBalance",
]
