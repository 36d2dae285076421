"""Category policy: ledger codes and constraint flags per account.

Pure functions, no I/O. The flag bit values match the ledger's own account
flags so a bitmask built here can be sent as-is.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import IntFlag

from .identifiers import DEFAULT_ID_OFFSET, ledger_id
from .models import Account, AccountCategory, DEBT_CATEGORIES, LedgerRecord
from .money import to_minor_units

DEFAULT_LEDGER: int = 1


class AccountFlags(IntFlag):
    NONE = 0
    LINKED = 1
    DEBITS_MUST_NOT_EXCEED_CREDITS = 2
    CREDITS_MUST_NOT_EXCEED_DEBITS = 4
    HISTORY = 8


# Dense and stable; SAVINGS is reserved although the catalog has no such category yet.
_CATEGORY_CODES: dict[str, int] = {
    "CHECKING": 1,
    "SAVINGS": 2,
    "CREDIT_CARD": 3,
    "LOAN": 4,
    "STUDENT_LOAN": 5,
    "IOU": 6,
}


def category_code(category: AccountCategory | str | None) -> int:
    """Return the ledger code for ``category``; unknown values map to ``0``."""

    if isinstance(category, AccountCategory):
        key = category.value
    elif isinstance(category, str):
        key = category.strip().upper()
    else:
        return 0
    return _CATEGORY_CODES.get(key, 0)


def constraint_flags(account: Account) -> AccountFlags:
    """Return the constraint bitmask the ledger should enforce for ``account``.

    - Debt accounts, and closed accounts still carrying a balance, may never
      have debits exceed credits.
    - Open checking accounts may never have credits exceed debits.
    - History tracking is always on.

    The two constraint bits never appear together: the second rule requires an
    open checking account, which matches neither clause of the first.
    """

    flags = AccountFlags.HISTORY
    if account.category in DEBT_CATEGORIES or (
        account.is_closed and account.current_balance > 0
    ):
        flags |= AccountFlags.DEBITS_MUST_NOT_EXCEED_CREDITS
    if account.category is AccountCategory.CHECKING and not account.is_closed:
        flags |= AccountFlags.CREDITS_MUST_NOT_EXCEED_DEBITS
    return flags


def build_ledger_record(
    account: Account,
    index: int,
    *,
    offset: int = DEFAULT_ID_OFFSET,
    ledger: int = DEFAULT_LEDGER,
) -> LedgerRecord:
    code = category_code(account.category)
    return LedgerRecord(
        id=ledger_id(index, offset),
        debits_posted=to_minor_units(account.current_balance),
        credits_posted=to_minor_units(account.total_amount),
        code=code,
        flags=int(constraint_flags(account)),
        ledger=ledger,
        user_data_32=code,
    )


def build_ledger_records(
    catalog: Sequence[Account],
    *,
    offset: int = DEFAULT_ID_OFFSET,
    ledger: int = DEFAULT_LEDGER,
) -> list[LedgerRecord]:
    return [
        build_ledger_record(account, i, offset=offset, ledger=ledger)
        for i, account in enumerate(catalog)
    ]


__all__ = [
    "AccountFlags",
    "DEFAULT_LEDGER",
    "build_ledger_record",
    "build_ledger_records",
    "category_code",
    "constraint_flags",
]
