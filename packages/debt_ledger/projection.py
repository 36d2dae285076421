"""Project verified ledger balances into debt-payoff metrics.

Pure computation over already-verified inputs; no retries, no I/O.

For a debt account, ``debits_posted`` holds the current balance and
``credits_posted`` the total amount, so:

- ``remaining_balance = total_amount - current_balance``
- ``percentage_paid = current_balance / total_amount * 100``

both rounded to 2 decimal places. The schedule's minimum payment is passed
through at 2 decimal places too (``35.0`` from a JSON float reads ``35.00``).
A zero ``total_amount`` yields ``percentage_paid == 100``, the same
convention as :attr:`debt_ledger.models.Account.payment_percentage`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from .identifiers import DEFAULT_ID_OFFSET, ledger_id
from .logging_setup import get_logger
from .models import Account, DebtProgress, LedgerRecord, VerifiedBalance
from .money import from_minor_units, quantize_2dp

_logger = get_logger("debt_ledger.projection")

_FULLY_PAID = Decimal("100.00")


def balances_from_records(records: Iterable[LedgerRecord]) -> dict[int, VerifiedBalance]:
    return {
        r.id: VerifiedBalance(
            current_balance=from_minor_units(r.debits_posted),
            total_amount=from_minor_units(r.credits_posted),
        )
        for r in records
    }


def percentage_paid(balance: VerifiedBalance) -> Decimal:
    if balance.total_amount == 0:
        return _FULLY_PAID
    return quantize_2dp(balance.current_balance / balance.total_amount * 100)


def project_debt_progress(
    balances: Mapping[int, VerifiedBalance],
    catalog: Sequence[Account],
    *,
    offset: int = DEFAULT_ID_OFFSET,
) -> dict[int, DebtProgress]:
    """Return payoff metrics for every debt account present in ``balances``.

    Non-debt accounts are skipped. Debt accounts without a balance entry are
    skipped too (and logged), since ``balances`` is assumed to come from a
    completed verification.
    """

    progress: dict[int, DebtProgress] = {}
    for index, account in enumerate(catalog):
        if not account.is_debt:
            continue
        lid = ledger_id(index, offset)
        balance = balances.get(lid)
        if balance is None:
            _logger.warning("projection:missing_balance account_id=%s id=%d", account.id, lid)
            continue

        schedule = account.payment_schedule
        progress[lid] = DebtProgress(
            ledger_id=lid,
            account_id=account.id,
            name=account.name,
            category=account.category,
            total_amount=balance.total_amount,
            current_balance=balance.current_balance,
            percentage_paid=percentage_paid(balance),
            remaining_balance=quantize_2dp(balance.total_amount - balance.current_balance),
            next_payment_due=schedule.due_date if schedule else None,
            minimum_payment=(
                quantize_2dp(schedule.minimum_payment)
                if schedule and schedule.minimum_payment is not None
                else None
            ),
        )
    return progress


__all__ = ["balances_from_records", "percentage_paid", "project_debt_progress"]
