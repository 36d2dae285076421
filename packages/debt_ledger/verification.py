"""Read-back verification of ledger records.

The ledger's read path lags its write path, so a record that was just created
(or created by an earlier run) may not be visible yet. Both verifiers retry
on absence with a backoff that grows with the attempt number:

- :func:`verify_record` checks one record. Not found -> wait and retry. Found
  with different posted balances -> terminal mismatch, no retry.
- :func:`verify_batch` checks a whole set of records in fixed-size lookup
  batches. Any missing or mismatched id fails the attempt and the *entire*
  set is re-checked on the next attempt; partial progress is never carried
  over between attempts.

Only ``debits_posted`` and ``credits_posted`` decide the outcome. A differing
``code`` or ``flags`` is logged as a warning.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass

from .backoff import BackoffPolicy, LinearBackoff, Sleep
from .errors import VerificationMismatchError, VerificationTimeoutError
from .gateway import LedgerGateway, index_by_id, lookup_records
from .logging_setup import get_logger
from .models import LedgerRecord
from .settings import DEFAULT_BATCH_SIZE, DEFAULT_MAX_ATTEMPTS

_logger = get_logger("debt_ledger.verification")


def _check_budget(max_attempts: int) -> None:
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise ValueError("max_attempts must be a positive integer")


def _warn_on_metadata_drift(expected: LedgerRecord, observed: LedgerRecord) -> None:
    if expected.code != observed.code or expected.flags != observed.flags:
        _logger.warning(
            "verify:metadata_drift id=%d expected_code=%d got_code=%d "
            "expected_flags=%d got_flags=%d",
            expected.id,
            expected.code,
            observed.code,
            expected.flags,
            observed.flags,
        )


def _mismatch_message(expected: LedgerRecord, observed: LedgerRecord) -> str:
    return (
        f"ledger record {expected.id} has unexpected balances: "
        f"expected debits={expected.debits_posted} credits={expected.credits_posted}, "
        f"got debits={observed.debits_posted} credits={observed.credits_posted}"
    )


async def verify_record(
    gateway: LedgerGateway,
    expected: LedgerRecord,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: BackoffPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
    account_id: str | None = None,
) -> LedgerRecord:
    """Confirm that ``expected`` is visible in the ledger with matching balances.

    Returns the observed record. Raises :class:`VerificationMismatchError` on
    the first sighting with wrong balances and
    :class:`VerificationTimeoutError` when the record is still missing after
    ``max_attempts`` lookups. A lookup that raises is not retried; it ends the
    call with :class:`~debt_ledger.errors.LedgerTransportError`.
    """

    _check_budget(max_attempts)
    policy = backoff or LinearBackoff()

    for attempt in range(1, max_attempts + 1):
        found = index_by_id(
            await lookup_records(gateway, [expected.id], account_id=account_id)
        )
        observed = found.get(expected.id)

        if observed is None:
            if attempt == max_attempts:
                break
            delay = policy.delay(attempt)
            _logger.info(
                "verify:miss id=%d attempt=%d max_attempts=%d delay_s=%.3f",
                expected.id,
                attempt,
                max_attempts,
                delay,
            )
            await sleep(delay)
            continue

        if not expected.balances_match(observed):
            _logger.error(
                "verify:mismatch id=%d expected_debits=%d got_debits=%d "
                "expected_credits=%d got_credits=%d",
                expected.id,
                expected.debits_posted,
                observed.debits_posted,
                expected.credits_posted,
                observed.credits_posted,
            )
            raise VerificationMismatchError(
                _mismatch_message(expected, observed),
                ledger_id=expected.id,
                account_id=account_id,
                expected=expected.balances,
                observed=observed.balances,
            )

        _warn_on_metadata_drift(expected, observed)
        _logger.info("verify:ok id=%d attempt=%d", expected.id, attempt)
        return observed

    _logger.error("verify:timeout id=%d attempts=%d", expected.id, max_attempts)
    raise VerificationTimeoutError(
        f"ledger record {expected.id} not found after {max_attempts} attempts",
        ledger_id=expected.id,
        account_id=account_id,
        attempts=max_attempts,
        missing_ids=(expected.id,),
    )


def _batches(records: Sequence[LedgerRecord], size: int) -> Iterator[Sequence[LedgerRecord]]:
    for base in range(0, len(records), size):
        yield records[base : base + size]


@dataclass(frozen=True, slots=True)
class _AttemptFailures:
    missing: tuple[int, ...]
    # (expected, observed) pairs
    mismatched: tuple[tuple[LedgerRecord, LedgerRecord], ...]


async def _check_all_batches(
    gateway: LedgerGateway,
    records: Sequence[LedgerRecord],
    batch_size: int,
    account_ids: Mapping[int, str],
) -> tuple[dict[int, LedgerRecord], _AttemptFailures]:
    observed_all: dict[int, LedgerRecord] = {}
    missing: list[int] = []
    mismatched: list[tuple[LedgerRecord, LedgerRecord]] = []

    # Sequential on purpose: one lookup in flight at a time.
    for batch in _batches(records, batch_size):
        ids = [r.id for r in batch]
        found = index_by_id(
            await lookup_records(gateway, ids, account_id=account_ids.get(ids[0]))
        )
        for expected in batch:
            observed = found.get(expected.id)
            if observed is None:
                missing.append(expected.id)
            elif not expected.balances_match(observed):
                mismatched.append((expected, observed))
            else:
                observed_all[expected.id] = observed

    return observed_all, _AttemptFailures(tuple(missing), tuple(mismatched))


async def verify_batch(
    gateway: LedgerGateway,
    expected_records: Sequence[LedgerRecord],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: BackoffPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
    account_ids: Mapping[int, str] | None = None,
) -> dict[int, LedgerRecord]:
    """Confirm every record in ``expected_records`` is visible and matches.

    Returns the observed records keyed by id. Succeeds only when a single
    attempt sees every id with matching balances. After ``max_attempts``
    failed attempts, raises :class:`VerificationMismatchError` if the last
    attempt saw any mismatch, otherwise :class:`VerificationTimeoutError`.
    A lookup that raises ends the call at once with
    :class:`~debt_ledger.errors.LedgerTransportError`.
    """

    _check_budget(max_attempts)
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise ValueError("batch_size must be a positive integer")
    ids = [r.id for r in expected_records]
    if len(set(ids)) != len(ids):
        raise ValueError("expected_records contains duplicate ids")
    if not expected_records:
        return {}

    policy = backoff or LinearBackoff()
    account_ids = account_ids or {}
    failures = _AttemptFailures((), ())

    for attempt in range(1, max_attempts + 1):
        observed, failures = await _check_all_batches(
            gateway, expected_records, batch_size, account_ids
        )
        if not failures.missing and not failures.mismatched:
            for expected in expected_records:
                _warn_on_metadata_drift(expected, observed[expected.id])
            _logger.info(
                "verify_batch:ok records=%d batch_size=%d attempt=%d",
                len(expected_records),
                batch_size,
                attempt,
            )
            return observed

        _logger.warning(
            "verify_batch:attempt_failed attempt=%d max_attempts=%d verified=%d "
            "missing=%s mismatched=%s",
            attempt,
            max_attempts,
            len(observed),
            list(failures.missing),
            [e.id for e, _ in failures.mismatched],
        )
        if attempt < max_attempts:
            await sleep(policy.delay(attempt))

    if failures.mismatched:
        expected, got = failures.mismatched[0]
        details = "; ".join(_mismatch_message(e, o) for e, o in failures.mismatched)
        raise VerificationMismatchError(
            f"batch verification failed after {max_attempts} attempts: {details}",
            ledger_id=expected.id,
            account_id=account_ids.get(expected.id),
            expected=expected.balances,
            observed=got.balances,
        )

    first_missing = failures.missing[0]
    raise VerificationTimeoutError(
        f"batch verification failed after {max_attempts} attempts: "
        f"ledger records not found: {list(failures.missing)}",
        ledger_id=first_missing,
        account_id=account_ids.get(first_missing),
        attempts=max_attempts,
        missing_ids=failures.missing,
    )


__all__ = ["verify_batch", "verify_record"]
