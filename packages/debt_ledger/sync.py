"""Synchronization orchestrator: catalog -> ledger records, created and verified.

Flow of a run:

1. Probe the gateway by creating the well-known probe record. Created or
   already-existing both prove connectivity; anything else aborts before any
   catalog account is touched.
2. For each account in catalog order, build its record, submit a
   single-record create, accept ``CREATED`` or ``ALREADY_EXISTS``, then verify
   the record's balances before moving to the next account.

Records are never updated: an existing record is only verified. The first
failure aborts the whole run; later accounts are not processed. A gateway
call that raises after the probe ends the run as
:class:`~debt_ledger.errors.LedgerTransportError` naming the account.

``bulk=True`` submits the records in ``batch_size`` chunks instead and
verifies the full catalog once at the end with the batch verifier.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from .backoff import Sleep
from .errors import LedgerConnectivityError, LedgerCreationError
from .gateway import LedgerGateway, create_records
from .identifiers import check_id_range
from .logging_setup import get_logger
from .models import Account, CreateOutcome, CreateResult, LedgerRecord, SyncResult
from .policy import build_ledger_record
from .settings import SyncSettings
from .verification import verify_batch, verify_record

_logger = get_logger("debt_ledger.sync")

_PROBE_CODE: int = 1

_ACCEPTED: frozenset[CreateOutcome] = frozenset(
    {CreateOutcome.CREATED, CreateOutcome.ALREADY_EXISTS}
)


def probe_record(settings: SyncSettings) -> LedgerRecord:
    return LedgerRecord(
        id=settings.probe_id,
        debits_posted=0,
        credits_posted=0,
        code=_PROBE_CODE,
        flags=0,
        ledger=settings.ledger,
    )


async def check_connectivity(gateway: LedgerGateway, settings: SyncSettings) -> CreateOutcome:
    """Create the probe record to prove the ledger is reachable and writable."""

    probe = probe_record(settings)
    try:
        results = await gateway.create([probe])
    except Exception as e:  # noqa: BLE001 - any transport failure means "unreachable"
        _logger.error("probe:failed id=%d error=%s", probe.id, e.__class__.__name__)
        raise LedgerConnectivityError(
            f"ledger gateway unreachable: {e}", ledger_id=probe.id
        ) from e

    try:
        result = _single_result(results, probe.id)
    except LedgerCreationError as e:
        _logger.error("probe:malformed_result id=%d count=%d", probe.id, len(results))
        raise LedgerConnectivityError(
            f"ledger answered the connectivity probe with an unusable result: {e}",
            ledger_id=probe.id,
        ) from e
    if result.outcome not in _ACCEPTED:
        _logger.error(
            "probe:rejected id=%d code=%s detail=%s", probe.id, result.code, result.detail
        )
        raise LedgerConnectivityError(
            f"ledger rejected the connectivity probe {probe.id}: "
            f"code={result.code} {result.detail}".rstrip(),
            ledger_id=probe.id,
        )
    _logger.info("probe:ok id=%d outcome=%s", probe.id, result.outcome.value)
    return result.outcome


def _single_result(results: Sequence[CreateResult], record_id: int) -> CreateResult:
    if len(results) != 1 or results[0].record_id != record_id:
        raise LedgerCreationError(
            f"gateway returned {len(results)} outcomes for a single create of record {record_id}",
            ledger_id=record_id,
        )
    return results[0]


def _ensure_accepted(result: CreateResult, account: Account) -> None:
    if result.outcome in _ACCEPTED:
        return
    _logger.error(
        "sync:create_failed account_id=%s id=%d code=%s detail=%s",
        account.id,
        result.record_id,
        result.code,
        result.detail,
    )
    raise LedgerCreationError(
        f"failed to create ledger record {result.record_id} for account "
        f"{account.id!r} ({account.name}): code={result.code} {result.detail}".rstrip(),
        ledger_id=result.record_id,
        account_id=account.id,
        code=result.code,
    )


async def _pause(sleep: Sleep, seconds: float) -> None:
    if seconds > 0:
        await sleep(seconds)


async def _sync_sequential(
    catalog: Sequence[Account],
    records: Sequence[LedgerRecord],
    gateway: LedgerGateway,
    settings: SyncSettings,
    sleep: Sleep,
) -> list[SyncResult]:
    results: list[SyncResult] = []
    for account, record in zip(catalog, records, strict=True):
        t0 = time.perf_counter()
        await _pause(sleep, settings.settle_seconds)
        result = _single_result(
            await create_records(gateway, [record], account_id=account.id), record.id
        )
        _ensure_accepted(result, account)
        _logger.info(
            "sync:create account_id=%s id=%d outcome=%s debits=%d credits=%d code=%d flags=%d",
            account.id,
            record.id,
            result.outcome.value,
            record.debits_posted,
            record.credits_posted,
            record.code,
            record.flags,
        )
        await _pause(sleep, settings.settle_seconds)

        await verify_record(
            gateway,
            record,
            max_attempts=settings.max_attempts,
            backoff=settings.backoff,
            sleep=sleep,
            account_id=account.id,
        )
        _logger.info(
            "sync:verified account_id=%s id=%d latency_ms=%.2f",
            account.id,
            record.id,
            (time.perf_counter() - t0) * 1000.0,
        )
        results.append(
            SyncResult(account_id=account.id, ledger_id=record.id, outcome=result.outcome)
        )
    return results


async def _sync_bulk(
    catalog: Sequence[Account],
    records: Sequence[LedgerRecord],
    gateway: LedgerGateway,
    settings: SyncSettings,
    sleep: Sleep,
) -> list[SyncResult]:
    results: list[SyncResult] = []
    size = settings.batch_size
    for base in range(0, len(records), size):
        chunk = records[base : base + size]
        accounts = catalog[base : base + size]
        outcomes = await create_records(gateway, chunk, account_id=accounts[0].id)
        if len(outcomes) != len(chunk):
            raise LedgerCreationError(
                f"gateway returned {len(outcomes)} outcomes for {len(chunk)} records",
                ledger_id=chunk[0].id,
            )
        for account, record, result in zip(accounts, chunk, outcomes, strict=True):
            if result.record_id != record.id:
                raise LedgerCreationError(
                    f"gateway outcome for record {result.record_id} does not line up "
                    f"with submitted record {record.id}",
                    ledger_id=record.id,
                    account_id=account.id,
                )
            _ensure_accepted(result, account)
            results.append(
                SyncResult(account_id=account.id, ledger_id=record.id, outcome=result.outcome)
            )
        _logger.info(
            "sync:bulk_create base=%d count=%d created=%d existing=%d",
            base,
            len(chunk),
            sum(1 for r in outcomes if r.outcome is CreateOutcome.CREATED),
            sum(1 for r in outcomes if r.outcome is CreateOutcome.ALREADY_EXISTS),
        )
        await _pause(sleep, settings.settle_seconds)

    await verify_batch(
        gateway,
        records,
        batch_size=settings.batch_size,
        max_attempts=settings.max_attempts,
        backoff=settings.backoff,
        sleep=sleep,
        account_ids={r.ledger_id: r.account_id for r in results},
    )
    return results


async def sync_catalog(
    catalog: Sequence[Account],
    gateway: LedgerGateway,
    *,
    settings: SyncSettings,
    bulk: bool = False,
    sleep: Sleep = asyncio.sleep,
) -> list[SyncResult]:
    """Ensure every catalog account exists in the ledger with the expected balances.

    Returns one :class:`SyncResult` per account, in catalog order. Raises a
    :class:`~debt_ledger.errors.LedgerSyncError` subclass on the first
    failure; there is no partial-success return.
    """

    check_id_range(
        len(catalog),
        offset=settings.id_offset,
        probe_id=settings.probe_id,
        account_ids=[a.id for a in catalog],
    )
    await check_connectivity(gateway, settings)

    records = [
        build_ledger_record(account, i, offset=settings.id_offset, ledger=settings.ledger)
        for i, account in enumerate(catalog)
    ]
    _logger.info(
        "sync:start accounts=%d mode=%s offset=%d",
        len(records),
        "bulk" if bulk else "sequential",
        settings.id_offset,
    )

    if bulk:
        results = await _sync_bulk(catalog, records, gateway, settings, sleep)
    else:
        results = await _sync_sequential(catalog, records, gateway, settings, sleep)

    _logger.info(
        "sync:summary accounts=%d created=%d existing=%d",
        len(results),
        sum(1 for r in results if r.outcome is CreateOutcome.CREATED),
        sum(1 for r in results if r.outcome is CreateOutcome.ALREADY_EXISTS),
    )
    return results


__all__ = ["check_connectivity", "probe_record", "sync_catalog"]
