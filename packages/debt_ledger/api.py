"""Public API for the ``debt_ledger`` package.

Three coroutines form the surface used by the CLI and host applications:

- :func:`sync_accounts` creates (or confirms) and verifies one ledger record
  per catalog account.
- :func:`get_verified_balances` batch-verifies the catalog's records and
  returns their balances in currency units.
- :func:`get_debt_progress` projects those balances into payoff metrics.

Each call takes the gateway explicitly; nothing here holds a connection.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from .backoff import Sleep
from .gateway import LedgerGateway
from .identifiers import check_id_range
from .logging_setup import get_logger
from .models import Account, DebtProgress, SyncResult, VerifiedBalance
from .policy import build_ledger_records
from .projection import balances_from_records, project_debt_progress
from .settings import SyncSettings
from .sync import sync_catalog
from .verification import verify_batch

_logger = get_logger("debt_ledger.api")


async def sync_accounts(
    catalog: Sequence[Account],
    *,
    gateway: LedgerGateway,
    settings: SyncSettings | None = None,
    bulk: bool = False,
    sleep: Sleep = asyncio.sleep,
) -> list[SyncResult]:
    """Synchronize ``catalog`` into the ledger; see :func:`debt_ledger.sync.sync_catalog`."""

    return await sync_catalog(
        catalog, gateway, settings=settings or SyncSettings(), bulk=bulk, sleep=sleep
    )


async def get_verified_balances(
    catalog: Sequence[Account],
    *,
    gateway: LedgerGateway,
    settings: SyncSettings | None = None,
    sleep: Sleep = asyncio.sleep,
) -> dict[int, VerifiedBalance]:
    """Return ``{ledger_id: VerifiedBalance}`` for every catalog account.

    The catalog's expected records are checked with the batch verifier first,
    so a missing or drifted record raises instead of yielding a partial map.
    An ambiguous id layout raises ``ValueError`` before any gateway call, as
    it does for :func:`sync_accounts`.
    """

    settings = settings or SyncSettings()
    check_id_range(
        len(catalog),
        offset=settings.id_offset,
        probe_id=settings.probe_id,
        account_ids=[a.id for a in catalog],
    )
    expected = build_ledger_records(catalog, offset=settings.id_offset, ledger=settings.ledger)
    observed = await verify_batch(
        gateway,
        expected,
        batch_size=settings.batch_size,
        max_attempts=settings.max_attempts,
        backoff=settings.backoff,
        sleep=sleep,
        account_ids={r.id: a.id for r, a in zip(expected, catalog, strict=True)},
    )
    _logger.info("balances:verified records=%d", len(observed))
    return balances_from_records(observed[r.id] for r in expected)


async def get_debt_progress(
    catalog: Sequence[Account],
    *,
    gateway: LedgerGateway,
    settings: SyncSettings | None = None,
    sleep: Sleep = asyncio.sleep,
) -> dict[int, DebtProgress]:
    """Return ``{ledger_id: DebtProgress}`` for the catalog's debt accounts."""

    settings = settings or SyncSettings()
    balances = await get_verified_balances(
        catalog, gateway=gateway, settings=settings, sleep=sleep
    )
    return project_debt_progress(balances, catalog, offset=settings.id_offset)


__all__ = ["get_debt_progress", "get_verified_balances", "sync_accounts"]
