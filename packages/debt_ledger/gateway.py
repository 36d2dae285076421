"""Ledger gateway contract.

The ledger is an external, replicated, append-only store. This package only
needs two primitives from it:

- ``create(records)``: one :class:`~debt_ledger.models.CreateResult` per input
  record, in input order, so partial success inside a batch is attributable.
- ``lookup(ids)``: the records that are currently visible. Results may come
  back in any order and may be incomplete; an id missing from the result means
  "not found (yet)", never an error.

Transport failures surface as exceptions from either call. The sync and
verification paths go through :func:`create_records` and
:func:`lookup_records`, which turn them into
:class:`~debt_ledger.errors.LedgerTransportError` naming the record and
account involved. The gateway handle is passed explicitly to every component
that talks to the ledger.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .errors import LedgerSyncError, LedgerTransportError
from .logging_setup import get_logger
from .models import CreateResult, LedgerRecord

_logger = get_logger("debt_ledger.gateway")


@runtime_checkable
class LedgerGateway(Protocol):
    async def create(self, records: Sequence[LedgerRecord]) -> list[CreateResult]: ...

    async def lookup(self, ids: Sequence[int]) -> list[LedgerRecord]: ...


def index_by_id(records: Sequence[LedgerRecord]) -> dict[int, LedgerRecord]:
    """Key lookup results by id (lookup order is not guaranteed)."""

    return {r.id: r for r in records}


def _describe(ids: Sequence[int], account_id: str | None) -> str:
    id_list = list(ids)
    target = f"record {id_list[0]}" if len(id_list) == 1 else f"records {id_list}"
    return f"{target} (account {account_id!r})" if account_id is not None else target


async def create_records(
    gateway: LedgerGateway,
    records: Sequence[LedgerRecord],
    *,
    account_id: str | None = None,
) -> list[CreateResult]:
    """``gateway.create`` with transport failures raised as :class:`LedgerTransportError`."""

    try:
        return await gateway.create(records)
    except LedgerSyncError:
        raise
    except Exception as e:  # noqa: BLE001 - any client/transport failure ends the run
        ids = [r.id for r in records]
        _logger.error(
            "gateway:create_failed ids=%s account_id=%s error=%s",
            ids,
            account_id,
            e.__class__.__name__,
        )
        raise LedgerTransportError(
            f"ledger create failed for {_describe(ids, account_id)}: {e}",
            ledger_id=ids[0] if ids else None,
            account_id=account_id,
            operation="create",
        ) from e


async def lookup_records(
    gateway: LedgerGateway,
    ids: Sequence[int],
    *,
    account_id: str | None = None,
) -> list[LedgerRecord]:
    """``gateway.lookup`` with transport failures raised as :class:`LedgerTransportError`."""

    try:
        return await gateway.lookup(ids)
    except LedgerSyncError:
        raise
    except Exception as e:  # noqa: BLE001 - any client/transport failure ends the run
        _logger.error(
            "gateway:lookup_failed ids=%s account_id=%s error=%s",
            list(ids),
            account_id,
            e.__class__.__name__,
        )
        raise LedgerTransportError(
            f"ledger lookup failed for {_describe(ids, account_id)}: {e}",
            ledger_id=ids[0] if ids else None,
            account_id=account_id,
            operation="lookup",
        ) from e


__all__ = ["LedgerGateway", "create_records", "index_by_id", "lookup_records"]
