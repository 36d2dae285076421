"""Ledger gateway backed by the ``tigerbeetle`` Python client.

Install with the ``tigerbeetle`` extra. The client library is imported when a
gateway is constructed, not at package import, so the rest of the package
(and its tests) work without it.

Result mapping for ``create``: the client returns only the failing entries,
keyed by their index in the request. Indices absent from that list were
created. Every ``EXISTS*`` result is treated as "already exists" and left to
verification to judge; any other result is an error carrying the numeric code
and the enum name.
"""

from __future__ import annotations

from collections.abc import Sequence
from types import TracebackType
from typing import Any

from .logging_setup import get_logger
from .models import CreateOutcome, CreateResult, LedgerRecord
from .settings import LedgerConnection

_logger = get_logger("debt_ledger.tigerbeetle_gateway")


class TigerBeetleGateway:
    """Async gateway over ``tigerbeetle.ClientAsync``.

    Use as an async context manager, or call :meth:`close` when done::

        async with TigerBeetleGateway(LedgerConnection.from_env()) as gateway:
            await sync_accounts(catalog, gateway=gateway)
    """

    def __init__(self, connection: LedgerConnection | None = None) -> None:
        import tigerbeetle as tb

        self._tb = tb
        self._connection = connection or LedgerConnection()
        self._client: Any = tb.ClientAsync(
            cluster_id=self._connection.cluster_id,
            replica_addresses=self._connection.replica_addresses,
        )
        _logger.info(
            "gateway:open cluster_id=%d addresses=%s",
            self._connection.cluster_id,
            self._connection.replica_addresses,
        )

    async def __aenter__(self) -> TigerBeetleGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None
        _logger.info("gateway:closed")

    def _to_account(self, record: LedgerRecord) -> Any:
        tb = self._tb
        return tb.Account(
            id=record.id,
            debits_pending=0,
            debits_posted=record.debits_posted,
            credits_pending=0,
            credits_posted=record.credits_posted,
            user_data_128=0,
            user_data_64=0,
            user_data_32=record.user_data_32,
            ledger=record.ledger,
            code=record.code,
            flags=tb.AccountFlags(record.flags),
            timestamp=0,
        )

    @staticmethod
    def _from_account(account: Any) -> LedgerRecord:
        return LedgerRecord(
            id=int(account.id),
            debits_posted=int(account.debits_posted),
            credits_posted=int(account.credits_posted),
            code=int(account.code),
            flags=int(account.flags),
            ledger=int(account.ledger),
            user_data_32=int(account.user_data_32),
        )

    async def create(self, records: Sequence[LedgerRecord]) -> list[CreateResult]:
        if self._client is None:
            raise RuntimeError("TigerBeetleGateway is closed")
        errors = await self._client.create_accounts([self._to_account(r) for r in records])
        by_index = {int(e.index): e.result for e in errors}

        out: list[CreateResult] = []
        for i, record in enumerate(records):
            result = by_index.get(i)
            if result is None or int(result) == 0:
                out.append(CreateResult(record_id=record.id, outcome=CreateOutcome.CREATED))
                continue
            name = getattr(result, "name", str(result))
            outcome = (
                CreateOutcome.ALREADY_EXISTS
                if name.upper().startswith("EXISTS")
                else CreateOutcome.OTHER_ERROR
            )
            out.append(
                CreateResult(record_id=record.id, outcome=outcome, code=int(result), detail=name)
            )
        return out

    async def lookup(self, ids: Sequence[int]) -> list[LedgerRecord]:
        if self._client is None:
            raise RuntimeError("TigerBeetleGateway is closed")
        accounts = await self._client.lookup_accounts(list(ids))
        return [self._from_account(a) for a in accounts]


__all__ = ["TigerBeetleGateway"]
