"""Error taxonomy for ledger synchronization.

Every fatal condition of a sync run is a :class:`LedgerSyncError`. Callers
that only care whether the run succeeded catch the base class; the
subclasses carry the ids and amounts needed to diagnose the failure.
"""

from __future__ import annotations


class LedgerSyncError(RuntimeError):
    """Base class for terminal synchronization failures."""

    def __init__(
        self,
        message: str,
        *,
        ledger_id: int | None = None,
        account_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.ledger_id = ledger_id
        self.account_id = account_id


class LedgerConnectivityError(LedgerSyncError):
    """The gateway is unreachable or rejected the connectivity probe."""


class LedgerTransportError(LedgerConnectivityError):
    """A create or lookup call raised after the probe succeeded.

    ``operation`` is ``"create"`` or ``"lookup"``; the original exception is
    chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        ledger_id: int | None = None,
        account_id: str | None = None,
        operation: str = "",
    ) -> None:
        super().__init__(message, ledger_id=ledger_id, account_id=account_id)
        self.operation = operation


class LedgerCreationError(LedgerSyncError):
    """The ledger answered a create with something other than created/exists."""

    def __init__(
        self,
        message: str,
        *,
        ledger_id: int | None = None,
        account_id: str | None = None,
        code: int | None = None,
    ) -> None:
        super().__init__(message, ledger_id=ledger_id, account_id=account_id)
        self.code = code


class VerificationError(LedgerSyncError):
    """Base class for read-back verification failures."""


class VerificationTimeoutError(VerificationError):
    """Record(s) never became visible within the attempt budget."""

    def __init__(
        self,
        message: str,
        *,
        ledger_id: int | None = None,
        account_id: str | None = None,
        attempts: int = 0,
        missing_ids: tuple[int, ...] = (),
    ) -> None:
        super().__init__(message, ledger_id=ledger_id, account_id=account_id)
        self.attempts = attempts
        self.missing_ids = missing_ids


class VerificationMismatchError(VerificationError):
    """A record was found but its posted balances differ from expectation.

    ``expected`` and ``observed`` are ``(debits_posted, credits_posted)`` in
    minor units.
    """

    def __init__(
        self,
        message: str,
        *,
        ledger_id: int | None = None,
        account_id: str | None = None,
        expected: tuple[int, int] | None = None,
        observed: tuple[int, int] | None = None,
    ) -> None:
        super().__init__(message, ledger_id=ledger_id, account_id=account_id)
        self.expected = expected
        self.observed = observed


__all__ = [
    "LedgerConnectivityError",
    "LedgerCreationError",
    "LedgerSyncError",
    "LedgerTransportError",
    "VerificationError",
    "VerificationMismatchError",
    "VerificationTimeoutError",
]
