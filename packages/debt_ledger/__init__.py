"""Public interface for the ``debt_ledger`` package.

This module exposes the package's API coroutines and public models/types as
the stable import surface. There is no runtime logic here, only re-exports.
"""

from .api import get_debt_progress, get_verified_balances, sync_accounts
from .backoff import BackoffPolicy, ExponentialBackoff, LinearBackoff
from .errors import (
    LedgerConnectivityError,
    LedgerCreationError,
    LedgerSyncError,
    LedgerTransportError,
    VerificationError,
    VerificationMismatchError,
    VerificationTimeoutError,
)
from .gateway import LedgerGateway
from .models import (
    Account,
    AccountCategory,
    CreateOutcome,
    CreateResult,
    DebtProgress,
    LedgerRecord,
    LoanDetail,
    PaymentSchedule,
    SyncResult,
    VerifiedBalance,
)
from .policy import AccountFlags, build_ledger_record, category_code, constraint_flags
from .settings import LedgerConnection, SyncSettings

__all__ = [
    # API
    "sync_accounts",
    "get_verified_balances",
    "get_debt_progress",
    # Policy
    "AccountFlags",
    "build_ledger_record",
    "category_code",
    "constraint_flags",
    # Configuration
    "SyncSettings",
    "LedgerConnection",
    "BackoffPolicy",
    "LinearBackoff",
    "ExponentialBackoff",
    # Gateway
    "LedgerGateway",
    # Models / types
    "Account",
    "AccountCategory",
    "PaymentSchedule",
    "LoanDetail",
    "LedgerRecord",
    "CreateOutcome",
    "CreateResult",
    "SyncResult",
    "VerifiedBalance",
    "DebtProgress",
    # Errors
    "LedgerSyncError",
    "LedgerConnectivityError",
    "LedgerCreationError",
    "LedgerTransportError",
    "VerificationError",
    "VerificationTimeoutError",
    "VerificationMismatchError",
]
