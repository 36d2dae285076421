"""Runtime knobs for a sync run.

Defaults reproduce the production behavior (probe id 999999, ids from 100,
batches of 5, 5 attempts, linear backoff). Each knob can be overridden through
a ``DEBT_LEDGER_*`` environment variable; the CLI loads a local ``.env``
before calling :meth:`SyncSettings.from_env`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .backoff import BackoffPolicy, LinearBackoff, backoff_from_name
from .identifiers import DEFAULT_ID_OFFSET, DEFAULT_PROBE_ID
from .policy import DEFAULT_LEDGER

DEFAULT_BATCH_SIZE: int = 5
DEFAULT_MAX_ATTEMPTS: int = 5
DEFAULT_BACKOFF_BASE: float = 0.1
DEFAULT_SETTLE_SECONDS: float = 0.05

DEFAULT_CLUSTER_ID: int = 0
DEFAULT_ADDRESS: str = "127.0.0.1:3000"


def _env_int(env: Mapping[str, str], name: str, default: int, *, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


@dataclass(frozen=True, slots=True)
class SyncSettings:
    """Configuration for the orchestrator and verification engine."""

    probe_id: int = DEFAULT_PROBE_ID
    id_offset: int = DEFAULT_ID_OFFSET
    batch_size: int = DEFAULT_BATCH_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff: BackoffPolicy = field(default_factory=lambda: LinearBackoff(DEFAULT_BACKOFF_BASE))
    ledger: int = DEFAULT_LEDGER
    settle_seconds: float = DEFAULT_SETTLE_SECONDS

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be a positive integer")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer")
        if self.id_offset < 1:
            raise ValueError("id_offset must be a positive integer")
        if self.settle_seconds < 0:
            raise ValueError("settle_seconds must be non-negative")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> SyncSettings:
        env = os.environ if env is None else env
        base = _env_float(env, "DEBT_LEDGER_BACKOFF_BASE", DEFAULT_BACKOFF_BASE)
        if base == 0:
            raise ValueError("DEBT_LEDGER_BACKOFF_BASE must be positive")
        return cls(
            probe_id=_env_int(env, "DEBT_LEDGER_PROBE_ID", DEFAULT_PROBE_ID, minimum=1),
            id_offset=_env_int(env, "DEBT_LEDGER_ID_OFFSET", DEFAULT_ID_OFFSET, minimum=1),
            batch_size=_env_int(env, "DEBT_LEDGER_BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1),
            max_attempts=_env_int(
                env, "DEBT_LEDGER_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS, minimum=1
            ),
            backoff=backoff_from_name(env.get("DEBT_LEDGER_BACKOFF") or "linear", base),
            ledger=_env_int(env, "DEBT_LEDGER_LEDGER", DEFAULT_LEDGER, minimum=1),
            settle_seconds=_env_float(
                env, "DEBT_LEDGER_SETTLE_SECONDS", DEFAULT_SETTLE_SECONDS
            ),
        )


@dataclass(frozen=True, slots=True)
class LedgerConnection:
    """Where the ledger cluster lives (``TB_CLUSTER_ID`` / ``TB_ADDRESS``)."""

    cluster_id: int = DEFAULT_CLUSTER_ID
    replica_addresses: str = DEFAULT_ADDRESS

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> LedgerConnection:
        env = os.environ if env is None else env
        address = (env.get("TB_ADDRESS") or "").strip() or DEFAULT_ADDRESS
        return cls(
            cluster_id=_env_int(env, "TB_CLUSTER_ID", DEFAULT_CLUSTER_ID, minimum=0),
            replica_addresses=address,
        )


__all__ = ["LedgerConnection", "SyncSettings"]
