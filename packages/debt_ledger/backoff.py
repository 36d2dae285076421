"""Backoff policies for the verification retry loops.

A policy maps a 1-based attempt number to the delay (seconds) to wait after
that attempt failed. Delays strictly increase with the attempt number. The
sleeping itself is done by the caller through an injected async ``sleep`` so
tests can record delays instead of waiting.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

type Sleep = Callable[[float], Awaitable[None]]


class BackoffPolicy(Protocol):
    def delay(self, attempt: int) -> float: ...


def _check_attempt(attempt: int) -> None:
    if isinstance(attempt, bool) or not isinstance(attempt, int) or attempt < 1:
        raise ValueError(f"attempt must be a positive integer, got {attempt!r}")


@dataclass(frozen=True, slots=True)
class LinearBackoff:
    """``attempt * base`` seconds."""

    base: float = 0.1

    def __post_init__(self) -> None:
        if self.base <= 0:
            raise ValueError("backoff base must be positive")

    def delay(self, attempt: int) -> float:
        _check_attempt(attempt)
        return attempt * self.base


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """``2 ** attempt * base`` seconds."""

    base: float = 0.05

    def __post_init__(self) -> None:
        if self.base <= 0:
            raise ValueError("backoff base must be positive")

    def delay(self, attempt: int) -> float:
        _check_attempt(attempt)
        return (2**attempt) * self.base


_POLICIES: dict[str, type[LinearBackoff] | type[ExponentialBackoff]] = {
    "linear": LinearBackoff,
    "exponential": ExponentialBackoff,
}


def backoff_from_name(name: str, base: float) -> BackoffPolicy:
    """Build a policy from its config name (``linear`` or ``exponential``)."""

    key = (name or "").strip().lower()
    cls = _POLICIES.get(key)
    if cls is None:
        raise ValueError(
            f"unknown backoff policy {name!r}; expected one of: {', '.join(sorted(_POLICIES))}"
        )
    return cls(base=base)


__all__ = [
    "BackoffPolicy",
    "ExponentialBackoff",
    "LinearBackoff",
    "Sleep",
    "backoff_from_name",
]
