"""Catalog position -> ledger identifier mapping.

Ids are ``index + offset``. The low range below ``offset`` stays free for
system records, and the connectivity probe id must sit above every mapped id.
The mapping depends only on catalog position, so re-running against an
already-populated ledger addresses the same records.

Catalog account ids are strings and usually opaque, but a numeric one shares
the ledger's integer namespace. :func:`check_id_range` rejects a catalog in
which such an id names the ledger record of a *different* account.
"""

from __future__ import annotations

from collections.abc import Sequence

DEFAULT_ID_OFFSET: int = 100
DEFAULT_PROBE_ID: int = 999_999


def ledger_id(index: int, offset: int = DEFAULT_ID_OFFSET) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise TypeError(f"catalog index must be an int, got {type(index).__name__}")
    if index < 0:
        raise ValueError(f"catalog index must be non-negative, got {index}")
    return index + offset


def ledger_ids(count: int, offset: int = DEFAULT_ID_OFFSET) -> list[int]:
    return [ledger_id(i, offset) for i in range(count)]


def _numeric_id(account_id: str) -> int | None:
    text = account_id.strip()
    if text.isascii() and text.isdigit():
        return int(text)
    return None


def check_id_range(
    count: int,
    *,
    offset: int = DEFAULT_ID_OFFSET,
    probe_id: int = DEFAULT_PROBE_ID,
    account_ids: Sequence[str] = (),
) -> None:
    """Raise ``ValueError`` when the mapped id range is ambiguous.

    Two cases are rejected:

    - the probe id falls inside ``[offset, offset + count - 1]``;
    - a numeric entry of ``account_ids`` (catalog order) falls inside that
      range and is not the ledger id of its own position. An account whose id
      equals its own ledger id is accepted.
    """

    if offset <= 0:
        raise ValueError("id offset must be positive (id 0 is not a valid ledger id)")
    if count <= 0:
        return
    lo, hi = offset, offset + count - 1
    if lo <= probe_id <= hi:
        raise ValueError(
            f"probe id {probe_id} falls inside the mapped ledger id range [{lo}, {hi}]"
        )
    for index, account_id in enumerate(account_ids):
        value = _numeric_id(account_id)
        if value is None or not lo <= value <= hi or value == offset + index:
            continue
        raise ValueError(
            f"account id {account_id!r} at catalog position {index} collides with "
            f"ledger id {value} of catalog position {value - offset}"
        )


__all__ = [
    "DEFAULT_ID_OFFSET",
    "DEFAULT_PROBE_ID",
    "check_id_range",
    "ledger_id",
    "ledger_ids",
]
