"""Load an account catalog from a JSON file.

Accepted shapes: a top-level array of account objects, or an object with an
``accounts`` array. Field names may be snake_case or camelCase. Order in the
file is catalog order, which fixes each account's ledger id.
"""

from __future__ import annotations

import json
from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from .models import Account

_CATALOG_ADAPTER: TypeAdapter[list[Account]] = TypeAdapter(list[Account])


def parse_catalog(raw: Any) -> list[Account]:
    if isinstance(raw, dict):
        if "accounts" not in raw:
            raise ValueError("catalog object must contain an 'accounts' array")
        raw = raw["accounts"]
    if not isinstance(raw, list):
        raise ValueError("catalog must be a JSON array of accounts")
    accounts = _CATALOG_ADAPTER.validate_python(raw)

    seen: set[str] = set()
    for account in accounts:
        if account.id in seen:
            raise ValueError(f"duplicate account id in catalog: {account.id!r}")
        seen.add(account.id)
    return accounts


def load_catalog(path: str | PathLike[str]) -> list[Account]:
    """Read and validate the catalog at ``path``.

    Raises ``FileNotFoundError`` / ``json.JSONDecodeError`` for unreadable
    files and ``ValueError`` (including pydantic's ``ValidationError``) for
    invalid content.
    """

    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    return parse_catalog(raw)


__all__ = ["load_catalog", "parse_catalog"]
