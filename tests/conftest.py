"""Pytest configuration shared by the suite.

- Puts the workspace ``packages/`` dir on ``sys.path`` so ``debt_ledger`` is
  importable without an install.
- Undoes any logging configuration a test performed.
- Clears every ``DEBT_LEDGER_*`` / ``TB_*`` variable so a developer's shell or
  ``.env`` never changes the knobs a test runs with.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from debt_ledger.logging_setup import reset_logging  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith(("DEBT_LEDGER_", "TB_")):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    # A CLI test may have configured the package logger; give caplog its records back.
    reset_logging()
