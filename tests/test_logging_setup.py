from __future__ import annotations

import io
import logging

from debt_ledger.logging_setup import configure_logging, get_logger, reset_logging


def test_unconfigured_package_is_silent():
    logger = get_logger("debt_ledger.sync")
    pkg = logging.getLogger("debt_ledger")
    assert logger.name == "debt_ledger.sync"
    assert any(isinstance(h, logging.NullHandler) for h in pkg.handlers)


def test_configure_once_and_reset():
    first, second = io.StringIO(), io.StringIO()
    configure_logging("WARNING", fmt="%(levelname)s %(message)s", stream=first)
    configure_logging("DEBUG", stream=second)

    log = get_logger("debt_ledger.verification")
    log.info("verify:ok id=%d", 100)
    log.warning("verify:metadata_drift id=%d", 100)

    assert first.getvalue() == "WARNING verify:metadata_drift id=100\n"
    assert second.getvalue() == ""
    assert logging.getLogger("debt_ledger").propagate is False

    reset_logging()
    assert logging.getLogger("debt_ledger").propagate is True


def test_level_and_format_from_environment(monkeypatch):
    monkeypatch.setenv("DEBT_LEDGER_LOG_LEVEL", "error")
    monkeypatch.setenv("DEBT_LEDGER_LOG_FORMAT", "[%(name)s] %(message)s")
    out = io.StringIO()

    configure_logging(stream=out)
    get_logger("debt_ledger.api").warning("balances:verified records=%d", 3)
    get_logger("debt_ledger.api").error("probe:failed id=%d", 999999)

    assert out.getvalue() == "[debt_ledger.api] probe:failed id=999999\n"


def test_unknown_level_name_falls_back_to_info():
    out = io.StringIO()
    configure_logging("LOUD", fmt="%(message)s", stream=out)

    get_logger("debt_ledger.sync").debug("hidden")
    get_logger("debt_ledger.sync").info("shown")

    assert out.getvalue() == "shown\n"
