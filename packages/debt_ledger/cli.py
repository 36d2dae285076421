# ruff: noqa: I001
"""CLI for the ``debt_ledger`` package.

This module exposes callable command handlers (``cmd_sync``, ``cmd_balances``,
...) and a Typer-based console interface. Ledger connection settings and sync
knobs are read from the environment after loading a local ``.env`` with
``python-dotenv``. Business logic lives in ``debt_ledger.api``.

Output is one tab-separated line per record on stdout; errors go to stderr
with exit status 1.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .errors import LedgerSyncError
from .logging_setup import configure_logging

T = TypeVar("T")


def _open_gateway() -> Any:
    """Return the production gateway (an async context manager)."""

    from .settings import LedgerConnection
    from .tigerbeetle_gateway import TigerBeetleGateway

    return TigerBeetleGateway(LedgerConnection.from_env())


def _fmt(value: object | None) -> str:
    return "" if value is None else str(value)


def _run_with_gateway(
    catalog_path: str | None,
    work: Callable[[Any, list[Any], Any], Awaitable[T]],
) -> T | None:
    """Load inputs, open the gateway and run ``work``; report failures on stderr.

    Returns ``None`` after printing an error, otherwise the result of ``work``.
    """

    from .catalog import load_catalog
    from .settings import SyncSettings

    try:
        settings = SyncSettings.from_env()
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return None

    catalog: list[Any] = []
    if catalog_path is not None:
        try:
            catalog = load_catalog(catalog_path)
        except FileNotFoundError:
            print(f"Error: File not found: {catalog_path}", file=sys.stderr)
            return None
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            print(f"Error: invalid catalog '{catalog_path}': {e}", file=sys.stderr)
            return None

    async def _main() -> T:
        async with _open_gateway() as gateway:
            return await work(gateway, catalog, settings)

    try:
        return asyncio.run(_main())
    except LedgerSyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None
    except ValueError as e:
        # raised before any ledger call, e.g. probe id inside the mapped id range
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return None
    except ImportError as e:
        print(
            f"Error: ledger client unavailable ({e}); install the 'tigerbeetle' extra",
            file=sys.stderr,
        )
        return None


def cmd_probe() -> int:
    """Create the connectivity probe record and report the outcome."""

    from .sync import check_connectivity

    async def _work(gateway: Any, _catalog: list[Any], settings: Any) -> Any:
        return await check_connectivity(gateway, settings)

    outcome = _run_with_gateway(None, _work)
    if outcome is None:
        return 1
    print(f"ok\t{outcome.value}")
    return 0


def cmd_sync(catalog_path: str, *, bulk: bool = False) -> int:
    """Synchronize the catalog and print ``<account_id>\\t<ledger_id>\\t<outcome>``."""

    from .api import sync_accounts

    async def _work(gateway: Any, catalog: list[Any], settings: Any) -> Any:
        return await sync_accounts(catalog, gateway=gateway, settings=settings, bulk=bulk)

    results = _run_with_gateway(catalog_path, _work)
    if results is None:
        return 1
    for r in results:
        print(f"{r.account_id}\t{r.ledger_id}\t{r.outcome.value}")
    return 0


def cmd_balances(catalog_path: str) -> int:
    """Print ``<ledger_id>\\t<current_balance>\\t<total_amount>`` per account."""

    from .api import get_verified_balances

    async def _work(gateway: Any, catalog: list[Any], settings: Any) -> Any:
        return await get_verified_balances(catalog, gateway=gateway, settings=settings)

    balances = _run_with_gateway(catalog_path, _work)
    if balances is None:
        return 1
    for lid, bal in balances.items():
        print(f"{lid}\t{bal.current_balance}\t{bal.total_amount}")
    return 0


def cmd_progress(catalog_path: str) -> int:
    """Print payoff progress for each debt account."""

    from .api import get_debt_progress

    async def _work(gateway: Any, catalog: list[Any], settings: Any) -> Any:
        return await get_debt_progress(catalog, gateway=gateway, settings=settings)

    progress = _run_with_gateway(catalog_path, _work)
    if progress is None:
        return 1
    for lid, p in progress.items():
        print(
            "\t".join(
                [
                    str(lid),
                    p.name,
                    str(p.percentage_paid),
                    str(p.remaining_balance),
                    _fmt(p.next_payment_due),
                    _fmt(p.minimum_payment),
                ]
            )
        )
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Synchronize a debt/account catalog into a TigerBeetle ledger and report "
        "verified balances and payoff progress. Loads settings from a local .env."
    ),
)


# Module-level option object to satisfy ruff B008 (no calls in parameter defaults).
CATALOG_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--catalog",
    help="Path to a JSON account catalog",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
    readable=True,
)


@app.command("probe")
def probe_cmd() -> None:
    """Check that the ledger is reachable by creating the probe record."""

    raise typer.Exit(cmd_probe())


@app.command("sync")
def sync_cmd(
    catalog: Annotated[Path, CATALOG_OPTION],
    bulk: bool = typer.Option(
        False, help="Submit records in batches and verify the whole catalog at the end."
    ),
) -> None:
    """Create or confirm one ledger record per account, verifying each."""

    raise typer.Exit(cmd_sync(str(catalog), bulk=bulk))


@app.command("balances")
def balances_cmd(catalog: Annotated[Path, CATALOG_OPTION]) -> None:
    """Print verified balances for every catalog account."""

    raise typer.Exit(cmd_balances(str(catalog)))


@app.command("progress")
def progress_cmd(catalog: Annotated[Path, CATALOG_OPTION]) -> None:
    """Print payoff progress for debt accounts."""

    raise typer.Exit(cmd_progress(str(catalog)))


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to DEBT_LEDGER_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps variables already set in the environment
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
