from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from debt_ledger.api import get_debt_progress, get_verified_balances, sync_accounts
from debt_ledger.errors import (
    LedgerConnectivityError,
    LedgerCreationError,
    LedgerSyncError,
    LedgerTransportError,
    VerificationMismatchError,
    VerificationTimeoutError,
)
from debt_ledger.models import CreateOutcome, CreateResult, LedgerRecord
from debt_ledger.policy import AccountFlags
from debt_ledger.settings import SyncSettings
from tests.helpers.accounts import make_account, sample_catalog
from tests.helpers.fake_ledger import FakeLedgerGateway, RecordingSleep

PROBE = 999_999


@pytest.fixture()
def settings() -> SyncSettings:
    return SyncSettings(settle_seconds=0)


def _sync(catalog, gateway, settings, **kw):
    return asyncio.run(
        sync_accounts(catalog, gateway=gateway, settings=settings, sleep=RecordingSleep(), **kw)
    )


# ---- Sequential sync ------------------------------------------------------------


def test_single_card_is_created_verified_and_reported_fully_owed(settings):
    card = make_account("card-1", total="1500.00", balance="1500.00")
    gw = FakeLedgerGateway()

    results = _sync([card], gw, settings)

    assert [(r.account_id, r.ledger_id, r.outcome) for r in results] == [
        ("card-1", 100, CreateOutcome.CREATED)
    ]
    assert gw.records[100] == LedgerRecord(
        id=100,
        debits_posted=150000,
        credits_posted=150000,
        code=3,
        flags=int(AccountFlags.DEBITS_MUST_NOT_EXCEED_CREDITS | AccountFlags.HISTORY),
        ledger=1,
        user_data_32=3,
    )
    assert gw.calls == [
        ("create", (PROBE,)),
        ("create", (100,)),
        ("lookup", (100,)),
    ]

    progress = asyncio.run(
        get_debt_progress([card], gateway=gw, settings=settings, sleep=RecordingSleep())
    )
    assert progress[100].percentage_paid == Decimal("100.00")
    assert progress[100].remaining_balance == Decimal("0.00")
    assert progress[100].account_id == "card-1"


def test_each_account_is_verified_before_the_next_is_created(settings):
    gw = FakeLedgerGateway()

    _sync(sample_catalog(), gw, settings)

    expected = [("create", (PROBE,))]
    for lid in range(100, 107):
        expected += [("create", (lid,)), ("lookup", (lid,))]
    assert gw.calls == expected


def test_second_run_is_idempotent(settings):
    gw = FakeLedgerGateway()
    first = _sync(sample_catalog(), gw, settings)
    stored = dict(gw.records)

    second = _sync(sample_catalog(), gw, settings)

    assert all(r.outcome is CreateOutcome.CREATED for r in first)
    assert all(r.outcome is CreateOutcome.ALREADY_EXISTS for r in second)
    assert [r.ledger_id for r in second] == [r.ledger_id for r in first]
    assert gw.records == stored


def test_settle_pauses_bracket_each_create():
    gw = FakeLedgerGateway()
    sleep = RecordingSleep()

    asyncio.run(
        sync_accounts(
            [make_account("a"), make_account("b")],
            gateway=gw,
            settings=SyncSettings(settle_seconds=0.05),
            sleep=sleep,
        )
    )

    assert sleep.delays == [0.05] * 4


def test_existing_record_with_stale_balances_is_not_overwritten(settings):
    gw = FakeLedgerGateway()
    gw.records[100] = LedgerRecord(id=100, debits_posted=1, credits_posted=150000)

    with pytest.raises(VerificationMismatchError) as ei:
        _sync([make_account("card-1")], gw, settings)

    assert ei.value.account_id == "card-1"
    assert ei.value.expected == (150000, 150000)
    assert ei.value.observed == (1, 150000)
    assert gw.records[100].debits_posted == 1


def test_rejected_create_aborts_run_and_names_the_account(settings):
    catalog = sample_catalog()
    rejected = CreateResult(
        record_id=102, outcome=CreateOutcome.OTHER_ERROR, code=44, detail="LEDGER_MUST_NOT_BE_ZERO"
    )
    gw = FakeLedgerGateway(forced_outcomes={102: rejected})

    with pytest.raises(LedgerCreationError) as ei:
        _sync(catalog, gw, settings)

    err = ei.value
    assert err.account_id == "2"
    assert err.ledger_id == 102
    assert err.code == 44
    assert "LEDGER_MUST_NOT_BE_ZERO" in str(err)
    # nothing after the failing account is touched
    assert gw.creates() == [(PROBE,), (100,), (101,), (102,)]
    assert 103 not in gw.records


def test_record_that_never_appears_times_out_with_account_id(settings):
    gw = FakeLedgerGateway(hide_for={101: 99})

    with pytest.raises(VerificationTimeoutError) as ei:
        _sync(sample_catalog(), gw, settings)

    assert ei.value.account_id == "1"
    assert gw.lookups().count((101,)) == settings.max_attempts
    assert (102,) not in gw.creates()


# ---- Connectivity probe ---------------------------------------------------------


def test_unreachable_gateway_fails_before_any_account(settings):
    gw = FakeLedgerGateway(fail_creates_with=ConnectionError("refused"))

    with pytest.raises(LedgerConnectivityError) as ei:
        _sync(sample_catalog(), gw, settings)

    assert isinstance(ei.value.__cause__, ConnectionError)
    assert gw.calls == [("create", (PROBE,))]


def test_rejected_probe_fails_before_any_account(settings):
    rejected = CreateResult(record_id=PROBE, outcome=CreateOutcome.OTHER_ERROR, code=5)
    gw = FakeLedgerGateway(forced_outcomes={PROBE: rejected})

    with pytest.raises(LedgerConnectivityError):
        _sync(sample_catalog(), gw, settings)

    assert gw.calls == [("create", (PROBE,))]


def test_existing_probe_counts_as_connected(settings):
    gw = FakeLedgerGateway()
    gw.records[PROBE] = LedgerRecord(id=PROBE, debits_posted=0, credits_posted=0, code=1)

    results = _sync([make_account("a")], gw, settings)

    assert results[0].outcome is CreateOutcome.CREATED


def test_probe_inside_mapped_range_is_rejected_up_front():
    gw = FakeLedgerGateway()
    settings = SyncSettings(probe_id=102, settle_seconds=0)

    with pytest.raises(ValueError):
        _sync(sample_catalog(), gw, settings)

    assert gw.calls == []


def test_numeric_account_id_naming_another_accounts_record_is_rejected(settings):
    catalog = [make_account(str(i)) for i in range(5)] + [make_account("101")]
    gw = FakeLedgerGateway()

    with pytest.raises(ValueError, match="collides with ledger id 101"):
        _sync(catalog, gw, settings)

    assert gw.calls == []


def test_numeric_account_id_equal_to_its_own_ledger_id_is_accepted(settings):
    catalog = [make_account("chk"), make_account("101")]

    results = _sync(catalog, FakeLedgerGateway(), settings)

    assert [(r.account_id, r.ledger_id) for r in results] == [("chk", 100), ("101", 101)]


def test_empty_catalog_only_probes(settings):
    gw = FakeLedgerGateway()

    assert _sync([], gw, settings) == []
    assert gw.calls == [("create", (PROBE,))]


def test_malformed_connectivity_answer_is_not_a_creation_failure(settings):
    class _NoAnswer(FakeLedgerGateway):
        async def create(self, records):
            await super().create(records)
            return []

    gw = _NoAnswer()

    with pytest.raises(LedgerConnectivityError) as ei:
        _sync(sample_catalog(), gw, settings)

    assert not isinstance(ei.value, LedgerCreationError)
    assert isinstance(ei.value.__cause__, LedgerCreationError)
    assert ei.value.ledger_id == PROBE
    assert gw.creates() == [(PROBE,)]


# ---- Ledger dropping mid-run --------------------------------------------------------


def test_create_failure_mid_run_names_the_account(settings):
    gw = FakeLedgerGateway(fail_creates_for={101: ConnectionError("connection reset")})

    with pytest.raises(LedgerTransportError) as ei:
        _sync(sample_catalog(), gw, settings)

    err = ei.value
    assert isinstance(err, LedgerSyncError)
    assert err.account_id == "1"
    assert err.ledger_id == 101
    assert err.operation == "create"
    assert isinstance(err.__cause__, ConnectionError)
    assert gw.creates() == [(PROBE,), (100,), (101,)]


def test_lookup_failure_during_verification_names_the_account(settings):
    gw = FakeLedgerGateway(fail_lookups_for={102: OSError("broken pipe")})

    with pytest.raises(LedgerTransportError) as ei:
        _sync(sample_catalog(), gw, settings)

    assert ei.value.account_id == "2"
    assert ei.value.operation == "lookup"
    assert (103,) not in gw.creates()


def test_bulk_create_failure_names_the_chunk(settings):
    gw = FakeLedgerGateway(fail_creates_for={104: ConnectionError("connection reset")})
    bulk = SyncSettings(batch_size=3, settle_seconds=0)

    with pytest.raises(LedgerTransportError) as ei:
        _sync(sample_catalog(), gw, bulk, bulk=True)

    assert ei.value.ledger_id == 103
    assert ei.value.account_id == "3"
    assert "103, 104, 105" in str(ei.value)
    assert gw.lookups() == []


def test_errors_share_a_common_base(settings):
    gw = FakeLedgerGateway(fail_creates_with=OSError("down"))
    with pytest.raises(LedgerSyncError):
        _sync([make_account("a")], gw, settings)


# ---- Bulk sync --------------------------------------------------------------------


def test_bulk_mode_batches_creates_and_verifies_at_the_end():
    gw = FakeLedgerGateway()
    settings = SyncSettings(batch_size=3, settle_seconds=0)

    results = _sync(sample_catalog(), gw, settings, bulk=True)

    assert [r.ledger_id for r in results] == list(range(100, 107))
    assert gw.calls == [
        ("create", (PROBE,)),
        ("create", (100, 101, 102)),
        ("create", (103, 104, 105)),
        ("create", (106,)),
        ("lookup", (100, 101, 102)),
        ("lookup", (103, 104, 105)),
        ("lookup", (106,)),
    ]


def test_bulk_mode_attributes_a_rejection_to_its_account():
    rejected = CreateResult(record_id=104, outcome=CreateOutcome.OTHER_ERROR, code=9)
    gw = FakeLedgerGateway(forced_outcomes={104: rejected})
    settings = SyncSettings(batch_size=5, settle_seconds=0)

    with pytest.raises(LedgerCreationError) as ei:
        _sync(sample_catalog(), gw, settings, bulk=True)

    assert ei.value.account_id == "4"
    assert gw.lookups() == []


# ---- Balances and progress -------------------------------------------------------


def test_verified_balances_cover_every_account(settings):
    gw = FakeLedgerGateway()
    catalog = sample_catalog()
    _sync(catalog, gw, settings)

    balances = asyncio.run(
        get_verified_balances(catalog, gateway=gw, settings=settings, sleep=RecordingSleep())
    )

    assert list(balances) == list(range(100, 107))
    assert balances[101].current_balance == Decimal("1471.76")
    assert balances[101].total_amount == Decimal("1500.00")
    assert balances[100].total_amount == Decimal("0.00")


def test_balances_for_unsynced_catalog_time_out(settings):
    with pytest.raises(VerificationTimeoutError) as ei:
        asyncio.run(
            get_verified_balances(
                [make_account("a")],
                gateway=FakeLedgerGateway(),
                settings=settings,
                sleep=RecordingSleep(),
            )
        )
    assert ei.value.missing_ids == (100,)
    assert ei.value.account_id == "a"


def test_debt_progress_for_household_catalog(settings):
    gw = FakeLedgerGateway()
    catalog = sample_catalog()
    _sync(catalog, gw, settings)

    progress = asyncio.run(
        get_debt_progress(catalog, gateway=gw, settings=settings, sleep=RecordingSleep())
    )

    # checking accounts, open or closed, are not debts
    assert sorted(progress) == [101, 102, 103, 104, 105]
    assert progress[101].percentage_paid == Decimal("98.12")
    assert progress[101].remaining_balance == Decimal("28.24")
    assert progress[103].percentage_paid == Decimal("55.02")
    assert progress[103].remaining_balance == Decimal("494.74")
    assert progress[105].percentage_paid == Decimal("100.00")


def test_balances_reject_reserved_id_inside_mapped_range_before_any_lookup():
    gw = FakeLedgerGateway()
    settings = SyncSettings(probe_id=101, settle_seconds=0)

    with pytest.raises(ValueError, match="probe id 101"):
        asyncio.run(
            get_verified_balances(
                sample_catalog(), gateway=gw, settings=settings, sleep=RecordingSleep()
            )
        )
    with pytest.raises(ValueError):
        asyncio.run(
            get_debt_progress(
                sample_catalog(), gateway=gw, settings=settings, sleep=RecordingSleep()
            )
        )

    assert gw.calls == []
