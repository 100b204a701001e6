"""Tests for merchant balance calculation."""

import threading
import pytest
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from settleit.domain import entry_types
from settleit.domain.balance import MerchantBalanceService
from settleit.domain.entities import PayoutDocument
from settleit.domain.errors import MerchantNotFound, NoPayoutCurrency
from settleit.domain.statuses import PayoutStatus, RoyaltyReportStatus


def _payout_document(merchant_id, balance, status, created_at):
    return PayoutDocument(
        id=0,
        merchant_id=merchant_id,
        currency="EUR",
        status=status,
        source_ids=(),
        balance=Decimal(balance),
        total_fees=Decimal("0"),
        total_transactions=0,
        period_from=None,
        period_to=None,
        arrival_date=created_at,
        created_at=created_at,
    )


@pytest.fixture
def balance_service(temp_db):
    return MerchantBalanceService(temp_db)


def test_empty_balance(balance_service, merchant):
    balance = balance_service.compute(merchant.id)
    assert balance.debit == Decimal("0")
    assert balance.credit == Decimal("0")
    assert balance.rolling_reserve == Decimal("0")
    assert balance.total == Decimal("0")
    assert balance.currency == "EUR"


def test_debit_counts_accepted_and_paid_reports(balance_service, merchant, make_report):
    make_report(merchant.id, "100", RoyaltyReportStatus.ACCEPTED)
    make_report(merchant.id, "50", RoyaltyReportStatus.PAID)
    make_report(merchant.id, "7", RoyaltyReportStatus.PENDING)
    make_report(merchant.id, "9", RoyaltyReportStatus.DISPUTE)
    make_report(merchant.id, "11", RoyaltyReportStatus.ACCEPTED, currency="USD")
    make_report(merchant.id, "13", RoyaltyReportStatus.ACCEPTED, is_deleted=True)

    balance = balance_service.compute(merchant.id)
    assert balance.debit == Decimal("150.00")
    assert balance.total == Decimal("150.00")


def test_paid_report_scenario(temp_db, balance_service, merchant, make_report):
    """Test debit 12345 against a paid 10432 payout leaves 1913."""
    make_report(merchant.id, "12345", RoyaltyReportStatus.PAID)
    temp_db.create_payout_document(
        _payout_document(merchant.id, "10432", PayoutStatus.PAID, datetime(2024, 2, 1))
    )

    balance = balance_service.compute(merchant.id)
    assert balance.debit == Decimal("12345.00")
    assert balance.credit == Decimal("10432.00")
    assert balance.rolling_reserve == Decimal("0.00")
    assert balance.total == Decimal("1913.00")


def test_credit_ignores_skip_failed_and_canceled(temp_db, balance_service, merchant, make_report):
    make_report(merchant.id, "1000", RoyaltyReportStatus.ACCEPTED)
    for status in (PayoutStatus.SKIP, PayoutStatus.FAILED, PayoutStatus.CANCELED):
        temp_db.create_payout_document(_payout_document(merchant.id, "400", status, datetime(2024, 2, 1)))
    temp_db.create_payout_document(_payout_document(merchant.id, "300", PayoutStatus.PENDING, datetime(2024, 2, 2)))

    balance = balance_service.compute(merchant.id)
    assert balance.credit == Decimal("300.00")
    assert balance.total == Decimal("700.00")


def test_rolling_reserve_counts_only_after_last_payout(temp_db, balance_service, merchant):
    """Test reserve entries before the newest active payout document are ignored."""
    temp_db.add_accounting_entry(
        entry_types.ROLLING_RESERVE_CREATE, merchant.id, "EUR", Decimal("500"), created_at=datetime(2024, 1, 10)
    )
    temp_db.create_payout_document(_payout_document(merchant.id, "0", PayoutStatus.PAID, datetime(2024, 2, 1)))
    temp_db.add_accounting_entry(
        entry_types.ROLLING_RESERVE_CREATE, merchant.id, "EUR", Decimal("80"), created_at=datetime(2024, 2, 5)
    )
    temp_db.add_accounting_entry(
        entry_types.ROLLING_RESERVE_RELEASE, merchant.id, "EUR", Decimal("30"), created_at=datetime(2024, 2, 6)
    )

    assert balance_service.rolling_reserve(merchant.id, "EUR") == Decimal("50")
    balance = balance_service.compute(merchant.id)
    assert balance.rolling_reserve == Decimal("50.00")
    assert balance.total == Decimal("-50.00")


def test_rolling_reserve_without_payouts_counts_everything(temp_db, balance_service, merchant):
    temp_db.add_accounting_entry(
        entry_types.ROLLING_RESERVE_CREATE, merchant.id, "EUR", Decimal("25"), created_at=datetime(2023, 6, 1)
    )
    assert balance_service.rolling_reserve(merchant.id, "EUR") == Decimal("25")


def test_rolling_reserve_ignores_other_currencies(temp_db, balance_service, merchant):
    temp_db.add_accounting_entry(
        entry_types.ROLLING_RESERVE_CREATE, merchant.id, "USD", Decimal("500"), created_at=datetime(2024, 1, 10)
    )

    balance = balance_service.compute(merchant.id)
    assert balance.currency == "EUR"
    assert balance.rolling_reserve == Decimal("0.00")
    assert balance.total == Decimal("0.00")


def test_rolling_reserve_cutoff_uses_payouts_in_same_currency(temp_db, balance_service, merchant):
    """Test a payout in another currency does not reset the reserve window."""
    temp_db.add_accounting_entry(
        entry_types.ROLLING_RESERVE_CREATE, merchant.id, "EUR", Decimal("80"), created_at=datetime(2024, 1, 10)
    )
    usd_document = replace(
        _payout_document(merchant.id, "0", PayoutStatus.PAID, datetime(2024, 2, 1)), currency="USD"
    )
    temp_db.create_payout_document(usd_document)

    assert balance_service.rolling_reserve(merchant.id, "EUR") == Decimal("80")
    assert balance_service.compute(merchant.id).rolling_reserve == Decimal("80.00")


def test_each_compute_appends_snapshot(temp_db, balance_service, merchant, make_report):
    first = balance_service.compute(merchant.id)
    make_report(merchant.id, "10", RoyaltyReportStatus.ACCEPTED)
    second = balance_service.compute(merchant.id)

    assert second.id != first.id
    assert second.total == Decimal("10.00")
    assert balance_service.get(merchant.id).id == second.id


def test_get_computes_when_missing(balance_service, merchant):
    balance = balance_service.get(merchant.id)
    assert balance.total == Decimal("0")


def test_unknown_merchant(balance_service):
    with pytest.raises(MerchantNotFound):
        balance_service.compute(404)


def test_merchant_without_payout_currency(temp_db, balance_service):
    merchant_id = temp_db.create_merchant("No Currency", None, Decimal("0"))
    with pytest.raises(NoPayoutCurrency):
        balance_service.compute(merchant_id)


def test_concurrent_recomputes_are_consistent(temp_db, balance_service, merchant, make_report):
    """Test parallel recomputes for one merchant all store the same total."""
    make_report(merchant.id, "42", RoyaltyReportStatus.ACCEPTED)
    totals = []

    def recompute():
        try:
            totals.append(balance_service.compute(merchant.id).total)
        finally:
            temp_db.release_session()

    threads = [threading.Thread(target=recompute) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert totals == [Decimal("42.00")] * 4
