"""Tests for payout document creation and status changes."""

import logging
import pytest
from datetime import date, datetime
from decimal import Decimal
from settleit.domain.errors import (
    AmountInvalid,
    BalanceError,
    NotEnoughBalance,
    NotModified,
    PayoutNotFound,
    SourcesDispute,
    SourcesNotFound,
    SourcesPending,
    StatusChangeForbidden,
)
from settleit.domain.payout import PayoutDocumentService
from settleit.domain.statuses import PayoutStatus, RoyaltyReportStatus

from conftest import FailingExporter

NOW = datetime(2024, 3, 6, 12, 0)


@pytest.fixture
def accepted_pair(engine, merchant, make_report):
    """Two accepted reports worth 13579.50 together, balance computed."""
    first = make_report(merchant.id, "12345")
    second = make_report(merchant.id, "1234.5")
    engine.balance.compute(merchant.id)
    return first, second


class TestSources:
    def test_no_reports(self, engine, merchant):
        with pytest.raises(SourcesNotFound):
            engine.payout.get_sources(merchant.id)

    def test_pending_blocks_payout(self, engine, merchant, make_report):
        make_report(merchant.id, "100")
        make_report(merchant.id, "100", RoyaltyReportStatus.PENDING)
        with pytest.raises(SourcesPending):
            engine.payout.get_sources(merchant.id)

    def test_pending_takes_precedence_over_dispute(self, engine, merchant, make_report):
        make_report(merchant.id, "100", RoyaltyReportStatus.DISPUTE, correction_amount=Decimal("1"))
        make_report(merchant.id, "100", RoyaltyReportStatus.PENDING)
        with pytest.raises(SourcesPending):
            engine.payout.get_sources(merchant.id)

    def test_dispute_blocks_payout(self, engine, merchant, make_report):
        make_report(merchant.id, "100")
        make_report(merchant.id, "100", RoyaltyReportStatus.DISPUTE, correction_amount=Decimal("1"))
        with pytest.raises(SourcesDispute):
            engine.payout.get_sources(merchant.id)

    def test_other_currency_and_new_reports_ignored(self, engine, merchant, make_report):
        kept = make_report(merchant.id, "100")
        make_report(merchant.id, "100", currency="USD")
        make_report(merchant.id, "100", RoyaltyReportStatus.NEW)
        make_report(merchant.id, "100", RoyaltyReportStatus.PENDING, is_deleted=True)

        assert [r.id for r in engine.payout.get_sources(merchant.id)] == [kept.id]


class TestCreate:
    def test_pending_document_over_minimum(self, engine, merchant, accepted_pair, publisher):
        """Test 12345 + 1234.5 against a 13000 minimum creates a Pending document."""
        first, second = accepted_pair
        assert engine.balance.get(merchant.id).total == Decimal("13579.50")

        document = engine.payout.create(merchant.id, "March payout", now=NOW)

        assert document.status == PayoutStatus.PENDING
        assert document.balance == Decimal("13579.50")
        assert document.source_ids == (first.id, second.id)
        assert document.total_transactions == 6
        assert document.period_from == first.period_from
        assert document.period_to == second.period_to
        assert document.arrival_date.date() == date(2024, 3, 11)
        assert document.description == "March payout"

        for report in engine.payout.get_document_reports(document.id):
            assert report.payout_document_id == document.id
            assert report.status == RoyaltyReportStatus.ACCEPTED
        assert engine.balance.get(merchant.id).total == Decimal("0.00")
        assert publisher.events("payout_document.status")[0]["data"]["status"] == "pending"
        assert len(engine.payout.get_changes(document.id)) == 1

    def test_sources_are_consumed(self, engine, merchant, accepted_pair):
        engine.payout.create(merchant.id, now=NOW)
        with pytest.raises(SourcesNotFound):
            engine.payout.create(merchant.id, now=NOW)

    def test_skip_below_minimum(self, engine, merchant, make_report):
        make_report(merchant.id, "1234.5")
        engine.balance.compute(merchant.id)

        document = engine.payout.create(merchant.id, now=NOW)

        assert document.status == PayoutStatus.SKIP
        assert document.balance == Decimal("1234.50")
        assert engine.balance.get(merchant.id).total == Decimal("1234.50")

    def test_skipped_sources_are_reused(self, engine, merchant, make_report):
        small = make_report(merchant.id, "1234.5")
        engine.balance.compute(merchant.id)
        engine.payout.create(merchant.id, now=NOW)

        large = make_report(merchant.id, "12345")
        engine.balance.compute(merchant.id)
        document = engine.payout.create(merchant.id, now=NOW)

        assert document.status == PayoutStatus.PENDING
        assert document.source_ids == (small.id, large.id)

    def test_skipped_sources_kept_when_reuse_disabled(self, temp_db, settings, merchant, make_report):
        service = PayoutDocumentService(temp_db, settings.model_copy(update={"reuse_skipped_sources": False}))
        make_report(merchant.id, "1234.5")
        service.balance.compute(merchant.id)
        service.create(merchant.id, now=NOW)

        with pytest.raises(SourcesNotFound):
            service.get_sources(merchant.id)

    def test_not_enough_balance(self, temp_db, engine, merchant, make_report):
        """Test a 1913 balance cannot cover a 12345 payout and nothing is stored."""
        make_report(merchant.id, "12345")
        temp_db.add_merchant_balance(
            merchant_id=merchant.id,
            currency="EUR",
            debit=Decimal("12345"),
            credit=Decimal("10432"),
            rolling_reserve=Decimal("0"),
            total=Decimal("1913"),
        )

        with pytest.raises(NotEnoughBalance):
            engine.payout.create(merchant.id, now=NOW)
        assert engine.payout.list_documents(merchant_id=merchant.id) == []

    def test_missing_balance_snapshot(self, engine, merchant, make_report):
        make_report(merchant.id, "100")
        with pytest.raises(BalanceError):
            engine.payout.create(merchant.id, now=NOW)

    def test_non_positive_amount(self, engine, merchant, make_report):
        make_report(merchant.id, "10", rolling_reserve_amount=Decimal("10"))
        engine.balance.compute(merchant.id)
        with pytest.raises(AmountInvalid):
            engine.payout.create(merchant.id, now=NOW)

    def test_export_runs_after_creation(self, engine, merchant, accepted_pair, exporter):
        document = engine.payout.create(merchant.id, now=NOW)
        engine.payout.wait_for_exports(timeout=5)

        exported, reports = exporter.exported[0]
        assert exported.id == document.id
        assert len(reports) == 2

    def test_export_failure_does_not_undo_document(self, temp_db, settings, merchant, accepted_pair, caplog):
        service = PayoutDocumentService(temp_db, settings, exporter=FailingExporter())

        with caplog.at_level(logging.ERROR, logger="settleit.domain.payout"):
            document = service.create(merchant.id, now=NOW)
            service.wait_for_exports(timeout=5)

        assert service.get_document(document.id).status == PayoutStatus.PENDING
        assert "Payout document export failed" in caplog.text


class TestUpdate:
    def test_paid_marks_sources_paid(self, engine, merchant, accepted_pair):
        document = engine.payout.create(merchant.id, now=NOW)
        paid_at = datetime(2024, 3, 8, 9, 0)

        updated = engine.payout.update(document.id, PayoutStatus.PAID, transaction_id="tx-1", now=paid_at)

        assert updated.status == PayoutStatus.PAID
        assert updated.transaction_id == "tx-1"
        assert updated.paid_at == paid_at
        for report in engine.payout.get_document_reports(document.id):
            assert report.status == RoyaltyReportStatus.PAID
            assert report.payout_date == paid_at
        assert engine.balance.get(merchant.id).total == Decimal("0.00")

    def test_failed_releases_sources(self, engine, merchant, accepted_pair):
        document = engine.payout.create(merchant.id, now=NOW)

        updated = engine.payout.update(
            document.id,
            PayoutStatus.FAILED,
            failure_code="insufficient_funds",
            failure_message="Bank rejected",
            failure_transaction="tx-9",
        )

        assert updated.failure_code == "insufficient_funds"
        assert updated.failure_message == "Bank rejected"
        assert updated.failure_transaction == "tx-9"
        assert len(engine.payout.get_sources(merchant.id)) == 2
        assert engine.balance.get(merchant.id).total == Decimal("13579.50")

    def test_canceled_releases_sources(self, engine, merchant, accepted_pair):
        document = engine.payout.create(merchant.id, now=NOW)
        engine.payout.update(document.id, PayoutStatus.CANCELED)

        again = engine.payout.create(merchant.id, now=NOW)
        assert again.source_ids == document.source_ids
        assert [d.status for d in engine.payout.list_documents(merchant_id=merchant.id)] == [
            PayoutStatus.PENDING,
            PayoutStatus.CANCELED,
        ]

    def test_same_status_not_modified(self, engine, merchant, accepted_pair):
        document = engine.payout.create(merchant.id, now=NOW)
        with pytest.raises(NotModified):
            engine.payout.update(document.id, PayoutStatus.PENDING)

    def test_final_status_cannot_change(self, engine, merchant, accepted_pair):
        document = engine.payout.create(merchant.id, now=NOW)
        engine.payout.update(document.id, PayoutStatus.PAID)
        with pytest.raises(StatusChangeForbidden):
            engine.payout.update(document.id, PayoutStatus.CANCELED)

    def test_skip_is_terminal(self, engine, merchant, make_report):
        make_report(merchant.id, "50")
        engine.balance.compute(merchant.id)
        document = engine.payout.create(merchant.id, now=NOW)
        with pytest.raises(StatusChangeForbidden):
            engine.payout.update(document.id, PayoutStatus.PAID)

    def test_unknown_document(self, engine):
        with pytest.raises(PayoutNotFound):
            engine.payout.update(999, PayoutStatus.PAID)


def test_auto_create(temp_db, engine, merchant, accepted_pair, make_report):
    idle = temp_db.create_merchant("Idle", "EUR", Decimal("0"))
    waiting = temp_db.create_merchant("Waiting", "EUR", Decimal("0"))
    make_report(waiting, "10", RoyaltyReportStatus.PENDING)
    temp_db.create_merchant("No Currency", None, Decimal("0"))

    result = engine.payout.auto_create(now=NOW)

    assert list(result.succeeded) == [merchant.id]
    assert result.skipped == {idle: SourcesNotFound.code}
    assert isinstance(result.errors[waiting], SourcesPending)
