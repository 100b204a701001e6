"""Royalty report domain service."""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Iterable, Sequence

from settleit.config import Settings
from settleit.database.base import Database
from settleit.domain import entry_types
from settleit.domain.balance import MerchantBalanceService
from settleit.domain.entities import AccountingEntry, BatchResult, DocumentChange, RoyaltyReport
from settleit.domain.errors import (
    DisputeCorrectionRequired,
    DomainError,
    MerchantNotFound,
    NoPayoutCurrency,
    NoTransactions,
    RoyaltyReportNotFound,
    RoyaltyReportStatusChangeDenied,
    merchant_not_found,
    status_change_denied,
)
from settleit.domain.notifications import Notifier
from settleit.domain.statuses import RoyaltyReportStatus, can_transition_royalty
from settleit.utils.amount_parser import format_amount
from settleit.utils.date_parser import utcnow
from settleit.utils.deadline import Deadline, check_deadline
from settleit.utils.periods import royalty_window
from settleit.utils.serialization import payload_hash
from settleit.utils.task_group import TaskGroup

logger = logging.getLogger(__name__)

SOURCE_SYSTEM = "system"
SOURCE_AUTO_ACCEPT = "auto-accept"

ZERO = Decimal("0")


@dataclass(frozen=True)
class RoyaltyTotals:
    """Sums of a merchant's ledger entries over a report period."""

    transactions_count: int = 0
    gross_debit: Decimal = ZERO
    gross_credit: Decimal = ZERO
    fee_amount: Decimal = ZERO
    vat_amount: Decimal = ZERO
    rolling_reserve_amount: Decimal = ZERO

    @property
    def gross_amount(self) -> Decimal:
        return format_amount(self.gross_debit - self.gross_credit)

    @property
    def payout_amount(self) -> Decimal:
        return format_amount(self.gross_amount - self.fee_amount - self.vat_amount)


def calculate_totals(entries: Iterable[AccountingEntry]) -> RoyaltyTotals:
    """Classify entries into gross debit, gross credit, fee and VAT buckets.

    Entries of other types are ignored. Each payment entry counts as one
    transaction.
    """
    count = 0
    debit = credit = fee = vat = reserve = ZERO
    for entry in entries:
        if entry.type in entry_types.GROSS_DEBIT_TYPES:
            debit += entry.amount
            if entry.type == entry_types.PAYMENT:
                count += 1
        elif entry.type in entry_types.GROSS_CREDIT_TYPES:
            credit += entry.amount
        elif entry.type in entry_types.FEE_TYPES:
            fee += entry.amount
        elif entry.type in entry_types.VAT_TYPES:
            vat += entry.amount
        elif entry.type == entry_types.ROLLING_RESERVE_CREATE:
            reserve += entry.amount
        elif entry.type == entry_types.ROLLING_RESERVE_RELEASE:
            reserve -= entry.amount

    return RoyaltyTotals(
        transactions_count=count,
        gross_debit=format_amount(debit),
        gross_credit=format_amount(credit),
        fee_amount=format_amount(fee),
        vat_amount=format_amount(vat),
        rolling_reserve_amount=format_amount(reserve),
    )


class RoyaltyReportService:
    """Generates weekly royalty reports and drives their lifecycle."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        notifier: Optional[Notifier] = None,
        balance: Optional[MerchantBalanceService] = None,
        ledger_lock: Optional[threading.Lock] = None,
    ):
        """Initialize royalty report service.

        Args:
            db: Database instance
            settings: Window, acceptance and worker settings
            notifier: Merchant notifications; None disables them
            balance: Balance service recomputed when reports are accepted
            ledger_lock: Lock shared with the local amount backfill
        """
        self.db = db
        self.settings = settings or Settings()
        self.notifier = notifier or Notifier()
        self.balance = balance or MerchantBalanceService(db)
        self.ledger_lock = ledger_lock or threading.Lock()

    def window(self, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
        """Return the (from, to) bounds of the last completed period."""
        return royalty_window(
            now or utcnow(),
            self.settings.royalty_timezone,
            self.settings.royalty_cutoff_hour,
            self.settings.royalty_period_days,
        )

    def generate(
        self,
        now: Optional[datetime] = None,
        merchant_ids: Optional[Sequence[int]] = None,
        deadline: Optional[Deadline] = None,
    ) -> BatchResult:
        """Generate reports for every merchant active in the last period.

        Merchants are processed concurrently on a bounded pool. The call
        returns only after every worker finished.

        Args:
            now: Reference time (naive UTC); defaults to the current time
            merchant_ids: Restrict the batch to these merchants
            deadline: Optional cancellation scope

        Returns:
            BatchResult mapping merchant id to report id, and to errors

        Raises:
            NoTransactions: If no merchant had processed orders in the window
        """
        now = now or utcnow()
        period_from, period_to = self.window(now)

        check_deadline(deadline)
        if merchant_ids is None:
            merchant_ids = self.db.list_merchant_ids_with_orders(period_from, period_to)
        if not merchant_ids:
            raise NoTransactions(
                f"No transactions between {period_from:%Y-%m-%d %H:%M} and {period_to:%Y-%m-%d %H:%M}"
            )

        logger.info(
            "Royalty report generation started",
            extra={
                "period_from": period_from.isoformat(),
                "period_to": period_to.isoformat(),
                "merchants": len(merchant_ids),
            },
        )

        result = BatchResult()
        with self.ledger_lock:
            with TaskGroup(max_workers=self.settings.workers, name="royalty") as group:
                for merchant_id in merchant_ids:
                    group.submit(
                        merchant_id,
                        self._generate_worker,
                        merchant_id,
                        period_from,
                        period_to,
                        now,
                        deadline,
                    )

        for merchant_id, report in group.results().items():
            result.succeeded[merchant_id] = report.id
        for merchant_id, error in group.errors().items():
            logger.error(
                "Royalty report generation failed",
                exc_info=(type(error), error, error.__traceback__),
                extra={"merchant_id": merchant_id},
            )
            result.errors[merchant_id] = error

        logger.info(
            "Royalty report generation finished",
            extra={"created": len(result.succeeded), "failed": len(result.errors)},
        )
        return result

    def _generate_worker(self, merchant_id, period_from, period_to, now, deadline) -> RoyaltyReport:
        try:
            return self.generate_for_merchant(merchant_id, period_from, period_to, now=now, deadline=deadline)
        finally:
            self.db.release_session()

    def generate_for_merchant(
        self,
        merchant_id: int,
        period_from: datetime,
        period_to: datetime,
        now: Optional[datetime] = None,
        deadline: Optional[Deadline] = None,
    ) -> RoyaltyReport:
        """Replace the merchant's report for a period with a freshly computed one.

        Earlier reports lying within the period are flagged deleted before the
        new report is inserted.

        Raises:
            MerchantNotFound: If the merchant does not exist
            NoPayoutCurrency: If the merchant has no payout currency
        """
        now = now or utcnow()

        check_deadline(deadline)
        merchant = self.db.get_merchant(merchant_id)
        if merchant is None:
            raise MerchantNotFound(merchant_not_found(merchant_id))
        if not merchant.payout_currency:
            raise NoPayoutCurrency(f"Merchant {merchant_id} has no payout currency")

        check_deadline(deadline)
        deleted = self.db.mark_royalty_reports_deleted(merchant_id, period_from, period_to)
        if deleted:
            logger.info(
                "Previous royalty reports marked deleted",
                extra={"merchant_id": merchant_id, "count": deleted},
            )

        check_deadline(deadline)
        entries = self.db.list_accounting_entries(
            merchant_id=merchant_id,
            types=entry_types.ROYALTY_TYPES | entry_types.ROLLING_RESERVE_TYPES,
            created_from=period_from,
            created_to=period_to,
        )
        totals = calculate_totals(entries)

        report = RoyaltyReport(
            id=0,
            merchant_id=merchant_id,
            currency=merchant.payout_currency,
            period_from=period_from,
            period_to=period_to,
            status=RoyaltyReportStatus.NEW,
            transactions_count=totals.transactions_count,
            gross_amount=totals.gross_amount,
            fee_amount=totals.fee_amount,
            vat_amount=totals.vat_amount,
            payout_amount=totals.payout_amount,
            rolling_reserve_amount=totals.rolling_reserve_amount,
            accept_expire_at=now + timedelta(hours=self.settings.royalty_accept_timeout_hours),
            created_at=now,
        )

        check_deadline(deadline)
        report_id = self.db.create_royalty_report(report)
        report = replace(report, id=report_id)
        self._journal(report, SOURCE_SYSTEM, "")

        linked = self.db.link_orders_to_royalty_report(merchant_id, period_from, period_to, report_id)
        logger.info(
            "Royalty report created",
            extra={
                "merchant_id": merchant_id,
                "report_id": report_id,
                "orders": linked,
                "payout_amount": str(report.payout_amount),
            },
        )

        self.notifier.royalty_report_ready(merchant, report)
        return report

    def get_report(self, report_id: int) -> RoyaltyReport:
        report = self.db.get_royalty_report(report_id)
        if report is None:
            raise RoyaltyReportNotFound(f"Royalty report {report_id} not found")
        return report

    def list_reports(
        self,
        merchant_id: Optional[int] = None,
        period_from: Optional[datetime] = None,
        period_to: Optional[datetime] = None,
        statuses: Optional[Iterable[RoyaltyReportStatus]] = None,
    ) -> list[RoyaltyReport]:
        return self.db.list_royalty_reports(
            merchant_id=merchant_id, statuses=statuses, period_from=period_from, period_to=period_to
        )

    def get_changes(self, report_id: int) -> list[DocumentChange]:
        self.get_report(report_id)
        return self.db.list_royalty_report_changes(report_id)

    def change_status(
        self,
        report_id: int,
        new_status: RoyaltyReportStatus,
        correction_amount: Optional[Decimal] = None,
        correction_reason: Optional[str] = None,
        source: str = "merchant",
        ip: str = "",
        now: Optional[datetime] = None,
    ) -> RoyaltyReport:
        """Move a report to a new status.

        Paid is reserved for payout documents and cannot be set here.

        Raises:
            RoyaltyReportNotFound: If the report does not exist
            RoyaltyReportStatusChangeDenied: If the transition is not allowed
            DisputeCorrectionRequired: If a dispute lacks a positive correction and reason
        """
        now = now or utcnow()
        new_status = RoyaltyReportStatus(new_status)
        report = self.get_report(report_id)

        if (
            report.is_deleted
            or new_status == RoyaltyReportStatus.PAID
            or not can_transition_royalty(report.status, new_status)
        ):
            raise RoyaltyReportStatusChangeDenied(
                status_change_denied("royalty report", report.status.value, new_status.value)
            )

        changes = {"status": new_status}
        if new_status == RoyaltyReportStatus.DISPUTE:
            if correction_amount is None or correction_amount <= 0 or not (correction_reason or "").strip():
                raise DisputeCorrectionRequired()
            changes["correction_amount"] = format_amount(correction_amount)
            changes["correction_reason"] = correction_reason.strip()
        elif new_status == RoyaltyReportStatus.ACCEPTED:
            changes["accepted_at"] = now

        updated = replace(report, **changes)
        self.db.update_royalty_report(updated)
        self._journal(updated, source, ip)
        logger.info(
            "Royalty report status changed",
            extra={
                "report_id": report_id,
                "merchant_id": report.merchant_id,
                "status": new_status.value,
                "previous_status": report.status.value,
            },
        )

        if new_status == RoyaltyReportStatus.PENDING:
            merchant = self.db.get_merchant(report.merchant_id)
            if merchant is not None:
                self.notifier.royalty_report_ready(merchant, updated)
        elif new_status == RoyaltyReportStatus.ACCEPTED:
            self._refresh_balance(report.merchant_id)
        return updated

    def send_for_acceptance(self, report_id: int, source: str = SOURCE_SYSTEM, ip: str = "") -> RoyaltyReport:
        """Move a new report to Pending and notify the merchant."""
        return self.change_status(report_id, RoyaltyReportStatus.PENDING, source=source, ip=ip)

    def auto_accept(self, now: Optional[datetime] = None) -> list[RoyaltyReport]:
        """Accept every pending report whose acceptance window has passed."""
        now = now or utcnow()
        expired = self.db.list_royalty_reports(
            statuses=[RoyaltyReportStatus.PENDING], accept_expire_before=now
        )

        accepted = []
        for report in expired:
            updated = replace(
                report, status=RoyaltyReportStatus.ACCEPTED, accepted_at=now, is_auto_accepted=True
            )
            self.db.update_royalty_report(updated)
            self._journal(updated, SOURCE_AUTO_ACCEPT, "")
            accepted.append(updated)

        for merchant_id in sorted({report.merchant_id for report in accepted}):
            self._refresh_balance(merchant_id)

        if accepted:
            logger.info("Royalty reports auto-accepted", extra={"count": len(accepted)})
        return accepted

    def _refresh_balance(self, merchant_id: int) -> None:
        try:
            self.balance.compute(merchant_id)
        except DomainError:
            logger.warning(
                "Balance recompute after acceptance failed",
                exc_info=True,
                extra={"merchant_id": merchant_id},
            )

    def _journal(self, report: RoyaltyReport, source: str, ip: str) -> None:
        self.db.add_royalty_report_change(report.id, source, ip, payload_hash(report))
