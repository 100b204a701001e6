"""Payout document domain service."""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Iterable

from settleit.config import Settings
from settleit.database.base import Database
from settleit.domain.balance import MerchantBalanceService
from settleit.domain.entities import (
    BatchResult,
    DocumentChange,
    Merchant,
    PayoutDocument,
    RoyaltyReport,
)
from settleit.domain.errors import (
    AmountInvalid,
    BalanceError,
    DomainError,
    MerchantNotFound,
    NoPayoutCurrency,
    NotEnoughBalance,
    NotModified,
    PayoutNotFound,
    SourcesDispute,
    SourcesNotFound,
    SourcesPending,
    StatusChangeForbidden,
    merchant_not_found,
    not_enough_balance,
    status_change_denied,
)
from settleit.domain.notifications import Notifier
from settleit.domain.statuses import (
    PAYOUT_RELEASED,
    ROYALTY_PAYABLE,
    PayoutStatus,
    RoyaltyReportStatus,
    can_transition_payout,
)
from settleit.integrations.base import PayoutExporter
from settleit.utils.amount_parser import format_amount
from settleit.utils.date_parser import end_of_day, utcnow
from settleit.utils.deadline import Deadline, check_deadline
from settleit.utils.keyed_lock import KeyedLock
from settleit.utils.serialization import payload_hash

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class PayoutDocumentService:
    """Selects royalty reports for payout and drives payout documents."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        balance: Optional[MerchantBalanceService] = None,
        notifier: Optional[Notifier] = None,
        exporter: Optional[PayoutExporter] = None,
        locks: Optional[KeyedLock] = None,
    ):
        """Initialize payout document service.

        Args:
            db: Database instance
            settings: Payout settings (arrival days, reuse of skipped sources)
            balance: Balance service; shares ``locks`` when both are given
            notifier: Merchant notifications; None disables them
            exporter: Statement exporter run after creation; None disables it
            locks: Per-merchant locks
        """
        self.db = db
        self.settings = settings or Settings()
        self.locks = locks or (balance.locks if balance is not None else KeyedLock())
        self.balance = balance or MerchantBalanceService(db, locks=self.locks)
        self.notifier = notifier or Notifier()
        self.exporter = exporter
        self._export_threads: list[threading.Thread] = []

    def _get_merchant(self, merchant_id: int) -> Merchant:
        merchant = self.db.get_merchant(merchant_id)
        if merchant is None:
            raise MerchantNotFound(merchant_not_found(merchant_id))
        if not merchant.payout_currency:
            raise NoPayoutCurrency(f"Merchant {merchant_id} has no payout currency")
        return merchant

    def _is_unconsumed(self, report: RoyaltyReport, documents: dict) -> bool:
        if report.payout_document_id is None:
            return True
        if report.payout_document_id not in documents:
            documents[report.payout_document_id] = self.db.get_payout_document(report.payout_document_id)
        document = documents[report.payout_document_id]
        if document is None or document.status in PAYOUT_RELEASED:
            return True
        return document.status == PayoutStatus.SKIP and self.settings.reuse_skipped_sources

    def get_sources(self, merchant_id: int, deadline: Optional[Deadline] = None) -> list[RoyaltyReport]:
        """Return the accepted royalty reports available for a payout.

        Raises:
            SourcesPending: If a candidate report still awaits acceptance
            SourcesDispute: If a candidate report is disputed
            SourcesNotFound: If nothing is left to pay out
        """
        check_deadline(deadline)
        merchant = self._get_merchant(merchant_id)

        check_deadline(deadline)
        reports = self.db.list_royalty_reports(
            merchant_id=merchant_id, statuses=ROYALTY_PAYABLE, currency=merchant.payout_currency
        )
        documents: dict = {}
        candidates = [report for report in reports if self._is_unconsumed(report, documents)]

        if any(report.status == RoyaltyReportStatus.PENDING for report in candidates):
            raise SourcesPending()
        if any(report.status == RoyaltyReportStatus.DISPUTE for report in candidates):
            raise SourcesDispute()
        if not candidates:
            raise SourcesNotFound()
        return candidates

    def create(
        self,
        merchant_id: int,
        description: Optional[str] = None,
        source: str = "system",
        ip: str = "",
        now: Optional[datetime] = None,
        deadline: Optional[Deadline] = None,
    ) -> PayoutDocument:
        """Create a payout document from the merchant's available sources.

        The document is Pending, or Skip when its amount is below the
        merchant's minimum payout. Nothing is persisted when the balance
        cannot cover the amount.

        Raises:
            AmountInvalid: If the sources sum to zero or less
            BalanceError: If the merchant has no balance snapshot
            NotEnoughBalance: If the balance is below the payout amount
        """
        now = now or utcnow()
        with self.locks.hold(merchant_id):
            merchant = self._get_merchant(merchant_id)
            sources = self.get_sources(merchant_id, deadline=deadline)

            amount = format_amount(sum((report.payable_amount for report in sources), ZERO))
            total_fees = format_amount(
                sum((report.payout_amount - report.correction_amount for report in sources), ZERO)
            )
            if amount <= 0:
                raise AmountInvalid(f"Payout amount {amount} is not positive")

            check_deadline(deadline)
            balance = self.db.get_latest_merchant_balance(merchant_id, merchant.payout_currency)
            if balance is None:
                raise BalanceError(f"No balance computed for merchant {merchant_id}")
            if balance.total < amount:
                raise NotEnoughBalance(not_enough_balance(balance.total, amount))

            status = PayoutStatus.SKIP if amount < merchant.min_payout_amount else PayoutStatus.PENDING
            document = PayoutDocument(
                id=0,
                merchant_id=merchant_id,
                currency=merchant.payout_currency,
                status=status,
                source_ids=tuple(report.id for report in sources),
                balance=amount,
                total_fees=total_fees,
                total_transactions=sum(report.transactions_count for report in sources),
                period_from=min(report.period_from for report in sources),
                period_to=max(report.period_to for report in sources),
                arrival_date=end_of_day(now.date()) + timedelta(days=self.settings.payout_arrival_days),
                description=description,
                created_at=now,
            )

            check_deadline(deadline)
            document = replace(document, id=self.db.create_payout_document(document))
            self._journal(document, source, ip)

            for report in sources:
                linked = replace(report, payout_document_id=document.id)
                self.db.update_royalty_report(linked)
                self.db.add_royalty_report_change(linked.id, source, ip, payload_hash(linked))

            logger.info(
                "Payout document created",
                extra={
                    "merchant_id": merchant_id,
                    "payout_document_id": document.id,
                    "status": status.value,
                    "amount": str(amount),
                    "sources": len(sources),
                },
            )

            self.balance.compute(merchant_id)

        self.notifier.payout_document_changed(document)
        self._start_export(document)
        return document

    def update(
        self,
        document_id: int,
        status: PayoutStatus,
        transaction_id: Optional[str] = None,
        failure_code: Optional[str] = None,
        failure_message: Optional[str] = None,
        failure_transaction: Optional[str] = None,
        source: str = "admin",
        ip: str = "",
        now: Optional[datetime] = None,
    ) -> PayoutDocument:
        """Apply a status change reported by the payment side.

        Raises:
            PayoutNotFound: If the document does not exist
            NotModified: If the document already has ``status``
            StatusChangeForbidden: If the document is not Pending
        """
        now = now or utcnow()
        status = PayoutStatus(status)
        document = self.get_document(document_id)

        with self.locks.hold(document.merchant_id):
            document = self.get_document(document_id)
            if document.status == status:
                raise NotModified(f"Payout document {document_id} already has status '{status.value}'")
            if not can_transition_payout(document.status, status):
                raise StatusChangeForbidden(
                    status_change_denied("payout document", document.status.value, status.value)
                )

            changes = {"status": status}
            if status == PayoutStatus.PAID:
                changes.update(transaction_id=transaction_id or document.transaction_id, paid_at=now)
            elif status == PayoutStatus.FAILED:
                changes.update(
                    failure_code=failure_code,
                    failure_message=failure_message,
                    failure_transaction=failure_transaction,
                )
            updated = replace(document, **changes)
            self.db.update_payout_document(updated)
            self._journal(updated, source, ip)

            for report in self._source_reports(updated):
                if status == PayoutStatus.PAID:
                    changed = replace(
                        report,
                        status=RoyaltyReportStatus.PAID,
                        payout_document_id=updated.id,
                        payout_date=now,
                    )
                elif report.payout_document_id == updated.id:
                    changed = replace(report, payout_document_id=None)
                else:
                    continue
                self.db.update_royalty_report(changed)
                self.db.add_royalty_report_change(changed.id, source, ip, payload_hash(changed))

            logger.info(
                "Payout document status changed",
                extra={
                    "merchant_id": updated.merchant_id,
                    "payout_document_id": updated.id,
                    "status": status.value,
                    "previous_status": document.status.value,
                },
            )
            self.balance.compute(updated.merchant_id)

        self.notifier.payout_document_changed(updated)
        return updated

    def auto_create(self, now: Optional[datetime] = None, deadline: Optional[Deadline] = None) -> BatchResult:
        """Create payout documents for every merchant with a payout currency.

        Merchants with nothing to pay out are skipped quietly; other
        failures are recorded per merchant and the run continues.
        """
        result = BatchResult()
        for merchant in self.db.list_merchants():
            if not merchant.payout_currency:
                continue
            check_deadline(deadline)
            try:
                document = self.create(merchant.id, source="auto", now=now, deadline=deadline)
            except (SourcesNotFound, AmountInvalid) as e:
                result.skipped[merchant.id] = e.code
            except DomainError as e:
                logger.warning(
                    "Automatic payout failed",
                    extra={"merchant_id": merchant.id, "error_code": e.code, "error": str(e)},
                )
                result.errors[merchant.id] = e
            else:
                result.succeeded[merchant.id] = document.id
        return result

    def get_document(self, document_id: int) -> PayoutDocument:
        document = self.db.get_payout_document(document_id)
        if document is None:
            raise PayoutNotFound(f"Payout document {document_id} not found")
        return document

    def list_documents(
        self, merchant_id: Optional[int] = None, statuses: Optional[Iterable[PayoutStatus]] = None
    ) -> list[PayoutDocument]:
        return self.db.list_payout_documents(merchant_id=merchant_id, statuses=statuses)

    def get_document_reports(self, document_id: int) -> list[RoyaltyReport]:
        """Return the royalty reports a document was created from."""
        return self._source_reports(self.get_document(document_id))

    def get_changes(self, document_id: int) -> list[DocumentChange]:
        self.get_document(document_id)
        return self.db.list_payout_document_changes(document_id)

    def _source_reports(self, document: PayoutDocument) -> list[RoyaltyReport]:
        reports = []
        for report_id in document.source_ids:
            report = self.db.get_royalty_report(report_id)
            if report is not None:
                reports.append(report)
        return reports

    def _journal(self, document: PayoutDocument, source: str, ip: str) -> None:
        self.db.add_payout_document_change(document.id, source, ip, payload_hash(document))

    def _start_export(self, document: PayoutDocument) -> None:
        if self.exporter is None:
            return
        thread = threading.Thread(
            target=self._export, args=(document,), name=f"payout-export-{document.id}", daemon=True
        )
        self._export_threads.append(thread)
        thread.start()

    def _export(self, document: PayoutDocument) -> None:
        try:
            location = self.exporter.export(document, self._source_reports(document))
            logger.info(
                "Payout document exported",
                extra={"payout_document_id": document.id, "location": location},
            )
        except Exception:
            logger.error(
                "Payout document export failed",
                exc_info=True,
                extra={"payout_document_id": document.id},
            )
        finally:
            self.db.release_session()

    def wait_for_exports(self, timeout: Optional[float] = None) -> None:
        """Join export threads started so far."""
        threads, self._export_threads = self._export_threads, []
        for thread in threads:
            thread.join(timeout)
