"""VAT report domain service."""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from settleit.database.base import Database
from settleit.domain import entry_types
from settleit.domain.entities import WORLD, AnnualTurnover, BatchResult, Country, VatReport
from settleit.domain.errors import (
    CountryNotFound,
    DomainError,
    TurnoverNotFound,
    VatReportNotFound,
    VatReportStatusChangeNotAllowed,
    country_not_found,
    status_change_denied,
)
from settleit.domain.notifications import Notifier
from settleit.domain.statuses import (
    VAT_MANUAL_FROM,
    VAT_MANUAL_TO,
    CurrencyRatesPolicy,
    RateType,
    VatReportStatus,
)
from settleit.domain.turnover import TurnoverService
from settleit.integrations.base import ExchangeGateway, TaxRateService
from settleit.utils.amount_parser import format_amount
from settleit.utils.date_parser import end_of_day, start_of_day, utcnow
from settleit.utils.deadline import Deadline, check_deadline
from settleit.utils.periods import pay_until, vat_period

logger = logging.getLogger(__name__)

OPEN_STATUSES = (VatReportStatus.THRESHOLD, VatReportStatus.NEED_TO_PAY)
DASHBOARD_STATUSES = (VatReportStatus.THRESHOLD, VatReportStatus.NEED_TO_PAY, VatReportStatus.OVERDUE)


@dataclass
class VatRunResult:
    """Per-step outcome of a full VAT job."""

    turnovers: BatchResult
    backfill: BatchResult
    reports: BatchResult
    statuses: BatchResult
    refreshed_orders: int = 0

    @property
    def ok(self) -> bool:
        return all(step.ok for step in (self.turnovers, self.backfill, self.reports, self.statuses))


class VatReportService:
    """Builds VAT reports from the order read-model and drives their status."""

    def __init__(
        self,
        db: Database,
        exchange: ExchangeGateway,
        tax: TaxRateService,
        turnover: Optional[TurnoverService] = None,
        notifier: Optional[Notifier] = None,
        ledger_lock: Optional[threading.Lock] = None,
    ):
        """Initialize VAT report service.

        Args:
            db: Database instance
            exchange: Gateway for world turnover and local amount conversion
            tax: Source of current VAT rates
            turnover: Turnover service used by the full job
            notifier: Financier notifications
            ledger_lock: Lock shared with royalty report generation
        """
        self.db = db
        self.exchange = exchange
        self.tax = tax
        self.turnover = turnover or TurnoverService(db, exchange)
        self.notifier = notifier or Notifier()
        self.ledger_lock = ledger_lock or threading.Lock()

    def _get_country(self, code: str) -> Country:
        country = self.db.get_country(code)
        if country is None:
            raise CountryNotFound(country_not_found(code))
        return country

    def _world_turnover(self, year: int, operating_company_id: Optional[int]) -> AnnualTurnover:
        turnover = self.db.get_annual_turnover(year, WORLD, operating_company_id)
        if turnover is None:
            raise TurnoverNotFound(
                f"No {year} world turnover for operating company {operating_company_id}"
            )
        return turnover

    def generate_for_country(
        self,
        country: str,
        operating_company_id: Optional[int] = None,
        as_of: Optional[datetime] = None,
        deadline: Optional[Deadline] = None,
    ) -> VatReport:
        """Create or refresh the VAT report of the period containing ``as_of``.

        A report still in Threshold status for the same country, company
        and period is updated in place; its id and creation time are kept.

        Raises:
            CountryNotFound: If the country does not exist
            TaxRateUnavailable: If the tax rate cannot be fetched
            TurnoverNotFound: If the country or world turnover is missing
            ExchangeFailed: If the world turnover cannot be converted
        """
        as_of = as_of or utcnow()
        check_deadline(deadline)
        entity = self._get_country(country)

        check_deadline(deadline)
        vat_rate = self.tax.get_rate(country)

        date_from, date_to = vat_period(entity.vat_period_months, as_of.date())
        pay_until_date = pay_until(date_to, entity.vat_deadline_days)

        check_deadline(deadline)
        country_turnover = self.db.get_annual_turnover(as_of.year, country, operating_company_id)
        if country_turnover is None:
            raise TurnoverNotFound(f"No {as_of.year} turnover for {country}")

        check_deadline(deadline)
        world_turnover = self._world_turnover(as_of.year, operating_company_id)
        world_amount = world_turnover.amount
        if world_turnover.currency != entity.currency:
            check_deadline(deadline)
            world_amount = self.exchange.exchange(
                world_turnover.currency,
                entity.currency,
                RateType.CENTRAL_BANKS,
                world_amount,
                source=entity.vat_rates_source,
                as_of=as_of,
            )

        approximate = not (
            entity.vat_rates_policy == CurrencyRatesPolicy.ON_DAY or as_of.date() == date_to
        )

        check_deadline(deadline)
        regular = self.db.aggregate_vat_orders(country, operating_company_id, date_from, date_to, False)
        check_deadline(deadline)
        deduction = self.db.aggregate_vat_orders(country, operating_company_id, date_from, date_to, True)

        computed = {
            "vat_rate": vat_rate,
            "currency": entity.currency,
            "pay_until_date": pay_until_date,
            "transactions_count": regular.transactions_count + deduction.transactions_count,
            "gross_revenue": format_amount(regular.gross_revenue - regular.refund_gross_revenue),
            "vat_amount": format_amount(regular.tax_fee - regular.refund_tax_fee),
            "fees_amount": format_amount(
                regular.fees_total
                + regular.refund_fees_total
                + deduction.fees_total
                + deduction.refund_fees_total
            ),
            "deduction_amount": format_amount(deduction.refund_tax_fee),
            "country_annual_turnover": country_turnover.amount,
            "world_annual_turnover": format_amount(world_amount),
            "amounts_approximate": approximate,
        }

        check_deadline(deadline)
        existing = self.db.find_vat_report(
            country, operating_company_id, date_from, date_to, status=VatReportStatus.THRESHOLD
        )
        if existing is not None:
            report = replace(existing, **computed)
            self.db.update_vat_report(report)
        else:
            report = VatReport(
                id=0,
                country=country,
                operating_company_id=operating_company_id,
                status=VatReportStatus.THRESHOLD,
                date_from=date_from,
                date_to=date_to,
                created_at=utcnow(),
                **computed,
            )
            report = replace(report, id=self.db.create_vat_report(report))

        logger.info(
            "VAT report generated",
            extra={
                "country": country,
                "operating_company_id": operating_company_id,
                "report_id": report.id,
                "date_from": date_from.isoformat(),
                "vat_amount": str(report.vat_amount),
            },
        )
        return self.db.get_vat_report(report.id)

    def generate(self, as_of: Optional[datetime] = None, deadline: Optional[Deadline] = None) -> BatchResult:
        """Generate reports for every company and VAT country, one at a time.

        Countries without a stored turnover are skipped; other per-country
        failures are recorded. That includes a failing tax-rate lookup: it
        fails only the report of that country, and the remaining countries
        are still generated. Only a missing world turnover aborts the run.

        Raises:
            TurnoverNotFound: If a company has no world turnover
        """
        as_of = as_of or utcnow()
        result = BatchResult()
        for company_id, countries in self.turnover.scopes():
            check_deadline(deadline)
            self._world_turnover(as_of.year, company_id)
            for code in countries:
                key = (company_id, code)
                try:
                    report = self.generate_for_country(code, company_id, as_of, deadline=deadline)
                except TurnoverNotFound as e:
                    logger.warning(
                        "VAT report skipped without country turnover",
                        extra={"country": code, "operating_company_id": company_id},
                    )
                    result.skipped[key] = e.code
                except DomainError as e:
                    logger.error(
                        "VAT report generation failed",
                        extra={"country": code, "operating_company_id": company_id, "error_code": e.code},
                    )
                    result.errors[key] = e
                else:
                    result.succeeded[key] = report.id
        return result

    def advance_statuses(self, now: Optional[datetime] = None, deadline: Optional[Deadline] = None) -> BatchResult:
        """Move reports of closed periods along their lifecycle.

        NeedToPay becomes Overdue after its pay-until date. Threshold becomes
        NeedToPay when the country has no threshold or exceeded it and there
        is something to pay, otherwise Expired. Reports of the current period
        are left alone.
        """
        now = now or utcnow()
        result = BatchResult()
        countries: dict[str, Optional[Country]] = {}

        for report in self.db.list_vat_reports(statuses=OPEN_STATUSES):
            check_deadline(deadline)
            if report.country not in countries:
                countries[report.country] = self.db.get_country(report.country)
            country = countries[report.country]
            if country is None:
                result.skipped[report.id] = CountryNotFound.code
                continue

            try:
                current_from, _ = vat_period(country.vat_period_months, now.date())
            except DomainError as e:
                result.errors[report.id] = e
                continue
            if report.date_from >= current_from:
                continue

            if report.status == VatReportStatus.NEED_TO_PAY:
                if now.date() <= report.pay_until_date:
                    continue
                new_status = VatReportStatus.OVERDUE
            elif (
                not country.has_vat_threshold
                or country.threshold_exceeded(report.country_annual_turnover, report.world_annual_turnover)
            ) and report.payable_total > 0:
                new_status = VatReportStatus.NEED_TO_PAY
            else:
                new_status = VatReportStatus.EXPIRED

            self._set_status(report, new_status)
            result.succeeded[report.id] = new_status.value
        return result

    def _set_status(self, report: VatReport, status: VatReportStatus, **changes) -> VatReport:
        updated = replace(report, status=status, **changes)
        self.db.update_vat_report(updated)
        logger.info(
            "VAT report status changed",
            extra={
                "country": report.country,
                "report_id": report.id,
                "previous_status": report.status.value,
                "status": status.value,
            },
        )
        self.notifier.vat_report_changed(updated)
        return updated

    def backfill_local_amounts(
        self, country: str, as_of: Optional[datetime] = None, deadline: Optional[Deadline] = None
    ) -> list[str]:
        """Reconvert local amounts of the current period at central bank rates.

        Only countries on the last-day policy are touched. Entries whose
        local amount already matches are left as they are.

        Returns:
            Source ids of the entries that were changed
        """
        as_of = as_of or utcnow()
        entity = self._get_country(country)
        if entity.vat_rates_policy == CurrencyRatesPolicy.ON_DAY:
            return []
        if entity.vat_rates_policy != CurrencyRatesPolicy.LAST_DAY:
            logger.warning(
                "Local amount backfill skipped for unsupported rates policy",
                extra={"country": country, "policy": entity.vat_rates_policy.value},
            )
            return []

        date_from, date_to = vat_period(entity.vat_period_months, as_of.date())
        rates_at = min(as_of, end_of_day(date_to))
        touched: set[str] = set()

        with self.ledger_lock:
            check_deadline(deadline)
            entries = self.db.list_accounting_entries(
                types=entry_types.LOCAL_BACKFILL_TYPES,
                country=country,
                created_from=start_of_day(date_from),
                created_to=end_of_day(date_to),
            )
            real_tax = {
                entry.source_id: entry.local_amount or Decimal("0")
                for entry in entries
                if entry.type == entry_types.REAL_TAX_FEE
            }

            for entry in entries:
                if entry.type == entry_types.REAL_TAX_FEE:
                    continue
                if not entry.original_currency or not entry.local_currency:
                    continue
                if entry.original_currency == entry.local_currency:
                    continue
                check_deadline(deadline)
                amount = self.exchange.exchange(
                    entry.original_currency,
                    entry.local_currency,
                    RateType.CENTRAL_BANKS,
                    entry.original_amount or Decimal("0"),
                    source=entity.vat_rates_source,
                    as_of=rates_at,
                )
                if entry.type == entry_types.CENTRAL_BANK_TAX_FEE:
                    amount -= real_tax.get(entry.source_id, Decimal("0"))
                amount = format_amount(amount)
                if amount == entry.local_amount:
                    continue
                self.db.update_accounting_entry_local_amount(entry.id, amount)
                touched.add(entry.source_id or str(entry.id))

        if touched:
            logger.info(
                "Local amounts backfilled",
                extra={"country": country, "entries": len(touched)},
            )
        return sorted(touched)

    def refresh_orders(self, source_ids: Iterable[str], deadline: Optional[Deadline] = None) -> int:
        """Copy backfilled local amounts onto the order read-model.

        Ids that are not order ids are ignored.
        """
        order_ids = {int(source_id) for source_id in source_ids if str(source_id).isdigit()}
        if not order_ids:
            return 0
        with self.ledger_lock:
            check_deadline(deadline)
            refreshed = self.db.refresh_order_local_amounts(order_ids)
        logger.info("Order local amounts refreshed", extra={"orders": refreshed})
        return refreshed

    def process(self, as_of: Optional[datetime] = None, deadline: Optional[Deadline] = None) -> VatRunResult:
        """Run the full VAT job: turnovers, backfill and order refresh, generation, statuses."""
        as_of = as_of or utcnow()
        turnovers = self.turnover.calc_all(as_of, deadline=deadline)

        backfill = BatchResult()
        for country in self.db.list_countries(vat_enabled=True):
            try:
                backfill.succeeded[country.code] = self.backfill_local_amounts(
                    country.code, as_of, deadline=deadline
                )
            except DomainError as e:
                logger.error(
                    "Local amount backfill failed",
                    extra={"country": country.code, "error_code": e.code},
                )
                backfill.errors[country.code] = e

        touched = [source_id for source_ids in backfill.succeeded.values() for source_id in source_ids]
        refreshed = self.refresh_orders(touched, deadline=deadline)

        reports = self.generate(as_of, deadline=deadline)
        statuses = self.advance_statuses(as_of, deadline=deadline)
        return VatRunResult(
            turnovers=turnovers,
            backfill=backfill,
            reports=reports,
            statuses=statuses,
            refreshed_orders=refreshed,
        )

    def update_status(self, report_id: int, status: VatReportStatus, now: Optional[datetime] = None) -> VatReport:
        """Record a manual decision on a payable report.

        Raises:
            VatReportNotFound: If the report does not exist
            VatReportStatusChangeNotAllowed: Unless moving NeedToPay or Overdue to Paid or Canceled
        """
        status = VatReportStatus(status)
        report = self.get_report(report_id)
        if report.status not in VAT_MANUAL_FROM or status not in VAT_MANUAL_TO:
            raise VatReportStatusChangeNotAllowed(
                status_change_denied("VAT report", report.status.value, status.value)
            )
        changes = {}
        if status == VatReportStatus.PAID:
            changes["paid_at"] = now or utcnow()
        return self._set_status(report, status, **changes)

    def get_report(self, report_id: int) -> VatReport:
        report = self.db.get_vat_report(report_id)
        if report is None:
            raise VatReportNotFound(f"VAT report {report_id} not found")
        return report

    def dashboard(self) -> list[VatReport]:
        """Reports that still need the financier's attention."""
        return self.db.list_vat_reports(statuses=DASHBOARD_STATUSES)

    def list_for_country(self, country: str, operating_company_id: Optional[int] = None) -> list[VatReport]:
        self._get_country(country)
        return self.db.list_vat_reports(country=country, operating_company_id=operating_company_id)
