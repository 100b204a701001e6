"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Iterable
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain services
from settleit.domain.entities import (
    AccountingEntry,
    AnnualTurnover,
    Country,
    DocumentChange,
    ExchangeRate,
    Merchant,
    MerchantBalance,
    OperatingCompany,
    Order,
    PayoutDocument,
    RoyaltyReport,
    VatOrderTotals,
    VatReport,
)


class Database(ABC):
    """Abstract database interface for settleit."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def release_session(self) -> None:
        """Release the calling thread's session. Called by worker threads when done."""
        pass

    # Merchant operations
    @abstractmethod
    def create_merchant(
        self,
        name: str,
        payout_currency: Optional[str],
        min_payout_amount: Decimal,
        email: Optional[str] = None,
        email_authorized: bool = False,
    ) -> int:
        """Create a merchant. Returns merchant ID."""
        pass

    @abstractmethod
    def get_merchant(self, merchant_id: int) -> Optional[Merchant]:
        """Get merchant by ID."""
        pass

    @abstractmethod
    def list_merchants(self) -> list[Merchant]:
        """List all merchants."""
        pass

    # Country operations
    @abstractmethod
    def save_country(self, country: Country) -> None:
        """Insert or replace a country's configuration."""
        pass

    @abstractmethod
    def get_country(self, code: str) -> Optional[Country]:
        """Get country by ISO 3166 alpha-2 code."""
        pass

    @abstractmethod
    def list_countries(self, vat_enabled: Optional[bool] = None) -> list[Country]:
        """List countries, optionally filtered by the VAT flag."""
        pass

    # Operating company operations
    @abstractmethod
    def create_operating_company(self, name: str, payment_countries: Iterable[str] = ()) -> int:
        """Create an operating company. Returns company ID."""
        pass

    @abstractmethod
    def get_operating_company(self, company_id: int) -> Optional[OperatingCompany]:
        """Get operating company by ID."""
        pass

    @abstractmethod
    def list_operating_companies(self) -> list[OperatingCompany]:
        """List all operating companies."""
        pass

    # Rate operations
    @abstractmethod
    def add_exchange_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate_type: str,
        rate: Decimal,
        effective_at: datetime,
        source: str = "",
    ) -> int:
        """Store an exchange rate. Returns rate ID."""
        pass

    @abstractmethod
    def find_exchange_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate_type: str,
        source: str,
        as_of: datetime,
    ) -> Optional[ExchangeRate]:
        """Get the newest rate effective at or before ``as_of``."""
        pass

    @abstractmethod
    def set_tax_rate(self, country: str, rate: Decimal) -> None:
        """Insert or replace the VAT rate of a country."""
        pass

    @abstractmethod
    def get_tax_rate(self, country: str) -> Optional[Decimal]:
        """Get the VAT rate of a country."""
        pass

    # Accounting entry operations
    @abstractmethod
    def add_accounting_entry(
        self,
        entry_type: str,
        merchant_id: int,
        currency: str,
        amount: Decimal,
        country: str = "",
        operating_company_id: Optional[int] = None,
        original_currency: Optional[str] = None,
        original_amount: Optional[Decimal] = None,
        local_currency: Optional[str] = None,
        local_amount: Optional[Decimal] = None,
        source_type: Optional[str] = None,
        source_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Append an accounting entry. Returns entry ID."""
        pass

    @abstractmethod
    def get_accounting_entry(self, entry_id: int) -> Optional[AccountingEntry]:
        """Get accounting entry by ID."""
        pass

    @abstractmethod
    def list_accounting_entries(
        self,
        merchant_id: Optional[int] = None,
        types: Optional[Iterable[str]] = None,
        currency: Optional[str] = None,
        country: Optional[str] = None,
        operating_company_id: Optional[int] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> list[AccountingEntry]:
        """List accounting entries matching all given filters, oldest first.

        ``created_from`` and ``created_to`` are inclusive bounds.
        """
        pass

    @abstractmethod
    def update_accounting_entry_local_amount(self, entry_id: int, local_amount: Decimal) -> None:
        """Replace the local amount of an entry (local currency backfill only)."""
        pass

    @abstractmethod
    def sum_accounting_entries_by_type(
        self,
        merchant_id: int,
        types: Iterable[str],
        currency: Optional[str] = None,
        created_after: Optional[datetime] = None,
    ) -> dict[str, Decimal]:
        """Sum entry amounts per type, optionally in one currency. ``created_after`` is an exclusive bound."""
        pass

    @abstractmethod
    def sum_accounting_entries_by_currency(
        self,
        types: Iterable[str],
        created_from: datetime,
        created_to: datetime,
        country: Optional[str] = None,
        operating_company_id: Optional[int] = None,
        use_local: bool = True,
    ) -> dict[str, Decimal]:
        """Sum local (or original) amounts grouped by local (or original) currency.

        An empty ``country`` matches every entry that has a country set.
        """
        pass

    # Order read-model operations
    @abstractmethod
    def add_order(
        self,
        merchant_id: int,
        country: str,
        closed_at: datetime,
        operating_company_id: Optional[int] = None,
        status: str = "processed",
        is_production: bool = True,
        is_vat_deduction: bool = False,
        payment_gross_revenue_local: Decimal = Decimal("0"),
        payment_tax_fee_local: Decimal = Decimal("0"),
        payment_refund_gross_revenue_local: Decimal = Decimal("0"),
        payment_refund_tax_fee_local: Decimal = Decimal("0"),
        fees_total_local: Decimal = Decimal("0"),
        refund_fees_total_local: Decimal = Decimal("0"),
    ) -> int:
        """Add an order to the read-model. Returns order ID."""
        pass

    @abstractmethod
    def get_order(self, order_id: int) -> Optional[Order]:
        """Get order by ID."""
        pass

    @abstractmethod
    def list_merchant_ids_with_orders(
        self, closed_from: datetime, closed_to: datetime, status: str = "processed"
    ) -> list[int]:
        """List merchants with at least one order closed in the window."""
        pass

    @abstractmethod
    def link_orders_to_royalty_report(
        self, merchant_id: int, closed_from: datetime, closed_to: datetime, report_id: int
    ) -> int:
        """Point the merchant's processed orders in the window at a report. Returns count."""
        pass

    @abstractmethod
    def aggregate_vat_orders(
        self,
        country: str,
        operating_company_id: Optional[int],
        date_from: date,
        date_to: date,
        is_vat_deduction: bool,
    ) -> VatOrderTotals:
        """Sum production orders closed within the days of a VAT period."""
        pass

    @abstractmethod
    def refresh_order_local_amounts(self, order_ids: Iterable[int]) -> int:
        """Re-derive local amounts of orders from their ledger entries. Returns count."""
        pass

    # Royalty report operations
    @abstractmethod
    def create_royalty_report(self, report: RoyaltyReport) -> int:
        """Insert a royalty report, ignoring ``report.id``. Returns report ID."""
        pass

    @abstractmethod
    def update_royalty_report(self, report: RoyaltyReport) -> None:
        """Persist all mutable fields of an existing royalty report."""
        pass

    @abstractmethod
    def get_royalty_report(self, report_id: int) -> Optional[RoyaltyReport]:
        """Get royalty report by ID."""
        pass

    @abstractmethod
    def list_royalty_reports(
        self,
        merchant_id: Optional[int] = None,
        statuses: Optional[Iterable[str]] = None,
        currency: Optional[str] = None,
        period_from: Optional[datetime] = None,
        period_to: Optional[datetime] = None,
        accept_expire_before: Optional[datetime] = None,
        include_deleted: bool = False,
    ) -> list[RoyaltyReport]:
        """List royalty reports, oldest period first.

        ``period_from``/``period_to`` select reports lying within the bounds.
        """
        pass

    @abstractmethod
    def mark_royalty_reports_deleted(
        self, merchant_id: int, period_from: datetime, period_to: datetime
    ) -> int:
        """Flag the merchant's reports within the period as deleted. Returns count."""
        pass

    @abstractmethod
    def sum_royalty_report_payouts(
        self, merchant_id: int, currency: str, statuses: Iterable[str]
    ) -> Decimal:
        """Sum payout amounts of non-deleted reports in the given statuses."""
        pass

    @abstractmethod
    def add_royalty_report_change(self, report_id: int, source: str, ip: str, hash: str) -> int:
        """Journal a royalty report change. Returns change ID."""
        pass

    @abstractmethod
    def list_royalty_report_changes(self, report_id: int) -> list[DocumentChange]:
        """List journal rows of a report, oldest first."""
        pass

    # Payout document operations
    @abstractmethod
    def create_payout_document(self, document: PayoutDocument) -> int:
        """Insert a payout document, ignoring ``document.id``. Returns document ID."""
        pass

    @abstractmethod
    def update_payout_document(self, document: PayoutDocument) -> None:
        """Persist all mutable fields of an existing payout document."""
        pass

    @abstractmethod
    def get_payout_document(self, document_id: int) -> Optional[PayoutDocument]:
        """Get payout document by ID."""
        pass

    @abstractmethod
    def list_payout_documents(
        self,
        merchant_id: Optional[int] = None,
        statuses: Optional[Iterable[str]] = None,
        currency: Optional[str] = None,
    ) -> list[PayoutDocument]:
        """List payout documents, newest first."""
        pass

    @abstractmethod
    def get_last_payout_document(
        self, merchant_id: int, statuses: Optional[Iterable[str]] = None, currency: Optional[str] = None
    ) -> Optional[PayoutDocument]:
        """Get the most recently created payout document of a merchant, optionally in one currency."""
        pass

    @abstractmethod
    def sum_payout_document_balances(
        self, merchant_id: int, currency: str, statuses: Iterable[str]
    ) -> Decimal:
        """Sum balances of payout documents in the given statuses."""
        pass

    @abstractmethod
    def add_payout_document_change(self, document_id: int, source: str, ip: str, hash: str) -> int:
        """Journal a payout document change. Returns change ID."""
        pass

    @abstractmethod
    def list_payout_document_changes(self, document_id: int) -> list[DocumentChange]:
        """List journal rows of a payout document, oldest first."""
        pass

    # Merchant balance operations
    @abstractmethod
    def add_merchant_balance(
        self,
        merchant_id: int,
        currency: str,
        debit: Decimal,
        credit: Decimal,
        rolling_reserve: Decimal,
        total: Decimal,
    ) -> int:
        """Append a balance snapshot. Returns snapshot ID."""
        pass

    @abstractmethod
    def get_latest_merchant_balance(
        self, merchant_id: int, currency: Optional[str] = None
    ) -> Optional[MerchantBalance]:
        """Get the newest balance snapshot of a merchant."""
        pass

    # Annual turnover operations
    @abstractmethod
    def upsert_annual_turnover(
        self,
        year: int,
        country: str,
        operating_company_id: Optional[int],
        amount: Decimal,
        currency: str,
    ) -> int:
        """Insert or replace the turnover for its key. Returns turnover ID."""
        pass

    @abstractmethod
    def get_annual_turnover(
        self, year: int, country: str, operating_company_id: Optional[int] = None
    ) -> Optional[AnnualTurnover]:
        """Get the turnover stored for a key."""
        pass

    @abstractmethod
    def list_annual_turnovers(self, year: Optional[int] = None) -> list[AnnualTurnover]:
        """List stored turnovers."""
        pass

    # VAT report operations
    @abstractmethod
    def create_vat_report(self, report: VatReport) -> int:
        """Insert a VAT report, ignoring ``report.id``. Returns report ID."""
        pass

    @abstractmethod
    def update_vat_report(self, report: VatReport) -> None:
        """Persist all mutable fields of an existing VAT report."""
        pass

    @abstractmethod
    def get_vat_report(self, report_id: int) -> Optional[VatReport]:
        """Get VAT report by ID."""
        pass

    @abstractmethod
    def find_vat_report(
        self,
        country: str,
        operating_company_id: Optional[int],
        date_from: date,
        date_to: date,
        status: Optional[str] = None,
    ) -> Optional[VatReport]:
        """Get the report for a country, company and period."""
        pass

    @abstractmethod
    def list_vat_reports(
        self,
        country: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        operating_company_id: Optional[int] = None,
    ) -> list[VatReport]:
        """List VAT reports, newest period first."""
        pass
