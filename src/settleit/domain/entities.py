"""Domain model entities for settleit.

These are pure data classes representing business concepts, independent of
database schema. Services build new instances with ``dataclasses.replace``
instead of mutating loaded ones.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, Any

from settleit.domain.statuses import (
    CurrencyRatesPolicy,
    PayoutStatus,
    RoyaltyReportStatus,
    VatReportStatus,
)

ZERO = Decimal("0")

# Country code used for the worldwide turnover aggregate.
WORLD = ""


@dataclass(frozen=True)
class Merchant:
    """Merchant read-model entity."""

    id: int
    name: str
    payout_currency: Optional[str]
    min_payout_amount: Decimal
    email: Optional[str]
    email_authorized: bool
    created_at: datetime


@dataclass(frozen=True)
class Country:
    """Country with its VAT configuration."""

    code: str
    name: str
    vat_enabled: bool
    currency: str
    vat_period_months: int = 0
    vat_deadline_days: int = 0
    vat_threshold_year: Decimal = ZERO
    vat_threshold_world: Decimal = ZERO
    vat_rates_policy: CurrencyRatesPolicy = CurrencyRatesPolicy.ON_DAY
    vat_rates_source: str = ""

    @property
    def has_vat_threshold(self) -> bool:
        return self.vat_threshold_year > 0 or self.vat_threshold_world > 0

    def threshold_exceeded(self, country_turnover: Decimal, world_turnover: Decimal) -> bool:
        """Return True if either configured turnover threshold is reached."""
        return (self.vat_threshold_year > 0 and country_turnover >= self.vat_threshold_year) or (
            self.vat_threshold_world > 0 and world_turnover >= self.vat_threshold_world
        )


@dataclass(frozen=True)
class OperatingCompany:
    """Legal entity processing payments for a set of countries."""

    id: int
    name: str
    payment_countries: tuple[str, ...]
    created_at: datetime


@dataclass(frozen=True)
class ExchangeRate:
    """A stored exchange rate, valid from ``effective_at`` on."""

    id: int
    from_currency: str
    to_currency: str
    rate_type: str
    source: str
    rate: Decimal
    effective_at: datetime


@dataclass(frozen=True)
class AccountingEntry:
    """One signed ledger record of an economic event."""

    id: int
    type: str
    merchant_id: int
    country: str
    operating_company_id: Optional[int]
    currency: str
    amount: Decimal
    original_currency: Optional[str]
    original_amount: Optional[Decimal]
    local_currency: Optional[str]
    local_amount: Optional[Decimal]
    source_type: Optional[str]
    source_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Order:
    """Processed order as seen by the reporting read-model."""

    id: int
    merchant_id: int
    country: str
    operating_company_id: Optional[int]
    status: str
    closed_at: datetime
    is_production: bool
    is_vat_deduction: bool
    payment_gross_revenue_local: Decimal
    payment_tax_fee_local: Decimal
    payment_refund_gross_revenue_local: Decimal
    payment_refund_tax_fee_local: Decimal
    fees_total_local: Decimal
    refund_fees_total_local: Decimal
    royalty_report_id: Optional[int]


@dataclass(frozen=True)
class RoyaltyReport:
    """Periodic merchant earnings statement."""

    id: int
    merchant_id: int
    currency: str
    period_from: datetime
    period_to: datetime
    status: RoyaltyReportStatus
    transactions_count: int
    gross_amount: Decimal
    fee_amount: Decimal
    vat_amount: Decimal
    payout_amount: Decimal
    accept_expire_at: datetime
    created_at: datetime
    correction_amount: Decimal = ZERO
    correction_reason: Optional[str] = None
    rolling_reserve_amount: Decimal = ZERO
    accepted_at: Optional[datetime] = None
    is_auto_accepted: bool = False
    payout_document_id: Optional[int] = None
    payout_date: Optional[datetime] = None
    is_deleted: bool = False
    updated_at: Optional[datetime] = None

    @property
    def payable_amount(self) -> Decimal:
        """Amount this report contributes to a payout."""
        return self.payout_amount - self.correction_amount - self.rolling_reserve_amount


@dataclass(frozen=True)
class MerchantBalance:
    """Balance snapshot. The newest snapshot of a merchant is authoritative."""

    id: int
    merchant_id: int
    currency: str
    debit: Decimal
    credit: Decimal
    rolling_reserve: Decimal
    total: Decimal
    created_at: datetime


@dataclass(frozen=True)
class PayoutDocument:
    """Payment instruction consuming one or more royalty reports."""

    id: int
    merchant_id: int
    currency: str
    status: PayoutStatus
    source_ids: tuple[int, ...]
    balance: Decimal
    total_fees: Decimal
    total_transactions: int
    period_from: Optional[datetime]
    period_to: Optional[datetime]
    arrival_date: datetime
    created_at: datetime
    description: Optional[str] = None
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    failure_code: Optional[str] = None
    failure_message: Optional[str] = None
    failure_transaction: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class DocumentChange:
    """Journal row recording a snapshot hash of a changed document."""

    id: int
    document_id: int
    source: str
    ip: str
    hash: str
    created_at: datetime


@dataclass(frozen=True)
class AnnualTurnover:
    """Yearly revenue per operating company and country (``WORLD`` for all)."""

    id: int
    year: int
    country: str
    operating_company_id: Optional[int]
    amount: Decimal
    currency: str
    updated_at: datetime


@dataclass(frozen=True)
class VatReport:
    """Tax liability statement for one country, operating company and period."""

    id: int
    country: str
    operating_company_id: Optional[int]
    vat_rate: Decimal
    currency: str
    status: VatReportStatus
    date_from: date
    date_to: date
    pay_until_date: date
    transactions_count: int = 0
    gross_revenue: Decimal = ZERO
    vat_amount: Decimal = ZERO
    fees_amount: Decimal = ZERO
    deduction_amount: Decimal = ZERO
    correction_amount: Decimal = ZERO
    country_annual_turnover: Decimal = ZERO
    world_annual_turnover: Decimal = ZERO
    amounts_approximate: bool = False
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def payable_total(self) -> Decimal:
        return self.vat_amount + self.correction_amount + self.deduction_amount


@dataclass(frozen=True)
class VatOrderTotals:
    """Aggregated order read-model sums for one VAT pass."""

    transactions_count: int = 0
    gross_revenue: Decimal = ZERO
    tax_fee: Decimal = ZERO
    refund_gross_revenue: Decimal = ZERO
    refund_tax_fee: Decimal = ZERO
    fees_total: Decimal = ZERO
    refund_fees_total: Decimal = ZERO


@dataclass
class BatchResult:
    """Outcome of a batch run, keyed by unit of work (merchant id, country)."""

    succeeded: dict[Any, Any] = field(default_factory=dict)
    errors: dict[Any, Exception] = field(default_factory=dict)
    skipped: dict[Any, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors
