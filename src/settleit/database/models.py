"""SQLAlchemy models for settleit database."""

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    JSON,
    Index,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from settleit.utils.date_parser import utcnow

Base = declarative_base()

Money = Numeric(18, 2)
Rate = Numeric(18, 8)


class Merchant(Base):
    """Merchant read-model."""

    __tablename__ = "merchants"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    payout_currency = Column(String(3), nullable=True)
    min_payout_amount = Column(Money, default=0, nullable=False)
    email = Column(String, nullable=True)
    email_authorized = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Country(Base):
    """Country VAT configuration."""

    __tablename__ = "countries"

    code = Column(String(2), primary_key=True)
    name = Column(String, nullable=False)
    vat_enabled = Column(Boolean, default=False, nullable=False)
    currency = Column(String(3), nullable=False)
    vat_period_months = Column(Integer, default=0, nullable=False)
    vat_deadline_days = Column(Integer, default=0, nullable=False)
    vat_threshold_year = Column(Money, default=0, nullable=False)
    vat_threshold_world = Column(Money, default=0, nullable=False)
    vat_rates_policy = Column(String, default="on-day", nullable=False)
    vat_rates_source = Column(String, default="", nullable=False)


class OperatingCompany(Base):
    """Operating company and the countries it processes."""

    __tablename__ = "operating_companies"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    payment_countries = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class ExchangeRate(Base):
    """Exchange rate effective from a point in time."""

    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True)
    from_currency = Column(String(3), nullable=False)
    to_currency = Column(String(3), nullable=False)
    rate_type = Column(String, nullable=False)
    source = Column(String, default="", nullable=False)
    rate = Column(Rate, nullable=False)
    effective_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_exchange_rates_pair", "from_currency", "to_currency", "rate_type", "source"),
    )


class TaxRate(Base):
    """Current VAT rate of a country."""

    __tablename__ = "tax_rates"

    country = Column(String(2), ForeignKey("countries.code"), primary_key=True)
    rate = Column(Rate, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class AccountingEntry(Base):
    """Ledger entry. Rows are only updated by the local amount backfill."""

    __tablename__ = "accounting_entries"

    id = Column(Integer, primary_key=True)
    type = Column(String, nullable=False)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False)
    country = Column(String(2), default="", nullable=False)
    operating_company_id = Column(Integer, ForeignKey("operating_companies.id"), nullable=True)
    currency = Column(String(3), nullable=False)
    amount = Column(Money, nullable=False)
    original_currency = Column(String(3), nullable=True)
    original_amount = Column(Money, nullable=True)
    local_currency = Column(String(3), nullable=True)
    local_amount = Column(Money, nullable=True)
    source_type = Column(String, nullable=True)
    source_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_accounting_entries_merchant_created", "merchant_id", "created_at"),
        Index("ix_accounting_entries_country_created", "country", "created_at"),
    )


class Order(Base):
    """Order read-model used for royalty and VAT aggregation."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False)
    country = Column(String(2), nullable=False)
    operating_company_id = Column(Integer, ForeignKey("operating_companies.id"), nullable=True)
    status = Column(String, default="processed", nullable=False)
    closed_at = Column(DateTime, nullable=False)
    is_production = Column(Boolean, default=True, nullable=False)
    is_vat_deduction = Column(Boolean, default=False, nullable=False)
    payment_gross_revenue_local = Column(Money, default=0, nullable=False)
    payment_tax_fee_local = Column(Money, default=0, nullable=False)
    payment_refund_gross_revenue_local = Column(Money, default=0, nullable=False)
    payment_refund_tax_fee_local = Column(Money, default=0, nullable=False)
    fees_total_local = Column(Money, default=0, nullable=False)
    refund_fees_total_local = Column(Money, default=0, nullable=False)
    royalty_report_id = Column(Integer, ForeignKey("royalty_reports.id"), nullable=True)


class RoyaltyReport(Base):
    """Royalty report model."""

    __tablename__ = "royalty_reports"

    id = Column(Integer, primary_key=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False)
    currency = Column(String(3), nullable=False)
    period_from = Column(DateTime, nullable=False)
    period_to = Column(DateTime, nullable=False)
    status = Column(String, nullable=False)
    transactions_count = Column(Integer, default=0, nullable=False)
    gross_amount = Column(Money, default=0, nullable=False)
    fee_amount = Column(Money, default=0, nullable=False)
    vat_amount = Column(Money, default=0, nullable=False)
    payout_amount = Column(Money, default=0, nullable=False)
    correction_amount = Column(Money, default=0, nullable=False)
    correction_reason = Column(String, nullable=True)
    rolling_reserve_amount = Column(Money, default=0, nullable=False)
    accept_expire_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    is_auto_accepted = Column(Boolean, default=False, nullable=False)
    payout_document_id = Column(Integer, ForeignKey("payout_documents.id"), nullable=True)
    payout_date = Column(DateTime, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_royalty_reports_merchant_status", "merchant_id", "status"),)


class RoyaltyReportChange(Base):
    """Change journal of royalty reports."""

    __tablename__ = "royalty_report_changes"

    id = Column(Integer, primary_key=True)
    document_id = Column(Integer, ForeignKey("royalty_reports.id"), nullable=False)
    source = Column(String, nullable=False)
    ip = Column(String, default="", nullable=False)
    hash = Column(String(32), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class PayoutDocument(Base):
    """Payout document model."""

    __tablename__ = "payout_documents"

    id = Column(Integer, primary_key=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String, nullable=False)
    source_ids = Column(JSON, default=list, nullable=False)
    balance = Column(Money, nullable=False)
    total_fees = Column(Money, default=0, nullable=False)
    total_transactions = Column(Integer, default=0, nullable=False)
    period_from = Column(DateTime, nullable=True)
    period_to = Column(DateTime, nullable=True)
    arrival_date = Column(DateTime, nullable=False)
    description = Column(String, nullable=True)
    transaction_id = Column(String, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    failure_code = Column(String, nullable=True)
    failure_message = Column(String, nullable=True)
    failure_transaction = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)


class PayoutDocumentChange(Base):
    """Change journal of payout documents."""

    __tablename__ = "payout_document_changes"

    id = Column(Integer, primary_key=True)
    document_id = Column(Integer, ForeignKey("payout_documents.id"), nullable=False)
    source = Column(String, nullable=False)
    ip = Column(String, default="", nullable=False)
    hash = Column(String(32), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class MerchantBalance(Base):
    """Append-only balance snapshots."""

    __tablename__ = "merchant_balances"

    id = Column(Integer, primary_key=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False)
    currency = Column(String(3), nullable=False)
    debit = Column(Money, nullable=False)
    credit = Column(Money, nullable=False)
    rolling_reserve = Column(Money, nullable=False)
    total = Column(Money, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class AnnualTurnover(Base):
    """Annual turnover keyed by year, country and operating company."""

    __tablename__ = "annual_turnovers"

    id = Column(Integer, primary_key=True)
    year = Column(Integer, nullable=False)
    country = Column(String(2), default="", nullable=False)
    operating_company_id = Column(Integer, ForeignKey("operating_companies.id"), nullable=True)
    amount = Column(Money, nullable=False)
    currency = Column(String(3), nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("year", "country", "operating_company_id", name="uq_turnover_key"),
    )


class VatReport(Base):
    """VAT report model."""

    __tablename__ = "vat_reports"

    id = Column(Integer, primary_key=True)
    country = Column(String(2), nullable=False)
    operating_company_id = Column(Integer, ForeignKey("operating_companies.id"), nullable=True)
    vat_rate = Column(Rate, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String, nullable=False)
    date_from = Column(Date, nullable=False)
    date_to = Column(Date, nullable=False)
    pay_until_date = Column(Date, nullable=False)
    transactions_count = Column(Integer, default=0, nullable=False)
    gross_revenue = Column(Money, default=0, nullable=False)
    vat_amount = Column(Money, default=0, nullable=False)
    fees_amount = Column(Money, default=0, nullable=False)
    deduction_amount = Column(Money, default=0, nullable=False)
    correction_amount = Column(Money, default=0, nullable=False)
    country_annual_turnover = Column(Money, default=0, nullable=False)
    world_annual_turnover = Column(Money, default=0, nullable=False)
    amounts_approximate = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_vat_reports_key", "country", "operating_company_id", "date_from", "date_to"),
    )


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory and make sure all tables exist."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are used from worker threads, one session per thread.
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)

