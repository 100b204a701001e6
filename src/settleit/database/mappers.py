"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: status strings become enums,
JSON lists become tuples, and nullable numeric columns become Decimals.
"""

from decimal import Decimal

from settleit.domain import entities as domain
from settleit.domain.statuses import (
    CurrencyRatesPolicy,
    PayoutStatus,
    RoyaltyReportStatus,
    VatReportStatus,
)
from settleit.database.models import (
    AccountingEntry as ORMAccountingEntry,
    AnnualTurnover as ORMAnnualTurnover,
    Country as ORMCountry,
    ExchangeRate as ORMExchangeRate,
    Merchant as ORMMerchant,
    MerchantBalance as ORMMerchantBalance,
    OperatingCompany as ORMOperatingCompany,
    Order as ORMOrder,
    PayoutDocument as ORMPayoutDocument,
    RoyaltyReport as ORMRoyaltyReport,
    VatReport as ORMVatReport,
)


def _dec(value) -> Decimal:
    return Decimal("0") if value is None else Decimal(value)


def merchant_to_domain(orm_merchant: ORMMerchant) -> domain.Merchant:
    """Convert SQLAlchemy Merchant model to domain Merchant entity."""
    return domain.Merchant(
        id=orm_merchant.id,
        name=orm_merchant.name,
        payout_currency=orm_merchant.payout_currency,
        min_payout_amount=_dec(orm_merchant.min_payout_amount),
        email=orm_merchant.email,
        email_authorized=orm_merchant.email_authorized,
        created_at=orm_merchant.created_at,
    )


def country_to_domain(orm_country: ORMCountry) -> domain.Country:
    """Convert SQLAlchemy Country model to domain Country entity."""
    return domain.Country(
        code=orm_country.code,
        name=orm_country.name,
        vat_enabled=orm_country.vat_enabled,
        currency=orm_country.currency,
        vat_period_months=orm_country.vat_period_months,
        vat_deadline_days=orm_country.vat_deadline_days,
        vat_threshold_year=_dec(orm_country.vat_threshold_year),
        vat_threshold_world=_dec(orm_country.vat_threshold_world),
        vat_rates_policy=CurrencyRatesPolicy(orm_country.vat_rates_policy),
        vat_rates_source=orm_country.vat_rates_source or "",
    )


def operating_company_to_domain(orm_company: ORMOperatingCompany) -> domain.OperatingCompany:
    """Convert SQLAlchemy OperatingCompany model to domain entity."""
    return domain.OperatingCompany(
        id=orm_company.id,
        name=orm_company.name,
        payment_countries=tuple(orm_company.payment_countries or ()),
        created_at=orm_company.created_at,
    )


def exchange_rate_to_domain(orm_rate: ORMExchangeRate) -> domain.ExchangeRate:
    return domain.ExchangeRate(
        id=orm_rate.id,
        from_currency=orm_rate.from_currency,
        to_currency=orm_rate.to_currency,
        rate_type=orm_rate.rate_type,
        source=orm_rate.source,
        rate=_dec(orm_rate.rate),
        effective_at=orm_rate.effective_at,
    )


def accounting_entry_to_domain(orm_entry: ORMAccountingEntry) -> domain.AccountingEntry:
    """Convert SQLAlchemy AccountingEntry model to domain entity."""
    return domain.AccountingEntry(
        id=orm_entry.id,
        type=orm_entry.type,
        merchant_id=orm_entry.merchant_id,
        country=orm_entry.country or "",
        operating_company_id=orm_entry.operating_company_id,
        currency=orm_entry.currency,
        amount=_dec(orm_entry.amount),
        original_currency=orm_entry.original_currency,
        original_amount=None if orm_entry.original_amount is None else _dec(orm_entry.original_amount),
        local_currency=orm_entry.local_currency,
        local_amount=None if orm_entry.local_amount is None else _dec(orm_entry.local_amount),
        source_type=orm_entry.source_type,
        source_id=orm_entry.source_id,
        created_at=orm_entry.created_at,
    )


def order_to_domain(orm_order: ORMOrder) -> domain.Order:
    return domain.Order(
        id=orm_order.id,
        merchant_id=orm_order.merchant_id,
        country=orm_order.country,
        operating_company_id=orm_order.operating_company_id,
        status=orm_order.status,
        closed_at=orm_order.closed_at,
        is_production=orm_order.is_production,
        is_vat_deduction=orm_order.is_vat_deduction,
        payment_gross_revenue_local=_dec(orm_order.payment_gross_revenue_local),
        payment_tax_fee_local=_dec(orm_order.payment_tax_fee_local),
        payment_refund_gross_revenue_local=_dec(orm_order.payment_refund_gross_revenue_local),
        payment_refund_tax_fee_local=_dec(orm_order.payment_refund_tax_fee_local),
        fees_total_local=_dec(orm_order.fees_total_local),
        refund_fees_total_local=_dec(orm_order.refund_fees_total_local),
        royalty_report_id=orm_order.royalty_report_id,
    )


def royalty_report_to_domain(orm_report: ORMRoyaltyReport) -> domain.RoyaltyReport:
    """Convert SQLAlchemy RoyaltyReport model to domain entity."""
    return domain.RoyaltyReport(
        id=orm_report.id,
        merchant_id=orm_report.merchant_id,
        currency=orm_report.currency,
        period_from=orm_report.period_from,
        period_to=orm_report.period_to,
        status=RoyaltyReportStatus(orm_report.status),
        transactions_count=orm_report.transactions_count,
        gross_amount=_dec(orm_report.gross_amount),
        fee_amount=_dec(orm_report.fee_amount),
        vat_amount=_dec(orm_report.vat_amount),
        payout_amount=_dec(orm_report.payout_amount),
        correction_amount=_dec(orm_report.correction_amount),
        correction_reason=orm_report.correction_reason,
        rolling_reserve_amount=_dec(orm_report.rolling_reserve_amount),
        accept_expire_at=orm_report.accept_expire_at,
        accepted_at=orm_report.accepted_at,
        is_auto_accepted=orm_report.is_auto_accepted,
        payout_document_id=orm_report.payout_document_id,
        payout_date=orm_report.payout_date,
        is_deleted=orm_report.is_deleted,
        created_at=orm_report.created_at,
        updated_at=orm_report.updated_at,
    )


def payout_document_to_domain(orm_document: ORMPayoutDocument) -> domain.PayoutDocument:
    """Convert SQLAlchemy PayoutDocument model to domain entity."""
    return domain.PayoutDocument(
        id=orm_document.id,
        merchant_id=orm_document.merchant_id,
        currency=orm_document.currency,
        status=PayoutStatus(orm_document.status),
        source_ids=tuple(int(source_id) for source_id in orm_document.source_ids or ()),
        balance=_dec(orm_document.balance),
        total_fees=_dec(orm_document.total_fees),
        total_transactions=orm_document.total_transactions,
        period_from=orm_document.period_from,
        period_to=orm_document.period_to,
        arrival_date=orm_document.arrival_date,
        description=orm_document.description,
        transaction_id=orm_document.transaction_id,
        paid_at=orm_document.paid_at,
        failure_code=orm_document.failure_code,
        failure_message=orm_document.failure_message,
        failure_transaction=orm_document.failure_transaction,
        created_at=orm_document.created_at,
        updated_at=orm_document.updated_at,
    )


def document_change_to_domain(orm_change) -> domain.DocumentChange:
    """Convert either change journal row to a DocumentChange."""
    return domain.DocumentChange(
        id=orm_change.id,
        document_id=orm_change.document_id,
        source=orm_change.source,
        ip=orm_change.ip,
        hash=orm_change.hash,
        created_at=orm_change.created_at,
    )


def merchant_balance_to_domain(orm_balance: ORMMerchantBalance) -> domain.MerchantBalance:
    return domain.MerchantBalance(
        id=orm_balance.id,
        merchant_id=orm_balance.merchant_id,
        currency=orm_balance.currency,
        debit=_dec(orm_balance.debit),
        credit=_dec(orm_balance.credit),
        rolling_reserve=_dec(orm_balance.rolling_reserve),
        total=_dec(orm_balance.total),
        created_at=orm_balance.created_at,
    )


def annual_turnover_to_domain(orm_turnover: ORMAnnualTurnover) -> domain.AnnualTurnover:
    return domain.AnnualTurnover(
        id=orm_turnover.id,
        year=orm_turnover.year,
        country=orm_turnover.country or "",
        operating_company_id=orm_turnover.operating_company_id,
        amount=_dec(orm_turnover.amount),
        currency=orm_turnover.currency,
        updated_at=orm_turnover.updated_at,
    )


def vat_report_to_domain(orm_report: ORMVatReport) -> domain.VatReport:
    """Convert SQLAlchemy VatReport model to domain entity."""
    return domain.VatReport(
        id=orm_report.id,
        country=orm_report.country,
        operating_company_id=orm_report.operating_company_id,
        vat_rate=_dec(orm_report.vat_rate),
        currency=orm_report.currency,
        status=VatReportStatus(orm_report.status),
        date_from=orm_report.date_from,
        date_to=orm_report.date_to,
        pay_until_date=orm_report.pay_until_date,
        transactions_count=orm_report.transactions_count,
        gross_revenue=_dec(orm_report.gross_revenue),
        vat_amount=_dec(orm_report.vat_amount),
        fees_amount=_dec(orm_report.fees_amount),
        deduction_amount=_dec(orm_report.deduction_amount),
        correction_amount=_dec(orm_report.correction_amount),
        country_annual_turnover=_dec(orm_report.country_annual_turnover),
        world_annual_turnover=_dec(orm_report.world_annual_turnover),
        amounts_approximate=orm_report.amounts_approximate,
        paid_at=orm_report.paid_at,
        created_at=orm_report.created_at,
        updated_at=orm_report.updated_at,
    )
