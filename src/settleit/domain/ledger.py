"""Accounting ledger domain service."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Iterable

from settleit.database.base import Database
from settleit.domain import entry_types
from settleit.domain.entities import AccountingEntry
from settleit.domain.errors import (
    MerchantNotFound,
    UnknownEntryType,
    UnsupportedCurrency,
    ValidationError,
    merchant_not_found,
)
from settleit.utils.amount_parser import format_amount
from settleit.utils.deadline import Deadline, check_deadline

logger = logging.getLogger(__name__)


def normalize_currency(code: Optional[str]) -> str:
    """Return an upper-case ISO 4217 code or raise UnsupportedCurrency."""
    if code is None or len(code.strip()) != 3 or not code.strip().isalpha():
        raise UnsupportedCurrency(f"Unsupported currency code '{code}'")
    return code.strip().upper()


class LedgerService:
    """Append-only access to accounting entries."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def record_entry(
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
        deadline: Optional[Deadline] = None,
    ) -> int:
        """Append an accounting entry.

        Args:
            entry_type: One of the known entry types
            merchant_id: Merchant the entry belongs to
            currency: Currency of ``amount``
            amount: Signed amount, rounded to cents
            country: ISO alpha-2 country code or empty
            original_currency/original_amount: Amount in the payment currency
            local_currency/local_amount: Amount in the country's VAT currency

        Returns:
            Entry ID

        Raises:
            UnknownEntryType: If the type is not a known entry type
            UnsupportedCurrency: If a currency code is malformed
            MerchantNotFound: If the merchant does not exist
        """
        if entry_type not in entry_types.ALL_TYPES:
            raise UnknownEntryType(f"Unknown accounting entry type '{entry_type}'")
        currency = normalize_currency(currency)
        if original_currency is not None:
            original_currency = normalize_currency(original_currency)
        if local_currency is not None:
            local_currency = normalize_currency(local_currency)
        if country and len(country) != 2:
            raise ValidationError(f"Country must be an ISO alpha-2 code, got '{country}'")

        check_deadline(deadline)
        if self.db.get_merchant(merchant_id) is None:
            raise MerchantNotFound(merchant_not_found(merchant_id))

        check_deadline(deadline)
        entry_id = self.db.add_accounting_entry(
            entry_type=entry_type,
            merchant_id=merchant_id,
            currency=currency,
            amount=format_amount(amount),
            country=country.upper(),
            operating_company_id=operating_company_id,
            original_currency=original_currency,
            original_amount=None if original_amount is None else format_amount(original_amount),
            local_currency=local_currency,
            local_amount=None if local_amount is None else format_amount(local_amount),
            source_type=source_type,
            source_id=source_id,
            created_at=created_at,
        )
        logger.debug(
            "Accounting entry recorded",
            extra={"entry_id": entry_id, "entry_type": entry_type, "merchant_id": merchant_id},
        )
        return entry_id

    def get_entry(self, entry_id: int) -> Optional[AccountingEntry]:
        return self.db.get_accounting_entry(entry_id)

    def list_entries(
        self,
        merchant_id: Optional[int] = None,
        types: Optional[Iterable[str]] = None,
        country: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> list[AccountingEntry]:
        """List entries matching every given filter, oldest first."""
        return self.db.list_accounting_entries(
            merchant_id=merchant_id,
            types=types,
            country=country.upper() if country else None,
            created_from=created_from,
            created_to=created_to,
        )
