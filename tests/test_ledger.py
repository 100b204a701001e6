"""Tests for the ledger service."""

import pytest
from datetime import datetime
from decimal import Decimal
from settleit.domain import entry_types
from settleit.domain.errors import MerchantNotFound, UnknownEntryType, UnsupportedCurrency, ValidationError
from settleit.domain.ledger import LedgerService, normalize_currency


@pytest.fixture
def ledger(temp_db):
    return LedgerService(temp_db)


def test_record_entry_normalizes_values(ledger, merchant):
    """Test currency codes are upper-cased and amounts rounded to cents."""
    entry_id = ledger.record_entry(
        entry_types.PAYMENT,
        merchant.id,
        "eur",
        Decimal("10.005"),
        country="de",
        created_at=datetime(2024, 3, 1, 12, 0),
    )

    entry = ledger.get_entry(entry_id)
    assert entry.type == entry_types.PAYMENT
    assert entry.currency == "EUR"
    assert entry.amount == Decimal("10.01")
    assert entry.country == "DE"
    assert entry.created_at == datetime(2024, 3, 1, 12, 0)


def test_record_entry_with_original_and_local_amounts(ledger, merchant):
    entry_id = ledger.record_entry(
        entry_types.REAL_GROSS_REVENUE,
        merchant.id,
        "EUR",
        Decimal("10"),
        country="RU",
        original_currency="usd",
        original_amount=Decimal("20"),
        local_currency="rub",
        local_amount=Decimal("1000"),
        source_id="order-1",
    )

    entry = ledger.get_entry(entry_id)
    assert entry.original_currency == "USD"
    assert entry.original_amount == Decimal("20.00")
    assert entry.local_currency == "RUB"
    assert entry.local_amount == Decimal("1000.00")
    assert entry.source_id == "order-1"


def test_unknown_entry_type(ledger, merchant):
    with pytest.raises(UnknownEntryType):
        ledger.record_entry("bonus", merchant.id, "EUR", Decimal("1"))


@pytest.mark.parametrize("currency", ["", "EURO", "E1R", None])
def test_invalid_currency(currency):
    with pytest.raises(UnsupportedCurrency):
        normalize_currency(currency)


def test_invalid_country(ledger, merchant):
    with pytest.raises(ValidationError):
        ledger.record_entry(entry_types.PAYMENT, merchant.id, "EUR", Decimal("1"), country="DEU")


def test_unknown_merchant(ledger):
    with pytest.raises(MerchantNotFound):
        ledger.record_entry(entry_types.PAYMENT, 999, "EUR", Decimal("1"))


def test_list_entries_filters(ledger, merchant):
    ledger.record_entry(entry_types.PAYMENT, merchant.id, "EUR", Decimal("100"), created_at=datetime(2024, 3, 1))
    ledger.record_entry(entry_types.METHOD_FEE, merchant.id, "EUR", Decimal("2"), created_at=datetime(2024, 3, 2))
    ledger.record_entry(entry_types.PAYMENT, merchant.id, "EUR", Decimal("50"), created_at=datetime(2024, 4, 1))

    payments = ledger.list_entries(merchant_id=merchant.id, types=[entry_types.PAYMENT])
    assert [e.amount for e in payments] == [Decimal("100.00"), Decimal("50.00")]

    march = ledger.list_entries(
        merchant_id=merchant.id, created_from=datetime(2024, 3, 1), created_to=datetime(2024, 3, 31)
    )
    assert [e.type for e in march] == [entry_types.PAYMENT, entry_types.METHOD_FEE]
