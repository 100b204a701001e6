"""Tests for annual turnover aggregation."""

import pytest
from datetime import date, datetime
from decimal import Decimal
from settleit.domain import entry_types
from settleit.domain.entities import WORLD, Country
from settleit.domain.errors import (
    CountryNotFound,
    CurrencyRatesPolicyNotSupported,
    ExchangeFailed,
    OperatingCompanyNotFound,
    TurnoverNotFound,
)
from settleit.domain.statuses import CurrencyRatesPolicy
from settleit.domain.turnover import TurnoverService
from settleit.utils.date_parser import end_of_day

from conftest import FakeExchangeGateway

AS_OF = datetime(2024, 5, 10, 12, 0)


@pytest.fixture
def rates():
    return FakeExchangeGateway(
        {
            ("USD", "EUR"): "0.5",
            ("RUB", "EUR"): "0.01",
            ("USD", "RUB"): "50",
            ("EUR", "RUB"): "100",
        }
    )


@pytest.fixture
def turnover(temp_db, settings, rates):
    return TurnoverService(temp_db, rates, settings)


def _revenue(db, merchant_id, country, created_at, original, local, company_id=None):
    db.add_accounting_entry(
        entry_types.REAL_GROSS_REVENUE,
        merchant_id,
        "EUR",
        Decimal("0"),
        country=country,
        operating_company_id=company_id,
        original_currency=original[1],
        original_amount=Decimal(original[0]),
        local_currency=local[1],
        local_amount=Decimal(local[0]),
        created_at=created_at,
    )


class TestOnDay:
    def test_sums_local_amounts_year_to_date(self, temp_db, turnover, rates, merchant, vat_countries):
        _revenue(temp_db, merchant.id, "DE", datetime(2024, 2, 10), ("200", "USD"), ("100", "EUR"))
        _revenue(temp_db, merchant.id, "DE", datetime(2024, 5, 10, 18), ("100", "USD"), ("50", "EUR"))
        # Previous year and after as_of
        _revenue(temp_db, merchant.id, "DE", datetime(2023, 12, 31), ("10", "USD"), ("5", "EUR"))
        _revenue(temp_db, merchant.id, "DE", datetime(2024, 5, 11), ("10", "USD"), ("5", "EUR"))
        # Other country
        _revenue(temp_db, merchant.id, "RU", datetime(2024, 2, 10), ("10", "USD"), ("500", "RUB"))

        result = turnover.calc_annual("DE", as_of=AS_OF)

        assert result.year == 2024
        assert result.country == "DE"
        assert result.amount == Decimal("150.00")
        assert result.currency == "EUR"
        assert rates.calls == []

    def test_world_converts_every_currency(self, temp_db, turnover, rates, merchant, vat_countries):
        _revenue(temp_db, merchant.id, "DE", datetime(2024, 2, 10), ("200", "USD"), ("100", "EUR"))
        _revenue(temp_db, merchant.id, "RU", datetime(2024, 3, 1), ("100", "USD"), ("5000", "RUB"))

        result = turnover.calc_annual(WORLD, as_of=AS_OF)

        assert result.amount == Decimal("150.00")
        assert result.currency == "EUR"
        assert rates.calls == [("RUB", "EUR", "common", "", end_of_day(date(2024, 5, 10)))]

    def test_no_revenue_stores_zero(self, turnover, vat_countries):
        result = turnover.calc_annual("DE", as_of=AS_OF)
        assert result.amount == Decimal("0.00")

    def test_missing_rate_propagates(self, temp_db, settings, merchant, vat_countries):
        service = TurnoverService(temp_db, FakeExchangeGateway(), settings)
        _revenue(temp_db, merchant.id, "DE", datetime(2024, 2, 10), ("200", "USD"), ("100", "EUR"))
        _revenue(temp_db, merchant.id, "RU", datetime(2024, 2, 10), ("10", "USD"), ("500", "RUB"))

        with pytest.raises(ExchangeFailed):
            service.calc_annual(WORLD, as_of=AS_OF)


class TestLastDay:
    def test_converts_each_period_at_its_last_day(self, temp_db, turnover, rates, merchant, vat_countries):
        """Test quarterly original amounts use the rate of each quarter end."""
        _revenue(temp_db, merchant.id, "RU", datetime(2024, 2, 1), ("100", "USD"), ("9000", "RUB"))
        _revenue(temp_db, merchant.id, "RU", datetime(2024, 4, 15), ("10", "EUR"), ("900", "RUB"))
        _revenue(temp_db, merchant.id, "RU", datetime(2023, 11, 1), ("999", "USD"), ("1", "RUB"))

        result = turnover.calc_annual("RU", as_of=AS_OF)

        assert result.amount == Decimal("6000.00")
        assert result.currency == "RUB"
        assert ("EUR", "RUB", "centralbanks", "RUCBRF", end_of_day(date(2024, 6, 30))) in rates.calls
        assert ("USD", "RUB", "centralbanks", "RUCBRF", end_of_day(date(2024, 3, 31))) in rates.calls
        assert len(rates.calls) == 2


def test_unsupported_policy(temp_db, turnover):
    temp_db.save_country(
        Country(
            code="FR",
            name="France",
            vat_enabled=True,
            currency="EUR",
            vat_period_months=1,
            vat_rates_policy=CurrencyRatesPolicy.AVG_MONTH,
        )
    )
    with pytest.raises(CurrencyRatesPolicyNotSupported):
        turnover.calc_annual("FR", as_of=AS_OF)


def test_unknown_country(turnover):
    with pytest.raises(CountryNotFound):
        turnover.calc_annual("XX", as_of=AS_OF)


def test_recalculation_updates_in_place(temp_db, turnover, merchant, vat_countries):
    turnover.calc_annual("DE", as_of=AS_OF)
    _revenue(temp_db, merchant.id, "DE", datetime(2024, 2, 10), ("200", "USD"), ("100", "EUR"))
    turnover.calc_annual("DE", as_of=AS_OF)

    stored = temp_db.list_annual_turnovers(2024)
    assert [(t.country, t.amount) for t in stored] == [("DE", Decimal("100.00"))]


class TestCalcAll:
    def test_without_companies(self, temp_db, turnover, vat_countries):
        temp_db.save_country(
            Country(
                code="FR",
                name="France",
                vat_enabled=True,
                currency="EUR",
                vat_period_months=1,
                vat_rates_policy=CurrencyRatesPolicy.AVG_MONTH,
            )
        )

        result = turnover.calc_all(as_of=AS_OF)

        assert set(result.succeeded) == {(None, WORLD), (None, "DE"), (None, "RU")}
        assert result.skipped == {(None, "FR"): CurrencyRatesPolicyNotSupported.code}
        assert result.ok

    def test_per_company_scopes(self, temp_db, turnover, vat_countries):
        temp_db.save_country(Country(code="US", name="United States", vat_enabled=False, currency="USD"))
        eu = temp_db.create_operating_company("EU Ltd", ["DE", "US"])
        everywhere = temp_db.create_operating_company("Global Ltd")
        offshore = temp_db.create_operating_company("US Ltd", ["US"])

        assert turnover.scopes() == [(eu, ["DE"]), (everywhere, ["DE", "RU"]), (offshore, [])]

        result = turnover.calc_all(as_of=AS_OF)
        assert (eu, "DE") in result.succeeded
        assert (eu, "RU") not in result.succeeded
        assert (offshore, WORLD) in result.succeeded

    def test_world_failure_aborts(self, temp_db, settings, merchant, vat_countries):
        service = TurnoverService(temp_db, FakeExchangeGateway(), settings)
        _revenue(temp_db, merchant.id, "RU", datetime(2024, 2, 10), ("10", "USD"), ("500", "RUB"))

        with pytest.raises(ExchangeFailed):
            service.calc_all(as_of=AS_OF)


class TestGet:
    def test_returns_stored_turnover(self, turnover, vat_countries):
        turnover.calc_annual("DE", as_of=AS_OF)
        assert turnover.get(None, "DE", 2024).amount == Decimal("0.00")

    def test_missing(self, turnover):
        with pytest.raises(TurnoverNotFound):
            turnover.get(None, "DE", 2024)

    def test_unknown_company(self, turnover):
        with pytest.raises(OperatingCompanyNotFound):
            turnover.get(42, WORLD, 2024)
