"""Shared pytest fixtures for settleit tests."""

import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from settleit.config import Settings
from settleit.database.factories import create_sqlite_database
from settleit.domain.engine import ReconciliationEngine
from settleit.domain.entities import Country, RoyaltyReport
from settleit.domain.errors import ExchangeFailed, TaxRateUnavailable
from settleit.domain.statuses import CurrencyRatesPolicy, RoyaltyReportStatus
from settleit.integrations.base import (
    EmailSender,
    ExchangeGateway,
    PayoutExporter,
    Publisher,
    TaxRateService,
)


class FakeExchangeGateway(ExchangeGateway):
    """Fixed rates keyed by (from, to); records every lookup."""

    def __init__(self, rates=None):
        self.rates = {pair: Decimal(str(rate)) for pair, rate in (rates or {}).items()}
        self.calls = []

    def get_rate(self, from_currency, to_currency, rate_type, source="", as_of=None):
        self.calls.append((from_currency, to_currency, getattr(rate_type, "value", rate_type), source, as_of))
        if from_currency == to_currency:
            return Decimal("1")
        try:
            return self.rates[(from_currency, to_currency)]
        except KeyError:
            raise ExchangeFailed(f"No rate {from_currency}->{to_currency}") from None


class FakeTaxRateService(TaxRateService):
    def __init__(self, rates=None):
        self.rates = {country: Decimal(str(rate)) for country, rate in (rates or {}).items()}

    def get_rate(self, country):
        if country not in self.rates:
            raise TaxRateUnavailable(f"No tax rate for {country}")
        return self.rates[country]


class RecordingEmailSender(EmailSender):
    def __init__(self):
        self.sent = []

    def send(self, recipient, subject, body):
        self.sent.append((recipient, subject, body))


class FailingEmailSender(EmailSender):
    def send(self, recipient, subject, body):
        raise ConnectionError("SMTP server unreachable")


class RecordingPublisher(Publisher):
    def __init__(self):
        self.messages = []

    def publish(self, channel, payload):
        self.messages.append((channel, payload))

    def events(self, event=None):
        return [payload for _, payload in self.messages if event is None or payload["event"] == event]


class FailingPublisher(Publisher):
    def publish(self, channel, payload):
        raise ConnectionError("Redis unreachable")


class RecordingExporter(PayoutExporter):
    def __init__(self):
        self.exported = []

    def export(self, document, reports):
        self.exported.append((document, list(reports)))
        return f"memory://payout_{document.id}"


class FailingExporter(PayoutExporter):
    def export(self, document, reports):
        raise OSError("Disk full")


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    """Settings with a UTC royalty window closing Mondays at midnight."""
    return Settings(royalty_timezone="UTC", royalty_cutoff_hour=0, workers=4)


@pytest.fixture
def exchange():
    return FakeExchangeGateway(
        {
            ("USD", "EUR"): "0.5",
            ("EUR", "USD"): "2",
            ("EUR", "RUB"): "100",
            ("USD", "RUB"): "50",
        }
    )


@pytest.fixture
def tax():
    return FakeTaxRateService({"DE": "0.19", "RU": "0.20", "FR": "0.20"})


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def exporter():
    return RecordingExporter()


@pytest.fixture
def engine(temp_db, settings, exchange, tax, email_sender, publisher, exporter):
    """Create a ReconciliationEngine over the temporary database with fake collaborators."""
    engine = ReconciliationEngine(
        temp_db,
        settings,
        exchange=exchange,
        tax=tax,
        email_sender=email_sender,
        publisher=publisher,
        exporter=exporter,
    )
    yield engine
    # Exports must not outlive the database file
    engine.payout.wait_for_exports(timeout=5)


@pytest.fixture
def merchant(temp_db):
    """Create a EUR merchant with a 13000 minimum payout."""
    merchant_id = temp_db.create_merchant(
        name="Acme Games",
        payout_currency="EUR",
        min_payout_amount=Decimal("13000"),
        email="finance@acme.test",
        email_authorized=True,
    )
    return temp_db.get_merchant(merchant_id)


@pytest.fixture
def make_report(temp_db):
    """Factory inserting royalty reports directly into the database."""
    counter = {"week": 0}

    def _make(merchant_id, payout_amount, status=RoyaltyReportStatus.ACCEPTED, currency="EUR", **fields):
        counter["week"] += 1
        period_from = datetime(2024, 1, 1) + timedelta(weeks=counter["week"])
        amount = Decimal(str(payout_amount))
        values = dict(
            id=0,
            merchant_id=merchant_id,
            currency=currency,
            period_from=period_from,
            period_to=period_from + timedelta(days=7),
            status=status,
            transactions_count=3,
            gross_amount=amount,
            fee_amount=Decimal("0"),
            vat_amount=Decimal("0"),
            payout_amount=amount,
            accept_expire_at=period_from + timedelta(days=14),
            created_at=period_from + timedelta(days=7),
        )
        values.update(fields)
        report_id = temp_db.create_royalty_report(RoyaltyReport(**values))
        return temp_db.get_royalty_report(report_id)

    return _make


@pytest.fixture
def vat_countries(temp_db):
    """Germany (monthly, on-day, no threshold) and Russia (quarterly, last-day)."""
    germany = Country(
        code="DE",
        name="Germany",
        vat_enabled=True,
        currency="EUR",
        vat_period_months=1,
        vat_deadline_days=10,
    )
    russia = Country(
        code="RU",
        name="Russia",
        vat_enabled=True,
        currency="RUB",
        vat_period_months=3,
        vat_deadline_days=25,
        vat_threshold_year=Decimal("1000000"),
        vat_rates_policy=CurrencyRatesPolicy.LAST_DAY,
        vat_rates_source="RUCBRF",
    )
    temp_db.save_country(germany)
    temp_db.save_country(russia)
    return {"DE": temp_db.get_country("DE"), "RU": temp_db.get_country("RU")}


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
