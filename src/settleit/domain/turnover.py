"""Annual turnover aggregation per country and worldwide."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from settleit.config import Settings
from settleit.database.base import Database
from settleit.domain import entry_types
from settleit.domain.entities import WORLD, AnnualTurnover, BatchResult, Country
from settleit.domain.errors import (
    CountryNotFound,
    CurrencyRatesPolicyNotSupported,
    DomainError,
    OperatingCompanyNotFound,
    TurnoverNotFound,
    country_not_found,
)
from settleit.domain.statuses import CurrencyRatesPolicy, RateType
from settleit.integrations.base import ExchangeGateway
from settleit.utils.amount_parser import format_amount
from settleit.utils.date_parser import end_of_day, start_of_day, start_of_year, utcnow
from settleit.utils.deadline import Deadline, check_deadline
from settleit.utils.periods import previous_vat_period, vat_period

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class _Target:
    """Currency and exchange policy a turnover is expressed in."""

    currency: str
    rate_type: RateType
    source: str
    policy: CurrencyRatesPolicy
    period_months: int = 0


class TurnoverService:
    """Aggregates year-to-date gross revenue into annual turnovers."""

    def __init__(self, db: Database, exchange: ExchangeGateway, settings: Optional[Settings] = None):
        """Initialize turnover service.

        Args:
            db: Database instance
            exchange: Gateway used to convert revenue into the target currency
            settings: Provides the world currency
        """
        self.db = db
        self.exchange = exchange
        self.settings = settings or Settings()

    def _target(self, country: Optional[Country]) -> _Target:
        if country is None:
            return _Target(
                currency=self.settings.world_currency,
                rate_type=RateType.COMMON,
                source="",
                policy=CurrencyRatesPolicy.ON_DAY,
            )
        return _Target(
            currency=country.currency,
            rate_type=RateType.CENTRAL_BANKS,
            source=country.vat_rates_source,
            policy=country.vat_rates_policy,
            period_months=country.vat_period_months,
        )

    def calc_annual(
        self,
        country: str = WORLD,
        operating_company_id: Optional[int] = None,
        as_of: Optional[datetime] = None,
        deadline: Optional[Deadline] = None,
    ) -> AnnualTurnover:
        """Compute and store the turnover of ``as_of``'s year up to ``as_of``.

        Args:
            country: Country code, or empty for the worldwide turnover
            operating_company_id: Restrict to one operating company
            as_of: End of the aggregation (defaults to now)
            deadline: Optional cancellation deadline

        Returns:
            The stored AnnualTurnover

        Raises:
            CountryNotFound: If the country does not exist
            CurrencyRatesPolicyNotSupported: If the country's policy is neither on-day nor last-day
            ExchangeFailed: If a rate needed for conversion is missing
        """
        as_of = as_of or utcnow()
        check_deadline(deadline)

        country_entity = None
        if country:
            country_entity = self.db.get_country(country)
            if country_entity is None:
                raise CountryNotFound(country_not_found(country))
        target = self._target(country_entity)

        if target.policy == CurrencyRatesPolicy.ON_DAY:
            amount = self._on_day(country, operating_company_id, target, as_of, deadline)
        elif target.policy == CurrencyRatesPolicy.LAST_DAY:
            amount = self._last_day(country, operating_company_id, target, as_of, deadline)
        else:
            raise CurrencyRatesPolicyNotSupported(
                f"Currency rates policy '{target.policy.value}' is not supported"
            )

        amount = format_amount(amount)
        check_deadline(deadline)
        self.db.upsert_annual_turnover(as_of.year, country, operating_company_id, amount, target.currency)
        logger.info(
            "Annual turnover calculated",
            extra={
                "country": country or "world",
                "operating_company_id": operating_company_id,
                "year": as_of.year,
                "amount": str(amount),
                "currency": target.currency,
            },
        )
        return self.db.get_annual_turnover(as_of.year, country, operating_company_id)

    def _on_day(self, country, operating_company_id, target, as_of, deadline) -> Decimal:
        # Local amounts were converted when each payment happened.
        check_deadline(deadline)
        sums = self.db.sum_accounting_entries_by_currency(
            [entry_types.REAL_GROSS_REVENUE],
            start_of_year(as_of.date()),
            end_of_day(as_of.date()),
            country=country,
            operating_company_id=operating_company_id,
            use_local=True,
        )
        return self._convert(sums, target, end_of_day(as_of.date()), deadline)

    def _last_day(self, country, operating_company_id, target, as_of, deadline) -> Decimal:
        year_start = start_of_year(as_of.date()).date()
        period_from, period_to = vat_period(target.period_months, as_of.date())

        total = ZERO
        while period_from >= year_start:
            check_deadline(deadline)
            sums = self.db.sum_accounting_entries_by_currency(
                [entry_types.REAL_GROSS_REVENUE],
                start_of_day(period_from),
                end_of_day(period_to),
                country=country,
                operating_company_id=operating_company_id,
                use_local=False,
            )
            total += self._convert(sums, target, end_of_day(period_to), deadline)
            period_from, period_to = previous_vat_period(target.period_months, period_from)
        return total

    def _convert(self, sums: dict, target: _Target, as_of: datetime, deadline) -> Decimal:
        total = ZERO
        for currency, amount in sums.items():
            if currency == target.currency:
                total += amount
                continue
            check_deadline(deadline)
            total += self.exchange.exchange(
                currency, target.currency, target.rate_type, amount, source=target.source, as_of=as_of
            )
        return total

    def calc_all(self, as_of: Optional[datetime] = None, deadline: Optional[Deadline] = None) -> BatchResult:
        """Recompute turnovers of every operating company.

        Each company gets a worldwide turnover plus one per payment
        country (all VAT-enabled countries when it has none configured).
        Countries are processed one after another to keep the exchange
        gateway load flat.

        Raises:
            DomainError: If a worldwide turnover cannot be computed
        """
        as_of = as_of or utcnow()
        result = BatchResult()

        for company_id, countries in self.scopes():
            check_deadline(deadline)
            world = self.calc_annual(WORLD, company_id, as_of, deadline=deadline)
            result.succeeded[(company_id, WORLD)] = world.amount

            for code in countries:
                key = (company_id, code)
                try:
                    turnover = self.calc_annual(code, company_id, as_of, deadline=deadline)
                except CurrencyRatesPolicyNotSupported as e:
                    logger.warning(
                        "Turnover skipped for unsupported rates policy",
                        extra={"country": code, "operating_company_id": company_id},
                    )
                    result.skipped[key] = e.code
                except DomainError as e:
                    logger.error(
                        "Turnover calculation failed",
                        extra={"country": code, "operating_company_id": company_id, "error_code": e.code},
                    )
                    result.errors[key] = e
                else:
                    result.succeeded[key] = turnover.amount
        return result

    def scopes(self) -> list[tuple[Optional[int], list[str]]]:
        """Return (operating company id, VAT country codes) pairs to aggregate.

        Without any operating company, a single unscoped pair covering all
        VAT-enabled countries is returned.
        """
        vat_countries = [c.code for c in self.db.list_countries(vat_enabled=True)]
        companies = self.db.list_operating_companies()
        if not companies:
            return [(None, vat_countries)]
        scopes = []
        for company in companies:
            if company.payment_countries:
                countries = [code for code in company.payment_countries if code in vat_countries]
            else:
                countries = vat_countries
            scopes.append((company.id, countries))
        return scopes

    def get(
        self, operating_company_id: Optional[int], country: str = WORLD, year: Optional[int] = None
    ) -> AnnualTurnover:
        """Return a stored turnover.

        Raises:
            OperatingCompanyNotFound: If the company does not exist
            TurnoverNotFound: If nothing was calculated for the key
        """
        if operating_company_id is not None and self.db.get_operating_company(operating_company_id) is None:
            raise OperatingCompanyNotFound(f"Operating company {operating_company_id} not found")
        year = year or utcnow().year
        turnover = self.db.get_annual_turnover(year, country, operating_company_id)
        if turnover is None:
            raise TurnoverNotFound(
                f"No {year} turnover for {country or 'world'} and operating company {operating_company_id}"
            )
        return turnover
