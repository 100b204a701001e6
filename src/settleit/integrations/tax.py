"""Tax rate service backed by the tax_rates table."""

from decimal import Decimal

from settleit.database.base import Database
from settleit.domain.errors import TaxRateUnavailable
from settleit.integrations.base import TaxRateService


class TableTaxRateService(TaxRateService):
    def __init__(self, db: Database):
        self.db = db

    def get_rate(self, country: str) -> Decimal:
        rate = self.db.get_tax_rate(country)
        if rate is None:
            raise TaxRateUnavailable(f"No tax rate configured for country '{country}'")
        return rate
