"""Exchange gateway backed by the exchange_rates table."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from settleit.database.base import Database
from settleit.domain.errors import ExchangeFailed
from settleit.integrations.base import ExchangeGateway
from settleit.utils.date_parser import utcnow

logger = logging.getLogger(__name__)


class RateTableExchangeGateway(ExchangeGateway):
    """Looks up the newest rate effective at the requested time.

    When only the opposite pair is stored, its inverse is used.
    """

    def __init__(self, db: Database):
        self.db = db

    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate_type: str,
        source: str = "",
        as_of: Optional[datetime] = None,
    ) -> Decimal:
        if from_currency == to_currency:
            return Decimal("1")
        as_of = as_of or utcnow()

        rate = self.db.find_exchange_rate(from_currency, to_currency, rate_type, source, as_of)
        if rate is not None:
            return rate.rate

        inverse = self.db.find_exchange_rate(to_currency, from_currency, rate_type, source, as_of)
        if inverse is not None and inverse.rate != 0:
            return Decimal("1") / inverse.rate

        logger.error(
            "Exchange rate not found",
            extra={
                "from_currency": from_currency,
                "to_currency": to_currency,
                "rate_type": str(getattr(rate_type, "value", rate_type)),
                "rate_source": source,
                "as_of": as_of.isoformat(),
            },
        )
        raise ExchangeFailed(
            f"No {getattr(rate_type, 'value', rate_type)} rate for {from_currency}->{to_currency} "
            f"as of {as_of:%Y-%m-%d %H:%M}"
        )
