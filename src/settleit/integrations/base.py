"""Interfaces of the engine's external collaborators."""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from settleit.domain.entities import PayoutDocument, RoyaltyReport


class ExchangeGateway(ABC):
    """Converts amounts between currencies under a named rate type."""

    @abstractmethod
    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate_type: str,
        source: str = "",
        as_of: Optional[datetime] = None,
    ) -> Decimal:
        """Return the rate to multiply a ``from_currency`` amount by.

        Raises:
            ExchangeFailed: If no rate is known
        """
        pass

    def exchange(
        self,
        from_currency: str,
        to_currency: str,
        rate_type: str,
        amount: Decimal,
        source: str = "",
        as_of: Optional[datetime] = None,
    ) -> Decimal:
        """Convert ``amount``, optionally as of a point in time."""
        if from_currency == to_currency:
            return amount
        return amount * self.get_rate(from_currency, to_currency, rate_type, source, as_of)


class TaxRateService(ABC):
    """Provides the current VAT rate of a country."""

    @abstractmethod
    def get_rate(self, country: str) -> Decimal:
        """Return the rate.

        Raises:
            TaxRateUnavailable: If the rate cannot be fetched
        """
        pass


class EmailSender(ABC):
    """Sends plain text email."""

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> None:
        pass


class Publisher(ABC):
    """Publishes JSON-serializable events to a pub/sub channel."""

    @abstractmethod
    def publish(self, channel: str, payload: dict[str, Any]) -> None:
        pass


class PayoutExporter(ABC):
    """Produces a downloadable statement for a payout document."""

    @abstractmethod
    def export(self, document: PayoutDocument, reports: Sequence[RoyaltyReport]) -> str:
        """Write the statement and return its location."""
        pass
