"""External collaborators: exchange rates, tax rates, notifications, exports."""

from settleit.integrations.base import (
    EmailSender,
    ExchangeGateway,
    PayoutExporter,
    Publisher,
    TaxRateService,
)

__all__ = ["EmailSender", "ExchangeGateway", "PayoutExporter", "Publisher", "TaxRateService"]
