"""Wiring of the reconciliation services around one database."""

import logging
import threading
from typing import Optional

from settleit.config import Settings
from settleit.database.base import Database
from settleit.domain.balance import MerchantBalanceService
from settleit.domain.ledger import LedgerService
from settleit.domain.notifications import Notifier
from settleit.domain.payout import PayoutDocumentService
from settleit.domain.royalty_report import RoyaltyReportService
from settleit.domain.turnover import TurnoverService
from settleit.domain.vat_report import VatReportService
from settleit.integrations.base import (
    EmailSender,
    ExchangeGateway,
    PayoutExporter,
    Publisher,
    TaxRateService,
)
from settleit.integrations.exchange import RateTableExchangeGateway
from settleit.integrations.export import CsvPayoutExporter
from settleit.integrations.mail import SmtpEmailSender
from settleit.integrations.pubsub import RedisPublisher
from settleit.integrations.tax import TableTaxRateService
from settleit.utils.keyed_lock import KeyedLock

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Owns the services and the locks they share.

    Collaborators not passed in are built from ``settings``: rates come from
    the database tables, while email, pub/sub and export are only enabled
    when their settings are present.
    """

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        exchange: Optional[ExchangeGateway] = None,
        tax: Optional[TaxRateService] = None,
        email_sender: Optional[EmailSender] = None,
        publisher: Optional[Publisher] = None,
        exporter: Optional[PayoutExporter] = None,
    ):
        self.db = db
        self.settings = settings or Settings()

        self.exchange = exchange or RateTableExchangeGateway(db)
        self.tax = tax or TableTaxRateService(db)
        if email_sender is None and self.settings.smtp_host:
            email_sender = SmtpEmailSender(
                self.settings.smtp_host, self.settings.smtp_port, self.settings.email_sender
            )
        if publisher is None and self.settings.redis_url:
            publisher = RedisPublisher(self.settings.redis_url)
        if exporter is None and self.settings.export_dir:
            exporter = CsvPayoutExporter(self.settings.export_dir)

        self.notifier = Notifier(
            email_sender=email_sender,
            publisher=publisher,
            merchant_channel=self.settings.merchant_channel,
            financier_channel=self.settings.financier_channel,
            financier_email=self.settings.financier_email,
        )

        self.merchant_locks = KeyedLock()
        self.ledger_lock = threading.Lock()

        self.ledger = LedgerService(db)
        self.balance = MerchantBalanceService(db, locks=self.merchant_locks)
        self.royalty = RoyaltyReportService(
            db,
            settings=self.settings,
            notifier=self.notifier,
            balance=self.balance,
            ledger_lock=self.ledger_lock,
        )
        self.payout = PayoutDocumentService(
            db,
            settings=self.settings,
            balance=self.balance,
            notifier=self.notifier,
            exporter=exporter,
            locks=self.merchant_locks,
        )
        self.turnover = TurnoverService(db, self.exchange, settings=self.settings)
        self.vat = VatReportService(
            db,
            self.exchange,
            self.tax,
            turnover=self.turnover,
            notifier=self.notifier,
            ledger_lock=self.ledger_lock,
        )
        logger.debug(
            "Engine ready",
            extra={
                "email": email_sender is not None,
                "pubsub": publisher is not None,
                "export": exporter is not None,
            },
        )
