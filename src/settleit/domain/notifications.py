"""Best-effort merchant and financier notifications.

Delivery failures are logged and swallowed here: a notification must never
fail or roll back the status write that triggered it.
"""

import logging
from typing import Optional

from settleit.domain.entities import Merchant, PayoutDocument, RoyaltyReport, VatReport
from settleit.domain.statuses import VAT_EMAIL_NOTIFY
from settleit.integrations.base import EmailSender, Publisher
from settleit.utils.serialization import to_payload

logger = logging.getLogger(__name__)

ROYALTY_REPORT_SUBJECT = "New royalty report"
ROYALTY_REPORT_BODY = (
    "Your royalty report #{report_id} for {period_from:%Y-%m-%d} - {period_to:%Y-%m-%d} "
    "is ready for review. Payout amount: {payout_amount} {currency}. "
    "It will be accepted automatically after {accept_expire_at:%Y-%m-%d %H:%M} UTC."
)
VAT_REPORT_SUBJECT = "VAT report status changed"
VAT_REPORT_BODY = "VAT report for country {country} ({date_from} - {date_to}) has status: {status}."


class Notifier:
    """Fans events out to email and pub/sub. Either transport may be absent."""

    def __init__(
        self,
        email_sender: Optional[EmailSender] = None,
        publisher: Optional[Publisher] = None,
        merchant_channel: str = "settleit:merchant#{merchant_id}",
        financier_channel: str = "settleit:financier",
        financier_email: Optional[str] = None,
    ):
        self.email_sender = email_sender
        self.publisher = publisher
        self.merchant_channel = merchant_channel
        self.financier_channel = financier_channel
        self.financier_email = financier_email

    def _publish(self, channel: str, event: str, payload: dict, context: dict) -> bool:
        if self.publisher is None:
            return False
        try:
            self.publisher.publish(channel, {"event": event, "data": payload})
        except Exception:
            logger.error("Pub/sub notification failed", exc_info=True, extra={"channel": channel, **context})
            return False
        return True

    def _email(self, recipient: str, subject: str, body: str, context: dict) -> bool:
        if self.email_sender is None or not recipient:
            return False
        try:
            self.email_sender.send(recipient, subject, body)
        except Exception:
            logger.error("Email notification failed", exc_info=True, extra=context)
            return False
        return True

    def royalty_report_ready(self, merchant: Merchant, report: RoyaltyReport) -> None:
        """Tell the merchant a report awaits acceptance."""
        context = {"merchant_id": merchant.id, "report_id": report.id}
        if merchant.email and merchant.email_authorized:
            body = ROYALTY_REPORT_BODY.format(
                report_id=report.id,
                period_from=report.period_from,
                period_to=report.period_to,
                payout_amount=report.payout_amount,
                currency=report.currency,
                accept_expire_at=report.accept_expire_at,
            )
            self._email(merchant.email, ROYALTY_REPORT_SUBJECT, body, context)
        else:
            logger.info("Merchant has no authorized email, skipping email", extra=context)

        channel = self.merchant_channel.format(merchant_id=merchant.id)
        self._publish(channel, "royalty_report.new", to_payload(report), context)

    def payout_document_changed(self, document: PayoutDocument) -> None:
        channel = self.merchant_channel.format(merchant_id=document.merchant_id)
        context = {"merchant_id": document.merchant_id, "payout_document_id": document.id}
        self._publish(channel, "payout_document.status", to_payload(document), context)

    def vat_report_changed(self, report: VatReport) -> None:
        """Publish to the financier dashboard; email for actionable statuses."""
        context = {"country": report.country, "report_id": report.id, "status": report.status.value}
        self._publish(self.financier_channel, "vat_report.status", to_payload(report), context)

        if report.status in VAT_EMAIL_NOTIFY and self.financier_email:
            body = VAT_REPORT_BODY.format(
                country=report.country,
                date_from=report.date_from.isoformat(),
                date_to=report.date_to.isoformat(),
                status=report.status.value,
            )
            self._email(self.financier_email, VAT_REPORT_SUBJECT, body, context)
