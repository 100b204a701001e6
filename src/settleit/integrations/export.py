"""CSV statements for payout documents."""

import csv
from pathlib import Path
from typing import Sequence

from settleit.domain.entities import PayoutDocument, RoyaltyReport
from settleit.integrations.base import PayoutExporter

HEADER = [
    "royalty_report_id",
    "period_from",
    "period_to",
    "currency",
    "transactions",
    "gross_amount",
    "fee_amount",
    "vat_amount",
    "payout_amount",
    "correction_amount",
    "rolling_reserve_amount",
]


class CsvPayoutExporter(PayoutExporter):
    """Writes ``payout_<id>.csv`` into a directory, one row per source report."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def export(self, document: PayoutDocument, reports: Sequence[RoyaltyReport]) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"payout_{document.id}.csv"
        with open(path, "w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(HEADER)
            for report in reports:
                writer.writerow(
                    [
                        report.id,
                        report.period_from.isoformat(),
                        report.period_to.isoformat(),
                        report.currency,
                        report.transactions_count,
                        report.gross_amount,
                        report.fee_amount,
                        report.vat_amount,
                        report.payout_amount,
                        report.correction_amount,
                        report.rolling_reserve_amount,
                    ]
                )
            writer.writerow([])
            writer.writerow(["payout_document_id", document.id])
            writer.writerow(["status", document.status.value])
            writer.writerow(["balance", document.balance])
            writer.writerow(["arrival_date", document.arrival_date.date().isoformat()])
        return str(path)
