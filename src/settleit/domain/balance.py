"""Merchant balance domain service."""

import logging
from decimal import Decimal
from typing import Optional

from settleit.database.base import Database
from settleit.domain import entry_types
from settleit.domain.entities import MerchantBalance
from settleit.domain.errors import MerchantNotFound, NoPayoutCurrency, merchant_not_found
from settleit.domain.statuses import PAYOUT_ACTIVE, ROYALTY_DEBIT
from settleit.utils.amount_parser import format_amount
from settleit.utils.deadline import Deadline, check_deadline
from settleit.utils.keyed_lock import KeyedLock

logger = logging.getLogger(__name__)


class MerchantBalanceService:
    """Recomputes merchant balances from reports, payouts and reserve entries.

    Total = Debit - Credit - RollingReserve, where
    - Debit is the lifetime payout amount of accepted (or already paid)
      royalty reports in the payout currency,
    - Credit is the lifetime balance of pending and paid payout documents,
    - RollingReserve nets reserve-create against reserve-release entries
      created after the newest payout document.

    Each recompute appends a new snapshot. Recomputes for one merchant are
    serialized with a per-merchant lock.
    """

    def __init__(self, db: Database, locks: Optional[KeyedLock] = None):
        """Initialize balance service.

        Args:
            db: Database instance
            locks: Per-merchant locks, shared with other services of one engine
        """
        self.db = db
        self.locks = locks or KeyedLock()

    def compute(self, merchant_id: int, deadline: Optional[Deadline] = None) -> MerchantBalance:
        """Recompute and persist a balance snapshot.

        Raises:
            MerchantNotFound: If the merchant does not exist
            NoPayoutCurrency: If the merchant has no payout currency
        """
        with self.locks.hold(merchant_id):
            return self._compute(merchant_id, deadline)

    def _compute(self, merchant_id: int, deadline: Optional[Deadline]) -> MerchantBalance:
        check_deadline(deadline)
        merchant = self.db.get_merchant(merchant_id)
        if merchant is None:
            raise MerchantNotFound(merchant_not_found(merchant_id))
        if not merchant.payout_currency:
            raise NoPayoutCurrency(f"Merchant {merchant_id} has no payout currency")
        currency = merchant.payout_currency

        check_deadline(deadline)
        debit = self.db.sum_royalty_report_payouts(merchant_id, currency, ROYALTY_DEBIT)

        check_deadline(deadline)
        credit = self.db.sum_payout_document_balances(merchant_id, currency, PAYOUT_ACTIVE)

        check_deadline(deadline)
        rolling_reserve = self.rolling_reserve(merchant_id, currency)

        total = format_amount(debit - credit - rolling_reserve)

        check_deadline(deadline)
        self.db.add_merchant_balance(
            merchant_id=merchant_id,
            currency=currency,
            debit=format_amount(debit),
            credit=format_amount(credit),
            rolling_reserve=format_amount(rolling_reserve),
            total=total,
        )
        logger.info(
            "Merchant balance recomputed",
            extra={"merchant_id": merchant_id, "currency": currency, "total": str(total)},
        )
        return self.db.get_latest_merchant_balance(merchant_id, currency)

    def rolling_reserve(self, merchant_id: int, currency: str) -> Decimal:
        """Net reserve in ``currency`` created after the newest pending or paid
        payout document in the same currency."""
        last_document = self.db.get_last_payout_document(merchant_id, PAYOUT_ACTIVE, currency=currency)
        created_after = last_document.created_at if last_document is not None else None
        sums = self.db.sum_accounting_entries_by_type(
            merchant_id, entry_types.ROLLING_RESERVE_TYPES, currency=currency, created_after=created_after
        )
        return sums.get(entry_types.ROLLING_RESERVE_CREATE, Decimal("0")) - sums.get(
            entry_types.ROLLING_RESERVE_RELEASE, Decimal("0")
        )

    def get(self, merchant_id: int, deadline: Optional[Deadline] = None) -> MerchantBalance:
        """Return the newest snapshot, computing one when none exists."""
        check_deadline(deadline)
        merchant = self.db.get_merchant(merchant_id)
        if merchant is None:
            raise MerchantNotFound(merchant_not_found(merchant_id))
        balance = self.db.get_latest_merchant_balance(merchant_id, merchant.payout_currency)
        if balance is not None:
            return balance
        return self.compute(merchant_id, deadline=deadline)
