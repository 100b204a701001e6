"""Status enums and transition rules for reports and payout documents."""

from enum import Enum


class RoyaltyReportStatus(str, Enum):
    """Lifecycle of a royalty report."""

    NEW = "new"
    PENDING = "pending"
    ACCEPTED = "accepted"
    DISPUTE = "dispute"
    PAID = "paid"
    EXPIRED = "expired"
    CANCELED = "canceled"


class PayoutStatus(str, Enum):
    """Lifecycle of a payout document."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIP = "skip"


class VatReportStatus(str, Enum):
    """Lifecycle of a VAT report."""

    THRESHOLD = "threshold"
    NEED_TO_PAY = "need_to_pay"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELED = "canceled"
    EXPIRED = "expired"


class CurrencyRatesPolicy(str, Enum):
    """How a country converts revenue into its VAT currency."""

    ON_DAY = "on-day"
    LAST_DAY = "last-day"
    AVG_MONTH = "avg-month"


class RateType(str, Enum):
    """Exchange rate families known to the exchange gateway."""

    MERCHANT = "merchant"
    COMMON = "common"
    CENTRAL_BANKS = "centralbanks"
    STOCK = "stock"


_ROYALTY_TRANSITIONS = {
    RoyaltyReportStatus.NEW: {
        RoyaltyReportStatus.PENDING,
        RoyaltyReportStatus.CANCELED,
        RoyaltyReportStatus.EXPIRED,
    },
    RoyaltyReportStatus.PENDING: {
        RoyaltyReportStatus.ACCEPTED,
        RoyaltyReportStatus.DISPUTE,
        RoyaltyReportStatus.CANCELED,
        RoyaltyReportStatus.EXPIRED,
    },
    RoyaltyReportStatus.DISPUTE: {
        RoyaltyReportStatus.PENDING,
        RoyaltyReportStatus.ACCEPTED,
        RoyaltyReportStatus.CANCELED,
    },
    RoyaltyReportStatus.ACCEPTED: {RoyaltyReportStatus.PAID},
}

_PAYOUT_TRANSITIONS = {
    PayoutStatus.PENDING: {PayoutStatus.PAID, PayoutStatus.FAILED, PayoutStatus.CANCELED},
}

_VAT_TRANSITIONS = {
    VatReportStatus.THRESHOLD: {VatReportStatus.NEED_TO_PAY, VatReportStatus.EXPIRED},
    VatReportStatus.NEED_TO_PAY: {
        VatReportStatus.PAID,
        VatReportStatus.OVERDUE,
        VatReportStatus.CANCELED,
    },
    VatReportStatus.OVERDUE: {VatReportStatus.PAID, VatReportStatus.CANCELED},
}

# Statuses an operator may set by hand on a VAT report.
VAT_MANUAL_FROM = frozenset({VatReportStatus.NEED_TO_PAY, VatReportStatus.OVERDUE})
VAT_MANUAL_TO = frozenset({VatReportStatus.PAID, VatReportStatus.CANCELED})

VAT_EMAIL_NOTIFY = frozenset(
    {VatReportStatus.NEED_TO_PAY, VatReportStatus.OVERDUE, VatReportStatus.CANCELED}
)

# Payout documents that count against a merchant balance.
PAYOUT_ACTIVE = frozenset({PayoutStatus.PENDING, PayoutStatus.PAID})
# Payout documents whose sources may be used again.
PAYOUT_RELEASED = frozenset({PayoutStatus.FAILED, PayoutStatus.CANCELED})

ROYALTY_DEBIT = frozenset({RoyaltyReportStatus.ACCEPTED, RoyaltyReportStatus.PAID})
ROYALTY_PAYABLE = frozenset(
    {RoyaltyReportStatus.PENDING, RoyaltyReportStatus.ACCEPTED, RoyaltyReportStatus.DISPUTE}
)


def can_transition_royalty(current: RoyaltyReportStatus, new: RoyaltyReportStatus) -> bool:
    """Return True if a royalty report may move from ``current`` to ``new``."""
    return RoyaltyReportStatus(new) in _ROYALTY_TRANSITIONS.get(RoyaltyReportStatus(current), set())


def can_transition_payout(current: PayoutStatus, new: PayoutStatus) -> bool:
    """Return True if a payout document may move from ``current`` to ``new``.

    Skip is a terminal outcome assigned at creation only.
    """
    return PayoutStatus(new) in _PAYOUT_TRANSITIONS.get(PayoutStatus(current), set())


def can_transition_vat(current: VatReportStatus, new: VatReportStatus) -> bool:
    """Return True if a VAT report may move from ``current`` to ``new``."""
    return VatReportStatus(new) in _VAT_TRANSITIONS.get(VatReportStatus(current), set())
