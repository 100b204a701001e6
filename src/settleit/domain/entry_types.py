"""Accounting entry types and the buckets royalty reports sort them into."""

PAYMENT = "payment"
METHOD_FEE = "method_fee"
METHOD_FIXED_FEE = "method_fixed_fee"
PS_FEE = "ps_fee"
TAX_FEE = "tax_fee"
REFUND = "refund"
REFUND_BODY = "refund_body"
REFUND_FEE = "refund_fee"
REFUND_FAILURE = "refund_failure"
REVERSE_TAX_FEE = "reverse_tax_fee"
REVERSE_TAX_FEE_DELTA = "reverse_tax_fee_delta"
CHARGEBACK = "chargeback"
CHARGEBACK_FEE = "chargeback_fee"
CHARGEBACK_FIXED_FEE = "chargeback_fixed_fee"
CHARGEBACK_FAILURE = "chargeback_failure"
ADJUSTMENT = "adjustment"
PAYOUT = "payout"
PAYOUT_FEE = "payout_fee"
PAYOUT_FAILURE = "payout_failure"
PAYOUT_CANCEL = "payout_cancel"
ROLLING_RESERVE_CREATE = "merchant_rolling_reserve_create"
ROLLING_RESERVE_RELEASE = "merchant_rolling_reserve_release"

# Entries carrying both the original and the local (VAT) currency amounts.
REAL_GROSS_REVENUE = "real_gross_revenue"
REAL_TAX_FEE = "real_tax_fee"
CENTRAL_BANK_TAX_FEE = "central_bank_tax_fee"
REAL_REFUND = "real_refund"
REAL_REFUND_TAX_FEE = "real_refund_tax_fee"

ALL_TYPES = frozenset(
    {
        PAYMENT,
        METHOD_FEE,
        METHOD_FIXED_FEE,
        PS_FEE,
        TAX_FEE,
        REFUND,
        REFUND_BODY,
        REFUND_FEE,
        REFUND_FAILURE,
        REVERSE_TAX_FEE,
        REVERSE_TAX_FEE_DELTA,
        CHARGEBACK,
        CHARGEBACK_FEE,
        CHARGEBACK_FIXED_FEE,
        CHARGEBACK_FAILURE,
        ADJUSTMENT,
        PAYOUT,
        PAYOUT_FEE,
        PAYOUT_FAILURE,
        PAYOUT_CANCEL,
        ROLLING_RESERVE_CREATE,
        ROLLING_RESERVE_RELEASE,
        REAL_GROSS_REVENUE,
        REAL_TAX_FEE,
        CENTRAL_BANK_TAX_FEE,
        REAL_REFUND,
        REAL_REFUND_TAX_FEE,
    }
)

GROSS_DEBIT_TYPES = frozenset(
    {PAYMENT, REFUND_FAILURE, CHARGEBACK_FAILURE, PAYOUT_FAILURE, PAYOUT_CANCEL, ADJUSTMENT}
)
GROSS_CREDIT_TYPES = frozenset(
    {
        REFUND_BODY,
        REVERSE_TAX_FEE_DELTA,
        CHARGEBACK,
        CHARGEBACK_FEE,
        CHARGEBACK_FIXED_FEE,
        PAYOUT,
        PAYOUT_FEE,
    }
)
FEE_TYPES = frozenset({METHOD_FEE, METHOD_FIXED_FEE})
VAT_TYPES = frozenset({TAX_FEE})

ROYALTY_TYPES = GROSS_DEBIT_TYPES | GROSS_CREDIT_TYPES | FEE_TYPES | VAT_TYPES
ROLLING_RESERVE_TYPES = frozenset({ROLLING_RESERVE_CREATE, ROLLING_RESERVE_RELEASE})

# Entries whose local amount is re-derived from central bank rates.
LOCAL_BACKFILL_TYPES = frozenset(
    {REAL_GROSS_REVENUE, REAL_TAX_FEE, CENTRAL_BANK_TAX_FEE, REAL_REFUND, REAL_REFUND_TAX_FEE}
)

# Source type of entries booked for an order; their source id is the order id.
SOURCE_ORDER = "order"

# Order read-model fields summed from the local amounts of each entry type.
ORDER_LOCAL_FIELDS = {
    REAL_GROSS_REVENUE: "payment_gross_revenue_local",
    REAL_TAX_FEE: "payment_tax_fee_local",
    REAL_REFUND: "payment_refund_gross_revenue_local",
    REAL_REFUND_TAX_FEE: "payment_refund_tax_fee_local",
}
