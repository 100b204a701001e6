"""Shared domain error types and messages."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. Concrete errors carry a
    stable ``code`` so batch results and CLI output can be matched on.
    """

    code = "settleit"
    message = "domain error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Requested change conflicts with the current state."""


class UpstreamError(DomainError):
    """A store or remote collaborator call failed."""


class DeadlineExceeded(DomainError):
    """The caller's deadline passed or the operation was cancelled."""

    code = "dl000001"
    message = "operation deadline exceeded"


# Lookups


class MerchantNotFound(NotFoundError):
    code = "mr000001"
    message = "merchant not found"


class CountryNotFound(NotFoundError):
    code = "cn000001"
    message = "country not found"


class OperatingCompanyNotFound(NotFoundError):
    code = "oc000001"
    message = "operating company not found"


class UnsupportedCurrency(ValidationError):
    code = "cu000001"
    message = "currency code is not supported"


class UnknownEntryType(ValidationError):
    code = "ae000001"
    message = "unknown accounting entry type"


# Merchant balance


class NoPayoutCurrency(ValidationError):
    code = "ba000001"
    message = "merchant payout currency not set"


# Royalty reports


class NoTransactions(NotFoundError):
    code = "rr00000"
    message = "no transactions for the period"


class RoyaltyReportNotFound(NotFoundError):
    code = "rr00001"
    message = "royalty report with specified identifier not found"


class RoyaltyReportStatusChangeDenied(ConflictError):
    code = "rr00002"
    message = "change royalty report to new status denied"


class DisputeCorrectionRequired(ValidationError):
    code = "rr00003"
    message = (
        "for change royalty report status to dispute fields with correction "
        "amount and correction reason is required"
    )


# Payout documents


class SourcesNotFound(NotFoundError):
    code = "po000001"
    message = "no source documents found for payout"


class SourcesPending(ConflictError):
    code = "po000002"
    message = "you have at least one royalty report waiting for acceptance"


class SourcesDispute(ConflictError):
    code = "po000003"
    message = "you have at least one unclosed dispute in your royalty reports"


class PayoutNotFound(NotFoundError):
    code = "po000004"
    message = "payout document not found"


class AmountInvalid(ValidationError):
    code = "po000005"
    message = "payout amount is invalid"


class BalanceError(UpstreamError):
    code = "po000009"
    message = "getting balance failed"


class NotEnoughBalance(ConflictError):
    code = "po000010"
    message = "not enough balance for payout"


class StatusChangeForbidden(ConflictError):
    code = "po000014"
    message = "status change is forbidden"


class NotModified(ConflictError):
    code = "po000017"
    message = "payout document not modified"


# Turnovers and exchange


class CurrencyRatesPolicyNotSupported(ValidationError):
    code = "to000001"
    message = "vat currency rates policy not supported"


class ExchangeFailed(UpstreamError):
    code = "to000002"
    message = "currency exchange failed"


class TurnoverNotFound(NotFoundError):
    code = "to000003"
    message = "annual turnover not found"


# VAT reports


class VatPeriodNotConfigured(ValidationError):
    code = "vr000002"
    message = "vat period not configured for country"


class VatReportStatusChangeNotAllowed(ConflictError):
    code = "vr000004"
    message = "vat report status change not allowed"


class VatReportNotFound(NotFoundError):
    code = "vr000007"
    message = "vat report not found"


class TaxRateUnavailable(UpstreamError):
    code = "vr000009"
    message = "tax service get rate error"


def merchant_not_found(merchant_id: int) -> str:
    """Return message for missing merchant."""
    return f"Merchant {merchant_id} not found"


def country_not_found(code: str) -> str:
    """Return message for missing country."""
    return f"Country '{code}' not found"


def status_change_denied(entity: str, current: str, requested: str) -> str:
    """Return message for a refused status transition."""
    return f"Cannot change {entity} status from '{current}' to '{requested}'"


def not_enough_balance(available, requested) -> str:
    return f"Not enough balance for payout: available {available}, requested {requested}"
