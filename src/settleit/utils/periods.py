"""Reporting period arithmetic.

VAT periods follow the country's periodicity: every month, every two months
(January-February, March-April, ...) or every calendar quarter. Royalty
reports cover the last completed week, closing on Monday at a cutoff hour in
the configured time zone.
"""

from datetime import date, datetime, timedelta, UTC
from dateutil import tz
from dateutil.relativedelta import relativedelta

from settleit.domain.errors import VatPeriodNotConfigured, ValidationError

VAT_PERIODS = (1, 2, 3)


def vat_period(months: int, day: date) -> tuple[date, date]:
    """Return the first and last day of the VAT period containing ``day``.

    Raises:
        VatPeriodNotConfigured: If ``months`` is not 1, 2 or 3
    """
    if months not in VAT_PERIODS:
        raise VatPeriodNotConfigured(f"VAT period of {months} months is not supported")

    # Periods are aligned to January: month index 0..11 floored to the period size.
    first_month = ((day.month - 1) // months) * months + 1
    start = date(day.year, first_month, 1)
    end = start + relativedelta(months=months) - timedelta(days=1)
    return start, end


def previous_vat_period(months: int, period_start: date) -> tuple[date, date]:
    """Return the VAT period immediately before the one starting at ``period_start``."""
    return vat_period(months, period_start - timedelta(days=1))


def pay_until(period_end: date, deadline_days: int) -> date:
    return period_end + timedelta(days=deadline_days)


def resolve_timezone(name: str):
    """Return a tzinfo for ``name`` or raise ValidationError."""
    zone = tz.gettz(name)
    if zone is None:
        raise ValidationError(f"Unknown time zone '{name}'")
    return zone


def royalty_window(
    now: datetime, timezone_name: str, cutoff_hour: int, period_days: int
) -> tuple[datetime, datetime]:
    """Return the (from, to) window of the last completed royalty period.

    ``now`` is a naive UTC datetime and so are the returned bounds.
    """
    zone = resolve_timezone(timezone_name)
    local_now = now.replace(tzinfo=UTC).astimezone(zone)

    monday = local_now.date() - timedelta(days=local_now.weekday())
    local_to = datetime(monday.year, monday.month, monday.day, cutoff_hour, tzinfo=zone)
    if local_to > local_now:
        local_to -= timedelta(days=7)
    local_from = local_to - timedelta(days=period_days)

    return (
        local_from.astimezone(UTC).replace(tzinfo=None),
        local_to.astimezone(UTC).replace(tzinfo=None),
    )
