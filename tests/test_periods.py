"""Tests for VAT period and royalty window arithmetic."""

import pytest
from datetime import date, datetime
from settleit.domain.errors import ValidationError, VatPeriodNotConfigured
from settleit.utils.periods import pay_until, previous_vat_period, royalty_window, vat_period


class TestVatPeriod:
    def test_monthly(self):
        assert vat_period(1, date(2024, 2, 14)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_bimonthly_pairs_from_january(self):
        """Test two-month periods are January-February, March-April, ..."""
        assert vat_period(2, date(2024, 2, 14)) == (date(2024, 1, 1), date(2024, 2, 29))
        assert vat_period(2, date(2024, 3, 1)) == (date(2024, 3, 1), date(2024, 4, 30))
        assert vat_period(2, date(2024, 12, 31)) == (date(2024, 11, 1), date(2024, 12, 31))

    def test_quarterly(self):
        assert vat_period(3, date(2024, 5, 20)) == (date(2024, 4, 1), date(2024, 6, 30))
        assert vat_period(3, date(2024, 10, 1)) == (date(2024, 10, 1), date(2024, 12, 31))

    @pytest.mark.parametrize("months", [0, 4, 6, 12])
    def test_unsupported_period(self, months):
        with pytest.raises(VatPeriodNotConfigured):
            vat_period(months, date(2024, 1, 1))

    def test_previous_period_crosses_year(self):
        assert previous_vat_period(3, date(2024, 1, 1)) == (date(2023, 10, 1), date(2023, 12, 31))

    def test_pay_until(self):
        assert pay_until(date(2024, 3, 31), 25) == date(2024, 4, 25)


class TestRoyaltyWindow:
    def test_after_cutoff_uses_this_monday(self):
        """Test a Monday evening run closes the window at that Monday's cutoff."""
        # 2024-03-04 is a Monday; 18:00 Moscow is 15:00 UTC.
        start, end = royalty_window(datetime(2024, 3, 4, 16, 0), "Europe/Moscow", 18, 7)
        assert end == datetime(2024, 3, 4, 15, 0)
        assert start == datetime(2024, 2, 26, 15, 0)

    def test_before_cutoff_uses_previous_monday(self):
        start, end = royalty_window(datetime(2024, 3, 4, 14, 0), "Europe/Moscow", 18, 7)
        assert end == datetime(2024, 2, 26, 15, 0)
        assert start == datetime(2024, 2, 19, 15, 0)

    def test_midweek(self):
        start, end = royalty_window(datetime(2024, 3, 7, 9, 30), "UTC", 0, 7)
        assert (start, end) == (datetime(2024, 2, 26), datetime(2024, 3, 4))

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            royalty_window(datetime(2024, 3, 4), "Mars/Olympus", 18, 7)
