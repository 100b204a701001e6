"""Tests for status transition rules."""

import pytest
from settleit.domain.statuses import (
    PayoutStatus,
    RoyaltyReportStatus,
    VatReportStatus,
    can_transition_payout,
    can_transition_royalty,
    can_transition_vat,
)


class TestPayoutTransitions:
    @pytest.mark.parametrize("target", [PayoutStatus.PAID, PayoutStatus.FAILED, PayoutStatus.CANCELED])
    def test_pending_can_be_settled(self, target):
        assert can_transition_payout(PayoutStatus.PENDING, target)

    @pytest.mark.parametrize(
        "current",
        [PayoutStatus.PAID, PayoutStatus.FAILED, PayoutStatus.CANCELED, PayoutStatus.SKIP],
    )
    def test_non_pending_is_terminal(self, current):
        """Test no status can be reached from a non-pending document."""
        for target in PayoutStatus:
            assert not can_transition_payout(current, target)

    def test_pending_cannot_become_skip(self):
        assert not can_transition_payout(PayoutStatus.PENDING, PayoutStatus.SKIP)

    def test_accepts_raw_values(self):
        assert can_transition_payout("pending", "paid")


class TestRoyaltyTransitions:
    def test_lifecycle(self):
        assert can_transition_royalty(RoyaltyReportStatus.NEW, RoyaltyReportStatus.PENDING)
        assert can_transition_royalty(RoyaltyReportStatus.PENDING, RoyaltyReportStatus.DISPUTE)
        assert can_transition_royalty(RoyaltyReportStatus.DISPUTE, RoyaltyReportStatus.ACCEPTED)
        assert can_transition_royalty(RoyaltyReportStatus.ACCEPTED, RoyaltyReportStatus.PAID)

    def test_forbidden(self):
        assert not can_transition_royalty(RoyaltyReportStatus.NEW, RoyaltyReportStatus.ACCEPTED)
        assert not can_transition_royalty(RoyaltyReportStatus.ACCEPTED, RoyaltyReportStatus.PENDING)
        assert not can_transition_royalty(RoyaltyReportStatus.PAID, RoyaltyReportStatus.ACCEPTED)
        assert not can_transition_royalty(RoyaltyReportStatus.CANCELED, RoyaltyReportStatus.PENDING)


class TestVatTransitions:
    def test_threshold_outcomes(self):
        assert can_transition_vat(VatReportStatus.THRESHOLD, VatReportStatus.NEED_TO_PAY)
        assert can_transition_vat(VatReportStatus.THRESHOLD, VatReportStatus.EXPIRED)
        assert not can_transition_vat(VatReportStatus.THRESHOLD, VatReportStatus.PAID)

    def test_need_to_pay_outcomes(self):
        assert can_transition_vat(VatReportStatus.NEED_TO_PAY, VatReportStatus.OVERDUE)
        assert can_transition_vat(VatReportStatus.NEED_TO_PAY, VatReportStatus.PAID)
        assert can_transition_vat(VatReportStatus.OVERDUE, VatReportStatus.PAID)
        assert not can_transition_vat(VatReportStatus.PAID, VatReportStatus.OVERDUE)
        assert not can_transition_vat(VatReportStatus.EXPIRED, VatReportStatus.NEED_TO_PAY)
