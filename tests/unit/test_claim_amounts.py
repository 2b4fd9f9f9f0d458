"""
Claim Amount Split Tests.
"""

from decimal import Decimal

import pytest

from src.services.claim_amounts import split_claim_amount


@pytest.mark.unit
class TestSplitClaimAmount:
    """Co-pay and net provider amount."""

    def test_eighty_percent_coverage(self):
        amounts = split_claim_amount(Decimal("250.00"), 80)

        assert amounts.patient_copay == Decimal("50.00")
        assert amounts.net_provider_amount == Decimal("200.00")
        assert amounts.limit_applied is False

    def test_parts_always_sum_to_requested(self):
        for requested, percent in [("99.99", 33), ("0.01", 50), ("1234.57", 67), ("10", 0), ("10", 100)]:
            amounts = split_claim_amount(Decimal(requested), percent)
            assert amounts.patient_copay + amounts.net_provider_amount == amounts.requested_amount

    def test_half_cent_rounds_up(self):
        # 0.05 * 50% = 0.025 -> 0.03
        amounts = split_claim_amount(Decimal("0.05"), 50)

        assert amounts.patient_copay == Decimal("0.03")
        assert amounts.net_provider_amount == Decimal("0.02")

    def test_limit_caps_net_amount(self):
        amounts = split_claim_amount(Decimal("1000.00"), 80, amount_limit=Decimal("300.00"))

        assert amounts.net_provider_amount == Decimal("300.00")
        assert amounts.patient_copay == Decimal("700.00")
        assert amounts.limit_applied is True

    def test_limit_above_net_is_ignored(self):
        amounts = split_claim_amount(Decimal("100.00"), 80, amount_limit=Decimal("500.00"))

        assert amounts.net_provider_amount == Decimal("80.00")
        assert amounts.limit_applied is False

    def test_to_dict(self):
        data = split_claim_amount(Decimal("100"), 50).to_dict()

        assert data == {
            "requested_amount": "100.00",
            "patient_copay": "50.00",
            "net_provider_amount": "50.00",
            "coverage_percent": 50,
            "limit_applied": False,
        }

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            split_claim_amount(Decimal("-1"), 80)

    def test_percent_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            split_claim_amount(Decimal("10"), 120)
