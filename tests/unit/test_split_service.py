"""
Unit tests for split_service.calculate_split.

Tests cover:
- Reconciliation: covering + original always equals the total
- Boundary percentages (0, 100) and zero totals
- Floor rounding for the covering walker, remainder to the original owner
"""

import pytest

from sharing.services.split_service import SplitAmounts, calculate_split


class TestCalculateSplit:
    """Tests for calculate_split."""

    def test_sixty_percent_of_fifty_dollars(self):
        assert calculate_split(5000, 60) == SplitAmounts(covering=3000, original=2000)

    def test_zero_percent_keeps_everything_with_owner(self):
        assert calculate_split(5000, 0) == SplitAmounts(covering=0, original=5000)

    def test_hundred_percent_goes_to_covering_walker(self):
        assert calculate_split(5000, 100) == SplitAmounts(covering=5000, original=0)

    def test_zero_total(self):
        assert calculate_split(0, 60) == SplitAmounts(covering=0, original=0)

    def test_covering_amount_is_floored(self):
        # 999 * 33 / 100 = 329.67
        split = calculate_split(999, 33)

        assert split.covering == 329
        assert split.original == 670

    def test_odd_cent_goes_to_owner_on_even_split(self):
        split = calculate_split(4501, 50)

        assert split.covering == 2250
        assert split.original == 2251

    @pytest.mark.parametrize("total", [0, 1, 7, 99, 101, 1234, 4999, 5000, 123457])
    def test_halves_reconcile_for_every_percentage(self, total):
        for percentage in range(0, 101):
            split = calculate_split(total, percentage)
            assert split.covering + split.original == total
            assert split.total == total
            assert 0 <= split.covering <= total

    def test_as_dict(self):
        assert calculate_split(5000, 60).as_dict() == {"covering": 3000, "original": 2000}
