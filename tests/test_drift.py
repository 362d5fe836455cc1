"""Tests for drift between current and target whole-share positions."""
from __future__ import annotations

import pytest

from engine.drift_engine import compute_drift, whole_shares
from portfolio.allocation import Allocation


class TestWholeShares:
    """Tests for share sizing."""

    def test_rounds_down(self):
        """Fractional share counts should round down."""
        assert whole_shares(155.0, 10.0) == 15

    def test_float_noise_absorbed(self):
        """Values landing just under an integer by float error should round up to it."""
        assert whole_shares(0.3, 0.1) == 3

    def test_non_positive_inputs(self):
        """No shares for zero price or zero value."""
        assert whole_shares(100.0, 0.0) == 0
        assert whole_shares(0.0, 10.0) == 0


class TestComputeDrift:
    """Tests for drift computation."""

    def test_targets_from_total_investable(self):
        """Targets should be sized from holdings value plus cash."""
        alloc = Allocation({"A": 0.5, "B": 0.5})
        prices = {"A": 10.0, "B": 20.0}

        result = compute_drift(alloc, {"A": 10}, prices.get, available_cash=100.0)

        # 10*10 + 100 = 200 -> A 100/10 = 10, B 100/20 = 5
        assert result.total_investable == pytest.approx(200.0)
        assert result.positions["A"].delta_shares == 0
        assert result.positions["B"].target_shares == 5
        assert result.positions["B"].delta_shares == 5

    def test_unpriced_asset_excluded(self):
        """An asset without a price contributes nothing and gets no position."""
        alloc = Allocation({"A": 0.5, "B": 0.5})

        result = compute_drift(alloc, {"B": 7}, lambda t: 10.0 if t == "A" else None, available_cash=100.0)

        assert list(result.positions) == ["A"]
        assert result.current_assets_value == 0.0
        assert result.total_investable == pytest.approx(100.0)
        # Renormalized: A takes the whole investable amount
        assert result.positions["A"].target_shares == 10

    def test_allocation_order_preserved(self):
        """Positions should follow allocation order."""
        alloc = Allocation({"C": 0.2, "A": 0.3, "B": 0.5})
        result = compute_drift(alloc, {}, lambda t: 1.0, available_cash=10.0)
        assert list(result.positions) == ["C", "A", "B"]


class TestAllocation:
    """Tests for target allocation helpers."""

    def test_renormalized_over_available(self):
        """Remaining weights should be rescaled to sum to one."""
        alloc = Allocation({"A": 0.4, "B": 0.35, "C": 0.25}).renormalized(["A", "C"])
        assert alloc.targets["A"] == pytest.approx(0.4 / 0.65)
        assert alloc.targets["C"] == pytest.approx(0.25 / 0.65)
        alloc.validate_sum_to_one()

    def test_nothing_available(self):
        """With no available ticker the allocation should be empty."""
        assert Allocation({"A": 1.0}).renormalized([]).targets == {}

    def test_sum_validation(self):
        """Targets not summing to one should be rejected."""
        with pytest.raises(ValueError):
            Allocation({"A": 0.5, "B": 0.4}).validate_sum_to_one()
