"""Tests for the labelled cash pool."""
from __future__ import annotations

import pytest

from portfolio.cash_pool import DRAW_ORDER, CashPool, CashSource
from portfolio.transaction import TransactionType


class TestDrawOrder:
    """Tests for draw-down priority."""

    def test_leftover_drawn_before_own_money(self):
        """Previous leftover should be consumed first, then own money."""
        pool = CashPool(previous_leftover=30.0)
        pool.credit(CashSource.OWN_CONTRIBUTION, 100.0)
        pool.credit(CashSource.DIVIDEND_CASH, 50.0)

        paid = pool.draw_shares(12, 10.0)

        assert paid == [
            (CashSource.PREVIOUS_LEFTOVER, 3, 30.0),
            (CashSource.OWN_CONTRIBUTION, 9, 90.0),
        ]
        assert pool.balance(CashSource.OWN_CONTRIBUTION) == pytest.approx(10.0)
        assert pool.balance(CashSource.DIVIDEND_CASH) == pytest.approx(50.0)

    def test_sale_proceeds_drawn_last(self):
        """Sale proceeds should only be used once every other pot is empty."""
        pool = CashPool()
        pool.credit(CashSource.REBALANCE_SALE_PROCEEDS, 100.0)
        pool.credit(CashSource.DIVIDEND_CASH, 20.0)

        paid = pool.draw_shares(5, 10.0)

        assert [src for src, _, _ in paid] == [CashSource.DIVIDEND_CASH, CashSource.REBALANCE_SALE_PROCEEDS]
        assert pool.balance(CashSource.REBALANCE_SALE_PROCEEDS) == pytest.approx(70.0)

    def test_draw_order_constant(self):
        """Documented priority should be leftover, own, dividends, sales."""
        assert DRAW_ORDER == (
            CashSource.PREVIOUS_LEFTOVER,
            CashSource.OWN_CONTRIBUTION,
            CashSource.DIVIDEND_CASH,
            CashSource.REBALANCE_SALE_PROCEEDS,
        )

    def test_source_transaction_types(self):
        """Each source should map to its purchase transaction type."""
        assert CashSource.PREVIOUS_LEFTOVER.transaction_type is TransactionType.PREVIOUS_CASH_USE
        assert CashSource.OWN_CONTRIBUTION.transaction_type is TransactionType.CONTRIBUTION
        assert CashSource.DIVIDEND_CASH.transaction_type is TransactionType.DIVIDEND_REINVESTMENT
        assert CashSource.REBALANCE_SALE_PROCEEDS.transaction_type is TransactionType.REBALANCE_BUY


class TestWholeShareParts:
    """Tests for whole-share attribution across sources."""

    def test_source_short_of_one_share_pays_nothing(self):
        """Leftover below the share price should not get a zero-share part."""
        pool = CashPool(previous_leftover=5.0)
        pool.credit(CashSource.OWN_CONTRIBUTION, 100.0)

        paid = pool.draw_shares(10, 10.0)

        assert paid == [(CashSource.OWN_CONTRIBUTION, 10, 100.0)]
        assert pool.balance(CashSource.PREVIOUS_LEFTOVER) == pytest.approx(5.0)
        assert pool.balance(CashSource.OWN_CONTRIBUTION) == pytest.approx(0.0)

    def test_fractions_pass_to_next_source(self):
        """Fractions of two sources should combine into one share for the later source."""
        pool = CashPool(previous_leftover=5.0)
        pool.credit(CashSource.OWN_CONTRIBUTION, 7.0)

        paid = pool.draw_shares(1, 10.0)

        assert paid == [(CashSource.OWN_CONTRIBUTION, 1, 10.0)]
        assert pool.balance(CashSource.PREVIOUS_LEFTOVER) == pytest.approx(0.0)
        assert pool.balance(CashSource.OWN_CONTRIBUTION) == pytest.approx(2.0)

    def test_every_part_is_shares_times_price(self):
        """Each part's cash should equal its shares at the trade price."""
        pool = CashPool(previous_leftover=13.7)
        pool.credit(CashSource.OWN_CONTRIBUTION, 250.0)
        pool.credit(CashSource.DIVIDEND_CASH, 18.9)
        pool.credit(CashSource.REBALANCE_SALE_PROCEEDS, 41.2)

        paid = pool.draw_shares(19, 16.5)

        assert sum(n for _, n, _ in paid) == 19
        for _, n, cash in paid:
            assert n > 0
            assert cash == pytest.approx(n * 16.5, abs=0.01)


class TestConservation:
    """Tests for cash conservation."""

    def test_credits_minus_draws_equal_total(self):
        """Total should always be credits minus amounts drawn."""
        pool = CashPool(previous_leftover=12.5)
        pool.credit(CashSource.OWN_CONTRIBUTION, 1000.0)
        pool.credit(CashSource.DIVIDEND_CASH, 33.3)
        pool.credit(CashSource.REBALANCE_SALE_PROCEEDS, 250.0)

        drawn = 0.0
        for shares, price in ((40, 10.0), (11, 30.3), (8, 15.0)):
            drawn += sum(cash for _, _, cash in pool.draw_shares(shares, price))

        assert drawn == pytest.approx(853.3)
        assert pool.total() == pytest.approx(12.5 + 1000.0 + 33.3 + 250.0 - 853.3)
        assert all(v >= 0 for v in pool.balances().values())

    def test_insufficient_cash_raises(self):
        """Drawing more than the pool holds should fail."""
        pool = CashPool(previous_leftover=10.0)
        with pytest.raises(ValueError):
            pool.draw_shares(2, 5.25)

    def test_negative_credit_raises(self):
        """Credits must be non-negative."""
        with pytest.raises(ValueError):
            CashPool().credit(CashSource.OWN_CONTRIBUTION, -1.0)

    def test_rollover_moves_everything_to_leftover(self):
        """Unspent cash should become the next month's previous leftover."""
        pool = CashPool()
        pool.credit(CashSource.OWN_CONTRIBUTION, 7.0)
        pool.credit(CashSource.DIVIDEND_CASH, 3.0)

        nxt = pool.rollover()

        assert nxt.balance(CashSource.PREVIOUS_LEFTOVER) == pytest.approx(10.0)
        assert nxt.balance(CashSource.OWN_CONTRIBUTION) == 0.0
