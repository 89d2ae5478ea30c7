"""Tests for swaps and price views through the Exchange."""

import pytest

from exchange.errors import (
    InsufficientAllowanceError,
    InsufficientReservesError,
    InvalidInputError,
    NotSeededError,
)
from tests.helpers import BOB, CAROL, FUNDING, POOL, assert_custody


class TestExactInputSwaps:
    """Tests for swap_base_for_quote and swap_quote_for_base."""

    def test_base_for_quote(self, seeded):
        """Selling 1000 base into (5000, 10000) pays 1663 quote."""
        exchange, quote, base = seeded
        k_before = exchange.snapshot().invariant_k

        assert exchange.swap_base_for_quote(BOB, 1000) == 1663
        assert exchange.current_reserves() == (6000, 8337)
        assert base.balance_of(BOB) == FUNDING - 1000
        assert quote.balance_of(BOB) == FUNDING + 1663
        assert exchange.snapshot().invariant_k >= k_before
        assert_custody(exchange, quote, base)

    def test_quote_for_base(self, seeded):
        """Selling 1000 quote into (5000, 10000) pays 454 base."""
        exchange, quote, base = seeded
        k_before = exchange.snapshot().invariant_k

        assert exchange.swap_quote_for_base(BOB, 1000) == 454
        assert exchange.current_reserves() == (4546, 11000)
        assert base.balance_of(BOB) == FUNDING + 454
        assert quote.balance_of(BOB) == FUNDING - 1000
        assert exchange.snapshot().invariant_k >= k_before
        assert_custody(exchange, quote, base)

    def test_recipient_receives_output(self, seeded):
        """Output can be delivered to a different holder."""
        exchange, quote, base = seeded
        exchange.swap_base_for_quote(BOB, 1000, recipient=CAROL)

        assert quote.balance_of(CAROL) == FUNDING + 1663
        assert quote.balance_of(BOB) == FUNDING
        assert base.balance_of(BOB) == FUNDING - 1000

    def test_swap_does_not_change_shares(self, seeded):
        """Swaps never mint or burn shares."""
        exchange, _, _ = seeded
        exchange.swap_base_for_quote(BOB, 1000)
        exchange.swap_quote_for_base(BOB, 500)
        assert exchange.total_shares == 5000
        assert exchange.current_shares(BOB) == 0

    def test_swap_before_seed(self, setup):
        """Swapping against an empty pool fails and leaves reserves at zero."""
        exchange, _, base = setup
        with pytest.raises(NotSeededError):
            exchange.swap_base_for_quote(BOB, 1000)
        with pytest.raises(NotSeededError):
            exchange.swap_quote_for_base(BOB, 1000)
        assert exchange.current_reserves() == (0, 0)
        assert base.balance_of(POOL) == 0

    def test_zero_input(self, seeded):
        """Zero input is rejected."""
        exchange, _, _ = seeded
        with pytest.raises(InvalidInputError):
            exchange.swap_base_for_quote(BOB, 0)

    @pytest.mark.parametrize(
        "holder",
        [
            "0x" + "1_" * 19 + "11",
            " 0x" + "a" * 40,
            "0x" + "a" * 40 + "\n",
            "0x" + "g" * 40,
        ],
    )
    def test_malformed_holder_rejected_before_commit(self, seeded, events, holder):
        """Holders the event model would refuse never reach a commit."""
        exchange, quote, base = seeded
        before = exchange.snapshot()

        with pytest.raises(InvalidInputError):
            exchange.swap_base_for_quote(holder, 1000)
        with pytest.raises(InvalidInputError):
            exchange.swap_quote_for_base(BOB, 1000, recipient=holder)

        assert exchange.snapshot() == before
        assert events == []
        assert_custody(exchange, quote, base)

    def test_quote_allowance_checked(self, seeded):
        """Selling quote requires an allowance for the pool."""
        exchange, quote, _ = seeded
        quote.approve(BOB, POOL, 10)
        with pytest.raises(InsufficientAllowanceError):
            exchange.swap_quote_for_base(BOB, 1000)
        assert exchange.current_reserves() == (5000, 10000)

    def test_repeated_swaps_keep_k_growing(self, seeded):
        """k is non-decreasing across a run of alternating swaps."""
        exchange, quote, base = seeded
        k = exchange.snapshot().invariant_k
        for amount in (10, 50, 333, 334, 999, 4000):
            exchange.swap_base_for_quote(BOB, amount)
            assert exchange.snapshot().invariant_k >= k
            k = exchange.snapshot().invariant_k
            exchange.swap_quote_for_base(BOB, amount)
            assert exchange.snapshot().invariant_k >= k
            k = exchange.snapshot().invariant_k
        assert_custody(exchange, quote, base)


class TestExactOutputSwaps:
    """Tests for swaps that buy an exact amount."""

    def test_base_for_exact_quote(self, seeded):
        """Buying exactly 1663 quote costs at most 1000 base."""
        exchange, quote, base = seeded
        expected_in = exchange.base_to_quote_output_price(1663)

        base_in = exchange.swap_base_for_exact_quote(BOB, 1663)
        assert base_in == expected_in
        assert base_in <= 1000
        assert quote.balance_of(BOB) == FUNDING + 1663
        assert exchange.current_reserves() == (5000 + base_in, 10000 - 1663)
        assert_custody(exchange, quote, base)

    def test_quote_for_exact_base(self, seeded):
        """Buying exactly 454 base costs at most 1000 quote."""
        exchange, quote, base = seeded
        k_before = exchange.snapshot().invariant_k

        quote_in = exchange.swap_quote_for_exact_base(BOB, 454, recipient=CAROL)
        assert quote_in <= 1000
        assert base.balance_of(CAROL) == FUNDING + 454
        assert quote.balance_of(BOB) == FUNDING - quote_in
        assert exchange.snapshot().invariant_k >= k_before

    def test_exact_output_cannot_drain(self, seeded):
        """Buying the whole reserve is rejected."""
        exchange, _, _ = seeded
        with pytest.raises(InsufficientReservesError):
            exchange.swap_base_for_exact_quote(BOB, 10000)
        assert exchange.current_reserves() == (5000, 10000)


class TestPriceViews:
    """Tests for the read-only price functions."""

    def test_input_prices_match_swaps(self, seeded):
        """Input price views predict exact-input swap outputs."""
        exchange, _, _ = seeded
        assert exchange.base_to_quote_input_price(1000) == 1663
        assert exchange.quote_to_base_input_price(1000) == 454
        assert exchange.swap_base_for_quote(BOB, 1000) == 1663

    def test_output_price_covers_request(self, seeded):
        """Output price views return inputs that buy at least the request."""
        exchange, _, _ = seeded
        quote_in = exchange.quote_to_base_output_price(454)
        assert exchange.quote_to_base_input_price(quote_in) >= 454

    def test_views_do_not_mutate(self, seeded):
        """Price views leave the pool unchanged."""
        exchange, _, _ = seeded
        before = exchange.snapshot()
        exchange.base_to_quote_input_price(1000)
        exchange.base_to_quote_output_price(1000)
        assert exchange.snapshot() == before

    def test_views_before_seed(self, setup):
        """No price exists for an empty pool."""
        exchange, _, _ = setup
        with pytest.raises(NotSeededError):
            exchange.base_to_quote_input_price(1000)
        with pytest.raises(NotSeededError):
            exchange.quote_to_base_output_price(10)
