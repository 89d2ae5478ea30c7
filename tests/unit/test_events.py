"""Tests for event emission, event sinks and event logging."""

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from exchange.config import ExchangeConfig
from exchange.errors import InsufficientSharesError, TransferFailedError
from exchange.models.events import Asset, EventKind, LiquidityEvent, SwapEvent
from tests.helpers import ALICE, BOB, CAROL, make_exchange, seeded_exchange


class TestEmittedEvents:
    """One event per successful operation, none on failure."""

    def test_seed_event(self, setup, events):
        """Seeding emits a SEED event with the minted supply."""
        exchange, _, _ = setup
        exchange.seed(ALICE, 5000, 10000)

        assert len(events) == 1
        event = events[0]
        assert isinstance(event, LiquidityEvent)
        assert event.kind == EventKind.SEED
        assert event.holder == ALICE
        assert (event.base_amount, event.quote_amount) == (5000, 10000)
        assert event.shares == 5000
        assert event.total_shares == 5000

    def test_swap_event(self, seeded, events):
        """A swap event records both sides and the recipient."""
        exchange, _, _ = seeded
        exchange.swap_quote_for_base(BOB, 1000, recipient=CAROL)

        event = events[0]
        assert isinstance(event, SwapEvent)
        assert event.holder == BOB
        assert event.recipient == CAROL
        assert event.asset_in == Asset.QUOTE
        assert (event.amount_in, event.amount_out) == (1000, 454)

    def test_deposit_and_withdraw_events(self, seeded, events):
        """Deposits and withdrawals report the share supply afterwards."""
        exchange, _, _ = seeded
        exchange.deposit(BOB, 100)
        exchange.withdraw(BOB, 100)

        deposit, withdraw = events
        assert deposit.kind == EventKind.DEPOSIT
        assert (deposit.quote_amount, deposit.total_shares) == (201, 5100)
        assert withdraw.kind == EventKind.WITHDRAW
        assert (withdraw.base_amount, withdraw.quote_amount) == (100, 200)
        assert withdraw.total_shares == 5000

    def test_no_event_on_rejected_operation(self, seeded, events):
        """Rejected operations emit nothing."""
        exchange, quote, _ = seeded
        with pytest.raises(InsufficientSharesError):
            exchange.withdraw(BOB, 1)
        quote.fail_next()
        with pytest.raises(TransferFailedError):
            exchange.swap_base_for_quote(BOB, 1000)
        assert events == []

    def test_events_are_frozen(self, seeded, events):
        """Events cannot be modified by sinks."""
        exchange, _, _ = seeded
        exchange.swap_base_for_quote(BOB, 1000)
        with pytest.raises(ValidationError):
            events[0].amount_out = 0


class TestEventSinks:
    """Tests for sink registration and failure handling."""

    def test_failing_sink_does_not_undo_operation(self):
        """An exception in a sink is logged and the operation still stands."""

        def broken_sink(event):
            raise RuntimeError("sink down")

        received = []
        exchange, _, _ = seeded_exchange(sinks=[broken_sink, received.append])

        with capture_logs() as logs:
            assert exchange.swap_base_for_quote(BOB, 1000) == 1663

        assert exchange.current_reserves() == (6000, 8337)
        assert [event.kind for event in received] == [EventKind.SEED, EventKind.SWAP]
        failures = [log for log in logs if log["event"] == "event_sink_failed"]
        assert len(failures) == 1
        assert failures[0]["kind"] == "swap"

    def test_add_sink(self, seeded):
        """Sinks added later receive subsequent events."""
        exchange, _, _ = seeded
        received = []
        exchange.add_sink(received.append)
        exchange.transfer_shares(ALICE, BOB, 1)
        assert len(received) == 1


class TestEventLogging:
    """Tests for structlog output of events."""

    def test_swap_is_logged(self, seeded):
        """Events are logged under exchange_<kind> with their fields."""
        exchange, _, _ = seeded
        with capture_logs() as logs:
            exchange.swap_base_for_quote(BOB, 1000)

        swaps = [log for log in logs if log["event"] == "exchange_swap"]
        assert len(swaps) == 1
        assert swaps[0]["log_level"] == "info"
        assert swaps[0]["holder"] == BOB
        assert swaps[0]["asset_in"] == "base"
        assert swaps[0]["amount_out"] == 1663

    def test_event_logging_disabled(self):
        """log_events=False keeps events out of the log."""
        exchange, _, _ = make_exchange(config=ExchangeConfig(log_events=False))
        with capture_logs() as logs:
            exchange.seed(ALICE, 1000, 1000)
        assert not [log for log in logs if log["event"].startswith("exchange_")]

    def test_transfer_failure_is_logged(self, seeded):
        """A failed transfer is logged as a warning naming the operation."""
        exchange, quote, _ = seeded
        quote.fail_next()
        with capture_logs() as logs, pytest.raises(TransferFailedError):
            exchange.swap_base_for_quote(BOB, 1000)

        failed = [log for log in logs if log["event"] == "transfer_failed"]
        assert failed[0]["operation"] == "swap"
        assert failed[0]["log_level"] == "warning"
