"""Pytest configuration and fixtures."""

import pytest

from exchange.models.events import BaseEvent
from tests.helpers import make_exchange, seeded_exchange


@pytest.fixture
def events() -> list[BaseEvent]:
    """List that collects every event emitted by the exchange fixtures."""
    return []


@pytest.fixture
def setup(events):
    """Unseeded exchange over funded ledgers: (exchange, quote, base)."""
    return make_exchange(sinks=[events.append])


@pytest.fixture
def seeded(events):
    """Exchange seeded by ALICE with (5000 base, 10000 quote): (exchange, quote, base)."""
    exchange, quote, base = seeded_exchange(sinks=[events.append])
    events.clear()
    return exchange, quote, base
