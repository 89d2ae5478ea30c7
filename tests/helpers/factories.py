"""Factory functions for creating test exchanges.

Usage:
    from tests.helpers import make_exchange, seeded_exchange

    exchange, quote, base = make_exchange()
"""

from exchange.assets import InMemoryBaseLedger, InMemoryQuoteLedger
from exchange.config import ExchangeConfig
from exchange.exchange import Exchange
from tests.helpers.constants import ALICE, BOB, CAROL, FUNDING, POOL


def make_exchange(
    holders: tuple[str, ...] = (ALICE, BOB, CAROL),
    funding: int = FUNDING,
    approve: bool = True,
    config: ExchangeConfig | None = None,
    sinks: list | None = None,
) -> tuple[Exchange, InMemoryQuoteLedger, InMemoryBaseLedger]:
    """Create an unseeded exchange over funded in-memory ledgers.

    Args:
        holders: Holders to fund on both ledgers
        funding: Balance given to each holder on each ledger
        approve: If True, every holder approves the pool for its whole quote balance
        config: Exchange config (default: ExchangeConfig())
        sinks: Event sinks to register

    Returns:
        Tuple of (exchange, quote_ledger, base_ledger)
    """
    config = config or ExchangeConfig()
    quote = InMemoryQuoteLedger({holder: funding for holder in holders})
    base = InMemoryBaseLedger(config.pool_address, {holder: funding for holder in holders})
    if approve:
        for holder in holders:
            quote.approve(holder, config.pool_address, funding)
    exchange = Exchange(quote, base, config=config, sinks=sinks)
    return exchange, quote, base


def seeded_exchange(
    base_amount: int = 5000,
    quote_amount: int = 10000,
    seeder: str = ALICE,
    **kwargs,
) -> tuple[Exchange, InMemoryQuoteLedger, InMemoryBaseLedger]:
    """Create an exchange already seeded by `seeder`.

    Defaults give base_reserve=5000, quote_reserve=10000, total_shares=5000.
    """
    exchange, quote, base = make_exchange(**kwargs)
    exchange.seed(seeder, base_amount, quote_amount)
    return exchange, quote, base


def assert_custody(exchange: Exchange, quote: InMemoryQuoteLedger, base: InMemoryBaseLedger) -> None:
    """Assert reserves mirror what the ledgers hold for the pool."""
    base_reserve, quote_reserve = exchange.current_reserves()
    assert base.balance_of(POOL) == base_reserve
    assert quote.balance_of(POOL) == quote_reserve


def assert_share_invariants(exchange: Exchange) -> None:
    """Assert total supply matches holder balances and the seeded/empty rule."""
    snap = exchange.snapshot()
    assert snap.total_shares == sum(snap.shares.values())
    assert all(balance > 0 for balance in snap.shares.values())
    assert (snap.total_shares == 0) == (snap.base_reserve == 0 and snap.quote_reserve == 0)
