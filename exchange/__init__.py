"""Two-asset constant-product exchange ledger."""

from exchange.assets import BaseLedger, InMemoryBaseLedger, InMemoryQuoteLedger, QuoteLedger
from exchange.config import DEFAULT_EXCHANGE_CONFIG, ExchangeConfig
from exchange.errors import ErrorKind, ExchangeError
from exchange.exchange import EventSink, Exchange
from exchange.pricing import quote_input, quote_output, settled_output
from exchange.state import PoolDelta, PoolSnapshot, PoolState

__version__ = "0.1.0"
__all__ = [
    "Exchange",
    "EventSink",
    "ExchangeConfig",
    "DEFAULT_EXCHANGE_CONFIG",
    "ErrorKind",
    "ExchangeError",
    "PoolState",
    "PoolSnapshot",
    "PoolDelta",
    "QuoteLedger",
    "BaseLedger",
    "InMemoryQuoteLedger",
    "InMemoryBaseLedger",
    "quote_output",
    "settled_output",
    "quote_input",
    "__version__",
]
