"""Exchange configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from exchange.constants import DEFAULT_POOL_ADDRESS
from exchange.models.types import normalize_address

_TRUTHY = ("true", "1", "yes")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class ExchangeConfig:
    """Runtime settings for an Exchange.

    The swap fee is deliberately absent: it is a protocol constant.

    Attributes:
        pool_address: Custody identity of the pool at both asset ledgers
        check_custody: If True, verify reserves against ledger balances before
            every mutating operation and refuse to run on drifted state
        log_events: If True, log every emitted event through structlog
    """

    pool_address: str = DEFAULT_POOL_ADDRESS
    check_custody: bool = False
    log_events: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "pool_address", normalize_address(self.pool_address, validate=True)
        )

    @classmethod
    def from_env(cls) -> ExchangeConfig:
        """Build a config from environment variables.

        - EXCHANGE_POOL_ADDRESS: pool custody address
        - EXCHANGE_CHECK_CUSTODY: verify custody before operations (default: false)
        - EXCHANGE_LOG_EVENTS: log emitted events (default: true)
        """
        return cls(
            pool_address=os.environ.get("EXCHANGE_POOL_ADDRESS", DEFAULT_POOL_ADDRESS),
            check_custody=_env_flag("EXCHANGE_CHECK_CUSTODY", False),
            log_events=_env_flag("EXCHANGE_LOG_EVENTS", True),
        )


# Default configuration instance
DEFAULT_EXCHANGE_CONFIG = ExchangeConfig()
