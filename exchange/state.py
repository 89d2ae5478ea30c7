"""Reserve state for the single exchange pool.

PoolState is the only mutable structure in the core. Readers get immutable
PoolSnapshot copies; writers describe a change as a PoolDelta and hand it to
apply(), which validates the whole transition before assigning anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

import structlog

from exchange.errors import (
    InsufficientReservesError,
    InsufficientSharesError,
    InvalidInputError,
)
from exchange.models.types import normalize_address
from exchange.safe_int import S

logger = structlog.get_logger()


@dataclass(frozen=True)
class PoolSnapshot:
    """Immutable view of the pool at one point in time."""

    base_reserve: int = 0
    quote_reserve: int = 0
    total_shares: int = 0
    shares: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_seeded(self) -> bool:
        return self.total_shares > 0

    @property
    def invariant_k(self) -> int:
        """Constant-product invariant: base_reserve * quote_reserve."""
        return self.base_reserve * self.quote_reserve

    def shares_of(self, holder: str) -> int:
        return self.shares.get(normalize_address(holder), 0)


@dataclass(frozen=True)
class PoolDelta:
    """Signed change to apply to the pool in one step.

    Attributes:
        base: Change to the base reserve (negative for payouts)
        quote: Change to the quote reserve (negative for payouts)
        shares: Per-holder share changes; their sum is the change in total supply
    """

    base: int = 0
    quote: int = 0
    shares: Mapping[str, int] = field(default_factory=dict)

    @property
    def total_shares(self) -> int:
        return sum(self.shares.values())


class PoolState:
    """Reserves and liquidity shares of the pool.

    Created uninitialized (everything zero). Invariants after every apply():
    - total_shares == sum of all holder balances
    - total_shares == 0 exactly when both reserves are zero
    - no reserve or balance is negative
    """

    def __init__(self) -> None:
        self._base_reserve = 0
        self._quote_reserve = 0
        self._total_shares = 0
        self._shares: dict[str, int] = {}

    @property
    def base_reserve(self) -> int:
        return self._base_reserve

    @property
    def quote_reserve(self) -> int:
        return self._quote_reserve

    @property
    def total_shares(self) -> int:
        return self._total_shares

    @property
    def is_seeded(self) -> bool:
        return self._total_shares > 0

    @property
    def invariant_k(self) -> int:
        return self._base_reserve * self._quote_reserve

    def current_reserves(self) -> tuple[int, int]:
        """Return (base_reserve, quote_reserve)."""
        return self._base_reserve, self._quote_reserve

    def current_shares(self, holder: str) -> int:
        """Share balance of holder (zero for unknown holders)."""
        return self._shares.get(normalize_address(holder), 0)

    def holders(self) -> dict[str, int]:
        """Copy of every non-zero share balance."""
        return dict(self._shares)

    def snapshot(self) -> PoolSnapshot:
        return PoolSnapshot(
            base_reserve=self._base_reserve,
            quote_reserve=self._quote_reserve,
            total_shares=self._total_shares,
            shares=MappingProxyType(dict(self._shares)),
        )

    def apply(self, delta: PoolDelta) -> PoolSnapshot:
        """Commit a delta atomically.

        Every new value is computed and checked before any field is assigned,
        so a failed apply leaves the state exactly as it was.

        Args:
            delta: The change to commit

        Returns:
            Snapshot of the state after the commit

        Raises:
            InsufficientReservesError: If a reserve would go negative
            InsufficientSharesError: If a holder balance or the supply would go negative
            InvalidInputError: If the result would break the seeded/empty invariant
        """
        new_base = self._shifted(self._base_reserve, delta.base, "base reserve")
        new_quote = self._shifted(self._quote_reserve, delta.quote, "quote reserve")

        new_balances: dict[str, int] = {}
        for holder, change in delta.shares.items():
            key = normalize_address(holder)
            current = new_balances.get(key, self._shares.get(key, 0))
            updated = current + change
            if updated < 0:
                raise InsufficientSharesError(
                    f"Holder {key} has {current} shares, cannot remove {-change}"
                )
            new_balances[key] = updated

        new_total = self._total_shares + delta.total_shares
        if new_total < 0:
            raise InsufficientSharesError(
                f"Share supply {self._total_shares} cannot shrink by {-delta.total_shares}"
            )
        if (new_total == 0) != (new_base == 0 and new_quote == 0):
            raise InvalidInputError(
                f"Delta leaves shares={new_total} with reserves=({new_base}, {new_quote})"
            )

        self._base_reserve = new_base
        self._quote_reserve = new_quote
        self._total_shares = new_total
        for key, balance in new_balances.items():
            if balance == 0:
                self._shares.pop(key, None)
            else:
                self._shares[key] = balance

        logger.debug(
            "pool_state_committed",
            base_reserve=new_base,
            quote_reserve=new_quote,
            total_shares=new_total,
        )
        return self.snapshot()

    @staticmethod
    def _shifted(current: int, change: int, name: str) -> int:
        if change >= 0:
            return (S(current) + S(change)).to_uint256()
        try:
            return (S(current) - S(-change)).value
        except InsufficientReservesError as err:
            raise InsufficientReservesError(
                f"{name} {current} cannot pay out {-change}"
            ) from err

    def __repr__(self) -> str:
        return (
            f"PoolState(base_reserve={self._base_reserve}, "
            f"quote_reserve={self._quote_reserve}, "
            f"total_shares={self._total_shares})"
        )


__all__ = ["PoolDelta", "PoolSnapshot", "PoolState"]
