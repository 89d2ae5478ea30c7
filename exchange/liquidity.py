"""Liquidity accounting: seeding, swaps, deposits and withdrawals.

Every function here is a planner. It reads a PoolSnapshot, validates the
request, computes the amounts to move and returns a frozen plan holding the
PoolDelta to commit once the external transfers succeed. Planners never touch
asset collaborators or mutate state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from exchange.errors import (
    AlreadySeededError,
    InsufficientSharesError,
    InvalidInputError,
    NotSeededError,
)
from exchange.models.types import normalize_address
from exchange.pricing import quote_input, settled_output
from exchange.safe_int import S, require_amount
from exchange.state import PoolDelta, PoolSnapshot

logger = structlog.get_logger()


class SwapDirection(str, Enum):
    """Which asset the caller sells into the pool."""

    BASE_TO_QUOTE = "base_to_quote"
    QUOTE_TO_BASE = "quote_to_base"

    def reserves(self, snapshot: PoolSnapshot) -> tuple[int, int]:
        """Order the pool reserves as (reserve_in, reserve_out)."""
        if self is SwapDirection.BASE_TO_QUOTE:
            return snapshot.base_reserve, snapshot.quote_reserve
        return snapshot.quote_reserve, snapshot.base_reserve

    def delta(self, amount_in: int, amount_out: int) -> PoolDelta:
        if self is SwapDirection.BASE_TO_QUOTE:
            return PoolDelta(base=amount_in, quote=-amount_out)
        return PoolDelta(base=-amount_out, quote=amount_in)


@dataclass(frozen=True)
class SwapPlan:
    """Amounts for one swap, priced on pre-trade reserves."""

    direction: SwapDirection
    amount_in: int
    amount_out: int
    delta: PoolDelta


@dataclass(frozen=True)
class SeedPlan:
    """First deposit into an empty pool."""

    holder: str
    base_amount: int
    quote_amount: int
    shares_minted: int
    delta: PoolDelta


@dataclass(frozen=True)
class DepositPlan:
    """Deposit at the current reserve ratio."""

    holder: str
    base_amount: int
    quote_amount: int
    shares_minted: int
    delta: PoolDelta


@dataclass(frozen=True)
class WithdrawPlan:
    """Proportional withdrawal of both reserves."""

    holder: str
    shares_burned: int
    base_amount: int
    quote_amount: int
    delta: PoolDelta


def _require_seeded(snapshot: PoolSnapshot) -> None:
    if not snapshot.is_seeded:
        raise NotSeededError("Pool has no liquidity yet; seed it first")


def plan_seed(
    snapshot: PoolSnapshot,
    holder: str,
    base_amount: int,
    quote_amount: int,
) -> SeedPlan:
    """Plan the seeding deposit that sets the pool's initial price.

    The initial share supply equals base_amount (one share per unit of base
    at seeding time only).

    Raises:
        AlreadySeededError: If shares are already outstanding
        InvalidInputError: If either amount is not positive
    """
    if snapshot.total_shares != 0:
        raise AlreadySeededError(f"Pool already has {snapshot.total_shares} shares outstanding")
    require_amount("base_amount", base_amount)
    require_amount("quote_amount", quote_amount)

    holder = normalize_address(holder)
    return SeedPlan(
        holder=holder,
        base_amount=base_amount,
        quote_amount=quote_amount,
        shares_minted=base_amount,
        delta=PoolDelta(base=base_amount, quote=quote_amount, shares={holder: base_amount}),
    )


def plan_swap(snapshot: PoolSnapshot, direction: SwapDirection, amount_in: int) -> SwapPlan:
    """Plan an exact-input swap.

    Raises:
        NotSeededError: If the pool is empty
        InvalidInputError: If amount_in is zero or too small to buy anything
    """
    require_amount("amount_in", amount_in)
    _require_seeded(snapshot)

    reserve_in, reserve_out = direction.reserves(snapshot)
    amount_out = settled_output(amount_in, reserve_in, reserve_out)
    if amount_out == 0:
        raise InvalidInputError(f"Input {amount_in} is too small to produce any output")

    logger.debug(
        "swap_planned",
        direction=direction.value,
        amount_in=amount_in,
        amount_out=amount_out,
        reserve_in=reserve_in,
        reserve_out=reserve_out,
    )
    return SwapPlan(
        direction=direction,
        amount_in=amount_in,
        amount_out=amount_out,
        delta=direction.delta(amount_in, amount_out),
    )


def plan_swap_exact_output(
    snapshot: PoolSnapshot, direction: SwapDirection, amount_out: int
) -> SwapPlan:
    """Plan a swap that buys exactly amount_out of the output asset.

    The caller pays the input found by quote_input; any rounding surplus of
    the curve stays in the pool.

    Raises:
        NotSeededError: If the pool is empty
        InvalidInputError: If amount_out is zero
        InsufficientReservesError: If amount_out would drain the output reserve
    """
    require_amount("amount_out", amount_out)
    _require_seeded(snapshot)

    reserve_in, reserve_out = direction.reserves(snapshot)
    amount_in = quote_input(amount_out, reserve_in, reserve_out)

    logger.debug(
        "swap_exact_output_planned",
        direction=direction.value,
        amount_in=amount_in,
        amount_out=amount_out,
    )
    return SwapPlan(
        direction=direction,
        amount_in=amount_in,
        amount_out=amount_out,
        delta=direction.delta(amount_in, amount_out),
    )


def plan_deposit(snapshot: PoolSnapshot, holder: str, base_amount: int) -> DepositPlan:
    """Plan a deposit at the current reserve ratio.

    quote_amount = base_amount * quote_reserve // base_reserve + 1
    shares       = base_amount * total_shares // base_reserve

    The +1 rounds the quote contribution in the pool's favour.

    Raises:
        NotSeededError: If the pool is empty
        InvalidInputError: If base_amount is zero or would mint no shares
    """
    require_amount("base_amount", base_amount)
    _require_seeded(snapshot)

    pre_base = S(snapshot.base_reserve)
    quote_amount = (S(base_amount) * S(snapshot.quote_reserve) // pre_base + S(1)).to_uint256()
    shares_minted = (S(base_amount) * S(snapshot.total_shares) // pre_base).to_uint256()
    if shares_minted == 0:
        raise InvalidInputError(f"Deposit of {base_amount} base is too small to mint a share")

    holder = normalize_address(holder)
    return DepositPlan(
        holder=holder,
        base_amount=base_amount,
        quote_amount=quote_amount,
        shares_minted=shares_minted,
        delta=PoolDelta(base=base_amount, quote=quote_amount, shares={holder: shares_minted}),
    )


def plan_withdraw(snapshot: PoolSnapshot, holder: str, share_amount: int) -> WithdrawPlan:
    """Plan burning share_amount of holder's shares for both reserves.

    Each output is share_amount * reserve // total_shares, so every holder's
    claim stays proportional to their share of the supply.

    Raises:
        InvalidInputError: If share_amount is zero or both outputs round to zero
        InsufficientSharesError: If holder owns fewer than share_amount shares
    """
    require_amount("share_amount", share_amount)
    holder = normalize_address(holder)
    owned = snapshot.shares_of(holder)
    if share_amount > owned:
        raise InsufficientSharesError(
            f"Holder {holder} owns {owned} shares, cannot withdraw {share_amount}"
        )

    supply = S(snapshot.total_shares)
    base_amount = (S(share_amount) * S(snapshot.base_reserve) // supply).value
    quote_amount = (S(share_amount) * S(snapshot.quote_reserve) // supply).value
    if base_amount == 0 and quote_amount == 0:
        raise InvalidInputError(f"Withdrawing {share_amount} shares would return nothing")

    return WithdrawPlan(
        holder=holder,
        shares_burned=share_amount,
        base_amount=base_amount,
        quote_amount=quote_amount,
        delta=PoolDelta(base=-base_amount, quote=-quote_amount, shares={holder: -share_amount}),
    )


__all__ = [
    "SwapDirection",
    "SwapPlan",
    "SeedPlan",
    "DepositPlan",
    "WithdrawPlan",
    "plan_seed",
    "plan_swap",
    "plan_swap_exact_output",
    "plan_deposit",
    "plan_withdraw",
]
