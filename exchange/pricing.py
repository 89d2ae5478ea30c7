"""Constant-product pricing engine.

The pool prices trades on x * y = k with a 0.3% fee taken from the input
before the swap:

    fee_portion     = input_amount * 3 // 1000
    effective_input = input_amount - fee_portion
    output_amount   = output_reserve - k // (input_reserve + effective_input)

All functions are pure and expect PRE-trade reserves.
"""

from __future__ import annotations

import structlog

from exchange.constants import FEE_DENOMINATOR, FEE_NUMERATOR
from exchange.errors import InsufficientReservesError, InvalidInputError
from exchange.safe_int import S

logger = structlog.get_logger()


def effective_input(input_amount: int) -> int:
    """Input amount left after the truncated 0.3% fee."""
    fee_portion = S(input_amount) * S(FEE_NUMERATOR) // S(FEE_DENOMINATOR)
    return (S(input_amount) - fee_portion).value


def quote_output(input_amount: int, input_reserve: int, output_reserve: int) -> int:
    """Calculate output amount using the constant product formula.

    Args:
        input_amount: Amount of the asset being sold
        input_reserve: Pre-trade reserve of the input asset
        output_reserve: Pre-trade reserve of the output asset

    Returns:
        Output asset amount

    Raises:
        InvalidInputError: If input_amount is zero or negative
        DivisionByZeroError: If input_reserve + effective input is zero
    """
    if input_amount <= 0:
        raise InvalidInputError(f"Input amount must be positive, got {input_amount}")

    k = S(input_reserve) * S(output_reserve)
    denominator = S(input_reserve) + S(effective_input(input_amount))

    return (S(output_reserve) - k // denominator).value


def settled_output(input_amount: int, input_reserve: int, output_reserve: int) -> int:
    """Output a swap actually pays for an exact input.

    Same as quote_output, except when floor division would leave the
    post-trade product below k. The output is then reduced by one unit, which
    is always enough: it makes the remaining output reserve the ceiling of
    k / (input_reserve + effective_input).

    Returns:
        Output asset amount; never reaches output_reserve while it is positive
    """
    output = quote_output(input_amount, input_reserve, output_reserve)
    k_before = S(input_reserve) * S(output_reserve)
    k_after = (S(input_reserve) + S(input_amount)) * (S(output_reserve) - S(output))
    if k_after < k_before and output > 0:
        logger.debug(
            "output_rounded_for_invariant",
            input_amount=input_amount,
            quoted=output,
            settled=output - 1,
        )
        output -= 1
    return output


def quote_input(output_amount: int, input_reserve: int, output_reserve: int) -> int:
    """Calculate the input needed to receive at least output_amount.

    Starts from the analytic bound on the effective input, converts it to a
    gross input, then binary searches for the smallest input whose
    settled_output still covers output_amount.

    Args:
        output_amount: Desired output asset amount
        input_reserve: Pre-trade reserve of the input asset
        output_reserve: Pre-trade reserve of the output asset

    Returns:
        Required input asset amount

    Raises:
        InvalidInputError: If output_amount is zero or negative
        InsufficientReservesError: If output_amount would drain the output reserve
    """
    if output_amount <= 0:
        raise InvalidInputError(f"Output amount must be positive, got {output_amount}")
    if output_amount >= output_reserve:
        raise InsufficientReservesError(
            f"Requested {output_amount} but output reserve is {output_reserve}"
        )

    # Remaining output reserve must be at least ceil(k / (input_reserve + eff))
    k = S(input_reserve) * S(output_reserve)
    remaining = S(output_reserve) - S(output_amount)
    min_effective = (k.ceiling_div(remaining) - S(input_reserve)).value
    # effective_input(x) >= x * 997 / 1000 - 1, so this upper bound always suffices
    hi = (S(min_effective + 1) * S(FEE_DENOMINATOR)).ceiling_div(
        S(FEE_DENOMINATOR) - S(FEE_NUMERATOR)
    ).value
    hi = max(hi, 1)
    while settled_output(hi, input_reserve, output_reserve) < output_amount:
        hi *= 2

    lo = 1
    while lo < hi:
        mid = (lo + hi) // 2
        if settled_output(mid, input_reserve, output_reserve) >= output_amount:
            hi = mid
        else:
            lo = mid + 1

    return hi


__all__ = [
    "effective_input",
    "quote_output",
    "settled_output",
    "quote_input",
]
