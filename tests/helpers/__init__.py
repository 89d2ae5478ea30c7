"""Test helpers module for shared test utilities.

- constants: Holder addresses and common amounts
- factories: Exchange factories and invariant assertions
"""

from tests.helpers.constants import ALICE, BOB, CAROL, FUNDING, POOL
from tests.helpers.factories import (
    assert_custody,
    assert_share_invariants,
    make_exchange,
    seeded_exchange,
)

__all__ = [
    # Constants
    "ALICE",
    "BOB",
    "CAROL",
    "FUNDING",
    "POOL",
    # Factories
    "make_exchange",
    "seeded_exchange",
    "assert_custody",
    "assert_share_invariants",
]
