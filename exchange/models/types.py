"""Shared type definitions for exchange models.

Holders are identified by Ethereum-style addresses. Amounts are
arbitrary-precision ints bounded to the uint256 range.
"""

import re
from typing import Annotated

from pydantic import Field

from exchange.constants import UINT256_MAX

# Ethereum address (40 lowercase hex chars after 0x prefix)
ADDRESS_PATTERN = r"^0x[a-f0-9]{40}$"
Address = Annotated[str, Field(pattern=ADDRESS_PATTERN)]
_ADDRESS_RE = re.compile(ADDRESS_PATTERN)

# Non-negative amount that fits a uint256
Amount = Annotated[int, Field(ge=0, le=UINT256_MAX)]


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an address to lowercase with a 0x prefix.

    Args:
        address: An address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid address
    """
    if not isinstance(address, str):
        raise ValueError(f"Address must be a string, got {type(address).__name__}")
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a normalized 0x-prefixed 20-byte hex address.

    Matches exactly the strings the Address model type accepts.
    """
    if not isinstance(address, str):
        return False
    return _ADDRESS_RE.fullmatch(address) is not None
