"""Exchange constants.

The pool charges a single hardcoded swap fee; it is not configuration.
"""

# Swap fee taken from the input amount: 3 / 1000 = 0.3%
FEE_NUMERATOR = 3
FEE_DENOMINATOR = 1000

# Custody identity of the pool at both asset ledgers (overridable via ExchangeConfig)
DEFAULT_POOL_ADDRESS = "0x00000000000000000000000000000000000a4d11"

UINT256_MAX = 2**256 - 1
