"""External asset collaborators.

The exchange never moves assets itself. It talks to a quote-token ledger
(ERC20-style) and a base-asset ledger (native value transfers) through the
protocols below. Every movement reports success as a bool; a False return
is a failed transfer, never an exception.

The in-memory ledgers are reference collaborators for tests and
simulations.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from exchange.models.types import normalize_address

logger = structlog.get_logger()


@runtime_checkable
class QuoteLedger(Protocol):
    """Custody of the fungible quote token."""

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        """Move amount from sender to to."""
        ...

    def transfer_from(self, owner: str, spender: str, to: str, amount: int) -> bool:
        """Move amount from owner to to, spending spender's allowance."""
        ...

    def allowance(self, owner: str, spender: str) -> int: ...


@runtime_checkable
class BaseLedger(Protocol):
    """Custody of the native base asset."""

    def balance_of(self, holder: str) -> int: ...

    def send(self, to: str, amount: int) -> bool:
        """Pay amount out of pool custody. May fail if the recipient rejects it."""
        ...

    def collect(self, sender: str, amount: int) -> bool:
        """Take amount attached to the caller's request into pool custody."""
        ...


class _FailureInjection:
    """Shared failure switch for the in-memory ledgers."""

    def __init__(self) -> None:
        self._fail_next = 0

    def fail_next(self, count: int = 1) -> None:
        """Make the next `count` movements report failure."""
        self._fail_next += count

    def _should_fail(self) -> bool:
        if self._fail_next > 0:
            self._fail_next -= 1
            return True
        return False


class InMemoryQuoteLedger(_FailureInjection):
    """Dictionary-backed quote token with balances and allowances."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        super().__init__()
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        for holder, amount in (balances or {}).items():
            self.mint(holder, amount)

    def mint(self, holder: str, amount: int) -> None:
        holder = normalize_address(holder)
        self._balances[holder] = self._balances.get(holder, 0) + amount

    def balance_of(self, holder: str) -> int:
        return self._balances.get(normalize_address(holder), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self._allowances[(normalize_address(owner), normalize_address(spender))] = amount
        return True

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        if self._should_fail():
            logger.debug("quote_transfer_injected_failure", sender=sender, to=to, amount=amount)
            return False
        return self._move(normalize_address(sender), normalize_address(to), amount)

    def transfer_from(self, owner: str, spender: str, to: str, amount: int) -> bool:
        if self._should_fail():
            logger.debug("quote_transfer_from_injected_failure", owner=owner, amount=amount)
            return False
        key = (normalize_address(owner), normalize_address(spender))
        allowed = self._allowances.get(key, 0)
        if allowed < amount:
            return False
        if not self._move(key[0], normalize_address(to), amount):
            return False
        self._allowances[key] = allowed - amount
        return True

    def _move(self, sender: str, to: str, amount: int) -> bool:
        if amount < 0 or self._balances.get(sender, 0) < amount:
            return False
        self._balances[sender] = self._balances.get(sender, 0) - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        return True


class InMemoryBaseLedger(_FailureInjection):
    """Dictionary-backed native asset with recipients that can refuse payment.

    Args:
        custodian: Address whose balance backs send() (the pool)
        balances: Initial balances
    """

    def __init__(self, custodian: str, balances: dict[str, int] | None = None) -> None:
        super().__init__()
        self.custodian = normalize_address(custodian)
        self._balances: dict[str, int] = {}
        self._rejecting: set[str] = set()
        for holder, amount in (balances or {}).items():
            self.mint(holder, amount)

    def mint(self, holder: str, amount: int) -> None:
        holder = normalize_address(holder)
        self._balances[holder] = self._balances.get(holder, 0) + amount

    def reject_payments_to(self, holder: str, rejecting: bool = True) -> None:
        """Make holder refuse (or accept again) incoming payments."""
        holder = normalize_address(holder)
        if rejecting:
            self._rejecting.add(holder)
        else:
            self._rejecting.discard(holder)

    def balance_of(self, holder: str) -> int:
        return self._balances.get(normalize_address(holder), 0)

    def send(self, to: str, amount: int) -> bool:
        to = normalize_address(to)
        if self._should_fail() or to in self._rejecting:
            logger.debug("base_send_rejected", to=to, amount=amount)
            return False
        return self._move(self.custodian, to, amount)

    def collect(self, sender: str, amount: int) -> bool:
        if self._should_fail():
            logger.debug("base_collect_injected_failure", sender=sender, amount=amount)
            return False
        return self._move(normalize_address(sender), self.custodian, amount)

    def _move(self, sender: str, to: str, amount: int) -> bool:
        if amount < 0 or self._balances.get(sender, 0) < amount:
            return False
        self._balances[sender] = self._balances.get(sender, 0) - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        return True


__all__ = [
    "QuoteLedger",
    "BaseLedger",
    "InMemoryQuoteLedger",
    "InMemoryBaseLedger",
]
