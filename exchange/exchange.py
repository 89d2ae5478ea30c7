"""Exchange service: the single pool and its operations.

Every mutating operation runs the same sequence under one lock:

1. Validate holders and amounts, plan against a snapshot (no side effects)
2. Run the external transfers, inputs before outputs
3. Commit the plan's PoolDelta
4. Emit the event (after the lock is released)

If a transfer fails, completed transfers the pool can undo on its own are
compensated and TransferFailedError is raised. Transfers that cannot be
undone (base already paid out, or a failed refund) raise
ReconciliationError listing them. Pool state is never touched on failure.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import structlog

from exchange.assets import BaseLedger, QuoteLedger
from exchange.config import DEFAULT_EXCHANGE_CONFIG, ExchangeConfig
from exchange.errors import (
    CustodyMismatchError,
    InsufficientAllowanceError,
    InsufficientSharesError,
    InvalidInputError,
    NotSeededError,
    ReconciliationError,
    ReentrantCallError,
    TransferFailedError,
)
from exchange.liquidity import (
    SwapDirection,
    SwapPlan,
    plan_deposit,
    plan_seed,
    plan_swap,
    plan_swap_exact_output,
    plan_withdraw,
)
from exchange.models.events import (
    Asset,
    EventKind,
    ExchangeEvent,
    LiquidityEvent,
    ShareTransferEvent,
    SwapEvent,
)
from exchange.models.types import normalize_address
from exchange.pricing import quote_input, settled_output
from exchange.safe_int import require_amount
from exchange.state import PoolDelta, PoolSnapshot, PoolState

logger = structlog.get_logger()

EventSink = Callable[[ExchangeEvent], None]


@dataclass(frozen=True)
class _Transfer:
    """One external asset movement and, if the pool can perform it, its reversal."""

    description: str
    amount: int
    run: Callable[[], bool]
    undo: Callable[[], bool] | None = None


class Exchange:
    """Two-asset constant-product exchange over one PoolState.

    Args:
        quote_ledger: Custody of the quote token
        base_ledger: Custody of the base asset
        config: Runtime settings. Uses DEFAULT_EXCHANGE_CONFIG if not provided.
        state: Pool state to operate on. A fresh, unseeded pool if not provided.
        sinks: Callables that receive every emitted event
    """

    def __init__(
        self,
        quote_ledger: QuoteLedger,
        base_ledger: BaseLedger,
        config: ExchangeConfig | None = None,
        state: PoolState | None = None,
        sinks: Iterable[EventSink] | None = None,
    ) -> None:
        self.config = config or DEFAULT_EXCHANGE_CONFIG
        self.quote_ledger = quote_ledger
        self.base_ledger = base_ledger
        self._state = state if state is not None else PoolState()
        self._sinks: list[EventSink] = list(sinks or [])
        self._share_allowances: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()
        self._owner: int | None = None

    @property
    def pool_address(self) -> str:
        return self.config.pool_address

    def add_sink(self, sink: EventSink) -> None:
        """Register a callable to receive every emitted event."""
        self._sinks.append(sink)

    # --- Serialization ---

    @contextmanager
    def _operation(self, name: str) -> Iterator[PoolSnapshot]:
        ident = threading.get_ident()
        if self._owner == ident:
            raise ReentrantCallError(f"{name} started while another operation is running")
        with self._lock:
            self._owner = ident
            try:
                if self.config.check_custody:
                    self._verify_custody()
                yield self._state.snapshot()
            finally:
                self._owner = None

    @contextmanager
    def _reading(self) -> Iterator[None]:
        # Collaborator callbacks on the operating thread read the pre-commit state
        if self._owner == threading.get_ident():
            yield
            return
        with self._lock:
            yield

    def _read(self) -> PoolSnapshot:
        with self._reading():
            return self._state.snapshot()

    # --- Views ---

    def snapshot(self) -> PoolSnapshot:
        return self._read()

    def current_reserves(self) -> tuple[int, int]:
        """Return (base_reserve, quote_reserve)."""
        snap = self._read()
        return snap.base_reserve, snap.quote_reserve

    def current_shares(self, holder: str) -> int:
        return self._read().shares_of(_holder(holder))

    @property
    def total_shares(self) -> int:
        return self._read().total_shares

    def share_allowance(self, owner: str, spender: str) -> int:
        key = (_holder(owner), _holder(spender))
        with self._reading():
            return self._share_allowances.get(key, 0)

    def base_to_quote_input_price(self, base_in: int) -> int:
        """Quote received for selling exactly base_in."""
        snap = self._seeded_read()
        return settled_output(require_amount("base_in", base_in), snap.base_reserve, snap.quote_reserve)

    def base_to_quote_output_price(self, quote_out: int) -> int:
        """Base needed to buy exactly quote_out."""
        snap = self._seeded_read()
        return quote_input(require_amount("quote_out", quote_out), snap.base_reserve, snap.quote_reserve)

    def quote_to_base_input_price(self, quote_in: int) -> int:
        """Base received for selling exactly quote_in."""
        snap = self._seeded_read()
        return settled_output(require_amount("quote_in", quote_in), snap.quote_reserve, snap.base_reserve)

    def quote_to_base_output_price(self, base_out: int) -> int:
        """Quote needed to buy exactly base_out."""
        snap = self._seeded_read()
        return quote_input(require_amount("base_out", base_out), snap.quote_reserve, snap.base_reserve)

    def _seeded_read(self) -> PoolSnapshot:
        snap = self._read()
        if not snap.is_seeded:
            raise NotSeededError("Pool has no liquidity yet; no price available")
        return snap

    # --- Custody ---

    def check_custody(self) -> None:
        """Verify that reserves equal the balances the ledgers report for the pool.

        Raises:
            CustodyMismatchError: If either reserve has drifted from custody
        """
        with self._operation("check_custody"):
            if not self.config.check_custody:
                self._verify_custody()

    def _verify_custody(self) -> None:
        base_held = self.base_ledger.balance_of(self.pool_address)
        quote_held = self.quote_ledger.balance_of(self.pool_address)
        base_reserve, quote_reserve = self._state.current_reserves()
        if base_held != base_reserve or quote_held != quote_reserve:
            logger.error(
                "custody_mismatch",
                base_reserve=base_reserve,
                base_held=base_held,
                quote_reserve=quote_reserve,
                quote_held=quote_held,
            )
            raise CustodyMismatchError(
                f"Reserves ({base_reserve}, {quote_reserve}) differ from custody "
                f"({base_held}, {quote_held})"
            )

    # --- Liquidity ---

    def seed(self, caller: str, base_amount: int, quote_amount: int) -> int:
        """Seed the empty pool, fixing its initial price.

        Args:
            caller: Holder providing both assets and receiving the shares
            base_amount: Base asset deposited (also the number of shares minted)
            quote_amount: Quote asset pulled from caller

        Returns:
            Shares minted

        Raises:
            AlreadySeededError: If the pool already has shares outstanding
            InvalidInputError: If either amount is not positive
            InsufficientAllowanceError: If caller has not approved quote_amount
            TransferFailedError: If either asset movement fails
        """
        caller = _holder(caller)
        with self._operation("seed") as snap:
            plan = plan_seed(snap, caller, base_amount, quote_amount)
            self._require_quote_allowance(caller, plan.quote_amount)
            self._execute(
                "seed",
                [
                    self._collect_base(caller, plan.base_amount),
                    self._pull_quote(caller, plan.quote_amount),
                ],
            )
            after = self._state.apply(plan.delta)

        self._emit(
            LiquidityEvent(
                kind=EventKind.SEED,
                holder=caller,
                base_amount=plan.base_amount,
                quote_amount=plan.quote_amount,
                shares=plan.shares_minted,
                total_shares=after.total_shares,
            )
        )
        return plan.shares_minted

    def deposit(self, caller: str, base_amount: int) -> int:
        """Add liquidity at the current reserve ratio.

        Args:
            caller: Holder providing both assets and receiving the shares
            base_amount: Base asset deposited

        Returns:
            Quote amount taken from caller

        Raises:
            NotSeededError: If the pool is empty
            InvalidInputError: If base_amount is zero or mints no shares
            InsufficientAllowanceError: If caller has not approved the quote amount
            TransferFailedError: If either asset movement fails
        """
        caller = _holder(caller)
        with self._operation("deposit") as snap:
            plan = plan_deposit(snap, caller, base_amount)
            self._require_quote_allowance(caller, plan.quote_amount)
            self._execute(
                "deposit",
                [
                    self._collect_base(caller, plan.base_amount),
                    self._pull_quote(caller, plan.quote_amount),
                ],
            )
            after = self._state.apply(plan.delta)

        self._emit(
            LiquidityEvent(
                kind=EventKind.DEPOSIT,
                holder=caller,
                base_amount=plan.base_amount,
                quote_amount=plan.quote_amount,
                shares=plan.shares_minted,
                total_shares=after.total_shares,
            )
        )
        return plan.quote_amount

    def withdraw(self, caller: str, share_amount: int) -> tuple[int, int]:
        """Burn shares for a proportional part of both reserves.

        Args:
            caller: Holder burning shares and receiving both assets
            share_amount: Shares to burn

        Returns:
            Tuple of (base_amount_out, quote_amount_out)

        Raises:
            InvalidInputError: If share_amount is zero or returns nothing
            InsufficientSharesError: If caller owns fewer than share_amount shares
            TransferFailedError: If the base payout fails (nothing moved)
            ReconciliationError: If base was paid but the quote payout failed
        """
        caller = _holder(caller)
        with self._operation("withdraw") as snap:
            plan = plan_withdraw(snap, caller, share_amount)
            self._execute(
                "withdraw",
                [
                    self._send_base(caller, plan.base_amount),
                    self._pay_quote(caller, plan.quote_amount),
                ],
            )
            after = self._state.apply(plan.delta)

        self._emit(
            LiquidityEvent(
                kind=EventKind.WITHDRAW,
                holder=caller,
                base_amount=plan.base_amount,
                quote_amount=plan.quote_amount,
                shares=plan.shares_burned,
                total_shares=after.total_shares,
            )
        )
        return plan.base_amount, plan.quote_amount

    # --- Swaps ---

    def swap_base_for_quote(self, caller: str, base_in: int, recipient: str | None = None) -> int:
        """Sell exactly base_in for quote.

        Returns:
            Quote amount paid to recipient (caller by default)
        """
        plan = self._swap(caller, recipient, SwapDirection.BASE_TO_QUOTE, base_in, exact_output=False)
        return plan.amount_out

    def swap_quote_for_base(self, caller: str, quote_in: int, recipient: str | None = None) -> int:
        """Sell exactly quote_in for base.

        Returns:
            Base amount paid to recipient (caller by default)
        """
        plan = self._swap(caller, recipient, SwapDirection.QUOTE_TO_BASE, quote_in, exact_output=False)
        return plan.amount_out

    def swap_base_for_exact_quote(
        self, caller: str, quote_out: int, recipient: str | None = None
    ) -> int:
        """Buy exactly quote_out with base.

        Returns:
            Base amount taken from caller
        """
        plan = self._swap(caller, recipient, SwapDirection.BASE_TO_QUOTE, quote_out, exact_output=True)
        return plan.amount_in

    def swap_quote_for_exact_base(
        self, caller: str, base_out: int, recipient: str | None = None
    ) -> int:
        """Buy exactly base_out with quote.

        Returns:
            Quote amount taken from caller
        """
        plan = self._swap(caller, recipient, SwapDirection.QUOTE_TO_BASE, base_out, exact_output=True)
        return plan.amount_in

    def _swap(
        self,
        caller: str,
        recipient: str | None,
        direction: SwapDirection,
        amount: int,
        *,
        exact_output: bool,
    ) -> SwapPlan:
        caller = _holder(caller)
        recipient = _holder(recipient) if recipient is not None else caller
        with self._operation("swap") as snap:
            if exact_output:
                plan = plan_swap_exact_output(snap, direction, amount)
            else:
                plan = plan_swap(snap, direction, amount)

            if direction is SwapDirection.BASE_TO_QUOTE:
                transfers = [
                    self._collect_base(caller, plan.amount_in),
                    self._pay_quote(recipient, plan.amount_out),
                ]
            else:
                self._require_quote_allowance(caller, plan.amount_in)
                transfers = [
                    self._pull_quote(caller, plan.amount_in),
                    self._send_base(recipient, plan.amount_out),
                ]
            self._execute("swap", transfers)
            self._state.apply(plan.delta)

        self._emit(
            SwapEvent(
                holder=caller,
                recipient=recipient,
                asset_in=Asset.BASE if direction is SwapDirection.BASE_TO_QUOTE else Asset.QUOTE,
                amount_in=plan.amount_in,
                amount_out=plan.amount_out,
            )
        )
        return plan

    # --- Share transfers ---

    def transfer_shares(self, caller: str, to: str, amount: int) -> None:
        """Move shares from caller to another holder.

        Raises:
            InvalidInputError: If amount is zero
            InsufficientSharesError: If caller owns fewer than amount shares
        """
        caller, to = _holder(caller), _holder(to)
        require_amount("amount", amount)
        with self._operation("transfer_shares") as snap:
            self._move_shares(snap, caller, to, amount)

        self._emit(ShareTransferEvent(holder=caller, owner=caller, to=to, amount=amount))

    def approve_shares(self, owner: str, spender: str, amount: int) -> None:
        """Allow spender to move up to amount of owner's shares."""
        owner, spender = _holder(owner), _holder(spender)
        require_amount("amount", amount, positive=False)
        with self._operation("approve_shares"):
            self._share_allowances[(owner, spender)] = amount

        self._emit(
            ShareTransferEvent(
                kind=EventKind.SHARE_APPROVAL, holder=owner, owner=owner, to=spender, amount=amount
            )
        )

    def transfer_shares_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        """Move owner's shares to another holder using spender's allowance.

        Raises:
            InvalidInputError: If amount is zero
            InsufficientAllowanceError: If spender's allowance is below amount
            InsufficientSharesError: If owner holds fewer than amount shares
        """
        spender, owner, to = _holder(spender), _holder(owner), _holder(to)
        require_amount("amount", amount)
        with self._operation("transfer_shares_from") as snap:
            allowed = self._share_allowances.get((owner, spender), 0)
            if allowed < amount:
                raise InsufficientAllowanceError(
                    f"{spender} may move {allowed} of {owner}'s shares, not {amount}"
                )
            self._move_shares(snap, owner, to, amount)
            self._share_allowances[(owner, spender)] = allowed - amount

        self._emit(ShareTransferEvent(holder=spender, owner=owner, to=to, amount=amount))

    def _move_shares(self, snap: PoolSnapshot, owner: str, to: str, amount: int) -> None:
        owned = snap.shares_of(owner)
        if owned < amount:
            raise InsufficientSharesError(f"Holder {owner} owns {owned} shares, cannot move {amount}")
        changes: defaultdict[str, int] = defaultdict(int)
        changes[owner] -= amount
        changes[to] += amount
        self._state.apply(PoolDelta(shares=dict(changes)))

    # --- External transfers ---

    def _require_quote_allowance(self, owner: str, amount: int) -> None:
        allowed = self.quote_ledger.allowance(owner, self.pool_address)
        if allowed < amount:
            raise InsufficientAllowanceError(
                f"{owner} approved {allowed} quote for the pool, {amount} required"
            )

    def _collect_base(self, sender: str, amount: int) -> _Transfer:
        return _Transfer(
            description=f"collect {amount} base from {sender}",
            amount=amount,
            run=lambda: self.base_ledger.collect(sender, amount),
            undo=lambda: self.base_ledger.send(sender, amount),
        )

    def _send_base(self, to: str, amount: int) -> _Transfer:
        return _Transfer(
            description=f"send {amount} base to {to}",
            amount=amount,
            run=lambda: self.base_ledger.send(to, amount),
        )

    def _pull_quote(self, owner: str, amount: int) -> _Transfer:
        pool = self.pool_address
        return _Transfer(
            description=f"pull {amount} quote from {owner}",
            amount=amount,
            run=lambda: self.quote_ledger.transfer_from(owner, pool, pool, amount),
            undo=lambda: self.quote_ledger.transfer(pool, owner, amount),
        )

    def _pay_quote(self, to: str, amount: int) -> _Transfer:
        pool = self.pool_address
        return _Transfer(
            description=f"pay {amount} quote to {to}",
            amount=amount,
            run=lambda: self.quote_ledger.transfer(pool, to, amount),
        )

    def _execute(self, operation: str, transfers: list[_Transfer]) -> None:
        """Run transfers in order, compensating on the first failure.

        Zero-amount transfers are skipped. A collaborator that raises is
        treated like one that returns False; the exception is chained.

        Raises:
            TransferFailedError: If a transfer failed and every completed one was undone
            ReconciliationError: If some completed transfer could not be undone
        """
        completed: list[_Transfer] = []
        for transfer in transfers:
            if transfer.amount == 0:
                continue
            cause: Exception | None = None
            try:
                succeeded = transfer.run()
            except Exception as err:
                logger.exception("transfer_raised", operation=operation, transfer=transfer.description)
                succeeded, cause = False, err
            if succeeded:
                completed.append(transfer)
                continue

            logger.warning("transfer_failed", operation=operation, transfer=transfer.description)
            stranded = self._compensate(operation, completed)
            if stranded:
                raise ReconciliationError(
                    f"{operation}: {transfer.description} failed after irreversible transfers",
                    completed=stranded,
                ) from cause
            raise TransferFailedError(f"{operation}: {transfer.description} failed") from cause

    def _compensate(self, operation: str, completed: list[_Transfer]) -> list[str]:
        """Undo completed transfers newest first; return those left standing."""
        stranded: list[str] = []
        for done in reversed(completed):
            if done.undo is None:
                stranded.append(done.description)
                continue
            try:
                undone = done.undo()
            except Exception:
                logger.exception("transfer_undo_raised", operation=operation, transfer=done.description)
                undone = False
            if not undone:
                logger.error("transfer_undo_failed", operation=operation, transfer=done.description)
                stranded.append(done.description)
        return stranded

    # --- Events ---

    def _emit(self, event: ExchangeEvent) -> None:
        if self.config.log_events:
            logger.info(f"exchange_{event.kind.value}", **event.model_dump(mode="json"))
        for sink in self._sinks:
            try:
                sink(event)
            except Exception:
                logger.exception("event_sink_failed", kind=event.kind.value)


def _holder(address: str) -> str:
    try:
        return normalize_address(address, validate=True)
    except ValueError as err:
        raise InvalidInputError(str(err)) from err


__all__ = ["Exchange", "EventSink"]
