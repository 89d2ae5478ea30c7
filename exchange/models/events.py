"""Pydantic models for structured exchange events.

One event is emitted per successful operation. Events are for external
monitoring; the core never reads them back.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from exchange.models.types import Address, Amount


class EventKind(str, Enum):
    """Operation that produced the event."""

    SEED = "seed"
    SWAP = "swap"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    SHARE_TRANSFER = "share_transfer"
    SHARE_APPROVAL = "share_approval"


class Asset(str, Enum):
    """The two assets held by the pool."""

    BASE = "base"
    QUOTE = "quote"


class BaseEvent(BaseModel):
    """Fields common to every event."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    holder: Address = Field(description="Holder that initiated the operation")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SwapEvent(BaseEvent):
    """A trade of one asset for the other."""

    kind: EventKind = EventKind.SWAP
    recipient: Address
    asset_in: Asset
    amount_in: Amount
    amount_out: Amount


class LiquidityEvent(BaseEvent):
    """Shares minted (seed, deposit) or burned (withdraw)."""

    base_amount: Amount
    quote_amount: Amount
    shares: Amount = Field(description="Shares minted or burned")
    total_shares: Amount = Field(description="Share supply after the operation")


class ShareTransferEvent(BaseEvent):
    """Shares moved between holders, or an allowance set."""

    kind: EventKind = EventKind.SHARE_TRANSFER
    owner: Address
    to: Address
    amount: Amount


ExchangeEvent = Union[SwapEvent, LiquidityEvent, ShareTransferEvent]
