"""Pydantic models and shared types for the exchange."""

from exchange.models.events import (
    Asset,
    BaseEvent,
    EventKind,
    ExchangeEvent,
    LiquidityEvent,
    ShareTransferEvent,
    SwapEvent,
)
from exchange.models.types import Address, Amount, is_valid_address, normalize_address

__all__ = [
    # Events
    "Asset",
    "BaseEvent",
    "EventKind",
    "ExchangeEvent",
    "LiquidityEvent",
    "ShareTransferEvent",
    "SwapEvent",
    # Types
    "Address",
    "Amount",
    "is_valid_address",
    "normalize_address",
]
