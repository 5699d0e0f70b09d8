"""
events.py - Immutable event records emitted by the pool

Every mutating action appends one of these records to LendingPool.event_log.
Records carry the before/after quantities needed to reconstruct ledger
deltas off-line. Events of a reverted call are discarded with the rest of
its state.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class InterestAccrued:
    market: str
    timestamp: int
    borrow_rate: int
    borrow_index: int
    total_borrow: int
    total_reserves: int


@dataclass(frozen=True, slots=True)
class Supplied:
    market: str
    source: str
    recipient: str
    amount: int
    shares: int


@dataclass(frozen=True, slots=True)
class Borrowed:
    market: str
    borrower: str
    recipient: str
    amount: int
    account_borrow: int
    total_borrow: int


@dataclass(frozen=True, slots=True)
class Redeemed:
    market: str
    account: str
    recipient: str
    amount: int
    shares: int


@dataclass(frozen=True, slots=True)
class Repaid:
    market: str
    payer: str
    borrower: str
    amount: int
    account_borrow: int
    total_borrow: int


@dataclass(frozen=True, slots=True)
class Liquidated:
    liquidator: str
    borrower: str
    market_borrow: str
    market_collateral: str
    repay_amount: int
    seized_shares: int


@dataclass(frozen=True, slots=True)
class SharesTransferred:
    market: str
    source: str
    dest: str
    shares: int


@dataclass(frozen=True, slots=True)
class ReservesIncreased:
    market: str
    amount: int
    shares: int
    total_reserves: int


@dataclass(frozen=True, slots=True)
class ReservesDecreased:
    market: str
    recipient: str
    amount: int
    shares: int
    total_reserves: int


@dataclass(frozen=True, slots=True)
class MarketListed:
    market: str


@dataclass(frozen=True, slots=True)
class MarketDelisted:
    market: str


@dataclass(frozen=True, slots=True)
class MarketConfigured:
    market: str
    changed: tuple


@dataclass(frozen=True, slots=True)
class CreditLimitChanged:
    account: str
    market: str
    old_limit: int
    new_limit: int


@dataclass(frozen=True, slots=True)
class MarketEntered:
    market: str
    account: str


@dataclass(frozen=True, slots=True)
class MarketExited:
    market: str
    account: str


@dataclass(frozen=True, slots=True)
class ExtensionChanged:
    account: str
    extension: str
    allowed: bool


@dataclass(frozen=True, slots=True)
class RoleChanged:
    role: str
    old_holder: Optional[str]
    new_holder: Optional[str]
