"""
Core types and constants for the lending pool.

This module provides the foundational data structures shared by every other
module in the package:
1. Fixed-point constants: WAD, FACTOR_SCALE, MAX
2. Exceptions: PoolError and the domain-specific error taxonomy
3. Market data: PauseFlags, MarketConfig, Market, UserBorrow
4. Liquidity-check status for the deferred check protocol
5. Protocols: PriceOracle, RateModel, DeferredLiquidityCheckHandler, BalanceView

All amounts are Python ints in fixed point. Rates, indices, exchange rates
and prices are scaled by WAD (1e18). Risk factors are in basis points,
scaled by FACTOR_SCALE (10_000 = 100%). Integer division truncates, so every
conversion rounds down.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum, Flag
from typing import Any, Dict, Optional, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point scale for rates, indices, exchange rates and prices.
WAD = 10 ** 18

# Basis-point scale for collateral factor, liquidation threshold/bonus and
# reserve factor.
FACTOR_SCALE = 10_000

# Sentinel meaning "everything" for redeem and repay.
MAX = 2 ** 256 - 1

# Reserved wallet for token issuance in the token bank.
SYSTEM_WALLET = "system"

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


# ============================================================================
# EXCEPTIONS
# ============================================================================

class PoolError(Exception):
    """Base exception for all lending pool errors."""
    pass


class Unauthorized(PoolError):
    """Raised when the sender may not act for an account or lacks an admin role."""
    pass


class MarketNotListed(PoolError):
    """Raised when operating on a market that is not listed."""
    pass


class MarketAlreadyListed(PoolError):
    """Raised when listing a market twice."""
    pass


class MarketPaused(PoolError):
    """Raised when the requested action is paused for a market."""
    pass


class CapExceeded(PoolError):
    """Raised when a supply or borrow would push a market over its cap."""
    pass


class InsufficientFunds(PoolError):
    """Raised when a wallet holds too few underlying tokens for a transfer."""
    pass


class InsufficientCash(PoolError):
    """Raised when a market does not hold enough cash for a borrow or redeem."""
    pass


class InsufficientBalance(PoolError):
    """Raised when an account holds too few supply shares."""
    pass


class InsufficientReserves(PoolError):
    """Raised when withdrawing more reserve shares than a market holds."""
    pass


class InsufficientCollateral(PoolError):
    """Raised when an account's debt value exceeds its collateral value."""
    pass


class NotLiquidatable(PoolError):
    """Raised when liquidating a borrower who is not under water."""
    pass


class CreditLimitExceeded(PoolError):
    """Raised when a credit account borrows past its credit limit."""
    pass


class ProtocolMisuse(PoolError):
    """Raised when the pool is called in a way its protocol forbids."""
    pass


class ReentrancyError(ProtocolMisuse):
    """Raised on reentrant calls into guarded operations or a nested defer."""
    pass


class RepayTooMuch(ProtocolMisuse):
    """Raised when repaying more than the current debt."""
    pass


class SelfLiquidation(ProtocolMisuse):
    """Raised when a liquidator tries to liquidate itself."""
    pass


class ZeroAmount(ProtocolMisuse):
    """Raised on a zero-amount share transfer or seizure."""
    pass


class CreditAccountRestricted(ProtocolMisuse):
    """Raised when a credit account attempts an action closed to it."""
    pass


class InvalidPrice(PoolError):
    """Raised when the oracle reports a non-positive price during valuation."""
    pass


class InvalidConfiguration(PoolError):
    """Raised when market or rate model parameters break their invariants."""
    pass


# ============================================================================
# PAUSE FLAGS
# ============================================================================

class PauseFlags(Flag):
    """Per-market pause bits."""
    NONE = 0
    SUPPLY = 1
    BORROW = 2
    TRANSFER = 4


# ============================================================================
# LIQUIDITY CHECK STATUS
# ============================================================================

class LiquidityCheckStatus(Enum):
    """
    Per-user state of the deferred liquidity check.

    NORMAL: operations check solvency immediately.
    DEFERRED: inside a defer window, no operation has needed a check yet.
    DIRTY: inside a defer window and at least one operation skipped its check.
    """
    NORMAL = "normal"
    DEFERRED = "deferred"
    DIRTY = "dirty"


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PriceOracle(Protocol):
    """
    Source of normalized USD prices.

    get_price returns the WAD-scaled USD value of one smallest unit of the
    asset multiplied by 1e18, so `amount * price // WAD` is a WAD-scaled USD
    value regardless of the asset's decimals. Zero means "no price".
    """

    def get_price(self, asset: str) -> int:
        ...


@runtime_checkable
class RateModel(Protocol):
    """Stateless per-second borrow rate as a function of cash and borrow."""

    def get_borrow_rate(self, cash: int, borrow: int) -> int:
        ...

    def get_supply_rate(self, cash: int, borrow: int) -> int:
        ...


@runtime_checkable
class DeferredLiquidityCheckHandler(Protocol):
    """Callback invoked by LendingPool.defer_liquidity_check."""

    def on_deferred_liquidity_check(self, data: Any) -> None:
        ...


@runtime_checkable
class BalanceView(Protocol):
    """Token-like read interface over ledger balances."""

    def balance_of(self, user: str) -> int:
        ...

    def total_supply(self) -> int:
        ...


# ============================================================================
# MARKET CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class MarketConfig:
    """
    Admin-owned risk parameters of a market - rarely mutated.

    Attributes:
        rate_model: Interest rate model used by accrual.
        initial_exchange_rate: Exchange rate used while no shares exist,
            10**decimals of the underlying.
        collateral_factor: Share of supply value counted for borrowing (bps).
        liquidation_threshold: Share of supply value counted before a
            position becomes liquidatable (bps).
        liquidation_bonus: Multiplier on seized collateral (bps, >= 100%).
        reserve_factor: Share of accrued interest diverted to reserves (bps).
        supply_cap: Maximum total supply in underlying (0 = unlimited).
        borrow_cap: Maximum total borrow in underlying (0 = unlimited).
        pause_flags: Paused actions.
        is_listed: Whether the market accepts operations.
        is_protected: Protected (wrapped) collateral that can never be borrowed.
        supply_token: Name of the receipt token view.
        debt_token: Name of the debt token view.
    """
    rate_model: RateModel
    initial_exchange_rate: int
    collateral_factor: int = 0
    liquidation_threshold: int = 0
    liquidation_bonus: int = FACTOR_SCALE
    reserve_factor: int = 0
    supply_cap: int = 0
    borrow_cap: int = 0
    pause_flags: PauseFlags = PauseFlags.NONE
    is_listed: bool = True
    is_protected: bool = False
    supply_token: Optional[str] = None
    debt_token: Optional[str] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check the risk parameter invariants.

        Raises:
            InvalidConfiguration: If any invariant is broken.
        """
        if self.initial_exchange_rate <= 0:
            raise InvalidConfiguration("initial exchange rate must be positive")
        for name in ("collateral_factor", "liquidation_threshold", "liquidation_bonus",
                     "reserve_factor", "supply_cap", "borrow_cap"):
            if getattr(self, name) < 0:
                raise InvalidConfiguration(f"{name} cannot be negative")
        if self.collateral_factor > self.liquidation_threshold:
            raise InvalidConfiguration("collateral factor exceeds liquidation threshold")
        if self.liquidation_threshold > 0 and self.liquidation_bonus < FACTOR_SCALE:
            raise InvalidConfiguration("liquidation bonus below 100%")
        if self.liquidation_threshold * self.liquidation_bonus > FACTOR_SCALE * FACTOR_SCALE:
            raise InvalidConfiguration("liquidation threshold x bonus exceeds 100%")
        if self.reserve_factor > FACTOR_SCALE:
            raise InvalidConfiguration("reserve factor exceeds 100%")
        if self.is_protected:
            if self.reserve_factor != 0:
                raise InvalidConfiguration("protected market cannot carry a reserve factor")
            if not self.is_borrow_paused:
                raise InvalidConfiguration("protected market must be borrow paused")

    @property
    def is_supply_paused(self) -> bool:
        return bool(self.pause_flags & PauseFlags.SUPPLY)

    @property
    def is_borrow_paused(self) -> bool:
        return bool(self.pause_flags & PauseFlags.BORROW)

    @property
    def is_transfer_paused(self) -> bool:
        return bool(self.pause_flags & PauseFlags.TRANSFER)

    @property
    def is_seizable(self) -> bool:
        """Collateral in this market can be seized by liquidators."""
        return not self.is_transfer_paused and self.liquidation_threshold > 0

    def with_pause(self, flag: PauseFlags, paused: bool) -> MarketConfig:
        """Return a copy with `flag` set or cleared."""
        flags = self.pause_flags | flag if paused else self.pause_flags & ~flag
        return replace(self, pause_flags=flags)


# ============================================================================
# MARKET STATE
# ============================================================================

@dataclass(slots=True)
class UserBorrow:
    """Borrow snapshot: debt at the last touch and the market index at that time."""
    borrow_balance: int = 0
    borrow_index: int = 0


@dataclass(slots=True)
class Market:
    """
    Hot per-market state, owned exclusively by the MarketBook.

    total_supply and total_reserves are in shares; total_cash and
    total_borrow are in underlying.
    """
    config: MarketConfig
    total_cash: int = 0
    total_borrow: int = 0
    total_supply: int = 0
    total_reserves: int = 0
    borrow_index: int = WAD
    last_update: int = 0
    supplies: Dict[str, int] = field(default_factory=dict)
    borrows: Dict[str, UserBorrow] = field(default_factory=dict)
