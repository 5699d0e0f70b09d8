"""
pool.py - LendingPool: the stateful public surface of the lending pool

LendingPool is the only entry point that mutates pool state. It composes:

    - MarketBook: per-market cash/borrow/share state and interest accrual
    - AccountRegistry: entered markets, extensions, credit limits, check status
    - LiquidityEngine: solvency valuation and the deferred check protocol
    - TokenBank: custody of underlying tokens (the pool's wallet is `address`)

Every public operation first accrues the markets it touches, mutates state,
updates market membership, and - unless the check is deferred - verifies
solvency before returning.

Execution model:
    - Atomic: each public mutation snapshots pool and token state and
      restores it if anything raises. Events of a reverted call are dropped.
    - Non-reentrant: supply, borrow, redeem, repay, liquidate, share
      transfers and reserve operations reject reentry (e.g. from a token
      receive hook).
    - defer_liquidity_check is the one bounded exception: it may be entered
      while no guarded operation is running, and runs a caller callback in
      which guarded operations are allowed again.

Caller identity is the explicit `sender` argument (defaulting to the acting
account). A sender may act for an account if it is the account or one of its
allowed extensions.

Thread Safety:
    Not thread-safe. Each thread should maintain its own LendingPool.
"""

from __future__ import annotations
import functools
import logging
from dataclasses import fields
from typing import Any, Dict, List, Optional, Tuple

from .core import (
    WAD, MAX,
    Market, MarketConfig, PauseFlags, PriceOracle, LiquidityCheckStatus,
    Unauthorized, MarketPaused, CapExceeded,
    CreditLimitExceeded, NotLiquidatable, ProtocolMisuse, ReentrancyError,
    SelfLiquidation, ZeroAmount, CreditAccountRestricted, InvalidConfiguration,
)
from .accounts import AccountRegistry
from .events import (
    Supplied, Borrowed, Redeemed, Repaid, Liquidated, SharesTransferred,
    ReservesIncreased, ReservesDecreased, MarketListed, MarketDelisted,
    MarketConfigured, CreditLimitChanged, ExtensionChanged, RoleChanged,
)
from .liquidity import LiquidityEngine
from .markets import MarketBook
from .token_bank import TokenBank


logger = logging.getLogger(__name__)


# ============================================================================
# DECORATORS
# ============================================================================

def atomic(method):
    """Restore pool and token state if `method` raises."""
    @functools.wraps(method)
    def wrapper(self: LendingPool, *args, **kwargs):
        snap = self._snapshot()
        try:
            return method(self, *args, **kwargs)
        except Exception as exc:
            self._restore(snap)
            logger.info("%s reverted: %s: %s", method.__name__, type(exc).__name__, exc)
            raise
    return wrapper


def non_reentrant(method):
    """Reject calls made while another guarded operation is running."""
    @functools.wraps(method)
    def wrapper(self: LendingPool, *args, **kwargs):
        if self._locked:
            raise ReentrancyError(f"reentrant call to {method.__name__}")
        self._locked = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._locked = False
    return wrapper


# ============================================================================
# LENDING POOL
# ============================================================================

class LendingPool:
    """
    Collateralized lending pool ledger and risk engine.

    Example:
        bank = TokenBank()
        bank.register_asset("USDC", decimals=6)
        pool = LendingPool(bank, oracle, owner="admin")
        pool.list_market("USDC", config, sender="admin")

        bank.mint("alice", "USDC", 1_000 * 10**6)
        pool.supply("alice", "alice", "USDC", 1_000 * 10**6)
        pool.skip(86_400)
        pool.redeem("alice", "alice", "USDC", MAX)
    """

    def __init__(
        self,
        bank: TokenBank,
        oracle: PriceOracle,
        owner: str,
        address: str = "pool",
        initial_time: int = 0,
    ):
        """
        Create a pool.

        Args:
            bank: Token custody ledger shared with the pool's users.
            oracle: Price oracle used for every valuation.
            owner: Holder of the owner role; also the initial holder of the
                market configurator, credit limit manager and reserve
                manager roles.
            address: Wallet in `bank` where the pool keeps its tokens.
            initial_time: Starting time in seconds.
        """
        self.bank = bank
        self.address = address
        self.owner = owner
        self.market_configurator = owner
        self.credit_limit_manager = owner
        self.reserve_manager = owner
        self.oracle = oracle
        self.event_log: List[Any] = []
        self._current_time = initial_time
        self._locked = False

        self.markets = MarketBook(emit=self._emit)
        self.accounts = AccountRegistry(emit=self._emit)
        self.liquidity = LiquidityEngine(
            self.markets, self.accounts,
            oracle=lambda: self.oracle,
            clock=lambda: self._current_time,
        )

    # ========================================================================
    # TIME
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current pool time in seconds."""
        return self._current_time

    def advance_time(self, new_time: int) -> None:
        """
        Move the clock forward to `new_time`.

        Raises:
            ValueError: If new_time is before the current time.
        """
        if new_time < self._current_time:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._current_time}")
        self._current_time = new_time

    def skip(self, seconds: int) -> None:
        self.advance_time(self._current_time + seconds)

    # ========================================================================
    # INTERNAL HELPERS
    # ========================================================================

    def _emit(self, event: Any) -> None:
        self.event_log.append(event)

    def _snapshot(self) -> Dict[str, Any]:
        return {
            'markets': self.markets.snapshot(),
            'accounts': self.accounts.snapshot(),
            'bank': self.bank.snapshot(),
            'events': len(self.event_log),
            'roles': (self.owner, self.market_configurator,
                      self.credit_limit_manager, self.reserve_manager, self.oracle),
        }

    def _restore(self, snap: Dict[str, Any]) -> None:
        self.markets.restore(snap['markets'])
        self.accounts.restore(snap['accounts'])
        self.bank.restore(snap['bank'])
        del self.event_log[snap['events']:]
        (self.owner, self.market_configurator, self.credit_limit_manager,
         self.reserve_manager, self.oracle) = snap['roles']

    def _require_authorized(self, account: str, sender: Optional[str]) -> str:
        sender = account if sender is None else sender
        if not self.accounts.is_authorized(account, sender):
            raise Unauthorized(f"{sender} may not act for {account}")
        return sender

    def _require_non_negative(self, amount: int, what: str) -> None:
        if amount < 0:
            raise ProtocolMisuse(f"negative {what}: {amount}")

    def _require_role(self, holder: Optional[str], sender: str, role: str) -> None:
        if sender != holder:
            raise Unauthorized(f"{sender} is not the {role}")

    def _accrue(self, market: str) -> None:
        self.markets.accrue(market, self._current_time)

    def _exit_if_empty(self, market: str, user: str) -> None:
        if (self.markets.supply_shares(market, user) == 0
                and self.markets.borrow_balance(market, user) == 0):
            self.accounts.exit_market(user, market)

    # ========================================================================
    # INTEREST
    # ========================================================================

    @atomic
    def accrue_interest(self, market: str) -> None:
        """Accrue interest on a listed market up to the current time."""
        self.markets.get_listed(market)
        self._accrue(market)

    # ========================================================================
    # SUPPLY / REDEEM
    # ========================================================================

    @atomic
    @non_reentrant
    def supply(self, from_: str, to: str, market: str, amount: int,
               sender: Optional[str] = None) -> int:
        """
        Deposit `amount` of underlying from `from_`, crediting shares to `to`.

        Returns:
            Shares minted (rounded down).

        Raises:
            MarketNotListed, MarketPaused, CreditAccountRestricted,
            CapExceeded, InsufficientFunds, ProtocolMisuse
        """
        self._require_non_negative(amount, "supply amount")
        self._require_authorized(from_, sender)
        config = self.markets.get_listed(market).config
        if config.is_supply_paused:
            raise MarketPaused(f"supply paused for {market}")
        if self.accounts.is_credit_account(to):
            raise CreditAccountRestricted(f"cannot supply to credit account {to}")

        self._accrue(market)
        m = self.markets.get(market)
        exchange_rate = self.markets.exchange_rate(market)
        if config.supply_cap != 0:
            total_supply_underlying = m.total_supply * exchange_rate // WAD
            if total_supply_underlying + amount > config.supply_cap:
                raise CapExceeded(f"supply cap reached for {market}")

        shares = amount * WAD // exchange_rate
        self.markets.mint_shares(market, to, amount, shares)
        if amount > 0:
            self.accounts.enter_market(to, market)

        self.bank.transfer(market, from_, self.address, amount)
        self._emit(Supplied(market, from_, to, amount, shares))
        logger.debug("supply %s: %s -> %s amount=%d shares=%d", market, from_, to, amount, shares)
        return shares

    @atomic
    @non_reentrant
    def redeem(self, from_: str, to: str, market: str, amount: int,
               sender: Optional[str] = None) -> int:
        """
        Burn `from_`'s shares worth `amount` and send the underlying to `to`.

        `amount == MAX` redeems the entire share balance. Solvency of
        `from_` is always checked afterward.

        Returns:
            Underlying amount redeemed.

        Raises:
            MarketNotListed, InsufficientBalance, InsufficientCash,
            InsufficientCollateral, ProtocolMisuse
        """
        self._require_non_negative(amount, "redeem amount")
        self._require_authorized(from_, sender)
        self.markets.get_listed(market)
        self._accrue(market)

        if amount == MAX:
            shares = self.markets.supply_shares(market, from_)
            amount = self.markets.to_underlying(market, shares)
        else:
            shares = self.markets.to_shares_up(market, amount)

        self.markets.burn_shares(market, from_, amount, shares)
        self._exit_if_empty(market, from_)

        self.bank.transfer(market, self.address, to, amount)
        self.liquidity.check(from_)
        self._emit(Redeemed(market, from_, to, amount, shares))
        logger.debug("redeem %s: %s -> %s amount=%d shares=%d", market, from_, to, amount, shares)
        return amount

    # ========================================================================
    # BORROW / REPAY
    # ========================================================================

    @atomic
    @non_reentrant
    def borrow(self, from_: str, to: str, market: str, amount: int,
               sender: Optional[str] = None) -> None:
        """
        Borrow `amount` against `from_`'s collateral and send it to `to`.

        Credit accounts borrow against their credit limit instead of
        collateral and may only borrow to themselves.

        Raises:
            MarketNotListed, MarketPaused, InsufficientCash, CapExceeded,
            CreditAccountRestricted, CreditLimitExceeded, InsufficientCollateral,
            ProtocolMisuse
        """
        self._require_non_negative(amount, "borrow amount")
        self._require_authorized(from_, sender)
        config = self.markets.get_listed(market).config
        if config.is_borrow_paused:
            raise MarketPaused(f"borrow paused for {market}")

        self._accrue(market)
        new_total_borrow = self.markets.projected_total_borrow(market, amount)
        if config.borrow_cap != 0 and new_total_borrow > config.borrow_cap:
            raise CapExceeded(f"borrow cap reached for {market}")

        account_borrow, total_borrow = self.markets.record_borrow(market, from_, amount)
        self.accounts.enter_market(from_, market)
        self.bank.transfer(market, self.address, to, amount)

        if self.accounts.is_credit_account(from_):
            if from_ != to:
                raise CreditAccountRestricted("credit account can only borrow to itself")
            limit = self.accounts.credit_limit(from_, market)
            if account_borrow > limit:
                raise CreditLimitExceeded(
                    f"{from_} borrow {account_borrow} exceeds credit limit {limit} in {market}"
                )
        else:
            self.liquidity.check(from_)

        self._emit(Borrowed(market, from_, to, amount, account_borrow, total_borrow))
        logger.debug("borrow %s: %s -> %s amount=%d debt=%d", market, from_, to, amount, account_borrow)

    @atomic
    @non_reentrant
    def repay(self, from_: str, to: str, market: str, amount: int,
              sender: Optional[str] = None) -> int:
        """
        Repay `to`'s debt with underlying from `from_`.

        `amount == MAX` repays the entire current debt; repaying with no
        debt outstanding is a no-op.

        Returns:
            Underlying amount repaid.

        Raises:
            MarketNotListed, CreditAccountRestricted, RepayTooMuch, InsufficientFunds,
            ProtocolMisuse
        """
        self._require_non_negative(amount, "repay amount")
        self._require_authorized(from_, sender)
        self.markets.get_listed(market)
        if self.accounts.is_credit_account(to) and from_ != to:
            raise CreditAccountRestricted("credit account can only repay for itself")

        self._accrue(market)
        return self._repay(from_, to, market, amount)

    def _repay(self, from_: str, to: str, market: str, amount: int) -> int:
        if amount == MAX:
            amount = self.markets.borrow_balance(market, to)

        account_borrow, total_borrow = self.markets.record_repay(market, to, amount)
        self._exit_if_empty(market, to)
        self.bank.transfer(market, from_, self.address, amount)

        self._emit(Repaid(market, from_, to, amount, account_borrow, total_borrow))
        logger.debug("repay %s: %s -> %s amount=%d debt=%d", market, from_, to, amount, account_borrow)
        return amount

    # ========================================================================
    # SHARE TRANSFERS
    # ========================================================================

    @atomic
    @non_reentrant
    def transfer_shares(self, market: str, from_: str, to: str, shares: int,
                        sender: Optional[str] = None) -> None:
        """
        Move supply shares between accounts; `from_` must stay solvent.

        Raises:
            MarketNotListed, MarketPaused, ZeroAmount, ProtocolMisuse,
            CreditAccountRestricted, InsufficientBalance, InsufficientCollateral
        """
        self._require_authorized(from_, sender)
        config = self.markets.get_listed(market).config
        if config.is_transfer_paused:
            raise MarketPaused(f"transfer paused for {market}")
        if from_ == to:
            raise ProtocolMisuse("cannot self transfer")
        if self.accounts.is_credit_account(to):
            raise CreditAccountRestricted(f"cannot transfer to credit account {to}")

        self._accrue(market)
        self._move_shares(market, from_, to, shares)
        self.liquidity.check(from_)

    def _move_shares(self, market: str, from_: str, to: str, shares: int) -> None:
        self._require_non_negative(shares, "share amount")
        if shares == 0:
            raise ZeroAmount(f"zero share transfer in {market}")
        self.markets.move_shares(market, from_, to, shares)
        self._exit_if_empty(market, from_)
        self.accounts.enter_market(to, market)
        self._emit(SharesTransferred(market, from_, to, shares))

    # ========================================================================
    # LIQUIDATION
    # ========================================================================

    @atomic
    @non_reentrant
    def liquidate(self, liquidator: str, borrower: str, market_borrow: str,
                  market_collateral: str, repay_amount: int,
                  sender: Optional[str] = None) -> Tuple[int, int]:
        """
        Repay part of an under-water borrower's debt and seize collateral shares.

        `repay_amount == MAX` repays the borrower's entire debt in
        `market_borrow`. The borrower's solvency is not re-checked.

        Returns:
            (repay_amount, seized_shares)

        Raises:
            MarketNotListed, MarketPaused, CreditAccountRestricted,
            SelfLiquidation, NotLiquidatable, RepayTooMuch, ZeroAmount,
            InsufficientBalance, InvalidPrice, ProtocolMisuse
        """
        self._require_non_negative(repay_amount, "repay amount")
        self._require_authorized(liquidator, sender)
        self.markets.get_listed(market_borrow)
        collateral_config = self.markets.get_listed(market_collateral).config
        if not collateral_config.is_seizable:
            raise MarketPaused(f"collateral market {market_collateral} cannot be seized")
        if self.accounts.is_credit_account(borrower):
            raise CreditAccountRestricted(f"cannot liquidate credit account {borrower}")
        if self.accounts.is_credit_account(liquidator):
            raise CreditAccountRestricted(f"credit account {liquidator} cannot liquidate")
        if liquidator == borrower:
            raise SelfLiquidation("cannot self liquidate")

        self._accrue(market_borrow)
        self._accrue(market_collateral)
        self.liquidity.refresh(borrower)
        if not self.liquidity.is_liquidatable(borrower):
            raise NotLiquidatable(f"{borrower} is not liquidatable")

        repay_amount = self._repay(liquidator, borrower, market_borrow, repay_amount)
        seized = self.liquidity.liquidation_seize_amount(
            market_borrow, market_collateral, repay_amount)
        self._move_shares(market_collateral, borrower, liquidator, seized)

        self._emit(Liquidated(liquidator, borrower, market_borrow, market_collateral,
                              repay_amount, seized))
        logger.info("liquidate %s by %s: repaid %d %s, seized %d %s shares",
                    borrower, liquidator, repay_amount, market_borrow, seized, market_collateral)
        return repay_amount, seized

    # ========================================================================
    # DEFERRED LIQUIDITY CHECK
    # ========================================================================

    @atomic
    def defer_liquidity_check(self, user: str, handler: Any, data: Any = None,
                              sender: Optional[str] = None) -> None:
        """
        Run `handler` with `user`'s solvency checks batched into one final check.

        `handler` is an object implementing on_deferred_liquidity_check(data)
        or a plain callable taking `data`. Operations inside the handler that
        would check `user`'s solvency only mark the check as pending; it runs
        once after the handler returns. Deferring again for the same user
        inside the handler fails; deferring for another user is allowed.

        Raises:
            Unauthorized, ProtocolMisuse, CreditAccountRestricted,
            ReentrancyError, InsufficientCollateral
        """
        self._require_authorized(user, sender)
        callback = getattr(handler, "on_deferred_liquidity_check", None)
        if callback is None:
            if not callable(handler):
                raise ProtocolMisuse("handler must implement on_deferred_liquidity_check")
            callback = handler

        self.liquidity.defer(user, lambda: callback(data))

    # ========================================================================
    # EXTENSIONS
    # ========================================================================

    @atomic
    def set_user_extension(self, user: str, extension: str, allowed: bool,
                           sender: Optional[str] = None) -> None:
        """Allow or revoke an operator acting on `user`'s behalf. Only the user may do this."""
        sender = user if sender is None else sender
        if sender != user:
            raise Unauthorized(f"{sender} may not change extensions of {user}")
        if self.accounts.set_extension(user, extension, allowed):
            self._emit(ExtensionChanged(user, extension, allowed))

    def get_user_extensions(self, user: str) -> List[str]:
        return self.accounts.extensions(user)

    # ========================================================================
    # RESERVES
    # ========================================================================

    @atomic
    @non_reentrant
    def absorb_to_reserves(self, market: str, sender: Optional[str] = None) -> int:
        """
        Book tokens held by the pool beyond a market's cash as reserves.

        Returns:
            Reserve shares added.
        """
        self._require_role(self.reserve_manager, sender, "reserve manager")
        self.markets.get_listed(market)
        self._accrue(market)

        excess = self.bank.balance_of(self.address, market) - self.markets.get(market).total_cash
        if excess <= 0:
            return 0
        shares = self.markets.to_shares(market, excess)
        self.markets.add_reserves(market, excess, shares)
        total_reserves = self.markets.get(market).total_reserves
        self._emit(ReservesIncreased(market, excess, shares, total_reserves))
        logger.info("absorbed %d %s into reserves (%d shares)", excess, market, shares)
        return shares

    @atomic
    @non_reentrant
    def reduce_reserves(self, market: str, shares: int, recipient: str,
                        sender: Optional[str] = None) -> int:
        """
        Withdraw reserve shares as underlying at the current exchange rate.

        Returns:
            Underlying amount sent to `recipient`.

        Raises:
            Unauthorized, MarketNotListed, InsufficientCash, InsufficientReserves,
            ProtocolMisuse
        """
        self._require_non_negative(shares, "reserve shares")
        self._require_role(self.reserve_manager, sender, "reserve manager")
        self.markets.get_listed(market)
        self._accrue(market)

        amount = self.markets.to_underlying(market, shares)
        self.markets.remove_reserves(market, amount, shares)
        self.bank.transfer(market, self.address, recipient, amount)
        total_reserves = self.markets.get(market).total_reserves
        self._emit(ReservesDecreased(market, recipient, amount, shares, total_reserves))
        logger.info("reduced %s reserves by %d shares (%d underlying) to %s",
                    market, shares, amount, recipient)
        return amount

    # ========================================================================
    # ADMIN
    # ========================================================================

    def _set_role(self, attr: str, role: str, new_holder: str, sender: str) -> None:
        self._require_role(self.owner, sender, "owner")
        old_holder = getattr(self, attr)
        setattr(self, attr, new_holder)
        self._emit(RoleChanged(role, old_holder, new_holder))
        logger.info("%s changed: %s -> %s", role, old_holder, new_holder)

    @atomic
    def transfer_ownership(self, new_owner: str, sender: str) -> None:
        self._set_role("owner", "owner", new_owner, sender)

    @atomic
    def set_market_configurator(self, holder: str, sender: str) -> None:
        self._set_role("market_configurator", "market configurator", holder, sender)

    @atomic
    def set_credit_limit_manager(self, holder: str, sender: str) -> None:
        self._set_role("credit_limit_manager", "credit limit manager", holder, sender)

    @atomic
    def set_reserve_manager(self, holder: str, sender: str) -> None:
        self._set_role("reserve_manager", "reserve manager", holder, sender)

    @atomic
    def set_price_oracle(self, oracle: PriceOracle, sender: str) -> None:
        self._require_role(self.owner, sender, "owner")
        self.oracle = oracle
        logger.info("price oracle changed to %r", oracle)

    @atomic
    def list_market(self, market: str, config: MarketConfig, sender: str) -> None:
        """
        List `market` with `config`.

        Raises:
            Unauthorized, InvalidConfiguration, MarketAlreadyListed
        """
        self._require_role(self.market_configurator, sender, "market configurator")
        if not self.bank.is_registered(market):
            raise InvalidConfiguration(f"underlying {market} not registered with the token bank")
        self.markets.list_market(market, config, self._current_time)
        self._emit(MarketListed(market))
        logger.info("listed market %s", market)

    @atomic
    def delist_market(self, market: str, sender: str) -> None:
        self._require_role(self.market_configurator, sender, "market configurator")
        self.markets.delist_market(market)
        self._emit(MarketDelisted(market))
        logger.info("delisted market %s", market)

    @atomic
    def set_market_configuration(self, market: str, config: MarketConfig, sender: str) -> None:
        """Replace a listed market's configuration, accruing under the old one first."""
        self._require_role(self.market_configurator, sender, "market configurator")
        self.markets.get_listed(market)
        self._accrue(market)
        old = self.markets.configure(market, config)
        new = self.markets.get(market).config
        changed = tuple(f.name for f in fields(MarketConfig)
                        if getattr(old, f.name) != getattr(new, f.name))
        self._emit(MarketConfigured(market, changed))
        logger.info("configured market %s: %s", market, ", ".join(changed) or "no changes")

    def set_market_pause(self, market: str, flag: PauseFlags, paused: bool, sender: str) -> None:
        """Pause or unpause an action on a listed market."""
        config = self.markets.get_listed(market).config.with_pause(flag, paused)
        self.set_market_configuration(market, config, sender)

    @atomic
    def set_credit_limit(self, user: str, market: str, limit: int, sender: str) -> None:
        """
        Grant, change or clear `user`'s credit limit in `market`.

        The first limit may only be granted to an account with no open
        positions; a limit may only be cleared once its debt is repaid.

        Raises:
            Unauthorized, MarketNotListed, CreditAccountRestricted
        """
        self._require_role(self.credit_limit_manager, sender, "credit limit manager")
        self.markets.get_listed(market)
        if limit < 0:
            raise InvalidConfiguration("credit limit cannot be negative")

        old = self.accounts.credit_limit(user, market)
        if limit > 0 and not self.accounts.is_credit_account(user):
            if self.accounts.entered_markets(user):
                raise CreditAccountRestricted(
                    f"{user} has open positions and cannot become a credit account")
        if limit == 0 and old > 0:
            self._accrue(market)
            if self.markets.borrow_balance(market, user) > 0:
                raise CreditAccountRestricted(f"{user} debt in {market} not repaid")

        self.accounts.set_credit_limit(user, market, limit)
        self._emit(CreditLimitChanged(user, market, old, limit))
        logger.info("credit limit %s/%s: %d -> %d", user, market, old, limit)

    # ========================================================================
    # VIEWS
    # ========================================================================

    def get_market(self, market: str) -> Market:
        """Return a copy of the market's state."""
        return self.markets.copy(market)

    def get_market_configuration(self, market: str) -> MarketConfig:
        return self.markets.get(market).config

    def get_all_markets(self) -> List[str]:
        return self.markets.listed_assets()

    def is_market_listed(self, market: str) -> bool:
        return self.markets.is_listed(market)

    def get_exchange_rate(self, market: str) -> int:
        return self.markets.exchange_rate(market)

    def get_utilization(self, market: str) -> int:
        m = self.markets.get(market)
        if m.total_borrow == 0:
            return 0
        return m.total_borrow * WAD // (m.total_cash + m.total_borrow)

    def get_borrow_rate(self, market: str) -> int:
        """Per-second borrow rate (WAD) at the market's current cash and borrow."""
        m = self.markets.get(market)
        return m.config.rate_model.get_borrow_rate(m.total_cash, m.total_borrow)

    def get_supply_rate(self, market: str) -> int:
        m = self.markets.get(market)
        return m.config.rate_model.get_supply_rate(m.total_cash, m.total_borrow)

    def get_supply_shares(self, user: str, market: str) -> int:
        return self.markets.supply_shares(market, user)

    def get_supply_balance(self, user: str, market: str) -> int:
        """Underlying value of `user`'s shares at the last-accrued exchange rate."""
        return self.markets.supply_underlying(market, user)

    def get_borrow_balance(self, user: str, market: str) -> int:
        return self.markets.borrow_balance(market, user)

    def get_total_supply(self, market: str) -> int:
        return self.markets.get(market).total_supply

    def get_total_borrow(self, market: str) -> int:
        return self.markets.get(market).total_borrow

    def get_total_cash(self, market: str) -> int:
        return self.markets.get(market).total_cash

    def get_total_reserves(self, market: str) -> int:
        return self.markets.get(market).total_reserves

    def get_user_entered_markets(self, user: str) -> List[str]:
        return self.accounts.entered_markets(user)

    def get_credit_limit(self, user: str, market: str) -> int:
        return self.accounts.credit_limit(user, market)

    def is_credit_account(self, user: str) -> bool:
        return self.accounts.is_credit_account(user)

    def get_liquidity_check_status(self, user: str) -> LiquidityCheckStatus:
        return self.accounts.check_status(user)

    def get_account_liquidity(self, user: str) -> Tuple[int, int]:
        """(collateral_value, debt_value) in WAD USD at last-accrued values."""
        return self.liquidity.account_liquidity(user)

    def is_user_liquidatable(self, user: str) -> bool:
        return self.liquidity.is_liquidatable(user)

    def calculate_liquidation_opportunity(self, market_borrow: str, market_collateral: str,
                                          repay_amount: int) -> int:
        """Collateral shares a liquidator would seize for repaying `repay_amount`."""
        return self.liquidity.liquidation_seize_amount(market_borrow, market_collateral, repay_amount)

    def __repr__(self):
        return (f"LendingPool({len(self.get_all_markets())} markets, "
                f"t={self._current_time}, {len(self.event_log)} events)")
