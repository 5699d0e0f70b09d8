"""
markets.py - Market ledger: per-asset pool state and interest accrual

The MarketBook is an arena of Market records keyed by underlying asset. It is
the only module that mutates market state; the pool calls its owning methods
and never touches Market fields directly.

Accrual (per market, per elapsed interval):

    rate              = rate_model.get_borrow_rate(cash, borrow)
    interest_factor   = rate * elapsed
    interest_increase = interest_factor * borrow / WAD
    fee_increase      = interest_increase * reserve_factor / FACTOR_SCALE
    reserves_increase = fee_increase * (supply + reserves)
                        / (cash + borrow + interest_increase - fee_increase)
    borrow_index     += interest_factor * borrow_index / WAD
    borrow           += interest_increase
    reserves         += reserves_increase

The fee is converted to shares against the post-interest pool value net of
the fee, so the new exchange rate counts the interest exactly once.

Exchange rate:

    rate = (cash + borrow) * WAD / (supply + reserves)

or the market's initial exchange rate while no shares exist.
"""

from __future__ import annotations
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from .core import (
    WAD, FACTOR_SCALE,
    Market, MarketConfig, UserBorrow,
    MarketNotListed, MarketAlreadyListed,
    InsufficientBalance, InsufficientCash, InsufficientReserves, RepayTooMuch,
)
from .events import InterestAccrued


logger = logging.getLogger(__name__)

EventSink = Callable[[Any], None]


class MarketBook:
    """
    Arena of markets keyed by underlying asset.

    All mutation goes through methods on this class. Callers are responsible
    for calling accrue() before any mutation or valuation that reads cash,
    borrow or share totals.
    """

    def __init__(self, emit: Optional[EventSink] = None):
        self._markets: Dict[str, Market] = {}
        self._order: List[str] = []
        self._emit = emit or (lambda event: None)

    # ========================================================================
    # LISTING AND CONFIGURATION
    # ========================================================================

    def list_market(self, asset: str, config: MarketConfig, now: int) -> Market:
        """
        List a new market, or relist a delisted one keeping its state.

        Raises:
            MarketAlreadyListed: If the market is currently listed.
        """
        market = self._markets.get(asset)
        if market is not None:
            if market.config.is_listed:
                raise MarketAlreadyListed(f"Market {asset} already listed")
            market.config = replace(config, is_listed=True)
            return market
        market = Market(config=replace(config, is_listed=True), last_update=now)
        self._markets[asset] = market
        self._order.append(asset)
        return market

    def delist_market(self, asset: str) -> None:
        market = self.get_listed(asset)
        market.config = replace(market.config, is_listed=False)

    def configure(self, asset: str, config: MarketConfig) -> MarketConfig:
        """Replace a listed market's configuration, returning the old one."""
        market = self.get_listed(asset)
        old = market.config
        market.config = replace(config, is_listed=True)
        return old

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def __contains__(self, asset: str) -> bool:
        return asset in self._markets

    def get(self, asset: str) -> Market:
        """
        Return the market record for `asset`, listed or not.

        Raises:
            MarketNotListed: If the market was never listed.
        """
        market = self._markets.get(asset)
        if market is None:
            raise MarketNotListed(f"Market {asset} not listed")
        return market

    def get_listed(self, asset: str) -> Market:
        market = self.get(asset)
        if not market.config.is_listed:
            raise MarketNotListed(f"Market {asset} not listed")
        return market

    def is_listed(self, asset: str) -> bool:
        market = self._markets.get(asset)
        return market is not None and market.config.is_listed

    def listed_assets(self) -> List[str]:
        return [a for a in self._order if self._markets[a].config.is_listed]

    # ========================================================================
    # ACCRUAL
    # ========================================================================

    def accrue(self, asset: str, now: int) -> None:
        """
        Accrue interest on `asset` up to `now`.

        No-op when no time has elapsed, so repeated calls at the same
        timestamp are idempotent.
        """
        m = self.get(asset)
        elapsed = now - m.last_update
        if elapsed <= 0:
            return

        borrow_rate = m.config.rate_model.get_borrow_rate(m.total_cash, m.total_borrow)
        interest_factor = borrow_rate * elapsed
        interest_increase = interest_factor * m.total_borrow // WAD
        fee_increase = interest_increase * m.config.reserve_factor // FACTOR_SCALE

        reserves_increase = 0
        if fee_increase > 0:
            reserves_increase = (
                fee_increase * (m.total_supply + m.total_reserves)
                // (m.total_cash + m.total_borrow + interest_increase - fee_increase)
            )

        m.borrow_index += interest_factor * m.borrow_index // WAD
        m.total_borrow += interest_increase
        m.total_reserves += reserves_increase
        m.last_update = now

        logger.debug("accrue %s: elapsed=%d rate=%d interest=%d reserves+=%d",
                     asset, elapsed, borrow_rate, interest_increase, reserves_increase)
        self._emit(InterestAccrued(asset, now, borrow_rate, m.borrow_index,
                                   m.total_borrow, m.total_reserves))

    # ========================================================================
    # CONVERSIONS
    # ========================================================================

    def exchange_rate(self, asset: str) -> int:
        """Underlying per share, WAD-scaled."""
        m = self.get(asset)
        total_shares = m.total_supply + m.total_reserves
        if total_shares > 0:
            return (m.total_cash + m.total_borrow) * WAD // total_shares
        return m.config.initial_exchange_rate

    def to_shares(self, asset: str, amount: int) -> int:
        return amount * WAD // self.exchange_rate(asset)

    def to_shares_up(self, asset: str, amount: int) -> int:
        """Shares needed to withdraw `amount`, rounded up."""
        return -(-amount * WAD // self.exchange_rate(asset))

    def to_underlying(self, asset: str, shares: int) -> int:
        return shares * self.exchange_rate(asset) // WAD

    def supply_shares(self, asset: str, user: str) -> int:
        return self.get(asset).supplies.get(user, 0)

    def supply_underlying(self, asset: str, user: str) -> int:
        return self.to_underlying(asset, self.supply_shares(asset, user))

    def borrow_balance(self, asset: str, user: str) -> int:
        """Current debt of `user`: snapshot scaled by the index growth since the snapshot."""
        m = self.get(asset)
        snapshot = m.borrows.get(user)
        if snapshot is None or snapshot.borrow_balance == 0:
            return 0
        return snapshot.borrow_balance * m.borrow_index // snapshot.borrow_index

    # ========================================================================
    # OWNING MUTATORS
    # ========================================================================

    def mint_shares(self, asset: str, user: str, amount: int, shares: int) -> None:
        """Record a deposit: `amount` of cash in, `shares` minted to `user`."""
        m = self.get(asset)
        m.total_cash += amount
        m.total_supply += shares
        m.supplies[user] = m.supplies.get(user, 0) + shares

    def burn_shares(self, asset: str, user: str, amount: int, shares: int) -> None:
        """
        Record a withdrawal: `shares` burned from `user`, `amount` of cash out.

        Raises:
            InsufficientBalance: If the user holds fewer shares.
            InsufficientCash: If the market holds less cash.
        """
        m = self.get(asset)
        held = m.supplies.get(user, 0)
        if held < shares:
            raise InsufficientBalance(f"{user} holds {held} {asset} shares < {shares}")
        if m.total_cash < amount:
            raise InsufficientCash(f"{asset} cash {m.total_cash} < {amount}")
        m.supplies[user] = held - shares
        m.total_cash -= amount
        m.total_supply -= shares

    def move_shares(self, asset: str, source: str, dest: str, shares: int) -> None:
        """
        Move supply shares between users.

        Raises:
            ValueError: If shares is negative.
            InsufficientBalance: If source holds fewer shares.
        """
        if shares < 0:
            raise ValueError(f"Share amount must be non-negative, got {shares}")
        m = self.get(asset)
        held = m.supplies.get(source, 0)
        if held < shares:
            raise InsufficientBalance(f"{source} holds {held} {asset} shares < {shares}")
        m.supplies[source] = held - shares
        m.supplies[dest] = m.supplies.get(dest, 0) + shares

    def record_borrow(self, asset: str, user: str, amount: int) -> tuple:
        """
        Record a new borrow of `amount` by `user`.

        Returns:
            (new_user_borrow, new_total_borrow)

        Raises:
            InsufficientCash: If the market holds less cash than `amount`.
        """
        m = self.get(asset)
        if m.total_cash < amount:
            raise InsufficientCash(f"{asset} cash {m.total_cash} < {amount}")
        new_user_borrow = self.borrow_balance(asset, user) + amount
        m.borrows[user] = UserBorrow(new_user_borrow, m.borrow_index)
        m.total_cash -= amount
        m.total_borrow += amount
        return new_user_borrow, m.total_borrow

    def projected_total_borrow(self, asset: str, amount: int) -> int:
        return self.get(asset).total_borrow + amount

    def record_repay(self, asset: str, user: str, amount: int) -> tuple:
        """
        Record a repayment of `amount` against `user`'s debt.

        Total borrow is floored at zero: rounding can leave the sum of user
        debts a few wei above the market total.

        Returns:
            (new_user_borrow, new_total_borrow)

        Raises:
            RepayTooMuch: If amount exceeds the user's current debt.
        """
        m = self.get(asset)
        debt = self.borrow_balance(asset, user)
        if amount > debt:
            raise RepayTooMuch(f"repay {amount} exceeds {user} debt {debt} in {asset}")
        new_user_borrow = debt - amount
        if user in m.borrows or new_user_borrow:
            m.borrows[user] = UserBorrow(new_user_borrow, m.borrow_index)
        m.total_borrow = m.total_borrow - amount if m.total_borrow > amount else 0
        m.total_cash += amount
        return new_user_borrow, m.total_borrow

    def add_reserves(self, asset: str, amount: int, shares: int) -> None:
        m = self.get(asset)
        m.total_cash += amount
        m.total_reserves += shares

    def remove_reserves(self, asset: str, amount: int, shares: int) -> None:
        """
        Raises:
            InsufficientCash: If the market holds less cash than `amount`.
            InsufficientReserves: If the market holds fewer reserve shares.
        """
        m = self.get(asset)
        if m.total_cash < amount:
            raise InsufficientCash(f"{asset} cash {m.total_cash} < {amount}")
        if m.total_reserves < shares:
            raise InsufficientReserves(f"{asset} reserves {m.total_reserves} < {shares}")
        m.total_cash -= amount
        m.total_reserves -= shares

    # ========================================================================
    # SNAPSHOT / RESTORE
    # ========================================================================

    def copy(self, asset: str) -> Market:
        """Independent copy of a market record; the immutable config is shared."""
        m = self.get(asset)
        return Market(
            config=m.config,
            total_cash=m.total_cash,
            total_borrow=m.total_borrow,
            total_supply=m.total_supply,
            total_reserves=m.total_reserves,
            borrow_index=m.borrow_index,
            last_update=m.last_update,
            supplies=dict(m.supplies),
            borrows={u: UserBorrow(b.borrow_balance, b.borrow_index)
                     for u, b in m.borrows.items()},
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            'order': list(self._order),
            'markets': {asset: self.copy(asset) for asset in self._markets},
        }

    def restore(self, snap: Dict[str, Any]) -> None:
        self._order = list(snap['order'])
        self._markets = snap['markets']
