"""
views.py - Receipt and debt token views over the pool ledger

Token-like read-through adapters. They hold no balances of their own: every
query is answered from the LendingPool, and share transfers are forwarded to
LendingPool.transfer_shares. Both implement the BalanceView protocol.
"""

from __future__ import annotations
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .pool import LendingPool


class SupplyTokenView:
    """Receipt token: balances are supply shares of one market."""

    def __init__(self, pool: LendingPool, market: str, name: Optional[str] = None):
        self.pool = pool
        self.market = market
        self.name = name or f"s{market}"

    def balance_of(self, user: str) -> int:
        return self.pool.get_supply_shares(user, self.market)

    def balance_of_underlying(self, user: str) -> int:
        return self.pool.get_supply_balance(user, self.market)

    def total_supply(self) -> int:
        """Shares held by suppliers plus reserve shares."""
        return self.pool.get_total_supply(self.market) + self.pool.get_total_reserves(self.market)

    def transfer(self, from_: str, to: str, shares: int, sender: Optional[str] = None) -> None:
        self.pool.transfer_shares(self.market, from_, to, shares, sender=sender)

    def __repr__(self):
        return f"SupplyTokenView({self.name})"


class DebtTokenView:
    """Debt token: balances are index-adjusted borrow balances of one market."""

    def __init__(self, pool: LendingPool, market: str, name: Optional[str] = None):
        self.pool = pool
        self.market = market
        self.name = name or f"d{market}"

    def balance_of(self, user: str) -> int:
        return self.pool.get_borrow_balance(user, self.market)

    def total_supply(self) -> int:
        return self.pool.get_total_borrow(self.market)

    def __repr__(self):
        return f"DebtTokenView({self.name})"


def token_views(pool: LendingPool, market: str) -> tuple:
    """Build (SupplyTokenView, DebtTokenView) named after the market's configuration."""
    config = pool.get_market_configuration(market)
    return (
        SupplyTokenView(pool, market, config.supply_token),
        DebtTokenView(pool, market, config.debt_token),
    )
