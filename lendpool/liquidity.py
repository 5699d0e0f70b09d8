"""
liquidity.py - Liquidity engine: solvency valuation and the deferred check

Two valuations walk a user's entered markets once each:

    solvency:      collateral = Σ supply_underlying * price * collateral_factor
                   debt       = Σ debt_underlying * price
                   passes when collateral >= debt

    liquidatable:  same sums with liquidation_threshold in place of
                   collateral_factor; liquidatable when debt > collateral

Both halt with InvalidPrice if any entered market prices at or below zero.

Deferred check state machine (per user):

    NORMAL --defer--> DEFERRED --[op needing check]--> DIRTY
    DIRTY    --[defer returns]--> NORMAL, then check
    DEFERRED --[defer returns]--> NORMAL, no check

Operations that would check solvency call check(); outside a defer window
the check runs immediately, inside it the status is flipped to DIRTY and the
check runs once when the window closes.
"""

from __future__ import annotations
from typing import Callable, Tuple

from .core import (
    WAD, FACTOR_SCALE,
    LiquidityCheckStatus, PriceOracle,
    InvalidPrice, InsufficientCollateral, ReentrancyError, CreditAccountRestricted,
)
from .accounts import AccountRegistry
from .markets import MarketBook


class LiquidityEngine:
    """
    Values accounts against oracle prices and runs the deferred check protocol.

    Args:
        markets: Market arena to read balances and exchange rates from.
        accounts: Registry of entered markets and check status.
        oracle: Callable returning the current PriceOracle; the oracle can be
            swapped by the pool owner at any time.
        clock: Callable returning the current pool time, used to accrue
            entered markets before a check.
    """

    def __init__(
        self,
        markets: MarketBook,
        accounts: AccountRegistry,
        oracle: Callable[[], PriceOracle],
        clock: Callable[[], int],
    ):
        self.markets = markets
        self.accounts = accounts
        self._oracle = oracle
        self._clock = clock

    # ========================================================================
    # PRICES AND VALUATION
    # ========================================================================

    def price(self, asset: str) -> int:
        """Oracle price of `asset`; raises InvalidPrice if not positive."""
        price = self._oracle().get_price(asset)
        if price is None or price <= 0:
            raise InvalidPrice(f"invalid price for {asset}: {price}")
        return price

    def _value(self, user: str, use_threshold: bool) -> Tuple[int, int]:
        collateral_value = 0
        debt_value = 0
        for asset in self.accounts.entered_markets(user):
            market = self.markets.get(asset)
            price = self.price(asset)
            factor = (market.config.liquidation_threshold if use_threshold
                      else market.config.collateral_factor)

            shares = market.supplies.get(user, 0)
            if shares > 0 and factor > 0:
                underlying = self.markets.to_underlying(asset, shares)
                collateral_value += underlying * price // WAD * factor // FACTOR_SCALE

            debt = self.markets.borrow_balance(asset, user)
            if debt > 0:
                debt_value += debt * price // WAD
        return collateral_value, debt_value

    def account_liquidity(self, user: str) -> Tuple[int, int]:
        """(collateral_value, debt_value) weighted by collateral factor, WAD USD."""
        return self._value(user, use_threshold=False)

    def is_liquidatable(self, user: str) -> bool:
        """True when debt exceeds collateral weighted by liquidation threshold."""
        collateral_value, debt_value = self._value(user, use_threshold=True)
        return debt_value > collateral_value

    def liquidation_seize_amount(
        self,
        market_borrow: str,
        market_collateral: str,
        repay_amount: int,
    ) -> int:
        """
        Collateral shares owed to a liquidator repaying `repay_amount`.

        shares = repay * (bonus * price_borrow / FACTOR_SCALE)
                 / (exchange_rate_collateral * price_collateral / WAD)
        """
        price_borrow = self.price(market_borrow)
        price_collateral = self.price(market_collateral)
        bonus = self.markets.get(market_collateral).config.liquidation_bonus

        numerator = repay_amount * bonus * price_borrow // FACTOR_SCALE
        denominator = self.markets.exchange_rate(market_collateral) * price_collateral // WAD
        return numerator // denominator

    # ========================================================================
    # CHECKS
    # ========================================================================

    def refresh(self, user: str) -> None:
        """Accrue every market `user` has entered up to the current time."""
        now = self._clock()
        for asset in self.accounts.entered_markets(user):
            self.markets.accrue(asset, now)

    def require_solvent(self, user: str) -> None:
        """
        Raises:
            InsufficientCollateral: If debt value exceeds collateral value.
        """
        self.refresh(user)
        collateral_value, debt_value = self.account_liquidity(user)
        if collateral_value < debt_value:
            raise InsufficientCollateral(
                f"{user}: collateral {collateral_value} < debt {debt_value}"
            )

    def check(self, user: str) -> None:
        """Check solvency now, or mark the user DIRTY inside a defer window."""
        status = self.accounts.check_status(user)
        if status is LiquidityCheckStatus.NORMAL:
            self.require_solvent(user)
        elif status is LiquidityCheckStatus.DEFERRED:
            self.accounts.set_check_status(user, LiquidityCheckStatus.DIRTY)

    def defer(self, user: str, invoke: Callable[[], None]) -> None:
        """
        Run `invoke` with `user`'s solvency checks deferred to its return.

        Raises:
            CreditAccountRestricted: If `user` is a credit account.
            ReentrancyError: If a defer window for `user` is already open.
        """
        if self.accounts.is_credit_account(user):
            raise CreditAccountRestricted(f"credit account {user} cannot defer liquidity check")
        if self.accounts.check_status(user) is not LiquidityCheckStatus.NORMAL:
            raise ReentrancyError(f"reentry defer liquidity check for {user}")

        self.accounts.set_check_status(user, LiquidityCheckStatus.DEFERRED)
        try:
            invoke()
            status = self.accounts.check_status(user)
        finally:
            self.accounts.set_check_status(user, LiquidityCheckStatus.NORMAL)

        if status is LiquidityCheckStatus.DIRTY:
            self.check(user)
