"""
oracle.py - Price oracle collaborators

The pool consumes prices through the PriceOracle protocol (see core.py).
Prices are normalized so that `amount * price // WAD` is a WAD-scaled USD
value for an amount in the asset's smallest unit:

    normalized = usd_price * 10**18 * 10**(18 - decimals)

A price of 0 means "no price" and halts any valuation that needs it.

Classes:
- StaticPriceOracle: in-memory, time-independent prices
"""

from decimal import Decimal
from typing import Dict, Union

from .core import WAD


Number = Union[int, float, str, Decimal]


def normalize_price(price: Number, decimals: int) -> int:
    """
    Convert a human USD price into the pool's normalized form.

    Args:
        price: USD price of one whole token (e.g. 1500 for 1500 USD).
        decimals: Decimals of the underlying token.

    Returns:
        Normalized int price.

    Example:
        normalize_price(1500, 18) == 1500 * 10**18
        normalize_price(1, 6) == 10**30
    """
    scaled = Decimal(str(price)) * WAD * (Decimal(10) ** (18 - decimals))
    return int(scaled)


class StaticPriceOracle:
    """
    Price oracle with static, manually updated prices.

    Prices are stored already normalized. Unknown assets price at 0.
    """

    def __init__(self, prices: Dict[str, int] = None):
        self.prices: Dict[str, int] = dict(prices or {})

    def get_price(self, asset: str) -> int:
        """Get the normalized price, 0 if unknown."""
        return self.prices.get(asset, 0)

    def set_price(self, asset: str, price: int) -> None:
        """Set a normalized price."""
        self.prices[asset] = price

    def set_prices(self, prices: Dict[str, int]) -> None:
        """Update multiple normalized prices at once."""
        self.prices.update(prices)

    def set_usd_price(self, asset: str, usd_price: Number, decimals: int) -> None:
        """Set a price from a human USD quote."""
        self.prices[asset] = normalize_price(usd_price, decimals)

    def __repr__(self):
        return f"StaticPriceOracle({len(self.prices)} prices)"
