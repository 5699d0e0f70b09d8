"""
rate_model.py - Triple-slope interest rate model

Maps a market's (cash, borrow) to a per-second borrow rate. The curve is
piecewise linear in utilization with two kinks:

    u = borrow / (cash + borrow)

    u <= kink1:          base + slope1 * u
    kink1 < u <= kink2:  base + slope1 * kink1 + slope2 * (u - kink1)
    u > kink2:           base + slope1 * kink1 + slope2 * (kink2 - kink1)
                              + slope3 * (u - kink2)

All inputs and outputs of the on-ledger functions are WAD-scaled ints.
borrow_rate_curve() is a vectorized float helper for analysis and charts.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Union

import numpy as np

from .core import WAD, SECONDS_PER_YEAR, InvalidConfiguration


ArrayLike = Union[float, np.ndarray]


@dataclass(frozen=True, slots=True)
class TripleSlopeRateModel:
    """
    Stateless triple-slope rate model.

    Attributes:
        base_rate_per_second: Rate at zero utilization (WAD per second).
        slope1: Rate increase per unit utilization below kink1 (WAD per second).
        kink1: First utilization kink (WAD).
        slope2: Rate increase per unit utilization between the kinks.
        kink2: Second utilization kink (WAD).
        slope3: Rate increase per unit utilization above kink2.
    """
    base_rate_per_second: int
    slope1: int
    kink1: int
    slope2: int
    kink2: int
    slope3: int

    def __post_init__(self):
        if self.kink1 > self.kink2:
            raise InvalidConfiguration("kink1 must not exceed kink2")
        if self.kink2 > WAD:
            raise InvalidConfiguration("kink2 must not exceed 100% utilization")
        if min(self.base_rate_per_second, self.slope1, self.slope2, self.slope3, self.kink1) < 0:
            raise InvalidConfiguration("rate model parameters cannot be negative")

    @classmethod
    def from_annual_rates(
        cls,
        base: float,
        slope1: float,
        kink1: float,
        slope2: float,
        kink2: float,
        slope3: float,
    ) -> TripleSlopeRateModel:
        """
        Build a model from annualized float rates and float kinks.

        Example:
            TripleSlopeRateModel.from_annual_rates(0.0, 0.15, 0.8, 0.5, 0.9, 3.0)
        """
        def per_second(annual: float) -> int:
            return int(round(annual * WAD)) // SECONDS_PER_YEAR

        return cls(
            base_rate_per_second=per_second(base),
            slope1=per_second(slope1),
            kink1=int(round(kink1 * WAD)),
            slope2=per_second(slope2),
            kink2=int(round(kink2 * WAD)),
            slope3=per_second(slope3),
        )

    def get_utilization(self, cash: int, borrow: int) -> int:
        """Return borrow / (cash + borrow), WAD-scaled; zero when nothing is borrowed."""
        if borrow == 0:
            return 0
        return borrow * WAD // (cash + borrow)

    def get_borrow_rate(self, cash: int, borrow: int) -> int:
        """Return the per-second borrow rate (WAD)."""
        utilization = self.get_utilization(cash, borrow)

        if utilization <= self.kink1:
            return self.base_rate_per_second + self.slope1 * utilization // WAD

        normal_rate = self.base_rate_per_second + self.slope1 * self.kink1 // WAD
        if utilization <= self.kink2:
            return normal_rate + self.slope2 * (utilization - self.kink1) // WAD

        normal_rate += self.slope2 * (self.kink2 - self.kink1) // WAD
        return normal_rate + self.slope3 * (utilization - self.kink2) // WAD

    def get_supply_rate(self, cash: int, borrow: int) -> int:
        """Return the per-second supply rate before reserve factor (WAD)."""
        utilization = self.get_utilization(cash, borrow)
        return self.get_borrow_rate(cash, borrow) * utilization // WAD

    def borrow_rate_curve(self, utilizations: ArrayLike) -> np.ndarray:
        """
        Annualized borrow rates for float utilizations in [0, 1].

        Vectorized over numpy arrays; used for charting rate curves, not for
        ledger accounting.

        Args:
            utilizations: Scalar or array of utilizations.

        Returns:
            Array of annualized borrow rates as floats.
        """
        u = np.clip(np.asarray(utilizations, dtype=float), 0.0, 1.0)
        base = self.base_rate_per_second / WAD
        s1, s2, s3 = self.slope1 / WAD, self.slope2 / WAD, self.slope3 / WAD
        k1, k2 = self.kink1 / WAD, self.kink2 / WAD

        per_second = np.where(
            u <= k1,
            base + s1 * u,
            np.where(
                u <= k2,
                base + s1 * k1 + s2 * (u - k1),
                base + s1 * k1 + s2 * (k2 - k1) + s3 * (u - k2),
            ),
        )
        return per_second * SECONDS_PER_YEAR
