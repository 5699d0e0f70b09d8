"""
conftest.py - Shared pytest fixtures for lending pool tests

Provides common fixtures used across unit, conformance and functional tests:
- Token bank and oracle with WETH, AAVE and DAI (all 18 decimals)
- A pool with the three markets listed (CF 80%, LT 90%, bonus 110%)
- A seeded pool where a liquidity provider has supplied every market
- Helpers to fund and supply in one call
"""

import pytest

from lendpool import (
    WAD,
    LendingPool,
    MarketConfig,
    StaticPriceOracle,
    TokenBank,
    TripleSlopeRateModel,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

ASSETS = ("WETH", "AAVE", "DAI")
PRICES = {"WETH": 1500, "AAVE": 200, "DAI": 1}


def make_config(rate_model, **overrides) -> MarketConfig:
    """Market config with the default test risk parameters."""
    params = dict(
        rate_model=rate_model,
        initial_exchange_rate=WAD,
        collateral_factor=8000,
        liquidation_threshold=9000,
        liquidation_bonus=11000,
        reserve_factor=1000,
    )
    params.update(overrides)
    return MarketConfig(**params)


def fund(pool: LendingPool, user: str, market: str, amount: int) -> None:
    """Mint underlying to a user."""
    pool.bank.mint(user, market, amount)


def fund_and_supply(pool: LendingPool, user: str, market: str, amount: int) -> int:
    """Mint underlying to a user and supply all of it for the user."""
    pool.bank.mint(user, market, amount)
    return pool.supply(user, user, market, amount)


class RecordingHandler:
    """Deferred liquidity check handler that runs a list of callables."""

    def __init__(self, *steps):
        self.steps = steps
        self.calls = []

    def on_deferred_liquidity_check(self, data):
        self.calls.append(data)
        for step in self.steps:
            step()


# =============================================================================
# RATE MODELS
# =============================================================================

@pytest.fixture
def irm():
    """A realistic annualized triple-slope model."""
    return TripleSlopeRateModel.from_annual_rates(0.02, 0.15, 0.8, 0.5, 0.9, 3.0)


@pytest.fixture
def zero_irm():
    return TripleSlopeRateModel(0, 0, 8 * 10**17, 0, 9 * 10**17, 0)


# =============================================================================
# POOLS
# =============================================================================

@pytest.fixture
def bank():
    bank = TokenBank()
    for asset in ASSETS:
        bank.register_asset(asset, decimals=18)
    return bank


@pytest.fixture
def oracle():
    oracle = StaticPriceOracle()
    for asset, usd in PRICES.items():
        oracle.set_usd_price(asset, usd, decimals=18)
    return oracle


@pytest.fixture
def pool(bank, oracle, irm):
    """Pool with WETH, AAVE and DAI listed and no positions."""
    pool = LendingPool(bank, oracle, owner="admin")
    for asset in ASSETS:
        pool.list_market(asset, make_config(irm), sender="admin")
    return pool


@pytest.fixture
def seeded_pool(pool):
    """Pool where `lp` has supplied 1000 WETH, 10_000 AAVE and 1_000_000 DAI."""
    fund_and_supply(pool, "lp", "WETH", 1_000 * WAD)
    fund_and_supply(pool, "lp", "AAVE", 10_000 * WAD)
    fund_and_supply(pool, "lp", "DAI", 1_000_000 * WAD)
    return pool


@pytest.fixture
def borrower_pool(seeded_pool):
    """
    Seeded pool where `alice` supplied 10 WETH and borrowed 12_000 DAI,
    exactly her borrowing capacity (10 * 1500 * 80%).
    """
    fund_and_supply(seeded_pool, "alice", "WETH", 10 * WAD)
    seeded_pool.borrow("alice", "alice", "DAI", 12_000 * WAD)
    return seeded_pool


# =============================================================================
# HELPER FIXTURES
# =============================================================================

@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def supply_for():
    return fund_and_supply


@pytest.fixture
def handler_factory():
    return RecordingHandler
