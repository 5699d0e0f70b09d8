"""
test_pool_lifecycle.py - End-to-end lending pool scenarios

Builds a pool from a configuration mapping (WETH 18 decimals, USDC 6
decimals) and runs complete position lifecycles through it:

- Supply, borrow, a year of interest, repay, redeem, reserve withdrawal
- A price crash followed by a liquidation cascade
- Token conservation and pool cash consistency throughout
"""

import pytest

from lendpool import (
    WAD, MAX,
    build_pool, parse_pool_settings, normalize_price,
    Supplied, Borrowed, Repaid, Redeemed, Liquidated, InterestAccrued,
    NotLiquidatable,
)


YEAR = 365 * 24 * 3600
USDC = 10**6

POOL = {
    "owner": "admin",
    "roles": {"reserve_manager": "treasury"},
    "assets": {"WETH": 18, "USDC": 6},
    "prices": {"WETH": 1500, "USDC": 1},
    "markets": {
        "WETH": {
            "rate_model": {"base": 0.01, "slope1": 0.1, "slope2": 0.5, "slope3": 2.0},
            "collateral_factor": 80,
            "liquidation_threshold": 85,
            "liquidation_bonus": 105,
            "reserve_factor": 10,
        },
        "USDC": {
            "rate_model": {"base": 0.02, "slope1": 0.15, "slope2": 0.6, "slope3": 3.0},
            "collateral_factor": 85,
            "liquidation_threshold": 90,
            "liquidation_bonus": 105,
            "reserve_factor": 10,
        },
    },
}


@pytest.fixture
def pool():
    pool = build_pool(parse_pool_settings(POOL))
    pool.bank.mint("lp", "USDC", 50_000 * USDC)
    pool.supply("lp", "lp", "USDC", 50_000 * USDC)
    return pool


def assert_consistent(pool):
    for market in pool.get_all_markets():
        assert pool.bank.balance_of(pool.address, market) == pool.get_total_cash(market)
    assert pool.bank.verify_conservation()['valid']


class TestBorrowLifecycle:

    def test_full_cycle(self, pool):
        pool.bank.mint("alice", "WETH", 10 * WAD)
        pool.supply("alice", "alice", "WETH", 10 * WAD)
        pool.borrow("alice", "alice", "USDC", 5_000 * USDC)
        assert_consistent(pool)

        # a year of interest
        pool.skip(YEAR)
        pool.accrue_interest("USDC")
        debt = pool.get_borrow_balance("alice", "USDC")
        assert debt > 5_000 * USDC
        assert pool.get_total_reserves("USDC") > 0

        # alice closes her position
        pool.bank.mint("alice", "USDC", 1_000 * USDC)
        assert pool.repay("alice", "alice", "USDC", MAX) == debt
        assert pool.redeem("alice", "alice", "WETH", MAX) == 10 * WAD
        assert pool.get_user_entered_markets("alice") == []
        assert_consistent(pool)

        # the supplier leaves with interest
        redeemed = pool.redeem("lp", "lp", "USDC", MAX)
        assert redeemed > 50_000 * USDC
        assert redeemed < 50_000 * USDC + (debt - 5_000 * USDC)

        # the treasury collects what is left
        reserves = pool.get_total_reserves("USDC")
        collected = pool.reduce_reserves("USDC", reserves, "treasury", sender="treasury")
        assert collected > 0
        assert pool.get_total_supply("USDC") == 0
        assert pool.get_total_reserves("USDC") == 0
        assert pool.get_total_cash("USDC") < USDC
        assert_consistent(pool)

    def test_event_trail(self, pool):
        pool.bank.mint("alice", "WETH", 10 * WAD)
        start = len(pool.event_log)
        pool.supply("alice", "alice", "WETH", 10 * WAD)
        pool.borrow("alice", "alice", "USDC", 1_000 * USDC)
        pool.skip(3_600)
        pool.repay("alice", "alice", "USDC", 500 * USDC)
        pool.redeem("alice", "alice", "WETH", WAD)

        kinds = [type(e) for e in pool.event_log[start:]
                 if isinstance(e, (Supplied, Borrowed, Repaid, Redeemed))]
        assert kinds == [Supplied, Borrowed, Repaid, Redeemed]
        assert any(isinstance(e, InterestAccrued) and e.market == "USDC"
                   for e in pool.event_log[start:])

    def test_mixed_decimals_valuation(self, pool):
        pool.bank.mint("alice", "WETH", WAD)
        pool.supply("alice", "alice", "WETH", WAD)
        pool.borrow("alice", "alice", "USDC", 1_200 * USDC)
        assert pool.get_account_liquidity("alice") == (1_200 * WAD, 1_200 * WAD)


class TestLiquidationCascade:

    def test_price_crash_and_cascade(self, pool):
        pool.bank.mint("bob", "WETH", 10 * WAD)
        pool.supply("bob", "bob", "WETH", 10 * WAD)
        pool.borrow("bob", "bob", "USDC", 12_000 * USDC)
        pool.bank.mint("liz", "USDC", 20_000 * USDC)

        with pytest.raises(NotLiquidatable):
            pool.liquidate("liz", "bob", "USDC", "WETH", 3_000 * USDC)

        pool.oracle.set_price("WETH", normalize_price(1300, 18))
        rounds = 0
        while pool.is_user_liquidatable("bob"):
            pool.liquidate("liz", "bob", "USDC", "WETH", 3_000 * USDC)
            rounds += 1
            assert rounds < 10

        assert rounds == 3
        assert pool.get_borrow_balance("bob", "USDC") == 3_000 * USDC
        seized = sum(e.seized_shares for e in pool.event_log if isinstance(e, Liquidated))
        assert pool.get_supply_shares("liz", "WETH") == seized
        assert pool.get_supply_shares("bob", "WETH") == 10 * WAD - seized

        # the liquidator can exit with the seized collateral
        assert pool.redeem("liz", "liz", "WETH", MAX) == seized
        assert_consistent(pool)
