"""
test_views.py - Tests for pool views and the receipt / debt token views
"""

import pytest

from lendpool import (
    WAD, BalanceView, SupplyTokenView, DebtTokenView, token_views, MarketConfig,
    SharesTransferred, MarketNotListed, MarketPaused, PauseFlags, ProtocolMisuse,
    ZeroAmount, InsufficientCollateral,
)


class TestPoolViews:

    def test_get_market_returns_copy(self, borrower_pool):
        market = borrower_pool.get_market("DAI")
        market.total_cash = 0
        market.supplies["lp"] = 0
        assert borrower_pool.get_total_cash("DAI") == 988_000 * WAD
        assert borrower_pool.get_supply_shares("lp", "DAI") == 1_000_000 * WAD

    def test_views_do_not_accrue(self, borrower_pool):
        borrower_pool.skip(3_600)
        before = borrower_pool.get_total_borrow("DAI")
        borrower_pool.get_borrow_balance("alice", "DAI")
        borrower_pool.get_account_liquidity("alice")
        borrower_pool.is_user_liquidatable("alice")
        assert borrower_pool.get_total_borrow("DAI") == before
        assert borrower_pool.get_market("DAI").last_update == 0

    def test_market_configuration_view(self, pool):
        assert isinstance(pool.get_market_configuration("WETH"), MarketConfig)
        assert pool.get_market_configuration("WETH").collateral_factor == 8000

    def test_unknown_market(self, pool):
        with pytest.raises(MarketNotListed):
            pool.get_exchange_rate("XYZ")

    def test_repr(self, pool):
        assert "3 markets" in repr(pool)


class TestTimeControl:

    def test_skip_and_advance(self, pool):
        pool.skip(10)
        pool.advance_time(25)
        assert pool.current_time == 25

    def test_time_cannot_go_backwards(self, pool):
        pool.skip(10)
        with pytest.raises(ValueError):
            pool.advance_time(5)


class TestShareTransfers:

    def test_transfer_moves_shares_and_entry(self, seeded_pool, supply_for):
        supply_for(seeded_pool, "alice", "WETH", 10 * WAD)
        seeded_pool.transfer_shares("WETH", "alice", "bob", 10 * WAD)
        assert seeded_pool.get_supply_shares("bob", "WETH") == 10 * WAD
        assert seeded_pool.get_user_entered_markets("alice") == []
        assert seeded_pool.get_user_entered_markets("bob") == ["WETH"]
        assert seeded_pool.event_log[-1] == SharesTransferred("WETH", "alice", "bob", 10 * WAD)

    def test_transfer_checks_sender_solvency(self, borrower_pool):
        with pytest.raises(InsufficientCollateral):
            borrower_pool.transfer_shares("WETH", "alice", "bob", WAD)

    def test_zero_transfer(self, seeded_pool):
        with pytest.raises(ZeroAmount):
            seeded_pool.transfer_shares("WETH", "lp", "bob", 0)

    def test_self_transfer(self, seeded_pool):
        with pytest.raises(ProtocolMisuse):
            seeded_pool.transfer_shares("WETH", "lp", "lp", WAD)

    def test_transfer_paused(self, seeded_pool):
        seeded_pool.set_market_pause("WETH", PauseFlags.TRANSFER, True, sender="admin")
        with pytest.raises(MarketPaused):
            seeded_pool.transfer_shares("WETH", "lp", "bob", WAD)


class TestTokenViews:

    def test_supply_token_view(self, borrower_pool):
        view = SupplyTokenView(borrower_pool, "WETH")
        assert view.name == "sWETH"
        assert view.balance_of("alice") == 10 * WAD
        assert view.balance_of_underlying("alice") == 10 * WAD
        assert view.total_supply() == 1_010 * WAD

    def test_supply_total_includes_reserves(self, borrower_pool):
        borrower_pool.skip(365 * 24 * 3600)
        borrower_pool.accrue_interest("DAI")
        view = SupplyTokenView(borrower_pool, "DAI")
        assert view.total_supply() == \
            borrower_pool.get_total_supply("DAI") + borrower_pool.get_total_reserves("DAI")
        assert view.total_supply() > 1_000_000 * WAD

    def test_supply_token_transfer_delegates(self, seeded_pool):
        view = SupplyTokenView(seeded_pool, "DAI")
        view.transfer("lp", "bob", 5 * WAD)
        assert view.balance_of("bob") == 5 * WAD
        assert seeded_pool.get_supply_shares("bob", "DAI") == 5 * WAD

    def test_debt_token_view(self, borrower_pool):
        view = DebtTokenView(borrower_pool, "DAI")
        assert view.name == "dDAI"
        assert view.balance_of("alice") == 12_000 * WAD
        assert view.total_supply() == 12_000 * WAD

    def test_views_satisfy_balance_protocol(self, pool):
        supply_view, debt_view = token_views(pool, "DAI")
        assert isinstance(supply_view, BalanceView)
        assert isinstance(debt_view, BalanceView)

    def test_token_views_use_configured_names(self, pool, irm, config_factory):
        pool.set_market_configuration(
            "DAI", config_factory(irm, supply_token="lpDAI", debt_token="debtDAI"), sender="admin")
        supply_view, debt_view = token_views(pool, "DAI")
        assert (supply_view.name, debt_view.name) == ("lpDAI", "debtDAI")
