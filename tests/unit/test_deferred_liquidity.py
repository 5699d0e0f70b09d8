"""
test_deferred_liquidity.py - Tests for the deferred liquidity check

`alice` starts at exactly her borrowing capacity (10 WETH, 12_000 DAI), so
any redeem outside a defer window fails. Inside a window she may pass
through insolvent states as long as the final state is solvent.

Tests:
- Composition: redeem then supply succeeds iff the end state is solvent
- Status transitions NORMAL -> DEFERRED -> DIRTY -> NORMAL
- Reentry for the same user, nesting for another user
- Handler forms, authorization, credit accounts
- Rollback when the final check or the handler fails
"""

import pytest

from lendpool import (
    WAD, LiquidityCheckStatus, DeferredLiquidityCheckHandler,
    InsufficientCollateral, ReentrancyError, ProtocolMisuse, Unauthorized,
    CreditAccountRestricted,
)


@pytest.fixture
def alice_pool(borrower_pool):
    borrower_pool.bank.mint("alice", "AAVE", 10 * WAD)
    return borrower_pool


def redeem_weth(pool, amount=WAD):
    return lambda: pool.redeem("alice", "alice", "WETH", amount)


def supply_aave(pool, amount):
    return lambda: pool.supply("alice", "alice", "AAVE", amount)


# =============================================================================
# COMPOSITION
# =============================================================================

class TestComposition:

    def test_redeem_alone_fails(self, alice_pool):
        with pytest.raises(InsufficientCollateral):
            alice_pool.redeem("alice", "alice", "WETH", WAD)

    def test_redeem_then_supply_succeeds_when_final_state_solvent(self, alice_pool, handler_factory):
        # 9 WETH + 10 AAVE: 10_800 + 1_600 = 12_400 >= 12_000
        handler = handler_factory(redeem_weth(alice_pool), supply_aave(alice_pool, 10 * WAD))
        alice_pool.defer_liquidity_check("alice", handler, data="batch")

        assert handler.calls == ["batch"]
        assert alice_pool.get_supply_shares("alice", "WETH") == 9 * WAD
        assert alice_pool.get_supply_shares("alice", "AAVE") == 10 * WAD
        assert alice_pool.bank.balance_of("alice", "WETH") == WAD
        assert alice_pool.get_liquidity_check_status("alice") is LiquidityCheckStatus.NORMAL

    def test_order_inside_window_does_not_matter(self, alice_pool, handler_factory):
        handler = handler_factory(supply_aave(alice_pool, 10 * WAD), redeem_weth(alice_pool))
        alice_pool.defer_liquidity_check("alice", handler)
        assert alice_pool.get_supply_shares("alice", "WETH") == 9 * WAD

    def test_insolvent_final_state_rolls_back_everything(self, alice_pool, handler_factory):
        # 9 WETH + 5 AAVE: 10_800 + 800 = 11_600 < 12_000
        handler = handler_factory(redeem_weth(alice_pool), supply_aave(alice_pool, 5 * WAD))
        events_before = len(alice_pool.event_log)
        with pytest.raises(InsufficientCollateral):
            alice_pool.defer_liquidity_check("alice", handler)

        assert alice_pool.get_supply_shares("alice", "WETH") == 10 * WAD
        assert alice_pool.get_supply_shares("alice", "AAVE") == 0
        assert alice_pool.bank.balance_of("alice", "AAVE") == 10 * WAD
        assert alice_pool.bank.balance_of("alice", "WETH") == 0
        assert alice_pool.get_user_entered_markets("alice") == ["WETH", "DAI"]
        assert len(alice_pool.event_log) == events_before
        assert alice_pool.get_liquidity_check_status("alice") is LiquidityCheckStatus.NORMAL

    def test_borrow_and_repay_inside_window(self, alice_pool, handler_factory):
        handler = handler_factory(
            lambda: alice_pool.borrow("alice", "alice", "DAI", 5_000 * WAD),
            lambda: alice_pool.repay("alice", "alice", "DAI", 5_000 * WAD),
        )
        alice_pool.defer_liquidity_check("alice", handler)
        assert alice_pool.get_borrow_balance("alice", "DAI") == 12_000 * WAD


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

class TestStatus:

    def test_status_inside_window(self, alice_pool, handler_factory):
        seen = []

        def record():
            seen.append(alice_pool.get_liquidity_check_status("alice"))

        handler = handler_factory(record, redeem_weth(alice_pool), record,
                                  supply_aave(alice_pool, 10 * WAD), record)
        alice_pool.defer_liquidity_check("alice", handler)

        assert seen == [
            LiquidityCheckStatus.DEFERRED,
            LiquidityCheckStatus.DIRTY,
            LiquidityCheckStatus.DIRTY,
        ]
        assert alice_pool.get_liquidity_check_status("alice") is LiquidityCheckStatus.NORMAL

    def test_window_without_checked_operation_stays_deferred(self, alice_pool, handler_factory):
        seen = []
        handler = handler_factory(
            supply_aave(alice_pool, 10 * WAD),
            lambda: seen.append(alice_pool.get_liquidity_check_status("alice")),
        )
        alice_pool.defer_liquidity_check("alice", handler)
        assert seen == [LiquidityCheckStatus.DEFERRED]

    def test_other_users_are_checked_immediately(self, alice_pool, handler_factory, supply_for):
        supply_for(alice_pool, "bob", "WETH", WAD)
        handler = handler_factory(lambda: alice_pool.borrow("bob", "bob", "DAI", 1_201 * WAD))
        with pytest.raises(InsufficientCollateral):
            alice_pool.defer_liquidity_check("alice", handler)


# =============================================================================
# NESTING
# =============================================================================

class TestNesting:

    def test_reentry_for_same_user(self, alice_pool, handler_factory):
        inner = handler_factory()
        outer = handler_factory(lambda: alice_pool.defer_liquidity_check("alice", inner))
        with pytest.raises(ReentrancyError):
            alice_pool.defer_liquidity_check("alice", outer)
        assert inner.calls == []
        assert alice_pool.get_liquidity_check_status("alice") is LiquidityCheckStatus.NORMAL

    def test_nested_window_for_another_user(self, alice_pool, handler_factory, supply_for):
        supply_for(alice_pool, "bob", "WETH", WAD)
        alice_pool.bank.mint("bob", "AAVE", 10 * WAD)
        seen = []

        bob_handler = handler_factory(
            lambda: alice_pool.redeem("bob", "bob", "WETH", WAD),
            lambda: seen.append(alice_pool.get_liquidity_check_status("alice")),
            lambda: alice_pool.supply("bob", "bob", "AAVE", 10 * WAD),
        )
        alice_handler = handler_factory(
            redeem_weth(alice_pool),
            lambda: alice_pool.defer_liquidity_check("bob", bob_handler),
            supply_aave(alice_pool, 10 * WAD),
        )
        alice_pool.defer_liquidity_check("alice", alice_handler)

        assert seen == [LiquidityCheckStatus.DIRTY]
        assert alice_pool.get_supply_shares("bob", "AAVE") == 10 * WAD
        assert alice_pool.get_liquidity_check_status("bob") is LiquidityCheckStatus.NORMAL

    def test_window_can_be_reopened_after_closing(self, alice_pool, handler_factory):
        alice_pool.defer_liquidity_check("alice", handler_factory())
        alice_pool.defer_liquidity_check("alice", handler_factory())
        assert alice_pool.get_liquidity_check_status("alice") is LiquidityCheckStatus.NORMAL


# =============================================================================
# HANDLERS AND GUARDS
# =============================================================================

class TestHandlers:

    def test_plain_callable_handler(self, alice_pool):
        received = []
        alice_pool.defer_liquidity_check("alice", received.append, data=42)
        assert received == [42]

    def test_handler_protocol(self, handler_factory):
        assert isinstance(handler_factory(), DeferredLiquidityCheckHandler)

    def test_invalid_handler(self, alice_pool):
        with pytest.raises(ProtocolMisuse):
            alice_pool.defer_liquidity_check("alice", object())

    def test_unauthorized_sender(self, alice_pool, handler_factory):
        with pytest.raises(Unauthorized):
            alice_pool.defer_liquidity_check("alice", handler_factory(), sender="mallory")

    def test_extension_may_defer(self, alice_pool, handler_factory):
        alice_pool.set_user_extension("alice", "router", True)
        handler = handler_factory(
            lambda: alice_pool.redeem("alice", "alice", "WETH", WAD, sender="router"),
            lambda: alice_pool.supply("alice", "alice", "AAVE", 10 * WAD, sender="router"),
        )
        alice_pool.defer_liquidity_check("alice", handler, sender="router")
        assert alice_pool.get_supply_shares("alice", "AAVE") == 10 * WAD

    def test_credit_account_cannot_defer(self, seeded_pool, handler_factory):
        seeded_pool.set_credit_limit("carol", "DAI", 1_000 * WAD, sender="admin")
        with pytest.raises(CreditAccountRestricted):
            seeded_pool.defer_liquidity_check("carol", handler_factory())

    def test_handler_error_rolls_back(self, alice_pool, handler_factory):
        def boom():
            raise RuntimeError("handler failed")

        handler = handler_factory(supply_aave(alice_pool, 10 * WAD), boom)
        with pytest.raises(RuntimeError):
            alice_pool.defer_liquidity_check("alice", handler)
        assert alice_pool.get_supply_shares("alice", "AAVE") == 0
        assert alice_pool.get_liquidity_check_status("alice") is LiquidityCheckStatus.NORMAL
