"""
accounts.py - Account registry

Per-user bookkeeping derived from and maintained by ledger operations:

    - entered markets: the markets counted in liquidity calculations, in
      entry order. A market is entered when a balance becomes positive and
      exited when both supply and debt return to zero.
    - extensions: operators the user allows to act on its behalf.
    - credit limits: admin-granted uncollateralized borrowing ceilings per
      market. Any nonzero limit makes the user a credit account.
    - liquidity-check status for the deferred check protocol.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from .core import LiquidityCheckStatus
from .events import MarketEntered, MarketExited


class AccountRegistry:
    """Entered markets, extensions, credit limits and check status for every user."""

    def __init__(self, emit: Optional[Callable[[Any], None]] = None):
        self._entered: Dict[str, List[str]] = defaultdict(list)
        self._extensions: Dict[str, List[str]] = defaultdict(list)
        self._credit_limits: Dict[str, Dict[str, int]] = defaultdict(dict)
        self._check_status: Dict[str, LiquidityCheckStatus] = {}
        self._emit = emit or (lambda event: None)

    # ========================================================================
    # ENTERED MARKETS
    # ========================================================================

    def entered_markets(self, user: str) -> List[str]:
        return list(self._entered.get(user, ()))

    def has_entered(self, user: str, market: str) -> bool:
        return market in self._entered.get(user, ())

    def enter_market(self, user: str, market: str) -> None:
        if market not in self._entered[user]:
            self._entered[user].append(market)
            self._emit(MarketEntered(market, user))

    def exit_market(self, user: str, market: str) -> None:
        entered = self._entered.get(user)
        if entered and market in entered:
            entered.remove(market)
            self._emit(MarketExited(market, user))

    # ========================================================================
    # EXTENSIONS
    # ========================================================================

    def extensions(self, user: str) -> List[str]:
        return list(self._extensions.get(user, ()))

    def set_extension(self, user: str, extension: str, allowed: bool) -> bool:
        """Allow or revoke `extension` for `user`. Returns True if anything changed."""
        current = self._extensions[user]
        if allowed and extension not in current:
            current.append(extension)
            return True
        if not allowed and extension in current:
            current.remove(extension)
            return True
        return False

    def is_authorized(self, user: str, sender: str) -> bool:
        """The sender is the user itself or one of its allowed extensions."""
        return sender == user or sender in self._extensions.get(user, ())

    # ========================================================================
    # CREDIT LIMITS
    # ========================================================================

    def credit_limit(self, user: str, market: str) -> int:
        return self._credit_limits.get(user, {}).get(market, 0)

    def credit_markets(self, user: str) -> List[str]:
        return list(self._credit_limits.get(user, {}))

    def is_credit_account(self, user: str) -> bool:
        return bool(self._credit_limits.get(user))

    def set_credit_limit(self, user: str, market: str, limit: int) -> int:
        """Set a limit, removing the entry when zero. Returns the old limit."""
        limits = self._credit_limits[user]
        old = limits.get(market, 0)
        if limit > 0:
            limits[market] = limit
        else:
            limits.pop(market, None)
        if not limits:
            del self._credit_limits[user]
        return old

    # ========================================================================
    # LIQUIDITY CHECK STATUS
    # ========================================================================

    def check_status(self, user: str) -> LiquidityCheckStatus:
        return self._check_status.get(user, LiquidityCheckStatus.NORMAL)

    def set_check_status(self, user: str, status: LiquidityCheckStatus) -> None:
        if status is LiquidityCheckStatus.NORMAL:
            self._check_status.pop(user, None)
        else:
            self._check_status[user] = status

    # ========================================================================
    # SNAPSHOT / RESTORE
    # ========================================================================

    def snapshot(self) -> Dict[str, Any]:
        return {
            'entered': {u: list(m) for u, m in self._entered.items()},
            'extensions': {u: list(e) for u, e in self._extensions.items()},
            'credit_limits': {u: dict(c) for u, c in self._credit_limits.items()},
            'check_status': dict(self._check_status),
        }

    def restore(self, snap: Dict[str, Any]) -> None:
        self._entered = defaultdict(list, snap['entered'])
        self._extensions = defaultdict(list, snap['extensions'])
        self._credit_limits = defaultdict(dict, snap['credit_limits'])
        self._check_status = dict(snap['check_status'])
