"""
token_bank.py - Custody ledger for underlying tokens

The TokenBank is the pool's view of the outside token world: it holds every
wallet's balance of every underlying asset and moves tokens between wallets.
The lending pool pulls and pushes underlying through it, and keeps its own
holdings in the wallet named by LendingPool.address.

Key responsibilities:
    - Maintains per-wallet, per-asset integer balances
    - Moves tokens with full balance validation (no overdrafts)
    - Issues tokens from SYSTEM_WALLET for funding simulations and tests
    - Records every transfer in an append-only log
    - Verifies conservation: for every asset, sum of balances == issued supply
    - Snapshot/restore for all-or-nothing rollback by the pool

Receive hooks let a wallet run code when it is credited, which is how
token-transfer reentrancy into the pool is modelled.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from .core import SYSTEM_WALLET, InsufficientFunds, PoolError


ReceiveHook = Callable[[str, str, int], None]


class AssetNotRegistered(PoolError):
    """Raised when operating on an asset the bank does not know."""
    pass


@dataclass(frozen=True, slots=True)
class TokenTransfer:
    """
    A single executed token movement.

    Attributes:
        sequence: Monotonic sequence number within the bank.
        asset: Underlying asset identifier.
        source: Wallet debited.
        dest: Wallet credited.
        amount: Amount in the asset's smallest unit.
    """
    sequence: int
    asset: str
    source: str
    dest: str
    amount: int

    def __repr__(self) -> str:
        return f"TokenTransfer(#{self.sequence} {self.amount} {self.asset}: {self.source}→{self.dest})"


class TokenBank:
    """
    Integer token balances with validation and an audit trail.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own TokenBank.

    Example:
        bank = TokenBank()
        bank.register_asset("WETH", decimals=18)
        bank.mint("alice", "WETH", 10 * 10**18)
        bank.transfer("WETH", "alice", "pool", 10**18)
    """

    def __init__(self):
        self.balances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self.decimals: Dict[str, int] = {}
        self.issued: Dict[str, int] = {}
        self.transfer_log: List[TokenTransfer] = []
        self._next_sequence: int = 0
        self._receive_hooks: Dict[str, ReceiveHook] = {}

    # ========================================================================
    # READ-ONLY
    # ========================================================================

    def is_registered(self, asset: str) -> bool:
        return asset in self.decimals

    def list_assets(self) -> List[str]:
        return sorted(self.decimals)

    def balance_of(self, wallet: str, asset: str) -> int:
        """
        Balance of `asset` held by `wallet` (0 for unknown wallets).

        Raises:
            AssetNotRegistered: If the asset is not registered.
        """
        self._require_asset(asset)
        return self.balances[wallet][asset] if wallet in self.balances else 0

    def holders(self, asset: str) -> Dict[str, int]:
        """All wallets holding a nonzero balance of `asset`."""
        self._require_asset(asset)
        return {
            wallet: bals[asset]
            for wallet, bals in self.balances.items()
            if bals.get(asset, 0) != 0 and wallet != SYSTEM_WALLET
        }

    def total_supply(self, asset: str) -> int:
        """Sum of all non-system balances of `asset`."""
        return sum(self.holders(asset).values())

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify that no asset was created or destroyed outside mint/burn.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every asset's holdings equal its issuance
            - 'supplies': Dict[str, int] - Current holdings per asset
            - 'discrepancies': List[Dict] - asset, expected, actual
        """
        supplies = {}
        discrepancies = []
        for asset in self.decimals:
            actual = self.total_supply(asset)
            supplies[asset] = actual
            expected = self.issued.get(asset, 0)
            if actual != expected:
                discrepancies.append({'asset': asset, 'expected': expected, 'actual': actual})
        return {
            'valid': not discrepancies,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_asset(self, asset: str, decimals: int = 18) -> None:
        """
        Register an underlying asset.

        Raises:
            ValueError: If the asset is already registered or decimals are invalid.
        """
        if asset in self.decimals:
            raise ValueError(f"Asset {asset} already registered")
        if not 0 <= decimals <= 36:
            raise ValueError(f"Invalid decimals for {asset}: {decimals}")
        self.decimals[asset] = decimals
        self.issued[asset] = 0

    def set_receive_hook(self, wallet: str, hook: Optional[ReceiveHook]) -> None:
        """Install (or clear with None) a hook called as hook(asset, source, amount) after `wallet` is credited."""
        if hook is None:
            self._receive_hooks.pop(wallet, None)
        else:
            self._receive_hooks[wallet] = hook

    # ========================================================================
    # MUTATION
    # ========================================================================

    def mint(self, wallet: str, asset: str, amount: int) -> None:
        """Issue new tokens from the system wallet to `wallet`."""
        self._require_asset(asset)
        if amount <= 0:
            raise ValueError("Mint amount must be positive")
        self.issued[asset] += amount
        self.balances[SYSTEM_WALLET][asset] -= amount
        self._credit(asset, SYSTEM_WALLET, wallet, amount)

    def burn(self, wallet: str, asset: str, amount: int) -> None:
        """Destroy tokens held by `wallet`."""
        self.transfer(asset, wallet, SYSTEM_WALLET, amount)
        self.issued[asset] -= amount

    def transfer(self, asset: str, source: str, dest: str, amount: int) -> None:
        """
        Move `amount` of `asset` from `source` to `dest`.

        Zero-amount transfers are accepted and recorded nowhere.

        Raises:
            AssetNotRegistered: If the asset is not registered.
            ValueError: If amount is negative or source == dest.
            InsufficientFunds: If source holds less than amount.
        """
        self._require_asset(asset)
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative, got {amount}")
        if amount == 0:
            return
        if source == dest:
            raise ValueError("Source and dest must be different")
        if source != SYSTEM_WALLET:
            available = self.balances[source][asset]
            if available < amount:
                raise InsufficientFunds(f"{source} {asset}: balance {available} < {amount}")
        self.balances[source][asset] -= amount
        self._credit(asset, source, dest, amount)

    def _credit(self, asset: str, source: str, dest: str, amount: int) -> None:
        self.balances[dest][asset] += amount
        self.transfer_log.append(TokenTransfer(self._next_sequence, asset, source, dest, amount))
        self._next_sequence += 1
        hook = self._receive_hooks.get(dest)
        if hook is not None:
            hook(asset, source, amount)

    def _require_asset(self, asset: str) -> None:
        if asset not in self.decimals:
            raise AssetNotRegistered(f"Asset {asset} not registered")

    # ========================================================================
    # SNAPSHOT / RESTORE
    # ========================================================================

    def snapshot(self) -> Dict[str, Any]:
        """Capture all mutable state for a later restore()."""
        return {
            'balances': {w: dict(b) for w, b in self.balances.items()},
            'decimals': dict(self.decimals),
            'issued': dict(self.issued),
            'log_length': len(self.transfer_log),
            'next_sequence': self._next_sequence,
        }

    def restore(self, snap: Dict[str, Any]) -> None:
        """Roll back to a snapshot taken by snapshot()."""
        self.balances = defaultdict(lambda: defaultdict(int))
        for wallet, bals in snap['balances'].items():
            self.balances[wallet] = defaultdict(int, bals)
        self.decimals = dict(snap['decimals'])
        self.issued = dict(snap['issued'])
        del self.transfer_log[snap['log_length']:]
        self._next_sequence = snap['next_sequence']

    def wallets(self) -> Set[str]:
        return {w for w in self.balances if w != SYSTEM_WALLET}

    def __repr__(self):
        return f"TokenBank({len(self.decimals)} assets, {len(self.transfer_log)} transfers)"
