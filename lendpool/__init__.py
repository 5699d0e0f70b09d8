"""
lendpool - Collateralized Lending Pool Ledger

Pool ledger and risk engine for a collateralized lending pool: per-market
cash/borrow/share accounting, compounding interest accrual, exchange-rate
share conversion, deferred liquidity checks and liquidation.

Usage:
    from lendpool import (
        LendingPool, TokenBank, StaticPriceOracle, MarketConfig,
        TripleSlopeRateModel, normalize_price, WAD, MAX,
    )

    bank = TokenBank()
    bank.register_asset("WETH", decimals=18)
    bank.register_asset("USDC", decimals=6)

    oracle = StaticPriceOracle()
    oracle.set_usd_price("WETH", 1500, decimals=18)
    oracle.set_usd_price("USDC", 1, decimals=6)

    pool = LendingPool(bank, oracle, owner="admin")
    irm = TripleSlopeRateModel.from_annual_rates(0.0, 0.15, 0.8, 0.5, 0.9, 3.0)
    pool.list_market("WETH", MarketConfig(irm, 10**18, collateral_factor=8000,
                                          liquidation_threshold=8500,
                                          liquidation_bonus=11000), sender="admin")
    pool.list_market("USDC", MarketConfig(irm, 10**6, collateral_factor=8000,
                                          liquidation_threshold=8500,
                                          liquidation_bonus=11000), sender="admin")

    bank.mint("bob", "USDC", 50_000 * 10**6)
    pool.supply("bob", "bob", "USDC", 50_000 * 10**6)

    bank.mint("alice", "WETH", 10 * WAD)
    pool.supply("alice", "alice", "WETH", 10 * WAD)
    pool.borrow("alice", "alice", "USDC", 5_000 * 10**6)
"""

# Core types
from .core import (
    WAD,
    FACTOR_SCALE,
    MAX,
    SYSTEM_WALLET,
    SECONDS_PER_YEAR,
    PauseFlags,
    LiquidityCheckStatus,
    MarketConfig,
    Market,
    UserBorrow,
    PriceOracle,
    RateModel,
    DeferredLiquidityCheckHandler,
    BalanceView,
    PoolError,
    Unauthorized,
    MarketNotListed,
    MarketAlreadyListed,
    MarketPaused,
    CapExceeded,
    InsufficientFunds,
    InsufficientCash,
    InsufficientBalance,
    InsufficientReserves,
    InsufficientCollateral,
    NotLiquidatable,
    CreditLimitExceeded,
    ProtocolMisuse,
    ReentrancyError,
    RepayTooMuch,
    SelfLiquidation,
    ZeroAmount,
    CreditAccountRestricted,
    InvalidPrice,
    InvalidConfiguration,
)

# Collaborators
from .rate_model import TripleSlopeRateModel
from .oracle import StaticPriceOracle, normalize_price
from .token_bank import TokenBank, TokenTransfer, AssetNotRegistered

# Ledger components
from .markets import MarketBook
from .accounts import AccountRegistry
from .liquidity import LiquidityEngine
from .pool import LendingPool

# Token views
from .views import SupplyTokenView, DebtTokenView, token_views

# Events
from .events import (
    InterestAccrued,
    Supplied,
    Borrowed,
    Redeemed,
    Repaid,
    Liquidated,
    SharesTransferred,
    ReservesIncreased,
    ReservesDecreased,
    MarketListed,
    MarketDelisted,
    MarketConfigured,
    CreditLimitChanged,
    MarketEntered,
    MarketExited,
    ExtensionChanged,
    RoleChanged,
)

# Configuration and logging
from .config import (
    ConfigError,
    RateModelSettings,
    MarketSettings,
    PoolSettings,
    parse_pool_settings,
    load_pool_settings,
    market_config,
    build_pool,
)
from .logging_setup import configure_logging


__all__ = [
    # Constants
    'WAD', 'FACTOR_SCALE', 'MAX', 'SYSTEM_WALLET', 'SECONDS_PER_YEAR',
    # Core types
    'PauseFlags', 'LiquidityCheckStatus', 'MarketConfig', 'Market', 'UserBorrow',
    'PriceOracle', 'RateModel', 'DeferredLiquidityCheckHandler', 'BalanceView',
    # Exceptions
    'PoolError', 'Unauthorized', 'MarketNotListed', 'MarketAlreadyListed', 'MarketPaused',
    'CapExceeded', 'InsufficientFunds', 'InsufficientCash', 'InsufficientBalance',
    'InsufficientReserves', 'InsufficientCollateral', 'NotLiquidatable',
    'CreditLimitExceeded', 'ProtocolMisuse', 'ReentrancyError', 'RepayTooMuch',
    'SelfLiquidation', 'ZeroAmount', 'CreditAccountRestricted', 'InvalidPrice',
    'InvalidConfiguration', 'AssetNotRegistered', 'ConfigError',
    # Collaborators
    'TripleSlopeRateModel', 'StaticPriceOracle', 'normalize_price',
    'TokenBank', 'TokenTransfer',
    # Ledger components
    'MarketBook', 'AccountRegistry', 'LiquidityEngine', 'LendingPool',
    # Views
    'SupplyTokenView', 'DebtTokenView', 'token_views',
    # Events
    'InterestAccrued', 'Supplied', 'Borrowed', 'Redeemed', 'Repaid', 'Liquidated',
    'SharesTransferred', 'ReservesIncreased', 'ReservesDecreased', 'MarketListed',
    'MarketDelisted', 'MarketConfigured', 'CreditLimitChanged', 'MarketEntered',
    'MarketExited', 'ExtensionChanged', 'RoleChanged',
    # Configuration
    'RateModelSettings', 'MarketSettings', 'PoolSettings', 'parse_pool_settings',
    'load_pool_settings', 'market_config', 'build_pool', 'configure_logging',
]
