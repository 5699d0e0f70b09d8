"""Pool configuration loader - reads a YAML pool description, validates, builds a pool."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .core import FACTOR_SCALE, MarketConfig, PauseFlags, PoolError, PriceOracle
from .oracle import StaticPriceOracle, normalize_price
from .pool import LendingPool
from .rate_model import TripleSlopeRateModel
from .token_bank import TokenBank

logger = logging.getLogger(__name__)


class ConfigError(PoolError):
    """Raised when a pool description is missing fields or holds invalid values."""
    pass


# ---------------------------------------------------------------------------
# Frozen settings dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateModelSettings:
    """Annualized rates and float kinks, as written in the file."""
    base: float = 0.0
    slope1: float = 0.0
    kink1: float = 0.8
    slope2: float = 0.0
    kink2: float = 0.9
    slope3: float = 0.0

    def build(self) -> TripleSlopeRateModel:
        return TripleSlopeRateModel.from_annual_rates(
            self.base, self.slope1, self.kink1, self.slope2, self.kink2, self.slope3)


@dataclass(frozen=True)
class MarketSettings:
    """Risk parameters in percent and caps in whole tokens."""
    rate_model: RateModelSettings = field(default_factory=RateModelSettings)
    collateral_factor: float = 0.0
    liquidation_threshold: float = 0.0
    liquidation_bonus: float = 100.0
    reserve_factor: float = 0.0
    supply_cap: int = 0
    borrow_cap: int = 0
    paused: Tuple[str, ...] = ()
    protected: bool = False


@dataclass(frozen=True)
class PoolSettings:
    owner: str = "admin"
    address: str = "pool"
    start_time: int = 0
    roles: Dict[str, str] = field(default_factory=dict)
    assets: Dict[str, int] = field(default_factory=dict)
    markets: Dict[str, MarketSettings] = field(default_factory=dict)
    prices: Dict[str, float] = field(default_factory=dict)


_ROLES = ("market_configurator", "credit_limit_manager", "reserve_manager")
_PAUSE_NAMES = {"supply": PauseFlags.SUPPLY, "borrow": PauseFlags.BORROW,
                "transfer": PauseFlags.TRANSFER}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _percent_to_bps(value: float) -> int:
    return int(round(float(value) * FACTOR_SCALE / 100))


def _parse_market(name: str, raw: Dict[str, Any]) -> MarketSettings:
    if not isinstance(raw, dict):
        raise ConfigError(f"market '{name}' must be a mapping")
    rate_raw = raw.get("rate_model", {}) or {}
    unknown = set(rate_raw) - set(RateModelSettings.__dataclass_fields__)
    if unknown:
        raise ConfigError(f"market '{name}': unknown rate model keys {sorted(unknown)}")
    paused = tuple(str(p).lower() for p in raw.get("paused", ()) or ())
    bad = [p for p in paused if p not in _PAUSE_NAMES]
    if bad:
        raise ConfigError(f"market '{name}': unknown pause flags {bad}")
    try:
        return MarketSettings(
            rate_model=RateModelSettings(**{k: float(v) for k, v in rate_raw.items()}),
            collateral_factor=float(raw.get("collateral_factor", 0)),
            liquidation_threshold=float(raw.get("liquidation_threshold", 0)),
            liquidation_bonus=float(raw.get("liquidation_bonus", 100)),
            reserve_factor=float(raw.get("reserve_factor", 0)),
            supply_cap=int(raw.get("supply_cap", 0)),
            borrow_cap=int(raw.get("borrow_cap", 0)),
            paused=paused,
            protected=bool(raw.get("protected", False)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"market '{name}': {e}") from e


def parse_pool_settings(raw: Dict[str, Any]) -> PoolSettings:
    """Validate a decoded pool description and return frozen settings."""
    if not isinstance(raw, dict):
        raise ConfigError("pool description must be a mapping")

    roles = dict(raw.get("roles", {}) or {})
    unknown_roles = set(roles) - set(_ROLES)
    if unknown_roles:
        raise ConfigError(f"unknown roles {sorted(unknown_roles)}")

    assets: Dict[str, int] = {}
    for asset, spec in (raw.get("assets", {}) or {}).items():
        decimals = spec.get("decimals", 18) if isinstance(spec, dict) else spec
        assets[str(asset)] = int(decimals)

    markets: Dict[str, MarketSettings] = {}
    for name, spec in (raw.get("markets", {}) or {}).items():
        if name not in assets:
            raise ConfigError(f"market '{name}' has no entry under assets")
        markets[str(name)] = _parse_market(name, spec)

    prices = {str(k): float(v) for k, v in (raw.get("prices", {}) or {}).items()}

    return PoolSettings(
        owner=str(raw.get("owner", "admin")),
        address=str(raw.get("address", "pool")),
        start_time=int(raw.get("start_time", 0)),
        roles={k: str(v) for k, v in roles.items()},
        assets=assets,
        markets=markets,
        prices=prices,
    )


def load_pool_settings(path: Union[str, Path]) -> PoolSettings:
    """Load and validate a YAML pool description."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    with open(config_path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    settings = parse_pool_settings(raw)
    logger.info("Configuration loaded from %s", config_path)
    return settings


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def market_config(settings: MarketSettings, decimals: int) -> MarketConfig:
    """Translate file units (percent, whole tokens) into a MarketConfig."""
    flags = PauseFlags.NONE
    for name in settings.paused:
        flags |= _PAUSE_NAMES[name]
    unit = 10 ** decimals
    return MarketConfig(
        rate_model=settings.rate_model.build(),
        initial_exchange_rate=unit,
        collateral_factor=_percent_to_bps(settings.collateral_factor),
        liquidation_threshold=_percent_to_bps(settings.liquidation_threshold),
        liquidation_bonus=_percent_to_bps(settings.liquidation_bonus),
        reserve_factor=_percent_to_bps(settings.reserve_factor),
        supply_cap=settings.supply_cap * unit,
        borrow_cap=settings.borrow_cap * unit,
        pause_flags=flags,
        is_protected=settings.protected,
    )


def build_pool(settings: PoolSettings, oracle: Optional[PriceOracle] = None,
               bank: Optional[TokenBank] = None) -> LendingPool:
    """
    Instantiate a LendingPool from settings.

    Registers every asset with the token bank, lists every market, hands out
    roles, and - when no oracle is given - seeds a StaticPriceOracle from the
    `prices` section.
    """
    bank = bank or TokenBank()
    if oracle is None:
        oracle = StaticPriceOracle()
        for asset, usd in settings.prices.items():
            if asset not in settings.assets:
                raise ConfigError(f"price given for unknown asset '{asset}'")
            oracle.set_price(asset, normalize_price(usd, settings.assets[asset]))

    for asset, decimals in settings.assets.items():
        if not bank.is_registered(asset):
            bank.register_asset(asset, decimals)

    pool = LendingPool(bank, oracle, owner=settings.owner, address=settings.address,
                       initial_time=settings.start_time)
    for name, market_settings in settings.markets.items():
        pool.list_market(name, market_config(market_settings, settings.assets[name]),
                         sender=settings.owner)

    setters = {
        "market_configurator": pool.set_market_configurator,
        "credit_limit_manager": pool.set_credit_limit_manager,
        "reserve_manager": pool.set_reserve_manager,
    }
    for role, holder in settings.roles.items():
        setters[role](holder, sender=settings.owner)
    return pool
