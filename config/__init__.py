# PATH: config/__init__.py
"""
Configuration loading utilities for LENDSIM.

Markets (one lending pool deployment per network) live in markets.yaml.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from eth_utils import is_address, to_checksum_address

from core.exceptions import ConfigError


CONFIG_DIR = Path(__file__).parent
DEFAULT_NETWORK = "polygon"


@dataclass(frozen=True)
class AssetConfig:
    """A reserve asset listed in a market."""
    symbol: str
    address: str
    decimals: int


@dataclass(frozen=True)
class MarketConfig:
    """Contract addresses and endpoints for one pool deployment."""
    network: str
    chain_id: int
    rpc_urls: List[str]
    pool: str
    pool_data_provider: str
    price_oracle: str
    timeout_seconds: int = 10
    assets: Dict[str, AssetConfig] = field(default_factory=dict)

    def get_asset(self, symbol_or_address: str) -> Optional[AssetConfig]:
        """Look up an asset by symbol or address (case-insensitive)."""
        key = symbol_or_address.upper()
        if key in self.assets:
            return self.assets[key]
        for asset in self.assets.values():
            if asset.address.lower() == symbol_or_address.lower():
                return asset
        return None


def load_yaml(filename: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory

    Returns:
        Parsed YAML as dict
    """
    filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise ConfigError(
            f"Config file not found: {filepath}",
            details={"path": str(filepath)},
        )

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_markets() -> Dict[str, Any]:
    """Load markets configuration."""
    return load_yaml("markets.yaml")


def _checked_address(network: str, name: str, value: Any) -> str:
    if not isinstance(value, str) or not is_address(value):
        raise ConfigError(
            f"Invalid {name} address for {network}: {value!r}",
            details={"network": network, "field": name},
        )
    return to_checksum_address(value)


def parse_market_config(network: str, raw: Dict[str, Any]) -> MarketConfig:
    """
    Build a MarketConfig from one markets.yaml entry.

    Raises:
        ConfigError: Missing fields or malformed addresses
    """
    missing = [
        key for key in ("chain_id", "rpc_urls", "pool", "pool_data_provider", "price_oracle")
        if key not in raw
    ]
    if missing:
        raise ConfigError(
            f"Market {network} is missing: {', '.join(missing)}",
            details={"network": network, "missing": missing},
        )

    assets = {}
    for symbol, entry in (raw.get("assets") or {}).items():
        assets[symbol.upper()] = AssetConfig(
            symbol=symbol.upper(),
            address=_checked_address(network, f"asset {symbol}", entry.get("address")),
            decimals=int(entry.get("decimals", 18)),
        )

    return MarketConfig(
        network=network,
        chain_id=int(raw["chain_id"]),
        rpc_urls=list(raw["rpc_urls"]),
        pool=_checked_address(network, "pool", raw["pool"]),
        pool_data_provider=_checked_address(network, "pool_data_provider", raw["pool_data_provider"]),
        price_oracle=_checked_address(network, "price_oracle", raw["price_oracle"]),
        timeout_seconds=int(raw.get("timeout_seconds", 10)),
        assets=assets,
    )


def get_market_config(network: str = DEFAULT_NETWORK) -> MarketConfig:
    """
    Get configuration for a specific network.

    Args:
        network: Network identifier (e.g., 'polygon')

    Returns:
        MarketConfig
    """
    markets = load_markets()
    if network not in markets:
        raise ConfigError(
            f"Unknown network: {network}",
            details={"network": network, "known": sorted(markets)},
        )
    return parse_market_config(network, markets[network])
