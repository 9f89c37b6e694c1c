# PATH: config/__init__.py
"""
Configuration loading for XARB.

Settings come from a YAML file (default: config/default.yaml); secrets and
RPC endpoints come from the environment, optionally seeded from a .env
file. Everything is read once at startup.

Environment:
    PRIVATE_KEY        signer key (not needed in monitor-only mode)
    CHAIN_A_RPC_URL    referenced from the YAML as ${CHAIN_A_RPC_URL}
    CHAIN_B_RPC_URL    referenced from the YAML as ${CHAIN_B_RPC_URL}
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from chains.providers import resolve_url
from core.exceptions import ConfigurationInvalid, ConfigurationMissing
from core.logging import get_logger
from core.models import ChainProfile, TradeSettings

logger = get_logger(__name__)

CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "default.yaml"

CHAIN_KEYS = ("chain_a", "chain_b")
PRIVATE_KEY_ENV = "PRIVATE_KEY"

REQUIRED_CHAIN_FIELDS = (
    "name",
    "chain_id",
    "rpc_urls",
    "router_address",
    "stablecoin_address",
    "bridge_address",
    "bridge_chain_id",
)
REQUIRED_TRADE_FIELDS = (
    "target_token_address",
    "trade_amount",
    "profit_threshold_percent",
)


@dataclass
class AppConfig:
    """Everything the bot needs to start."""
    chain_a: ChainProfile
    chain_b: ChainProfile
    settings: TradeSettings
    rpc_urls: Dict[str, List[str]] = field(default_factory=dict)  # Resolved, by chain name
    private_key: Optional[str] = field(default=None, repr=False)

    @property
    def chains(self) -> List[ChainProfile]:
        return [self.chain_a, self.chain_b]


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Raises:
        ConfigurationMissing: file does not exist
    """
    filepath = Path(path)
    if not filepath.exists():
        raise ConfigurationMissing(f"Config file not found: {filepath}", missing=[str(filepath)])

    with open(filepath, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationInvalid(f"Config root must be a mapping: {filepath}")
    return data


def _missing_fields(section: Dict[str, Any], required: tuple, prefix: str) -> List[str]:
    return [f"{prefix}.{key}" for key in required if section.get(key) in (None, "", [])]


def _parse_chain(key: str, raw: Dict[str, Any]) -> ChainProfile:
    try:
        kwargs: Dict[str, Any] = {
            "name": str(raw["name"]),
            "chain_id": int(raw["chain_id"]),
            "router_address": raw["router_address"],
            "stablecoin_address": raw["stablecoin_address"],
            "bridge_address": raw["bridge_address"],
            "bridge_chain_id": int(raw["bridge_chain_id"]),
            "target_token_address": raw.get("target_token_address"),
        }
        for optional in ("stablecoin_decimals", "target_decimals"):
            if raw.get(optional) is not None:
                kwargs[optional] = int(raw[optional])
    except (TypeError, ValueError) as e:
        raise ConfigurationInvalid(f"Invalid value in chains.{key}: {e}")
    return ChainProfile(**kwargs)


def _parse_decimal(raw: Dict[str, Any], key: str) -> Decimal:
    value = raw[key]
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        parsed = None
    if parsed is None or not parsed.is_finite():
        raise ConfigurationInvalid(
            f"Invalid value in trade_settings.{key}: {value!r} is not a number",
            details={"field": f"trade_settings.{key}", "value": str(value)},
        )
    return parsed


def _parse_trade_settings(raw: Dict[str, Any]) -> TradeSettings:
    kwargs: Dict[str, Any] = {
        "target_token_address": raw["target_token_address"],
        "trade_amount": _parse_decimal(raw, "trade_amount"),
        "profit_threshold_percent": _parse_decimal(raw, "profit_threshold_percent"),
    }
    if raw.get("estimated_fixed_cost") is not None:
        kwargs["estimated_fixed_cost"] = _parse_decimal(raw, "estimated_fixed_cost")
    for optional in ("slippage_tolerance_bps", "swap_deadline_seconds", "polling_interval_seconds"):
        if raw.get(optional) is not None:
            kwargs[optional] = raw[optional]

    try:
        for optional in ("slippage_tolerance_bps", "swap_deadline_seconds", "polling_interval_seconds"):
            if optional in kwargs:
                kwargs[optional] = int(kwargs[optional])
        return TradeSettings(**kwargs)
    except (TypeError, ValueError) as e:
        raise ConfigurationInvalid(f"Invalid value in trade_settings: {e}")


def load_config(
    path: Union[str, Path, None] = None,
    require_private_key: bool = True,
    env_file: Union[str, Path, None] = None,
) -> AppConfig:
    """
    Load and validate the full configuration.

    Args:
        path: YAML file (defaults to config/default.yaml)
        require_private_key: False in monitor-only mode
        env_file: .env file to seed the environment from; existing
            variables are never overridden

    Raises:
        ConfigurationMissing: file, section, field or env var absent
        ConfigurationInvalid: a present value cannot be parsed
    """
    load_dotenv(env_file, override=False)
    data = load_yaml(path or DEFAULT_CONFIG_PATH)

    missing: List[str] = []
    chains_raw = data.get("chains") or {}
    trade_raw = data.get("trade_settings")

    for key in CHAIN_KEYS:
        section = chains_raw.get(key)
        if not isinstance(section, dict):
            missing.append(f"chains.{key}")
            continue
        missing.extend(_missing_fields(section, REQUIRED_CHAIN_FIELDS, f"chains.{key}"))

    if not isinstance(trade_raw, dict):
        missing.append("trade_settings")
    else:
        missing.extend(_missing_fields(trade_raw, REQUIRED_TRADE_FIELDS, "trade_settings"))

    if missing:
        raise ConfigurationMissing(f"Missing configuration: {', '.join(missing)}", missing=missing)

    rpc_urls: Dict[str, List[str]] = {}
    profiles: Dict[str, ChainProfile] = {}
    for key in CHAIN_KEYS:
        section = chains_raw[key]
        profile = _parse_chain(key, section)
        raw_urls = section["rpc_urls"]
        if isinstance(raw_urls, str):
            raw_urls = [raw_urls]
        resolved = [u for u in (resolve_url(str(url)) for url in raw_urls) if u]
        if not resolved:
            missing.append(f"chains.{key}.rpc_urls (unresolved: {', '.join(map(str, raw_urls))})")
        profiles[key] = profile
        rpc_urls[profile.name] = resolved

    if profiles["chain_a"].name == profiles["chain_b"].name:
        raise ConfigurationInvalid(
            f"chains.chain_a and chains.chain_b share the name {profiles['chain_a'].name!r}"
        )

    private_key = os.getenv(PRIVATE_KEY_ENV) or None
    if require_private_key and private_key is None:
        missing.append(PRIVATE_KEY_ENV)

    if missing:
        raise ConfigurationMissing(f"Missing configuration: {', '.join(missing)}", missing=missing)

    settings = _parse_trade_settings(trade_raw)

    logger.info(
        "Configuration loaded",
        extra={"context": {
            "chain_a": profiles["chain_a"].name,
            "chain_b": profiles["chain_b"].name,
            "trade_amount": str(settings.trade_amount),
            "profit_threshold_percent": str(settings.profit_threshold_percent),
            "has_private_key": private_key is not None,
        }},
    )

    return AppConfig(
        chain_a=profiles["chain_a"],
        chain_b=profiles["chain_b"],
        settings=settings,
        rpc_urls=rpc_urls,
        private_key=private_key,
    )


__all__ = [
    "AppConfig",
    "CONFIG_DIR",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "load_yaml",
]
