"""
Load config from config.yaml with optional env overrides.
Single source of truth for provider priority, health thresholds, fetch and analysis defaults.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List

import yaml

# Defaults if no YAML or env
_DEFAULTS = {
    "providers": {
        "priority": ["binance", "kraken"],
        "http_timeout_s": 10.0,
        "binance_base_urls": [
            "https://api.binance.com/api/v3",
            "https://api.binance.us/api/v3",
            "https://data-api.binance.vision/api/v3",
        ],
    },
    "health": {"error_threshold": 3, "recovery_window_s": 300.0},
    "fetch": {
        "default_limit": 200,
        "max_failover_hops": 1,
        "snapshot_intervals": ["1m", "5m", "15m", "1h", "4h", "1d", "1w"],
        "snapshot_timeout_s": 10.0,
    },
    "analysis": {
        "swing_window": 5,
        "level_tolerance_pct": 0.005,
        "confluence_tolerance_pct": 0.005,
        "ema_periods": [9, 21, 50, 100, 200],
    },
    "cache": {"ttl_s": 60.0},
}


def _config_yaml_path() -> Path:
    """config.yaml lives at repo root (parent of package dir) unless CRYPTO_MTF_CONFIG points elsewhere."""
    override = os.environ.get("CRYPTO_MTF_CONFIG", "").strip()
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    config_path = _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    providers = os.environ.get("CRYPTO_MTF_PROVIDERS")
    if providers:
        names = [p.strip() for p in providers.split(",") if p.strip()]
        overrides.setdefault("providers", {})["priority"] = names
    timeout = os.environ.get("CRYPTO_MTF_SNAPSHOT_TIMEOUT")
    if timeout:
        overrides.setdefault("fetch", {})["snapshot_timeout_s"] = float(timeout)
    ttl = os.environ.get("CRYPTO_MTF_CACHE_TTL")
    if ttl:
        overrides.setdefault("cache", {})["ttl_s"] = float(ttl)
    return overrides


def get_config() -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml())
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def provider_priority() -> List[str]:
    return list(get_config()["providers"]["priority"])


def http_timeout_s() -> float:
    return float(get_config()["providers"]["http_timeout_s"])


def binance_base_urls() -> List[str]:
    return list(get_config()["providers"]["binance_base_urls"])


def error_threshold() -> int:
    return int(get_config()["health"]["error_threshold"])


def recovery_window_s() -> float:
    return float(get_config()["health"]["recovery_window_s"])


def default_limit() -> int:
    return int(get_config()["fetch"]["default_limit"])


def max_failover_hops() -> int:
    return int(get_config()["fetch"]["max_failover_hops"])


def snapshot_intervals() -> List[str]:
    return list(get_config()["fetch"]["snapshot_intervals"])


def snapshot_timeout_s() -> float:
    return float(get_config()["fetch"]["snapshot_timeout_s"])


def swing_window() -> int:
    return int(get_config()["analysis"]["swing_window"])


def level_tolerance_pct() -> float:
    return float(get_config()["analysis"]["level_tolerance_pct"])


def confluence_tolerance_pct() -> float:
    return float(get_config()["analysis"]["confluence_tolerance_pct"])


def ema_periods() -> List[int]:
    return [int(p) for p in get_config()["analysis"]["ema_periods"]]


def cache_ttl_s() -> float:
    return float(get_config()["cache"]["ttl_s"])
