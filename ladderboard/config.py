"""
ladderboard.config — Environment / YAML Configuration Loader
==============================================================

Secrets (Riot API key, database URL, JWT secret) come from the environment,
usually via a ``.env`` file.  Sync tunables can be set either in the
environment or under a ``sync:`` mapping in an optional ``config.yaml``;
environment variables win.

Usage::

    from ladderboard.config import load_config

    cfg = load_config()               # reads ./config.yaml if present
    print(cfg.sync.max_attempts)      # 5
    print(cfg.riot.match_base_url)    # https://asia.api.riotgames.com/tft/match/v1
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_ACCOUNT_BASE_URL = "https://asia.api.riotgames.com/riot/account/v1/accounts/by-riot-id"
DEFAULT_LEAGUE_BASE_URL = "https://kr.api.riotgames.com/tft/league/v1/by-puuid"
DEFAULT_MATCH_BASE_URL = "https://asia.api.riotgames.com/tft/match/v1"


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RiotConfig:
    """Connection settings for the Riot API."""

    api_key: str = ""
    account_base_url: str = DEFAULT_ACCOUNT_BASE_URL
    league_base_url: str = DEFAULT_LEAGUE_BASE_URL
    match_base_url: str = DEFAULT_MATCH_BASE_URL
    timeout_seconds: float = 10.0


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Retry, pacing and retention tunables for the sync pipeline.

    All durations are seconds unless the name says otherwise.
    """

    # Retry / backoff
    max_attempts: int = 5
    backoff_base: float = 1.0
    backoff_cap: float = 16.0
    backoff_jitter: float = 0.3
    throttle_fallback: float = 30.0

    # Pacing
    match_count: int = 5
    match_delay: float = 1.2
    member_delay: float = 1.5

    # Cooldown between successful syncs of the same member
    cooldown_seconds: int = 600        # manual trigger
    batch_cooldown_seconds: int = 300  # batch / cron trigger

    # Batch selection
    batch_size: int = 10
    stale_after_seconds: int = 3600
    running_timeout_seconds: int = 1800

    # sync_logs retention
    success_log_retention_days: int = 7
    failure_log_retention_days: int = 30


@dataclass(frozen=True, slots=True)
class LadderConfig:
    """Immutable top-level configuration."""

    community_name: str = "Ladderboard"
    riot: RiotConfig = field(default_factory=RiotConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)


# ---------------------------------------------------------------------------
# Environment variable mapping:  env name → (field, converter)
# ---------------------------------------------------------------------------
def _ms(value: str) -> float:
    return float(value) / 1000.0


_RIOT_ENV: dict[str, tuple[str, Any]] = {
    "RIOT_API_KEY": ("api_key", str),
    "RIOT_ACCOUNT_BASE_URL": ("account_base_url", str),
    "RIOT_TFT_LEAGUE_BASE_URL": ("league_base_url", str),
    "RIOT_TFT_MATCH_BASE_URL": ("match_base_url", str),
    "RIOT_TIMEOUT_SECONDS": ("timeout_seconds", float),
}

_SYNC_ENV: dict[str, tuple[str, Any]] = {
    "RIOT_MAX_RETRY": ("max_attempts", int),
    "RIOT_BACKOFF_BASE_MS": ("backoff_base", _ms),
    "RIOT_BACKOFF_MAX_MS": ("backoff_cap", _ms),
    "RIOT_BACKOFF_JITTER_MS": ("backoff_jitter", _ms),
    "RIOT_429_DELAY_MS": ("throttle_fallback", _ms),
    "RIOT_MATCH_COUNT": ("match_count", int),
    "RIOT_MATCH_DETAIL_DELAY_MS": ("match_delay", _ms),
    "RIOT_MEMBER_DELAY_MS": ("member_delay", _ms),
    "SYNC_COOLDOWN_SECONDS": ("cooldown_seconds", int),
    "SYNC_BATCH_COOLDOWN_SECONDS": ("batch_cooldown_seconds", int),
    "SYNC_BATCH_SIZE": ("batch_size", int),
    "SYNC_STALE_AFTER_SECONDS": ("stale_after_seconds", int),
    "SYNC_RUNNING_TIMEOUT_SECONDS": ("running_timeout_seconds", int),
    "SYNC_LOG_SUCCESS_RETENTION_DAYS": ("success_log_retention_days", int),
    "SYNC_LOG_FAILURE_RETENTION_DAYS": ("failure_log_retention_days", int),
}


def _apply_env(
    values: dict[str, Any],
    mapping: dict[str, tuple[str, Any]],
    environ: Mapping[str, str],
) -> None:
    for env_name, (field_name, convert) in mapping.items():
        raw = environ.get(env_name)
        if raw is None or raw.strip() == "":
            continue
        try:
            values[field_name] = convert(raw.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid value for {env_name}: {raw!r}") from exc


def _whole(value: Any) -> int:
    # rejects 2.5 and True rather than truncating them
    return int(str(value).strip())


# YAML values are in the field's own unit (seconds, not ms): convert by field type.
_YAML_CONVERTERS: dict[str, Any] = {"int": _whole, "float": float, "str": str}


def _yaml_value(section: str, cls: type, key: str, value: Any) -> Any:
    fields = cls.__dataclass_fields__
    if key not in fields:
        raise ValueError(f"Unknown {section} setting in config.yaml: {key!r}")
    convert = _YAML_CONVERTERS[fields[key].type]
    try:
        return convert(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for {section}.{key} in config.yaml: {value!r}"
        ) from exc


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return raw


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(
    path: str | Path = "config.yaml",
    environ: Mapping[str, str] | None = None,
) -> LadderConfig:
    """Return a :class:`LadderConfig` built from defaults, *path* and the environment.

    Parameters
    ----------
    path:
        Optional YAML file.  A missing file is not an error.
    environ:
        Environment mapping; defaults to :data:`os.environ`.

    Raises
    ------
    ValueError
        If a YAML key or environment variable holds a value of the wrong type,
        or a tunable is out of range.
    """
    environ = os.environ if environ is None else environ
    raw = _read_yaml(Path(path))

    sync_values: dict[str, Any] = {}
    for key, value in (raw.get("sync") or {}).items():
        sync_values[key] = _yaml_value("sync", SyncConfig, key, value)

    riot_values: dict[str, Any] = {}
    for key, value in (raw.get("riot") or {}).items():
        if key == "api_key":
            raise ValueError("Put the Riot API key in RIOT_API_KEY, not config.yaml")
        riot_values[key] = _yaml_value("riot", RiotConfig, key, value)

    _apply_env(riot_values, _RIOT_ENV, environ)
    _apply_env(sync_values, _SYNC_ENV, environ)

    sync = SyncConfig(**sync_values)
    if sync.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    if sync.batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    return LadderConfig(
        community_name=str(raw.get("community_name") or "Ladderboard"),
        riot=RiotConfig(**riot_values),
        sync=sync,
    )
