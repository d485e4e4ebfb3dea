from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from config.defaults import DEFAULT_DISCORD_PREFIX
from config.defaults import DEFAULT_TELEGRAM_PREFIX
from config.defaults import DEFAULT_UPDATE_DELAY_SECONDS
from config.defaults import DEFAULT_UPDATE_LIMIT
from config.defaults import MIN_UPDATE_DELAY_SECONDS
from config.env import env_flag
from config.env import parse_id_set

BOT_DEFAULT_PREFIXES = {
    "discord": DEFAULT_DISCORD_PREFIX,
    "telegram": DEFAULT_TELEGRAM_PREFIX,
}


@dataclass(slots=True)
class BotSettings:
    enabled: bool = False
    prefix: str = "/"
    token: str = ""
    owners: set[str] = field(default_factory=set)


@dataclass(slots=True)
class RedditSettings:
    enabled: bool = False
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    user_name: str = ""

    def missing_params(self) -> list[str]:
        return [
            key
            for key in ("client_id", "client_secret", "refresh_token", "user_name")
            if not getattr(self, key)
        ]


@dataclass(slots=True)
class ApiConfig:
    bots: dict[str, BotSettings] = field(default_factory=dict)
    reddit: RedditSettings = field(default_factory=RedditSettings)

    def bot(self, name: str) -> BotSettings:
        settings = self.bots.get(name)
        if settings is None:
            settings = BotSettings(prefix=BOT_DEFAULT_PREFIXES.get(name, "/"))
            self.bots[name] = settings
        return settings


@dataclass(slots=True)
class UpdaterConfig:
    enabled: bool = True
    update_delay_sec: int = DEFAULT_UPDATE_DELAY_SECONDS
    limit: int = DEFAULT_UPDATE_LIMIT
    autosave: bool = True


def _read_yaml_mapping(path: str | Path | None, what: str) -> tuple[dict[str, Any] | None, str | None]:
    if not path:
        return (None, f"{what} path missing; using built-in defaults.")
    p = Path(path)
    if not p.exists():
        return (None, f"{what} file not found at {p}; using built-in defaults.")
    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (None, f"Failed to read {what} from {p}: {exc}; using built-in defaults.")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return (None, f"Invalid {what} format in {p}; using built-in defaults.")
    return (payload, None)


def _bot_settings(name: str, raw: Any) -> BotSettings:
    raw = raw if isinstance(raw, dict) else {}
    owners = raw.get("owners") or []
    if isinstance(owners, (list, tuple, set)):
        owner_ids = parse_id_set(",".join(str(o) for o in owners))
    else:
        owner_ids = parse_id_set(str(owners))
    return BotSettings(
        enabled=bool(raw.get("enabled", False)),
        prefix=str(raw.get("prefix") or BOT_DEFAULT_PREFIXES.get(name, "/")),
        token=str(raw.get("token") or ""),
        owners=owner_ids,
    )


def load_api_config(path: str | Path | None) -> tuple[ApiConfig, str | None]:
    """
    Returns (config, warning_message). warning_message is None on clean load.
    """
    payload, warning = _read_yaml_mapping(path, "API config")
    config = ApiConfig()
    if payload is None:
        for name in BOT_DEFAULT_PREFIXES:
            config.bot(name)
        return (config, warning)

    raw_bots = payload.get("bots") or {}
    if isinstance(raw_bots, dict):
        for name, raw in raw_bots.items():
            config.bots[str(name)] = _bot_settings(str(name), raw)
    for name in BOT_DEFAULT_PREFIXES:
        config.bot(name)

    raw_reddit = payload.get("reddit") or {}
    if isinstance(raw_reddit, dict):
        config.reddit = RedditSettings(
            enabled=bool(raw_reddit.get("enabled", False)),
            client_id=str(raw_reddit.get("client_id") or ""),
            client_secret=str(raw_reddit.get("client_secret") or ""),
            refresh_token=str(raw_reddit.get("refresh_token") or ""),
            user_name=str(raw_reddit.get("user_name") or ""),
        )
    return (config, None)


def apply_env_overrides(config: ApiConfig, environ: Mapping[str, str] | None = None) -> ApiConfig:
    """Tokens and owner ids from the environment win over the config file."""
    env = os.environ if environ is None else environ
    for name in list(config.bots):
        upper = name.upper()
        token = (env.get(f"{upper}_TOKEN") or "").strip()
        if token:
            config.bots[name].token = token
        owners = parse_id_set(env.get(f"GAMEFEEDER_{upper}_OWNERS"))
        if owners:
            config.bots[name].owners = owners
        config.bots[name].enabled = env_flag(f"GAMEFEEDER_{upper}_ENABLED", config.bots[name].enabled, env)

    secret = (env.get("REDDIT_CLIENT_SECRET") or "").strip()
    if secret:
        config.reddit.client_secret = secret
    refresh = (env.get("REDDIT_REFRESH_TOKEN") or "").strip()
    if refresh:
        config.reddit.refresh_token = refresh
    return config


def load_updater_config(path: str | Path | None) -> tuple[UpdaterConfig, str | None]:
    payload, warning = _read_yaml_mapping(path, "Updater config")
    if payload is None:
        return (UpdaterConfig(), warning)

    defaults = UpdaterConfig()
    try:
        delay = int(payload.get("update_delay_sec", defaults.update_delay_sec))
        limit = int(payload.get("limit", defaults.limit))
    except (TypeError, ValueError) as exc:
        return (defaults, f"Invalid updater config values: {exc}; using built-in defaults.")

    return (
        UpdaterConfig(
            enabled=bool(payload.get("enabled", defaults.enabled)),
            update_delay_sec=max(MIN_UPDATE_DELAY_SECONDS, delay),
            limit=max(1, limit),
            autosave=bool(payload.get("autosave", defaults.autosave)),
        ),
        None,
    )
