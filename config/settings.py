"""
Configuration loader for the Kodi notifier.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass(frozen=True)
class KodiConfig:
    enable: bool = False
    json_rpc: str = "http://127.0.0.1:8080/jsonrpc"
    username: str = ""
    password: str = ""
    timeout: int = 5                  # seconds per request
    notify_interval: float = 60       # seconds between flush cycles
    max_attempts: int = 3             # failed sends before a task is dropped
    request_retries: int = 1          # transport attempts per call, 1 = no retry

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"kodi.timeout must be positive, got {self.timeout}")
        if self.notify_interval <= 0:
            raise ValueError(f"kodi.notify_interval must be positive, got {self.notify_interval}")
        if self.max_attempts < 1:
            raise ValueError(f"kodi.max_attempts must be at least 1, got {self.max_attempts}")
        if self.request_retries < 1:
            raise ValueError(f"kodi.request_retries must be at least 1, got {self.request_retries}")


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "console"           # "console" | "json"


@dataclass
class Settings:
    app_name: str = "kodi-notifier"
    log: LogConfig = field(default_factory=LogConfig)
    kodi: KodiConfig = field(default_factory=KodiConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "KODI_NOTIFIER_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)

        if "log" in raw:
            lg = raw["log"] or {}
            settings.log = LogConfig(
                level=str(lg.get("level", "INFO")).upper(),
                format=lg.get("format", "console"),
            )

        if "kodi" in raw:
            k = raw["kodi"] or {}
            defaults = KodiConfig()
            settings.kodi = KodiConfig(
                enable=_as_bool(k.get("enable", defaults.enable)),
                json_rpc=k.get("json_rpc", defaults.json_rpc),
                username=k.get("username", defaults.username),
                password=k.get("password", defaults.password),
                timeout=int(k.get("timeout", defaults.timeout)),
                notify_interval=float(k.get("notify_interval", defaults.notify_interval)),
                max_attempts=int(k.get("max_attempts", defaults.max_attempts)),
                request_retries=int(k.get("request_retries", defaults.request_retries)),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
