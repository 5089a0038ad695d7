"""Configuration for Corex.

Reads from config/corex.ini if present, environment variables override.
Store credentials never checked into version control.
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path

_CONFIG_FILE = Path(__file__).resolve().parent.parent.parent / "config" / "corex.ini"

_FLOAT_FIELDS = {"upstream_connect_timeout", "upstream_read_timeout", "store_timeout"}


@dataclass(frozen=True)
class CorexConfig:
    """Service configuration. Immutable once loaded.

    Empty Redis credentials select the in-memory mapping store.
    """

    redis_rest_url: str = ""
    redis_rest_token: str = ""
    host: str = "0.0.0.0"
    port: int = 23480
    environment: str = "production"
    public_base_url: str = ""
    cors_origins: str = "*"
    upstream_connect_timeout: float = 10.0
    upstream_read_timeout: float = 30.0
    store_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def _coerce(config_key: str, val: str):
    if config_key == "port":
        return int(val)
    if config_key in _FLOAT_FIELDS:
        return float(val)
    return val


def load_config(config_path: Path | None = None) -> CorexConfig:
    """Load config from INI file, then override with environment variables."""
    path = config_path or _CONFIG_FILE
    kwargs: dict = {}

    if path.exists():
        parser = configparser.ConfigParser()
        parser.read(path)
        sections = {
            "store": [
                ("rest_url", "redis_rest_url"),
                ("rest_token", "redis_rest_token"),
                ("timeout", "store_timeout"),
            ],
            "server": [
                ("host", "host"),
                ("port", "port"),
                ("environment", "environment"),
                ("public_base_url", "public_base_url"),
                ("cors_origins", "cors_origins"),
                ("log_level", "log_level"),
            ],
            "upstream": [
                ("connect_timeout", "upstream_connect_timeout"),
                ("read_timeout", "upstream_read_timeout"),
            ],
        }
        for section, keys in sections.items():
            if not parser.has_section(section):
                continue
            for ini_key, config_key in keys:
                val = parser.get(section, ini_key, fallback=None)
                if val is not None:
                    kwargs[config_key] = _coerce(config_key, val)

    env_map = {
        "UPSTASH_REDIS_REST_URL": "redis_rest_url",
        "UPSTASH_REDIS_REST_TOKEN": "redis_rest_token",
        "COREX_HOST": "host",
        "PORT": "port",
        "COREX_ENV": "environment",
        "COREX_PUBLIC_BASE_URL": "public_base_url",
        "COREX_CORS_ORIGINS": "cors_origins",
        "COREX_UPSTREAM_CONNECT_TIMEOUT": "upstream_connect_timeout",
        "COREX_UPSTREAM_READ_TIMEOUT": "upstream_read_timeout",
        "COREX_STORE_TIMEOUT": "store_timeout",
        "COREX_LOG_LEVEL": "log_level",
    }
    for env_key, config_key in env_map.items():
        val = os.getenv(env_key)
        if val is not None:
            kwargs[config_key] = _coerce(config_key, val)

    kwargs = {k: v for k, v in kwargs.items() if v is not None}
    return CorexConfig(**kwargs)
