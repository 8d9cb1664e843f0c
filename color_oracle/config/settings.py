"""
Service configuration.

Values come from config/oracle.yaml (if present) and can be overridden per
key with ORACLE_* environment variables. Missing file or keys fall back to
the defaults below.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config/oracle.yaml"


@dataclass
class OracleSettings:
    feed_url: str = "https://draw.ar-lottery01.com/WinGo/WinGo_1M/GetHistoryIssuePage.json"
    feed_params: Dict[str, Any] = field(default_factory=dict)
    feed_headers: Dict[str, str] = field(default_factory=dict)
    feed_limit_param: Optional[str] = "pageSize"
    feed_timeout_seconds: float = 10.0
    snapshot_limit: int = 10
    poll_interval_seconds: float = 30.0
    slot_count: int = 10
    history_capacity: int = 10
    slot_timeout_seconds: float = 20.0
    model: str = "gpt-4o-mini"
    model_timeout_seconds: float = 15.0
    share_default_key: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    static_dir: str = "public"
    host: str = "0.0.0.0"
    port: int = 8787
    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"  # "" logs to the console only


# env var -> settings attribute
ENV_OVERRIDES = {
    "ORACLE_FEED_URL": "feed_url",
    "ORACLE_FEED_TIMEOUT_SECONDS": "feed_timeout_seconds",
    "ORACLE_SNAPSHOT_LIMIT": "snapshot_limit",
    "ORACLE_POLL_INTERVAL_SECONDS": "poll_interval_seconds",
    "ORACLE_SLOT_COUNT": "slot_count",
    "ORACLE_HISTORY_CAPACITY": "history_capacity",
    "ORACLE_SLOT_TIMEOUT_SECONDS": "slot_timeout_seconds",
    "ORACLE_MODEL": "model",
    "ORACLE_MODEL_TIMEOUT_SECONDS": "model_timeout_seconds",
    "ORACLE_SHARE_DEFAULT_KEY": "share_default_key",
    "ORACLE_STATIC_DIR": "static_dir",
    "ORACLE_HOST": "host",
    "ORACLE_LOG_LEVEL": "log_level",
    "ORACLE_LOG_DIR": "log_dir",
    "PORT": "port",
}


def load_config_file(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load config/oracle.yaml.

    Args:
        path: Explicit path; when None the working directory and the repo
            root are searched

    Returns:
        Config dict or empty dict if no file was found
    """
    if path is not None:
        config_paths = [path]
    else:
        config_paths = [
            CONFIG_FILENAME,
            os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), CONFIG_FILENAME),
        ]

    for candidate in config_paths:
        if os.path.exists(candidate):
            try:
                with open(candidate, "r") as f:
                    return yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {candidate}: {e}")

    return {}


def _coerce(value: Any, default: Any) -> Any:
    """Coerce a raw (usually string) value to the type of the default."""
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


def load_settings(
    path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
) -> OracleSettings:
    """Build settings from defaults, the YAML file and environment overrides."""
    environ = os.environ if environ is None else environ
    settings = OracleSettings()
    known = {f.name for f in fields(OracleSettings)}

    for key, value in load_config_file(path).items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {key}")
            continue
        if value is None:
            continue
        setattr(settings, key, _coerce(value, getattr(settings, key)))

    for env_name, attr in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw.strip() == "":
            continue
        try:
            setattr(settings, attr, _coerce(raw, getattr(settings, attr)))
        except ValueError:
            logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")

    return settings
