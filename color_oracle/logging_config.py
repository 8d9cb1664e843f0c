"""Shared logging configuration for the oracle service.

Call ``configure_from_settings()`` once at an entry point (CLI, ``python -m``
server) so the level and log directory follow config/oracle.yaml and the
ORACLE_LOG_* overrides. Configuration is idempotent: if the root logger
already has handlers, nothing changes.
"""

import logging
import os
from typing import Optional, Sequence, Union

from .config.settings import OracleSettings

LOG_FILENAME = "oracle.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request chatter: every OpenAI call (httpx) and every feed poll (urllib3)
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")


def parse_level(level: Union[int, str]) -> int:
    """Turn a level name ("debug", "WARNING") or number into a logging level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[str] = "logs",
    quiet_loggers: Sequence[str] = QUIET_LOGGERS,
) -> bool:
    """Configure the root logger with a console handler and, if log_dir is
    set, a file handler at <log_dir>/oracle.log.

    Returns:
        True if handlers were installed, False if logging was already configured
    """
    root = logging.getLogger()
    if root.handlers:
        return False

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    file_error = None
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            fh = logging.FileHandler(os.path.join(log_dir, LOG_FILENAME), mode="a")
            fh.setFormatter(formatter)
            root.addHandler(fh)
        except OSError as e:
            file_error = e

    root.setLevel(parse_level(level))
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    if file_error is not None:
        logging.getLogger(__name__).warning(
            f"File logging disabled, cannot write to {log_dir}: {file_error}"
        )
    return True


def configure_from_settings(settings: OracleSettings, verbose: bool = False) -> bool:
    """Configure logging from service settings; verbose forces DEBUG."""
    invalid_level = None
    if verbose:
        level = logging.DEBUG
    else:
        try:
            level = parse_level(settings.log_level)
        except ValueError:
            invalid_level = settings.log_level
            level = logging.INFO

    installed = configure_logging(level, settings.log_dir or None)
    if invalid_level is not None:
        logging.getLogger(__name__).warning(
            f"Unknown log_level {invalid_level!r}, using INFO"
        )
    return installed
