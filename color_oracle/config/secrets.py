"""
Secret management for predictor API keys.

Each predictor slot has its own key, PREDICTOR_KEY_<n>. A slot without a key
is not an error: it always answers with the random fallback.

Usage:
    from color_oracle.config.secrets import get_predictor_key

    key = get_predictor_key(3)  # None if not configured

CLI check:
    python -m color_oracle.config.secrets --check
"""

import os
import sys
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

# Find .env file - walk up from this file to repo root
_current = Path(__file__).resolve()
_repo_root = _current.parent.parent.parent  # color_oracle/config/secrets.py -> repo root
_env_path = _repo_root / ".env"

if _env_path.exists():
    load_dotenv(_env_path)
else:
    # Also try current working directory
    load_dotenv()


SLOT_KEY_TEMPLATE = "PREDICTOR_KEY_{}"
SHARED_KEY_NAME = "OPENAI_API_KEY"


class MissingAPIKeyError(Exception):
    """Raised when a required API key is not configured."""
    pass


def get_predictor_key(slot_id: int, share_default_key: bool = False) -> Optional[str]:
    """
    Get the API key for one predictor slot.

    Args:
        slot_id: Predictor slot number (1-based)
        share_default_key: Fall back to OPENAI_API_KEY when the slot has none

    Returns:
        The key, or None when the slot runs in fallback mode
    """
    key = os.environ.get(SLOT_KEY_TEMPLATE.format(slot_id), "").strip()
    if not key and share_default_key:
        key = os.environ.get(SHARED_KEY_NAME, "").strip()
    return key or None


def require_predictor_key(slot_id: int, share_default_key: bool = False) -> str:
    """
    Like get_predictor_key() but raises if the key is missing.

    Raises:
        MissingAPIKeyError: If no key is configured for the slot
    """
    key = get_predictor_key(slot_id, share_default_key)
    if not key:
        raise MissingAPIKeyError(
            f"{SLOT_KEY_TEMPLATE.format(slot_id)} not found. "
            "Copy .env.example to .env and add your key."
        )
    return key


def check_keys(slot_count: int, share_default_key: bool = False) -> Dict[str, str]:
    """
    Check which predictor keys are configured.

    Returns:
        dict: Status of each slot key ("OK" or "MISSING")
    """
    status = {}
    for slot_id in range(1, slot_count + 1):
        key = get_predictor_key(slot_id, share_default_key)
        status[SLOT_KEY_TEMPLATE.format(slot_id)] = "OK" if key else "MISSING"
    return status


def print_key_status(slot_count: int, share_default_key: bool = False) -> int:
    """Print per-slot key status; returns 1 when any slot is missing a key."""
    status = check_keys(slot_count, share_default_key)

    for key_name, key_status in status.items():
        print(f"{key_name}: {key_status}")

    missing = sum(1 for s in status.values() if s == "MISSING")
    if missing:
        print(f"\n{missing} slot(s) will use the random fallback.")
        print("To configure keys:")
        print("  1. Copy .env.example to .env")
        print("  2. Add PREDICTOR_KEY_<n> entries to .env")
        return 1

    print("\nAll keys configured.")
    return 0


if __name__ == "__main__":
    import argparse

    from .settings import load_settings

    parser = argparse.ArgumentParser(
        description="Check predictor API key configuration"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Check if predictor keys are configured"
    )

    args = parser.parse_args()

    if args.check:
        settings = load_settings()
        sys.exit(print_key_status(settings.slot_count, settings.share_default_key))
    else:
        parser.print_help()
