"""Normalize raw feed payloads into ordered ResultEntry lists.

Feed payloads have no stable shape. Locating the result array is an ordered
list of strategies; the first one that returns a list wins. Items that cannot
be mapped to an outcome 0-9 with a period identifier are dropped.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

# Checked in order by locate_conventional()
CONVENTIONAL_PATHS = (
    ("data", "list"),
    ("data", "records"),
    ("data",),
    ("list",),
    ("results",),
    ("result",),
    ("records",),
    ("items",),
    ("history",),
)

OUTCOME_FIELDS = ("number", "result", "outcome", "value", "digit", "num", "winningNumber")
PERIOD_FIELDS = ("issueNumber", "issue", "period", "periodId", "period_id", "drawId", "id")
COLOR_FIELDS = ("color", "colour")


@dataclass(frozen=True)
class ResultEntry:
    period_id: str
    outcome_number: int
    color: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "period_id": self.period_id,
            "outcome_number": self.outcome_number,
            "color": self.color,
        }


# ---- Array location strategies ----

def locate_top_level_list(payload: Any) -> Optional[list]:
    """The payload is itself the result array."""
    return payload if isinstance(payload, list) else None


def locate_conventional(payload: Any) -> Optional[list]:
    """Look for a list at one of the conventional nested locations."""
    if not isinstance(payload, dict):
        return None
    for path in CONVENTIONAL_PATHS:
        node = payload
        for key in path:
            if not isinstance(node, dict) or key not in node:
                node = None
                break
            node = node[key]
        if isinstance(node, list):
            return node
    return None


def locate_any_top_level_key(payload: Any) -> Optional[list]:
    """Fall back to the first list value among the top-level keys."""
    if not isinstance(payload, dict):
        return None
    for value in payload.values():
        if isinstance(value, list):
            return value
    return None


LOCATE_STRATEGIES: Sequence[Callable[[Any], Optional[list]]] = (
    locate_top_level_list,
    locate_conventional,
    locate_any_top_level_key,
)


def locate_results(payload: Any) -> Optional[list]:
    for strategy in LOCATE_STRATEGIES:
        found = strategy(payload)
        if found is not None:
            return found
    return None


# ---- Item mapping ----

def parse_outcome(raw: Any) -> Optional[int]:
    """Parse an outcome digit from int, integral float or numeric string."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not raw.is_integer():
            return None
        value = int(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            value = int(text)
        except ValueError:
            try:
                as_float = float(text)
            except ValueError:
                return None
            if not as_float.is_integer():
                return None
            value = int(as_float)
    else:
        return None
    return value if 0 <= value <= 9 else None


def _first_present(item: dict, fields: Sequence[str]) -> Any:
    for field in fields:
        if field in item and item[field] is not None and item[field] != "":
            return item[field]
    return None


def to_result_entry(item: Any) -> Optional[ResultEntry]:
    """Map one raw feed item to a ResultEntry, or None if it is unusable."""
    if not isinstance(item, dict):
        return None

    outcome = None
    for field in OUTCOME_FIELDS:
        if field in item:
            outcome = parse_outcome(item[field])
            if outcome is not None:
                break
    if outcome is None:
        return None

    period = _first_present(item, PERIOD_FIELDS)
    if period is None:
        return None

    color = _first_present(item, COLOR_FIELDS)
    if not isinstance(color, str) or not color.strip():
        color = None

    return ResultEntry(period_id=str(period), outcome_number=outcome, color=color)


def normalize_feed(payload: Any, limit: int = DEFAULT_LIMIT) -> List[ResultEntry]:
    """
    Convert a raw feed payload into at most `limit` ResultEntry objects.

    Feed order is preserved (assumed newest-first). An empty list means the
    feed is temporarily unavailable, not an error.

    Args:
        payload: Decoded JSON payload of unknown shape
        limit: Maximum number of entries to return

    Returns:
        List of ResultEntry, newest first
    """
    raw_items = locate_results(payload)
    if raw_items is None:
        logger.debug("No result array found in feed payload")
        return []

    entries = []
    for item in raw_items:
        entry = to_result_entry(item)
        if entry is None:
            continue
        entries.append(entry)
        if len(entries) >= limit:
            break

    if raw_items and not entries:
        logger.warning(f"Feed returned {len(raw_items)} item(s) but none could be parsed")

    return entries
