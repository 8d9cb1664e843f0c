"""Read-only status projection of the published engine state."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .engine import EngineState


def build_status(state: EngineState, feed_health: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Assemble a JSON-safe status dict from one published EngineState.

    The state object is immutable once published, so everything here comes
    from a single consistent version.
    """
    return {
        "period_marker": state.period_marker,
        "engine_state": state.status.value,
        "cached_snapshot": [entry.to_dict() for entry in state.snapshot],
        "pending_batch": state.pending.to_dict() if state.pending else None,
        "last_reconciliation": (
            state.last_reconciliation.to_dict() if state.last_reconciliation else None
        ),
        "predictors": state.ledger.rank(),
        "feed": feed_health,
        "updated_at": state.updated_at,
        "server_timestamp": datetime.now(timezone.utc).isoformat(),
    }
