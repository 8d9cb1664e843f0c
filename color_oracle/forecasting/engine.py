"""
Period engine - the prediction lifecycle state machine.

Tracks which period is being predicted, solicits a batch of forecasts ahead
of the actual result, detects a new actual by period identifier, reconciles
the outstanding batch exactly once and rotates into the next period.

State transitions (one call to tick()):

    UNINITIALIZED --first non-empty snapshot--> AWAITING_ACTUAL
    AWAITING_ACTUAL --new period id--> reconcile, re-solicit, AWAITING_ACTUAL
    AWAITING_ACTUAL --same period, batch already compared--> re-solicit

Every mutation works on a private copy of the ledger. The new ledger, period
marker, pending batch and cached snapshot are then published together as one
immutable EngineState, so readers see either the old state or the new one.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..ingest.normalizer import DEFAULT_LIMIT, ResultEntry, parse_outcome
from .categories import Category, canonical_color, category_of, color_of, size_of
from .ledger import DEFAULT_HISTORY_CAPACITY, PredictionLedger
from .predictors import SOURCE_FALLBACK, Forecast, PredictorPool

logger = logging.getLogger(__name__)

# fetch_snapshot(limit) -> newest-first entries, [] when unavailable
SnapshotSource = Callable[[int], List[ResultEntry]]


class InvalidActualError(Exception):
    """Raised when a reported actual outcome is not a digit 0-9."""
    pass


class EngineStatus(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    AWAITING_ACTUAL = "AWAITING_ACTUAL"


class TickAction(str, Enum):
    FEED_UNAVAILABLE = "feed_unavailable"
    INITIALIZED = "initialized"
    RECONCILED = "reconciled"
    RECOVERED = "recovered"
    IDLE = "idle"


@dataclass(frozen=True)
class PendingBatch:
    batch_id: int
    generated_at: str
    for_period_after: Optional[str]
    predictions: Tuple[Forecast, ...]
    compared_at: Optional[str] = None

    def mark_compared(self, timestamp: str) -> "PendingBatch":
        return replace(self, compared_at=timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "generated_at": self.generated_at,
            "for_period_after": self.for_period_after,
            "predictions": [p.to_dict() for p in self.predictions],
            "compared_at": self.compared_at,
        }


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of judging one batch against one actual."""
    batch_id: int
    period_id: Optional[str]
    outcome_number: int
    actual: Category
    wins: int
    judged: int
    compared_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "period_id": self.period_id,
            "outcome_number": self.outcome_number,
            "actual": self.actual.to_dict(),
            "wins": self.wins,
            "judged": self.judged,
            "compared_at": self.compared_at,
        }


@dataclass(frozen=True)
class EngineState:
    """Published engine state; never mutated after publication."""
    ledger: PredictionLedger
    period_marker: Optional[str] = None
    pending: Optional[PendingBatch] = None
    snapshot: Tuple[ResultEntry, ...] = ()
    last_reconciliation: Optional[Reconciliation] = None
    updated_at: Optional[str] = None

    @property
    def status(self) -> EngineStatus:
        if self.period_marker is None:
            return EngineStatus.UNINITIALIZED
        return EngineStatus.AWAITING_ACTUAL


@dataclass(frozen=True)
class TickResult:
    action: TickAction
    period_marker: Optional[str]
    judged: int = 0


@dataclass(frozen=True)
class ForceResult:
    batch: Optional[PendingBatch]
    snapshot: Tuple[ResultEntry, ...]


def actual_category(entry: ResultEntry) -> Category:
    """Feed color when it is a canonical color, otherwise derived; size always derived."""
    color = canonical_color(entry.color) or color_of(entry.outcome_number)
    return Category(color=color, size=size_of(entry.outcome_number))


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PeriodEngine:
    """Owns the ledger, period marker and pending batch."""

    def __init__(
        self,
        fetch_snapshot: SnapshotSource,
        pool: PredictorPool,
        ledger: Optional[PredictionLedger] = None,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        snapshot_limit: int = DEFAULT_LIMIT,
        clock: Callable[[], str] = _utc_now,
    ):
        if ledger is None:
            ledger = PredictionLedger(
                pool.slot_count,
                history_capacity,
                names=pool.names,
                key_present=[pool.has_backend(i) for i in range(1, pool.slot_count + 1)],
            )
        if ledger.slot_ids != list(range(1, pool.slot_count + 1)):
            raise ValueError("Ledger slots do not match predictor pool slots")

        self._fetch_snapshot = fetch_snapshot
        self.pool = pool
        self.snapshot_limit = snapshot_limit
        self._clock = clock
        self._publish_lock = threading.Lock()
        self._next_batch_id = 1
        self._state = EngineState(ledger=ledger)

    @property
    def state(self) -> EngineState:
        """Current published state; safe to read from any thread."""
        return self._state

    # ---- internals ----

    def _fetch(self) -> Tuple[ResultEntry, ...]:
        try:
            entries = self._fetch_snapshot(self.snapshot_limit)
        except Exception as e:
            logger.warning(f"Feed snapshot failed: {e}")
            return ()
        return tuple(entries[: self.snapshot_limit])

    def _publish(self, **changes: Any) -> EngineState:
        with self._publish_lock:
            self._state = replace(self._state, updated_at=self._clock(), **changes)
            return self._state

    def _solicit(self, ledger: PredictionLedger, snapshot: Sequence[ResultEntry]) -> PendingBatch:
        """Ask every slot for the next period and record the forecasts on `ledger`."""
        history = [entry.to_dict() for entry in snapshot]
        forecasts = self.pool.forecast_all(history)
        for forecast in forecasts:
            ledger.record_prediction(forecast.predictor_id, forecast.category)

        batch_id = self._next_batch_id
        self._next_batch_id += 1
        batch = PendingBatch(
            batch_id=batch_id,
            generated_at=self._clock(),
            for_period_after=snapshot[0].period_id if snapshot else None,
            predictions=tuple(forecasts),
        )
        logger.info(
            f"Batch {batch_id} solicited after period {batch.for_period_after} "
            f"({sum(1 for f in forecasts if f.source == SOURCE_FALLBACK)} fallback)"
        )
        return batch

    def _reconcile(
        self,
        ledger: PredictionLedger,
        pending: Optional[PendingBatch],
        actual: Category,
        outcome_number: int,
        period_id: Optional[str],
    ) -> Tuple[Optional[PendingBatch], Optional[Reconciliation]]:
        """Judge every slot holding a prediction, once per batch."""
        if pending is None or pending.compared_at is not None:
            logger.info(f"Period {period_id}: no uncompared batch, nothing to judge")
            return pending, None

        wins = 0
        judged = 0
        for slot_id in ledger.slot_ids:
            if ledger.record(slot_id).last_prediction is None:
                continue
            if ledger.judge(slot_id, actual):
                wins += 1
            judged += 1

        compared_at = self._clock()
        result = Reconciliation(
            batch_id=pending.batch_id,
            period_id=period_id,
            outcome_number=outcome_number,
            actual=actual,
            wins=wins,
            judged=judged,
            compared_at=compared_at,
        )
        logger.info(
            f"Period {period_id} = {outcome_number} ({actual.color}/{actual.size}): "
            f"{wins}/{judged} predictors correct"
        )
        return pending.mark_compared(compared_at), result

    # ---- operations ----

    def tick(self) -> TickResult:
        """Run one poll cycle. Never raises for feed or predictor failures."""
        snapshot = self._fetch()
        if not snapshot:
            logger.info("Feed unavailable, retrying next tick")
            return TickResult(TickAction.FEED_UNAVAILABLE, self._state.period_marker)

        state = self._state
        newest = snapshot[0]

        if state.period_marker is None:
            ledger = state.ledger.copy()
            pending = self._solicit(ledger, snapshot)
            self._publish(
                ledger=ledger,
                period_marker=newest.period_id,
                pending=pending,
                snapshot=snapshot,
            )
            logger.info(f"Engine initialized at period {newest.period_id}")
            return TickResult(TickAction.INITIALIZED, newest.period_id)

        if newest.period_id != state.period_marker:
            ledger = state.ledger.copy()
            _, reconciliation = self._reconcile(
                ledger,
                state.pending,
                actual_category(newest),
                newest.outcome_number,
                newest.period_id,
            )
            pending = self._solicit(ledger, snapshot)
            self._publish(
                ledger=ledger,
                period_marker=newest.period_id,
                pending=pending,
                snapshot=snapshot,
                last_reconciliation=reconciliation or state.last_reconciliation,
            )
            judged = reconciliation.judged if reconciliation else 0
            return TickResult(TickAction.RECONCILED, newest.period_id, judged)

        if state.pending is None or state.pending.compared_at is not None:
            # consumed by a manual report, or never solicited
            ledger = state.ledger.copy()
            pending = self._solicit(ledger, snapshot)
            self._publish(ledger=ledger, pending=pending, snapshot=snapshot)
            logger.warning(f"No outstanding batch at period {newest.period_id}, re-solicited")
            return TickResult(TickAction.RECOVERED, newest.period_id)

        self._publish(snapshot=snapshot)
        return TickResult(TickAction.IDLE, newest.period_id)

    def force_resolicit(self) -> ForceResult:
        """
        Fetch and solicit a fresh batch out of band.

        A new actual present in the snapshot is reconciled first so the
        outstanding batch is not lost. An empty feed changes nothing.

        Returns:
            ForceResult with the new batch (None if the feed was empty)
            and the snapshot used
        """
        snapshot = self._fetch()
        if not snapshot:
            logger.info("Forced re-solicitation skipped, feed unavailable")
            return ForceResult(batch=None, snapshot=())

        state = self._state
        newest = snapshot[0]
        ledger = state.ledger.copy()
        reconciliation = None

        if state.period_marker is not None and newest.period_id != state.period_marker:
            _, reconciliation = self._reconcile(
                ledger,
                state.pending,
                actual_category(newest),
                newest.outcome_number,
                newest.period_id,
            )

        pending = self._solicit(ledger, snapshot)
        self._publish(
            ledger=ledger,
            period_marker=newest.period_id,
            pending=pending,
            snapshot=snapshot,
            last_reconciliation=reconciliation or state.last_reconciliation,
        )
        return ForceResult(batch=pending, snapshot=snapshot)

    def report_actual(self, value: Any, period_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Reconcile the pending batch against a manually reported outcome.

        Args:
            value: Outcome digit 0-9 (int or numeric string)
            period_id: Period the outcome belongs to; becomes the marker

        Returns:
            Ranked predictor summaries after judging

        Raises:
            InvalidActualError: If value is not a digit 0-9 (no state change)
        """
        outcome = parse_outcome(value)
        if outcome is None:
            raise InvalidActualError(f"Actual must be a number 0-9, got {value!r}")

        state = self._state
        ledger = state.ledger.copy()
        compared, reconciliation = self._reconcile(
            ledger, state.pending, category_of(outcome), outcome, period_id
        )

        changes: Dict[str, Any] = {"ledger": ledger, "pending": compared}
        if reconciliation is not None:
            changes["last_reconciliation"] = reconciliation
        if period_id is not None:
            changes["period_marker"] = str(period_id)
        return self._publish(**changes).ledger.rank()
