"""
In-memory prediction ledger.

Tracks, per predictor slot, cumulative win/loss counts, a bounded
recent-outcome history and the single prediction awaiting judgement.
Only the period engine mutates a published ledger; everything else
reads summaries or works on a copy.
"""

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .categories import Category


DEFAULT_SLOT_COUNT = 10
DEFAULT_HISTORY_CAPACITY = 10


class LedgerError(Exception):
    """Raised when ledger operations fail."""
    pass


@dataclass
class LedgerRecord:
    id: int
    name: str
    wins: int = 0
    losses: int = 0
    recent_outcomes: List[int] = field(default_factory=list)  # most recent first
    last_prediction: Optional[Category] = None
    last_judgement: Optional[bool] = None
    key_present: bool = False  # False: slot always answers with the random fallback

    @property
    def judged(self) -> int:
        return self.wins + self.losses

    @property
    def accuracy(self) -> float:
        return self.wins / self.judged if self.judged > 0 else 0.0

    def summary(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "wins": self.wins,
            "losses": self.losses,
            "accuracy": self.accuracy,
            "recent_outcomes": list(self.recent_outcomes),
            "last_prediction": self.last_prediction.to_dict() if self.last_prediction else None,
            "last_judgement": self.last_judgement,
            "key_present": self.key_present,
        }


class PredictionLedger:
    """Win/loss bookkeeping for a fixed pool of predictor slots."""

    def __init__(
        self,
        slot_count: int = DEFAULT_SLOT_COUNT,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
        names: Optional[Sequence[str]] = None,
        key_present: Optional[Sequence[bool]] = None,
    ):
        if slot_count < 1:
            raise LedgerError(f"slot_count must be positive, got {slot_count}")
        if capacity < 1:
            raise LedgerError(f"capacity must be positive, got {capacity}")
        if names is not None and len(names) != slot_count:
            raise LedgerError(f"Expected {slot_count} names, got {len(names)}")
        if key_present is not None and len(key_present) != slot_count:
            raise LedgerError(f"Expected {slot_count} key flags, got {len(key_present)}")

        self.capacity = capacity
        self._records: Dict[int, LedgerRecord] = {}
        for i in range(1, slot_count + 1):
            name = names[i - 1] if names else f"AI-{i}"
            has_key = bool(key_present[i - 1]) if key_present else False
            self._records[i] = LedgerRecord(id=i, name=name, key_present=has_key)

    @property
    def slot_ids(self) -> List[int]:
        return sorted(self._records)

    def record(self, predictor_id: int) -> LedgerRecord:
        try:
            return self._records[predictor_id]
        except KeyError:
            raise LedgerError(f"Unknown predictor slot: {predictor_id}")

    def record_prediction(self, predictor_id: int, prediction: Category) -> None:
        """Overwrite the slot's pending prediction and clear its last judgement."""
        rec = self.record(predictor_id)
        rec.last_prediction = prediction
        rec.last_judgement = None

    def judge(self, predictor_id: int, actual: Category) -> bool:
        """
        Judge the slot's last prediction against an actual outcome.

        A win requires both color and size to match; partial matches are
        losses.

        Args:
            predictor_id: Slot identifier
            actual: Realized color/size of the period

        Returns:
            True if the prediction was a win

        Raises:
            LedgerError: If the slot is unknown or has nothing to judge
        """
        rec = self.record(predictor_id)
        if rec.last_prediction is None:
            raise LedgerError(f"Predictor {predictor_id} has no prediction to judge")

        win = rec.last_prediction.matches(actual)
        if win:
            rec.wins += 1
        else:
            rec.losses += 1

        rec.recent_outcomes.insert(0, 1 if win else 0)
        del rec.recent_outcomes[self.capacity:]
        rec.last_judgement = win
        return win

    def accuracy(self, predictor_id: int) -> float:
        return self.record(predictor_id).accuracy

    def summaries(self) -> List[Dict]:
        """Slot summaries in id order."""
        return [self._records[i].summary() for i in self.slot_ids]

    def rank(self) -> List[Dict]:
        """Slot summaries by accuracy descending, ties by id ascending."""
        return sorted(self.summaries(), key=lambda s: (-s["accuracy"], s["id"]))

    def copy(self) -> "PredictionLedger":
        return copy.deepcopy(self)
