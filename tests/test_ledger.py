"""
Tests for color_oracle/forecasting/ledger.py - in-memory prediction ledger.
"""

import pytest

from color_oracle.forecasting.categories import Category
from color_oracle.forecasting.ledger import LedgerError, PredictionLedger

RED_BIG = Category("Red", "Big")
GREEN_BIG = Category("Green", "Big")
RED_SMALL = Category("Red", "Small")
GREEN_SMALL = Category("Green", "Small")


@pytest.fixture
def ledger():
    return PredictionLedger(slot_count=3, capacity=4)


class TestConstruction:
    def test_default_names(self, ledger):
        assert [s["name"] for s in ledger.summaries()] == ["AI-1", "AI-2", "AI-3"]

    def test_custom_names(self):
        ledger = PredictionLedger(2, 5, names=["alpha", "beta"])
        assert ledger.record(2).name == "beta"

    def test_name_count_mismatch(self):
        with pytest.raises(LedgerError):
            PredictionLedger(2, 5, names=["alpha"])

    def test_key_present_in_summaries(self):
        ledger = PredictionLedger(3, 5, key_present=[True, False, True])
        assert [s["key_present"] for s in ledger.summaries()] == [True, False, True]

    def test_key_present_defaults_false(self, ledger):
        assert not any(s["key_present"] for s in ledger.summaries())

    def test_key_flag_count_mismatch(self):
        with pytest.raises(LedgerError):
            PredictionLedger(2, 5, key_present=[True])

    def test_invalid_sizes(self):
        with pytest.raises(LedgerError):
            PredictionLedger(0, 5)
        with pytest.raises(LedgerError):
            PredictionLedger(2, 0)


class TestRecordAndJudge:
    def test_identical_prediction_wins(self, ledger):
        ledger.record_prediction(1, RED_BIG)
        assert ledger.judge(1, Category("red", "big")) is True

        rec = ledger.record(1)
        assert rec.wins == 1
        assert rec.losses == 0
        assert rec.recent_outcomes == [1]
        assert rec.last_judgement is True

    @pytest.mark.parametrize("actual", [GREEN_BIG, RED_SMALL, GREEN_SMALL])
    def test_any_mismatch_loses(self, ledger, actual):
        ledger.record_prediction(1, RED_BIG)
        assert ledger.judge(1, actual) is False

        rec = ledger.record(1)
        assert rec.losses == 1
        assert rec.recent_outcomes == [0]

    def test_record_prediction_clears_judgement(self, ledger):
        ledger.record_prediction(2, RED_BIG)
        ledger.judge(2, RED_BIG)
        ledger.record_prediction(2, GREEN_SMALL)

        rec = ledger.record(2)
        assert rec.last_prediction == GREEN_SMALL
        assert rec.last_judgement is None
        assert rec.wins == 1

    def test_judge_without_prediction(self, ledger):
        with pytest.raises(LedgerError):
            ledger.judge(1, RED_BIG)

    def test_unknown_slot(self, ledger):
        with pytest.raises(LedgerError):
            ledger.record_prediction(9, RED_BIG)

    def test_recent_outcomes_capped_newest_first(self, ledger):
        ledger.record_prediction(1, RED_BIG)
        for actual in [RED_BIG, GREEN_BIG, RED_BIG, RED_BIG, GREEN_BIG, GREEN_BIG]:
            ledger.judge(1, actual)

        rec = ledger.record(1)
        assert rec.recent_outcomes == [0, 0, 1, 1]
        assert rec.wins + rec.losses == 6

    def test_accuracy(self, ledger):
        assert ledger.accuracy(1) == 0.0
        ledger.record_prediction(1, RED_BIG)
        ledger.judge(1, RED_BIG)
        ledger.judge(1, GREEN_BIG)
        ledger.judge(1, RED_BIG)
        assert ledger.accuracy(1) == pytest.approx(2 / 3)


class TestRank:
    def test_orders_by_accuracy(self, ledger):
        ledger.record_prediction(1, GREEN_BIG)
        ledger.record_prediction(2, RED_BIG)
        ledger.record_prediction(3, RED_BIG)
        for slot in (1, 2, 3):
            ledger.judge(slot, RED_BIG)
        ledger.record_prediction(3, GREEN_BIG)
        ledger.judge(3, RED_BIG)

        ranked = ledger.rank()
        assert [s["id"] for s in ranked] == [2, 3, 1]
        assert ranked[0]["accuracy"] == 1.0
        assert ranked[1]["accuracy"] == 0.5

    def test_ties_by_id(self, ledger):
        assert [s["id"] for s in ledger.rank()] == [1, 2, 3]

    def test_stable_under_reinvocation(self, ledger):
        ledger.record_prediction(3, RED_BIG)
        ledger.judge(3, RED_BIG)
        assert ledger.rank() == ledger.rank()


class TestCopy:
    def test_copy_is_independent(self, ledger):
        ledger.record_prediction(1, RED_BIG)
        clone = ledger.copy()
        clone.judge(1, RED_BIG)

        assert ledger.record(1).wins == 0
        assert clone.record(1).wins == 1
