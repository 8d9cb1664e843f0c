"""
Predictor pool.

Each slot wraps an injected backend callable that returns raw model text.
Forecasts never fail from the caller's side: anything that goes wrong in a
slot (missing credential, network error, garbage output, timeout) degrades
to a random digit mapped through the category rules.
"""

import json
import logging
import random
import re
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .categories import (
    COLORS,
    SIZES,
    Category,
    canonical_color,
    canonical_size,
    category_of,
)

logger = logging.getLogger(__name__)

# backend(recent_history, predictor_name) -> raw text
Backend = Callable[[List[Dict[str, Any]], str], str]

DEFAULT_SLOT_TIMEOUT_SECONDS = 20.0

SOURCE_JSON = "json"
SOURCE_KEYWORDS = "keywords"
SOURCE_DIGIT = "digit"
SOURCE_FALLBACK = "fallback"

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")


@dataclass(frozen=True)
class Forecast:
    predictor_id: int
    color: str
    size: str
    source: str

    @property
    def category(self) -> Category:
        return Category(color=self.color, size=self.size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predictor_id": self.predictor_id,
            "color": self.color,
            "size": self.size,
            "source": self.source,
        }


def random_category(rng: random.Random) -> Category:
    return category_of(rng.randint(0, 9))


def parse_structured(text: str) -> Optional[Category]:
    """Strict JSON parse of {"color", "size"} or a {"prediction": digit} body."""
    body = text.strip()
    fenced = _FENCE_RE.match(body)
    if fenced:
        body = fenced.group(1)
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    color = canonical_color(data.get("color"))
    size = canonical_size(data.get("size"))
    if color and size:
        return Category(color=color, size=size)

    for key in ("prediction", "number"):
        digit = data.get(key)
        if isinstance(digit, bool):
            continue
        if isinstance(digit, str) and digit.strip().isdigit():
            digit = int(digit.strip())
        if isinstance(digit, int) and 0 <= digit <= 9:
            return category_of(digit)
    return None


def _earliest_word(haystack: str, vocabulary: Sequence[str]) -> Optional[str]:
    best = None
    best_pos = -1
    for word in vocabulary:
        # whole words only: "predicted" is not "red"
        match = re.search(rf"\b{re.escape(word.lower())}\b", haystack)
        if match and (best is None or match.start() < best_pos):
            best, best_pos = word, match.start()
    return best


def parse_keywords(text: str) -> Optional[Category]:
    """Case-insensitive search for a whole color word and size word anywhere."""
    lowered = text.lower()
    color = _earliest_word(lowered, COLORS)
    size = _earliest_word(lowered, SIZES)
    if color and size:
        return Category(color=color, size=size)
    return None


def parse_digit(text: str) -> Optional[Category]:
    match = _DIGIT_RE.search(text)
    if match:
        return category_of(int(match.group(0)))
    return None


INTERPRETERS: Sequence[Tuple[str, Callable[[str], Optional[Category]]]] = (
    (SOURCE_JSON, parse_structured),
    (SOURCE_KEYWORDS, parse_keywords),
    (SOURCE_DIGIT, parse_digit),
)


def interpret_response(text: Optional[str], rng: random.Random) -> Tuple[Category, str]:
    """
    Turn raw model output into a category, first match wins.

    Returns:
        Tuple of (category, source) where source names the rule that matched
    """
    if text:
        for source, interpreter in INTERPRETERS:
            category = interpreter(text)
            if category is not None:
                return category, source
    return random_category(rng), SOURCE_FALLBACK


class PredictorPool:
    """Fixed set of named predictor slots queried concurrently per batch."""

    def __init__(
        self,
        backends: Sequence[Optional[Backend]],
        names: Optional[Sequence[str]] = None,
        slot_timeout: float = DEFAULT_SLOT_TIMEOUT_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        if not backends:
            raise ValueError("PredictorPool needs at least one slot")
        if names is not None and len(names) != len(backends):
            raise ValueError(f"Expected {len(backends)} names, got {len(names)}")
        self._backends = list(backends)
        self.names = list(names) if names else [f"AI-{i}" for i in range(1, len(backends) + 1)]
        self.slot_timeout = slot_timeout
        self.rng = rng or random.Random()

    @property
    def slot_count(self) -> int:
        return len(self._backends)

    def has_backend(self, predictor_id: int) -> bool:
        return self._backends[predictor_id - 1] is not None

    def _fallback(self, predictor_id: int) -> Forecast:
        category = random_category(self.rng)
        return Forecast(predictor_id, category.color, category.size, SOURCE_FALLBACK)

    def forecast(self, predictor_id: int, recent_history: List[Dict[str, Any]]) -> Forecast:
        """Ask one slot for a forecast; never raises."""
        if not 1 <= predictor_id <= self.slot_count:
            raise ValueError(f"Unknown predictor slot: {predictor_id}")

        backend = self._backends[predictor_id - 1]
        if backend is None:
            return self._fallback(predictor_id)

        name = self.names[predictor_id - 1]
        try:
            text = backend(recent_history, name)
        except Exception as e:
            logger.warning(f"{name} backend failed, using fallback: {e}")
            return self._fallback(predictor_id)

        category, source = interpret_response(text, self.rng)
        if source == SOURCE_FALLBACK:
            logger.warning(f"{name} returned unparseable output, using fallback")
        return Forecast(predictor_id, category.color, category.size, source)

    def forecast_all(self, recent_history: List[Dict[str, Any]]) -> List[Forecast]:
        """
        Query every slot in parallel and wait for all of them.

        Slots still running after slot_timeout get a fallback forecast; the
        batch never waits longer than that.

        Returns:
            One Forecast per slot, ordered by predictor id
        """
        executor = ThreadPoolExecutor(
            max_workers=self.slot_count, thread_name_prefix="predictor"
        )
        try:
            futures = {
                executor.submit(self.forecast, i, recent_history): i
                for i in range(1, self.slot_count + 1)
            }
            done, _ = wait(futures, timeout=self.slot_timeout)

            results: Dict[int, Forecast] = {}
            for future, predictor_id in futures.items():
                if future in done:
                    results[predictor_id] = future.result()
                else:
                    logger.warning(
                        f"{self.names[predictor_id - 1]} timed out after "
                        f"{self.slot_timeout}s, using fallback"
                    )
                    results[predictor_id] = self._fallback(predictor_id)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return [results[i] for i in range(1, self.slot_count + 1)]
