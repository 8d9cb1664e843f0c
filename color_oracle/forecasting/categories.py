"""Color and size classification rules for feed outcomes.

All rules are defined for integer outcomes 0-9 only.
"""

from dataclasses import dataclass
from typing import Optional


RED = "Red"
GREEN = "Green"
VIOLET = "Violet"
BIG = "Big"
SMALL = "Small"

COLORS = (RED, GREEN, VIOLET)
SIZES = (BIG, SMALL)


@dataclass(frozen=True)
class Category:
    color: str
    size: str

    def matches(self, other: "Category") -> bool:
        """Both color and size must match (case-insensitive)."""
        return (
            self.color.lower() == other.color.lower()
            and self.size.lower() == other.size.lower()
        )

    def to_dict(self) -> dict:
        return {"color": self.color, "size": self.size}


def _check_outcome(n: int) -> None:
    if isinstance(n, bool) or not isinstance(n, int) or not 0 <= n <= 9:
        raise ValueError(f"Outcome must be an integer 0-9, got {n!r}")


def size_of(n: int) -> str:
    """Return "Big" for 5-9, "Small" for 0-4."""
    _check_outcome(n)
    return BIG if n >= 5 else SMALL


def color_of(n: int) -> str:
    """Return "Violet" for 9, "Red" for even outcomes, "Green" otherwise."""
    _check_outcome(n)
    if n == 9:
        return VIOLET
    if n % 2 == 0:
        return RED
    return GREEN


def category_of(n: int) -> Category:
    return Category(color=color_of(n), size=size_of(n))


def _canonical(text: Optional[str], vocabulary: tuple) -> Optional[str]:
    if not isinstance(text, str):
        return None
    needle = text.strip().lower()
    for word in vocabulary:
        if word.lower() == needle:
            return word
    return None


def canonical_color(text: Optional[str]) -> Optional[str]:
    """Map a color string onto Red/Green/Violet, or None if it is not one."""
    return _canonical(text, COLORS)


def canonical_size(text: Optional[str]) -> Optional[str]:
    """Map a size string onto Big/Small, or None if it is not one."""
    return _canonical(text, SIZES)
