"""
Vertical Interval

An interval is `[lower, upper]` where each bound is a level plus an offset.
A level is either a symbolic `SpecialLevel` (START / END) or a concrete
integer level. Bounds are ordered lexicographically on (level, offset) with
START < every integer level < END.

Intervals with lower > upper are representable (they can be built and
decoded); `is_valid()` and the validation pass report them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class SpecialLevel(Enum):
    """Symbolic vertical levels. Never compares equal to an integer level."""
    START = 0
    END = 1


Level = Union[SpecialLevel, int]


def level_key(level: Level, offset: int) -> Tuple[int, int, int]:
    """Sort key of a bound: START < any integer level < END, then offset."""
    if isinstance(level, SpecialLevel):
        rank = 0 if level is SpecialLevel.START else 2
        return (rank, 0, offset)
    return (1, level, offset)


def format_bound(level: Level, offset: int) -> str:
    name = level.name.capitalize() if isinstance(level, SpecialLevel) else str(level)
    return f"{name}{offset:+d}"


@dataclass(frozen=True)
class Interval:
    lower_level: Level = SpecialLevel.START
    upper_level: Level = SpecialLevel.END
    lower_offset: int = 0
    upper_offset: int = 0

    def __post_init__(self):
        for name in ("lower_level", "upper_level"):
            value = getattr(self, name)
            if isinstance(value, SpecialLevel):
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be a SpecialLevel or an int, got {type(value).__name__}")

    @classmethod
    def full(cls) -> "Interval":
        """[Start, End]"""
        return cls(SpecialLevel.START, SpecialLevel.END)

    @property
    def lower_key(self) -> Tuple[int, int, int]:
        return level_key(self.lower_level, self.lower_offset)

    @property
    def upper_key(self) -> Tuple[int, int, int]:
        return level_key(self.upper_level, self.upper_offset)

    def is_valid(self) -> bool:
        return self.lower_key <= self.upper_key

    def overlaps(self, other: "Interval") -> bool:
        return self.lower_key <= other.upper_key and other.lower_key <= self.upper_key

    def contains(self, other: "Interval") -> bool:
        return self.lower_key <= other.lower_key and other.upper_key <= self.upper_key

    def __str__(self) -> str:
        return (f"[{format_bound(self.lower_level, self.lower_offset)}, "
                f"{format_bound(self.upper_level, self.upper_offset)}]")
