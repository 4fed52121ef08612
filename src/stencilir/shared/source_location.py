"""
Source Location

Line/column tag attached to AST, HIR and metadata nodes for diagnostics.
`(-1, -1)` is the sentinel for an unknown location. Locations never take part
in structural comparison of nodes.
"""

from dataclasses import dataclass

from ..utils.config import UNKNOWN_LINE, UNKNOWN_COLUMN


@dataclass(frozen=True)
class SourceLocation:
    """
    Source location (line, column).

    Both components are >= 1 for a known location, or both equal -1 for an
    unknown one. Immutable (frozen) for hashability.
    """
    line: int = UNKNOWN_LINE
    column: int = UNKNOWN_COLUMN

    @classmethod
    def unknown(cls) -> "SourceLocation":
        return cls(UNKNOWN_LINE, UNKNOWN_COLUMN)

    @property
    def is_valid(self) -> bool:
        return self.line >= 1 and self.column >= 1

    def __str__(self) -> str:
        """Format as line:column"""
        if not self.is_valid:
            return "<unknown location>"
        return f"{self.line}:{self.column}"


UNKNOWN_LOCATION = SourceLocation.unknown()
