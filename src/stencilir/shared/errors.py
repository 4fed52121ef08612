"""
Error Reporting

Diagnostics (`Error`, `ErrorReporter`) and the exception hierarchy raised by
the IR layer. Every exception carries enough context (offending ID, field or
location) for the caller to build its own diagnostic.
"""

import os
from dataclasses import dataclass
from typing import Optional, List, Iterable
from .source_location import SourceLocation
from ..utils.config import NO_COLOR_ENV, COLOR_ENV


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get(NO_COLOR_ENV):
        return False
    explicit = os.environ.get(COLOR_ENV, "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return True

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_RESET  = "\033[0m"

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


# ---------------------------------------------------------------------------
# Diagnostic codes
# ---------------------------------------------------------------------------

MALFORMED_ENCODING = "E0100"
UNKNOWN_VARIANT = "E0101"
INVARIANT_VIOLATION = "E0200"
LOOKUP_FAILURE = "E0300"


# ---------------------------------------------------------------------------
# Error dataclass
# ---------------------------------------------------------------------------

@dataclass
class Error:
    """One diagnostic: message, optional location and code, optional help/note."""
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    note: Optional[str] = None


def _format_diagnostic(error: Error, color: bool = False) -> str:
    """
    Render a single diagnostic.

    Example output (plain, no color)::

        error[E0200]: interval lower bound End+1 is above upper bound Start+0
         --> 12:3
          = note: DoMethod 7
    """
    out: List[str] = []
    code_str = f"[{error.code}]" if error.code else ""
    out.append(
        _style(f"error{code_str}", _BOLD, _RED, color=color)
        + _style(f": {error.message}", _BOLD, color=color)
    )
    location = error.location if error.location is not None else SourceLocation.unknown()
    out.append(_style(" --> ", _BOLD, _BLUE, color=color) + str(location))
    for kind, text in (("help", error.help), ("note", error.note)):
        if text:
            out.append(
                _style("  = ", _BOLD, _CYAN, color=color)
                + _style(f"{kind}: ", _BOLD, color=color)
                + text
            )
    return "\n".join(out)


# ---------------------------------------------------------------------------
# ErrorReporter
# ---------------------------------------------------------------------------

class ErrorReporter:
    """Collects diagnostics so a pass can report every problem at once."""

    def __init__(self):
        self.errors: List[Error] = []

    def report_error(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[str] = None,
        help: Optional[str] = None,
        note: Optional[str] = None,
    ) -> None:
        self.errors.append(Error(message=message, location=location, code=code, help=help, note=note))

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        return _format_diagnostic(error, color=use_color)

    def format_all_errors(self, color: Optional[bool] = None) -> str:
        parts = [self.format_error(e, color=color) for e in self.errors]
        count = len(self.errors)
        parts.append(f"{count} error{'s' if count != 1 else ''} reported")
        return "\n\n".join(parts)

    def has_errors(self) -> bool:
        return len(self.errors) > 0


# ============================================================================
# Exception Classes
# ============================================================================

class StencilIRError(Exception):
    """Base exception for all stencilir errors"""
    code = "E0001"

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self):
        if self.location is not None and self.location.is_valid:
            return f"error[{self.code}]: {self.message}\n --> {self.location}"
        return f"error[{self.code}]: {self.message}"


class MalformedEncodingError(StencilIRError):
    """Bytes (or JSON text) do not parse as the declared wire schema."""
    code = MALFORMED_ENCODING


class UnknownVariantError(MalformedEncodingError):
    """
    A tagged union was decoded with zero or several branches present, or an
    enum carries a number outside its known set.
    """
    code = UNKNOWN_VARIANT

    def __init__(self, union: str, path: str, present: Iterable[str] = (), detail: Optional[str] = None):
        present = list(present)
        if detail is None:
            if present:
                detail = f"{len(present)} branches present ({', '.join(present)})"
            else:
                detail = "no known branch present"
        super().__init__(f"{union} at '{path}': {detail}")
        self.union = union
        self.path = path
        self.present = present


class InvariantViolationError(StencilIRError):
    """A structurally valid object violates a domain invariant."""
    code = INVARIANT_VIOLATION

    def __init__(self, message: str, location: Optional[SourceLocation] = None,
                 violations: Optional[List[Error]] = None):
        super().__init__(message, location)
        self.violations: List[Error] = violations if violations is not None else [
            Error(message=message, location=location, code=INVARIANT_VIOLATION)
        ]

    @classmethod
    def from_reporter(cls, reporter: ErrorReporter) -> "InvariantViolationError":
        first = reporter.errors[0]
        count = len(reporter.errors)
        message = first.message if count == 1 else f"{first.message} (and {count - 1} more)"
        return cls(message, first.location, list(reporter.errors))


class LookupFailureError(StencilIRError, LookupError):
    """Query for an AccessID or name not present in the active metadata tables."""
    code = LOOKUP_FAILURE

    def __init__(self, message: str, key=None):
        super().__init__(message)
        self.key = key
