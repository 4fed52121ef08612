"""
HIR (high-level IR) program model

The whole user program as handed over by a front-end: stencils (one AST and
the fields they reference), stencil functions (ASTs, optionally specialized
per vertical interval, with field / direction / offset arguments) and the
global variable map.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from ..shared.errors import LookupFailureError
from ..shared.interval import Interval
from ..shared.nodes import AST, Field
from ..shared.source_location import SourceLocation, UNKNOWN_LOCATION
from ..utils.config import WIRE_INT_MAX, WIRE_INT_MIN


@dataclass(frozen=True)
class DirectionArgument:
    """Directional argument of a stencil function (bound to i, j or k on call)"""
    name: str
    location: SourceLocation = field(default=UNKNOWN_LOCATION, compare=False)


@dataclass(frozen=True)
class OffsetArgument:
    """Offset argument of a stencil function (bound to e.g. i+1 on call)"""
    name: str
    location: SourceLocation = field(default=UNKNOWN_LOCATION, compare=False)


StencilFunctionArg = Union[Field, DirectionArgument, OffsetArgument]


_GLOBAL_VALUE_KINDS = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "double"),
    (str, "string"),
)


def _comparable(value):
    # NaN compares unequal to itself; a NaN global still equals its decoded copy
    if isinstance(value, float) and math.isnan(value):
        return "nan"
    return value


@dataclass(frozen=True, eq=False)
class GlobalVariableValue:
    """
    Value of a HIR global variable: exactly one of bool, int, float or str.

    Compared by kind and value, so True and 1 are different values.
    """
    value: Union[bool, int, float, str]
    is_constexpr: bool = False

    def __post_init__(self):
        if self.kind is None:
            raise TypeError(f"unsupported global variable value type {type(self.value).__name__}")
        if self.kind == "integer" and not WIRE_INT_MIN <= self.value <= WIRE_INT_MAX:
            raise ValueError(f"integer global value {self.value} is outside the int32 range")

    @property
    def kind(self) -> Optional[str]:
        for python_type, name in _GLOBAL_VALUE_KINDS:
            if type(self.value) is python_type:
                return name
        return None

    def __eq__(self, other):
        if not isinstance(other, GlobalVariableValue):
            return NotImplemented
        return (self.kind, _comparable(self.value), self.is_constexpr) == \
            (other.kind, _comparable(other.value), other.is_constexpr)

    def __hash__(self):
        return hash((self.kind, _comparable(self.value), self.is_constexpr))


@dataclass
class HIRStencil:
    """User stencil: its body AST and the fields it references"""
    name: str
    ast: AST
    fields: List[Field] = field(default_factory=list)
    location: SourceLocation = field(default=UNKNOWN_LOCATION, compare=False)

    def get_field(self, name: str) -> Field:
        for f in self.fields:
            if f.name == name:
                return f
        raise LookupFailureError(f"stencil '{self.name}' has no field '{name}'", name)


@dataclass
class StencilFunction:
    """
    Stencil function: one AST, or one AST per vertical interval when the
    function is specialized (`intervals[i]` belongs to `asts[i]`).
    """
    name: str
    asts: List[AST] = field(default_factory=list)
    intervals: List[Interval] = field(default_factory=list)
    arguments: List[StencilFunctionArg] = field(default_factory=list)
    location: SourceLocation = field(default=UNKNOWN_LOCATION, compare=False)

    def __post_init__(self):
        if self.intervals and len(self.intervals) != len(self.asts):
            raise ValueError(
                f"stencil function '{self.name}' has {len(self.asts)} ASTs "
                f"but {len(self.intervals)} intervals"
            )

    @property
    def is_specialized(self) -> bool:
        return bool(self.intervals)

    def argument_index(self, name: str) -> int:
        for index, arg in enumerate(self.arguments):
            if arg.name == name:
                return index
        raise LookupFailureError(f"stencil function '{self.name}' has no argument '{name}'", name)

    def get_ast(self, interval: Optional[Interval] = None) -> AST:
        """AST used for `interval` (the only AST of an unspecialized function)"""
        if not self.is_specialized:
            if not self.asts:
                raise LookupFailureError(f"stencil function '{self.name}' has no body", self.name)
            return self.asts[0]
        for ast, candidate in zip(self.asts, self.intervals):
            if candidate == interval:
                return ast
        raise LookupFailureError(
            f"stencil function '{self.name}' is not specialized for interval {interval}", interval
        )


@dataclass
class HIR:
    """Root of the high-level IR"""
    filename: str = ""
    stencils: List[HIRStencil] = field(default_factory=list)
    stencil_functions: List[StencilFunction] = field(default_factory=list)
    global_variables: Dict[str, GlobalVariableValue] = field(default_factory=dict)

    def get_stencil(self, name: str) -> HIRStencil:
        for stencil in self.stencils:
            if stencil.name == name:
                return stencil
        raise LookupFailureError(f"no stencil named '{name}'", name)

    def get_stencil_function(self, name: str) -> StencilFunction:
        for function in self.stencil_functions:
            if function.name == name:
                return function
        raise LookupFailureError(f"no stencil function named '{name}'", name)
