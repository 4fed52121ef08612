"""
Primitive value model

Enumerations whose numeric values are part of the wire contract, and the
declared type of a local variable. Enum numbers must never be renumbered;
gaps (LoopOrder skips 2) are intentional.
"""

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Optional


class BuiltinTypeID(IntEnum):
    """Builtin scalar types of the DSL"""
    INVALID = 0
    AUTO = 1
    BOOLEAN = 2
    INTEGER = 3
    FLOAT = 4


class Dimension(IntEnum):
    """Spatial dimension of a directional stencil function argument"""
    I = 0
    J = 1
    K = 2
    INVALID = 3


class LoopOrder(IntEnum):
    """
    Vertical execution order.

    FORWARD: increasing k; BACKWARD: decreasing k; PARALLEL: no vertical
    dependency, the k-levels may be reordered. Wire value 2 is unassigned.
    Vertical regions only use FORWARD and BACKWARD.
    """
    FORWARD = 0
    BACKWARD = 1
    PARALLEL = 3


class StencilAttr(IntFlag):
    """Pragma-derived flags of an IIR stencil (stored as one bit-set)"""
    NONE = 0
    NO_CODE_GEN = 1 << 0
    MERGE_STAGES = 1 << 1
    MERGE_DO_METHODS = 1 << 2
    MERGE_TEMPORARIES = 1 << 3
    USE_K_CACHES = 1 << 4


@dataclass(frozen=True)
class Type:
    """
    Declared type of a variable.

    Exactly one of `name` (custom type) or `builtin` is set.
    """
    name: Optional[str] = None
    builtin: Optional[BuiltinTypeID] = None
    is_const: bool = False
    is_volatile: bool = False

    def __post_init__(self):
        if (self.name is None) == (self.builtin is None):
            raise ValueError("Type needs exactly one of a custom name or a builtin type id")

    @classmethod
    def of(cls, builtin: BuiltinTypeID, is_const: bool = False, is_volatile: bool = False) -> "Type":
        return cls(builtin=BuiltinTypeID(builtin), is_const=is_const, is_volatile=is_volatile)

    @classmethod
    def custom(cls, name: str, is_const: bool = False, is_volatile: bool = False) -> "Type":
        return cls(name=name, is_const=is_const, is_volatile=is_volatile)

    @property
    def is_builtin(self) -> bool:
        return self.builtin is not None

    def __str__(self) -> str:
        base = self.name if self.name is not None else self.builtin.name.lower()
        qualifiers = [q for q, on in (("const", self.is_const), ("volatile", self.is_volatile)) if on]
        return " ".join(qualifiers + [base])
