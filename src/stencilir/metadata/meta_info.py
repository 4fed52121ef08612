"""
StencilMetaInfo: symbol table of one compilation unit

Maps AccessIDs to names (literals live in their own namespace), classifies
AccessIDs (API field, temporary field, global variable, literal), keeps the
field versions, the stencil description (the user's top-level statements
after lowering), the generated stencil calls and boundary conditions, the
user-declared legal dimensions of every field and the values of the global
variables.

Tables are plain dicts and lists so the persistence layer and optimizer
passes can read them directly; the methods below are the checked way to
fill and query them. Consistency across tables is reported by the
validation pass, not enforced on every mutation.
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Sequence, Tuple, Union

from ..shared.errors import InvariantViolationError, LookupFailureError
from ..shared.nodes import BoundaryConditionDeclaration, Statement, StencilCall, StencilCallDeclaration
from ..shared.source_location import SourceLocation, UNKNOWN_LOCATION
from ..utils.config import DEFAULT_FIELD_DIMENSIONS, NUM_DIMENSIONS, WIRE_INT_MAX, WIRE_INT_MIN
from .versioning import VariableVersions


class GlobalValueType(IntEnum):
    BOOLEAN = 0
    INTEGER = 1
    DOUBLE = 2


_PYTHON_TYPES = {
    GlobalValueType.BOOLEAN: bool,
    GlobalValueType.INTEGER: int,
    GlobalValueType.DOUBLE: float,
}


@dataclass(frozen=True, eq=False)
class GlobalValue:
    """
    Typed value of a global variable, possibly unset.

    An unset global (value None) stays distinct from one set to zero; the
    wire format carries the set flag explicitly.
    """
    type: GlobalValueType
    value: Union[bool, int, float, None] = None

    def __post_init__(self):
        value_type = GlobalValueType(self.type)
        object.__setattr__(self, 'type', value_type)
        if self.value is not None:
            object.__setattr__(self, 'value', _PYTHON_TYPES[value_type](self.value))
        if value_type is GlobalValueType.INTEGER and self.value is not None \
                and not WIRE_INT_MIN <= self.value <= WIRE_INT_MAX:
            raise ValueError(f"integer global value {self.value} is outside the int32 range")

    @classmethod
    def unset(cls, value_type: GlobalValueType) -> "GlobalValue":
        return cls(value_type)

    @classmethod
    def of(cls, value: Union[bool, int, float]) -> "GlobalValue":
        """Set value whose type follows the Python type (bool before int)"""
        if isinstance(value, bool):
            return cls(GlobalValueType.BOOLEAN, value)
        if isinstance(value, int):
            return cls(GlobalValueType.INTEGER, value)
        if isinstance(value, float):
            return cls(GlobalValueType.DOUBLE, value)
        raise TypeError(f"a global value is a bool, int or float, got {type(value).__name__}")

    @property
    def is_set(self) -> bool:
        return self.value is not None

    def _key(self):
        # NaN compares unequal to itself; a NaN global still equals its decoded copy
        if isinstance(self.value, float) and math.isnan(self.value):
            return (self.type, "nan")
        return (self.type, self.value)

    def __eq__(self, other):
        if not isinstance(other, GlobalValue):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __str__(self) -> str:
        shown = "<unset>" if self.value is None else repr(self.value)
        return f"{self.type.name.lower()} {shown}"


@dataclass
class StencilDescStatement:
    """Top-level statement of the stencil description with the stencil calls that led to it"""
    stmt: Statement
    stack_trace: List[StencilCall] = field(default_factory=list)


def _append_unique(ids: List[int], access_id: int) -> None:
    if access_id not in ids:
        ids.append(access_id)


class StencilMetaInfo:
    def __init__(self, stencil_name: str = "", file_name: str = "",
                 stencil_location: SourceLocation = UNKNOWN_LOCATION):
        self.stencil_name = stencil_name
        self.file_name = file_name
        self.stencil_location = stencil_location

        self.access_id_to_name: Dict[int, str] = {}
        self.literal_id_to_name: Dict[int, str] = {}
        self.field_access_ids: List[int] = []
        self.api_field_ids: List[int] = []
        self.temporary_field_ids: List[int] = []
        self.global_variable_ids: List[int] = []
        self.variable_versions = VariableVersions()
        self.stencil_desc_statements: List[StencilDescStatement] = []
        self.id_to_stencil_call: Dict[int, StencilCallDeclaration] = {}
        self.boundary_conditions: Dict[str, BoundaryConditionDeclaration] = {}
        self.field_id_to_legal_dimensions: Dict[int, Tuple[int, int, int]] = {}
        self.global_variable_values: Dict[str, GlobalValue] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def set_access_id_name(self, access_id: int, name: str) -> None:
        """Bind `name` to `access_id`; a name is bound to one non-literal AccessID only"""
        for other_id, other_name in self.access_id_to_name.items():
            if other_name == name and other_id != access_id:
                raise InvariantViolationError(f"name '{name}' is already bound to AccessID {other_id}")
        self.access_id_to_name[access_id] = name

    def add_field(self, access_id: int, name: str, is_temporary: bool = False,
                  legal_dimensions: Sequence[int] = DEFAULT_FIELD_DIMENSIONS) -> None:
        self.set_access_id_name(access_id, name)
        _append_unique(self.field_access_ids, access_id)
        _append_unique(self.temporary_field_ids if is_temporary else self.api_field_ids, access_id)
        dims = tuple(int(d) for d in legal_dimensions)
        if len(dims) != NUM_DIMENSIONS:
            raise ValueError(f"legal dimensions need {NUM_DIMENSIONS} entries, got {len(dims)}")
        self.field_id_to_legal_dimensions[access_id] = dims  # type: ignore[assignment]

    def add_variable(self, access_id: int, name: str) -> None:
        """Local variable: only named, not classified"""
        self.set_access_id_name(access_id, name)

    def add_global_variable(self, access_id: int, name: str, value: GlobalValue) -> None:
        self.set_access_id_name(access_id, name)
        _append_unique(self.global_variable_ids, access_id)
        self.global_variable_values[name] = value

    def add_literal(self, access_id: int, text: str) -> None:
        if access_id in self.access_id_to_name:
            raise InvariantViolationError(f"literal AccessID {access_id} is already a named AccessID")
        self.literal_id_to_name[access_id] = text

    def add_stencil_desc_statement(self, stmt: Statement,
                                   stack_trace: Sequence[StencilCall] = ()) -> StencilDescStatement:
        desc = StencilDescStatement(stmt, list(stack_trace))
        self.stencil_desc_statements.append(desc)
        return desc

    def add_stencil_call(self, stencil_id: int, declaration: StencilCallDeclaration) -> None:
        self.id_to_stencil_call[stencil_id] = declaration

    def add_boundary_condition(self, field_name: str, declaration: BoundaryConditionDeclaration) -> None:
        self.boundary_conditions[field_name] = declaration

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_name_from_access_id(self, access_id: int) -> str:
        try:
            return self.access_id_to_name[access_id]
        except KeyError:
            raise LookupFailureError(f"unknown AccessID {access_id}", access_id) from None

    def get_name_from_literal_id(self, access_id: int) -> str:
        try:
            return self.literal_id_to_name[access_id]
        except KeyError:
            raise LookupFailureError(f"unknown literal AccessID {access_id}", access_id) from None

    def get_access_id_from_name(self, name: str) -> int:
        for access_id, candidate in self.access_id_to_name.items():
            if candidate == name:
                return access_id
        raise LookupFailureError(f"no AccessID named '{name}'", name)

    def has_name(self, name: str) -> bool:
        return name in self.access_id_to_name.values()

    def has_access_id(self, access_id: int) -> bool:
        return access_id in self.access_id_to_name or access_id in self.literal_id_to_name

    def is_field(self, access_id: int) -> bool:
        return access_id in self.field_access_ids

    def is_api_field(self, access_id: int) -> bool:
        return access_id in self.api_field_ids

    def is_temporary_field(self, access_id: int) -> bool:
        return access_id in self.temporary_field_ids

    def is_global_variable(self, access_id: int) -> bool:
        return access_id in self.global_variable_ids

    def is_literal(self, access_id: int) -> bool:
        return access_id in self.literal_id_to_name

    def legal_dimensions(self, access_id: int) -> Tuple[int, int, int]:
        try:
            return self.field_id_to_legal_dimensions[access_id]
        except KeyError:
            raise LookupFailureError(f"no legal dimensions for AccessID {access_id}", access_id) from None

    def legal_dimensions_of(self, field_name: str) -> Tuple[int, int, int]:
        return self.legal_dimensions(self.get_access_id_from_name(field_name))

    def global_value(self, name: str) -> GlobalValue:
        try:
            return self.global_variable_values[name]
        except KeyError:
            raise LookupFailureError(f"no global variable named '{name}'", name) from None

    def is_global_set(self, name: str) -> bool:
        return self.global_value(name).is_set

    def get_stencil_call(self, stencil_id: int) -> StencilCallDeclaration:
        try:
            return self.id_to_stencil_call[stencil_id]
        except KeyError:
            raise LookupFailureError(f"no stencil call for stencil ID {stencil_id}", stencil_id) from None

    def get_boundary_condition(self, field_name: str) -> BoundaryConditionDeclaration:
        try:
            return self.boundary_conditions[field_name]
        except KeyError:
            raise LookupFailureError(f"no boundary condition for field '{field_name}'", field_name) from None

    def all_access_ids(self) -> List[int]:
        """Every AccessID mentioned by any table, literals included"""
        ids = dict.fromkeys(self.access_id_to_name)
        ids.update(dict.fromkeys(self.literal_id_to_name))
        for table in (self.field_access_ids, self.api_field_ids, self.temporary_field_ids,
                      self.global_variable_ids, self.field_id_to_legal_dimensions):
            ids.update(dict.fromkeys(table))
        ids.update(dict.fromkeys(self.variable_versions.all_ids()))
        return list(ids)

    def _key(self):
        return (
            self.stencil_name, self.file_name, self.stencil_location,
            self.access_id_to_name, self.literal_id_to_name,
            self.field_access_ids, self.api_field_ids, self.temporary_field_ids, self.global_variable_ids,
            self.variable_versions, self.stencil_desc_statements, self.id_to_stencil_call,
            self.boundary_conditions, self.field_id_to_legal_dimensions, self.global_variable_values,
        )

    def __eq__(self, other):
        if not isinstance(other, StencilMetaInfo):
            return NotImplemented
        return self._key() == other._key()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (f"StencilMetaInfo(stencil_name={self.stencil_name!r}, "
                f"fields={len(self.field_access_ids)}, names={len(self.access_id_to_name)})")
