"""
AST (Abstract Syntax Tree) Definitions

Closed set of statement and expression nodes describing one stencil or
stencil-function body as written by the user. The same nodes are reused as
the statements of the internal IR (StatementAccessPair leaves) and of the
stencil description in the metadata.

Visitor Pattern Support:
- Every concrete node has an accept() method calling exactly one visit_* method
- ASTVisitor declares every visit_* abstract, so a visitor cannot forget a variant

Equality and hashing are structural and ignore source locations; use
`node.equals(other, include_location=True)` to compare locations as well.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple, TypeVar, Union, TYPE_CHECKING

from .interval import Interval
from .source_location import SourceLocation, UNKNOWN_LOCATION
from .types import BuiltinTypeID, Dimension, LoopOrder, Type
from ..utils.config import (
    DEFAULT_FIELD_DIMENSIONS, NUM_DIMENSIONS, UNUSED_ARGUMENT_INDEX, UNUSED_ARGUMENT_MAP, ZERO_OFFSET,
)

if TYPE_CHECKING:
    from .ast_visitor import ASTVisitor

T = TypeVar('T')

Offset3 = Tuple[int, int, int]


def _offset3(values: Sequence[int], what: str) -> Offset3:
    values = tuple(int(v) for v in values)
    if len(values) != NUM_DIMENSIONS:
        raise ValueError(f"{what} needs {NUM_DIMENSIONS} components, got {len(values)}")
    return values  # type: ignore[return-value]


def structurally_equal(a: Any, b: Any, include_location: bool = False) -> bool:
    """Compare two AST values (nodes, value objects, sequences) member by member."""
    if isinstance(a, ASTNode) or isinstance(b, ASTNode):
        if type(a) is not type(b):
            return False
        for name, value in a._get_all_attributes().items():
            if name == 'location' and not include_location:
                continue
            if not structurally_equal(value, getattr(b, name), include_location):
                return False
        return True
    if is_dataclass(a) and not isinstance(a, type):
        if type(a) is not type(b):
            return False
        for f in fields(a):
            if f.name == 'location' and not include_location:
                continue
            if not structurally_equal(getattr(a, f.name), getattr(b, f.name), include_location):
                return False
        return True
    if isinstance(a, (list, tuple)):
        if not isinstance(b, (list, tuple)) or len(a) != len(b):
            return False
        return all(structurally_equal(x, y, include_location) for x, y in zip(a, b))
    return a == b


def _freeze(value: Any) -> Any:
    """Hashable, location-free image of an AST value."""
    if isinstance(value, ASTNode):
        return hash(value)
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if is_dataclass(value) and not isinstance(value, type):
        return (type(value).__name__,) + tuple(
            _freeze(getattr(value, f.name)) for f in fields(value) if f.name != 'location'
        )
    return value


# ============================================================================
# Value objects shared by statements and the HIR
# ============================================================================

@dataclass(frozen=True)
class Field:
    """Field argument of a stencil, stencil function, stencil call or boundary condition"""
    name: str
    location: SourceLocation = field(default=UNKNOWN_LOCATION, compare=False)
    is_temporary: bool = False
    field_dimensions: Offset3 = DEFAULT_FIELD_DIMENSIONS

    def __post_init__(self):
        object.__setattr__(self, 'field_dimensions', _offset3(self.field_dimensions, "field_dimensions"))


@dataclass(frozen=True)
class StencilCall:
    """Call of a stencil with a list of field arguments"""
    callee: str
    arguments: Tuple[Field, ...] = ()
    location: SourceLocation = field(default=UNKNOWN_LOCATION, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'arguments', tuple(self.arguments))


@dataclass(frozen=True)
class AST:
    """Syntax tree of a stencil body, stencil function body or vertical region"""
    root: 'Statement'


@dataclass(frozen=True)
class VerticalRegion:
    """Body executed over a vertical interval in a given (sequential) loop order"""
    ast: AST
    interval: Interval = field(default_factory=Interval.full)
    loop_order: LoopOrder = LoopOrder.FORWARD
    location: SourceLocation = field(default=UNKNOWN_LOCATION, compare=False)

    def __post_init__(self):
        loop_order = LoopOrder(self.loop_order)
        if loop_order is LoopOrder.PARALLEL:
            raise ValueError("a vertical region runs forward or backward, not in parallel")
        object.__setattr__(self, 'loop_order', loop_order)


# ============================================================================
# Field access offsets (two-phase resolution)
# ============================================================================

@dataclass(frozen=True)
class ResolvedOffset:
    """Concrete I/J/K offset of a field access"""
    offset: Offset3 = ZERO_OFFSET

    def __post_init__(self):
        object.__setattr__(self, 'offset', _offset3(self.offset, "offset"))

    @property
    def is_resolved(self) -> bool:
        return True


@dataclass(frozen=True)
class DeferredOffset:
    """
    Offset of a field access inside a stencil function which depends on the
    directional or offset arguments the function is instantiated with.

    `argument_map[d]` is the index of the stencil-function argument used for
    dimension slot `d` (-1 when the slot is unused) and `argument_offset[d]`
    the parsed offset added to it, e.g. `in(dir+2)` with `dir` the second
    argument gives argument_map (1, -1, -1) and argument_offset (2, 0, 0).
    """
    offset: Offset3 = ZERO_OFFSET
    argument_map: Offset3 = UNUSED_ARGUMENT_MAP
    argument_offset: Offset3 = ZERO_OFFSET

    def __post_init__(self):
        object.__setattr__(self, 'offset', _offset3(self.offset, "offset"))
        object.__setattr__(self, 'argument_map', _offset3(self.argument_map, "argument_map"))
        object.__setattr__(self, 'argument_offset', _offset3(self.argument_offset, "argument_offset"))
        if all(index == UNUSED_ARGUMENT_INDEX for index in self.argument_map):
            raise ValueError("a deferred offset must reference at least one stencil function argument")

    @property
    def is_resolved(self) -> bool:
        return False


FieldOffset = Union[ResolvedOffset, DeferredOffset]


# ============================================================================
# Node base classes
# ============================================================================

class ASTNode:
    """
    Base class for all AST nodes.

    Regular class with __slots__ (not dataclass); equality walks the slots of
    the whole MRO so subclasses only declare their own members.
    """
    __slots__ = ('location',)

    def __init__(self, location: Optional[SourceLocation] = None):
        self.location = location if location is not None else UNKNOWN_LOCATION

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        raise NotImplementedError(f"accept() not implemented for {self.__class__.__name__}")

    def children(self) -> List['ASTNode']:
        """Direct child nodes in declared order"""
        return []

    def walk(self) -> Iterator['ASTNode']:
        """Pre-order traversal of this subtree"""
        yield self
        for child in self.children():
            yield from child.walk()

    def _get_all_attributes(self):
        """Get all attribute values for equality/hashing (works with __slots__)."""
        attrs = {}
        for cls in reversed(self.__class__.__mro__):
            slots = cls.__dict__.get('__slots__', ())
            if isinstance(slots, str):
                slots = (slots,)
            for slot in slots:
                if slot not in attrs:
                    attrs[slot] = getattr(self, slot, None)
        return attrs

    def equals(self, other: Any, include_location: bool = False) -> bool:
        return structurally_equal(self, other, include_location)

    def __eq__(self, other):
        if not isinstance(other, ASTNode):
            return NotImplemented
        return structurally_equal(self, other)

    def __hash__(self):
        attrs = self._get_all_attributes()
        attrs.pop('location', None)
        return hash((self.__class__.__name__, _freeze(tuple(attrs.values()))))

    def __repr__(self) -> str:
        attrs = self._get_all_attributes()
        attrs.pop('location', None)
        body = ", ".join(f"{k}={v!r}" for k, v in attrs.items())
        return f"{self.__class__.__name__}({body})"


class Statement(ASTNode):
    """Base class for statements"""
    __slots__ = ()


class Expression(ASTNode):
    """Base class for expressions"""
    __slots__ = ()


# ============================================================================
# Statements
# ============================================================================

class BlockStatement(Statement):
    """A block of statements"""
    __slots__ = ('statements',)

    def __init__(self, statements: Optional[List[Statement]] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.statements = list(statements) if statements is not None else []

    def append(self, statement: Statement) -> None:
        self.statements.append(statement)

    def insert(self, index: int, statement: Statement) -> None:
        self.statements.insert(index, statement)

    def children(self) -> List[ASTNode]:
        return list(self.statements)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_block_statement(self)


class ExpressionStatement(Statement):
    """Expression used as a statement"""
    __slots__ = ('expr',)

    def __init__(self, expr: Expression, location: Optional[SourceLocation] = None):
        super().__init__(location if location is not None else expr.location)
        self.expr = expr

    def children(self) -> List[ASTNode]:
        return [self.expr]

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_expression_statement(self)


class ReturnStatement(Statement):
    __slots__ = ('expr',)

    def __init__(self, expr: Expression, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.expr = expr

    def children(self) -> List[ASTNode]:
        return [self.expr]

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_return_statement(self)


class VariableDeclaration(Statement):
    """
    Declaration of a local variable or array.

    `double foo[2] = {2.3, 5.3};` has type Float, name "foo", dimension 2,
    op "=" and two literal initializers. Dimension 0 declares a scalar.
    """
    __slots__ = ('type', 'name', 'dimension', 'op', 'init_list')

    def __init__(self, type: Type, name: str, dimension: int = 0, op: str = "=",
                 init_list: Optional[List[Expression]] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.type = type
        self.name = name
        self.dimension = dimension
        self.op = op
        self.init_list = list(init_list) if init_list is not None else []

    @property
    def is_array(self) -> bool:
        return self.dimension > 0

    @property
    def has_init(self) -> bool:
        return bool(self.init_list)

    def children(self) -> List[ASTNode]:
        return list(self.init_list)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_variable_declaration(self)


class StencilCallDeclaration(Statement):
    __slots__ = ('stencil_call',)

    def __init__(self, stencil_call: StencilCall, location: Optional[SourceLocation] = None):
        super().__init__(location if location is not None else stencil_call.location)
        self.stencil_call = stencil_call

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_stencil_call_declaration(self)


class VerticalRegionDeclaration(Statement):
    __slots__ = ('vertical_region',)

    def __init__(self, vertical_region: VerticalRegion, location: Optional[SourceLocation] = None):
        super().__init__(location if location is not None else vertical_region.location)
        self.vertical_region = vertical_region

    def children(self) -> List[ASTNode]:
        return [self.vertical_region.ast.root]

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_vertical_region_declaration(self)


class BoundaryConditionDeclaration(Statement):
    """Application of a boundary-condition functor to a list of fields"""
    __slots__ = ('functor', 'fields')

    def __init__(self, functor: str, fields: Optional[List[Field]] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.functor = functor
        self.fields = list(fields) if fields is not None else []

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_boundary_condition_declaration(self)


class IfStatement(Statement):
    """if (cond_part) then_part else else_part; cond_part is an ExpressionStatement"""
    __slots__ = ('cond_part', 'then_part', 'else_part')

    def __init__(self, cond_part: Statement, then_part: Statement,
                 else_part: Optional[Statement] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.cond_part = cond_part
        self.then_part = then_part
        self.else_part = else_part

    @property
    def has_else(self) -> bool:
        return self.else_part is not None

    def children(self) -> List[ASTNode]:
        parts = [self.cond_part, self.then_part]
        if self.else_part is not None:
            parts.append(self.else_part)
        return parts

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_if_statement(self)


# ============================================================================
# Expressions
# ============================================================================

class UnaryExpression(Expression):
    __slots__ = ('op', 'operand')

    def __init__(self, op: str, operand: Expression, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.op = op
        self.operand = operand

    def children(self) -> List[ASTNode]:
        return [self.operand]

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_unary_expression(self)


class BinaryExpression(Expression):
    __slots__ = ('left', 'op', 'right')

    def __init__(self, left: Expression, op: str, right: Expression,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.left = left
        self.op = op
        self.right = right

    def children(self) -> List[ASTNode]:
        return [self.left, self.right]

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_binary_expression(self)


class AssignmentExpression(Expression):
    """left op right, with op "=" or a compound operator such as "+=" """
    __slots__ = ('left', 'op', 'right')

    def __init__(self, left: Expression, right: Expression, op: str = "=",
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.left = left
        self.op = op
        self.right = right

    @property
    def is_compound(self) -> bool:
        return self.op != "="

    def children(self) -> List[ASTNode]:
        return [self.left, self.right]

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_assignment_expression(self)


class TernaryExpression(Expression):
    """cond ? left : right"""
    __slots__ = ('cond', 'left', 'right')

    def __init__(self, cond: Expression, left: Expression, right: Expression,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.cond = cond
        self.left = left
        self.right = right

    def children(self) -> List[ASTNode]:
        return [self.cond, self.left, self.right]

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_ternary_expression(self)


class FunctionCall(Expression):
    """Call of a (math) function, e.g. sqrt(x)"""
    __slots__ = ('callee', 'arguments')

    def __init__(self, callee: str, arguments: Optional[List[Expression]] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.callee = callee
        self.arguments = list(arguments) if arguments is not None else []

    def children(self) -> List[ASTNode]:
        return list(self.arguments)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_function_call(self)


class StencilFunctionCall(Expression):
    __slots__ = ('callee', 'arguments')

    def __init__(self, callee: str, arguments: Optional[List[Expression]] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.callee = callee
        self.arguments = list(arguments) if arguments is not None else []

    def children(self) -> List[ASTNode]:
        return list(self.arguments)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_stencil_function_call(self)


class StencilFunctionArgument(Expression):
    """
    Directional or offset argument passed to a stencil function.

    A plain dimension (`i`), an offset (`i+1`), or, inside another stencil
    function, a reference to one of the caller's arguments: `bar(dir+1, a)`
    within `foo(storage a, dimension dir)` gives dimension INVALID (not known
    yet), offset +1 and argument_index 1.
    """
    __slots__ = ('dimension', 'offset', 'argument_index')

    def __init__(self, dimension: Dimension = Dimension.INVALID, offset: int = 0,
                 argument_index: int = UNUSED_ARGUMENT_INDEX,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.dimension = Dimension(dimension)
        self.offset = offset
        self.argument_index = argument_index

    @property
    def references_argument(self) -> bool:
        return self.argument_index != UNUSED_ARGUMENT_INDEX

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_stencil_function_argument(self)


class VariableAccess(Expression):
    """Access to a local variable (optionally indexed) or an external global"""
    __slots__ = ('name', 'index', 'is_external')

    def __init__(self, name: str, index: Optional[Expression] = None, is_external: bool = False,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.name = name
        self.index = index
        self.is_external = is_external

    @property
    def is_array_access(self) -> bool:
        return self.index is not None

    def children(self) -> List[ASTNode]:
        return [self.index] if self.index is not None else []

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_variable_access(self)


class FieldAccess(Expression):
    """
    Access to a field at an offset.

    `offset` is a ResolvedOffset (concrete I/J/K offset; a plain 3-tuple is
    accepted) or a DeferredOffset still waiting for the stencil-function
    arguments. `negate_offset` allows writing `in(-off)`.
    """
    __slots__ = ('name', 'offset', 'negate_offset')

    def __init__(self, name: str, offset: Union[FieldOffset, Sequence[int], None] = None,
                 negate_offset: bool = False, location: Optional[SourceLocation] = None):
        super().__init__(location)
        if offset is None:
            offset = ResolvedOffset()
        elif not isinstance(offset, (ResolvedOffset, DeferredOffset)):
            offset = ResolvedOffset(tuple(offset))
        self.name = name
        self.offset = offset
        self.negate_offset = negate_offset

    @property
    def is_resolved(self) -> bool:
        return self.offset.is_resolved

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_field_access(self)


class LiteralAccess(Expression):
    """Literal constant kept as its source text, e.g. "1.24324" of type Float"""
    __slots__ = ('value', 'builtin_type')

    def __init__(self, value: str, builtin_type: BuiltinTypeID = BuiltinTypeID.FLOAT,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.value = value
        self.builtin_type = BuiltinTypeID(builtin_type)

    def accept(self, visitor: 'ASTVisitor[T]') -> 'T':
        return visitor.visit_literal_access(self)


STATEMENT_TYPES = (
    BlockStatement, ExpressionStatement, ReturnStatement, VariableDeclaration,
    StencilCallDeclaration, VerticalRegionDeclaration, BoundaryConditionDeclaration, IfStatement,
)

EXPRESSION_TYPES = (
    UnaryExpression, BinaryExpression, AssignmentExpression, TernaryExpression, FunctionCall,
    StencilFunctionCall, StencilFunctionArgument, VariableAccess, FieldAccess, LiteralAccess,
)
