"""
Access Computation

Computes the caller-side Accesses of one statement:

- targets of assignments are writes; compound assignments (`+=`) also read
- a variable declaration writes its variable (registering it on first sight)
- field reads use the access offset as extent, `Extents.from_offset`
- every literal gets a fresh literal AccessID and is read
- external variables resolve to global-variable AccessIDs

Field offsets must already be resolved; a DeferredOffset outside a
stencil-function body is a producer bug.
"""

import logging
from typing import Dict, Optional, TYPE_CHECKING

from ..ir.accesses import Accesses, Extents
from ..shared.ast_visitor import ASTTraversal
from ..shared.errors import InvariantViolationError, LookupFailureError
from ..shared.nodes import (
    AssignmentExpression, DeferredOffset, Expression, FieldAccess, LiteralAccess, Statement,
    VariableAccess, VariableDeclaration,
)
from ..utils.config import ZERO_OFFSET
from .offset_resolution import resolve_offset

if TYPE_CHECKING:
    from ..metadata.instantiation import StencilInstantiation

logger = logging.getLogger("stencilir.passes.access_computation")

_POINTWISE = Extents.from_offset(ZERO_OFFSET)


class AccessComputationVisitor(ASTTraversal):
    """
    Collects the reads and writes of the visited statement into `accesses`.

    `scope` maps local variable names to their AccessIDs and is shared by
    all statements of one stencil, so a variable declared in one statement
    resolves in the following ones.
    """

    def __init__(self, instantiation: 'StencilInstantiation', scope: Optional[Dict[str, int]] = None):
        self.instantiation = instantiation
        self.metadata = instantiation.metadata
        self.scope: Dict[str, int] = scope if scope is not None else {}
        self.accesses = Accesses()

    # -- resolution helpers ---------------------------------------------

    def _field_id(self, node: FieldAccess) -> int:
        access_id = self.metadata.get_access_id_from_name(node.name)
        if not self.metadata.is_field(access_id):
            raise LookupFailureError(f"'{node.name}' is not a field", node.name)
        return access_id

    def _field_extents(self, node: FieldAccess) -> Extents:
        if isinstance(node.offset, DeferredOffset):
            raise InvariantViolationError(
                f"field access '{node.name}' still has an unresolved stencil-function offset",
                node.location,
            )
        return Extents.from_offset(resolve_offset(node, ()).offset)

    def _variable_id(self, node: VariableAccess) -> int:
        if node.is_external:
            access_id = self.metadata.get_access_id_from_name(node.name)
            if not self.metadata.is_global_variable(access_id):
                raise LookupFailureError(f"'{node.name}' is not a global variable", node.name)
            return access_id
        try:
            return self.scope[node.name]
        except KeyError:
            raise LookupFailureError(f"variable '{node.name}' is not declared", node.name) from None

    def _record_write(self, target: Expression) -> None:
        if isinstance(target, FieldAccess):
            self.accesses.add_write_extent(self._field_id(target), self._field_extents(target))
        elif isinstance(target, VariableAccess):
            self.accesses.add_write_extent(self._variable_id(target), _POINTWISE)
            if target.index is not None:
                target.index.accept(self)
        else:
            target.accept(self)

    # -- visitors ---------------------------------------------------------

    def visit_assignment_expression(self, node: AssignmentExpression) -> None:
        self._record_write(node.left)
        if node.is_compound:
            node.left.accept(self)
        node.right.accept(self)

    def visit_variable_declaration(self, node: VariableDeclaration) -> None:
        access_id = self.scope.get(node.name)
        if access_id is None:
            access_id = self.instantiation.register_variable(node.name)
            self.scope[node.name] = access_id
        self.accesses.add_write_extent(access_id, _POINTWISE)
        for init in node.init_list:
            init.accept(self)

    def visit_field_access(self, node: FieldAccess) -> None:
        self.accesses.add_read_extent(self._field_id(node), self._field_extents(node))

    def visit_variable_access(self, node: VariableAccess) -> None:
        self.accesses.add_read_extent(self._variable_id(node), _POINTWISE)
        if node.index is not None:
            node.index.accept(self)

    def visit_literal_access(self, node: LiteralAccess) -> None:
        literal_id = self.instantiation.register_literal(node.value)
        self.accesses.add_read_extent(literal_id, _POINTWISE)


def compute_accesses(statement: Statement, instantiation: 'StencilInstantiation',
                     scope: Optional[Dict[str, int]] = None) -> Accesses:
    visitor = AccessComputationVisitor(instantiation, scope)
    statement.accept(visitor)
    logger.debug(f"computed accesses of {type(statement).__name__}: {visitor.accesses!r}")
    return visitor.accesses
