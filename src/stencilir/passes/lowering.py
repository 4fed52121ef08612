"""
HIR -> IIR lowering

Turns one HIR stencil into a StencilInstantiation:

- fields and global variables are registered in the metadata
- each maximal run of vertical regions in the stencil body becomes one IIR
  Stencil (a MultiStage per region, a Stage + DoMethod per body statement)
  and is replaced in the stencil description by a call to the generated
  stencil `__code_gen_<id>`
- block and if statements are lowered recursively, boundary conditions are
  recorded per field, any other statement is kept as written
- the caller Accesses of every IIR statement are computed on the way

Stencil-function inlining and every optimization happen in later passes.
"""

import logging
from typing import Dict, List, Optional

from ..hir.nodes import HIR, GlobalVariableValue, HIRStencil
from ..ir.nodes import StatementAccessPair, Stencil
from ..metadata.instantiation import StencilInstantiation
from ..metadata.meta_info import GlobalValue, GlobalValueType, StencilMetaInfo
from ..shared.nodes import (
    BlockStatement, BoundaryConditionDeclaration, IfStatement, Statement, StencilCall,
    StencilCallDeclaration, VerticalRegionDeclaration,
)
from ..utils.config import STENCIL_CALL_PREFIX
from .access_computation import compute_accesses

logger = logging.getLogger("stencilir.passes.lowering")

_GLOBAL_VALUE_TYPES = {
    "boolean": GlobalValueType.BOOLEAN,
    "integer": GlobalValueType.INTEGER,
    "double": GlobalValueType.DOUBLE,
}


def _global_value(value: GlobalVariableValue) -> Optional[GlobalValue]:
    value_type = _GLOBAL_VALUE_TYPES.get(value.kind)
    if value_type is None:
        return None
    if value.is_constexpr:
        return GlobalValue(value_type, value.value)
    return GlobalValue.unset(value_type)


def _body_statements(root: Statement) -> List[Statement]:
    return list(root.statements) if isinstance(root, BlockStatement) else [root]


class StencilLowering:
    """Lowers one HIR stencil; use `lower_stencil` instead of driving this directly."""

    def __init__(self, hir: HIR, stencil: HIRStencil):
        self.hir = hir
        self.stencil = stencil
        self.instantiation = StencilInstantiation(
            StencilMetaInfo(stencil.name, hir.filename, stencil.location)
        )
        self.scope: Dict[str, int] = {}

    @property
    def metadata(self) -> StencilMetaInfo:
        return self.instantiation.metadata

    def run(self) -> StencilInstantiation:
        self._register_fields()
        self._register_globals()
        for stmt in self._lower_statements(_body_statements(self.stencil.ast.root)):
            self.metadata.add_stencil_desc_statement(stmt)
        logger.debug(f"lowered stencil '{self.stencil.name}' into {len(self.instantiation.iir)} IIR stencils")
        return self.instantiation

    def _register_fields(self) -> None:
        for field in self.stencil.fields:
            if not field.is_temporary:
                self.instantiation.register_field(field.name, False, field.field_dimensions)
        for field in self.stencil.fields:
            if field.is_temporary:
                self.instantiation.register_field(field.name, True, field.field_dimensions)

    def _register_globals(self) -> None:
        for name, value in self.hir.global_variables.items():
            global_value = _global_value(value)
            if global_value is None:
                logger.debug(f"global variable '{name}' of kind {value.kind} has no IIR value type, skipped")
                continue
            self.instantiation.register_global_variable(name, global_value)

    def _lower_statements(self, statements: List[Statement]) -> List[Statement]:
        lowered: List[Statement] = []
        run: List[VerticalRegionDeclaration] = []
        for stmt in statements:
            if isinstance(stmt, VerticalRegionDeclaration):
                run.append(stmt)
                continue
            if run:
                lowered.append(self._lower_regions(run))
                run = []
            lowered.append(self._lower_statement(stmt))
        if run:
            lowered.append(self._lower_regions(run))
        return lowered

    def _lower_single(self, stmt: Statement) -> Statement:
        lowered = self._lower_statements([stmt])
        return lowered[0] if len(lowered) == 1 else BlockStatement(lowered, stmt.location)

    def _lower_statement(self, stmt: Statement) -> Statement:
        if isinstance(stmt, BlockStatement):
            return BlockStatement(self._lower_statements(stmt.statements), stmt.location)
        if isinstance(stmt, IfStatement):
            else_part = self._lower_single(stmt.else_part) if stmt.else_part is not None else None
            return IfStatement(stmt.cond_part, self._lower_single(stmt.then_part), else_part, stmt.location)
        if isinstance(stmt, BoundaryConditionDeclaration):
            for field in stmt.fields:
                self.metadata.add_boundary_condition(field.name, stmt)
        return stmt

    def _lower_regions(self, regions: List[VerticalRegionDeclaration]) -> StencilCallDeclaration:
        stencil: Stencil = self.instantiation.create_stencil()
        for declaration in regions:
            region = declaration.vertical_region
            multi_stage = self.instantiation.create_multi_stage(region.loop_order)
            for stmt in _body_statements(region.ast.root):
                do_method = self.instantiation.create_do_method(region.interval)
                accesses = compute_accesses(stmt, self.instantiation, self.scope)
                do_method.append(StatementAccessPair(stmt, accesses))
                stage = self.instantiation.create_stage()
                stage.append(do_method)
                multi_stage.append(stage)
            stencil.append(multi_stage)
        self.instantiation.iir.append(stencil)

        call = StencilCall(f"{STENCIL_CALL_PREFIX}{stencil.id}", location=regions[0].location)
        declaration = StencilCallDeclaration(call, regions[0].location)
        self.metadata.add_stencil_call(stencil.id, declaration)
        return declaration


def lower_stencil(hir: HIR, stencil_name: str) -> StencilInstantiation:
    return StencilLowering(hir, hir.get_stencil(stencil_name)).run()
