"""
Tests for HIR -> IIR lowering of one stencil.
"""

import pytest

from stencilir.hir.nodes import HIR, HIRStencil
from stencilir.ir.accesses import Extents
from stencilir.metadata.meta_info import GlobalValue, GlobalValueType
from stencilir.passes.lowering import lower_stencil
from stencilir.shared.errors import LookupFailureError
from stencilir.shared.interval import Interval, SpecialLevel
from stencilir.shared.nodes import (
    AST, BlockStatement, BoundaryConditionDeclaration, IfStatement, ExpressionStatement, FieldAccess,
    StencilCallDeclaration, VariableAccess, VerticalRegion, VerticalRegionDeclaration,
    Field,
)
from stencilir.shared.types import LoopOrder


class TestSymbols:
    def test_fields_registered_api_first(self, sample_instantiation):
        meta = sample_instantiation.metadata
        assert [meta.get_name_from_access_id(i) for i in meta.api_field_ids] == ["in", "out"]
        assert [meta.get_name_from_access_id(i) for i in meta.temporary_field_ids] == ["tmp"]
        assert meta.legal_dimensions_of("tmp") == (1, 1, 0)
        assert meta.legal_dimensions_of("in") == (1, 1, 1)

    def test_names_and_location(self, sample_instantiation):
        meta = sample_instantiation.metadata
        assert meta.stencil_name == "hori_diff"
        assert meta.file_name == "hori_diff.cpp"
        assert meta.stencil_location.line == 1

    def test_globals(self, sample_instantiation):
        meta = sample_instantiation.metadata
        assert meta.global_value("dt") == GlobalValue(GlobalValueType.DOUBLE, 0.0)
        assert meta.global_value("eps") == GlobalValue.unset(GlobalValueType.DOUBLE)
        assert meta.global_value("use_limiter") == GlobalValue(GlobalValueType.BOOLEAN, True)
        assert meta.global_value("niter") == GlobalValue(GlobalValueType.INTEGER, 3)
        assert not meta.has_name("mode")
        assert len(meta.global_variable_ids) == 4

    def test_local_variable_and_literal(self, sample_instantiation):
        meta = sample_instantiation.metadata
        a_id = meta.get_access_id_from_name("a")
        assert not meta.is_field(a_id)
        assert meta.literal_id_to_name == {-1: "0.5"}


class TestIIRShape:
    def test_one_stencil_for_the_region_run(self, sample_instantiation):
        iir = sample_instantiation.iir
        assert len(iir) == 1
        stencil = iir[0]
        assert [ms.loop_order for ms in stencil] == [LoopOrder.FORWARD, LoopOrder.BACKWARD]
        assert [len(ms) for ms in stencil] == [1, 3]

    def test_one_stage_and_do_method_per_statement(self, sample_instantiation):
        stencil = sample_instantiation.iir[0]
        for multi_stage in stencil:
            for stage in multi_stage:
                assert len(stage) == 1
                assert len(stage[0]) == 1

    def test_do_method_intervals(self, sample_instantiation):
        intervals = [dm.interval for dm in sample_instantiation.iir[0].do_methods()]
        assert intervals == [Interval.full()] + [Interval(SpecialLevel.START, SpecialLevel.END, 1, 0)] * 3

    def test_ids_unique_and_positive(self, sample_instantiation):
        ids = [node.id for node in sample_instantiation.iir.walk() if hasattr(node, "id")]
        assert len(ids) == len(set(ids))
        assert all(i > 0 for i in ids)
        assert not set(ids) & set(sample_instantiation.metadata.access_id_to_name)


class TestAccesses:
    def _pairs(self, instantiation):
        return list(instantiation.iir[0].statement_access_pairs())

    def test_horizontal_read_extent(self, sample_instantiation):
        meta = sample_instantiation.metadata
        first = self._pairs(sample_instantiation)[0].caller_accesses
        assert first.write_accesses == {meta.get_access_id_from_name("tmp"): Extents()}
        assert first.read_accesses == {meta.get_access_id_from_name("in"): Extents.of((-1, 1), (0, 0), (0, 0))}

    def test_variable_declaration(self, sample_instantiation):
        meta = sample_instantiation.metadata
        decl = self._pairs(sample_instantiation)[1].caller_accesses
        assert decl.write_accesses == {meta.get_access_id_from_name("a"): Extents()}
        assert decl.read_accesses == {-1: Extents()}

    def test_vertical_read_extent(self, sample_instantiation):
        meta = sample_instantiation.metadata
        third = self._pairs(sample_instantiation)[2].caller_accesses
        assert third.read_accesses == {
            meta.get_access_id_from_name("a"): Extents(),
            meta.get_access_id_from_name("tmp"): Extents.of((0, 0), (0, 0), (-1, -1)),
        }

    def test_compound_assignment_with_global(self, sample_instantiation):
        meta = sample_instantiation.metadata
        out_id = meta.get_access_id_from_name("out")
        last = self._pairs(sample_instantiation)[3].caller_accesses
        assert last.write_accesses == {out_id: Extents()}
        assert set(last.read_accesses) == {out_id, meta.get_access_id_from_name("dt")}

    def test_no_callee_accesses(self, sample_instantiation):
        assert all(p.callee_accesses is None for p in self._pairs(sample_instantiation))


class TestStencilDescription:
    def test_regions_replaced_by_generated_call(self, sample_instantiation):
        meta = sample_instantiation.metadata
        stencil_id = sample_instantiation.iir[0].id
        statements = [d.stmt for d in meta.stencil_desc_statements]
        assert len(statements) == 2
        call = statements[0]
        assert isinstance(call, StencilCallDeclaration)
        assert call.stencil_call.callee == f"__code_gen_{stencil_id}"
        assert call.location.line == 2
        assert meta.get_stencil_call(stencil_id) is call
        assert isinstance(statements[1], BoundaryConditionDeclaration)

    def test_boundary_condition_recorded_per_field(self, sample_instantiation):
        bc = sample_instantiation.metadata.get_boundary_condition("out")
        assert bc.functor == "zero_gradient"

    def test_regions_separated_by_other_statements_give_separate_stencils(self):
        def region(field):
            body = BlockStatement([ExpressionStatement(FieldAccess(field))])
            return VerticalRegionDeclaration(VerticalRegion(AST(body)))

        body = BlockStatement([
            region("a"),
            IfStatement(ExpressionStatement(VariableAccess("flag", is_external=True)),
                        BlockStatement([region("b")])),
            region("a"),
        ])
        hir = HIR(stencils=[HIRStencil("s", AST(body), [Field("a"), Field("b")])])
        instantiation = lower_stencil(hir, "s")
        assert len(instantiation.iir) == 3
        statements = [d.stmt for d in instantiation.metadata.stencil_desc_statements]
        assert isinstance(statements[0], StencilCallDeclaration)
        assert isinstance(statements[1], IfStatement)
        assert isinstance(statements[1].then_part, BlockStatement)
        assert isinstance(statements[1].then_part.statements[0], StencilCallDeclaration)
        assert isinstance(statements[2], StencilCallDeclaration)
        assert len(instantiation.metadata.id_to_stencil_call) == 3

    def test_other_statements_kept_as_written(self):
        body = BlockStatement([ExpressionStatement(FieldAccess("a"))])
        hir = HIR(stencils=[HIRStencil("s", AST(body), [Field("a")])])
        instantiation = lower_stencil(hir, "s")
        assert [d.stmt for d in instantiation.metadata.stencil_desc_statements] == body.statements
        assert len(instantiation.iir) == 0


def test_unknown_stencil(sample_hir):
    with pytest.raises(LookupFailureError):
        lower_stencil(sample_hir, "missing")


def test_lowered_instantiation_is_valid(sample_instantiation):
    sample_instantiation.validate()
