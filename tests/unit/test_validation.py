"""
Tests for the IIR validation pass.
"""

import pytest

from stencilir.ir.accesses import Accesses, Extents
from stencilir.ir.nodes import DoMethod, MultiStage, Stage, StatementAccessPair
from stencilir.metadata.meta_info import StencilDescStatement
from stencilir.passes.validation import IIRValidationPass, IIRValidationVisitor, check_metadata
from stencilir.shared.errors import ErrorReporter, InvariantViolationError
from stencilir.shared.interval import Interval, SpecialLevel
from stencilir.shared.nodes import (
    AST, BlockStatement, ExpressionStatement, FieldAccess, VerticalRegion, VerticalRegionDeclaration,
)
from stencilir.shared.types import LoopOrder


def _violations(instantiation):
    with pytest.raises(InvariantViolationError) as exc_info:
        IIRValidationPass().run(instantiation)
    return [v.message for v in exc_info.value.violations]


def test_valid_instantiation_is_returned_unchanged(sample_instantiation):
    assert IIRValidationPass().run(sample_instantiation) is sample_instantiation


def test_visitor_counts_nodes(sample_instantiation):
    visitor = IIRValidationVisitor(sample_instantiation.metadata, ErrorReporter())
    sample_instantiation.iir.accept(visitor)
    assert not visitor.reporter.has_errors()
    # 1 IIR + 1 stencil + 2 multi-stages + 4 stages + 4 do-methods + 4 pairs
    assert visitor.nodes_validated == 16


def test_inverted_do_method_interval(sample_instantiation):
    stencil = sample_instantiation.iir[0]
    stage = stencil[0][0]
    stage.append(DoMethod(500, Interval(SpecialLevel.END, SpecialLevel.START, 1, 0)))
    messages = _violations(sample_instantiation)
    assert len(messages) == 1
    assert "End+1" in messages[0]


def test_duplicate_ids_within_a_stencil(sample_instantiation):
    stencil = sample_instantiation.iir[0]
    first_stage = stencil[0][0]
    stencil.append(MultiStage(stencil[0].id, LoopOrder.FORWARD, [Stage(first_stage.id)]))
    messages = _violations(sample_instantiation)
    assert any("duplicate multi-stage ID" in m for m in messages)
    assert any("duplicate stage ID" in m for m in messages)


def test_duplicate_stencil_ids(sample_instantiation):
    from stencilir.ir.nodes import Stencil
    sample_instantiation.iir.append(Stencil(sample_instantiation.iir[0].id))
    assert any("duplicate stencil ID" in m for m in _violations(sample_instantiation))


def test_unknown_access_id(sample_instantiation):
    do_method = sample_instantiation.iir[0][0][0][0]
    do_method.append(StatementAccessPair(ExpressionStatement(FieldAccess("in")),
                                         Accesses(read_accesses={999: Extents()})))
    messages = _violations(sample_instantiation)
    assert messages == ["caller accesses reference unknown AccessID 999"]


def test_callee_accesses_are_checked(sample_instantiation):
    pair = next(sample_instantiation.iir[0].statement_access_pairs())
    pair.callee_accesses = Accesses(write_accesses={777: Extents()})
    assert _violations(sample_instantiation) == ["callee accesses reference unknown AccessID 777"]


def test_all_violations_reported_together(sample_instantiation):
    meta = sample_instantiation.metadata
    in_id = meta.get_access_id_from_name("in")
    meta.temporary_field_ids.append(in_id)
    meta.literal_id_to_name[in_id] = "1.0"
    messages = _violations(sample_instantiation)
    assert len(messages) == 2
    assert any("both an API field and a temporary" in m for m in messages)
    assert any("literal AccessID" in m for m in messages)


class TestCheckMetadata:
    def _check(self, meta):
        reporter = ErrorReporter()
        check_metadata(meta, reporter)
        return [e.message for e in reporter.errors]

    def test_sample_is_clean(self, sample_instantiation):
        assert self._check(sample_instantiation.metadata) == []

    def test_unclassified_field(self, sample_instantiation):
        meta = sample_instantiation.metadata
        meta.api_field_ids.remove(meta.get_access_id_from_name("out"))
        assert any("neither an API field nor a temporary" in m for m in self._check(meta))

    def test_global_that_is_also_a_field(self, sample_instantiation):
        meta = sample_instantiation.metadata
        dt_id = meta.get_access_id_from_name("dt")
        meta.field_access_ids.append(dt_id)
        meta.api_field_ids.append(dt_id)
        assert any("both a field and a global variable" in m for m in self._check(meta))

    def test_duplicate_names(self, sample_instantiation):
        meta = sample_instantiation.metadata
        meta.access_id_to_name[900] = "in"
        assert any("name 'in' is bound to AccessIDs" in m for m in self._check(meta))

    def test_unnamed_field(self, sample_instantiation):
        meta = sample_instantiation.metadata
        del meta.access_id_to_name[meta.get_access_id_from_name("tmp")]
        assert any("has no name" in m for m in self._check(meta))

    def test_legal_dimensions_of_non_field(self, sample_instantiation):
        meta = sample_instantiation.metadata
        meta.field_id_to_legal_dimensions[meta.get_access_id_from_name("dt")] = (1, 1, 1)
        assert any("which is not a field" in m for m in self._check(meta))

    def test_inconsistent_versions(self, sample_instantiation):
        meta = sample_instantiation.metadata
        meta.variable_versions._version_to_original[42] = 1
        assert any("does not list it" in m for m in self._check(meta))

    def test_stencil_description_interval(self, sample_instantiation):
        meta = sample_instantiation.metadata
        region = VerticalRegion(AST(BlockStatement()), Interval(SpecialLevel.END, SpecialLevel.START),
                                LoopOrder.FORWARD)
        meta.stencil_desc_statements.append(StencilDescStatement(VerticalRegionDeclaration(region)))
        assert any("lower bound above its upper bound" in m for m in self._check(meta))
