"""
Tests for StencilInstantiation: ID allocation, registration, versions.
"""

import pytest

from stencilir.ir.nodes import IIR, DoMethod, MultiStage, Stage, Stencil
from stencilir.metadata.instantiation import StencilInstantiation
from stencilir.metadata.meta_info import GlobalValue, StencilMetaInfo
from stencilir.shared.errors import InvariantViolationError
from stencilir.shared.interval import Interval
from stencilir.shared.types import LoopOrder, StencilAttr


class TestIdAllocation:
    def test_positive_ids_shared_by_access_ids_and_nodes(self):
        instantiation = StencilInstantiation()
        field_id = instantiation.register_field("in")
        stencil = instantiation.create_stencil()
        multi_stage = instantiation.create_multi_stage(LoopOrder.FORWARD)
        stage = instantiation.create_stage()
        do_method = instantiation.create_do_method(Interval.full())
        assert [field_id, stencil.id, multi_stage.id, stage.id, do_method.id] == [1, 2, 3, 4, 5]

    def test_literal_ids_are_negative(self):
        instantiation = StencilInstantiation()
        assert instantiation.register_literal("1.0") == -1
        assert instantiation.register_literal("2.0") == -2
        assert instantiation.next_uid() == 1

    def test_factories_return_detached_nodes(self):
        instantiation = StencilInstantiation()
        stencil = instantiation.create_stencil(StencilAttr.MERGE_STAGES)
        assert stencil.has_attribute(StencilAttr.MERGE_STAGES)
        assert len(instantiation.iir) == 0

    def test_reseed_skips_existing_ids(self):
        meta = StencilMetaInfo("s")
        meta.add_field(7, "in")
        meta.add_literal(-4, "1.0")
        iir = IIR([Stencil(12, multi_stages=[MultiStage(13, LoopOrder.FORWARD, [Stage(20, [DoMethod(21, Interval.full())])])])])
        instantiation = StencilInstantiation(meta, iir)
        assert instantiation.next_uid() == 22
        assert instantiation.next_literal_id() == -5

    def test_reseed_after_manual_edit(self):
        instantiation = StencilInstantiation()
        instantiation.metadata.add_field(40, "in")
        instantiation.reseed()
        assert instantiation.register_field("out") == 41


class TestRegistration:
    def test_register_field_and_global(self):
        instantiation = StencilInstantiation()
        in_id = instantiation.register_field("in")
        tmp_id = instantiation.register_field("tmp", is_temporary=True, legal_dimensions=(1, 1, 0))
        dt_id = instantiation.register_global_variable("dt", GlobalValue.of(0.5))
        meta = instantiation.metadata
        assert meta.is_api_field(in_id)
        assert meta.is_temporary_field(tmp_id)
        assert meta.legal_dimensions(tmp_id) == (1, 1, 0)
        assert meta.is_global_variable(dt_id)
        assert meta.global_value("dt").value == 0.5

    def test_register_variable(self):
        instantiation = StencilInstantiation()
        access_id = instantiation.register_variable("a")
        assert instantiation.metadata.get_name_from_access_id(access_id) == "a"
        assert not instantiation.metadata.is_field(access_id)


class TestCreateVersion:
    def test_version_is_named_and_classified_like_the_original(self):
        instantiation = StencilInstantiation()
        tmp_id = instantiation.register_field("tmp", is_temporary=True, legal_dimensions=(1, 1, 0))
        version_id = instantiation.create_version(tmp_id)
        meta = instantiation.metadata
        assert meta.get_name_from_access_id(version_id) == "tmp_1"
        assert meta.is_temporary_field(version_id)
        assert meta.legal_dimensions(version_id) == (1, 1, 0)
        assert meta.variable_versions.original_of(version_id) == tmp_id

    def test_versions_count_up(self):
        instantiation = StencilInstantiation()
        in_id = instantiation.register_field("in")
        first = instantiation.create_version(in_id)
        second = instantiation.create_version(first)
        meta = instantiation.metadata
        assert meta.get_name_from_access_id(second) == "in_2"
        assert meta.variable_versions.versions_of(in_id) == [first, second]

    def test_version_name_skips_taken_names(self):
        instantiation = StencilInstantiation()
        in_id = instantiation.register_field("in")
        instantiation.register_field("in_1")
        version_id = instantiation.create_version(in_id)
        assert instantiation.metadata.get_name_from_access_id(version_id) == "in_2"

    def test_local_variable_version(self):
        instantiation = StencilInstantiation()
        a_id = instantiation.register_variable("a")
        version_id = instantiation.create_version(a_id)
        assert not instantiation.metadata.is_field(version_id)
        assert instantiation.metadata.get_name_from_access_id(version_id) == "a_1"

    def test_globals_and_literals_cannot_be_versioned(self):
        instantiation = StencilInstantiation()
        dt_id = instantiation.register_global_variable("dt", GlobalValue.of(1.0))
        literal_id = instantiation.register_literal("1.0")
        with pytest.raises(InvariantViolationError):
            instantiation.create_version(dt_id)
        with pytest.raises(InvariantViolationError):
            instantiation.create_version(literal_id)


def test_lowered_instantiation_validates(sample_instantiation):
    sample_instantiation.validate()


def test_equality_compares_metadata_and_iir(sample_hir):
    from stencilir.passes.lowering import lower_stencil
    first = lower_stencil(sample_hir, "hori_diff")
    second = lower_stencil(sample_hir, "hori_diff")
    assert first == second
    second.iir[0].set_attribute(StencilAttr.NO_CODE_GEN)
    assert first != second
