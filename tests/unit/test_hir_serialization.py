"""
Tests for persisting the HIR (stencils, stencil functions, globals).
"""

import pytest

import math

from stencilir.hir.nodes import HIR, DirectionArgument, GlobalVariableValue, OffsetArgument
from stencilir.serialization import (
    SerializationFormat, decode_hir, deserialize_hir, encode_hir, hir_to_proto, load_hir, proto_to_hir,
    save_hir, serialize_hir,
)
from stencilir.shared.errors import InvariantViolationError, MalformedEncodingError, UnknownVariantError
from stencilir.shared.interval import Interval, SpecialLevel
from stencilir.shared.nodes import DeferredOffset, ResolvedOffset
from stencilir.shared.source_location import SourceLocation


class TestRoundTrip:
    def test_binary(self, sample_hir):
        assert decode_hir(encode_hir(sample_hir)) == sample_hir

    def test_json(self, sample_hir):
        text = serialize_hir(sample_hir, SerializationFormat.JSON)
        assert deserialize_hir(text, SerializationFormat.JSON) == sample_hir

    def test_files(self, sample_hir, tmp_path):
        path = tmp_path / "hori_diff.hir"
        save_hir(sample_hir, path)
        assert load_hir(path) == sample_hir

    def test_global_kinds_are_kept(self, sample_hir):
        decoded = decode_hir(encode_hir(sample_hir))
        values = decoded.global_variables
        assert values["use_limiter"].kind == "boolean"
        assert values["niter"].kind == "integer"
        assert values["dt"].kind == "double"
        assert values["dt"].value == 0.0
        assert values["mode"] == GlobalVariableValue("fast")
        assert values["dt"].is_constexpr
        assert not values["eps"].is_constexpr

    def test_stencil_function_arguments(self, sample_hir):
        decoded = decode_hir(encode_hir(sample_hir))
        avg = decoded.get_stencil_function("avg")
        assert isinstance(avg.arguments[1], DirectionArgument)
        assert avg.arguments[1].location == SourceLocation(20, 15)
        lap = decoded.get_stencil_function("lap")
        assert isinstance(lap.arguments[1], OffsetArgument)
        assert lap.intervals == [Interval(SpecialLevel.START, 10), Interval(11, SpecialLevel.END, 0, -1)]

    def test_deferred_offsets(self, sample_hir):
        decoded = decode_hir(encode_hir(sample_hir))
        left = decoded.get_stencil_function("avg").asts[0].root.expr.left
        assert left.offset == DeferredOffset(argument_map=(1, -1, -1), argument_offset=(1, 0, 0))
        negated = decoded.get_stencil_function("lap").asts[1].root.expr
        assert negated.negate_offset
        resolved = decoded.get_stencil_function("lap").asts[0].root.expr
        assert resolved.offset == ResolvedOffset((0, 0, 1))

    def test_temporary_field_dimensions(self, sample_hir):
        decoded = decode_hir(encode_hir(sample_hir))
        tmp = decoded.get_stencil("hori_diff").get_field("tmp")
        assert tmp.is_temporary
        assert tmp.field_dimensions == (1, 1, 0)

    def test_nan_global(self):
        hir = HIR("nan.cpp", global_variables={"x": GlobalVariableValue(float("nan"), True)})
        decoded = decode_hir(encode_hir(hir))
        assert math.isnan(decoded.global_variables["x"].value)
        assert decoded == hir


class TestIntegerRange:
    def test_integer_global_outside_int32_is_rejected(self):
        with pytest.raises(ValueError, match="int32"):
            GlobalVariableValue(2 ** 40, True)

    def test_int32_limits_round_trip(self):
        hir = HIR("limits.cpp", global_variables={
            "lo": GlobalVariableValue(-2 ** 31, True),
            "hi": GlobalVariableValue(2 ** 31 - 1, True),
        })
        assert decode_hir(encode_hir(hir)) == hir

    def test_field_offset_outside_int32(self, sample_hir):
        access = sample_hir.get_stencil_function("lap").asts[0].root.expr
        access.offset = ResolvedOffset((0, 0, 2 ** 32))
        with pytest.raises(InvariantViolationError, match="wire format"):
            encode_hir(sample_hir)


class TestWire:
    def test_global_value_branch(self, sample_hir):
        values = hir_to_proto(sample_hir).global_variables.map
        assert values["dt"].HasField("double_value")
        assert values["dt"].double_value == 0.0
        assert values["niter"].HasField("integer_value")
        assert not values["niter"].HasField("double_value")

    def test_special_level_zero_is_present(self, sample_hir):
        interval = hir_to_proto(sample_hir).stencil_functions[1].intervals[0]
        assert interval.HasField("special_lower_level")
        assert interval.special_lower_level == 0
        assert interval.upper_level == 10


class TestDecodingErrors:
    def test_global_value_with_two_branches(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        msg.global_variables.map["niter"].double_value = 3.0
        with pytest.raises(UnknownVariantError) as exc_info:
            proto_to_hir(msg)
        assert exc_info.value.path == "global_variables.map[niter]"

    def test_global_value_without_branch(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        msg.global_variables.map["empty"].is_constexpr = True
        with pytest.raises(UnknownVariantError):
            proto_to_hir(msg)

    def test_stencil_function_argument_without_branch(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        msg.stencil_functions[0].arguments.add()
        with pytest.raises(UnknownVariantError) as exc_info:
            proto_to_hir(msg)
        assert exc_info.value.union == "StencilFunctionArg"

    def test_type_without_branch(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        regions = msg.stencils[0].ast.root.block_stmt.statements
        decl = regions[1].vertical_region_decl_stmt.vertical_region.ast.root.block_stmt.statements[0]
        decl.var_decl_stmt.type.ClearField("builtin_type")
        with pytest.raises(UnknownVariantError) as exc_info:
            proto_to_hir(msg)
        assert exc_info.value.union == "Type"

    def test_unknown_builtin_type(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        regions = msg.stencils[0].ast.root.block_stmt.statements
        decl = regions[1].vertical_region_decl_stmt.vertical_region.ast.root.block_stmt.statements[0]
        decl.var_decl_stmt.type.builtin_type.type_id = 9
        with pytest.raises(UnknownVariantError):
            proto_to_hir(msg)

    def test_interval_without_upper_level(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        msg.stencil_functions[1].intervals[0].ClearField("upper_level")
        with pytest.raises(UnknownVariantError):
            proto_to_hir(msg)

    def test_parallel_vertical_region_is_unknown(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        region = msg.stencils[0].ast.root.block_stmt.statements[0].vertical_region_decl_stmt.vertical_region
        region.loop_order = 3
        with pytest.raises(UnknownVariantError):
            proto_to_hir(msg)

    def test_interval_count_mismatch(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        msg.stencil_functions[1].intervals.add(lower_level=20, upper_level=30)
        with pytest.raises(MalformedEncodingError):
            proto_to_hir(msg)

    def test_field_offset_with_two_components(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        access = msg.stencil_functions[1].asts[0].root.return_stmt.expr.field_access_expr
        del access.offset[-1]
        with pytest.raises(MalformedEncodingError):
            proto_to_hir(msg)

    def test_argument_offset_without_argument(self, sample_hir):
        msg = hir_to_proto(sample_hir)
        access = msg.stencil_functions[1].asts[0].root.return_stmt.expr.field_access_expr
        assert list(access.argument_map) == [-1, -1, -1]
        access.argument_offset[0] = 1
        with pytest.raises(MalformedEncodingError, match="argument_offset"):
            proto_to_hir(msg)

    def test_garbage_bytes(self):
        with pytest.raises(MalformedEncodingError):
            deserialize_hir(b"\x0a\xff\xff\xff\xff\x0f")
