"""
Pytest configuration and shared fixtures for the stencilir tests.

Provides a small but complete HIR program (two vertical regions, a boundary
condition, globals, stencil functions) and its lowered StencilInstantiation.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stencilir.hir.nodes import HIR, DirectionArgument, GlobalVariableValue, HIRStencil, OffsetArgument, StencilFunction
from stencilir.shared.interval import Interval, SpecialLevel
from stencilir.shared.nodes import (
    AST, AssignmentExpression, BinaryExpression, BlockStatement, BoundaryConditionDeclaration,
    DeferredOffset, ExpressionStatement, Field, FieldAccess, LiteralAccess, ReturnStatement,
    VariableAccess, VariableDeclaration, VerticalRegion, VerticalRegionDeclaration,
)
from stencilir.shared.source_location import SourceLocation
from stencilir.shared.types import BuiltinTypeID, LoopOrder, Type


def loc(line: int, column: int = 1) -> SourceLocation:
    return SourceLocation(line, column)


def assign(target, value, op="=", line=1):
    return ExpressionStatement(AssignmentExpression(target, value, op, location=loc(line, 5)), location=loc(line))


def build_stencil_body() -> BlockStatement:
    """
    vertical_region(k_start, k_end) { tmp = in[i+1] + in[i-1]; }
    vertical_region(k_start+1, k_end) backward {
        double a = 0.5;
        out = a * tmp[k-1];
        out += dt;
    }
    boundary_condition(zero_gradient, out);
    """
    region1 = VerticalRegion(
        AST(BlockStatement([
            assign(FieldAccess("tmp", location=loc(3, 5)),
                   BinaryExpression(FieldAccess("in", (1, 0, 0), location=loc(3, 11)), "+",
                                    FieldAccess("in", (-1, 0, 0), location=loc(3, 21))),
                   line=3),
        ], location=loc(2, 40))),
        Interval.full(),
        LoopOrder.FORWARD,
        location=loc(2),
    )
    region2 = VerticalRegion(
        AST(BlockStatement([
            VariableDeclaration(Type.of(BuiltinTypeID.FLOAT), "a",
                                init_list=[LiteralAccess("0.5", BuiltinTypeID.FLOAT, location=loc(6, 20))],
                                location=loc(6)),
            assign(FieldAccess("out"),
                   BinaryExpression(VariableAccess("a"), "*", FieldAccess("tmp", (0, 0, -1))),
                   line=7),
            assign(FieldAccess("out"), VariableAccess("dt", is_external=True), op="+=", line=8),
        ])),
        Interval(SpecialLevel.START, SpecialLevel.END, 1, 0),
        LoopOrder.BACKWARD,
        location=loc(5),
    )
    return BlockStatement([
        VerticalRegionDeclaration(region1),
        VerticalRegionDeclaration(region2),
        BoundaryConditionDeclaration("zero_gradient", [Field("out", loc(10, 30))], location=loc(10)),
    ], location=loc(1))


def build_hir() -> HIR:
    stencil = HIRStencil(
        "hori_diff",
        AST(build_stencil_body()),
        [
            Field("in", loc(1, 10)),
            Field("out", loc(1, 20)),
            Field("tmp", loc(1, 30), is_temporary=True, field_dimensions=(1, 1, 0)),
        ],
        location=loc(1),
    )
    avg = StencilFunction(
        "avg",
        asts=[AST(ReturnStatement(BinaryExpression(
            FieldAccess("f", DeferredOffset(argument_map=(1, -1, -1), argument_offset=(1, 0, 0))),
            "+",
            FieldAccess("f"),
        )))],
        arguments=[Field("f"), DirectionArgument("dir", loc(20, 15))],
        location=loc(20),
    )
    lap = StencilFunction(
        "lap",
        asts=[
            AST(ReturnStatement(FieldAccess("g", (0, 0, 1)))),
            AST(ReturnStatement(FieldAccess("g", DeferredOffset(argument_map=(-1, -1, 1)), negate_offset=True))),
        ],
        intervals=[Interval(SpecialLevel.START, 10), Interval(11, SpecialLevel.END, 0, -1)],
        arguments=[Field("g"), OffsetArgument("off")],
    )
    return HIR(
        filename="hori_diff.cpp",
        stencils=[stencil],
        stencil_functions=[avg, lap],
        global_variables={
            "dt": GlobalVariableValue(0.0, is_constexpr=True),
            "eps": GlobalVariableValue(0.5),
            "use_limiter": GlobalVariableValue(True, is_constexpr=True),
            "niter": GlobalVariableValue(3, is_constexpr=True),
            "mode": GlobalVariableValue("fast"),
        },
    )


@pytest.fixture
def sample_hir() -> HIR:
    return build_hir()


@pytest.fixture
def sample_instantiation(sample_hir):
    from stencilir.passes.lowering import lower_stencil
    return lower_stencil(sample_hir, "hori_diff")
