"""
Tests for the S-expression debug dumps of AST, IIR and metadata.
"""

from stencilir.ir.accesses import Accesses, Extents
from stencilir.ir.nodes import StatementAccessPair
from stencilir.serialization import dump_ast, dump_iir, dump_instantiation
from stencilir.shared.interval import Interval, SpecialLevel
from stencilir.shared.nodes import (
    AST, AssignmentExpression, BlockStatement, BoundaryConditionDeclaration, DeferredOffset,
    ExpressionStatement, Field, FieldAccess, LiteralAccess, StencilFunctionArgument, VariableAccess,
    VariableDeclaration, VerticalRegion, VerticalRegionDeclaration,
)
from stencilir.shared.source_location import SourceLocation
from stencilir.shared.types import BuiltinTypeID, Dimension, LoopOrder, Type


class TestASTDump:
    def test_assignment(self):
        stmt = ExpressionStatement(AssignmentExpression(FieldAccess("out"), FieldAccess("in", (1, 0, 0))))
        assert dump_ast(stmt) == '(expr (assign "=" (field "out" [0 0 0]) (field "in" [1 0 0])))'

    def test_variable_declaration(self):
        decl = VariableDeclaration(Type.of(BuiltinTypeID.FLOAT), "a", init_list=[LiteralAccess("0.5")])
        assert dump_ast(decl) == '(var-decl "a" (type float) :op "=" :init ((literal "0.5" float)))'

    def test_array_declaration_of_custom_const_type(self):
        decl = VariableDeclaration(Type.custom("vec", is_const=True), "v", 3)
        assert dump_ast(decl) == '(var-decl "v" (type "vec" :const) :dim 3)'

    def test_deferred_negated_field_access(self):
        access = FieldAccess("f", DeferredOffset(argument_map=(1, -1, -1), argument_offset=(1, 0, 0)),
                             negate_offset=True)
        assert dump_ast(access) == '(field "f" [0 0 0] :map [1 -1 -1] :arg-offset [1 0 0] :negate)'

    def test_external_variable(self):
        assert dump_ast(VariableAccess("dt", is_external=True)) == '(var "dt" :external)'

    def test_stencil_function_arguments(self):
        assert dump_ast(StencilFunctionArgument(Dimension.J, 1)) == "(stencil-fun-arg j 1)"
        assert dump_ast(StencilFunctionArgument(offset=1, argument_index=0)) == \
            "(stencil-fun-arg invalid 1 :arg 0)"

    def test_vertical_region(self):
        region = VerticalRegion(AST(BlockStatement()), Interval(SpecialLevel.START, SpecialLevel.END, 1, 0),
                                LoopOrder.BACKWARD)
        assert dump_ast(VerticalRegionDeclaration(region)) == \
            "(vertical-region backward (interval Start+1 End+0) (block))"

    def test_boundary_condition(self):
        bc = BoundaryConditionDeclaration("zero_gradient", [Field("out"), Field("in")])
        assert dump_ast(bc) == '(boundary-condition "zero_gradient" ("out" "in"))'

    def test_locations_on_request(self):
        literal = LiteralAccess("1", BuiltinTypeID.INTEGER, location=SourceLocation(2, 3))
        assert dump_ast(literal) == '(literal "1" integer)'
        assert dump_ast(literal, include_location=True) == '(literal "1" integer :loc 2:3)'

    def test_unknown_location_is_omitted(self):
        assert dump_ast(LiteralAccess("1"), include_location=True) == '(literal "1" float)'

    def test_compact_output_is_one_line(self, sample_hir):
        text = dump_ast(sample_hir.stencils[0].ast.root, pretty=False)
        assert "\n" not in text
        assert text.startswith("(block")

    def test_long_forms_are_broken(self, sample_hir):
        text = dump_ast(sample_hir.stencils[0].ast.root)
        lines = text.splitlines()
        assert lines[0] == "(block"
        assert lines[-1] == ")"
        assert '  (boundary-condition "zero_gradient" ("out"))' in lines


class TestIIRDump:
    def test_pair_breaks_over_lines(self):
        pair = StatementAccessPair(ExpressionStatement(FieldAccess("out")),
                                   Accesses({2: Extents()}, {1: Extents()}))
        assert dump_iir(pair) == (
            '(pair\n'
            '  (expr (field "out" [0 0 0]))\n'
            '  (accesses (write (2 [0 0] [0 0] [0 0])) (read (1 [0 0] [0 0] [0 0])))\n'
            ')'
        )

    def test_callee_accesses(self):
        pair = StatementAccessPair(ExpressionStatement(FieldAccess("out")), Accesses(),
                                   Accesses(read_accesses={1: Extents.of((-1, 1), (0, 0), (0, 0))}))
        text = dump_iir(pair)
        assert ":callee (accesses (read (1 [-1 1] [0 0] [0 0])))" in text

    def test_lowered_iir(self, sample_instantiation):
        text = dump_iir(sample_instantiation.iir)
        assert text.startswith("(iir\n")
        stencil_id = sample_instantiation.iir[0].id
        assert f"(stencil {stencil_id}" in text
        assert "forward" in text and "backward" in text
        assert "(interval Start+1 End+0)" in text


class TestInstantiationDump:
    def test_metadata_tables(self, sample_instantiation):
        text = dump_instantiation(sample_instantiation)
        meta = sample_instantiation.metadata
        assert text.startswith("(stencil-instantiation")
        assert f'({meta.get_access_id_from_name("in")} "in" api-field)' in text
        assert f'({meta.get_access_id_from_name("tmp")} "tmp" temporary)' in text
        assert f'({meta.get_access_id_from_name("dt")} "dt" global)' in text
        assert f'({meta.get_access_id_from_name("a")} "a" variable)' in text
        assert '(-1 "0.5")' in text
        assert '("dt" double 0.0)' in text
        assert '("eps" double unset)' in text
        assert '("use_limiter" boolean true)' in text
        assert '("niter" integer 3)' in text

    def test_description_and_versions(self, sample_instantiation):
        meta = sample_instantiation.metadata
        tmp_id = meta.get_access_id_from_name("tmp")
        version_id = sample_instantiation.create_version(tmp_id)
        text = dump_instantiation(sample_instantiation)
        stencil_id = sample_instantiation.iir[0].id
        assert f'(stencil-call "__code_gen_{stencil_id}" ())' in text
        assert f"(versions ({tmp_id} {version_id}))" in text
