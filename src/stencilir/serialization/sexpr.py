"""
S-expression dumps for debugging and golden tests
=================================================

Readable text form of AST statements, the IIR and the metadata tables:

    (block
      (expr (assign "=" (field "out" [0 0 0]) (field "in" [1 0 0])))
      (var-decl "tmp" (type float) :op "=" :init ((literal "0.5" float))))

Structured sexpr is built from nested lists and sexpdata.Symbol (keywords
stay unquoted, names are quoted), then pretty-printed. Unlike the protobuf
formats the dump is one-way: there is no reader.
"""

from typing import Any, List

import sexpdata

from ..ir.accesses import Accesses, Extents
from ..ir.nodes import IIR, DoMethod, IIRVisitor, IRNode, MultiStage, Stage, StatementAccessPair, Stencil
from ..metadata.instantiation import StencilInstantiation
from ..metadata.meta_info import StencilMetaInfo
from ..shared.ast_visitor import ASTVisitor
from ..shared.interval import Interval, format_bound
from ..shared.nodes import (
    AssignmentExpression, ASTNode, BinaryExpression, BlockStatement, BoundaryConditionDeclaration,
    DeferredOffset, ExpressionStatement, FieldAccess, FunctionCall, IfStatement, LiteralAccess,
    ReturnStatement, StencilCallDeclaration, StencilFunctionArgument, StencilFunctionCall,
    TernaryExpression, UnaryExpression, VariableAccess, VariableDeclaration, VerticalRegionDeclaration,
)
from ..shared.types import StencilAttr, Type


def _sym(s: str) -> sexpdata.Symbol:
    return sexpdata.Symbol(s)


def _triple(values) -> sexpdata.Brackets:
    return sexpdata.Brackets(list(values))


def _pretty_dumps(sexpr: Any, indent: int = 0, indent_str: str = "  ", max_line: int = 100) -> str:
    """
    Pretty-print structured sexpr. Keeps short forms on one line; breaks only when needed.
    """
    if sexpr is None:
        return "nil"
    if isinstance(sexpr, bool):
        return "true" if sexpr else "false"
    if isinstance(sexpr, (int, float)):
        return str(sexpr)
    # Check Symbol before str (sexpdata.Symbol subclasses str)
    if isinstance(sexpr, sexpdata.Symbol):
        return sexpr.value()
    if isinstance(sexpr, str):
        escaped = sexpr.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(sexpr, sexpdata.Brackets):
        inner = " ".join(_pretty_dumps(e, indent + 1, indent_str, max_line) for e in sexpr.I)
        return f"[{inner}]"
    if isinstance(sexpr, list):
        if not sexpr:
            return "()"
        parts = [_pretty_dumps(e, indent + 1, indent_str, max_line) for e in sexpr]
        one_line = "(" + " ".join(parts) + ")"
        if len(one_line) + len(indent_str) * indent <= max_line and "\n" not in one_line:
            return one_line
        prefix = indent_str * indent
        next_prefix = indent_str * (indent + 1)
        # head and the atoms right after it stay on the line of the opening paren
        head = 1
        while head < len(sexpr) and not isinstance(sexpr[head], list):
            head += 1
        rest = "\n".join(next_prefix + p for p in parts[head:])
        inner = " ".join(parts[:head]) + ("\n" + rest if rest else "")
        return f"({inner}\n{prefix})"
    return str(sexpr)


def _render(sexpr: Any, pretty: bool) -> str:
    if pretty:
        return _pretty_dumps(sexpr)
    return sexpdata.dumps(sexpr)


def _type(type_: Type) -> list:
    base = _sym(type_.builtin.name.lower()) if type_.is_builtin else type_.name
    form = [_sym("type"), base]
    if type_.is_const:
        form.append(_sym(":const"))
    if type_.is_volatile:
        form.append(_sym(":volatile"))
    return form


def _interval(interval: Interval) -> list:
    return [_sym("interval"),
            _sym(format_bound(interval.lower_level, interval.lower_offset)),
            _sym(format_bound(interval.upper_level, interval.upper_offset))]


class ASTDumper(ASTVisitor[list]):
    """AST node -> structured sexpr"""

    def __init__(self, include_location: bool = False):
        self.include_location = include_location

    def dump(self, node: ASTNode) -> list:
        form = node.accept(self)
        if self.include_location and node.location.is_valid:
            form.extend([_sym(":loc"), _sym(str(node.location))])
        return form

    def _all(self, nodes) -> List[list]:
        return [self.dump(n) for n in nodes]

    def visit_block_statement(self, node: BlockStatement) -> list:
        return [_sym("block")] + self._all(node.statements)

    def visit_expression_statement(self, node: ExpressionStatement) -> list:
        return [_sym("expr"), self.dump(node.expr)]

    def visit_return_statement(self, node: ReturnStatement) -> list:
        return [_sym("return"), self.dump(node.expr)]

    def visit_variable_declaration(self, node: VariableDeclaration) -> list:
        form = [_sym("var-decl"), node.name, _type(node.type)]
        if node.is_array:
            form.extend([_sym(":dim"), node.dimension])
        if node.has_init:
            form.extend([_sym(":op"), node.op, _sym(":init"), self._all(node.init_list)])
        return form

    def visit_stencil_call_declaration(self, node: StencilCallDeclaration) -> list:
        call = node.stencil_call
        return [_sym("stencil-call"), call.callee, [f.name for f in call.arguments]]

    def visit_vertical_region_declaration(self, node: VerticalRegionDeclaration) -> list:
        region = node.vertical_region
        return [_sym("vertical-region"), _sym(region.loop_order.name.lower()),
                _interval(region.interval), self.dump(region.ast.root)]

    def visit_boundary_condition_declaration(self, node: BoundaryConditionDeclaration) -> list:
        return [_sym("boundary-condition"), node.functor, [f.name for f in node.fields]]

    def visit_if_statement(self, node: IfStatement) -> list:
        form = [_sym("if"), self.dump(node.cond_part), self.dump(node.then_part)]
        if node.else_part is not None:
            form.append(self.dump(node.else_part))
        return form

    def visit_unary_expression(self, node: UnaryExpression) -> list:
        return [_sym("unary"), node.op, self.dump(node.operand)]

    def visit_binary_expression(self, node: BinaryExpression) -> list:
        return [_sym("binary"), node.op, self.dump(node.left), self.dump(node.right)]

    def visit_assignment_expression(self, node: AssignmentExpression) -> list:
        return [_sym("assign"), node.op, self.dump(node.left), self.dump(node.right)]

    def visit_ternary_expression(self, node: TernaryExpression) -> list:
        return [_sym("ternary"), self.dump(node.cond), self.dump(node.left), self.dump(node.right)]

    def visit_function_call(self, node: FunctionCall) -> list:
        return [_sym("call"), node.callee] + self._all(node.arguments)

    def visit_stencil_function_call(self, node: StencilFunctionCall) -> list:
        return [_sym("stencil-fun-call"), node.callee] + self._all(node.arguments)

    def visit_stencil_function_argument(self, node: StencilFunctionArgument) -> list:
        form = [_sym("stencil-fun-arg"), _sym(node.dimension.name.lower()), node.offset]
        if node.references_argument:
            form.extend([_sym(":arg"), node.argument_index])
        return form

    def visit_variable_access(self, node: VariableAccess) -> list:
        form = [_sym("var"), node.name]
        if node.index is not None:
            form.extend([_sym(":index"), self.dump(node.index)])
        if node.is_external:
            form.append(_sym(":external"))
        return form

    def visit_field_access(self, node: FieldAccess) -> list:
        offset = node.offset
        form = [_sym("field"), node.name, _triple(offset.offset)]
        if isinstance(offset, DeferredOffset):
            form.extend([_sym(":map"), _triple(offset.argument_map),
                         _sym(":arg-offset"), _triple(offset.argument_offset)])
        if node.negate_offset:
            form.append(_sym(":negate"))
        return form

    def visit_literal_access(self, node: LiteralAccess) -> list:
        return [_sym("literal"), node.value, _sym(node.builtin_type.name.lower())]


def _extents(extents: Extents) -> List[sexpdata.Brackets]:
    return [sexpdata.Brackets([e.minus, e.plus]) for e in extents]


def _accesses(accesses: Accesses) -> list:
    form: list = [_sym("accesses")]
    for kind, mapping in (("write", accesses.write_accesses), ("read", accesses.read_accesses)):
        if mapping:
            form.append([_sym(kind)] + [[access_id] + _extents(mapping[access_id])
                                        for access_id in sorted(mapping)])
    return form


class IIRDumper(IIRVisitor[list]):
    """IIR node -> structured sexpr"""

    def __init__(self, include_location: bool = False):
        self.ast = ASTDumper(include_location)

    def visit_iir(self, node: IIR) -> list:
        return [_sym("iir")] + [s.accept(self) for s in node]

    def visit_stencil(self, node: Stencil) -> list:
        form = [_sym("stencil"), node.id]
        attrs = [_sym(a.name.lower().replace("_", "-")) for a in StencilAttr
                 if a is not StencilAttr.NONE and node.has_attribute(a)]
        if attrs:
            form.extend([_sym(":attrs"), attrs])
        return form + [ms.accept(self) for ms in node]

    def visit_multi_stage(self, node: MultiStage) -> list:
        return [_sym("multi-stage"), node.id, _sym(node.loop_order.name.lower())] + [s.accept(self) for s in node]

    def visit_stage(self, node: Stage) -> list:
        return [_sym("stage"), node.id] + [dm.accept(self) for dm in node]

    def visit_do_method(self, node: DoMethod) -> list:
        return [_sym("do-method"), node.id, _interval(node.interval)] + [p.accept(self) for p in node]

    def visit_statement_access_pair(self, node: StatementAccessPair) -> list:
        form = [_sym("pair"), self.ast.dump(node.statement), _accesses(node.caller_accesses)]
        if node.callee_accesses is not None:
            form.extend([_sym(":callee"), _accesses(node.callee_accesses)])
        return form


def _global(value) -> Any:
    # sexpdata writes Python booleans as t / ()
    if isinstance(value, bool):
        return _sym("true" if value else "false")
    return value


def _metadata(meta: StencilMetaInfo, ast: ASTDumper) -> list:
    def kind(access_id: int) -> sexpdata.Symbol:
        if meta.is_api_field(access_id):
            return _sym("api-field")
        if meta.is_temporary_field(access_id):
            return _sym("temporary")
        if meta.is_global_variable(access_id):
            return _sym("global")
        return _sym("variable")

    form: list = [_sym("metadata"), meta.stencil_name, _sym(":file"), meta.file_name]
    form.append([_sym("names")] + [[access_id, name, kind(access_id)]
                                    for access_id, name in sorted(meta.access_id_to_name.items())])
    if meta.literal_id_to_name:
        form.append([_sym("literals")] + [[access_id, text]
                                           for access_id, text in sorted(meta.literal_id_to_name.items())])
    versions = meta.variable_versions.version_map
    if versions:
        form.append([_sym("versions")] + [[original] + ids for original, ids in sorted(versions.items())])
    if meta.global_variable_values:
        form.append([_sym("globals")] + [
            [name, _sym(value.type.name.lower()), _sym("unset") if value.value is None else _global(value.value)]
            for name, value in sorted(meta.global_variable_values.items())
        ])
    form.append([_sym("description")] + [ast.dump(desc.stmt) for desc in meta.stencil_desc_statements])
    return form


def dump_ast(node: ASTNode, include_location: bool = False, pretty: bool = True) -> str:
    """Statement or expression as S-expression text"""
    return _render(ASTDumper(include_location).dump(node), pretty)


def dump_iir(node: IRNode, include_location: bool = False, pretty: bool = True) -> str:
    return _render(node.accept(IIRDumper(include_location)), pretty)


def dump_instantiation(instantiation: StencilInstantiation, include_location: bool = False,
                       pretty: bool = True) -> str:
    dumper = IIRDumper(include_location)
    sexpr = [_sym("stencil-instantiation"),
             _metadata(instantiation.metadata, dumper.ast),
             instantiation.iir.accept(dumper)]
    return _render(sexpr, pretty)
