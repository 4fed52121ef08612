"""
Object model -> protobuf messages

Every union is written with exactly one branch present; empty branch
messages are marked present with SetInParent(). Locations are always
written, the unknown sentinel included, so a round trip keeps them exactly.
"""

from typing import Any

from ..hir.nodes import HIR, DirectionArgument, GlobalVariableValue, HIRStencil, OffsetArgument, StencilFunction
from ..ir.accesses import Accesses, Extents
from ..ir.nodes import IIR, DoMethod, MultiStage, Stage, StatementAccessPair, Stencil
from ..metadata.instantiation import StencilInstantiation
from ..metadata.meta_info import GlobalValue, StencilMetaInfo
from ..shared.ast_visitor import ASTVisitor
from ..shared.interval import Interval, SpecialLevel
from ..shared.nodes import (
    AssignmentExpression, BinaryExpression, BlockStatement, BoundaryConditionDeclaration, DeferredOffset,
    Expression, ExpressionStatement, Field, FieldAccess, FunctionCall, IfStatement, LiteralAccess,
    ReturnStatement, Statement, StencilCall, StencilCallDeclaration, StencilFunctionArgument,
    StencilFunctionCall, TernaryExpression, UnaryExpression, VariableAccess, VariableDeclaration,
    VerticalRegion, VerticalRegionDeclaration,
)
from ..shared.source_location import SourceLocation
from ..shared.types import Type
from ..utils.config import UNUSED_ARGUMENT_MAP, ZERO_OFFSET
from . import schema


# ============================================================================
# Value objects
# ============================================================================

def encode_location(location: SourceLocation, target) -> None:
    target.SetInParent()
    target.Line = location.line
    target.Column = location.column


def encode_field(field: Field, target) -> None:
    target.name = field.name
    encode_location(field.location, target.loc)
    target.is_temporary = field.is_temporary
    target.field_dimensions.extend(field.field_dimensions)


def encode_interval(interval: Interval, target) -> None:
    if isinstance(interval.lower_level, SpecialLevel):
        target.special_lower_level = interval.lower_level.value
    else:
        target.lower_level = interval.lower_level
    if isinstance(interval.upper_level, SpecialLevel):
        target.special_upper_level = interval.upper_level.value
    else:
        target.upper_level = interval.upper_level
    target.lower_offset = interval.lower_offset
    target.upper_offset = interval.upper_offset


def encode_type(type_: Type, target) -> None:
    if type_.name is not None:
        target.name = type_.name
    else:
        target.builtin_type.SetInParent()
        target.builtin_type.type_id = int(type_.builtin)
    target.is_const = type_.is_const
    target.is_volatile = type_.is_volatile


def encode_stencil_call(call: StencilCall, target) -> None:
    encode_location(call.location, target.loc)
    target.callee = call.callee
    for argument in call.arguments:
        encode_field(argument, target.arguments.add())


def encode_vertical_region(region: VerticalRegion, target) -> None:
    encode_location(region.location, target.loc)
    target.ast.root.CopyFrom(encode_stmt(region.ast.root))
    encode_interval(region.interval, target.interval)
    target.loop_order = int(region.loop_order)


# ============================================================================
# AST
# ============================================================================

class ASTEncoder(ASTVisitor[Any]):
    """Statements become `Stmt` messages, expressions `Expr` messages."""

    def _stmt(self, node: Statement):
        return node.accept(self)

    def _expr(self, node: Expression):
        return node.accept(self)

    @staticmethod
    def _branch(message, name: str):
        branch = getattr(message, name)
        branch.SetInParent()
        return branch

    # -- statements -----------------------------------------------------

    def visit_block_statement(self, node: BlockStatement):
        msg = schema.statements.Stmt()
        block = self._branch(msg, "block_stmt")
        for stmt in node.statements:
            block.statements.add().CopyFrom(self._stmt(stmt))
        encode_location(node.location, block.loc)
        return msg

    def visit_expression_statement(self, node: ExpressionStatement):
        msg = schema.statements.Stmt()
        stmt = self._branch(msg, "expr_stmt")
        stmt.expr.CopyFrom(self._expr(node.expr))
        encode_location(node.location, stmt.loc)
        return msg

    def visit_return_statement(self, node: ReturnStatement):
        msg = schema.statements.Stmt()
        stmt = self._branch(msg, "return_stmt")
        stmt.expr.CopyFrom(self._expr(node.expr))
        encode_location(node.location, stmt.loc)
        return msg

    def visit_variable_declaration(self, node: VariableDeclaration):
        msg = schema.statements.Stmt()
        stmt = self._branch(msg, "var_decl_stmt")
        encode_type(node.type, stmt.type)
        stmt.name = node.name
        stmt.dimension = node.dimension
        stmt.op = node.op
        for init in node.init_list:
            stmt.init_list.add().CopyFrom(self._expr(init))
        encode_location(node.location, stmt.loc)
        return msg

    def visit_stencil_call_declaration(self, node: StencilCallDeclaration):
        msg = schema.statements.Stmt()
        stmt = self._branch(msg, "stencil_call_decl_stmt")
        encode_stencil_call(node.stencil_call, stmt.stencil_call)
        encode_location(node.location, stmt.loc)
        return msg

    def visit_vertical_region_declaration(self, node: VerticalRegionDeclaration):
        msg = schema.statements.Stmt()
        stmt = self._branch(msg, "vertical_region_decl_stmt")
        encode_vertical_region(node.vertical_region, stmt.vertical_region)
        encode_location(node.location, stmt.loc)
        return msg

    def visit_boundary_condition_declaration(self, node: BoundaryConditionDeclaration):
        msg = schema.statements.Stmt()
        stmt = self._branch(msg, "boundary_condition_decl_stmt")
        stmt.functor = node.functor
        for field in node.fields:
            encode_field(field, stmt.fields.add())
        encode_location(node.location, stmt.loc)
        return msg

    def visit_if_statement(self, node: IfStatement):
        msg = schema.statements.Stmt()
        stmt = self._branch(msg, "if_stmt")
        stmt.cond_part.CopyFrom(self._stmt(node.cond_part))
        stmt.then_part.CopyFrom(self._stmt(node.then_part))
        if node.else_part is not None:
            stmt.else_part.CopyFrom(self._stmt(node.else_part))
        encode_location(node.location, stmt.loc)
        return msg

    # -- expressions ----------------------------------------------------

    def visit_unary_expression(self, node: UnaryExpression):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "unary_operator")
        expr.op = node.op
        expr.operand.CopyFrom(self._expr(node.operand))
        encode_location(node.location, expr.loc)
        return msg

    def visit_binary_expression(self, node: BinaryExpression):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "binary_operator")
        expr.left.CopyFrom(self._expr(node.left))
        expr.op = node.op
        expr.right.CopyFrom(self._expr(node.right))
        encode_location(node.location, expr.loc)
        return msg

    def visit_assignment_expression(self, node: AssignmentExpression):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "assignment_expr")
        expr.left.CopyFrom(self._expr(node.left))
        expr.op = node.op
        expr.right.CopyFrom(self._expr(node.right))
        encode_location(node.location, expr.loc)
        return msg

    def visit_ternary_expression(self, node: TernaryExpression):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "ternary_operator")
        expr.cond.CopyFrom(self._expr(node.cond))
        expr.left.CopyFrom(self._expr(node.left))
        expr.right.CopyFrom(self._expr(node.right))
        encode_location(node.location, expr.loc)
        return msg

    def visit_function_call(self, node: FunctionCall):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "fun_call_expr")
        expr.callee = node.callee
        for argument in node.arguments:
            expr.arguments.add().CopyFrom(self._expr(argument))
        encode_location(node.location, expr.loc)
        return msg

    def visit_stencil_function_call(self, node: StencilFunctionCall):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "stencil_fun_call_expr")
        expr.callee = node.callee
        for argument in node.arguments:
            expr.arguments.add().CopyFrom(self._expr(argument))
        encode_location(node.location, expr.loc)
        return msg

    def visit_stencil_function_argument(self, node: StencilFunctionArgument):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "stencil_fun_arg_expr")
        expr.dimension.SetInParent()
        expr.dimension.direction = int(node.dimension)
        expr.offset = node.offset
        expr.argument_index = node.argument_index
        encode_location(node.location, expr.loc)
        return msg

    def visit_variable_access(self, node: VariableAccess):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "var_access_expr")
        expr.name = node.name
        if node.index is not None:
            expr.index.CopyFrom(self._expr(node.index))
        expr.is_external = node.is_external
        encode_location(node.location, expr.loc)
        return msg

    def visit_field_access(self, node: FieldAccess):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "field_access_expr")
        expr.name = node.name
        offset = node.offset
        expr.offset.extend(offset.offset)
        if isinstance(offset, DeferredOffset):
            expr.argument_map.extend(offset.argument_map)
            expr.argument_offset.extend(offset.argument_offset)
        else:
            expr.argument_map.extend(UNUSED_ARGUMENT_MAP)
            expr.argument_offset.extend(ZERO_OFFSET)
        expr.negate_offset = node.negate_offset
        encode_location(node.location, expr.loc)
        return msg

    def visit_literal_access(self, node: LiteralAccess):
        msg = schema.statements.Expr()
        expr = self._branch(msg, "literal_access_expr")
        expr.value = node.value
        expr.type.SetInParent()
        expr.type.type_id = int(node.builtin_type)
        encode_location(node.location, expr.loc)
        return msg


_AST_ENCODER = ASTEncoder()


def encode_stmt(node: Statement):
    return node.accept(_AST_ENCODER)


def encode_expr(node: Expression):
    return node.accept(_AST_ENCODER)


# ============================================================================
# Internal IR
# ============================================================================

def encode_extents(extents: Extents, target) -> None:
    for extent in extents:
        target.extents.add(minus=extent.minus, plus=extent.plus)


def encode_accesses(accesses: Accesses, target) -> None:
    target.SetInParent()
    for access_id, extents in accesses.write_accesses.items():
        encode_extents(extents, target.writeAccess[access_id])
    for access_id, extents in accesses.read_accesses.items():
        encode_extents(extents, target.readAccess[access_id])


def encode_statement_access_pair(pair: StatementAccessPair, target) -> None:
    target.statement.ASTStmt.CopyFrom(encode_stmt(pair.statement))
    encode_accesses(pair.caller_accesses, target.callerAccesses)
    if pair.callee_accesses is not None:
        encode_accesses(pair.callee_accesses, target.calleeAccesses)


def encode_do_method(do_method: DoMethod, target) -> None:
    for pair in do_method:
        encode_statement_access_pair(pair, target.stmtaccesspairs.add())
    target.DoMethodID = do_method.id
    encode_interval(do_method.interval, target.interval)


def encode_stage(stage: Stage, target) -> None:
    for do_method in stage:
        encode_do_method(do_method, target.domethods.add())
    target.stageID = stage.id


def encode_multi_stage(multi_stage: MultiStage, target) -> None:
    for stage in multi_stage:
        encode_stage(stage, target.stages.add())
    target.looporder = int(multi_stage.loop_order)
    target.MulitStageID = multi_stage.id


def encode_stencil(stencil: Stencil, target) -> None:
    for multi_stage in stencil:
        encode_multi_stage(multi_stage, target.multistages.add())
    target.stencilID = stencil.id
    target.attr.SetInParent()
    target.attr.attrBits = int(stencil.attributes)


def encode_iir(iir: IIR, target) -> None:
    target.SetInParent()
    for stencil in iir:
        encode_stencil(stencil, target.stencils.add())


# ============================================================================
# Metadata
# ============================================================================

def encode_global_value(value: GlobalValue, target) -> None:
    target.type = int(value.type)
    target.value = float(value.value) if value.is_set else 0.0
    target.valueIsSet = value.is_set


def encode_metadata(metadata: StencilMetaInfo, target) -> None:
    target.SetInParent()
    for access_id, name in metadata.access_id_to_name.items():
        target.AccessIDToName[access_id] = name
    for access_id, text in metadata.literal_id_to_name.items():
        target.LiteralIDToName[access_id] = text
    target.FieldAccessIDs.extend(metadata.field_access_ids)
    target.APIFieldIDs.extend(metadata.api_field_ids)
    target.TemporaryFieldIDs.extend(metadata.temporary_field_ids)
    target.GlobalVariableIDs.extend(metadata.global_variable_ids)

    versions = metadata.variable_versions
    target.versionedFields.SetInParent()
    for original, ids in versions.version_map.items():
        target.versionedFields.variableVersionMap[original].allIDs.extend(ids)
    target.versionedFields.versionIDs.extend(versions.version_ids)
    for version, original in versions.version_to_original.items():
        target.versionedFields.VersionIDToOriginalID[version] = original

    for desc in metadata.stencil_desc_statements:
        entry = target.stencilDescStatements.add()
        entry.stmt.CopyFrom(encode_stmt(desc.stmt))
        for call in desc.stack_trace:
            encode_stencil_call(call, entry.stacktrace.add())
    for stencil_id, declaration in metadata.id_to_stencil_call.items():
        target.IDToStencilCall[stencil_id].CopyFrom(encode_stmt(declaration))
    for field_name, declaration in metadata.boundary_conditions.items():
        target.FieldnameToBoundaryCondition[field_name].CopyFrom(encode_stmt(declaration))
    for access_id, dims in metadata.field_id_to_legal_dimensions.items():
        entry = target.fieldIDtoLegalDimensions[access_id]
        entry.int1, entry.int2, entry.int3 = dims
    for name, value in metadata.global_variable_values.items():
        encode_global_value(value, target.GlobalVariableToValue[name])

    encode_location(metadata.stencil_location, target.stencilLocation)
    target.stencilName = metadata.stencil_name
    target.fileName = metadata.file_name


def instantiation_to_proto(instantiation: StencilInstantiation):
    msg = schema.iir.StencilInstantiation()
    encode_metadata(instantiation.metadata, msg.metadata)
    encode_iir(instantiation.iir, msg.internalIR)
    return msg


# ============================================================================
# HIR
# ============================================================================

def encode_hir_global_value(value: GlobalVariableValue, target) -> None:
    setattr(target, f"{value.kind}_value", value.value)
    target.is_constexpr = value.is_constexpr


def encode_hir_stencil(stencil: HIRStencil, target) -> None:
    target.ast.root.CopyFrom(encode_stmt(stencil.ast.root))
    for field in stencil.fields:
        encode_field(field, target.fields.add())
    target.name = stencil.name
    encode_location(stencil.location, target.loc)


def encode_stencil_function(function: StencilFunction, target) -> None:
    for ast in function.asts:
        target.asts.add().root.CopyFrom(encode_stmt(ast.root))
    for interval in function.intervals:
        encode_interval(interval, target.intervals.add())
    for argument in function.arguments:
        arg = target.arguments.add()
        if isinstance(argument, DirectionArgument):
            arg.direction_value.name = argument.name
            encode_location(argument.location, arg.direction_value.loc)
        elif isinstance(argument, OffsetArgument):
            arg.offset_value.name = argument.name
            encode_location(argument.location, arg.offset_value.loc)
        else:
            encode_field(argument, arg.field_value)
    encode_location(function.location, target.loc)
    target.name = function.name


def hir_to_proto(hir: HIR):
    msg = schema.statements.HIR()
    for stencil in hir.stencils:
        encode_hir_stencil(stencil, msg.stencils.add())
    for function in hir.stencil_functions:
        encode_stencil_function(function, msg.stencil_functions.add())
    msg.global_variables.SetInParent()
    for name, value in hir.global_variables.items():
        encode_hir_global_value(value, msg.global_variables.map[name])
    msg.filename = hir.filename
    return msg
