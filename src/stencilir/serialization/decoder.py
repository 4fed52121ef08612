"""
Protobuf messages -> object model

The decoder keeps the path of the message it is looking at
(`metadata.stencilDescStatements[0].stmt.block_stmt.statements[2]`) so a
union with zero or several branches, or an enum number outside the schema,
is reported with its exact position as UnknownVariantError. Values the
object model cannot hold (wrong number of offset components, mismatched
stencil-function intervals) raise MalformedEncodingError.
"""

from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from ..hir.nodes import (
    HIR, DirectionArgument, GlobalVariableValue, HIRStencil, OffsetArgument, StencilFunction,
    StencilFunctionArg,
)
from ..ir.accesses import Accesses, Extent, Extents
from ..ir.nodes import IIR, DoMethod, MultiStage, Stage, StatementAccessPair, Stencil
from ..metadata.instantiation import StencilInstantiation
from ..metadata.meta_info import GlobalValue, GlobalValueType, StencilMetaInfo
from ..metadata.versioning import VariableVersions
from ..shared.errors import MalformedEncodingError, UnknownVariantError
from ..shared.interval import Interval, Level, SpecialLevel
from ..shared.nodes import (
    AST, AssignmentExpression, BinaryExpression, BlockStatement, BoundaryConditionDeclaration,
    DeferredOffset, Expression, ExpressionStatement, Field, FieldAccess, FunctionCall, IfStatement,
    LiteralAccess, ResolvedOffset, ReturnStatement, Statement, StencilCall, StencilCallDeclaration,
    StencilFunctionArgument, StencilFunctionCall, TernaryExpression, UnaryExpression, VariableAccess,
    VariableDeclaration, VerticalRegion, VerticalRegionDeclaration,
)
from ..shared.source_location import SourceLocation, UNKNOWN_LOCATION
from ..shared.types import BuiltinTypeID, Dimension, LoopOrder, StencilAttr, Type
from ..utils.config import DEFAULT_FIELD_DIMENSIONS, NUM_DIMENSIONS, UNUSED_ARGUMENT_INDEX, UNUSED_ARGUMENT_MAP, ZERO_OFFSET
from .schema import UNION_BRANCHES


class ProtoDecoder:
    def __init__(self):
        self._path: List[str] = []

    # ------------------------------------------------------------------
    # Path tracking and checks
    # ------------------------------------------------------------------

    @contextmanager
    def _at(self, segment: str):
        self._path.append(segment)
        try:
            yield
        finally:
            self._path.pop()

    @property
    def path(self) -> str:
        return ".".join(self._path).replace(".[", "[") or "<root>"

    def _branch(self, msg, group: int = 0) -> str:
        """Name of the one present branch of a union message"""
        union = msg.DESCRIPTOR.name
        present = [name for name in UNION_BRANCHES[union][group] if msg.HasField(name)]
        if len(present) != 1:
            raise UnknownVariantError(union, self.path, present)
        return present[0]

    def _enum(self, msg, field_name: str) -> int:
        """Enum field value, checked against the numbers the schema declares"""
        value = getattr(msg, field_name)
        enum_type = msg.DESCRIPTOR.fields_by_name[field_name].enum_type
        if value not in enum_type.values_by_number:
            with self._at(field_name):
                raise UnknownVariantError(enum_type.full_name, self.path, detail=f"unknown enum number {value}")
        return value

    def _triple(self, values, what: str, default) -> tuple:
        values = tuple(values)
        if not values:
            return default
        if len(values) != NUM_DIMENSIONS:
            raise MalformedEncodingError(
                f"{what} at '{self.path}' has {len(values)} components, expected {NUM_DIMENSIONS}"
            )
        return values

    # ------------------------------------------------------------------
    # Value objects
    # ------------------------------------------------------------------

    def location(self, msg, field_name: str = "loc") -> SourceLocation:
        if not msg.HasField(field_name):
            return UNKNOWN_LOCATION
        loc = getattr(msg, field_name)
        return SourceLocation(loc.Line, loc.Column)

    def field(self, msg) -> Field:
        dims = self._triple(msg.field_dimensions, "field_dimensions", DEFAULT_FIELD_DIMENSIONS)
        return Field(msg.name, self.location(msg), msg.is_temporary, dims)

    def _level(self, msg, group: int, special: str) -> Level:
        branch = self._branch(msg, group)
        if branch == special:
            return SpecialLevel(self._enum(msg, special))
        return getattr(msg, branch)

    def interval(self, msg) -> Interval:
        lower = self._level(msg, 0, "special_lower_level")
        upper = self._level(msg, 1, "special_upper_level")
        return Interval(lower, upper, msg.lower_offset, msg.upper_offset)

    def type(self, msg) -> Type:
        branch = self._branch(msg)
        if branch == "name":
            return Type.custom(msg.name, msg.is_const, msg.is_volatile)
        with self._at("builtin_type"):
            builtin = BuiltinTypeID(self._enum(msg.builtin_type, "type_id"))
        return Type.of(builtin, msg.is_const, msg.is_volatile)

    def stencil_call(self, msg) -> StencilCall:
        arguments = []
        for index, argument in enumerate(msg.arguments):
            with self._at(f"arguments[{index}]"):
                arguments.append(self.field(argument))
        return StencilCall(msg.callee, tuple(arguments), self.location(msg))

    def vertical_region(self, msg) -> VerticalRegion:
        with self._at("ast"):
            ast = self.ast(msg.ast)
        with self._at("interval"):
            interval = self.interval(msg.interval)
        loop_order = LoopOrder(self._enum(msg, "loop_order"))
        return VerticalRegion(ast, interval, loop_order, self.location(msg))

    def ast(self, msg) -> AST:
        with self._at("root"):
            return AST(self.stmt(msg.root))

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def stmt(self, msg) -> Statement:
        branch = self._branch(msg)
        with self._at(branch):
            return self._STMT_DECODERS[branch](self, getattr(msg, branch))

    def _stmts(self, messages, name: str) -> List[Statement]:
        result = []
        for index, msg in enumerate(messages):
            with self._at(f"{name}[{index}]"):
                result.append(self.stmt(msg))
        return result

    def _exprs(self, messages, name: str) -> List[Expression]:
        result = []
        for index, msg in enumerate(messages):
            with self._at(f"{name}[{index}]"):
                result.append(self.expr(msg))
        return result

    def _child_stmt(self, msg, name: str) -> Statement:
        with self._at(name):
            return self.stmt(getattr(msg, name))

    def _child_expr(self, msg, name: str) -> Expression:
        with self._at(name):
            return self.expr(getattr(msg, name))

    def _block_stmt(self, msg) -> BlockStatement:
        return BlockStatement(self._stmts(msg.statements, "statements"), self.location(msg))

    def _expr_stmt(self, msg) -> ExpressionStatement:
        return ExpressionStatement(self._child_expr(msg, "expr"), self.location(msg))

    def _return_stmt(self, msg) -> ReturnStatement:
        return ReturnStatement(self._child_expr(msg, "expr"), self.location(msg))

    def _var_decl_stmt(self, msg) -> VariableDeclaration:
        with self._at("type"):
            type_ = self.type(msg.type)
        return VariableDeclaration(type_, msg.name, msg.dimension, msg.op,
                                   self._exprs(msg.init_list, "init_list"), self.location(msg))

    def _stencil_call_decl_stmt(self, msg) -> StencilCallDeclaration:
        with self._at("stencil_call"):
            call = self.stencil_call(msg.stencil_call)
        return StencilCallDeclaration(call, self.location(msg))

    def _vertical_region_decl_stmt(self, msg) -> VerticalRegionDeclaration:
        with self._at("vertical_region"):
            region = self.vertical_region(msg.vertical_region)
        return VerticalRegionDeclaration(region, self.location(msg))

    def _boundary_condition_decl_stmt(self, msg) -> BoundaryConditionDeclaration:
        fields = []
        for index, field in enumerate(msg.fields):
            with self._at(f"fields[{index}]"):
                fields.append(self.field(field))
        return BoundaryConditionDeclaration(msg.functor, fields, self.location(msg))

    def _if_stmt(self, msg) -> IfStatement:
        cond = self._child_stmt(msg, "cond_part")
        then = self._child_stmt(msg, "then_part")
        orelse = self._child_stmt(msg, "else_part") if msg.HasField("else_part") else None
        return IfStatement(cond, then, orelse, self.location(msg))

    _STMT_DECODERS: Dict[str, Callable] = {
        "block_stmt": _block_stmt,
        "expr_stmt": _expr_stmt,
        "return_stmt": _return_stmt,
        "var_decl_stmt": _var_decl_stmt,
        "stencil_call_decl_stmt": _stencil_call_decl_stmt,
        "vertical_region_decl_stmt": _vertical_region_decl_stmt,
        "boundary_condition_decl_stmt": _boundary_condition_decl_stmt,
        "if_stmt": _if_stmt,
    }

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def expr(self, msg) -> Expression:
        branch = self._branch(msg)
        with self._at(branch):
            return self._EXPR_DECODERS[branch](self, getattr(msg, branch))

    def _unary_operator(self, msg) -> UnaryExpression:
        return UnaryExpression(msg.op, self._child_expr(msg, "operand"), self.location(msg))

    def _binary_operator(self, msg) -> BinaryExpression:
        return BinaryExpression(self._child_expr(msg, "left"), msg.op, self._child_expr(msg, "right"),
                                self.location(msg))

    def _assignment_expr(self, msg) -> AssignmentExpression:
        return AssignmentExpression(self._child_expr(msg, "left"), self._child_expr(msg, "right"), msg.op,
                                    self.location(msg))

    def _ternary_operator(self, msg) -> TernaryExpression:
        return TernaryExpression(self._child_expr(msg, "cond"), self._child_expr(msg, "left"),
                                 self._child_expr(msg, "right"), self.location(msg))

    def _fun_call_expr(self, msg) -> FunctionCall:
        return FunctionCall(msg.callee, self._exprs(msg.arguments, "arguments"), self.location(msg))

    def _stencil_fun_call_expr(self, msg) -> StencilFunctionCall:
        return StencilFunctionCall(msg.callee, self._exprs(msg.arguments, "arguments"), self.location(msg))

    def _stencil_fun_arg_expr(self, msg) -> StencilFunctionArgument:
        with self._at("dimension"):
            dimension = Dimension(self._enum(msg.dimension, "direction"))
        return StencilFunctionArgument(dimension, msg.offset, msg.argument_index, self.location(msg))

    def _var_access_expr(self, msg) -> VariableAccess:
        index = self._child_expr(msg, "index") if msg.HasField("index") else None
        return VariableAccess(msg.name, index, msg.is_external, self.location(msg))

    def _field_access_expr(self, msg) -> FieldAccess:
        offset = self._triple(msg.offset, "offset", ZERO_OFFSET)
        argument_map = self._triple(msg.argument_map, "argument_map", UNUSED_ARGUMENT_MAP)
        argument_offset = self._triple(msg.argument_offset, "argument_offset", ZERO_OFFSET)
        if all(index == UNUSED_ARGUMENT_INDEX for index in argument_map):
            if argument_offset != ZERO_OFFSET:
                raise MalformedEncodingError(
                    f"argument_offset {list(argument_offset)} at '{self.path}' has no argument to apply to"
                )
            field_offset = ResolvedOffset(offset)
        else:
            field_offset = DeferredOffset(offset, argument_map, argument_offset)
        return FieldAccess(msg.name, field_offset, msg.negate_offset, self.location(msg))

    def _literal_access_expr(self, msg) -> LiteralAccess:
        with self._at("type"):
            builtin = BuiltinTypeID(self._enum(msg.type, "type_id"))
        return LiteralAccess(msg.value, builtin, self.location(msg))

    _EXPR_DECODERS: Dict[str, Callable] = {
        "unary_operator": _unary_operator,
        "binary_operator": _binary_operator,
        "assignment_expr": _assignment_expr,
        "ternary_operator": _ternary_operator,
        "fun_call_expr": _fun_call_expr,
        "stencil_fun_call_expr": _stencil_fun_call_expr,
        "stencil_fun_arg_expr": _stencil_fun_arg_expr,
        "var_access_expr": _var_access_expr,
        "field_access_expr": _field_access_expr,
        "literal_access_expr": _literal_access_expr,
    }

    # ------------------------------------------------------------------
    # Internal IR
    # ------------------------------------------------------------------

    def extents(self, msg) -> Extents:
        if len(msg.extents) != NUM_DIMENSIONS:
            raise MalformedEncodingError(
                f"Extents at '{self.path}' has {len(msg.extents)} dimensions, expected {NUM_DIMENSIONS}"
            )
        return Extents(tuple(Extent(e.minus, e.plus) for e in msg.extents))

    def accesses(self, msg) -> Accesses:
        result = Accesses()
        for access_id in sorted(msg.writeAccess):
            with self._at(f"writeAccess[{access_id}]"):
                result.add_write_extent(access_id, self.extents(msg.writeAccess[access_id]))
        for access_id in sorted(msg.readAccess):
            with self._at(f"readAccess[{access_id}]"):
                result.add_read_extent(access_id, self.extents(msg.readAccess[access_id]))
        return result

    def statement_access_pair(self, msg) -> StatementAccessPair:
        with self._at("statement.ASTStmt"):
            statement = self.stmt(msg.statement.ASTStmt)
        with self._at("callerAccesses"):
            caller = self.accesses(msg.callerAccesses)
        callee: Optional[Accesses] = None
        if msg.HasField("calleeAccesses"):
            with self._at("calleeAccesses"):
                callee = self.accesses(msg.calleeAccesses)
        return StatementAccessPair(statement, caller, callee)

    def do_method(self, msg) -> DoMethod:
        with self._at("interval"):
            interval = self.interval(msg.interval)
        do_method = DoMethod(msg.DoMethodID, interval)
        for index, pair in enumerate(msg.stmtaccesspairs):
            with self._at(f"stmtaccesspairs[{index}]"):
                do_method.append(self.statement_access_pair(pair))
        return do_method

    def stage(self, msg) -> Stage:
        stage = Stage(msg.stageID)
        for index, do_method in enumerate(msg.domethods):
            with self._at(f"domethods[{index}]"):
                stage.append(self.do_method(do_method))
        return stage

    def multi_stage(self, msg) -> MultiStage:
        multi_stage = MultiStage(msg.MulitStageID, LoopOrder(self._enum(msg, "looporder")))
        for index, stage in enumerate(msg.stages):
            with self._at(f"stages[{index}]"):
                multi_stage.append(self.stage(stage))
        return multi_stage

    def stencil(self, msg) -> Stencil:
        stencil = Stencil(msg.stencilID, StencilAttr(msg.attr.attrBits))
        for index, multi_stage in enumerate(msg.multistages):
            with self._at(f"multistages[{index}]"):
                stencil.append(self.multi_stage(multi_stage))
        return stencil

    def iir(self, msg) -> IIR:
        iir = IIR()
        for index, stencil in enumerate(msg.stencils):
            with self._at(f"stencils[{index}]"):
                iir.append(self.stencil(stencil))
        return iir

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def global_value(self, msg) -> GlobalValue:
        value_type = GlobalValueType(self._enum(msg, "type"))
        if not msg.valueIsSet:
            return GlobalValue.unset(value_type)
        return GlobalValue(value_type, msg.value)

    def variable_versions(self, msg) -> VariableVersions:
        return VariableVersions.from_tables(
            {original: list(msg.variableVersionMap[original].allIDs)
             for original in sorted(msg.variableVersionMap)},
            msg.versionIDs,
            {version: msg.VersionIDToOriginalID[version] for version in sorted(msg.VersionIDToOriginalID)},
        )

    def _stmt_map(self, mapping, name: str) -> dict:
        result = {}
        for key in sorted(mapping):
            with self._at(f"{name}[{key}]"):
                result[key] = self.stmt(mapping[key])
        return result

    def metadata(self, msg) -> StencilMetaInfo:
        meta = StencilMetaInfo(msg.stencilName, msg.fileName, self.location(msg, "stencilLocation"))
        meta.access_id_to_name = {key: msg.AccessIDToName[key] for key in sorted(msg.AccessIDToName)}
        meta.literal_id_to_name = {key: msg.LiteralIDToName[key] for key in sorted(msg.LiteralIDToName)}
        meta.field_access_ids = list(msg.FieldAccessIDs)
        meta.api_field_ids = list(msg.APIFieldIDs)
        meta.temporary_field_ids = list(msg.TemporaryFieldIDs)
        meta.global_variable_ids = list(msg.GlobalVariableIDs)
        meta.variable_versions = self.variable_versions(msg.versionedFields)

        for index, desc in enumerate(msg.stencilDescStatements):
            with self._at(f"stencilDescStatements[{index}]"):
                stmt = self._child_stmt(desc, "stmt")
                stack_trace = []
                for frame_index, frame in enumerate(desc.stacktrace):
                    with self._at(f"stacktrace[{frame_index}]"):
                        stack_trace.append(self.stencil_call(frame))
                meta.add_stencil_desc_statement(stmt, stack_trace)

        meta.id_to_stencil_call = self._checked_stmts(
            self._stmt_map(msg.IDToStencilCall, "IDToStencilCall"), StencilCallDeclaration, "IDToStencilCall")
        meta.boundary_conditions = self._checked_stmts(
            self._stmt_map(msg.FieldnameToBoundaryCondition, "FieldnameToBoundaryCondition"),
            BoundaryConditionDeclaration, "FieldnameToBoundaryCondition")

        for access_id in sorted(msg.fieldIDtoLegalDimensions):
            dims = msg.fieldIDtoLegalDimensions[access_id]
            meta.field_id_to_legal_dimensions[access_id] = (dims.int1, dims.int2, dims.int3)
        for name in sorted(msg.GlobalVariableToValue):
            with self._at(f"GlobalVariableToValue[{name}]"):
                meta.global_variable_values[name] = self.global_value(msg.GlobalVariableToValue[name])
        return meta

    def _checked_stmts(self, mapping: dict, expected: type, name: str) -> dict:
        for key, stmt in mapping.items():
            if not isinstance(stmt, expected):
                raise MalformedEncodingError(
                    f"{name}[{key}] at '{self.path}' holds a {type(stmt).__name__}, "
                    f"expected a {expected.__name__}"
                )
        return mapping

    def instantiation(self, msg) -> StencilInstantiation:
        with self._at("metadata"):
            metadata = self.metadata(msg.metadata)
        with self._at("internalIR"):
            iir = self.iir(msg.internalIR)
        return StencilInstantiation(metadata, iir)

    # ------------------------------------------------------------------
    # HIR
    # ------------------------------------------------------------------

    def hir_global_value(self, msg) -> GlobalVariableValue:
        branch = self._branch(msg)
        return GlobalVariableValue(getattr(msg, branch), msg.is_constexpr)

    def hir_stencil(self, msg) -> HIRStencil:
        with self._at("ast"):
            ast = self.ast(msg.ast)
        fields = []
        for index, field in enumerate(msg.fields):
            with self._at(f"fields[{index}]"):
                fields.append(self.field(field))
        return HIRStencil(msg.name, ast, fields, self.location(msg))

    def stencil_function_arg(self, msg) -> StencilFunctionArg:
        branch = self._branch(msg)
        with self._at(branch):
            value = getattr(msg, branch)
            if branch == "field_value":
                return self.field(value)
            if branch == "direction_value":
                return DirectionArgument(value.name, self.location(value))
            return OffsetArgument(value.name, self.location(value))

    def stencil_function(self, msg) -> StencilFunction:
        asts = []
        for index, ast in enumerate(msg.asts):
            with self._at(f"asts[{index}]"):
                asts.append(self.ast(ast))
        intervals = []
        for index, interval in enumerate(msg.intervals):
            with self._at(f"intervals[{index}]"):
                intervals.append(self.interval(interval))
        arguments = []
        for index, argument in enumerate(msg.arguments):
            with self._at(f"arguments[{index}]"):
                arguments.append(self.stencil_function_arg(argument))
        try:
            return StencilFunction(msg.name, asts, intervals, arguments, self.location(msg))
        except ValueError as e:
            raise MalformedEncodingError(f"{e} (at '{self.path}')") from e

    def hir(self, msg) -> HIR:
        stencils = []
        for index, stencil in enumerate(msg.stencils):
            with self._at(f"stencils[{index}]"):
                stencils.append(self.hir_stencil(stencil))
        functions = []
        for index, function in enumerate(msg.stencil_functions):
            with self._at(f"stencil_functions[{index}]"):
                functions.append(self.stencil_function(function))
        global_variables = {}
        values = msg.global_variables.map
        for name in sorted(values):
            with self._at(f"global_variables.map[{name}]"):
                global_variables[name] = self.hir_global_value(values[name])
        return HIR(msg.filename, stencils, functions, global_variables)


def proto_to_instantiation(msg) -> StencilInstantiation:
    return ProtoDecoder().instantiation(msg)


def proto_to_hir(msg) -> HIR:
    return ProtoDecoder().hir(msg)
