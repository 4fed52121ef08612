"""
Wire schema

The protocol-buffers schema of the HIR/AST messages (package
`dawn.proto.statements`) and of the IIR/metadata messages (package
`dawn.proto.iir`), built once at import time into a private descriptor
pool. Field names, tag numbers and enum numbers are part of the contract
with the other tools of the chain and must never change (misspellings
such as `Acesses` and `MulitStageID` included).

Tagged unions are declared as sibling fields with explicit presence (message
fields, or `optional` scalars) instead of a `oneof`: the bytes on the wire
are the same, but the decoder can see every branch that was sent and reject
messages with zero or several of them.
"""

from typing import Dict, Iterable, Tuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from ..utils.config import IIR_PROTO_FILE, IIR_PROTO_PACKAGE, STATEMENTS_PROTO_FILE, STATEMENTS_PROTO_PACKAGE

_FDP = descriptor_pb2.FieldDescriptorProto

_SCALAR_TYPES = {
    "bool": _FDP.TYPE_BOOL,
    "int32": _FDP.TYPE_INT32,
    "uint32": _FDP.TYPE_UINT32,
    "double": _FDP.TYPE_DOUBLE,
    "string": _FDP.TYPE_STRING,
}


def _map_entry_name(field_name: str) -> str:
    """Name protoc gives the entry message of a map field (`writeAccess` -> `WriteAccessEntry`)"""
    out = []
    upper_next = True
    for char in field_name:
        if char == "_":
            upper_next = True
        elif upper_next:
            out.append(char.upper())
            upper_next = False
        else:
            out.append(char)
    return "".join(out) + "Entry"


class _MessageBuilder:
    def __init__(self, file: "_FileBuilder", proto: descriptor_pb2.DescriptorProto, full_name: str):
        self.file = file
        self.proto = proto
        self.full_name = full_name

    def enum(self, name: str, values: Iterable[Tuple[str, int]]) -> "_MessageBuilder":
        enum = self.proto.enum_type.add(name=name)
        for value_name, number in values:
            enum.value.add(name=value_name, number=number)
        return self

    def field(self, name: str, number: int, type_name: str, repeated: bool = False,
              optional: bool = False) -> "_MessageBuilder":
        """
        Add a field. `type_name` is a scalar keyword, `enum:<Name>` or a
        message name (relative to the file's package unless it starts with '.').
        `optional` gives a scalar explicit presence (proto3 `optional`).
        """
        _add_field(self.proto, self.file, name, number, type_name, repeated)
        if optional:
            f = self.proto.field[-1]
            f.proto3_optional = True
            f.oneof_index = len(self.proto.oneof_decl)
            self.proto.oneof_decl.add(name=f"_{name}")
        return self

    def map(self, name: str, number: int, key_type: str, value_type: str) -> "_MessageBuilder":
        entry = self.proto.nested_type.add(name=_map_entry_name(name))
        entry.options.map_entry = True
        _add_field(entry, self.file, "key", 1, key_type, False)
        _add_field(entry, self.file, "value", 2, value_type, False)
        _add_field(self.proto, self.file, name, number, f".{self.full_name}.{entry.name}", True)
        return self

    def reserve(self, start: int, end: int, names: Iterable[str] = ()) -> "_MessageBuilder":
        """Reserve tags start..end (inclusive) and the given field names"""
        self.proto.reserved_range.add(start=start, end=end + 1)
        self.proto.reserved_name.extend(names)
        return self


def _add_field(proto: descriptor_pb2.DescriptorProto, file: "_FileBuilder", name: str, number: int,
               type_name: str, repeated: bool) -> None:
    f = proto.field.add(name=name, number=number)
    f.label = _FDP.LABEL_REPEATED if repeated else _FDP.LABEL_OPTIONAL
    if type_name in _SCALAR_TYPES:
        f.type = _SCALAR_TYPES[type_name]
    elif type_name.startswith("enum:"):
        f.type = _FDP.TYPE_ENUM
        f.type_name = file.resolve(type_name[len("enum:"):])
    else:
        f.type = _FDP.TYPE_MESSAGE
        f.type_name = file.resolve(type_name)


class _FileBuilder:
    def __init__(self, name: str, package: str, dependencies: Iterable[str] = ()):
        self.package = package
        self.proto = descriptor_pb2.FileDescriptorProto(name=name, package=package, syntax="proto3")
        self.proto.dependency.extend(dependencies)

    def resolve(self, type_name: str) -> str:
        return type_name if type_name.startswith(".") else f".{self.package}.{type_name}"

    def message(self, name: str) -> _MessageBuilder:
        proto = self.proto.message_type.add(name=name)
        return _MessageBuilder(self, proto, f"{self.package}.{name}")


# ============================================================================
# dawn.proto.statements: source locations, AST and HIR
# ============================================================================

def _statements_file() -> descriptor_pb2.FileDescriptorProto:
    f = _FileBuilder(STATEMENTS_PROTO_FILE, STATEMENTS_PROTO_PACKAGE)

    f.message("SourceLocation").field("Line", 1, "int32").field("Column", 2, "int32")
    (f.message("Field")
        .field("name", 1, "string")
        .field("loc", 2, "SourceLocation")
        .field("is_temporary", 3, "bool")
        .field("field_dimensions", 4, "int32", repeated=True))
    f.message("Direction").field("name", 1, "string").field("loc", 2, "SourceLocation")
    f.message("Offset").field("name", 1, "string").field("loc", 2, "SourceLocation")
    (f.message("StencilFunctionArg")
        .field("field_value", 1, "Field")
        .field("direction_value", 2, "Direction")
        .field("offset_value", 3, "Offset"))
    (f.message("Interval")
        .enum("SpecialLevel", [("Start", 0), ("End", 1)])
        .field("special_lower_level", 1, "enum:Interval.SpecialLevel", optional=True)
        .field("lower_level", 2, "int32", optional=True)
        .field("special_upper_level", 3, "enum:Interval.SpecialLevel", optional=True)
        .field("upper_level", 4, "int32", optional=True)
        .field("lower_offset", 5, "int32")
        .field("upper_offset", 6, "int32"))
    (f.message("BuiltinType")
        .enum("TypeID", [("Invalid", 0), ("Auto", 1), ("Boolean", 2), ("Integer", 3), ("Float", 4)])
        .field("type_id", 1, "enum:BuiltinType.TypeID"))
    (f.message("Dimension")
        .enum("Direction", [("I", 0), ("J", 1), ("K", 2), ("Invalid", 3)])
        .field("direction", 1, "enum:Dimension.Direction"))
    (f.message("Type")
        .field("name", 1, "string", optional=True)
        .field("builtin_type", 2, "BuiltinType")
        .field("is_const", 3, "bool")
        .field("is_volatile", 4, "bool"))
    (f.message("VerticalRegion")
        .enum("LoopOrder", [("Forward", 0), ("Backward", 1)])
        .field("loc", 1, "SourceLocation")
        .field("ast", 2, "AST")
        .field("interval", 3, "Interval")
        .field("loop_order", 4, "enum:VerticalRegion.LoopOrder"))
    (f.message("StencilCall")
        .field("loc", 1, "SourceLocation")
        .field("callee", 2, "string")
        .field("arguments", 3, "Field", repeated=True))

    stmt = f.message("Stmt")
    for number, (name, type_name) in enumerate(STMT_BRANCHES, start=1):
        stmt.field(name, number, type_name)
    expr = f.message("Expr")
    for number, (name, type_name) in enumerate(EXPR_BRANCHES, start=1):
        expr.field(name, number, type_name)

    f.message("BlockStmt").field("statements", 1, "Stmt", repeated=True).field("loc", 2, "SourceLocation")
    f.message("ExprStmt").field("expr", 1, "Expr").field("loc", 2, "SourceLocation")
    f.message("ReturnStmt").field("expr", 1, "Expr").field("loc", 2, "SourceLocation")
    (f.message("VarDeclStmt")
        .field("type", 1, "Type")
        .field("name", 2, "string")
        .field("dimension", 3, "int32")
        .field("op", 4, "string")
        .field("init_list", 5, "Expr", repeated=True)
        .field("loc", 6, "SourceLocation"))
    (f.message("VerticalRegionDeclStmt")
        .field("vertical_region", 1, "VerticalRegion").field("loc", 2, "SourceLocation"))
    (f.message("StencilCallDeclStmt")
        .field("stencil_call", 1, "StencilCall").field("loc", 2, "SourceLocation"))
    (f.message("BoundaryConditionDeclStmt")
        .field("functor", 1, "string")
        .field("fields", 2, "Field", repeated=True)
        .field("loc", 3, "SourceLocation"))
    (f.message("IfStmt")
        .field("cond_part", 1, "Stmt")
        .field("then_part", 2, "Stmt")
        .field("else_part", 3, "Stmt")
        .field("loc", 4, "SourceLocation"))

    (f.message("UnaryOperator")
        .field("op", 1, "string").field("operand", 2, "Expr").field("loc", 3, "SourceLocation"))
    for name in ("BinaryOperator", "AssignmentExpr"):
        (f.message(name)
            .field("left", 1, "Expr").field("op", 2, "string").field("right", 3, "Expr")
            .field("loc", 4, "SourceLocation"))
    (f.message("TernaryOperator")
        .field("cond", 1, "Expr").field("left", 2, "Expr").field("right", 3, "Expr")
        .field("loc", 4, "SourceLocation"))
    for name in ("FunCallExpr", "StencilFunCallExpr"):
        (f.message(name)
            .field("callee", 1, "string").field("arguments", 2, "Expr", repeated=True)
            .field("loc", 3, "SourceLocation"))
    (f.message("StencilFunArgExpr")
        .field("dimension", 1, "Dimension")
        .field("offset", 2, "int32")
        .field("argument_index", 3, "int32")
        .field("loc", 4, "SourceLocation"))
    (f.message("VarAccessExpr")
        .field("name", 1, "string")
        .field("index", 2, "Expr")
        .field("is_external", 3, "bool")
        .field("loc", 4, "SourceLocation"))
    (f.message("FieldAccessExpr")
        .field("name", 1, "string")
        .field("offset", 2, "int32", repeated=True)
        .field("argument_map", 3, "int32", repeated=True)
        .field("argument_offset", 4, "int32", repeated=True)
        .field("negate_offset", 5, "bool")
        .field("loc", 6, "SourceLocation"))
    (f.message("LiteralAccessExpr")
        .field("value", 1, "string").field("type", 2, "BuiltinType").field("loc", 3, "SourceLocation"))

    f.message("AST").field("root", 1, "Stmt")
    (f.message("Stencil")
        .field("ast", 1, "AST")
        .field("fields", 2, "Field", repeated=True)
        .field("name", 3, "string")
        .field("loc", 4, "SourceLocation"))
    (f.message("StencilFunction")
        .field("asts", 1, "AST", repeated=True)
        .field("intervals", 2, "Interval", repeated=True)
        .field("arguments", 3, "StencilFunctionArg", repeated=True)
        .field("loc", 4, "SourceLocation")
        .field("name", 5, "string"))
    (f.message("GlobalVariableValue")
        .field("boolean_value", 1, "bool", optional=True)
        .field("integer_value", 2, "int32", optional=True)
        .field("double_value", 3, "double", optional=True)
        .field("string_value", 4, "string", optional=True)
        .field("is_constexpr", 5, "bool"))
    f.message("GlobalVariableMap").map("map", 1, "string", "GlobalVariableValue")
    (f.message("HIR")
        .field("stencils", 1, "Stencil", repeated=True)
        .field("stencil_functions", 2, "StencilFunction", repeated=True)
        .field("global_variables", 3, "GlobalVariableMap")
        .field("filename", 4, "string"))
    return f.proto


STMT_BRANCHES = (
    ("block_stmt", "BlockStmt"),
    ("expr_stmt", "ExprStmt"),
    ("return_stmt", "ReturnStmt"),
    ("var_decl_stmt", "VarDeclStmt"),
    ("stencil_call_decl_stmt", "StencilCallDeclStmt"),
    ("vertical_region_decl_stmt", "VerticalRegionDeclStmt"),
    ("boundary_condition_decl_stmt", "BoundaryConditionDeclStmt"),
    ("if_stmt", "IfStmt"),
)

EXPR_BRANCHES = (
    ("unary_operator", "UnaryOperator"),
    ("binary_operator", "BinaryOperator"),
    ("assignment_expr", "AssignmentExpr"),
    ("ternary_operator", "TernaryOperator"),
    ("fun_call_expr", "FunCallExpr"),
    ("stencil_fun_call_expr", "StencilFunCallExpr"),
    ("stencil_fun_arg_expr", "StencilFunArgExpr"),
    ("var_access_expr", "VarAccessExpr"),
    ("field_access_expr", "FieldAccessExpr"),
    ("literal_access_expr", "LiteralAccessExpr"),
)

# Branch names of every tagged union, keyed by message name
UNION_BRANCHES: Dict[str, Tuple[Tuple[str, ...], ...]] = {
    "Stmt": (tuple(name for name, _ in STMT_BRANCHES),),
    "Expr": (tuple(name for name, _ in EXPR_BRANCHES),),
    "StencilFunctionArg": (("field_value", "direction_value", "offset_value"),),
    "GlobalVariableValue": (("boolean_value", "integer_value", "double_value", "string_value"),),
    "Type": (("name", "builtin_type"),),
    "Interval": (("special_lower_level", "lower_level"), ("special_upper_level", "upper_level")),
}


# ============================================================================
# dawn.proto.iir: internal IR and metadata
# ============================================================================

def _iir_file() -> descriptor_pb2.FileDescriptorProto:
    f = _FileBuilder(IIR_PROTO_FILE, IIR_PROTO_PACKAGE, [STATEMENTS_PROTO_FILE])
    stmts = f".{STATEMENTS_PROTO_PACKAGE}"

    f.message("Statement").field("ASTStmt", 1, f"{stmts}.Stmt")
    f.message("Extent").field("minus", 1, "int32").field("plus", 2, "int32")
    f.message("Extents").field("extents", 1, "Extent", repeated=True)
    (f.message("Acesses")
        .map("writeAccess", 1, "int32", "Extents")
        .map("readAccess", 2, "int32", "Extents"))
    (f.message("StatementAcessPair")
        .field("statement", 1, "Statement")
        .field("callerAccesses", 2, "Acesses")
        .field("calleeAccesses", 3, "Acesses"))
    (f.message("DoMethod")
        .field("stmtaccesspairs", 1, "StatementAcessPair", repeated=True)
        .field("DoMethodID", 2, "int32")
        .field("interval", 3, f"{stmts}.Interval"))
    f.message("Stage").field("domethods", 1, "DoMethod", repeated=True).field("stageID", 2, "int32")
    (f.message("MultiStage")
        .enum("LoopOrder", [("Forward", 0), ("Backward", 1), ("Parallel", 3)])
        .field("stages", 1, "Stage", repeated=True)
        .field("looporder", 2, "enum:MultiStage.LoopOrder")
        .field("MulitStageID", 3, "int32"))
    f.message("Attributes").field("attrBits", 1, "uint32")
    (f.message("Stencil")
        .field("multistages", 1, "MultiStage", repeated=True)
        .field("stencilID", 2, "int32")
        .field("attr", 3, "Attributes"))
    f.message("IIR").field("stencils", 1, "Stencil", repeated=True)

    f.message("AllVersionedFields").field("allIDs", 1, "int32", repeated=True)
    (f.message("VariableVersions")
        .map("variableVersionMap", 1, "int32", "AllVersionedFields")
        .field("versionIDs", 2, "int32", repeated=True)
        .map("VersionIDToOriginalID", 3, "int32", "int32"))
    f.message("Array3i").field("int1", 1, "int32").field("int2", 2, "int32").field("int3", 3, "int32")
    (f.message("GlobalValueAndType")
        .enum("TypeKind", [("Boolean", 0), ("Integer", 1), ("Double", 2)])
        .field("type", 1, "enum:GlobalValueAndType.TypeKind")
        .field("value", 2, "double")
        .field("valueIsSet", 3, "bool"))
    (f.message("StencilDescStatement")
        .field("stmt", 1, f"{stmts}.Stmt")
        .field("stacktrace", 2, f"{stmts}.StencilCall", repeated=True))
    (f.message("StencilMetaInfo")
        .map("AccessIDToName", 1, "int32", "string")
        .reserve(2, 3, ["ExprToAccessID", "StmtToAccessID"])
        .map("LiteralIDToName", 4, "int32", "string")
        .field("FieldAccessIDs", 5, "int32", repeated=True)
        .field("APIFieldIDs", 6, "int32", repeated=True)
        .field("TemporaryFieldIDs", 7, "int32", repeated=True)
        .field("GlobalVariableIDs", 8, "int32", repeated=True)
        .field("versionedFields", 9, "VariableVersions")
        .field("stencilDescStatements", 10, "StencilDescStatement", repeated=True)
        .map("IDToStencilCall", 11, "int32", f"{stmts}.Stmt")
        .map("FieldnameToBoundaryCondition", 12, "string", f"{stmts}.Stmt")
        .map("fieldIDtoLegalDimensions", 13, "int32", "Array3i")
        .map("GlobalVariableToValue", 14, "string", "GlobalValueAndType")
        .field("stencilLocation", 15, f"{stmts}.SourceLocation")
        .field("stencilName", 16, "string")
        .field("fileName", 17, "string"))
    (f.message("StencilInstantiation")
        .field("metadata", 1, "StencilMetaInfo")
        .field("internalIR", 2, "IIR"))
    return f.proto


# ============================================================================
# Descriptor pool and message classes
# ============================================================================

STATEMENTS_FILE = _statements_file()
IIR_FILE = _iir_file()

_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(STATEMENTS_FILE.SerializeToString())
_POOL.AddSerializedFile(IIR_FILE.SerializeToString())


class ProtoPackage:
    """Attribute access to the generated message classes of one proto package"""

    def __init__(self, package: str):
        self._package = package
        self._classes: Dict[str, type] = {}

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        cls = self._classes.get(name)
        if cls is None:
            try:
                descriptor = _POOL.FindMessageTypeByName(f"{self._package}.{name}")
            except KeyError:
                raise AttributeError(f"no message {name} in package {self._package}") from None
            cls = message_factory.GetMessageClass(descriptor)
            self._classes[name] = cls
        return cls


statements = ProtoPackage(STATEMENTS_PROTO_PACKAGE)
iir = ProtoPackage(IIR_PROTO_PACKAGE)


def file_descriptor_set() -> bytes:
    """Both schema files as a serialized FileDescriptorSet, e.g. for `protoc --decode`"""
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    descriptor_set.file.extend([STATEMENTS_FILE, IIR_FILE])
    return descriptor_set.SerializeToString()
