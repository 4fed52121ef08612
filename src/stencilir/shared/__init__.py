"""
Shared components: source locations, primitive types, intervals, the AST
node set and its visitor, and error reporting.
"""

from .source_location import SourceLocation, UNKNOWN_LOCATION
from .errors import (
    Error, ErrorReporter, StencilIRError, MalformedEncodingError, UnknownVariantError,
    InvariantViolationError, LookupFailureError,
)
from .types import BuiltinTypeID, Dimension, LoopOrder, StencilAttr, Type
from .interval import Interval, SpecialLevel
from .nodes import (
    ASTNode, Statement, Expression,
    Field, StencilCall, AST, VerticalRegion,
    ResolvedOffset, DeferredOffset, FieldOffset,
    BlockStatement, ExpressionStatement, ReturnStatement, VariableDeclaration,
    StencilCallDeclaration, VerticalRegionDeclaration, BoundaryConditionDeclaration, IfStatement,
    UnaryExpression, BinaryExpression, AssignmentExpression, TernaryExpression, FunctionCall,
    StencilFunctionCall, StencilFunctionArgument, VariableAccess, FieldAccess, LiteralAccess,
    structurally_equal,
)
from .ast_visitor import ASTVisitor, ASTTraversal
