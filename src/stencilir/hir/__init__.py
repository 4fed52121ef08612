"""
High-level IR: the program as handed over by a front-end.
"""

from .nodes import (
    DirectionArgument, OffsetArgument, StencilFunctionArg, GlobalVariableValue,
    HIRStencil, StencilFunction, HIR,
)
