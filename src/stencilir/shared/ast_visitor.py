"""
AST Visitor Pattern

This module provides:
1. ASTVisitor: abstract visitor with one visit_* method per node variant.
   Every method is abstract, so a visitor that forgets a variant cannot be
   instantiated (unhandled variant is a programming error, caught at
   construction time rather than while walking a tree).
2. ASTTraversal: concrete visitor whose default behavior recurses into the
   children in declared order. Passes derive from it and override only the
   nodes they care about.
"""

from typing import TypeVar, Generic
from abc import ABC, abstractmethod

from .nodes import (
    BlockStatement, ExpressionStatement, ReturnStatement, VariableDeclaration,
    StencilCallDeclaration, VerticalRegionDeclaration, BoundaryConditionDeclaration, IfStatement,
    UnaryExpression, BinaryExpression, AssignmentExpression, TernaryExpression, FunctionCall,
    StencilFunctionCall, StencilFunctionArgument, VariableAccess, FieldAccess, LiteralAccess,
)

T = TypeVar('T')


class ASTVisitor(ABC, Generic[T]):
    """
    Visitor over the closed statement/expression variant set.

    Usage:
        class FieldNames(ASTTraversal):
            def __init__(self):
                self.names = []

            def visit_field_access(self, node):
                self.names.append(node.name)

        collector = FieldNames()
        stmt.accept(collector)
    """

    # Statements
    @abstractmethod
    def visit_block_statement(self, node: BlockStatement) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_expression_statement(self, node: ExpressionStatement) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_return_statement(self, node: ReturnStatement) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_variable_declaration(self, node: VariableDeclaration) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_stencil_call_declaration(self, node: StencilCallDeclaration) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_vertical_region_declaration(self, node: VerticalRegionDeclaration) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_boundary_condition_declaration(self, node: BoundaryConditionDeclaration) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_if_statement(self, node: IfStatement) -> T:
        raise NotImplementedError

    # Expressions
    @abstractmethod
    def visit_unary_expression(self, node: UnaryExpression) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_binary_expression(self, node: BinaryExpression) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_assignment_expression(self, node: AssignmentExpression) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_ternary_expression(self, node: TernaryExpression) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_function_call(self, node: FunctionCall) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_stencil_function_call(self, node: StencilFunctionCall) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_stencil_function_argument(self, node: StencilFunctionArgument) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_variable_access(self, node: VariableAccess) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_field_access(self, node: FieldAccess) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_literal_access(self, node: LiteralAccess) -> T:
        raise NotImplementedError


class ASTTraversal(ASTVisitor[None]):
    """Default traversal: every visit_* recurses into the node's children."""

    def _visit_children(self, node) -> None:
        for child in node.children():
            child.accept(self)

    def visit_block_statement(self, node: BlockStatement) -> None:
        self._visit_children(node)

    def visit_expression_statement(self, node: ExpressionStatement) -> None:
        self._visit_children(node)

    def visit_return_statement(self, node: ReturnStatement) -> None:
        self._visit_children(node)

    def visit_variable_declaration(self, node: VariableDeclaration) -> None:
        self._visit_children(node)

    def visit_stencil_call_declaration(self, node: StencilCallDeclaration) -> None:
        pass

    def visit_vertical_region_declaration(self, node: VerticalRegionDeclaration) -> None:
        self._visit_children(node)

    def visit_boundary_condition_declaration(self, node: BoundaryConditionDeclaration) -> None:
        pass

    def visit_if_statement(self, node: IfStatement) -> None:
        self._visit_children(node)

    def visit_unary_expression(self, node: UnaryExpression) -> None:
        self._visit_children(node)

    def visit_binary_expression(self, node: BinaryExpression) -> None:
        self._visit_children(node)

    def visit_assignment_expression(self, node: AssignmentExpression) -> None:
        self._visit_children(node)

    def visit_ternary_expression(self, node: TernaryExpression) -> None:
        self._visit_children(node)

    def visit_function_call(self, node: FunctionCall) -> None:
        self._visit_children(node)

    def visit_stencil_function_call(self, node: StencilFunctionCall) -> None:
        self._visit_children(node)

    def visit_stencil_function_argument(self, node: StencilFunctionArgument) -> None:
        pass

    def visit_variable_access(self, node: VariableAccess) -> None:
        self._visit_children(node)

    def visit_field_access(self, node: FieldAccess) -> None:
        pass

    def visit_literal_access(self, node: LiteralAccess) -> None:
        pass
