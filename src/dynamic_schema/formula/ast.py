"""
Abstract Syntax Tree (AST) definitions for relationship formulas.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ExpressionNode:
    """Base class for expression nodes in the AST."""

    pass


@dataclass
class LiteralNode(ExpressionNode):
    """Literal value (string, number, boolean, null)."""

    value: Any


@dataclass
class FieldNode(ExpressionNode):
    """Reference to a record value by field name (or id)."""

    field_name: str


@dataclass
class UnaryOpNode(ExpressionNode):
    """Unary operation: '-x', '+x', '!x'."""

    operator: str  # -, +, !
    operand: ExpressionNode


@dataclass
class BinaryOpNode(ExpressionNode):
    """Binary operation (e.g., 'daysPastDue * dueAmount', 'score >= 50')."""

    operator: str  # + - * / % == != < > <= >= && ||
    left: ExpressionNode
    right: ExpressionNode


@dataclass
class ConditionalNode(ExpressionNode):
    """Ternary 'condition ? when_true : when_false'."""

    condition: ExpressionNode
    when_true: ExpressionNode
    when_false: ExpressionNode


@dataclass
class FunctionCallNode(ExpressionNode):
    """Call of a whitelisted math function (e.g., 'min(100, score)')."""

    function_name: str
    arguments: list[ExpressionNode]


@dataclass
class Formula:
    """A parsed formula, ready to evaluate against any number of records."""

    source: str
    expression: ExpressionNode
    field_references: list[str] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"Formula({self.source!r}, fields={self.field_references})"
