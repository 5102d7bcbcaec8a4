"""
Formula language for complex relationships.

A restricted expression language (arithmetic, comparison, logic, field
references, a handful of math functions) parsed once into an AST and
interpreted against record values.
"""

from dynamic_schema.formula.ast import (
    BinaryOpNode,
    ConditionalNode,
    ExpressionNode,
    FieldNode,
    Formula,
    FunctionCallNode,
    LiteralNode,
    UnaryOpNode,
)
from dynamic_schema.formula.evaluator import FormulaEvaluator, evaluate_formula
from dynamic_schema.formula.lexer import FormulaLexer, Token, TokenType
from dynamic_schema.formula.parser import FUNCTION_ARITY, FormulaParser, compile_formula

__all__ = [
    # AST
    "BinaryOpNode",
    "ConditionalNode",
    "ExpressionNode",
    "FieldNode",
    "Formula",
    "FunctionCallNode",
    "LiteralNode",
    "UnaryOpNode",
    # Evaluator
    "FormulaEvaluator",
    "evaluate_formula",
    # Lexer
    "FormulaLexer",
    "Token",
    "TokenType",
    # Parser
    "FUNCTION_ARITY",
    "FormulaParser",
    "compile_formula",
]
