"""
Expression evaluator for relationship formulas.

Evaluates AST expressions against record values. The evaluator only knows
literals, bound values, operators and the whitelisted math functions; it has
no access to attributes, builtins or the host environment.
"""

import math
from collections.abc import Mapping
from typing import Any

from dynamic_schema.errors import FormulaExecutionError
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


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def _to_text(value: Any) -> str:
    """String form used by '+' concatenation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


MAX_ROUND_DIGITS = 15


def _js_round(value: float, digits: int = 0) -> float:
    """Round half up, as Math.round does (Python's round() is banker's rounding)."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def _round_digits(value: Any) -> int:
    if isinstance(value, float) and not value.is_integer():
        raise FormulaExecutionError(f"round() digits must be a whole number, got {value}")
    if not 0 <= value <= MAX_ROUND_DIGITS:
        raise FormulaExecutionError(
            f"round() digits must be between 0 and {MAX_ROUND_DIGITS}, got {_to_text(value)}"
        )
    return int(value)


class FormulaEvaluator:
    """Evaluates formula expressions in the context of one record."""

    def __init__(self, values: Mapping[str, Any]):
        # Private copy of the caller's record
        self.values = dict(values)

    def evaluate(self, expression: ExpressionNode) -> Any:
        """
        Evaluate an expression node.

        Args:
            expression: AST expression node

        Returns:
            Evaluated value

        Raises:
            FormulaExecutionError: On undefined fields, type mismatches,
                division by zero or non-finite results.
        """
        if isinstance(expression, LiteralNode):
            return expression.value

        elif isinstance(expression, FieldNode):
            if expression.field_name not in self.values:
                raise FormulaExecutionError(
                    f"Field '{expression.field_name}' is not defined. "
                    f"Check that all field names in the formula exist in the record."
                )
            return self.values[expression.field_name]

        elif isinstance(expression, UnaryOpNode):
            return self._eval_unary_op(expression.operator, self.evaluate(expression.operand))

        elif isinstance(expression, BinaryOpNode):
            # Logical operators short-circuit and return an operand, like JavaScript
            if expression.operator == "&&":
                left = self.evaluate(expression.left)
                return self.evaluate(expression.right) if left else left
            if expression.operator == "||":
                left = self.evaluate(expression.left)
                return left if left else self.evaluate(expression.right)

            left = self.evaluate(expression.left)
            right = self.evaluate(expression.right)
            return self._eval_binary_op(expression.operator, left, right)

        elif isinstance(expression, ConditionalNode):
            if self.evaluate(expression.condition):
                return self.evaluate(expression.when_true)
            return self.evaluate(expression.when_false)

        elif isinstance(expression, FunctionCallNode):
            args = [self.evaluate(arg) for arg in expression.arguments]
            return self._eval_function(expression.function_name, args)

        else:
            raise FormulaExecutionError(f"Unknown expression type: {type(expression)}")

    def _eval_unary_op(self, operator: str, operand: Any) -> Any:
        if operator == "!":
            return not operand
        if not _is_number(operand):
            raise FormulaExecutionError(
                f"Unary '{operator}' needs a number, got {_type_name(operand)}"
            )
        return -operand if operator == "-" else operand

    def _eval_binary_op(self, operator: str, left: Any, right: Any) -> Any:
        """Evaluate arithmetic, comparison and equality operators."""
        if operator == "==":
            return self._equals(left, right)
        if operator == "!=":
            return not self._equals(left, right)

        if operator in ("<", ">", "<=", ">="):
            comparable = (_is_number(left) and _is_number(right)) or (
                isinstance(left, str) and isinstance(right, str)
            )
            if not comparable:
                raise FormulaExecutionError(
                    f"Cannot compare {_type_name(left)} {operator} {_type_name(right)}"
                )
            if operator == "<":
                return left < right
            if operator == ">":
                return left > right
            if operator == "<=":
                return left <= right
            return left >= right

        if operator == "+" and (isinstance(left, str) or isinstance(right, str)):
            return _to_text(left) + _to_text(right)

        if not (_is_number(left) and _is_number(right)):
            raise FormulaExecutionError(
                f"Operator '{operator}' needs numbers, got "
                f"{_type_name(left)} and {_type_name(right)}"
            )

        try:
            if operator == "+":
                result = left + right
            elif operator == "-":
                result = left - right
            elif operator == "*":
                result = left * right
            elif operator == "/":
                if right == 0:
                    raise FormulaExecutionError("Division by zero")
                result = left / right
            elif operator == "%":
                if right == 0:
                    raise FormulaExecutionError("Modulo by zero")
                # JavaScript remainder keeps the sign of the dividend
                result = math.fmod(left, right)
            else:
                raise FormulaExecutionError(f"Unknown operator: {operator}")
        except (OverflowError, ValueError) as e:
            raise FormulaExecutionError(f"Operator '{operator}' failed: {e}") from e

        return self._finite(result)

    @staticmethod
    def _equals(left: Any, right: Any) -> bool:
        if isinstance(left, bool) or isinstance(right, bool):
            return type(left) is type(right) and left == right
        if _is_number(left) and _is_number(right):
            return left == right
        if type(left) is not type(right):
            return False
        return left == right

    @staticmethod
    def _finite(result: Any) -> Any:
        if isinstance(result, float) and not math.isfinite(result):
            raise FormulaExecutionError("Division by zero or infinity result")
        return result

    def _eval_function(self, function_name: str, args: list[Any]) -> Any:
        """Evaluate whitelisted math functions."""
        for arg in args:
            if not _is_number(arg):
                raise FormulaExecutionError(
                    f"{function_name}() needs numeric arguments, got {_type_name(arg)}"
                )

        try:
            if function_name == "min":
                return min(args)
            elif function_name == "max":
                return max(args)
            elif function_name == "abs":
                return abs(args[0])
            elif function_name == "round":
                digits = _round_digits(args[1]) if len(args) > 1 else 0
                return self._finite(_js_round(args[0], digits))
            elif function_name == "floor":
                return math.floor(args[0])
            elif function_name == "ceil":
                return math.ceil(args[0])
            elif function_name == "sqrt":
                if args[0] < 0:
                    raise FormulaExecutionError("sqrt() of a negative number")
                return self._finite(math.sqrt(args[0]))
            elif function_name == "pow":
                return self._finite(math.pow(args[0], args[1]))
            else:
                raise FormulaExecutionError(f"Unknown function: {function_name}")
        except (OverflowError, ValueError) as e:
            raise FormulaExecutionError(f"{function_name}() failed: {e}") from e


def evaluate_formula(formula: Formula, values: Mapping[str, Any]) -> Any:
    """Evaluate a compiled formula with a fresh evaluator bound to `values`."""
    return FormulaEvaluator(values).evaluate(formula.expression)
