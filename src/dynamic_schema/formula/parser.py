"""
Parser for relationship formulas.

Converts tokens into an Abstract Syntax Tree (AST). Precedence, lowest first:

  cond ? a : b
  ||
  &&
  ==  !=
  <  >  <=  >=
  +  -
  *  /  %
  unary -  +  !

Legacy formula strings written as JavaScript function bodies are accepted when
they stay inside this grammar: a leading 'return', a trailing ';',
'metadata.<field>' references and 'Math.<fn>(...)' calls.
"""

from dynamic_schema.errors import FormulaSyntaxError
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
from dynamic_schema.formula.lexer import FormulaLexer, Token, TokenType

DEFAULT_MAX_LENGTH = 1000
DEFAULT_MAX_DEPTH = 50

# name -> (min args, max args); max None means variadic
FUNCTION_ARITY: dict[str, tuple[int, int | None]] = {
    "min": (1, None),
    "max": (1, None),
    "abs": (1, 1),
    "round": (1, 2),
    "floor": (1, 1),
    "ceil": (1, 1),
    "sqrt": (1, 1),
    "pow": (2, 2),
}

# Object prefixes accepted for compatibility with legacy formulas
FIELD_NAMESPACE = "metadata"
FUNCTION_NAMESPACE = "Math"

_COMPARISON = {
    TokenType.LESS_THAN: "<",
    TokenType.GREATER_THAN: ">",
    TokenType.LESS_EQUAL: "<=",
    TokenType.GREATER_EQUAL: ">=",
}
_EQUALITY = {TokenType.EQUALS: "==", TokenType.NOT_EQUALS: "!="}
_ADDITIVE = {TokenType.PLUS: "+", TokenType.MINUS: "-"}
_MULTIPLICATIVE = {TokenType.STAR: "*", TokenType.SLASH: "/", TokenType.PERCENT: "%"}
_UNARY = {TokenType.MINUS: "-", TokenType.PLUS: "+", TokenType.NOT: "!"}


class FormulaParser:
    """Recursive descent parser for formulas."""

    def __init__(self, tokens: list[Token], max_depth: int = DEFAULT_MAX_DEPTH):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0
        self.max_depth = max_depth
        self.field_references: list[str] = []

    @classmethod
    def parse(
        cls,
        text: str,
        max_length: int = DEFAULT_MAX_LENGTH,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> Formula:
        """Parse a formula string into a Formula."""
        if text is None or not text.strip():
            raise FormulaSyntaxError("Formula is empty")
        if len(text) > max_length:
            raise FormulaSyntaxError(
                f"Formula is {len(text)} characters long, the limit is {max_length}"
            )

        tokens = FormulaLexer(text).tokenize()
        parser = cls(tokens, max_depth=max_depth)
        expression = parser.parse_formula()
        return Formula(
            source=text,
            expression=expression,
            field_references=parser.field_references,
        )

    def parse_formula(self) -> ExpressionNode:
        """Parse '[return] expression [;]' and require end of input."""
        if self._check(TokenType.RETURN):
            self._advance()

        expression = self._parse_expression()

        while self._check(TokenType.SEMICOLON):
            self._advance()

        if not self._is_at_end():
            raise FormulaSyntaxError(
                f"Unexpected token: {self._current().value}", self._current().position
            )
        return expression

    def _parse_expression(self) -> ExpressionNode:
        """Parse an expression (handles nesting depth)."""
        self.depth += 1
        if self.depth > self.max_depth:
            raise FormulaSyntaxError(
                f"Formula nesting exceeds the limit of {self.max_depth}",
                self._current().position,
            )
        try:
            return self._parse_conditional()
        finally:
            self.depth -= 1

    def _parse_conditional(self) -> ExpressionNode:
        condition = self._parse_or()

        if not self._check(TokenType.QUESTION):
            return condition

        self._advance()
        when_true = self._parse_expression()
        self._expect(TokenType.COLON, "Expected ':' in conditional expression")
        when_false = self._parse_expression()
        return ConditionalNode(condition=condition, when_true=when_true, when_false=when_false)

    def _parse_or(self) -> ExpressionNode:
        left = self._parse_and()
        while self._check(TokenType.OR):
            self._advance()
            left = BinaryOpNode(operator="||", left=left, right=self._parse_and())
        return left

    def _parse_and(self) -> ExpressionNode:
        left = self._parse_equality()
        while self._check(TokenType.AND):
            self._advance()
            left = BinaryOpNode(operator="&&", left=left, right=self._parse_equality())
        return left

    def _parse_equality(self) -> ExpressionNode:
        left = self._parse_comparison()
        while self._current().type in _EQUALITY:
            operator = _EQUALITY[self._advance().type]
            left = BinaryOpNode(operator=operator, left=left, right=self._parse_comparison())
        return left

    def _parse_comparison(self) -> ExpressionNode:
        left = self._parse_additive()
        while self._current().type in _COMPARISON:
            operator = _COMPARISON[self._advance().type]
            left = BinaryOpNode(operator=operator, left=left, right=self._parse_additive())
        return left

    def _parse_additive(self) -> ExpressionNode:
        left = self._parse_multiplicative()
        while self._current().type in _ADDITIVE:
            operator = _ADDITIVE[self._advance().type]
            left = BinaryOpNode(operator=operator, left=left, right=self._parse_multiplicative())
        return left

    def _parse_multiplicative(self) -> ExpressionNode:
        left = self._parse_unary()
        while self._current().type in _MULTIPLICATIVE:
            operator = _MULTIPLICATIVE[self._advance().type]
            left = BinaryOpNode(operator=operator, left=left, right=self._parse_unary())
        return left

    def _parse_unary(self) -> ExpressionNode:
        if self._current().type in _UNARY:
            operator = _UNARY[self._advance().type]
            self.depth += 1
            if self.depth > self.max_depth:
                raise FormulaSyntaxError(
                    f"Formula nesting exceeds the limit of {self.max_depth}",
                    self._current().position,
                )
            try:
                return UnaryOpNode(operator=operator, operand=self._parse_unary())
            finally:
                self.depth -= 1
        return self._parse_primary()

    def _parse_primary(self) -> ExpressionNode:
        """Parse literals, field references, function calls and parentheses."""
        token = self._current()

        if token.type == TokenType.NUMBER:
            self._advance()
            if any(marker in token.value for marker in ".eE"):
                return LiteralNode(value=float(token.value))
            return LiteralNode(value=int(token.value))

        if token.type == TokenType.STRING:
            self._advance()
            return LiteralNode(value=token.value)

        if token.type == TokenType.BOOLEAN:
            self._advance()
            return LiteralNode(value=token.value.lower() == "true")

        if token.type == TokenType.NULL:
            self._advance()
            return LiteralNode(value=None)

        if token.type == TokenType.LPAREN:
            self._advance()
            expression = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')' after expression")
            return expression

        if token.type == TokenType.IDENTIFIER:
            return self._parse_reference()

        if token.type == TokenType.EOF:
            raise FormulaSyntaxError("Unexpected end of formula", token.position)

        raise FormulaSyntaxError(f"Unexpected token: {token.value}", token.position)

    def _parse_reference(self) -> ExpressionNode:
        """Parse 'name', 'name(args)', 'metadata.name' or 'Math.fn(args)'."""
        first = self._advance()
        name = first.value
        namespace = None

        if self._check(TokenType.DOT):
            self._advance()
            member = self._expect(TokenType.IDENTIFIER, "Expected a name after '.'")
            if self._check(TokenType.DOT):
                raise FormulaSyntaxError(
                    "Nested property access is not allowed", self._current().position
                )
            namespace, name = first.value, member.value

        if self._check(TokenType.LPAREN):
            if namespace not in (None, FUNCTION_NAMESPACE):
                raise FormulaSyntaxError(
                    f"Method calls are not allowed: {namespace}.{name}()", first.position
                )
            return self._parse_call(name, first)

        if namespace is not None:
            if namespace != FIELD_NAMESPACE:
                raise FormulaSyntaxError(
                    f"Property access is not allowed: {namespace}.{name}", first.position
                )

        if name not in self.field_references:
            self.field_references.append(name)
        return FieldNode(field_name=name)

    def _parse_call(self, name: str, name_token: Token) -> FunctionCallNode:
        if name not in FUNCTION_ARITY:
            allowed = ", ".join(sorted(FUNCTION_ARITY))
            raise FormulaSyntaxError(
                f"Unknown function '{name}' (allowed: {allowed})", name_token.position
            )

        self._expect(TokenType.LPAREN, "Expected '('")
        arguments: list[ExpressionNode] = []
        if not self._check(TokenType.RPAREN):
            arguments.append(self._parse_expression())
            while self._check(TokenType.COMMA):
                self._advance()
                arguments.append(self._parse_expression())
        self._expect(TokenType.RPAREN, "Expected ')' after function arguments")

        min_args, max_args = FUNCTION_ARITY[name]
        if len(arguments) < min_args or (max_args is not None and len(arguments) > max_args):
            expected = str(min_args) if min_args == max_args else f"at least {min_args}"
            if max_args is not None and min_args != max_args:
                expected = f"{min_args} to {max_args}"
            raise FormulaSyntaxError(
                f"{name}() takes {expected} argument(s), got {len(arguments)}",
                name_token.position,
            )
        return FunctionCallNode(function_name=name, arguments=arguments)

    # Helper methods

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _advance(self) -> Token:
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _expect(self, token_type: TokenType, message: str) -> Token:
        if not self._check(token_type):
            raise FormulaSyntaxError(message, self._current().position)
        return self._advance()

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF


def compile_formula(
    text: str,
    max_length: int = DEFAULT_MAX_LENGTH,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Formula:
    """Parse a formula once so it can be evaluated many times."""
    return FormulaParser.parse(text, max_length=max_length, max_depth=max_depth)
