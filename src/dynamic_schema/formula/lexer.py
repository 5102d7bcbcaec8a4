"""
Lexical analyzer (tokenizer) for relationship formulas.
"""

from dataclasses import dataclass
from enum import Enum, auto

from dynamic_schema.errors import FormulaSyntaxError


class TokenType(Enum):
    """Token types for formulas."""

    # Keywords
    RETURN = auto()

    # Arithmetic
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()

    # Comparison
    EQUALS = auto()  # == or ===
    NOT_EQUALS = auto()  # != or !==
    LESS_THAN = auto()
    GREATER_THAN = auto()
    LESS_EQUAL = auto()
    GREATER_EQUAL = auto()

    # Logical
    AND = auto()  # && or and
    OR = auto()  # || or or
    NOT = auto()  # ! or not

    # Literals
    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()
    NULL = auto()

    IDENTIFIER = auto()

    # Punctuation
    QUESTION = auto()
    COLON = auto()
    COMMA = auto()
    DOT = auto()
    LPAREN = auto()
    RPAREN = auto()
    SEMICOLON = auto()

    EOF = auto()


@dataclass
class Token:
    """A token in a formula."""

    type: TokenType
    value: str
    position: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.position})"


class FormulaLexer:
    """Tokenizer for formulas."""

    KEYWORDS = {
        "return": TokenType.RETURN,
        "true": TokenType.BOOLEAN,
        "false": TokenType.BOOLEAN,
        "null": TokenType.NULL,
        "undefined": TokenType.NULL,
        "and": TokenType.AND,
        "or": TokenType.OR,
        "not": TokenType.NOT,
    }

    # Longest first: "===" before "==", "==" before "="
    OPERATORS = [
        ("===", TokenType.EQUALS),
        ("!==", TokenType.NOT_EQUALS),
        ("==", TokenType.EQUALS),
        ("!=", TokenType.NOT_EQUALS),
        ("<=", TokenType.LESS_EQUAL),
        (">=", TokenType.GREATER_EQUAL),
        ("&&", TokenType.AND),
        ("||", TokenType.OR),
        ("<", TokenType.LESS_THAN),
        (">", TokenType.GREATER_THAN),
        ("!", TokenType.NOT),
        ("+", TokenType.PLUS),
        ("-", TokenType.MINUS),
        ("*", TokenType.STAR),
        ("/", TokenType.SLASH),
        ("%", TokenType.PERCENT),
        ("?", TokenType.QUESTION),
        (":", TokenType.COLON),
        (",", TokenType.COMMA),
        (".", TokenType.DOT),
        ("(", TokenType.LPAREN),
        (")", TokenType.RPAREN),
        (";", TokenType.SEMICOLON),
    ]

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        """Tokenize the entire input."""
        while self.pos < len(self.text):
            self._skip_whitespace()
            if self.pos >= len(self.text):
                break

            if not self._try_tokenize_one():
                char = self.text[self.pos]
                if char == "=":
                    raise FormulaSyntaxError("Assignment is not allowed in formulas", self.pos)
                raise FormulaSyntaxError(f"Unexpected character '{char}'", self.pos)

        self.tokens.append(Token(TokenType.EOF, "", self.pos))
        return self.tokens

    def _try_tokenize_one(self) -> bool:
        """Try to tokenize one token. Returns True if successful."""
        if self._match_string():
            return True

        if self._match_number():
            return True

        if self._match_identifier():
            return True

        if self._match_operator():
            return True

        return False

    def _skip_whitespace(self):
        while self.pos < len(self.text) and self.text[self.pos] in " \t\r\n":
            self.pos += 1

    def _match_string(self) -> bool:
        """Match single or double quoted string literals."""
        if self.text[self.pos] not in ('"', "'"):
            return False

        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1

        value = ""
        while self.pos < len(self.text) and self.text[self.pos] != quote:
            if self.text[self.pos] == "\\" and self.pos + 1 < len(self.text):
                self.pos += 1
            value += self.text[self.pos]
            self.pos += 1

        if self.pos >= len(self.text):
            raise FormulaSyntaxError("Unterminated string", start)

        self.pos += 1  # closing quote
        self.tokens.append(Token(TokenType.STRING, value, start))
        return True

    def _match_number(self) -> bool:
        """Match numeric literals: 12, 0.5, .5, 1e3."""
        char = self.text[self.pos]
        next_is_digit = self.pos + 1 < len(self.text) and self.text[self.pos + 1].isdigit()
        if not (char.isdigit() or (char == "." and next_is_digit)):
            return False

        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos].isdigit():
            self.pos += 1

        if self.pos < len(self.text) and self.text[self.pos] == ".":
            self.pos += 1
            while self.pos < len(self.text) and self.text[self.pos].isdigit():
                self.pos += 1

        # Optional exponent
        if self.pos < len(self.text) and self.text[self.pos] in "eE":
            exponent_start = self.pos
            self.pos += 1
            if self.pos < len(self.text) and self.text[self.pos] in "+-":
                self.pos += 1
            if self.pos >= len(self.text) or not self.text[self.pos].isdigit():
                raise FormulaSyntaxError("Malformed number exponent", exponent_start)
            while self.pos < len(self.text) and self.text[self.pos].isdigit():
                self.pos += 1

        if self.pos < len(self.text) and (
            self.text[self.pos].isalpha() or self.text[self.pos] == "_"
        ):
            raise FormulaSyntaxError("Identifiers cannot start with a digit", start)

        self.tokens.append(Token(TokenType.NUMBER, self.text[start : self.pos], start))
        return True

    def _match_identifier(self) -> bool:
        """Match identifiers and keywords."""
        if not (self.text[self.pos].isalpha() or self.text[self.pos] in ("_", "$")):
            return False

        start = self.pos
        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] in ("_", "$")
        ):
            self.pos += 1

        value = self.text[start : self.pos]
        token_type = self.KEYWORDS.get(value.lower(), TokenType.IDENTIFIER)
        self.tokens.append(Token(token_type, value, start))
        return True

    def _match_operator(self) -> bool:
        for symbol, token_type in self.OPERATORS:
            if self.text.startswith(symbol, self.pos):
                self.tokens.append(Token(token_type, symbol, self.pos))
                self.pos += len(symbol)
                return True
        return False
