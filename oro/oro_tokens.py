"""
Token definitions shared by the Oro lexer and parser.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict


class TokenType(Enum):
    # Single-character tokens
    LEFT_PAREN = auto()
    RIGHT_PAREN = auto()
    LEFT_BRACE = auto()
    RIGHT_BRACE = auto()
    LEFT_BRACKET = auto()
    RIGHT_BRACKET = auto()
    COMMA = auto()
    DOT = auto()
    MINUS = auto()
    PLUS = auto()
    SEMICOLON = auto()
    SLASH = auto()
    STAR = auto()

    # One or two character tokens
    BANG = auto()
    BANG_EQUAL = auto()
    EQUAL = auto()
    EQUAL_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()

    # Literals
    IDENTIFIER = auto()
    STRING = auto()
    FSTRING = auto()
    NUMBER = auto()

    # Keywords
    AND = auto()
    AS = auto()
    BREAK = auto()
    CLASS = auto()
    CONTINUE = auto()
    DEF = auto()
    ELSE = auto()
    EXTENDS = auto()
    FALSE = auto()
    FOR = auto()
    FUN = auto()
    IF = auto()
    IMPORT = auto()
    IN = auto()
    NULL = auto()
    OR = auto()
    PRINT = auto()
    RETURN = auto()
    SELF = auto()
    SUPER = auto()
    THEN = auto()
    TRUE = auto()
    WHILE = auto()

    EOF = auto()


KEYWORDS: Dict[str, TokenType] = {
    "and": TokenType.AND,
    "as": TokenType.AS,
    "break": TokenType.BREAK,
    "class": TokenType.CLASS,
    "continue": TokenType.CONTINUE,
    "def": TokenType.DEF,
    "else": TokenType.ELSE,
    "extends": TokenType.EXTENDS,
    "false": TokenType.FALSE,
    "for": TokenType.FOR,
    "fun": TokenType.FUN,
    "if": TokenType.IF,
    "import": TokenType.IMPORT,
    "in": TokenType.IN,
    "null": TokenType.NULL,
    "or": TokenType.OR,
    "print": TokenType.PRINT,
    "return": TokenType.RETURN,
    "self": TokenType.SELF,
    "super": TokenType.SUPER,
    "then": TokenType.THEN,
    "true": TokenType.TRUE,
    "while": TokenType.WHILE,
}


@dataclass(frozen=True)
class Token:
    """A single lexeme together with its literal value and source position."""
    type: TokenType
    lexeme: str
    literal: Any
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token<{self.type.name} {self.lexeme!r} {self.line}:{self.column}>"
