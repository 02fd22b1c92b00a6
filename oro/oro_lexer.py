"""
The Oro lexer: turns source text into a flat list of tokens.

Scanning is error-resilient: a bad character or an unterminated literal is
reported through the `Reporter` and scanning resumes with the next lexeme,
so a single pass can surface every lexical problem in a file.
"""
from typing import List, Optional

from oro.oro_errors import Reporter
from oro.oro_tokens import KEYWORDS, Token, TokenType


SINGLE_CHAR_TOKENS = {
    '(': TokenType.LEFT_PAREN,
    ')': TokenType.RIGHT_PAREN,
    '{': TokenType.LEFT_BRACE,
    '}': TokenType.RIGHT_BRACE,
    '[': TokenType.LEFT_BRACKET,
    ']': TokenType.RIGHT_BRACKET,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    '-': TokenType.MINUS,
    '+': TokenType.PLUS,
    ';': TokenType.SEMICOLON,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
}

# (bare, followed-by-'=') pairs
TWO_CHAR_TOKENS = {
    '!': (TokenType.BANG, TokenType.BANG_EQUAL),
    '=': (TokenType.EQUAL, TokenType.EQUAL_EQUAL),
    '<': (TokenType.LESS, TokenType.LESS_EQUAL),
    '>': (TokenType.GREATER, TokenType.GREATER_EQUAL),
}


class Lexer:
    """Scans a source string into tokens, ending with a synthetic EOF token."""

    def __init__(self, source: str, reporter: Optional[Reporter] = None, *, line: int = 1, column: int = 1):
        self.source = source
        self.reporter = reporter or Reporter(source)
        self.tokens: List[Token] = []
        self.start = 0
        self.current = 0
        # line/column may be offset when scanning an expression embedded in an f-string.
        self.line = line
        self.column = column
        # Position of the lexeme currently being scanned.
        self.start_line = line
        self.start_column = column

    def scan_tokens(self) -> List[Token]:
        while not self._is_at_end():
            self.start = self.current
            self.start_line = self.line
            self.start_column = self.column
            self._scan_token()

        self.tokens.append(Token(TokenType.EOF, "", None, self.line, self.column))
        return self.tokens

    def _scan_token(self):
        c = self._advance()
        if c in SINGLE_CHAR_TOKENS:
            self._add_token(SINGLE_CHAR_TOKENS[c])
            return
        if c in TWO_CHAR_TOKENS:
            bare, with_equal = TWO_CHAR_TOKENS[c]
            self._add_token(with_equal if self._match('=') else bare)
            return

        match c:
            case '#':
                while self._peek() != '\n' and not self._is_at_end():
                    self._advance()
            case ' ' | '\r' | '\t' | '\n':
                pass
            case '"' | "'":
                self._string(c)
            case 'f' if self._peek() == '"':
                self._advance()
                self._fstring()
            case _:
                if self._is_digit(c):
                    self._number()
                elif self._is_alpha(c):
                    self._identifier()
                else:
                    self._error("Unexpected character.")

    # --- Lexeme scanners ---

    def _identifier(self):
        while self._is_alpha_numeric(self._peek()):
            self._advance()
        text = self.source[self.start:self.current]
        self._add_token(KEYWORDS.get(text, TokenType.IDENTIFIER))

    def _number(self):
        while self._is_digit(self._peek()):
            self._advance()
        # A fractional part needs at least one digit after the dot.
        if self._peek() == '.' and self._is_digit(self._peek_next()):
            self._advance()
            while self._is_digit(self._peek()):
                self._advance()
        self._add_token(TokenType.NUMBER, float(self.source[self.start:self.current]))

    def _string(self, quote: str):
        while self._peek() != quote and not self._is_at_end():
            self._advance()

        if self._is_at_end():
            self._error("Unterminated string.")
            return

        self._advance()  # closing quote
        self._add_token(TokenType.STRING, self.source[self.start + 1:self.current - 1])

    def _fstring(self):
        """Scan `f"..."`, validating brace nesting before consuming anything.

        The lookahead walks to the first unescaped closing quote while
        tracking `{`/`}` depth; only when the literal is well formed is it
        consumed as a single FSTRING token holding the raw body.
        """
        depth = 0
        pos = self.current
        while pos < len(self.source):
            c = self.source[pos]
            if c == '\\' and pos + 1 < len(self.source):
                pos += 2
                continue
            if c == '{':
                depth += 1
            elif c == '}':
                depth -= 1
                if depth < 0:
                    self._error("Unmatched closing brace in f-string.")
                    self._skip_past_quote(pos)
                    return
            elif c == '"':
                if depth > 0:
                    self._error("Unclosed expression in f-string.")
                    self._skip_to(pos + 1)
                    return
                break
            pos += 1

        if pos >= len(self.source):
            self._error("Unterminated f-string.")
            self._skip_to(len(self.source))
            return

        self._skip_to(pos + 1)
        body = self.source[self.start + 2:self.current - 1]
        self._add_token(TokenType.FSTRING, body)

    # --- Helpers ---

    def _skip_past_quote(self, pos: int):
        """Resume scanning after the next unescaped double quote at or after pos."""
        while pos < len(self.source):
            c = self.source[pos]
            if c == '\\':
                pos += 2
                continue
            if c == '"':
                self._skip_to(pos + 1)
                return
            pos += 1
        self._skip_to(len(self.source))

    def _skip_to(self, pos: int):
        while self.current < min(pos, len(self.source)):
            self._advance()

    def _error(self, message: str):
        self.reporter.error(self.start_line, self.start_column, message)

    def _match(self, expected: str) -> bool:
        if self._is_at_end() or self.source[self.current] != expected:
            return False
        self._advance()
        return True

    def _peek(self) -> str:
        if self._is_at_end():
            return '\0'
        return self.source[self.current]

    def _peek_next(self) -> str:
        if self.current + 1 >= len(self.source):
            return '\0'
        return self.source[self.current + 1]

    @staticmethod
    def _is_digit(c: str) -> bool:
        return '0' <= c <= '9'

    @staticmethod
    def _is_alpha(c: str) -> bool:
        return ('a' <= c <= 'z') or ('A' <= c <= 'Z') or c == '_'

    def _is_alpha_numeric(self, c: str) -> bool:
        return self._is_alpha(c) or self._is_digit(c)

    def _is_at_end(self) -> bool:
        return self.current >= len(self.source)

    def _advance(self) -> str:
        c = self.source[self.current]
        self.current += 1
        if c == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return c

    def _add_token(self, type_: TokenType, literal=None):
        text = self.source[self.start:self.current]
        self.tokens.append(Token(type_, text, literal, self.start_line, self.start_column))
