"""
Error taxonomy and diagnostic reporting for the Oro pipeline.

Static faults (lexical, syntax, resolution) are collected through a
`Reporter` so that one pass can surface several of them; runtime faults
are raised as `OroRuntimeError` and abort the current script run.
"""
from typing import Any, Dict, List, Optional

from oro.oro_tokens import Token, TokenType


class OroError(Exception):
    """Base class for all errors raised by the Oro toolchain."""
    pass


class OroStaticError(OroError):
    """Raised once a static phase finished with reported diagnostics."""

    def __init__(self, diagnostics: List[str]):
        super().__init__("\n".join(diagnostics))
        self.diagnostics = list(diagnostics)


class OroLexicalError(OroStaticError):
    """Unexpected characters or malformed literals."""


class OroSyntaxError(OroStaticError):
    """Token sequences the grammar does not accept."""


class OroResolutionError(OroStaticError):
    """Scope misuse found before execution."""


class OroRuntimeError(OroError):
    """A fault raised while evaluating a program.

    `token` is the offending token when one is known; natives usually raise
    without one and the call site's token is attached by the evaluator.
    """
    kind = "RuntimeError"

    def __init__(self, token: Optional[Token], message: str = ""):
        # Allow OroRuntimeError("message") for natives.
        if isinstance(token, str) and not message:
            token, message = None, token
        super().__init__(message)
        self.token = token
        self.message = message


def source_context(source: str, line: int, col: Optional[int], radius: int = 0) -> str:
    """Render the source lines around `line`, with a caret under `col`."""
    lines = source.splitlines()
    if not lines or not line or line < 1:
        return ""
    # Errors at end of input may point one line past the last one.
    if line > len(lines):
        line = len(lines)
        col = None
    start = max(1, line - radius)
    end = min(len(lines), line + radius)
    width = len(str(end))
    out = []
    for i in range(start, end + 1):
        ln = str(i).rjust(width)
        out.append(f"{ln} | {lines[i - 1]}")
        if i == line and col is not None:
            caret = " " * max(col - 1, 0)
            out.append(f"{' ' * width} | {caret}^--")
    return "\n".join(out)


class Reporter:
    """Collects diagnostics from the lexer, parser and resolver.

    Every report is formatted against the current source text, kept in
    `diagnostics` and mirrored into `side_effects` under the stderr topic.
    """

    def __init__(self, source: str = "", side_effects: Optional[List[Dict[str, Any]]] = None):
        self.source = source
        self.side_effects = side_effects if side_effects is not None else []
        self.diagnostics: List[str] = []
        self.had_error = False

    def reset(self, source: str = ""):
        self.source = source
        self.diagnostics = []
        self.had_error = False

    def report(self, line: int, column: Optional[int], where: str, message: str):
        if column is not None:
            header = f"[line {line}, column {column}] Error{where}: {message}"
        else:
            header = f"[line {line}] Error{where}: {message}"
        context = source_context(self.source, line, column)
        text = f"{header}\n{context}" if context else header
        self.diagnostics.append(text)
        self.side_effects.append({'topics': ['stderr'], 'message': text})
        self.had_error = True

    def error(self, line: int, column: Optional[int], message: str):
        self.report(line, column, "", message)

    def error_at(self, token: Token, message: str):
        if token.type == TokenType.EOF:
            self.report(token.line, token.column, " at end", message)
        else:
            self.report(token.line, token.column, f" at '{token.lexeme}'", message)

    def format(self) -> str:
        return "\n".join(self.diagnostics)
