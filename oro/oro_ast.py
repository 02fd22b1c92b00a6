"""
Abstract syntax tree for Oro programs.

Nodes are built once by the parser and only read afterwards. They compare
and hash by identity, which is what lets the resolver key its side table
on individual reference nodes.
"""
from abc import ABC
from dataclasses import dataclass
from typing import Any, List, Optional

from oro.oro_tokens import Token


class Expr(ABC):
    """Abstract base class for expression nodes."""
    pass


class Stmt(ABC):
    """Abstract base class for statement nodes."""
    pass


# =================================================================
# Expressions
# =================================================================

@dataclass(eq=False)
class Literal(Expr):
    value: Any


@dataclass(eq=False)
class Grouping(Expr):
    expression: Expr


@dataclass(eq=False)
class Unary(Expr):
    operator: Token
    right: Expr


@dataclass(eq=False)
class Binary(Expr):
    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Logical(Expr):
    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Variable(Expr):
    name: Token


@dataclass(eq=False)
class Assign(Expr):
    name: Token
    value: Expr


@dataclass(eq=False)
class Call(Expr):
    callee: Expr
    paren: Token
    arguments: List[Expr]


@dataclass(eq=False)
class Get(Expr):
    object: Expr
    name: Token


@dataclass(eq=False)
class Set(Expr):
    object: Expr
    name: Token
    value: Expr


@dataclass(eq=False)
class Self(Expr):
    keyword: Token


@dataclass(eq=False)
class Super(Expr):
    keyword: Token
    method: Token


@dataclass(eq=False)
class ArrayLiteral(Expr):
    bracket: Token
    elements: List[Expr]


@dataclass(eq=False)
class Index(Expr):
    object: Expr
    bracket: Token
    index: Expr


@dataclass(eq=False)
class IndexAssign(Expr):
    object: Expr
    bracket: Token
    index: Expr
    value: Expr


@dataclass(eq=False)
class InterpolatedString(Expr):
    """An `f"..."` literal; `parts` alternates literal text and embedded expressions."""
    token: Token
    parts: List[Expr]


# =================================================================
# Statements
# =================================================================

@dataclass(eq=False)
class ExpressionStmt(Stmt):
    expression: Expr


@dataclass(eq=False)
class PrintStmt(Stmt):
    keyword: Token
    expression: Expr


@dataclass(eq=False)
class VarDecl(Stmt):
    name: Token
    initializer: Optional[Expr]


@dataclass(eq=False)
class Block(Stmt):
    statements: List[Stmt]


@dataclass(eq=False)
class IfStmt(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt]


@dataclass(eq=False)
class WhileStmt(Stmt):
    condition: Expr
    body: Stmt


@dataclass(eq=False)
class FunctionDecl(Stmt):
    name: Token
    params: List[Token]
    body: List[Stmt]


@dataclass(eq=False)
class ReturnStmt(Stmt):
    keyword: Token
    value: Optional[Expr]


@dataclass(eq=False)
class ClassDecl(Stmt):
    name: Token
    superclass: Optional[Variable]
    methods: List[FunctionDecl]
