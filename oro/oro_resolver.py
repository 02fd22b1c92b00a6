"""
Static resolution pass.

Walks the AST once before execution, mirroring the scopes the evaluator
will create, and records for every local variable reference how many
scopes out its declaration lives. Names that are not found in any tracked
scope are left unrecorded and looked up in the globals at run time.
"""
from enum import Enum, auto
from typing import Dict, List, Optional

from oro.oro_ast import (
    Expr, Stmt, Literal, Grouping, Unary, Binary, Logical, Variable, Assign, Call,
    Get, Set, Self, Super, ArrayLiteral, Index, IndexAssign, InterpolatedString,
    ExpressionStmt, PrintStmt, VarDecl, Block, IfStmt, WhileStmt, FunctionDecl,
    ReturnStmt, ClassDecl,
)
from oro.oro_errors import Reporter
from oro.oro_tokens import Token


class FunctionType(Enum):
    NONE = auto()
    FUNCTION = auto()
    METHOD = auto()
    INITIALIZER = auto()


class ClassType(Enum):
    NONE = auto()
    CLASS = auto()
    SUBCLASS = auto()


class Resolver:
    """Fills `locals` (node -> scope distance) for an evaluator.

    `locals` is usually the evaluator's own map, so that a REPL session
    accumulates resolutions across inputs.
    """

    def __init__(self, locals: Optional[Dict[Expr, int]] = None, reporter: Optional[Reporter] = None):
        self.locals: Dict[Expr, int] = locals if locals is not None else {}
        self.reporter = reporter or Reporter()
        # Each scope maps a name to whether its initializer has finished.
        self.scopes: List[Dict[str, bool]] = []
        self.current_function = FunctionType.NONE
        self.current_class = ClassType.NONE

    def resolve(self, statements: List[Stmt]) -> Dict[Expr, int]:
        for stmt in statements:
            self._resolve_stmt(stmt)
        return self.locals

    # =================================================================
    # Statements
    # =================================================================

    def _resolve_stmt(self, stmt: Stmt):
        match stmt:
            case Block(statements=statements):
                self._begin_scope()
                self.resolve(statements)
                self._end_scope()

            case ClassDecl():
                self._resolve_class(stmt)

            case VarDecl(name=name, initializer=initializer):
                self._declare(name)
                if initializer is not None:
                    self._resolve_expr(initializer)
                self._define(name)

            case FunctionDecl(name=name):
                # Defined eagerly so the function can refer to itself recursively.
                self._declare(name)
                self._define(name)
                self._resolve_function(stmt, FunctionType.FUNCTION)

            case ExpressionStmt(expression=expression) | PrintStmt(expression=expression):
                self._resolve_expr(expression)

            case IfStmt(condition=condition, then_branch=then_branch, else_branch=else_branch):
                self._resolve_expr(condition)
                self._resolve_stmt(then_branch)
                if else_branch is not None:
                    self._resolve_stmt(else_branch)

            case WhileStmt(condition=condition, body=body):
                self._resolve_expr(condition)
                self._resolve_stmt(body)

            case ReturnStmt(keyword=keyword, value=value):
                if self.current_function == FunctionType.NONE:
                    self.reporter.error_at(keyword, "Can't return from top-level code.")
                if value is not None:
                    self._resolve_expr(value)

            case _:
                raise TypeError(f"Unknown statement node: {type(stmt).__name__}")

    def _resolve_class(self, stmt: ClassDecl):
        enclosing_class = self.current_class
        self.current_class = ClassType.CLASS

        self._declare(stmt.name)
        self._define(stmt.name)

        if stmt.superclass is not None:
            if stmt.superclass.name.lexeme == stmt.name.lexeme:
                self.reporter.error_at(stmt.superclass.name, "A class can't inherit from itself.")
            self.current_class = ClassType.SUBCLASS
            self._resolve_expr(stmt.superclass)
            self._begin_scope()
            self.scopes[-1]["super"] = True

        self._begin_scope()
        self.scopes[-1]["self"] = True

        for method in stmt.methods:
            kind = FunctionType.METHOD
            if method.name.lexeme == stmt.name.lexeme:
                kind = FunctionType.INITIALIZER
            self._resolve_function(method, kind)

        self._end_scope()
        if stmt.superclass is not None:
            self._end_scope()

        self.current_class = enclosing_class

    def _resolve_function(self, function: FunctionDecl, kind: FunctionType):
        enclosing_function = self.current_function
        self.current_function = kind

        self._begin_scope()
        for param in function.params:
            self._declare(param)
            self._define(param)
        self.resolve(function.body)
        self._end_scope()

        self.current_function = enclosing_function

    # =================================================================
    # Expressions
    # =================================================================

    def _resolve_expr(self, expr: Expr):
        match expr:
            case Variable(name=name):
                if self.scopes and self.scopes[-1].get(name.lexeme) is False:
                    self.reporter.error_at(name, "Can't read local variable in its own initializer.")
                self._resolve_local(expr, name)

            case Assign(name=name, value=value):
                self._resolve_expr(value)
                self._resolve_local(expr, name)

            case Self(keyword=keyword):
                if self.current_class == ClassType.NONE:
                    self.reporter.error_at(keyword, "Can't use 'self' outside of a class.")
                    return
                self._resolve_local(expr, keyword)

            case Super(keyword=keyword):
                if self.current_class == ClassType.NONE:
                    self.reporter.error_at(keyword, "Can't use 'super' outside of a class.")
                elif self.current_class != ClassType.SUBCLASS:
                    self.reporter.error_at(keyword, "Can't use 'super' in a class with no superclass.")
                self._resolve_local(expr, keyword)

            case Binary(left=left, right=right) | Logical(left=left, right=right):
                self._resolve_expr(left)
                self._resolve_expr(right)

            case Unary(right=right):
                self._resolve_expr(right)

            case Grouping(expression=inner):
                self._resolve_expr(inner)

            case Call(callee=callee, arguments=arguments):
                self._resolve_expr(callee)
                for argument in arguments:
                    self._resolve_expr(argument)

            case Get(object=obj):
                self._resolve_expr(obj)

            case Set(object=obj, value=value):
                self._resolve_expr(value)
                self._resolve_expr(obj)

            case ArrayLiteral(elements=elements):
                for element in elements:
                    self._resolve_expr(element)

            case Index(object=obj, index=index):
                self._resolve_expr(obj)
                self._resolve_expr(index)

            case IndexAssign(object=obj, index=index, value=value):
                self._resolve_expr(obj)
                self._resolve_expr(index)
                self._resolve_expr(value)

            case InterpolatedString(parts=parts):
                for part in parts:
                    self._resolve_expr(part)

            case Literal():
                pass

            case _:
                raise TypeError(f"Unknown expression node: {type(expr).__name__}")

    # =================================================================
    # Scope helpers
    # =================================================================

    def _begin_scope(self):
        self.scopes.append({})

    def _end_scope(self):
        self.scopes.pop()

    def _declare(self, name: Token):
        # Globals are not tracked.
        if not self.scopes:
            return
        self.scopes[-1][name.lexeme] = False

    def _define(self, name: Token):
        if not self.scopes:
            return
        self.scopes[-1][name.lexeme] = True

    def _resolve_local(self, expr: Expr, name: Token):
        for depth, scope in enumerate(reversed(self.scopes)):
            if name.lexeme in scope:
                self.locals[expr] = depth
                return
        # Not found: global, resolved by name at run time.
