"""
The core Oro interpreter: a tree-walking Evaluator over the resolved AST.
"""
import os
import sys
from typing import Any, Dict, List, Optional

from oro.oro_ast import (
    Expr, Stmt, Literal, Grouping, Unary, Binary, Logical, Variable, Assign, Call,
    Get, Set, Self, Super, ArrayLiteral, Index, IndexAssign, InterpolatedString,
    ExpressionStmt, PrintStmt, VarDecl, Block, IfStmt, WhileStmt, FunctionDecl,
    ReturnStmt, ClassDecl,
)
from oro.oro_datatypes import (
    Environment, Return, OroCallable, OroFunction, OroClass, OroInstance, is_return,
)
from oro.oro_errors import OroRuntimeError
from oro.oro_printer import Printer
from oro.oro_tokens import Token, TokenType as T


def is_number(x) -> bool:
    # bool is a subclass of int, so rule it out explicitly
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def is_truthy(x) -> bool:
    if x is None:
        return False
    if isinstance(x, bool):
        return x
    if is_number(x):
        return x != 0
    return True


def is_equal(a, b) -> bool:
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    # No cross-type coercion: true != 1, "" != false.
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    if is_number(a) != is_number(b):
        return False
    # Arrays and maps compare element-wise under the same strict rule.
    if isinstance(a, list) or isinstance(b, list):
        if not (isinstance(a, list) and isinstance(b, list)) or len(a) != len(b):
            return False
        return all(is_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) or isinstance(b, dict):
        if not (isinstance(a, dict) and isinstance(b, dict)) or a.keys() != b.keys():
            return False
        return all(is_equal(v, b[k]) for k, v in a.items())
    if is_number(a) or isinstance(a, (str, bool)):
        return a == b
    return a is b


class Evaluator:
    """The Oro execution engine."""

    def __init__(self):
        self.globals = Environment()
        self.environment = self.globals
        # Resolved scope distances, keyed by AST node identity.
        self.locals: Dict[Expr, int] = {}
        self.side_effects: List[Any] = []
        self.call_stack = []
        self.printer = Printer()
        self.host_object: Optional[Any] = None
        self.source_dir: Optional[str] = None

    # =================================================================
    # Entry points
    # =================================================================

    def interpret(self, statements: List[Stmt]) -> Any:
        """Execute top-level statements; returns the value of a trailing expression statement."""
        last_value = None
        for stmt in statements:
            last_value = None
            if isinstance(stmt, ExpressionStmt):
                last_value = self.evaluate(stmt.expression)
                continue
            self.execute(stmt)
        return last_value

    def stringify(self, value: Any) -> str:
        return self.printer.stringify(value)

    # =================================================================
    # Call frames and tracing
    # =================================================================

    def _push_frame(self, name, args):
        self.call_stack.append({'name': name, 'args': args})

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("ORO_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # =================================================================
    # Statements
    # =================================================================

    def execute(self, stmt: Stmt) -> Optional[Return]:
        """Run one statement. Returns a `Return` outcome when a `return` fired inside it."""
        match stmt:
            case ExpressionStmt(expression=expression):
                self.evaluate(expression)

            case PrintStmt(expression=expression):
                text = self.stringify(self.evaluate(expression))
                self.side_effects.append({'topics': ['stdout'], 'message': text})

            case VarDecl(name=name, initializer=initializer):
                value = None
                if initializer is not None:
                    value = self.evaluate(initializer)
                self.environment.define(name.lexeme, value)

            case Block(statements=statements):
                return self.execute_block(statements, Environment(self.environment))

            case IfStmt(condition=condition, then_branch=then_branch, else_branch=else_branch):
                if is_truthy(self.evaluate(condition)):
                    return self.execute(then_branch)
                if else_branch is not None:
                    return self.execute(else_branch)

            case WhileStmt(condition=condition, body=body):
                while is_truthy(self.evaluate(condition)):
                    outcome = self.execute(body)
                    if is_return(outcome):
                        return outcome

            case FunctionDecl(name=name):
                self.environment.define(name.lexeme, OroFunction(stmt, self.environment))

            case ReturnStmt(value=value):
                return Return(self.evaluate(value) if value is not None else None)

            case ClassDecl():
                self._execute_class(stmt)

            case _:
                raise TypeError(f"Unknown statement node: {type(stmt).__name__}")
        return None

    def execute_block(self, statements: List[Stmt], environment: Environment) -> Optional[Return]:
        previous = self.environment
        try:
            self.environment = environment
            for stmt in statements:
                outcome = self.execute(stmt)
                if is_return(outcome):
                    return outcome
            return None
        finally:
            self.environment = previous

    def _execute_class(self, stmt: ClassDecl):
        superclass = None
        if stmt.superclass is not None:
            superclass = self.evaluate(stmt.superclass)
            if not isinstance(superclass, OroClass):
                raise OroRuntimeError(stmt.superclass.name, "Superclass must be a class.")

        self.environment.define(stmt.name.lexeme, None)

        if superclass is not None:
            self.environment = Environment(self.environment)
            self.environment.define("super", superclass)

        methods = {}
        for method in stmt.methods:
            is_ctor = method.name.lexeme == stmt.name.lexeme
            methods[method.name.lexeme] = OroFunction(method, self.environment, is_ctor)

        klass = OroClass(stmt.name.lexeme, superclass, methods)

        if superclass is not None:
            self.environment = self.environment.enclosing

        self.environment.assign(stmt.name, klass)
        self._dbg("class", klass.name, "methods", list(methods.keys()),
                  "super", superclass.name if superclass else None)

    # =================================================================
    # Expressions
    # =================================================================

    def evaluate(self, expr: Expr) -> Any:
        match expr:
            case Literal(value=value):
                return value

            case Grouping(expression=inner):
                return self.evaluate(inner)

            case Unary(operator=operator, right=right):
                return self._unary(operator, self.evaluate(right))

            case Binary(left=left, operator=operator, right=right):
                return self._binary(self.evaluate(left), operator, self.evaluate(right))

            case Logical(left=left, operator=operator, right=right):
                value = self.evaluate(left)
                if operator.type == T.OR:
                    if is_truthy(value):
                        return value
                elif not is_truthy(value):
                    return value
                return self.evaluate(right)

            case Variable(name=name):
                return self._look_up_variable(name, expr)

            case Assign(name=name, value=value_expr):
                value = self.evaluate(value_expr)
                distance = self.locals.get(expr)
                if distance is not None:
                    self.environment.assign_at(distance, name, value)
                else:
                    self.globals.assign(name, value)
                return value

            case Call():
                return self._call(expr)

            case Get(object=obj_expr, name=name):
                obj = self.evaluate(obj_expr)
                if isinstance(obj, OroInstance):
                    return obj.get(name)
                raise OroRuntimeError(name, "Only instances have properties.")

            case Set(object=obj_expr, name=name, value=value_expr):
                obj = self.evaluate(obj_expr)
                if not isinstance(obj, OroInstance):
                    raise OroRuntimeError(name, "Only instances have fields.")
                value = self.evaluate(value_expr)
                obj.set(name, value)
                return value

            case Self(keyword=keyword):
                return self._look_up_variable(keyword, expr)

            case Super():
                return self._super(expr)

            case ArrayLiteral(elements=elements):
                return [self.evaluate(e) for e in elements]

            case Index(object=obj_expr, bracket=bracket, index=index_expr):
                return self._index(self.evaluate(obj_expr), bracket, self.evaluate(index_expr))

            case IndexAssign(object=obj_expr, bracket=bracket, index=index_expr, value=value_expr):
                target = self.evaluate(obj_expr)
                index = self.evaluate(index_expr)
                value = self.evaluate(value_expr)
                return self._index_assign(target, bracket, index, value)

            case InterpolatedString(parts=parts):
                return "".join(self.stringify(self.evaluate(part)) for part in parts)

            case _:
                raise TypeError(f"Unknown expression node: {type(expr).__name__}")

    def _look_up_variable(self, name: Token, expr: Expr) -> Any:
        distance = self.locals.get(expr)
        if distance is not None:
            return self.environment.get_at(distance, name.lexeme)
        return self.globals.get(name)

    def _unary(self, operator: Token, right: Any) -> Any:
        match operator.type:
            case T.MINUS:
                self._check_number_operand(operator, right)
                return -float(right)
            case T.BANG:
                return not is_truthy(right)
        raise OroRuntimeError(operator, f"Unknown unary operator '{operator.lexeme}'.")

    def _binary(self, left: Any, operator: Token, right: Any) -> Any:
        match operator.type:
            case T.PLUS:
                if is_number(left) and is_number(right):
                    return float(left) + float(right)
                if isinstance(left, str) and isinstance(right, str):
                    return left + right
                raise OroRuntimeError(operator, "Operands must be two numbers or two strings.")
            case T.MINUS:
                self._check_number_operands(operator, left, right)
                return float(left) - float(right)
            case T.STAR:
                self._check_number_operands(operator, left, right)
                return float(left) * float(right)
            case T.SLASH:
                self._check_number_operands(operator, left, right)
                if right == 0:
                    raise OroRuntimeError(operator, "Division by zero.")
                return float(left) / float(right)
            case T.GREATER:
                self._check_number_operands(operator, left, right)
                return left > right
            case T.GREATER_EQUAL:
                self._check_number_operands(operator, left, right)
                return left >= right
            case T.LESS:
                self._check_number_operands(operator, left, right)
                return left < right
            case T.LESS_EQUAL:
                self._check_number_operands(operator, left, right)
                return left <= right
            case T.EQUAL_EQUAL:
                return is_equal(left, right)
            case T.BANG_EQUAL:
                return not is_equal(left, right)
        raise OroRuntimeError(operator, f"Unknown binary operator '{operator.lexeme}'.")

    @staticmethod
    def _check_number_operand(operator: Token, operand: Any):
        if not is_number(operand):
            raise OroRuntimeError(operator, "Operand must be a number.")

    @staticmethod
    def _check_number_operands(operator: Token, left: Any, right: Any):
        if not (is_number(left) and is_number(right)):
            raise OroRuntimeError(operator, "Operands must be numbers.")

    def _call(self, expr: Call) -> Any:
        callee = self.evaluate(expr.callee)
        arguments = [self.evaluate(argument) for argument in expr.arguments]

        if not isinstance(callee, OroCallable):
            raise OroRuntimeError(expr.paren, "Can only call functions and classes.")

        arity = callee.arity()
        if len(arguments) != arity:
            raise OroRuntimeError(
                expr.paren,
                f"Expected {arity} arguments but got {len(arguments)}.",
            )

        self._dbg("call", callee.name, "argc", len(arguments))
        self._push_frame(callee.name, arguments)
        try:
            result = callee.call(self, arguments)
        except OroRuntimeError as e:
            # Natives raise without a token; point them at the call site.
            if e.token is None:
                e.token = expr.paren
            raise
        except RecursionError:
            raise OroRuntimeError(expr.paren, "Stack overflow.") from None
        # Only pop on success so a failing call leaves its frames for the stacktrace.
        self._pop_frame()
        return result

    def _super(self, expr: Super) -> Any:
        distance = self.locals[expr]
        superclass = self.environment.get_at(distance, "super")
        # `self` always lives in the scope just inside the one holding `super`.
        instance = self.environment.get_at(distance - 1, "self")
        method = superclass.find_method(expr.method.lexeme)
        if method is None:
            raise OroRuntimeError(expr.method, f"Undefined property '{expr.method.lexeme}'.")
        return method.bind(instance)

    # =================================================================
    # Indexing
    # =================================================================

    def _index(self, target: Any, bracket: Token, index: Any) -> Any:
        if isinstance(target, dict):
            if not isinstance(index, str):
                raise OroRuntimeError(bracket, "Object keys must be strings.")
            return target.get(index)
        if not isinstance(target, list):
            raise OroRuntimeError(bracket, "Can only index into arrays.")
        return target[self._array_slot(target, bracket, index)]

    def _index_assign(self, target: Any, bracket: Token, index: Any, value: Any) -> Any:
        if isinstance(target, dict):
            if not isinstance(index, str):
                raise OroRuntimeError(bracket, "Object keys must be strings.")
            target[index] = value
            return value
        if not isinstance(target, list):
            raise OroRuntimeError(bracket, "Can only index into arrays.")
        target[self._array_slot(target, bracket, index)] = value
        return value

    @staticmethod
    def _array_slot(array: list, bracket: Token, index: Any) -> int:
        if not is_number(index):
            raise OroRuntimeError(bracket, "Array index must be a number.")
        if not float(index).is_integer():
            raise OroRuntimeError(bracket, "Array index must be an integer.")
        slot = int(index)
        if slot < 0 or slot >= len(array):
            raise OroRuntimeError(bracket, f"Index out of bounds: {slot} (size {len(array)}).")
        return slot
