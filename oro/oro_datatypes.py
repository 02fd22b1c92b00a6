"""
Defines the runtime data types for the Oro language.

This module provides the scope chain (`Environment`), the callable
protocol shared by natives, user functions and classes, instances, and the
`Return` outcome used to carry a `return` out of nested statements.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from oro.oro_errors import OroRuntimeError
from oro.oro_tokens import Token

if TYPE_CHECKING:
    from oro.oro_ast import FunctionDecl
    from oro.oro_interpreter import Evaluator


# =================================================================
# Scope chain
# =================================================================

class Environment:
    """A single scope: name -> value bindings plus an optional enclosing scope.

    Closures hold on to their environment by reference, so a scope stays
    alive as long as any function created inside it is reachable.
    """

    def __init__(self, enclosing: Optional['Environment'] = None):
        self.enclosing = enclosing
        self.values: Dict[str, Any] = {}

    def define(self, name: str, value: Any):
        self.values[name] = value

    def get(self, name: Token) -> Any:
        env = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env.enclosing
        raise OroRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

    def assign(self, name: Token, value: Any):
        env = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing
        raise OroRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

    def ancestor(self, distance: int) -> 'Environment':
        env = self
        for _ in range(distance):
            env = env.enclosing
        return env

    def get_at(self, distance: int, name: str) -> Any:
        return self.ancestor(distance).values.get(name)

    def assign_at(self, distance: int, name: Token, value: Any):
        self.ancestor(distance).values[name.lexeme] = value

    def __repr__(self) -> str:
        return f"<Environment {list(self.values.keys())}>"


# =================================================================
# Control-flow outcome
# =================================================================

@dataclass
class Return:
    """Outcome of a statement that executed `return`; carries the value up to the call."""
    value: Any = None


def is_return(x) -> bool:
    return isinstance(x, Return)


def unwrap_return(x):
    return x.value if is_return(x) else x


# =================================================================
# Callables
# =================================================================

class OroCallable(ABC):
    """Abstract base class for all objects callable within Oro."""

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def arity(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def call(self, interpreter: 'Evaluator', arguments: List[Any]) -> Any:
        raise NotImplementedError


def oro_native(name: str):
    """Mark a Python function as an Oro native bound under `name`."""
    def decorator(func):
        func._oro_native_name = name
        return func
    return decorator


def type_name(value: Any) -> str:
    """The Oro-level type name of a runtime value."""
    match value:
        case None:
            return "null"
        case bool():
            return "boolean"
        case int() | float():
            return "number"
        case str():
            return "string"
        case list():
            return "array"
        case dict():
            return "map"
        case OroClass():
            return "class"
        case OroCallable():
            return "function"
        case OroInstance():
            return value.klass.name
    return type(value).__name__


def require(value: Any, kind: str, func: str, position: int = 1) -> Any:
    """Raise an `OroRuntimeError` unless `value` has the Oro type `kind`."""
    actual = type_name(value)
    if actual != kind:
        raise OroRuntimeError(f"{func}() expects a {kind} as argument {position}, got {actual}.")
    return value


class NativeFunction(OroCallable):
    """Wraps a Python callable so Oro code can call it."""

    def __init__(self, name: str, arity: int, fn: Callable[..., Any]):
        self._name = name
        self._arity = arity
        self.fn = fn

    @property
    def name(self) -> str:
        return self._name

    def arity(self) -> int:
        return self._arity

    def call(self, interpreter: 'Evaluator', arguments: List[Any]) -> Any:
        return self.fn(*arguments)

    def __repr__(self) -> str:
        return f"<native fn {self._name}>"


class OroFunction(OroCallable):
    """A user-defined function or method, closed over its defining environment."""

    def __init__(self, declaration: 'FunctionDecl', closure: Environment, is_initializer: bool = False):
        self.declaration = declaration
        self.closure = closure
        self.is_initializer = is_initializer

    @property
    def name(self) -> str:
        return self.declaration.name.lexeme

    def arity(self) -> int:
        return len(self.declaration.params)

    def bind(self, instance: 'OroInstance') -> 'OroFunction':
        env = Environment(self.closure)
        env.define("self", instance)
        return OroFunction(self.declaration, env, self.is_initializer)

    def call(self, interpreter: 'Evaluator', arguments: List[Any]) -> Any:
        env = Environment(self.closure)
        for param, argument in zip(self.declaration.params, arguments):
            env.define(param.lexeme, argument)

        outcome = interpreter.execute_block(self.declaration.body, env)

        if self.is_initializer:
            return self.closure.get_at(0, "self")
        return unwrap_return(outcome)

    def __repr__(self) -> str:
        return f"<fn {self.name}>"


class OroClass(OroCallable):
    """A class: a method table plus an optional superclass.

    The constructor is the method whose name equals the class name; lookup
    goes through `find_method`, so a subclass without its own constructor
    picks up an inherited method of that name.
    """

    def __init__(self, name: str, superclass: Optional['OroClass'], methods: Dict[str, OroFunction]):
        self._name = name
        self.superclass = superclass
        self.methods = methods

    @property
    def name(self) -> str:
        return self._name

    def find_method(self, name: str) -> Optional[OroFunction]:
        klass = self
        while klass is not None:
            if name in klass.methods:
                return klass.methods[name]
            klass = klass.superclass
        return None

    def constructor(self) -> Optional[OroFunction]:
        return self.find_method(self._name)

    def arity(self) -> int:
        ctor = self.constructor()
        return ctor.arity() if ctor is not None else 0

    def call(self, interpreter: 'Evaluator', arguments: List[Any]) -> Any:
        instance = OroInstance(self)
        ctor = self.constructor()
        if ctor is not None:
            # The constructor's own return value is discarded.
            ctor.bind(instance).call(interpreter, arguments)
        return instance

    def __repr__(self) -> str:
        return self._name


class OroInstance:
    """An object created by calling a class; holds its own mutable fields."""

    def __init__(self, klass: OroClass):
        self.klass = klass
        self.fields: Dict[str, Any] = {}

    def get(self, name: Token) -> Any:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]

        method = self.klass.find_method(name.lexeme)
        if method is not None:
            return method.bind(self)

        raise OroRuntimeError(name, f"Undefined property '{name.lexeme}'.")

    def set(self, name: Token, value: Any):
        self.fields[name.lexeme] = value

    def __repr__(self) -> str:
        return f"{self.klass.name} instance"
