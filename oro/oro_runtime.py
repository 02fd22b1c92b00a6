# oro_runtime.py

import inspect
import math
import os
import sys
import time
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional

import pystache

from oro import oro_regex, oro_serialize
from oro.oro_datatypes import NativeFunction, oro_native, require, type_name
from oro.oro_errors import (
    OroStaticError, OroLexicalError, OroSyntaxError, OroResolutionError,
    OroRuntimeError, Reporter, source_context,
)
from oro.oro_file import DocumentLib
from oro.oro_interpreter import Evaluator, is_number
from oro.oro_lexer import Lexer
from oro.oro_parser import Parser
from oro.oro_resolver import Resolver
from oro.oro_tokens import Token

# ===================================================================
# 1. Host binding
# ===================================================================


def oro_api_method(func):
    """A decorator to explicitly mark host methods as callable from Oro."""
    func._is_oro_api = True
    return func


class OroHost(ABC):
    """Base class for Python objects that expose methods to Oro scripts.

    Methods marked with `@oro_api_method` are bound as globals under their
    Python name each time a script runs.
    """

    def api_methods(self):
        for name, member in inspect.getmembers(self):
            if not callable(member) or name.startswith('_'):
                continue
            # Decorator may mark the bound method or the underlying function
            func = getattr(member, "__func__", member)
            if getattr(func, "_is_oro_api", False):
                yield name, member


def native_arity(fn: Callable) -> int:
    """Number of positional parameters a Python callable takes (bound `self` excluded)."""
    params = inspect.signature(fn).parameters.values()
    positional = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    return sum(1 for p in params if p.kind in positional)


def collect_natives(*sources) -> Dict[str, Callable]:
    """Gather every `@oro_native` member of the given objects or modules."""
    found: Dict[str, Callable] = {}
    for source in sources:
        for _, member in inspect.getmembers(source):
            name = getattr(member, "_oro_native_name", None)
            if name and callable(member):
                found[name] = member
    return found


# ===================================================================
# 2. Standard library
# ===================================================================


def _whole(value, func: str, position: int) -> int:
    require(value, "number", func, position)
    if not float(value).is_integer():
        raise OroRuntimeError(f"{func}() expects a whole number as argument {position}.")
    return int(value)


class StdLib:
    """Contains Python implementations for the core Oro built-ins."""

    def __init__(self, evaluator: Evaluator):
        self.evaluator = evaluator

    # --- Core ---

    @oro_native("clock")
    def clock(self):
        return time.time()

    @oro_native("type")
    def type_of(self, value):
        return type_name(value)

    @oro_native("toString")
    def to_string(self, value):
        return self.evaluator.stringify(value)

    @oro_native("toNumber")
    def to_number(self, value):
        if is_number(value):
            return float(value)
        require(value, "string", "toNumber")
        try:
            return float(value.strip())
        except ValueError:
            raise OroRuntimeError(f"Cannot convert '{value}' to a number.") from None

    # --- Strings ---

    @oro_native("toUpper")
    def to_upper(self, s):
        return require(s, "string", "toUpper").upper()

    @oro_native("toLower")
    def to_lower(self, s):
        return require(s, "string", "toLower").lower()

    @oro_native("trim")
    def trim(self, s):
        return require(s, "string", "trim").strip()

    @oro_native("substring")
    def substring(self, s, start, end):
        require(s, "string", "substring", 1)
        i = _whole(start, "substring", 2)
        j = _whole(end, "substring", 3)
        if i < 0 or j > len(s) or i > j:
            raise OroRuntimeError(f"substring() range {i}..{j} is out of bounds for length {len(s)}.")
        return s[i:j]

    @oro_native("replace")
    def replace(self, s, target, replacement):
        require(s, "string", "replace", 1)
        require(target, "string", "replace", 2)
        require(replacement, "string", "replace", 3)
        return s.replace(target, replacement)

    @oro_native("contains")
    def contains(self, s, sub):
        require(s, "string", "contains", 1)
        require(sub, "string", "contains", 2)
        return sub in s

    @oro_native("length")
    def length(self, value):
        if not isinstance(value, (str, list)):
            raise OroRuntimeError(f"length() expects a string or array, got {type_name(value)}.")
        return float(len(value))

    @oro_native("split")
    def split(self, s, separator):
        require(s, "string", "split", 1)
        require(separator, "string", "split", 2)
        if separator == "":
            return list(s)
        return s.split(separator)

    @oro_native("join")
    def join(self, items, separator):
        require(items, "array", "join", 1)
        require(separator, "string", "join", 2)
        return separator.join(self.evaluator.stringify(x) for x in items)

    @oro_native("render")
    def render(self, template, data):
        require(template, "string", "render", 1)
        require(data, "map", "render", 2)
        renderer = pystache.Renderer(escape=lambda u: u)
        return renderer.render(template, oro_serialize.to_builtin(data))

    # --- Math ---

    @oro_native("sqrt")
    def sqrt(self, n):
        require(n, "number", "sqrt")
        if n < 0:
            raise OroRuntimeError("Cannot calculate square root of a negative number.")
        return math.sqrt(n)

    @oro_native("abs")
    def absolute(self, n):
        return float(abs(require(n, "number", "abs")))

    @oro_native("floor")
    def floor(self, n):
        require(n, "number", "floor")
        if math.isinf(n) or math.isnan(n):
            return float(n)
        return float(math.floor(n))

    # --- Arrays and maps ---

    @oro_native("append")
    def append(self, items, value):
        require(items, "array", "append", 1).append(value)
        return None

    @oro_native("size")
    def size(self, items):
        if not isinstance(items, (list, dict)):
            raise OroRuntimeError(f"size() expects an array or map, got {type_name(items)}.")
        return float(len(items))

    @oro_native("remove")
    def remove(self, items, index):
        require(items, "array", "remove", 1)
        slot = _whole(index, "remove", 2)
        if slot < 0 or slot >= len(items):
            raise OroRuntimeError(f"Index out of bounds: {slot} (size {len(items)}).")
        return items.pop(slot)

    @oro_native("keys")
    def keys(self, mapping):
        return list(require(mapping, "map", "keys").keys())

    # --- Output ---

    @oro_native("printJSON")
    def print_json(self, value):
        text = oro_serialize.serialize(value, fmt='json', pretty=True)
        self.evaluator.side_effects.append({'topics': ['stdout'], 'message': text})
        return None


# ===================================================================
# 3. Script Execution
# ===================================================================

ErrorKind = Literal['lexical', 'syntax', 'resolution', 'runtime', 'internal']

# Each Oro call nests about six Python frames.
RECURSION_LIMIT = 10000

_STATIC_KINDS = {
    OroLexicalError: 'lexical',
    OroSyntaxError: 'syntax',
    OroResolutionError: 'resolution',
}


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error_token: Optional[Token] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """The full, location-aware error text; empty on success."""
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Scans, parses, resolves and executes Oro code.

    One runner is one session: globals and resolved bindings persist
    across `handle_script` calls, as they do in the REPL.
    """

    def __init__(self, host_object: Optional[OroHost] = None, load_stdlib: bool = True,
                 source_dir: Optional[str] = None):
        self.host_object = host_object
        self.source_dir = source_dir
        self.evaluator = Evaluator()  # Each runner has its own evaluator/side_effects
        self.reporter = Reporter(side_effects=self.evaluator.side_effects)
        self._natives: Dict[str, NativeFunction] = {}
        self._host_api_names: set = set()
        if sys.getrecursionlimit() < RECURSION_LIMIT:
            sys.setrecursionlimit(RECURSION_LIMIT)

        if load_stdlib:
            stdlib = StdLib(self.evaluator)
            documents = DocumentLib(self.evaluator)
            for name, fn in collect_natives(stdlib, oro_regex, oro_serialize, documents).items():
                self.register_native(name, fn)

    def register_native(self, name: str, fn: Callable, arity: Optional[int] = None) -> NativeFunction:
        """Bind a Python callable as a global Oro function."""
        native = NativeFunction(name, native_arity(fn) if arity is None else arity, fn)
        self._natives[name] = native
        self.evaluator.globals.define(name, native)
        return native

    def _bind_host_api_methods(self):
        """Bind @oro_api_method methods of the host into the globals."""
        globals_ = self.evaluator.globals
        # Remove previously bound host names, restoring any native they shadowed.
        for name in self._host_api_names:
            globals_.values.pop(name, None)
            if name in self._natives:
                globals_.define(name, self._natives[name])
        self._host_api_names = set()

        host = self.host_object
        if not host:
            return
        for name, member in host.api_methods():
            globals_.define(name, NativeFunction(name, native_arity(member), member))
            self._host_api_names.add(name)

    # --- Pipeline ---

    def compile(self, source_code: str):
        """Run the static phases; raises an `OroStaticError` subclass on any diagnostic."""
        reporter = self.reporter
        reporter.reset(source_code)

        tokens = Lexer(source_code, reporter).scan_tokens()
        lexical_errors = reporter.had_error
        statements = Parser(tokens, reporter).parse()
        if reporter.had_error:
            if lexical_errors:
                raise OroLexicalError(reporter.diagnostics)
            raise OroSyntaxError(reporter.diagnostics)

        Resolver(self.evaluator.locals, reporter).resolve(statements)
        if reporter.had_error:
            raise OroResolutionError(reporter.diagnostics)
        return statements

    def _format_runtime_error(self, e: OroRuntimeError, source: str) -> str:
        msg = f"{e.kind}: {e.message}"
        token = e.token
        if token is not None:
            msg = f"{msg}\n[line {token.line}]"
            context = source_context(source, token.line, token.column)
            if context:
                msg = f"{msg}\n{context}"
        st = self._format_stacktrace()
        if st:
            msg += "\n" + st
        return msg

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        stringify = self.evaluator.stringify

        def fmt(arg):
            match arg:
                case str():
                    return f'"{arg}"'
                case list():
                    return f"[{len(arg)} items]"
                case dict():
                    return "{...}"
                case _:
                    return stringify(arg)

        frames = []
        for frame in stack:
            args_s = " ".join(fmt(a) for a in frame.get('args') or [])
            frames.append(f"({frame['name']} {args_s})" if args_s else f"({frame['name']})")
        return "Oro stacktrace: " + " ".join(frames)

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        ev = self.evaluator
        # Clear per-run state; globals and resolved locals persist.
        ev.side_effects.clear()
        ev.call_stack.clear()
        ev.host_object = self.host_object
        ev.source_dir = self.source_dir or os.getcwd()
        self._bind_host_api_methods()

        # 1. Scan, parse and resolve
        try:
            statements = self.compile(source_code)
        except OroStaticError as e:
            return ExecutionResult(
                status='error',
                error_message=str(e),
                error_kind=_STATIC_KINDS.get(type(e), 'syntax'),
                side_effects=list(ev.side_effects),
            )

        # 2. Evaluate
        try:
            value = ev.interpret(statements)
        except OroRuntimeError as e:
            err_msg = self._format_runtime_error(e, source_code)
            ev.side_effects.append({'topics': ['stderr'], 'message': err_msg})
            return ExecutionResult(
                status='error',
                error_message=err_msg,
                error_kind='runtime',
                error_token=e.token,
                side_effects=list(ev.side_effects),
            )
        except Exception as e:
            err_msg = f"InternalError: {e}"
            st = self._format_stacktrace()
            if st:
                err_msg += "\n" + st
            ev._dbg("internal error", type(e).__name__, repr(e))
            ev.side_effects.append({'topics': ['stderr'], 'message': err_msg})
            return ExecutionResult(status='error', error_message=err_msg, error_kind='internal',
                                   side_effects=list(ev.side_effects))

        return ExecutionResult(status='success', value=value, side_effects=list(ev.side_effects))
