"""
Formatting for Oro values and syntax trees.

`Printer.stringify` is what `print`, string interpolation and `toString`
use; `Printer.pformat` renders an AST back into readable Oro source, which
is handy when debugging the parser.
"""
import collections.abc

from oro.oro_ast import (
    Literal, Grouping, Unary, Binary, Logical, Variable, Assign, Call,
    Get, Set, Self, Super, ArrayLiteral, Index, IndexAssign, InterpolatedString,
    ExpressionStmt, PrintStmt, VarDecl, Block, IfStmt, WhileStmt, FunctionDecl,
    ReturnStmt, ClassDecl,
)
from oro.oro_datatypes import NativeFunction, OroFunction, OroClass, OroInstance


def format_number(value: float) -> str:
    """Integral floats print without their trailing `.0`."""
    if value != value:
        return "NaN"
    if value in (float("inf"), float("-inf")):
        return "Infinity" if value > 0 else "-Infinity"
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text


class Printer:
    """Formats Oro values and AST nodes into strings."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        # ids of the containers currently being rendered
        self._active = set()
        self._value_handlers = self._create_value_handlers()
        self._node_handlers = self._create_node_handlers()

    # =================================================================
    # Values
    # =================================================================

    def stringify(self, obj) -> str:
        """Public entry point to render a runtime value."""
        handler = self._value_handlers.get(type(obj))
        if handler is not None:
            return handler(obj)
        if isinstance(obj, collections.abc.Mapping):
            return self._str_map(obj)
        if isinstance(obj, list):
            return self._str_list(obj)
        return str(obj)

    def _create_value_handlers(self):
        return {
            type(None): lambda o: "null",
            bool: lambda o: "true" if o else "false",
            int: lambda o: format_number(float(o)),
            float: format_number,
            str: lambda o: o,
            list: self._str_list,
            dict: self._str_map,
            NativeFunction: lambda o: f"<native fn {o.name}>",
            OroFunction: lambda o: f"<fn {o.name}>",
            OroClass: lambda o: o.name,
            OroInstance: lambda o: f"{o.klass.name} instance",
        }

    def _str_list(self, obj) -> str:
        return self._str_container(obj, "[...]", lambda: "[" + ", ".join(self.stringify(x) for x in obj) + "]")

    def _str_map(self, obj) -> str:
        def render():
            items = (f"{self.stringify(k)}: {self.stringify(v)}" for k, v in obj.items())
            return "{" + ", ".join(items) + "}"
        return self._str_container(obj, "{...}", render)

    def _str_container(self, obj, placeholder: str, render) -> str:
        """Render `obj` once; a container nested inside itself prints as `placeholder`."""
        if id(obj) in self._active:
            return placeholder
        self._active.add(id(obj))
        try:
            return render()
        finally:
            self._active.discard(id(obj))

    # =================================================================
    # Syntax trees
    # =================================================================

    def pformat(self, node, level=0) -> str:
        """Render a statement list, statement or expression as Oro source."""
        if isinstance(node, list):
            return "\n".join(self.pformat(stmt, level) for stmt in node)
        handler = self._node_handlers.get(type(node))
        if handler is None:
            return repr(node)
        return handler(node, level)

    def _create_node_handlers(self):
        return {
            Literal: self._pformat_literal,
            Grouping: lambda n, l: f"({self.pformat(n.expression, l)})",
            Unary: lambda n, l: f"{n.operator.lexeme}{self.pformat(n.right, l)}",
            Binary: self._pformat_binary,
            Logical: self._pformat_binary,
            Variable: lambda n, l: n.name.lexeme,
            Assign: lambda n, l: f"{n.name.lexeme} = {self.pformat(n.value, l)}",
            Call: self._pformat_call,
            Get: lambda n, l: f"{self.pformat(n.object, l)}.{n.name.lexeme}",
            Set: lambda n, l: f"{self.pformat(n.object, l)}.{n.name.lexeme} = {self.pformat(n.value, l)}",
            Self: lambda n, l: "self",
            Super: lambda n, l: f"super.{n.method.lexeme}",
            ArrayLiteral: lambda n, l: "[" + ", ".join(self.pformat(e, l) for e in n.elements) + "]",
            Index: lambda n, l: f"{self.pformat(n.object, l)}[{self.pformat(n.index, l)}]",
            IndexAssign: self._pformat_index_assign,
            InterpolatedString: self._pformat_fstring,
            ExpressionStmt: lambda n, l: self._indent(l) + self.pformat(n.expression, l) + ";",
            PrintStmt: lambda n, l: self._indent(l) + "print " + self.pformat(n.expression, l) + ";",
            VarDecl: self._pformat_var,
            Block: self._pformat_block,
            IfStmt: self._pformat_if,
            WhileStmt: self._pformat_while,
            FunctionDecl: self._pformat_function,
            ReturnStmt: self._pformat_return,
            ClassDecl: self._pformat_class,
        }

    def _indent(self, level) -> str:
        return self._indent_char * level

    def _pformat_literal(self, node, level):
        if isinstance(node.value, str):
            return f'"{node.value}"'
        return self.stringify(node.value)

    def _pformat_binary(self, node, level):
        return f"{self.pformat(node.left, level)} {node.operator.lexeme} {self.pformat(node.right, level)}"

    def _pformat_call(self, node, level):
        args = ", ".join(self.pformat(a, level) for a in node.arguments)
        return f"{self.pformat(node.callee, level)}({args})"

    def _pformat_index_assign(self, node, level):
        target = f"{self.pformat(node.object, level)}[{self.pformat(node.index, level)}]"
        return f"{target} = {self.pformat(node.value, level)}"

    def _pformat_fstring(self, node, level):
        out = []
        for part in node.parts:
            if isinstance(part, Literal) and isinstance(part.value, str):
                text = part.value
                for ch in '"{}':
                    text = text.replace(ch, '\\' + ch)
                out.append(text)
            else:
                out.append("{" + self.pformat(part, level) + "}")
        return 'f"' + "".join(out) + '"'

    def _pformat_var(self, node, level):
        if node.initializer is None:
            return f"{self._indent(level)}def {node.name.lexeme};"
        return f"{self._indent(level)}def {node.name.lexeme} = {self.pformat(node.initializer, level)};"

    def _pformat_body(self, statements, level) -> str:
        """Format a brace-delimited body whose opening brace is already on the current line."""
        if not statements:
            return "{}"
        lines = [self.pformat(stmt, level + 1) for stmt in statements]
        return "{\n" + "\n".join(lines) + f"\n{self._indent(level)}}}"

    def _pformat_block(self, node, level):
        return self._indent(level) + self._pformat_body(node.statements, level)

    def _pformat_branch(self, stmt, level) -> str:
        if isinstance(stmt, Block):
            return self._pformat_body(stmt.statements, level)
        return "then " + self.pformat(stmt, level).lstrip()

    def _pformat_if(self, node, level):
        text = f"{self._indent(level)}if {self.pformat(node.condition, level)} {self._pformat_branch(node.then_branch, level)}"
        if node.else_branch is not None:
            text += " else " + self.pformat(node.else_branch, level).lstrip()
        return text

    def _pformat_while(self, node, level):
        return f"{self._indent(level)}while {self.pformat(node.condition, level)} {self._pformat_branch(node.body, level)}"

    def _pformat_function(self, node, level, keyword="fun "):
        params = ", ".join(p.lexeme for p in node.params)
        return f"{self._indent(level)}{keyword}{node.name.lexeme}({params}) {self._pformat_body(node.body, level)}"

    def _pformat_return(self, node, level):
        if node.value is None:
            return f"{self._indent(level)}return;"
        return f"{self._indent(level)}return {self.pformat(node.value, level)};"

    def _pformat_class(self, node, level):
        header = f"{self._indent(level)}class {node.name.lexeme}"
        if node.superclass is not None:
            header += f" extends {node.superclass.name.lexeme}"
        if not node.methods:
            return header + " {}"
        methods = [self._pformat_function(m, level + 1, keyword="") for m in node.methods]
        return header + " {\n" + "\n".join(methods) + f"\n{self._indent(level)}}}"
