import pytest

from oro.oro_datatypes import (
    Environment, NativeFunction, OroClass, OroFunction, OroInstance, Return,
    is_return, unwrap_return, type_name, require,
)
from oro.oro_errors import OroRuntimeError
from oro.oro_interpreter import Evaluator
from oro.oro_lexer import Lexer
from oro.oro_parser import Parser
from oro.oro_resolver import Resolver
from oro.oro_tokens import Token, TokenType


def ident(name):
    return Token(TokenType.IDENTIFIER, name, None, 1, 1)


# --- Environment ---

def test_define_and_get():
    env = Environment()
    env.define("a", 1.0)
    assert env.get(ident("a")) == 1.0
    assert "a" in env.values


def test_get_searches_enclosing_scopes():
    outer = Environment()
    outer.define("a", "outer")
    inner = Environment(outer)
    assert inner.get(ident("a")) == "outer"


def test_define_shadows_without_touching_outer():
    outer = Environment()
    outer.define("a", 1.0)
    inner = Environment(outer)
    inner.define("a", 2.0)
    assert inner.get(ident("a")) == 2.0
    assert outer.get(ident("a")) == 1.0


def test_assign_mutates_declaring_scope():
    outer = Environment()
    outer.define("a", 1.0)
    inner = Environment(outer)
    inner.assign(ident("a"), 5.0)
    assert outer.values["a"] == 5.0
    assert "a" not in inner.values


def test_undefined_variable_errors():
    env = Environment()
    with pytest.raises(OroRuntimeError) as exc:
        env.get(ident("missing"))
    assert exc.value.message == "Undefined variable 'missing'."
    assert exc.value.token.lexeme == "missing"
    with pytest.raises(OroRuntimeError):
        env.assign(ident("missing"), 1.0)


def test_get_at_and_assign_at_walk_exact_distance():
    g = Environment()
    g.define("x", "global")
    mid = Environment(g)
    mid.define("x", "mid")
    leaf = Environment(mid)
    assert leaf.ancestor(2) is g
    assert leaf.get_at(1, "x") == "mid"
    assert leaf.get_at(2, "x") == "global"
    leaf.assign_at(2, ident("x"), "changed")
    assert g.values["x"] == "changed"
    assert mid.values["x"] == "mid"


# --- Return outcome ---

def test_return_helpers():
    r = Return(3.0)
    assert is_return(r)
    assert unwrap_return(r) == 3.0
    assert not is_return(3.0)
    assert unwrap_return(3.0) == 3.0


# --- Callables ---

def test_native_function_contract():
    fn = NativeFunction("double", 1, lambda x: x * 2)
    assert fn.name == "double"
    assert fn.arity() == 1
    assert fn.call(None, [2.0]) == 4.0
    assert repr(fn) == "<native fn double>"


def _declare(source):
    return Parser(Lexer(source).scan_tokens()).parse()


def test_user_function_calls_in_child_of_closure():
    statements = _declare("fun f(a) { return a + x; }")
    ev = Evaluator()
    Resolver(ev.locals).resolve(statements)
    ev.globals.define("x", 10.0)
    fn = OroFunction(statements[0], ev.globals)
    assert fn.arity() == 1
    assert fn.call(ev, [1.0]) == 11.0
    # The call scope was discarded; the closure itself is untouched.
    assert "a" not in ev.globals.values
    assert ev.environment is ev.globals


def test_bind_defines_self_in_fresh_scope():
    (cls,) = _declare("class A { m() { return self; } }")
    closure = Environment()
    method = OroFunction(cls.methods[0], closure)
    klass = OroClass("A", None, {"m": method})
    instance = OroInstance(klass)
    bound = method.bind(instance)
    assert bound.declaration is method.declaration
    assert bound.closure.enclosing is closure
    assert bound.closure.values["self"] is instance
    assert "self" not in closure.values


def test_find_method_walks_superclass_chain():
    (cls,) = _declare("class A { m() { return 1; } n() { return 2; } }")
    m, n = (OroFunction(d, Environment()) for d in cls.methods)
    base = OroClass("A", None, {"m": m, "n": n})
    (sub_decl,) = _declare("class B extends A { m() { return 3; } }")
    sub_m = OroFunction(sub_decl.methods[0], Environment())
    sub = OroClass("B", base, {"m": sub_m})
    assert sub.find_method("m") is sub_m
    assert sub.find_method("n") is n
    assert sub.find_method("missing") is None


def test_class_arity_comes_from_constructor():
    (cls,) = _declare("class P { P(x, y) {} }")
    ctor = OroFunction(cls.methods[0], Environment(), True)
    assert OroClass("P", None, {"P": ctor}).arity() == 2
    assert OroClass("Q", None, {}).arity() == 0


def test_instance_fields_shadow_methods():
    (cls,) = _declare("class A { m() { return 1; } }")
    klass = OroClass("A", None, {"m": OroFunction(cls.methods[0], Environment())})
    obj = OroInstance(klass)
    assert isinstance(obj.get(ident("m")), OroFunction)
    obj.set(ident("m"), "field")
    assert obj.get(ident("m")) == "field"
    with pytest.raises(OroRuntimeError) as exc:
        obj.get(ident("nope"))
    assert exc.value.message == "Undefined property 'nope'."
    assert repr(obj) == "A instance"


# --- Type helpers ---

@pytest.mark.parametrize("value, expected", [
    (None, "null"), (True, "boolean"), (1.0, "number"), ("s", "string"),
    ([], "array"), ({}, "map"),
])
def test_type_name_for_plain_values(value, expected):
    assert type_name(value) == expected


def test_type_name_for_runtime_objects():
    klass = OroClass("Point", None, {})
    assert type_name(klass) == "class"
    assert type_name(OroInstance(klass)) == "Point"
    assert type_name(NativeFunction("f", 0, lambda: None)) == "function"


def test_require_rejects_booleans_as_numbers():
    assert require(2.0, "number", "f") == 2.0
    with pytest.raises(OroRuntimeError) as exc:
        require(True, "number", "sqrt")
    assert exc.value.message == "sqrt() expects a number as argument 1, got boolean."
    assert exc.value.token is None
