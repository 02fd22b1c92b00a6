import pytest

from oro.oro_ast import (
    Literal, Binary, Logical, Unary, Variable, Assign, Call, Get, Set, Self, Super,
    ArrayLiteral, Index, IndexAssign, InterpolatedString, ExpressionStmt, PrintStmt,
    VarDecl, Block, IfStmt, WhileStmt, FunctionDecl, ReturnStmt, ClassDecl, Grouping,
)
from oro.oro_errors import Reporter
from oro.oro_lexer import Lexer
from oro.oro_parser import Parser


def parse(source):
    reporter = Reporter(source)
    tokens = Lexer(source, reporter).scan_tokens()
    statements = Parser(tokens, reporter).parse()
    return statements, reporter


def parse_ok(source):
    statements, reporter = parse(source)
    assert not reporter.had_error, reporter.format()
    return statements


def expr_of(source):
    (stmt,) = parse_ok(source)
    assert isinstance(stmt, ExpressionStmt)
    return stmt.expression


# --- Declarations ---

def test_variable_declaration_with_and_without_initializer():
    a, b = parse_ok("def a = 1; def b;")
    assert isinstance(a, VarDecl) and a.name.lexeme == "a"
    assert isinstance(a.initializer, Literal) and a.initializer.value == 1.0
    assert isinstance(b, VarDecl) and b.initializer is None


def test_fun_declaration():
    (fn,) = parse_ok("fun add(a, b) { return a + b; }")
    assert isinstance(fn, FunctionDecl)
    assert fn.name.lexeme == "add"
    assert [p.lexeme for p in fn.params] == ["a", "b"]
    assert isinstance(fn.body[0], ReturnStmt)


def test_def_with_parameter_list_declares_a_function():
    (fn,) = parse_ok("def make() { def x = 1; return x; }")
    assert isinstance(fn, FunctionDecl)
    assert fn.name.lexeme == "make"
    assert fn.params == []
    assert isinstance(fn.body[0], VarDecl)


def test_class_declaration_with_superclass_and_optional_fun_prefix():
    (cls,) = parse_ok("class B extends A { fun m() {} B(x) { self.x = x; } }")
    assert isinstance(cls, ClassDecl)
    assert cls.name.lexeme == "B"
    assert isinstance(cls.superclass, Variable) and cls.superclass.name.lexeme == "A"
    assert [m.name.lexeme for m in cls.methods] == ["m", "B"]
    body = cls.methods[1].body[0]
    assert isinstance(body, ExpressionStmt) and isinstance(body.expression, Set)
    assert isinstance(body.expression.object, Self)


# --- Statements ---

def test_if_then_else():
    (stmt,) = parse_ok("if x then print 1; else print 2;")
    assert isinstance(stmt, IfStmt)
    assert isinstance(stmt.then_branch, PrintStmt)
    assert isinstance(stmt.else_branch, PrintStmt)


def test_if_with_block_branch():
    (stmt,) = parse_ok("if x { print 1; print 2; }")
    assert isinstance(stmt.then_branch, Block)
    assert len(stmt.then_branch.statements) == 2
    assert stmt.else_branch is None


def test_if_requires_then_or_block():
    _, reporter = parse("if x print 1;")
    assert "Expect 'then' or '{' after if condition." in reporter.format()


def test_while_with_then_and_block():
    first, second = parse_ok("while x then x = x - 1; while y { y = false; }")
    assert isinstance(first, WhileStmt) and isinstance(first.body, ExpressionStmt)
    assert isinstance(second, WhileStmt) and isinstance(second.body, Block)


def test_for_loop_is_desugared_into_block_and_while():
    (stmt,) = parse_ok("for (def i = 0; i < 3; i = i + 1) print i;")
    assert isinstance(stmt, Block)
    init, loop = stmt.statements
    assert isinstance(init, VarDecl)
    assert isinstance(loop, WhileStmt)
    assert isinstance(loop.condition, Binary)
    body, increment = loop.body.statements
    assert isinstance(body, PrintStmt)
    assert isinstance(increment.expression, Assign)


def test_for_loop_without_clauses_loops_on_true():
    (stmt,) = parse_ok("for (;;) print 1;")
    assert isinstance(stmt, WhileStmt)
    assert isinstance(stmt.condition, Literal) and stmt.condition.value is True


def test_return_without_value():
    (fn,) = parse_ok("fun f() { return; }")
    assert fn.body[0].value is None


def test_missing_semicolon_after_print():
    _, reporter = parse("print 1")
    assert "Error at end: Expect ';' after value." in reporter.format()


# --- Expressions ---

def test_multiplication_binds_tighter_than_addition():
    expr = expr_of("1 + 2 * 3;")
    assert isinstance(expr, Binary) and expr.operator.lexeme == "+"
    assert isinstance(expr.right, Binary) and expr.right.operator.lexeme == "*"


def test_comparison_binds_tighter_than_equality():
    expr = expr_of("a < b == c > d;")
    assert expr.operator.lexeme == "=="
    assert expr.left.operator.lexeme == "<"
    assert expr.right.operator.lexeme == ">"


def test_and_binds_tighter_than_or():
    expr = expr_of("a or b and c;")
    assert isinstance(expr, Logical) and expr.operator.lexeme == "or"
    assert isinstance(expr.right, Logical) and expr.right.operator.lexeme == "and"


def test_unary_and_grouping():
    expr = expr_of("-(1 + 2);")
    assert isinstance(expr, Unary)
    assert isinstance(expr.right, Grouping)


def test_assignment_is_right_associative():
    expr = expr_of("a = b = 1;")
    assert isinstance(expr, Assign) and isinstance(expr.value, Assign)


def test_property_and_index_assignment_targets():
    set_expr = expr_of("a.b = 1;")
    assert isinstance(set_expr, Set) and set_expr.name.lexeme == "b"
    idx = expr_of("a[0] = 5;")
    assert isinstance(idx, IndexAssign)
    assert isinstance(idx.object, Variable) and idx.index.value == 0.0


def test_invalid_assignment_target_is_reported():
    statements, reporter = parse("1 = 2;")
    assert reporter.diagnostics == [
        "[line 1, column 3] Error at '=': Invalid assignment target.\n1 | 1 = 2;\n  |   ^--"
    ]
    # The parser is not left confused.
    assert len(statements) == 1


def test_call_chains():
    expr = expr_of("a.b(1)[2].c;")
    assert isinstance(expr, Get) and expr.name.lexeme == "c"
    assert isinstance(expr.object, Index)
    assert isinstance(expr.object.object, Call)
    assert isinstance(expr.object.object.callee, Get)


def test_array_literal():
    expr = expr_of("[1, 'two', [3]];")
    assert isinstance(expr, ArrayLiteral)
    assert len(expr.elements) == 3
    assert isinstance(expr.elements[2], ArrayLiteral)


def test_empty_array_literal():
    expr = expr_of("[];")
    assert isinstance(expr, ArrayLiteral) and expr.elements == []


def test_super_method_reference():
    (cls,) = parse_ok("class B extends A { m() { return super.m(1); } }")
    call = cls.methods[0].body[0].value
    assert isinstance(call, Call)
    assert isinstance(call.callee, Super) and call.callee.method.lexeme == "m"


def test_super_requires_dot():
    _, reporter = parse("super;")
    assert "Expect '.' after 'super'." in reporter.format()


def test_too_many_arguments():
    args = ", ".join("1" for _ in range(256))
    _, reporter = parse(f"f({args});")
    assert "Can't have more than 255 arguments." in reporter.format()


def test_too_many_parameters():
    params = ", ".join(f"p{i}" for i in range(256))
    _, reporter = parse(f"fun f({params}) {{}}")
    assert "Can't have more than 255 parameters." in reporter.format()


# --- Interpolated strings ---

def test_fstring_parts_alternate_text_and_expressions():
    (stmt,) = parse_ok('print f"x={x + 1}!";')
    fstr = stmt.expression
    assert isinstance(fstr, InterpolatedString)
    first, middle, last = fstr.parts
    assert isinstance(first, Literal) and first.value == "x="
    assert isinstance(middle, Binary)
    assert isinstance(last, Literal) and last.value == "!"


def test_fstring_without_expressions_is_single_literal():
    fstr = expr_of('f"plain";')
    assert len(fstr.parts) == 1 and fstr.parts[0].value == "plain"


def test_fstring_escapes():
    fstr = expr_of('f"a \\"q\\" \\{b\\}";')
    assert fstr.parts[0].value == 'a "q" {b}'


def test_fstring_embedded_expression_tokens_keep_source_positions():
    fstr = expr_of('f"ab{name}";')
    variable = fstr.parts[1]
    assert isinstance(variable, Variable)
    assert (variable.name.line, variable.name.column) == (1, 6)


def test_fstring_embedded_syntax_error():
    _, reporter = parse('print f"{1 +}";')
    assert "Error at end: Expect expression." in reporter.format()


def test_fstring_empty_expression():
    _, reporter = parse('print f"{}";')
    assert "Empty expression in f-string." in reporter.format()


def test_fstring_trailing_tokens_in_expression():
    _, reporter = parse('print f"{a b}";')
    assert "Expect '}' after f-string expression." in reporter.format()


# --- Recovery ---

def test_panic_mode_recovery_collects_several_errors():
    statements, reporter = parse("def = 1; print 2; def y = ;")
    assert len(reporter.diagnostics) == 2
    assert "Expect variable name." in reporter.diagnostics[0]
    assert "Expect expression." in reporter.diagnostics[1]
    assert len(statements) == 1 and isinstance(statements[0], PrintStmt)


def test_recovery_stops_before_statement_keyword():
    statements, reporter = parse("def x = = 1 class A {}")
    assert len(reporter.diagnostics) == 1
    assert [type(s) for s in statements] == [ClassDecl]


def test_recovery_resumes_after_semicolon():
    statements, reporter = parse("def x = (1; fun f() {}")
    assert "Expect ')' after expression." in reporter.format()
    assert [type(s) for s in statements] == [FunctionDecl]


@pytest.mark.parametrize("source, message", [
    ("class {}", "Expect class name."),
    ("class A extends {}", "Expect superclass name."),
    ("class A ", "Expect '{' before class body."),
    ("fun (a) {}", "Expect function name."),
    ("fun f(a {}", "Expect ')' after parameters."),
    ("fun f() print 1;", "Expect '{' before function body."),
    ("{ print 1;", "Expect '}' after block."),
    ("a.1;", "Expect property name after '.'."),
    ("a[1;", "Expect ']' after index."),
    ("f(1;", "Expect ')' after arguments."),
    ("[1, 2;", "Expect ']' after array elements."),
    ("(1;", "Expect ')' after expression."),
])
def test_syntax_error_messages(source, message):
    _, reporter = parse(source)
    assert message in reporter.format()
