import pytest

from oro.oro_errors import OroRuntimeError, source_context
from oro.oro_runtime import ScriptRunner


def run_oro(source, runner=None):
    runner = runner or ScriptRunner()
    return runner.handle_script(source)


def stderr(res):
    return [e['message'] for e in res.side_effects if e.get('topics') == ['stderr']]


def test_runtime_error_format_with_line_and_caret():
    res = run_oro('def x = 1;\nprint x + "a";')
    assert res.status == "error"
    assert res.error_kind == "runtime"
    assert res.error_message == (
        "RuntimeError: Operands must be two numbers or two strings.\n"
        "[line 2]\n"
        '2 | print x + "a";\n'
        "  |         ^--"
    )
    assert (res.error_token.line, res.error_token.column) == (2, 9)
    assert res.format_error() == res.error_message


def test_runtime_error_is_mirrored_to_stderr():
    res = run_oro('print "before"; 1 / 0;')
    assert stderr(res) == [res.error_message]
    out = [e['message'] for e in res.side_effects if e['topics'] == ['stdout']]
    # Output produced before the failure is kept.
    assert out == ["before"]


def test_stacktrace_lists_active_calls_with_arguments():
    src = """
fun inner(s) { return s + 1; }
fun outer(n, items) { return inner("x"); }
outer(3, [1, 2]);
"""
    res = run_oro(src)
    assert res.status == "error"
    last = res.error_message.splitlines()[-1]
    assert last == 'Oro stacktrace: (outer 3 [2 items]) (inner "x")'


def test_top_level_error_has_no_stacktrace():
    res = run_oro("-null;")
    assert "Oro stacktrace" not in res.error_message
    assert res.error_message.startswith("RuntimeError: Operand must be a number.")


def test_call_stack_is_cleared_between_runs():
    runner = ScriptRunner()
    run_oro("fun f(n) { return n / 0; } f(2);", runner)
    assert runner.evaluator.call_stack == [{'name': 'f', 'args': [2.0]}]
    res = run_oro("-null;", runner)
    assert "Oro stacktrace" not in res.error_message


@pytest.mark.parametrize("source, kind, fragment", [
    ("def x = @;", "lexical", "Error: Unexpected character."),
    ("print ;", "syntax", "Error at ';': Expect expression."),
    ("return 1;", "resolution", "Error at 'return': Can't return from top-level code."),
    ('print f"{}";', "syntax", "Empty expression in f-string."),
])
def test_static_error_kinds(source, kind, fragment):
    res = run_oro(source)
    assert res.status == "error"
    assert res.error_kind == kind
    assert fragment in res.error_message
    assert res.error_token is None
    assert "\n".join(stderr(res)) == res.error_message


def test_static_errors_block_execution():
    res = run_oro('print "ran"; print ;')
    assert res.status == "error"
    assert not [e for e in res.side_effects if e['topics'] == ['stdout']]


def test_resolution_errors_block_execution():
    res = run_oro('print "ran"; print self;')
    assert res.error_kind == "resolution"
    assert not [e for e in res.side_effects if e['topics'] == ['stdout']]


def test_all_static_diagnostics_are_reported():
    res = run_oro("def = 1;\nprint ;")
    assert res.error_message.count("Error") == 2
    assert "[line 1, column 5]" in res.error_message
    assert "[line 2, column 7]" in res.error_message


def test_error_at_end_of_input_points_past_last_token():
    res = run_oro("print 1")
    assert res.error_message == (
        "[line 1, column 8] Error at end: Expect ';' after value.\n"
        "1 | print 1\n"
        "  |        ^--"
    )


def test_unexpected_python_error_becomes_internal_error():
    runner = ScriptRunner()

    def boom():
        raise KeyError("broken")

    runner.register_native("boom", boom)
    res = runner.handle_script("fun f() { return boom(); } f();")
    assert res.status == "error"
    assert res.error_kind == "internal"
    assert res.error_message.startswith("InternalError: 'broken'")
    assert "Oro stacktrace: (f) (boom)" in res.error_message


def test_format_error_is_empty_on_success():
    res = run_oro("1;")
    assert res.format_error() == ""


def test_runtime_error_accepts_message_only():
    err = OroRuntimeError("plain message")
    assert err.token is None
    assert err.message == "plain message"
    assert str(err) == "plain message"


def test_source_context_radius_and_padding():
    src = "\n".join(f"line{i}" for i in range(1, 12))
    text = source_context(src, 10, 3, radius=1)
    assert text.splitlines() == [
        " 9 | line9",
        "10 | line10",
        "   |   ^--",
        "11 | line11",
    ]


def test_source_context_past_last_line_omits_caret():
    assert source_context("a\nb", 3, 1) == "2 | b"
