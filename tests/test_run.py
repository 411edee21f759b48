"""
Tests for the top-level run() API and diagnostic rendering.
"""

import json

from termcolor import colored

from tram import (
    run, Interpreter, ExecutionResult, LexerError, ParserError, EvalError,
    RuntimeErrorKind, render_diagnostic,
)
from tram.errors import render_internal_error


class TestRun:
    """Test the one-call API."""

    def test_success(self):
        result = run("1 + 2")
        assert isinstance(result, ExecutionResult)
        assert result.success
        assert result.value.data == 3
        assert result.diagnostic is None
        assert result.error_message is None

    def test_factorial(self):
        result = run("""
            fn fact(n) if n <= 1 then 1 else n * fact(n - 1)
            fact(5)
        """)
        assert result.success
        assert result.value.data == 120

    def test_lex_error_reported(self):
        result = run('"unterminated')
        assert not result.success
        assert isinstance(result.error, LexerError)
        assert result.diagnostic.code == "E002"

    def test_parse_error_reported(self):
        result = run("let = 3")
        assert not result.success
        assert isinstance(result.error, ParserError)

    def test_eval_error_reported(self):
        result = run("undeclared")
        assert not result.success
        assert isinstance(result.error, EvalError)
        assert result.error.kind == RuntimeErrorKind.UNDEFINED_VARIABLE
        assert result.diagnostic.code == "E402"

    def test_no_partial_execution_on_parse_error(self, capsys):
        """A syntax error anywhere stops the program before it starts."""
        result = run('print("side effect")\nlet = 1')
        assert not result.success
        assert capsys.readouterr().out == ""

    def test_deep_nesting_reported(self):
        """Pathologically nested source fails cleanly instead of raising."""
        for source in ["(" * 1000 + "1" + ")" * 1000, "-" * 3000 + "1"]:
            result = run(source)
            assert not result.success
            assert isinstance(result.error, ParserError)
            assert result.diagnostic.code == "E104"
            assert "nested too deeply" in result.error_message

    def test_oversized_integer_reported(self):
        result = run("str(10 ** 5000)")
        assert not result.success
        assert result.error.kind == RuntimeErrorKind.DOMAIN_ERROR
        assert result.error_message.startswith("1:5: error[E407]")

    def test_shared_interpreter(self):
        interp = Interpreter()
        assert run("let n = 4", interpreter=interp).success
        assert run("n * n", interpreter=interp).value.data == 16

    def test_filename_in_message(self):
        result = run("1 / 0", filename="calc.tram")
        assert result.error_message.startswith("calc.tram:1:1: error[E403]: division by zero")

    def test_error_message_has_caret(self):
        result = run("let x = 1\nx + nope")
        lines = result.error_message.splitlines()
        assert lines[0] == "2:5: error[E402]: undefined variable 'nope'"
        assert "  2 | x + nope" in lines
        assert "    |     ^^^^" in lines


class TestDiagnostics:
    """Test diagnostic formatting."""

    def test_to_json(self):
        diag = run("1 +\n").diagnostic
        data = diag.to_json()
        assert data["code"] == "E102"
        assert data["severity"] == "error"
        assert data["range"]["start"]["line"] == 2
        json.dumps(data)

    def test_render_without_color(self):
        diag = run("1 / 0").diagnostic
        text = render_diagnostic(diag, color=False)
        assert text.splitlines()[0] == "1:1: error[E403]: division by zero"
        assert "\x1b[" not in text

    def test_render_with_color(self):
        """The label and caret line are bold red."""
        diag = run("1 / 0").diagnostic
        text = render_diagnostic(diag, color=True)
        assert colored("error[E403]: ", "red", attrs=["bold"], force_color=True) in text
        assert colored("    | ^^^^^", "red", attrs=["bold"], force_color=True) in text
        assert "division by zero" in text

    def test_hints_rendered(self):
        diag = run("ghost").diagnostic
        assert "= hint: declare it first with 'let ghost = ...'" in render_diagnostic(diag, False)

    def test_internal_error(self):
        text = render_internal_error(ValueError("bad"), color=False)
        assert text == "[internal] error: ValueError: bad"

    def test_runtime_error_kind_titles(self):
        assert RuntimeErrorKind.DIVISION_BY_ZERO.title == "DivisionByZero"
        assert RuntimeErrorKind.STACK_OVERFLOW.code == "E406"
