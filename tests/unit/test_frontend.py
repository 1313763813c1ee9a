"""Tests for assertions written as text."""

import ast

import pytest

from diagassert.assertions import AssertionFailedError
from diagassert.core.frontend import (
    INCOMPLETE_EXPRESSION,
    MISSING_COMMA,
    MISSING_CONDITION,
    AssertionSyntaxError,
    assertion_module,
    evaluate,
    parse_assertion,
)


# -----------------------------------------------------------------------------
# Tests for parse_assertion
# -----------------------------------------------------------------------------


class TestParseAssertion:
    def test_condition_only(self):
        parsed = parse_assertion("  x == 2  ")

        assert parsed.source_text == "x == 2"
        assert isinstance(parsed.expression, ast.Compare)
        assert parsed.message == ()

    def test_condition_with_format_message(self):
        parsed = parse_assertion("x != 1, 'x ({}) should not be 1', x")

        assert parsed.source_text == "x != 1"
        assert [ast.unparse(part) for part in parsed.message] == ["'x ({}) should not be 1'", "x"]

    def test_commas_inside_brackets_belong_to_condition(self):
        parsed = parse_assertion("f(a, b) == [1, 2], 'msg'")

        assert parsed.source_text == "f(a, b) == [1, 2]"
        assert len(parsed.message) == 1

    def test_to_assert(self):
        single = parse_assertion("ok, 'boom'").to_assert()
        several = parse_assertion("ok, '{}', 1").to_assert()

        assert isinstance(single.msg, ast.Constant)
        assert isinstance(several.msg, ast.Tuple)
        assert parse_assertion("ok").to_assert().msg is None


# -----------------------------------------------------------------------------
# Tests for syntax errors
# -----------------------------------------------------------------------------


class TestSyntaxErrors:
    @pytest.mark.parametrize("text", ["", "   ", ", 'message'"])
    def test_missing_condition(self, text):
        with pytest.raises(AssertionSyntaxError) as exc_info:
            parse_assertion(text)

        assert exc_info.value.msg == MISSING_CONDITION

    @pytest.mark.parametrize("text", ["x ==", "x and", "f(x", "a + (b", "x ==, 'message'"])
    def test_incomplete_expression(self, text):
        with pytest.raises(AssertionSyntaxError) as exc_info:
            parse_assertion(text)

        assert exc_info.value.msg == INCOMPLETE_EXPRESSION

    @pytest.mark.parametrize("text", ["x == 1 'message'", "x == 1 y", "ready() 'not ready'"])
    def test_missing_comma(self, text):
        with pytest.raises(AssertionSyntaxError) as exc_info:
            parse_assertion(text)

        assert exc_info.value.msg == MISSING_COMMA
        assert exc_info.value.lineno == 1

    def test_missing_comma_points_after_condition(self):
        with pytest.raises(AssertionSyntaxError) as exc_info:
            parse_assertion("x == 1 'message'")

        assert exc_info.value.offset == 7

    def test_other_errors_are_python_syntax_errors(self):
        with pytest.raises(SyntaxError) as exc_info:
            parse_assertion("x +* 2")

        assert not isinstance(exc_info.value, AssertionSyntaxError)

    def test_assertion_syntax_error_is_a_syntax_error(self):
        assert issubclass(AssertionSyntaxError, SyntaxError)


# -----------------------------------------------------------------------------
# Tests for evaluate
# -----------------------------------------------------------------------------


class TestEvaluate:
    def test_passing(self):
        evaluate("x == 1", {"x": 1})

    def test_comparison_report(self):
        with pytest.raises(AssertionFailedError) as exc_info:
            evaluate("x == 2", {"x": 1})

        assert str(exc_info.value) == "assertion `x == 2` failed\n  left: 1\n right: 2"

    def test_format_message_report(self):
        with pytest.raises(AssertionFailedError) as exc_info:
            evaluate("x != 1, 'x ({}) should not be 1', x", {"x": 1})

        assert str(exc_info.value) == "assertion `x != 1` failed: x (1) should not be 1\n  left: 1\n right: 1"

    def test_method_call_report(self):
        with pytest.raises(AssertionFailedError) as exc_info:
            evaluate('s.startswith("hello")', {"s": "Hello World"})

        assert exc_info.value.report.render().splitlines()[1:] == ["  self: 'Hello World'", " arg 0: 'hello'"]

    def test_namespace_is_not_modified(self):
        namespace = {"x": 1}
        evaluate("x == 1", namespace)

        assert namespace == {"x": 1}

    def test_generated_module_uses_helpers(self):
        code = ast.unparse(assertion_module(parse_assertion("a and b")))

        assert "@diag_snapshot" in code
        assert "@diag_fail" in code
