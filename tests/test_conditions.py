"""Tests for the restricted condition evaluator."""

import pytest

from agentflow.conditions import ConditionError, evaluate, parse, substitute_variables


@pytest.mark.parametrize(
    "expression, variables, expected",
    [
        ("{{data_count}} > 1", {"data_count": 2}, True),
        ("{{data_count}} > 1", {"data_count": 0}, False),
        ("{{data_count}} >= 2 && {{ok}}", {"data_count": 2, "ok": True}, True),
        ("{{a}} == 1 || {{b}} == 2", {"a": 0, "b": 2}, True),
        ("!({{flag}})", {"flag": False}, True),
        ("not {{flag}}", {"flag": True}, False),
        ('{{segment}} === "enterprise"', {"segment": "enterprise"}, True),
        ("{{segment}} != 'smb'", {"segment": "enterprise"}, True),
        ("{{name}} startsWith 'Jo'", {"name": "John"}, True),
        ("{{name}} endsWith 'hn'", {"name": "John"}, True),
        ("{{tags}} contains 'vip'", {"tags": ["vip", "new"]}, True),
        ("'vip' in {{tags}}", {"tags": ["new"]}, False),
        ("{{a}} + {{b}} == 5", {"a": 2, "b": 3}, True),
        ("{{a}} - 1 < 0", {"a": 0}, True),
        ("{{missing}} == null", {}, True),
        ("{{rate}} > 50.5", {"rate": 66.6}, True),
        ("true", {}, True),
        ("false", {}, False),
    ],
)
def test_evaluate(expression, variables, expected):
    assert evaluate(expression, variables) is expected


@pytest.mark.parametrize(
    "expression",
    [
        "__import__('os').system('echo hi')",
        "{{x}}; drop",
        "constructor",
        "1 >",
        "(1 == 1",
        "'unterminated",
        "",
        "   ",
        "1 + 'a' == 2",
        "-'text'",
        "(" * 500 + "1" + ")" * 500,
    ],
)
def test_unsafe_or_invalid_expressions_are_false(expression):
    assert evaluate(expression, {"x": 1}) is False


@pytest.mark.parametrize("value", [None, 42, ["{{x}}"], {"a": 1}])
def test_non_string_expression_is_false(value):
    assert evaluate(value, {}) is False


def test_all_variables_undefined_never_raises():
    assert evaluate("{{a}} > {{b}} && {{c}} contains {{d}}", {}) is False
    assert evaluate("{{a}} > {{b}} && {{c}} contains {{d}}", None) is False


def test_mixed_type_comparisons_are_false():
    assert evaluate("{{n}} > 'a'", {"n": 3}) is False
    assert evaluate("{{flag}} == 1", {"flag": True}) is False


def test_substitution_json_encodes_values():
    text = substitute_variables(
        "{{name}} {{count}} {{items}} {{missing}}",
        {"name": 'Ann "A"', "count": 3, "items": [1, "x"]},
    )
    assert text == '"Ann \\"A\\"" 3 [1, "x"] null'


def test_substituted_strings_cannot_inject_operators():
    assert evaluate("{{name}} == 'x'", {"name": "x' || true || '"}) is False


def test_parse_rejects_identifiers():
    with pytest.raises(ConditionError):
        parse("process.exit(1)")


def test_object_literal_membership():
    assert evaluate("'a' in {\"a\": 1}", {}) is True


def test_bang_binds_tighter_than_comparison():
    assert evaluate("!0 > 3", {}) is False
    assert evaluate("!{{done}} == true", {"done": False}) is True
    assert evaluate("{{a}} == !{{b}}", {"a": True, "b": False}) is True


def test_word_not_negates_the_whole_comparison():
    assert evaluate("not 0 > 3", {}) is True
    assert evaluate("not {{count}} > 3 && {{ok}}", {"count": 1, "ok": True}) is True
