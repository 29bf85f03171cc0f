"""
Tests for the rule catalog and the suggestion mapper.
"""

import pytest

from backend.app.services.rule_catalog import (
    RULE_CATALOG,
    RuleCatalog,
    generate_suggestion,
    syntax_error_suggestion,
)


@pytest.mark.parametrize(
    "rule_id, expected",
    [
        ("no-var", "Use let or const instead of var"),
        ("semi", "Add semicolons at the end of statements"),
        ("no-undef", "Define the variable or import it from a module"),
        ("no-unused-vars", "Remove unused variables or use them in your code"),
        ("prefer-const", "Use const for variables that are never reassigned"),
        ("eol-last", "Add a newline at the end of the file"),
    ],
)
def test_rule_suggestions(rule_id, expected):
    assert generate_suggestion(rule_id, "whatever the engine said") == expected


def test_unknown_rule_gets_generic_suggestion():
    assert generate_suggestion("no-such-rule", "x") == "Follow ESLint best practices to fix this issue"


def test_missing_rule_id_is_classified_by_message():
    assert generate_suggestion(None, "Line 3: Unexpected token )") == (
        "Check for missing opening parenthesis or extra closing parenthesis"
    )


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Line 1: Unexpected token }", "Check for missing opening brace or extra closing brace"),
        ("Line 2: Unexpected token {", "Check for missing closing brace or unexpected opening brace"),
        ("Line 4: Unexpected token (", "Check for missing closing parenthesis or unexpected opening parenthesis"),
        ("Line 5: Unexpected token ]", "Check for missing opening bracket or extra closing bracket"),
        ("Line 1: Invalid or unexpected token", "Check for an unterminated string or an invalid character"),
        ("Line 1: Unexpected token ILLEGAL", "Check for typos or missing punctuation in your code"),
        ("Unterminated string literal.", "Add missing closing quote for the string"),
        ("Line 1: Unterminated comment", "Add missing closing comment marker */"),
        ("Line 9: Unexpected end of input", "Check for a missing closing brace, bracket or parenthesis"),
        ("Something else entirely", "Check for syntax errors like missing brackets, quotes, or semicolons"),
        ("", "Check for syntax errors like missing brackets, quotes, or semicolons"),
    ],
)
def test_syntax_error_classification(message, expected):
    assert syntax_error_suggestion(message) == expected


def test_classification_is_case_insensitive():
    assert syntax_error_suggestion("UNEXPECTED TOKEN }") == syntax_error_suggestion("unexpected token }")


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        RULE_CATALOG.suggestions["no-var"] = "changed"


def test_catalog_loads_from_custom_file(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(
        "rules:\n"
        "  semi: 'Terminate statements'\n"
        "syntax_errors:\n"
        "  - contains: ['Oops']\n"
        "    suggestion: 'Calm down'\n",
        encoding="utf-8",
    )

    catalog = RuleCatalog.load(path)

    assert catalog.suggestion_for("semi") == "Terminate statements"
    assert catalog.suggestion_for("no-var") == catalog.default_suggestion
    assert catalog.syntax_suggestion("big OOPS here") == "Calm down"
    assert catalog.syntax_suggestion("other") == catalog.syntax_default
