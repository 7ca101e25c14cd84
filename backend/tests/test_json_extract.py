"""Tests for pulling JSON objects out of model output.

Run with: pytest tests/test_json_extract.py -v
"""

from app.utils.json_extract import extract_json_object, find_balanced_braces


class TestFindBalancedBraces:
    """Test brace matching."""

    def test_nested_span(self):
        text = 'x {"a": {"b": 1}} y'
        begin, end = find_balanced_braces(text)
        assert text[begin:end] == '{"a": {"b": 1}}'

    def test_ignores_braces_inside_strings(self):
        text = '{"title": "use } and { freely", "n": 1}'
        assert find_balanced_braces(text) == (0, len(text))

    def test_escaped_quote_inside_string(self):
        text = '{"title": "say \\"}\\" loudly"}'
        assert find_balanced_braces(text) == (0, len(text))

    def test_unbalanced_returns_none(self):
        assert find_balanced_braces('{"a": {"b": 1}') is None
        assert find_balanced_braces("no braces here") is None


class TestExtractJsonObject:
    """Test permissive extraction."""

    def test_object_after_prose(self):
        text = 'Here is the result: {"subtasks": []} Hope that helps!'
        assert extract_json_object(text) == {"subtasks": []}

    def test_object_inside_code_fence(self):
        text = '```json\n{"summary": "ok", "sources": []}\n```'
        assert extract_json_object(text) == {"summary": "ok", "sources": []}

    def test_skips_spans_that_are_not_json(self):
        text = 'Template {title} filled: {"title": "A"}'
        assert extract_json_object(text) == {"title": "A"}

    def test_returns_none_for_unusable_text(self):
        assert extract_json_object("sorry, I cannot help") is None
        assert extract_json_object("") is None
        assert extract_json_object("[1, 2, 3]") is None
        assert extract_json_object('{"truncated": ') is None
