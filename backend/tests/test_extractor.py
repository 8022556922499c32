"""Tests for JSON extraction from model responses."""

import pytest

from app.core.errors import ExtractionError
from app.generation.extractor import extract_json
from app.schemas.generation import GenerationStatus


class TestDirectParsing:
    """Test direct JSON parsing."""

    def test_parse_dict(self):
        """Should parse a plain dict."""
        result = extract_json('{"key": "value"}')
        assert result.ok
        assert result.value == {"key": "value"}
        assert result.strategy == "direct"

    def test_parse_list(self):
        """Should parse a plain list."""
        result = extract_json('["item1", "item2"]')
        assert result.value == ["item1", "item2"]

    def test_parse_with_whitespace(self):
        """Should handle leading/trailing whitespace."""
        result = extract_json('  \n  {"key": "value"}  \n  ')
        assert result.value == {"key": "value"}

    def test_parse_with_unicode(self):
        """Should handle non-ASCII text."""
        result = extract_json('{"title": "Ingénieur données"}')
        assert result.value == {"title": "Ingénieur données"}


class TestTrailingCommaFix:
    """Test trailing comma handling."""

    def test_trailing_comma_in_dict(self):
        """Should fix trailing comma in dict."""
        assert extract_json('{"a": 1, "b": 2,}').value == {"a": 1, "b": 2}

    def test_trailing_comma_nested(self):
        """Should fix trailing commas in nested structures."""
        result = extract_json('{"steps": [1, 2,], "count": 2,}')
        assert result.value == {"steps": [1, 2], "count": 2}

    def test_multiple_trailing_commas(self):
        """Should fix multiple trailing commas."""
        assert extract_json('[{"a": 1,}, {"b": 2,}]').value == [{"a": 1}, {"b": 2}]


class TestCodeBlockExtraction:
    """Test markdown code block extraction."""

    def test_fenced_roadmap_with_preamble(self):
        """Should return the inner object of a fenced response."""
        content = 'Sure! ```json\n{"title":"X","steps":[{"step":"A"}]}\n```'
        result = extract_json(content)
        assert result.ok
        assert result.value == {"title": "X", "steps": [{"step": "A"}]}
        assert result.strategy == "code_block"

    def test_extract_js_code_block(self):
        """Should extract from ```js block."""
        result = extract_json('```js\n{"key": "value"}\n```')
        assert result.value == {"key": "value"}

    def test_extract_plain_code_block(self):
        """Should extract from a fence without a language tag."""
        result = extract_json('```\n{"key": "value"}\n```')
        assert result.value == {"key": "value"}

    def test_extract_case_insensitive(self):
        """Should handle case-insensitive language tags."""
        result = extract_json('```JSON\n{"key": "value"}\n```')
        assert result.value == {"key": "value"}

    def test_extract_first_code_block(self):
        """Should extract only the first code block."""
        content = """```json
{"first": true}
```
Some text
```json
{"second": true}
```"""
        assert extract_json(content).value == {"first": True}

    def test_code_block_with_trailing_comma(self):
        """Should fix trailing comma in code block."""
        result = extract_json('```json\n{"key": "value",}\n```')
        assert result.value == {"key": "value"}


class TestMixedTextExtraction:
    """Test extraction of JSON embedded in prose."""

    def test_extract_dict_from_text(self):
        """Should extract dict from explanatory text."""
        result = extract_json('The result is {"key": "value"} as shown above.')
        assert result.value == {"key": "value"}
        assert result.strategy == "substring"

    def test_extract_with_string_containing_brackets(self):
        """Should ignore brackets inside JSON strings."""
        result = extract_json('Result: {"message": "Use [brackets] {carefully}"} done.')
        assert result.value == {"message": "Use [brackets] {carefully}"}

    def test_extract_with_escaped_quotes(self):
        """Should handle escaped quotes in strings."""
        result = extract_json(r'Data: {"text": "He said \"hello\""} end.')
        assert result.value == {"text": 'He said "hello"'}

    def test_extract_first_json_object(self):
        """Should extract first complete JSON object."""
        assert extract_json('First: {"a": 1} and second: {"b": 2}').value == {"a": 1}

    def test_prefers_expected_array(self):
        """Should skip an object when the caller expects an array."""
        content = 'Note {"ignored": true} then [{"label": "A"}]'
        result = extract_json(content, expect="array")
        assert result.value == [{"label": "A"}]

    def test_wrong_kind_is_kept_as_fallback(self):
        """Should return a parsed value of the other kind rather than fail."""
        result = extract_json('["a"]', expect="object")
        assert result.ok
        assert result.value == ["a"]


class TestErrorCases:
    """Test failure statuses."""

    def test_empty_string(self):
        """Should report no-json-found for empty input."""
        assert extract_json("").status == GenerationStatus.NO_JSON_FOUND

    def test_none_input(self):
        """Should report no-json-found for None."""
        assert extract_json(None).status == GenerationStatus.NO_JSON_FOUND

    def test_whitespace_only(self):
        """Should report no-json-found for whitespace."""
        assert extract_json("   \n   ").status == GenerationStatus.NO_JSON_FOUND

    def test_plain_text(self):
        """Should report no-json-found for text with no braces."""
        result = extract_json("This is just plain text")
        assert result.status == GenerationStatus.NO_JSON_FOUND
        assert not result.ok
        assert result.value is None

    def test_invalid_json(self):
        """Should report parse-error when a candidate does not parse."""
        assert extract_json("{invalid json}").status == GenerationStatus.PARSE_ERROR

    def test_incomplete_json(self):
        """Should report parse-error for an unterminated object."""
        assert extract_json('{"key": "value"').status == GenerationStatus.PARSE_ERROR


class TestCallerScenarios:
    """Test responses shaped like real generation output."""

    def test_custom_roadmap_response(self):
        """Simulate a custom roadmap response with commentary."""
        content = """Here is your roadmap:

```json
{
  "title": "Data Engineer",
  "steps": [
    {"order": 1, "label": "Learn SQL", "estTime": "2 weeks"},
    {"order": 2, "label": "Learn Spark", "estTime": "3 weeks"},
  ]
}
```

Good luck!"""
        result = extract_json(content, expect="object")
        assert result.value["title"] == "Data Engineer"
        assert len(result.value["steps"]) == 2

    def test_personalization_response(self):
        """Simulate a bare step-list response."""
        content = '[{ "order": 9, "label": "Join a study group", "estTime": "ongoing" }]'
        result = extract_json(content, expect="array")
        assert result.value[0]["label"] == "Join a study group"


class TestUnwrap:
    def test_returns_payload(self):
        assert extract_json('{"title": "X"}').unwrap() == {"title": "X"}

    def test_raises_with_status(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_json("nothing to see here").unwrap()
        assert exc_info.value.status == GenerationStatus.NO_JSON_FOUND
