"""Unit tests for conductor.llm.partial_json module."""

import pytest

from conductor.llm.partial_json import IncrementalJSONParser, parse_partial_json


class TestIncrementalJSONParser:
    """Tests for IncrementalJSONParser."""

    def test_complete_document(self):
        parser = IncrementalJSONParser()
        result = parser.feed('{"a": [1, 2], "b": "x"}')
        assert result.complete
        assert result.value == {"a": [1, 2], "b": "x"}
        assert parser.complete

    def test_open_string_value_is_closed(self):
        result = IncrementalJSONParser().feed('{"path": "/src/a')
        assert not result.complete
        assert result.value == {"path": "/src/a"}

    def test_partial_key_is_dropped(self):
        result = IncrementalJSONParser().feed('{"pa')
        assert result.value == {}
        assert not result.complete

    def test_unfinished_scalar_kept_after_comma(self):
        parser = IncrementalJSONParser()
        parser.feed('{"a": 1')
        result = parser.feed(', "b": tr')
        assert result.value == {"a": 1}

    def test_nested_containers(self):
        result = IncrementalJSONParser().feed('{"a": {"b": "c')
        assert result.value == {"a": {"b": "c"}}

    def test_trailing_escape_ignored(self):
        result = IncrementalJSONParser().feed('{"a": "x\\')
        assert result.value == {"a": "x"}

    def test_chunks_accumulate(self):
        parser = IncrementalJSONParser()
        for chunk in ['{"pa', 'th": "/a', '.py", "con', 'tent": "hi"}']:
            result = parser.feed(chunk)
        assert result.complete
        assert result.value == {"path": "/a.py", "content": "hi"}
        assert parser.buffer == '{"path": "/a.py", "content": "hi"}'

    def test_nothing_parseable(self):
        result = IncrementalJSONParser().feed("   ")
        assert result.value is None
        assert not result.complete

    def test_finish_valid(self):
        parser = IncrementalJSONParser()
        parser.feed('{"a": 1}')
        assert parser.finish() == {"a": 1}

    def test_finish_empty_is_empty_object(self):
        assert IncrementalJSONParser().finish() == {}

    def test_finish_invalid_raises(self):
        parser = IncrementalJSONParser()
        parser.feed('{"a": ')
        with pytest.raises(ValueError):
            parser.finish()


def test_parse_partial_json():
    assert parse_partial_json('[1, 2, "th').value == [1, 2, "th"]
