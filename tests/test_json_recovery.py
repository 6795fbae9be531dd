"""Unit tests for recovering JSON article arrays from model output."""

import pytest

from baseball_news.engines.json_recovery import (
    EmptyOutputError,
    MalformedOutputError,
    NoBracketFoundError,
    TrailingGarbageError,
    UnbalancedEscapeError,
    escape_control_characters,
    extract_json_array,
    leading_value_end,
    locate_json_span,
    strip_code_fences,
)


class TestSuccessfulRecovery:
    """Outputs that should decode into items."""

    def test_bare_array(self):
        assert extract_json_array('[{"header": "a"}, {"header": "b"}]') == [
            {"header": "a"},
            {"header": "b"},
        ]

    def test_fenced_array_with_language_tag(self):
        raw = '```json\n[{"header": "a"}]\n```'
        assert extract_json_array(raw) == [{"header": "a"}]

    def test_stray_quote_in_trailing_note_keeps_leading_array(self):
        raw = '[{"header": "a\nb"}]\n注: "参考" は "未確認 {略}'
        assert extract_json_array(raw) == [{"header": "a\nb"}]

    def test_commentary_around_array(self):
        raw = 'Here are the articles:\n[{"header": "a"}]\nLet me know if you need more.'
        assert extract_json_array(raw) == [{"header": "a"}]

    def test_raw_newlines_inside_strings_are_escaped(self):
        raw = '[{"body": "一行目\n二行目\t終わり"}]'
        assert extract_json_array(raw) == [{"body": "一行目\n二行目\t終わり"}]

    def test_single_object_becomes_one_item(self):
        assert extract_json_array('{"header": "a"}') == [{"header": "a"}]

    def test_wrapper_object_is_unwrapped(self):
        raw = '{"articles": [{"header": "a"}, {"header": "b"}]}'
        assert [item["header"] for item in extract_json_array(raw)] == ["a", "b"]

    def test_comma_separated_objects_become_array(self):
        raw = '{"header": "a"}, {"header": "b"}'
        assert extract_json_array(raw) == [{"header": "a"}, {"header": "b"}]

    def test_non_object_elements_are_dropped(self):
        assert extract_json_array('[{"header": "a"}, "noise", 3]') == [{"header": "a"}]

    def test_empty_array(self):
        assert extract_json_array("[]") == []

    def test_trailing_text_ignored_when_not_strict(self):
        raw = '[{"header": "a"}] and then [1]'
        assert extract_json_array(raw) == [{"header": "a"}]


class TestFailureModes:
    """Each failure mode raises its own MalformedOutputError subclass."""

    @pytest.mark.parametrize("raw", [None, "", "   \n"])
    def test_blank_output(self, raw):
        with pytest.raises(EmptyOutputError):
            extract_json_array(raw)

    def test_fence_only_output(self):
        with pytest.raises(EmptyOutputError):
            extract_json_array("```json\n```")

    def test_no_brackets(self):
        with pytest.raises(NoBracketFoundError):
            extract_json_array("申し訳ありませんが、記事を取得できませんでした。")

    def test_closing_bracket_before_opening(self):
        with pytest.raises(NoBracketFoundError):
            extract_json_array("] nothing here [")

    def test_unterminated_string(self):
        with pytest.raises(UnbalancedEscapeError):
            extract_json_array('[{"header": "a}]')

    def test_trailing_garbage_in_strict_mode(self):
        with pytest.raises(TrailingGarbageError) as exc_info:
            extract_json_array('[{"header": "a"}] [1]', strict=True)

        assert exc_info.value.trailing == "[1]"

    def test_stray_quote_in_trailing_note_fails_in_strict_mode(self):
        with pytest.raises(UnbalancedEscapeError):
            extract_json_array('[{"header": "a"}]\n注: "未確認 {略}', strict=True)

    def test_invalid_json(self):
        with pytest.raises(MalformedOutputError, match="invalid JSON"):
            extract_json_array('[{"header": "a",}]')

    def test_subclasses_share_base_class(self):
        for error in (EmptyOutputError, NoBracketFoundError, UnbalancedEscapeError, TrailingGarbageError):
            assert issubclass(error, MalformedOutputError)

    def test_excerpt_is_bounded(self):
        error = NoBracketFoundError("x" * 500)
        assert len(error.excerpt) == 120


class TestHelpers:
    """Unit tests for the individual recovery steps."""

    def test_strip_code_fences(self):
        assert strip_code_fences("```JSON\n[1]\n```") == "[1]"

    def test_locate_json_span(self):
        assert locate_json_span('noise {"a": [1]} tail') == '{"a": [1]}'

    def test_control_characters_outside_strings_untouched(self):
        assert escape_control_characters('[\n{"a": 1}\n]') == '[\n{"a": 1}\n]'

    def test_escaped_quote_does_not_close_string(self):
        text = '{"a": "say \\"hi\\"\n"}'
        assert escape_control_characters(text) == '{"a": "say \\"hi\\"\\n"}'

    def test_dangling_backslash(self):
        with pytest.raises(UnbalancedEscapeError):
            escape_control_characters('"abc\\')

    def test_leading_value_end_ignores_brackets_in_strings(self):
        text = '[{"a": "]}"}] "tail }'
        assert leading_value_end(text) == len('[{"a": "]}"}]')

    def test_leading_value_end_of_unclosed_value(self):
        assert leading_value_end('[{"a": 1}') is None
