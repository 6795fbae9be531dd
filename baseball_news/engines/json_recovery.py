"""Recovery of JSON article arrays from free-form model output.

Generation backends are asked for a bare JSON array but frequently wrap it in
code fences, prepend commentary, or emit raw newlines inside string values.
This module turns such text into a list of dicts, or raises one of the
``MalformedOutputError`` subclasses describing why it could not.

Failure modes:
    EmptyOutputError: The response is blank (or only code fences).
    NoBracketFoundError: No ``[``/``{`` ... ``]``/``}`` span exists.
    UnbalancedEscapeError: A string literal is left open or ends in a lone backslash.
    TrailingGarbageError: Text follows the first JSON value (strict mode only).
    MalformedOutputError: Any other decode failure or unusable top-level value.
"""

import json
import logging
import re
from typing import Any


logger = logging.getLogger(__name__)


# Opening fences may carry a language tag (```json, ```JSON, ```javascript)
CODE_FENCE_PATTERN = re.compile(r"```[A-Za-z0-9_-]*")

CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}


class MalformedOutputError(Exception):
    """Raised when model output cannot be turned into article items.

    Attributes:
        reason: Short description of what went wrong
        excerpt: Leading part of the offending text, for logs
    """

    def __init__(self, reason: str, text: str = "") -> None:
        self.reason = reason
        self.excerpt = text[:120]
        message = reason if not self.excerpt else f"{reason} (near: {self.excerpt!r})"
        super().__init__(message)


class EmptyOutputError(MalformedOutputError):
    """Raised when the model returned nothing usable at all."""

    def __init__(self) -> None:
        super().__init__("model output is empty")


class NoBracketFoundError(MalformedOutputError):
    """Raised when no JSON array or object span can be located."""

    def __init__(self, text: str) -> None:
        super().__init__("no JSON array or object found in model output", text)


class UnbalancedEscapeError(MalformedOutputError):
    """Raised when a string literal is unterminated or ends in a dangling escape."""

    def __init__(self, text: str) -> None:
        super().__init__("unterminated string or dangling escape in model output", text)


class TrailingGarbageError(MalformedOutputError):
    """Raised in strict mode when text follows the first JSON value."""

    def __init__(self, trailing: str) -> None:
        self.trailing = trailing
        super().__init__("unexpected text after JSON value", trailing)


def strip_code_fences(raw: str) -> str:
    """Remove markdown code fence markers and surrounding whitespace."""
    return CODE_FENCE_PATTERN.sub("", raw).strip()


def locate_json_span(text: str) -> str:
    """Slice ``text`` from the first opening bracket to the last closing one.

    Raises:
        NoBracketFoundError: If there is no opening bracket, no closing
            bracket, or the last closing bracket precedes the first opening one.
    """
    starts = [index for index in (text.find("["), text.find("{")) if index >= 0]
    if not starts:
        raise NoBracketFoundError(text)

    start = min(starts)
    end = max(text.rfind("]"), text.rfind("}"))
    if end < start:
        raise NoBracketFoundError(text)

    return text[start:end + 1]


def escape_control_characters(text: str) -> str:
    """Escape raw control characters that appear inside JSON string literals.

    Characters outside string literals are left untouched, since whitespace
    between tokens is legal JSON.

    Raises:
        UnbalancedEscapeError: If the text ends inside a string literal or
            right after a backslash.
    """
    out: list[str] = []
    in_string = False
    escaped = False

    for ch in text:
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            continue

        if escaped:
            escaped = False
            out.append(ch)
        elif ch == "\\":
            escaped = True
            out.append(ch)
        elif ch == '"':
            in_string = False
            out.append(ch)
        elif ord(ch) < 0x20:
            out.append(CONTROL_ESCAPES.get(ch, f"\\u{ord(ch):04x}"))
        else:
            out.append(ch)

    if in_string or escaped:
        raise UnbalancedEscapeError(text)

    return "".join(out)


def leading_value_end(text: str) -> int | None:
    """Return the index just past the bracketed value that opens ``text``.

    Brackets inside string literals are ignored. None means the value is
    never closed.
    """
    depth = 0
    in_string = False
    escaped = False

    for index, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
            if depth == 0:
                return index + 1

    return None


def _decode_leading_value(text: str, strict: bool) -> Any:
    decoder = json.JSONDecoder()
    try:
        value, end = decoder.raw_decode(text)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"invalid JSON: {e.msg} at position {e.pos}", text)

    trailing = text[end:].strip()
    if not trailing:
        return value

    # Several top-level objects separated by commas: read them as one array
    if isinstance(value, dict) and trailing.startswith(","):
        try:
            return json.loads(f"[{text}]")
        except json.JSONDecodeError:
            pass

    if strict:
        raise TrailingGarbageError(trailing)

    logger.debug(f"Ignoring {len(trailing)} characters after JSON value")
    return value


def _as_items(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]

    if isinstance(value, dict):
        # Wrapper objects such as {"articles": [...]}
        for nested in value.values():
            if isinstance(nested, list):
                return [item for item in nested if isinstance(item, dict)]
        return [value]

    raise MalformedOutputError(
        f"top-level JSON value is a {type(value).__name__}, not an array or object"
    )


def extract_json_array(raw: str | None, strict: bool = False) -> list[dict[str, Any]]:
    """Recover a list of JSON objects from noisy model output.

    Steps: strip code fences, slice from the first ``[``/``{`` to the last
    ``]``/``}``, escape raw control characters inside string literals, then
    decode. Non-object array elements are dropped. When unbalanced quotes
    follow the leading value, only that value is read unless ``strict``.

    Args:
        raw: Raw text returned by the generation backend
        strict: If True, text after the first JSON value is an error;
                otherwise it is ignored

    Returns:
        List of decoded objects (possibly empty)

    Raises:
        MalformedOutputError: Or one of its subclasses, on any failure

    Example:
        >>> extract_json_array('```json\\n[{"header": "a"}]\\n```')
        [{'header': 'a'}]
    """
    if raw is None or not raw.strip():
        raise EmptyOutputError()

    cleaned = strip_code_fences(raw)
    if not cleaned:
        raise EmptyOutputError()

    span = locate_json_span(cleaned)
    try:
        escaped = escape_control_characters(span)
    except UnbalancedEscapeError:
        # A stray quote in trailing commentary; keep only the leading value
        end = None if strict else leading_value_end(span)
        if end is None or end == len(span):
            raise
        escaped = escape_control_characters(span[:end])
    value = _decode_leading_value(escaped, strict)

    return _as_items(value)
