# src/tools/vision/response_parser.py
"""
Classifier Response Decoder

Purpose
-------
Every classifier call returns free text that is *expected* to be JSON but is
not trusted to be. This module is the single decode step shared by all call
sites: it turns raw text into a validated Python object of the requested
shape, or raises `DecodeError`.

Pipeline
--------
1) Strip Markdown code fences (``` or ```json), including fences preceded by prose.
2) Try the whole remaining text as JSON.
3) Extract the first well-formed top-level JSON array/object by bracket matching
   (string-aware, so brackets inside quoted text do not count).
4) Syntactic repair with `json_repair` (trailing or missing commas, smart and
   single quotes, unquoted keys, unterminated strings, unclosed brackets).
5) Validate against the target type with Pydantic. For `list[Model]` targets,
   items are validated one by one and invalid items are dropped; a single
   object is accepted where a list is expected. A field of the wrong type
   ends as a dropped item or a `DecodeError`, never as a raw exception.

Public API
----------
def decode_response(text: str, target: Any) -> Any
def extract_json_block(text: str) -> str | None
def repair_json(text: str) -> str
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any, TypeVar, get_args, get_origin

import json_repair
from pydantic import TypeAdapter, ValidationError

from src.core.errors import DecodeError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCED_BLOCK = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)```", re.DOTALL)
_LEADING_FENCE = re.compile(r"^```[a-zA-Z]*\s*", re.IGNORECASE)

# pydantic only wraps ValueError raised inside validators
_VALIDATOR_ERRORS = (ValidationError, TypeError, AttributeError)


def decode_response(text: Any, target: Any) -> Any:
    """
    Decode classifier text into `target` (a Pydantic model, `list[Model]`, or any
    type Pydantic can validate). Raises DecodeError when no usable JSON is found.
    """
    if not isinstance(text, str):
        raise DecodeError("Classifier returned a non-string response.")
    if not text.strip():
        raise DecodeError("Classifier returned an empty response.")

    loaded = _load_lenient(text)

    if get_origin(target) is list:
        return _validate_items(loaded, target, raw=text)

    if isinstance(loaded, list) and len(loaded) == 1 and isinstance(loaded[0], dict):
        loaded = loaded[0]
    try:
        return _adapter(target).validate_python(loaded)
    except ValidationError as e:
        raise DecodeError(f"Response does not match {_type_name(target)}: {e.error_count()} error(s)", raw=text) from e
    except (TypeError, AttributeError) as e:
        raise DecodeError(f"Response does not match {_type_name(target)}: {e}", raw=text) from e


def strip_code_fences(text: str) -> str:
    s = text.strip()
    m = _FENCED_BLOCK.search(s)
    if m:
        return m.group(1).strip()
    if s.startswith("```"):
        # opening fence without a closing one (truncated response)
        return _LEADING_FENCE.sub("", s, count=1).strip()
    return s


def extract_json_block(text: str) -> str | None:
    """
    Return the first balanced top-level JSON array/object in `text`, or None.
    Brackets inside string literals are ignored.
    """
    start = _first_open_bracket(text)
    if start is None:
        return None

    stack: list[str] = []
    quote: str | None = None
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch == '"':
            quote = ch
        elif ch in "[{":
            stack.append("]" if ch == "[" else "}")
        elif ch in "]}":
            if not stack or stack[-1] != ch:
                return None
            stack.pop()
            if not stack:
                return text[start : i + 1]
    return None


def repair_json(text: str) -> str:
    """
    Best-effort syntactic repair of almost-JSON produced by a language model.
    Always returns a JSON document; it decodes to "" when nothing was salvageable.
    """
    return json_repair.repair_json(text, skip_json_loads=True)


# ---------- helpers ----------


def _load_lenient(text: str) -> Any:
    s = strip_code_fences(text)

    try:
        return json.loads(s)
    except json.JSONDecodeError:
        pass

    block = extract_json_block(s)
    if block is not None:
        try:
            return json.loads(block)
        except json.JSONDecodeError:
            candidate = block
    else:
        start = _first_open_bracket(s)
        if start is None:
            raise DecodeError("Expected a JSON array/object in classifier output.", raw=text)
        candidate = s[start:]

    try:
        loaded = json.loads(repair_json(candidate))
    except json.JSONDecodeError as e:
        logger.debug("JSON repair failed; raw preview: %r", text[:200])
        raise DecodeError(f"Unable to repair classifier JSON: {e.msg}", raw=text) from e
    if not isinstance(loaded, (list, dict)):
        logger.debug("JSON repair found no array/object; raw preview: %r", text[:200])
        raise DecodeError("Unable to repair classifier JSON.", raw=text)
    logger.debug("Classifier JSON repaired successfully")
    return loaded


def _validate_items(loaded: Any, target: Any, *, raw: str) -> list[Any]:
    (item_type,) = get_args(target) or (Any,)

    if isinstance(loaded, dict):
        # {"assignments": [...]} style wrappers → take the first list of objects
        nested = next(
            (v for v in loaded.values() if isinstance(v, list) and v and all(isinstance(x, dict) for x in v)),
            None,
        )
        loaded = nested if nested is not None else [loaded]
    if not isinstance(loaded, list):
        raise DecodeError(f"Expected a JSON array for {_type_name(target)}.", raw=raw)

    adapter = _adapter(item_type)
    items: list[Any] = []
    for idx, item in enumerate(loaded):
        try:
            items.append(adapter.validate_python(item))
        except _VALIDATOR_ERRORS as e:
            logger.debug("Dropping invalid item %d: %s", idx, e)
    return items


@lru_cache(maxsize=32)
def _adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def _first_open_bracket(s: str) -> int | None:
    positions = [p for p in (s.find("["), s.find("{")) if p != -1]
    return min(positions) if positions else None


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", None) or str(target)
