"""Pull a JSON payload out of free-text model output.

Extraction never raises. It returns an ``ExtractionResult`` tagged with a
``GenerationStatus`` so callers can tell "the model wrote no JSON at all"
(``no-json-found``) from "the model wrote something JSON-like that does
not parse" (``parse-error``).
"""

import json
import re
from typing import Any, Literal

from pydantic import BaseModel

from app.core.errors import ExtractionError
from app.core.logging import get_logger
from app.schemas.generation import GenerationStatus

logger = get_logger(__name__)

Expect = Literal["object", "array"] | None

_OPENERS = {"object": "{", "array": "["}
_CLOSERS = {"{": "}", "[": "]"}

# ```json, ```javascript, ```js, ```text or plain ```, case insensitive
_CODE_BLOCK = re.compile(
    r"```(?:json|javascript|js|text)?\s*\n(.*?)\n\s*```", re.DOTALL | re.IGNORECASE
)


class ExtractionResult(BaseModel):
    status: GenerationStatus
    value: Any = None
    strategy: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == GenerationStatus.OK

    def unwrap(self) -> Any:
        """Return the payload or raise ExtractionError."""
        if not self.ok:
            raise ExtractionError("No usable JSON payload in model response", status=self.status)
        return self.value


def _fix_trailing_commas(text: str) -> str:
    """Remove trailing commas before closing brackets."""
    return re.sub(r",(\s*[}\]])", r"\1", text)


def _try_parse_json(text: str) -> tuple[bool, Any]:
    """Attempt to parse JSON after trailing-comma repair.

    Returns:
        (parsed, value). ``parsed`` is False when the text is not JSON.
    """
    try:
        return True, json.loads(_fix_trailing_commas(text.strip()))
    except (json.JSONDecodeError, ValueError):
        return False, None


def _matches(value: Any, expect: Expect) -> bool:
    if expect == "object":
        return isinstance(value, dict)
    if expect == "array":
        return isinstance(value, list)
    return isinstance(value, (dict, list))


def _extract_from_code_block(text: str) -> str | None:
    """Content of the first markdown code block, or None."""
    match = _CODE_BLOCK.search(text)
    if match:
        return match.group(1)
    return None


def _balanced_from(text: str, start_idx: int) -> str | None:
    """Return the balanced structure opening at ``start_idx``.

    Brackets inside JSON strings are ignored.
    """
    depth = 0
    in_string = False
    escape_next = False

    for i in range(start_idx, len(text)):
        char = text[i]

        if in_string:
            if escape_next:
                escape_next = False
            elif char == "\\":
                escape_next = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in ("{", "["):
            depth += 1
        elif char in ("}", "]"):
            depth -= 1
            if depth == 0:
                return text[start_idx : i + 1]

    return None


def _extract_balanced_substring(text: str, expect: Expect) -> str | None:
    """First complete JSON object or array, preferring the expected kind."""
    openers = (_OPENERS[expect],) if expect else ("{", "[")
    for i, char in enumerate(text):
        if char in openers:
            candidate = _balanced_from(text, i)
            if candidate is not None:
                return candidate
    return None


def _extract_greedy(text: str, expect: Expect) -> str | None:
    """Widest match of the outermost pair: first opener to last closer."""
    if expect:
        opener = _OPENERS[expect]
    else:
        positions = [p for p in (text.find("{"), text.find("[")) if p != -1]
        if not positions:
            return None
        opener = text[min(positions)]

    start = text.find(opener)
    if start == -1:
        return None
    end = text.rfind(_CLOSERS[opener])
    if end <= start:
        # Unterminated fragment; still a candidate so it reports parse-error
        return text[start:]
    return text[start : end + 1]


def extract_json(content: str | None, expect: Expect = None) -> ExtractionResult:
    """Extract the JSON payload from a model response.

    Strategy cascade, stopping at the first candidate of the expected kind:
    1. Direct parse of the whole text
    2. First markdown code block
    3. First balanced ``{...}``/``[...]`` (bracket counting, string aware)
    4. Widest greedy outermost match

    A candidate of the wrong kind is kept as a fallback so the validator can
    name the mismatch.

    Args:
        content: Raw model response text
        expect: "object", "array" or None for either

    Returns:
        ExtractionResult with status ok, no-json-found or parse-error
    """
    if not content or not content.strip():
        return ExtractionResult(status=GenerationStatus.NO_JSON_FOUND)

    saw_candidate = False
    fallback: tuple[str, Any] | None = None

    candidates = (
        ("direct", lambda: content),
        ("code_block", lambda: _extract_from_code_block(content)),
        ("substring", lambda: _extract_balanced_substring(content, expect)),
        ("greedy", lambda: _extract_greedy(content, expect)),
    )

    for strategy, produce in candidates:
        candidate = produce()
        if candidate is None:
            continue
        if strategy != "direct":
            saw_candidate = True

        parsed, value = _try_parse_json(candidate)
        if not parsed or not isinstance(value, (dict, list)):
            continue
        saw_candidate = True

        if _matches(value, expect):
            logger.debug("Extracted JSON", strategy=strategy)
            return ExtractionResult(status=GenerationStatus.OK, value=value, strategy=strategy)
        if fallback is None:
            fallback = (strategy, value)

    if fallback is not None:
        strategy, value = fallback
        logger.debug("Extracted JSON of unexpected kind", strategy=strategy, expect=expect)
        return ExtractionResult(status=GenerationStatus.OK, value=value, strategy=strategy)

    if not saw_candidate:
        logger.info("No JSON found in model response", content_preview=content[:200])
        return ExtractionResult(status=GenerationStatus.NO_JSON_FOUND)

    logger.warning("Failed to parse JSON in model response", content_preview=content[:200])
    return ExtractionResult(status=GenerationStatus.PARSE_ERROR)
