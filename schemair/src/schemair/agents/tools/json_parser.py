"""Pull a JSON object out of an LLM reply."""

import json
import re
from typing import Any, Callable, Dict, List, Optional
from schemair.config.logging import get_logger

logger = get_logger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


class JSONParseError(Exception):
    """Raised when no JSON object can be recovered from a reply."""

    pass


def _repair_json(json_str: str) -> str:
    """
    Fix the slips models make most often.

    Fixes:
    - Trailing commas before ``}`` or ``]``
    - Single-quoted keys
    """
    repaired = re.sub(r",(\s*[}\]])", r"\1", json_str)
    repaired = re.sub(r"'([A-Za-z_][A-Za-z0-9_]*)'\s*:", r'"\1":', repaired)
    if repaired != json_str:
        logger.debug("Repaired trailing commas / quoted keys in JSON reply")
    return repaired


def _fenced_block(text: str) -> Optional[str]:
    match = CODE_FENCE_PATTERN.search(text)
    return match.group(1) if match else None


def _outermost_object(text: str) -> Optional[str]:
    """First balanced ``{...}`` span, ignoring braces inside string literals."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def extract_json(text: str) -> Dict[str, Any]:
    """
    Extract a JSON object from LLM output.

    Tries, in order: a fenced ```json block, the outermost balanced object,
    and the whole text; each candidate is retried once after light repair.

    Args:
        text: Raw LLM output text

    Returns:
        Parsed JSON object

    Raises:
        JSONParseError: If no JSON object can be extracted
    """
    strategies: List[Callable[[str], Optional[str]]] = [
        _fenced_block,
        _outermost_object,
        lambda t: t.strip(),
    ]
    errors: List[str] = []
    for strategy in strategies:
        candidate = strategy(text or "")
        if not candidate:
            continue
        for attempt in (candidate, _repair_json(candidate)):
            try:
                data = json.loads(attempt)
            except json.JSONDecodeError as e:
                errors.append(str(e))
                continue
            if isinstance(data, dict):
                return data
            errors.append(f"expected a JSON object, got {type(data).__name__}")

    error_msg = (
        "Could not extract a JSON object from LLM output. "
        f"Errors: {'; '.join(errors[-3:]) or 'no JSON found'}"
    )
    logger.error(error_msg)
    logger.debug(f"Text content (first 1000 chars): {(text or '')[:1000]}...")
    raise JSONParseError(error_msg)
