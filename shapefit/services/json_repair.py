"""Helpers for turning model output into JSON, including truncated output."""
import json
import re
from typing import Any, List, Optional

from ..errors import AIResponseMalformed


_FENCE_OPEN = re.compile(r"^```[a-zA-Z0-9_-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```\s*$")

_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block and any prose before the first '{'."""
    cleaned = (text or "").strip()
    cleaned = _FENCE_OPEN.sub("", cleaned)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    start = cleaned.find("{")
    if start > 0:
        cleaned = cleaned[start:]
    return cleaned.strip()


def salvage_truncated_json(text: str) -> Optional[str]:
    """
    Cut `text` after the last complete object that sits inside an unclosed
    container and append the closers for whatever is still open.

    A balanced document followed by trailing text is cut at its end. Returns
    None when no complete inner object exists.
    """
    stack: List[str] = []
    in_string = False
    escaped = False
    cut_at = -1
    open_at_cut: List[str] = []
    root_end = -1

    for i, ch in enumerate(text):
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
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]":
            if not stack or _CLOSERS[stack[-1]] != ch:
                break
            stack.pop()
            if not stack:
                root_end = i
                break
            if ch == "}":
                cut_at = i
                open_at_cut = list(stack)

    if root_end >= 0:
        # balanced document followed by trailing text
        return text[: root_end + 1]
    if cut_at < 0:
        return None

    closing = "".join(_CLOSERS[c] for c in reversed(open_at_cut))
    return text[: cut_at + 1] + closing


def parse_model_json(text: str) -> Any:
    """
    Strict parse first; on failure try one salvage pass. Raises AIResponseMalformed
    when neither yields valid JSON.
    """
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        first_error = e

    repaired = salvage_truncated_json(cleaned)
    if repaired is None:
        raise AIResponseMalformed(f"unparsable model output: {first_error}")
    try:
        return json.loads(repaired)
    except json.JSONDecodeError as e:
        raise AIResponseMalformed(f"salvage failed: {e}") from e
