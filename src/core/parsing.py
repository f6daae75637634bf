"""
Tolerant parsing of language-model output
"""
import json
import re
from typing import Any, Dict, Optional

_FENCE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")

# Markdown markers only; a '#' or '*' inside prose ("C#", "#1", "2*3") stays
_HEADER = re.compile(r"^[ \t]*#{1,6}[ \t]+", re.MULTILINE)
_BOLD = re.compile(r"\*\*(\S(?:.*?\S)?)\*\*")
_ITALIC = re.compile(r"(?<![\w*])\*(\S(?:.*?\S)?)\*(?![\w*])")
_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`([^`]+)`")


def _balanced_object(text: str) -> Optional[str]:
    """Return the outermost {...} span starting at the first brace"""
    start = text.find("{")
    if start < 0:
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


def _loads_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def extract_json_object(raw_text: str) -> Dict[str, Any]:
    """
    Extract one JSON object from model output

    Tries, in order: the whole text, each fenced code block, then the
    outermost balanced brace span.

    Raises:
        ValueError: no JSON object could be recovered
    """
    if not raw_text or not raw_text.strip():
        raise ValueError("Model returned an empty response")

    text = raw_text.strip()
    data = _loads_object(text)
    if data is not None:
        return data

    for block in _FENCE.findall(text):
        data = _loads_object(block.strip())
        if data is not None:
            return data
        span = _balanced_object(block)
        if span:
            data = _loads_object(span)
            if data is not None:
                return data

    span = _balanced_object(text)
    if span:
        data = _loads_object(span)
        if data is not None:
            return data

    raise ValueError(f"Model returned no parseable JSON object: {text[:200]}")


def clean_markdown(value: Any) -> Any:
    """Strip markdown formatting from every string in a nested structure"""
    if isinstance(value, str):
        value = _HEADER.sub("", value)
        value = _BOLD.sub(r"\1", value)
        value = _ITALIC.sub(r"\1", value)
        value = _CODE_BLOCK.sub("", value)
        value = _INLINE_CODE.sub(r"\1", value)
        return value.strip()
    if isinstance(value, list):
        return [clean_markdown(item) for item in value]
    if isinstance(value, dict):
        return {key: clean_markdown(item) for key, item in value.items()}
    return value
