from __future__ import annotations

import ast
import json
import re
from typing import Any


# Full-width punctuation some models emit around JSON structure.
_FULLWIDTH_TRANSLATION = str.maketrans(
    {
        "“": '"',
        "”": '"',
        "‘": "'",
        "’": "'",
        "｛": "{",
        "｝": "}",
        "［": "[",
        "］": "]",
    }
)


def strip_code_fence(text: str) -> str:
    match = re.search(r"```(?:json)?\s*(.*?)```", text, flags=re.IGNORECASE | re.DOTALL)
    if match:
        return match.group(1).strip()
    return text


def sanitize_json_text(text: str) -> str:
    text = text.translate(_FULLWIDTH_TRANSLATION)
    text = re.sub(r"\bNULL\b", "null", text, flags=re.IGNORECASE)
    text = re.sub(r"\bNONE\b", "null", text, flags=re.IGNORECASE)
    text = re.sub(r",\s*([}\]])", r"\1", text)
    text = re.sub(
        r"([{\[,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:",
        r'\1"\2":',
        text,
    )
    return text


def parse_json_like(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return ast.literal_eval(text)
    except (ValueError, SyntaxError):
        pass
    cleaned = sanitize_json_text(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    try:
        return ast.literal_eval(cleaned)
    except (ValueError, SyntaxError):
        return None


def iter_json_objects(text: str) -> list[str]:
    """Return every balanced top-level ``{...}`` span in ``text``.

    Braces inside double-quoted strings are ignored so free-text fields that
    mention ``{`` do not split an object.
    """
    candidates: list[str] = []
    depth = 0
    start = None
    in_string = False
    escaped = False
    for idx, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"' and depth:
            in_string = True
        elif char == "{":
            if depth == 0:
                start = idx
            depth += 1
        elif char == "}" and depth:
            depth -= 1
            if depth == 0 and start is not None:
                candidates.append(text[start : idx + 1])
                start = None
    return candidates
