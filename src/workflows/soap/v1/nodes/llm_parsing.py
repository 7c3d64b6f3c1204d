from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, Tuple

from pydantic import ValidationError

from framework.llm.json_utils import iter_json_objects, parse_json_like, strip_code_fence
from workflows.soap.v1.schemas.domain import ClinicalNote


SOAP_SECTION_KEYS = ("subjective", "objective", "assessment", "plan")
_WRAPPER_KEYS = ("note", "soapnote", "soap_note", "result", "data", "output")


def parse_llm_json(text: str) -> Tuple[Optional[ClinicalNote], bool]:
    """Parse a model response into a note.

    Returns the note (``None`` when nothing usable was found) and whether the
    response needed salvage beyond strict JSON parsing.
    """
    text = strip_code_fence((text or "").strip())
    if not text:
        return None, True

    try:
        note = ClinicalNote.model_validate_json(text)
        if note.soap is not None:
            return note, False
    except (ValidationError, ValueError):
        pass

    note = note_from_payload(parse_json_like(text))
    if note is not None:
        return note, True

    for candidate in iter_json_objects(text):
        note = note_from_payload(parse_json_like(candidate))
        if note is not None:
            return note, True
    return None, True


def note_from_payload(payload: Any) -> Optional[ClinicalNote]:
    normalized = _normalize_payload(payload)
    if normalized is None:
        return None
    try:
        note = ClinicalNote.model_validate(normalized)
    except ValidationError:
        return None
    if note.soap is None:
        return None
    return note


def _normalize_payload(payload: Any) -> Optional[dict[str, Any]]:
    if isinstance(payload, list) and len(payload) == 1:
        payload = payload[0]
    if not isinstance(payload, Mapping):
        return None

    if isinstance(payload.get("soap"), Mapping):
        return dict(payload)

    # Sections emitted at the top level without the "soap" wrapper.
    sections = {key: payload[key] for key in SOAP_SECTION_KEYS if key in payload}
    if sections:
        normalized = {key: value for key, value in payload.items() if key not in sections}
        normalized["soap"] = sections
        return normalized

    for key, value in payload.items():
        if isinstance(key, str) and key.lower() in _WRAPPER_KEYS and isinstance(value, Mapping):
            return _normalize_payload(value)
    return None
