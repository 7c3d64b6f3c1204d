from __future__ import annotations

from workflows.soap.v1.nodes.text_utils import normalize_transcript, validate_text_input
from workflows.soap.v1.types import ScribeState


def validate_transcript_node(state: ScribeState) -> dict:
    transcript = normalize_transcript(state.get("transcript", "") or "")
    errors = list(state.get("errors", []))
    if validate_text_input(transcript) and "transcript_empty" not in errors:
        errors.append("transcript_empty")
    return {"transcript": transcript, "errors": errors}
