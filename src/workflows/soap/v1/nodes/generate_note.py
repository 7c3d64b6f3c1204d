from __future__ import annotations

import logging
from typing import Callable

from workflows.soap.v1.nodes.note_generation import (
    ClinicalNoteGenerator,
    EmptyTranscriptError,
    NoteGenerationError,
)
from workflows.soap.v1.types import ScribeState


logger = logging.getLogger(__name__)


def build_generate_note_node(generator: ClinicalNoteGenerator) -> Callable[[ScribeState], dict]:
    def generate_note_node(state: ScribeState) -> dict:
        errors = list(state.get("errors", []))
        note_id = state.get("note_id")
        if "transcript_empty" in errors:
            return {"note": None, "usage": None, "errors": errors}

        try:
            generated = generator.generate(state.get("transcript", ""), note_id=note_id)
        except EmptyTranscriptError:
            errors.append("transcript_empty")
            return {"note": None, "usage": None, "errors": errors}
        except NoteGenerationError as exc:
            logger.warning("Note generation failed for %s: %s", note_id, exc)
            errors.append("note_generation_failed")
            return {"note": None, "usage": None, "errors": errors}
        except Exception as exc:
            logger.exception("LLM call failed for %s: %s", note_id, exc)
            errors.append("note_generation_failed")
            return {"note": None, "usage": None, "errors": errors}

        if generated.salvaged:
            errors.append("note_json_salvaged")
        return {
            "note": generated.note,
            "usage": generated.usage,
            "model": generator.model,
            "errors": errors,
        }

    return generate_note_node
