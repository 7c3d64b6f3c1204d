from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional

from workflows.soap.v1.models import resolve_model
from workflows.soap.v1.orchestrator import get_graph, initial_state
from workflows.soap.v1.schemas.domain import NoteResult


logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def get_cached_graph(model: str) -> Any:
    return get_graph(model)


def result_from_state(
    state: dict[str, Any], note_id: str, source_file: str, model: str
) -> NoteResult:
    return NoteResult(
        note_id=note_id,
        source_file=source_file,
        model=state.get("model") or model,
        note=state.get("note"),
        recommendations=state.get("recommendations", []),
        usage=state.get("usage"),
        errors=state.get("errors", []),
    )


def run_transcript(
    transcript: str,
    note_id: str,
    source_file: str,
    model: Optional[str] = None,
    app: Any = None,
) -> NoteResult:
    model_name = resolve_model(model)
    try:
        graph = app if app is not None else get_cached_graph(model_name)
        result_state = graph.invoke(initial_state(transcript, note_id, model_name))
        return result_from_state(result_state, note_id, source_file, model_name)
    except Exception as exc:
        logger.exception("Failed processing %s: %s", note_id, exc)
        return NoteResult(
            note_id=note_id,
            source_file=source_file,
            model=model_name,
            errors=["note_processing_failed"],
        )
