from __future__ import annotations

from typing import List, Optional

from typing_extensions import TypedDict

from workflows.soap.v1.schemas.domain import ClinicalNote, Recommendation, TokenUsage


class ScribeState(TypedDict):
    note_id: str
    transcript: str
    model: str
    note: Optional[ClinicalNote]
    recommendations: List[Recommendation]
    usage: Optional[TokenUsage]
    errors: List[str]
