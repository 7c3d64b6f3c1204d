from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated


# A field the model filled with an unusable shape becomes None so only the
# rules reading that field are affected, never the rest of the note.
_SCALARS = (str, int, float, bool)


def _scalar_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, _SCALARS):
        return str(value)
    return None


def _coerce_text(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        parts = [_scalar_text(item) for item in value]
        return "、".join(part for part in parts if part is not None)
    return _scalar_text(value)


def _coerce_text_list(value: Any) -> Optional[List[str]]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return None
    parts = [_scalar_text(item) for item in value]
    return [part for part in parts if part is not None]


def _coerce_medications(value: Any) -> Optional[List[Any]]:
    if isinstance(value, (str, Mapping)):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return None
    items: List[Any] = []
    for item in value:
        if isinstance(item, str):
            if item.strip():
                items.append({"name": item})
        elif isinstance(item, (Mapping, BaseModel)):
            items.append(item)
    return items


def _mapping_or_none(value: Any) -> Any:
    # Models sometimes answer "記載なし" where a section object is expected.
    if value is None or isinstance(value, (Mapping, BaseModel)):
        return value
    return None


Text = Annotated[Optional[str], BeforeValidator(_coerce_text)]
TextList = Annotated[Optional[List[str]], BeforeValidator(_coerce_text_list)]


class NoteSection(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class PatientInfo(NoteSection):
    chief_complaint: Text = None
    duration: Text = None


class Subjective(NoteSection):
    present_illness: Text = None
    symptoms: TextList = None
    severity: Text = None
    onset: Text = None
    associated_symptoms: TextList = None
    past_medical_history: Text = None
    medications: TextList = None


class VitalSigns(NoteSection):
    blood_pressure: Text = None
    pulse: Text = None
    temperature: Text = None
    respiratory_rate: Text = None


class Objective(NoteSection):
    vital_signs: Annotated[Optional[VitalSigns], BeforeValidator(_mapping_or_none)] = None
    physical_exam: Text = None
    laboratory_findings: Text = None


class Assessment(NoteSection):
    diagnosis: Text = None
    icd10: Text = None
    differential_diagnosis: TextList = None
    clinical_impression: Text = None


class PrescribedMedication(NoteSection):
    name: Text = None
    dosage: Text = None
    frequency: Text = None
    duration: Text = None


class Plan(NoteSection):
    treatment: Text = None
    medications: Annotated[
        Optional[List[PrescribedMedication]], BeforeValidator(_coerce_medications)
    ] = None
    tests: TextList = None
    referral: Text = None
    follow_up: Text = None
    patient_education: Text = None


class Soap(NoteSection):
    subjective: Annotated[Optional[Subjective], BeforeValidator(_mapping_or_none)] = None
    objective: Annotated[Optional[Objective], BeforeValidator(_mapping_or_none)] = None
    assessment: Annotated[Optional[Assessment], BeforeValidator(_mapping_or_none)] = None
    plan: Annotated[Optional[Plan], BeforeValidator(_mapping_or_none)] = None


class ClinicalNote(NoteSection):
    summary: Text = None
    patient_info: Annotated[Optional[PatientInfo], BeforeValidator(_mapping_or_none)] = None
    soap: Annotated[Optional[Soap], BeforeValidator(_mapping_or_none)] = None


RecommendationType = Literal["differential", "test", "followup", "education", "warning"]
Priority = Literal["high", "medium", "low"]


class Recommendation(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str
    type: RecommendationType
    title: str
    description: str
    priority: Priority
    icon_name: str


class TokenUsage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = Field(default=0.0, alias="estimatedCostUSD")
    estimated_cost_jpy: float = Field(default=0.0, alias="estimatedCostJPY")


class NoteResult(BaseModel):
    note_id: str
    source_file: str
    model: Optional[str] = None
    note: Optional[ClinicalNote] = None
    recommendations: List[Recommendation] = Field(default_factory=list)
    usage: Optional[TokenUsage] = None
    errors: List[str] = Field(default_factory=list)
    created_at: str = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc).isoformat()
    )
