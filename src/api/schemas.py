from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workflows.soap.v1.schemas.domain import ClinicalNote, Recommendation, TokenUsage


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkflowInputSpecSchema(ApiModel):
    name: str
    description: str
    type: str
    required: bool
    multiple: bool


class WorkflowSchema(ApiModel):
    id: str
    name: str
    description: str
    inputs: List[WorkflowInputSpecSchema]


class ModelSchema(ApiModel):
    id: str
    name: str
    description: str
    input_price: float
    output_price: float
    speed: int
    quality: int
    default: bool = False


class AnalyzeRequest(ApiModel):
    text: Optional[str] = None
    model: Optional[str] = None


class AnalyzeResponse(ApiModel):
    note: ClinicalNote
    recommendations: List[Recommendation]
    usage: Optional[TokenUsage] = None
    model: str
    warnings: List[str] = Field(default_factory=list)


class RecommendationsResponse(ApiModel):
    recommendations: List[Recommendation]


class ExportRequest(ApiModel):
    note: dict[str, Any]
    format: Literal["json", "csv", "text"] = "json"


class ExportResponse(ApiModel):
    filename: str
    content: str
    media_type: str


class ImportResponse(ApiModel):
    note: ClinicalNote
    recommendations: List[Recommendation]


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str = Field(default_factory=lambda: datetime.now(tz=timezone.utc).isoformat())
