from __future__ import annotations

import logging
import uuid
from typing import Any, List

from fastapi import Body, FastAPI, File, HTTPException, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from api.config import load_config
from api.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    ExportRequest,
    ExportResponse,
    HealthResponse,
    ImportResponse,
    ModelSchema,
    RecommendationsResponse,
    WorkflowInputSpecSchema,
    WorkflowSchema,
)
from framework.io.transcripts import decode_bytes
from workflows.soap.v1.exporters import (
    MEDIA_TYPES,
    NoteImportError,
    export_filename,
    export_note,
    import_note_json,
)
from workflows.soap.v1.models import AVAILABLE_MODELS, resolve_model
from workflows.soap.v1.nodes.recommendation_rules import generate_recommendations
from workflows.soap.v1.nodes.text_utils import validate_text_input
from workflows.soap.v1.runner import get_cached_graph, run_transcript
from workflows.soap.v1.schemas.domain import ClinicalNote


logger = logging.getLogger(__name__)

ANALYZE_FAILED = "AI処理に失敗しました"
UPLOAD_TOO_LARGE = "ファイルサイズが大きすぎます。"

config = load_config()

app = FastAPI(title="Clinical Scribe API", version="1.0")

SOAP_WORKFLOW = WorkflowSchema(
    id="soap_v1",
    name="SOAP Note v1",
    description="Turn a doctor-patient conversation into a SOAP note with clinician recommendations.",
    inputs=[
        WorkflowInputSpecSchema(
            name="transcript",
            description="Conversation transcript (speech recognition output or typed text).",
            type="text",
            required=True,
            multiple=False,
        )
    ],
)


def _configure_cors() -> None:
    origins = config.cors_origins
    if origins == ["*"]:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    elif origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


_configure_cors()


@app.get("/api/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse()


@app.get("/api/models", response_model=List[ModelSchema])
def models() -> List[ModelSchema]:
    default_model = resolve_model(config.default_model)
    return [
        ModelSchema(
            id=spec.id,
            name=spec.name,
            description=spec.description,
            input_price=spec.input_price,
            output_price=spec.output_price,
            speed=spec.speed,
            quality=spec.quality,
            default=spec.id == default_model,
        )
        for spec in AVAILABLE_MODELS
    ]


@app.get("/api/workflows", response_model=List[WorkflowSchema])
def workflows() -> List[WorkflowSchema]:
    return [SOAP_WORKFLOW]


@app.get("/api/workflows/{workflow_id}", response_model=WorkflowSchema)
def workflow_detail(workflow_id: str) -> WorkflowSchema:
    if workflow_id != SOAP_WORKFLOW.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown workflow: {workflow_id}"
        )
    return SOAP_WORKFLOW


@app.post("/api/analyze", response_model=AnalyzeResponse)
def analyze(payload: AnalyzeRequest) -> AnalyzeResponse:
    error = validate_text_input(payload.text)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    model = resolve_model(payload.model or config.default_model)
    try:
        graph = get_cached_graph(model)
    except (ValueError, FileNotFoundError) as exc:
        # Missing project id or credentials file.
        logger.error("Vertex AI is not configured: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc

    result = run_transcript(
        payload.text,
        note_id=uuid.uuid4().hex,
        source_file="api",
        model=model,
        app=graph,
    )
    if result.note is None:
        logger.warning("Analyze request failed: %s", ", ".join(result.errors))
        detail = ANALYZE_FAILED
        if config.expose_errors and result.errors:
            detail = f"{ANALYZE_FAILED} ({', '.join(result.errors)})"
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)

    return AnalyzeResponse(
        note=result.note,
        recommendations=result.recommendations,
        usage=result.usage,
        model=result.model or model,
        warnings=result.errors,
    )


@app.post("/api/recommendations", response_model=RecommendationsResponse)
def recommendations(payload: Any = Body(default=None)) -> RecommendationsResponse:
    # Soap-less or malformed bodies simply produce no recommendations.
    return RecommendationsResponse(recommendations=generate_recommendations(payload))


@app.post("/api/export", response_model=ExportResponse)
def export(payload: ExportRequest) -> ExportResponse:
    try:
        note = ClinicalNote.model_validate(payload.note)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422, detail="Invalid clinical note."
        ) from exc
    return ExportResponse(
        filename=export_filename(payload.format),
        content=export_note(note, payload.format),
        media_type=MEDIA_TYPES[payload.format],
    )


@app.post("/api/notes/import", response_model=ImportResponse)
async def import_note(file: UploadFile = File(...)) -> ImportResponse:
    data = await file.read()
    if len(data) > config.max_upload_bytes:
        raise HTTPException(status_code=413, detail=UPLOAD_TOO_LARGE)
    try:
        note = import_note_json(decode_bytes(data))
    except NoteImportError as exc:
        logger.info("Rejected import of %s: %s", file.filename, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ImportResponse(note=note, recommendations=generate_recommendations(note))
