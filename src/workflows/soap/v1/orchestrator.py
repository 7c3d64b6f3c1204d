from __future__ import annotations

import logging
from typing import Any, Optional

from langgraph.graph import END, StateGraph

from framework.llm import VertexAIConfig, VertexGeminiClient
from workflows.soap.v1.config import PipelineConfig
from workflows.soap.v1.models import validate_model
from workflows.soap.v1.nodes.generate_note import build_generate_note_node
from workflows.soap.v1.nodes.note_generation import ClinicalNoteGenerator
from workflows.soap.v1.nodes.recommend import recommend_node
from workflows.soap.v1.nodes.validate_transcript import validate_transcript_node
from workflows.soap.v1.prompt_templates.soap_note import SYSTEM_INSTRUCTION
from workflows.soap.v1.schemas.llm import RESPONSE_SCHEMA
from workflows.soap.v1.types import ScribeState


logger = logging.getLogger(__name__)


def build_graph(generator: ClinicalNoteGenerator) -> Any:
    graph = StateGraph(ScribeState)

    graph.add_node("validate_transcript", validate_transcript_node)
    graph.add_node("generate_note", build_generate_note_node(generator))
    graph.add_node("recommend", recommend_node)

    graph.set_entry_point("validate_transcript")
    graph.add_edge("validate_transcript", "generate_note")
    graph.add_edge("generate_note", "recommend")
    graph.add_edge("recommend", END)

    return graph.compile()


def build_generator(
    model: Optional[str] = None,
    pipeline_config: Optional[PipelineConfig] = None,
) -> ClinicalNoteGenerator:
    pipeline_config = pipeline_config or PipelineConfig.from_env()
    vertex_config = VertexAIConfig.from_env()
    model_name = validate_model(model or vertex_config.model_name)
    logger.info("Using Vertex model %s for note generation", model_name)
    client = VertexGeminiClient(
        vertex_config.with_model(model_name),
        response_schema=RESPONSE_SCHEMA,
        system_instruction=SYSTEM_INSTRUCTION,
    )
    return ClinicalNoteGenerator(
        client,
        model=model_name,
        max_chars=pipeline_config.max_transcript_chars,
        usd_jpy_rate=pipeline_config.usd_jpy_rate,
    )


def get_graph(model: Optional[str] = None) -> Any:
    return build_graph(build_generator(model))


def initial_state(transcript: str, note_id: str, model: str) -> ScribeState:
    return {
        "note_id": note_id,
        "transcript": transcript,
        "model": model,
        "note": None,
        "recommendations": [],
        "usage": None,
        "errors": [],
    }
