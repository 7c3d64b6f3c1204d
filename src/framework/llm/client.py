from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from google.api_core import exceptions as gcloud_exceptions
from google.oauth2 import service_account
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
import vertexai
from vertexai.generative_models import GenerationConfig, GenerativeModel

from framework.llm.config import VertexAIConfig
from framework.utils.env import parse_bool_env


logger = logging.getLogger(__name__)

# Quota and availability errors are worth another attempt; bad requests are not.
TRANSIENT_ERRORS = (
    gcloud_exceptions.ResourceExhausted,
    gcloud_exceptions.ServiceUnavailable,
    gcloud_exceptions.DeadlineExceeded,
    gcloud_exceptions.InternalServerError,
)


@dataclass(frozen=True)
class LLMResponse:
    text: str
    usage: Optional[dict[str, int]] = None


class LLMClient(Protocol):
    def generate(self, prompt: str) -> LLMResponse:  # pragma: no cover - interface only
        ...


def suppress_vertex_warnings() -> None:
    if not parse_bool_env(os.getenv("SUPPRESS_VERTEXAI_WARNINGS", "true")):
        return
    warnings.filterwarnings(
        "ignore",
        message=r"This feature is deprecated as of June 24, 2025.*",
        category=UserWarning,
        module=r"vertexai\..*",
    )


def build_generation_config(
    config: VertexAIConfig,
    response_schema: dict[str, Any] | None = None,
    response_mime_type: str | None = "application/json",
) -> GenerationConfig:
    base = {
        "temperature": config.temperature,
        "max_output_tokens": config.max_output_tokens,
    }
    attempts: list[dict[str, Any]] = []
    if response_mime_type:
        if response_schema and parse_bool_env(os.getenv("LLM_USE_RESPONSE_SCHEMA", "true")):
            attempts.append(
                {**base, "response_mime_type": response_mime_type, "response_schema": response_schema}
            )
        attempts.append({**base, "response_mime_type": response_mime_type})

    # Older SDK releases reject the structured-output keywords.
    for kwargs in attempts:
        try:
            return GenerationConfig(**kwargs)
        except TypeError:
            logger.debug("GenerationConfig rejected %s", sorted(set(kwargs) - set(base)))
    return GenerationConfig(**base)


def usage_from_response(response: Any) -> Optional[dict[str, int]]:
    metadata = getattr(response, "usage_metadata", None)
    if metadata is None:
        return None
    prompt_tokens = int(getattr(metadata, "prompt_token_count", 0) or 0)
    completion_tokens = int(getattr(metadata, "candidates_token_count", 0) or 0)
    total_tokens = int(getattr(metadata, "total_token_count", 0) or 0)
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": total_tokens or prompt_tokens + completion_tokens,
    }


def response_text(response: Any) -> str:
    """Return the response text, or ``""`` when the candidate was blocked or empty."""
    try:
        return getattr(response, "text", "") or ""
    except (ValueError, AttributeError, IndexError):
        candidates = getattr(response, "candidates", None) or []
        finish_reason = getattr(candidates[0], "finish_reason", None) if candidates else None
        logger.warning("Model returned no text (finish_reason=%s)", finish_reason)
        return ""


class VertexGeminiClient:
    def __init__(
        self,
        config: VertexAIConfig,
        response_schema: dict[str, Any] | None = None,
        response_mime_type: str | None = "application/json",
        system_instruction: str | None = None,
    ) -> None:
        suppress_vertex_warnings()
        credentials = None
        if config.credentials_path:
            credentials = service_account.Credentials.from_service_account_file(
                str(config.credentials_path)
            )
        vertexai.init(
            project=config.project_id,
            location=config.location,
            credentials=credentials,
        )
        self.model_name = config.model_name
        if system_instruction:
            self._model = GenerativeModel(
                config.model_name, system_instruction=system_instruction
            )
        else:
            self._model = GenerativeModel(config.model_name)
        self._generation_config = build_generation_config(
            config,
            response_schema=response_schema,
            response_mime_type=response_mime_type,
        )

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        wait=wait_exponential(min=1, max=10),
        stop=stop_after_attempt(3),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def generate(self, prompt: str) -> LLMResponse:
        # Usage travels with the text; one client serves concurrent requests.
        response = self._model.generate_content(
            prompt, generation_config=self._generation_config
        )
        return LLMResponse(text=response_text(response), usage=usage_from_response(response))
