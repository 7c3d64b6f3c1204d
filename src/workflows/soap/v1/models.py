from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from workflows.soap.v1.schemas.domain import TokenUsage


@dataclass(frozen=True)
class ModelSpec:
    id: str
    name: str
    description: str
    input_price: float  # USD per 1M tokens
    output_price: float  # USD per 1M tokens
    speed: int  # 1-5, 5 fastest
    quality: int  # 1-5, 5 best


AVAILABLE_MODELS: Tuple[ModelSpec, ...] = (
    ModelSpec(
        id="gemini-2.5-flash",
        name="Gemini 2.5 Flash",
        description="バランス型",
        input_price=0.30,
        output_price=2.50,
        speed=4,
        quality=4,
    ),
    ModelSpec(
        id="gemini-2.5-flash-lite",
        name="Gemini 2.5 Flash-Lite",
        description="最速・最安",
        input_price=0.10,
        output_price=0.40,
        speed=5,
        quality=2,
    ),
    ModelSpec(
        id="gemini-2.0-flash",
        name="Gemini 2.0 Flash",
        description="高速",
        input_price=0.15,
        output_price=0.60,
        speed=5,
        quality=3,
    ),
    ModelSpec(
        id="gemini-2.5-pro",
        name="Gemini 2.5 Pro",
        description="高品質",
        input_price=1.25,
        output_price=10.00,
        speed=2,
        quality=5,
    ),
)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_USD_JPY_RATE = 150.0


def get_model(model_id: Optional[str]) -> Optional[ModelSpec]:
    for spec in AVAILABLE_MODELS:
        if spec.id == model_id:
            return spec
    return None


def validate_model(model_id: Optional[str]) -> str:
    if get_model(model_id) is None:
        return DEFAULT_MODEL
    return model_id  # type: ignore[return-value]


def estimate_usage(
    model_id: str,
    prompt_tokens: int,
    completion_tokens: int,
    usd_jpy_rate: float = DEFAULT_USD_JPY_RATE,
    total_tokens: Optional[int] = None,
) -> TokenUsage:
    spec = get_model(model_id) or get_model(DEFAULT_MODEL)
    cost_usd = (
        prompt_tokens * spec.input_price + completion_tokens * spec.output_price
    ) / 1_000_000
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens if total_tokens else prompt_tokens + completion_tokens,
        estimated_cost_usd=cost_usd,
        estimated_cost_jpy=cost_usd * usd_jpy_rate,
    )


def resolve_model(model_id: Optional[str] = None) -> str:
    """Pick the requested model, else ``VERTEX_MODEL_NAME``, else the default."""
    return validate_model(model_id or os.getenv("VERTEX_MODEL_NAME"))
