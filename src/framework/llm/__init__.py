"""Vertex Gemini client shared by workflows."""

from .client import LLMClient, LLMResponse, VertexGeminiClient
from .config import VertexAIConfig

__all__ = [
    "LLMClient",
    "LLMResponse",
    "VertexGeminiClient",
    "VertexAIConfig",
]
