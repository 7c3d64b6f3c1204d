from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from framework.llm import LLMClient, LLMResponse
from framework.utils.env import parse_bool_env
from workflows.soap.v1.models import DEFAULT_MODEL, DEFAULT_USD_JPY_RATE, estimate_usage
from workflows.soap.v1.nodes.llm_parsing import parse_llm_json
from workflows.soap.v1.nodes.text_utils import normalize_transcript
from workflows.soap.v1.prompt_templates.json_repair import REPAIR_PROMPT_TEMPLATE
from workflows.soap.v1.prompt_templates.soap_note import PROMPT_TEMPLATE
from workflows.soap.v1.schemas.domain import ClinicalNote, TokenUsage


logger = logging.getLogger(__name__)


class NoteGenerationError(RuntimeError):
    """The model response could not be turned into a clinical note."""


class EmptyTranscriptError(ValueError):
    pass


@dataclass(frozen=True)
class GeneratedNote:
    note: ClinicalNote
    usage: Optional[TokenUsage] = None
    salvaged: bool = False


class ClinicalNoteGenerator:
    def __init__(
        self,
        client: LLMClient,
        model: Optional[str] = None,
        max_chars: int = 12000,
        usd_jpy_rate: float = DEFAULT_USD_JPY_RATE,
    ) -> None:
        self._client = client
        self.model = model or getattr(client, "model_name", None) or DEFAULT_MODEL
        self._max_chars = max_chars
        self._usd_jpy_rate = usd_jpy_rate
        self._debug_dir = os.getenv("LLM_DEBUG_DIR")
        self._repair_invalid_json = parse_bool_env(
            os.getenv("LLM_ENABLE_REPAIR", "true")
        )
        self._repair_max_chars = int(os.getenv("LLM_REPAIR_MAX_CHARS", "16000"))
        self._log_verbose = parse_bool_env(os.getenv("LLM_LOG_VERBOSE", "false"))

    def generate(self, transcript: str, note_id: str | None = None) -> GeneratedNote:
        prompt_text = normalize_transcript(transcript or "")
        if not prompt_text:
            raise EmptyTranscriptError("Transcript is empty.")

        if len(prompt_text) > self._max_chars:
            prompt_text = prompt_text[: self._max_chars]
            logger.warning("Truncated transcript for note %s", note_id or "")

        prompt = PROMPT_TEMPLATE.format(transcript=prompt_text)
        response = self._client.generate(prompt)
        raw = response.text
        usage = self._usage_from(response)

        note, parse_error = parse_llm_json(raw)
        if note is None and self._repair_invalid_json:
            self._log_issue("LLM returned invalid note JSON for %s, attempting repair.", note_id)
            self._write_debug_output(note_id, raw, suffix="invalid_json")
            note, repair_usage = self._attempt_json_repair(raw, note_id)
            usage = self._merge_usage(usage, repair_usage)

        if note is None:
            self._write_debug_output(note_id, raw, suffix="unusable_json")
            raise NoteGenerationError(f"LLM response for {note_id or 'note'} is not a SOAP note.")

        if parse_error:
            logger.debug("LLM response required JSON salvage for %s.", note_id)
            self._write_debug_output(note_id, raw, suffix="salvaged_json")
        return GeneratedNote(note=note, usage=usage, salvaged=parse_error)

    def _attempt_json_repair(
        self, raw: str, note_id: str | None
    ) -> Tuple[Optional[ClinicalNote], Optional[TokenUsage]]:
        trimmed_raw = raw.strip()
        if not trimmed_raw:
            return None, None
        if len(trimmed_raw) > self._repair_max_chars:
            trimmed_raw = trimmed_raw[: self._repair_max_chars]
        prompt = REPAIR_PROMPT_TEMPLATE.format(raw=trimmed_raw)
        try:
            repaired = self._client.generate(prompt)
        except Exception as exc:
            logger.info("LLM repair failed for %s: %s", note_id, exc)
            return None, None
        usage = self._usage_from(repaired)

        note, parse_error = parse_llm_json(repaired.text)
        if parse_error:
            logger.debug("LLM repair response required JSON salvage for %s.", note_id)
        if note is not None:
            self._write_debug_output(note_id, repaired.text, suffix="repaired_json")
        return note, usage

    def _usage_from(self, response: LLMResponse) -> Optional[TokenUsage]:
        counts = response.usage
        if not counts:
            return None
        return estimate_usage(
            self.model,
            prompt_tokens=counts.get("prompt_tokens", 0),
            completion_tokens=counts.get("completion_tokens", 0),
            total_tokens=counts.get("total_tokens"),
            usd_jpy_rate=self._usd_jpy_rate,
        )

    def _merge_usage(
        self, first: Optional[TokenUsage], second: Optional[TokenUsage]
    ) -> Optional[TokenUsage]:
        if first is None or second is None:
            return first or second
        return estimate_usage(
            self.model,
            prompt_tokens=first.prompt_tokens + second.prompt_tokens,
            completion_tokens=first.completion_tokens + second.completion_tokens,
            total_tokens=first.total_tokens + second.total_tokens,
            usd_jpy_rate=self._usd_jpy_rate,
        )

    def _write_debug_output(self, note_id: str | None, raw: str, suffix: str) -> None:
        if not self._debug_dir:
            return
        debug_dir = Path(self._debug_dir)
        debug_dir.mkdir(parents=True, exist_ok=True)
        path = debug_dir / f"{_safe_note_id(note_id)}_{suffix}.txt"
        path.write_text(raw, encoding="utf-8")

    def _log_issue(self, message: str, note_id: str | None) -> None:
        if self._log_verbose:
            logger.warning(message, note_id)
        else:
            logger.debug(message, note_id)


def _safe_note_id(note_id: str | None) -> str:
    if not note_id:
        return "unknown_note"
    return "".join(char if char.isalnum() or char in "_.-" else "_" for char in note_id)
