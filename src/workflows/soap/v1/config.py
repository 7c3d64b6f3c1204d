from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from workflows.soap.v1.models import DEFAULT_USD_JPY_RATE


@dataclass(frozen=True)
class PipelineConfig:
    transcripts_dir: Path
    output_dir: Path
    max_workers: int
    max_transcript_chars: int
    usd_jpy_rate: float

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        transcripts_dir = Path(os.getenv("TRANSCRIPTS_DIR", "transcripts"))
        output_dir = Path(os.getenv("OUTPUT_DIR", "output"))
        max_workers = int(os.getenv("PIPELINE_MAX_WORKERS", "1"))
        max_transcript_chars = int(os.getenv("TRANSCRIPT_MAX_CHARS", "12000"))
        usd_jpy_rate = float(os.getenv("USD_JPY_RATE", str(DEFAULT_USD_JPY_RATE)))
        return cls(
            transcripts_dir=transcripts_dir,
            output_dir=output_dir,
            max_workers=max_workers,
            max_transcript_chars=max_transcript_chars,
            usd_jpy_rate=usd_jpy_rate,
        )
