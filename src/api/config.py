from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

from framework.utils.env import get_env_bool, split_csv


@dataclass(frozen=True)
class AppConfig:
    cors_origins: List[str]
    default_model: str | None
    max_upload_bytes: int
    expose_errors: bool


def load_config() -> AppConfig:
    return AppConfig(
        cors_origins=split_csv(os.getenv("CORS_ORIGINS", "*")),
        default_model=os.getenv("VERTEX_MODEL_NAME"),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024))),
        expose_errors=get_env_bool("API_EXPOSE_ERRORS", default=False),
    )
