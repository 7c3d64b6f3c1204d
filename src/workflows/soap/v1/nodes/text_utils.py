from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional


EMPTY_TEXT_ERROR = "テキストがありません"

_BLANK_LINES_RE = re.compile(r"\n{3,}")


def validate_text_input(text: Optional[str]) -> Optional[str]:
    if not text or not text.strip():
        return EMPTY_TEXT_ERROR
    return None


def normalize_transcript(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("　", " ")
    lines = [line.rstrip() for line in text.split("\n")]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def is_valid_soap_note(data: Any) -> bool:
    if not isinstance(data, Mapping):
        return False
    return isinstance(data.get("soap"), Mapping)


def timestamp_for_filename(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(tz=timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S")
