from pathlib import Path
import logging


logger = logging.getLogger(__name__)

TRANSCRIPT_SUFFIXES = {".txt", ".md", ""}


def iter_transcript_files(transcripts_dir: Path, suffixes: set[str] | None = None) -> list[Path]:
    if not transcripts_dir.exists():
        raise FileNotFoundError(f"Transcripts directory not found: {transcripts_dir}")

    allowed = TRANSCRIPT_SUFFIXES if suffixes is None else suffixes
    files = [
        path
        for path in transcripts_dir.iterdir()
        if path.is_file() and not path.name.startswith(".") and path.suffix.lower() in allowed
    ]
    return sorted(files, key=lambda p: p.name)


def decode_bytes(data: bytes) -> str:
    # Exported CSV/JSON may carry a BOM.
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("Falling back to cp932 for input content")
    try:
        return data.decode("cp932")
    except UnicodeDecodeError:
        logger.warning("Falling back to latin-1 for input content")
        return data.decode("latin-1")


def load_text(path: Path) -> str:
    return decode_bytes(path.read_bytes())
