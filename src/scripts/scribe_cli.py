from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from framework.io.transcripts import iter_transcript_files, load_text
from framework.logging_utils import configure_logging
from workflows.soap.v1.config import PipelineConfig
from workflows.soap.v1.exporters import NoteImportError, import_note_json, write_export
from workflows.soap.v1.models import resolve_model
from workflows.soap.v1.nodes.recommendation_rules import generate_recommendations
from workflows.soap.v1.orchestrator import build_generator, build_graph
from workflows.soap.v1.runner import run_transcript
from workflows.soap.v1.schemas.domain import NoteResult


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Clinical scribe batch tools.")
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser(
        "analyze", help="Generate SOAP notes and recommendations from transcripts."
    )
    analyze.add_argument("--transcripts-dir", default=None, help="Directory with transcripts.")
    analyze.add_argument("--output-dir", default=None, help="Output directory.")
    analyze.add_argument("--model", default=None, help="Vertex model id.")
    analyze.add_argument("--limit", type=int, default=None, help="Limit number of transcripts.")
    analyze.add_argument("--max-workers", type=int, default=None, help="Parallel workers.")
    analyze.add_argument("--export-csv", action="store_true", help="Also write a CSV note per transcript.")

    recommend = subparsers.add_parser(
        "recommend", help="Print recommendations for exported note JSON files."
    )
    recommend.add_argument("notes", nargs="+", help="Exported note JSON files.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "recommend":
        return recommend_command(args.notes)
    return analyze_command(args)


def recommend_command(paths: Sequence[str], out: Any = None) -> int:
    out = out or sys.stdout
    exit_code = 0
    payload: list[dict[str, Any]] = []
    for raw_path in paths:
        path = Path(raw_path)
        try:
            note = import_note_json(load_text(path))
        except (OSError, NoteImportError) as exc:
            logger.error("Cannot import %s: %s", path, exc)
            exit_code = 1
            continue
        payload.append(
            {
                "file": str(path),
                "recommendations": [
                    item.model_dump(mode="json", by_alias=True)
                    for item in generate_recommendations(note)
                ],
            }
        )
    out.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")
    return exit_code


def analyze_command(
    args: argparse.Namespace, app_factory: Optional[Callable[[], Any]] = None
) -> int:
    pipeline_config = PipelineConfig.from_env()
    transcripts_dir = Path(args.transcripts_dir) if args.transcripts_dir else pipeline_config.transcripts_dir
    output_dir = Path(args.output_dir) if args.output_dir else pipeline_config.output_dir
    model = resolve_model(args.model)

    output_dir.mkdir(parents=True, exist_ok=True)

    thread_local = threading.local()

    def build_app() -> Any:
        if app_factory is not None:
            return app_factory()
        return build_graph(build_generator(model, pipeline_config))

    def get_app() -> Any:
        app = getattr(thread_local, "app", None)
        if app is None:
            app = build_app()
            thread_local.app = app
        return app

    transcript_paths = iter_transcript_files(transcripts_dir)
    if args.limit is not None:
        transcript_paths = transcript_paths[: args.limit]

    def process_transcript(path: Path) -> NoteResult:
        note_id = path.stem or path.name
        logger.info("Processing %s", path.name)
        try:
            transcript = load_text(path)
        except OSError as exc:
            logger.exception("Cannot read %s: %s", path, exc)
            result = NoteResult(
                note_id=note_id,
                source_file=str(path),
                model=model,
                errors=["transcript_unreadable"],
            )
        else:
            result = run_transcript(transcript, note_id, str(path), model=model, app=get_app())

        _write_note_result(output_dir / f"{note_id}.json", result)
        if args.export_csv and result.note is not None:
            write_export(output_dir / f"{note_id}.csv", result.note, "csv")
        return result

    max_workers = args.max_workers if args.max_workers is not None else pipeline_config.max_workers
    if max_workers < 1:
        max_workers = 1

    results: list[NoteResult] = []
    if max_workers == 1:
        for path in transcript_paths:
            results.append(process_transcript(path))
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(process_transcript, path): path for path in transcript_paths}
            for future in as_completed(futures):
                results.append(future.result())

    results.sort(key=lambda result: result.note_id)

    _write_recommendations_csv(output_dir / "recommendations.csv", results)

    failed = sum(1 for result in results if result.note is None)
    logger.info(
        "Processed %d transcripts (%d failed). Output: %s", len(results), failed, output_dir
    )
    return 0


def _write_note_result(path: Path, result: NoteResult) -> None:
    payload = result.model_dump(mode="json", by_alias=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _write_recommendations_csv(path: Path, results: list[NoteResult]) -> None:
    with path.open("w", newline="", encoding="utf-8-sig") as handle:
        writer = csv.writer(handle)
        writer.writerow(
            [
                "note_id",
                "rank",
                "id",
                "type",
                "priority",
                "title",
                "description",
            ]
        )
        for result in results:
            for rank, item in enumerate(result.recommendations, start=1):
                writer.writerow(
                    [
                        result.note_id,
                        rank,
                        item.id,
                        item.type,
                        item.priority,
                        item.title,
                        item.description,
                    ]
                )


if __name__ == "__main__":
    raise SystemExit(main())
