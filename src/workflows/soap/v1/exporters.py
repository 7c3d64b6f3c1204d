from __future__ import annotations

import csv
import io
import json
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import List, Literal, Optional, Sequence

from pydantic import ValidationError

from workflows.soap.v1.nodes.text_utils import timestamp_for_filename
from workflows.soap.v1.schemas.domain import (
    Assessment,
    ClinicalNote,
    Objective,
    PatientInfo,
    Plan,
    PrescribedMedication,
    Subjective,
    VitalSigns,
)


ExportFormat = Literal["json", "csv", "text"]

CSV_BOM = "\ufeff"
_EXTENSIONS = {"json": "json", "csv": "csv", "text": "txt"}
MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv;charset=utf-8",
    "text": "text/plain;charset=utf-8",
}

IMPORT_EMPTY_FILE = "ファイルの内容が空です。"
IMPORT_NOT_OBJECT = "無効なJSON形式です。"
IMPORT_SYNTAX = "ファイルの読み込みに失敗しました。正しいJSON形式のSOAPカルテファイルか確認してください。"
IMPORT_MISSING_ROOT = "SOAPノート形式が正しくありません。soapまたはpatientInfoが見つかりません。"
IMPORT_MISSING_SECTIONS = "必須のSOAPセクション（S/O/A/P）が不足しています。"
IMPORT_BAD_SECTIONS = "SOAPセクションの構造が正しくありません。"


class NoteImportError(ValueError):
    pass


def _is_missing(value: object) -> bool:
    # Empty objects count as present; only null-ish scalars are missing.
    return value is None or value is False or value == "" or value == 0


def _join(items: Optional[Sequence[str]], separator: str = ", ") -> str:
    return separator.join(items) if items else ""


def _format_medication(medication: PrescribedMedication) -> str:
    parts = [medication.name, medication.dosage, medication.frequency, medication.duration]
    return " ".join(part for part in parts if part)


def note_to_csv_rows(note: ClinicalNote) -> List[List[str]]:
    info = note.patient_info or PatientInfo()
    soap = note.soap
    subjective = (soap.subjective if soap else None) or Subjective()
    objective = (soap.objective if soap else None) or Objective()
    vitals = objective.vital_signs or VitalSigns()
    assessment = (soap.assessment if soap else None) or Assessment()
    plan = (soap.plan if soap else None) or Plan()

    return [
        ["項目", "内容"],
        ["要約", note.summary or ""],
        ["主訴", info.chief_complaint or ""],
        ["期間", info.duration or ""],
        ["現病歴", subjective.present_illness or ""],
        ["症状", _join(subjective.symptoms)],
        ["重症度", subjective.severity or ""],
        ["発症", subjective.onset or ""],
        ["随伴症状", _join(subjective.associated_symptoms)],
        ["既往歴", subjective.past_medical_history or ""],
        ["内服薬", _join(subjective.medications)],
        ["血圧", vitals.blood_pressure or ""],
        ["脈拍", vitals.pulse or ""],
        ["体温", vitals.temperature or ""],
        ["呼吸数", vitals.respiratory_rate or ""],
        ["身体所見", objective.physical_exam or ""],
        ["検査所見", objective.laboratory_findings or ""],
        ["診断名", assessment.diagnosis or ""],
        ["ICD-10", assessment.icd10 or ""],
        ["鑑別診断", _join(assessment.differential_diagnosis)],
        ["臨床的印象", assessment.clinical_impression or ""],
        ["治療方針", plan.treatment or ""],
        ["処方薬", "; ".join(_format_medication(med) for med in plan.medications or [])],
        ["検査", _join(plan.tests)],
        ["紹介", plan.referral or ""],
        ["フォローアップ", plan.follow_up or ""],
        ["患者教育", plan.patient_education or ""],
    ]


def export_note_csv(note: ClinicalNote) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(note_to_csv_rows(note))
    return buffer.getvalue().rstrip("\n")


def export_note_json(note: ClinicalNote) -> str:
    payload = note.model_dump(mode="json", by_alias=True)
    return json.dumps(payload, ensure_ascii=False, indent=2)


def note_to_plain_text(note: ClinicalNote) -> str:
    soap = note.soap
    if soap is None:
        return ""
    sections: List[str] = []
    if soap.subjective and soap.subjective.present_illness:
        sections.append(f"主観的情報: {soap.subjective.present_illness}")
    if soap.objective and soap.objective.physical_exam:
        sections.append(f"客観的情報: {soap.objective.physical_exam}")
    if soap.assessment and soap.assessment.diagnosis:
        sections.append(f"評価: {soap.assessment.diagnosis}")
    if soap.plan and soap.plan.treatment:
        sections.append(f"計画: {soap.plan.treatment}")
    return "\n".join(sections)


def export_note(note: ClinicalNote, export_format: ExportFormat) -> str:
    if export_format == "json":
        return export_note_json(note)
    if export_format == "csv":
        return export_note_csv(note)
    if export_format == "text":
        return note_to_plain_text(note)
    raise ValueError(f"Unsupported export format: {export_format}")


def export_filename(export_format: ExportFormat, now: Optional[datetime] = None) -> str:
    return f"soap_note_{timestamp_for_filename(now)}.{_EXTENSIONS[export_format]}"


def write_export(path: Path, note: ClinicalNote, export_format: ExportFormat) -> None:
    content = export_note(note, export_format)
    if export_format == "csv":
        # Excel needs the BOM to detect UTF-8.
        content = CSV_BOM + content
    path.write_text(content, encoding="utf-8")


def import_note_json(content: str) -> ClinicalNote:
    if not content or not content.strip():
        raise NoteImportError(IMPORT_EMPTY_FILE)
    try:
        imported = json.loads(content.lstrip(CSV_BOM))
    except json.JSONDecodeError as exc:
        raise NoteImportError(IMPORT_SYNTAX) from exc

    if not isinstance(imported, Mapping):
        raise NoteImportError(IMPORT_NOT_OBJECT)
    if _is_missing(imported.get("soap")) or _is_missing(imported.get("patientInfo")):
        raise NoteImportError(IMPORT_MISSING_ROOT)

    soap = imported["soap"]
    if not isinstance(soap, Mapping):
        raise NoteImportError(IMPORT_BAD_SECTIONS)
    sections = [soap.get(key) for key in ("subjective", "objective", "assessment", "plan")]
    if any(_is_missing(section) for section in sections):
        raise NoteImportError(IMPORT_MISSING_SECTIONS)
    if not all(isinstance(section, Mapping) for section in sections):
        raise NoteImportError(IMPORT_BAD_SECTIONS)

    try:
        return ClinicalNote.model_validate(imported)
    except ValidationError as exc:
        raise NoteImportError(IMPORT_BAD_SECTIONS) from exc
