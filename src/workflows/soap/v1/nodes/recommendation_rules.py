from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from workflows.soap.v1.schemas.domain import (
    ClinicalNote,
    Priority,
    Recommendation,
    RecommendationType,
    Soap,
)


MAX_RECOMMENDATIONS = 5
PRIORITY_ORDER: Dict[str, int] = {"high": 0, "medium": 1, "low": 2}

LIST_SEPARATOR = "、"
# Matched as plain substrings against free text, so "重くない" still counts.
SEVERITY_MARKERS = ("重", "強")

DIFFERENTIAL_SHOWN = 3
TESTS_SHOWN = 3
CURRENT_MEDICATIONS_SHOWN = 2
ASSOCIATED_SYMPTOMS_THRESHOLD = 2


def summarize_list(items: Optional[Sequence[str]], n: int) -> Tuple[List[str], int]:
    if not items:
        return [], 0
    return list(items[:n]), len(items)


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


@dataclass(frozen=True)
class RecommendationRule:
    id: str
    type: RecommendationType
    title: str
    priority: Priority
    icon_name: str
    applies: Callable[[Soap], bool]
    describe: Callable[[Soap], str]

    def evaluate(self, soap: Soap) -> Optional[Recommendation]:
        if not self.applies(soap):
            return None
        return Recommendation(
            id=self.id,
            type=self.type,
            title=self.title,
            description=self.describe(soap),
            priority=self.priority,
            icon_name=self.icon_name,
        )


def _differential(soap: Soap) -> List[str]:
    return (soap.assessment.differential_diagnosis if soap.assessment else None) or []


def _severity(soap: Soap) -> str:
    return (soap.subjective.severity if soap.subjective else None) or ""


def _tests(soap: Soap) -> List[str]:
    return (soap.plan.tests if soap.plan else None) or []


def _follow_up(soap: Soap) -> str:
    return (soap.plan.follow_up if soap.plan else None) or ""


def _patient_education(soap: Soap) -> str:
    return (soap.plan.patient_education if soap.plan else None) or ""


def _current_medications(soap: Soap) -> List[str]:
    return (soap.subjective.medications if soap.subjective else None) or []


def _has_new_prescriptions(soap: Soap) -> bool:
    return bool(soap.plan and soap.plan.medications)


def _associated_symptoms(soap: Soap) -> List[str]:
    return (soap.subjective.associated_symptoms if soap.subjective else None) or []


def _describe_differential(soap: Soap) -> str:
    shown, total = summarize_list(_differential(soap), DIFFERENTIAL_SHOWN)
    return (
        f"{LIST_SEPARATOR.join(shown)}など{total}つの鑑別診断があります。"
        "除外診断のための追加情報を検討してください。"
    )


def _describe_tests(soap: Soap) -> str:
    shown = summarize_list(_tests(soap), TESTS_SHOWN)[0]
    return (
        f"提案された検査: {LIST_SEPARATOR.join(shown)}。"
        "診断確定のため、これらの検査を検討してください。"
    )


def _describe_follow_up(soap: Soap) -> str:
    return (
        f"推奨フォローアップ: {_follow_up(soap)}。"
        "症状の経過観察と治療効果の評価のため、フォローアップ予定を確認してください。"
    )


def _describe_drug_interaction(soap: Soap) -> str:
    shown = summarize_list(_current_medications(soap), CURRENT_MEDICATIONS_SHOWN)[0]
    return (
        "新規処方薬と既存薬の相互作用をご確認ください。"
        f"現在服用中: {LIST_SEPARATOR.join(shown)}"
    )


def _describe_associated_symptoms(soap: Soap) -> str:
    total = len(_associated_symptoms(soap))
    return (
        f"{total}つの随伴症状があります。"
        "全身性疾患や複合的な病態の可能性を検討してください。"
    )


SEVERITY_WARNING_TEXT = (
    "患者は重度の症状を報告しています。"
    "バイタルサインの継続的なモニタリングと、必要に応じて専門医への紹介を検討してください。"
)


# Evaluation order doubles as the tie-break within a priority level.
RULES: Tuple[RecommendationRule, ...] = (
    RecommendationRule(
        id="differential-check",
        type="differential",
        title="鑑別診断の確認",
        priority="high",
        icon_name="ClipboardDocumentCheckIcon",
        applies=lambda soap: len(_differential(soap)) > 0,
        describe=_describe_differential,
    ),
    RecommendationRule(
        id="severity-warning",
        type="warning",
        title="重症度に注意",
        priority="high",
        icon_name="ExclamationTriangleIcon",
        applies=lambda soap: _has_text(_severity(soap))
        and any(marker in _severity(soap) for marker in SEVERITY_MARKERS),
        describe=lambda soap: SEVERITY_WARNING_TEXT,
    ),
    RecommendationRule(
        id="tests-suggested",
        type="test",
        title="追加検査の実施",
        priority="medium",
        icon_name="BeakerIcon",
        applies=lambda soap: len(_tests(soap)) > 0,
        describe=_describe_tests,
    ),
    RecommendationRule(
        id="followup-reminder",
        type="followup",
        title="フォローアップの設定",
        priority="medium",
        icon_name="ArrowPathIcon",
        applies=lambda soap: _has_text(_follow_up(soap)),
        describe=_describe_follow_up,
    ),
    RecommendationRule(
        id="patient-education",
        type="education",
        title="患者への説明事項",
        priority="low",
        icon_name="UserGroupIcon",
        applies=lambda soap: _has_text(_patient_education(soap)),
        describe=_patient_education,
    ),
    RecommendationRule(
        id="drug-interaction",
        type="warning",
        title="薬物相互作用の確認",
        priority="high",
        icon_name="ExclamationTriangleIcon",
        applies=lambda soap: _has_new_prescriptions(soap)
        and len(_current_medications(soap)) > 0,
        describe=_describe_drug_interaction,
    ),
    RecommendationRule(
        id="associated-symptoms",
        type="differential",
        title="複数症状の包括的評価",
        priority="medium",
        icon_name="LightBulbIcon",
        applies=lambda soap: len(_associated_symptoms(soap)) > ASSOCIATED_SYMPTOMS_THRESHOLD,
        describe=_describe_associated_symptoms,
    ),
)


def _coerce_note(note: Any) -> Optional[ClinicalNote]:
    if note is None or isinstance(note, ClinicalNote):
        return note
    if isinstance(note, Mapping):
        try:
            return ClinicalNote.model_validate(dict(note))
        except ValidationError:
            return None
    return None


def generate_recommendations(
    note: ClinicalNote | Mapping[str, Any] | None,
    rules: Sequence[RecommendationRule] = RULES,
) -> List[Recommendation]:
    """Derive ranked advisory items for a clinician from a clinical note.

    Every rule is evaluated independently against the SOAP body; the hits are
    stable-sorted by priority (high, medium, low) so rules of equal priority
    keep their evaluation order, and only the first ``MAX_RECOMMENDATIONS``
    survive. A missing note or a note without a SOAP body yields ``[]``.
    """
    clinical_note = _coerce_note(note)
    if clinical_note is None or clinical_note.soap is None:
        return []

    soap = clinical_note.soap
    candidates: List[Recommendation] = []
    for rule in rules:
        recommendation = rule.evaluate(soap)
        if recommendation is not None:
            candidates.append(recommendation)

    ranked = sorted(candidates, key=lambda item: PRIORITY_ORDER[item.priority])
    return ranked[:MAX_RECOMMENDATIONS]
