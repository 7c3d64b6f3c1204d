import copy
import itertools

import pytest

from workflows.soap.v1.nodes.recommendation_rules import (
    MAX_RECOMMENDATIONS,
    PRIORITY_ORDER,
    RULES,
    SEVERITY_WARNING_TEXT,
    generate_recommendations,
    summarize_list,
)
from workflows.soap.v1.schemas.domain import ClinicalNote


RULE_IDS = [rule.id for rule in RULES]


def _note(subjective=None, assessment=None, plan=None, objective=None):
    return ClinicalNote.model_validate(
        {
            "summary": "",
            "patientInfo": {"chiefComplaint": "頭痛", "duration": "3日"},
            "soap": {
                "subjective": subjective or {},
                "objective": objective or {},
                "assessment": assessment or {},
                "plan": plan or {},
            },
        }
    )


def _ids(recommendations):
    return [item.id for item in recommendations]


def _full_note():
    return _note(
        subjective={
            "severity": "重度",
            "medications": ["既存薬"],
            "associatedSymptoms": ["症状1", "症状2", "症状3"],
        },
        assessment={"differentialDiagnosis": ["片頭痛", "緊張型頭痛", "群発頭痛"]},
        plan={
            "tests": ["血液検査"],
            "followUp": "フォロー",
            "patientEducation": "教育",
            "medications": [{"name": "薬", "dosage": "1錠", "frequency": "1日2回", "duration": "5日"}],
        },
    )


def test_rule_table_order():
    assert RULE_IDS == [
        "differential-check",
        "severity-warning",
        "tests-suggested",
        "followup-reminder",
        "patient-education",
        "drug-interaction",
        "associated-symptoms",
    ]


@pytest.mark.parametrize(
    "note",
    [
        None,
        {},
        {"summary": "要約のみ"},
        {"soap": None},
        {"soap": "記載なし"},
        ClinicalNote(),
        ClinicalNote(summary="x"),
    ],
)
def test_absent_note_or_soap_yields_nothing(note):
    assert generate_recommendations(note) == []


def test_unrecognised_input_yields_nothing():
    assert generate_recommendations("not a note") == []
    assert generate_recommendations(["soap"]) == []


def test_malformed_nested_field_only_suppresses_its_rule():
    payload = {
        "soap": {
            "plan": {"followUp": "2週間後", "tests": {"lab": "血液検査"}},
            "assessment": {"differentialDiagnosis": ["片頭痛"]},
        }
    }
    assert _ids(generate_recommendations(payload)) == [
        "differential-check",
        "followup-reminder",
    ]


@pytest.mark.parametrize(
    "plan",
    [
        {"tests": 5, "followUp": "1週間後"},
        {"tests": {"lab": "CT"}, "followUp": "1週間後"},
        {"followUp": {"when": "来週"}, "patientEducation": "安静に"},
        {"medications": 3, "patientEducation": "安静に"},
    ],
)
def test_unusable_field_shapes_are_ignored(plan):
    recommendations = generate_recommendations({"soap": {"plan": plan}})
    assert len(recommendations) == 1
    assert recommendations[0].id in {"followup-reminder", "patient-education"}


def test_unusable_list_items_are_dropped():
    recommendations = generate_recommendations(
        {"soap": {"subjective": {"associatedSymptoms": ["発熱", {"x": 1}, "咳", None, "頭痛"]}}}
    )
    assert _ids(recommendations) == ["associated-symptoms"]
    assert recommendations[0].description.startswith("3つの随伴症状")


def test_empty_soap_sections_yield_nothing():
    assert generate_recommendations(_note()) == []
    assert generate_recommendations({"soap": {}}) == []


def test_all_rules_fire_and_output_is_truncated():
    recommendations = generate_recommendations(_full_note())

    assert len(recommendations) == MAX_RECOMMENDATIONS
    assert recommendations[0].priority == "high"
    assert _ids(recommendations) == [
        "differential-check",
        "severity-warning",
        "drug-interaction",
        "tests-suggested",
        "followup-reminder",
    ]


def test_follow_up_only():
    recommendations = generate_recommendations(_note(plan={"followUp": "1週間後に再診"}))

    assert len(recommendations) == 1
    item = recommendations[0]
    assert item.id == "followup-reminder"
    assert item.priority == "medium"
    assert item.type == "followup"
    assert item.title == "フォローアップの設定"
    assert item.icon_name == "ArrowPathIcon"
    assert item.description.startswith("推奨フォローアップ: 1週間後に再診。")


def test_blank_follow_up_does_not_fire():
    assert generate_recommendations(_note(plan={"followUp": "   "})) == []
    assert generate_recommendations(_note(plan={"followUp": ""})) == []


@pytest.mark.parametrize(
    "symptoms, fires",
    [
        ([], False),
        (["発熱"], False),
        (["発熱", "咳"], False),
        (["発熱", "咳", "倦怠感"], True),
        (["発熱", "咳", "倦怠感", "悪寒"], True),
    ],
)
def test_associated_symptoms_threshold(symptoms, fires):
    recommendations = generate_recommendations(
        _note(subjective={"associatedSymptoms": symptoms})
    )
    hits = [item for item in recommendations if item.id == "associated-symptoms"]
    assert len(hits) == (1 if fires else 0)
    if fires:
        assert hits[0].description.startswith(f"{len(symptoms)}つの随伴症状があります。")
        assert hits[0].type == "differential"
        assert hits[0].priority == "medium"


def test_three_associated_symptoms_mention_count():
    recommendations = generate_recommendations(
        _note(subjective={"associatedSymptoms": ["症状1", "症状2", "症状3"]})
    )
    assert _ids(recommendations) == ["associated-symptoms"]
    assert "3つの随伴症状" in recommendations[0].description


@pytest.mark.parametrize(
    "severity, fires",
    [
        ("重度", True),
        ("強い痛み", True),
        ("中等度から重度", True),
        # Substring matching keeps negated phrasing as a hit.
        ("重くない", True),
        ("軽度", False),
        ("mild", False),
        ("中等度", False),
        ("", False),
        ("   ", False),
        (None, False),
    ],
)
def test_severity_warning(severity, fires):
    recommendations = generate_recommendations(_note(subjective={"severity": severity}))
    assert ("severity-warning" in _ids(recommendations)) is fires
    if fires:
        assert recommendations[0].description == SEVERITY_WARNING_TEXT
        assert recommendations[0].type == "warning"


def test_differential_lists_all_when_three_or_fewer():
    recommendations = generate_recommendations(
        _note(assessment={"differentialDiagnosis": ["片頭痛", "緊張型頭痛", "群発頭痛"]})
    )
    assert _ids(recommendations) == ["differential-check"]
    assert recommendations[0].description == (
        "片頭痛、緊張型頭痛、群発頭痛など3つの鑑別診断があります。"
        "除外診断のための追加情報を検討してください。"
    )


def test_differential_truncates_to_three_and_reports_total():
    diagnoses = ["片頭痛", "緊張型頭痛", "群発頭痛", "副鼻腔炎", "髄膜炎"]
    recommendations = generate_recommendations(
        _note(assessment={"differentialDiagnosis": diagnoses})
    )
    description = recommendations[0].description
    assert description.startswith("片頭痛、緊張型頭痛、群発頭痛など5つの鑑別診断")
    assert "副鼻腔炎" not in description
    assert "髄膜炎" not in description


def test_empty_differential_does_not_fire():
    assert generate_recommendations(_note(assessment={"differentialDiagnosis": []})) == []


def test_tests_description_shows_first_three():
    recommendations = generate_recommendations(
        _note(plan={"tests": ["血液検査", "尿検査", "CT", "MRI"]})
    )
    assert _ids(recommendations) == ["tests-suggested"]
    assert recommendations[0].description == (
        "提案された検査: 血液検査、尿検査、CT。"
        "診断確定のため、これらの検査を検討してください。"
    )


def test_patient_education_description_is_verbatim():
    recommendations = generate_recommendations(
        _note(plan={"patientEducation": "水分を十分に摂ってください"})
    )
    assert _ids(recommendations) == ["patient-education"]
    assert recommendations[0].description == "水分を十分に摂ってください"
    assert recommendations[0].priority == "low"


def test_drug_interaction_requires_both_medication_lists():
    only_new = _note(plan={"medications": [{"name": "ロキソプロフェン"}]})
    only_current = _note(subjective={"medications": ["アムロジピン"]})
    assert generate_recommendations(only_new) == []
    assert generate_recommendations(only_current) == []

    both = _note(
        subjective={"medications": ["アムロジピン", "メトホルミン", "アスピリン"]},
        plan={"medications": ["ロキソプロフェン"]},
    )
    recommendations = generate_recommendations(both)
    assert _ids(recommendations) == ["drug-interaction"]
    description = recommendations[0].description
    assert description.endswith("現在服用中: アムロジピン、メトホルミン")
    assert "アスピリン" not in description


def test_equal_priority_keeps_rule_order():
    note = _note(
        subjective={"associatedSymptoms": ["a", "b", "c"]},
        plan={"tests": ["血液検査"], "followUp": "2週間後"},
    )
    assert _ids(generate_recommendations(note)) == [
        "tests-suggested",
        "followup-reminder",
        "associated-symptoms",
    ]


def test_priority_beats_rule_order():
    note = _note(
        subjective={"medications": ["既存薬"]},
        plan={"patientEducation": "安静に", "medications": ["新薬"], "tests": ["CT"]},
    )
    assert _ids(generate_recommendations(note)) == [
        "drug-interaction",
        "tests-suggested",
        "patient-education",
    ]


def test_idempotent():
    note = _full_note()
    assert generate_recommendations(note) == generate_recommendations(note)


def test_accepts_camel_case_mapping_without_mutating_it():
    payload = {
        "soap": {
            "subjective": {"severity": "強い", "medications": ["既存薬"]},
            "plan": {"followUp": "1週間後", "medications": [{"name": "薬"}]},
        }
    }
    snapshot = copy.deepcopy(payload)

    recommendations = generate_recommendations(payload)

    assert payload == snapshot
    assert _ids(recommendations) == [
        "severity-warning",
        "drug-interaction",
        "followup-reminder",
    ]


def test_does_not_mutate_note_model():
    note = _full_note()
    snapshot = note.model_dump()
    generate_recommendations(note)
    assert note.model_dump() == snapshot


def test_serialises_with_camel_case_keys():
    item = generate_recommendations(_note(plan={"followUp": "x"}))[0]
    payload = item.model_dump(by_alias=True)
    assert set(payload) == {"id", "type", "title", "description", "priority", "iconName"}


def _note_for_rules(active):
    subjective = {}
    assessment = {}
    plan = {}
    if "differential-check" in active:
        assessment["differentialDiagnosis"] = ["片頭痛"]
    if "severity-warning" in active:
        subjective["severity"] = "重度"
    else:
        subjective["severity"] = "軽度"
    if "tests-suggested" in active:
        plan["tests"] = ["血液検査"]
    if "followup-reminder" in active:
        plan["followUp"] = "1週間後"
    if "patient-education" in active:
        plan["patientEducation"] = "安静"
    if "drug-interaction" in active:
        subjective["medications"] = ["既存薬"]
        plan["medications"] = [{"name": "新薬"}]
    else:
        # Current medications alone never trigger the interaction check.
        subjective["medications"] = ["既存薬"]
    if "associated-symptoms" in active:
        subjective["associatedSymptoms"] = ["a", "b", "c"]
    else:
        subjective["associatedSymptoms"] = ["a", "b"]
    return _note(subjective=subjective, assessment=assessment, plan=plan)


RULE_COMBINATIONS = [
    frozenset(combo)
    for size in range(len(RULES) + 1)
    for combo in itertools.combinations(RULE_IDS, size)
]


@pytest.mark.parametrize("active", RULE_COMBINATIONS, ids=lambda combo: "+".join(sorted(combo)) or "none")
def test_rule_combinations(active):
    recommendations = generate_recommendations(_note_for_rules(active))

    priorities = {rule.id: rule.priority for rule in RULES}
    expected = sorted(
        (rule_id for rule_id in RULE_IDS if rule_id in active),
        key=lambda rule_id: PRIORITY_ORDER[priorities[rule_id]],
    )[:MAX_RECOMMENDATIONS]

    assert _ids(recommendations) == expected
    assert len(recommendations) <= MAX_RECOMMENDATIONS
    ranks = [PRIORITY_ORDER[item.priority] for item in recommendations]
    assert ranks == sorted(ranks)
    assert len(set(_ids(recommendations))) == len(recommendations)


def test_summarize_list():
    assert summarize_list(None, 3) == ([], 0)
    assert summarize_list([], 3) == ([], 0)
    assert summarize_list(["a", "b"], 3) == (["a", "b"], 2)
    assert summarize_list(["a", "b", "c", "d"], 3) == (["a", "b", "c"], 4)
