from __future__ import annotations

from typing import Any, Dict


def _string() -> Dict[str, Any]:
    return {"type": "string"}


def _string_list() -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}}


def _object(properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
    }


# Vertex structured output accepts the OpenAPI subset, so no additionalProperties.
RESPONSE_SCHEMA: Dict[str, Any] = _object(
    {
        "summary": _string(),
        "patientInfo": _object(
            {
                "chiefComplaint": _string(),
                "duration": _string(),
            }
        ),
        "soap": _object(
            {
                "subjective": _object(
                    {
                        "presentIllness": _string(),
                        "symptoms": _string_list(),
                        "severity": _string(),
                        "onset": _string(),
                        "associatedSymptoms": _string_list(),
                        "pastMedicalHistory": _string(),
                        "medications": _string_list(),
                    }
                ),
                "objective": _object(
                    {
                        "vitalSigns": _object(
                            {
                                "bloodPressure": _string(),
                                "pulse": _string(),
                                "temperature": _string(),
                                "respiratoryRate": _string(),
                            }
                        ),
                        "physicalExam": _string(),
                        "laboratoryFindings": _string(),
                    }
                ),
                "assessment": _object(
                    {
                        "diagnosis": _string(),
                        "icd10": _string(),
                        "differentialDiagnosis": _string_list(),
                        "clinicalImpression": _string(),
                    }
                ),
                "plan": _object(
                    {
                        "treatment": _string(),
                        "medications": {
                            "type": "array",
                            "items": _object(
                                {
                                    "name": _string(),
                                    "dosage": _string(),
                                    "frequency": _string(),
                                    "duration": _string(),
                                }
                            ),
                        },
                        "tests": _string_list(),
                        "referral": _string(),
                        "followUp": _string(),
                        "patientEducation": _string(),
                    }
                ),
            }
        ),
    }
)
