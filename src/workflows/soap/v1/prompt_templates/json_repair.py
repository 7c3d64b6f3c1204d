REPAIR_PROMPT_TEMPLATE = """You repair malformed JSON into valid JSON.
Return ONLY one JSON object describing a clinical SOAP note with this shape:
{{
  "summary": "string",
  "patientInfo": {{"chiefComplaint": "string", "duration": "string"}},
  "soap": {{
    "subjective": {{"presentIllness": "string", "symptoms": ["string"], "severity": "string", "onset": "string", "associatedSymptoms": ["string"], "pastMedicalHistory": "string", "medications": ["string"]}},
    "objective": {{"vitalSigns": {{"bloodPressure": "string", "pulse": "string", "temperature": "string", "respiratoryRate": "string"}}, "physicalExam": "string", "laboratoryFindings": "string"}},
    "assessment": {{"diagnosis": "string", "icd10": "string", "differentialDiagnosis": ["string"], "clinicalImpression": "string"}},
    "plan": {{"treatment": "string", "medications": [{{"name": "string", "dosage": "string", "frequency": "string", "duration": "string"}}], "tests": ["string"], "referral": "string", "followUp": "string", "patientEducation": "string"}}
  }}
}}

Keep every value exactly as written in the raw response, including Japanese text.
If you cannot repair, return {{"soap": null}}.

Raw response:
\"\"\"{raw}\"\"\"
"""
