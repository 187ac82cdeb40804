"""A study request under the BLT protocol and its validation (external field names)."""

from dataclasses import dataclass
from typing import Any, ClassVar

from blt.models.exceptions import ValidationError
from blt.models.values import AccessionNumber, StudyDate


@dataclass(frozen=True)
class WorkflowInstance:
    """Identifying fields of a requested study and their de-identified replacements."""

    patient_id: str
    anon_patient_id: str
    patient_name: str
    anon_patient_name: str
    patient_birth_date: StudyDate
    accession_number: AccessionNumber
    anon_accession_number: str
    anon_patient_birth_date: StudyDate

    FIELD_NAMES: ClassVar[dict[str, str]] = {
        "patient_id": "MRN",
        "anon_patient_id": "Anon_PatientID",
        "patient_name": "PatientName",
        "anon_patient_name": "Anon_PatientName",
        "patient_birth_date": "PatientBirthDate",
        "accession_number": "Search_AccessionNumber",
        "anon_accession_number": "Anon_AccessionNumber",
        "anon_patient_birth_date": "Anon_PatientBirthDate",
    }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "WorkflowInstance":
        """Validate a request in its external representation and build an instance.

        Raises:
            ValidationError: on a missing field, a non-string value, an empty
                accession number, or a malformed date.
        """
        if not isinstance(data, dict):
            raise ValidationError("Study request must be an object")
        values = {attr: _require_str(data, key) for attr, key in cls.FIELD_NAMES.items()}
        return cls(
            patient_id=values["patient_id"],
            anon_patient_id=values["anon_patient_id"],
            patient_name=values["patient_name"],
            anon_patient_name=values["anon_patient_name"],
            patient_birth_date=StudyDate(values["patient_birth_date"]),
            accession_number=AccessionNumber(values["accession_number"]),
            anon_accession_number=values["anon_accession_number"],
            anon_patient_birth_date=StudyDate(values["anon_patient_birth_date"]),
        )

    def to_payload(self) -> dict[str, str]:
        return {key: str(getattr(self, attr)) for attr, key in self.FIELD_NAMES.items()}


def _require_str(data: dict[str, Any], key: str) -> str:
    if key not in data:
        raise ValidationError(f"Missing required field: {key}")
    value = data[key]
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string")
    return value
