"""Validated value types for study requests."""

from dataclasses import dataclass

from blt.models.exceptions import ValidationError


@dataclass(frozen=True)
class AccessionNumber:
    """DICOM AccessionNumber. Never empty."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValidationError(
                f"AccessionNumber must be a string, got {type(self.value).__name__}"
            )
        if not self.value:
            raise ValidationError("AccessionNumber must not be empty")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StudyDate:
    """DICOM DA value (YYYYMMDD).

    Accepts ``M/D/YYYY`` as exported by spreadsheets and pads month and day
    to two digits.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValidationError(
                f"StudyDate must be a string, got {type(self.value).__name__}"
            )
        normalized = self._normalize(self.value)
        if len(normalized) != 8 or not (normalized.isascii() and normalized.isdigit()):
            raise ValidationError(f"Invalid DICOM date: {self.value!r}")
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value

    @staticmethod
    def _normalize(raw: str) -> str:
        if "/" not in raw:
            return raw
        parts = raw.split("/")
        if len(parts) < 3:
            return raw
        month, day, year = parts[0], parts[1], parts[2]
        return f"{year}{month.rjust(2, '0')}{day.rjust(2, '0')}"
