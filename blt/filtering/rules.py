from typing import ClassVar

from blt.filtering.base import FilterRule
from blt.filtering.models import AuditRecord, SeriesDetails


class ModalityRule(FilterRule):
    """Discard every series acquired with a forbidden modality."""

    DEFAULT_REASONS: ClassVar[dict[str, str]] = {
        "US": "ultrasound images should not be uploaded to BLT",
    }

    def __init__(self, forbidden_modality: str, reason: str | None = None) -> None:
        self._forbidden = forbidden_modality.strip().upper()
        self._reason = reason or self.DEFAULT_REASONS.get(
            self._forbidden,
            f"{self._forbidden} series should not be uploaded to BLT",
        )

    def evaluate(self, series: SeriesDetails) -> AuditRecord | None:
        if series.modality != self._forbidden:
            return None
        return AuditRecord(
            tag="Modality",
            value=series.modality,
            reason=self._reason,
            series_id=series.id,
            series_instance_uid=series.series_instance_uid,
            series_description=series.series_description,
        )
