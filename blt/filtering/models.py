from dataclasses import dataclass, field


@dataclass(frozen=True)
class SeriesDetails:
    """Descriptive tags of one series stored in Orthanc."""

    id: str  # Orthanc series ID
    modality: str
    series_description: str = ""
    series_instance_uid: str = ""


@dataclass(frozen=True)
class AuditRecord:
    """Why a series was discarded."""

    tag: str  # e.g. "Modality"
    value: str  # value of the tag on the discarded series
    reason: str
    series_id: str = ""
    series_instance_uid: str = ""
    series_description: str = ""


@dataclass
class FilterResult:
    """Output of the series filter for one study."""

    kept: list[SeriesDetails] = field(default_factory=list)
    discarded: list[SeriesDetails] = field(default_factory=list)
    audit: list[AuditRecord] = field(default_factory=list)

    @property
    def fully_filtered(self) -> bool:
        """True when no series is left to anonymize (a study without series included)."""
        return not self.kept
