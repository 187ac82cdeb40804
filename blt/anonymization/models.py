from dataclasses import dataclass, field


@dataclass(frozen=True)
class AnonymizeRequest:
    """Body of Orthanc's ``POST /studies/{id}/anonymize``."""

    replace: dict[str, str]
    keep: list[str] = field(default_factory=list)
    keep_source: bool = False
    force: bool = True  # required to modify PatientID
    asynchronous: bool = True

    def to_payload(self) -> dict[str, object]:
        return {
            "Replace": dict(self.replace),
            "Keep": list(self.keep),
            "KeepSource": self.keep_source,
            "Force": self.force,
            "Asynchronous": self.asynchronous,
        }
