"""Orthanc REST API response types, parsed from JSON.

Job content is a closed union: one variant per job type the BLT protocol
issues, and ``OtherContent`` for everything else.
Ref: https://orthanc.uclouvain.be/book/users/advanced-rest.html#monitoring-jobs
"""

from dataclasses import dataclass, field
from typing import Any

from blt.orthanc.exceptions import OrthancResponseError

STUDY_INSTANCE_UID_TAG = "0020,000d"


@dataclass(frozen=True)
class IdAndPath:
    """``{"ID": ..., "Path": ...}`` answer of asynchronous and query endpoints."""

    id: str
    path: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "IdAndPath":
        if not isinstance(data, dict) or not isinstance(data.get("ID"), str):
            raise OrthancResponseError(f"Expected an object with a string ID, got {data!r}")
        path = data.get("Path")
        return cls(id=data["ID"], path=path if isinstance(path, str) else "")


@dataclass(frozen=True)
class RetrieveContent:
    """Content of a ``DicomMoveScu`` job (PACS retrieve)."""

    study_instance_uids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ModificationContent:
    """Content of a ``ResourceModification`` job (anonymization)."""

    resource_id: str
    resource_type: str = "Study"
    failed_instances_count: int = 0
    is_anonymization: bool = False


@dataclass(frozen=True)
class PeerStoreContent:
    """Content of an ``OrthancPeerStore`` job (push to peer)."""

    failed_instances_count: int = 0
    instances_count: int = 0
    parent_resources: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class OtherContent:
    """Any job type the BLT protocol does not issue."""

    job_type: str


JobContent = RetrieveContent | ModificationContent | PeerStoreContent | OtherContent


@dataclass(frozen=True)
class JobInfo:
    """Orthanc job detail from ``GET /jobs/{id}``."""

    id: str
    state: str
    content: JobContent
    error_description: str = ""

    @classmethod
    def from_json(cls, data: Any) -> "JobInfo":
        if not isinstance(data, dict):
            raise OrthancResponseError(f"Job must be an object, got {type(data).__name__}")
        job_id = data.get("ID")
        if not isinstance(job_id, str):
            raise OrthancResponseError("Job has no ID")
        job_type = data.get("Type")
        raw_content = data.get("Content")
        if not isinstance(raw_content, dict):
            raw_content = {}
        return cls(
            id=job_id,
            state=str(data.get("State", "")),
            content=parse_job_content(str(job_type or ""), raw_content),
            error_description=str(data.get("ErrorDescription", "")),
        )


def parse_job_content(job_type: str, content: dict[str, Any]) -> JobContent:
    if job_type == "DicomMoveScu":
        return RetrieveContent(study_instance_uids=_study_instance_uids(content))
    if job_type == "ResourceModification":
        resource_id = content.get("ID")
        if not isinstance(resource_id, str):
            raise OrthancResponseError("ResourceModification job content has no ID")
        return ModificationContent(
            resource_id=resource_id,
            resource_type=str(content.get("Type", "Study")),
            failed_instances_count=_int(content, "FailedInstancesCount"),
            is_anonymization=bool(content.get("IsAnonymization", False)),
        )
    if job_type == "OrthancPeerStore":
        parents = content.get("ParentResources", [])
        return PeerStoreContent(
            failed_instances_count=_int(content, "FailedInstancesCount"),
            instances_count=_int(content, "InstancesCount"),
            parent_resources=[p for p in parents if isinstance(p, str)]
            if isinstance(parents, list)
            else [],
        )
    return OtherContent(job_type=job_type)


def _study_instance_uids(content: dict[str, Any]) -> list[str]:
    queries = content.get("Query", [])
    if not isinstance(queries, list):
        return []
    uids: list[str] = []
    for query in queries:
        if not isinstance(query, dict):
            continue
        for tag, value in query.items():
            if tag.lower() == STUDY_INSTANCE_UID_TAG and isinstance(value, str) and value:
                uids.append(value)
    return uids


def _int(content: dict[str, Any], key: str) -> int:
    value = content.get(key, 0)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise OrthancResponseError(f"'{key}' must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class SeriesOfStudy:
    """A study stored in Orthanc and the IDs of its series."""

    study_id: str
    series_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "SeriesOfStudy":
        if not isinstance(data, dict) or not isinstance(data.get("ID"), str):
            raise OrthancResponseError(f"Expected a study with an ID, got {data!r}")
        series = data.get("Series", data.get("Children", []))
        if not isinstance(series, list):
            raise OrthancResponseError(f"Study {data['ID']} has no series list")
        return cls(study_id=data["ID"], series_ids=[s for s in series if isinstance(s, str)])


@dataclass(frozen=True)
class Change:
    """One entry of Orthanc's ``/changes`` log."""

    seq: int
    change_type: str
    resource_id: str | None = None
    path: str = ""


@dataclass(frozen=True)
class ChangesPage:
    """Answer of ``GET /changes``."""

    changes: list[Change]
    last: int
    done: bool

    @classmethod
    def from_json(cls, data: Any) -> "ChangesPage":
        if not isinstance(data, dict):
            raise OrthancResponseError("Changes answer must be an object")
        changes: list[Change] = []
        for raw in data.get("Changes", []):
            if not isinstance(raw, dict):
                continue
            resource_id = raw.get("ID")
            changes.append(
                Change(
                    seq=int(raw.get("Seq", 0)),
                    change_type=str(raw.get("ChangeType", "")),
                    resource_id=resource_id if isinstance(resource_id, str) else None,
                    path=str(raw.get("Path", "")),
                )
            )
        try:
            last = int(data.get("Last", 0))
        except (TypeError, ValueError) as exc:
            raise OrthancResponseError("Changes answer has a non-integer 'Last'") from exc
        return cls(changes=changes, last=last, done=bool(data.get("Done", True)))
