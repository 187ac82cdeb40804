from dataclasses import dataclass
from enum import Enum

from blt.models.study import WorkflowInstance


class Stage(str, Enum):
    """Correlation table a job id belongs to."""

    QUERY = "query"
    RETRIEVE = "retrieve"
    ANONYMIZE = "anonymize"
    PUSH = "push"


class WorkflowStage(str, Enum):
    """Lifecycle of one accession number, for status reporting."""

    REQUESTED = "Requested"
    RETRIEVAL_IN_FLIGHT = "RetrievalInFlight"
    FILTERING = "Filtering"
    FILTERED = "Filtered"
    ABORTED = "Aborted"
    ANONYMIZATION_IN_FLIGHT = "AnonymizationInFlight"
    PUSH_IN_FLIGHT = "PushInFlight"
    CLEANED = "Cleaned"
    STUCK = "Stuck"


@dataclass(frozen=True)
class StudyState:
    """Snapshot of one workflow instance and its correlation ids."""

    instance: WorkflowInstance
    query_id: str
    retrieve_job_id: str
    anonymize_job_id: str | None = None
    push_job_id: str | None = None
    stage: WorkflowStage = WorkflowStage.REQUESTED

    def to_payload(self) -> dict[str, object]:
        return {
            "Info": self.instance.to_payload(),
            "QueryID": self.query_id,
            "RetrieveJobID": self.retrieve_job_id,
            "AnonymizationJobID": self.anonymize_job_id,
            "PushJobID": self.push_job_id,
            "Stage": self.stage.value,
        }
