from concurrent.futures import Future
from dataclasses import dataclass, field

from blt.dispatcher.submitter import SubmissionResult
from blt.models.study import WorkflowInstance
from blt.store.models import StudyState


@dataclass
class SubmitStudy:
    """Start query and retrieve for a study request and record it."""

    instance: WorkflowInstance
    reply: "Future[SubmissionResult]" = field(default_factory=Future)


@dataclass(frozen=True)
class JobSucceeded:
    """Orthanc reported that a job (of any kind) reached success."""

    job_id: str


@dataclass
class ListStudies:
    reply: "Future[list[StudyState]]" = field(default_factory=Future)


@dataclass(frozen=True)
class Stop:
    pass


Message = SubmitStudy | JobSucceeded | ListStudies | Stop
