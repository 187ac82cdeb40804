"""In-process, in-memory database of BLT studies being processed.

Not thread-safe on purpose: a single consumer (``WorkflowActor``) owns it.
"""

from typing import NoReturn

from blt.logging.logger import Log
from blt.models.study import WorkflowInstance
from blt.models.values import AccessionNumber
from blt.store.correlation import JobCorrelation
from blt.store.exceptions import InternalConsistencyFault
from blt.store.models import Stage, StudyState, WorkflowStage


class WorkflowStore:
    """Workflow instances keyed by AccessionNumber plus one correlation table per stage."""

    def __init__(self, capacity: int = 1000) -> None:
        # dicts cannot be pre-sized; the hint is only reported
        self._capacity = capacity
        self._studies: dict[AccessionNumber, WorkflowInstance] = {}
        self._stages: dict[AccessionNumber, WorkflowStage] = {}
        self._handled_jobs: set[str] = set()
        self._queries = JobCorrelation(Stage.QUERY.value)
        self._retrieve_jobs = JobCorrelation(Stage.RETRIEVE.value)
        self._anonymize_jobs = JobCorrelation(Stage.ANONYMIZE.value)
        self._push_jobs = JobCorrelation(Stage.PUSH.value)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._studies)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def add_study(
        self,
        instance: WorkflowInstance,
        query_id: str,
        retrieve_job_id: str,
    ) -> None:
        """Record a study request with its query and retrieve ids.

        A second request for the same AccessionNumber overwrites the first
        (last write wins) and is logged, not rejected.
        """
        accession_number = instance.accession_number
        if accession_number in self._studies:
            Log.warning(
                f"BLT study requested twice: AccessionNumber {accession_number}",
                accession_number=str(accession_number),
            )
        self._studies[accession_number] = instance
        self._queries.replace(query_id, accession_number)
        self._retrieve_jobs.replace(retrieve_job_id, accession_number)
        self._stages[accession_number] = WorkflowStage.RETRIEVAL_IN_FLIGHT

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def list_studies(self) -> list[StudyState]:
        """Read-only snapshot of every recorded study."""
        states: list[StudyState] = []
        for accession_number, instance in self._studies.items():
            query_id = self._queries.id_of(accession_number)
            retrieve_job_id = self._retrieve_jobs.id_of(accession_number)
            if query_id is None or retrieve_job_id is None:
                raise InternalConsistencyFault(
                    f"AccessionNumber {accession_number} has no query or retrieve id"
                )
            states.append(
                StudyState(
                    instance=instance,
                    query_id=query_id,
                    retrieve_job_id=retrieve_job_id,
                    anonymize_job_id=self._anonymize_jobs.id_of(accession_number),
                    push_job_id=self._push_jobs.id_of(accession_number),
                    stage=self._stages.get(accession_number, WorkflowStage.REQUESTED),
                )
            )
        return states

    def get(self, accession_number: AccessionNumber) -> WorkflowInstance | None:
        return self._studies.get(accession_number)

    def has_retrieve_job(self, job_id: str) -> bool:
        """True if the job id is a BLT PACS retrieve job."""
        return self._retrieve_jobs.has_id(job_id)

    def accession_number_of_retrieve_job(self, job_id: str) -> AccessionNumber | None:
        return self._retrieve_jobs.accession_number_of(job_id)

    def accession_number_of_anonymize_job(self, job_id: str) -> AccessionNumber | None:
        """The original AccessionNumber of a BLT anonymization job."""
        return self._anonymize_jobs.accession_number_of(job_id)

    def accession_number_of_push_job(self, job_id: str) -> AccessionNumber | None:
        return self._push_jobs.accession_number_of(job_id)

    def has_anonymize_job_for(self, accession_number: AccessionNumber) -> bool:
        return self._anonymize_jobs.has_accession_number(accession_number)

    def has_push_job_for(self, accession_number: AccessionNumber) -> bool:
        return self._push_jobs.has_accession_number(accession_number)

    def accession_number_of_job(self, job_id: str) -> AccessionNumber | None:
        """AccessionNumber of a retrieve, anonymization or push job."""
        for table in (self._retrieve_jobs, self._anonymize_jobs, self._push_jobs):
            accession_number = table.accession_number_of(job_id)
            if accession_number is not None:
                return accession_number
        return None

    def stage_of_job(self, job_id: str) -> Stage | None:
        """Which job table the id was recorded in, or None if it is not ours."""
        if self._retrieve_jobs.has_id(job_id):
            return Stage.RETRIEVE
        if self._anonymize_jobs.has_id(job_id):
            return Stage.ANONYMIZE
        if self._push_jobs.has_id(job_id):
            return Stage.PUSH
        return None

    # ------------------------------------------------------------------
    # Later stages
    # ------------------------------------------------------------------

    def add_anonymize_job(self, job_id: str, accession_number: AccessionNumber) -> None:
        """Record an anonymization job.

        Raises:
            InternalConsistencyFault: if no retrieve job was recorded for the
                AccessionNumber.
        """
        if not self._retrieve_jobs.has_accession_number(accession_number):
            self._fault(
                f"anonymization job {job_id} added for AccessionNumber "
                f"{accession_number} which has no retrieve job"
            )
        self._insert(self._anonymize_jobs, job_id, accession_number)
        self._stages[accession_number] = WorkflowStage.ANONYMIZATION_IN_FLIGHT

    def add_push_job(self, job_id: str, accession_number: AccessionNumber) -> None:
        """Record a push job.

        Raises:
            InternalConsistencyFault: if no anonymization job was recorded for
                the AccessionNumber.
        """
        if not self._anonymize_jobs.has_accession_number(accession_number):
            self._fault(
                f"push job {job_id} added for AccessionNumber "
                f"{accession_number} which has no anonymization job"
            )
        self._insert(self._push_jobs, job_id, accession_number)
        self._stages[accession_number] = WorkflowStage.PUSH_IN_FLIGHT

    # ------------------------------------------------------------------
    # Continuation state
    # ------------------------------------------------------------------

    def mark(self, accession_number: AccessionNumber, stage: WorkflowStage) -> None:
        if accession_number not in self._studies:
            Log.warning(f"Cannot mark unknown AccessionNumber {accession_number} as {stage.value}")
            return
        self._stages[accession_number] = stage

    def stage_of(self, accession_number: AccessionNumber) -> WorkflowStage | None:
        return self._stages.get(accession_number)

    def mark_job_handled(self, job_id: str) -> None:
        self._handled_jobs.add(job_id)

    def was_job_handled(self, job_id: str) -> bool:
        return job_id in self._handled_jobs

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _insert(
        self,
        table: JobCorrelation,
        job_id: str,
        accession_number: AccessionNumber,
    ) -> None:
        try:
            table.insert(job_id, accession_number)
        except InternalConsistencyFault as exc:
            self._fault(str(exc))

    @staticmethod
    def _fault(message: str) -> NoReturn:
        Log.error(f"Internal consistency fault (this is a bug): {message}")
        raise InternalConsistencyFault(message)
