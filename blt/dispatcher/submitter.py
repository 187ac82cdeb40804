from dataclasses import dataclass

from blt.dispatcher.exceptions import NoModalityConfiguredError
from blt.logging.logger import Log
from blt.models.study import WorkflowInstance
from blt.orthanc.client import OrthancClient


@dataclass(frozen=True)
class SubmissionResult:
    """Ids Orthanc issued for the query and retrieve stages of one request."""

    query_id: str
    retrieve_job_id: str


class StudySubmitter:
    """Query the source modality for a study by AccessionNumber and start its retrieval."""

    def __init__(self, client: OrthancClient, source_modality: str = "") -> None:
        self._client = client
        self._source_modality = source_modality

    def submit(self, instance: WorkflowInstance) -> SubmissionResult:
        """Start query and retrieve for a study request.

        Raises:
            NoModalityConfiguredError: if Orthanc knows no modality.
            OrthancError: if Orthanc rejects the query or the retrieve.
        """
        modality = self._resolve_modality()
        query = self._client.query_study(modality, instance.accession_number)
        Log.info(
            f"Queried {modality} for AccessionNumber {instance.accession_number}: "
            f"query {query.id}"
        )
        retrieve_job_id = self._client.retrieve_query(query.id)
        Log.info(
            f"Retrieving AccessionNumber {instance.accession_number} in job {retrieve_job_id}"
        )
        return SubmissionResult(query_id=query.id, retrieve_job_id=retrieve_job_id)

    def _resolve_modality(self) -> str:
        if self._source_modality:
            return self._source_modality
        modalities = self._client.list_modalities()
        if not modalities:
            raise NoModalityConfiguredError(
                "Orthanc is not configured properly with modalities"
            )
        return modalities[0]
