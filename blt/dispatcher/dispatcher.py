"""BLT state machine: decide the next stage when an Orthanc job succeeds.

The next step is derived only from which correlation table the finished
job id was recorded in:

    retrieve  -> filter series, anonymize study
    anonymize -> push anonymized study to peer
    push      -> delete the local copy
"""

from collections.abc import Sequence

from blt.anonymization.request_builder import DEFAULT_TAGS_TO_KEEP, build_anonymize_request
from blt.dispatcher.exceptions import (
    NoPeerConfiguredError,
    PartialPushFailure,
    StudyNotRecordedError,
    UnexpectedJobContentError,
)
from blt.filtering.models import FilterResult
from blt.filtering.series_filter import SeriesFilter
from blt.logging.logger import Log
from blt.models.values import AccessionNumber
from blt.orthanc.client import OrthancClient
from blt.orthanc.models import (
    JobInfo,
    ModificationContent,
    PeerStoreContent,
    RetrieveContent,
    SeriesOfStudy,
)
from blt.store.models import Stage, WorkflowStage
from blt.store.workflow_store import WorkflowStore

# Workflow stages during which a failure of the job of that stage leaves the study stuck
IN_FLIGHT_STAGES: dict[Stage, frozenset[WorkflowStage]] = {
    Stage.RETRIEVE: frozenset(
        {WorkflowStage.RETRIEVAL_IN_FLIGHT, WorkflowStage.FILTERING, WorkflowStage.FILTERED}
    ),
    Stage.ANONYMIZE: frozenset({WorkflowStage.ANONYMIZATION_IN_FLIGHT}),
    Stage.PUSH: frozenset({WorkflowStage.PUSH_IN_FLIGHT}),
}


class Dispatcher:
    """Consumes job-success notifications and issues the next stage's request.

    Errors are raised to the caller; the caller owns the step boundary.
    """

    def __init__(
        self,
        *,
        store: WorkflowStore,
        client: OrthancClient,
        series_filter: SeriesFilter,
        target_peer: str = "",
        keep_tags: Sequence[str] = DEFAULT_TAGS_TO_KEEP,
        push_compress: bool = True,
    ) -> None:
        self._store = store
        self._client = client
        self._series_filter = series_filter
        self._target_peer = target_peer
        self._keep_tags = list(keep_tags)
        self._push_compress = push_compress

    def on_job_completed(self, job_id: str) -> None:
        """Advance the workflow that owns ``job_id``.

        Jobs unknown to the store belong to someone else and are ignored.
        A job is handled at most once; a repeated notification is dropped.
        """
        stage = self._store.stage_of_job(job_id)
        if stage is None:
            Log.debug(f"Ignoring job {job_id}: not a BLT job")
            return
        if self._store.was_job_handled(job_id):
            Log.warning(f"Ignoring repeated success notification for {stage.value} job {job_id}")
            return

        try:
            job = self._client.get_job(job_id)
            self._transition(stage, job)
        except Exception:
            self._mark_stuck(stage, job_id)
            raise
        finally:
            self._store.mark_job_handled(job_id)

    # ------------------------------------------------------------------
    # Transition table
    # ------------------------------------------------------------------

    def _transition(self, stage: Stage, job: JobInfo) -> None:
        content = job.content
        if stage is Stage.RETRIEVE and isinstance(content, RetrieveContent):
            self._on_retrieved(job.id, content)
        elif stage is Stage.ANONYMIZE and isinstance(content, ModificationContent):
            self._on_anonymized(job.id, content)
        elif stage is Stage.PUSH and isinstance(content, PeerStoreContent):
            self._on_pushed(job.id, content)
        else:
            raise UnexpectedJobContentError(
                f"{stage.value} job {job.id} has unexpected content {type(content).__name__}"
            )

    # ------------------------------------------------------------------
    # Retrieve -> filter -> anonymize
    # ------------------------------------------------------------------

    def _on_retrieved(self, job_id: str, content: RetrieveContent) -> None:
        requested = self._store.accession_number_of_retrieve_job(job_id)
        if not content.study_instance_uids:
            raise UnexpectedJobContentError(
                f"job {job_id} was not a DicomMoveScu operation with "
                "StudyInstanceUID in its content"
            )
        if requested is not None:
            self._store.mark(requested, WorkflowStage.FILTERING)

        for study_instance_uid in dict.fromkeys(content.study_instance_uids):
            for study in self._client.find_series_of_study(study_instance_uid):
                if not self._filter_and_anonymize(study, requested):
                    return

    def _filter_and_anonymize(
        self,
        study: SeriesOfStudy,
        requested: AccessionNumber | None,
    ) -> bool:
        """Returns False when the workflow instance was aborted."""
        result = self._filter_series(study)
        if result.fully_filtered:
            Log.warning(f"No series of study {study.study_id} left after filtering")
            if requested is not None:
                self._store.mark(requested, WorkflowStage.ABORTED)
            return False

        accession_number = self._client.get_accession_number(study.study_id)
        instance = self._store.get(accession_number)
        if instance is None:
            Log.error(
                f"Study {study.study_id} with AccessionNumber {accession_number} "
                "not found in BLT database (this is a bug)"
            )
            raise StudyNotRecordedError(
                f"AccessionNumber {accession_number} was never requested"
            )
        self._store.mark(accession_number, WorkflowStage.FILTERED)

        request = build_anonymize_request(instance, self._keep_tags)
        anonymize_job_id = self._client.anonymize_study(study.study_id, request)
        self._store.add_anonymize_job(anonymize_job_id, accession_number)
        Log.info(
            f"Anonymizing study {study.study_id} (AccessionNumber {accession_number}) "
            f"in job {anonymize_job_id}"
        )
        return True

    def _filter_series(self, study: SeriesOfStudy) -> FilterResult:
        """Delete undesirable series of a study from Orthanc."""
        series = [self._client.get_series(series_id) for series_id in study.series_ids]
        result = self._series_filter.apply(series)
        for record in result.audit:
            self._client.delete_resource("series", record.series_id)
            Log.info(
                f"BLT series deleted: SeriesInstanceUID={record.series_instance_uid} "
                f"SeriesDescription={record.series_description!r} "
                f"{record.tag}={record.value} ({record.reason})"
            )
        return result

    # ------------------------------------------------------------------
    # Anonymize -> push
    # ------------------------------------------------------------------

    def _on_anonymized(self, job_id: str, content: ModificationContent) -> None:
        accession_number = self._store.accession_number_of_anonymize_job(job_id)
        if accession_number is None:
            raise StudyNotRecordedError(f"anonymization job {job_id} has no AccessionNumber")
        if content.failed_instances_count:
            Log.warning(
                f"Anonymization job {job_id} failed on {content.failed_instances_count} "
                f"instances of AccessionNumber {accession_number}"
            )
        peer = self._resolve_peer()
        push_job_id = self._client.store_to_peer(
            peer, [content.resource_id], compress=self._push_compress
        )
        self._store.add_push_job(push_job_id, accession_number)
        Log.info(
            f"Will push {content.resource_type.lower()} {content.resource_id} "
            f"(AccessionNumber {accession_number}) to peer {peer} in job {push_job_id}"
        )

    def _resolve_peer(self) -> str:
        if self._target_peer:
            return self._target_peer
        peers = self._client.list_peers()
        if not peers:
            Log.error("Orthanc is not configured with any peers")
            raise NoPeerConfiguredError("Orthanc is not configured with any peers")
        return peers[0]

    # ------------------------------------------------------------------
    # Push -> cleanup
    # ------------------------------------------------------------------

    def _on_pushed(self, job_id: str, content: PeerStoreContent) -> None:
        accession_number = self._store.accession_number_of_push_job(job_id)
        if accession_number is None:
            raise StudyNotRecordedError(f"push job {job_id} has no AccessionNumber")
        if content.failed_instances_count > 0:
            raise PartialPushFailure(
                f"push job {job_id} failed to send {content.failed_instances_count} of "
                f"{content.instances_count} instances of AccessionNumber {accession_number}"
            )
        if not content.parent_resources:
            raise UnexpectedJobContentError(
                f"push job {job_id} reported no pushed resources for AccessionNumber "
                f"{accession_number}, nothing was cleaned up"
            )
        for resource_id in content.parent_resources:
            self._client.delete_resource("studies", resource_id)
            Log.info(
                f"Cleaned up study {resource_id} (AccessionNumber {accession_number}) "
                f"after push job {job_id}"
            )
        self._store.mark(accession_number, WorkflowStage.CLEANED)

    def _mark_stuck(self, stage: Stage, job_id: str) -> None:
        """Mark the study Stuck unless it already moved past the failing job's stage."""
        accession_number = self._store.accession_number_of_job(job_id)
        if accession_number is None:
            return
        if self._store.stage_of(accession_number) in IN_FLIGHT_STAGES[stage]:
            self._store.mark(accession_number, WorkflowStage.STUCK)
