"""Single consumer owning the workflow store.

Submissions, job-success notifications and status reads all arrive as
messages on one queue and are handled one at a time by one thread, so no
two stage transitions ever overlap and nothing else touches the store.
Slow Orthanc calls made while handling a message delay later messages but
never the thread that delivered the notification.
"""

import queue
import threading

from blt.dispatcher.dispatcher import Dispatcher
from blt.dispatcher.exceptions import DispatchError
from blt.dispatcher.submitter import StudySubmitter, SubmissionResult
from blt.logging.logger import Log
from blt.models.study import WorkflowInstance
from blt.orthanc.exceptions import OrthancError
from blt.store.exceptions import InternalConsistencyFault
from blt.store.models import StudyState
from blt.store.workflow_store import WorkflowStore
from blt.worker.messages import JobSucceeded, ListStudies, Message, Stop, SubmitStudy


class WorkflowActor:
    """Message loop: take -> handle -> log failures -> next."""

    def __init__(
        self,
        store: WorkflowStore,
        dispatcher: Dispatcher,
        submitter: StudySubmitter,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._submitter = submitter
        self._inbox: "queue.Queue[Message]" = queue.Queue()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def submit(self, instance: WorkflowInstance, timeout: float | None = None) -> SubmissionResult:
        """Submit a study request and wait until it is recorded.

        Raises whatever the submission raised (OrthancError, DispatchError).
        """
        message = SubmitStudy(instance)
        self._inbox.put(message)
        self._drain_if_not_running()
        return message.reply.result(timeout=timeout)

    def notify_job_success(self, job_id: str) -> None:
        """Deliver a job-success notification. Never blocks on Orthanc."""
        self._inbox.put(JobSucceeded(job_id))

    def list_studies(self, timeout: float | None = None) -> list[StudyState]:
        message = ListStudies()
        self._inbox.put(message)
        self._drain_if_not_running()
        return message.reply.result(timeout=timeout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="blt-actor", daemon=True)
        self._thread.start()
        Log.info("Workflow actor started")

    def stop(self, timeout: float | None = None) -> None:
        if self._thread is None:
            return
        self._inbox.put(Stop())
        self._thread.join(timeout)
        self._thread = None
        Log.info("Workflow actor stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None

    def process_pending(self) -> int:
        """Handle every queued message in the calling thread. Returns how many were handled.

        Only valid while the actor thread is not running.
        """
        if self._thread is not None:
            raise RuntimeError("process_pending() cannot be used while the actor thread runs")
        handled = 0
        while True:
            try:
                message = self._inbox.get_nowait()
            except queue.Empty:
                return handled
            if isinstance(message, Stop):
                return handled
            self._handle(message)
            handled += 1

    def _run(self) -> None:
        while True:
            message = self._inbox.get()
            if isinstance(message, Stop):
                return
            self._handle(message)

    def _drain_if_not_running(self) -> None:
        if self._thread is None:
            self.process_pending()

    # ------------------------------------------------------------------
    # Step boundary
    # ------------------------------------------------------------------

    def _handle(self, message: Message) -> None:
        if isinstance(message, SubmitStudy):
            self._handle_submit(message)
        elif isinstance(message, JobSucceeded):
            self._handle_job_success(message.job_id)
        elif isinstance(message, ListStudies):
            self._handle_list(message)

    def _handle_submit(self, message: SubmitStudy) -> None:
        accession_number = message.instance.accession_number
        try:
            result = self._submitter.submit(message.instance)
            self._store.add_study(message.instance, result.query_id, result.retrieve_job_id)
        except Exception as exc:
            Log.error(f"Submission of AccessionNumber {accession_number} failed: {exc}")
            message.reply.set_exception(exc)
            return
        message.reply.set_result(result)

    def _handle_job_success(self, job_id: str) -> None:
        try:
            self._dispatcher.on_job_completed(job_id)
        except InternalConsistencyFault as exc:
            Log.error(f"Job {job_id} aborted by internal consistency fault: {exc}")
        except (DispatchError, OrthancError) as exc:
            Log.error(f"Job {job_id} aborted: {exc}")
        except Exception as exc:
            Log.exception(f"Job {job_id} aborted by unexpected error: {exc}")

    def _handle_list(self, message: ListStudies) -> None:
        try:
            message.reply.set_result(self._store.list_studies())
        except Exception as exc:
            Log.exception(f"Listing studies failed: {exc}")
            message.reply.set_exception(exc)
