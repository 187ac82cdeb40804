import time

from blt.config.settings import Settings
from blt.logging.logger import Log
from blt.orthanc.client import OrthancClient
from blt.orthanc.exceptions import OrthancError
from blt.orthanc.models import ChangesPage
from blt.worker.actor import WorkflowActor

JOB_SUCCESS = "JobSuccess"


class ChangeFeedWorker:
    """Poll loop over Orthanc's /changes: fetch -> forward JobSuccess -> sleep when done."""

    def __init__(
        self,
        client: OrthancClient,
        actor: WorkflowActor,
        settings: Settings,
        since: int | None = None,
    ) -> None:
        self._client = client
        self._actor = actor
        self._settings = settings
        self._since = since

    @property
    def since(self) -> int | None:
        return self._since

    def run(self, max_polls: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_polls is set, stop after that many polls (for testing).
        """
        self.start_from_current()
        Log.info(f"Change feed started at sequence {self._since}")
        polls = 0
        try:
            while True:
                if max_polls is not None and polls >= max_polls:
                    break
                page = self._try_fetch_changes()
                polls += 1
                if page is not None:
                    self._forward(page)
                if page is None or page.done:
                    Log.debug("No more changes, sleeping")
                    time.sleep(self._settings.change_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Change feed shutting down gracefully")

    def _forward(self, page: ChangesPage) -> None:
        for change in page.changes:
            if change.change_type != JOB_SUCCESS:
                continue
            if change.resource_id is None:
                Log.warning(f"JobSuccess change {change.seq} has no job ID")
                continue
            self._actor.notify_job_success(change.resource_id)
        self._since = page.last

    def _try_fetch_changes(self) -> ChangesPage | None:
        """Fetch the next page of changes. Gracefully handle Orthanc errors."""
        try:
            return self._client.get_changes(
                since=self._since or 0, limit=self._settings.changes_batch_limit
            )
        except OrthancError as exc:
            Log.warning(f"Orthanc error, will retry: {exc}")
            return None

    def start_from_current(self) -> None:
        """Skip every change already in the log; older jobs are not ours.

        No-op once a position is known.
        """
        if self._since is not None:
            return
        try:
            self._since = self._client.get_last_change_seq()
        except OrthancError as exc:
            Log.warning(f"Could not read the current change sequence, starting at 0: {exc}")
            self._since = 0
