from collections import Counter
from pathlib import Path

from blt.config.settings import Settings
from blt.dispatcher.dispatcher import Dispatcher
from blt.dispatcher.exceptions import DispatchError
from blt.dispatcher.submitter import StudySubmitter
from blt.filtering.factory import SeriesFilterFactory
from blt.intake.loader import IntakeError, load_study_requests
from blt.logging.logger import Log
from blt.orthanc.client import OrthancClient
from blt.orthanc.exceptions import OrthancError
from blt.store.workflow_store import WorkflowStore
from blt.worker.actor import WorkflowActor
from blt.worker.change_feed import ChangeFeedWorker


def build_actor(settings: Settings, client: OrthancClient) -> WorkflowActor:
    """Wire the store, dispatcher and submitter behind one actor."""
    store = WorkflowStore(capacity=settings.store_capacity)
    dispatcher = Dispatcher(
        store=store,
        client=client,
        series_filter=SeriesFilterFactory.create(settings),
        target_peer=settings.target_peer,
        keep_tags=settings.tags_to_keep,
        push_compress=settings.push_compress,
    )
    submitter = StudySubmitter(client, source_modality=settings.source_modality)
    return WorkflowActor(store, dispatcher, submitter)


def submit_intake(actor: WorkflowActor, path: Path) -> int:
    """Submit every valid request of an intake file. Returns how many were accepted.

    An unreadable intake file is logged and yields 0; the caller keeps running.
    """
    try:
        result = load_study_requests(path)
    except IntakeError as exc:
        Log.error(f"Skipping intake: {exc}")
        return 0

    accepted = 0
    for instance in result.instances:
        try:
            actor.submit(instance)
            accepted += 1
        except (OrthancError, DispatchError) as exc:
            Log.error(f"Could not submit AccessionNumber {instance.accession_number}: {exc}")
    return accepted


def report_status(actor: WorkflowActor) -> dict[str, int]:
    """Log how many studies are in each workflow stage."""
    counts = Counter(state.stage.value for state in actor.list_studies())
    summary = "  ".join(f"{stage} {count}" for stage, count in sorted(counts.items()))
    Log.info(f"BLT studies: {summary or 'none'}")
    return dict(counts)


def main() -> None:
    """Entry point: configure -> build dependencies -> submit intake -> follow changes."""
    settings = Settings()
    Log.configure(settings.log_level)
    client = OrthancClient(
        base_url=settings.orthanc_url,
        timeout_seconds=settings.orthanc_timeout_seconds,
        username=settings.orthanc_username,
        password=settings.orthanc_password,
    )

    try:
        actor = build_actor(settings, client)
        feed = ChangeFeedWorker(client, actor, settings)
        feed.start_from_current()
        actor.start()
        if settings.intake_file:
            accepted = submit_intake(actor, Path(settings.intake_file))
            Log.info(f"Submitted {accepted} studies from {settings.intake_file}")
        feed.run()
        report_status(actor)
        actor.stop()
    finally:
        client.close()


if __name__ == "__main__":
    main()
