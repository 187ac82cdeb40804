from unittest.mock import MagicMock, patch

import httpx
import pytest

from blt.config.settings import Settings
from blt.main import build_actor
from blt.orthanc.client import OrthancClient
from blt.store.models import WorkflowStage
from blt.worker.actor import WorkflowActor
from blt.worker.change_feed import ChangeFeedWorker
from tests.factories import make_instance
from tests.fakes import FakeOrthanc

Pipeline = tuple[WorkflowActor, ChangeFeedWorker]


def _stage(actor: WorkflowActor) -> WorkflowStage:
    [state] = actor.list_studies()
    return state.stage


@pytest.fixture()
def pipeline(orthanc_client: OrthancClient) -> Pipeline:
    settings = Settings(source_modality="", target_peer="", change_poll_interval_seconds=0)
    actor = build_actor(settings, orthanc_client)
    feed = ChangeFeedWorker(orthanc_client, actor, settings)
    feed.start_from_current()
    return actor, feed


@patch("blt.worker.change_feed.time.sleep")
class TestProtocol:
    def _advance(self, feed: ChangeFeedWorker, actor: WorkflowActor) -> None:
        feed.run(max_polls=1)
        actor.process_pending()

    def test_full_workflow(
        self, _sleep: MagicMock, fake_orthanc: FakeOrthanc, pipeline: Pipeline
    ) -> None:
        actor, feed = pipeline

        result = actor.submit(make_instance("ACC1"))
        assert (result.query_id, result.retrieve_job_id) == ("Q1", "J1")
        assert _stage(actor) is WorkflowStage.RETRIEVAL_IN_FLIGHT

        fake_orthanc.complete("J1")
        self._advance(feed, actor)
        assert fake_orthanc.deletions == ["/series/s2"]
        anonymize_body = fake_orthanc.bodies["/studies/st1/anonymize"]
        assert anonymize_body["Replace"]["PatientID"] == "BLT0001"
        assert anonymize_body["KeepSource"] is False
        assert _stage(actor) is WorkflowStage.ANONYMIZATION_IN_FLIGHT

        fake_orthanc.complete("J2")
        self._advance(feed, actor)
        assert fake_orthanc.bodies["/peers/blt/store"]["Resources"] == ["anon-st1"]
        assert _stage(actor) is WorkflowStage.PUSH_IN_FLIGHT

        fake_orthanc.complete("J3")
        self._advance(feed, actor)
        assert fake_orthanc.deletions == ["/series/s2", "/studies/anon-st1"]
        assert _stage(actor) is WorkflowStage.CLEANED

        [state] = actor.list_studies()
        assert state.query_id == "Q1"
        assert state.retrieve_job_id == "J1"
        assert state.anonymize_job_id == "J2"
        assert state.push_job_id == "J3"

    def test_foreign_job_is_ignored(
        self, _sleep: MagicMock, fake_orthanc: FakeOrthanc, pipeline: Pipeline
    ) -> None:
        actor, feed = pipeline
        actor.submit(make_instance("ACC1"))

        fake_orthanc.complete("JX")
        self._advance(feed, actor)

        assert ("GET", "/jobs/JX") not in fake_orthanc.requests
        assert fake_orthanc.deletions == []
        assert _stage(actor) is WorkflowStage.RETRIEVAL_IN_FLIGHT

    def test_repeated_notification_does_not_repeat_work(
        self, _sleep: MagicMock, fake_orthanc: FakeOrthanc, pipeline: Pipeline
    ) -> None:
        actor, feed = pipeline
        actor.submit(make_instance("ACC1"))

        fake_orthanc.complete("J1")
        fake_orthanc.complete("J1")
        self._advance(feed, actor)

        anonymize_calls = [
            r for r in fake_orthanc.requests if r == ("POST", "/studies/st1/anonymize")
        ]
        assert len(anonymize_calls) == 1
        assert _stage(actor) is WorkflowStage.ANONYMIZATION_IN_FLIGHT

    def test_changes_before_start_are_skipped(
        self, _sleep: MagicMock, fake_orthanc: FakeOrthanc, orthanc_client: OrthancClient
    ) -> None:
        fake_orthanc.complete("J1")
        settings = Settings(change_poll_interval_seconds=0)
        actor = build_actor(settings, orthanc_client)
        feed = ChangeFeedWorker(orthanc_client, actor, settings)

        feed.run(max_polls=1)

        assert feed.since == 1
        assert actor.process_pending() == 0

    def test_unfiltered_study_is_deleted_once_after_push(self, _sleep: MagicMock) -> None:
        fake_orthanc = FakeOrthanc(series={"s1": "CT", "s2": "MR"})
        client = OrthancClient(
            base_url="http://orthanc.test", transport=httpx.MockTransport(fake_orthanc)
        )
        settings = Settings(target_peer="blt", change_poll_interval_seconds=0)
        actor = build_actor(settings, client)
        feed = ChangeFeedWorker(client, actor, settings)
        feed.start_from_current()

        actor.submit(make_instance("ACC1"))
        for job_id in ("J1", "J2", "J3"):
            fake_orthanc.complete(job_id)
            self._advance(feed, actor)
        client.close()

        assert fake_orthanc.deletions == ["/studies/anon-st1"]
        assert _stage(actor) is WorkflowStage.CLEANED
