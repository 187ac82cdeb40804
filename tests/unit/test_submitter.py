from unittest.mock import MagicMock

import pytest

from blt.dispatcher.exceptions import NoModalityConfiguredError
from blt.dispatcher.submitter import StudySubmitter
from blt.models.study import WorkflowInstance
from blt.models.values import AccessionNumber
from blt.orthanc.client import OrthancClient
from blt.orthanc.exceptions import OrthancResponseError
from blt.orthanc.models import IdAndPath


def _make_submitter(source_modality: str = "pacs") -> tuple[StudySubmitter, MagicMock]:
    mock_client = MagicMock(spec=OrthancClient)
    mock_client.query_study.return_value = IdAndPath(id="Q1", path="/queries/Q1")
    mock_client.retrieve_query.return_value = "J1"
    return StudySubmitter(mock_client, source_modality), mock_client


class TestSubmit:
    def test_queries_then_retrieves(self, instance: WorkflowInstance) -> None:
        submitter, mock_client = _make_submitter()

        result = submitter.submit(instance)

        mock_client.query_study.assert_called_once_with("pacs", AccessionNumber("ACC1"))
        mock_client.retrieve_query.assert_called_once_with("Q1")
        assert result.query_id == "Q1"
        assert result.retrieve_job_id == "J1"

    def test_configured_modality_skips_listing(self, instance: WorkflowInstance) -> None:
        submitter, mock_client = _make_submitter()

        submitter.submit(instance)

        mock_client.list_modalities.assert_not_called()

    def test_query_failure_propagates(self, instance: WorkflowInstance) -> None:
        submitter, mock_client = _make_submitter()
        mock_client.query_study.side_effect = OrthancResponseError("404")

        with pytest.raises(OrthancResponseError):
            submitter.submit(instance)

        mock_client.retrieve_query.assert_not_called()


class TestModalityResolution:
    def test_falls_back_to_first_modality(self, instance: WorkflowInstance) -> None:
        submitter, mock_client = _make_submitter(source_modality="")
        mock_client.list_modalities.return_value = ["scanner", "other"]

        submitter.submit(instance)

        mock_client.query_study.assert_called_once_with("scanner", AccessionNumber("ACC1"))

    def test_no_modality_raises(self, instance: WorkflowInstance) -> None:
        submitter, mock_client = _make_submitter(source_modality="")
        mock_client.list_modalities.return_value = []

        with pytest.raises(NoModalityConfiguredError):
            submitter.submit(instance)

        mock_client.query_study.assert_not_called()
