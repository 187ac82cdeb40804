"""Synchronous client for the Orthanc REST API.

Ref: https://orthanc.uclouvain.be/api/
"""

from typing import Any

import httpx

from blt.anonymization.models import AnonymizeRequest
from blt.filtering.models import SeriesDetails
from blt.models.exceptions import ValidationError
from blt.models.values import AccessionNumber
from blt.orthanc.exceptions import OrthancError, OrthancNetworkError, OrthancResponseError
from blt.orthanc.models import ChangesPage, IdAndPath, JobInfo, SeriesOfStudy

SERIES_TAGS = ("Modality", "SeriesDescription", "SeriesInstanceUID")


class OrthancClient:
    """Thin wrapper around ``httpx.Client`` turning Orthanc answers into domain types.

    Every failure (transport, non-2xx status, unexpected body) is raised as
    an ``OrthancError``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int = 30,
        username: str = "",
        password: str = "",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        auth = httpx.BasicAuth(username, password) if username else None
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            auth=auth,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Networking
    # ------------------------------------------------------------------

    def list_modalities(self) -> list[str]:
        """DICOM modalities known to Orthanc."""
        return self._string_list(self._request("GET", "/modalities"), "/modalities")

    def list_peers(self) -> list[str]:
        """Orthanc peers known to Orthanc."""
        return self._string_list(self._request("GET", "/peers"), "/peers")

    def query_study(self, modality: str, accession_number: AccessionNumber) -> IdAndPath:
        """C-FIND a study by AccessionNumber on a remote modality."""
        body = {"Level": "Study", "Query": {"AccessionNumber": str(accession_number)}}
        data = self._request("POST", f"/modalities/{modality}/query", json=body)
        return IdAndPath.from_json(data)

    def retrieve_query(self, query_id: str) -> str:
        """Retrieve every answer of a query in an asynchronous C-MOVE job."""
        data = self._request(
            "POST", f"/queries/{query_id}/retrieve", json={"Asynchronous": True}
        )
        return IdAndPath.from_json(data).id

    def store_to_peer(self, peer: str, resource_ids: list[str], compress: bool = True) -> str:
        """Enqueue a job sending local resources to an Orthanc peer."""
        body = {"Asynchronous": True, "Compress": compress, "Resources": resource_ids}
        data = self._request("POST", f"/peers/{peer}/store", json=body)
        return IdAndPath.from_json(data).id

    # ------------------------------------------------------------------
    # Jobs and changes
    # ------------------------------------------------------------------

    def get_job(self, job_id: str) -> JobInfo:
        return JobInfo.from_json(self._request("GET", f"/jobs/{job_id}"))

    def get_changes(self, since: int, limit: int) -> ChangesPage:
        data = self._request("GET", "/changes", params={"since": since, "limit": limit})
        return ChangesPage.from_json(data)

    def get_last_change_seq(self) -> int:
        """Sequence number of the most recent change in the log."""
        return ChangesPage.from_json(self._request("GET", "/changes", params={"last": ""})).last

    # ------------------------------------------------------------------
    # DICOM resources
    # ------------------------------------------------------------------

    def find_series_of_study(self, study_instance_uid: str) -> list[SeriesOfStudy]:
        """Search local studies by StudyInstanceUID, with the IDs of their series."""
        body = {
            "Level": "Study",
            "CaseSensitive": False,
            "Expand": True,
            "ResponseContent": ["Children"],
            "Query": {"StudyInstanceUID": study_instance_uid},
        }
        data = self._request("POST", "/tools/find", json=body)
        if not isinstance(data, list):
            raise OrthancResponseError("/tools/find must answer a list")
        return [SeriesOfStudy.from_json(item) for item in data]

    def get_series(self, series_id: str) -> SeriesDetails:
        data = self._request(
            "GET",
            f"/series/{series_id}",
            params={"requested-tags": ";".join(SERIES_TAGS)},
        )
        tags = self._requested_tags(data, f"/series/{series_id}")
        return SeriesDetails(
            id=series_id,
            modality=str(tags.get("Modality", "")),
            series_description=str(tags.get("SeriesDescription", "")),
            series_instance_uid=str(tags.get("SeriesInstanceUID", "")),
        )

    def get_accession_number(self, study_id: str) -> AccessionNumber:
        data = self._request(
            "GET", f"/studies/{study_id}", params={"requested-tags": "AccessionNumber"}
        )
        tags = self._requested_tags(data, f"/studies/{study_id}")
        try:
            return AccessionNumber(tags.get("AccessionNumber", ""))
        except ValidationError as exc:
            raise OrthancResponseError(f"Study {study_id} has no AccessionNumber") from exc

    def anonymize_study(self, study_id: str, request: AnonymizeRequest) -> str:
        data = self._request(
            "POST", f"/studies/{study_id}/anonymize", json=request.to_payload()
        )
        return IdAndPath.from_json(data).id

    def delete_resource(self, level: str, resource_id: str) -> None:
        """Delete a patient, study, series or instance stored in Orthanc."""
        self._request("DELETE", f"/{level}/{resource_id}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise OrthancNetworkError(f"Orthanc network error on {method} {path}: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise OrthancResponseError(
                f"Orthanc answered {exc.response.status_code} to {method} {path}: "
                f"{exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise OrthancError(f"Orthanc request {method} {path} failed: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise OrthancResponseError(f"Invalid JSON from {method} {path}: {exc}") from exc

    @staticmethod
    def _string_list(data: Any, path: str) -> list[str]:
        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            raise OrthancResponseError(f"{path} must answer a list of strings")
        return data

    @staticmethod
    def _requested_tags(data: Any, path: str) -> dict[str, Any]:
        if not isinstance(data, dict) or not isinstance(data.get("RequestedTags"), dict):
            raise OrthancResponseError(f"{path} answered without RequestedTags")
        return data["RequestedTags"]
