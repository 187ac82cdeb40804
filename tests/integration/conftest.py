from collections.abc import Generator

import httpx
import pytest

from blt.orthanc.client import OrthancClient
from tests.fakes import FakeOrthanc


@pytest.fixture()
def fake_orthanc() -> FakeOrthanc:
    return FakeOrthanc()


@pytest.fixture()
def orthanc_client(fake_orthanc: FakeOrthanc) -> Generator[OrthancClient, None, None]:
    client = OrthancClient(
        base_url="http://orthanc.test",
        transport=httpx.MockTransport(fake_orthanc),
    )
    yield client
    client.close()
