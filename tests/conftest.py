from typing import Any

import pytest

from blt.models.study import WorkflowInstance
from tests.factories import make_instance, make_payload


@pytest.fixture()
def study_payload() -> dict[str, Any]:
    """A valid study request in its external representation."""
    return make_payload()


@pytest.fixture()
def instance() -> WorkflowInstance:
    """A validated study request for AccessionNumber ACC1."""
    return make_instance()
