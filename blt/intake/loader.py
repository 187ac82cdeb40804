"""Load BLT study requests from a CSV or JSON file.

CSV files carry a header row with the request field names (``MRN``,
``Anon_PatientID``, ``PatientName``, ...); JSON files hold a list of
objects with the same keys.
"""

import csv
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from blt.logging.logger import Log
from blt.models.exceptions import ValidationError
from blt.models.study import WorkflowInstance


class IntakeError(Exception):
    """Raised when an intake file cannot be read at all."""


@dataclass(frozen=True)
class RejectedRow:
    row_number: int
    reason: str


@dataclass
class IntakeResult:
    instances: list[WorkflowInstance] = field(default_factory=list)
    rejected: list[RejectedRow] = field(default_factory=list)


def load_study_requests(path: Path) -> IntakeResult:
    """Read and validate every study request of an intake file.

    Invalid rows are logged and skipped.

    Raises:
        IntakeError: if the file is missing, unreadable, or of an unknown type.
    """
    if not path.exists():
        raise IntakeError(f"Intake file not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".csv":
        rows = _read_csv(path)
    elif suffix == ".json":
        rows = _read_json(path)
    else:
        raise IntakeError(f"Unsupported intake file type '{suffix}', expected .csv or .json")

    result = IntakeResult()
    for row_number, row in enumerate(rows, start=1):
        try:
            result.instances.append(WorkflowInstance.from_payload(row))
        except ValidationError as exc:
            Log.warning(f"Skipping study request {row_number} of {path.name}: {exc}")
            result.rejected.append(RejectedRow(row_number=row_number, reason=str(exc)))
    Log.info(
        f"Loaded {len(result.instances)} study requests from {path.name} "
        f"({len(result.rejected)} rejected)"
    )
    return result


def _read_csv(path: Path) -> list[dict[str, Any]]:
    try:
        with path.open(newline="", encoding="utf-8-sig") as fh:
            return [dict(row) for row in csv.DictReader(fh)]
    except (OSError, csv.Error, UnicodeDecodeError) as exc:
        raise IntakeError(f"Cannot read {path}: {exc}") from exc


def _read_json(path: Path) -> list[Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise IntakeError(f"Cannot read {path}: {exc}") from exc
    if not isinstance(data, list):
        raise IntakeError(f"{path} must hold a list of study requests")
    return data
