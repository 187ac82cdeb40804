from blt.models.exceptions import ValidationError
from blt.models.study import WorkflowInstance
from blt.models.values import AccessionNumber, StudyDate

__all__ = ["AccessionNumber", "StudyDate", "ValidationError", "WorkflowInstance"]
