from collections.abc import Sequence

from blt.anonymization.models import AnonymizeRequest
from blt.models.study import WorkflowInstance

# Allow-list of non-identifying tags kept verbatim during anonymization
DEFAULT_TAGS_TO_KEEP: tuple[str, ...] = ("StudyDescription", "SeriesDescription")


def build_anonymize_request(
    instance: WorkflowInstance,
    keep_tags: Sequence[str] = DEFAULT_TAGS_TO_KEEP,
) -> AnonymizeRequest:
    """Build the anonymization request replacing a study's identifying tags.

    The source copy is not kept, protected tags are force-overwritten, and
    the job always runs asynchronously.
    """
    replacements = {
        "PatientID": instance.anon_patient_id,
        "PatientName": instance.anon_patient_name,
        "PatientBirthDate": str(instance.anon_patient_birth_date),
        "AccessionNumber": instance.anon_accession_number,
    }
    return AnonymizeRequest(
        replace=replacements,
        keep=list(keep_tags),
        keep_source=False,
        force=True,
        asynchronous=True,
    )
