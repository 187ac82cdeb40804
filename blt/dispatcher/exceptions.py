class DispatchError(Exception):
    """Base exception for a dispatch step that cannot continue."""


class UnexpectedJobContentError(DispatchError):
    """Raised when a completed job does not carry the content its stage expects."""


class StudyNotRecordedError(DispatchError):
    """Raised when a retrieved study's AccessionNumber is missing from the store."""


class PartialPushFailure(DispatchError):
    """Raised when a push job reports instances that failed to reach the peer."""


class NoModalityConfiguredError(DispatchError):
    """Raised when Orthanc knows no DICOM modality to query."""


class NoPeerConfiguredError(DispatchError):
    """Raised when Orthanc knows no peer to push to."""
