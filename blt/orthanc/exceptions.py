class OrthancError(Exception):
    """Raised when a call to the Orthanc REST API fails or returns unexpected data."""


class OrthancNetworkError(OrthancError):
    """Raised when Orthanc cannot be reached (connection refused, timeout)."""


class OrthancResponseError(OrthancError):
    """Raised when Orthanc answers with an error status or a malformed body."""
