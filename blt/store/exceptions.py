class InternalConsistencyFault(Exception):
    """Raised when the correlation tables would become inconsistent.

    This is a programming error (a later-stage job recorded without its
    prerequisite, or a job id paired with two accession numbers). It is never
    repaired silently.
    """
