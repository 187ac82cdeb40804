class ValidationError(ValueError):
    """Raised when a study request carries a malformed identifier or date."""
