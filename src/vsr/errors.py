class UsageError(RuntimeError):
    """Raised when the API is used out of order, e.g. building an index twice."""
