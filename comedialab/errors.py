"""Error types shared across ComediaLab."""


class ComediaLabError(Exception):
    """Base error for ComediaLab."""


class ValidationError(ComediaLabError):
    """A required field is missing; nothing was changed."""


class RemoteFailure(ComediaLabError):
    """The AI provider failed or returned a response of the wrong shape."""


class PersistenceReadFailure(ComediaLabError):
    """Stored data is missing or cannot be deserialized."""
