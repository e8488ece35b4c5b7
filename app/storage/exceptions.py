# app/storage/exceptions.py
"""
Storage error taxonomy.

Only UploadFailed ever reaches callers of the gateway. The others are
raised by adapters, the detector, the resolver and the image processor,
and the gateway turns them into log lines and boolean results.
"""


class StorageError(Exception):
    """Base class for storage errors."""

    pass


class ProviderUnavailable(StorageError):
    """An adapter's required configuration is missing."""

    pass


class UploadFailed(StorageError):
    """Every provider in the chain failed to store the upload."""

    def __init__(self, message: str, attempts: list | None = None):
        super().__init__(message)
        self.attempts = attempts or []

    @property
    def errors(self) -> dict[str, str]:
        """Provider name -> failure reason, in attempt order."""
        return {a.provider: str(a.error) for a in self.attempts if a.error is not None}


class UnresolvableURL(StorageError):
    """No provider can claim the URL, or its identifier cannot be extracted."""

    pass


class RemoteNotFound(StorageError):
    """The object or asset does not exist on the provider."""

    pass


class ImageProcessingError(StorageError):
    """The image could not be decoded, transformed or encoded."""

    pass
