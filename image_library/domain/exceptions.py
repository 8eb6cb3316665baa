from __future__ import annotations


class ImageLibraryError(Exception):
    """Base class for every error raised by the image library."""


class ConfigurationError(ImageLibraryError, ValueError):
    """Invalid breakpoint, context, conversion or settings configuration."""


class ValidationError(ImageLibraryError, ValueError):
    """Rejected input: malformed upload, unsupported type, degenerate image."""


class StorageError(ImageLibraryError, RuntimeError):
    """A blob store read, write or delete failed."""


class TaskFailure(ImageLibraryError, RuntimeError):
    """A queued derivation task raised while running."""

    def __init__(self, task_name: str, cause: BaseException) -> None:
        super().__init__(f"Task '{task_name}' failed: {cause}")
        self.task_name = task_name
        self.cause = cause


class RecordNotFoundError(ImageLibraryError, LookupError):
    """No stored record has the requested id."""
