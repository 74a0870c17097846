"""Error taxonomy shared by the clients, orchestrators and relay."""

from __future__ import annotations


class MeshNowError(RuntimeError):
    """Base error carrying an optional HTTP status for the caller."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(MeshNowError):
    """Missing or malformed caller input. Raised before any network call."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400)


class AuthError(MeshNowError):
    """Missing or rejected credential."""


class UpstreamError(MeshNowError):
    """Non-2xx response from an external service."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message, status_code=status_code)
        self.body = body


class TransportError(MeshNowError):
    """Network-level failure; no response was received."""


class TaskFailedError(MeshNowError):
    """A generation task reached FAILED or CANCELED."""

    def __init__(self, message: str, task_id: str = "") -> None:
        super().__init__(message)
        self.task_id = task_id


class PollTimeoutError(MeshNowError):
    """Polling gave up before the task reached a terminal state."""


class UploadError(MeshNowError):
    """Base class for failures of the signed upload handshake."""


class InitializationError(UploadError):
    """The upload record could not be created."""


class TransferError(UploadError):
    """The byte upload to the signed URL failed."""


class FinalizationError(UploadError):
    """The upload record could not be marked as uploaded."""
