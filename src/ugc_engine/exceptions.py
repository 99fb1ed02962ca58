"""Shared exceptions for the application.

Stage functions and adapters raise these; the workflow orchestrator and the
poll job catch them once per task, record the message on the task and
re-raise so the job queue's retry policy decides what happens next.
"""


class UGCEngineError(Exception):
    """Base class for all application errors."""


class PreconditionError(UGCEngineError):
    """Raised when a required parameter is missing or out of range.

    Precondition errors are deterministic: re-running the job cannot fix
    them, so queue-level retries are skipped.
    """


class ArtifactNotFoundError(PreconditionError):
    """Raised when a referenced artifact (product, script, image) does not exist."""


class TaskNotFoundError(PreconditionError):
    """Raised when a generation task does not exist or is not visible to the caller."""


class InvalidTaskStateError(UGCEngineError):
    """Raised when an operation is not legal for the task's current status.

    Attributes:
        status: The task status that blocked the operation.
    """

    def __init__(self, message: str, status: str) -> None:
        self.status = status
        super().__init__(message)


class ProviderError(UGCEngineError):
    """Raised when an external generator fails or returns an unusable result.

    Attributes:
        provider: Name of the adapter that failed.
    """

    def __init__(self, message: str, provider: str) -> None:
        self.provider = provider
        super().__init__(message)


class SchemaValidationError(ProviderError):
    """Raised when a provider response does not match the expected schema."""


class InvalidStoragePathError(UGCEngineError):
    """Raised for storage paths that escape the storage root."""


class WorkflowError(UGCEngineError):
    """Raised when a workflow or poll job ends in failure.

    The message is user-visible and is stored on the task.

    Attributes:
        retryable: False when re-running the job would fail the same way.
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        self.retryable = retryable
        super().__init__(message)
