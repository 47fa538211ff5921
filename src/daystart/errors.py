"""Exception taxonomy for the content pipeline.

Concurrency misses are deliberately absent: a conditional write that
affects zero rows returns False instead of raising.
"""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ValidationError(PipelineError):
    """Rejected before any write: bad status, illegal transition, missing field."""


class InvalidStatusError(ValidationError):
    """Value is not one of the fixed content block statuses."""

    def __init__(self, value):
        super().__init__(f"Invalid content block status: {value!r}")
        self.value = value


class IllegalTransitionError(ValidationError):
    """Transition is not in the lifecycle transition table."""

    def __init__(self, from_status, to_status):
        super().__init__(
            f"Illegal status transition: {getattr(from_status, 'value', from_status)}"
            f" -> {getattr(to_status, 'value', to_status)}"
        )
        self.from_status = from_status
        self.to_status = to_status


class ExternalAPIError(PipelineError):
    """A vendor API (LLM, TTS, data source) call failed."""


class TransientAPIError(ExternalAPIError):
    """Timeout, rate limit, connection failure or 5xx. Worth retrying."""


class PermanentAPIError(ExternalAPIError):
    """Vendor rejected the request. Retrying will not help."""


class RetriesExhaustedError(ExternalAPIError):
    """Transient failures outlasted the backoff policy."""

    def __init__(self, last_error: Exception, attempts: int):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.last_error = last_error
        self.attempts = attempts


class StorageError(PipelineError):
    """Blob storage upload or delete failed."""


class StoreUnavailableError(PipelineError):
    """Content store could not be queried or written."""
