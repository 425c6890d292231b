"""Exceptions raised by the background processing pipeline."""


class PipelineError(Exception):
    """Base exception for pipeline errors.

    ``retryable`` tells the dispatcher whether a failed job should go back
    to the queue or fail terminally.
    """

    retryable = True


class TransientNetworkError(PipelineError):
    """Raised when a feed, the summarizer or the mail server is unreachable."""

    retryable = True


class MalformedSourceError(PipelineError):
    """Raised when a feed body cannot be parsed into entries."""

    retryable = False


class DuplicateContentError(PipelineError):
    """Raised when content with the same fingerprint already exists for a user.

    Benign: callers catch it and count the item as skipped.
    """

    retryable = False

    def __init__(self, user_id: str, fingerprint: str):
        super().__init__(f"Content {fingerprint[:12]} already stored for user {user_id}")
        self.user_id = user_id
        self.fingerprint = fingerprint


class ExhaustedRetriesError(PipelineError):
    """Raised when a job has used all of its attempts."""

    retryable = False

    def __init__(self, job_id: int, attempts: int, last_error: str | None = None):
        message = f"Job {job_id} exhausted {attempts} attempts"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.job_id = job_id
        self.attempts = attempts
        self.last_error = last_error


class AuthenticationError(PipelineError):
    """Raised when a trigger request carries a missing or wrong secret."""

    retryable = False


class InvalidDigestTransition(PipelineError):
    """Raised on a digest status change the state machine does not allow."""

    retryable = False


class UnknownJobKindError(PipelineError):
    """Raised when a job carries a kind with no registered handler."""

    retryable = False


class SummarizerError(PipelineError):
    """Raised when the summarizer returns output that cannot be used."""

    retryable = True


class ModelConfigurationError(PipelineError):
    """Raised when the configured chat model cannot be created."""

    retryable = False
