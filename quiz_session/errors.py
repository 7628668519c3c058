"""Exceptions raised by the session service."""


class QuizSessionError(Exception):
    """Base class for all session service errors."""


class OperationTimeoutError(QuizSessionError):
    """A remote operation did not settle before its deadline."""

    def __init__(self, label: str, timeout_ms: int):
        super().__init__(f"{label}: timeout after {timeout_ms}ms")
        self.label = label
        self.timeout_ms = timeout_ms


class OperationAbortedError(QuizSessionError):
    """A remote operation was cancelled by its caller before completion."""

    def __init__(self, label: str, reason: str | None = None):
        message = f"{label}: aborted"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.label = label
        self.reason = reason


class HttpError(QuizSessionError):
    """The remote service answered with a non-success status."""

    def __init__(self, url: str, status: int, status_text: str, body: object = None):
        super().__init__(f"HTTP {status} {status_text}".rstrip())
        self.url = url
        self.status = status
        self.status_text = status_text
        self.body = body


class ServiceResponseError(QuizSessionError):
    """A response is missing data the caller cannot work without."""


class AnswerRejectedError(QuizSessionError):
    """An answer edit was refused (wrong state, unknown question, bad index)."""


class InvalidStateError(QuizSessionError):
    """An operation was requested in a state that does not allow it."""


def describe_error(exc: BaseException) -> str:
    """Short human-readable description for notifications."""
    if isinstance(exc, HttpError):
        detail = ""
        body = exc.body
        if isinstance(body, dict):
            for key in ("message", "detail", "error"):
                value = body.get(key)
                if isinstance(value, str) and value.strip():
                    detail = value.strip()
                    break
        elif isinstance(body, str) and body.strip():
            detail = body.strip()[:300]
        status = f"status={exc.status}"
        return f"{status} {detail}".strip()
    message = str(exc).strip()
    return message or type(exc).__name__
