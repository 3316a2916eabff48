"""Exception hierarchy for the discovery engine."""


class TuitionLiftError(Exception):
    """Base class for all engine errors."""

    pass


class ProfileIncompleteError(TuitionLiftError):
    """Raised before a run starts when the user's profile cannot drive discovery."""

    def __init__(self, user_id: str, missing: list[str]):
        self.user_id = user_id
        self.missing = missing
        super().__init__(
            f"Profile for user '{user_id}' is incomplete: missing {', '.join(missing)}"
        )


class StateUpdateError(TuitionLiftError):
    """Raised when a partial state update violates the state schema."""

    pass


class GraphValidationError(TuitionLiftError):
    """Raised when a graph description is inconsistent."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Invalid graph: {'; '.join(errors)}")


class CheckpointWriteError(TuitionLiftError):
    """Raised when a checkpoint could not be made durable. Always fatal to the run."""

    def __init__(self, thread_id: str, cause: BaseException):
        self.thread_id = thread_id
        self.cause = cause
        super().__init__(f"Failed to persist checkpoint for thread '{thread_id}': {cause}")


class ResumeError(TuitionLiftError):
    """Raised when a resume call does not match the thread's outstanding interrupt."""

    def __init__(self, thread_id: str, reason: str):
        self.thread_id = thread_id
        self.reason = reason
        super().__init__(f"Cannot resume thread '{thread_id}': {reason}")


class RunTimeoutError(TuitionLiftError):
    """Raised when a run exceeds its wall-clock budget.

    Checkpoints committed before the timeout stay intact; the next invoke
    on the same thread continues from the last committed node.
    """

    def __init__(self, thread_id: str, timeout_seconds: float, last_node: str | None):
        self.thread_id = thread_id
        self.timeout_seconds = timeout_seconds
        self.last_node = last_node
        super().__init__(
            f"Run on thread '{thread_id}' exceeded {timeout_seconds}s "
            f"(last committed node: {last_node or 'none'})"
        )


class SearchClientError(TuitionLiftError):
    """Raised by search collaborators on provider failures."""

    pass


class CheckpointReadError(TuitionLiftError):
    """Raised when a stored checkpoint exists but cannot be parsed."""

    def __init__(self, thread_id: str, cause: BaseException):
        self.thread_id = thread_id
        self.cause = cause
        super().__init__(f"Checkpoint for thread '{thread_id}' is unreadable: {cause}")


class ThreadBusyError(TuitionLiftError):
    """Raised when another execution currently owns the thread."""

    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(f"Thread '{thread_id}' is already running in another execution")


class InvalidThreadIdError(TuitionLiftError, ValueError):
    """Raised when a thread id cannot be used as a storage key."""

    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(f"Invalid thread id: {thread_id!r}")
