"""
Business errors raised by the service layer.

Routes never translate these by hand: `main.py` maps each class to an HTTP
status code. Anything that is not a `PosError` is treated as unexpected.
"""


class PosError(Exception):
    """Base class for expected, caller-facing failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(PosError):
    """A referenced entity does not exist."""


class InvalidError(PosError):
    """Malformed or policy-violating input."""


class SessionAlreadyClosedError(InvalidError):
    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already closed")


class ConflictError(PosError):
    """A concurrency or business invariant would be violated."""


class InvalidTransitionError(PosError):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid status transition: {_value(current)} -> {_value(requested)}"
        )


def _value(status) -> str:
    return getattr(status, "value", str(status))
