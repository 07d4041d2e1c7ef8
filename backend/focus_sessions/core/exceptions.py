# backend/focus_sessions/core/exceptions.py

from typing import Optional


class SessionError(Exception):
    """Base class for failures the session core reports to its caller."""


class StoreFailure(SessionError):
    """
    The persistent store rejected or did not complete a read/write.
    A timeout or dropped connection to Mongo ends up here as well.
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        message = f"store operation '{operation}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class InvalidUserId(SessionError):
    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"invalid user id: {user_id!r}")
