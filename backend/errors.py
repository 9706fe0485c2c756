"""Request errors. Each one is reported privately to the requesting connection."""


class QuizError(Exception):
    category = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(QuizError):
    """Unknown room or test."""
    category = "not_found"


class Unauthorized(QuizError):
    """Non-host attempting a host action, or a non-player submitting an answer."""
    category = "unauthorized"


class Conflict(QuizError):
    """Duplicate display name, ended room, or no free room codes."""
    category = "conflict"


class InvalidState(QuizError):
    """Request does not fit the room's lifecycle state."""
    category = "invalid_state"


class BadRequest(QuizError):
    """Malformed frame or payload."""
    category = "bad_request"
