"""
Error kinds raised by the scoring and submission services

Routes turn these into JSON responses (see register_error_handlers in
matchday/__init__.py); the CLI echoes their message.
"""


class PredictionError(Exception):
    """Base class for rule violations reported back to the caller"""

    kind = "error"
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"success": False, "error": self.kind, "message": self.message}


class NotFoundError(PredictionError):
    """Match, team, tournament, config or player absent"""

    kind = "not_found"
    status_code = 404


class ConflictError(PredictionError):
    """Status-based rule violation (finished, locked, window closed, ...)"""

    kind = "conflict"
    status_code = 409


class InvalidArgumentError(PredictionError):
    """Malformed pick or out-of-range score"""

    kind = "invalid_argument"
    status_code = 400


class DisabledError(PredictionError):
    """Feature switched off by configuration"""

    kind = "disabled"
    status_code = 403


class UnauthenticatedError(PredictionError):
    """No resolvable player identity"""

    kind = "unauthenticated"
    status_code = 401
