"""
Domain errors raised by storage engines and permission guards.
Mapped to HTTP status codes by the exception handlers in app.main.
"""


class KindoraError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(KindoraError):
    """Targeted id does not resolve within the given scope"""
    status_code = 404
    default_message = "Not found"


class PermissionDeniedError(KindoraError):
    """Caller's family role lacks the required action"""
    status_code = 403
    default_message = "You don't have permission to perform this action"


class InvalidOperationError(KindoraError):
    """Well-formed request that breaks a domain rule"""
    status_code = 400
    default_message = "Invalid operation"
