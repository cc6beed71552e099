"""Custom exceptions for the application."""


class SofiaException(Exception):
    """Base exception for all Sofia errors."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


# Request Exceptions
class ValidationError(SofiaException):
    """Malformed or unacceptable input (bad MIME type, oversize upload...)."""
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class AuthenticationError(SofiaException):
    """Missing, invalid or expired credentials."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


# Resource Exceptions
class ResourceAccessDeniedError(SofiaException):
    """Authenticated but not allowed."""
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status_code=403)


class NotFoundError(SofiaException):
    """Resource absent or not owned by the caller."""
    def __init__(self, resource: str, id: str = None):
        if id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} with id {id} not found"
        super().__init__(message, status_code=404)


class DependencyError(SofiaException):
    """Database or another collaborator failed."""
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, status_code=500)


class AuditWriteError(SofiaException):
    """Audit row could not be written. Logged, never returned to a client."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
