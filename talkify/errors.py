"""
Custom error classes raised by queries and handlers.

Each carries the HTTP status it is rendered with; the application turns them
into {"error": "<message>"} responses.
"""


class APIError(Exception):
    """Base API error class."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class UnauthorizedError(APIError):
    """No usable X-User-ID header."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class ForbiddenError(APIError):
    """The caller may not touch this resource."""
    def __init__(self, message: str = "Not allowed"):
        super().__init__(message, status_code=403)


class NotFoundError(APIError):
    """Resource not found error."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ConflictError(APIError):
    """The resource already exists."""
    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, status_code=409)
