"""Error types for the Betteh Music CMS."""


class CMSError(Exception):
    """Base exception for CMS errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidCredentials(CMSError):
    """Raised when a login does not match a stored admin.

    The message is identical for unknown users and wrong passwords.
    """

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class Unauthorized(CMSError):
    """Raised when an admin-only route is hit without a valid session."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NotFound(CMSError):
    """Raised when a mutation targets an id that is not in the store."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")


class StorageFailure(CMSError):
    """Raised when the JSON document or an upload cannot be read or written."""

    def __init__(self, message: str):
        super().__init__(f"Storage error: {message}")


class InvalidUpload(CMSError):
    """Raised for uploads with a disallowed extension or excessive size."""
