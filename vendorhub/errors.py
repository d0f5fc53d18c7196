"""
Domain error taxonomy.

Services raise these; the handlers registered in ``vendorhub.main`` turn them
into ``{"success": false, "message": ...}`` responses with the matching status.
"""


class VendorHubError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(VendorHubError):
    status_code = 404


class ValidationError(VendorHubError):
    status_code = 400


class AuthorizationError(VendorHubError):
    status_code = 403


class ConflictError(VendorHubError):
    status_code = 409


class StorageError(VendorHubError):
    """Persistence failure. Nothing was committed, so the caller may retry."""

    status_code = 500
