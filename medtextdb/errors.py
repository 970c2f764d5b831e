"""
Error taxonomy shared by the store, the catalog and the accounts module.

Store-level failures (``StorageReadError``) are recovered inside the store
and only logged. The remaining errors are raised to the caller; the HTTP
layer maps each one to a status code via ``status_code``.
"""

from typing import Dict, Optional


class MedTextError(Exception):
    """Base class for all errors raised by the package."""

    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(MedTextError):
    """A required field is missing or empty after trimming.

    ``errors`` maps field names to a short message (e.g. ``"Required"``)
    so that a form can flag each offending input.
    """

    status_code = 400

    def __init__(self, message: str = "Invalid input", errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors: Dict[str, str] = dict(errors or {})


class ConflictError(MedTextError):
    status_code = 409


class AuthError(MedTextError):
    """Credential mismatch. Unknown user and wrong password look the same."""

    status_code = 401


class PermissionDenied(MedTextError):
    status_code = 403


class NotFound(MedTextError):
    status_code = 404


class StorageReadError(MedTextError):
    """A stored value could not be deserialized. Never leaves the store."""
