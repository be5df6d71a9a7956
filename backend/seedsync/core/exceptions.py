"""
Error taxonomy shared by the provider client, the playlist pipeline and the API.
"""
from typing import Optional


class SeedSyncError(Exception):
    """Base class for all errors raised by this package."""


class ProviderRequestError(SeedSyncError):
    """Non-2xx or malformed response from Seedr."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProviderAuthError(ProviderRequestError):
    """Seedr rejected the credentials. The message is the provider's own text."""


class AuthorizationPendingError(SeedSyncError):
    """Device code not yet approved by the user."""


class DeviceAuthTimeoutError(SeedSyncError):
    pass


class PublishError(SeedSyncError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UnauthorizedError(SeedSyncError):
    """Account does not belong to the requesting identity."""


class AccountNotFoundError(SeedSyncError):
    pass


class ValidationError(SeedSyncError):
    pass


class NoContentError(SeedSyncError):
    """Nothing eligible to publish (no accounts or no videos)."""
