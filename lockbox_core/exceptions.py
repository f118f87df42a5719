"""
Lockbox exception hierarchy.

All exceptions inherit from LockboxError for easy catching.
"""

from typing import Any


class LockboxError(Exception):
    """Base exception for all lockbox_core errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class DataStoreError(LockboxError):
    """Datastore operation failed."""


class NoIDPassedError(DataStoreError):
    """An update was requested for an item without an identifier."""

    def __init__(self, message: str = "Item has no ID") -> None:
        super().__init__(message)


class LockedError(DataStoreError):
    """The datastore is locked."""

    def __init__(self, message: str = "Datastore is locked") -> None:
        super().__init__(message)


class NotInitializedError(DataStoreError):
    """The datastore has not been initialized with an app key."""

    def __init__(self, message: str = "Datastore is not initialized") -> None:
        super().__init__(message)


class UnexpectedTypeError(DataStoreError):
    """The engine returned a value of the wrong shape."""

    def __init__(self, message: str = "Unexpected type from datastore", **context: Any) -> None:
        super().__init__(message, **context)


class UnexpectedJavaScriptMethodError(DataStoreError):
    """The engine posted a message with an unknown name."""

    def __init__(self, message: str = "Unexpected JavaScript method", *, name: str | None = None) -> None:
        super().__init__(message, name=name)
        self.name = name


class CallbackTimeoutError(DataStoreError):
    """The engine did not call back in time."""

    def __init__(self, message: str = "Datastore callback timed out", *, function: str) -> None:
        super().__init__(message, function=function)
        self.function = function


class ScriptEvaluationError(DataStoreError):
    """The script host reported an error while evaluating a script."""


class ParserError(LockboxError):
    """Item parsing or serialization failed."""


class InvalidDictionaryError(ParserError):
    """Dictionary does not describe a valid item."""


class InvalidItemError(ParserError):
    """Item cannot be serialized."""


class FxAError(LockboxError):
    """Firefox Accounts authentication failed."""


class RedirectNoStateError(FxAError):
    """Redirect URL has no state parameter."""

    def __init__(self, message: str = "Redirect has no state") -> None:
        super().__init__(message)


class RedirectNoCodeError(FxAError):
    """Redirect URL has no code parameter."""

    def __init__(self, message: str = "Redirect has no code") -> None:
        super().__init__(message)


class RedirectBadStateError(FxAError):
    """Redirect state does not belong to the flow in progress."""

    def __init__(self, message: str = "Redirect state does not match") -> None:
        super().__init__(message)


class EmptyOAuthDataError(FxAError):
    """Token endpoint returned no data."""


class EmptyProfileInfoDataError(FxAError):
    """Profile endpoint returned no data."""


class UnexpectedDataFormatError(FxAError):
    """Response or key material has an unexpected format."""


class CryptoError(LockboxError):
    """Cryptographic operation failed."""


class KeyGenerationError(CryptoError):
    """Failed to produce the ephemeral key pair."""


class JWEDecryptionError(CryptoError):
    """Failed to decrypt the scoped key bundle."""


class APIError(LockboxError):
    """HTTP request returned an error status."""

    def __init__(self, message: str, *, code: int, endpoint: str | None = None) -> None:
        super().__init__(message, code=code, endpoint=endpoint)
        self.code = code
        self.endpoint = endpoint


class NetworkError(LockboxError):
    """Network-level error (connection failed, timeout)."""


class SyncError(LockboxError):
    """Background sync failed."""

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message, reason=reason)
        self.reason = reason
