"""
Lockbox core.

An async password-manager core: an action bus, a bridge to the embedded
JavaScript datastore, the Firefox Accounts sign-in flow and background sync.

Example:
    ```python
    from lockbox_core import LockboxClient

    async with LockboxClient(script_host=host) as client:
        url = client.sign_in()
        # show url, then on navigation:
        await client.handle_redirect_url(redirect)

        await client.open(uid)
        await client.list()
    ```
"""

from lockbox_core.actions import (
    Action,
    ErrorAction,
    LifecycleEvent,
    ListAction,
    SyncCommand,
)
from lockbox_core.client import BiometryGate, LockboxClient
from lockbox_core.config import LockboxConfig
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.exceptions import (
    APIError,
    CallbackTimeoutError,
    CryptoError,
    DataStoreError,
    FxAError,
    InvalidDictionaryError,
    InvalidItemError,
    LockboxError,
    LockedError,
    NetworkError,
    NoIDPassedError,
    NotInitializedError,
    ParserError,
    RedirectBadStateError,
    RedirectNoCodeError,
    RedirectNoStateError,
    SyncError,
    UnexpectedJavaScriptMethodError,
    UnexpectedTypeError,
)
from lockbox_core.models import Item, ItemEntry, LoginStoreState, ProfileInfo, SyncState

__version__ = "0.1.0"

__all__ = [
    # Main client
    "LockboxClient",
    "LockboxConfig",
    "BiometryGate",
    "Dispatcher",
    # Actions
    "Action",
    "ErrorAction",
    "LifecycleEvent",
    "ListAction",
    "SyncCommand",
    # Models
    "Item",
    "ItemEntry",
    "LoginStoreState",
    "ProfileInfo",
    "SyncState",
    # Exceptions
    "LockboxError",
    "DataStoreError",
    "NoIDPassedError",
    "LockedError",
    "NotInitializedError",
    "UnexpectedTypeError",
    "UnexpectedJavaScriptMethodError",
    "CallbackTimeoutError",
    "ParserError",
    "InvalidDictionaryError",
    "InvalidItemError",
    "FxAError",
    "RedirectNoStateError",
    "RedirectNoCodeError",
    "RedirectBadStateError",
    "CryptoError",
    "APIError",
    "NetworkError",
    "SyncError",
]
