"""
Domain models for Lockbox.

These are immutable (frozen) dataclasses representing the core domain concepts.
"""

from lockbox_core.models.item import Item, ItemEntry
from lockbox_core.models.state import (
    LoginStoreState,
    LoginStoreStatus,
    SyncState,
    SyncStatus,
)
from lockbox_core.models.user import AuthContext, OAuthInfo, ProfileInfo

__all__ = [
    # Items
    "Item",
    "ItemEntry",
    # Account
    "AuthContext",
    "OAuthInfo",
    "ProfileInfo",
    # State
    "LoginStoreState",
    "LoginStoreStatus",
    "SyncState",
    "SyncStatus",
]
