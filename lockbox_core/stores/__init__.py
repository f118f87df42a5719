"""
Observable state derived from the action stream.
"""

from lockbox_core.stores.datastore_store import DataStoreStore
from lockbox_core.stores.secret_store import (
    InMemorySecretStore,
    JsonFileSecretStore,
    KeychainIdentifier,
    SecretStore,
)
from lockbox_core.stores.user_info_store import UserInfoStore

__all__ = [
    "DataStoreStore",
    "InMemorySecretStore",
    "JsonFileSecretStore",
    "KeychainIdentifier",
    "SecretStore",
    "UserInfoStore",
]
