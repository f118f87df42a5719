"""
Lifecycle state models for the credential store and background sync.

Both states compare by status only: two errored states are equal whatever
their causes.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import ClassVar


class LoginStoreStatus(StrEnum):
    """Storage session status."""

    UNPREPARED = "unprepared"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    ERRORED = "errored"


class SyncStatus(StrEnum):
    """Background sync status."""

    NOT_SYNCABLE = "not_syncable"
    READY_TO_SYNC = "ready_to_sync"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


@dataclass(frozen=True)
class LoginStoreState:
    """
    Storage session state.

    Attributes:
        status: Current status.
        cause: Error that moved the store to ERRORED.
    """

    status: LoginStoreStatus
    cause: BaseException | None = field(default=None, compare=False)

    UNPREPARED: ClassVar["LoginStoreState"]
    LOCKED: ClassVar["LoginStoreState"]
    UNLOCKED: ClassVar["LoginStoreState"]

    @classmethod
    def errored(cls, cause: BaseException) -> "LoginStoreState":
        return cls(LoginStoreStatus.ERRORED, cause)


LoginStoreState.UNPREPARED = LoginStoreState(LoginStoreStatus.UNPREPARED)
LoginStoreState.LOCKED = LoginStoreState(LoginStoreStatus.LOCKED)
LoginStoreState.UNLOCKED = LoginStoreState(LoginStoreStatus.UNLOCKED)


@dataclass(frozen=True)
class SyncState:
    """
    Background sync state.

    Attributes:
        status: Current status.
        cause: Error that moved sync to ERROR.
    """

    status: SyncStatus
    cause: BaseException | None = field(default=None, compare=False)

    NOT_SYNCABLE: ClassVar["SyncState"]
    READY_TO_SYNC: ClassVar["SyncState"]
    SYNCING: ClassVar["SyncState"]
    SYNCED: ClassVar["SyncState"]

    @classmethod
    def error(cls, cause: BaseException) -> "SyncState":
        return cls(SyncStatus.ERROR, cause)


SyncState.NOT_SYNCABLE = SyncState(SyncStatus.NOT_SYNCABLE)
SyncState.READY_TO_SYNC = SyncState(SyncStatus.READY_TO_SYNC)
SyncState.SYNCING = SyncState(SyncStatus.SYNCING)
SyncState.SYNCED = SyncState(SyncStatus.SYNCED)
