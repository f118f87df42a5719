"""
Typed actions flowing through the dispatcher.

Actions are immutable. Every component may emit them and subscribe to the
action types it cares about.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from lockbox_core.models.item import Item
from lockbox_core.models.state import SyncState
from lockbox_core.models.user import OAuthInfo, ProfileInfo


@dataclass(frozen=True)
class Action:
    """Base class for all actions."""


@dataclass(frozen=True, eq=False)
class ErrorAction(Action):
    """
    A reported, non-fatal error.

    Two error actions are equal when their errors have the same type and message.

    Attributes:
        error: The reported error.
        source: Callback name of the datastore call that failed, if any.
    """

    error: BaseException
    source: str | None = None

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ErrorAction):
            return NotImplemented
        return type(self.error) is type(other.error) and str(self.error) == str(other.error)

    def __hash__(self) -> int:
        return hash((type(self.error), str(self.error)))


# Datastore


@dataclass(frozen=True)
class DataStoreAction(Action):
    """Base class for datastore results."""


@dataclass(frozen=True)
class OpenedAction(DataStoreAction):
    opened: bool


@dataclass(frozen=True)
class InitializedAction(DataStoreAction):
    initialized: bool


@dataclass(frozen=True)
class LockedAction(DataStoreAction):
    locked: bool


@dataclass(frozen=True)
class ListAction(DataStoreAction):
    """
    The current item list, keyed by item ID.

    Equality ignores the items: any two list actions compare equal.
    """

    items: Mapping[str, Item] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class UpdatedAction(DataStoreAction):
    item: Item


# User info


@dataclass(frozen=True)
class UserInfoAction(Action):
    """Base class for account information actions."""


@dataclass(frozen=True)
class ProfileInfoAction(UserInfoAction):
    info: ProfileInfo


@dataclass(frozen=True)
class OAuthInfoAction(UserInfoAction):
    info: OAuthInfo


@dataclass(frozen=True)
class ScopedKeyAction(UserInfoAction):
    key: str = field(repr=False)


@dataclass(frozen=True)
class LoadUserInfoAction(UserInfoAction):
    pass


@dataclass(frozen=True)
class ClearUserInfoAction(UserInfoAction):
    pass


# FxA display


@dataclass(frozen=True)
class FxADisplayAction(Action):
    """Base class for sign-in progress shown to the user."""


@dataclass(frozen=True)
class LoadInitialURLAction(FxADisplayAction):
    url: str


@dataclass(frozen=True)
class FetchingUserInformationAction(FxADisplayAction):
    pass


@dataclass(frozen=True)
class FinishedFetchingUserInformationAction(FxADisplayAction):
    pass


# Lifecycle and sync


class LifecycleEvent(StrEnum):
    BACKGROUND = "background"
    FOREGROUND = "foreground"
    STARTUP = "startup"


@dataclass(frozen=True)
class LifecycleAction(Action):
    event: LifecycleEvent


class SyncCommand(StrEnum):
    SYNC = "sync"
    RESET = "reset"


@dataclass(frozen=True)
class SyncCommandAction(Action):
    command: SyncCommand


@dataclass(frozen=True)
class SyncStateAction(Action):
    state: SyncState
