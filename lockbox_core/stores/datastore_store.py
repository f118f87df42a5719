"""Projection of datastore actions into observable storage state."""

from collections.abc import Mapping

import structlog

from lockbox_core.actions import (
    DataStoreAction,
    ErrorAction,
    InitializedAction,
    ListAction,
    LockedAction,
    OpenedAction,
    UpdatedAction,
)
from lockbox_core.bridge.client import CallbackFunction
from lockbox_core.core.observable import ObservableValue
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.models.item import Item
from lockbox_core.models.state import LoginStoreState
from lockbox_core.stores.secret_store import KeychainIdentifier, SecretStore

logger = structlog.get_logger(__name__)

_STORAGE_CALLBACKS = frozenset(
    {
        CallbackFunction.OPEN_COMPLETE,
        CallbackFunction.INITIALIZE_COMPLETE,
        CallbackFunction.UNLOCK_COMPLETE,
        CallbackFunction.LOCK_COMPLETE,
    }
)


class DataStoreStore:
    """
    Observable view of the storage session.

    storage_state is UNPREPARED until the datastore opens, then follows
    LockedAction. Failed open, initialize, unlock or lock calls move it to
    ERRORED; other errors leave it alone. Locking clears the cached items.
    The locked flag is persisted so load() can restore it.
    """

    def __init__(self, dispatcher: Dispatcher, secret_store: SecretStore) -> None:
        self._secret_store = secret_store

        self.opened: ObservableValue[bool] = ObservableValue(False)
        self.initialized: ObservableValue[bool] = ObservableValue()
        self.locked: ObservableValue[bool] = ObservableValue()
        self.items: ObservableValue[Mapping[str, Item]] = ObservableValue({})
        self.storage_state: ObservableValue[LoginStoreState] = ObservableValue(
            LoginStoreState.UNPREPARED
        )

        self._unsubscribers = [
            dispatcher.register(DataStoreAction, self._on_action),
            dispatcher.register(ErrorAction, self._on_error),
        ]

    def load(self) -> None:
        """Restore the persisted locked flag, if any."""
        stored = self._secret_store.retrieve(KeychainIdentifier.LOCKED)
        if stored is not None:
            self.locked.set(stored == "true")

    def get(self, item_id: str) -> Item | None:
        return (self.items.value or {}).get(item_id)

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _on_action(self, action: DataStoreAction) -> None:
        match action:
            case OpenedAction(opened=opened):
                self.opened.set(opened)
                if not opened:
                    self.storage_state.set(LoginStoreState.UNPREPARED)
            case InitializedAction(initialized=initialized):
                self.initialized.set(initialized)
            case LockedAction(locked=locked):
                self._set_locked(locked)
            case ListAction(items=items):
                self.items.set(dict(items))
            case UpdatedAction(item=item):
                if item.id is not None:
                    self.items.set({**(self.items.value or {}), item.id: item})

    def _on_error(self, action: ErrorAction) -> None:
        if action.source not in _STORAGE_CALLBACKS:
            return
        logger.warning("Storage call failed", function=action.source)
        self.storage_state.set(LoginStoreState.errored(action.error))

    def _set_locked(self, locked: bool) -> None:
        if not self._secret_store.save(KeychainIdentifier.LOCKED, "true" if locked else "false"):
            logger.warning("Failed to persist locked flag")
        self.locked.set(locked)
        if locked:
            self.items.set({})
            self.storage_state.set(LoginStoreState.LOCKED)
        else:
            self.storage_state.set(LoginStoreState.UNLOCKED)
