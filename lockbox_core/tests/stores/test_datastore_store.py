import pytest

from lockbox_core.actions import (
    ErrorAction,
    InitializedAction,
    ListAction,
    LockedAction,
    OpenedAction,
    UpdatedAction,
)
from lockbox_core.bridge.client import CallbackFunction
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.exceptions import (
    LockedError,
    NoIDPassedError,
    RedirectNoCodeError,
    ScriptEvaluationError,
    UnexpectedJavaScriptMethodError,
    UnexpectedTypeError,
)
from lockbox_core.models.item import Item
from lockbox_core.models.state import LoginStoreState, LoginStoreStatus
from lockbox_core.stores.datastore_store import DataStoreStore
from lockbox_core.stores.secret_store import InMemorySecretStore, KeychainIdentifier


@pytest.fixture
def secret_store() -> InMemorySecretStore:
    return InMemorySecretStore()


@pytest.fixture
def store(dispatcher: Dispatcher, secret_store: InMemorySecretStore) -> DataStoreStore:
    return DataStoreStore(dispatcher, secret_store)


def test_initial_values(store: DataStoreStore) -> None:
    assert store.opened.value is False
    assert store.items.value == {}
    assert store.storage_state.value == LoginStoreState.UNPREPARED
    assert not store.locked.has_value
    assert not store.initialized.has_value


def test_opened_and_initialized(store: DataStoreStore, dispatcher: Dispatcher) -> None:
    dispatcher.dispatch(OpenedAction(opened=True))
    dispatcher.dispatch(InitializedAction(initialized=True))

    assert store.opened.value is True
    assert store.initialized.value is True


def test_unlock_moves_to_unlocked_and_persists(
    store: DataStoreStore, dispatcher: Dispatcher, secret_store: InMemorySecretStore
) -> None:
    dispatcher.dispatch(LockedAction(locked=False))

    assert store.storage_state.value == LoginStoreState.UNLOCKED
    assert store.locked.value is False
    assert secret_store.retrieve(KeychainIdentifier.LOCKED) == "false"


def test_lock_clears_items(
    store: DataStoreStore, dispatcher: Dispatcher, login_item: Item
) -> None:
    dispatcher.dispatch(LockedAction(locked=False))
    dispatcher.dispatch(ListAction(items={"item-1": login_item}))

    dispatcher.dispatch(LockedAction(locked=True))

    assert store.items.value == {}
    assert store.storage_state.value == LoginStoreState.LOCKED


def test_closing_datastore_returns_to_unprepared(
    store: DataStoreStore, dispatcher: Dispatcher
) -> None:
    dispatcher.dispatch(LockedAction(locked=False))

    dispatcher.dispatch(OpenedAction(opened=False))

    assert store.storage_state.value == LoginStoreState.UNPREPARED


def test_list_and_update(store: DataStoreStore, dispatcher: Dispatcher, login_item: Item) -> None:
    dispatcher.dispatch(ListAction(items={"item-1": login_item}))
    touched = Item(id="item-1", title="Renamed", entry=login_item.entry)
    added = Item(id="item-2", title="Other", entry=login_item.entry)

    dispatcher.dispatch(UpdatedAction(item=touched))
    dispatcher.dispatch(UpdatedAction(item=added))

    assert store.get("item-1") == touched
    assert store.get("item-2") == added
    assert store.get("missing") is None


@pytest.mark.parametrize(
    "source",
    [
        CallbackFunction.OPEN_COMPLETE,
        CallbackFunction.INITIALIZE_COMPLETE,
        CallbackFunction.UNLOCK_COMPLETE,
        CallbackFunction.LOCK_COMPLETE,
    ],
)
def test_failed_storage_call_moves_to_errored(
    store: DataStoreStore, dispatcher: Dispatcher, source: CallbackFunction
) -> None:
    dispatcher.dispatch(LockedAction(locked=True))

    dispatcher.dispatch(ErrorAction(ScriptEvaluationError("engine failed"), source=source))

    state = store.storage_state.value
    assert state.status is LoginStoreStatus.ERRORED
    assert isinstance(state.cause, ScriptEvaluationError)


@pytest.mark.parametrize(
    "action",
    [
        ErrorAction(NoIDPassedError()),
        ErrorAction(UnexpectedJavaScriptMethodError(name="gibberish")),
        ErrorAction(LockedError(), source=CallbackFunction.LIST_COMPLETE),
        ErrorAction(UnexpectedTypeError(), source=CallbackFunction.UPDATE_COMPLETE),
        ErrorAction(RedirectNoCodeError()),
    ],
)
def test_other_errors_leave_state_alone(
    store: DataStoreStore, dispatcher: Dispatcher, action: ErrorAction
) -> None:
    dispatcher.dispatch(LockedAction(locked=False))

    dispatcher.dispatch(action)

    assert store.storage_state.value == LoginStoreState.UNLOCKED


@pytest.mark.parametrize(("stored", "expected"), [("true", True), ("false", False)])
def test_load_restores_locked_flag(
    store: DataStoreStore, secret_store: InMemorySecretStore, stored: str, expected: bool
) -> None:
    secret_store.save(KeychainIdentifier.LOCKED, stored)

    store.load()

    assert store.locked.value is expected


def test_load_without_flag(store: DataStoreStore) -> None:
    store.load()

    assert not store.locked.has_value


def test_close_stops_listening(store: DataStoreStore, dispatcher: Dispatcher) -> None:
    store.close()

    dispatcher.dispatch(OpenedAction(opened=True))

    assert store.opened.value is False
