import asyncio
import json

import pytest

from lockbox_core.actions import (
    ErrorAction,
    InitializedAction,
    ListAction,
    LockedAction,
    OpenedAction,
    UpdatedAction,
)
from lockbox_core.bridge.client import BridgeClient, CallbackFunction
from lockbox_core.exceptions import (
    CallbackTimeoutError,
    InvalidDictionaryError,
    LockedError,
    NoIDPassedError,
    NotInitializedError,
    ScriptEvaluationError,
    UnexpectedTypeError,
)
from lockbox_core.models.item import Item
from lockbox_core.parser import Parser
from lockbox_core.services.datastore_service import SAMPLE_ITEMS, DataStoreService
from lockbox_core.tests.utils.fakes import FakeScriptHost, RecordingDispatcher

OPEN_SCRIPT = (
    'var ds;swiftOpen({"salt":"uid-1"}).then(function (datastore) {ds = datastore;});'
)
SCOPED_KEY = '{"kty":"oct","k":"c2VjcmV0"}'


# open


@pytest.mark.asyncio
async def test_prepare_announces_unopened_datastore(
    service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    service.prepare()

    assert dispatcher.actions == [OpenedAction(opened=False)]
    assert host.handler is not None


@pytest.mark.asyncio
async def test_open_waits_for_page_load(dispatcher: RecordingDispatcher) -> None:
    host = FakeScriptHost(auto_load=False)
    host.respond("swiftOpen", "OpenComplete")
    service = DataStoreService(BridgeClient(host, dispatcher), dispatcher)
    service.prepare()

    task = asyncio.create_task(service.open("uid-1"))
    await asyncio.sleep(0)
    assert host.scripts == []

    host.handler.load_finished()
    await task

    assert host.scripts == [OPEN_SCRIPT]
    assert dispatcher.of_type(OpenedAction) == [OpenedAction(opened=False), OpenedAction(opened=True)]


@pytest.mark.asyncio
async def test_open_issues_exact_script(
    service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.respond("swiftOpen", "OpenComplete")
    service.prepare()

    await service.open("uid-1")

    assert host.scripts == [OPEN_SCRIPT]
    assert dispatcher.actions[-1] == OpenedAction(opened=True)


@pytest.mark.asyncio
async def test_open_failure_dispatches_error_and_stays_closed(
    service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    error = ScriptEvaluationError("swiftOpen is not defined")
    host.set_value(OPEN_SCRIPT, error)
    service.prepare()

    await service.open("uid-1")

    assert dispatcher.actions[-1] == ErrorAction(error)
    assert OpenedAction(opened=True) not in dispatcher.actions
    assert service.is_opened is False


@pytest.mark.asyncio
async def test_open_salt_is_json_escaped(
    service: DataStoreService, host: FakeScriptHost
) -> None:
    host.respond("swiftOpen", "OpenComplete")
    service.prepare()

    await service.open('a"b')

    assert 'swiftOpen({"salt":"a\\"b"})' in host.scripts[0]


# operations before open


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "call",
    [
        lambda s, item: s.initialize(SCOPED_KEY),
        lambda s, item: s.update_initialized(),
        lambda s, item: s.unlock(SCOPED_KEY),
        lambda s, item: s.lock(),
        lambda s, item: s.update_locked(),
        lambda s, item: s.list(),
        lambda s, item: s.touch(item),
        lambda s, item: s.populate_test_data(),
    ],
)
async def test_operations_before_open_do_nothing(
    service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    login_item: Item,
    call,
) -> None:
    service.prepare()
    dispatcher.actions.clear()

    await call(service, login_item)

    assert host.scripts == []
    assert dispatcher.actions == []


# initialize / unlock / lock


@pytest.mark.asyncio
async def test_initialize(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.respond("ds.initialize(", "InitializeComplete")

    await opened_service.initialize(SCOPED_KEY)

    assert host.scripts == [f'ds.initialize({{"appKey":{SCOPED_KEY}}})']
    assert dispatcher.actions == [InitializedAction(initialized=True)]


@pytest.mark.asyncio
async def test_unlock(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.respond("ds.unlock(", "UnlockComplete")

    await opened_service.unlock(SCOPED_KEY)

    assert host.scripts == [f"ds.unlock({SCOPED_KEY})"]
    assert dispatcher.actions == [LockedAction(locked=False)]


@pytest.mark.asyncio
async def test_unlock_engine_error_is_dispatched_once_and_slot_resets(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    error = ScriptEvaluationError("bad key")
    host.set_value(f"ds.unlock({SCOPED_KEY})", error)

    await opened_service.unlock(SCOPED_KEY)

    assert dispatcher.actions == [ErrorAction(error)]
    assert dispatcher.actions[0].source == CallbackFunction.UNLOCK_COMPLETE

    host.set_value(f"ds.unlock({SCOPED_KEY})", None)
    host.respond("ds.unlock(", "UnlockComplete")
    dispatcher.actions.clear()

    await opened_service.unlock(SCOPED_KEY)

    assert dispatcher.actions == [LockedAction(locked=False)]


@pytest.mark.asyncio
async def test_lock(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.respond("ds.lock()", "LockComplete")

    await opened_service.lock()

    assert host.scripts == ["ds.lock()"]
    assert dispatcher.actions == [LockedAction(locked=True)]


@pytest.mark.asyncio
async def test_missing_callback_times_out_when_configured(
    host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    bridge = BridgeClient(host, dispatcher, callback_timeout=0.01)
    service = DataStoreService(bridge, dispatcher)
    host.respond("swiftOpen", "OpenComplete")
    service.prepare()
    await service.open("uid-1")

    await service.lock()

    assert dispatcher.actions[-1] == ErrorAction(CallbackTimeoutError(function="LockComplete"))


# state queries


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [True, False])
async def test_update_initialized(
    opened_service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    value: bool,
) -> None:
    host.set_value("ds.initialized", value)

    await opened_service.update_initialized()

    assert dispatcher.actions == [InitializedAction(initialized=value)]


@pytest.mark.asyncio
async def test_update_locked_with_non_boolean_dispatches_error(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.set_value("ds.locked", "yes")

    await opened_service.update_locked()

    assert len(dispatcher.actions) == 1
    assert isinstance(dispatcher.actions[0].error, UnexpectedTypeError)


# list


@pytest.mark.asyncio
async def test_list_when_not_initialized(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.set_state(initialized=False, locked=False)
    host.respond("ds.list()", "ListComplete", [])

    await opened_service.list()

    assert dispatcher.actions == [ErrorAction(NotInitializedError())]
    assert host.scripts_containing("ds.list()") == []


@pytest.mark.asyncio
async def test_list_when_locked(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.set_state(initialized=True, locked=True)
    host.respond("ds.list()", "ListComplete", [])

    await opened_service.list()

    assert dispatcher.actions == [ErrorAction(LockedError())]
    assert host.scripts_containing("ds.list()") == []


@pytest.mark.asyncio
async def test_list_parses_items(
    opened_service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    login_dictionary: dict,
) -> None:
    host.set_state(initialized=True, locked=False)
    host.respond("ds.list()", "ListComplete", [["item-1", login_dictionary]])

    await opened_service.list()

    assert host.scripts[-1] == "ds.list()"
    (action,) = dispatcher.actions
    assert isinstance(action, ListAction)
    assert list(action.items) == ["item-1"]
    assert action.items["item-1"].title == "Example"


@pytest.mark.asyncio
async def test_list_drops_malformed_elements(
    opened_service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    login_dictionary: dict,
) -> None:
    host.set_state(initialized=True, locked=False)
    body = [
        [1, 2, 3],
        ["short"],
        ["no-dict", "text"],
        ["bad-item", {"title": "no origins"}],
        ["item-1", login_dictionary],
    ]
    host.respond("ds.list()", "ListComplete", body)

    await opened_service.list()

    (action,) = dispatcher.actions
    assert list(action.items) == ["item-1"]


@pytest.mark.asyncio
async def test_list_of_wrong_triples_is_empty(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.set_state(initialized=True, locked=False)
    host.respond("ds.list()", "ListComplete", [[1, 2, 3]])

    await opened_service.list()

    assert dispatcher.actions == [ListAction(items={})]
    assert dict(dispatcher.actions[0].items) == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [None, "text", {"a": 1}, ["not-a-pair"]])
async def test_list_with_unexpected_body(
    opened_service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    body: object,
) -> None:
    host.set_state(initialized=True, locked=False)
    host.respond("ds.list()", "ListComplete", body)

    await opened_service.list()

    (action,) = dispatcher.actions
    assert isinstance(action, ErrorAction)
    assert isinstance(action.error, UnexpectedTypeError)


# touch


@pytest.mark.asyncio
async def test_touch_without_id_never_calls_touch(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.set_state(initialized=True, locked=False)
    host.respond("ds.touch(", "UpdateComplete", {})

    await opened_service.touch(Item(title="unsaved"))

    assert dispatcher.actions == [ErrorAction(NoIDPassedError())]
    assert dispatcher.actions[0].source == CallbackFunction.UPDATE_COMPLETE
    assert host.scripts_containing("ds.touch(") == []


@pytest.mark.asyncio
async def test_touch_when_locked(
    opened_service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    login_item: Item,
) -> None:
    host.set_state(initialized=True, locked=True)

    await opened_service.touch(login_item)

    assert dispatcher.actions == [ErrorAction(LockedError())]


@pytest.mark.asyncio
async def test_touch_sends_item_json(
    opened_service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    login_item: Item,
    login_dictionary: dict,
) -> None:
    host.set_state(initialized=True, locked=False)
    updated = {**login_dictionary, "last_used": 1700000000000}
    host.respond("ds.touch(", "UpdateComplete", updated)

    await opened_service.touch(login_item)

    assert host.scripts[-1] == f"ds.touch({Parser().json_string_from_item(login_item)})"
    (action,) = dispatcher.actions
    assert isinstance(action, UpdatedAction)
    assert action.item.last_used == 1700000000000


@pytest.mark.asyncio
async def test_touch_with_unexpected_body(
    opened_service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    login_item: Item,
) -> None:
    host.set_state(initialized=True, locked=False)
    host.respond("ds.touch(", "UpdateComplete", ["not", "a", "dict"])

    await opened_service.touch(login_item)

    (action,) = dispatcher.actions
    assert isinstance(action.error, UnexpectedTypeError)


@pytest.mark.asyncio
async def test_touch_with_unparseable_body(
    opened_service: DataStoreService,
    host: FakeScriptHost,
    dispatcher: RecordingDispatcher,
    login_item: Item,
) -> None:
    host.set_state(initialized=True, locked=False)
    host.respond("ds.touch(", "UpdateComplete", {"title": "missing origins"})

    await opened_service.touch(login_item)

    (action,) = dispatcher.actions
    assert isinstance(action.error, InvalidDictionaryError)


# sample data


@pytest.mark.asyncio
async def test_populate_test_data_adds_samples_then_lists(
    opened_service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    host.set_state(initialized=True, locked=False)
    host.respond("ds.list()", "ListComplete", [])

    await opened_service.populate_test_data()

    adds = host.scripts_containing("ds.add(")
    assert len(adds) == len(SAMPLE_ITEMS)
    assert json.loads(adds[0][len("ds.add(") : -1])["title"] == "Amazon"
    assert dispatcher.actions == [ListAction()]


# custom datastore name


@pytest.mark.asyncio
async def test_custom_datastore_name(
    bridge: BridgeClient, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> None:
    service = DataStoreService(bridge, dispatcher, datastore_name="store")
    host.respond("swiftOpen", "OpenComplete")
    host.respond("store.lock()", "LockComplete")
    service.prepare()
    await service.open("uid-1")

    await service.lock()

    assert host.scripts[0].startswith("var store;swiftOpen(")
    assert host.scripts[-1] == "store.lock()"
