import pytest

from lockbox_core.bridge.client import BridgeClient
from lockbox_core.config import LockboxConfig
from lockbox_core.models.item import Item, ItemEntry
from lockbox_core.tests.utils.fakes import FakeScriptHost, RecordingDispatcher


@pytest.fixture
def config() -> LockboxConfig:
    return LockboxConfig()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def host() -> FakeScriptHost:
    return FakeScriptHost()


@pytest.fixture
def bridge(host: FakeScriptHost, dispatcher: RecordingDispatcher) -> BridgeClient:
    return BridgeClient(host, dispatcher)


@pytest.fixture
def login_item() -> Item:
    return Item(
        id="item-1",
        title="Example",
        origins=("https://example.com",),
        entry=ItemEntry(kind="login", username="alice", password="hunter2"),
    )


@pytest.fixture
def login_dictionary() -> dict:
    return {
        "id": "item-1",
        "title": "Example",
        "origins": ["https://example.com"],
        "entry": {"kind": "login", "username": "alice", "password": "hunter2"},
    }
