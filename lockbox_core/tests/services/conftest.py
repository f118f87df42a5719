from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from lockbox_core.bridge.client import BridgeClient
from lockbox_core.services.datastore_service import DataStoreService
from lockbox_core.tests.utils.fakes import FakeScriptHost, RecordingDispatcher


@pytest.fixture
def service(bridge: BridgeClient, dispatcher: RecordingDispatcher) -> DataStoreService:
    return DataStoreService(bridge, dispatcher)


@pytest_asyncio.fixture
async def opened_service(
    service: DataStoreService, host: FakeScriptHost, dispatcher: RecordingDispatcher
) -> AsyncIterator[DataStoreService]:
    """A service whose datastore has reported OpenComplete. Recorded actions are cleared."""
    host.respond("swiftOpen", "OpenComplete")
    service.prepare()
    await service.open("uid-1")
    assert service.is_opened
    host.scripts.clear()
    dispatcher.actions.clear()

    yield service
