"""
Storage session service for the JavaScript datastore.

Sequences open, initialize, unlock, lock, list and touch against the bridge,
checks preconditions before mutating calls and turns bridge callbacks into
datastore actions.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from lockbox_core.actions import (
    ErrorAction,
    InitializedAction,
    ListAction,
    LockedAction,
    OpenedAction,
    UpdatedAction,
)
from lockbox_core.bridge.client import BridgeClient, CallbackFunction, is_list_body
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.exceptions import (
    LockedError,
    NoIDPassedError,
    NotInitializedError,
    ParserError,
    UnexpectedTypeError,
)
from lockbox_core.models.item import Item, ItemEntry
from lockbox_core.parser import ItemParser, Parser

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class DataStoreService:
    """
    Storage session state machine.

    Every operation except open() is a silent no-op until the datastore has
    reported OpenComplete. Failures are dispatched as ErrorAction, never
    raised to the caller, and reset the operation's correlation slot.

    Concurrency:
    - Calls to the same operation are serialized by a per-operation lock, so a
      correlation slot never has more than one waiter.
    - A callback that never arrives blocks that operation (and later calls to
      it) unless a callback timeout is configured on the bridge.
    """

    def __init__(
        self,
        bridge: BridgeClient,
        dispatcher: Dispatcher,
        *,
        datastore_name: str = "ds",
        parser: ItemParser | None = None,
    ) -> None:
        """
        Args:
            bridge: Bridge to the script host.
            dispatcher: Bus receiving the datastore actions.
            datastore_name: JavaScript variable holding the opened datastore.
            parser: Item parser. Defaults to Parser.
        """
        self._bridge = bridge
        self._dispatcher = dispatcher
        self._name = datastore_name
        self._parser = parser if parser is not None else Parser()
        self._locks = {function: asyncio.Lock() for function in CallbackFunction}

    @property
    def is_opened(self) -> bool:
        return self._bridge.is_opened

    def prepare(self) -> None:
        """Announce the datastore as not yet opened and start loading it."""
        self._dispatcher.dispatch(OpenedAction(opened=False))
        self._bridge.start()

    async def open(self, uid: str) -> None:
        """
        Open the datastore for a user.

        Waits for the datastore page to finish loading before issuing the call.

        Args:
            uid: Account identifier used as the datastore salt.
        """
        slot = self._bridge.slot(CallbackFunction.OPEN_COMPLETE)
        async with self._locks[CallbackFunction.OPEN_COMPLETE]:
            await self._bridge.wait_loaded()
            logger.info("Opening datastore")

            slot.reset()
            salt = json.dumps({"salt": uid}, separators=(",", ":"))
            script = (
                f"var {self._name};swiftOpen({salt}).then(function (datastore) "
                f"{{{self._name} = datastore;}});"
            )
            if await self._call(CallbackFunction.OPEN_COMPLETE, script) is _FAILED:
                return

            logger.info("Datastore opened")
            self._dispatcher.dispatch(OpenedAction(opened=True))

    async def initialize(self, scoped_key: str) -> None:
        """
        Initialize a fresh datastore with the app key.

        Args:
            scoped_key: JSON text of the scoped key.
        """
        if not self._require_opened("initialize"):
            return
        async with self._locks[CallbackFunction.INITIALIZE_COMPLETE]:
            script = f'{self._name}.initialize({{"appKey":{scoped_key}}})'
            if await self._call(CallbackFunction.INITIALIZE_COMPLETE, script) is _FAILED:
                return
            self._dispatcher.dispatch(InitializedAction(initialized=True))

    async def update_initialized(self) -> None:
        """Query whether the datastore is initialized and dispatch the answer."""
        if not self._require_opened("update_initialized"):
            return
        initialized = await self._report(self._initialized())
        if initialized is not _FAILED:
            self._dispatcher.dispatch(InitializedAction(initialized=initialized))

    async def unlock(self, scoped_key: str) -> None:
        """
        Unlock the datastore.

        Args:
            scoped_key: JSON text of the scoped key.
        """
        if not self._require_opened("unlock"):
            return
        async with self._locks[CallbackFunction.UNLOCK_COMPLETE]:
            script = f"{self._name}.unlock({scoped_key})"
            if await self._call(CallbackFunction.UNLOCK_COMPLETE, script) is _FAILED:
                return
            logger.info("Datastore unlocked")
            self._dispatcher.dispatch(LockedAction(locked=False))

    async def lock(self) -> None:
        """Lock the datastore."""
        if not self._require_opened("lock"):
            return
        async with self._locks[CallbackFunction.LOCK_COMPLETE]:
            if await self._call(CallbackFunction.LOCK_COMPLETE, f"{self._name}.lock()") is _FAILED:
                return
            logger.info("Datastore locked")
            self._dispatcher.dispatch(LockedAction(locked=True))

    async def update_locked(self) -> None:
        """Query whether the datastore is locked and dispatch the answer."""
        if not self._require_opened("update_locked"):
            return
        locked = await self._report(self._locked())
        if locked is not _FAILED:
            self._dispatcher.dispatch(LockedAction(locked=locked))

    async def list(self) -> None:
        """List every item. Requires an initialized, unlocked datastore."""
        if not self._require_opened("list"):
            return

        async def list_script() -> str:
            await self._check_state()
            return f"{self._name}.list()"

        async with self._locks[CallbackFunction.LIST_COMPLETE]:
            body = await self._call(CallbackFunction.LIST_COMPLETE, list_script)
            if body is _FAILED:
                return
            items = await self._report(self._items_from_list_body(body))
            if items is not _FAILED:
                logger.debug("Datastore listed", count=len(items))
                self._dispatcher.dispatch(ListAction(items=items))

    async def touch(self, item: Item) -> None:
        """
        Record a use of an item.

        Args:
            item: Persisted item (its id must be set).
        """
        if not self._require_opened("touch"):
            return

        async def touch_script() -> str:
            await self._check_state()
            if item.id is None:
                raise NoIDPassedError()
            return f"{self._name}.touch({self._parser.json_string_from_item(item)})"

        async with self._locks[CallbackFunction.UPDATE_COMPLETE]:
            body = await self._call(CallbackFunction.UPDATE_COMPLETE, touch_script)
            if body is _FAILED:
                return
            updated = await self._report(self._item_from_update_body(body))
            if updated is not _FAILED:
                self._dispatcher.dispatch(UpdatedAction(item=updated))

    async def populate_test_data(self) -> None:
        """Add a fixed set of sample logins to the datastore, then list them."""
        if not self._require_opened("populate_test_data"):
            return
        for item in SAMPLE_ITEMS:
            script = f"{self._name}.add({self._parser.json_string_from_item(item)})"
            if await self._report(self._bridge.evaluate(script)) is _FAILED:
                return
        await self.list()

    # Internals

    def _require_opened(self, operation: str) -> bool:
        if self._bridge.is_opened:
            return True
        logger.debug("Datastore not opened, ignoring call", operation=operation)
        return False

    async def _initialized(self) -> bool:
        return await self._bridge.evaluate_as_boolean(f"{self._name}.initialized")

    async def _locked(self) -> bool:
        return await self._bridge.evaluate_as_boolean(f"{self._name}.locked")

    async def _check_state(self) -> None:
        if not await self._initialized():
            raise NotInitializedError()
        if await self._locked():
            raise LockedError()

    async def _call(
        self,
        function: CallbackFunction,
        script: str | Callable[[], Awaitable[str]],
    ) -> Any:
        """
        Run one request/callback round trip.

        Arms the slot before issuing the call so an early callback is not lost.
        A failing precondition or evaluation fails the slot's waiter; any
        failure is dispatched once and leaves the slot empty.

        Args:
            function: Callback that completes the call.
            script: Script text, or a coroutine function that checks
                preconditions and returns the script text.

        Returns:
            The callback body, or _FAILED.
        """
        slot = self._bridge.slot(function)
        future = slot.arm()
        try:
            source = script if isinstance(script, str) else await script()
            await self._bridge.evaluate(source)
        except asyncio.CancelledError:
            slot.reset()
            future.cancel()
            raise
        except Exception as e:
            slot.fail(e)

        try:
            return await self._bridge.wait(function, future)
        except Exception as e:
            logger.warning(
                "Datastore call failed", function=str(function), error_type=type(e).__name__
            )
            self._dispatcher.dispatch(ErrorAction(e, source=str(function)))
            return _FAILED

    async def _report(self, awaitable: Awaitable[T]) -> "T | _Failed":
        try:
            return await awaitable
        except Exception as e:
            logger.warning("Datastore query failed", error_type=type(e).__name__)
            self._dispatcher.dispatch(ErrorAction(e))
            return _FAILED

    async def _items_from_list_body(self, body: Any) -> dict[str, Item]:
        if not is_list_body(body):
            raise UnexpectedTypeError(expected="list of pairs", actual=type(body).__name__)

        items: dict[str, Item] = {}
        for pair in body:
            if len(pair) < 2:
                continue
            item_id, dictionary = pair[0], pair[1]
            if not isinstance(item_id, str) or not isinstance(dictionary, dict):
                continue
            try:
                items[item_id] = self._parser.item_from_dictionary(dictionary)
            except ParserError as e:
                logger.debug("Skipping unparseable item", error_type=type(e).__name__)
        return items

    async def _item_from_update_body(self, body: Any) -> Item:
        if not isinstance(body, dict):
            raise UnexpectedTypeError(expected="dict", actual=type(body).__name__)
        return self._parser.item_from_dictionary(body)


class _Failed:
    def __repr__(self) -> str:
        return "_FAILED"


_FAILED = _Failed()


def _sample_login(
    title: str, origin: str, username: str, password: str, notes: str | None = None
) -> Item:
    return Item(
        title=title,
        origins=(origin,),
        entry=ItemEntry(kind="login", username=username, password=password, notes=notes),
    )


SAMPLE_ITEMS: tuple[Item, ...] = (
    _sample_login("Amazon", "https://amazon.com", "tjacobson@example.com", "iLUVdawgz"),
    _sample_login(
        "Facebook",
        "https://www.facebook.com",
        "tanya.jacobson",
        "iLUVdawgz",
        notes="I just have so much anxiety about using this website that I'm going to "
        "write about it in the notes section of my password manager wow",
    ),
    _sample_login("Reddit", "https://reddit.com", "tjacobson@example.com", "iLUVdawgz"),
    _sample_login("Twitter", "http://www.twitter.com", "tjacobson@example.com", "iLUVdawgz"),
    _sample_login("Chase", "https://www.chase.com", "jacobsonfamily444", "iLUVdawgz"),
    _sample_login(
        "Linkedin", "https://www.linkedin.com", "tanyamjackson@example.com", "iAmAprofessional345!"
    ),
    _sample_login(
        "Bank of America", "http://www.bankofamerica.com", "tjacobson735", "iLUVdawgz"
    ),
)
