"""
Bridge to the JavaScript datastore.

Evaluates scripts in the host engine and routes the engine's asynchronous
callbacks back to the request waiting for them.
"""

import asyncio
from collections.abc import Sequence
from enum import StrEnum
from typing import Any

import structlog

from lockbox_core.actions import ErrorAction
from lockbox_core.bridge.protocol import ScriptHost
from lockbox_core.dispatcher import Dispatcher
from lockbox_core.exceptions import (
    CallbackTimeoutError,
    UnexpectedJavaScriptMethodError,
    UnexpectedTypeError,
)

logger = structlog.get_logger(__name__)


class CallbackFunction(StrEnum):
    """Message names the datastore posts back. Case-sensitive."""

    OPEN_COMPLETE = "OpenComplete"
    INITIALIZE_COMPLETE = "InitializeComplete"
    UNLOCK_COMPLETE = "UnlockComplete"
    LOCK_COMPLETE = "LockComplete"
    LIST_COMPLETE = "ListComplete"
    UPDATE_COMPLETE = "UpdateComplete"


def is_list_body(body: Any) -> bool:
    """Whether a ListComplete body is a sequence of sequences."""
    return _is_sequence(body) and all(_is_sequence(pair) for pair in body)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


class CorrelationSlot:
    """
    Single-waiter rendezvous between an issued call and its callback.

    A replaying slot remembers its last successful body, so waiters armed
    after the callback resolve immediately. A one-shot slot delivers each
    callback to the waiter armed at that moment and drops it otherwise.
    Failing or resetting a slot empties it: the next waiter starts fresh.
    """

    def __init__(self, function: CallbackFunction, *, replay: bool = False) -> None:
        """
        Args:
            function: Callback name this slot correlates.
            replay: Whether to remember the last successful body.
        """
        self.function = function
        self._replay = replay
        self._pending: asyncio.Future[Any] | None = None
        self._has_value = False
        self._value: Any = None

    @property
    def has_value(self) -> bool:
        """Whether a replaying slot holds a successful body."""
        return self._has_value

    @property
    def is_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def arm(self) -> "asyncio.Future[Any]":
        """
        Create the future the next callback resolves.

        Arm before issuing the call so an early callback is not missed.

        Returns:
            Future resolved with the callback body.

        Raises:
            RuntimeError: If another waiter is still pending on this slot.
        """
        if self.is_pending:
            msg = f"{self.function} already has a pending waiter"
            raise RuntimeError(msg)

        future = asyncio.get_running_loop().create_future()
        if self._replay and self._has_value:
            future.set_result(self._value)
            return future

        self._pending = future
        return future

    def resolve(self, body: Any) -> bool:
        """
        Deliver a callback body.

        Returns:
            True if a waiter received it.
        """
        if self._replay:
            self._has_value = True
            self._value = body

        future, self._pending = self._pending, None
        if future is None or future.done():
            return False
        future.set_result(body)
        return True

    def fail(self, error: BaseException) -> bool:
        """
        Fail the pending waiter and empty the slot.

        Returns:
            True if a waiter received the error.
        """
        future = self._pending
        self.reset()
        if future is None or future.done():
            return False
        future.set_exception(error)
        return True

    def reset(self) -> None:
        """Forget the pending waiter and any replayed body."""
        self._pending = None
        self._has_value = False
        self._value = None


class BridgeClient:
    """
    Script-execution bridge with callback correlation.

    The script host reports back through load_finished() and receive_message()
    on the event loop, or through post_load_finished() and post_message() from
    any other thread.
    """

    def __init__(
        self,
        host: ScriptHost,
        dispatcher: Dispatcher,
        *,
        callback_timeout: float | None = None,
    ) -> None:
        """
        Args:
            host: Engine running the JavaScript datastore.
            dispatcher: Bus for reporting unexpected callbacks.
            callback_timeout: Seconds to wait for a callback. None waits forever.
        """
        self._host = host
        self._dispatcher = dispatcher
        self._callback_timeout = callback_timeout

        self._slots = {
            function: CorrelationSlot(function, replay=function is CallbackFunction.OPEN_COMPLETE)
            for function in CallbackFunction
        }
        self._loaded = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

    def start(self) -> None:
        """
        Ask the host to load the datastore page.

        Must be called from the event loop that owns this bridge.
        """
        self._loop = asyncio.get_running_loop()
        logger.debug("Loading datastore page")
        self._host.load(self)

    @property
    def is_loaded(self) -> bool:
        return self._loaded.is_set()

    @property
    def is_opened(self) -> bool:
        """Whether OpenComplete has been received since the last reset."""
        return self._slots[CallbackFunction.OPEN_COMPLETE].has_value

    def slot(self, function: CallbackFunction) -> CorrelationSlot:
        return self._slots[function]

    async def wait_loaded(self) -> None:
        """Wait until the datastore page has loaded."""
        await self._loaded.wait()

    async def evaluate(self, script: str) -> Any:
        """
        Evaluate a script once.

        Args:
            script: JavaScript source.

        Returns:
            The value produced by the engine.

        Raises:
            Exception: Whatever error the engine reported.
        """
        try:
            return await self._host.evaluate(script)
        except Exception as e:
            logger.warning("Script evaluation failed", error_type=type(e).__name__)
            raise

    async def evaluate_as_boolean(self, script: str) -> bool:
        """
        Evaluate a script whose value must be a boolean.

        Engines that bridge through numbers may return 0 or 1; those are accepted.

        Raises:
            UnexpectedTypeError: If the value cannot be read as a boolean.
        """
        value = await self.evaluate(script)
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise UnexpectedTypeError(expected="bool", actual=type(value).__name__)

    async def wait(self, function: CallbackFunction, future: "asyncio.Future[Any]") -> Any:
        """
        Wait for the callback body delivered to an armed future.

        Args:
            function: Callback the future was armed on.
            future: Future returned by CorrelationSlot.arm().

        Returns:
            The callback body.

        Raises:
            CallbackTimeoutError: If callback_timeout elapsed first.
        """
        if self._callback_timeout is None:
            return await future
        try:
            return await asyncio.wait_for(future, self._callback_timeout)
        except TimeoutError as e:
            self._slots[function].reset()
            raise CallbackTimeoutError(function=str(function)) from e

    def load_finished(self) -> None:
        logger.debug("Datastore page loaded")
        self._loaded.set()

    def receive_message(self, name: str, body: Any) -> None:
        try:
            function = CallbackFunction(name)
        except ValueError:
            logger.warning("Unexpected JavaScript method", name=name)
            self._dispatcher.dispatch(ErrorAction(UnexpectedJavaScriptMethodError(name=name)))
            return

        if self._slots[function].resolve(body):
            return
        logger.debug("Dropping callback with no waiter", function=str(function))
        error = _unexpected_body(function, body)
        if error is not None:
            self._dispatcher.dispatch(ErrorAction(error, source=str(function)))

    def post_load_finished(self) -> None:
        """Thread-safe variant of load_finished()."""
        self._require_loop().call_soon_threadsafe(self.load_finished)

    def post_message(self, name: str, body: Any) -> None:
        """Thread-safe variant of receive_message()."""
        self._require_loop().call_soon_threadsafe(self.receive_message, name, body)

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            msg = "Bridge not started. Call start() first."
            raise RuntimeError(msg)
        return self._loop


def _unexpected_body(function: CallbackFunction, body: Any) -> UnexpectedTypeError | None:
    if function is CallbackFunction.LIST_COMPLETE and not is_list_body(body):
        return UnexpectedTypeError(expected="list of pairs", actual=type(body).__name__)
    if function is CallbackFunction.UPDATE_COMPLETE and not isinstance(body, dict):
        return UnexpectedTypeError(expected="dict", actual=type(body).__name__)
    return None
