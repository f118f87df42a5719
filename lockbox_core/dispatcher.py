"""
Action dispatcher.

A single channel that every action flows through. Construct one per process
and pass it to each component.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from lockbox_core.actions import Action

logger = structlog.get_logger(__name__)

A = TypeVar("A", bound=Action)

Handler = Callable[[A], Awaitable[Any] | None]


class Dispatcher:
    """
    Synchronous fan-out of actions to registered handlers.

    Handlers run in registration order on the caller's stack. A handler may
    return an awaitable; it is scheduled as a task on the running loop and can
    be awaited with drain().
    """

    def __init__(self) -> None:
        self._handlers: list[tuple[type[Action], Handler]] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failures: list[BaseException] = []

    def register(self, action_type: type[A], handler: Handler[A]) -> Callable[[], None]:
        """
        Subscribe to actions of a given type (subclasses included).

        Args:
            action_type: Action class to receive.
            handler: Callable invoked with each matching action.

        Returns:
            Callable that removes the subscription.
        """
        entry = (action_type, handler)
        self._handlers.append(entry)

        def unsubscribe() -> None:
            if entry in self._handlers:
                self._handlers.remove(entry)

        return unsubscribe

    def dispatch(self, action: Action) -> None:
        """
        Deliver an action to every matching handler.

        Args:
            action: The action to publish.
        """
        logger.debug("Dispatching action", action_type=type(action).__name__)

        for action_type, handler in list(self._handlers):
            if not isinstance(action, action_type):
                continue
            result = handler(action)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled() or task.exception() is None:
            return
        error = task.exception()
        logger.error("Action handler task failed", error_type=type(error).__name__)
        self._failures.append(error)

    async def drain(self) -> None:
        """
        Wait until every task scheduled by handlers has finished.

        Tasks scheduled while draining are awaited too. Failures of tasks that
        finished before the call are reported as well, once.

        Raises:
            Exception: The first failure raised by a handler task.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

        if self._failures:
            error = self._failures[0]
            self._failures.clear()
            raise error
