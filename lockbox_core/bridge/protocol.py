"""
Script host protocol definition.

This defines the interface to the sandboxed engine running the JavaScript
datastore, so a web view host, a headless JavaScript runtime or a native
reimplementation can be swapped without touching the datastore service.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MessageHandler(Protocol):
    """Receiver for events coming out of the script host."""

    def load_finished(self) -> None:
        """Called once the datastore page has finished loading."""
        ...

    def receive_message(self, name: str, body: Any) -> None:
        """
        Called for each message posted by the datastore.

        Args:
            name: Callback function name (e.g. "OpenComplete").
            body: Message payload, already converted to Python values.
        """
        ...


@runtime_checkable
class ScriptHost(Protocol):
    """
    Abstract interface for the embedded script engine.

    Hosts may call the handler from their own threads; BridgeClient offers
    thread-safe entry points for that case.
    """

    def load(self, handler: MessageHandler) -> None:
        """
        Start loading the datastore page.

        Args:
            handler: Receiver for the load-complete signal and posted messages.
        """
        ...

    async def evaluate(self, script: str) -> Any:
        """
        Evaluate a script expression once.

        Args:
            script: JavaScript source.

        Returns:
            The expression's value converted to Python values.

        Raises:
            ScriptEvaluationError: If the engine reports an error.
        """
        ...
