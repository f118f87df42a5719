"""Single-slot replaying value holder used by the stores."""

from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class ObservableValue(Generic[T]):
    """
    Holds the latest value and notifies subscribers on change.

    New subscribers receive the current value immediately, if one has been set.
    Not thread-safe: only touch it from the event loop.
    """

    def __init__(self, initial: T | object = _UNSET) -> None:
        """
        Args:
            initial: Optional starting value.
        """
        self._value: T | object = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def has_value(self) -> bool:
        return self._value is not _UNSET

    @property
    def value(self) -> T | None:
        """Latest value, or None if nothing has been set yet."""
        if self._value is _UNSET:
            return None
        return self._value  # type: ignore[return-value]

    def set(self, value: T) -> None:
        """
        Replace the value and notify every subscriber.

        Args:
            value: New value.
        """
        self._value = value
        for callback in list(self._subscribers):
            callback(value)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a callback for future values.

        Args:
            callback: Called with the current value (if any) and every later one.

        Returns:
            Callable that removes the subscription.
        """
        self._subscribers.append(callback)
        if self._value is not _UNSET:
            callback(self._value)  # type: ignore[arg-type]

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
