"""
Subscriber registry shared by the calculator models.
"""

from typing import Any, Callable, List

Callback = Callable[..., Any]


class Observable:
    """Keeps a list of callbacks and notifies all of them on every change."""

    def __init__(self):
        self._subscribers: List[Callback] = []

    def subscribe(self, callback: Callback) -> Callable[[], None]:
        """
        Register a callback.

        Returns:
            A function that removes the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, *payload: Any) -> None:
        # Copy so a callback may unsubscribe while being notified
        for callback in list(self._subscribers):
            callback(*payload)
