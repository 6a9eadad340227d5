"\"\"\"Synchronous listener registry used for core notifications.\"\"\""

from __future__ import annotations

from typing import Any, Callable

Listener = Callable[..., Any]


class Signal:
    """Named notification delivered to listeners in registration order.

    Emission is synchronous; a listener that raises stops delivery and the
    exception reaches the emitter's caller.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[Listener] = []

    def connect(self, listener: Listener) -> Listener:
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def disconnect(self, listener: Listener) -> bool:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def emit(self, *args: Any) -> None:
        for listener in list(self._listeners):
            listener(*args)

    def __len__(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"Signal({self.name!r}, listeners={len(self._listeners)})"
