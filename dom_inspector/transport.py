"""
Outbound channels for inspector events.

The inspector only ever calls `send(message)`; where the message ends up is the
transport's business:
- MemoryTransport: keeps messages in a list (tests, embedding)
- CallbackTransport: hands each message to a function (in-process handler hook)
- JsonLinesTransport: writes one JSON object per line to a binary stream
"""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from typing import IO, Any


class Transport:
    """Base transport: subclasses implement `send`."""

    def send(self, message: dict[str, Any]) -> None:
        raise NotImplementedError


class MemoryTransport(Transport):
    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    def send(self, message: dict[str, Any]) -> None:
        self.messages.append(copy.deepcopy(message))

    def events(self, action: str) -> list[dict[str, Any]]:
        return [msg for msg in self.messages if msg.get("action") == action]

    def clear(self) -> None:
        self.messages.clear()


class CallbackTransport(Transport):
    def __init__(self, callback: Callable[[dict[str, Any]], Any]) -> None:
        self._callback = callback

    def send(self, message: dict[str, Any]) -> None:
        self._callback(message)


class JsonLinesTransport(Transport):
    def __init__(self, stream: IO[bytes]) -> None:
        self._stream = stream

    def send(self, message: dict[str, Any]) -> None:
        data = json.dumps(message, ensure_ascii=False)
        self._stream.write((data + "\n").encode())
        self._stream.flush()
