"""Append-only turn log of the active session."""

from __future__ import annotations
import dataclasses
from typing import Iterable, Iterator, Optional

from .models import Message


class MessageLog:
    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = []
        for m in messages:
            self.append(m)

    def append(self, message: Message) -> Message:
        """Append and return the stored message; timestamps never go backwards."""
        last = self.last
        if last is not None and message.timestamp < last.timestamp:
            message = dataclasses.replace(message, timestamp=last.timestamp)
        self._messages.append(message)
        return message

    @property
    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def snapshot(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, idx: int) -> Message:
        return self._messages[idx]
