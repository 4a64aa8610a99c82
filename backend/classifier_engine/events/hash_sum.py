"""
Corpus hash over a stream of training events.
"""

import hashlib
from typing import Iterable, Iterator

from .event import Event


class HashSumEventStream:
    """
    Forward-only event iterator that digests every event it hands out.

    The MD5 digest covers the UTF-8 string form of each consumed event, in
    order. The hash sum is only available once the wrapped stream is
    exhausted.
    """

    def __init__(self, events: Iterable[Event]):
        self._events: Iterator[Event] = iter(events)
        self._digest = hashlib.md5()
        self._exhausted = False
        self.event_count = 0

    def __iter__(self) -> "HashSumEventStream":
        return self

    def __next__(self) -> Event:
        try:
            event = next(self._events)
        except StopIteration:
            self._exhausted = True
            raise

        self._digest.update(str(event).encode("utf-8"))
        self.event_count += 1
        return event

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def calculate_hash_sum(self) -> int:
        """
        Hash sum of all consumed events as a non-negative integer.

        Raises:
            RuntimeError: If the wrapped stream has not been fully consumed
        """
        if not self._exhausted:
            raise RuntimeError("Event stream must be exhausted before hashing")
        return int.from_bytes(self._digest.digest(), "big")

    def hex_hash_sum(self) -> str:
        """Hash sum in lowercase hex, without leading zeros."""
        return format(self.calculate_hash_sum(), "x")
