# channel.py - bounded FIFO used for both the work queue and the result channel

import threading
from collections import deque
from typing import Deque, Generic, List, Optional, Tuple, TypeVar

from .cancel import CancellationToken
from .models import TakeStatus

T = TypeVar("T")


class ChannelClosedError(RuntimeError):
    pass


class BoundedChannel(Generic[T]):
    """Thread-safe bounded queue with close-when-done semantics.

    Every blocking call returns as soon as ``token`` is cancelled; the token
    wakes waiters through a listener, nothing here polls.
    """

    def __init__(self, capacity: int, token: CancellationToken, name: str = "channel"):
        if capacity < 1:
            raise ValueError(f"{name} capacity must be at least 1")
        self._capacity = capacity
        self._token = token
        self._name = name
        self._items: Deque[T] = deque()
        self._closed = False
        self._cond = threading.Condition()
        token.add_listener(self._wake)

    def _wake(self) -> None:
        with self._cond:
            self._cond.notify_all()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def put(self, item: T) -> bool:
        # after cancellation the item is dropped: nobody is left to drain it
        with self._cond:
            while True:
                if self._closed:
                    raise ChannelClosedError(f"put on closed {self._name}")
                if self._token.cancelled:
                    return False
                if len(self._items) < self._capacity:
                    self._items.append(item)
                    self._cond.notify_all()
                    return True
                self._cond.wait()

    def take(self) -> Tuple[TakeStatus, Optional[T]]:
        with self._cond:
            while True:
                if self._token.cancelled:
                    return TakeStatus.CANCELLED, None
                if self._items:
                    item = self._items.popleft()
                    self._cond.notify_all()
                    return TakeStatus.ITEM, item
                if self._closed:
                    return TakeStatus.EXHAUSTED, None
                self._cond.wait()

    def drain(self) -> List[T]:
        with self._cond:
            items = list(self._items)
            self._items.clear()
            self._cond.notify_all()
            return items

    def close(self) -> None:
        with self._cond:
            if self._closed:
                raise ChannelClosedError(f"{self._name} closed twice")
            self._closed = True
            self._cond.notify_all()

    def __repr__(self) -> str:
        return f"BoundedChannel(name={self._name!r}, capacity={self._capacity}, closed={self._closed})"
