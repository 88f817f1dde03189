"""
Replay-latest observable state.

Operators publish their continuously updated state (balances, sync progress,
the current operator set...) through StateStream instances. A stream keeps
the last emitted value and hands it to every new subscriber, so late
subscribers never miss the current state. Completion is an explicit terminal
signal: after complete() nothing is emitted again and new subscribers are
told about the completion immediately instead of waiting forever.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any, Generic, TypeVar

from loguru import logger

from mcwallet.errors import StreamCompletedError

T = TypeVar("T")

NO_VALUE: Any = object()
_DONE: Any = object()


class Subscription:
    """Handle returned by StateStream.subscribe()."""

    def __init__(self, stream: StateStream[Any], key: int):
        self._stream: StateStream[Any] | None = stream
        self._key = key

    @property
    def closed(self) -> bool:
        return self._stream is None

    def unsubscribe(self) -> None:
        if self._stream is not None:
            self._stream._remove(self._key)
            self._stream = None


class StateStream(Generic[T]):
    """
    Broadcast stream with replay-latest semantics.

    StateStream() has no value until the first emit() (like a replay subject
    of size 1). StateStream(initial) starts with a value (like a behaviour
    subject).
    """

    def __init__(self, initial: T = NO_VALUE):
        self._value: T = initial
        self._completed = False
        self._next_key = 0
        self._subscribers: dict[int, tuple[Callable[[T], None], Callable[[], None] | None]] = {}

    @property
    def value(self) -> T | None:
        """Latest value, or None if nothing was emitted yet."""
        return None if self._value is NO_VALUE else self._value

    @property
    def has_value(self) -> bool:
        return self._value is not NO_VALUE

    @property
    def completed(self) -> bool:
        return self._completed

    @staticmethod
    def _deliver(on_next: Callable[[T], None], value: T) -> None:
        try:
            on_next(value)
        except Exception as e:
            logger.exception(f"Stream subscriber failed: {e}")

    @staticmethod
    def _notify_completion(on_complete: Callable[[], None] | None) -> None:
        if on_complete is None:
            return
        try:
            on_complete()
        except Exception as e:
            logger.exception(f"Stream completion handler failed: {e}")

    def emit(self, value: T) -> None:
        if self._completed:
            return
        self._value = value
        for on_next, _ in list(self._subscribers.values()):
            self._deliver(on_next, value)

    def complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        subscribers = list(self._subscribers.values())
        self._subscribers.clear()
        for _, on_complete in subscribers:
            self._notify_completion(on_complete)

    def subscribe(
        self,
        on_next: Callable[[T], None],
        on_complete: Callable[[], None] | None = None,
    ) -> Subscription:
        key = self._next_key
        self._next_key += 1
        subscription = Subscription(self, key)

        if self._completed:
            if self.has_value:
                self._deliver(on_next, self._value)
            self._notify_completion(on_complete)
            subscription._stream = None
            return subscription

        self._subscribers[key] = (on_next, on_complete)
        if self.has_value:
            self._deliver(on_next, self._value)
        return subscription

    def _remove(self, key: int) -> None:
        self._subscribers.pop(key, None)

    async def first(self, predicate: Callable[[T], bool] | None = None) -> T:
        """Wait for the first value (replayed or future) matching predicate."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()

        def on_next(value: T) -> None:
            if not future.done() and (predicate is None or predicate(value)):
                future.set_result(value)

        def on_complete() -> None:
            if not future.done():
                future.set_exception(StreamCompletedError("Stream completed before a value"))

        subscription = self.subscribe(on_next, on_complete)
        try:
            return await future
        finally:
            subscription.unsubscribe()

    async def __aiter__(self) -> AsyncIterator[T]:
        queue: asyncio.Queue[Any] = asyncio.Queue()
        subscription = self.subscribe(queue.put_nowait, lambda: queue.put_nowait(_DONE))
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    return
                yield item
        finally:
            subscription.unsubscribe()
