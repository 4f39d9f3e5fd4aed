"""
Progress facade
----------------
Fans pipeline snapshots out to subscribed listeners (WebSocket senders,
test recorders, CLIs). Listeners may be plain callables or coroutine
functions; a failing listener is logged and never breaks the pipeline.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, List, Union

from verified_visuals.contracts import PipelineSnapshot
from verified_visuals.utils.error_handling import safely

SnapshotListener = Callable[[PipelineSnapshot], Union[None, Awaitable[Any]]]


class ProgressPublisher:
    def __init__(self) -> None:
        self._listeners: List[SnapshotListener] = []

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def publish(self, snapshot: PipelineSnapshot) -> None:
        for listener in list(self._listeners):
            with safely(
                "Progress listener failed",
                non_fatal=True,
                run_id=snapshot.run_id,
                state=snapshot.state.value,
            ):
                outcome = listener(snapshot)
                if inspect.isawaitable(outcome):
                    await outcome


__all__ = ["ProgressPublisher", "SnapshotListener"]
