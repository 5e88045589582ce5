"""Page host: document, layout, event listeners and timers for one inspected page."""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .dom import body_of, load_document
from .errors import EvaluationError
from .layout import Layout, StaticLayout
from .synthesizer import evaluate_xpath

logger = logging.getLogger("dom_inspector.page")

DOCUMENT = "document"
WINDOW = "window"

Listener = Callable[["DomEvent"], Any]


@dataclass
class DomEvent:
    type: str
    target: Any = None
    related_target: Any = None
    key: str = ""
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


@dataclass(order=True)
class TimerHandle:
    when: float
    seq: int
    callback: Callable[[], Any] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    """Single-threaded timer queue.

    Nothing runs on its own: the owner calls `run_due()` from its loop, tests
    call `advance()` to move the clock forward.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._offset = 0.0
        self._queue: list[TimerHandle] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._clock() + self._offset

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        handle = TimerHandle(self.now() + max(0.0, float(delay)), next(self._seq), callback)
        heapq.heappush(self._queue, handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for handle in self._queue if not handle.cancelled)

    def run_due(self) -> int:
        ran = 0
        now = self.now()
        while self._queue and self._queue[0].when <= now:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            ran += 1
            try:
                handle.callback()
            except Exception:
                logger.exception("timer callback failed")
        return ran

    def advance(self, seconds: float) -> int:
        self._offset += max(0.0, float(seconds))
        return self.run_due()


class Page:
    """One document plus the browser-ish services the inspector relies on."""

    def __init__(
        self,
        root: Any,
        layout: Layout | None = None,
        *,
        scheduler: Scheduler | None = None,
        url: str = "",
    ) -> None:
        self.root = root
        self.layout: Layout = layout if layout is not None else StaticLayout()
        self.scheduler = scheduler or Scheduler()
        self.url = url
        # Per-page globals (the `window` object's expando properties).
        self.globals: dict[str, Any] = {}
        self._listeners: dict[tuple[str, str], list[tuple[Listener, bool]]] = {}

    @classmethod
    def from_html(cls, markup: str | bytes, layout: Layout | None = None, **kwargs: Any) -> Page:
        return cls(load_document(markup), layout, **kwargs)

    @property
    def body(self) -> Any | None:
        return body_of(self.root)

    def replace_document(self, root: Any) -> None:
        self.root = root

    def xpath(self, expression: str) -> list[Any]:
        return evaluate_xpath(self.root, expression)

    def find(self, expression: str) -> Any | None:
        try:
            matches = self.xpath(expression)
        except EvaluationError:
            return None
        return matches[0] if matches else None

    # Listeners
    def add_event_listener(
        self,
        event_type: str,
        listener: Listener,
        capture: bool = False,
        *,
        target: str = DOCUMENT,
    ) -> None:
        entries = self._listeners.setdefault((target, event_type), [])
        if any(fn is listener and cap == capture for fn, cap in entries):
            return
        entries.append((listener, capture))

    def remove_event_listener(
        self,
        event_type: str,
        listener: Listener,
        capture: bool = False,
        *,
        target: str = DOCUMENT,
    ) -> None:
        entries = self._listeners.get((target, event_type), [])
        entries[:] = [(fn, cap) for fn, cap in entries if not (fn is listener and cap == capture)]

    def listener_count(self, event_type: str | None = None, *, target: str | None = None) -> int:
        return sum(
            len(entries)
            for (tgt, etype), entries in self._listeners.items()
            if (event_type is None or etype == event_type) and (target is None or tgt == target)
        )

    def dispatch(self, event: DomEvent, *, target: str = DOCUMENT) -> DomEvent:
        """Run capture listeners, then bubble listeners unless propagation was stopped.

        A listener removed by an earlier listener in the same dispatch is skipped.
        """
        key = (target, event.type)
        snapshot = list(self._listeners.get(key, []))
        for phase_capture in (True, False):
            for listener, capture in snapshot:
                if capture != phase_capture:
                    continue
                if event.propagation_stopped:
                    return event
                if (listener, capture) not in self._listeners.get(key, []):
                    continue
                listener(event)
        return event
