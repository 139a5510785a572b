"""Headless model of the browser surfaces the page depends on.

Frames, timers, viewport geometry, intersection observers, clipboard and
location are all explicit objects so the pipeline can run (and be tested)
without a browser. Nothing here blocks; everything advances when the caller
ticks frames, advances timers or scrolls the viewport.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from paperlane.state import MemoryStorage, Storage
from paperlane.tree import Node

logger = logging.getLogger(__name__)


class ClipboardDeniedError(Exception):
    """Raised when the platform refuses a clipboard write."""


# --- Scheduling ---


class FrameScheduler:
    """Animation-frame queue. ``tick`` runs callbacks pending at tick start."""

    def __init__(self) -> None:
        self._next = 1
        self._pending: dict[int, Callable[[float], None]] = {}
        self.now = 0.0
        self.frame_ms = 1000.0 / 60.0

    def request(self, callback: Callable[[float], None]) -> int:
        handle = self._next
        self._next += 1
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def tick(self, frames: int = 1) -> None:
        for _ in range(frames):
            self.now += self.frame_ms
            batch, self._pending = self._pending, {}
            for callback in batch.values():
                callback(self.now)


class Timers:
    """One-shot timeouts driven by ``advance``."""

    def __init__(self) -> None:
        self.elapsed_ms = 0
        self._queue: list[tuple[int, int, Callable[[], None]]] = []
        self._seq = 0

    def set_timeout(self, callback: Callable[[], None], delay_ms: int) -> None:
        self._seq += 1
        self._queue.append((self.elapsed_ms + delay_ms, self._seq, callback))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def advance(self, ms: int) -> None:
        self.elapsed_ms += ms
        due = sorted(t for t in self._queue if t[0] <= self.elapsed_ms)
        self._queue = [t for t in self._queue if t[0] > self.elapsed_ms]
        for _, _, callback in due:
            callback()


# --- Geometry ---


@dataclass
class Rect:
    """Box in document coordinates."""
    top: float
    height: float
    left: float = 0.0
    width: float = 0.0

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass
class IntersectionEntry:
    target: Node
    ratio: float

    @property
    def is_intersecting(self) -> bool:
        return self.ratio > 0


class IntersectionObserver:
    """Reports when observed nodes cross into the (margin-trimmed) viewport."""

    def __init__(
        self,
        viewport: "Viewport",
        callback: Callable[[list[IntersectionEntry], "IntersectionObserver"], None],
        threshold: float = 0.0,
        bottom_margin: float = 0.0,
    ) -> None:
        self.viewport = viewport
        self.callback = callback
        self.threshold = threshold
        self.bottom_margin = bottom_margin
        self.observed: list[Node] = []
        viewport.observers.append(self)

    def observe(self, node: Node) -> None:
        if node not in self.observed:
            self.observed.append(node)

    def unobserve(self, node: Node) -> None:
        if node in self.observed:
            self.observed.remove(node)

    def disconnect(self) -> None:
        self.observed.clear()
        if self in self.viewport.observers:
            self.viewport.observers.remove(self)

    def check(self) -> None:
        vp = self.viewport
        top = vp.scroll_y
        bottom = vp.scroll_y + vp.height * (1.0 - self.bottom_margin)
        entries = []
        for node in list(self.observed):
            r = vp.measure(node)
            overlap = max(0.0, min(bottom, r.bottom) - max(top, r.top))
            ratio = overlap / r.height if r.height > 0 else (1.0 if top <= r.top < bottom else 0.0)
            if ratio > 0 and ratio >= self.threshold:
                entries.append(IntersectionEntry(node, ratio))
        if entries:
            self.callback(entries, self)


class Viewport:
    """Window size, scroll offset and a per-node layout table."""

    def __init__(self, width: float = 1280, height: float = 900) -> None:
        self.width = width
        self.height = height
        self.scroll_y = 0.0
        self.document_height = height
        self.rects: dict[int, Rect] = {}
        self.default_rect = Rect(top=1e9, height=100)
        self.observers: list[IntersectionObserver] = []
        self.scroll_listeners: list[Callable[[float], None]] = []
        self.pointer_listeners: list[Callable[[float | None, float | None], None]] = []

    def place(self, node: Node, top: float, height: float = 100) -> None:
        self.rects[id(node)] = Rect(top=top, height=height)
        self.document_height = max(self.document_height, top + height)

    def measure(self, node: Node) -> Rect:
        return self.rects.get(id(node), self.default_rect)

    def client_rect(self, node: Node) -> Rect:
        """Rect relative to the current scroll position."""
        r = self.measure(node)
        return Rect(top=r.top - self.scroll_y, height=r.height, left=r.left, width=r.width)

    def scroll_to(self, y: float) -> None:
        self.scroll_y = max(0.0, y)
        for listener in list(self.scroll_listeners):
            listener(self.scroll_y)
        for observer in list(self.observers):
            observer.check()

    def scroll_into_view(self, node: Node) -> None:
        self.scroll_to(self.measure(node).top)

    def move_pointer(self, x: float, y: float) -> None:
        for listener in list(self.pointer_listeners):
            listener(x, y)

    def leave_pointer(self) -> None:
        for listener in list(self.pointer_listeners):
            listener(None, None)

    @property
    def progress(self) -> float:
        """Reading progress in percent, clamped to [0, 100]."""
        scrollable = self.document_height - self.height
        pct = (self.scroll_y / scrollable) * 100 if scrollable > 0 else 0.0
        return max(0.0, min(100.0, pct))


# --- Clipboard and location ---


class Clipboard:
    def __init__(self, allowed: bool = True) -> None:
        self.allowed = allowed
        self.text: str | None = None

    def write_text(self, text: str) -> None:
        if not self.allowed:
            raise ClipboardDeniedError("clipboard write denied")
        self.text = text


class Location:
    def __init__(self, href: str = "about:blank") -> None:
        base, _, fragment = href.partition("#")
        self.base = base
        self.fragment = fragment

    @property
    def href(self) -> str:
        return f"{self.base}#{self.fragment}" if self.fragment else self.base

    def url_for(self, fragment: str) -> str:
        return f"{self.base}#{fragment}"

    def replace_fragment(self, fragment: str) -> None:
        self.fragment = fragment.lstrip("#")


@dataclass
class Platform:
    """Everything the page needs from its host environment."""
    storage: Storage = field(default_factory=MemoryStorage)
    viewport: Viewport = field(default_factory=Viewport)
    frames: FrameScheduler = field(default_factory=FrameScheduler)
    timers: Timers = field(default_factory=Timers)
    clipboard: Clipboard = field(default_factory=Clipboard)
    location: Location = field(default_factory=Location)
    prefers_reduced_motion: bool = False
    supports_intersection: bool = True
