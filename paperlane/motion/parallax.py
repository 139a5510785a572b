"""Pointer- and scroll-driven easing for the decorative background layers."""

import enum
import logging

from paperlane.config import ParallaxConfig
from paperlane.runtime import Platform
from paperlane.state import ThemeMotionStore
from paperlane.tree import Node

logger = logging.getLogger(__name__)


class TaskState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class ParallaxLayer:
    def __init__(self, node: Node) -> None:
        self.node = node
        self.sx = _coef(node, "data-sx")
        self.sy = _coef(node, "data-sy")
        self.ss = _coef(node, "data-ss")

    def apply(self, x: float, y: float, scroll: float) -> None:
        tx = x * self.sx
        ty = y * self.sy + scroll * self.ss
        self.node.style["transform"] = f"translate3d({tx:.2f}px, {ty:.2f}px, 0)"

    def reset(self) -> None:
        self.node.style.pop("transform", None)


def _coef(node: Node, key: str) -> float:
    try:
        return float(node.get(key, "0") or 0)
    except ValueError:
        return 0.0


class ParallaxController:
    """Owns the animation loop. Only ``start``/``stop`` change ``state``."""

    def __init__(
        self,
        root: Node,
        store: ThemeMotionStore,
        platform: Platform,
        config: ParallaxConfig | None = None,
    ) -> None:
        self.root = root
        self.store = store
        self.platform = platform
        self.config = config or ParallaxConfig()
        self.layers = [ParallaxLayer(n) for n in root.find_all(lambda n: "data-sx" in n.attrs)]
        self.state = TaskState.IDLE
        self.frames_run = 0
        self._handle: int | None = None

        self.target_x = 0.0
        self.target_y = 0.0
        self.target_scroll = 0.0
        self.x = 0.0
        self.y = 0.0
        self.scroll = 0.0

        vp = platform.viewport
        vp.pointer_listeners.append(self._on_pointer)
        vp.scroll_listeners.append(self._on_scroll)

    # --- Inputs ---

    def _on_pointer(self, x: float | None, y: float | None) -> None:
        if x is None or y is None:
            self.target_x = 0.0
            self.target_y = 0.0
            return
        vp = self.platform.viewport
        self.target_x = (x / max(vp.width, 1) - 0.5) * 2
        self.target_y = (y / max(vp.height, 1) - 0.5) * 2

    def _on_scroll(self, y: float) -> None:
        self.target_scroll = y

    # --- Task control ---

    def sync(self) -> None:
        if self.store.motion:
            self.start()
        else:
            self.stop()

    def start(self) -> bool:
        """Begin the loop. Returns False if already running or nothing to animate."""
        if self.state is TaskState.RUNNING:
            return False
        if not self.layers or not self.store.motion:
            return False
        self.state = TaskState.RUNNING
        self.root.style.pop("opacity", None)
        self.target_scroll = self.scroll = self.platform.viewport.scroll_y
        self._handle = self.platform.frames.request(self._frame)
        logger.debug("Parallax loop started with %d layers", len(self.layers))
        return True

    def stop(self) -> None:
        """Halt the loop, return layers to neutral and hide the root. Idempotent."""
        if self.state is TaskState.RUNNING:
            self.state = TaskState.STOPPING
            if self._handle is not None:
                self.platform.frames.cancel(self._handle)
                self._handle = None
            logger.debug("Parallax loop stopped after %d frames", self.frames_run)
        for layer in self.layers:
            layer.reset()
        self.x = self.y = self.scroll = 0.0
        self.root.style["opacity"] = "0"
        self.state = TaskState.IDLE

    def _frame(self, _now: float) -> None:
        self._handle = None
        if self.state is not TaskState.RUNNING:
            return
        pe, se = self.config.pointer_ease, self.config.scroll_ease
        self.x += (self.target_x - self.x) * pe
        self.y += (self.target_y - self.y) * pe
        self.scroll += (self.target_scroll - self.scroll) * se
        for layer in self.layers:
            layer.apply(self.x, self.y, self.scroll)
        self.frames_run += 1
        self._handle = self.platform.frames.request(self._frame)
