"""First-appearance reveals for structural blocks."""

import logging

from paperlane.config import RevealConfig
from paperlane.runtime import IntersectionEntry, IntersectionObserver, Platform
from paperlane.state import ThemeMotionStore
from paperlane.tree import Node, has_class

logger = logging.getLogger(__name__)

REVEAL_CLASS = "reveal"
VISIBLE_CLASS = "is-in"

_BODY_TAGS = ("h3", "p", "ul", "ol", "pre", "table")
_BLOCK_CLASSES = ("flow3d", "widget-grid", "widget", "block-grid", "block")


class RevealController:
    """Marks blocks visible once, either at setup or when they scroll in."""

    def __init__(
        self,
        root: Node,
        store: ThemeMotionStore,
        platform: Platform,
        config: RevealConfig | None = None,
    ) -> None:
        self.root = root
        self.store = store
        self.platform = platform
        self.config = config or RevealConfig()
        self.targets: list[Node] = []
        self.observer: IntersectionObserver | None = None

    def collect(self) -> list[Node]:
        targets: list[Node] = []
        seen: set[int] = set()

        def add(node: Node) -> None:
            if id(node) not in seen:
                seen.add(id(node))
                targets.append(node)

        hero = self.root.find(has_class("hero"))
        if hero is not None:
            for child in hero.element_children:
                add(child)
        for section in self.root.find_all(has_class("paper-section")):
            for child in section.element_children:
                if child.tag == "h2":
                    add(child)
        for body in self.root.find_all(has_class("section-body")):
            for child in body.element_children:
                if child.tag in _BODY_TAGS:
                    add(child)
        for node in self.root.find_all(lambda n: any(c in n.classes for c in _BLOCK_CLASSES)):
            add(node)
        return targets

    @property
    def animated(self) -> bool:
        return (
            self.store.motion
            and not self.platform.prefers_reduced_motion
            and self.platform.supports_intersection
        )

    def setup(self) -> None:
        self.targets = self.collect()
        for node in self.targets:
            node.add_class(REVEAL_CLASS)
        self.sync()
        logger.info("Reveal set up for %d blocks (animated=%s)", len(self.targets), self.animated)

    def sync(self) -> None:
        """Re-evaluate after a motion change; pending reveals are re-observed."""
        self._disconnect()
        if not self.animated:
            self.reveal_all()
            return

        vp = self.platform.viewport
        fold = vp.height * self.config.fold_ratio
        self.observer = IntersectionObserver(
            vp, self._on_intersect,
            threshold=self.config.threshold, bottom_margin=self.config.bottom_margin,
        )
        for node in self.targets:
            if node.has_class(VISIBLE_CLASS):
                continue
            if vp.client_rect(node).top < fold:
                node.add_class(VISIBLE_CLASS)
            else:
                self.observer.observe(node)

    def reveal_all(self) -> None:
        for node in self.targets:
            node.add_class(VISIBLE_CLASS)

    @property
    def pending(self) -> list[Node]:
        return list(self.observer.observed) if self.observer is not None else []

    def _on_intersect(self, entries: list[IntersectionEntry], observer: IntersectionObserver) -> None:
        for entry in entries:
            if not entry.is_intersecting:
                continue
            entry.target.add_class(VISIBLE_CLASS)
            observer.unobserve(entry.target)

    def _disconnect(self) -> None:
        if self.observer is not None:
            self.observer.disconnect()
            self.observer = None
