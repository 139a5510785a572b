"""Boot pipeline for one whitepaper page, and the click dispatcher over it.

``Page.boot`` runs the structural passes strictly in order, then wires the
theme/motion store to everything that must follow it. After boot, user
interaction arrives through ``Page.click`` and is routed by the nearest
``data-role`` ancestor of the clicked node.
"""

import logging
from collections.abc import Callable

from paperlane.charts import ChartRegistry
from paperlane.config import Config
from paperlane.diagrams.flow import DiagramEngine
from paperlane.diagrams.registry import FlowRegistry
from paperlane.models import Theme
from paperlane.motion.parallax import ParallaxController
from paperlane.motion.reveal import RevealController
from paperlane.render.editorial import (
    apply_lanes,
    build_hero,
    code_text,
    transform_key_lists,
    wire_code_copy_buttons,
    wrap_tables,
)
from paperlane.render.markup import MarkupRenderer
from paperlane.runtime import ClipboardDeniedError, Platform
from paperlane.sections import Section, SectionOrganizer
from paperlane.state import LocalState, ThemeMotionStore
from paperlane.tree import Node, el
from paperlane.widgets.engine import WidgetEngine

logger = logging.getLogger(__name__)

COPY_RESET_MS = 900

Handler = Callable[[Node], None]


class CommandDispatcher:
    """Maps ``data-role`` values to handlers."""

    def __init__(self) -> None:
        self.handlers: dict[str, Handler] = {}

    def register(self, role: str, handler: Handler) -> None:
        self.handlers[role] = handler

    def resolve(self, target: Node) -> Node | None:
        return target.closest(lambda n: n.get("data-role") in self.handlers)

    def dispatch(self, target: Node) -> str | None:
        """Run the handler for the nearest role-bearing ancestor. Returns the role."""
        node = self.resolve(target)
        if node is None:
            return None
        role = node.get("data-role")
        self.handlers[role](node)
        return role


def theme_label(theme: Theme) -> str:
    return "Theme: Dark" if theme == Theme.DARK else "Theme: Light"


def motion_label(motion: bool) -> str:
    return "Motion: On" if motion else "Motion: Off"


class Page:
    """Everything generated for one document, plus the live controllers."""

    def __init__(
        self,
        config: Config | None = None,
        platform: Platform | None = None,
        registry: FlowRegistry | None = None,
    ) -> None:
        self.config = config or Config()
        self.platform = platform or Platform()
        self.registry = registry if registry is not None else FlowRegistry.load()
        self.local = LocalState(self.platform.storage, self.config.storage)
        self.dispatcher = CommandDispatcher()

        self.store: ThemeMotionStore | None = None
        self.charts: ChartRegistry | None = None
        self.content: Node | None = None
        self.document: Node | None = None
        self.sections: SectionOrganizer | None = None
        self.diagrams: DiagramEngine | None = None
        self.widgets: WidgetEngine | None = None
        self.reveals: RevealController | None = None
        self.parallax: ParallaxController | None = None
        self.theme_toggle: Node | None = None
        self.motion_toggle: Node | None = None
        self.progress_bar: Node | None = None
        self.parallax_root: Node | None = None
        self.booted = False

    # --- Boot ---

    def boot(self, markdown: str) -> "Page":
        if self.booted:
            raise RuntimeError("Page already booted")
        cfg = self.config

        self.store = ThemeMotionStore(self.local, self.platform.prefers_reduced_motion)
        self.charts = ChartRegistry(self.store)

        self.content = MarkupRenderer(cfg.render).render(markdown)
        if cfg.render.build_hero:
            build_hero(self.content)

        self.sections = SectionOrganizer(self.content, self.local, on_expand=self._on_expand)
        self.sections.organize()
        collapsed = self.sections.apply_collapsed()
        if collapsed:
            logger.info("Restored %d collapsed sections", len(collapsed))

        self.diagrams = DiagramEngine(self.registry, self.store, cfg.layout)
        self.diagrams.transform(self.content)
        transform_key_lists(self.content)

        self.widgets = WidgetEngine(self.store, self.charts)
        self.widgets.inject(self.content)

        wire_code_copy_buttons(self.content)
        wrap_tables(self.content)
        apply_lanes(self.content)

        self.document = self._build_document()
        self._register_commands()
        self.store.subscribe(self._on_store_change)
        self._sync_chrome()

        self.reveals = RevealController(self.content, self.store, self.platform, cfg.reveal)
        self.reveals.setup()
        self.parallax = ParallaxController(self.parallax_root, self.store, self.platform, cfg.parallax)
        self.parallax.sync()

        self.platform.viewport.scroll_listeners.append(lambda _y: self.update_progress())
        self.update_progress()

        if self.platform.location.fragment:
            self.platform.timers.set_timeout(self.open_deep_link, cfg.boot.deep_link_delay_ms)

        self.booted = True
        logger.info("Booted page with %d sections", len(self.sections.sections))
        return self

    def _build_document(self) -> Node:
        doc = el("div", "page")

        self.parallax_root = el("div", "parallax", aria_hidden="true")
        for layer in self.config.parallax.layers:
            self.parallax_root.append(el(
                "div", f"parallax-layer tone-{layer.tone}",
                data_sx=f"{layer.sx:g}", data_sy=f"{layer.sy:g}", data_ss=f"{layer.ss:g}",
            ))

        progress = el("div", "progress")
        self.progress_bar = el("div", "progress-bar", id="progressBar")
        progress.append(self.progress_bar)

        toolbar = el("div", "toolbar")
        self.theme_toggle = el("button", "toggle theme-toggle", type="button", data_role="theme-toggle")
        self.motion_toggle = el("button", "toggle motion-toggle", type="button", data_role="motion-toggle")
        toolbar.append(self.theme_toggle, self.motion_toggle)

        main = el("main", "paper")
        main.append(self.content)
        doc.append(self.parallax_root, progress, toolbar, main)
        return doc

    def _register_commands(self) -> None:
        d = self.dispatcher
        d.register("collapse", self._cmd_collapse)
        d.register("heading-link", self._cmd_heading_link)
        d.register("flow-node", self._cmd_flow)
        d.register("flow-canvas", self._cmd_flow)
        d.register("theme-toggle", lambda _n: self.store.toggle_theme())
        d.register("motion-toggle", lambda _n: self.store.toggle_motion())
        d.register("phase-jump", self._cmd_phase_jump)
        d.register("copy-code", self._cmd_copy_code)

    # --- Store fan-out ---

    def _on_store_change(self, store: ThemeMotionStore, what: str) -> None:
        self._sync_chrome()
        if what == "theme":
            self.charts.restyle_all()
            self.diagrams.restyle_all()
        elif what == "motion":
            self.parallax.sync()
            self.charts.restyle_all()
            self.reveals.sync()

    def _sync_chrome(self) -> None:
        store = self.store
        self.document.set("data-theme", store.theme.value)
        self.document.set("data-motion", "on" if store.motion else "off")
        label = theme_label(store.theme)
        self.theme_toggle.set("aria-label", label)
        self.theme_toggle.set("title", label)
        label = motion_label(store.motion)
        self.motion_toggle.set("aria-label", label)
        self.motion_toggle.set("title", label)
        self.motion_toggle.set("aria-pressed", "true" if store.motion else "false")

    def update_progress(self) -> float:
        pct = self.platform.viewport.progress
        self.progress_bar.style["width"] = f"{pct:g}%"
        return pct

    # --- Commands ---

    def click(self, target: Node) -> str | None:
        return self.dispatcher.dispatch(target)

    def _on_expand(self, section: Section) -> None:
        self.platform.frames.request(lambda _now: self.charts.resize_within(section.body))

    def _cmd_collapse(self, node: Node) -> None:
        section_id = node.get("data-collapse") or ""
        if self.sections.toggle(section_id) is None:
            logger.debug("Collapse toggle for unknown section %r", section_id)

    def _cmd_heading_link(self, node: Node) -> None:
        slug = (node.get("href") or "").lstrip("#")
        url = self.platform.location.url_for(slug)
        try:
            self.platform.clipboard.write_text(url)
        except ClipboardDeniedError:
            logger.debug("Clipboard denied; updating fragment only")
        self.platform.location.replace_fragment(slug)

    def _cmd_flow(self, node: Node) -> None:
        diagram = self.diagrams.diagram_for(node)
        if diagram is not None:
            diagram.click(node)

    def _cmd_phase_jump(self, node: Node) -> None:
        target_id = node.get("data-target") or ""
        heading = self.widgets.phase_targets.get(target_id) or self.content.find_by_id(target_id)
        if heading is None:
            return
        self.sections.expand_for_heading(heading)
        self.platform.viewport.scroll_into_view(heading)
        self.platform.location.replace_fragment(target_id)

    def _cmd_copy_code(self, node: Node) -> None:
        pre = node.closest(lambda n: n.tag == "pre")
        if pre is None:
            return
        try:
            self.platform.clipboard.write_text(code_text(pre))
            node.set_text("Copied")
        except ClipboardDeniedError:
            node.set_text("Failed")
        self.platform.timers.set_timeout(lambda: node.set_text("Copy"), COPY_RESET_MS)

    # --- Deep links ---

    def open_deep_link(self) -> Node | None:
        """Expand and scroll to the heading named by the current fragment."""
        fragment = self.platform.location.fragment
        if not fragment:
            return None
        target = self.content.find_by_id(fragment)
        if target is None:
            logger.debug("Deep link %r matches no element", fragment)
            return None
        self.sections.expand_for_heading(target)
        self.platform.viewport.scroll_into_view(target)
        return target

    # --- Export helpers ---

    def bootstrap(self) -> dict:
        """Data the browser runtime needs to mirror the live behaviour."""
        keys = self.config.storage
        return {
            "keys": {"theme": keys.theme_key, "motion": keys.motion_key, "collapsed": keys.collapsed_key},
            "state": {
                "theme": self.store.theme.value,
                "motion": self.store.motion,
                "collapsed": sorted(self.sections.collapsed_ids),
            },
            "reveal": self.config.reveal.model_dump(),
            "parallax": {
                "pointerEase": self.config.parallax.pointer_ease,
                "scrollEase": self.config.parallax.scroll_ease,
            },
            "deepLinkDelayMs": self.config.boot.deep_link_delay_ms,
            "diagrams": {d.spec.id: d.inspector_data() for d in self.diagrams.diagrams},
            "widgets": [w.to_config() for w in self.widgets.widgets],
            "charts": {c.id: c.to_config() for c in self.charts.charts},
        }
