"""Group each level-2 heading and its following content into a collapsible section."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from paperlane.state import LocalState
from paperlane.tree import Node, el, has_class

logger = logging.getLogger(__name__)

GLYPH_EXPANDED = "[-]"
GLYPH_COLLAPSED = "[+]"


@dataclass(eq=False)
class Section:
    """One h2 plus everything up to the next h2."""

    id: str
    heading_level: int
    heading: Node
    body: Node
    container: Node
    toggle: Node | None
    collapsed: bool = False

    @property
    def body_nodes(self) -> list[Node]:
        return list(self.body.children)

    def sync(self) -> None:
        """Push ``collapsed`` into the body class and toggle affordance."""
        self.body.toggle_class("collapsed", self.collapsed)
        if self.toggle is not None:
            self.toggle.set_text(GLYPH_COLLAPSED if self.collapsed else GLYPH_EXPANDED)
            self.toggle.set("aria-expanded", "false" if self.collapsed else "true")


class SectionOrganizer:
    """Builds and owns the explicit section index for one document tree."""

    def __init__(
        self,
        root: Node,
        local: LocalState,
        on_expand: Callable[[Section], None] | None = None,
    ) -> None:
        self.root = root
        self.local = local
        self.on_expand = on_expand
        self.sections: dict[str, Section] = {}

    # --- Structuring ---

    def organize(self) -> list[Section]:
        """Wrap unwrapped h2 runs; adopt existing wrappers. Idempotent."""
        self.sections = {}
        body: Node | None = None
        wrapped = 0
        for child in list(self.root.children):
            if child.has_class("paper-section"):
                body = None
                self._adopt(child)
                continue
            if child.tag == "h2":
                container = el("section", "paper-section")
                child.before(container)
                body = el("div", "section-body")
                container.append(child, body)
                self._adopt(container)
                wrapped += 1
                continue
            if body is not None:
                body.append(child)
        logger.info("Organized %d sections (%d newly wrapped)", len(self.sections), wrapped)
        return list(self.sections.values())

    def _adopt(self, container: Node) -> Section | None:
        heading = next((c for c in container.element_children if c.tag == "h2"), None)
        body = next((c for c in container.element_children if c.has_class("section-body")), None)
        if heading is None or body is None:
            return None
        section_id = heading.id or ""
        container.set("data-section", section_id)
        section = Section(
            id=section_id,
            heading_level=2,
            heading=heading,
            body=body,
            container=container,
            toggle=heading.find(has_class("collapse-btn")),
            collapsed=body.has_class("collapsed"),
        )
        self.sections[section_id] = section
        return section

    # --- Persisted state ---

    def apply_collapsed(self, ids: set[str] | None = None) -> list[str]:
        """Collapse every known section whose id is in the persisted set."""
        if ids is None:
            ids = self.local.read_collapsed()
        applied = []
        for section_id in sorted(ids):
            section = self.sections.get(section_id)
            if section is None:
                logger.debug("Persisted collapsed id %r matches no section", section_id)
                continue
            section.collapsed = True
            section.sync()
            applied.append(section_id)
        return applied

    @property
    def collapsed_ids(self) -> set[str]:
        return {s.id for s in self.sections.values() if s.collapsed}

    # --- Operations ---

    def toggle(self, section_id: str) -> bool | None:
        """Flip one section. Returns the new collapsed flag, or None if unknown."""
        section = self.sections.get(section_id)
        if section is None:
            return None
        section.collapsed = not section.collapsed
        section.sync()

        stored = self.local.read_collapsed()
        if section.collapsed:
            stored.add(section_id)
        else:
            stored.discard(section_id)
        self.local.write_collapsed(stored)

        if not section.collapsed and self.on_expand is not None:
            self.on_expand(section)
        return section.collapsed

    def section_for(self, node: Node) -> Section | None:
        for section in self.sections.values():
            if section.container.contains(node):
                return section
        return None

    def expand_for_heading(self, node: Node | None) -> bool:
        """Force open the collapsed section containing ``node``."""
        if node is None:
            return False
        section = self.section_for(node)
        if section is None or not section.collapsed:
            return False
        self.toggle(section.id)
        return True
