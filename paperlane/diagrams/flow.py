"""Interactive node-graph diagrams generated from recognised code blocks."""

import logging
from dataclasses import dataclass, field

from paperlane.config import LayoutConfig
from paperlane.diagrams.layout import FlowLayout, layout_flow
from paperlane.diagrams.registry import FlowRegistry
from paperlane.models import FlowSpec, Theme
from paperlane.palette import palette, rgba, tone_color
from paperlane.state import ThemeMotionStore
from paperlane.tree import Node, el, is_tag

logger = logging.getLogger(__name__)

# (unselected, selected) opacities per theme
FILL_ALPHA = {Theme.DARK: (0.16, 0.22), Theme.LIGHT: (0.22, 0.30)}
STROKE_ALPHA = {Theme.DARK: (0.55, 0.95), Theme.LIGHT: (0.70, 0.95)}
STROKE_WIDTH = ("1.2", "2.4")

EMPTY_TITLE = "Inspect a node"
EMPTY_BODY = "Click any node to see details."


@dataclass
class InspectorView:
    title: str
    body: str
    links: list[str] = field(default_factory=list)


def _svg(tag: str, **attrs: object) -> Node:
    return el(tag, **attrs)


class FlowDiagram:
    """One generated diagram: geometry is fixed, selection and colors are not."""

    def __init__(self, spec: FlowSpec, store: ThemeMotionStore, config: LayoutConfig | None = None) -> None:
        self.spec = spec
        self.store = store
        self.config = config or LayoutConfig()
        self.layout: FlowLayout = layout_flow(spec, self.config)
        self.selected_id: str | None = None
        self.node_elements: dict[str, tuple[Node, Node, Node]] = {}
        self.edge_elements: list[tuple[str, str, Node]] = []
        self.root = self._build()
        self.inspector_node = self.root.find(lambda n: n.has_class("flow3d-inspector"))
        self._render_inspector()
        self.restyle()

    # --- Construction ---

    def _build(self) -> Node:
        spec = self.spec
        wrap = el("section", "flow3d", data_flow=spec.id)
        head = el("div", "flow3d-head")
        head_text = el("div", "flow3d-headtext")
        head_text.append(el("div", "flow3d-title", spec.title), el("div", "flow3d-hint", spec.hint))
        head.append(head_text)

        stage = el("div", "flow-stage")
        self.svg = self._build_svg()
        stage.append(self.svg)
        wrap.append(head, stage, el("div", "flow3d-inspector", role="status", aria_live="polite"))
        return wrap

    def _build_svg(self) -> Node:
        spec, layout = self.spec, self.layout
        svg = _svg(
            "svg", class_="flow-svg", role="img", aria_label=spec.title or "Flow diagram",
            viewBox=str(layout.viewbox), preserveAspectRatio="xMidYMid meet",
            data_role="flow-canvas", data_flow=spec.id,
        )
        marker_id = f"arrow-{spec.id}"
        defs = _svg("defs")
        marker = _svg(
            "marker", id=marker_id, markerWidth="12", markerHeight="12",
            refX="10", refY="6", orient="auto", markerUnits="strokeWidth",
        )
        marker.append(_svg("path", d="M0,0 L12,6 L0,12 Z", fill="currentColor"))
        defs.append(marker)

        g_edges = _svg("g", class_="flow-edges")
        for edge in layout.edges:
            s, t = edge.start, edge.end
            path = _svg(
                "path", class_="flow-edge", d=f"M {s.x:g} {s.y:g} L {t.x:g} {t.y:g}",
                marker_end=f"url(#{marker_id})", data_from=edge.from_id, data_to=edge.to_id,
            )
            g_edges.append(path)
            self.edge_elements.append((edge.from_id, edge.to_id, path))
            if edge.label:
                mid = edge.midpoint
                g_edges.append(_svg(
                    "text", class_="flow-edge-label", x=f"{mid.x:g}", y=f"{mid.y - 6:g}",
                    text_anchor="middle",
                ).append(Node.text_node(edge.label)))

        g_nodes = _svg("g", class_="flow-nodes")
        zs = [n.node.z for n in layout.nodes]
        z_lo, z_hi = (min(zs), max(zs)) if zs else (0.0, 0.0)
        # Nearer nodes (higher z) paint last and slightly more opaque.
        for n in sorted(layout.nodes, key=lambda n: n.node.z):
            depth = (n.node.z - z_lo) / (z_hi - z_lo) if z_hi > z_lo else 1.0
            g = _svg(
                "g", class_="flow-node", id=f"{spec.id}-{n.id}", data_node=n.id,
                data_tone=n.node.tone.value, data_role="flow-node",
                opacity=f"{0.82 + 0.18 * depth:.2f}",
            )
            rect = _svg(
                "rect", x=f"{n.left:g}", y=f"{n.top:g}", width=f"{n.w:g}", height=f"{n.h:g}",
                rx="18", ry="18",
            )
            text = _svg("text", class_="flow-node-label", text_anchor="middle", x=f"{n.x:g}")
            line_h = self.config.font_size + 4
            start_y = n.y - ((len(n.lines) - 1) * line_h) / 2
            for i, line in enumerate(n.lines):
                text.append(_svg("tspan", x=f"{n.x:g}", y=f"{start_y + i * line_h:g}").append(Node.text_node(line)))
            g.append(rect, text)
            g_nodes.append(g)
            self.node_elements[n.id] = (g, rect, text)

        svg.append(defs, g_edges, g_nodes)
        return svg

    # --- Selection ---

    def select(self, node_id: str | None) -> None:
        if node_id is not None and node_id not in self.layout.by_id:
            node_id = None
        self.selected_id = node_id
        self._render_inspector()
        self.restyle()

    def click(self, target: Node) -> None:
        """Select the node under ``target``; empty canvas clears selection."""
        g = target.closest(lambda n: "data-node" in n.attrs)
        if g is None or not self.svg.contains(g):
            self.select(None)
            return
        self.select(g.get("data-node") or None)

    def inspector(self) -> InspectorView:
        node = self.spec.node(self.selected_id) if self.selected_id else None
        if node is None:
            return InspectorView(EMPTY_TITLE, EMPTY_BODY)
        links = []
        for e in self.spec.edges:
            if e.from_id == node.id:
                links.append(f"→ {self.spec.label_for(e.to_id)}")
            if e.to_id == node.id:
                links.append(f"← {self.spec.label_for(e.from_id)}")
        return InspectorView(node.flat_label, node.desc, links)

    def _render_inspector(self) -> None:
        view = self.inspector()
        box = self.inspector_node
        for child in list(box.children):
            child.remove()
        box.append(
            el("div", "flow3d-inspector-title", view.title),
            el("div", "flow3d-inspector-body", view.body),
        )
        if view.links:
            links = el("div", "flow3d-inspector-links")
            links.append(*[el("span", text=link) for link in view.links])
            box.append(links)

    # --- Restyle ---

    def restyle(self) -> None:
        """Recolor from the current theme; geometry and selection are untouched."""
        theme = self.store.theme
        colors = palette(theme)
        self.svg.style["color"] = colors["muted"]
        fill_a, stroke_a = FILL_ALPHA[theme], STROKE_ALPHA[theme]

        for node_id, (g, rect, text) in self.node_elements.items():
            active = node_id == self.selected_id
            tone = tone_color(theme, self.layout.by_id[node_id].node.tone)
            rect.set("fill", rgba(tone, fill_a[active]))
            rect.set("stroke", rgba(tone, stroke_a[active]) if active else colors["faint"])
            rect.set("stroke-width", STROKE_WIDTH[active])
            g.toggle_class("is-selected", active)
            text.set("fill", colors["ink"])

        for from_id, to_id, path in self.edge_elements:
            active = self.selected_id is not None and self.selected_id in (from_id, to_id)
            path.toggle_class("is-active", active)

    def inspector_data(self) -> dict:
        """Per-node inspector payload for the browser runtime."""
        out = {}
        saved = self.selected_id
        for n in self.spec.nodes:
            self.selected_id = n.id
            view = self.inspector()
            out[n.id] = {"title": view.title, "body": view.body, "links": view.links}
        self.selected_id = saved
        return out


class DiagramEngine:
    """Replaces recognised preformatted payloads with interactive diagrams."""

    def __init__(
        self,
        registry: FlowRegistry,
        store: ThemeMotionStore | None,
        config: LayoutConfig | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.config = config
        self.diagrams: list[FlowDiagram] = []

    def transform(self, root: Node) -> list[FlowDiagram]:
        created = []
        for pre in root.find_all(is_tag("pre")):
            code = pre.find(is_tag("code"))
            if code is None:
                continue
            spec = self.registry.match(code.text_content)
            if spec is None:
                continue
            diagram = FlowDiagram(spec, self.store, self.config)
            pre.replace_with(diagram.root)
            created.append(diagram)
        self.diagrams.extend(created)
        logger.info("Generated %d diagrams", len(created))
        return created

    def survey(self, root: Node) -> list[tuple[int, str | None, str | None]]:
        """(index, language, matched spec id) for every code block, without transforming."""
        out = []
        for index, pre in enumerate(root.find_all(is_tag("pre")), start=1):
            code = pre.find(is_tag("code"))
            if code is None:
                continue
            lang = next((c[len("language-"):] for c in code.classes if c.startswith("language-")), None)
            spec = self.registry.match(code.text_content)
            out.append((index, lang, spec.id if spec else None))
        return out

    def diagram_for(self, node: Node) -> FlowDiagram | None:
        for diagram in self.diagrams:
            if diagram.root.contains(node):
                return diagram
        return None

    def get(self, spec_id: str) -> FlowDiagram | None:
        for diagram in self.diagrams:
            if diagram.spec.id == spec_id:
                return diagram
        return None

    def restyle_all(self) -> None:
        for diagram in self.diagrams:
            try:
                diagram.restyle()
            except Exception:
                logger.warning("Restyle failed for diagram %s", diagram.spec.id, exc_info=True)
