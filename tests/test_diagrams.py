"""Tests for diagram recognition, layout geometry, selection and restyle."""

import math

import pytest

from paperlane.config import LayoutConfig
from paperlane.diagrams.flow import DiagramEngine, FlowDiagram
from paperlane.diagrams.layout import box_size, layout_flow, rect_edge_point
from paperlane.diagrams.registry import FlowRegistry, _build_spec, ring_positions
from paperlane.models import FlowNodeSpec, FlowSignature, FlowSpec, Theme
from paperlane.render.markup import MarkupRenderer
from paperlane.tree import has_class, is_tag

PAYLOADS = {
    "solution": "Publishers (Human or AI)\n  |\n  v\nValidators",
    "architecture": "| CONSUMPTION LAYER |\n| ... |\n| BASE L2 |",
    "claimVerification": "CLAIM VERIFICATION\nArticle Published -> Claims",
    "revenue": "Users pay $EVA\n   |\n Treasury",
    "flywheel": "More users -> more content -> the cycle repeats",
    "publisherFlow": "Register (ERC-8004) -> Publish -> Reputation Updates",
}

UNRELATED = [
    "+-------+     +-------+\n| box A | --> | box B |\n+-------+     +-------+",
    "def f():\n    return 1",
    "",
    "   ",
    "cycle repeats but no More users prefix",
]


class TestRegistry:
    def test_six_specs_in_order(self, registry):
        assert [e.spec.id for e in registry] == list(PAYLOADS)

    @pytest.mark.parametrize("spec_id", list(PAYLOADS))
    def test_each_payload_maps_to_exactly_one(self, registry, spec_id):
        raw = PAYLOADS[spec_id]
        matching = [e.spec.id for e in registry if e.signature.matches(raw.strip())]
        assert matching == [spec_id]
        assert registry.match(raw).id == spec_id

    @pytest.mark.parametrize("raw", UNRELATED)
    def test_unrelated_text_maps_to_none(self, registry, raw):
        assert registry.match(raw) is None

    def test_leading_whitespace_stripped(self, registry):
        assert registry.match("\n\n   More users grow; the cycle repeats").id == "flywheel"

    def test_register_extends(self):
        reg = FlowRegistry()
        spec = FlowSpec(id="x", title="X", nodes=[FlowNodeSpec(id="a", label="A")])
        reg.register(FlowSignature(contains=["XYZ"]), spec)
        assert reg.match("has XYZ inside") is spec
        assert reg.get("x") is spec
        assert len(reg) == 1

    def test_bad_edge_rejected(self):
        with pytest.raises(ValueError):
            _build_spec({
                "id": "bad", "title": "Bad",
                "nodes": [{"id": "a", "label": "A"}],
                "edges": [{"from": "a", "to": "missing"}],
            }, None)

    def test_flywheel_ring(self, registry):
        spec = registry.get("flywheel")
        first = spec.nodes[0]
        assert first.x == pytest.approx(0, abs=1e-9)
        assert first.y == pytest.approx(-310)

    def test_ring_positions(self):
        pts = ring_positions(4, 100, 80)
        assert pts[1][0] == pytest.approx(100)
        assert pts[1][1] == pytest.approx(0, abs=1e-9)


class TestLayout:
    def test_box_size_clamped(self):
        cfg = LayoutConfig()
        short = FlowNodeSpec(id="a", label="A")
        long = FlowNodeSpec(id="b", label="x" * 80)
        two = FlowNodeSpec(id="c", label="one\ntwo")
        assert box_size(short, cfg) == (150, 74)
        assert box_size(long, cfg)[0] == 340
        assert box_size(two, cfg)[1] == 56 + 2 * 18

    def test_every_node_inside_viewbox(self, registry):
        for entry in registry:
            layout = layout_flow(entry.spec)
            for n in layout.nodes:
                assert layout.viewbox.contains(n), (entry.spec.id, n.id)

    def test_padding_applied(self, registry):
        layout = layout_flow(registry.get("solution"))
        left = min(n.left for n in layout.nodes)
        assert layout.viewbox.x == pytest.approx(left - 80)

    def test_far_apart_coordinates(self):
        spec = FlowSpec(id="far", title="Far", nodes=[
            FlowNodeSpec(id="a", label="A", x=-5000, y=-5000),
            FlowNodeSpec(id="b", label="B", x=5000, y=5000),
        ])
        layout = layout_flow(spec)
        assert all(layout.viewbox.contains(n) for n in layout.nodes)

    def test_empty_spec_default_viewbox(self):
        layout = layout_flow(FlowSpec(id="e", title="E", nodes=[]))
        assert str(layout.viewbox) == "-80 -80 1160 760"

    def test_edge_endpoints_on_boundary(self, registry):
        for entry in registry:
            layout = layout_flow(entry.spec)
            for edge in layout.edges:
                for point, node in ((edge.start, layout.by_id[edge.from_id]),
                                    (edge.end, layout.by_id[edge.to_id])):
                    on_vertical = math.isclose(abs(point.x - node.x), node.w / 2, abs_tol=1e-6)
                    on_horizontal = math.isclose(abs(point.y - node.y), node.h / 2, abs_tol=1e-6)
                    assert on_vertical or on_horizontal, (entry.spec.id, edge.from_id, edge.to_id)
                    assert node.left - 1e-6 <= point.x <= node.right + 1e-6
                    assert node.top - 1e-6 <= point.y <= node.bottom + 1e-6

    def test_rect_edge_point_horizontal(self):
        p = rect_edge_point(0, 0, 50, 20, 200, 0)
        assert (p.x, p.y) == (50, 0)

    def test_rect_edge_point_degenerate(self):
        p = rect_edge_point(3, 4, 50, 20, 3, 4)
        assert (p.x, p.y) == (3, 4)


class TestFlowDiagram:
    def make(self, registry, store, spec_id="solution"):
        return FlowDiagram(registry.get(spec_id), store)

    def test_node_ids_exposed(self, registry, store):
        d = self.make(registry, store)
        ids = {g.get("data-node") for g in d.root.find_all(has_class("flow-node"))}
        assert ids == {"publishers", "validators", "readers", "reputation"}
        assert d.root.find_by_id("solution-readers") is not None

    def test_select_drives_inspector(self, registry, store):
        d = self.make(registry, store)
        d.select("validators")
        view = d.inspector()
        assert view.title == "Validators (Staked)"
        assert view.links == ["← Publishers (Human or AI)", "→ Readers"]
        text = d.inspector_node.text_content
        assert "Validators (Staked)" in text and "→ Readers" in text

    def test_single_selection(self, registry, store):
        d = self.make(registry, store)
        d.select("readers")
        d.select("publishers")
        selected = [g.get("data-node") for g in d.root.find_all(has_class("is-selected"))]
        assert selected == ["publishers"]

    def test_selected_emphasis(self, registry, store):
        d = self.make(registry, store)
        d.select("readers")
        _, rect, _ = d.node_elements["readers"]
        _, other, _ = d.node_elements["publishers"]
        assert rect.get("stroke-width") == "2.4"
        assert other.get("stroke-width") == "1.2"
        active = {(p.get("data-from"), p.get("data-to")) for p in d.root.find_all(has_class("is-active"))}
        assert active == {("validators", "readers"), ("readers", "reputation")}

    def test_click_node_and_canvas(self, registry, store):
        d = self.make(registry, store)
        g, rect, _ = d.node_elements["reputation"]
        d.click(rect)
        assert d.selected_id == "reputation"
        d.click(d.svg)
        assert d.selected_id is None
        assert d.inspector().title == "Inspect a node"

    def test_unknown_selection_clears(self, registry, store):
        d = self.make(registry, store)
        d.select("readers")
        d.select("nope")
        assert d.selected_id is None

    def test_theme_restyle_keeps_geometry_and_selection(self, registry, store):
        d = self.make(registry, store)
        d.select("readers")
        _, rect, _ = d.node_elements["readers"]
        geometry = (rect.get("x"), rect.get("y"), rect.get("width"), rect.get("height"))
        light_fill = rect.get("fill")

        store.set_theme(Theme.DARK)
        d.restyle()
        assert rect.get("fill") != light_fill
        assert rect.get("fill").endswith(", 0.22)")
        assert (rect.get("x"), rect.get("y"), rect.get("width"), rect.get("height")) == geometry
        assert d.selected_id == "readers"

    def test_light_opacities(self, registry, store):
        d = self.make(registry, store)
        d.select("readers")
        assert d.node_elements["readers"][1].get("fill").endswith(", 0.3)")
        assert d.node_elements["publishers"][1].get("fill").endswith(", 0.22)")


class TestDiagramEngine:
    def test_transform_fixture(self, registry, store, whitepaper):
        root = MarkupRenderer().render(whitepaper)
        engine = DiagramEngine(registry, store)
        created = engine.transform(root)
        assert [d.spec.id for d in created] == list(PAYLOADS)
        # the plain ascii box and the python block survive
        remaining = [pre.find(is_tag("code")).text_content for pre in root.find_all(is_tag("pre"))]
        assert len(remaining) == 2
        assert any("box A" in t for t in remaining)

    def test_survey_does_not_transform(self, registry, whitepaper):
        root = MarkupRenderer().render(whitepaper)
        rows = DiagramEngine(registry, None).survey(root)
        assert [spec for _, _, spec in rows if spec] == list(PAYLOADS)
        assert ("python", None) in [(lang, spec) for _, lang, spec in rows]
        assert len(root.find_all(is_tag("pre"))) == 8

    def test_restyle_all(self, registry, store, whitepaper):
        root = MarkupRenderer().render(whitepaper)
        engine = DiagramEngine(registry, store)
        engine.transform(root)
        store.set_theme(Theme.DARK)
        engine.restyle_all()
        svg = engine.get("revenue").svg
        assert svg.style["color"].startswith("rgba(238")


class TestLabelSpacing:
    def test_line_spacing_follows_font_size(self, store):
        spec = FlowSpec(id="two", title="Two", nodes=[FlowNodeSpec(id="a", label="one\ntwo")])
        d = FlowDiagram(spec, store, LayoutConfig(font_size=20))
        _, _, text = d.node_elements["a"]
        ys = [float(t.get("y")) for t in text.find_all(is_tag("tspan"))]
        assert ys == [-12.0, 12.0]

    def test_default_spacing(self, store):
        spec = FlowSpec(id="two", title="Two", nodes=[FlowNodeSpec(id="a", label="one\ntwo\nthree")])
        _, _, text = FlowDiagram(spec, store).node_elements["a"]
        ys = [float(t.get("y")) for t in text.find_all(is_tag("tspan"))]
        assert ys == [-18.0, 0.0, 18.0]
