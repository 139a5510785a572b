"""Tests for widget injection, controls and chart binding."""

import math

import pytest

from paperlane.charts import ChartRegistry
from paperlane.models import Theme
from paperlane.render.markup import MarkupRenderer
from paperlane.sections import SectionOrganizer
from paperlane.tree import has_class
from paperlane.widgets.controls import Choice, Slider
from paperlane.widgets.engine import WidgetEngine
from paperlane.widgets.tables import find_heading, find_next_table, parse_lock_points, parse_metric_rows


def inject(text, local, store):
    root = MarkupRenderer().render(text)
    SectionOrganizer(root, local).organize()
    charts = ChartRegistry(store)
    engine = WidgetEngine(store, charts)
    engine.inject(root)
    return root, engine, charts


@pytest.fixture()
def injected(whitepaper, local, store):
    return inject(whitepaper, local, store)


class TestControls:
    def test_slider_clamps(self):
        s = Slider("stake", "Stake", min=0, max=100, step=1, value=10)
        assert s.set(500) == 100
        assert s.set(-3) == 0

    def test_slider_nan_falls_back_to_default(self):
        s = Slider("stake", "Stake", min=0, max=100, step=1, value=10)
        s.set(50)
        assert s.set("abc") == 10
        assert s.set(float("nan")) == 10

    def test_slider_notifies(self):
        s = Slider("rep", "Rep", min=0, max=2, step=0.01, value=1, suffix="x", digits=2)
        seen = []
        s.on_change(seen.append)
        s.set(1.5)
        s.set(1.25, silent=True)
        assert seen == [1.5]
        assert s.value_node.text_content == "1.25x"
        assert s.number_node.get("value") == "1.25"

    def test_choice(self):
        c = Choice("d", "Duration", [("30", "30 days"), ("90", "90 days")], value="90")
        assert c.get() == "90"
        assert c.set("bogus") == "90"
        c.set("30")
        selected = [o.get("value") for o in c.select_node.children if o.get("selected")]
        assert selected == ["30"]

    def test_choice_requires_options(self):
        with pytest.raises(ValueError):
            Choice("d", "Duration", [])


class TestInjection:
    def test_all_widgets_present(self, injected):
        _, engine, _ = injected
        assert [w.id for w in engine.widgets] == [
            "feedback-weight", "sybil-comparator", "revenue-split", "lock-explorer",
            "voting-power", "roadmap-timeline", "success-metrics",
        ]

    def test_placed_after_anchor(self, injected):
        root, _, _ = injected
        anchor = find_heading(root, "h3", lambda t: t.startswith("layer 1: economic cost"))
        grid = anchor.next_element
        assert grid.has_class("widget-grid")
        assert [w.get("data-widget") for w in grid.element_children] == ["feedback-weight", "sybil-comparator"]

    def test_missing_anchors_skip(self, local, store):
        root, engine, charts = inject("## Intro\n\nNothing to see.\n", local, store)
        assert engine.widgets == []
        assert charts.charts == []
        assert root.find(has_class("widget")) is None

    def test_outputs_have_status_role(self, injected):
        root, _, _ = injected
        outputs = root.find_all(lambda n: "data-output" in n.attrs)
        assert len(outputs) >= 11
        assert all(o.get("role") == "status" for o in outputs)


class TestFormulasWired:
    def test_feedback_weight_defaults(self, injected):
        w = injected[1].get("feedback-weight")
        assert w.output("fw_out") == "14.142"

    def test_feedback_weight_recomputes(self, injected):
        w = injected[1].get("feedback-weight")
        w.controls["stake"].set(400)
        w.controls["rep"].set(0.5)
        assert w.output("fw_out") == "10"

    def test_sybil_defaults_and_chart(self, injected):
        _, engine, charts = injected
        w = engine.get("sybil-comparator")
        assert w.output("many_out") == "14.142"
        assert w.output("one_out") == "14.142"
        assert w.output("ratio_out") == "1x"
        revision = w.chart.revision
        w.controls["stake_one"].set(0)
        assert w.output("ratio_out") == "—"
        assert w.chart.data[1] == 0
        assert w.chart.revision == revision + 1

    def test_revenue_defaults(self, injected):
        w = injected[1].get("revenue-split")
        outs = [w.output(k) for k in ("rev_pub", "rev_val", "rev_burn", "rev_stake")]
        assert outs == ["30,000", "12,500", "3,750", "3,750"]
        assert w.chart.data == pytest.approx([30000, 12500, 3750, 3750])
        assert w.chart.options["cutout"] == "62%"

    def test_lock_schedule_from_table(self, injected):
        _, engine, _ = injected
        assert engine.lock_points_from_table
        assert [(p.days, p.mult) for p in engine.lock_points] == [(30, 1.0), (90, 1.5), (180, 2.0), (365, 3.0)]
        w = engine.get("lock-explorer")
        assert w.chart.labels == ["30d", "90d", "180d", "365d"]
        assert w.output("lock_out") == "1,500"

    def test_governance_defaults_to_longest_lock(self, injected):
        w = injected[1].get("voting-power")
        assert w.value("days") == "365"
        assert w.output("gov_out") == "6,000"
        assert w.controls["days"].value_node.text_content == "3x"

    def test_governance_duration_change_highlights(self, injected):
        _, engine, _ = injected
        w = engine.get("voting-power")
        w.controls["days"].set("90")
        assert w.output("gov_out") == "3,000"
        colors = w.chart.datasets[0]["backgroundColor"]
        assert colors[1] != colors[0]
        assert colors[0] == colors[2] == colors[3]

    def test_success_metrics(self, injected):
        w = injected[1].get("success-metrics")
        assert w.output("sm_growth") == "10x"
        w.controls["metric"].set("Validator accuracy")
        assert w.output("sm_growth") == "2.5x"
        assert w.controls["metric"].value_node.text_content == "%"
        assert w.chart.options["scales"]["y"]["suggestedMax"] == 100
        w.controls["metric"].set("Active validators")
        assert w.output("sm_growth") == "—"
        assert "suggestedMax" not in w.chart.options["scales"]["y"]

    def test_roadmap_timeline(self, injected):
        root, engine, _ = injected
        w = engine.get("roadmap-timeline")
        buttons = w.root.find_all(has_class("phase-btn"))
        assert [b.get("data-target") for b in buttons] == ["phase-1-foundation", "phase-2-growth"]
        body = root.find(lambda n: n.get("data-section") == "10-roadmap").find(has_class("section-body"))
        assert body.element_children[0].find(has_class("widget")) is w.root


class TestLockTableFallback:
    DOC = "## Econ\n\n### Lock Duration Multipliers\n\n| Lock | Mult |\n|---|---|\n| forever | lots |\n"

    def test_unparseable_rows_fall_back_with_warning(self, local, store, caplog):
        with caplog.at_level("WARNING"):
            _, engine, _ = inject(self.DOC, local, store)
        assert not engine.lock_points_from_table
        assert [p.days for p in engine.lock_points] == [30, 90, 180, 365]
        assert "no parseable rows" in caplog.text
        assert engine.get("lock-explorer").output("lock_out") == "1,000"


class TestTables:
    def test_parse_lock_points_skips_bad_rows(self):
        root = MarkupRenderer().render(
            "### Lock Duration Multipliers\n\n| a | b |\n|---|---|\n| 30 days | 1.0x |\n| soon | 2x |\n| 1 day | ? |\n"
        )
        table = find_next_table(find_heading(root, "h3", lambda t: t == "lock duration multipliers"))
        assert [(p.days, p.mult) for p in parse_lock_points(table)] == [(30, 1.0)]

    def test_find_next_table_stops_at_heading(self):
        root = MarkupRenderer().render("### A\n\ntext\n\n### B\n\n| x |\n|---|\n| 1 |\n")
        assert find_next_table(find_heading(root, "h3", lambda t: t == "a")) is None

    def test_metric_rows_require_three_cells(self):
        root = MarkupRenderer().render("### M\n\n| m | a | b |\n|---|---|---|\n| x | 1 | 2 |\n| y | | 3 |\n")
        table = find_next_table(find_heading(root, "h3", lambda t: t == "m"))
        assert [r.metric for r in parse_metric_rows(table)] == ["x"]


class TestThemeRestyle:
    def test_charts_recolor_without_data_change(self, injected, store):
        _, engine, charts = injected
        w = engine.get("revenue-split")
        data = list(w.chart.data)
        before = list(w.chart.datasets[0]["backgroundColor"])
        store.set_theme(Theme.DARK)
        charts.restyle_all()
        assert w.chart.datasets[0]["backgroundColor"] != before
        assert w.chart.data == data

    def test_motion_off_disables_animation(self, injected, store):
        _, engine, charts = injected
        store.set_motion(False)
        charts.restyle_all()
        chart = engine.get("sybil-comparator").chart
        assert chart.options["animation"] is False
        assert chart.last_update_mode == "none"
        assert not math.isnan(chart.data[0])
