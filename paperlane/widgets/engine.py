"""Injects calculator widgets next to the anchor headings and tables they explain.

Every injector looks up its anchor by normalised heading text. A missing
anchor, or a table with nothing usable in it, skips that widget and leaves
the rest of the document alone.
"""

import logging
import re
from collections.abc import Callable

from paperlane.charts import Chart, ChartRegistry, axis_restyle, bar_options
from paperlane.models import LockPoint
from paperlane.palette import palette
from paperlane.render.markup import heading_label
from paperlane.state import ThemeMotionStore
from paperlane.tree import Node, el, is_tag
from paperlane.widgets import formulas as fx
from paperlane.widgets.controls import Widget
from paperlane.widgets.tables import (
    find_heading,
    find_next_table,
    parse_lock_points,
    parse_metric_rows,
)

logger = logging.getLogger(__name__)

_ROADMAP_RE = re.compile(r"^(\d+\.\s*)?roadmap\b")
_PHASE_RE = re.compile(r"^phase\s+\d+:", re.IGNORECASE)


def _whole(v: float) -> str:
    return fx.fmt(v, 0)


class WidgetEngine:
    """Builds widgets into the tree and keeps them bound to charts."""

    def __init__(self, store: ThemeMotionStore, charts: ChartRegistry) -> None:
        self.store = store
        self.charts = charts
        self.widgets: list[Widget] = []
        self.phase_targets: dict[str, Node] = {}
        self.lock_points: list[LockPoint] = list(fx.DEFAULT_LOCK_SCHEDULE)
        self.lock_points_from_table = False

    def inject(self, root: Node) -> list[Widget]:
        before = len(self.widgets)
        self._read_lock_schedule(root)
        for injector in (self.inject_sybil, self.inject_economics, self.inject_governance, self.inject_roadmap):
            injector(root)
        created = self.widgets[before:]
        logger.info("Injected %d widgets", len(created))
        return created

    def get(self, widget_id: str) -> Widget | None:
        for widget in self.widgets:
            if widget.id == widget_id:
                return widget
        return None

    # --- Helpers ---

    def _grid_after(self, anchor: Node, *widgets: Widget) -> Node:
        grid = el("div", "widget-grid")
        grid.append(*[w.root for w in widgets])
        anchor.after(grid)
        return grid

    def _finish(self, widget: Widget, compute: Callable[[Widget], None]) -> Widget:
        widget.compute = compute
        widget.recompute()
        self.widgets.append(widget)
        return widget

    def _chart(
        self,
        widget: Widget,
        kind: str,
        labels: list[str],
        restyle: Callable[[Chart, dict[str, str]], None],
        options: dict | None = None,
        height: int | None = None,
        **dataset,
    ) -> Chart:
        canvas = widget.add_chart_slot(height)
        chart = Chart(f"{widget.id}-chart", kind, labels, canvas, options or bar_options(), **dataset)
        widget.chart = chart
        self.charts.register(chart, restyle)
        return chart

    def _read_lock_schedule(self, root: Node) -> None:
        anchor = find_heading(root, "h3", lambda t: t == "lock duration multipliers")
        table = find_next_table(anchor)
        self.lock_points = list(fx.DEFAULT_LOCK_SCHEDULE)
        self.lock_points_from_table = False
        if table is None:
            return
        parsed = parse_lock_points(table)
        if parsed:
            self.lock_points = parsed
            self.lock_points_from_table = True
        else:
            logger.warning("Lock duration table has no parseable rows; using default schedule")

    # --- Sybil resistance ---

    def inject_sybil(self, root: Node) -> None:
        anchor = find_heading(root, "h3", lambda t: t.startswith("layer 1: economic cost"))
        if anchor is None:
            logger.debug("No sybil anchor heading; skipping widgets")
            return

        w1 = Widget(
            "feedback-weight", "feedback_weight", "Feedback Weight Calculator",
            "Explore the stake-weighted feedback formula described in Layer 1.",
            r"w = \sqrt{s}\,\times\,r",
        )
        w1.add_slider("stake", "Staked EVA (s)", min=0, max=5000, step=1, value=200)
        w1.add_slider("rep", "Reputation multiplier (r)", min=0.05, max=2.0, step=0.01, value=1.0,
                      suffix="x", digits=2)
        w1.add_output("fw_out", "weight")

        def compute_weight(w: Widget) -> None:
            w.set_output("fw_out", fx.fmt(fx.feedback_weight(w.value("stake"), w.value("rep")), 3))

        self._finish(w1, compute_weight)

        w2 = Widget(
            "sybil-comparator", "sybil_comparison", "Sybil Comparator",
            "Compare influence from many small accounts vs one larger account (including a reputation multiplier).",
            r"W_{many}=N\,\sqrt{s_a}\,r_a\quad\; W_{one}=\sqrt{s_o}\,r_o",
        )
        w2.add_slider("accounts", "Accounts (N)", min=1, max=300, step=1, value=100)
        w2.add_slider("stake_each", "Stake per account (s_a)", min=0, max=200, step=1, value=2)
        w2.add_slider("rep_each", "Rep multiplier per account (r_a)", min=0.05, max=1.0, step=0.01, value=0.1,
                      suffix="x", digits=2)
        w2.add_slider("stake_one", "Single-account stake (s_o)", min=0, max=2000, step=1, value=200)
        w2.add_slider("rep_one", "Single-account rep (r_o)", min=0.05, max=2.0, step=0.01, value=1.0,
                      suffix="x", digits=2)

        def restyle(chart: Chart, c: dict[str, str]) -> None:
            axis_restyle(chart, c)
            chart.datasets[0]["backgroundColor"] = [c["teal2"], c["teal"]]

        chart = self._chart(
            w2, "bar", ["Many accounts", "Single account"], restyle, height=190,
            dataset_label="Weight", borderWidth=1, borderRadius=10,
        )
        w2.add_output("many_out", "many")
        w2.add_output("one_out", "one")
        w2.add_output("ratio_out", "ratio")

        def compute_sybil(w: Widget) -> None:
            cmp = fx.sybil_comparison(
                w.value("accounts"), w.value("stake_each"), w.value("rep_each"),
                w.value("stake_one"), w.value("rep_one"),
            )
            w.set_output("many_out", fx.fmt(cmp.many, 3))
            w.set_output("one_out", fx.fmt(cmp.one, 3))
            w.set_output("ratio_out", fx.fmt_ratio(cmp.ratio))
            chart.data = [cmp.many, cmp.one]
            self.charts.refresh(chart)

        self._finish(w2, compute_sybil)
        self._grid_after(anchor, w1, w2)

    # --- Economics ---

    def inject_economics(self, root: Node) -> None:
        revenue = find_heading(root, "h3", lambda t: t == "revenue distribution")
        if revenue is not None:
            self._inject_revenue(revenue)
        else:
            logger.debug("No revenue distribution heading; skipping widget")

        lock = find_heading(root, "h3", lambda t: t == "lock duration multipliers")
        if lock is not None:
            self._inject_lock_explorer(lock)
        else:
            logger.debug("No lock duration heading; skipping widget")

    def _inject_revenue(self, anchor: Node) -> None:
        w = Widget(
            "revenue-split", "revenue_split", "Revenue Split Simulator",
            "Drag total platform revenue to see the protocol split and deflationary burn.",
            r"\text{Publishers }60\%\;\;\text{Validators }25\%\;\;\text{Burn }7.5\%\;\;\text{Stakers }7.5\%",
        )
        w.add_slider("total", "Total revenue (EVA)", min=0, max=200000, step=100, value=50000)

        def restyle(chart: Chart, c: dict[str, str]) -> None:
            chart.datasets[0]["backgroundColor"] = [c["teal2"], c["teal"], c["warn"], c["good"]]
            chart.datasets[0]["borderColor"] = c["faint"]
            chart.options["plugins"]["legend"].setdefault("labels", {})["color"] = c["muted"]

        options = {
            "responsive": True,
            "maintainAspectRatio": False,
            "cutout": "62%",
            "plugins": {"legend": {"position": "bottom", "labels": {}}},
        }
        chart = self._chart(
            w, "doughnut", ["Publishers", "Validators", "Burn", "Stakers"], restyle,
            options=options, borderWidth=1,
        )
        for key, label in (("rev_pub", "publishers"), ("rev_val", "validators"),
                           ("rev_burn", "burn"), ("rev_stake", "stakers")):
            w.add_output(key, label)
        w.add_note("Assumes the paper's 15% Burn/Stake pool split 50/50.")

        def compute(w: Widget) -> None:
            split = fx.revenue_split(w.value("total"))
            w.set_output("rev_pub", _whole(split.publishers))
            w.set_output("rev_val", _whole(split.validators))
            w.set_output("rev_burn", _whole(split.burn))
            w.set_output("rev_stake", _whole(split.stakers))
            chart.data = split.as_list()
            self.charts.refresh(chart)

        self._finish(w, compute)
        self._grid_after(anchor, w)

    def _inject_lock_explorer(self, anchor: Node) -> None:
        points = self.lock_points
        w = Widget(
            "lock-explorer", "lock_explorer", "Lock Multiplier Explorer",
            "Use the table's multipliers to see how lock duration scales staking power.",
        )
        w.extra["points"] = [p.model_dump() for p in points]
        w.add_slider("stake", "Stake (EVA)", min=0, max=5000, step=10, value=500)

        def restyle(chart: Chart, c: dict[str, str]) -> None:
            axis_restyle(chart, c)
            chart.datasets[0]["backgroundColor"] = c["teal"]

        chart = self._chart(
            w, "bar", [p.label for p in points], restyle,
            dataset_label="Staking power", borderRadius=12, borderWidth=1,
        )
        w.add_output("lock_out", "power at max lock")

        def compute(w: Widget) -> None:
            stake = w.value("stake")
            values = [fx.staking_power(stake, p.mult) for p in points]
            chart.data = values
            self.charts.refresh(chart)
            w.set_output("lock_out", _whole(max(values)))

        self._finish(w, compute)
        self._grid_after(anchor, w)

    # --- Governance ---

    def inject_governance(self, root: Node) -> None:
        anchor = find_heading(root, "h3", lambda t: t == "voting power")
        if anchor is None:
            logger.debug("No voting power heading; skipping widget")
            return
        points = self.lock_points

        w = Widget(
            "voting-power", "voting_power", "Governance Voting Power",
            "Interactive version of the paper's voting power formula.",
            r"v = s\,\times\,m\,\times\,r",
        )
        w.extra["points"] = [p.model_dump() for p in points]
        w.add_slider("stake", "Staked EVA (s)", min=0, max=10000, step=10, value=2000)
        w.add_slider("rep", "Reputation multiplier (r)", min=0.05, max=2.0, step=0.01, value=1.0,
                     suffix="x", digits=2)
        duration = w.add_choice(
            "days", "Lock duration (m)",
            [(str(p.days), f"{p.days} days ({p.mult:g}x)") for p in points],
            value=str(points[-1].days),
        )

        def restyle(chart: Chart, c: dict[str, str]) -> None:
            axis_restyle(chart, c)
            selected = int(duration.get())
            chart.datasets[0]["backgroundColor"] = [c["teal2"] if p.days == selected else c["teal"] for p in points]
            chart.options["plugins"]["legend"].setdefault("labels", {})["color"] = c["muted"]

        chart = self._chart(
            w, "bar", [p.label for p in points], restyle,
            dataset_label="Voting power", borderRadius=12, borderWidth=1,
        )
        w.add_output("gov_out", "voting power")

        def compute(w: Widget) -> None:
            stake, rep = w.value("stake"), w.value("rep")
            m = fx.lock_multiplier(points, int(duration.get()))
            duration.set_caption(f"{m:g}x")
            chart.data = [fx.voting_power(stake, p.mult, rep) for p in points]
            restyle(chart, palette(self.store.theme))
            self.charts.refresh(chart)
            w.set_output("gov_out", fx.fmt(fx.voting_power(stake, m, rep), 2))

        self._finish(w, compute)
        self._grid_after(anchor, w)

    # --- Roadmap ---

    def inject_roadmap(self, root: Node) -> None:
        h2 = find_heading(root, "h2", lambda t: bool(_ROADMAP_RE.match(t)))
        body = h2.next_element if h2 is not None else None
        if body is not None and body.has_class("section-body"):
            phases = [h for h in body.find_all(is_tag("h3")) if _PHASE_RE.match(heading_label(h))]
            if phases:
                self._inject_timeline(body, phases)

        anchor = find_heading(root, "h3", lambda t: t == "success metrics")
        table = find_next_table(anchor)
        if table is None:
            logger.debug("No success metrics table; skipping chart")
            return
        rows = parse_metric_rows(table)
        if not rows:
            logger.debug("Success metrics table has no complete rows; skipping chart")
            return
        self._inject_metrics(anchor, rows)

    def _inject_timeline(self, body: Node, phases: list[Node]) -> None:
        w = Widget("roadmap-timeline", "timeline", "Roadmap Timeline", "Jump between phases.")
        strip = el("div", "timeline")
        for h in phases:
            target = h.id or ""
            self.phase_targets[target] = h
            strip.append(el("button", "phase-btn", heading_label(h), type="button",
                            data_role="phase-jump", data_target=target))
        w.root.append(strip)
        self.widgets.append(w)
        grid = el("div", "widget-grid")
        grid.append(w.root)
        body.prepend(grid)

    def _inject_metrics(self, anchor: Node, rows) -> None:
        w = Widget(
            "success-metrics", "metric_growth", "Success Metrics Chart",
            "Pick a metric to compare Month 6 vs Month 12.",
        )
        w.extra["rows"] = [r.model_dump() for r in rows]
        metric = w.add_choice("metric", "Metric", [(r.metric, r.metric) for r in rows])

        def restyle(chart: Chart, c: dict[str, str]) -> None:
            axis_restyle(chart, c)
            chart.datasets[0]["backgroundColor"] = [c["teal"], c["teal2"]]

        chart = self._chart(
            w, "bar", ["Month 6", "Month 12"], restyle,
            dataset_label="Value", borderRadius=12, borderWidth=1,
        )
        w.add_output("sm_growth", "growth")
        by_metric = {r.metric: r for r in rows}

        def compute(w: Widget) -> None:
            row = by_metric.get(metric.get(), rows[0])
            g = fx.metric_growth(row.m6, row.m12)
            metric.set_caption("%" if g.is_percent else "")
            chart.data = [g.earlier, g.later]
            y_axis = chart.options["scales"]["y"]
            if g.is_percent:
                y_axis["suggestedMax"] = 100
            else:
                y_axis.pop("suggestedMax", None)
            self.charts.refresh(chart)
            w.set_output("sm_growth", fx.fmt_ratio(g.growth))

        self._finish(w, compute)
        self._grid_after(anchor, w)
