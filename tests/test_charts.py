"""Tests for the chart registry's restyle, refresh and resize handling."""

import pytest

from paperlane.charts import Chart, ChartDestroyedError, ChartRegistry
from paperlane.tree import el


def make_chart(chart_id="c1"):
    return Chart(chart_id, "bar", ["a", "b"], el("canvas"))


class TestDestroyedCharts:
    def test_chart_rejects_use_after_destroy(self):
        chart = make_chart()
        chart.destroy()
        with pytest.raises(ChartDestroyedError):
            chart.resize()
        with pytest.raises(ChartDestroyedError):
            chart.update()

    def test_resize_within_skips_destroyed(self, store):
        charts = ChartRegistry(store)
        body = el("div")
        live, dead = make_chart("live"), make_chart("dead")
        body.append(live.canvas, dead.canvas)
        charts.register(live)
        charts.register(dead)
        dead.destroy()
        assert charts.resize_within(body) == 1
        assert live.resize_count == 1
        assert dead.resize_count == 0

    def test_only_destroyed_chart_resizes_nothing(self, store):
        charts = ChartRegistry(store)
        body = el("div")
        chart = charts.register(make_chart())
        body.append(chart.canvas)
        chart.destroy()
        assert charts.resize_within(body) == 0

    def test_refresh_and_restyle_tolerate_destroyed(self, store):
        charts = ChartRegistry(store)
        chart = charts.register(make_chart())
        revision = chart.revision
        chart.destroy()
        charts.refresh(chart)
        charts.restyle_all()
        store.set_motion(False)
        charts.restyle_all()
        assert chart.revision == revision


class TestResizeScope:
    def test_charts_outside_subtree_untouched(self, store):
        charts = ChartRegistry(store)
        inside, outside = el("div"), el("div")
        a, b = make_chart("a"), make_chart("b")
        inside.append(a.canvas)
        outside.append(b.canvas)
        charts.register(a)
        charts.register(b)
        assert charts.resize_within(inside) == 1
        assert (a.resize_count, b.resize_count) == (1, 0)
