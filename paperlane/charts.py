"""Chart models and the registry that restyles them on theme/motion changes."""

import copy
import logging
from collections.abc import Callable
from typing import Any

from paperlane.palette import palette
from paperlane.state import ThemeMotionStore
from paperlane.tree import Node

logger = logging.getLogger(__name__)

ANIMATION_MS = 420


class ChartDestroyedError(Exception):
    """Raised when a destroyed chart is resized or updated."""


RestyleHook = Callable[["Chart", dict[str, str]], None]


class Chart:
    """In-process stand-in for a Chart.js instance bound to a canvas node."""

    def __init__(
        self,
        chart_id: str,
        kind: str,
        labels: list[str],
        canvas: Node,
        options: dict[str, Any] | None = None,
        dataset_label: str = "",
        **dataset: Any,
    ) -> None:
        self.id = chart_id
        self.kind = kind
        self.labels = list(labels)
        self.canvas = canvas
        self.datasets: list[dict[str, Any]] = [
            {"label": dataset_label, "data": [0.0] * len(labels), **dataset}
        ]
        self.options: dict[str, Any] = options or {}
        self.restyle_hook: RestyleHook | None = None
        self.revision = 0
        self.last_update_mode: str | None = None
        self.resize_count = 0
        self.destroyed = False
        canvas.set("data-chart", chart_id)

    @property
    def data(self) -> list[float]:
        return self.datasets[0]["data"]

    @data.setter
    def data(self, values: list[float]) -> None:
        self.datasets[0]["data"] = list(values)

    def update(self, mode: str | None = None) -> None:
        if self.destroyed:
            raise ChartDestroyedError(self.id)
        self.revision += 1
        self.last_update_mode = mode

    def resize(self) -> None:
        if self.destroyed:
            raise ChartDestroyedError(self.id)
        self.resize_count += 1

    def destroy(self) -> None:
        self.destroyed = True

    def to_config(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "data": {"labels": self.labels, "datasets": copy.deepcopy(self.datasets)},
            "options": copy.deepcopy(self.options),
        }


def bar_options() -> dict[str, Any]:
    return {
        "responsive": True,
        "maintainAspectRatio": False,
        "plugins": {"legend": {"display": False, "labels": {}}},
        "scales": {
            "x": {"grid": {"display": False}, "ticks": {}},
            "y": {"beginAtZero": True, "ticks": {}, "grid": {}},
        },
    }


def axis_restyle(chart: Chart, colors: dict[str, str]) -> None:
    """Shared tick/grid coloring for bar charts."""
    scales = chart.options.get("scales", {})
    scales.get("x", {}).setdefault("ticks", {})["color"] = colors["muted"]
    scales.get("y", {}).setdefault("ticks", {})["color"] = colors["muted"]
    scales.get("y", {}).setdefault("grid", {})["color"] = colors["faint"]
    chart.datasets[0]["borderColor"] = colors["faint"]


class ChartRegistry:
    """Every live chart, so theme and motion changes restyle them uniformly."""

    def __init__(self, store: ThemeMotionStore) -> None:
        self.store = store
        self.charts: list[Chart] = []

    def register(self, chart: Chart, restyle: RestyleHook | None = None) -> Chart:
        if restyle is not None:
            chart.restyle_hook = restyle
        self.charts.append(chart)
        self.restyle_all()
        return chart

    def get(self, chart_id: str) -> Chart | None:
        for chart in self.charts:
            if chart.id == chart_id:
                return chart
        return None

    @property
    def update_mode(self) -> str | None:
        return None if self.store.motion else "none"

    def refresh(self, chart: Chart) -> None:
        """Repaint one chart after its data changed."""
        try:
            chart.update(self.update_mode)
        except ChartDestroyedError:
            logger.debug("Skipping update of destroyed chart %s", chart.id)

    def restyle_all(self) -> None:
        colors = palette(self.store.theme)
        for chart in self.charts:
            if chart.destroyed:
                continue
            if chart.restyle_hook is not None:
                chart.restyle_hook(chart, colors)
            chart.options["animation"] = {"duration": ANIMATION_MS} if self.store.motion else False
            self.refresh(chart)

    def resize_within(self, root: Node) -> int:
        """Resize charts whose canvas lives under ``root``. Returns count resized."""
        resized = 0
        for chart in self.charts:
            if not root.contains(chart.canvas):
                continue
            try:
                chart.resize()
                resized += 1
            except ChartDestroyedError:
                logger.debug("Ignoring resize of destroyed chart %s", chart.id)
        return resized
