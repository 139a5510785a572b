"""Slider/select controls and the widget container they live in."""

import math
from collections.abc import Callable
from typing import Any

from paperlane.charts import Chart
from paperlane.tree import Node, el
from paperlane.widgets.formulas import PLACEHOLDER, fmt

ChangeListener = Callable[[Any], None]


class Slider:
    """Range input paired with a number input; values are clamped to [min, max]."""

    def __init__(
        self,
        key: str,
        label: str,
        min: float,
        max: float,
        step: float,
        value: float,
        suffix: str = "",
        digits: int = 0,
    ) -> None:
        self.key = key
        self.label = label
        self.min = float(min)
        self.max = float(max)
        self.step = float(step)
        self.default = float(value)
        self.suffix = suffix
        self.digits = digits
        self._listeners: list[ChangeListener] = []

        self.root = el("div", "control", data_control=key)
        head = el("div", "control-head")
        self.value_node = el("div", "control-val")
        head.append(el("div", text=label), self.value_node)
        row = el("div", "row")
        self.range_node = el(
            "input", type="range", min=f"{self.min:g}", max=f"{self.max:g}",
            step=f"{self.step:g}", data_role="slider", data_key=key, aria_label=label,
        )
        self.number_node = el(
            "input", "num", type="number", min=f"{self.min:g}", max=f"{self.max:g}",
            step=f"{self.step:g}", data_role="slider-number", data_key=key,
        )
        row.append(self.range_node, self.number_node)
        self.root.append(head, row)

        self.value = self.default
        self.set(value, silent=True)

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def get(self) -> float:
        return self.value

    def set(self, value: Any, silent: bool = False) -> float:
        try:
            n = float(value)
        except (TypeError, ValueError):
            n = math.nan
        if not math.isfinite(n):
            n = self.default
        n = min(self.max, max(self.min, n))
        self.value = n
        self.range_node.set("value", f"{n:g}")
        self.number_node.set("value", f"{n:.{self.digits}f}")
        self.value_node.set_text(f"{fmt(n, self.digits)}{self.suffix}")
        if not silent:
            for listener in list(self._listeners):
                listener(n)
        return n

    def to_config(self) -> dict[str, Any]:
        return {
            "key": self.key, "type": "slider", "min": self.min, "max": self.max,
            "step": self.step, "value": self.value, "digits": self.digits, "suffix": self.suffix,
        }


class Choice:
    """Select input over a fixed option list."""

    def __init__(self, key: str, label: str, options: list[tuple[str, str]], value: str | None = None) -> None:
        if not options:
            raise ValueError(f"Choice '{key}' needs at least one option")
        self.key = key
        self.label = label
        self.options = list(options)
        self._listeners: list[ChangeListener] = []

        self.root = el("div", "control", data_control=key)
        head = el("div", "control-head")
        self.value_node = el("div", "control-val")
        head.append(el("div", text=label), self.value_node)
        row = el("div", "row")
        self.select_node = el("select", "num", data_role="choice", data_key=key, aria_label=label)
        self._option_nodes: dict[str, Node] = {}
        for opt_value, opt_label in self.options:
            option = el("option", value=opt_value, text=opt_label)
            self._option_nodes[opt_value] = option
            self.select_node.append(option)
        row.append(self.select_node)
        self.root.append(head, row)

        self.value = self.options[0][0]
        self.set(value if value is not None else self.value, silent=True)

    @property
    def values(self) -> list[str]:
        return [v for v, _ in self.options]

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def get(self) -> str:
        return self.value

    def set(self, value: str, silent: bool = False) -> str:
        if value not in self._option_nodes:
            return self.value
        self.value = value
        for opt_value, option in self._option_nodes.items():
            if opt_value == value:
                option.set("selected", "selected")
            else:
                option.attrs.pop("selected", None)
        if not silent:
            for listener in list(self._listeners):
                listener(value)
        return value

    def set_caption(self, text: str) -> None:
        self.value_node.set_text(text)

    def to_config(self) -> dict[str, Any]:
        return {"key": self.key, "type": "choice", "value": self.value, "options": self.values}


class Widget:
    """A calculator card: controls, a pure formula, readouts and an optional chart."""

    def __init__(self, widget_id: str, kind: str, title: str, subtitle: str, formula_tex: str | None = None) -> None:
        self.id = widget_id
        self.kind = kind
        self.controls: dict[str, Slider | Choice] = {}
        self.outputs: dict[str, Node] = {}
        self.chart: Chart | None = None
        self.compute: Callable[["Widget"], None] | None = None
        self.extra: dict[str, Any] = {}

        self.root = el("section", "widget", data_widget=widget_id, data_kind=kind)
        self.root.append(el("h4", "widget-title", title), el("p", "widget-sub", subtitle))
        if formula_tex:
            self.root.append(el("div", "widget-formula", formula_tex, data_tex=formula_tex))
        self.body = el("div", "controls")
        self.root.append(self.body)
        self._output_row: Node | None = None

    def add_slider(self, key: str, label: str, **kwargs: Any) -> Slider:
        slider = Slider(key, label, **kwargs)
        slider.on_change(lambda _v: self.recompute())
        self.controls[key] = slider
        self.body.append(slider.root)
        return slider

    def add_choice(self, key: str, label: str, options: list[tuple[str, str]], value: str | None = None) -> Choice:
        choice = Choice(key, label, options, value)
        choice.on_change(lambda _v: self.recompute())
        self.controls[key] = choice
        self.body.append(choice.root)
        return choice

    def add_chart_slot(self, height: int | None = None) -> Node:
        wrap = el("div", "chart-wrap")
        if height:
            wrap.style["height"] = f"{height}px"
        canvas = el("canvas")
        wrap.append(canvas)
        self.body.append(wrap)
        return canvas

    def add_output(self, key: str, label: str) -> Node:
        if self._output_row is None:
            self._output_row = el("div", "row outputs")
            self.body.append(self._output_row)
        chip = el("div", "chip")
        value = el("strong", text=PLACEHOLDER, data_output=key, role="status")
        chip.append(Node.text_node(f"{label} "), value)
        self._output_row.append(chip)
        self.outputs[key] = value
        return value

    def add_note(self, text: str) -> None:
        self.body.append(el("div", "note", text))

    def set_output(self, key: str, text: str) -> None:
        self.outputs[key].set_text(text)

    def output(self, key: str) -> str:
        return self.outputs[key].text_content

    def value(self, key: str) -> Any:
        return self.controls[key].get()

    def recompute(self) -> None:
        """Synchronously recompute every output and repaint the chart."""
        if self.compute is not None:
            self.compute(self)

    def to_config(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "controls": [c.to_config() for c in self.controls.values()],
            "outputs": list(self.outputs),
            "chart": self.chart.id if self.chart else None,
            **self.extra,
        }
