"""Geometry for generated diagrams: box sizes, viewport and edge endpoints."""

from dataclasses import dataclass, field

from paperlane.config import LayoutConfig
from paperlane.models import FlowNodeSpec, FlowSpec

EPS = 1e-6


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass
class LayoutNode:
    """A spec node with its computed box. (x, y) is the box center."""

    node: FlowNodeSpec
    x: float
    y: float
    w: float
    h: float

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def lines(self) -> list[str]:
        return self.node.lines

    @property
    def left(self) -> float:
        return self.x - self.w / 2

    @property
    def right(self) -> float:
        return self.x + self.w / 2

    @property
    def top(self) -> float:
        return self.y - self.h / 2

    @property
    def bottom(self) -> float:
        return self.y + self.h / 2


@dataclass
class RenderedEdge:
    from_id: str
    to_id: str
    start: Point
    end: Point
    label: str | None = None

    @property
    def midpoint(self) -> Point:
        return Point((self.start.x + self.end.x) / 2, (self.start.y + self.end.y) / 2)


@dataclass(frozen=True)
class ViewBox:
    x: float
    y: float
    w: float
    h: float

    def __str__(self) -> str:
        return f"{self.x:g} {self.y:g} {self.w:g} {self.h:g}"

    def contains(self, node: LayoutNode) -> bool:
        return (
            node.left >= self.x
            and node.right <= self.x + self.w
            and node.top >= self.y
            and node.bottom <= self.y + self.h
        )


@dataclass
class FlowLayout:
    spec: FlowSpec
    nodes: list[LayoutNode]
    edges: list[RenderedEdge]
    viewbox: ViewBox
    by_id: dict[str, LayoutNode] = field(default_factory=dict)


def clamp(n: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, n))


def box_size(node: FlowNodeSpec, config: LayoutConfig) -> tuple[float, float]:
    lines = node.lines
    longest = max((len(line) for line in lines), default=0)
    w = clamp(config.base_width + longest * config.char_width, config.min_width, config.max_width)
    h = config.base_height + len(lines) * config.line_height
    return w, h


def rect_edge_point(cx: float, cy: float, hw: float, hh: float, tx: float, ty: float) -> Point:
    """Where the ray from a box center toward (tx, ty) leaves the box."""
    dx = tx - cx
    dy = ty - cy
    adx = abs(dx)
    ady = abs(dy)
    if adx < EPS and ady < EPS:
        return Point(cx, cy)
    sx = hw / max(EPS, adx)
    sy = hh / max(EPS, ady)
    t = min(sx, sy)
    return Point(cx + dx * t, cy + dy * t)


def layout_flow(spec: FlowSpec, config: LayoutConfig | None = None) -> FlowLayout:
    config = config or LayoutConfig()
    nodes = []
    for n in spec.nodes:
        w, h = box_size(n, config)
        nodes.append(LayoutNode(node=n, x=n.x, y=n.y, w=w, h=h))
    by_id = {n.id: n for n in nodes}

    if nodes:
        min_x = min(n.left for n in nodes)
        max_x = max(n.right for n in nodes)
        min_y = min(n.top for n in nodes)
        max_y = max(n.bottom for n in nodes)
    else:
        min_x, min_y, max_x, max_y = 0.0, 0.0, 1000.0, 600.0
    pad = config.padding
    viewbox = ViewBox(
        x=min_x - pad,
        y=min_y - pad,
        w=max(1.0, (max_x - min_x) + pad * 2),
        h=max(1.0, (max_y - min_y) + pad * 2),
    )

    edges = []
    for e in spec.edges:
        a = by_id.get(e.from_id)
        b = by_id.get(e.to_id)
        if a is None or b is None:
            continue
        start = rect_edge_point(a.x, a.y, a.w / 2, a.h / 2, b.x, b.y)
        end = rect_edge_point(b.x, b.y, b.w / 2, b.h / 2, a.x, a.y)
        edges.append(RenderedEdge(e.from_id, e.to_id, start, end, e.label))

    return FlowLayout(spec=spec, nodes=nodes, edges=edges, viewbox=viewbox, by_id=by_id)
