"""Ordered (signature, FlowSpec) registry used to recognise diagram payloads."""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from paperlane.models import FlowSignature, FlowSpec

logger = logging.getLogger(__name__)

FLOWS_PATH = Path(__file__).parent / "flows.yaml"


@dataclass(frozen=True)
class FlowEntry:
    signature: FlowSignature
    spec: FlowSpec


def ring_positions(count: int, radius: float, z_amplitude: float) -> list[tuple[float, float, float]]:
    """Evenly spaced points on a circle, starting at 12 o'clock."""
    points = []
    for i in range(count):
        a = (i / count) * math.pi * 2 - math.pi / 2
        points.append((math.cos(a) * radius, math.sin(a) * radius, math.sin(a * 2) * z_amplitude))
    return points


def _build_spec(raw: dict[str, Any], ring: dict[str, Any] | None) -> FlowSpec:
    data = dict(raw)
    if ring:
        nodes = [dict(n) for n in data.get("nodes", [])]
        positions = ring_positions(len(nodes), float(ring.get("radius", 300)), float(ring.get("z_amplitude", 0)))
        for node, (x, y, z) in zip(nodes, positions):
            node.update(x=x, y=y, z=z)
        data["nodes"] = nodes
    spec = FlowSpec(**data)

    ids = {n.id for n in spec.nodes}
    for edge in spec.edges:
        if edge.from_id not in ids or edge.to_id not in ids:
            raise ValueError(
                f"Flow '{spec.id}' edge {edge.from_id}->{edge.to_id} references an unknown node"
            )
    return spec


class FlowRegistry:
    """First matching signature wins; unmatched text maps to nothing."""

    def __init__(self, entries: list[FlowEntry] | None = None) -> None:
        self.entries: list[FlowEntry] = list(entries or [])

    @classmethod
    def load(cls, path: Path | None = None) -> "FlowRegistry":
        path = path or FLOWS_PATH
        raw = yaml.safe_load(path.read_text()) or []
        entries = [
            FlowEntry(
                signature=FlowSignature(**item["signature"]),
                spec=_build_spec(item["spec"], item.get("ring")),
            )
            for item in raw
        ]
        logger.debug("Loaded %d flow specs from %s", len(entries), path)
        return cls(entries)

    def register(self, signature: FlowSignature, spec: FlowSpec) -> None:
        self.entries.append(FlowEntry(signature, spec))

    def match(self, raw: str) -> FlowSpec | None:
        text = (raw or "").strip()
        for entry in self.entries:
            if entry.signature.matches(text):
                return entry.spec
        return None

    def get(self, spec_id: str) -> FlowSpec | None:
        for entry in self.entries:
            if entry.spec.id == spec_id:
                return entry.spec
        return None

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)
