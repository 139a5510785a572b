"""Pydantic models for paperlane."""

from enum import Enum

from pydantic import BaseModel, Field


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class Lane(str, Enum):
    NARROW = "lane-narrow"
    WIDE = "lane-wide"
    FULL = "lane-full"


class Tone(str, Enum):
    TEAL = "teal"
    TEAL2 = "teal2"
    GOOD = "good"
    WARN = "warn"
    BAD = "bad"


# --- Persisted state ---


class PersistedState(BaseModel):
    """Flat record of everything the page keeps in local storage."""
    theme: Theme = Theme.LIGHT
    motion: bool = True
    collapsed_section_ids: set[str] = Field(default_factory=set)


# --- Diagram specs ---


class FlowNodeSpec(BaseModel):
    id: str
    label: str
    tone: Tone = Tone.TEAL
    desc: str = ""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @property
    def lines(self) -> list[str]:
        return self.label.split("\n")

    @property
    def flat_label(self) -> str:
        return self.label.replace("\n", " ")


class FlowEdgeSpec(BaseModel):
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    label: str | None = None

    model_config = {"populate_by_name": True}


class FlowSpec(BaseModel):
    """Immutable template data for one generated diagram."""
    id: str
    title: str
    hint: str = "Click a node to inspect."
    nodes: list[FlowNodeSpec]
    edges: list[FlowEdgeSpec] = Field(default_factory=list)

    model_config = {"frozen": True}

    def node(self, node_id: str) -> FlowNodeSpec | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def label_for(self, node_id: str) -> str:
        n = self.node(node_id)
        return n.flat_label if n else node_id


class FlowSignature(BaseModel):
    """Substrings that identify one diagram payload inside a code block."""
    contains: list[str] = Field(default_factory=list)
    starts_with: str | None = None

    def matches(self, raw: str) -> bool:
        if not raw:
            return False
        if self.starts_with is not None and not raw.startswith(self.starts_with):
            return False
        return all(s in raw for s in self.contains)


# --- Widget data ---


class LockPoint(BaseModel):
    days: int
    mult: float

    @property
    def label(self) -> str:
        return f"{self.days}d"


class MetricRow(BaseModel):
    metric: str
    m6: str
    m12: str


class TableData(BaseModel):
    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)
