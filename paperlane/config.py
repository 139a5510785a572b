"""Configuration loading for paperlane."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    db_path: str = "data/paperlane.db"
    theme_key: str = "theme"
    motion_key: str = "motion"
    collapsed_key: str = "collapsed-section-ids"


class RenderConfig(BaseModel):
    # None means any language Pygments knows.
    highlight_languages: list[str] | None = None
    external_link_class: str = "reverse"
    build_hero: bool = True


class LayoutConfig(BaseModel):
    base_width: float = 72.0
    char_width: float = 8.3
    min_width: float = 150.0
    max_width: float = 340.0
    base_height: float = 56.0
    line_height: float = 18.0
    padding: float = 80.0
    font_size: int = 14


class RevealConfig(BaseModel):
    threshold: float = 0.12
    bottom_margin: float = 0.12  # fraction of viewport height trimmed from the bottom
    fold_ratio: float = 0.9


class ParallaxLayerConfig(BaseModel):
    sx: float = 0.0
    sy: float = 0.0
    ss: float = 0.0
    tone: str = "teal"


class ParallaxConfig(BaseModel):
    pointer_ease: float = 0.075
    scroll_ease: float = 0.06
    layers: list[ParallaxLayerConfig] = Field(default_factory=lambda: [
        ParallaxLayerConfig(sx=18, sy=12, ss=-0.06, tone="teal"),
        ParallaxLayerConfig(sx=-26, sy=-16, ss=-0.12, tone="teal2"),
        ParallaxLayerConfig(sx=34, sy=-22, ss=-0.2, tone="warn"),
    ])


class BootConfig(BaseModel):
    deep_link_delay_ms: int = 50


class OutputConfig(BaseModel):
    output_dir: str = "data/site"
    page_title: str = "Whitepaper"
    chart_js_url: str = "https://cdn.jsdelivr.net/npm/chart.js@4/dist/chart.umd.min.js"
    katex_js_url: str = "https://cdn.jsdelivr.net/npm/katex@0.16/dist/katex.min.js"
    katex_css_url: str = "https://cdn.jsdelivr.net/npm/katex@0.16/dist/katex.min.css"


class Config(BaseModel):
    storage: StorageConfig = Field(default_factory=StorageConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    reveal: RevealConfig = Field(default_factory=RevealConfig)
    parallax: ParallaxConfig = Field(default_factory=ParallaxConfig)
    boot: BootConfig = Field(default_factory=BootConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @property
    def resolved_db_path(self) -> Path:
        """Resolve db_path relative to project root."""
        p = Path(self.storage.db_path)
        if p.is_absolute():
            return p
        return _project_root() / p

    @property
    def resolved_output_dir(self) -> Path:
        p = Path(self.output.output_dir)
        if p.is_absolute():
            return p
        return _project_root() / p


def _project_root() -> Path:
    """Return the paperlane project root directory."""
    return Path(__file__).parent.parent


def load_config(config_path: Path | None = None) -> Config:
    """Load config from YAML file. Falls back to defaults if file missing."""
    if config_path is None:
        config_path = _project_root() / "config.yaml"

    if config_path.exists():
        raw: dict[str, Any] = yaml.safe_load(config_path.read_text()) or {}
        return Config(**raw)

    return Config()
