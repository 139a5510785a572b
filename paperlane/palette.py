"""Theme palettes shared by charts, diagrams and the exported stylesheet."""

from paperlane.models import Theme, Tone

PALETTES: dict[Theme, dict[str, str]] = {
    Theme.LIGHT: {
        "bg": "#f7f6f2",
        "ink": "#111418",
        "muted": "rgba(17, 20, 24, 0.68)",
        "faint": "rgba(17, 20, 24, 0.12)",
        "teal": "#85cbda",
        "teal2": "#8ad8c0",
        "good": "#c6f459",
        "warn": "#9cb7eb",
        "bad": "#f39a8e",
    },
    Theme.DARK: {
        "bg": "#0f1215",
        "ink": "#eef1f4",
        "muted": "rgba(238, 241, 244, 0.68)",
        "faint": "rgba(238, 241, 244, 0.14)",
        "teal": "#5fb3c6",
        "teal2": "#6cc8ab",
        "good": "#a9d83f",
        "warn": "#8aa5dd",
        "bad": "#e48376",
    },
}

FONT_FAMILY = '"Inter", ui-sans-serif, system-ui, -apple-system, sans-serif'


def palette(theme: Theme) -> dict[str, str]:
    return PALETTES[theme]


def tone_color(theme: Theme, tone: Tone | str) -> str:
    colors = PALETTES[theme]
    key = tone.value if isinstance(tone, Tone) else tone
    return colors.get(key, colors["teal"])


def hex_to_rgb(value: str) -> tuple[int, int, int] | None:
    h = value.strip()
    if not h.startswith("#"):
        return None
    x = h[1:]
    try:
        if len(x) == 3:
            return int(x[0] * 2, 16), int(x[1] * 2, 16), int(x[2] * 2, 16)
        if len(x) == 6:
            return int(x[0:2], 16), int(x[2:4], 16), int(x[4:6], 16)
    except ValueError:
        return None
    return None


def rgba(color: str, alpha: float) -> str:
    """Apply alpha to a hex color; non-hex colors pass through unchanged."""
    rgb = hex_to_rgb(color)
    if rgb is None:
        return color
    return f"rgba({rgb[0]}, {rgb[1]}, {rgb[2]}, {alpha})"


def css_variables(theme: Theme) -> str:
    return "\n".join(f"    --{k}: {v};" for k, v in PALETTES[theme].items())
