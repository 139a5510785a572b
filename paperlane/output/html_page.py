"""Self-contained HTML export of a booted page.

The final tree is serialised as-is. A JSON bootstrap and a small inline
runtime make the page behave in the browser the way the headless model does:
collapse with persistence, heading links, diagram selection, widget
recompute, theme/motion restyle, reveals and parallax. Chart.js and KaTeX
load from CDN.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any

from paperlane.charts import ANIMATION_MS
from paperlane.diagrams.flow import FILL_ALPHA, STROKE_ALPHA, STROKE_WIDTH
from paperlane.models import Theme
from paperlane.page import Page
from paperlane.palette import FONT_FAMILY, PALETTES, css_variables

logger = logging.getLogger(__name__)


def _esc(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;").replace("'", "&#39;")


def _finite(value: Any) -> Any:
    """Replace NaN/inf with None so the bootstrap is strict JSON."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_finite(v) for v in value]
    return value


def bootstrap_json(page: Page) -> str:
    data = page.bootstrap()
    data["palettes"] = {t.value: PALETTES[t] for t in Theme}
    data["flowStyle"] = {
        "fill": {t.value: FILL_ALPHA[t] for t in Theme},
        "stroke": {t.value: STROKE_ALPHA[t] for t in Theme},
        "width": list(STROKE_WIDTH),
    }
    data["chartAnimationMs"] = ANIMATION_MS
    data["font"] = FONT_FAMILY
    text = json.dumps(_finite(data), ensure_ascii=False, allow_nan=False)
    # Keep "</script>" inside strings from closing the data block.
    return text.replace("</", "<\\/")


def render_page(page: Page, title: str | None = None) -> str:
    if not page.booted:
        raise RuntimeError("Page must be booted before export")
    out = page.config.output
    title = _esc(title or out.page_title)
    body = page.document.to_html()
    data_json = bootstrap_json(page)
    theme = page.store.theme.value

    return f'''<!DOCTYPE html>
<html lang="en" data-theme="{theme}">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<link rel="stylesheet" href="{_esc(out.katex_css_url)}">
<style>
:root, [data-theme="light"] {{
{css_variables(Theme.LIGHT)}
}}
[data-theme="dark"] {{
{css_variables(Theme.DARK)}
}}
{BASE_CSS}
</style>
</head>
<body>
{body}
<script type="application/json" id="paperlane-data">{data_json}</script>
<script src="{_esc(out.chart_js_url)}"></script>
<script src="{_esc(out.katex_js_url)}"></script>
<script>
{RUNTIME_JS}
</script>
</body>
</html>
'''


def write_page(page: Page, output_path: Path | None = None, title: str | None = None) -> Path:
    """Write the exported page. Returns output path."""
    if output_path is None:
        output_path = page.config.resolved_output_dir / "index.html"
    html = render_page(page, title)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html)
    logger.info("Page saved to %s (%d widgets, %d diagrams)",
                output_path, len(page.widgets.widgets), len(page.diagrams.diagrams))
    return output_path


BASE_CSS = """
* { box-sizing: border-box; }
html, body { margin: 0; background: var(--bg); color: var(--ink); }
body { font-family: "Inter", ui-sans-serif, system-ui, -apple-system, sans-serif; line-height: 1.6; }
a { color: inherit; }
a.reverse { text-decoration: underline; text-decoration-color: var(--teal); }

/* --- Chrome --- */
.progress { position: fixed; top: 0; left: 0; right: 0; height: 3px; z-index: 30; }
.progress-bar { height: 100%; width: 0; background: var(--teal2); }
.toolbar { position: fixed; top: 12px; right: 16px; display: flex; gap: 8px; z-index: 30; }
.toggle { width: 34px; height: 34px; border-radius: 50%; border: 1px solid var(--faint);
  background: var(--bg); color: var(--ink); cursor: pointer; }
.theme-toggle::before { content: "\\25D0"; }
.motion-toggle::before { content: "\\223F"; }
.parallax { position: fixed; inset: 0; pointer-events: none; z-index: 0; transition: opacity .3s; }
.parallax-layer { position: absolute; width: 46vmax; height: 46vmax; border-radius: 50%;
  filter: blur(60px); opacity: .35; will-change: transform; }
.parallax-layer:nth-child(1) { top: -12vmax; left: -10vmax; }
.parallax-layer:nth-child(2) { top: 30vh; right: -16vmax; }
.parallax-layer:nth-child(3) { bottom: -18vmax; left: 20vw; }
.tone-teal { background: var(--teal); }
.tone-teal2 { background: var(--teal2); }
.tone-warn { background: var(--warn); }
.tone-good { background: var(--good); }
.tone-bad { background: var(--bad); }

/* --- Lanes --- */
.paper { position: relative; z-index: 1; padding: 72px 20px 120px; }
#content > *, .section-body > * { margin-left: auto; margin-right: auto; }
.lane-narrow { max-width: 720px; }
.lane-wide { max-width: 1040px; }
.lane-full { max-width: none; }

/* --- Hero and sections --- */
.hero { padding: 48px 0 32px; text-align: left; max-width: 1040px; margin: 0 auto; }
.hero-kicker { text-transform: uppercase; letter-spacing: .14em; color: var(--muted); font-size: 13px; }
.hero-title { font-size: clamp(32px, 5vw, 56px); line-height: 1.1; margin: 12px 0; }
.hero-meta { color: var(--muted); }
.paper-section { margin: 56px 0; }
.heading-row { display: inline-flex; align-items: baseline; gap: 10px; }
.collapse-btn { font-family: ui-monospace, monospace; background: none; border: 0; color: var(--muted); cursor: pointer; }
.heading-link { opacity: 0; text-decoration: none; color: var(--muted); }
h2:hover .heading-link, h3:hover .heading-link { opacity: 1; }
.section-body.collapsed { display: none; }

/* --- Blocks --- */
.block-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(220px, 1fr)); gap: 14px; }
.block { border: 1px solid var(--faint); border-radius: 18px; padding: 16px; }
.block.tone-mint { background: color-mix(in srgb, var(--teal2) 18%, transparent); }
.block.tone-lime { background: color-mix(in srgb, var(--good) 18%, transparent); }
.block.tone-coral { background: color-mix(in srgb, var(--bad) 18%, transparent); }
.block.tone-sky { background: color-mix(in srgb, var(--teal) 18%, transparent); }
.block.tone-peri { background: color-mix(in srgb, var(--warn) 18%, transparent); }
.block.tone-lav { background: color-mix(in srgb, var(--warn) 10%, transparent); }
pre { position: relative; overflow-x: auto; padding: 16px; border-radius: 14px; border: 1px solid var(--faint); }
.copy-btn { position: absolute; top: 8px; right: 8px; font-size: 12px; border: 1px solid var(--faint);
  background: var(--bg); color: var(--muted); border-radius: 8px; cursor: pointer; }
.table-wrap { overflow-x: auto; }
table { border-collapse: collapse; width: 100%; }
th, td { border-bottom: 1px solid var(--faint); padding: 8px 10px; text-align: left; }

/* --- Diagrams --- */
.flow3d { border: 1px solid var(--faint); border-radius: 22px; padding: 18px; margin: 28px auto; }
.flow3d-title { font-weight: 700; }
.flow3d-hint { color: var(--muted); font-size: 13px; }
.flow-svg { width: 100%; height: auto; }
.flow-node { cursor: pointer; }
.flow-node-label { font-size: 14px; }
.flow-edge { fill: none; stroke: currentColor; stroke-width: 1.4; opacity: .55; }
.flow-edge.is-active { opacity: 1; stroke-width: 2.2; }
.flow-edge-label { font-size: 12px; fill: var(--muted); }
.flow3d-inspector { margin-top: 12px; padding: 12px 14px; border-radius: 14px; border: 1px solid var(--faint); }
.flow3d-inspector-title { font-weight: 700; }
.flow3d-inspector-links { display: flex; flex-wrap: wrap; gap: 8px; margin-top: 8px; color: var(--muted); }

/* --- Widgets --- */
.widget-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(320px, 1fr)); gap: 16px; margin: 24px auto; }
.widget { border: 1px solid var(--faint); border-radius: 22px; padding: 18px; }
.widget-title { margin: 0; }
.widget-sub { color: var(--muted); margin: 4px 0 10px; }
.control { margin: 10px 0; }
.control-head { display: flex; justify-content: space-between; font-size: 13px; color: var(--muted); }
.row { display: flex; gap: 10px; align-items: center; flex-wrap: wrap; }
.row input[type=range] { flex: 1; }
.num { width: 96px; }
.chart-wrap { position: relative; height: 220px; margin: 12px 0; }
.chip { border: 1px solid var(--faint); border-radius: 999px; padding: 4px 10px; font-size: 13px; }
.note { color: var(--muted); font-size: 12px; }
.timeline { display: flex; flex-wrap: wrap; gap: 8px; }
.phase-btn { border: 1px solid var(--faint); border-radius: 999px; background: none; color: var(--ink);
  padding: 6px 12px; cursor: pointer; }

/* --- Reveal --- */
[data-motion="on"] .reveal { opacity: 0; transform: translateY(14px); transition: opacity .6s ease, transform .6s ease; }
[data-motion="on"] .reveal.is-in { opacity: 1; transform: none; }
@media (prefers-reduced-motion: reduce) {
  .reveal { opacity: 1 !important; transform: none !important; transition: none !important; }
}
"""


RUNTIME_JS = r"""
(function () {
  "use strict";

  const DATA = JSON.parse(document.getElementById("paperlane-data").textContent);
  const KEYS = DATA.keys;
  const page = document.querySelector(".page");
  const content = document.getElementById("content");
  const store = { theme: "light", motion: true };
  const listeners = [];
  const charts = new Map();

  // --- Storage and store ---

  function storageGet(key) {
    try { return localStorage.getItem(key); } catch (e) { return null; }
  }

  function storageSet(key, value) {
    try { localStorage.setItem(key, value); } catch (e) { /* storage unavailable */ }
  }

  function readCollapsed() {
    try {
      const v = JSON.parse(storageGet(KEYS.collapsed) || "[]");
      return new Set(Array.isArray(v) ? v.filter((x) => typeof x === "string") : []);
    } catch (e) {
      return new Set();
    }
  }

  function prefersReducedMotion() {
    return !!(window.matchMedia && window.matchMedia("(prefers-reduced-motion: reduce)").matches);
  }

  function loadState() {
    const t = storageGet(KEYS.theme);
    store.theme = t === "dark" || t === "light" ? t : "light";
    const m = storageGet(KEYS.motion);
    store.motion = m === "on" ? true : m === "off" ? false : !prefersReducedMotion();
  }

  function notify(what) {
    for (const fn of listeners) fn(what);
  }

  function setTheme(next) {
    store.theme = next || (store.theme === "dark" ? "light" : "dark");
    storageSet(KEYS.theme, store.theme);
    notify("theme");
  }

  function setMotion(next) {
    store.motion = typeof next === "boolean" ? next : !store.motion;
    storageSet(KEYS.motion, store.motion ? "on" : "off");
    notify("motion");
  }

  function colors() {
    return DATA.palettes[store.theme];
  }

  function rgba(hex, a) {
    const m = /^#([0-9a-f]{6})$/i.exec(hex || "");
    if (!m) return hex;
    const n = parseInt(m[1], 16);
    return `rgba(${(n >> 16) & 255}, ${(n >> 8) & 255}, ${n & 255}, ${a})`;
  }

  function syncChrome() {
    const m = store.motion ? "on" : "off";
    document.documentElement.dataset.theme = store.theme;
    document.documentElement.dataset.motion = m;
    page.dataset.theme = store.theme;
    page.dataset.motion = m;
    const tt = document.querySelector('[data-role="theme-toggle"]');
    const mt = document.querySelector('[data-role="motion-toggle"]');
    const tl = store.theme === "dark" ? "Theme: Dark" : "Theme: Light";
    const ml = store.motion ? "Motion: On" : "Motion: Off";
    if (tt) { tt.setAttribute("aria-label", tl); tt.title = tl; }
    if (mt) { mt.setAttribute("aria-label", ml); mt.title = ml; mt.setAttribute("aria-pressed", String(store.motion)); }
  }

  // --- Sections ---

  function sectionParts(id) {
    const s = content.querySelector(`.paper-section[data-section="${CSS.escape(id)}"]`);
    if (!s) return null;
    return { section: s, body: s.querySelector(".section-body"), btn: s.querySelector(".collapse-btn") };
  }

  function setCollapsed(parts, collapsed) {
    parts.body.classList.toggle("collapsed", collapsed);
    if (parts.btn) {
      parts.btn.textContent = collapsed ? "[+]" : "[-]";
      parts.btn.setAttribute("aria-expanded", String(!collapsed));
    }
  }

  function applyCollapsed() {
    const saved = readCollapsed();
    for (const s of content.querySelectorAll(".paper-section")) {
      const parts = sectionParts(s.dataset.section);
      if (parts && parts.body) setCollapsed(parts, saved.has(s.dataset.section));
    }
  }

  function toggleSection(id) {
    const parts = sectionParts(id);
    if (!parts || !parts.body) return;
    const collapsed = !parts.body.classList.contains("collapsed");
    setCollapsed(parts, collapsed);
    const ids = readCollapsed();
    if (collapsed) ids.add(id); else ids.delete(id);
    storageSet(KEYS.collapsed, JSON.stringify(Array.from(ids).sort()));
    if (!collapsed) {
      requestAnimationFrame(() => {
        for (const canvas of parts.body.querySelectorAll("canvas[data-chart]")) {
          try { const c = charts.get(canvas.dataset.chart); if (c) c.resize(); } catch (e) { /* chart torn down */ }
        }
      });
    }
  }

  function expandForHeading(node) {
    const s = node && node.closest(".paper-section");
    if (!s) return;
    const body = s.querySelector(".section-body");
    if (body && body.classList.contains("collapsed")) toggleSection(s.dataset.section);
  }

  // --- Diagrams ---

  const selection = new Map();

  function restyleFlow(flow) {
    const c = colors();
    const style = DATA.flowStyle;
    const sel = selection.get(flow.dataset.flow) || null;
    const svg = flow.querySelector("svg");
    if (svg) svg.style.color = c.muted;
    for (const g of flow.querySelectorAll(".flow-node")) {
      const active = g.dataset.node === sel ? 1 : 0;
      const tone = c[g.dataset.tone] || c.teal;
      const rect = g.querySelector("rect");
      rect.setAttribute("fill", rgba(tone, style.fill[store.theme][active]));
      rect.setAttribute("stroke", active ? rgba(tone, style.stroke[store.theme][active]) : c.faint);
      rect.setAttribute("stroke-width", style.width[active]);
      g.classList.toggle("is-selected", !!active);
      g.querySelector("text").setAttribute("fill", c.ink);
    }
    for (const p of flow.querySelectorAll(".flow-edge")) {
      p.classList.toggle("is-active", !!sel && (p.dataset.from === sel || p.dataset.to === sel));
    }
  }

  function renderInspector(flow) {
    const box = flow.querySelector(".flow3d-inspector");
    const sel = selection.get(flow.dataset.flow);
    const info = sel ? (DATA.diagrams[flow.dataset.flow] || {})[sel] : null;
    box.textContent = "";
    const title = document.createElement("div");
    title.className = "flow3d-inspector-title";
    title.textContent = info ? info.title : "Inspect a node";
    const body = document.createElement("div");
    body.className = "flow3d-inspector-body";
    body.textContent = info ? info.body : "Click any node to see details.";
    box.append(title, body);
    if (info && info.links.length) {
      const links = document.createElement("div");
      links.className = "flow3d-inspector-links";
      for (const l of info.links) {
        const span = document.createElement("span");
        span.textContent = l;
        links.appendChild(span);
      }
      box.appendChild(links);
    }
  }

  function selectFlowNode(flow, nodeId) {
    selection.set(flow.dataset.flow, nodeId);
    renderInspector(flow);
    restyleFlow(flow);
  }

  function restyleFlows() {
    for (const flow of content.querySelectorAll(".flow3d")) restyleFlow(flow);
  }

  // --- Widgets and charts ---

  function fmt(n, digits) {
    if (n === null || !Number.isFinite(n)) return "—";
    return new Intl.NumberFormat("en-US", { maximumFractionDigits: digits }).format(n);
  }

  function fmtRatio(n) {
    return Number.isFinite(n) ? fmt(n, 2) + "x" : "—";
  }

  function numFromText(t) {
    const m = /-?\d+(\.\d+)?/.exec(String(t || "").replace(/,/g, "").replace(/\s+/g, " ").trim());
    return m ? parseFloat(m[0]) : NaN;
  }

  function lockMult(points, days) {
    const p = points.find((x) => x.days === days);
    return p ? p.mult : points[0].mult;
  }

  function axisColors(chart, c) {
    const sc = chart.options.scales;
    if (sc) {
      sc.x.ticks.color = c.muted;
      sc.y.ticks.color = c.muted;
      sc.y.grid.color = c.faint;
    }
    chart.data.datasets[0].borderColor = c.faint;
  }

  const STYLES = {
    sybil_comparison(chart, c) { axisColors(chart, c); chart.data.datasets[0].backgroundColor = [c.teal2, c.teal]; },
    revenue_split(chart, c) {
      chart.data.datasets[0].backgroundColor = [c.teal2, c.teal, c.warn, c.good];
      chart.data.datasets[0].borderColor = c.faint;
      chart.options.plugins.legend.labels.color = c.muted;
    },
    lock_explorer(chart, c) { axisColors(chart, c); chart.data.datasets[0].backgroundColor = c.teal; },
    voting_power(chart, c, w) {
      axisColors(chart, c);
      const days = Number(w.get("days"));
      chart.data.datasets[0].backgroundColor = w.cfg.points.map((p) => (p.days === days ? c.teal2 : c.teal));
    },
    metric_growth(chart, c) { axisColors(chart, c); chart.data.datasets[0].backgroundColor = [c.teal, c.teal2]; },
  };

  const FORMULAS = {
    feedback_weight(w) {
      w.out("fw_out", fmt(Math.sqrt(Math.max(0, w.get("stake"))) * w.get("rep"), 3));
    },
    sybil_comparison(w) {
      const many = w.get("accounts") * Math.sqrt(Math.max(0, w.get("stake_each"))) * w.get("rep_each");
      const one = Math.sqrt(Math.max(0, w.get("stake_one"))) * w.get("rep_one");
      w.out("many_out", fmt(many, 3));
      w.out("one_out", fmt(one, 3));
      w.out("ratio_out", fmtRatio(one > 0 ? many / one : Infinity));
      w.plot([many, one]);
    },
    revenue_split(w) {
      const t = w.get("total");
      const parts = [t * 0.6, t * 0.25, t * 0.075, t * 0.075];
      ["rev_pub", "rev_val", "rev_burn", "rev_stake"].forEach((k, i) => w.out(k, fmt(parts[i], 0)));
      w.plot(parts);
    },
    lock_explorer(w) {
      const values = w.cfg.points.map((p) => w.get("stake") * p.mult);
      w.out("lock_out", fmt(Math.max(...values), 0));
      w.plot(values);
    },
    voting_power(w) {
      const s = w.get("stake");
      const r = w.get("rep");
      const m = lockMult(w.cfg.points, Number(w.get("days")));
      w.caption("days", `${m}x`);
      w.out("gov_out", fmt(s * m * r, 2));
      w.plot(w.cfg.points.map((p) => s * p.mult * r));
    },
    metric_growth(w) {
      const row = w.cfg.rows.find((r) => r.metric === w.get("metric")) || w.cfg.rows[0];
      const a = numFromText(row.m6);
      const b = numFromText(row.m12);
      const pct = String(row.m6).includes("%") || String(row.m12).includes("%");
      w.caption("metric", pct ? "%" : "");
      const growth = Number.isNaN(a) || Number.isNaN(b) ? NaN : a > 0 ? b / a : Infinity;
      w.out("sm_growth", fmtRatio(growth));
      if (w.chart) {
        if (pct) w.chart.options.scales.y.suggestedMax = 100;
        else delete w.chart.options.scales.y.suggestedMax;
      }
      w.plot([a, b]);
    },
  };

  function chartMode() {
    return store.motion ? undefined : "none";
  }

  function restyleChart(w) {
    const chart = w.chart;
    if (!chart) return;
    Chart.defaults.color = colors().muted;
    Chart.defaults.borderColor = colors().faint;
    Chart.defaults.font.family = DATA.font;
    const style = STYLES[w.cfg.kind];
    if (style) style(chart, colors(), w);
    chart.options.animation = store.motion ? { duration: DATA.chartAnimationMs } : false;
    try { chart.update(chartMode()); } catch (e) { /* chart torn down */ }
  }

  const widgets = [];

  function mountWidget(cfg) {
    const root = content.querySelector(`.widget[data-widget="${CSS.escape(cfg.id)}"]`);
    if (!root) return;
    const values = {};
    const w = {
      cfg,
      root,
      chart: null,
      get: (k) => values[k],
      out(k, text) {
        const n = root.querySelector(`[data-output="${k}"]`);
        if (n) n.textContent = text;
      },
      caption(k, text) {
        const n = root.querySelector(`[data-control="${k}"] .control-val`);
        if (n) n.textContent = text;
      },
      plot(data) {
        if (!w.chart) return;
        w.chart.data.datasets[0].data = data.map((v) => (Number.isFinite(v) ? v : null));
        restyleChart(w);
      },
      recompute() {
        const f = FORMULAS[cfg.kind];
        if (f) f(w);
      },
    };

    for (const ctl of cfg.controls) {
      const box = root.querySelector(`[data-control="${ctl.key}"]`);
      values[ctl.key] = ctl.value;
      if (ctl.type === "choice") {
        const sel = box.querySelector("select");
        sel.addEventListener("change", () => { values[ctl.key] = sel.value; w.recompute(); });
        continue;
      }
      const range = box.querySelector('input[type="range"]');
      const num = box.querySelector('input[type="number"]');
      const label = box.querySelector(".control-val");
      const set = (raw) => {
        let n = Number(raw);
        if (!Number.isFinite(n)) n = ctl.value;
        n = Math.min(ctl.max, Math.max(ctl.min, n));
        values[ctl.key] = n;
        range.value = String(n);
        num.value = n.toFixed(ctl.digits);
        label.textContent = fmt(n, ctl.digits) + (ctl.suffix || "");
        w.recompute();
      };
      range.addEventListener("input", () => set(range.value));
      num.addEventListener("change", () => set(num.value));
    }

    if (cfg.chart && window.Chart) {
      const canvas = root.querySelector(`canvas[data-chart="${cfg.chart}"]`);
      const conf = DATA.charts[cfg.chart];
      if (canvas && conf) {
        w.chart = new Chart(canvas, conf);
        charts.set(cfg.chart, w.chart);
      }
    }
    widgets.push(w);
    w.recompute();
  }

  function restyleCharts() {
    for (const w of widgets) restyleChart(w);
  }

  function renderFormulas() {
    if (!window.katex) return;
    for (const n of content.querySelectorAll(".widget-formula[data-tex]")) {
      try { katex.render(n.dataset.tex, n, { throwOnError: false, displayMode: true }); } catch (e) { /* leave source */ }
    }
  }

  // --- Reveals ---

  const reveal = { els: [], io: null };

  function animated() {
    return store.motion && !prefersReducedMotion() && "IntersectionObserver" in window;
  }

  function syncReveals() {
    if (reveal.io) { reveal.io.disconnect(); reveal.io = null; }
    if (!animated()) {
      for (const n of reveal.els) n.classList.add("is-in");
      return;
    }
    const fold = window.innerHeight * DATA.reveal.fold_ratio;
    const margin = Math.round(DATA.reveal.bottom_margin * 100);
    reveal.io = new IntersectionObserver((entries, io) => {
      for (const e of entries) {
        if (!e.isIntersecting) continue;
        e.target.classList.add("is-in");
        io.unobserve(e.target);
      }
    }, { threshold: DATA.reveal.threshold, rootMargin: `0px 0px -${margin}% 0px` });
    for (const n of reveal.els) {
      if (n.classList.contains("is-in")) continue;
      if (n.getBoundingClientRect().top < fold) n.classList.add("is-in");
      else reveal.io.observe(n);
    }
  }

  function setupReveals() {
    reveal.els = Array.from(content.querySelectorAll(".reveal"));
    if (animated()) for (const n of reveal.els) n.classList.remove("is-in");
    syncReveals();
  }

  // --- Parallax ---

  const px = {
    root: document.querySelector(".parallax"),
    raf: 0,
    state: "idle",
    layers: [],
    target: { x: 0, y: 0, s: 0 },
    cur: { x: 0, y: 0, s: 0 },
  };

  function parallaxFrame() {
    px.raf = 0;
    if (px.state !== "running") return;
    const pe = DATA.parallax.pointerEase;
    const se = DATA.parallax.scrollEase;
    px.cur.x += (px.target.x - px.cur.x) * pe;
    px.cur.y += (px.target.y - px.cur.y) * pe;
    px.cur.s += (px.target.s - px.cur.s) * se;
    for (const l of px.layers) {
      const x = px.cur.x * l.sx;
      const y = px.cur.y * l.sy + px.cur.s * l.ss;
      l.el.style.transform = `translate3d(${x.toFixed(2)}px, ${y.toFixed(2)}px, 0)`;
    }
    px.raf = requestAnimationFrame(parallaxFrame);
  }

  function startParallax() {
    if (px.state === "running" || !px.layers.length || !store.motion) return;
    px.state = "running";
    px.root.style.opacity = "";
    px.target.s = window.scrollY;
    px.raf = requestAnimationFrame(parallaxFrame);
  }

  function stopParallax() {
    if (px.state === "running") {
      px.state = "stopping";
      if (px.raf) cancelAnimationFrame(px.raf);
      px.raf = 0;
    }
    for (const l of px.layers) l.el.style.transform = "";
    px.cur = { x: 0, y: 0, s: 0 };
    if (px.root) px.root.style.opacity = "0";
    px.state = "idle";
  }

  function syncParallax() {
    if (store.motion) startParallax(); else stopParallax();
  }

  function setupParallax() {
    if (!px.root) return;
    px.layers = Array.from(px.root.querySelectorAll("[data-sx]")).map((el) => ({
      el,
      sx: Number(el.dataset.sx) || 0,
      sy: Number(el.dataset.sy) || 0,
      ss: Number(el.dataset.ss) || 0,
    }));
    window.addEventListener("pointermove", (e) => {
      px.target.x = (e.clientX / Math.max(window.innerWidth, 1) - 0.5) * 2;
      px.target.y = (e.clientY / Math.max(window.innerHeight, 1) - 0.5) * 2;
    }, { passive: true });
    document.addEventListener("pointerleave", () => { px.target.x = 0; px.target.y = 0; });
    window.addEventListener("scroll", () => { px.target.s = window.scrollY; }, { passive: true });
    syncParallax();
  }

  // --- Progress ---

  function updateProgress() {
    const doc = document.documentElement;
    const max = doc.scrollHeight - doc.clientHeight;
    const pct = max > 0 ? (doc.scrollTop / max) * 100 : 0;
    const bar = document.getElementById("progressBar");
    if (bar) bar.style.width = `${Math.max(0, Math.min(100, pct))}%`;
  }

  // --- Dispatch ---

  const COMMANDS = {
    "collapse": (n) => toggleSection(n.dataset.collapse),
    "heading-link": (n, e) => {
      e.preventDefault();
      const hash = n.getAttribute("href");
      const url = new URL(location.href);
      url.hash = hash;
      const done = () => history.replaceState(null, "", hash);
      if (navigator.clipboard && navigator.clipboard.writeText) {
        navigator.clipboard.writeText(url.toString()).then(done, done);
      } else {
        done();
      }
    },
    "flow-node": (n) => selectFlowNode(n.closest(".flow3d"), n.dataset.node),
    "flow-canvas": (n) => selectFlowNode(n.closest(".flow3d"), null),
    "theme-toggle": () => setTheme(),
    "motion-toggle": () => setMotion(),
    "phase-jump": (n) => {
      const h = document.getElementById(n.dataset.target);
      if (!h) return;
      expandForHeading(h);
      h.scrollIntoView({ behavior: store.motion ? "smooth" : "auto", block: "start" });
      history.replaceState(null, "", `#${h.id}`);
    },
    "copy-code": (n) => {
      const pre = n.closest("pre");
      const code = pre.querySelector("code");
      const text = ((code || pre).textContent || "").trimEnd();
      const reset = () => setTimeout(() => { n.textContent = "Copy"; }, 900);
      navigator.clipboard.writeText(text).then(
        () => { n.textContent = "Copied"; reset(); },
        () => { n.textContent = "Failed"; reset(); },
      );
    },
  };

  document.addEventListener("click", (e) => {
    let n = e.target;
    while (n && n !== document) {
      const role = n.getAttribute && n.getAttribute("data-role");
      if (role && COMMANDS[role]) {
        COMMANDS[role](n, e);
        return;
      }
      n = n.parentNode;
    }
  });

  // --- Boot ---

  loadState();
  listeners.push((what) => {
    syncChrome();
    if (what === "theme") {
      restyleCharts();
      restyleFlows();
    } else if (what === "motion") {
      syncParallax();
      restyleCharts();
      syncReveals();
    }
  });
  syncChrome();
  applyCollapsed();
  for (const cfg of DATA.widgets) mountWidget(cfg);
  restyleCharts();
  restyleFlows();
  renderFormulas();
  setupReveals();
  setupParallax();
  window.addEventListener("scroll", updateProgress, { passive: true });
  window.addEventListener("resize", updateProgress);
  updateProgress();

  if (location.hash) {
    setTimeout(() => {
      const target = document.getElementById(decodeURIComponent(location.hash.slice(1)));
      if (!target) return;
      expandForHeading(target);
      target.scrollIntoView({ block: "start" });
    }, DATA.deepLinkDelayMs);
  }
})();
"""
