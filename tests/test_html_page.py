"""Tests for the single-file HTML export."""

import json
import math

import pytest

from paperlane.output.html_page import _esc, _finite, bootstrap_json, render_page, write_page
from paperlane.page import Page


def extract_data(html: str) -> dict:
    start = html.index('id="paperlane-data">') + len('id="paperlane-data">')
    end = html.index("</script>", start)
    return json.loads(html[start:end])


class TestHelpers:
    def test_esc(self):
        assert _esc('<a href="x">&\'</a>') == "&lt;a href=&quot;x&quot;&gt;&amp;&#39;&lt;/a&gt;"

    def test_finite(self):
        assert _finite({"a": [1.0, math.nan], "b": (math.inf, "x")}) == {"a": [1.0, None], "b": [None, "x"]}


class TestRenderPage:
    def test_requires_boot(self, registry):
        with pytest.raises(RuntimeError):
            render_page(Page(registry=registry))

    def test_document(self, page):
        html = render_page(page, title="EVA <Whitepaper>")
        assert html.startswith("<!DOCTYPE html>")
        assert "<title>EVA &lt;Whitepaper&gt;</title>" in html
        assert 'data-theme="light"' in html
        assert 'id="progressBar"' in html
        assert 'data-flow="revenue"' in html
        assert 'data-widget="lock-explorer"' in html
        assert "chart.umd.min.js" in html

    def test_default_title(self, page):
        assert f"<title>{page.config.output.page_title}</title>" in render_page(page)

    def test_bootstrap_round_trips(self, page):
        data = extract_data(render_page(page))
        assert data["state"]["theme"] == "light"
        assert set(data["palettes"]) == {"light", "dark"}
        assert data["chartAnimationMs"] == 420
        assert {w["id"] for w in data["widgets"]} >= {"voting-power", "success-metrics"}

    def test_bootstrap_is_strict_json(self, page):
        # "Active validators" carries an unparseable Month 6 value
        metrics = page.widgets.get("success-metrics")
        metrics.controls["metric"].set("Active validators")
        text = bootstrap_json(page)
        assert "NaN" not in text
        data = json.loads(text)
        assert data["charts"]["success-metrics-chart"]["data"]["datasets"][0]["data"][0] is None

    def test_script_close_escaped(self, registry):
        doc = "## Roadmap\n\n### Success Metrics\n\n| Metric | M6 | M12 |\n|---|---|---|\n| a &lt;/script&gt; b | 1 | 2 |\n"
        page = Page(registry=registry).boot(doc)
        text = bootstrap_json(page)
        assert "</script>" not in text
        assert json.loads(text)["widgets"][0]["rows"][0]["metric"] == "a </script> b"


class TestWritePage:
    def test_writes_file(self, page, tmp_path):
        out = write_page(page, tmp_path / "site" / "index.html", title="Paper")
        assert out.exists()
        assert "<title>Paper</title>" in out.read_text()
