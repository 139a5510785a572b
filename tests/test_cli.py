"""Tests for the paperlane command line."""

from pathlib import Path

import pytest

from paperlane.cli import main

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture()
def run(tmp_path, capsys):
    db = tmp_path / "state.db"

    def _run(*argv):
        main(["--db", str(db), *argv])
        return capsys.readouterr().out

    return _run


class TestState:
    def test_show_defaults(self, run):
        out = run("state", "show")
        assert "theme: light" in out
        assert "motion: on" in out
        assert "collapsed: (none)" in out

    def test_set_persists(self, run):
        run("state", "set", "theme", "dark")
        run("state", "set", "motion", "off")
        out = run("state", "show")
        assert "theme: dark" in out
        assert "motion: off" in out

    def test_invalid_values_rejected(self, run):
        with pytest.raises(SystemExit):
            run("state", "set", "theme", "sepia")
        with pytest.raises(SystemExit):
            run("state", "set", "motion", "maybe")

    def test_collapse_and_expand(self, run):
        run("state", "collapse", "3-architecture")
        out = run("state", "collapse", "6-governance")
        assert "collapsed: 3-architecture, 6-governance" in out
        out = run("state", "expand", "3-architecture")
        assert "collapsed: 6-governance" in out

    def test_reset(self, run):
        run("state", "set", "theme", "dark")
        assert "Cleared 1 keys" in run("state", "reset")
        assert "theme: light" in run("state", "show")


class TestDocumentCommands:
    def test_sections_reflect_persisted_collapse(self, run):
        run("state", "collapse", "4-sybil-resistance")
        out = run("sections", str(FIXTURES / "whitepaper.md"))
        assert "[+] 4-sybil-resistance" in out
        assert "[-] 1-introduction" in out
        assert "[-] 11-conclusion" in out

    def test_diagrams(self, run):
        out = run("diagrams", str(FIXTURES / "whitepaper.md"))
        lines = [line.strip() for line in out.splitlines() if line.strip()]
        assert len(lines) == 8
        assert "block 1 [plain] -> solution" in lines
        assert any(line.endswith("[python] -> (left as text)") for line in lines)

    def test_build(self, run, tmp_path):
        target = tmp_path / "out" / "paper.html"
        out = run("build", str(FIXTURES / "whitepaper.md"), "-o", str(target), "--title", "EVA")
        assert target.exists()
        assert "<title>EVA</title>" in target.read_text()
        assert "8 sections, 6 diagrams, 7 widgets" in out

    def test_build_accepts_config_after_subcommand(self, run, tmp_path):
        cfg = tmp_path / "paperlane.yaml"
        cfg.write_text("output:\n  page_title: From Config\n")
        target = tmp_path / "paper.html"
        run("build", str(FIXTURES / "whitepaper.md"), "-o", str(target), "--config", str(cfg))
        assert "<title>From Config</title>" in target.read_text()

    def test_root_config_still_applies(self, run, tmp_path):
        cfg = tmp_path / "paperlane.yaml"
        cfg.write_text("output:\n  page_title: Root Config\n")
        target = tmp_path / "paper.html"
        run("--config", str(cfg), "build", str(FIXTURES / "whitepaper.md"), "-o", str(target))
        assert "<title>Root Config</title>" in target.read_text()

    def test_no_command_prints_help(self, run):
        assert "usage" in run().lower()
