"""Tests for first-appearance reveals."""

from paperlane.motion.reveal import RevealController
from paperlane.runtime import Platform
from paperlane.tree import el


def build():
    root = el("main")
    hero = el("header", "hero")
    kicker = el("div", "hero-kicker", "Kicker")
    hero.append(kicker)
    section = el("section", "paper-section")
    h2 = el("h2", text="Intro")
    body = el("div", "section-body")
    para = el("p", text="Body")
    aside = el("aside", text="ignored")
    grid = el("div", "widget-grid")
    widget = el("section", "widget")
    grid.append(widget)
    body.append(para, aside, grid)
    section.append(h2, body)
    root.append(hero, section)
    return root, dict(kicker=kicker, h2=h2, para=para, aside=aside, grid=grid, widget=widget)


class TestCollect:
    def test_targets(self, store):
        root, n = build()
        targets = RevealController(root, store, Platform()).collect()
        assert targets == [n["kicker"], n["h2"], n["para"], n["grid"], n["widget"]]

    def test_no_duplicates(self, store):
        root, n = build()
        n["para"].add_class("block")
        targets = RevealController(root, store, Platform()).collect()
        assert targets.count(n["para"]) == 1


class TestSetup:
    def test_above_fold_revealed_immediately(self, store):
        root, n = build()
        platform = Platform()
        vp = platform.viewport
        vp.place(n["kicker"], 50)
        vp.place(n["h2"], 700)
        vp.place(n["para"], 2000)
        reveal = RevealController(root, store, platform)
        reveal.setup()
        assert all(t.has_class("reveal") for t in reveal.targets)
        assert n["kicker"].has_class("is-in")
        assert n["h2"].has_class("is-in")
        assert not n["para"].has_class("is-in")
        assert n["para"] in reveal.pending

    def test_scroll_reveals_once(self, store):
        root, n = build()
        platform = Platform()
        platform.viewport.place(n["para"], 2000)
        reveal = RevealController(root, store, platform)
        reveal.setup()
        platform.viewport.scroll_to(1500)
        assert n["para"].has_class("is-in")
        assert n["para"] not in reveal.pending
        platform.viewport.scroll_to(0)
        assert n["para"].has_class("is-in")

    def test_bottom_margin_trims_viewport(self, store):
        root, n = build()
        platform = Platform()
        platform.viewport.place(n["para"], 2000)
        reveal = RevealController(root, store, platform)
        reveal.setup()
        # viewport bottom at 1150 + 900 * 0.88 = 1942, para starts at 2000
        platform.viewport.scroll_to(1150)
        assert not n["para"].has_class("is-in")

    def test_motion_off_reveals_everything(self, store):
        store.set_motion(False)
        root, _ = build()
        reveal = RevealController(root, store, Platform())
        reveal.setup()
        assert all(t.has_class("is-in") for t in reveal.targets)
        assert reveal.observer is None

    def test_reduced_motion(self, store):
        root, _ = build()
        reveal = RevealController(root, store, Platform(prefers_reduced_motion=True))
        reveal.setup()
        assert not reveal.animated
        assert all(t.has_class("is-in") for t in reveal.targets)

    def test_no_intersection_support(self, store):
        root, _ = build()
        reveal = RevealController(root, store, Platform(supports_intersection=False))
        reveal.setup()
        assert all(t.has_class("is-in") for t in reveal.targets)

    def test_turning_motion_off_flushes_pending(self, store):
        root, n = build()
        platform = Platform()
        reveal = RevealController(root, store, platform)
        reveal.setup()
        assert reveal.pending
        store.set_motion(False)
        reveal.sync()
        assert reveal.pending == []
        assert platform.viewport.observers == []
        assert n["widget"].has_class("is-in")
