"""Tests for sectioning, collapse persistence and deep-link expansion."""

from paperlane.render.markup import MarkupRenderer
from paperlane.sections import SectionOrganizer
from paperlane.state import LocalState, MemoryStorage
from paperlane.tree import has_class, is_tag

DOC = """\
Preamble paragraph.

## Alpha

First body.

### Alpha Detail

More.

## Beta

Second body.

## Alpha
"""


def organized(local, on_expand=None):
    root = MarkupRenderer().render(DOC)
    org = SectionOrganizer(root, local, on_expand=on_expand)
    org.organize()
    return root, org


class TestOrganize:
    def test_wraps_each_h2(self, local):
        root, org = organized(local)
        assert list(org.sections) == ["alpha", "beta", "alpha-1"]
        sections = root.find_all(has_class("paper-section"))
        assert [s.get("data-section") for s in sections] == ["alpha", "beta", "alpha-1"]

    def test_body_collects_until_next_h2(self, local):
        _, org = organized(local)
        alpha = org.sections["alpha"]
        assert [n.tag for n in alpha.body_nodes] == ["p", "h3", "p"]
        assert org.sections["alpha-1"].body_nodes == []

    def test_preamble_untouched(self, local):
        root, _ = organized(local)
        assert root.element_children[0].tag == "p"

    def test_idempotent(self, local):
        root, org = organized(local)
        before = root.to_html()
        org.organize()
        assert root.to_html() == before
        assert len(root.find_all(has_class("paper-section"))) == 3
        assert list(org.sections) == ["alpha", "beta", "alpha-1"]


class TestCollapse:
    def test_toggle_updates_affordance_and_storage(self, storage, local):
        _, org = organized(local)
        assert org.toggle("beta") is True
        beta = org.sections["beta"]
        assert beta.body.has_class("collapsed")
        assert beta.toggle.text_content == "[+]"
        assert beta.toggle.get("aria-expanded") == "false"
        assert storage.data["collapsed-section-ids"] == '["beta"]'

        assert org.toggle("beta") is False
        assert beta.toggle.text_content == "[-]"
        assert storage.data["collapsed-section-ids"] == "[]"

    def test_unknown_id(self, local):
        _, org = organized(local)
        assert org.toggle("nope") is None

    def test_round_trip_across_reload(self, storage, local):
        _, org = organized(local)
        org.toggle("alpha")
        org.toggle("alpha-1")

        _, reloaded = organized(LocalState(storage))
        assert reloaded.apply_collapsed() == ["alpha", "alpha-1"]
        assert reloaded.collapsed_ids == {"alpha", "alpha-1"}
        assert reloaded.sections["alpha"].toggle.text_content == "[+]"
        assert not reloaded.sections["beta"].collapsed

    def test_stale_ids_ignored(self):
        local = LocalState(MemoryStorage({"collapsed-section-ids": '["gone", "beta"]'}))
        _, org = organized(local)
        assert org.apply_collapsed() == ["beta"]

    def test_expand_callback_only_on_expand(self, local):
        expanded = []
        _, org = organized(local, on_expand=expanded.append)
        org.toggle("beta")
        assert expanded == []
        org.toggle("beta")
        assert [s.id for s in expanded] == ["beta"]


class TestExpandForHeading:
    def test_opens_collapsed_ancestor(self, local):
        root, org = organized(local)
        org.toggle("alpha")
        detail = root.find(is_tag("h3"))
        assert org.expand_for_heading(detail) is True
        assert not org.sections["alpha"].collapsed

    def test_noop_when_open(self, local):
        root, org = organized(local)
        assert org.expand_for_heading(root.find(is_tag("h3"))) is False

    def test_none_and_outside(self, local):
        root, org = organized(local)
        assert org.expand_for_heading(None) is False
        assert org.expand_for_heading(root.element_children[0]) is False
