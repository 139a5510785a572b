"""Editorial passes: hero, key-list cards, code copy buttons, tables, lanes."""

import logging
import re

from paperlane.models import Lane
from paperlane.tree import Node, el, has_class, is_tag

logger = logging.getLogger(__name__)

BLOCK_TONES = ["mint", "lime", "coral", "sky", "peri", "lav"]
KEY_LIST_TARGETS = [("key innovations:", "ul"), ("core principles:", "ol")]
LANE_CLASSES = [lane.value for lane in Lane]

_VERSION_RE = re.compile(r"\bversion\b", re.IGNORECASE)


def _label_children(heading: Node) -> list[Node]:
    label = heading.find(has_class("heading-label"))
    return list((label or heading).children)


def build_hero(root: Node) -> Node | None:
    """Lift the intro (h1 kicker, h2 tagline, version line) into a header."""
    if root.find(has_class("hero")):
        return None
    h1 = root.find(is_tag("h1"))
    if h1 is None or h1.parent is not root:
        return None

    h2 = h1.next_element
    while h2 is not None and h2.tag != "h2":
        h2 = h2.next_element
    if h2 is None:
        return None

    version = None
    n = h2.next_element
    while n is not None:
        if n.tag == "p" and _VERSION_RE.search(n.text_content):
            version = n
            break
        if n.tag in ("hr", "h2"):
            break
        n = n.next_element

    hero = el("header", "hero lane-full")
    kicker = el("div", "hero-kicker")
    kicker.append(*_label_children(h1))
    title = el("h1", "hero-title")
    title.append(*_label_children(h2))
    hero.append(kicker, title)
    if version is not None and version.text_content.strip():
        meta = el("div", "hero-meta")
        meta.append(*list(version.children))
        hero.append(meta)
        version.remove()

    h1.remove()
    h2.remove()
    root.prepend(hero)
    logger.debug("Built hero from intro headings")
    return hero


def transform_key_lists(root: Node) -> int:
    """Turn the labelled key lists into tone-coded card grids."""
    converted = 0
    for label, list_tag in KEY_LIST_TARGETS:
        p = root.find(lambda n: n.tag == "p" and n.text_content.strip().lower() == label)
        if p is None:
            continue
        lst = p.next_element
        if lst is None or lst.tag != list_tag:
            continue

        p.add_class("block-kicker")
        grid = el("div", "block-grid lane-wide")
        for i, li in enumerate(x for x in lst.children if x.tag == "li"):
            card = el("div", f"block tone-{BLOCK_TONES[i % len(BLOCK_TONES)]}")
            card.append(*list(li.children))
            grid.append(card)
        lst.replace_with(grid)
        converted += 1
    return converted


def wire_code_copy_buttons(root: Node) -> int:
    added = 0
    for pre in root.find_all(is_tag("pre")):
        if pre.get("data-copy") == "1":
            continue
        pre.set("data-copy", "1")
        pre.append(el("button", "copy-btn", "Copy", type="button", data_role="copy-code"))
        added += 1
    return added


def code_text(pre: Node) -> str:
    """Source text of a code block, excluding the copy button."""
    code = pre.find(is_tag("code"))
    return (code or pre).text_content.rstrip()


def set_lane(node: Node, lane: Lane | None) -> None:
    node.remove_class(*LANE_CLASSES)
    if lane is not None:
        node.add_class(lane.value)


def wrap_tables(root: Node) -> int:
    wrapped = 0
    for table in root.find_all(is_tag("table")):
        if table.closest(has_class("table-wrap")):
            continue
        wrap = el("div", "table-wrap")
        lanes = [c for c in table.classes if c in LANE_CLASSES]
        table.remove_class(*LANE_CLASSES)
        wrap.add_class(*(lanes or [Lane.WIDE.value]))
        table.before(wrap)
        wrap.append(table)
        wrapped += 1
    return wrapped


_WIDE_CLASSES = ("flow3d", "widget-grid", "block-grid", "table-wrap")
_NARROW_TAGS = ("h3", "p", "ul", "ol", "pre")


def apply_lanes(root: Node) -> None:
    """Assign a width class to every top-level and section-body block."""
    for child in root.element_children:
        if child.has_class("hero") or child.tag == "hr":
            set_lane(child, Lane.FULL)

    for section in root.find_all(has_class("paper-section")):
        for child in section.element_children:
            if child.tag == "h2":
                set_lane(child, Lane.NARROW)
        body = next((c for c in section.element_children if c.has_class("section-body")), None)
        if body is None:
            continue
        for child in body.element_children:
            if any(child.has_class(c) for c in _WIDE_CLASSES) or child.tag == "table":
                set_lane(child, Lane.WIDE)
            elif child.tag == "hr":
                set_lane(child, Lane.FULL)
            elif child.tag in _NARROW_TAGS:
                set_lane(child, Lane.NARROW)
