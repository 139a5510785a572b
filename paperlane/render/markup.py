"""Markdown → document tree, with custom heading, link and code rules.

Parsing is markdown-it-py (commonmark + tables + strikethrough). Its syntax
tree is converted node by node; headings, links and fenced code go through
custom rules, everything else maps straight to the element markdown-it names.
"""

import logging
import re
from collections.abc import Callable

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from paperlane.config import RenderConfig
from paperlane.tree import Node, el

logger = logging.getLogger(__name__)

EXTERNAL_RE = re.compile(r"^https?://", re.IGNORECASE)
_STRIP_RE = re.compile(r"[^\w\- ]", re.UNICODE)


class Slugger:
    """GitHub-style slugs, unique within one document."""

    def __init__(self) -> None:
        self.occurrences: dict[str, int] = {}

    @staticmethod
    def base_slug(text: str) -> str:
        return _STRIP_RE.sub("", text.strip().lower()).replace(" ", "-")

    def slug(self, text: str) -> str:
        original = self.base_slug(text)
        result = original
        while result in self.occurrences:
            self.occurrences[original] += 1
            result = f"{original}-{self.occurrences[original]}"
        self.occurrences[result] = 0
        return result

    def reset(self) -> None:
        self.occurrences.clear()


def is_external(href: str) -> bool:
    return bool(EXTERNAL_RE.match(href or ""))


def heading_label(heading: Node) -> str:
    """Visible heading text without the collapse/anchor glyphs."""
    label = heading.find(lambda n: n.has_class("heading-label"))
    return (label or heading).text_content.strip()


class MarkupRenderer:
    """Renders one markdown document into a ``div#content`` tree."""

    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config or RenderConfig()
        self._md = MarkdownIt("commonmark", {"html": True}).enable("table").enable("strikethrough")
        self._formatter = HtmlFormatter(nowrap=True)
        self.slugger = Slugger()
        self.rules: dict[str, Callable[[SyntaxTreeNode], list[Node]]] = {
            "heading": self._heading,
            "link": self._link,
            "fence": self._code,
            "code_block": self._code,
        }

    def render(self, text: str) -> Node:
        self.slugger.reset()
        root = el("div", id="content")
        tree = SyntaxTreeNode(self._md.parse(text))
        for child in tree.children:
            root.append(*self._convert(child))
        logger.debug("Rendered %d top-level blocks", len(root.children))
        return root

    # --- Conversion ---

    def _convert(self, node: SyntaxTreeNode) -> list[Node]:
        rule = self.rules.get(node.type)
        if rule is not None:
            return rule(node)

        t = node.type
        if t == "text":
            return [Node.text_node(node.content)]
        if t == "softbreak":
            return [Node.text_node("\n")]
        if t == "hardbreak":
            return [el("br")]
        if t == "code_inline":
            return [el("code", text=node.content)]
        if t in ("html_block", "html_inline"):
            return [Node.raw(node.content)]
        if t == "inline":
            return self._children(node)
        if t == "image":
            alt = "".join(c.text_content for c in self._children(node))
            return [el("img", src=node.attrs.get("src", ""), alt=alt)]
        if t == "paragraph" and node.hidden:
            return self._children(node)

        element = Node(node.tag or "div")
        for key, value in node.attrs.items():
            element.set(str(key), value)
        element.append(*self._children(node))
        return [element]

    def _children(self, node: SyntaxTreeNode) -> list[Node]:
        out: list[Node] = []
        for child in node.children:
            out.extend(self._convert(child))
        return out

    # --- Custom rules ---

    def _heading(self, node: SyntaxTreeNode) -> list[Node]:
        depth = int(node.tag[1])
        inner = self._children(node)
        text = "".join(n.text_content for n in inner)
        slug = self.slugger.slug(text)
        heading = el(node.tag, id=slug)

        if depth not in (2, 3):
            heading.append(*inner)
            return [heading]

        row = el("span", "heading-row")
        if depth == 2:
            row.append(el(
                "button", "collapse-btn", "[-]",
                type="button", data_role="collapse", data_collapse=slug,
                aria_expanded="true", title="Collapse/expand section",
            ))
        label = el("span", "heading-label")
        label.append(*inner)
        row.append(label)
        row.append(el(
            "a", "heading-link", "#",
            href=f"#{slug}", data_role="heading-link", aria_label="Copy link to section",
        ))
        heading.append(row)
        return [heading]

    def _link(self, node: SyntaxTreeNode) -> list[Node]:
        href = str(node.attrs.get("href", ""))
        link = el("a", href=href)
        title = node.attrs.get("title")
        if title:
            link.set("title", str(title).replace("\n", " "))
        if is_external(href):
            link.add_class(self.config.external_link_class)
            link.set("rel", "noopener noreferrer")
            link.set("target", "_blank")
        link.append(*self._children(node))
        return [link]

    def _code(self, node: SyntaxTreeNode) -> list[Node]:
        source = node.content.rstrip("\n")
        parts = (node.info or "").split(maxsplit=1)
        lang = parts[0].lower() if parts else ""
        pre = el("pre")
        code = el("code")
        lexer = self._lexer_for(lang)
        if lexer is not None:
            code.add_class(f"language-{lang}", "highlighted")
            code.append(Node.raw(highlight(source, lexer, self._formatter), source=source))
        else:
            code.append(Node.text_node(source))
        pre.append(code)
        return [pre]

    def _lexer_for(self, lang: str):
        if not lang:
            return None
        allowed = self.config.highlight_languages
        if allowed is not None and lang not in allowed:
            return None
        try:
            return get_lexer_by_name(lang)
        except ClassNotFound:
            logger.debug("No highlighter for %r; rendering literally", lang)
            return None
