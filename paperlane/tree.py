"""Mutable document tree that every pipeline pass reads and rewrites.

A ``Node`` is either an element (``tag`` set), a text leaf (``TEXT``) or a
raw-HTML leaf (``RAW``) carrying pre-rendered markup such as highlighted code.
Raw leaves keep their source text so ``text_content`` stays meaningful.
"""

import html
from collections.abc import Callable, Iterator

TEXT = "#text"
RAW = "#raw"

VOID_TAGS = {"br", "hr", "img", "input", "meta", "link"}


class Node:
    """One element or leaf in the document tree."""

    def __init__(
        self,
        tag: str,
        attrs: dict[str, str] | None = None,
        classes: list[str] | None = None,
        text: str = "",
    ) -> None:
        self.tag = tag
        self.attrs: dict[str, str] = dict(attrs or {})
        self.classes: list[str] = list(classes or [])
        self.text = text
        self.html = ""
        self.children: list[Node] = []
        self.parent: Node | None = None
        self.style: dict[str, str] = {}

    def __repr__(self) -> str:
        if self.tag == TEXT:
            return f"Text({self.text[:20]!r})"
        ident = f"#{self.attrs['id']}" if "id" in self.attrs else ""
        cls = "".join(f".{c}" for c in self.classes)
        return f"Node(<{self.tag}{ident}{cls}> {len(self.children)} children)"

    # --- Constructors ---

    @classmethod
    def text_node(cls, text: str) -> "Node":
        return cls(TEXT, text=text)

    @classmethod
    def raw(cls, markup: str, source: str = "") -> "Node":
        node = cls(RAW, text=source)
        node.html = markup
        return node

    @property
    def is_element(self) -> bool:
        return self.tag not in (TEXT, RAW)

    # --- Classes and attributes ---

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def add_class(self, *names: str) -> None:
        for name in names:
            if name not in self.classes:
                self.classes.append(name)

    def remove_class(self, *names: str) -> None:
        self.classes = [c for c in self.classes if c not in names]

    def toggle_class(self, name: str, force: bool | None = None) -> bool:
        on = (not self.has_class(name)) if force is None else force
        if on:
            self.add_class(name)
        else:
            self.remove_class(name)
        return on

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.attrs.get(key, default)

    def set(self, key: str, value: object) -> None:
        self.attrs[key] = str(value)

    @property
    def id(self) -> str | None:
        return self.attrs.get("id")

    # --- Structure ---

    def append(self, *nodes: "Node") -> "Node":
        for node in nodes:
            node.detach()
            node.parent = self
            self.children.append(node)
        return self

    def prepend(self, *nodes: "Node") -> "Node":
        for node in reversed(nodes):
            node.detach()
            node.parent = self
            self.children.insert(0, node)
        return self

    def detach(self) -> "Node":
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None
        return self

    def remove(self) -> None:
        self.detach()

    def index(self) -> int:
        if self.parent is None:
            return -1
        return self.parent.children.index(self)

    def before(self, *nodes: "Node") -> None:
        if self.parent is None:
            raise ValueError("cannot insert next to a detached node")
        parent = self.parent
        for node in nodes:
            node.detach()
            node.parent = parent
            parent.children.insert(self.index(), node)

    def after(self, *nodes: "Node") -> None:
        if self.parent is None:
            raise ValueError("cannot insert next to a detached node")
        parent = self.parent
        anchor = self
        for node in nodes:
            node.detach()
            node.parent = parent
            parent.children.insert(anchor.index() + 1, node)
            anchor = node

    def replace_with(self, node: "Node") -> None:
        self.before(node)
        self.detach()

    @property
    def element_children(self) -> list["Node"]:
        return [c for c in self.children if c.is_element]

    @property
    def next_element(self) -> "Node | None":
        if self.parent is None:
            return None
        siblings = self.parent.children
        for node in siblings[self.index() + 1:]:
            if node.is_element:
                return node
        return None

    def ancestors(self) -> Iterator["Node"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def contains(self, other: "Node") -> bool:
        return other is self or any(a is self for a in other.ancestors())

    def closest(self, match: Callable[["Node"], bool]) -> "Node | None":
        if self.is_element and match(self):
            return self
        for node in self.ancestors():
            if match(node):
                return node
        return None

    def iter(self) -> Iterator["Node"]:
        """Depth-first walk over descendants (self excluded)."""
        for child in list(self.children):
            yield child
            yield from child.iter()

    def find_all(self, match: Callable[["Node"], bool]) -> list["Node"]:
        return [n for n in self.iter() if n.is_element and match(n)]

    def find(self, match: Callable[["Node"], bool]) -> "Node | None":
        for n in self.iter():
            if n.is_element and match(n):
                return n
        return None

    def find_by_id(self, node_id: str) -> "Node | None":
        return self.find(lambda n: n.attrs.get("id") == node_id)

    # --- Content ---

    @property
    def text_content(self) -> str:
        if not self.is_element:
            return self.text
        return "".join(c.text_content for c in self.children)

    def set_text(self, text: str) -> None:
        for child in list(self.children):
            child.detach()
        self.append(Node.text_node(text))

    def to_html(self) -> str:
        if self.tag == TEXT:
            return html.escape(self.text, quote=False)
        if self.tag == RAW:
            return self.html
        parts = [f"<{self.tag}"]
        if self.classes:
            parts.append(f' class="{html.escape(" ".join(self.classes))}"')
        for key, value in self.attrs.items():
            parts.append(f' {key}="{html.escape(value)}"')
        if self.style:
            css = "; ".join(f"{k}: {v}" for k, v in self.style.items())
            parts.append(f' style="{html.escape(css)}"')
        parts.append(">")
        if self.tag in VOID_TAGS:
            return "".join(parts)
        parts.extend(c.to_html() for c in self.children)
        parts.append(f"</{self.tag}>")
        return "".join(parts)


def el(tag: str, class_name: str | None = None, text: str | None = None, **attrs: object) -> Node:
    """Build an element; keyword attrs use ``_`` for ``-`` (``data_role`` -> ``data-role``)."""
    node = Node(tag, classes=class_name.split() if class_name else None)
    for key, value in attrs.items():
        if value is None:
            continue
        if key == "class_":
            node.add_class(*str(value).split())
            continue
        node.set(key.rstrip("_").replace("_", "-"), value)
    if text is not None:
        node.append(Node.text_node(text))
    return node


def is_tag(*tags: str) -> Callable[[Node], bool]:
    wanted = set(tags)
    return lambda n: n.tag in wanted


def has_class(name: str) -> Callable[[Node], bool]:
    return lambda n: name in n.classes
