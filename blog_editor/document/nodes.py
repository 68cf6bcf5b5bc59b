"""
Structured document tree for the blog editor.

A Document is an immutable arena: a tuple of Node records stored in
pre-order, where each node refers to its children by index into the same
tuple. Documents are always rebuilt canonically from a mutable TreeNode
tree, so two documents with the same structure compare equal by value.
"""
from dataclasses import dataclass
from functools import cached_property
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

# Node kinds
DOC = "doc"
PARAGRAPH = "paragraph"
HEADING = "heading"
BULLET_LIST = "bulletList"
ORDERED_LIST = "orderedList"
LIST_ITEM = "listItem"
BLOCKQUOTE = "blockquote"
IMAGE = "image"
EMBED = "embed"
TEXT = "text"

TEXTBLOCKS = frozenset([PARAGRAPH, HEADING])
LISTS = frozenset([BULLET_LIST, ORDERED_LIST])
INLINE = frozenset([TEXT, IMAGE])
BLOCKS = frozenset([PARAGRAPH, HEADING, BULLET_LIST, ORDERED_LIST, BLOCKQUOTE, EMBED])
CONTAINERS = frozenset([DOC, LIST_ITEM, BLOCKQUOTE])

# Legal attribute keys and child kinds per node kind
SCHEMA = {
    DOC: (frozenset(), BLOCKS),
    PARAGRAPH: (frozenset(["textAlign"]), INLINE),
    HEADING: (frozenset(["level", "textAlign"]), INLINE),
    BULLET_LIST: (frozenset(), frozenset([LIST_ITEM])),
    ORDERED_LIST: (frozenset(), frozenset([LIST_ITEM])),
    LIST_ITEM: (frozenset(), BLOCKS - {EMBED}),
    BLOCKQUOTE: (frozenset(), BLOCKS),
    IMAGE: (frozenset(["src", "alt", "title"]), frozenset()),
    EMBED: (frozenset(["html"]), frozenset()),
    TEXT: (frozenset(), frozenset()),
}

HEADING_LEVELS = (1, 2)
ALIGNMENTS = ("left", "center", "right")
DEFAULT_ALIGN = "left"

# Mark types, outermost first when serialized
LINK = "link"
BOLD = "bold"
ITALIC = "italic"
UNDERLINE = "underline"
MARK_TYPES = (LINK, BOLD, ITALIC, UNDERLINE)


@dataclass(frozen=True)
class Mark:
    """A non-structural tag on a text run. Only links carry an href."""

    type: str
    href: Optional[str] = None

    def __post_init__(self):
        if self.type not in MARK_TYPES:
            raise ValueError(f"Unknown mark type: {self.type}")

    @property
    def sort_key(self):
        return (MARK_TYPES.index(self.type), self.href or "")


def sorted_marks(marks):
    """Return marks in serialization order (link outermost)."""
    return sorted(marks, key=lambda mark: mark.sort_key)


def has_mark(marks, mark_type):
    return any(mark.type == mark_type for mark in marks)


def without_mark(marks, mark_type):
    return frozenset(mark for mark in marks if mark.type != mark_type)


@dataclass(frozen=True)
class Node:
    """One arena entry. Children are indexes into Document.nodes."""

    kind: str
    attrs: Tuple[Tuple[str, object], ...] = ()
    children: Tuple[int, ...] = ()
    text: str = ""
    marks: FrozenSet[Mark] = frozenset()

    def attr(self, name, default=None):
        for key, value in self.attrs:
            if key == name:
                return value
        return default

    @property
    def is_textblock(self):
        return self.kind in TEXTBLOCKS


class TreeNode:
    """
    Mutable working copy of a node, used while building or editing.

    Commands thaw a Document into TreeNodes, edit them freely, then freeze
    the result back with Document.from_tree().
    """

    __slots__ = ("kind", "attrs", "children", "text", "marks")

    def __init__(self, kind, attrs=None, children=None, text="", marks=frozenset()):
        if kind not in SCHEMA:
            raise ValueError(f"Unknown node kind: {kind}")
        self.kind = kind
        self.attrs = dict(attrs or {})
        self.children = list(children or [])
        self.text = text
        self.marks = frozenset(marks)

    def __repr__(self):
        if self.kind == TEXT:
            return f"TreeNode(text={self.text!r}, marks={sorted(m.type for m in self.marks)})"
        return f"TreeNode({self.kind}, {self.attrs}, {self.children})"

    @property
    def inline_size(self):
        """Cursor units this node occupies inside a textblock."""
        if self.kind == TEXT:
            return len(self.text)
        if self.kind == IMAGE:
            return 1
        return 0

    def copy(self):
        return TreeNode(
            self.kind,
            dict(self.attrs),
            [child.copy() for child in self.children],
            self.text,
            self.marks,
        )


def _normalize_attrs(kind, attrs):
    allowed = SCHEMA[kind][0]
    clean = {}
    for key, value in attrs.items():
        if key not in allowed or value is None:
            continue
        if key == "textAlign" and value == DEFAULT_ALIGN:
            continue
        clean[key] = value
    if kind == HEADING:
        level = clean.get("level")
        clean["level"] = level if level in HEADING_LEVELS else HEADING_LEVELS[0]
    return clean


def _normalize_inline(children):
    merged = []
    for child in children:
        if child.kind not in INLINE:
            raise ValueError(f"{child.kind} is not allowed inside a textblock")
        if child.kind == TEXT:
            if not child.text:
                continue
            previous = merged[-1] if merged else None
            if previous is not None and previous.kind == TEXT and previous.marks == child.marks:
                merged[-1] = TreeNode(TEXT, text=previous.text + child.text, marks=child.marks)
                continue
        merged.append(child)
    return merged


def _normalize(node):
    """
    Return a normalized copy of node, or None when it should disappear.

    Stray inline runs in block containers are wrapped in a paragraph and
    stray blocks in a list are wrapped in a list item. Anything else that
    breaks the schema raises ValueError.
    """
    kind = node.kind
    attrs = _normalize_attrs(kind, node.attrs)

    if kind == TEXT:
        return TreeNode(TEXT, text=node.text, marks=node.marks)
    if kind in (IMAGE, EMBED):
        return TreeNode(kind, attrs)
    if kind in TEXTBLOCKS:
        return TreeNode(kind, attrs, _normalize_inline([c.copy() for c in node.children]))

    allowed = SCHEMA[kind][1]
    children = []
    pending = []

    def flush_inline():
        if pending:
            children.append(_normalize(TreeNode(PARAGRAPH, children=pending[:])))
            del pending[:]

    for child in node.children:
        if kind in CONTAINERS and child.kind in INLINE:
            pending.append(child)
            continue
        flush_inline()
        if kind in LISTS and child.kind != LIST_ITEM:
            child = TreeNode(LIST_ITEM, children=[child])
        if child.kind not in allowed:
            raise ValueError(f"{child.kind} is not allowed inside {kind}")
        normalized = _normalize(child)
        if normalized is not None:
            children.append(normalized)
    flush_inline()

    if kind in LISTS:
        return TreeNode(kind, attrs, children) if children else None
    if not children:
        children.append(TreeNode(PARAGRAPH))
    if kind == DOC and not any(_contains_textblock(child) for child in children):
        children.append(TreeNode(PARAGRAPH))
    return TreeNode(kind, attrs, children)


def _contains_textblock(node):
    if node.kind in TEXTBLOCKS:
        return True
    return any(_contains_textblock(child) for child in node.children)


def _freeze(tree, nodes):
    index = len(nodes)
    nodes.append(None)
    child_ids = tuple(_freeze(child, nodes) for child in tree.children)
    nodes[index] = Node(
        kind=tree.kind,
        attrs=tuple(sorted(tree.attrs.items())),
        children=child_ids,
        text=tree.text,
        marks=tree.marks,
    )
    return index


@dataclass(frozen=True)
class Document:
    """
    Immutable document value.

    nodes[0] is always the root. Use Document.from_tree() or the builder
    helpers below to create one; never construct the arena by hand.
    """

    nodes: Tuple[Node, ...]

    @classmethod
    def empty(cls):
        return cls.from_tree(TreeNode(DOC, children=[TreeNode(PARAGRAPH)]))

    @classmethod
    def from_tree(cls, root):
        if root.kind != DOC:
            raise ValueError("Document root must be a doc node")
        nodes = []
        _freeze(_normalize(root), nodes)
        return cls(tuple(nodes))

    def to_tree(self, index=0):
        node = self.nodes[index]
        return TreeNode(
            node.kind,
            dict(node.attrs),
            [self.to_tree(child) for child in node.children],
            node.text,
            node.marks,
        )

    @property
    def root(self):
        return self.nodes[0]

    def children(self, index=0):
        return [self.nodes[child] for child in self.nodes[index].children]

    @cached_property
    def textblocks(self):
        """Arena indexes of textblocks in document order."""
        return tuple(i for i, node in enumerate(self.nodes) if node.kind in TEXTBLOCKS)

    def inline_length(self, index):
        total = 0
        for child in self.children(index):
            total += len(child.text) if child.kind == TEXT else 1
        return total

    def text_of(self, index):
        return "".join(child.text for child in self.children(index) if child.kind == TEXT)

    def images(self):
        """Image nodes in document order."""
        return [node for node in self.nodes if node.kind == IMAGE]

    def __repr__(self):
        return f"Document({len(self.nodes)} nodes)"


def is_empty(document):
    """
    True iff the document is the canonical single empty paragraph.

    Alignment does not count as content; whitespace-only text does.
    """
    blocks = document.children()
    return len(blocks) == 1 and blocks[0].kind == PARAGRAPH and not blocks[0].children


def plain_text(document, separator=" "):
    """Visible text of every textblock, in order."""
    parts = (document.text_of(index) for index in document.textblocks)
    return separator.join(part for part in parts if part)


# Builders

Content = Union[str, TreeNode]


def _as_mark(value):
    return value if isinstance(value, Mark) else Mark(value)


def text(value, *marks):
    """Text run, e.g. text("hi", BOLD, link("https://example.com"))."""
    return TreeNode(TEXT, text=value, marks=frozenset(_as_mark(m) for m in marks))


def link(href):
    return Mark(LINK, href)


def _inline(content: Iterable[Content]) -> List[TreeNode]:
    return [text(item) if isinstance(item, str) else item for item in content]


def paragraph(*content, align=None):
    return TreeNode(PARAGRAPH, {"textAlign": align}, _inline(content))


def heading(level, *content, align=None):
    return TreeNode(HEADING, {"level": level, "textAlign": align}, _inline(content))


def image(src, alt=None, title=None):
    return TreeNode(IMAGE, {"src": src, "alt": alt, "title": title})


def embed(html):
    return TreeNode(EMBED, {"html": html})


def _blocks(content: Iterable[Content]) -> List[TreeNode]:
    return [paragraph(item) if isinstance(item, str) else item for item in content]


def list_item(*blocks):
    return TreeNode(LIST_ITEM, children=_blocks(blocks))


def _items(content):
    items = []
    for item in content:
        if isinstance(item, TreeNode) and item.kind == LIST_ITEM:
            items.append(item)
        else:
            items.append(list_item(item))
    return items


def bullet_list(*items):
    return TreeNode(BULLET_LIST, children=_items(items))


def ordered_list(*items):
    return TreeNode(ORDERED_LIST, children=_items(items))


def blockquote(*blocks):
    return TreeNode(BLOCKQUOTE, children=_blocks(blocks))


def doc(*blocks) -> Document:
    return Document.from_tree(TreeNode(DOC, children=_blocks(blocks)))
