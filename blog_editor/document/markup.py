"""
HTML markup codec for documents.

serialize() writes the canonical markup stored with every post;
deserialize() reads it back. Parsing is lenient about vocabulary (unknown
tags degrade instead of failing) and strict about structure: markup whose
tags do not nest properly raises ParseError.
"""
import logging
import re
from html.parser import HTMLParser

from django.utils.html import escape

from ..conf import editor_settings
from ..exceptions import ParseError
from .nodes import (
    BLOCKQUOTE,
    BOLD,
    BULLET_LIST,
    DOC,
    EMBED,
    HEADING,
    IMAGE,
    ITALIC,
    LINK,
    LIST_ITEM,
    ORDERED_LIST,
    PARAGRAPH,
    TEXT,
    UNDERLINE,
    Document,
    Mark,
    TreeNode,
    plain_text,
    sorted_marks,
)

logger = logging.getLogger(__name__)

VOID_ELEMENTS = frozenset([
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
])

# Tags that never start a block of their own
PHRASING_TAGS = frozenset([
    "a", "abbr", "b", "br", "cite", "code", "del", "em", "font", "i", "img",
    "ins", "kbd", "label", "mark", "q", "s", "small", "span", "strike",
    "strong", "sub", "sup", "time", "u",
])

MARK_TAGS = {
    "strong": BOLD,
    "b": BOLD,
    "em": ITALIC,
    "i": ITALIC,
    "u": UNDERLINE,
}

HEADING_TAGS = {"h1": 1, "h2": 2}
LIST_TAGS = {"ul": BULLET_LIST, "ol": ORDERED_LIST}
EMBED_TYPE = "embed"

TEXT_ALIGN_RE = re.compile(r"text-align\s*:\s*(left|center|right)", re.IGNORECASE)


class _Element:
    """Generic element produced by the first parsing pass."""

    __slots__ = ("tag", "attrs", "children", "inner_start", "inner_end")

    def __init__(self, tag, attrs=None):
        self.tag = tag
        self.attrs = attrs or {}
        self.children = []
        self.inner_start = None
        self.inner_end = None

    @property
    def has_block_descendant(self):
        for child in self.children:
            if isinstance(child, _Element):
                if child.tag not in PHRASING_TAGS or child.has_block_descendant:
                    return True
        return False


class _ElementTreeBuilder(HTMLParser):
    """Builds a generic element tree and rejects badly nested markup."""

    def __init__(self, markup):
        super().__init__(convert_charrefs=True)
        self.markup = markup
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", markup)]
        self.root = _Element("#root")
        self._stack = [self.root]

    def _offset(self):
        line, column = self.getpos()
        return self._line_starts[line - 1] + column

    def handle_starttag(self, tag, attrs):
        element = _Element(tag, dict(attrs))
        self._stack[-1].children.append(element)
        if tag in VOID_ELEMENTS:
            return
        element.inner_start = self._offset() + len(self.get_starttag_text())
        self._stack.append(element)

    def handle_startendtag(self, tag, attrs):
        self._stack[-1].children.append(_Element(tag, dict(attrs)))

    def handle_endtag(self, tag):
        if tag in VOID_ELEMENTS:
            return
        top = self._stack[-1]
        if top is self.root or top.tag != tag:
            raise ParseError(f"Unexpected closing tag </{tag}>", self.getpos())
        top.inner_end = self._offset()
        self._stack.pop()

    def handle_data(self, data):
        children = self._stack[-1].children
        if children and isinstance(children[-1], str):
            children[-1] += data
        else:
            children.append(data)

    def build(self):
        self.feed(self.markup)
        self.close()
        if len(self._stack) > 1:
            raise ParseError(f"Unclosed tag <{self._stack[-1].tag}>")
        return self.root


def _text_align(element):
    match = TEXT_ALIGN_RE.search(element.attrs.get("style") or "")
    return match.group(1).lower() if match else None


class _Converter:
    """Second pass: maps generic elements onto document nodes."""

    def __init__(self, markup):
        self.markup = markup

    def blocks(self, nodes, allow_embed=True):
        result = []
        pending = []

        def flush():
            while pending and pending[-1].kind == TEXT and not pending[-1].text.strip():
                pending.pop()
            if pending:
                result.append(TreeNode(PARAGRAPH, children=pending[:]))
                del pending[:]

        for node in nodes:
            if isinstance(node, str):
                if not pending:
                    node = node.lstrip()
                if node:
                    pending.append(TreeNode(TEXT, text=node))
                continue
            if node.tag in PHRASING_TAGS:
                pending.extend(self.inline([node], frozenset()))
                continue
            flush()
            result.extend(self.block(node, allow_embed))
        flush()
        return result

    def block(self, element, allow_embed):
        tag = element.tag
        if tag == "p":
            return [TreeNode(
                PARAGRAPH,
                {"textAlign": _text_align(element)},
                self.inline(element.children, frozenset()),
            )]
        if tag in HEADING_TAGS:
            return [TreeNode(
                HEADING,
                {"level": HEADING_TAGS[tag], "textAlign": _text_align(element)},
                self.inline(element.children, frozenset()),
            )]
        if tag in LIST_TAGS:
            return self.list(element, LIST_TAGS[tag])
        if tag == "blockquote":
            return [TreeNode(BLOCKQUOTE, children=self.blocks(element.children))]
        if tag == "div" and element.attrs.get("data-type") == EMBED_TYPE and allow_embed:
            html = self.markup[element.inner_start:element.inner_end]
            return [TreeNode(EMBED, {"html": html})]

        # Unknown block: keep its blocks if it wraps any, else its inline content
        if element.has_block_descendant:
            return self.blocks(element.children, allow_embed)
        content = self.inline(element.children, frozenset())
        if not any(node.kind != TEXT or node.text.strip() for node in content):
            return []
        return [TreeNode(PARAGRAPH, children=content)]

    def list(self, element, kind):
        items = []
        for child in element.children:
            if isinstance(child, str):
                if child.strip():
                    items.append(TreeNode(LIST_ITEM, children=self.blocks([child], False)))
                continue
            nodes = child.children if child.tag == "li" else [child]
            items.append(TreeNode(LIST_ITEM, children=self.blocks(nodes, False)))
        return [TreeNode(kind, children=items)] if items else []

    def inline(self, nodes, marks):
        result = []
        for node in nodes:
            if isinstance(node, str):
                result.append(TreeNode(TEXT, text=node, marks=marks))
                continue
            tag = node.tag
            if tag == "br":
                result.append(TreeNode(TEXT, text="\n", marks=marks))
            elif tag == "img":
                if node.attrs.get("src"):
                    result.append(TreeNode(IMAGE, {
                        "src": node.attrs["src"],
                        "alt": node.attrs.get("alt"),
                        "title": node.attrs.get("title"),
                    }))
            elif tag in MARK_TAGS:
                result.extend(self.inline(node.children, marks | {Mark(MARK_TAGS[tag])}))
            elif tag == "a" and node.attrs.get("href"):
                link_mark = Mark(LINK, node.attrs["href"])
                kept = frozenset(m for m in marks if m.type != LINK)
                result.extend(self.inline(node.children, kept | {link_mark}))
            else:
                result.extend(self.inline(node.children, marks))
        return result


def check_fragment(html):
    """Raise ParseError unless html nests properly."""
    _ElementTreeBuilder(html).build()


def deserialize(markup):
    """
    Parse stored markup into a Document.

    Blank markup yields the empty document. Raises ParseError only when
    the tags do not nest properly.
    """
    if markup is None or not markup.strip():
        return Document.empty()
    root = _ElementTreeBuilder(markup).build()
    blocks = _Converter(markup).blocks(root.children)
    return Document.from_tree(TreeNode(DOC, children=blocks))


def deserialize_or_empty(markup):
    """deserialize(), falling back to the empty document on ParseError."""
    try:
        return deserialize(markup)
    except ParseError:
        logger.warning("Discarding malformed content markup", exc_info=True)
        return Document.empty()


def _attributes(pairs):
    return "".join(f' {name}="{escape(value)}"' for name, value in pairs if value is not None)


def _write_text(node, out):
    content = "<br>".join(escape(part) for part in node.text.split("\n"))
    ordered = sorted_marks(node.marks)
    for mark in ordered:
        if mark.type == LINK:
            out.append(f'<a href="{escape(mark.href)}">')
        else:
            out.append(_MARK_OPEN[mark.type])
    out.append(content)
    for mark in reversed(ordered):
        out.append("</a>" if mark.type == LINK else _MARK_CLOSE[mark.type])


_MARK_OPEN = {BOLD: "<strong>", ITALIC: "<em>", UNDERLINE: "<u>"}
_MARK_CLOSE = {BOLD: "</strong>", ITALIC: "</em>", UNDERLINE: "</u>"}

_BLOCK_TAGS = {
    BULLET_LIST: "ul",
    ORDERED_LIST: "ol",
    LIST_ITEM: "li",
    BLOCKQUOTE: "blockquote",
}


def _write(document, index, out):
    node = document.nodes[index]
    kind = node.kind

    if kind == TEXT:
        _write_text(node, out)
    elif kind == IMAGE:
        out.append("<img" + _attributes([
            ("src", node.attr("src")),
            ("alt", node.attr("alt")),
            ("title", node.attr("title")),
        ]) + ">")
    elif kind == EMBED:
        out.append(f'<div data-type="{EMBED_TYPE}">{node.attr("html")}</div>')
    elif kind in (PARAGRAPH, HEADING):
        tag = "p" if kind == PARAGRAPH else f"h{node.attr('level')}"
        align = node.attr("textAlign")
        style = f' style="text-align: {align}"' if align else ""
        out.append(f"<{tag}{style}>")
        for child in node.children:
            _write(document, child, out)
        out.append(f"</{tag}>")
    elif kind == DOC:
        for child in node.children:
            _write(document, child, out)
    else:
        tag = _BLOCK_TAGS[kind]
        out.append(f"<{tag}>")
        for child in node.children:
            _write(document, child, out)
        out.append(f"</{tag}>")


def serialize(document):
    """Write document as canonical markup. Identical trees give identical text."""
    out = []
    _write(document, 0, out)
    return "".join(out)


def excerpt(content, length=None):
    """
    Plain-text excerpt of a document or markup string.

    Used as the default meta description for posts.
    """
    length = length or editor_settings.EXCERPT_LENGTH
    document = content if isinstance(content, Document) else deserialize_or_empty(content)
    value = plain_text(document)
    if len(value) > length:
        return value[:length] + "..."
    return value
