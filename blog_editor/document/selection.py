"""
Cursor and selection positions.

A Point addresses a textblock by its ordinal in document order and an
offset counted in inline units (one per character, one per image). Block
commands never reorder textblocks, so points stay meaningful across them.
"""
from dataclasses import dataclass, replace
from typing import FrozenSet, Optional

from .nodes import TEXTBLOCKS


@dataclass(frozen=True, order=True)
class Point:
    block: int = 0
    offset: int = 0


@dataclass(frozen=True)
class Selection:
    """
    Anchor/head selection with optional stored marks.

    Stored marks are the marks the next inserted text will carry; they are
    only meaningful for a collapsed selection.
    """

    anchor: Point = Point()
    head: Optional[Point] = None
    stored_marks: Optional[FrozenSet] = None

    def __post_init__(self):
        if self.head is None:
            object.__setattr__(self, "head", self.anchor)

    @classmethod
    def caret(cls, block=0, offset=0):
        return cls(Point(block, offset))

    @classmethod
    def between(cls, start_block, start_offset, end_block, end_offset):
        return cls(Point(start_block, start_offset), Point(end_block, end_offset))

    @property
    def start(self):
        return min(self.anchor, self.head)

    @property
    def end(self):
        return max(self.anchor, self.head)

    @property
    def empty(self):
        return self.anchor == self.head

    def collapse(self, point=None):
        return Selection(point or self.head)

    def with_stored_marks(self, marks):
        return replace(self, stored_marks=frozenset(marks))


def textblock_paths(root):
    """Child-index paths of every textblock in a TreeNode tree, in order."""
    paths = []

    def visit(node, path):
        if node.kind in TEXTBLOCKS:
            paths.append(path)
            return
        for index, child in enumerate(node.children):
            visit(child, path + (index,))

    visit(root, ())
    return paths


def node_at(root, path):
    node = root
    for index in path:
        node = node.children[index]
    return node


def clamp(document, selection):
    """Pull both ends of selection inside the document."""
    last_block = len(document.textblocks) - 1

    def fit(point):
        block = min(max(point.block, 0), last_block)
        length = document.inline_length(document.textblocks[block])
        return Point(block, min(max(point.offset, 0), length))

    anchor, head = fit(selection.anchor), fit(selection.head)
    if anchor == selection.anchor and head == selection.head:
        return selection
    return Selection(anchor, head, selection.stored_marks)


def end_of_document(document):
    last_block = len(document.textblocks) - 1
    return Selection.caret(last_block, document.inline_length(document.textblocks[last_block]))
