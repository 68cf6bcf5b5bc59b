"""
Document model for django-blog-editor.

All public names are importable from blog_editor.document:

    from blog_editor.document import Document, Selection, deserialize, serialize
"""
from .nodes import (
    ALIGNMENTS,
    BLOCKQUOTE,
    BOLD,
    BULLET_LIST,
    DOC,
    EMBED,
    HEADING,
    HEADING_LEVELS,
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
    Node,
    TreeNode,
    blockquote,
    bullet_list,
    doc,
    embed,
    heading,
    image,
    is_empty,
    link,
    list_item,
    ordered_list,
    paragraph,
    plain_text,
    text,
)
from .selection import Point, Selection, clamp, end_of_document
from .markup import check_fragment, deserialize, deserialize_or_empty, excerpt, serialize

__all__ = [
    # Kinds and marks
    "ALIGNMENTS",
    "BLOCKQUOTE",
    "BOLD",
    "BULLET_LIST",
    "DOC",
    "EMBED",
    "HEADING",
    "HEADING_LEVELS",
    "IMAGE",
    "ITALIC",
    "LINK",
    "LIST_ITEM",
    "ORDERED_LIST",
    "PARAGRAPH",
    "TEXT",
    "UNDERLINE",
    # Tree
    "Document",
    "Mark",
    "Node",
    "TreeNode",
    "is_empty",
    "plain_text",
    # Builders
    "blockquote",
    "bullet_list",
    "doc",
    "embed",
    "heading",
    "image",
    "link",
    "list_item",
    "ordered_list",
    "paragraph",
    "text",
    # Selection
    "Point",
    "Selection",
    "clamp",
    "end_of_document",
    # Markup
    "check_fragment",
    "deserialize",
    "deserialize_or_empty",
    "excerpt",
    "serialize",
]
