"""
Editing commands and toolbar queries.

Every command is a pure function

    command(document, selection, **params) -> CommandResult

that returns a new Document and Selection and never raises on user input:
a command that does not apply leaves the document unchanged and may
carry a notice for the user. Toolbar state is derived from the document
and selection alone through active_formats().
"""
from dataclasses import dataclass
from typing import Optional

from django.utils.html import escape

from .document import (
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
    Point,
    Selection,
    TreeNode,
    check_fragment,
    clamp,
)
from .document.nodes import DEFAULT_ALIGN, LISTS, TEXTBLOCKS, has_mark, without_mark
from .document.selection import node_at, textblock_paths
from .exceptions import ParseError


@dataclass(frozen=True)
class CommandResult:
    document: Document
    selection: Selection
    notice: Optional[str] = None


# Inline helpers


def _split_at(block, offset):
    """Split the run straddling offset and return the child index starting there."""
    position = 0
    for index, child in enumerate(block.children):
        if offset <= position:
            return index
        size = child.inline_size
        if offset < position + size:
            cut = offset - position
            tail = TreeNode(TEXT, text=child.text[cut:], marks=child.marks)
            child.text = child.text[:cut]
            block.children.insert(index + 1, tail)
            return index + 1
        position += size
    return len(block.children)


def _slice_runs(block, start, end):
    first = _split_at(block, start)
    last = _split_at(block, end)
    return block.children[first:last]


def _segments(root, selection):
    """(textblock, from, to) for every textblock the selection touches."""
    paths = textblock_paths(root)
    start, end = selection.start, selection.end
    segments = []
    for ordinal in range(start.block, end.block + 1):
        block = node_at(root, paths[ordinal])
        length = sum(child.inline_size for child in block.children)
        low = start.offset if ordinal == start.block else 0
        high = end.offset if ordinal == end.block else length
        segments.append((block, low, high))
    return segments


def _selected_runs(root, selection):
    runs = []
    for block, low, high in _segments(root, selection):
        runs.extend(_slice_runs(block, low, high))
    return runs


def _marks_at(document, selection):
    """Marks the cursor would type with."""
    if selection.stored_marks is not None:
        return selection.stored_marks
    root = document.to_tree()
    point = selection.head
    block = node_at(root, textblock_paths(root)[point.block])
    position = 0
    before = after = None
    for child in block.children:
        size = child.inline_size
        if position < point.offset <= position + size:
            before = child
        if after is None and position >= point.offset:
            after = child
        position += size
    run = before or after
    if run is None or run.kind != TEXT:
        return frozenset()
    return run.marks


def _selected_paths(root, selection):
    paths = textblock_paths(root)
    return paths[selection.start.block:selection.end.block + 1]


def _common_ancestor(root, paths, kinds):
    """
    Path of the deepest node whose kind is in kinds and which contains
    every selected textblock, or None.
    """
    first, last = paths[0], paths[-1]
    depth = 0
    while depth < min(len(first), len(last)) and first[depth] == last[depth]:
        depth += 1
    for size in range(depth, -1, -1):
        candidate = first[:size]
        if node_at(root, candidate).kind in kinds:
            return candidate
    return None


def _block_range(root, paths):
    """
    Container path and child range covering the selected textblocks.

    The container is never a list: wrapping happens around whole lists.
    """
    first, last = paths[0], paths[-1]
    limit = min(len(first), len(last)) - 1
    depth = 0
    while depth < limit and first[depth] == last[depth]:
        depth += 1
    prefix = first[:depth]
    while node_at(root, prefix).kind in LISTS:
        prefix = prefix[:-1]
    depth = len(prefix)
    return prefix, first[depth], last[depth]


def _lift(root, wrapper_path, low, high, unwrap_items=False):
    """Move children low..high of a wrapper node out to the wrapper's parent."""
    parent = node_at(root, wrapper_path[:-1])
    index = wrapper_path[-1]
    wrapper = parent.children[index]
    before = wrapper.children[:low]
    lifted = wrapper.children[low:high + 1]
    after = wrapper.children[high + 1:]
    if unwrap_items:
        lifted = [block for item in lifted for block in item.children]
    if parent.kind == LIST_ITEM and any(block.kind == EMBED for block in lifted):
        return False
    replacement = []
    if before:
        replacement.append(TreeNode(wrapper.kind, wrapper.attrs, before))
    replacement.extend(lifted)
    if after:
        replacement.append(TreeNode(wrapper.kind, wrapper.attrs, after))
    parent.children[index:index + 1] = replacement
    return True


def _lift_selection(root, wrapper_path, paths, unwrap_items=False):
    """Lift the wrapper's children that hold the selected textblocks, in one step."""
    depth = len(wrapper_path)
    return _lift(root, wrapper_path, paths[0][depth], paths[-1][depth], unwrap_items)


def _result(root, selection):
    return CommandResult(Document.from_tree(root), selection)


def _unchanged(document, selection, notice=None):
    return CommandResult(document, selection, notice)


# Marks


def _toggle_mark(document, selection, mark_type):
    selection = clamp(document, selection)
    if selection.empty:
        marks = _marks_at(document, selection)
        if has_mark(marks, mark_type):
            marks = without_mark(marks, mark_type)
        else:
            marks = marks | {Mark(mark_type)}
        return _unchanged(document, selection.with_stored_marks(marks))

    remove = is_mark_active(document, selection, mark_type)
    root = document.to_tree()
    for run in _selected_runs(root, selection):
        if run.kind != TEXT:
            continue
        run.marks = without_mark(run.marks, mark_type)
        if not remove:
            run.marks = run.marks | {Mark(mark_type)}
    return _result(root, selection)


def toggle_bold(document, selection):
    return _toggle_mark(document, selection, BOLD)


def toggle_italic(document, selection):
    return _toggle_mark(document, selection, ITALIC)


def toggle_underline(document, selection):
    return _toggle_mark(document, selection, UNDERLINE)


def set_link(document, selection, href):
    """Link the selected text. A blank href removes the link."""
    selection = clamp(document, selection)
    if selection.empty:
        return _unchanged(document, selection, "Select some text to add a link")
    href = (href or "").strip()
    root = document.to_tree()
    for run in _selected_runs(root, selection):
        if run.kind != TEXT:
            continue
        run.marks = without_mark(run.marks, LINK)
        if href:
            run.marks = run.marks | {Mark(LINK, href)}
    return _result(root, selection)


def unset_link(document, selection):
    return set_link(document, selection, "")


# Textblocks


def _set_textblocks(document, selection, kind, level=None):
    selection = clamp(document, selection)
    root = document.to_tree()
    for path in _selected_paths(root, selection):
        block = node_at(root, path)
        block.kind = kind
        block.attrs.pop("level", None)
        if kind == HEADING:
            block.attrs["level"] = level
    return _result(root, selection)


def set_heading(document, selection, level):
    if level not in HEADING_LEVELS:
        return _unchanged(document, selection, f"Unsupported heading level: {level}")
    return _set_textblocks(document, selection, HEADING, level)


def set_paragraph(document, selection):
    return _set_textblocks(document, selection, PARAGRAPH)


def toggle_heading(document, selection, level):
    if is_block_active(document, selection, HEADING, {"level": level}):
        return set_paragraph(document, selection)
    return set_heading(document, selection, level)


def set_text_align(document, selection, align):
    if align not in ALIGNMENTS:
        return _unchanged(document, selection, f"Unsupported alignment: {align}")
    selection = clamp(document, selection)
    root = document.to_tree()
    for path in _selected_paths(root, selection):
        node_at(root, path).attrs["textAlign"] = align
    return _result(root, selection)


# Wrapping


def _wrap_in_list(container, low, high, kind):
    segment = container.children[low:high + 1]
    replacement = []
    items = []
    for block in segment:
        if block.kind == EMBED:
            if items:
                replacement.append(TreeNode(kind, children=items))
                items = []
            replacement.append(block)
        else:
            items.append(TreeNode(LIST_ITEM, children=[block]))
    if items:
        replacement.append(TreeNode(kind, children=items))
    container.children[low:high + 1] = replacement


def _toggle_list(document, selection, kind):
    selection = clamp(document, selection)
    root = document.to_tree()
    paths = _selected_paths(root, selection)
    list_path = _common_ancestor(root, paths, LISTS)

    if list_path is not None:
        wrapper = node_at(root, list_path)
        if wrapper.kind != kind:
            wrapper.kind = kind
        elif not _lift_selection(root, list_path, paths, unwrap_items=True):
            return _unchanged(document, selection)
        return _result(root, selection)

    prefix, low, high = _block_range(root, paths)
    _wrap_in_list(node_at(root, prefix), low, high, kind)
    return _result(root, selection)


def toggle_bullet_list(document, selection):
    return _toggle_list(document, selection, BULLET_LIST)


def toggle_ordered_list(document, selection):
    return _toggle_list(document, selection, ORDERED_LIST)


def toggle_blockquote(document, selection):
    selection = clamp(document, selection)
    root = document.to_tree()
    paths = _selected_paths(root, selection)
    quote_path = _common_ancestor(root, paths, {BLOCKQUOTE})

    if quote_path is not None:
        if not _lift_selection(root, quote_path, paths):
            return _unchanged(document, selection)
        return _result(root, selection)

    prefix, low, high = _block_range(root, paths)
    container = node_at(root, prefix)
    container.children[low:high + 1] = [
        TreeNode(BLOCKQUOTE, children=container.children[low:high + 1])
    ]
    return _result(root, selection)


# Insertion


def _replace_range(root, selection):
    """Delete a same-block range selection; return the insertion point."""
    start, end = selection.start, selection.end
    if selection.empty or start.block != end.block:
        return end
    block = node_at(root, textblock_paths(root)[start.block])
    first = _split_at(block, start.offset)
    last = _split_at(block, end.offset)
    del block.children[first:last]
    return start


def _insert_inline(document, selection, node):
    selection = clamp(document, selection)
    root = document.to_tree()
    point = _replace_range(root, selection)
    block = node_at(root, textblock_paths(root)[point.block])
    block.children.insert(_split_at(block, point.offset), node)
    caret = Point(point.block, point.offset + node.inline_size)
    return CommandResult(Document.from_tree(root), Selection(caret))


def insert_text(document, selection, text):
    """Type text at the cursor with the stored or surrounding marks."""
    if not text:
        return _unchanged(document, selection)
    selection = clamp(document, selection)
    marks = _marks_at(document, selection)
    return _insert_inline(document, selection, TreeNode(TEXT, text=text, marks=marks))


def insert_image(document, selection, src, alt=None, title=None):
    src = (src or "").strip()
    if not src:
        return _unchanged(document, selection, "Enter an image URL")
    node = TreeNode(IMAGE, {"src": src, "alt": alt, "title": title})
    return _insert_inline(document, selection, node)


def insert_raw_embed(document, selection, html):
    """
    Insert an embed block after the cursor's textblock.

    The embed goes into the nearest container that accepts it, replaces
    the textblock if that is an empty paragraph, and is always followed
    by a textblock that receives the cursor.
    """
    html = (html or "").strip()
    if not html:
        return _unchanged(document, selection, "Nothing to embed")
    try:
        check_fragment(html)
    except ParseError as exc:
        return _unchanged(document, selection, f"Embed code is not valid HTML: {exc.message}")

    selection = clamp(document, selection)
    root = document.to_tree()
    path = textblock_paths(root)[selection.end.block]
    container_path, index = path[:-1], path[-1]
    while node_at(root, container_path).kind not in (DOC, BLOCKQUOTE):
        container_path, index = container_path[:-1], container_path[-1]
    container = node_at(root, container_path)

    node = TreeNode(EMBED, {"html": html})
    current = container.children[index]
    if current.kind == PARAGRAPH and not current.children:
        container.children[index] = node
        position = index
    else:
        position = index + 1
        container.children.insert(position, node)

    following = container.children[position + 1] if position + 1 < len(container.children) else None
    if following is None or following.kind not in TEXTBLOCKS:
        following = TreeNode(PARAGRAPH)
        container.children.insert(position + 1, following)

    ordinal = next(
        number for number, block_path in enumerate(textblock_paths(root))
        if node_at(root, block_path) is following
    )
    return CommandResult(Document.from_tree(root), Selection.caret(ordinal, 0))


def video_iframe(url):
    """Embed markup for a hosted player URL (YouTube, Vimeo, ...)."""
    return (
        f'<div class="video-container"><iframe src="{escape(url)}" '
        f'frameborder="0" allowfullscreen=""></iframe></div>'
    )


def insert_video(document, selection, url):
    url = (url or "").strip()
    if not url:
        return _unchanged(document, selection, "Enter a video embed URL")
    return insert_raw_embed(document, selection, video_iframe(url))


def insert_asset_node(document, selection, asset):
    """Insert an uploaded asset: images inline, videos as an embed."""
    if asset.mime_type.startswith("video/"):
        html = f'<video src="{escape(asset.url)}" controls=""></video>'
        return insert_raw_embed(document, selection, html)
    return insert_image(document, selection, asset.url)


# Queries


def is_mark_active(document, selection, mark):
    """True when every selected character carries mark."""
    mark_type = mark.type if isinstance(mark, Mark) else mark
    selection = clamp(document, selection)
    if selection.empty:
        return has_mark(_marks_at(document, selection), mark_type)
    runs = [
        run for run in _selected_runs(document.to_tree(), selection)
        if run.kind == TEXT and run.text
    ]
    return bool(runs) and all(has_mark(run.marks, mark_type) for run in runs)


def _matches(node, attrs):
    for key, value in (attrs or {}).items():
        default = DEFAULT_ALIGN if key == "textAlign" else None
        if node.attrs.get(key, default) != value:
            return False
    return True


def is_block_active(document, selection, kind=None, attrs=None):
    """
    True when every selected textblock is, or sits inside, a kind node
    matching attrs. With kind=None only the textblocks' own attributes
    are checked (e.g. {"textAlign": "center"}).
    """
    selection = clamp(document, selection)
    root = document.to_tree()
    for path in _selected_paths(root, selection):
        if kind is None:
            if not _matches(node_at(root, path), attrs):
                return False
            continue
        chain = (node_at(root, path[:depth]) for depth in range(len(path), 0, -1))
        if not any(node.kind == kind and _matches(node, attrs) for node in chain):
            return False
    return True


def active_formats(document, selection):
    """Capability set that drives toolbar highlighting."""
    formats = set()
    for mark_type in (BOLD, ITALIC, UNDERLINE, LINK):
        if is_mark_active(document, selection, mark_type):
            formats.add(mark_type)
    for level in HEADING_LEVELS:
        if is_block_active(document, selection, HEADING, {"level": level}):
            formats.add(f"heading{level}")
    for kind in (PARAGRAPH, BULLET_LIST, ORDERED_LIST, BLOCKQUOTE):
        if is_block_active(document, selection, kind):
            formats.add(kind)
    for align in ALIGNMENTS:
        if is_block_active(document, selection, attrs={"textAlign": align}):
            formats.add(f"align-{align}")
    return frozenset(formats)


COMMANDS = {
    "toggle_bold": toggle_bold,
    "toggle_italic": toggle_italic,
    "toggle_underline": toggle_underline,
    "set_heading": set_heading,
    "toggle_heading": toggle_heading,
    "set_paragraph": set_paragraph,
    "toggle_bullet_list": toggle_bullet_list,
    "toggle_ordered_list": toggle_ordered_list,
    "toggle_blockquote": toggle_blockquote,
    "set_text_align": set_text_align,
    "set_link": set_link,
    "unset_link": unset_link,
    "insert_text": insert_text,
    "insert_image": insert_image,
    "insert_video": insert_video,
    "insert_raw_embed": insert_raw_embed,
    "insert_asset_node": insert_asset_node,
}


def dispatch(name, document, selection, **params):
    """Run a catalog command by name."""
    command = COMMANDS.get(name)
    if command is None:
        return _unchanged(document, selection, f"Unknown command: {name}")
    return command(document, selection, **params)
