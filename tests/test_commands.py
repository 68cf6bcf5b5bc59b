"""
Tests for editing commands and toolbar queries.
"""
import pytest

from blog_editor import commands
from blog_editor.commands import active_formats, dispatch, is_mark_active
from blog_editor.document import (
    BOLD,
    Document,
    Selection,
    blockquote,
    bullet_list,
    deserialize,
    doc,
    embed,
    heading,
    image,
    link,
    list_item,
    ordered_list,
    paragraph,
    serialize,
    text,
)
from blog_editor.document.nodes import has_mark
from blog_editor.storage import Asset


@pytest.fixture
def hello():
    return doc(paragraph("hello world"))


class TestMarks:
    """Tests for bold, italic, underline and links."""

    def test_toggle_bold_range(self, hello):
        """Test bolding a range and toggling it back."""
        selection = Selection.between(0, 0, 0, 5)
        result = commands.toggle_bold(hello, selection)
        assert result.document == doc(paragraph(text("hello", BOLD), " world"))
        assert result.selection == selection

        again = commands.toggle_bold(result.document, result.selection)
        assert again.document == hello

    def test_toggle_bold_mixed_range(self):
        """Test a partly bold range becomes fully bold."""
        document = doc(paragraph(text("ab", BOLD), "cd"))
        result = commands.toggle_bold(document, Selection.between(0, 0, 0, 4))
        assert result.document == doc(paragraph(text("abcd", BOLD)))

    def test_toggle_across_blocks(self):
        """Test marks apply across textblocks."""
        document = doc(paragraph("ab"), paragraph("cd"))
        result = commands.toggle_italic(document, Selection.between(0, 1, 1, 1))
        assert result.document == doc(
            paragraph("a", text("b", "italic")),
            paragraph(text("c", "italic"), "d"),
        )

    def test_collapsed_toggle_stores_marks(self, hello):
        """Test toggling at the caret affects the next typed text only."""
        result = commands.toggle_bold(hello, Selection.caret(0, 2))
        assert result.document == hello
        assert has_mark(result.selection.stored_marks, BOLD)

        typed = commands.insert_text(result.document, result.selection, "X")
        assert typed.document == doc(paragraph("he", text("X", BOLD), "llo world"))
        assert typed.selection == Selection.caret(0, 3)
        assert is_mark_active(typed.document, typed.selection, BOLD)

    def test_typing_inherits_marks(self):
        """Test text typed after a bold run is bold."""
        document = doc(paragraph(text("ab", BOLD), "cd"))
        typed = commands.insert_text(document, Selection.caret(0, 2), "X")
        assert typed.document == doc(paragraph(text("abX", BOLD), "cd"))

    def test_set_link_needs_selection(self, hello):
        """Test linking without a selection only produces a notice."""
        result = commands.set_link(hello, Selection.caret(0, 1), "https://docs.test")
        assert result.document == hello
        assert result.notice

    def test_set_and_unset_link(self):
        """Test linking a range and removing the link again."""
        document = doc(paragraph("see docs"))
        selection = Selection.between(0, 4, 0, 8)
        result = commands.set_link(document, selection, "https://docs.test")
        assert result.document == doc(paragraph("see ", text("docs", link("https://docs.test"))))

        removed = commands.unset_link(result.document, selection)
        assert removed.document == document

    def test_replacing_link(self):
        """Test a new href replaces the old one."""
        document = doc(paragraph(text("docs", link("https://old.test"))))
        result = commands.set_link(document, Selection.between(0, 0, 0, 4), "https://new.test")
        assert result.document == doc(paragraph(text("docs", link("https://new.test"))))


class TestTextblocks:
    """Tests for headings, paragraphs and alignment."""

    def test_set_heading(self, hello):
        """Test turning a paragraph into a heading."""
        result = commands.set_heading(hello, Selection.caret(0, 0), 2)
        assert result.document == doc(heading(2, "hello world"))

    def test_unsupported_heading_level(self, hello):
        """Test only two heading levels are offered."""
        result = commands.set_heading(hello, Selection.caret(0, 0), 3)
        assert result.document == hello
        assert "3" in result.notice

    def test_toggle_heading(self, hello):
        """Test toggling a heading twice returns a paragraph."""
        once = commands.toggle_heading(hello, Selection.caret(0, 0), 1)
        assert once.document == doc(heading(1, "hello world"))
        twice = commands.toggle_heading(once.document, once.selection, 1)
        assert twice.document == hello

    def test_text_align(self, hello):
        """Test aligning and resetting to the default."""
        centered = commands.set_text_align(hello, Selection.caret(0, 0), "center")
        assert centered.document == doc(paragraph("hello world", align="center"))
        assert "align-center" in active_formats(centered.document, centered.selection)

        reset = commands.set_text_align(centered.document, centered.selection, "left")
        assert reset.document == hello

    def test_unknown_alignment(self, hello):
        """Test unsupported alignments are refused."""
        result = commands.set_text_align(hello, Selection.caret(0, 0), "justify")
        assert result.document == hello
        assert result.notice


class TestWrapping:
    """Tests for lists and blockquotes."""

    def test_toggle_bullet_list(self):
        """Test wrapping two paragraphs and lifting them back out."""
        document = doc(paragraph("a"), paragraph("b"))
        selection = Selection.between(0, 0, 1, 1)
        wrapped = commands.toggle_bullet_list(document, selection)
        assert wrapped.document == doc(bullet_list("a", "b"))

        lifted = commands.toggle_bullet_list(wrapped.document, wrapped.selection)
        assert lifted.document == document

    def test_switch_list_type(self):
        """Test toggling the other list kind retypes the list."""
        document = doc(bullet_list("a", "b"))
        result = commands.toggle_ordered_list(document, Selection.caret(0, 0))
        assert result.document == doc(ordered_list("a", "b"))

    def test_lift_single_item(self):
        """Test lifting the middle item splits the list."""
        document = doc(bullet_list("a", "b", "c"))
        result = commands.toggle_bullet_list(document, Selection.caret(1, 0))
        assert result.document == doc(bullet_list("a"), paragraph("b"), bullet_list("c"))

    def test_embed_stays_outside_lists(self):
        """Test wrapping around an embed keeps the embed at top level."""
        document = doc(paragraph("a"), embed("<hr>"), paragraph("b"))
        result = commands.toggle_bullet_list(document, Selection.between(0, 0, 1, 1))
        assert result.document == doc(bullet_list("a"), embed("<hr>"), bullet_list("b"))

    def test_toggle_blockquote(self, hello):
        """Test quoting and unquoting a paragraph."""
        quoted = commands.toggle_blockquote(hello, Selection.caret(0, 0))
        assert quoted.document == doc(blockquote("hello world"))
        unquoted = commands.toggle_blockquote(quoted.document, quoted.selection)
        assert unquoted.document == hello

    def test_blockquote_wraps_whole_list(self):
        """Test quoting list items quotes the list."""
        document = doc(bullet_list("a", "b"))
        result = commands.toggle_blockquote(document, Selection.between(0, 0, 1, 1))
        assert result.document == doc(blockquote(bullet_list("a", "b")))

    def test_wrap_paragraph_with_list_and_toggle_back(self):
        """Test wrapping a paragraph and a list nests the list and lifts back out."""
        document = doc(paragraph("p"), bullet_list("a", "b"))
        wrapped = commands.toggle_bullet_list(document, Selection.between(0, 0, 2, 1))
        assert wrapped.document == doc(bullet_list("p", list_item(bullet_list("a", "b"))))

        lifted = commands.toggle_bullet_list(wrapped.document, wrapped.selection)
        assert lifted.document == document

    def test_lift_item_with_nested_list(self):
        """Test lifting across a nested list lifts from the outer list only."""
        document = doc(bullet_list(list_item("a", bullet_list("b", "c"))))
        result = commands.toggle_bullet_list(document, Selection.between(0, 0, 2, 1))
        assert result.document == doc(paragraph("a"), bullet_list("b", "c"))

    def test_lift_from_nested_list(self):
        """Test a caret in a nested list lifts from the inner list."""
        document = doc(bullet_list(list_item("a", bullet_list("b", "c"))))
        result = commands.toggle_bullet_list(document, Selection.caret(1, 0))
        assert result.document == doc(bullet_list(list_item("a", "b", bullet_list("c"))))

    def test_lift_nested_blockquote_and_toggle_back(self):
        """Test unquoting across a nested quote keeps the inner quote."""
        document = doc(blockquote("A", blockquote("B", "C", "D"), "E"))
        selection = Selection.between(0, 0, 4, 1)
        lifted = commands.toggle_blockquote(document, selection)
        assert lifted.document == doc(paragraph("A"), blockquote("B", "C", "D"), paragraph("E"))

        wrapped = commands.toggle_blockquote(lifted.document, lifted.selection)
        assert wrapped.document == document


class TestInsertion:
    """Tests for inserting images, embeds and assets."""

    def test_insert_image(self):
        """Test images go inline at the caret."""
        document = doc(paragraph("ab"))
        result = commands.insert_image(document, Selection.caret(0, 1), "https://cdn.test/a.png")
        assert result.document == doc(paragraph("a", image("https://cdn.test/a.png"), "b"))
        assert result.selection == Selection.caret(0, 2)

    def test_insert_image_needs_src(self):
        """Test a blank source is refused."""
        document = doc(paragraph("ab"))
        result = commands.insert_image(document, Selection.caret(0, 1), " ")
        assert result.document == document
        assert result.notice

    def test_embed_replaces_empty_paragraph(self):
        """Test an embed in an empty document is followed by a paragraph."""
        html = '<iframe src="https://video.test/1"></iframe>'
        result = commands.insert_raw_embed(Document.empty(), Selection.caret(0, 0), html)
        assert result.document == doc(embed(html), paragraph())
        assert result.selection == Selection.caret(0, 0)

    def test_embed_after_list(self):
        """Test an embed at a list item is placed after the list."""
        html = "<video src=\"v.mp4\"></video>"
        document = doc(bullet_list("item"), paragraph("tail"))
        result = commands.insert_raw_embed(document, Selection.caret(0, 4), html)
        assert result.document == doc(bullet_list("item"), embed(html), paragraph("tail"))
        assert result.selection == Selection.caret(1, 0)

    def test_invalid_embed(self, hello):
        """Test embed code must be well-formed."""
        result = commands.insert_raw_embed(hello, Selection.caret(0, 0), "<div><span></div>")
        assert result.document == hello
        assert "not valid" in result.notice

    def test_insert_video_url(self, hello):
        """Test hosted player URLs become an iframe embed."""
        result = commands.insert_video(hello, Selection.caret(0, 11), "https://player.test/v/1")
        html = result.document.children()[1].attr("html")
        assert '<iframe src="https://player.test/v/1"' in html

    def test_insert_image_asset(self):
        """Test image assets are inserted inline."""
        document = doc(paragraph("ab"))
        asset = Asset("https://cdn.test/a.png", "image/png")
        result = commands.insert_asset_node(document, Selection.caret(0, 1), asset)
        assert result.document == doc(paragraph("a", image("https://cdn.test/a.png"), "b"))

    def test_insert_video_asset(self, hello):
        """Test video assets are inserted as a video embed."""
        asset = Asset("https://cdn.test/v.mp4", "video/mp4")
        result = commands.insert_asset_node(hello, Selection.caret(0, 11), asset)
        assert result.document == doc(
            paragraph("hello world"),
            embed('<video src="https://cdn.test/v.mp4" controls=""></video>'),
            paragraph(),
        )


class TestQueries:
    """Tests for toolbar state."""

    def test_paragraph_formats(self, hello):
        """Test a plain paragraph."""
        assert active_formats(hello, Selection.caret(0, 0)) == {"paragraph", "align-left"}

    def test_heading_formats(self):
        """Test headings report their level."""
        document = doc(heading(1, "T"))
        assert active_formats(document, Selection.caret(0, 1)) == {"heading1", "align-left"}

    def test_list_formats(self):
        """Test lists are reported for their items."""
        document = doc(bullet_list("a"))
        formats = active_formats(document, Selection.caret(0, 0))
        assert formats == {"paragraph", "bulletList", "align-left"}

    def test_mark_formats(self):
        """Test marks are reported only when every character has them."""
        document = doc(paragraph(text("ab", BOLD, link("https://x.test")), "c"))
        assert {"bold", "link"} <= active_formats(document, Selection.between(0, 0, 0, 2))
        assert "bold" not in active_formats(document, Selection.between(0, 0, 0, 3))


class TestDispatch:
    """Tests for running commands by name."""

    def test_dispatch(self, hello):
        """Test commands are found by name."""
        result = dispatch("set_heading", hello, Selection.caret(0, 0), level=1)
        assert result.document == doc(heading(1, "hello world"))

    def test_unknown_command(self, hello):
        """Test unknown commands produce a notice."""
        result = dispatch("explode", hello, Selection.caret(0, 0))
        assert result.document == hello
        assert "explode" in result.notice


LINKED = doc(paragraph(text("ab", link("https://x.test")), "cd"))
NESTED_ITEM_QUOTE = doc(bullet_list(list_item("a", blockquote("quoted"))))

ROUND_TRIPS = [
    ("toggle_bold", LINKED, Selection.between(0, 1, 0, 3), {}),
    ("toggle_italic", doc(paragraph(text("ab", BOLD), "cd")), Selection.between(0, 0, 0, 4), {}),
    ("toggle_underline", LINKED, Selection.between(0, 0, 0, 2), {}),
    ("set_heading", doc(bullet_list("a", "b")), Selection.caret(1, 0), {"level": 2}),
    ("toggle_heading", doc(heading(2, "T", align="center")), Selection.caret(0, 0), {"level": 2}),
    ("set_paragraph", doc(blockquote(heading(1, "T"))), Selection.caret(0, 0), {}),
    (
        "toggle_bullet_list",
        doc(bullet_list("p", list_item(bullet_list("a", "b")))),
        Selection.between(0, 0, 2, 1),
        {},
    ),
    (
        "toggle_ordered_list",
        doc(bullet_list(list_item("a", bullet_list("b", "c")))),
        Selection.caret(1, 0),
        {},
    ),
    (
        "toggle_blockquote",
        doc(blockquote("A", blockquote("B", "C", "D"), "E")),
        Selection.between(1, 0, 3, 1),
        {},
    ),
    ("set_text_align", doc(paragraph("a"), heading(2, "b")), Selection.between(0, 0, 1, 1), {"align": "right"}),
    ("set_link", doc(paragraph(text("abcd", BOLD))), Selection.between(0, 1, 0, 3), {"href": "https://x.test/?a=1&b=2"}),
    ("unset_link", LINKED, Selection.between(0, 0, 0, 1), {}),
    ("insert_text", LINKED, Selection.caret(0, 2), {"text": "a\nb <&>"}),
    ("insert_image", LINKED, Selection.between(0, 1, 0, 3), {"src": "https://cdn.test/a.png", "alt": "A \"b\""}),
    ("insert_video", doc(bullet_list("a")), Selection.caret(0, 1), {"url": "https://player.test/v/1"}),
    ("insert_raw_embed", NESTED_ITEM_QUOTE, Selection.caret(1, 6), {"html": '<iframe src="https://x.test/e"></iframe>'}),
    (
        "insert_asset_node",
        NESTED_ITEM_QUOTE,
        Selection.caret(1, 0),
        {"asset": Asset("https://cdn.test/v.mp4", "video/mp4")},
    ),
]


class TestRoundTrip:
    """Tests that every command leaves a document its markup reproduces."""

    def test_every_command_is_covered(self):
        """Test the round-trip cases name every catalog command."""
        assert {case[0] for case in ROUND_TRIPS} == set(commands.COMMANDS)

    @pytest.mark.parametrize(
        "name, document, selection, params",
        ROUND_TRIPS,
        ids=[case[0] for case in ROUND_TRIPS],
    )
    def test_markup_round_trip(self, name, document, selection, params):
        """Test serializing and reading back a command's result is lossless."""
        result = dispatch(name, document, selection, **params)
        assert result.notice is None
        assert result.document != document
        assert deserialize(serialize(result.document)) == result.document

    def test_image_asset_round_trip(self):
        """Test an inline image asset inside a nested quote survives markup."""
        asset = Asset("https://cdn.test/a.png", "image/png")
        result = commands.insert_asset_node(NESTED_ITEM_QUOTE, Selection.caret(1, 3), asset)
        assert deserialize(serialize(result.document)) == result.document
