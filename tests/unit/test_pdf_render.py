"""Unit tests for pdf_render.py"""

from io import BytesIO

import pytest

from backend.errors import PDFRenderingError
from backend.markdown_blocks import ListClose
from backend.pdf_render import render_block, render_markdown_to_pdf
from backend.pdf_writer import PageWriter


# --- helpers ---

class RecordingWriter:
    """Stand-in for PageWriter that records text and spacing calls."""

    def __init__(self):
        self.calls = []
        self.font = None
        self.size = None
        self.color = None

    def set_font(self, name, size=None):
        self.font = name
        if size is not None:
            self.size = size

    def set_color(self, color):
        self.color = color

    def text(self, text, continued=False, **options):
        self.calls.append(("text", text, self.font, continued, options))

    def move_down(self, lines=1.0):
        self.calls.append(("move_down", lines))

    def rule(self, color=None, width=0.5):
        self.calls.append(("rule",))

    def texts(self):
        return [call for call in self.calls if call[0] == "text"]


def _render(markdown):
    writer = RecordingWriter()
    render_markdown_to_pdf(writer, markdown)
    return writer


# --- blocks ---

def test_heading_is_sans_bold_at_level_size():
    writer = RecordingWriter()
    render_markdown_to_pdf(writer, "# Title")
    (call,) = writer.texts()
    assert call[1:4] == ("Title", "Helvetica-Bold", False)
    assert writer.size == 18
    assert writer.calls[0] == ("move_down", pytest.approx(16 / 12))


@pytest.mark.parametrize("markdown, size", [
    ("## Two", 16),
    ("### Three", 14),
    ("#### Four", 14),
    ("###### Six", 14),
])
def test_deeper_headings_use_their_size_or_the_h3_size(markdown, size):
    writer = _render(markdown)
    (call,) = writer.texts()
    assert call[2] == "Helvetica-Bold"
    assert writer.size == size


def test_paragraph_runs_switch_fonts_in_one_flow():
    writer = _render("Some **bold** and *italic* text.")
    assert [(c[1], c[2], c[3]) for c in writer.texts()] == [
        ("Some ", "Times-Roman", True),
        ("bold", "Times-Bold", True),
        (" and ", "Times-Roman", True),
        ("italic", "Times-Italic", True),
        (" text.", "Times-Roman", False),
    ]
    assert writer.texts()[0][4]["align"] == "justify"
    assert writer.calls[-1] == ("move_down", 1.0)


def test_inline_code_uses_courier():
    writer = _render("call `run()` now")
    assert writer.texts()[1][1:3] == ("run()", "Courier")


def test_ordered_list_markers_and_spacing():
    writer = _render("1. First\n2. Second")
    texts = writer.texts()
    assert [c[1] for c in texts] == ["1. ", "First", "2. ", "Second"]
    marker = texts[0]
    assert marker[3] is True
    assert marker[4]["indent"] == 20
    assert writer.calls[0] == ("move_down", 0.5)
    assert writer.calls[-1] == ("move_down", 1.0)


def test_nested_list_indent_grows():
    writer = _render("- a\n  - b")
    markers = [c for c in writer.texts() if c[1] == "• "]
    assert [m[4]["indent"] for m in markers] == [20, 40]


def test_empty_list_item_closes_its_flow():
    writer = _render("-\n- b\n")
    texts = writer.texts()
    assert texts[0][1] == "• " and texts[0][3] is True
    assert texts[1][1] == "" and texts[1][3] is False


def test_blockquote_draws_accent_bar():
    writer = _render("> quoted")
    (call,) = writer.texts()
    assert call[1:3] == ("quoted", "Times-Italic")
    assert call[4]["bar_color"] == "4f46e5"
    assert call[4]["indent"] == 20


def test_each_quoted_paragraph_gets_its_own_bar():
    writer = _render("> first\n>\n> second")
    texts = writer.texts()
    assert [c[1] for c in texts] == ["first", "second"]
    assert all(c[4]["bar_color"] == "4f46e5" and not c[3] for c in texts)


def test_code_block_is_literal_courier():
    writer = _render("```\nfunction f() {}\n```")
    (call,) = writer.texts()
    assert call[1:3] == ("function f() {}\n", "Courier")
    assert call[4]["literal"] is True


def test_thematic_break_draws_one_rule():
    writer = _render("---")
    assert [c for c in writer.calls if c[0] == "rule"] == [("rule",)]


def test_blank_content_draws_nothing():
    writer = _render("  \n")
    assert writer.calls == []


def test_inner_list_close_adds_no_space():
    writer = RecordingWriter()
    render_block(writer, ListClose("bullet", 1))
    assert writer.calls == []


def test_unknown_block_raises_type_error():
    with pytest.raises(TypeError):
        render_block(RecordingWriter(), object())


def test_writer_failure_is_wrapped():
    class BrokenWriter(RecordingWriter):
        def text(self, text, continued=False, **options):
            raise RuntimeError("canvas gone")

    with pytest.raises(PDFRenderingError) as exc_info:
        render_markdown_to_pdf(BrokenWriter(), "text")
    assert exc_info.value.field == "markdown"


# --- with a real page writer ---

def test_renders_onto_real_canvas():
    out = BytesIO()
    writer = PageWriter(out)
    render_markdown_to_pdf(writer, "# T\n\n" + "Lorem ipsum dolor sit amet. " * 400 + "\n\n> q\n\n- a\n- b\n")
    assert writer.page_number > 1
    writer.close()
    assert out.getvalue().startswith(b"%PDF")
