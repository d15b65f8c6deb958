"""Drawing-surface backend: markdown blocks -> PageWriter calls."""

import logging

from .errors import ExportError, PDFRenderingError
from .markdown_blocks import (
    Blockquote,
    CodeBlock,
    Heading,
    ListClose,
    ListItem,
    ListOpen,
    Paragraph,
    Rule,
    parse_blocks,
)
from .typography import TYPOGRAPHY, lines

logger = logging.getLogger(__name__)

FONTS = TYPOGRAPHY["fonts"]
SIZES = TYPOGRAPHY["sizes"]
SPACING = TYPOGRAPHY["spacing"]
COLORS = TYPOGRAPHY["colors"]

# (bold, italic) -> font, per family
FAMILIES = {
    "serif": {
        (False, False): FONTS["serif"],
        (True, False): FONTS["serif_bold"],
        (False, True): FONTS["serif_italic"],
        (True, True): FONTS["serif_bold_italic"],
    },
    "sans": {
        (False, False): FONTS["sans"],
        (True, False): FONTS["sans_bold"],
        (False, True): FONTS["sans_oblique"],
        (True, True): FONTS["sans_bold_oblique"],
    },
}

HEADING_SIZES = {1: SIZES["h1"], 2: SIZES["h2"]}


def font_for(run, family="serif", bold=False, italic=False):
    if run.code:
        return FONTS["mono"]
    return FAMILIES[family][(run.bold or bold, run.italic or italic)]


def render_runs(writer, runs, family="serif", bold=False, italic=False, **options):
    """Stream styled runs onto the page as one continued text flow."""
    base_font = FAMILIES[family][(bold, italic)]
    if not runs:
        # ends a flow left open by a list marker
        writer.text("", **options)
        return
    last = len(runs) - 1
    for i, run in enumerate(runs):
        writer.set_font(font_for(run, family, bold, italic))
        writer.text(run.text, continued=i < last, **options)
    writer.set_font(base_font)


def _heading(writer, block):
    size = HEADING_SIZES.get(block.level, SIZES["h3"])
    writer.move_down(lines(SPACING["heading_before"]))
    writer.set_font(FONTS["sans_bold"], size)
    writer.set_color(COLORS["heading"])
    render_runs(writer, block.runs, family="sans", bold=True, align="left")
    writer.move_down(lines(SPACING["heading_after"]))


def _body_font(writer):
    writer.set_font(FONTS["serif"], SIZES["body"])
    writer.set_color(COLORS["text"])


def _paragraph(writer, block):
    _body_font(writer)
    render_runs(writer, block.runs, align="justify", line_gap=lines(SPACING["paragraph"]))
    if not block.in_list:
        writer.move_down(lines(SPACING["paragraph"]))


def _list_item(writer, block):
    _body_font(writer)
    writer.text(block.marker, continued=True, align="left", line_gap=2,
                indent=SPACING["indent"] * max(block.depth, 1))
    render_runs(writer, block.runs, align="left", line_gap=2)
    writer.move_down(lines(SPACING["list"]))


def _blockquote(writer, block):
    writer.set_font(FONTS["serif_italic"], SIZES["body"])
    writer.set_color(COLORS["quote"])
    render_runs(writer, block.runs, italic=True, align="justify", indent=SPACING["indent"],
                line_gap=lines(SPACING["paragraph"]), bar_color=COLORS["accent"])
    writer.move_down(lines(SPACING["paragraph"]))


def _code(writer, block):
    writer.move_down(lines(SPACING["paragraph"]))
    writer.set_font(FONTS["mono"], SIZES["code"])
    writer.set_color(COLORS["text"])
    writer.text(block.text, align="left", indent=SPACING["indent"], literal=True)
    _body_font(writer)
    writer.move_down(lines(SPACING["paragraph"]))


def _rule(writer):
    writer.move_down()
    writer.rule()
    writer.move_down()


def render_block(writer, block):
    if isinstance(block, Heading):
        _heading(writer, block)
    elif isinstance(block, Paragraph):
        _paragraph(writer, block)
    elif isinstance(block, ListItem):
        _list_item(writer, block)
    elif isinstance(block, Blockquote):
        _blockquote(writer, block)
    elif isinstance(block, CodeBlock):
        _code(writer, block)
    elif isinstance(block, Rule):
        _rule(writer)
    elif isinstance(block, ListOpen):
        writer.move_down(lines(SPACING["list"]))
    elif isinstance(block, ListClose):
        if block.depth == 0:
            writer.move_down(lines(SPACING["paragraph"]))
    else:
        raise TypeError(f"Unsupported block for PDF: {block!r}")


def render_markdown_to_pdf(writer, markdown, parser=None):
    """Render one chapter's markdown at the writer's cursor.

    Content already drawn stays on the page if a later block fails.
    """
    if not markdown or not markdown.strip():
        return
    try:
        for block in parse_blocks(markdown, parser):
            render_block(writer, block)
    except ExportError:
        raise
    except Exception as e:
        logger.error(f"Error rendering markdown to PDF: {e}")
        raise PDFRenderingError(
            "Error rendering markdown to PDF",
            field="markdown",
            detail="Failed to render markdown content to PDF",
        ) from e
