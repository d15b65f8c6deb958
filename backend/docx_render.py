"""Flow-document backend: markdown blocks -> DOCX paragraphs.

``render_markdown_to_docx`` is pure: it returns ``DocxBlock`` values that
describe each paragraph (runs, alignment, spacing, borders). ``write_blocks``
is the only place that touches a python-docx ``Document``.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor, Twips

from .errors import ContentProcessingError, ExportError
from .inline_runs import StyledRun
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
from .typography import DOCX_STYLES

logger = logging.getLogger(__name__)

FONTS = DOCX_STYLES["fonts"]
SIZES = DOCX_STYLES["sizes"]
SPACING = DOCX_STYLES["spacing"]
INDENT = DOCX_STYLES["indent"]
COLORS = DOCX_STYLES["colors"]

ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}

HEADING_SIZES = {1: SIZES["h1"], 2: SIZES["h2"], 3: SIZES["h3"]}

# w:pPr children in schema order; borders and shading must be inserted before their successors
PPR_CHILD_ORDER = (
    "w:pStyle", "w:keepNext", "w:keepLines", "w:pageBreakBefore", "w:framePr",
    "w:widowControl", "w:numPr", "w:suppressLineNumbers", "w:pBdr", "w:shd",
    "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap",
    "w:overflowPunct", "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN",
    "w:bidi", "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind",
    "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)


@dataclass(frozen=True)
class Border:
    color: str
    size: int
    space: int = 1
    style: str = "single"


@dataclass(frozen=True)
class DocxRun:
    text: str
    bold: bool = False
    italic: bool = False
    font: Optional[str] = None
    size: Optional[float] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class DocxBlock:
    kind: str
    runs: List[DocxRun] = field(default_factory=list)
    level: Optional[int] = None
    style: Optional[str] = None
    alignment: Optional[str] = None
    space_before: Optional[int] = None
    space_after: Optional[int] = None
    indent_left: Optional[int] = None
    border_left: Optional[Border] = None
    border_bottom: Optional[Border] = None
    shading: Optional[str] = None
    page_break_before: bool = False

    @property
    def text(self):
        return "".join(run.text for run in self.runs)


# ====== BLOCK BUILDERS ======

def body_run(run: StyledRun) -> DocxRun:
    if run.code:
        return DocxRun(run.text, run.bold, run.italic, FONTS["code"], SIZES["code"], COLORS["code"])
    return DocxRun(run.text, run.bold, run.italic, FONTS["body"], SIZES["body"])


def heading_block(block: Heading) -> DocxBlock:
    # levels past h3 and unreadable tags fall back to the Heading 1 style at h3 size
    level = block.level if block.level in HEADING_SIZES else None
    return DocxBlock(
        "heading",
        runs=[DocxRun(block.text, size=HEADING_SIZES[level] if level else SIZES["h3"])],
        level=level or 1,
        style=f"Heading {level or 1}",
        space_before=SPACING["heading_before"],
        space_after=SPACING["heading_after"],
    )


def paragraph_block(block: Paragraph) -> DocxBlock:
    if block.in_list:
        before = after = SPACING["list_paragraph"]
    else:
        before, after = SPACING["paragraph_before"], SPACING["paragraph_after"]
    return DocxBlock(
        "paragraph",
        runs=[body_run(run) for run in block.runs],
        alignment="justify",
        space_before=before,
        space_after=after,
    )


def list_item_block(block: ListItem) -> DocxBlock:
    marker = DocxRun(block.marker, font=FONTS["body"])
    return DocxBlock(
        "list_item",
        runs=[marker] + [body_run(run) for run in block.runs],
        space_before=SPACING["list_item"],
        space_after=SPACING["list_item"],
        indent_left=INDENT["list"] * max(block.depth, 1),
    )


def blockquote_block(block: Blockquote) -> DocxBlock:
    return DocxBlock(
        "blockquote",
        runs=[DocxRun(block.text, italic=True, font=FONTS["body"], color=COLORS["quote"])],
        alignment="justify",
        space_before=SPACING["block"],
        space_after=SPACING["block"],
        indent_left=INDENT["blockquote"],
        border_left=Border(COLORS["accent"], 24),
    )


def code_block(block: CodeBlock) -> DocxBlock:
    return DocxBlock(
        "code",
        runs=[DocxRun(block.text, font=FONTS["code"], size=SIZES["code"], color=COLORS["code"])],
        space_before=SPACING["block"],
        space_after=SPACING["block"],
        shading=COLORS["code_shading"],
    )


def rule_block(color=COLORS["rule"], size=6, space_after=SPACING["block"]) -> DocxBlock:
    return DocxBlock(
        "rule",
        space_before=SPACING["block"],
        space_after=space_after,
        border_bottom=Border(color, size),
    )


def spacer_block(space_after=SPACING["list_after"]) -> DocxBlock:
    return DocxBlock("spacer", space_after=space_after)


def page_break_block() -> DocxBlock:
    return DocxBlock("page_break", page_break_before=True)


def _blocks_for(block) -> List[DocxBlock]:
    if isinstance(block, Heading):
        return [heading_block(block)]
    if isinstance(block, Paragraph):
        return [paragraph_block(block)]
    if isinstance(block, ListItem):
        return [list_item_block(block)]
    if isinstance(block, Blockquote):
        return [blockquote_block(block)]
    if isinstance(block, CodeBlock):
        return [code_block(block)]
    if isinstance(block, Rule):
        return [rule_block()]
    if isinstance(block, ListOpen):
        return []
    if isinstance(block, ListClose):
        # one spacer once the outermost list is closed
        return [spacer_block()] if block.depth == 0 else []
    raise TypeError(f"Unsupported block for DOCX: {block!r}")


def render_markdown_to_docx(markdown: str, parser=None) -> List[DocxBlock]:
    """Convert one chapter's markdown into DOCX paragraph blocks."""
    paragraphs: List[DocxBlock] = []
    try:
        for block in parse_blocks(markdown, parser):
            paragraphs.extend(_blocks_for(block))
    except ExportError:
        raise
    except Exception as e:
        logger.error(f"Error processing markdown token for DOCX export: {e}")
        raise ContentProcessingError(
            "Error processing markdown content",
            field="markdown",
            detail="Failed to process markdown content",
        ) from e
    return paragraphs


# ====== DOCUMENT WRITER ======

def _insert_ppr_child(paragraph, name, element):
    pPr = paragraph._p.get_or_add_pPr()
    successors = PPR_CHILD_ORDER[PPR_CHILD_ORDER.index(name) + 1:]
    pPr.insert_element_before(element, *successors)


def _set_borders(paragraph, left=None, bottom=None):
    pBdr = OxmlElement('w:pBdr')
    for side, border in (("left", left), ("bottom", bottom)):
        if border is None:
            continue
        edge = OxmlElement(f'w:{side}')
        edge.set(qn('w:val'), border.style)
        edge.set(qn('w:sz'), str(border.size))
        edge.set(qn('w:space'), str(border.space))
        edge.set(qn('w:color'), border.color.upper())
        pBdr.append(edge)
    _insert_ppr_child(paragraph, "w:pBdr", pBdr)


def _set_shading(paragraph, fill):
    shd = OxmlElement('w:shd')
    shd.set(qn('w:val'), 'clear')
    shd.set(qn('w:color'), 'auto')
    shd.set(qn('w:fill'), fill.upper())
    _insert_ppr_child(paragraph, "w:shd", shd)


def write_block(document, block: DocxBlock):
    """Append one block to a python-docx Document and return the paragraph."""
    p = document.add_paragraph(style=block.style) if block.style else document.add_paragraph()
    fmt = p.paragraph_format
    if block.space_before is not None:
        fmt.space_before = Twips(block.space_before)
    if block.space_after is not None:
        fmt.space_after = Twips(block.space_after)
    if block.indent_left is not None:
        fmt.left_indent = Twips(block.indent_left)
    if block.page_break_before:
        fmt.page_break_before = True
    if block.alignment:
        p.alignment = ALIGNMENTS[block.alignment]
    if block.border_left or block.border_bottom:
        _set_borders(p, left=block.border_left, bottom=block.border_bottom)
    if block.shading:
        _set_shading(p, block.shading)

    for item in block.runs:
        run = p.add_run(item.text)
        if item.bold:
            run.bold = True
        if item.italic:
            run.italic = True
        if item.font:
            run.font.name = item.font
        if item.size:
            run.font.size = Pt(item.size)
        if item.color:
            run.font.color.rgb = RGBColor.from_string(item.color.upper())
    return p


def write_blocks(document, blocks):
    for block in blocks:
        write_block(document, block)


def add_page_number_footer(section):
    """Centered PAGE field in the section footer."""
    footer = section.footer
    footer.is_linked_to_previous = False
    footer_para = footer.paragraphs[0] if footer.paragraphs else footer.add_paragraph()
    footer_para.alignment = WD_ALIGN_PARAGRAPH.CENTER

    run = footer_para.add_run()
    fld_char1 = OxmlElement('w:fldChar')
    fld_char1.set(qn('w:fldCharType'), 'begin')
    run._r.append(fld_char1)

    run2 = footer_para.add_run()
    instr = OxmlElement('w:instrText')
    instr.set(qn('xml:space'), 'preserve')
    instr.text = ' PAGE '
    run2._r.append(instr)

    run3 = footer_para.add_run()
    fld_char2 = OxmlElement('w:fldChar')
    fld_char2.set(qn('w:fldCharType'), 'end')
    run3._r.append(fld_char2)

    for r in (run, run2, run3):
        r.font.size = Pt(9)
        r.font.color.rgb = RGBColor.from_string(COLORS["page_number"].upper())
