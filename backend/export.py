"""Whole-book assembly: cover, title page and chapters for DOCX and PDF."""

import logging
import re
from io import BytesIO

import aiohttp
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Twips
from PIL import Image

from . import config
from .docx_render import (
    Border,
    DocxBlock,
    DocxRun,
    add_page_number_footer,
    page_break_block,
    render_markdown_to_docx,
    write_block,
    write_blocks,
)
from .errors import ContentProcessingError, ExportError, ImageProcessingError
from .markdown_blocks import make_parser
from .pdf_render import render_markdown_to_pdf
from .pdf_writer import PageWriter
from .typography import DOCX_STYLES, TYPOGRAPHY

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MIME = "application/pdf"

# formats python-docx can embed as-is; anything else is re-encoded as PNG
DOCX_IMAGE_FORMATS = {"PNG", "JPEG", "GIF", "BMP", "TIFF"}
PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA"}

PAGE_MARGIN_TWIPS = 1440


def export_filename(title: str, ext: str) -> str:
    """File name derived from the book title, e.g. ``my_book.pdf``."""
    return f"{re.sub(r'[^a-zA-Z0-9]', '_', title.lower())}.{ext}"


def chapter_title(chapter, index):
    return chapter.title.strip() or f"Chapter {index + 1}"


# ====== COVER IMAGE ======

async def fetch_cover_image(url: str) -> bytes:
    """Download the cover image."""
    timeout = aiohttp.ClientTimeout(total=config.COVER_FETCH_TIMEOUT)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.get(url) as resp:
            resp.raise_for_status()
            return await resp.read()


def normalize_image(data: bytes) -> bytes:
    """Check that the bytes decode as an image; re-encode unsupported formats as PNG."""
    with Image.open(BytesIO(data)) as img:
        img.verify()
    with Image.open(BytesIO(data)) as img:
        if img.format in DOCX_IMAGE_FORMATS:
            return data
        if img.mode not in PNG_MODES:
            img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
        out = BytesIO()
        img.save(out, format="PNG")
        return out.getvalue()


async def load_cover(book, fetch_image=None):
    if not book.cover_image_url:
        return None
    fetch = fetch_image or fetch_cover_image
    try:
        data = await fetch(book.cover_image_url)
        return normalize_image(data)
    except Exception as e:
        logger.error(f"Error fetching or processing cover image: {e}")
        raise ImageProcessingError(
            "Error processing cover image",
            field="coverImageUrl",
            detail="Failed to fetch or process the cover image",
        ) from e


def _cover_failed(e):
    logger.error(f"Error embedding cover image: {e}")
    return ImageProcessingError(
        "Error processing cover image",
        field="coverImageUrl",
        detail="Failed to embed the cover image",
    )


def _chapter_failed(e, index):
    logger.error(f"Error processing chapter {index + 1}: {e}")
    return ContentProcessingError(
        "Error processing chapter content",
        field="chapter",
        detail=f"Failed to process chapter {index + 1}",
    )


# ====== DOCX ======

def title_page_blocks(book):
    fonts, sizes, colors = DOCX_STYLES["fonts"], DOCX_STYLES["sizes"], DOCX_STYLES["colors"]
    blocks = [
        DocxBlock(
            "title",
            runs=[DocxRun(book.title, bold=True, font=fonts["heading"], size=sizes["title"], color=colors["title"])],
            alignment="center",
            space_before=2000,
            space_after=400,
        )
    ]
    if book.subtitle and book.subtitle.strip():
        blocks.append(DocxBlock(
            "subtitle",
            runs=[DocxRun(book.subtitle, font=fonts["heading"], size=sizes["subtitle"], color=colors["subtitle"])],
            alignment="center",
            space_after=400,
        ))
    blocks.append(DocxBlock(
        "author",
        runs=[DocxRun(f"by {book.author}", font=fonts["heading"], size=sizes["author"], color=colors["author"])],
        alignment="center",
        space_after=200,
    ))
    blocks.append(DocxBlock(
        "rule",
        alignment="center",
        space_after=400,
        border_bottom=Border(colors["accent"], 12),
    ))
    return blocks


def chapter_title_block(title):
    fonts, sizes, colors = DOCX_STYLES["fonts"], DOCX_STYLES["sizes"], DOCX_STYLES["colors"]
    return DocxBlock(
        "chapter_title",
        runs=[DocxRun(title, bold=True, font=fonts["heading"], size=sizes["chapter_title"], color=colors["title"])],
        space_before=DOCX_STYLES["spacing"]["chapter_before"],
        space_after=DOCX_STYLES["spacing"]["chapter_after"],
    )


def _add_docx_cover(doc, image):
    write_block(doc, DocxBlock("spacer", space_before=1000))
    p = doc.add_paragraph()
    p.alignment = WD_ALIGN_PARAGRAPH.CENTER
    p.paragraph_format.space_after = Twips(400)
    try:
        p.add_run().add_picture(BytesIO(image), width=Inches(4))
    except Exception as e:
        raise _cover_failed(e) from e
    write_block(doc, page_break_block())


async def assemble_docx(book, fetch_image=None, parser=None) -> bytes:
    """Build the whole book as a DOCX document and return its bytes."""
    logger.info(f"Assembling DOCX for '{book.title}' ({len(book.chapters)} chapters)")
    cover = await load_cover(book, fetch_image)
    parser = parser or make_parser()

    doc = Document()
    section = doc.sections[0]
    section.top_margin = Twips(PAGE_MARGIN_TWIPS)
    section.right_margin = Twips(PAGE_MARGIN_TWIPS)
    section.bottom_margin = Twips(PAGE_MARGIN_TWIPS)
    section.left_margin = Twips(PAGE_MARGIN_TWIPS)
    if config.DOCX_PAGE_NUMBERS:
        add_page_number_footer(section)

    if cover:
        _add_docx_cover(doc, cover)

    write_blocks(doc, title_page_blocks(book))

    for index, chapter in enumerate(book.chapters):
        try:
            blocks = [page_break_block()] if index > 0 else []
            blocks.append(chapter_title_block(chapter_title(chapter, index)))
            blocks.extend(render_markdown_to_docx(chapter.content, parser))
            write_blocks(doc, blocks)
        except ExportError:
            raise
        except Exception as e:
            raise _chapter_failed(e, index) from e

    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


# ====== PDF ======

def _pdf_title_page(writer, book):
    fonts, sizes, colors = TYPOGRAPHY["fonts"], TYPOGRAPHY["sizes"], TYPOGRAPHY["colors"]
    writer.set_font(fonts["sans_bold"], sizes["title"])
    writer.set_color(colors["heading"])
    writer.text(book.title, align="center")
    writer.move_down(2)

    if book.subtitle and book.subtitle.strip():
        writer.set_font(fonts["sans"], sizes["h2"])
        writer.set_color(colors["text"])
        writer.text(book.subtitle, align="center")
        writer.move_down(1)

    writer.set_font(fonts["sans"], sizes["author"])
    writer.set_color(colors["text"])
    writer.text(f"by {book.author}", align="center")
    writer.move_down(1)
    writer.rule(color=colors["accent"], width=1)


async def assemble_pdf(book, out, fetch_image=None, parser=None):
    """Draw the whole book as a PDF into the binary stream ``out``."""
    logger.info(f"Assembling PDF for '{book.title}' ({len(book.chapters)} chapters)")
    cover = await load_cover(book, fetch_image)
    parser = parser or make_parser()
    fonts, sizes, colors = TYPOGRAPHY["fonts"], TYPOGRAPHY["sizes"], TYPOGRAPHY["colors"]

    writer = PageWriter(out, page_numbers=config.PDF_PAGE_NUMBERS)
    if cover:
        try:
            writer.image(cover, fit=0.8)
        except Exception as e:
            raise _cover_failed(e) from e
        writer.add_page()

    _pdf_title_page(writer, book)
    writer.first_numbered_page = writer.page_number + 1

    for index, chapter in enumerate(book.chapters):
        try:
            writer.add_page()
            writer.set_font(fonts["sans_bold"], sizes["chapter_title"])
            writer.set_color(colors["heading"])
            writer.text(chapter_title(chapter, index), align="left")
            writer.move_down(1.5)
            if chapter.content.strip():
                render_markdown_to_pdf(writer, chapter.content, parser)
        except ExportError:
            raise
        except Exception as e:
            raise _chapter_failed(e, index) from e

    writer.close()


def iter_stream(stream, chunk_size=config.STREAM_CHUNK_SIZE):
    """Yield a binary stream in chunks, closing it when exhausted."""
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()
