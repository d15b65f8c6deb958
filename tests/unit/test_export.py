"""Unit tests for export.py"""

import asyncio
from io import BytesIO

import aiohttp
import pytest
from docx import Document
from PIL import Image
from reportlab.pdfgen.canvas import Canvas

from backend import export
from backend.errors import ContentProcessingError, ImageProcessingError
from backend.export import (
    assemble_docx,
    assemble_pdf,
    export_filename,
    iter_stream,
    normalize_image,
)
from backend.models import Book, Chapter


# --- helpers ---

def _fetcher(data):
    async def fetch(url):
        return data
    return fetch


async def _failing_fetch(url):
    raise aiohttp.ClientError("connection refused")


def _with_cover(book):
    return book.model_copy(update={"cover_image_url": "http://example.com/cover.png"})


def _docx(data):
    return Document(BytesIO(data))


# --- export_filename ---

def test_export_filename_replaces_non_alphanumerics():
    assert export_filename("My Book: Vol 1", "pdf") == "my_book__vol_1.pdf"
    assert export_filename("Café", "docx") == "caf_.docx"


# --- normalize_image ---

def test_supported_image_is_returned_unchanged(png_bytes):
    assert normalize_image(png_bytes) == png_bytes


def test_unsupported_image_is_reencoded_as_png():
    buf = BytesIO()
    Image.new("RGB", (8, 8), (255, 0, 0)).save(buf, format="PPM")
    out = normalize_image(buf.getvalue())
    assert out.startswith(b"\x89PNG")


# --- assemble_docx ---

def test_docx_title_page_and_chapters(sample_book):
    doc = _docx(asyncio.run(assemble_docx(sample_book)))
    texts = [p.text for p in doc.paragraphs]
    assert texts[:3] == ["The Book", "A Subtitle", "by Ada Writer"]
    for title in ("Beginnings", "Chapter 2", "Empty"):
        assert title in texts
    assert "1. First" in texts
    assert "function f() {}\n" in texts


def test_docx_page_break_before_every_chapter_but_the_first(sample_book):
    doc = _docx(asyncio.run(assemble_docx(sample_book)))
    breaks = [p for p in doc.paragraphs if p.paragraph_format.page_break_before]
    assert len(breaks) == len(sample_book.chapters) - 1


def test_docx_blank_subtitle_is_omitted():
    book = Book(title="T", subtitle="   ", author="A")
    doc = _docx(asyncio.run(assemble_docx(book)))
    assert [p.text for p in doc.paragraphs][:2] == ["T", "by A"]


def test_docx_margins_and_footer(sample_book, monkeypatch):
    monkeypatch.setattr(export.config, "DOCX_PAGE_NUMBERS", True)
    doc = _docx(asyncio.run(assemble_docx(sample_book)))
    section = doc.sections[0]
    assert section.left_margin == section.top_margin == 914400
    assert "PAGE" in section.footer.paragraphs[0]._p.xml


def test_docx_cover_is_embedded(sample_book, png_bytes):
    data = asyncio.run(assemble_docx(_with_cover(sample_book), fetch_image=_fetcher(png_bytes)))
    doc = _docx(data)
    assert len(doc.inline_shapes) == 1


def test_docx_cover_fetch_failure(sample_book):
    with pytest.raises(ImageProcessingError) as exc_info:
        asyncio.run(assemble_docx(_with_cover(sample_book), fetch_image=_failing_fetch))
    assert exc_info.value.field == "coverImageUrl"


def test_docx_undecodable_cover(sample_book):
    with pytest.raises(ImageProcessingError):
        asyncio.run(assemble_docx(_with_cover(sample_book), fetch_image=_fetcher(b"not an image")))


def test_docx_chapter_failure_names_the_chapter(sample_book, monkeypatch):
    calls = []

    def flaky(markdown, parser=None):
        calls.append(markdown)
        if len(calls) == 2:
            raise RuntimeError("bad chapter")
        return []

    monkeypatch.setattr(export, "render_markdown_to_docx", flaky)
    with pytest.raises(ContentProcessingError) as exc_info:
        asyncio.run(assemble_docx(sample_book))
    assert exc_info.value.field == "chapter"
    assert exc_info.value.detail == "Failed to process chapter 2"


def test_docx_typed_errors_pass_through(sample_book, monkeypatch):
    def broken(markdown, parser=None):
        raise ContentProcessingError("Error processing markdown content", field="markdown")

    monkeypatch.setattr(export, "render_markdown_to_docx", broken)
    with pytest.raises(ContentProcessingError) as exc_info:
        asyncio.run(assemble_docx(sample_book))
    assert exc_info.value.field == "markdown"


def test_book_without_chapters_exports_title_page():
    doc = _docx(asyncio.run(assemble_docx(Book(title="Only", author="Me"))))
    assert [p.text for p in doc.paragraphs][:2] == ["Only", "by Me"]


# --- assemble_pdf ---

def test_pdf_is_written_to_stream(sample_book):
    out = BytesIO()
    asyncio.run(assemble_pdf(sample_book, out))
    assert out.getvalue().startswith(b"%PDF")


def test_pdf_with_cover(sample_book, png_bytes):
    out = BytesIO()
    asyncio.run(assemble_pdf(_with_cover(sample_book), out, fetch_image=_fetcher(png_bytes)))
    assert out.getvalue().startswith(b"%PDF")


def test_pdf_cover_failure_draws_nothing(sample_book):
    out = BytesIO()
    with pytest.raises(ImageProcessingError):
        asyncio.run(assemble_pdf(_with_cover(sample_book), out, fetch_image=_failing_fetch))
    assert out.getvalue() == b""


def test_pdf_chapter_failure(sample_book, monkeypatch):
    def broken(writer, markdown, parser=None):
        raise RuntimeError("bad chapter")

    monkeypatch.setattr(export, "render_markdown_to_pdf", broken)
    with pytest.raises(ContentProcessingError) as exc_info:
        asyncio.run(assemble_pdf(sample_book, BytesIO()))
    assert exc_info.value.detail == "Failed to process chapter 1"


def test_pdf_skips_blank_chapter_content(monkeypatch):
    seen = []
    monkeypatch.setattr(export, "render_markdown_to_pdf", lambda writer, md, parser=None: seen.append(md))
    book = Book(title="T", author="A", chapters=[Chapter(title="a", content="  "), Chapter(title="b", content="x")])
    asyncio.run(assemble_pdf(book, BytesIO()))
    assert seen == ["x"]


# --- iter_stream ---

def test_iter_stream_chunks_and_closes():
    stream = BytesIO(b"abcdefg")
    assert list(iter_stream(stream, chunk_size=3)) == [b"abc", b"def", b"g"]
    assert stream.closed


# --- PDF page numbers ---

def _numbered_pages(monkeypatch):
    stamped = []
    original = Canvas.drawCentredString

    def spy(self, x, y, text, *args, **kwargs):
        stamped.append((self.getPageNumber(), text))
        return original(self, x, y, text, *args, **kwargs)

    monkeypatch.setattr(Canvas, "drawCentredString", spy)
    monkeypatch.setattr(export.config, "PDF_PAGE_NUMBERS", True)
    return stamped


def test_pdf_title_page_is_unnumbered(monkeypatch):
    stamped = _numbered_pages(monkeypatch)
    book = Book(title="T", author="A", chapters=[Chapter(title="One", content="x")])
    asyncio.run(assemble_pdf(book, BytesIO()))
    assert stamped == [(2, "2")]


def test_pdf_cover_and_title_page_are_unnumbered(sample_book, png_bytes, monkeypatch):
    stamped = _numbered_pages(monkeypatch)
    book = _with_cover(sample_book.model_copy(update={"chapters": [Chapter(title="One", content="x")]}))
    asyncio.run(assemble_pdf(book, BytesIO(), fetch_image=_fetcher(png_bytes)))
    assert stamped == [(3, "3")]
