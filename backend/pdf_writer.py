"""Cursor-based page writer over a reportlab canvas.

The writer owns all drawing state (font, size, colour, vertical cursor,
page count) so the markdown renderer never touches the canvas directly.
Text is written as flows: fragments passed with ``continued=True`` are
collected and laid out together, word-wrapped across fonts, once a
fragment without ``continued`` ends the flow. Lines that would cross the
bottom margin start a new page.
"""

import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Optional

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .typography import TYPOGRAPHY

LEADING = 1.2
BAR_OFFSET = 8
BAR_WIDTH = 3
_SPLIT_RE = re.compile(r"(\s+)")


@dataclass(frozen=True)
class Fragment:
    text: str
    font: str
    size: float
    color: str

    @property
    def width(self):
        return stringWidth(self.text, self.font, self.size)


@dataclass
class _Flow:
    align: str
    indent: float
    line_gap: float
    literal: bool
    bar_color: Optional[str]
    fragments: List[Fragment] = field(default_factory=list)


def _color(value):
    return HexColor(value if value.startswith("#") else f"#{value}")


def _word_width(word):
    return sum(piece.width for piece in word)


class PageWriter:
    def __init__(self, out, pagesize=letter, margin=72, page_numbers=False):
        self.canvas = canvas.Canvas(out, pagesize=pagesize)
        self.page_width, self.page_height = pagesize
        self.margin = margin
        self.page_numbers = page_numbers
        self.page_number = 1
        # pages before this one (cover, title page) carry no number
        self.first_numbered_page = 2
        self.font = TYPOGRAPHY["fonts"]["serif"]
        self.font_size = TYPOGRAPHY["sizes"]["body"]
        self.color = TYPOGRAPHY["colors"]["text"]
        self.y = self.top
        self._flow = None

    # ---- geometry ----

    @property
    def left(self):
        return self.margin

    @property
    def right(self):
        return self.page_width - self.margin

    @property
    def top(self):
        return self.page_height - self.margin

    @property
    def bottom(self):
        return self.margin

    @property
    def printable_width(self):
        return self.right - self.left

    @property
    def printable_height(self):
        return self.top - self.bottom

    def line_height(self, size=None):
        return (size or self.font_size) * LEADING

    # ---- state ----

    def set_font(self, name, size=None):
        self.font = name
        if size is not None:
            self.font_size = size

    def set_color(self, color):
        self.color = color

    # ---- drawing ----

    def text(self, text, continued=False, align="left", indent=0.0, line_gap=0.0,
             literal=False, bar_color=None):
        """Add a fragment in the current font; a non-continued call lays out the flow.

        Layout options are taken from the first fragment of a flow.
        """
        if self._flow is None:
            self._flow = _Flow(align, indent, line_gap, literal, bar_color)
        if text:
            self._flow.fragments.append(Fragment(text, self.font, self.font_size, self.color))
        if not continued:
            flow, self._flow = self._flow, None
            self._layout(flow)

    def move_down(self, lines=1.0):
        self.y -= lines * self.line_height()

    def rule(self, color=None, width=0.5):
        """Horizontal line across the printable width at the cursor."""
        if self.y < self.bottom:
            self.add_page()
        c = self.canvas
        c.saveState()
        c.setStrokeColor(_color(color or TYPOGRAPHY["colors"]["text"]))
        c.setLineWidth(width)
        c.line(self.left, self.y, self.right, self.y)
        c.restoreState()

    def image(self, data, fit=0.8):
        """Draw image bytes centred on the page, scaled into ``fit`` of the printable area."""
        reader = ImageReader(BytesIO(data))
        img_w, img_h = reader.getSize()
        scale = min(self.printable_width * fit / img_w, self.printable_height * fit / img_h)
        w, h = img_w * scale, img_h * scale
        x = self.left + (self.printable_width - w) / 2
        y = self.bottom + (self.printable_height - h) / 2
        self.canvas.drawImage(reader, x, y, width=w, height=h, mask='auto')
        self.y = y

    def add_page(self):
        self._finish_page()
        self.canvas.showPage()
        self.page_number += 1
        self.y = self.top

    def close(self):
        if self._flow is not None:
            flow, self._flow = self._flow, None
            self._layout(flow)
        self._finish_page()
        self.canvas.save()

    def _finish_page(self):
        if not self.page_numbers or self.page_number < self.first_numbered_page:
            return
        c = self.canvas
        c.saveState()
        c.setFont(TYPOGRAPHY["fonts"]["sans"], TYPOGRAPHY["sizes"]["captions"])
        c.setFillColor(_color(TYPOGRAPHY["colors"]["page_number"]))
        c.drawCentredString(self.page_width / 2, 0.4 * inch, str(self.page_number))
        c.restoreState()

    # ---- layout ----

    def _ensure_room(self, height):
        if self.y - height < self.bottom and self.y < self.top:
            self.add_page()

    def _layout(self, flow):
        if not flow.fragments:
            return
        avail = max(self.printable_width - flow.indent, 1)
        if flow.literal:
            for frag in flow.fragments:
                for line in frag.text.splitlines() or [""]:
                    for chunk in self._split_chars(line, frag, avail):
                        self._draw_row(flow, [(0.0, [chunk])], avail, last=True)
            return

        for words in self._hard_lines(flow.fragments):
            if not words:
                self._ensure_room(self.line_height())
                self.y -= self.line_height() + flow.line_gap
                continue
            rows = self._wrap(words, avail)
            for i, row in enumerate(rows):
                self._draw_row(flow, row, avail, last=i == len(rows) - 1)

    def _hard_lines(self, fragments):
        """Split fragments into hard lines; each line is a list of (space_before, word)."""
        lines = [[]]
        word = []
        space = 0.0
        for frag in fragments:
            for part in _SPLIT_RE.split(frag.text):
                if not part:
                    continue
                if not part.isspace():
                    word.append(Fragment(part, frag.font, frag.size, frag.color))
                    continue
                if word:
                    lines[-1].append((space, word))
                    word = []
                breaks = part.count("\n")
                if breaks:
                    lines.extend([] for _ in range(breaks))
                    space = 0.0
                elif lines[-1]:
                    space = stringWidth(" ", frag.font, frag.size)
        if word:
            lines[-1].append((space, word))
        return lines

    def _wrap(self, words, avail):
        rows = []
        row = []
        width = 0.0
        for space, word in words:
            w = _word_width(word)
            if row and width + space + w > avail:
                rows.append(row)
                row, width = [], 0.0
            if not row and w > avail:
                pieces = self._split_word(word, avail)
                rows.extend([(0.0, piece)] for piece in pieces[:-1])
                word, w = pieces[-1], _word_width(pieces[-1])
            if row:
                row.append((space, word))
                width += space + w
            else:
                row.append((0.0, word))
                width = w
        if row:
            rows.append(row)
        return rows

    def _split_word(self, word, avail):
        """Break a word wider than the line into pieces that fit."""
        pieces = [[]]
        width = 0.0
        for frag in word:
            for ch in frag.text:
                w = stringWidth(ch, frag.font, frag.size)
                if pieces[-1] and width + w > avail:
                    pieces.append([])
                    width = 0.0
                current = pieces[-1]
                if current and current[-1].font == frag.font and current[-1].size == frag.size \
                        and current[-1].color == frag.color:
                    current[-1] = Fragment(current[-1].text + ch, frag.font, frag.size, frag.color)
                else:
                    current.append(Fragment(ch, frag.font, frag.size, frag.color))
                width += w
        return pieces

    def _split_chars(self, line, frag, avail):
        chunks = []
        current = ""
        for ch in line:
            if current and stringWidth(current + ch, frag.font, frag.size) > avail:
                chunks.append(current)
                current = ch
            else:
                current += ch
        chunks.append(current)
        return [Fragment(chunk, frag.font, frag.size, frag.color) for chunk in chunks]

    def _draw_row(self, flow, row, avail, last):
        size = max(piece.size for _, word in row for piece in word)
        height = self.line_height(size)
        self._ensure_room(height)

        natural = sum(space + _word_width(word) for space, word in row)
        x = self.left + flow.indent
        extra = 0.0
        if flow.align == "justify" and not last and len(row) > 1:
            extra = (avail - natural) / (len(row) - 1)
        elif flow.align == "center":
            x += (avail - natural) / 2
        elif flow.align == "right":
            x += avail - natural

        c = self.canvas
        baseline = self.y - size
        for i, (space, word) in enumerate(row):
            if i:
                x += space + extra
            for piece in word:
                c.setFont(piece.font, piece.size)
                c.setFillColor(_color(piece.color))
                c.drawString(x, baseline, piece.text)
                x += piece.width

        if flow.bar_color:
            bar_x = self.left + flow.indent - BAR_OFFSET
            c.saveState()
            c.setStrokeColor(_color(flow.bar_color))
            c.setLineWidth(BAR_WIDTH)
            c.line(bar_x, self.y, bar_x, self.y - height)
            c.restoreState()

        self.y -= height + flow.line_gap
