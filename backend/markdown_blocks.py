"""markdown-it token stream -> block model shared by the DOCX and PDF renderers.

The parser emits a flat token list where block structure is carried by
``*_open`` / ``*_close`` pairs and inline spans by the children of ``inline``
tokens. ``parse_blocks`` walks that list once with a ``TokenCursor`` and
yields one block per heading, paragraph, list item, quote paragraph, code
block and rule, plus list open/close markers the backends use for spacing.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from markdown_it import MarkdownIt

from .config import MARKDOWN_PRESET
from .errors import MalformedTokenStream
from .inline_runs import StyledRun, build_runs

logger = logging.getLogger(__name__)

BULLET_MARKER = "• "


def make_parser(preset: str = MARKDOWN_PRESET) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


# ====== TOKEN CURSOR ======

class TokenCursor:
    """Forward-only cursor over a token list with named lookahead."""

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def peek(self, k: int = 0):
        index = self.pos + k
        if 0 <= index < len(self.tokens):
            return self.tokens[index]
        return None

    def match(self, k: int, *types: str) -> bool:
        token = self.peek(k)
        return token is not None and token.type in types

    def expect(self, type_: str, k: int = 0):
        token = self.peek(k)
        if token is None or token.type != type_:
            found = token.type if token is not None else "end of stream"
            raise MalformedTokenStream(
                f"expected {type_} at position {self.pos + k}, found {found}"
            )
        return token

    def advance(self, n: int = 1):
        self.pos += n

    def advance_past(self, *types: str):
        """Consume exactly the given sequence of token types."""
        for offset, type_ in enumerate(types):
            self.expect(type_, offset)
        self.pos += len(types)


# ====== LIST CONTEXT ======

@dataclass
class ListFrame:
    kind: str
    counter: int = 1


class ListContext:
    """Stack of open lists; each ordered list numbers its own items from 1."""

    def __init__(self):
        self.frames: List[ListFrame] = []

    @property
    def active(self) -> bool:
        return bool(self.frames)

    @property
    def depth(self) -> int:
        return len(self.frames)

    @property
    def kind(self) -> str:
        return self.frames[-1].kind if self.frames else "none"

    def open(self, kind: str):
        self.frames.append(ListFrame(kind))

    def close(self) -> Optional[ListFrame]:
        return self.frames.pop() if self.frames else None

    def next_marker(self) -> str:
        if not self.frames:
            return ""
        frame = self.frames[-1]
        if frame.kind == "bullet":
            return BULLET_MARKER
        marker = f"{frame.counter}. "
        frame.counter += 1
        return marker


# ====== BLOCKS ======

@dataclass(frozen=True)
class Heading:
    level: Optional[int]
    text: str
    runs: List[StyledRun] = field(default_factory=list)


@dataclass(frozen=True)
class Paragraph:
    runs: List[StyledRun]
    in_list: bool = False


@dataclass(frozen=True)
class ListOpen:
    kind: str
    depth: int


@dataclass(frozen=True)
class ListClose:
    kind: str
    depth: int


@dataclass(frozen=True)
class ListItem:
    marker: str
    runs: List[StyledRun]
    depth: int


@dataclass(frozen=True)
class Blockquote:
    text: str
    runs: List[StyledRun] = field(default_factory=list)


@dataclass(frozen=True)
class CodeBlock:
    text: str
    info: str = ""


@dataclass(frozen=True)
class Rule:
    pass


Block = Union[Heading, Paragraph, ListOpen, ListClose, ListItem, Blockquote, CodeBlock, Rule]

LIST_KINDS = {
    "bullet_list_open": "bullet",
    "bullet_list_close": "bullet",
    "ordered_list_open": "ordered",
    "ordered_list_close": "ordered",
}


def heading_level(token) -> Optional[int]:
    """Heading level from an ``h1``..``h6`` tag, else None."""
    tag = token.tag or ""
    if tag[:1] == "h" and tag[1:].isdigit():
        return int(tag[1:])
    return None


def parse_blocks(markdown: str, parser: Optional[MarkdownIt] = None) -> List[Block]:
    """Tokenize markdown and convert the token stream into blocks, in order."""
    if not markdown or not markdown.strip():
        return []

    tokens = (parser or make_parser()).parse(markdown)
    cursor = TokenCursor(tokens)
    lists = ListContext()
    quote_depth = 0
    blocks: List[Block] = []

    while not cursor.at_end():
        token = cursor.peek()
        kind = token.type

        if kind == "heading_open" and cursor.match(1, "inline"):
            inline = cursor.peek(1)
            blocks.append(Heading(heading_level(token), inline.content or "", build_runs(inline.children)))
            cursor.advance_past("heading_open", "inline", "heading_close")
            continue

        if kind == "paragraph_open" and cursor.match(1, "inline"):
            inline = cursor.peek(1)
            runs = build_runs(inline.children)
            if quote_depth:
                blocks.append(Blockquote(inline.content or "", runs))
            else:
                blocks.append(Paragraph(runs, in_list=lists.active))
            cursor.advance_past("paragraph_open", "inline", "paragraph_close")
            continue

        if kind in ("bullet_list_open", "ordered_list_open"):
            lists.open(LIST_KINDS[kind])
            blocks.append(ListOpen(LIST_KINDS[kind], lists.depth))
        elif kind in ("bullet_list_close", "ordered_list_close"):
            lists.close()
            blocks.append(ListClose(LIST_KINDS[kind], lists.depth))
        elif kind == "list_item_open":
            depth = lists.depth
            marker = lists.next_marker()
            if cursor.match(1, "paragraph_open") and cursor.match(2, "inline"):
                inline = cursor.peek(2)
                blocks.append(ListItem(marker, build_runs(inline.children), depth))
                cursor.advance_past("list_item_open", "paragraph_open", "inline", "paragraph_close")
                continue
            # empty item, or one that starts with a code block or nested list
            blocks.append(ListItem(marker, [], depth))
        elif kind == "blockquote_open":
            quote_depth += 1
        elif kind == "blockquote_close":
            quote_depth = max(quote_depth - 1, 0)
        elif kind in ("fence", "code_block"):
            blocks.append(CodeBlock(token.content or "", (token.info or "").strip()))
        elif kind == "hr":
            blocks.append(Rule())
        else:
            logger.debug(f"Skipping markdown token {kind}")

        cursor.advance()

    return blocks
