"""Inline token spans -> styled text runs.

Both document backends share this builder. A run carries only the style
flags; fonts and sizes are chosen by the backend that draws it.
"""

from dataclasses import dataclass, replace
from typing import List


@dataclass(frozen=True)
class StyledRun:
    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False

    def same_style(self, other):
        return (self.bold, self.italic, self.code) == (other.bold, other.italic, other.code)


class _RunBuilder:
    def __init__(self):
        self.runs: List[StyledRun] = []
        self.bold = False
        self.italic = False
        self.buffer = ""

    def push(self, run):
        if self.runs and self.runs[-1].same_style(run):
            last = self.runs.pop()
            run = StyledRun(last.text + run.text, run.bold, run.italic, run.code)
        self.runs.append(run)

    def flush(self):
        # whitespace-only text is held back and joins the next run
        if not self.buffer.strip():
            return
        self.push(StyledRun(self.buffer, self.bold, self.italic))
        self.buffer = ""

    def attach_whitespace(self):
        # held-back whitespace before a code span belongs to the previous run
        if self.buffer and self.runs:
            last = self.runs.pop()
            self.runs.append(replace(last, text=last.text + self.buffer))
        self.buffer = ""


def build_runs(children) -> List[StyledRun]:
    """Convert the children of an ``inline`` token into styled runs."""
    builder = _RunBuilder()
    for child in children or []:
        kind = child.type
        if kind == "text":
            builder.buffer += child.content or ""
        elif kind == "softbreak":
            builder.buffer += " "
        elif kind == "hardbreak":
            builder.buffer += "\n"
        elif kind in ("strong_open", "strong_close"):
            builder.flush()
            builder.bold = kind == "strong_open"
        elif kind in ("em_open", "em_close"):
            builder.flush()
            builder.italic = kind == "em_open"
        elif kind == "code_inline":
            builder.flush()
            builder.attach_whitespace()
            if child.content:
                builder.push(StyledRun(child.content, builder.bold, builder.italic, code=True))
        else:
            # links, images, html and other spans contribute nothing of their own
            continue
    builder.flush()
    return builder.runs


def plain_text(runs) -> str:
    return "".join(run.text for run in runs)
