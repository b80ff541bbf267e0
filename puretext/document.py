"""Canonical Document model.

Every walker produces a Document; every renderer consumes one. Block nodes
never carry text directly - inline content is always a list of InlineRun.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Union


@dataclass
class Link:
    """Hyperlink target attached to an inline run."""
    href: str
    title: Optional[str] = None


@dataclass
class InlineRun:
    """A span of text sharing one set of character styles."""
    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    underline: bool = False
    strike: bool = False
    link: Optional[Link] = None
    color: Optional[str] = None  # hex RGB without '#'

    def same_style(self, other: "InlineRun") -> bool:
        return (
            self.bold == other.bold
            and self.italic == other.italic
            and self.code == other.code
            and self.underline == other.underline
            and self.strike == other.strike
            and self.link == other.link
            and self.color == other.color
        )


@dataclass
class Heading:
    level: int
    runs: list[InlineRun] = field(default_factory=list)


@dataclass
class Paragraph:
    runs: list[InlineRun] = field(default_factory=list)


@dataclass
class Blockquote:
    runs: list[InlineRun] = field(default_factory=list)


@dataclass
class CodeBlock:
    text: str
    language: Optional[str] = None


@dataclass
class Cell:
    runs: list[InlineRun] = field(default_factory=list)
    is_header: bool = False


@dataclass
class Table:
    rows: list[list[Cell]] = field(default_factory=list)


@dataclass
class MathFormula:
    latex: str
    display_mode: bool = False


@dataclass
class HorizontalRule:
    pass


@dataclass
class ListBlock:
    """Ordered or unordered list.

    Each item is its own block sequence so nested lists and multi-paragraph
    items survive. ``level`` is the nesting depth (0 for top-level lists).
    """
    ordered: bool = False
    items: list[list["Block"]] = field(default_factory=list)
    level: int = 0
    start: int = 1


Block = Union[
    Heading, Paragraph, ListBlock, Blockquote, CodeBlock, Table, MathFormula, HorizontalRule
]


@dataclass
class Document:
    """An ordered sequence of block nodes."""
    blocks: list[Block] = field(default_factory=list)

    def is_empty(self) -> bool:
        """True when no block carries visible content."""
        return not any(_block_has_content(block) for block in self.blocks)

    def text(self) -> str:
        """Concatenated visible text, one block per line (for logging and checks)."""
        lines = []
        for block in self.blocks:
            lines.extend(block_text_lines(block))
        return "\n".join(lines)


# =============================================================================
# RUN HELPERS
# =============================================================================

def plain_runs(text: str, **styles) -> list[InlineRun]:
    """Wrap text in a single run (or none when text is empty)."""
    if not text:
        return []
    return [InlineRun(text=text, **styles)]


def runs_text(runs: list[InlineRun]) -> str:
    return "".join(run.text for run in runs)


def normalize_runs(runs: list[InlineRun]) -> list[InlineRun]:
    """Drop empty runs and merge neighbours with identical styling.

    Source order is preserved; merging never reorders text.
    """
    result: list[InlineRun] = []
    for run in runs:
        if not run.text:
            continue
        if result and result[-1].same_style(run):
            result[-1] = replace(result[-1], text=result[-1].text + run.text)
        else:
            result.append(run)
    return result


def strip_runs(runs: list[InlineRun]) -> list[InlineRun]:
    """Trim leading/trailing whitespace across a run sequence."""
    runs = normalize_runs(runs)
    while runs and not runs[0].text.strip():
        runs = runs[1:]
    while runs and not runs[-1].text.strip():
        runs = runs[:-1]
    if not runs:
        return []
    runs = list(runs)
    runs[0] = replace(runs[0], text=runs[0].text.lstrip())
    runs[-1] = replace(runs[-1], text=runs[-1].text.rstrip())
    return runs


def block_text_lines(block: Block) -> list[str]:
    """Visible text of a block, one entry per rendered line."""
    if isinstance(block, (Heading, Paragraph, Blockquote)):
        text = runs_text(block.runs)
        return [text] if text else []
    if isinstance(block, CodeBlock):
        return block.text.splitlines()
    if isinstance(block, MathFormula):
        return [block.latex]
    if isinstance(block, ListBlock):
        lines = []
        for item in block.items:
            for child in item:
                lines.extend(block_text_lines(child))
        return lines
    if isinstance(block, Table):
        return [" ".join(runs_text(cell.runs) for cell in row) for row in block.rows]
    return []


def _block_has_content(block: Block) -> bool:
    if isinstance(block, HorizontalRule):
        return False
    return any(line.strip() for line in block_text_lines(block))
