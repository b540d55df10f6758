"""Plain-text rendering of message markup for the preview pane.

Message bodies are CommonMark. They are flattened into prefixed raw lines
(quote markers, list bullets, heading hashes, code indentation) and then
word-wrapped so that continuation lines stay aligned under their prefix.
"""

from dataclasses import dataclass

from markdown_it import MarkdownIt
from markdown_it.token import Token

CODE_INDENT = "    "
QUOTE_MARKER = "> "
BULLET_MARKER = "- "
NESTED_INDENT = "  "
RULE_CHAR = "─"
MAX_RULE_WIDTH = 48

_parser = MarkdownIt("commonmark").enable(["table", "strikethrough"])


def chunk_by_width(text: str, width: int) -> list[str]:
    """Split text into pieces of at most width characters."""
    width = max(width, 1)
    return [text[i : i + width] for i in range(0, len(text), width)]


def wrap_text_lines(text: str, width: int) -> list[str]:
    """Greedy word wrap; words longer than width are hard-chunked.

    Blank source lines are kept as empty strings. Always returns at least
    one line.
    """
    if width <= 0:
        return [""]

    out: list[str] = []
    for raw in text.splitlines():
        current = ""
        for word in raw.split():
            if current and len(current) + 1 + len(word) <= width:
                current += " " + word
                continue
            if current:
                out.append(current)
                current = ""
            if len(word) <= width:
                current = word
            else:
                out.extend(chunk_by_width(word, width))
        if current:
            out.append(current)
        elif not raw.strip():
            out.append("")

    return out or [""]


def slice_chars(text: str, start: int, end_exclusive: int) -> str:
    """Character slice with both bounds clamped to the string."""
    start = min(start, len(text))
    end = max(min(end_exclusive, len(text)), start)
    return text[start:end]


@dataclass
class RawLine:
    """One logical output line before wrapping."""

    prefix: str = ""
    body: str = ""
    code: bool = False

    @property
    def blank(self) -> bool:
        return not self.prefix and not self.body and not self.code


class _LineCollector:
    """Walks a markdown-it token stream and emits RawLines."""

    def __init__(self, width: int):
        self.width = width
        self.raw: list[RawLine] = []
        self.prefix = ""
        self.body = ""
        self.quote_depth = 0
        # One entry per open list: None for bullets, next number for ordered
        self.lists: list[int | None] = []
        self.cell_index = 0

    def container_prefix(self) -> str:
        return QUOTE_MARKER * self.quote_depth + NESTED_INDENT * len(self.lists)

    def flush(self) -> None:
        if self.prefix or self.body:
            self.raw.append(RawLine(prefix=self.prefix, body=self.body))
        self.prefix = ""
        self.body = ""

    def blank(self) -> None:
        self.raw.append(RawLine())

    def append(self, text: str) -> None:
        if not text:
            return
        if not self.prefix and not self.body:
            self.prefix = self.container_prefix()
        self.body += text

    def feed(self, tokens: list[Token]) -> list[RawLine]:
        for token in tokens:
            self.handle(token)
        self.flush()
        while self.raw and self.raw[-1].blank:
            self.raw.pop()
        return self.raw

    def handle(self, token: Token) -> None:
        kind = token.type

        if kind == "paragraph_close":
            if not token.hidden:
                self.flush()
                self.blank()
        elif kind == "heading_open":
            self.flush()
            level = int(token.tag[1:]) if token.tag[1:].isdigit() else 1
            self.prefix = QUOTE_MARKER * self.quote_depth + "#" * level + " "
        elif kind == "heading_close":
            self.flush()
            self.blank()
        elif kind == "blockquote_open":
            self.flush()
            self.quote_depth += 1
        elif kind == "blockquote_close":
            self.flush()
            self.quote_depth = max(self.quote_depth - 1, 0)
            self.blank()
        elif kind == "bullet_list_open":
            self.flush()
            self.lists.append(None)
        elif kind == "ordered_list_open":
            self.flush()
            start = token.attrGet("start")
            self.lists.append(int(start) if start is not None else 1)
        elif kind in ("bullet_list_close", "ordered_list_close"):
            self.flush()
            if self.lists:
                self.lists.pop()
            if not self.lists:
                self.blank()
        elif kind == "list_item_open":
            self.flush()
            self.prefix = QUOTE_MARKER * self.quote_depth + NESTED_INDENT * max(len(self.lists) - 1, 0)
            if self.lists and self.lists[-1] is not None:
                number = self.lists[-1]
                self.prefix += f"{number}. "
                self.lists[-1] = number + 1
            else:
                self.prefix += BULLET_MARKER
        elif kind == "list_item_close":
            self.flush()
        elif kind in ("fence", "code_block"):
            self.flush()
            for code_line in token.content.splitlines():
                self.raw.append(RawLine(body=code_line, code=True))
            self.blank()
        elif kind == "hr":
            self.flush()
            self.raw.append(RawLine(body=RULE_CHAR * min(self.width, MAX_RULE_WIDTH)))
        elif kind == "tr_open":
            self.flush()
            self.cell_index = 0
        elif kind in ("th_open", "td_open"):
            if self.cell_index > 0:
                self.append(" | ")
            self.cell_index += 1
        elif kind == "tr_close":
            self.flush()
        elif kind == "table_close":
            self.flush()
            self.blank()
        elif kind == "inline":
            self.handle_inline(token.children or [])

    def handle_inline(self, children: list[Token]) -> None:
        for child in children:
            if child.type in ("text", "code_inline", "image"):
                self.append(child.content)
            elif child.type == "softbreak":
                self.append(" ")
            elif child.type == "hardbreak":
                self.flush()


def markdown_raw_lines(text: str, width: int) -> list[RawLine]:
    return _LineCollector(width).feed(_parser.parse(text))


def render_markdown_lines(text: str, width: int) -> list[str]:
    """Render markup to plain lines no wider than width."""
    if width <= 0:
        return [""]

    out: list[str] = []
    for raw in markdown_raw_lines(text, width):
        if raw.blank:
            out.append("")
            continue

        if raw.code:
            chunks = chunk_by_width(raw.body, max(width - len(CODE_INDENT), 1))
            if not chunks:
                out.append(CODE_INDENT)
            out.extend(CODE_INDENT + chunk for chunk in chunks)
            continue

        if not raw.body.strip():
            out.append(raw.prefix)
            continue

        pad = " " * len(raw.prefix)
        wrapped = wrap_text_lines(raw.body.strip(), max(width - len(raw.prefix), 1))
        for idx, line in enumerate(wrapped):
            out.append((raw.prefix if idx == 0 else pad) + line)

    return out or [""]
