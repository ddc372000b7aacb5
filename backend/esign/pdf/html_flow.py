"""Convert document body markup (rich-text editor HTML) into paragraph markup.

Only the inline subset reportlab paragraphs understand survives; block
elements become separate paragraphs, unknown tags are dropped and their text
kept.
"""

import html
from dataclasses import dataclass
from html.parser import HTMLParser

_INLINE_TAGS = {
    "b": "b",
    "strong": "b",
    "i": "i",
    "em": "i",
    "u": "u",
    "s": "strike",
    "strike": "strike",
    "del": "strike",
    "sup": "super",
    "sub": "sub",
}
_BLOCK_STYLES = {
    "p": "body",
    "div": "body",
    "h1": "heading",
    "h2": "heading",
    "h3": "subheading",
    "h4": "subheading",
    "h5": "subheading",
    "h6": "subheading",
    "blockquote": "quote",
    "li": "bullet",
    "tr": "body",
}
_SKIP_TAGS = {"script", "style", "head", "title"}


@dataclass(frozen=True)
class FlowParagraph:
    """One paragraph of reportlab markup with a style role."""

    markup: str
    style: str = "body"
    alignment: str | None = None


class _FlowParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.paragraphs: list[FlowParagraph] = []
        self._buffer: list[str] = []
        self._open_inline: list[str] = []
        self._style = "body"
        self._alignment: str | None = None
        self._list_stack: list[list[int] | None] = []  # counter for <ol>, None for <ul>
        self._skip_depth = 0
        self._cell_index = 0

    def _flush(self) -> None:
        for tag in reversed(self._open_inline):
            self._buffer.append(f"</{tag}>")
        text = "".join(self._buffer).strip()
        plain = text
        for tag in ("b", "i", "u", "strike", "super", "sub"):
            plain = plain.replace(f"<{tag}>", "").replace(f"</{tag}>", "")
        if plain.replace("<br/>", "").strip():
            self.paragraphs.append(FlowParagraph(text, self._style, self._alignment))
        self._buffer = [f"<{tag}>" for tag in self._open_inline]
        self._style = "body"
        self._alignment = None

    @staticmethod
    def _alignment_of(attrs: list[tuple[str, str | None]]) -> str | None:
        for name, value in attrs:
            if name == "style" and value and "text-align" in value:
                for option in ("center", "right", "justify", "left"):
                    if option in value:
                        return option
            if name == "align" and value:
                return value.lower()
        return None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _SKIP_TAGS:
            self._skip_depth += 1
            return
        if tag in _INLINE_TAGS:
            mapped = _INLINE_TAGS[tag]
            self._open_inline.append(mapped)
            self._buffer.append(f"<{mapped}>")
        elif tag == "br":
            self._buffer.append("<br/>")
        elif tag in ("ul", "ol"):
            self._flush()
            self._list_stack.append([0] if tag == "ol" else None)
        elif tag in ("td", "th"):
            if self._cell_index > 0:
                self._buffer.append(" | ")
            self._cell_index += 1
            if tag == "th":
                self._open_inline.append("b")
                self._buffer.append("<b>")
        elif tag in _BLOCK_STYLES:
            self._flush()
            self._style = _BLOCK_STYLES[tag]
            self._alignment = self._alignment_of(attrs)
            if tag == "tr":
                self._cell_index = 0
            if tag == "li":
                counter = self._list_stack[-1] if self._list_stack else None
                if counter is not None:
                    counter[0] += 1
                    self._buffer.append(f"{counter[0]}. ")
                else:
                    self._buffer.append("• ")

    def handle_endtag(self, tag: str) -> None:
        if tag in _SKIP_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if tag in _INLINE_TAGS or tag == "th":
            mapped = "b" if tag == "th" else _INLINE_TAGS[tag]
            if mapped in self._open_inline:
                # close inner tags, then reopen them after removing this one
                idx = len(self._open_inline) - 1 - self._open_inline[::-1].index(mapped)
                inner = self._open_inline[idx + 1 :]
                for t in reversed(inner):
                    self._buffer.append(f"</{t}>")
                self._buffer.append(f"</{mapped}>")
                for t in inner:
                    self._buffer.append(f"<{t}>")
                del self._open_inline[idx]
        elif tag in ("ul", "ol"):
            self._flush()
            if self._list_stack:
                self._list_stack.pop()
        elif tag in _BLOCK_STYLES:
            self._flush()

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        collapsed = " ".join(data.split())
        if not collapsed:
            if data and self._buffer and not self._buffer[-1].endswith(" "):
                self._buffer.append(" ")
            return
        if data[:1].isspace():
            collapsed = " " + collapsed
        if data[-1:].isspace():
            collapsed += " "
        self._buffer.append(html.escape(collapsed, quote=False))

    def close(self) -> None:
        super().close()
        self._flush()
        self._open_inline.clear()
        self._buffer = []


def html_to_paragraphs(markup: str) -> list[FlowParagraph]:
    """Split body markup into paragraphs of reportlab inline markup.

    Plain text without tags becomes one paragraph per line.
    """
    if "<" not in markup:
        return [
            FlowParagraph(html.escape(line.strip(), quote=False))
            for line in markup.splitlines()
            if line.strip()
        ]
    parser = _FlowParser()
    parser.feed(markup)
    parser.close()
    return parser.paragraphs
