from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

FULLWIDTH_ASTERISK = "＊"

_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")

# Doubled markers must run before single ones so `\*\*x\*\*` is not read as `\*` + `*x*` + `\*`.
_UNESCAPE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\\\*\\\*([^*]+?)\\\*\\\*"), r"**\1**"),
    (re.compile(r"\\\*([^*]+?)\\\*"), r"*\1*"),
    (re.compile(r"\\_\\_([^_]+?)\\_\\_"), r"__\1__"),
    (re.compile(r"\\_([^_]+?)\\_"), r"_\1_"),
    (re.compile(r"\\~\\~([^~]+?)\\~\\~"), r"~~\1~~"),
    (re.compile(r"\\`([^`]+?)\\`"), r"`\1`"),
)

# Spans that inline conversion must never rewrite.
_PROTECTED_RE = re.compile(
    r"<(?P<tag>code|pre)\b[^>]*>[\s\S]*?</(?P=tag)\s*>"
    r"|!\[[^\]\n]*\]\([^)\n]*\)"
    r"|\]\([^)\n]*\)"
    r"|<[A-Za-z/!][^>\n]*>"
    r"|(?:https?|ipfs)://[^\s<>()\[\]]+",
    re.IGNORECASE,
)
# A lone backtick pair only; runs of two or more belong to a longer code span.
_CODE_SPAN_RE = re.compile(r"(?<!`)`([^`\n]+?)`(?!`)")
_PLACEHOLDER_RE = re.compile("\x00(\\d+)\x00")

_EMPHASIS_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\*\*(?=\S)((?:(?!\*\*)[\s\S])+?)(?<=\S)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"__(?=\S)((?:(?!__)[\s\S])+?)(?<=\S)__"), r"<strong>\1</strong>"),
    (re.compile(r"(^|[^*])\*(?=[^\s*])([^*\n]+?)(?<=\S)\*(?!\*)", re.MULTILINE), r"\1<em>\2</em>"),
    (re.compile(r"(^|[^\w])_(?=[^\s_])([^_\n]+?)(?<=\S)_(?!\w)", re.MULTILINE), r"\1<em>\2</em>"),
    (re.compile(r"~~(?=\S)((?:(?!~~)[\s\S])+?)(?<=\S)~~"), r"<del>\1</del>"),
)

_MD_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]+\)")
_VIDEO_ELEMENT_RE = re.compile(r"<video[\s\S]*?</video>", re.IGNORECASE)
_IFRAME_ELEMENT_RE = re.compile(r"<iframe[\s\S]*?</iframe>", re.IGNORECASE)


def unescape_markers(line: str) -> str:
    """Undo backslash escaping of paired emphasis, strikethrough and code markers."""
    out = line
    for pattern, repl in _UNESCAPE_RULES:
        out = pattern.sub(repl, out)
    return out


@dataclass
class _Shelf:
    """Holds protected spans behind NUL-delimited placeholders while text is rewritten."""

    items: list[str] = field(default_factory=list)

    def put(self, value: str) -> str:
        self.items.append(value)
        return f"\x00{len(self.items) - 1}\x00"

    def restore(self, text: str) -> str:
        out = text
        # Shelved values may themselves contain placeholders (a URL inside a code span).
        for _ in range(len(self.items) + 1):
            if "\x00" not in out:
                break
            out = _PLACEHOLDER_RE.sub(lambda m: self.items[int(m.group(1))], out)
        return out


def convert_inline_markdown(text: str) -> str:
    """
    Rewrite inline markdown spans as explicit HTML tags.

    Mixed HTML/markdown bodies are common on Hive and a markdown parser stops
    interpreting emphasis inside raw HTML blocks, so strong, em, del and code spans are
    converted up front. HTML tags, existing code/pre elements, image syntax, link
    targets and bare URLs are shelved first and come back unchanged.
    """
    shelf = _Shelf()
    work = _PROTECTED_RE.sub(lambda m: shelf.put(m.group(0)), text)
    work = _CODE_SPAN_RE.sub(lambda m: shelf.put(f"<code>{m.group(1)}</code>"), work)
    for pattern, repl in _EMPHASIS_RULES:
        work = pattern.sub(repl, work)
    return shelf.restore(work)


def _segments(lines: Iterable[str]) -> Iterator[tuple[bool, list[str]]]:
    """Yield (is_code, lines) runs, toggling on fenced code block delimiters."""
    fence: str | None = None
    current: list[str] = []

    for line in lines:
        m = _FENCE_RE.match(line)
        if fence is None:
            if m:
                if current:
                    yield False, current
                fence = m.group(1)
                current = [line]
            else:
                current.append(line)
            continue

        current.append(line)
        if m and m.group(1)[0] == fence[0] and len(m.group(1)) >= len(fence):
            yield True, current
            fence = None
            current = []

    if current:
        # An unclosed fence runs to the end of the document.
        yield fence is not None, current


def normalize_markdown_formatting(
    text: str,
    *,
    inline: Callable[[str], str] = convert_inline_markdown,
) -> str:
    """
    Clean a raw post body so a markdown renderer with raw HTML support handles it.

    Line endings are normalized, the full-width asterisk is folded to `*`, escaped
    markers are unescaped line by line and the remaining inline spans become HTML.
    Fenced code blocks pass through untouched. The result is stable: normalizing it
    again returns the same string.
    """
    value = (text or "").replace("\r\n", "\n").replace(FULLWIDTH_ASTERISK, "*")

    out: list[str] = []
    for is_code, lines in _segments(value.split("\n")):
        if is_code:
            out.append("\n".join(lines))
            continue
        out.append(inline("\n".join(unescape_markers(ln) for ln in lines)))

    return "\n".join(out)


def strip_media(text: str) -> str:
    """Remove markdown images and video/iframe elements, leaving the prose."""
    out = _MD_IMAGE_RE.sub("", text or "")
    out = _VIDEO_ELEMENT_RE.sub("", out)
    return _IFRAME_ELEMENT_RE.sub("", out)
