from __future__ import annotations

from typing import Sequence

import markdown
from jinja2 import Environment
from markupsafe import Markup

from .blocks import ContentBlock, MediaBlock, ProseBlock, split_blocks
from .errors import RenderError
from .formatting import normalize_markdown_formatting, strip_media
from .media import DEFAULT_PROXY_BASE, proxy_fallback_url

_MARKDOWN_EXTENSIONS: tuple[str, ...] = ("tables", "fenced_code", "sane_lists")

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

_CAROUSEL = _env.from_string(
    """\
<figure class="carousel" data-count="{{ images|length }}">
{% for img in images %}
  <img src="{{ img.src }}" alt="{{ img.alt }}" loading="lazy"
       {%- if img.fallback %} data-fallback-src="{{ img.fallback }}"{% endif %}>
{% endfor %}
</figure>"""
)

_PAGE = _env.from_string(
    """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
</head>
<body>
<article class="markdown-content">
{% for html in sections %}
<section>
{{ html }}
</section>
{% endfor %}
</article>
</body>
</html>
"""
)


def render_prose(block: ProseBlock) -> str:
    try:
        return markdown.markdown(block.text, extensions=list(_MARKDOWN_EXTENSIONS))
    except Exception as e:
        raise RenderError(f"Failed to render markdown block: {e}") from e


def render_media(block: MediaBlock, *, proxy_base: str = DEFAULT_PROXY_BASE) -> str:
    images = [
        {
            "src": img.src,
            "alt": img.alt,
            "fallback": proxy_fallback_url(img.src, proxy_base=proxy_base),
        }
        for img in block.images
    ]
    return _CAROUSEL.render(images=images)


def render_blocks(
    blocks: Sequence[ContentBlock], *, proxy_base: str = DEFAULT_PROXY_BASE
) -> list[str]:
    out: list[str] = []
    for block in blocks:
        if isinstance(block, MediaBlock):
            out.append(render_media(block, proxy_base=proxy_base))
        else:
            out.append(render_prose(block))
    return out


def prepare_body(body: str, *, remove_media: bool = False) -> list[ContentBlock]:
    """Normalize a post body and split it into content blocks."""
    text = strip_media(body) if remove_media else body
    return split_blocks(normalize_markdown_formatting(text))


def render_body(
    body: str,
    *,
    remove_media: bool = False,
    proxy_base: str = DEFAULT_PROXY_BASE,
) -> str:
    blocks = prepare_body(body, remove_media=remove_media)
    return "\n".join(render_blocks(blocks, proxy_base=proxy_base))


def render_page(
    title: str,
    body: str,
    *,
    proxy_base: str = DEFAULT_PROXY_BASE,
) -> str:
    """A standalone HTML preview of one post body."""
    sections = [Markup(html) for html in render_blocks(prepare_body(body), proxy_base=proxy_base)]
    return _PAGE.render(title=title, sections=sections)
