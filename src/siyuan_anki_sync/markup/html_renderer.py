"""Render SiYuan markdown to sanitized HTML for Anki.

Uses mistune for Markdown parsing, Pygments for syntax highlighting, and nh3
for HTML sanitization.
"""

from collections.abc import Iterable

import mistune
import nh3
from mistune.plugins.math import math_in_list, math_in_quote
from mistune.util import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from siyuan_anki_sync.utils.logging import get_logger

logger = get_logger(__name__)

# Allowed HTML tags for Anki cards (used by nh3 sanitizer)
ALLOWED_TAGS = {
    "p",
    "br",
    "strong",
    "b",
    "em",
    "i",
    "u",
    "s",
    "del",
    "mark",
    "code",
    "pre",
    "ul",
    "ol",
    "li",
    "input",
    "table",
    "thead",
    "tbody",
    "tr",
    "th",
    "td",
    "blockquote",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "a",
    "img",
    "div",
    "span",
    "sup",
    "sub",
    "hr",
}

_GLOBAL_ATTRIBUTES = {"class", "id", "style"}

# "rel" is excluded from "a" because nh3.clean() sets it through link_rel
_TAG_SPECIFIC_ATTRIBUTES = {
    "a": {"href", "title"},
    "img": {"src", "alt", "title", "width", "height"},
    "input": {"type", "checked", "disabled"},
    "td": {"colspan", "rowspan", "align"},
    "th": {"colspan", "rowspan", "align"},
}

BASE_URL_SCHEMES = {"http", "https", "mailto"}


def _build_allowed_attributes() -> dict[str, set[str]]:
    """Build allowed attributes dict with global attrs applied to all tags."""
    result: dict[str, set[str]] = {}
    for tag in ALLOWED_TAGS:
        result[tag] = _GLOBAL_ATTRIBUTES | _TAG_SPECIFIC_ATTRIBUTES.get(tag, set())
    return result


ALLOWED_ATTRIBUTES = _build_allowed_attributes()


class AnkiHighlightRenderer(mistune.HTMLRenderer):
    """Mistune renderer for Anki fields.

    Fenced code is highlighted with Pygments and math is emitted with the
    MathJax delimiters Anki understands. ``link_schemes`` are app URL
    schemes (such as block deep links) that mistune would otherwise replace
    with ``#harmful-link``.
    """

    def __init__(self, escape: bool = True, link_schemes: Iterable[str] = ()) -> None:
        protocols = tuple(f"{scheme.lower()}:" for scheme in link_schemes)
        super().__init__(escape=escape, allow_harmful_protocols=protocols or None)
        self._formatter = HtmlFormatter(cssclass="codehilite", linenos=False)

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info and info.strip() else None
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                logger.debug("code_lexer_not_found", language=lang)
            else:
                highlighted: str = highlight(code, lexer, self._formatter)
                return highlighted

        lang_class = f"language-{lang}" if lang else "language-text"
        return f'<pre><code class="{lang_class}">{escape(code)}</code></pre>\n'

    def block_math(self, text: str) -> str:
        return f'<div class="math">\\[{escape(text.strip())}\\]</div>\n'

    def inline_math(self, text: str) -> str:
        return f'<span class="math">\\({escape(text)}\\)</span>'


def create_markdown(extra_url_schemes: set[str] | None = None) -> mistune.Markdown:
    """Create a configured mistune converter.

    Math is parsed by mistune's math plugin, so dollar signs inside code
    spans and fenced code stay literal.
    """
    return mistune.create_markdown(
        renderer=AnkiHighlightRenderer(link_schemes=sorted(extra_url_schemes or ())),
        plugins=[
            "strikethrough",
            "table",
            "task_lists",
            "mark",
            "math",
            math_in_quote,
            math_in_list,
        ],
    )


def sanitize_html(html: str, extra_url_schemes: set[str] | None = None) -> str:
    """Sanitize HTML with nh3, keeping link schemes Anki can open.

    Args:
        html: Raw HTML string
        extra_url_schemes: URL schemes to allow on top of http/https/mailto,
            such as the deep-link scheme of block references

    Returns:
        Sanitized HTML string
    """
    if not html:
        return html

    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=BASE_URL_SCHEMES | {scheme.lower() for scheme in extra_url_schemes or ()},
        link_rel="noopener noreferrer",
        strip_comments=True,
    )


def render_markdown(
    md_content: str,
    extra_url_schemes: set[str] | None = None,
    markdown: mistune.Markdown | None = None,
) -> str:
    """Convert markdown to sanitized HTML.

    Args:
        md_content: Markdown text
        extra_url_schemes: Additional URL schemes the sanitizer keeps
        markdown: Optional pre-built converter to reuse across calls

    Returns:
        HTML suitable for an Anki field
    """
    if not md_content or not md_content.strip():
        return ""

    converter = markdown or create_markdown(extra_url_schemes)
    result = converter(md_content)
    html: str = result if isinstance(result, str) else str(result)
    return sanitize_html(html, extra_url_schemes).strip()


def get_pygments_css(style: str = "default") -> str:
    """Return the CSS for Pygments highlighting, for the note type stylesheet."""
    formatter = HtmlFormatter(style=style, cssclass="codehilite")
    result: str = formatter.get_style_defs()
    return result
