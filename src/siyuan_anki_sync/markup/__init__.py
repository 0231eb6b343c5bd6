"""SiYuan markup to Anki HTML conversion."""

from .html_renderer import get_pygments_css, render_markdown, sanitize_html
from .transformer import MarkupTransformer

__all__ = [
    "MarkupTransformer",
    "get_pygments_css",
    "render_markdown",
    "sanitize_html",
]
