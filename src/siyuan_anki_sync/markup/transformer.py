"""Rewrite SiYuan markup into Anki-ready HTML.

Asset and block-reference rewrites run on raw markup before rendering,
because the markdown renderer would otherwise escape the ``((id 'label'))``
syntax. Math (``$..$`` and ``$$..$$``) is left to the renderer so that dollar
signs inside code stay literal.
"""

import re

from siyuan_anki_sync.utils.logging import get_logger

from .html_renderer import create_markdown, render_markdown

logger = get_logger(__name__)

# (assets/<name>-<14-digit timestamp>-<7 chars>.<ext>)
ASSET_PATTERN = re.compile(r"(?<=\()assets/(?=[\w.-]*\d{14}-[0-9a-zA-Z]{7}\.\w+\))")

# ((<block id> 'label')) or ((<block id> "label"))
BLOCK_LINK_PATTERN = re.compile(
    r"(?<!\\)\(\((\d{14}-[0-9a-zA-Z]{7}) (?:'([^']*)'|\"([^\"]*)\")\)\)"
)

# kramdown inline attribute lists: {: id="..." updated="..."}
IAL_PATTERN = re.compile(r"\{:[^}\n]*\}")


class MarkupTransformer:
    """Pure markup -> HTML transformation for one SiYuan instance.

    Args:
        siyuan_url: Base URL of the SiYuan kernel, used to make asset
            links absolute
        link_scheme: URL scheme of block deep links
    """

    def __init__(self, siyuan_url: str, link_scheme: str = "siyuan"):
        self.siyuan_url = siyuan_url.rstrip("/")
        self.link_scheme = link_scheme
        self._markdown = create_markdown({link_scheme})

    def rewrite_assets(self, markup: str) -> str:
        return ASSET_PATTERN.sub(f"{self.siyuan_url}/assets/", markup)

    def rewrite_block_links(self, markup: str) -> str:
        def _link(match: re.Match[str]) -> str:
            block_id = match.group(1)
            label = match.group(2) if match.group(2) is not None else match.group(3)
            return f"[{label}]({self.link_scheme}://blocks/{block_id}?focus=1)"

        return BLOCK_LINK_PATTERN.sub(_link, markup)

    @staticmethod
    def strip_ial(markup: str) -> str:
        stripped = IAL_PATTERN.sub("", markup)
        # Drop lines that held nothing but an attribute list
        return "\n".join(line.rstrip() for line in stripped.split("\n")).strip()

    def transform(self, markup: str) -> str:
        """Transform SiYuan markup into sanitized HTML."""
        if not markup or not markup.strip():
            return ""

        text = self.strip_ial(markup)
        text = self.rewrite_assets(text)
        text = self.rewrite_block_links(text)
        return render_markdown(
            text, extra_url_schemes={self.link_scheme}, markdown=self._markdown
        )
