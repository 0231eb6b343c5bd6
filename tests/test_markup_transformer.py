"""Tests for SiYuan markup to Anki HTML transformation."""

import pytest

from siyuan_anki_sync.markup import MarkupTransformer, render_markdown, sanitize_html


@pytest.fixture
def transformer():
    return MarkupTransformer("http://127.0.0.1:6806", link_scheme="app")


class TestRewriteAssets:
    """Tests for relative asset path rewriting."""

    def test_asset_reference_becomes_absolute(self, transformer) -> None:
        result = transformer.rewrite_assets("(assets/img-20230101000000-abc1234.png)")
        assert result == "(http://127.0.0.1:6806/assets/img-20230101000000-abc1234.png)"

    def test_image_markdown_is_rewritten(self, transformer) -> None:
        md = "![diagram](assets/diagram-20230101000000-x1y2z3w.svg)"
        assert transformer.rewrite_assets(md) == (
            "![diagram](http://127.0.0.1:6806/assets/diagram-20230101000000-x1y2z3w.svg)"
        )

    def test_non_asset_paths_untouched(self, transformer) -> None:
        md = "(assets/readme.png) and (other/img-20230101000000-abc1234.png)"
        assert transformer.rewrite_assets(md) == md

    def test_trailing_slash_in_base_url_is_ignored(self) -> None:
        transformer = MarkupTransformer("http://host:6806/")
        result = transformer.rewrite_assets("(assets/a-20230101000000-abc1234.png)")
        assert result == "(http://host:6806/assets/a-20230101000000-abc1234.png)"


class TestRewriteBlockLinks:
    """Tests for block reference to deep link rewriting."""

    def test_single_quoted_reference(self, transformer) -> None:
        result = transformer.rewrite_block_links("((20230101000000-abc1234 'Note'))")
        assert result == "[Note](app://blocks/20230101000000-abc1234?focus=1)"

    def test_double_quoted_reference(self, transformer) -> None:
        result = transformer.rewrite_block_links('((20230101000000-abc1234 "Other note"))')
        assert result == "[Other note](app://blocks/20230101000000-abc1234?focus=1)"

    def test_multiple_references_in_text(self, transformer) -> None:
        md = "See ((20230101000000-aaaaaaa 'A')) and ((20230101000000-bbbbbbb 'B'))."
        result = transformer.rewrite_block_links(md)
        assert "[A](app://blocks/20230101000000-aaaaaaa?focus=1)" in result
        assert "[B](app://blocks/20230101000000-bbbbbbb?focus=1)" in result

    def test_escaped_reference_untouched(self, transformer) -> None:
        md = "\\((20230101000000-abc1234 'Note'))"
        assert transformer.rewrite_block_links(md) == md

    def test_default_scheme_is_siyuan(self) -> None:
        result = MarkupTransformer("http://h").rewrite_block_links(
            "((20230101000000-abc1234 'N'))"
        )
        assert result == "[N](siyuan://blocks/20230101000000-abc1234?focus=1)"


class TestStripIal:
    def test_attribute_list_removed(self) -> None:
        md = 'Question?\n{: id="20230101000000-abc1234" updated="20240101000000"}'
        assert MarkupTransformer.strip_ial(md) == "Question?"

    def test_plain_braces_kept(self) -> None:
        assert MarkupTransformer.strip_ial("set {a, b}") == "set {a, b}"


class TestMath:
    def test_inline_and_block_math_use_mathjax_delimiters(self, transformer) -> None:
        html = transformer.transform("Energy $E=mc^2$ and\n\n$$\na^2+b^2=c^2\n$$")
        assert "\\(E=mc^2\\)" in html
        assert "\\[a^2+b^2=c^2\\]" in html

    def test_math_is_html_escaped(self, transformer) -> None:
        html = transformer.transform("$a<b$")
        assert "\\(a&lt;b\\)" in html

    def test_dollar_amounts_need_a_pair(self, transformer) -> None:
        html = transformer.transform("costs $5")
        assert "$5" in html
        assert "\\(" not in html

    def test_dollars_in_fenced_code_stay_literal(self, transformer) -> None:
        html = transformer.transform("```bash\necho $HOME $PATH\n```")
        assert "\\(" not in html
        assert "HOME" in html
        assert "PATH" in html
        assert html.count("$") == 2

    def test_dollars_in_unknown_language_code_stay_literal(self, transformer) -> None:
        html = transformer.transform("```\n$a = 1; $b = 2;\n```")
        assert "$a = 1; $b = 2;" in html
        assert "\\(" not in html

    def test_dollars_in_code_span_stay_literal(self, transformer) -> None:
        html = transformer.transform("Use `$a` and `$b` here")
        assert "<code>$a</code>" in html
        assert "<code>$b</code>" in html
        assert "\\(" not in html

    def test_math_next_to_code_span(self, transformer) -> None:
        html = transformer.transform("Run `echo $x` when $y^2$ holds")
        assert "<code>echo $x</code>" in html
        assert "\\(y^2\\)" in html

    def test_math_in_list_and_quote(self, transformer) -> None:
        html = transformer.transform("- item\n\n  $$\n  x+1\n  $$\n\n> $$\n> y\n> $$")
        assert "\\[x+1\\]" in html
        assert "\\[y\\]" in html


class TestTransform:
    """End-to-end transform tests."""

    def test_empty_input(self, transformer) -> None:
        assert transformer.transform("") == ""
        assert transformer.transform("   ") == ""

    def test_block_link_rendered_as_anchor(self, transformer) -> None:
        html = transformer.transform("See ((20230101000000-abc1234 'Note'))")
        assert 'href="app://blocks/20230101000000-abc1234?focus=1"' in html
        assert ">Note</a>" in html

    def test_asset_rendered_as_image(self, transformer) -> None:
        html = transformer.transform("![](assets/img-20230101000000-abc1234.png)")
        assert 'src="http://127.0.0.1:6806/assets/img-20230101000000-abc1234.png"' in html

    def test_bold_and_table(self, transformer) -> None:
        html = transformer.transform("**bold**\n\n| a | b |\n|---|---|\n| 1 | 2 |")
        assert "<strong>bold</strong>" in html
        assert "<table>" in html

    def test_fenced_code_is_highlighted(self, transformer) -> None:
        html = transformer.transform("```python\ndef hello():\n    pass\n```")
        assert "codehilite" in html
        assert "hello" in html

    def test_scripts_are_removed(self, transformer) -> None:
        html = transformer.transform("text <script>alert(1)</script>")
        assert "<script" not in html


class TestSanitizeHtml:
    def test_custom_scheme_kept_only_when_allowed(self) -> None:
        html = '<a href="app://blocks/x">x</a>'
        assert "app://blocks/x" in sanitize_html(html, {"app"})
        assert "app://blocks/x" not in sanitize_html(html)

    def test_render_markdown_empty(self) -> None:
        assert render_markdown("") == ""

    def test_render_markdown_keeps_allowed_app_scheme(self) -> None:
        html = render_markdown("[n](app://blocks/20230101000000-abc1234?focus=1)", {"app"})
        assert 'href="app://blocks/20230101000000-abc1234?focus=1"' in html
        assert "harmful-link" not in html

    def test_render_markdown_drops_app_scheme_by_default(self) -> None:
        html = render_markdown("[n](app://blocks/x)")
        assert "app://" not in html


class TestDeepLinkScheme:
    def test_mixed_case_scheme_survives_rendering(self) -> None:
        transformer = MarkupTransformer("http://h", link_scheme="SiYuan")
        html = transformer.transform("((20230101000000-abc1234 'N'))")
        assert "siyuan://blocks/20230101000000-abc1234?focus=1" in html.lower()
        assert "harmful-link" not in html

    def test_other_schemes_still_blocked(self, transformer) -> None:
        html = transformer.transform("[x](javascript:alert(1)) and [y](other://z)")
        assert "javascript:" not in html
        assert "other://" not in html
