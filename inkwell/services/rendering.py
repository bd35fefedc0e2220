import html
import re

import markdown
from markdown.extensions.codehilite import CodeHiliteExtension
from markdown.extensions.fenced_code import FencedCodeExtension
from markdown.extensions.footnotes import FootnoteExtension
from markdown.extensions.sane_lists import SaneListExtension
from markdown.extensions.smarty import SmartyExtension
from markdown.extensions.tables import TableExtension

TAG_RE = re.compile(r"<[^>]+>")
WHITESPACE_RE = re.compile(r"\s+")


def create_markdown_renderer() -> markdown.Markdown:
    """Create the Markdown renderer used for post bodies."""
    return markdown.Markdown(
        extensions=[
            FencedCodeExtension(),
            CodeHiliteExtension(
                css_class="codehilite",
                linenums=False,
                guess_lang=False,
                use_pygments=True,
            ),
            TableExtension(),
            SaneListExtension(),
            SmartyExtension(smart_quotes=True, smart_dashes=True, smart_ellipses=True),
            FootnoteExtension(SEPARATOR="-"),
        ],
        output_format="html",
    )


def render_markdown(text: str) -> str:
    # Markdown instances keep per-document state, so each call gets its own
    return create_markdown_renderer().convert(text)


def excerpt(content_html: str, length: int = 150) -> str:
    """Plain-text summary of rendered HTML, cut on a word boundary."""
    text = html.unescape(TAG_RE.sub(" ", content_html))
    text = WHITESPACE_RE.sub(" ", text).strip()
    if len(text) <= length:
        return text
    cut = text[:length].rsplit(" ", 1)[0]
    return cut.rstrip(".,;:") + "…"
