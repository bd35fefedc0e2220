from inkwell.services.post import slugify
from inkwell.services.rendering import excerpt, render_markdown


def test_slugify():
    assert slugify("Hello World") == "hello-world"
    assert slugify("  Crème brûlée: a recipe!  ") == "creme-brulee-a-recipe"
    assert slugify("snake_case and--dashes") == "snake-case-and-dashes"
    assert slugify("???") == "post"


def test_render_markdown():
    html = render_markdown("# Title\n\n| a | b |\n|---|---|\n| 1 | 2 |")
    assert "<h1>Title</h1>" in html
    assert "<table>" in html


def test_render_fenced_code():
    html = render_markdown("```python\nprint('hi')\n```")
    assert "codehilite" in html


def test_excerpt_strips_tags():
    assert excerpt("<p>Hello <em>there</em> &amp; welcome</p>") == "Hello there & welcome"


def test_excerpt_cuts_on_word_boundary():
    text = "<p>" + "word " * 50 + "</p>"
    result = excerpt(text, length=22)
    assert result == "word word word word…"
    assert len(result) <= 23
