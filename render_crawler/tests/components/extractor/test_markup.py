import pytest

from render_crawler.components.extractor.markup import clean_markup, extract_markup, strip_scripts, strip_styles
from render_crawler.core.models import MarkupOptions

SAMPLE_HTML = (
    '<html><head>'
    '<link rel="stylesheet" href="/site.css">'
    '<style>body { color: red; }</style>'
    '<script src="/app.js"></script>'
    '</head><body>'
    '<script>alert(1)</script><p style="color: blue" class="lead">Kept</p>'
    '<SCRIPT type="text/javascript">\nvar x = "<p>";\n</SCRIPT>'
    '</body></html>'
)


def test_strip_scripts_removes_every_script_element():
    cleaned = strip_scripts(SAMPLE_HTML)
    assert "<script" not in cleaned.lower()
    assert "alert(1)" not in cleaned
    assert '<p style="color: blue" class="lead">Kept</p>' in cleaned


def test_strip_scripts_is_non_greedy():
    html = "<script>a()</script><p>Between</p><script>b()</script>"
    assert strip_scripts(html) == "<p>Between</p>"


def test_strip_styles_removes_style_elements_inline_styles_and_stylesheet_links():
    cleaned = strip_styles(SAMPLE_HTML)
    assert "<style" not in cleaned
    assert "stylesheet" not in cleaned
    assert 'style="' not in cleaned
    assert '<p class="lead">Kept</p>' in cleaned
    # Scripts are untouched by style stripping.
    assert "alert(1)" in cleaned


def test_clean_markup_without_flags_returns_input_unchanged():
    assert clean_markup(SAMPLE_HTML) == SAMPLE_HTML


@pytest.mark.asyncio
async def test_extract_markup_remove_scripts(mock_session):
    mock_session.page.content.return_value = "<html><body><script>alert(1)</script><p>Kept</p></body></html>"

    html = await extract_markup(mock_session, MarkupOptions(remove_scripts=True))

    assert "<p>Kept</p>" in html
    assert "<script>" not in html
    mock_session.page.content.assert_awaited_once()


@pytest.mark.asyncio
async def test_extract_markup_defaults_return_full_document(mock_session):
    mock_session.page.content.return_value = SAMPLE_HTML
    assert await extract_markup(mock_session) == SAMPLE_HTML
