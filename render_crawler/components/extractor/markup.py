"""
Markup extractor: serialized page markup with optional script/style stripping.

Stripping is a textual pass over the serialized document; the live DOM is
never touched, so later extractors on the same page still see scripts and styles.
"""
import re

from render_crawler.core.models import MarkupOptions
from render_crawler.core.logger import get_logger

logger = get_logger(__name__)

SCRIPT_ELEMENT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
STYLE_ELEMENT_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
INLINE_STYLE_RE = re.compile(r"""\s+style\s*=\s*(['"]).*?\1""", re.IGNORECASE | re.DOTALL)
STYLESHEET_LINK_RE = re.compile(r"""<link\s+[^>]*rel\s*=\s*(['"])stylesheet\1[^>]*>""", re.IGNORECASE)


def strip_scripts(html: str) -> str:
    """Removes every script element together with its body."""
    return SCRIPT_ELEMENT_RE.sub("", html)


def strip_styles(html: str) -> str:
    """Removes style elements, inline style attributes and stylesheet link elements."""
    html = STYLE_ELEMENT_RE.sub("", html)
    html = INLINE_STYLE_RE.sub("", html)
    return STYLESHEET_LINK_RE.sub("", html)


def clean_markup(html: str, remove_scripts: bool = False, remove_styles: bool = False) -> str:
    if remove_scripts:
        html = strip_scripts(html)
    if remove_styles:
        html = strip_styles(html)
    return html


async def extract_markup(session, options: MarkupOptions = MarkupOptions()) -> str:
    """
    Returns the full serialized document markup of the session's page.

    Args:
        session (PageSession): The active page session.
        options (MarkupOptions): `remove_scripts` / `remove_styles` post-processing flags.

    Returns:
        str: The (optionally cleaned) markup.
    """
    html = await session.page.content()
    cleaned = clean_markup(html, remove_scripts=options.remove_scripts, remove_styles=options.remove_styles)
    logger.debug(
        f"Extracted markup ({len(html)} chars, {len(cleaned)} after cleanup; "
        f"remove_scripts={options.remove_scripts}, remove_styles={options.remove_styles})."
    )
    return cleaned
