"""
Page metadata parsing using BeautifulSoup.

This module provides the `MetadataParser` class, which wraps BeautifulSoup to
read the document title, `<meta>` name/property pairs, the canonical URL and the
base href from serialized page markup, plus `extract_page_metadata`, which the
crawler uses to attach metadata to markup responses.
"""
from bs4 import BeautifulSoup
from typing import Dict, Optional

from render_crawler.core.exceptions import ExtractorError
from render_crawler.core.logger import get_logger

logger = get_logger(__name__)


class MetadataParser:
    """
    Reads metadata from an HTML document.

    Attributes:
        soup (BeautifulSoup): An instance of BeautifulSoup representing the parsed HTML.
    """
    def __init__(self, html_content: str):
        """
        Args:
            html_content (str): The HTML content string to be parsed.

        Raises:
            ExtractorError: If `html_content` is None or BeautifulSoup fails to parse it.
        """
        if html_content is None:
            raise ExtractorError("HTML content cannot be None for MetadataParser.")

        try:
            self.soup = BeautifulSoup(html_content, 'html.parser')
        except Exception as e:
            raise ExtractorError(f"Failed to initialize BeautifulSoup parser: {e}")

    def get_title(self) -> Optional[str]:
        """
        Returns:
            Optional[str]: The stripped text of the `<title>` tag, or None when absent or empty.
        """
        if self.soup.title and self.soup.title.string:
            return self.soup.title.string.strip()
        return None

    def get_meta_tags(self) -> Dict[str, str]:
        """
        Collects `<meta>` tags that carry both a key (`name`, else `property`) and `content`.

        Returns:
            Dict[str, str]: Key to content. Later tags win when a key repeats.
        """
        meta_tags: Dict[str, str] = {}
        for meta in self.soup.find_all('meta'):
            key = meta.get('name') or meta.get('property')
            content = meta.get('content')
            if key and content:
                meta_tags[key] = content
        return meta_tags

    def get_canonical_url(self) -> Optional[str]:
        for link in self.soup.find_all('link', href=True):
            rel = link.get('rel') or []
            # html.parser splits multi-valued rel into a list.
            if isinstance(rel, str):
                rel = rel.split()
            if 'canonical' in (value.lower() for value in rel):
                return link['href']
        return None

    def get_base_url(self) -> Optional[str]:
        base = self.soup.find('base', href=True)
        return base['href'] if base else None

    def get_metadata(self) -> Dict[str, str]:
        """
        Builds the metadata mapping attached to markup responses.

        Returns:
            Dict[str, str]: Always has `title` (empty when missing); then every meta tag,
            then `canonical` and `base` when the document declares them.
        """
        metadata: Dict[str, str] = {"title": self.get_title() or ""}
        metadata.update(self.get_meta_tags())
        canonical = self.get_canonical_url()
        if canonical:
            metadata["canonical"] = canonical
        base = self.get_base_url()
        if base:
            metadata["base"] = base
        return metadata


async def extract_page_metadata(session, html: Optional[str] = None) -> Dict[str, str]:
    """
    Returns metadata for the session's page.

    Parses `html` when given (saving a second round trip), else the page's current
    markup. If parsing fails, falls back to `{"title": page.title()}`, and to an
    empty title if even that fails.
    """
    page = session.page
    try:
        if html is None:
            html = await page.content()
        return MetadataParser(html).get_metadata()
    except Exception as e:
        logger.error(f"Error extracting metadata: {e}", exc_info=True)

    title = ""
    try:
        title = await page.title()
    except Exception as e:
        logger.error(f"Error getting page title: {e}", exc_info=True)
    return {"title": title}
