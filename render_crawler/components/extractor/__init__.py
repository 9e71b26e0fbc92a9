"""
Extractor component for the render crawler.

This sub-package turns a live page session into content: serialized markup,
visible text, selector-matched elements and page metadata. Every extractor
decides visibility with the shared oracle in `visibility`.
"""
from .visibility import is_visible, STYLE_SNAPSHOT_JS
from .markup import extract_markup, clean_markup
from .metadata_parser import MetadataParser, extract_page_metadata
from .text import extract_text
from .selector import extract_by_selector, extract_text_by_selector, extract_attribute_by_selector

__all__ = [
    "is_visible",
    "STYLE_SNAPSHOT_JS",
    "extract_markup",
    "clean_markup",
    "MetadataParser",
    "extract_page_metadata",
    "extract_text",
    "extract_by_selector",
    "extract_text_by_selector",
    "extract_attribute_by_selector",
]
