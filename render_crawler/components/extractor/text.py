"""
Visible-text extractor.

One page round trip collects every text node under `<body>` (document order)
together with its parent element's tag and style snapshot, plus every image's
alt text and snapshot. Filtering and joining happen in Python with the
visibility oracle.
"""
from typing import Any, Dict, List

from render_crawler.components.extractor.visibility import STYLE_SNAPSHOT_JS, is_visible
from render_crawler.core.models import TextOptions
from render_crawler.core.logger import get_logger

logger = get_logger(__name__)

EXCLUDED_PARENT_TAGS = frozenset({"script", "style", "noscript", "template"})

TEXT_NODES_JS = """
() => {
%s
  const body = document.body;
  if (!body) {
    return { nodes: [], images: [] };
  }
  const nodes = [];
  const walker = document.createTreeWalker(body, NodeFilter.SHOW_TEXT);
  let node = walker.nextNode();
  while (node) {
    const parent = node.parentElement;
    nodes.push({
      text: node.textContent || '',
      tag: parent ? parent.tagName.toLowerCase() : null,
      style: snapshot(parent),
    });
    node = walker.nextNode();
  }
  const images = Array.from(body.querySelectorAll('img')).map((img) => ({
    alt: img.getAttribute('alt') || '',
    style: snapshot(img),
  }));
  return { nodes, images };
}
""" % STYLE_SNAPSHOT_JS


def select_text_fragments(nodes: List[Dict[str, Any]], min_text_length: int = 1) -> List[str]:
    """
    Keeps the raw content of every text node that is non-empty, long enough once
    trimmed, not inside script/style/noscript/template, and whose parent is visible.
    """
    fragments: List[str] = []
    for node in nodes:
        content = node.get("text") or ""
        if not content:
            continue
        if len(content.strip()) < min_text_length:
            continue
        if (node.get("tag") or "").lower() in EXCLUDED_PARENT_TAGS:
            continue
        if not is_visible(node.get("style")):
            continue
        fragments.append(content)
    return fragments


def select_image_markers(images: List[Dict[str, Any]], min_text_length: int = 1) -> List[str]:
    markers: List[str] = []
    for image in images:
        alt = (image.get("alt") or "").strip()
        if not alt or len(alt) < min_text_length:
            continue
        if not is_visible(image.get("style")):
            continue
        markers.append(f"[Image: {alt}]")
    return markers


def join_text(fragments: List[str], markers: List[str], preserve_whitespace: bool = False) -> str:
    """
    Default mode trims every fragment and joins with single spaces. With
    `preserve_whitespace` the fragments are concatenated verbatim. Image markers
    always follow the text, separated by single spaces.
    """
    if preserve_whitespace:
        text = "".join(fragments)
    else:
        text = " ".join(stripped for stripped in (f.strip() for f in fragments) if stripped)
    if not markers:
        return text
    if text:
        return text + " " + " ".join(markers)
    return " ".join(markers)


async def extract_text(session, options: TextOptions = TextOptions()) -> str:
    """
    Extracts the visible text of the session's page.

    Args:
        session (PageSession): The active page session.
        options (TextOptions): Whitespace, image-alt and minimum-length settings.

    Returns:
        str: The visible text. An internal failure is logged and yields "", which is
        indistinguishable from a page without visible text.
    """
    try:
        payload = await session.page.evaluate(TEXT_NODES_JS)
        fragments = select_text_fragments(payload.get("nodes") or [], options.min_text_length)
        markers = []
        if options.include_image_alt:
            markers = select_image_markers(payload.get("images") or [], options.min_text_length)
        text = join_text(fragments, markers, preserve_whitespace=options.preserve_whitespace)
        logger.debug(f"Extracted {len(fragments)} text fragments and {len(markers)} image markers.")
        return text
    except Exception as e:
        logger.error(f"Error extracting text: {e}", exc_info=True)
        return ""
