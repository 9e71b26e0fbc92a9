"""
Visibility oracle shared by every extractor.

The page side only collects a style/geometry snapshot for an element
(`STYLE_SNAPSHOT_JS`); the decision is made here, in Python, by `is_visible`.
Snapshots are taken fresh on every extraction call because layout changes
between calls, most visibly after dynamic-content orchestration.
"""
from typing import Any, Mapping, Optional

from render_crawler.core.logger import get_logger

logger = get_logger(__name__)

MIN_OPACITY = 0.1
MIN_DIMENSION = 1.0

# JavaScript arrow function bound to `snapshot` inside page scripts.
# A style or geometry failure is reported as {error: ...} and read as "not visible".
STYLE_SNAPSHOT_JS = """
const snapshot = (element) => {
  if (!element) {
    return { error: 'no element' };
  }
  try {
    const style = window.getComputedStyle(element);
    const rect = element.getBoundingClientRect();
    return {
      display: style.display,
      visibility: style.visibility,
      opacity: style.opacity,
      width: rect.width,
      height: rect.height,
    };
  } catch (e) {
    return { error: String(e) };
  }
};
"""


def is_visible(snapshot: Optional[Mapping[str, Any]]) -> bool:
    """
    Decides whether an element is visible to a user.

    An element is visible iff its computed display is not "none", its computed
    visibility is "visible", its opacity is at least 0.1, and its bounding box is
    wider and taller than one pixel. A text node is visible iff the snapshot of its
    nearest element ancestor is.

    Args:
        snapshot: Mapping with `display`, `visibility`, `opacity`, `width` and `height`,
            as produced by `STYLE_SNAPSHOT_JS`.

    Returns:
        bool: False for a missing, errored or malformed snapshot; this never raises.
    """
    if not snapshot or snapshot.get("error") is not None:
        return False
    try:
        if snapshot.get("display") == "none":
            return False
        if snapshot.get("visibility") != "visible":
            return False
        if float(snapshot.get("opacity")) < MIN_OPACITY:
            return False
        if float(snapshot.get("width")) <= MIN_DIMENSION or float(snapshot.get("height")) <= MIN_DIMENSION:
            return False
    except Exception as e:
        logger.debug(f"Unreadable style snapshot treated as hidden: {snapshot!r} ({e})")
        return False
    return True
