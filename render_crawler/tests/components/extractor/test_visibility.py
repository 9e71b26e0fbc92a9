import pytest

from render_crawler.components.extractor.visibility import is_visible, STYLE_SNAPSHOT_JS


def snapshot(**overrides):
    values = {"display": "block", "visibility": "visible", "opacity": "1", "width": 100.0, "height": 18.0}
    values.update(overrides)
    return values


def test_regular_element_is_visible():
    assert is_visible(snapshot()) is True


@pytest.mark.parametrize("overrides", [
    {"display": "none"},
    {"visibility": "hidden"},
    {"visibility": "collapse"},
    {"opacity": "0"},
    {"opacity": "0.05"},
    {"width": 0},
    {"height": 1},
    {"width": 1.0, "height": 50},
])
def test_hidden_elements(overrides):
    assert is_visible(snapshot(**overrides)) is False


def test_opacity_threshold_is_inclusive():
    assert is_visible(snapshot(opacity="0.1")) is True


def test_dimensions_just_above_one_pixel_are_visible():
    assert is_visible(snapshot(width=1.5, height=1.5)) is True


def test_inline_display_is_visible():
    assert is_visible(snapshot(display="inline")) is True


@pytest.mark.parametrize("bad_snapshot", [
    None,
    {},
    {"error": "Failed to compute style"},
    snapshot(opacity="not-a-number"),
    snapshot(width=None),
])
def test_unreadable_snapshots_are_not_visible(bad_snapshot):
    """Failures computing style or geometry never propagate; they mean hidden."""
    assert is_visible(bad_snapshot) is False


def test_snapshot_script_defines_snapshot_function():
    assert "const snapshot = (element)" in STYLE_SNAPSHOT_JS
    assert "getComputedStyle" in STYLE_SNAPSHOT_JS
