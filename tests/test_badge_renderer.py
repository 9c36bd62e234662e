import xml.etree.ElementTree as ET

from livebadge.render.badge import (
    FALLBACK_COLOR,
    HEIGHT,
    layout,
    render_badge,
    segment_width,
)


def test_segment_widths_follow_character_count():
    box = layout("Records", "123")
    assert box.label_width == 59
    assert box.value_width == 31
    assert box.width == 90
    assert box.height == HEIGHT == 20


def test_empty_text_still_gets_one_character_of_width():
    assert segment_width("") == 17
    box = layout("", "")
    assert box.width == 34


def test_render_is_byte_identical_for_identical_inputs():
    first = render_badge("Records", "1,000", "#4F46E5")
    second = render_badge("Records", "1,000", "#4F46E5")
    assert first == second
    assert isinstance(first, bytes)


def test_render_draws_both_segments_and_mask():
    svg = render_badge("Records", "123", "#3ECF8E").decode()
    assert 'width="90" height="20"' in svg
    assert '<rect width="59" height="20" fill="#555"/>' in svg
    assert '<rect x="59" width="31" height="20" fill="#3ECF8E"/>' in svg
    assert 'rx="3"' in svg
    assert 'stop-opacity=".1"' in svg


def test_text_is_drawn_as_shadow_then_foreground():
    svg = render_badge("Records", "123", "#3ECF8E").decode()
    assert svg.count(">Records</text>") == 2
    assert svg.count(">123</text>") == 2
    assert '<text x="29.5" y="15" fill="#010101" fill-opacity=".3">Records</text>' in svg
    assert '<text x="74.5" y="14">123</text>' in svg


def test_text_is_escaped():
    svg = render_badge('<b>"x"</b>', "a & b", "#000000").decode()
    assert "<b>" not in svg
    assert "a &amp; b" in svg
    assert 'aria-label="&lt;b&gt;&quot;x&quot;&lt;/b&gt;: a &amp; b"' in svg


def test_invalid_color_falls_back():
    svg = render_badge("Records", "1", 'red" onload="x').decode()
    assert "onload" not in svg
    assert f'fill="{FALLBACK_COLOR}"' in svg


def test_empty_inputs_render():
    svg = render_badge("", "", "").decode()
    assert svg.startswith("<svg")
    assert 'width="34"' in svg


def test_control_characters_still_render_well_formed_xml():
    svg = render_badge("Rec\x01ords", "1\x00\x1b2", "#4F46E5")
    root = ET.fromstring(svg)
    texts = [t.text for t in root.iter("{http://www.w3.org/2000/svg}text")]
    assert texts == ["Records", "Records", "12", "12"]
    assert root.get("width") == str(59 + 24)


def test_lone_surrogates_are_dropped():
    svg = render_badge("A\ud800B", "1", "#4F46E5")
    assert ET.fromstring(svg).get("width") == str(24 + 17)
