"""LiveBadge: Badge Renderer.

Draws a fixed-height, two-segment SVG badge: the label on a grey segment and
the value on a colored one. Widths come from the character count alone
(no font metrics), so output depends only on the inputs and is byte-stable.

Any label/value pair renders, including empty strings.
"""

import re
from dataclasses import dataclass
from xml.sax.saxutils import escape

HEIGHT = 20
CHAR_WIDTH = 7
SEGMENT_PADDING = 10
CORNER_RADIUS = 3
LABEL_BACKGROUND = "#555"
FALLBACK_COLOR = "#4F46E5"

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
# Characters outside the XML 1.0 Char production
XML_ILLEGAL_RE = re.compile(
    "[^\u0009\u000A\u000D\u0020-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]"
)


@dataclass(frozen=True)
class BadgeLayout:
    label_width: int
    value_width: int
    height: int = HEIGHT

    @property
    def width(self) -> int:
        return self.label_width + self.value_width


def segment_width(text: str) -> int:
    """Monospace approximation of a text segment's width."""
    return max(1, len(text)) * CHAR_WIDTH + SEGMENT_PADDING


def layout(label: str, value: str) -> BadgeLayout:
    return BadgeLayout(label_width=segment_width(label), value_width=segment_width(value))


def xml_safe(text: str) -> str:
    """Drop characters that cannot appear in an XML document."""
    return XML_ILLEGAL_RE.sub("", text)


def is_hex_color(color: str | None) -> bool:
    return bool(color) and HEX_COLOR_RE.match(color) is not None


def _center(offset: int, width: int) -> str:
    # Half-unit centers are written as "29.5", whole ones as "29"
    doubled = offset * 2 + width
    return str(doubled // 2) if doubled % 2 == 0 else f"{doubled / 2:.1f}"


def render_badge(label: str, value: str, color: str) -> bytes:
    """Render a badge as UTF-8 encoded SVG."""
    label = xml_safe(label or "")
    value = xml_safe(value or "")
    if not is_hex_color(color):
        color = FALLBACK_COLOR

    box = layout(label, value)
    label_x = _center(0, box.label_width)
    value_x = _center(box.label_width, box.value_width)
    label_text = escape(label)
    value_text = escape(value)
    title = escape(f"{label}: {value}")
    aria_label = escape(f"{label}: {value}", {'"': "&quot;"})

    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{box.width}" height="{box.height}" '
        f'role="img" aria-label="{aria_label}">'
        f"<title>{title}</title>"
        '<linearGradient id="s" x2="0" y2="100%">'
        '<stop offset="0" stop-color="#bbb" stop-opacity=".1"/>'
        '<stop offset="1" stop-opacity=".1"/>'
        "</linearGradient>"
        '<mask id="r">'
        f'<rect width="{box.width}" height="{box.height}" rx="{CORNER_RADIUS}" fill="#fff"/>'
        "</mask>"
        '<g mask="url(#r)">'
        f'<rect width="{box.label_width}" height="{box.height}" fill="{LABEL_BACKGROUND}"/>'
        f'<rect x="{box.label_width}" width="{box.value_width}" height="{box.height}" fill="{color}"/>'
        f'<rect width="{box.width}" height="{box.height}" fill="url(#s)"/>'
        "</g>"
        '<g fill="#fff" text-anchor="middle" '
        'font-family="DejaVu Sans,Verdana,Geneva,sans-serif" font-size="11">'
        f'<text x="{label_x}" y="15" fill="#010101" fill-opacity=".3">{label_text}</text>'
        f'<text x="{label_x}" y="14">{label_text}</text>'
        f'<text x="{value_x}" y="15" fill="#010101" fill-opacity=".3">{value_text}</text>'
        f'<text x="{value_x}" y="14">{value_text}</text>'
        "</g>"
        "</svg>"
    )
    return svg.encode("utf-8")
