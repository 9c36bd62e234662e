"""LiveBadge: Badge Resolution.

Every serve and refresh step ends in a ``Resolution``. Routes only ever turn
a resolution into an image, so there is no error path out of serving.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from livebadge.render.badge import render_badge

PLACEHOLDER_LABEL = "Badge"
ERROR_LABEL = "Error"
OFFLINE_COLOR = "#e74c3c"
REFRESH_REQUIRED_COLOR = "#dfb317"
AUTH_FAILED_COLOR = "#b60205"


class BadgeState(str, Enum):
    LIVE = "live"
    CACHED = "cached"
    UNAVAILABLE = "unavailable"
    AUTH_FAILED = "auth_failed"


class UnavailableReason(str, Enum):
    NOT_FOUND = "not_found"
    OFFLINE = "offline"
    REFRESH_REQUIRED = "refresh_required"
    ERROR = "error"


UNAVAILABLE_TEXT = {
    UnavailableReason.NOT_FOUND: ("Not Found", OFFLINE_COLOR),
    UnavailableReason.OFFLINE: ("Offline", OFFLINE_COLOR),
    UnavailableReason.REFRESH_REQUIRED: ("Refresh Required", REFRESH_REQUIRED_COLOR),
    UnavailableReason.ERROR: ("Offline", OFFLINE_COLOR),
}


@dataclass(frozen=True)
class Resolution:
    state: BadgeState
    label: str
    value: str
    color: str
    reason: Optional[UnavailableReason] = None
    count: Optional[int] = None


def format_count(count: int) -> str:
    """Thousands-separated count, e.g. 1,000."""
    return f"{count:,}"


def live(label: str, count: int, color: str) -> Resolution:
    return Resolution(BadgeState.LIVE, label, format_count(count), color, count=count)


def cached(label: str, count: int, color: str) -> Resolution:
    return Resolution(BadgeState.CACHED, label, format_count(count), color, count=count)


def unavailable(reason: UnavailableReason, label: str = PLACEHOLDER_LABEL) -> Resolution:
    text, color = UNAVAILABLE_TEXT[reason]
    return Resolution(BadgeState.UNAVAILABLE, label, text, color, reason=reason)


def auth_failed(label: str) -> Resolution:
    return Resolution(BadgeState.AUTH_FAILED, label, "Auth Failed", AUTH_FAILED_COLOR)


def render_resolution(resolution: Resolution) -> bytes:
    """The single mapping from a resolved state to an image."""
    return render_badge(resolution.label, resolution.value, resolution.color)
