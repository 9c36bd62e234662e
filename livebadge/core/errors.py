"""LiveBadge: Error Taxonomy.

Operator-facing flows (setup, table discovery, record lookup) raise these and
the routes translate them into HTTP errors. The image-serving and refresh
paths never let them escape: every failure becomes a rendered badge.
"""


class BadgeError(Exception):
    """Base class for every LiveBadge failure."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class InputInvalid(BadgeError):
    """Missing or malformed input, rejected before any probing."""

    status_code = 400


class ProbeFailed(BadgeError):
    """Network, timeout or parse failure while probing the remote project."""

    status_code = 502


class AccessBlocked(BadgeError):
    """The remote project answered 401/403."""

    status_code = 403


class RecordNotFound(BadgeError):
    status_code = 404


class AuthFailed(BadgeError):
    """Privileged credential rejected at refresh time."""

    status_code = 401
