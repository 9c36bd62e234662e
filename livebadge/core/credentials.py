"""LiveBadge: Credential Formats.

Remote projects issue two generations of API keys:

- LEGACY keys are JWTs. They go in the ``apikey`` header and are also sent as
  an ``Authorization: Bearer`` token.
- MODERN keys carry a readable prefix (``sb_publishable_`` / ``sb_secret_``)
  and are not JWTs, so they must only travel in the ``apikey`` header.
"""

import base64
import json
from enum import Enum
from typing import Dict

MODERN_PUBLIC_PREFIX = "sb_publishable_"
MODERN_SECRET_PREFIX = "sb_secret_"
PRIVILEGED_JWT_ROLE = "service_role"


class CredentialFormat(str, Enum):
    LEGACY = "legacy"
    MODERN = "modern"


class CredentialTier(str, Enum):
    """Privilege level of a credential."""

    PUBLIC = "public"
    PRIVILEGED = "privileged"


def classify_credential(key: str) -> CredentialFormat:
    """Tell modern prefixed keys apart from legacy JWT keys."""
    if key.startswith((MODERN_PUBLIC_PREFIX, MODERN_SECRET_PREFIX)):
        return CredentialFormat.MODERN
    return CredentialFormat.LEGACY


def auth_headers(key: str) -> Dict[str, str]:
    """Build the authentication headers for a credential."""
    headers = {"apikey": key}
    if classify_credential(key) is CredentialFormat.LEGACY:
        headers["Authorization"] = f"Bearer {key}"
    return headers


def _jwt_role(key: str) -> str | None:
    """Read the ``role`` claim of a JWT without verifying it."""
    parts = key.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (ValueError, UnicodeError):
        return None
    if not isinstance(claims, dict):
        return None
    role = claims.get("role")
    return role if isinstance(role, str) else None


def credential_tier(key: str) -> CredentialTier:
    """Best-effort tier detection from the key itself."""
    if key.startswith(MODERN_SECRET_PREFIX):
        return CredentialTier.PRIVILEGED
    if (
        classify_credential(key) is CredentialFormat.LEGACY
        and _jwt_role(key) == PRIVILEGED_JWT_ROLE
    ):
        return CredentialTier.PRIVILEGED
    return CredentialTier.PUBLIC


def is_privileged(key: str) -> bool:
    return credential_tier(key) is CredentialTier.PRIVILEGED


def mask_secret(key: str | None) -> str:
    """Mask a credential for safe logging."""
    if not key:
        return ""
    if classify_credential(key) is CredentialFormat.MODERN:
        prefix = key.split("_", 2)
        return f"{prefix[0]}_{prefix[1]}_****"
    return f"{key[:4]}****"
