"""LiveBadge: Remote Project Client.

Talks to the remote project's REST and auth APIs. The probe methods never
raise: every failure comes back as a result carrying the HTTP status (0 for
network errors and timeouts), so the classifier can reason about 401/403.
"""

import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from livebadge.core.credentials import auth_headers, credential_tier
from livebadge.core.errors import AccessBlocked, ProbeFailed
from livebadge.core.logging import get_logger
from livebadge.models.badge_models import TableRef

logger = get_logger("remote.client")

REST_PATH = "/rest/v1"
USERS_PATH = "/auth/v1/admin/users"
DEFAULT_TIMEOUT = 10.0

# "0-9/10", "*/0"; total may be "*" when the server did not count
CONTENT_RANGE_RE = re.compile(r"^\s*(?:\d+-\d+|\*)/(\d+|\*)\s*$")


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one count probe under one credential tier."""

    status: int
    total: int = 0
    count_parsed: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """2xx response with a readable exact count."""
        return 200 <= self.status < 300 and self.count_parsed

    @property
    def blocked(self) -> bool:
        return self.status in (401, 403)


@dataclass(frozen=True)
class UserCountResult:
    status: int
    total: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300 and self.error is None


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Return the total from a Content-Range header, or None if unknown."""
    if not header:
        return None
    match = CONTENT_RANGE_RE.match(header)
    if not match or match.group(1) == "*":
        return None
    return int(match.group(1))


def normalize_endpoint(endpoint: str) -> str:
    return endpoint.strip().rstrip("/")


class ProjectClient:
    """Async HTTP client for one remote project."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_page_size: int = 1000,
        user_max_pages: int = 50,
    ):
        self.endpoint = normalize_endpoint(endpoint)
        self.timeout = timeout
        self.user_page_size = user_page_size
        self.user_max_pages = user_max_pages
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "ProjectClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ── Count Probe ──

    async def probe(self, table_ref: TableRef, credential: str) -> ProbeResult:
        """Ask for the exact row count of a table without transferring rows."""
        url = f"{self.endpoint}{REST_PATH}/{quote(table_ref.table, safe='')}"
        headers = auth_headers(credential)
        headers["Prefer"] = "count=exact"
        if not table_ref.is_public:
            headers["Accept-Profile"] = table_ref.schema
        params = {"select": "*", "limit": "0"}
        tier = credential_tier(credential).value

        client = await self._get_client()
        started = time.monotonic()
        try:
            resp = await client.head(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            logger.warning(
                f"Probe of {table_ref.full_name} failed: {type(e).__name__}: {e}",
                extra={"tier": tier},
            )
            return ProbeResult(status=0, error=f"{type(e).__name__}: {e}")

        duration_ms = round((time.monotonic() - started) * 1000, 1)
        total = parse_content_range(resp.headers.get("content-range"))
        if total is None:
            result = ProbeResult(
                status=resp.status_code,
                error="Missing or malformed Content-Range header",
            )
        else:
            result = ProbeResult(status=resp.status_code, total=total, count_parsed=True)

        logger.info(
            f"Probed {table_ref.full_name}: total={result.total} parsed={result.count_parsed}",
            extra={
                "tier": tier,
                "status_code": resp.status_code,
                "duration_ms": duration_ms,
            },
        )
        return result

    # ── User Enumeration ──

    async def count_users(self, credential: str) -> UserCountResult:
        """Count auth users by paging through the admin users listing."""
        page_size = self.user_page_size
        max_pages = self.user_max_pages
        url = f"{self.endpoint}{USERS_PATH}"
        headers = auth_headers(credential)
        client = await self._get_client()
        total = 0

        for page in range(1, max_pages + 1):
            try:
                resp = await client.get(
                    url, headers=headers, params={"page": page, "per_page": page_size}
                )
            except httpx.HTTPError as e:
                logger.warning(f"User listing failed: {type(e).__name__}: {e}")
                return UserCountResult(status=0, error=f"{type(e).__name__}: {e}")

            if not 200 <= resp.status_code < 300:
                logger.warning(
                    "User listing rejected", extra={"status_code": resp.status_code}
                )
                return UserCountResult(
                    status=resp.status_code, error=f"HTTP {resp.status_code}"
                )

            users = _extract_users(resp)
            if users is None:
                return UserCountResult(
                    status=resp.status_code, error="Unexpected user listing payload"
                )
            total += len(users)
            if len(users) < page_size:
                break
        else:
            logger.warning(f"User listing stopped after {max_pages} pages")

        logger.info(f"Counted {total} users", extra={"tier": "privileged"})
        return UserCountResult(status=200, total=total)

    # ── Connection Check ──

    async def check_connection(self, credential: str) -> int:
        """Hit the REST root; returns the HTTP status, or 0 if unreachable."""
        client = await self._get_client()
        try:
            resp = await client.get(
                f"{self.endpoint}{REST_PATH}/", headers=auth_headers(credential)
            )
        except httpx.HTTPError as e:
            logger.warning(f"Connection check failed: {type(e).__name__}: {e}")
            return 0
        return resp.status_code

    # ── Table Discovery ──

    async def list_tables(self, credential: str) -> List[TableRef]:
        """List tables and views exposed by the REST API's OpenAPI document."""
        client = await self._get_client()
        try:
            resp = await client.get(
                f"{self.endpoint}{REST_PATH}/", headers=auth_headers(credential)
            )
        except httpx.HTTPError as e:
            raise ProbeFailed(f"Failed to connect to project: {e}") from e

        if resp.status_code in (401, 403):
            raise AccessBlocked(f"Project rejected the key ({resp.status_code})")
        if not 200 <= resp.status_code < 300:
            raise ProbeFailed(
                f"Failed to read table list: HTTP {resp.status_code}",
                status_code=502,
            )
        try:
            document = resp.json()
        except ValueError as e:
            raise ProbeFailed("Table list is not valid JSON") from e

        return _tables_from_openapi(document)


def _extract_users(resp: httpx.Response) -> Optional[List[Any]]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get("users"), list):
        return body["users"]
    return None


def _tables_from_openapi(document: Any) -> List[TableRef]:
    paths: Dict[str, Any] = {}
    if isinstance(document, dict) and isinstance(document.get("paths"), dict):
        paths = document["paths"]

    tables: List[TableRef] = []
    for path in sorted(paths):
        if not path.startswith("/") or path.startswith("/rpc/"):
            continue
        name = path[1:]
        if name and "/" not in name:
            tables.append(TableRef(schema="public", table=name))
    return tables
