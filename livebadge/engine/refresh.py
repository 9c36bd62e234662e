"""LiveBadge: Refresh Coordinator.

Re-reads a metric under a privileged credential supplied with the request,
stores the result as the badge's cached value and returns a fresh badge.
The credential lives only for the duration of the call.
"""

from typing import Callable

from livebadge.connectors.remote.client import ProjectClient
from livebadge.core.credentials import is_privileged, mask_secret
from livebadge.core.errors import AuthFailed
from livebadge.core.logging import get_logger
from livebadge.core.metric_registry import MetricKind
from livebadge.engine.resolution import (
    Resolution,
    UnavailableReason,
    auth_failed,
    live,
    unavailable,
)
from livebadge.models.badge_models import MetricRecord
from livebadge.store.badge_store import BadgeStore

logger = get_logger("engine.refresh")

ClientFactory = Callable[[str], ProjectClient]


def _require_privileged(credential: str) -> str:
    """A public-tier key would read the filtered count, so it is refused."""
    credential = (credential or "").strip()
    if not credential:
        raise AuthFailed("No credential supplied")
    if not is_privileged(credential):
        raise AuthFailed(f"Key {mask_secret(credential)} is not a privileged key")
    return credential


async def _fetch_count(record: MetricRecord, client: ProjectClient, credential: str) -> int:
    """Read the metric under the privileged credential.

    Raises AuthFailed when the key is rejected or the read fails.
    """
    if record.metric_kind == MetricKind.USER_COUNT.value:
        users = await client.count_users(credential)
        if not users.ok:
            raise AuthFailed(
                f"User count refresh failed: {users.error}",
                status_code=users.status or None,
            )
        return users.total

    table_ref = record.table_ref
    if record.metric_kind != MetricKind.TABLE_COUNT.value or table_ref is None:
        raise AuthFailed(f"Badge has unusable metric definition: {record.metric_kind}")

    result = await client.probe(table_ref, credential)
    if not result.ok:
        raise AuthFailed(
            f"Table count refresh failed: {result.error or 'HTTP ' + str(result.status)}",
            status_code=result.status or None,
        )
    return result.total


async def refresh_badge(
    store: BadgeStore,
    badge_id: str,
    credential: str,
    client_factory: ClientFactory,
) -> Resolution:
    """Re-probe a badge's metric and persist the new count.

    On failure the cached value is left untouched and an auth-failed badge
    is returned instead of the previous value.
    """
    record = store.get(badge_id)
    if record is None:
        logger.info("Refresh of unknown badge", extra={"badge_id": badge_id})
        return unavailable(UnavailableReason.NOT_FOUND)

    try:
        credential = _require_privileged(credential)
        logger.info(
            f"Refreshing with key {mask_secret(credential)}",
            extra={"badge_id": badge_id, "metric_kind": record.metric_kind, "tier": "privileged"},
        )
        client = client_factory(record.endpoint)
        try:
            count = await _fetch_count(record, client, credential)
        finally:
            await client.close()
    except AuthFailed as e:
        logger.warning(
            f"Refresh rejected: {e}",
            extra={"badge_id": badge_id, "status_code": e.status_code},
        )
        return auth_failed(record.label)

    updated = store.update_cached_value(badge_id, count)
    if updated is None:
        return unavailable(UnavailableReason.NOT_FOUND)
    return live(updated.label, count, updated.color)
