"""LiveBadge: Metric Resolver.

Serve-time state machine, recomputed for every image request:

- user_count          -> CACHED, or UNAVAILABLE (refresh required)
- table_count, public -> LIVE probe; on failure CACHED, else UNAVAILABLE (offline)
- table_count, protected -> CACHED, or UNAVAILABLE (refresh required)
- no record           -> UNAVAILABLE (not found)

Only the value is ever cached, never the decision.
"""

from typing import Optional

from livebadge.connectors.remote.client import ProjectClient
from livebadge.core.logging import get_logger
from livebadge.core.metric_registry import get_metric
from livebadge.engine.resolution import (
    Resolution,
    UnavailableReason,
    cached,
    live,
    unavailable,
)
from livebadge.models.badge_models import MetricRecord

logger = get_logger("engine.resolver")


def _from_cache(record: MetricRecord) -> Resolution:
    if record.cached_value is None:
        return unavailable(UnavailableReason.REFRESH_REQUIRED, record.label)
    return cached(record.label, record.cached_value, record.color)


async def resolve_badge(
    record: Optional[MetricRecord], client: Optional[ProjectClient]
) -> Resolution:
    """Resolve what a badge should show right now."""
    if record is None:
        return unavailable(UnavailableReason.NOT_FOUND)

    metric = get_metric(record.metric_kind)
    if metric is None or (metric.requires_table and record.table_ref is None):
        logger.error(
            f"Badge has unusable metric definition: {record.metric_kind}",
            extra={"badge_id": record.id},
        )
        resolution = unavailable(UnavailableReason.ERROR, record.label)
    elif not metric.dynamic or record.protected:
        resolution = _from_cache(record)
    else:
        resolution = await _resolve_live(record, client)

    logger.info(
        f"Resolved badge: {resolution.value}",
        extra={
            "badge_id": record.id,
            "metric_kind": record.metric_kind,
            "state": resolution.state.value,
        },
    )
    return resolution


async def _resolve_live(
    record: MetricRecord, client: Optional[ProjectClient]
) -> Resolution:
    if client is not None:
        result = await client.probe(record.table_ref, record.public_credential)
        if result.ok:
            return live(record.label, result.total, record.color)
        logger.warning(
            f"Live fetch failed: {result.error or 'HTTP ' + str(result.status)}",
            extra={"badge_id": record.id, "status_code": result.status},
        )

    if record.cached_value is not None:
        return cached(record.label, record.cached_value, record.color)
    return unavailable(UnavailableReason.OFFLINE, record.label)
