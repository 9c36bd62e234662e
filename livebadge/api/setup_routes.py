"""LiveBadge: Setup & Discovery Routes.

Operator-facing: failures come back as HTTP errors with a diagnostic message.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from livebadge.api.deps import get_client_factory, get_settings, get_store
from livebadge.config import Settings
from livebadge.core.errors import BadgeError, InputInvalid, RecordNotFound
from livebadge.core.logging import get_logger
from livebadge.core.metric_registry import METRICS
from livebadge.engine.refresh import ClientFactory
from livebadge.engine.setup import setup_badge, validate_endpoint
from livebadge.models.badge_models import (
    BadgeInfo,
    MetricInfo,
    SetupRequest,
    SetupResponse,
    TableInfo,
    TablesRequest,
    TablesResponse,
)
from livebadge.store.badge_store import BadgeStore

logger = get_logger("api.setup")

router = APIRouter(prefix="/api", tags=["Setup"])


def _http_error(e: BadgeError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/metrics", response_model=List[MetricInfo])
async def list_metrics():
    """Metrics a badge can display."""
    return [
        MetricInfo(
            metric_type=m.kind.value,
            default_label=m.default_label,
            description=m.description,
            requires_table=m.requires_table,
            dynamic=m.dynamic,
        )
        for m in METRICS.values()
    ]


@router.post("/setup", response_model=SetupResponse)
async def create_badge(
    request: SetupRequest,
    store: BadgeStore = Depends(get_store),
    client_factory: ClientFactory = Depends(get_client_factory),
    settings: Settings = Depends(get_settings),
):
    """Create a badge.

    Probes the table under the public key (and the privileged key, when
    given), decides whether the count can be served live, and stores the
    badge. Protected badges come back with a refresh URL.
    """
    try:
        return await setup_badge(request, store, client_factory, settings)
    except BadgeError as e:
        logger.warning(f"Badge setup rejected: {e}", extra={"status_code": e.status_code})
        raise _http_error(e)


@router.post("/tables", response_model=TablesResponse)
async def list_tables(
    request: TablesRequest,
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """List the tables and views a privileged key can see."""
    try:
        if not request.project_url or not request.service_key:
            raise InputInvalid("Missing project URL or service key")
        client = client_factory(validate_endpoint(request.project_url))
        try:
            tables = await client.list_tables(request.service_key.strip())
        finally:
            await client.close()
    except BadgeError as e:
        logger.warning(f"Table discovery failed: {e}", extra={"status_code": e.status_code})
        raise _http_error(e)

    return TablesResponse(
        tables=[
            TableInfo(schema_name=t.schema, table=t.table, full_name=t.full_name)
            for t in tables
        ]
    )


@router.get("/badges/{badge_id}", response_model=BadgeInfo)
async def get_badge(
    badge_id: str,
    store: BadgeStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Public metadata for a badge. Credentials are never returned."""
    record = store.get(badge_id)
    if record is None:
        raise _http_error(RecordNotFound(f"Badge {badge_id} not found"))

    table_ref = record.table_ref
    return BadgeInfo(
        badge_id=record.id,
        label=record.label,
        color=record.color,
        metric_kind=record.metric_kind,
        table=table_ref.full_name if table_ref else None,
        protected=record.protected,
        protection_reason=record.protection_reason,
        cached_value=record.cached_value,
        created_at=record.created_at,
        refreshed_at=record.refreshed_at,
        badge_url=settings.badge_url(record.id),
        refresh_url=settings.refresh_url(record.id) if record.protected else None,
    )
