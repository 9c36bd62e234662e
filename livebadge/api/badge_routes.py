"""LiveBadge: Badge Image Routes.

Both routes always answer 200 with an SVG: the consumer is an <img> tag,
which cannot show an HTTP error.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from pydantic import ValidationError
from sqlmodel import Session

from livebadge.api.deps import get_client_factory, get_settings
from livebadge.config import Settings
from livebadge.database import get_session
from livebadge.engine.refresh import ClientFactory, refresh_badge
from livebadge.engine.resolution import (
    ERROR_LABEL,
    Resolution,
    UnavailableReason,
    auth_failed,
    render_resolution,
    unavailable,
)
from livebadge.engine.resolver import resolve_badge
from livebadge.models.badge_models import RefreshRequest
from livebadge.store.badge_store import BadgeStore
from livebadge.core.logging import get_logger

logger = get_logger("api.badge")

router = APIRouter(tags=["Badges"])

SVG_MEDIA_TYPE = "image/svg+xml"


def _svg(resolution: Resolution, cache_control: str) -> Response:
    return Response(
        content=render_resolution(resolution),
        media_type=SVG_MEDIA_TYPE,
        headers={
            "Cache-Control": cache_control,
            "X-Badge-State": resolution.state.value,
        },
    )


@router.get("/badge/{badge_id}", response_class=Response)
async def serve_badge(
    badge_id: str,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """Render the badge's current value."""
    cache_control = f"public, max-age={settings.badge_cache_max_age}"
    try:
        record = BadgeStore(session).get(badge_id)
        client = client_factory(record.endpoint) if record is not None else None
        try:
            resolution = await resolve_badge(record, client)
        finally:
            if client is not None:
                await client.close()
    except Exception:
        logger.exception("Badge serving failed", extra={"badge_id": badge_id})
        resolution = unavailable(UnavailableReason.ERROR, ERROR_LABEL)
    return _svg(resolution, cache_control)


@router.post("/badge-refresh/{badge_id}", response_class=Response)
async def refresh(
    badge_id: str,
    request: Request,
    session: Session = Depends(get_session),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """Re-read the metric with a privileged key and store it as the cached value.

    Body: ``{"service_key": "..."}``. The key is used once and never stored.
    """
    store = BadgeStore(session)
    try:
        try:
            body = RefreshRequest.model_validate(json.loads(await request.body() or b"{}"))
        except (ValueError, ValidationError):
            record = store.get(badge_id)
            if record is None:
                resolution = unavailable(UnavailableReason.NOT_FOUND)
            else:
                resolution = auth_failed(record.label)
        else:
            resolution = await refresh_badge(store, badge_id, body.service_key, client_factory)
    except Exception:
        logger.exception("Badge refresh failed", extra={"badge_id": badge_id})
        resolution = unavailable(UnavailableReason.ERROR, ERROR_LABEL)
    return _svg(resolution, "no-store")
