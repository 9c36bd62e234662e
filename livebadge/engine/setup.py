"""LiveBadge: Badge Setup Flow.

validate → check connection → probe (public + privileged, concurrently)
→ classify → persist.

Classification runs exactly once, here. The privileged key is used for the
probes and then dropped; it is never written to the record.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from livebadge.config import Settings
from livebadge.connectors.remote.client import ProjectClient, normalize_endpoint
from livebadge.core.credentials import is_privileged, mask_secret
from livebadge.core.errors import InputInvalid, ProbeFailed
from livebadge.core.logging import get_logger
from livebadge.core.metric_registry import MetricDefinition, get_metric
from livebadge.engine.classifier import Posture, classify
from livebadge.engine.refresh import ClientFactory
from livebadge.models.badge_models import (
    MetricRecord,
    SetupRequest,
    SetupResponse,
    TableRef,
)
from livebadge.render.badge import is_hex_color
from livebadge.store.badge_store import BadgeStore

logger = get_logger("engine.setup")

MAX_LABEL_LENGTH = 64


@dataclass(frozen=True)
class ValidatedSetup:
    endpoint: str
    public_credential: str
    label: str
    color: str
    metric: MetricDefinition
    table_ref: Optional[TableRef]
    privileged_credential: Optional[str]


# ─────────────────────────────────────────────
# VALIDATION
# ─────────────────────────────────────────────


def validate_endpoint(raw: str) -> str:
    endpoint = normalize_endpoint(raw or "")
    parsed = urlparse(endpoint)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InputInvalid(f"Invalid project URL: {raw!r}")
    return endpoint


def validate_setup(request: SetupRequest, default_color: str) -> ValidatedSetup:
    """Reject missing or malformed input before any network call."""
    if not request.project_url or not request.anon_key or not request.metric_type:
        raise InputInvalid("Missing required fields")

    endpoint = validate_endpoint(request.project_url)

    metric = get_metric(request.metric_type)
    if metric is None:
        raise InputInvalid(f"Unknown metric type: {request.metric_type!r}")

    label = (request.label or "").strip() or metric.default_label
    if len(label) > MAX_LABEL_LENGTH:
        raise InputInvalid(f"Label longer than {MAX_LABEL_LENGTH} characters")

    color = (request.color or "").strip() or default_color
    if not is_hex_color(color):
        raise InputInvalid(f"Color must be a hex string like #4F46E5, got {color!r}")

    public_key = request.anon_key.strip()
    if is_privileged(public_key):
        raise InputInvalid("The public key looks like a privileged key; it would be stored")

    privileged = (request.service_role_key or "").strip() or None
    if privileged is not None and privileged == public_key:
        raise InputInvalid("Privileged key must differ from the public key")

    table_ref = None
    if metric.requires_table:
        table_ref = TableRef.parse(request.table_name or "")

    return ValidatedSetup(
        endpoint=endpoint,
        public_credential=public_key,
        label=label,
        color=color,
        metric=metric,
        table_ref=table_ref,
        privileged_credential=privileged,
    )


# ─────────────────────────────────────────────
# PROBING
# ─────────────────────────────────────────────


async def _check_connection(client: ProjectClient, credential: str) -> None:
    status = await client.check_connection(credential)
    if status == 0:
        raise ProbeFailed("Failed to connect to project")
    # 401/403 on the REST root is fine: the table probe decides protection
    if not (200 <= status < 300 or status in (401, 403)):
        raise InputInvalid("Invalid project URL or API key")


async def _classify_table(client: ProjectClient, setup: ValidatedSetup) -> Posture:
    table_ref = setup.table_ref
    anon_call = client.probe(table_ref, setup.public_credential)
    if setup.privileged_credential:
        anon, service = await asyncio.gather(
            anon_call, client.probe(table_ref, setup.privileged_credential)
        )
    else:
        anon, service = await anon_call, None

    if service is not None and not service.ok:
        raise ProbeFailed(
            f"Privileged probe of {table_ref.full_name} failed: "
            f"{service.error or 'HTTP ' + str(service.status)}"
        )
    if anon.status == 0:
        raise ProbeFailed(f"Probe of {table_ref.full_name} failed: {anon.error}")
    if service is None and table_ref.is_public and not anon.ok and not anon.blocked:
        raise ProbeFailed(
            f"Table {table_ref.full_name} is not readable: "
            f"{anon.error or 'HTTP ' + str(anon.status)}"
        )
    return classify(table_ref.schema, anon, service)


async def _seed_user_count(client: ProjectClient, setup: ValidatedSetup) -> Posture:
    if not setup.privileged_credential:
        return Posture(protected=True, reason="not_dynamic")
    users = await client.count_users(setup.privileged_credential)
    if not users.ok:
        raise ProbeFailed(f"Failed to count users: {users.error}")
    return Posture(protected=True, best_known_count=users.total, reason="not_dynamic")


# ─────────────────────────────────────────────
# SETUP
# ─────────────────────────────────────────────


async def setup_badge(
    request: SetupRequest,
    store: BadgeStore,
    client_factory: ClientFactory,
    settings: Settings,
) -> SetupResponse:
    """Validate, classify once and persist a new badge."""
    setup = validate_setup(request, settings.default_badge_color)
    logger.info(
        f"Setting up {setup.metric.kind.value} badge for {setup.endpoint} "
        f"(privileged key: {mask_secret(setup.privileged_credential) or 'none'})",
        extra={"metric_kind": setup.metric.kind.value},
    )

    client = client_factory(setup.endpoint)
    try:
        await _check_connection(client, setup.public_credential)
        if setup.metric.dynamic:
            posture = await _classify_table(client, setup)
        else:
            posture = await _seed_user_count(client, setup)
    finally:
        await client.close()

    record = MetricRecord(
        endpoint=setup.endpoint,
        public_credential=setup.public_credential,
        label=setup.label,
        color=setup.color,
        metric_kind=setup.metric.kind.value,
        table_schema=setup.table_ref.schema if setup.table_ref else None,
        table_name=setup.table_ref.table if setup.table_ref else None,
        protected=posture.protected,
        protection_reason=posture.reason,
        cached_value=posture.best_known_count,
    )
    record = store.create(record)

    return SetupResponse(
        badge_id=record.id,
        badge_url=settings.badge_url(record.id),
        protected=record.protected,
        reason=record.protection_reason,
        refresh_url=settings.refresh_url(record.id) if record.protected else None,
    )
