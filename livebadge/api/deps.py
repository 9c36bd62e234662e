"""LiveBadge: Shared Route Dependencies."""

from fastapi import Depends, Request
from sqlmodel import Session

from livebadge.config import Settings
from livebadge.connectors.remote.client import ProjectClient
from livebadge.database import get_session
from livebadge.engine.refresh import ClientFactory
from livebadge.store.badge_store import BadgeStore


def get_settings(request: Request) -> Settings:
    """Dependency: the settings the application was built with."""
    return request.app.state.settings


def get_store(session: Session = Depends(get_session)) -> BadgeStore:
    return BadgeStore(session)


def get_client_factory(request: Request) -> ClientFactory:
    """Dependency: builds remote project clients bounded by the probe timeout."""
    settings: Settings = request.app.state.settings
    transport = request.app.state.transport

    def factory(endpoint: str) -> ProjectClient:
        return ProjectClient(
            endpoint,
            timeout=settings.probe_timeout_seconds,
            transport=transport,
            user_page_size=settings.user_page_size,
            user_max_pages=settings.user_max_pages,
        )

    return factory
