"""Shared fixtures: a fake remote project and a LiveBadge app wired to it."""

import base64
import json
from pathlib import Path
from typing import Dict, List, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from livebadge.config import Settings
from livebadge.connectors.remote.client import ProjectClient
from livebadge.main import create_app
from livebadge.models.badge_models import MetricRecord  # noqa: F401
from livebadge.store.badge_store import BadgeStore

PROJECT_URL = "https://demo.supabase.co"


def make_jwt(role: str) -> str:
    def part(data: dict) -> str:
        raw = json.dumps(data).encode()
        return base64.urlsafe_b64encode(raw).decode().rstrip("=")

    return f"{part({'alg': 'HS256'})}.{part({'role': role})}.signature"


class FakeProject:
    """In-memory stand-in for a remote project's REST and auth APIs."""

    ANON = make_jwt("anon")
    SERVICE = "sb_secret_service_key"

    def __init__(self):
        # (schema, table) -> (anon_status, anon_total, service_total)
        self.tables: Dict[Tuple[str, str], Tuple[int, int, int]] = {}
        self.users: List[dict] = []
        self.requests: List[httpx.Request] = []
        self.offline = False
        self.timeout = False
        self.drop_content_range = False

    def add_table(
        self,
        name: str,
        service_total: int,
        anon_total: int | None = None,
        anon_status: int = 200,
        schema: str = "public",
    ) -> None:
        anon_total = service_total if anon_total is None else anon_total
        self.tables[(schema, name)] = (anon_status, anon_total, service_total)

    def add_users(self, count: int) -> None:
        self.users.extend({"id": f"user-{i}"} for i in range(len(self.users), len(self.users) + count))

    def probes(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "HEAD"]

    def _count(self, total: int, status: int = 200) -> httpx.Response:
        headers = {} if self.drop_content_range else {"content-range": f"*/{total}"}
        return httpx.Response(status, headers=headers)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        if self.timeout:
            raise httpx.ReadTimeout("timed out", request=request)

        key = request.headers.get("apikey")
        path = request.url.path

        if path == "/rest/v1/":
            if key not in (self.ANON, self.SERVICE):
                return httpx.Response(401, json={"message": "Invalid API key"})
            paths = {"/": {}, "/rpc/do_thing": {}}
            for schema, table in self.tables:
                if schema == "public":
                    paths[f"/{table}"] = {}
            return httpx.Response(200, json={"paths": paths})

        if path.startswith("/rest/v1/"):
            table = path[len("/rest/v1/"):]
            schema = request.headers.get("accept-profile", "public")
            entry = self.tables.get((schema, table))
            if key == self.SERVICE:
                if entry is None:
                    return httpx.Response(404)
                return self._count(entry[2])
            if key == self.ANON:
                if entry is None:
                    return httpx.Response(404)
                anon_status, anon_total, _ = entry
                if anon_status != 200:
                    return httpx.Response(anon_status)
                return self._count(anon_total)
            return httpx.Response(401)

        if path == "/auth/v1/admin/users":
            if key != self.SERVICE:
                return httpx.Response(401, json={"msg": "forbidden"})
            page = int(request.url.params.get("page", "1"))
            per_page = int(request.url.params.get("per_page", "50"))
            start = (page - 1) * per_page
            return httpx.Response(
                200, json={"users": self.users[start:start + per_page], "aud": "authenticated"}
            )

        return httpx.Response(404)


@pytest.fixture()
def remote() -> FakeProject:
    return FakeProject()


@pytest.fixture()
def transport(remote: FakeProject) -> httpx.MockTransport:
    return httpx.MockTransport(remote.handler)


@pytest.fixture()
def client_factory(transport):
    def factory(endpoint: str) -> ProjectClient:
        return ProjectClient(endpoint, timeout=2.0, transport=transport, user_page_size=2)

    return factory


@pytest.fixture()
def store(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'store.db'}")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield BadgeStore(session)
    engine.dispose()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'app.db'}",
        public_base_url="https://badges.example.com/",
        probe_timeout_seconds=2.0,
        user_page_size=2,
        _env_file=None,
    )


@pytest.fixture()
def api(settings: Settings, transport):
    app = create_app(settings, transport=transport)
    with TestClient(app) as client:
        yield client
