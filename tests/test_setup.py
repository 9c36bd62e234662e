import pytest

from livebadge.core.errors import InputInvalid, ProbeFailed
from livebadge.engine.setup import setup_badge, validate_setup
from livebadge.models.badge_models import SetupRequest

ENDPOINT = "https://demo.supabase.co"


def request(remote, **overrides) -> SetupRequest:
    fields = dict(
        project_url=ENDPOINT,
        anon_key=remote.ANON,
        label="Records",
        metric_type="table_count",
        table_name="todos",
    )
    fields.update(overrides)
    return SetupRequest(**fields)


@pytest.mark.asyncio
async def test_public_table_without_privileged_key(store, remote, client_factory, settings):
    remote.add_table("todos", 42)
    response = await setup_badge(request(remote), store, client_factory, settings)

    assert not response.protected
    assert response.refresh_url is None
    assert response.badge_url == f"https://badges.example.com/badge/{response.badge_id}"
    record = store.get(response.badge_id)
    assert record.cached_value is None
    assert record.protected is False
    assert record.color == "#4F46E5"
    assert record.table_schema == "public"


@pytest.mark.asyncio
async def test_non_public_schema_is_seeded_from_privileged_probe(store, remote, client_factory, settings):
    remote.add_table("events", 1000, anon_total=1000, schema="analytics")
    response = await setup_badge(
        request(remote, table_name="analytics.events", service_role_key=remote.SERVICE),
        store,
        client_factory,
        settings,
    )

    assert response.protected
    assert response.reason == "non_public_schema"
    assert response.refresh_url == f"https://badges.example.com/badge-refresh/{response.badge_id}"
    record = store.get(response.badge_id)
    assert record.cached_value == 1000
    assert (record.table_schema, record.table_name) == ("analytics", "events")


@pytest.mark.asyncio
async def test_privileged_key_is_never_stored(store, remote, client_factory, settings):
    remote.add_table("todos", 10, anon_total=2)
    response = await setup_badge(
        request(remote, service_role_key=remote.SERVICE), store, client_factory, settings
    )
    record = store.get(response.badge_id)
    assert record.cached_value == 10
    assert response.reason == "counts_diverge"
    assert remote.SERVICE not in record.model_dump_json()


@pytest.mark.asyncio
async def test_both_tiers_probed_once(store, remote, client_factory, settings):
    remote.add_table("todos", 42)
    response = await setup_badge(
        request(remote, service_role_key=remote.SERVICE), store, client_factory, settings
    )
    assert not response.protected
    assert store.get(response.badge_id).cached_value is None
    keys = sorted(r.headers["apikey"] for r in remote.probes())
    assert keys == sorted([remote.ANON, remote.SERVICE])


@pytest.mark.asyncio
async def test_blocked_table_without_privileged_key(store, remote, client_factory, settings):
    remote.add_table("secrets", 5, anon_status=403)
    response = await setup_badge(
        request(remote, table_name="secrets"), store, client_factory, settings
    )
    assert response.protected
    assert response.reason == "access_blocked"
    assert store.get(response.badge_id).cached_value is None


@pytest.mark.asyncio
async def test_user_count_seeded_when_key_given(store, remote, client_factory, settings):
    remote.add_users(3)
    response = await setup_badge(
        request(remote, metric_type="user_count", table_name=None, label="Users",
                service_role_key=remote.SERVICE),
        store,
        client_factory,
        settings,
    )
    assert response.protected
    record = store.get(response.badge_id)
    assert record.cached_value == 3
    assert record.table_name is None


@pytest.mark.asyncio
async def test_user_count_without_key_is_not_fabricated(store, remote, client_factory, settings):
    response = await setup_badge(
        request(remote, metric_type="user_count", table_name=None), store, client_factory, settings
    )
    assert response.protected
    assert store.get(response.badge_id).cached_value is None


@pytest.mark.asyncio
async def test_failed_privileged_probe_rejects_setup(store, remote, client_factory, settings):
    remote.add_table("todos", 42)
    with pytest.raises(ProbeFailed):
        await setup_badge(
            request(remote, service_role_key="sb_secret_wrong"), store, client_factory, settings
        )


@pytest.mark.asyncio
async def test_missing_public_table_rejects_setup(store, remote, client_factory, settings):
    with pytest.raises(ProbeFailed):
        await setup_badge(request(remote, table_name="nope"), store, client_factory, settings)


@pytest.mark.asyncio
async def test_unreachable_project_rejects_setup(store, remote, client_factory, settings):
    remote.offline = True
    with pytest.raises(ProbeFailed):
        await setup_badge(request(remote), store, client_factory, settings)


@pytest.mark.parametrize(
    "overrides",
    [
        {"project_url": ""},
        {"project_url": "ftp://demo"},
        {"anon_key": ""},
        {"metric_type": "downloads"},
        {"table_name": None},
        {"table_name": "analytics."},
        {"color": "blue"},
        {"anon_key": "sb_secret_leaked"},
    ],
)
def test_invalid_input_is_rejected_before_probing(remote, overrides):
    with pytest.raises(InputInvalid):
        validate_setup(request(remote, **overrides), "#4F46E5")


def test_privileged_key_must_differ(remote):
    with pytest.raises(InputInvalid):
        validate_setup(request(remote, service_role_key=remote.ANON), "#4F46E5")


def test_validation_normalizes_input(remote):
    setup = validate_setup(
        request(remote, project_url="https://demo.supabase.co/", color="#abc"), "#4F46E5"
    )
    assert setup.endpoint == ENDPOINT
    assert setup.color == "#abc"
    assert setup.table_ref.schema == "public"


@pytest.mark.parametrize(
    "metric_type,label,expected",
    [("table_count", "   ", "Records"), ("user_count", "", "Users"), ("table_count", " Rows ", "Rows")],
)
def test_blank_label_uses_metric_default(remote, metric_type, label, expected):
    setup = validate_setup(request(remote, metric_type=metric_type, label=label), "#4F46E5")
    assert setup.label == expected


def test_overlong_label_is_rejected(remote):
    with pytest.raises(InputInvalid):
        validate_setup(request(remote, label="x" * 65), "#4F46E5")
