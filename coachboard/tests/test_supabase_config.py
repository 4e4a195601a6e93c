# tests/test_supabase_config.py
from coachboard.config import supabase as supabase_config
from coachboard.config.supabase import SupabaseClient

PROJECT_URL = "https://abc123.supabase.co"


def test_missing_credentials_leave_client_unset(monkeypatch):
    def never_called(*args):
        raise AssertionError("create_client should not run without credentials")

    monkeypatch.setattr(supabase_config, "create_client", never_called)
    store = SupabaseClient(url="", key="")

    assert store.client is None
    assert store.health_check() is False
    assert store.diagnostics()["connect_error"] == "missing_credentials"


def test_malformed_url_is_rejected(monkeypatch):
    monkeypatch.setattr(supabase_config, "create_client", lambda url, key: object())
    store = SupabaseClient(url="http://localhost:54321", key="k")

    assert store.client is None
    assert store.diagnostics()["connect_error"] == "invalid_url"


def test_client_is_created_once(monkeypatch, fake_supabase_client):
    created = []

    def fake_create(url, key):
        created.append((url, key))
        return fake_supabase_client

    monkeypatch.setattr(supabase_config, "create_client", fake_create)
    store = SupabaseClient(url=PROJECT_URL, key="service-key")

    assert store.client is fake_supabase_client
    assert store.client is fake_supabase_client
    assert created == [(PROJECT_URL, "service-key")]
    diag = store.diagnostics()
    assert diag["host"] == "abc123.supabase.co"
    assert "service-key" not in str(diag)


def test_health_check_reads_program_table(monkeypatch, fake_supabase_client):
    monkeypatch.setattr(supabase_config, "create_client", lambda url, key: fake_supabase_client)
    store = SupabaseClient(url=PROJECT_URL, key="k")

    assert store.health_check() is True
    assert fake_supabase_client.calls == ["budgets"]

    fake_supabase_client.failures["budgets"] = RuntimeError("connection refused")
    assert store.health_check() is False
