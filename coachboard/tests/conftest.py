# tests/conftest.py
import copy
import time
from types import SimpleNamespace

import pytest

from coachboard.config.settings import settings
from coachboard.services.record_store import RecordStore


@pytest.fixture(autouse=True)
def patch_settings(monkeypatch):
    """
    Provide sane defaults for settings used by services.
    Tests can override with monkeypatch as needed.
    """
    monkeypatch.setattr(settings, "strict_reads", False)
    monkeypatch.setattr(settings, "store_read_timeout", 2.0)
    return monkeypatch


# --- Fake Supabase client ---
def _split_top_level(expr):
    parts, depth, buf = [], 0, ""
    for ch in expr:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(buf)
            buf = ""
        else:
            buf += ch
    if buf:
        parts.append(buf)
    return parts


def _condition(part):
    col, op, value = part.split(".", 2)
    if op == "eq":
        return lambda row: str(row.get(col)) == value
    if op == "in":
        values = value.strip("()").split(",")
        return lambda row: str(row.get(col)) in values
    raise ValueError(f"unsupported filter operator in fake: {op}")


class FakeQuery:
    """Chainable PostgREST-style query over an in-memory table."""

    def __init__(self, client, name):
        self.client = client
        self.name = name
        self._filters = []
        self._order = None
        self._limit = None

    def select(self, *args, **kwargs):
        return self

    def eq(self, col, val):
        self._filters.append(lambda row: row.get(col) == val)
        return self

    def in_(self, col, values):
        values = list(values)
        self._filters.append(lambda row: row.get(col) in values)
        return self

    def or_(self, expr):
        conditions = [_condition(p) for p in _split_top_level(expr)]
        self._filters.append(lambda row: any(c(row) for c in conditions))
        return self

    def order(self, col, desc=False):
        self._order = (col, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def execute(self):
        self.client.calls.append(self.name)
        failure = self.client.failures.get(self.name)
        if failure is not None:
            raise failure
        delay = self.client.delays.get(self.name)
        if delay:
            time.sleep(delay)
        rows = [r for r in self.client.tables.get(self.name, []) if all(f(r) for f in self._filters)]
        if self._order:
            col, desc = self._order
            rows = sorted(rows, key=lambda r: (r.get(col) is not None, str(r.get(col))), reverse=desc)
        if self._limit is not None:
            rows = rows[: self._limit]
        return SimpleNamespace(data=copy.deepcopy(rows), status_code=200)


class FakeClient:

    def __init__(self):
        self.tables = {}
        self.failures = {}
        self.delays = {}
        self.calls = []

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, name, *rows):
        self.tables.setdefault(name, []).extend(rows)
        return self


@pytest.fixture
def fake_supabase_client():
    return FakeClient()


@pytest.fixture
def record_store(fake_supabase_client):
    return RecordStore(client=fake_supabase_client, read_timeout=2.0)
