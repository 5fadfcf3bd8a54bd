# Test configuration
import copy
import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root to sys.path so 'lightguard_data' can be imported
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Set test environment variables BEFORE importing package modules
os.environ["SUPABASE_URL"] = "https://testproject.supabase.co"
os.environ["SUPABASE_SERVICE_KEY"] = "test-service-key"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["LOG_LEVEL"] = "WARNING"

from postgrest.exceptions import APIError  # noqa: E402

from lightguard_data.record_service import RecordService  # noqa: E402

ISSUES = [
    {
        "id": "ISS-1001",
        "location": "123 Main St, Downtown",
        "status": "open",
        "priority": "high",
        "reported_at": "2023-09-15T10:30:00",
        "reported_by": "john.doe@example.com",
        "assigned_to": None,
        "has_photo": True,
    },
    {
        "id": "ISS-1002",
        "location": "456 Oak Ave, Westside",
        "status": "in_progress",
        "priority": "medium",
        "reported_at": "2023-09-14T14:45:00",
        "reported_by": "jane.smith@example.com",
        "assigned_to": "admin1@lightguard.com",
        "has_photo": True,
    },
    {
        "id": "ISS-1003",
        "location": "789 Pine Rd, Northside",
        "status": "resolved",
        "priority": "medium",
        "reported_at": "2023-09-13T09:15:00",
        "reported_by": "robert.johnson@example.com",
        "assigned_to": "admin2@lightguard.com",
        "has_photo": False,
    },
    {
        "id": "ISS-1004",
        "location": "321 Elm St, Eastside",
        "status": "open",
        "priority": "low",
        "reported_at": "2023-09-12T20:05:00",
        "reported_by": "maria.garcia@example.com",
        "assigned_to": None,
        "has_photo": False,
    },
    {
        "id": "ISS-1005",
        "location": "654 Maple Dr, Southside",
        "status": "open",
        "priority": "high",
        "reported_at": "2023-09-11T18:40:00",
        "reported_by": "john.doe@example.com",
        "assigned_to": "admin1@lightguard.com",
        "has_photo": True,
    },
]

PROFILES = [
    {
        "id": "USR-1001",
        "email": "admin1@lightguard.com",
        "full_name": "Alex Admin",
        "role": "admin",
        "is_active": True,
        "created_at": "2023-08-01T09:00:00+00:00",
        "updated_at": "2023-08-01T09:00:00+00:00",
    },
    {
        "id": "USR-1002",
        "email": "root@lightguard.com",
        "full_name": None,
        "role": "super_admin",
        "is_active": True,
        "created_at": "2023-07-01T09:00:00+00:00",
        "updated_at": "2023-07-01T09:00:00+00:00",
    },
]


class FakeQuery:
    """In-memory stand-in for a PostgREST request builder."""

    def __init__(self, client, table, action, payload=None):
        self.client = client
        self.table = table
        self.action = action
        self.payload = payload
        self.filters = []
        self.order_by = None
        self.window = None

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, *, desc=False):
        self.order_by = (column, desc)
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    async def execute(self):
        self.client.executed.append(self)
        if self.client.failure is not None:
            raise self.client.failure
        if self.table not in self.client.tables:
            raise APIError(
                {
                    "message": f'relation "public.{self.table}" does not exist',
                    "code": "42P01",
                    "hint": None,
                    "details": None,
                }
            )

        rows = self.client.tables[self.table]
        matched = [
            row for row in rows if all(row.get(col) == val for col, val in self.filters)
        ]

        if self.action == "select":
            if self.order_by is not None:
                column, desc = self.order_by
                matched = sorted(matched, key=lambda row: row[column], reverse=desc)
            if self.window is not None:
                start, end = self.window
                matched = matched[start : end + 1]
        elif self.action == "insert":
            row = dict(self.payload)
            row.setdefault("id", self.client.next_id())
            rows.append(row)
            matched = [row]
        elif self.action == "update":
            for row in matched:
                row.update(self.payload)
        elif self.action == "delete":
            self.client.tables[self.table] = [row for row in rows if row not in matched]

        return SimpleNamespace(data=copy.deepcopy(matched), count=None)


class FakeTable:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def select(self, columns="*"):
        return FakeQuery(self.client, self.name, "select")

    def insert(self, payload):
        return FakeQuery(self.client, self.name, "insert", payload)

    def update(self, payload):
        return FakeQuery(self.client, self.name, "update", payload)

    def delete(self):
        return FakeQuery(self.client, self.name, "delete")


class FakeSupabaseClient:
    """Async Supabase client double backed by dicts."""

    def __init__(self, tables=None):
        self.tables = copy.deepcopy(tables) if tables is not None else {}
        self.executed = []
        self.failure = None
        self._id_counter = 0

    def table(self, name):
        return FakeTable(self, name)

    def next_id(self):
        self._id_counter += 1
        return f"NEW-{self._id_counter}"


@pytest.fixture
def fake_client():
    """Fake Supabase client seeded with issues and profiles."""
    return FakeSupabaseClient({"issues": ISSUES, "profiles": PROFILES})


@pytest.fixture
def empty_client():
    """Fake Supabase client without any tables."""
    return FakeSupabaseClient()


@pytest.fixture
def record_service(fake_client):
    """Record service wired to the fake client."""
    return RecordService(fake_client)
