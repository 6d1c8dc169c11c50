from datetime import datetime, timedelta, timezone

import pytest
from django.db import connection

from auditlog.models import AuditEntry
from auditlog.services import AuditService
from auditlog.storage import SqlStore


@pytest.fixture
def store():
    return SqlStore("default")


@pytest.fixture
def audit(db, store):
    # ttl=0: every call re-checks the catalog
    return AuditService(store, readiness_ttl=0)


@pytest.fixture
def drop_audit_table(db):
    def _drop():
        with connection.cursor() as cur:
            cur.execute(f"DROP TABLE {connection.ops.quote_name(AuditEntry._meta.db_table)}")
    return _drop


@pytest.fixture
def make_entries(db):
    """Insert entries directly, one minute apart, oldest first."""
    base = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)

    def _make(count, **fields):
        entries = []
        for i in range(count):
            values = {
                "affected_table": "medications",
                "record_id": str(i),
                "action": AuditEntry.Action.UPDATE,
                "occurred_at": base + timedelta(minutes=i),
                **fields,
            }
            entries.append(AuditEntry.objects.create(**values))
        return entries
    return _make


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(
        username="pharmacist", password="correct-horse-battery",
        first_name="Ana", last_name="Ruiz", is_staff=True,
    )


@pytest.fixture
def clerk_user(django_user_model):
    return django_user_model.objects.create_user(
        username="clerk", password="correct-horse-battery",
    )


@pytest.fixture
def staff_client(client, staff_user):
    client.force_login(staff_user)
    return client


@pytest.fixture
def clerk_client(client, clerk_user):
    client.force_login(clerk_user)
    return client
