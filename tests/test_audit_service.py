"""
Tests for AuditService: recording, filtered reads and the missing-table paths.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from django.db import DatabaseError, OperationalError, transaction
from django.test import RequestFactory

from auditlog.models import AuditEntry
from auditlog.services import AuditService, actor_from_request, get_client_ip
from auditlog.storage import ErrorKind


pytestmark = pytest.mark.django_db


def test_record_then_list_returns_entry(audit):
    entry_id = audit.record(
        affected_table="medications",
        record_id="42",
        action=AuditEntry.Action.DELETE,
        previous_data={"qty": 5},
        actor_id="7",
        actor_name="Ana Ruiz",
        source_address="10.0.0.8",
        note="expired batch",
    )

    entries = audit.list_entries(affected_table="medications")

    assert len(entries) == 1
    entry = entries[0]
    assert entry.id == entry_id
    assert entry.action == "DELETE"
    assert entry.record_id == "42"
    assert entry.previous_state == {"qty": 5}
    assert entry.actor_id == "7"
    assert entry.actor_name == "Ana Ruiz"
    assert entry.source_address == "10.0.0.8"
    assert entry.note == "expired batch"
    assert entry.occurred_at is not None
    assert entry.occurred_at.tzinfo is not None


def test_record_without_previous_data_stores_null(audit):
    audit.record(affected_table="medications", record_id="1", action="CREATE")

    stored = AuditEntry.objects.get()
    assert stored.previous_data is None
    assert stored.actor_id is None
    assert stored.note is None


def test_record_serializes_dates_and_decimals(audit):
    from datetime import date
    from decimal import Decimal

    audit.record(
        affected_table="medications", record_id="1", action="UPDATE",
        previous_data={"expires_at": date(2027, 3, 1), "price": Decimal("4.50")},
    )

    assert AuditEntry.objects.get().previous_state == {"expires_at": "2027-03-01", "price": "4.50"}


def test_record_rejects_unknown_action(audit):
    with pytest.raises(ValueError):
        audit.record(affected_table="medications", record_id="1", action="ARCHIVE")


def test_missing_table_is_a_no_op(store):
    audit = AuditService(store, table="audit_log_not_provisioned", readiness_ttl=0)

    assert audit.record(affected_table="medications", record_id="1", action="CREATE") is None
    assert audit.list_entries(affected_table="anything") == []
    assert audit.list_for_record("medications", "1") == []


def test_missing_table_logs_warning(store, caplog):
    audit = AuditService(store, table="audit_log_not_provisioned", readiness_ttl=0)

    with caplog.at_level(logging.WARNING, logger="auditlog"):
        audit.record(affected_table="medications", record_id="1", action="CREATE")

    assert "does not exist" in caplog.text


def test_dropped_table_does_not_raise(audit, drop_audit_table):
    drop_audit_table()

    assert audit.record(affected_table="medications", record_id="1", action="DELETE") is None
    assert audit.list_entries(affected_table="anything") == []


def test_table_dropped_after_readiness_check_is_absorbed(store, drop_audit_table):
    audit = AuditService(store, readiness_ttl=300)
    assert audit.storage_ready() is True

    drop_audit_table()

    # Readiness still cached; the insert itself fails.
    assert audit.record(affected_table="medications", record_id="1", action="DELETE") is None
    assert audit.list_entries() == []


def test_failed_audit_insert_keeps_outer_transaction_usable(store, drop_audit_table, django_user_model):
    audit = AuditService(store, readiness_ttl=300)
    audit.storage_ready()
    drop_audit_table()

    with transaction.atomic():
        django_user_model.objects.create_user(username="before")
        audit.record(affected_table="auth_user", record_id="x", action="CREATE")
        django_user_model.objects.create_user(username="after")

    assert django_user_model.objects.filter(username__in=["before", "after"]).count() == 2


class _FailingStore:
    """Store whose catalog says ready but whose writes and reads fail."""

    alias = "default"
    now_sql = "CURRENT_TIMESTAMP"

    def __init__(self, exc, kind):
        self.exc = exc
        self.kind = kind
        self.classified = []

    def quote_name(self, name):
        return name

    def adapt_uuid(self, value):
        return value.hex

    def adapt_datetime(self, value):
        return value

    def datetime_sql(self, expr):
        return expr

    def table_exists(self, name):
        return True

    def execute(self, sql, params=None):
        raise self.exc

    def query(self, sql, params=None):
        raise self.exc

    def classify(self, exc, table=None):
        self.classified.append(exc)
        return self.kind


def test_connection_failure_propagates_from_record():
    exc = OperationalError("server closed the connection unexpectedly")
    audit = AuditService(_FailingStore(exc, ErrorKind.CONNECTION_FAILURE), readiness_ttl=0)

    with pytest.raises(OperationalError):
        audit.record(affected_table="medications", record_id="1", action="UPDATE")


def test_connection_failure_propagates_from_list():
    exc = OperationalError("timeout")
    audit = AuditService(_FailingStore(exc, ErrorKind.CONNECTION_FAILURE), readiness_ttl=0)

    with pytest.raises(DatabaseError):
        audit.list_entries()


def test_object_not_found_on_insert_is_absorbed_and_readiness_reset():
    store = _FailingStore(OperationalError("no such table"), ErrorKind.OBJECT_NOT_FOUND)
    audit = AuditService(store, readiness_ttl=300)
    audit.storage_ready()

    assert audit.record(affected_table="medications", record_id="1", action="UPDATE") is None
    assert len(store.classified) == 1
    assert audit.readiness._ready is None


def test_list_orders_newest_first(audit, make_entries):
    make_entries(4)

    entries = audit.list_entries()

    times = [e.occurred_at for e in entries]
    assert times == sorted(times, reverse=True)
    assert [e.record_id for e in entries] == ["3", "2", "1", "0"]


def test_list_limit_returns_most_recent(audit, make_entries):
    make_entries(5)

    entries = audit.list_entries(affected_table="medications", limit=2)

    assert [e.record_id for e in entries] == ["4", "3"]


def test_list_uses_default_limit(store, make_entries):
    make_entries(5)
    audit = AuditService(store, readiness_ttl=0, default_limit=3)

    assert len(audit.list_entries()) == 3
    assert len(audit.list_entries(limit=0)) == 3


def test_list_filters_are_intersected(audit, make_entries):
    make_entries(2, actor_id="7")
    make_entries(2, actor_id="7", affected_table="suppliers")
    make_entries(2, actor_id="9", action=AuditEntry.Action.DELETE)

    by_table = {e.id for e in audit.list_entries(affected_table="suppliers")}
    by_actor = {e.id for e in audit.list_entries(actor_id="7")}
    both = {e.id for e in audit.list_entries(affected_table="suppliers", actor_id="7")}

    assert len(by_table) == 2
    assert len(by_actor) == 4
    assert both == by_table & by_actor
    assert all(e.action == "DELETE" for e in audit.list_entries(action="DELETE"))
    assert len(audit.list_entries(action=AuditEntry.Action.DELETE)) == 2


def test_list_time_range_is_inclusive(audit, make_entries):
    make_entries(5)
    base = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)

    entries = audit.list_entries(
        occurred_from=base + timedelta(minutes=1),
        occurred_to=base + timedelta(minutes=3),
    )

    assert [e.record_id for e in entries] == ["3", "2", "1"]


def test_time_bounds_include_an_entry_recorded_by_the_service(audit):
    audit.record(affected_table="medications", record_id="1", action="CREATE")
    occurred_at = audit.list_entries()[0].occurred_at

    assert len(audit.list_entries(occurred_from=occurred_at)) == 1
    assert len(audit.list_entries(occurred_to=occurred_at)) == 1
    assert len(audit.list_entries(occurred_from=occurred_at, occurred_to=occurred_at)) == 1


def test_time_bounds_match_whole_second_bounds(audit):
    audit.record(affected_table="medications", record_id="1", action="CREATE")
    occurred_at = audit.list_entries()[0].occurred_at
    second = occurred_at.replace(microsecond=0)

    assert len(audit.list_entries(occurred_from=second)) == 1
    assert len(audit.list_entries(occurred_to=second + timedelta(seconds=1))) == 1
    assert audit.list_entries(occurred_to=second - timedelta(seconds=1)) == []


def test_list_for_record_filters_by_record_id(audit):
    audit.record(affected_table="medications", record_id="42", action="CREATE")
    audit.record(affected_table="medications", record_id="43", action="CREATE")
    audit.record(affected_table="suppliers", record_id="42", action="CREATE")

    entries = audit.list_for_record("medications", "42")

    assert len(entries) == 1
    assert entries[0].record_id == "42"
    assert entries[0].affected_table == "medications"


def test_list_for_record_is_capped(store, make_entries):
    make_entries(4, record_id="42")
    audit = AuditService(store, readiness_ttl=0, history_limit=3)

    assert len(audit.list_for_record("medications", "42")) == 3


def test_record_accepts_uuid_record_ids(audit):
    record_id = uuid.uuid4()

    audit.record(affected_table="medications", record_id=record_id, action="RESTORE")

    assert audit.list_for_record("medications", str(record_id))[0].action == "RESTORE"


def test_entries_are_returned_as_unsaved_values(audit):
    audit.record(affected_table="medications", record_id="1", action="CREATE")

    entry = audit.list_entries()[0]

    assert isinstance(entry, AuditEntry)
    assert str(entry).endswith("medications#1")


# ---------------------------------------------------------------------------
# Request actor
# ---------------------------------------------------------------------------
def test_client_ip_uses_first_forwarded_address():
    request = RequestFactory().get("/", HTTP_X_FORWARDED_FOR="203.0.113.9, 10.0.0.1")

    assert get_client_ip(request) == "203.0.113.9"


@pytest.mark.parametrize("forwarded", ["unknown", "203.0.113.999", "<script>", " , 10.0.0.1"])
def test_client_ip_ignores_junk_forwarded_header(forwarded):
    request = RequestFactory().get("/", HTTP_X_FORWARDED_FOR=forwarded)

    assert get_client_ip(request) == "127.0.0.1"


def test_client_ip_is_none_without_any_valid_address():
    request = RequestFactory().get("/", HTTP_X_FORWARDED_FOR="unknown", REMOTE_ADDR="")

    assert get_client_ip(request) is None


def test_junk_forwarded_header_is_recorded_as_remote_addr(audit):
    request = RequestFactory().get("/", HTTP_X_FORWARDED_FOR="unknown")

    audit.record(affected_table="medications", record_id="1", action="CREATE",
                 **actor_from_request(request))

    assert audit.list_entries()[0].source_address == "127.0.0.1"
