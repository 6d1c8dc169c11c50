"""Audit log service – record and read audit entries through a SqlStore."""
import datetime
import json
import logging
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import validate_ipv46_address
from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .models import AuditEntry
from .storage import ErrorKind, SqlStore, TableReadiness

logger = logging.getLogger(__name__)

COLUMNS = [
    "id", "affected_table", "record_id", "action", "previous_data",
    "actor_id", "actor_name", "occurred_at", "source_address", "note",
]


def _valid_ip(value):
    try:
        validate_ipv46_address(value)
    except ValidationError:
        return None
    return value


def get_client_ip(request):
    """
    Extract IP, respecting X-Forwarded-For from the reverse proxy.
    The header is client-controlled: anything that is not an IP address
    falls back to REMOTE_ADDR, or None.
    """
    xff = request.META.get("HTTP_X_FORWARDED_FOR")
    if xff:
        ip = _valid_ip(xff.split(",")[0].strip())
        if ip:
            return ip
    return _valid_ip(request.META.get("REMOTE_ADDR") or "")


def actor_from_request(request):
    """Return the actor_id / actor_name / source_address kwargs for AuditService.record."""
    actor = {
        "actor_id": None,
        "actor_name": None,
        "source_address": get_client_ip(request),
    }
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        actor["actor_id"] = str(user.pk)
        actor["actor_name"] = user.get_full_name() or user.get_username()
    return actor


def _as_datetime(value):
    if isinstance(value, str):
        value = parse_datetime(value)
    if value is not None and settings.USE_TZ and timezone.is_naive(value):
        value = timezone.make_aware(value, datetime.timezone.utc)
    return value


class AuditService:
    """
    Append-only audit log over an optional table.

    A deployment without the audit table is valid: writes become no-ops and
    reads return nothing. Any other database failure reaches the caller.
    """

    def __init__(self, store, table=None, readiness_ttl=None, default_limit=None,
                 history_limit=None):
        self.store = store
        self.table = table or AuditEntry._meta.db_table
        self.default_limit = default_limit or settings.AUDIT_DEFAULT_LIMIT
        self.history_limit = history_limit or settings.AUDIT_RECORD_HISTORY_LIMIT
        ttl = settings.AUDIT_READINESS_TTL if readiness_ttl is None else readiness_ttl
        self.readiness = TableReadiness(store, self.table, ttl=ttl)

    @classmethod
    def from_settings(cls):
        return cls(SqlStore(settings.AUDIT_DATABASE_ALIAS))

    def storage_ready(self):
        return self.readiness.ready()

    def _table_missing(self, exc):
        if self.store.classify(exc, table=self.table) is ErrorKind.OBJECT_NOT_FOUND:
            self.readiness.invalidate()
            return True
        return False

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------
    def record(self, *, affected_table, record_id, action, previous_data=None,
               actor_id=None, actor_name=None, source_address=None, note=None):
        """Append one entry. Returns its id, or None when nothing was written."""
        action = AuditEntry.Action(action)

        if not self.storage_ready():
            logger.warning("Audit table %s does not exist, skipping %s on %s#%s",
                           self.table, action.value, affected_table, record_id)
            return None

        entry_id = uuid.uuid4()
        sql = f"""
            INSERT INTO {self.store.quote_name(self.table)} (
                id, affected_table, record_id, action, previous_data,
                actor_id, actor_name, occurred_at, source_address, note
            )
            VALUES (
                %(id)s, %(affected_table)s, %(record_id)s, %(action)s, %(previous_data)s,
                %(actor_id)s, %(actor_name)s, {self.store.now_sql}, %(source_address)s, %(note)s
            )
        """
        params = {
            "id": self.store.adapt_uuid(entry_id),
            "affected_table": affected_table,
            "record_id": str(record_id),
            "action": action.value,
            "previous_data": (
                json.dumps(previous_data, cls=DjangoJSONEncoder)
                if previous_data is not None else None
            ),
            "actor_id": actor_id or None,
            "actor_name": actor_name or None,
            "source_address": source_address or None,
            "note": note or None,
        }

        try:
            # Savepoint: a failed insert must not abort the caller's transaction.
            with transaction.atomic(using=self.store.alias):
                self.store.execute(sql, params)
        except DatabaseError as exc:
            if self._table_missing(exc):
                logger.warning("Audit table %s vanished, %s on %s#%s not recorded: %s",
                               self.table, action.value, affected_table, record_id, exc)
                return None
            raise
        return entry_id

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    def list_entries(self, *, affected_table=None, record_id=None, actor_id=None, action=None,
                     occurred_from=None, occurred_to=None, limit=None):
        """Return matching entries, newest first, at most ``limit`` of them."""
        if not self.storage_ready():
            logger.warning("Audit table %s does not exist, returning no entries", self.table)
            return []

        conditions = []
        params = {}
        occurred_at = self.store.datetime_sql("occurred_at")

        if affected_table:
            conditions.append("affected_table = %(affected_table)s")
            params["affected_table"] = affected_table
        if record_id:
            conditions.append("record_id = %(record_id)s")
            params["record_id"] = str(record_id)
        if actor_id:
            conditions.append("actor_id = %(actor_id)s")
            params["actor_id"] = actor_id
        if action:
            conditions.append("action = %(action)s")
            params["action"] = AuditEntry.Action(action).value
        if occurred_from is not None:
            conditions.append(f"{occurred_at} >= {self.store.datetime_sql('%(occurred_from)s')}")
            params["occurred_from"] = self.store.adapt_datetime(occurred_from)
        if occurred_to is not None:
            conditions.append(f"{occurred_at} <= {self.store.datetime_sql('%(occurred_to)s')}")
            params["occurred_to"] = self.store.adapt_datetime(occurred_to)

        if not limit or limit <= 0:
            limit = self.default_limit
        params["limit"] = limit

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"""
            SELECT {", ".join(COLUMNS)}
            FROM {self.store.quote_name(self.table)}
            {where}
            ORDER BY occurred_at DESC, id DESC
            LIMIT %(limit)s
        """

        try:
            with transaction.atomic(using=self.store.alias):
                rows = self.store.query(sql, params)
        except DatabaseError as exc:
            if self._table_missing(exc):
                logger.warning("Audit table %s vanished, returning no entries: %s", self.table, exc)
                return []
            raise
        return [self._to_entry(row) for row in rows]

    def list_for_record(self, affected_table, record_id):
        """History of one record, newest first."""
        return self.list_entries(
            affected_table=affected_table, record_id=record_id, limit=self.history_limit,
        )

    def _to_entry(self, row):
        row = dict(row)
        row["id"] = uuid.UUID(str(row["id"]))
        row["occurred_at"] = _as_datetime(row["occurred_at"])
        if row["source_address"] is not None:
            row["source_address"] = str(row["source_address"])
        return AuditEntry(**row)
