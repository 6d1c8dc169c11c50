"""
Data-access collaborator for the audit log.
Raw SQL with named %(name)s parameters – never string interpolation of values.
Identifiers are quoted by the backend.
"""
import enum
import threading
import time

from django.db import (
    DatabaseError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
    connections,
)

# SQLSTATE codes reported by the driver
UNDEFINED_TABLE = "42P01"
CONNECTION_EXCEPTION_CLASS = "08"

# Per-statement server clock. Literal % is doubled for the pyformat paramstyle.
NOW_SQL = {
    "postgresql": "STATEMENT_TIMESTAMP()",
    "sqlite": "STRFTIME('%%Y-%%m-%%d %%H:%%M:%%f', 'NOW')",
}

# SQLite keeps datetimes as text in mixed precisions; compare them in one format.
DATETIME_SQL = {
    "sqlite": "STRFTIME('%%Y-%%m-%%d %%H:%%M:%%f', {})",
}


class ErrorKind(enum.Enum):
    OBJECT_NOT_FOUND = "object_not_found"
    CONNECTION_FAILURE = "connection_failure"
    CONSTRAINT_VIOLATION = "constraint_violation"
    OTHER = "other"


def _sqlstate(exc):
    """Driver SQLSTATE behind a Django database error, if any."""
    cause = exc.__cause__
    # psycopg 3 exposes .sqlstate, psycopg2 .pgcode
    return getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)


class SqlStore:
    """Parameterized query/execute against one Django database alias."""

    def __init__(self, alias="default"):
        self.alias = alias

    @property
    def connection(self):
        return connections[self.alias]

    @property
    def now_sql(self):
        return NOW_SQL.get(self.connection.vendor, "CURRENT_TIMESTAMP")

    def datetime_sql(self, expr):
        """Wrap a column or placeholder so datetimes compare by instant."""
        template = DATETIME_SQL.get(self.connection.vendor)
        return template.format(expr) if template else expr

    def quote_name(self, name):
        return self.connection.ops.quote_name(name)

    def adapt_datetime(self, value):
        return self.connection.ops.adapt_datetimefield_value(value)

    def adapt_uuid(self, value):
        if self.connection.features.has_native_uuid_field:
            return value
        return value.hex

    def query(self, sql, params=None):
        """Run a read and return rows as column → value dicts."""
        with self.connection.cursor() as cur:
            cur.execute(sql, params)
            columns = [col[0] for col in cur.description]
            return [dict(zip(columns, row)) for row in cur.fetchall()]

    def execute(self, sql, params=None):
        """Run a write and return the affected row count."""
        with self.connection.cursor() as cur:
            cur.execute(sql, params)
            return cur.rowcount

    def table_exists(self, name):
        """Catalog lookup only – never touches the table's rows."""
        with self.connection.cursor() as cur:
            return name in self.connection.introspection.table_names(cur)

    def classify(self, exc, table=None):
        """Map a Django database error to an ErrorKind."""
        if isinstance(exc, IntegrityError):
            return ErrorKind.CONSTRAINT_VIOLATION

        code = _sqlstate(exc)
        if code == UNDEFINED_TABLE:
            return ErrorKind.OBJECT_NOT_FOUND
        if code and code.startswith(CONNECTION_EXCEPTION_CLASS):
            return ErrorKind.CONNECTION_FAILURE
        if isinstance(exc, InterfaceError):
            return ErrorKind.CONNECTION_FAILURE

        # No usable code (e.g. SQLite): ask the catalog whether the table is gone.
        if code is None and table and isinstance(exc, (ProgrammingError, OperationalError)):
            try:
                exists = self.table_exists(table)
            except DatabaseError:
                return ErrorKind.CONNECTION_FAILURE
            if not exists:
                return ErrorKind.OBJECT_NOT_FOUND

        if isinstance(exc, OperationalError):
            return ErrorKind.CONNECTION_FAILURE
        return ErrorKind.OTHER


class TableReadiness:
    """Cached answer to "is the table provisioned?", re-checked after ``ttl`` seconds."""

    def __init__(self, store, table, ttl=30, clock=time.monotonic):
        self.store = store
        self.table = table
        self.ttl = ttl
        self._clock = clock
        self._ready = None
        self._checked_at = None
        # One instance serves every request thread of the process
        self._lock = threading.Lock()

    def ready(self):
        with self._lock:
            now = self._clock()
            if self._ready is not None and now - self._checked_at < self.ttl:
                return self._ready
            self._ready = self.store.table_exists(self.table)
            self._checked_at = now
            return self._ready

    def invalidate(self):
        with self._lock:
            self._ready = None
            self._checked_at = None
