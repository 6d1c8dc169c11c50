"""
Management command to check whether the audit log is provisioned.

Usage:
    python manage.py audit_status [--database default] [--strict]

Prints whether the audit table exists on the given database alias and, if it
does, how many entries it holds. With --strict a missing table is an error.
"""
from django.core.management.base import BaseCommand, CommandError

from auditlog.models import AuditEntry
from auditlog.storage import SqlStore


class Command(BaseCommand):
    help = "Report whether the audit log table is provisioned."

    def add_arguments(self, parser):
        parser.add_argument("--database", default="default", help="Database alias to inspect")
        parser.add_argument("--strict", action="store_true", help="Fail when the table is missing")

    def handle(self, *args, **options):
        store = SqlStore(options["database"])
        table = AuditEntry._meta.db_table

        if not store.table_exists(table):
            message = f"Audit table '{table}' is not provisioned on '{store.alias}'. Entries will be skipped."
            if options["strict"]:
                raise CommandError(message)
            self.stdout.write(self.style.WARNING(message))
            return

        rows = store.query(f"SELECT COUNT(*) AS total FROM {store.quote_name(table)}")
        self.stdout.write(self.style.SUCCESS(
            f"Audit table '{table}' is provisioned on '{store.alias}' with {rows[0]['total']} entries."
        ))
