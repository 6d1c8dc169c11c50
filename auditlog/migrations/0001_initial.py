import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("affected_table", models.CharField(db_index=True, max_length=128)),
                ("record_id", models.CharField(max_length=128)),
                ("action", models.CharField(
                    choices=[
                        ("CREATE", "Create"),
                        ("UPDATE", "Update"),
                        ("DELETE", "Delete"),
                        ("SOFT_DELETE", "Soft Delete"),
                        ("RESTORE", "Restore"),
                    ],
                    max_length=20,
                )),
                ("previous_data", models.TextField(blank=True, null=True)),
                ("actor_id", models.CharField(blank=True, db_index=True, max_length=128, null=True)),
                ("actor_name", models.CharField(blank=True, max_length=255, null=True)),
                ("occurred_at", models.DateTimeField(db_index=True)),
                ("source_address", models.GenericIPAddressField(blank=True, null=True)),
                ("note", models.TextField(blank=True, null=True)),
            ],
            options={
                "db_table": "audit_log",
                "ordering": ["-occurred_at"],
                "indexes": [
                    models.Index(fields=["affected_table", "occurred_at"], name="idx_audit_table_ts"),
                ],
            },
        ),
    ]
