"""Store-level guard against two active bookings sharing a unit-night.

PostgreSQL gets an exclusion constraint over ``daterange(check_in, check_out, '[)')``;
SQLite (tests, local runs) gets a pair of triggers raising the same name.
"""

from django.db import migrations

GUARD = "prevent_double_booking"
ACTIVE = "('pending_deposit', 'confirmed', 'checked_in')"

POSTGRES_FORWARD = [
    "CREATE EXTENSION IF NOT EXISTS btree_gist",
    f"""
    ALTER TABLE bookings_booking ADD CONSTRAINT {GUARD}
    EXCLUDE USING gist (
        unit_id WITH =,
        daterange(check_in, check_out, '[)') WITH &&
    ) WHERE (status IN {ACTIVE})
    """,
]
POSTGRES_BACKWARD = [f"ALTER TABLE bookings_booking DROP CONSTRAINT IF EXISTS {GUARD}"]

SQLITE_TRIGGER = """
CREATE TRIGGER {name} BEFORE {event} ON bookings_booking
FOR EACH ROW WHEN NEW.status IN {active}
BEGIN
    SELECT RAISE(ABORT, '{guard}')
    WHERE EXISTS (
        SELECT 1 FROM bookings_booking b
        WHERE b.unit_id = NEW.unit_id
          AND b.status IN {active}
          AND b.check_in < NEW.check_out
          AND b.check_out > NEW.check_in
          {self_filter}
    );
END
"""
SQLITE_FORWARD = [
    SQLITE_TRIGGER.format(
        name=f"{GUARD}_insert", event="INSERT", active=ACTIVE, guard=GUARD, self_filter=""
    ),
    SQLITE_TRIGGER.format(
        name=f"{GUARD}_update",
        event="UPDATE",
        active=ACTIVE,
        guard=GUARD,
        self_filter="AND b.id != NEW.id",
    ),
]
SQLITE_BACKWARD = [
    f"DROP TRIGGER IF EXISTS {GUARD}_insert",
    f"DROP TRIGGER IF EXISTS {GUARD}_update",
]


def _run(schema_editor, statements_by_vendor):
    statements = statements_by_vendor.get(schema_editor.connection.vendor, [])
    for statement in statements:
        schema_editor.execute(statement)


def install_guard(apps, schema_editor):
    _run(schema_editor, {"postgresql": POSTGRES_FORWARD, "sqlite": SQLITE_FORWARD})


def remove_guard(apps, schema_editor):
    _run(schema_editor, {"postgresql": POSTGRES_BACKWARD, "sqlite": SQLITE_BACKWARD})


class Migration(migrations.Migration):

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(install_guard, remove_guard),
    ]
