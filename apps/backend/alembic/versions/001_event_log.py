"""Event log table, database roles and row level security.

Revision ID: 001_event_log
Revises:
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001_event_log"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None

ROLES = ("authenticated", "system", "system_admin")


def _create_roles() -> None:
    for role in ROLES:
        op.execute(
            f"""
            DO $$
            BEGIN
                IF NOT EXISTS (SELECT 1 FROM pg_roles WHERE rolname = '{role}') THEN
                    CREATE ROLE "{role}" NOLOGIN;
                END IF;
            END
            $$;
            """
        )
        # The migrating (application) user must be able to SET ROLE.
        op.execute(f'GRANT "{role}" TO CURRENT_USER')


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')
    _create_roles()

    op.create_table(
        "event",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("event_type", sa.Text, nullable=False),
        sa.Column(
            "event_version",
            sa.Text,
            nullable=False,
            server_default=sa.text("'1.0'"),
        ),
        sa.Column("aggregate_id", sa.Text, nullable=False),
        sa.Column("aggregate_type", sa.Text, nullable=False),
        sa.Column(
            "aggregate_version",
            sa.Integer,
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column("sequence_number", sa.Integer, nullable=False),
        sa.Column(
            "event_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("causation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("correlation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("session_id", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint("length(btrim(aggregate_id)) > 0", name="event_aggregate_id_not_blank"),
        sa.CheckConstraint("sequence_number > 0", name="event_sequence_number_positive"),
        sa.UniqueConstraint(
            "aggregate_id", "sequence_number", name="event_aggregate_sequence_unique"
        ),
    )

    op.create_index("idx_event_aggregate_id", "event", ["aggregate_id"])
    op.create_index("idx_event_event_type", "event", ["event_type"])
    op.create_index("idx_event_aggregate_type", "event", ["aggregate_type"])
    op.create_index("idx_event_correlation_id", "event", ["correlation_id"])
    op.create_index("idx_event_created_at", "event", ["created_at"])
    op.create_index("idx_event_organization_id", "event", ["organization_id"])
    op.create_index(
        "idx_event_aggregate_stream",
        "event",
        ["aggregate_id", "aggregate_type", "sequence_number"],
    )
    op.create_index("idx_event_type_created_at", "event", ["event_type", "created_at"])

    op.execute("GRANT SELECT, INSERT ON event TO authenticated, system")
    op.execute("GRANT ALL ON event TO system_admin")

    op.execute("ALTER TABLE event ENABLE ROW LEVEL SECURITY")
    op.execute(
        """
        CREATE POLICY event_authenticated_select ON event
            FOR SELECT TO authenticated
            USING (organization_id::text = current_setting('app.current_organization_id', true))
        """
    )
    op.execute(
        """
        CREATE POLICY event_authenticated_insert ON event
            FOR INSERT TO authenticated
            WITH CHECK (organization_id::text = current_setting('app.current_organization_id', true))
        """
    )
    op.execute(
        "CREATE POLICY event_system_select ON event FOR SELECT TO system USING (true)"
    )
    op.execute(
        "CREATE POLICY event_system_insert ON event FOR INSERT TO system WITH CHECK (true)"
    )
    op.execute(
        """
        CREATE POLICY event_system_admin_all ON event
            FOR ALL TO system_admin USING (true) WITH CHECK (true)
        """
    )


def downgrade() -> None:
    for policy in (
        "event_system_admin_all",
        "event_system_insert",
        "event_system_select",
        "event_authenticated_insert",
        "event_authenticated_select",
    ):
        op.execute(f"DROP POLICY IF EXISTS {policy} ON event")
    op.drop_table("event")
