"""Create emergency_alerts, alert_attachments and alert_responses tables.

Revision ID: 002
Revises: 001
Create Date: 2026-09-28

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "emergency_alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("alert_type", sa.String(32), nullable=False),
        sa.Column("pet_id", sa.Integer(), nullable=False),
        sa.Column("reporter_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("address", sa.String(300), nullable=True),
        sa.Column("location_accuracy", sa.Float(), nullable=True),
        sa.Column("incident_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("report_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("urgency_level", sa.String(16), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("contact_info", sa.JSON(), nullable=True),
        sa.Column("force_propagation", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("propagation_radius_km", sa.Float(), nullable=False, server_default="5"),
        sa.Column("propagation_delay_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("propagation_duration_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("total_reached", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_shares", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_responses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["pet_id"], ["pets.id"], name=op.f("fk_emergency_alerts_pet_id_pets"), ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["reporter_id"], ["users.id"], name=op.f("fk_emergency_alerts_reporter_id_users"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_emergency_alerts")),
    )
    op.create_index(
        "ix_emergency_alerts_status_urgency_created",
        "emergency_alerts",
        ["status", "urgency_level", "created_at"],
        unique=False,
    )
    op.create_index("ix_emergency_alerts_location", "emergency_alerts", ["latitude", "longitude"], unique=False)
    op.create_index("ix_emergency_alerts_type_status", "emergency_alerts", ["alert_type", "status"], unique=False)
    op.create_index(
        "ix_emergency_alerts_reporter_created", "emergency_alerts", ["reporter_id", "created_at"], unique=False
    )
    op.create_index(op.f("ix_emergency_alerts_expires_at"), "emergency_alerts", ["expires_at"], unique=False)

    op.create_table(
        "alert_attachments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("alert_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("thumbnail", sa.Text(), nullable=True),
        sa.Column("description", sa.String(200), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["alert_id"],
            ["emergency_alerts.id"],
            name=op.f("fk_alert_attachments_alert_id_emergency_alerts"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_alert_attachments")),
    )
    op.create_index(op.f("ix_alert_attachments_alert_id"), "alert_attachments", ["alert_id"], unique=False)

    op.create_table(
        "alert_responses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("alert_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("response_type", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("address", sa.String(300), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(
            ["alert_id"],
            ["emergency_alerts.id"],
            name=op.f("fk_alert_responses_alert_id_emergency_alerts"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_alert_responses_user_id_users"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_alert_responses")),
    )
    op.create_index(op.f("ix_alert_responses_alert_id"), "alert_responses", ["alert_id"], unique=False)
    op.create_index(op.f("ix_alert_responses_user_id"), "alert_responses", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_alert_responses_user_id"), table_name="alert_responses")
    op.drop_index(op.f("ix_alert_responses_alert_id"), table_name="alert_responses")
    op.drop_table("alert_responses")
    op.drop_index(op.f("ix_alert_attachments_alert_id"), table_name="alert_attachments")
    op.drop_table("alert_attachments")
    op.drop_index(op.f("ix_emergency_alerts_expires_at"), table_name="emergency_alerts")
    op.drop_index("ix_emergency_alerts_reporter_created", table_name="emergency_alerts")
    op.drop_index("ix_emergency_alerts_type_status", table_name="emergency_alerts")
    op.drop_index("ix_emergency_alerts_location", table_name="emergency_alerts")
    op.drop_index("ix_emergency_alerts_status_urgency_created", table_name="emergency_alerts")
    op.drop_table("emergency_alerts")
