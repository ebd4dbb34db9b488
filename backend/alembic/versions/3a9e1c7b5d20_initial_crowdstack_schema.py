"""initial crowdstack schema

Revision ID: 3a9e1c7b5d20
Revises:
Create Date: 2026-10-12 11:20:41.118302

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3a9e1c7b5d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str, nullable: bool = False, default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.func.now() if default else None,
    )


def _user_fk(name: str, ondelete: str | None = None, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.Integer(), sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=128), nullable=True),
        _ts("created_at"),
    )
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        _user_fk("user_id", "CASCADE", nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        _user_fk("assigned_by", "SET NULL"),
        _ts("assigned_at"),
        sa.UniqueConstraint("user_id", "role", name="uq_user_role"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])

    op.create_table(
        "organizers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        _user_fk("created_by", nullable=False),
        _ts("created_at"),
    )
    op.create_index("ix_organizers_created_by", "organizers", ["created_by"])

    op.create_table(
        "venues",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("auto_approve_events", sa.Boolean(), nullable=False, server_default=sa.false()),
        _user_fk("created_by", nullable=False),
        _ts("created_at"),
    )
    op.create_index("ix_venues_created_by", "venues", ["created_by"])

    op.create_table(
        "organizer_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("organizers.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id", "CASCADE", nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="staff"),
        sa.Column("permissions", sa.JSON(), nullable=False),
        _user_fk("assigned_by", "SET NULL"),
        _ts("assigned_at"),
        sa.UniqueConstraint("organizer_id", "user_id", name="uq_organizer_user"),
    )
    op.create_index("ix_organizer_users_organizer_id", "organizer_users", ["organizer_id"])
    op.create_index("ix_organizer_users_user_id", "organizer_users", ["user_id"])

    op.create_table(
        "venue_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id", "CASCADE", nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="staff"),
        sa.Column("permissions", sa.JSON(), nullable=False),
        _user_fk("assigned_by", "SET NULL"),
        _ts("assigned_at"),
        sa.UniqueConstraint("venue_id", "user_id", name="uq_venue_user"),
    )
    op.create_index("ix_venue_users_venue_id", "venue_users", ["venue_id"])
    op.create_index("ix_venue_users_user_id", "venue_users", ["user_id"])

    op.create_table(
        "team_invites",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("scope", sa.String(length=16), nullable=False),  # organizer/venue
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _user_fk("invited_by", "SET NULL"),
        _user_fk("accepted_user_id", "SET NULL"),
        _ts("accepted_at", nullable=True, default=False),
        _ts("created_at"),
        sa.UniqueConstraint("scope", "entity_id", "email", name="uq_team_invites_scope_entity_email"),
    )
    op.create_index("ix_team_invites_entity_id", "team_invites", ["entity_id"])
    op.create_index("ix_team_invites_email", "team_invites", ["email"])

    op.create_table(
        "capabilities",
        sa.Column("code", sa.String(length=80), primary_key=True),
        sa.Column("scopes", sa.String(length=80), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("organizers.id"), nullable=False),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id"), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=False),
        _ts("start_time", nullable=True, default=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="IDR"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("venue_approval_status", sa.String(length=16), nullable=False, server_default="not_required"),
        _ts("venue_approval_at", nullable=True, default=False),
        _user_fk("venue_approval_by"),
        sa.Column("venue_rejection_reason", sa.String(length=500), nullable=True),
        _user_fk("created_by", nullable=False),
        _user_fk("owner_user_id", nullable=False),
        _ts("created_at"),
        _ts("closed_at", nullable=True, default=False),
        _user_fk("closed_by"),
        sa.Column("closeout_notes", sa.Text(), nullable=True),
        sa.Column("total_revenue", sa.Integer(), nullable=True),
        _ts("locked_at", nullable=True, default=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])
    op.create_index("ix_events_venue_id", "events", ["venue_id"])
    op.create_index("ix_events_slug", "events", ["slug"], unique=True)
    op.create_index("ix_events_owner_user_id", "events", ["owner_user_id"])

    op.create_table(
        "attendees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        _user_fk("user_id", "SET NULL"),
        _ts("created_at"),
        sa.UniqueConstraint("user_id", name="uq_attendees_user_id"),
    )
    op.create_index("ix_attendees_email", "attendees", ["email"])
    op.create_index("ix_attendees_phone", "attendees", ["phone"])

    op.create_table(
        "promoters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        _user_fk("user_id", "SET NULL"),
        _user_fk("created_by"),
        _ts("created_at"),
        sa.UniqueConstraint("user_id", name="uq_promoters_user_id"),
    )

    op.create_table(
        "event_promoters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("promoter_id", sa.Integer(), sa.ForeignKey("promoters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("per_head_rate", sa.Integer(), nullable=True),
        sa.Column("per_head_min", sa.Integer(), nullable=True),
        sa.Column("per_head_max", sa.Integer(), nullable=True),
        sa.Column("fixed_fee", sa.Integer(), nullable=True),
        sa.Column("minimum_guests", sa.Integer(), nullable=True),
        sa.Column("below_minimum_percent", sa.Integer(), nullable=True),
        sa.Column("bonus_threshold", sa.Integer(), nullable=True),
        sa.Column("bonus_amount", sa.Integer(), nullable=True),
        sa.Column("bonus_tiers", sa.JSON(), nullable=True),
        sa.Column("manual_adjustment_amount", sa.Integer(), nullable=True),
        sa.Column("manual_adjustment_reason", sa.String(length=500), nullable=True),
        _user_fk("assigned_by"),
        sa.UniqueConstraint("event_id", "promoter_id", name="uq_event_promoters_event_promoter"),
    )
    op.create_index("ix_event_promoters_event_id", "event_promoters", ["event_id"])
    op.create_index("ix_event_promoters_promoter_id", "event_promoters", ["promoter_id"])

    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("attendee_id", sa.Integer(), sa.ForeignKey("attendees.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "referral_promoter_id",
            sa.Integer(),
            sa.ForeignKey("promoters.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _ts("created_at"),
        _ts("reminder_sent_at", nullable=True, default=False),
        sa.UniqueConstraint("attendee_id", "event_id", name="uq_registrations_attendee_event"),
    )
    op.create_index("ix_registrations_attendee_id", "registrations", ["attendee_id"])
    op.create_index("ix_registrations_event_id", "registrations", ["event_id"])
    op.create_index("ix_registrations_referral_promoter_id", "registrations", ["referral_promoter_id"])

    op.create_table(
        "checkins",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "registration_id",
            sa.Integer(),
            sa.ForeignKey("registrations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("checked_in_by"),
        _ts("checked_in_at"),
        _ts("undo_at", nullable=True, default=False),
        _user_fk("undo_by"),
    )
    op.create_index("ix_checkins_registration_id", "checkins", ["registration_id"], unique=True)

    op.create_table(
        "event_door_staff",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id", "CASCADE", nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        _user_fk("assigned_by"),
        _ts("assigned_at"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_door_staff"),
    )
    op.create_index("ix_event_door_staff_event_id", "event_door_staff", ["event_id"])
    op.create_index("ix_event_door_staff_user_id", "event_door_staff", ["user_id"])

    op.create_table(
        "payout_runs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        _user_fk("generated_by"),
        _ts("generated_at"),
    )
    op.create_index("ix_payout_runs_event_id", "payout_runs", ["event_id"], unique=True)

    op.create_table(
        "payout_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("payout_run_id", sa.Integer(), sa.ForeignKey("payout_runs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("promoter_id", sa.Integer(), sa.ForeignKey("promoters.id"), nullable=False),
        sa.Column("checkins_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("commission_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(length=32), nullable=False, server_default="pending_payment"),
        _ts("paid_at", nullable=True, default=False),
        _user_fk("paid_by"),
    )
    op.create_index("ix_payout_lines_payout_run_id", "payout_lines", ["payout_run_id"])
    op.create_index("ix_payout_lines_promoter_id", "payout_lines", ["promoter_id"])


def downgrade():
    for table in (
        "payout_lines",
        "payout_runs",
        "event_door_staff",
        "checkins",
        "registrations",
        "event_promoters",
        "promoters",
        "attendees",
        "events",
        "capabilities",
        "team_invites",
        "venue_users",
        "organizer_users",
        "venues",
        "organizers",
        "user_roles",
        "users",
    ):
        op.drop_table(table)
