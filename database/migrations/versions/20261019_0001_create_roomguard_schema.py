"""create roomguard schema

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("admin", "professor", "student", name="user_role")
room_category_enum = sa.Enum("classroom", "study_room", name="room_category")
room_type_enum = sa.Enum("lecture", "lab", "amphitheater", "seminar", "study", name="room_type")
reservation_status_enum = sa.Enum("pending", "approved", "rejected", "used", "canceled", name="reservation_status")
notification_type_enum = sa.Enum("reservation", "timetable", "system", name="notification_type")


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_branches_name", "branches", ["name"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("branch_id", sa.String(length=36), sa.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_branch_id", "users", ["branch_id"], unique=False)

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("room_number", sa.String(length=100), nullable=False),
        sa.Column("category", room_category_enum, nullable=False, server_default="classroom"),
        sa.Column("type", room_type_enum, nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_rooms_room_number", "rooms", ["room_number"], unique=True)

    op.create_table(
        "class_groups",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("course_code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("academic_year", sa.String(length=20), nullable=True),
        sa.Column("semester", sa.String(length=20), nullable=True),
        sa.Column("branch_id", sa.String(length=36), sa.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True),
        sa.Column("professor_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_class_groups_course_code", "class_groups", ["course_code"], unique=False)
    op.create_index("ix_class_groups_branch_id", "class_groups", ["branch_id"], unique=False)
    op.create_index("ix_class_groups_professor_id", "class_groups", ["professor_id"], unique=False)

    op.create_table(
        "timetable_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "class_group_id",
            sa.String(length=36),
            sa.ForeignKey("class_groups.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("owner_user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column(
            "source_class_group_id",
            sa.String(length=36),
            sa.ForeignKey("class_groups.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("day", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("instructor", sa.String(length=200), nullable=True),
        sa.Column("location", sa.String(length=100), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=False, server_default="#6366f1"),
        sa.Column("type", sa.String(length=50), nullable=False, server_default="Lecture"),
        sa.CheckConstraint(
            "(class_group_id IS NULL) <> (owner_user_id IS NULL)",
            name="ck_timetable_entries_single_owner",
        ),
    )
    op.create_index("ix_timetable_entries_class_group_id", "timetable_entries", ["class_group_id"], unique=False)
    op.create_index("ix_timetable_entries_owner_user_id", "timetable_entries", ["owner_user_id"], unique=False)
    op.create_index(
        "ix_timetable_entries_source_class_group_id", "timetable_entries", ["source_class_group_id"], unique=False
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("room_id", sa.String(length=36), sa.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("purpose", sa.String(length=500), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", reservation_status_enum, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"], unique=False)
    op.create_index("ix_reservations_room_id", "reservations", ["room_id"], unique=False)
    op.create_index("ix_reservations_status", "reservations", ["status"], unique=False)
    op.create_index("ix_reservations_room_date_status", "reservations", ["room_id", "date", "status"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", notification_type_enum, nullable=False, server_default="system"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_reservations_room_date_status", table_name="reservations")
    op.drop_index("ix_reservations_status", table_name="reservations")
    op.drop_index("ix_reservations_room_id", table_name="reservations")
    op.drop_index("ix_reservations_user_id", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_timetable_entries_source_class_group_id", table_name="timetable_entries")
    op.drop_index("ix_timetable_entries_owner_user_id", table_name="timetable_entries")
    op.drop_index("ix_timetable_entries_class_group_id", table_name="timetable_entries")
    op.drop_table("timetable_entries")
    op.drop_index("ix_class_groups_professor_id", table_name="class_groups")
    op.drop_index("ix_class_groups_branch_id", table_name="class_groups")
    op.drop_index("ix_class_groups_course_code", table_name="class_groups")
    op.drop_table("class_groups")
    op.drop_index("ix_rooms_room_number", table_name="rooms")
    op.drop_table("rooms")
    op.drop_index("ix_users_branch_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_branches_name", table_name="branches")
    op.drop_table("branches")
    bind = op.get_bind()
    notification_type_enum.drop(bind, checkfirst=True)
    reservation_status_enum.drop(bind, checkfirst=True)
    room_type_enum.drop(bind, checkfirst=True)
    room_category_enum.drop(bind, checkfirst=True)
    user_role_enum.drop(bind, checkfirst=True)
