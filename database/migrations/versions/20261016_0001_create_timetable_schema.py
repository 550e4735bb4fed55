"""create timetable schema

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    classroom_type = sa.Enum("lecture", "lab", "seminar", name="classroom_type")
    classroom_status = sa.Enum("available", "maintenance", "reserved", name="classroom_status")
    enrollment_status = sa.Enum("enrolled", "dropped", "completed", name="enrollment_status")

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("semester", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_subjects_code", "subjects", ["code"], unique=True)
    op.create_index("ix_subjects_department", "subjects", ["department"])

    op.create_table(
        "faculty",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_faculty_employee_id", "faculty", ["employee_id"], unique=True)
    op.create_index("ix_faculty_department", "faculty", ["department"])

    op.create_table(
        "faculty_subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("faculty_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("faculty_id", "subject_id", name="uq_faculty_subjects_faculty_subject"),
    )
    op.create_index("ix_faculty_subjects_faculty_id", "faculty_subjects", ["faculty_id"])
    op.create_index("ix_faculty_subjects_subject_id", "faculty_subjects", ["subject_id"])

    op.create_table(
        "classrooms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("room_number", sa.String(length=50), nullable=False),
        sa.Column("building", sa.String(length=200), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("type", classroom_type, nullable=False),
        sa.Column("status", classroom_status, nullable=False, server_default="available"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("room_number", "building", name="uq_classrooms_room_building"),
    )
    op.create_index("ix_classrooms_room_number", "classrooms", ["room_number"])

    op.create_table(
        "time_slots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("day_of_week", sa.String(length=20), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("slot_name", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("day_of_week", "start_time", "end_time", name="uq_time_slots_day_window"),
    )
    op.create_index("ix_time_slots_day_of_week", "time_slots", ["day_of_week"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("section", sa.String(length=20), nullable=False, server_default="A"),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("academic_year", sa.String(length=9), nullable=False),
        sa.Column("status", enrollment_status, nullable=False, server_default="enrolled"),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index("ix_enrollments_subject_id", "enrollments", ["subject_id"])

    op.create_table(
        "timetable_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("faculty_id", sa.String(length=36), nullable=False),
        sa.Column("classroom_id", sa.String(length=36), nullable=False),
        sa.Column("slot_id", sa.String(length=36), nullable=False),
        sa.Column("section", sa.String(length=20), nullable=False, server_default="A"),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("academic_year", sa.String(length=9), nullable=False),
        sa.Column("max_students", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("modified_by_id", sa.String(length=36), nullable=True),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=True),
    )
    for column in ("subject_id", "faculty_id", "classroom_id", "slot_id"):
        op.create_index(f"ix_timetable_entries_{column}", "timetable_entries", [column])
    op.create_index("ix_timetable_entries_term", "timetable_entries", ["semester", "academic_year", "is_active"])
    op.create_index(
        "uq_timetable_entries_active_faculty_slot",
        "timetable_entries",
        ["faculty_id", "slot_id", "semester", "academic_year"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )
    op.create_index(
        "uq_timetable_entries_active_classroom_slot",
        "timetable_entries",
        ["classroom_id", "slot_id", "semester", "academic_year"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"])
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_index("uq_timetable_entries_active_classroom_slot", table_name="timetable_entries")
    op.drop_index("uq_timetable_entries_active_faculty_slot", table_name="timetable_entries")
    op.drop_table("timetable_entries")
    op.drop_table("enrollments")
    op.drop_table("time_slots")
    op.drop_table("classrooms")
    op.drop_table("faculty_subjects")
    op.drop_table("faculty")
    op.drop_table("subjects")
    sa.Enum(name="enrollment_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="classroom_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="classroom_type").drop(op.get_bind(), checkfirst=True)
