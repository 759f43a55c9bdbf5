"""create teachers, subjects and timetables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    teacher_rank = sa.Enum("assistant", "associate", "senior", name="teacher_rank")
    subject_type = sa.Enum("theory", "lab", name="subject_type")

    op.create_table(
        "teachers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("rank", teacher_rank, nullable=False),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("max_workload", sa.Integer(), nullable=False),
        sa.Column("current_workload", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("availability", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_teachers_department", "teachers", ["department"])

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("type", subject_type, nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("teacher_ids", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_subjects_code", "subjects", ["code"])
    op.create_index("ix_subjects_semester", "subjects", ["semester"])

    op.create_table(
        "timetables",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("section", sa.String(length=50), nullable=False),
        sa.Column("cluster", sa.String(length=100), nullable=True),
        sa.Column("schedule", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("semester", "department", "section", name="uq_timetables_class"),
    )


def downgrade() -> None:
    op.drop_table("timetables")
    op.drop_index("ix_subjects_semester", table_name="subjects")
    op.drop_index("ix_subjects_code", table_name="subjects")
    op.drop_table("subjects")
    op.drop_index("ix_teachers_department", table_name="teachers")
    op.drop_table("teachers")
    sa.Enum(name="subject_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="teacher_rank").drop(op.get_bind(), checkfirst=True)
