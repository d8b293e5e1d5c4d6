"""Create core tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  users, chapters, user_vouches, events, event_attendees, categories,
       tutorials.

users.chapter_id and chapters.chapter_lead_id reference each other, so the
chapters → users foreign key is added after both tables exist.

Rollback: downgrade() drops every table (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE_VALUES = ("student", "chapter-lead", "admin")
STATUS_VALUES = ("pending", "approved", "rejected")


def _timestamps():
    return (
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def upgrade() -> None:
    op.create_table(
        "chapters",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("chapter_lead_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_chapters"),
        sa.UniqueConstraint("name", name="uq_chapters_name"),
        # One chapter per lead; NULLs never collide
        sa.UniqueConstraint("chapter_lead_id", name="uq_chapters_chapter_lead_id"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum(*ROLE_VALUES, name="user_role", native_enum=False, length=20,
                    create_constraint=True),
            nullable=False,
            server_default="student",
        ),
        sa.Column("chapter_id", sa.Uuid(), nullable=True),
        sa.Column("vouch_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.ForeignKeyConstraint(
            ["chapter_id"], ["chapters.id"],
            name="fk_users_chapter_id_chapters", ondelete="SET NULL",
        ),
        sa.CheckConstraint("vouch_count >= 0", name="ck_users_vouch_count_non_negative"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_chapter_id", "users", ["chapter_id"])

    with op.batch_alter_table("chapters") as batch:
        batch.create_foreign_key(
            "fk_chapters_chapter_lead_id_users",
            "users",
            ["chapter_lead_id"],
            ["id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "user_vouches",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("voucher_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "voucher_id", name="pk_user_vouches"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["voucher_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("user_id <> voucher_id", name="ck_user_vouches_no_self_vouch"),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("chapter_id", sa.Uuid(), nullable=False),
        sa.Column("organizer_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_events"),
        sa.ForeignKeyConstraint(["chapter_id"], ["chapters.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["organizer_id"], ["users.id"]),
    )
    op.create_index("ix_events_chapter_id", "events", ["chapter_id"])
    op.create_index("idx_events_date", "events", ["date"])

    op.create_table(
        "event_attendees",
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("event_id", "user_id", name="pk_event_attendees"),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_categories"),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )

    op.create_table(
        "tutorials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category_id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*STATUS_VALUES, name="tutorial_status", native_enum=False, length=20,
                    create_constraint=True),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("chapter_id", sa.Uuid(), nullable=True),
        sa.Column("keywords", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_tutorials"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["chapter_id"], ["chapters.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_tutorials_category_id", "tutorials", ["category_id"])
    op.create_index("ix_tutorials_author_id", "tutorials", ["author_id"])
    op.create_index("idx_tutorials_status_created_at", "tutorials", ["status", "created_at"])


def downgrade() -> None:
    op.drop_table("tutorials")
    op.drop_table("categories")
    op.drop_table("event_attendees")
    op.drop_table("events")
    op.drop_table("user_vouches")
    with op.batch_alter_table("chapters") as batch:
        batch.drop_constraint("fk_chapters_chapter_lead_id_users", type_="foreignkey")
    op.drop_table("users")
    op.drop_table("chapters")
