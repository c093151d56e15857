"""create_materials_schema

Revision ID: 5f3a9c2d1e47
Revises:
Create Date: 2026-10-19 10:12:41.204117

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "5f3a9c2d1e47"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_string_list = postgresql.ARRAY(sa.String()).with_variant(sa.JSON(), "sqlite")
_actions = ("pending", "accepted", "rejected")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )
    op.create_table(
        "user_profiles",
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role", sa.String(), nullable=True),
        sa.Column("primary_institution", sa.String(), nullable=True),
        sa.Column("image", sa.LargeBinary(), nullable=True),
    )
    op.create_table(
        "materials",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("primary_author", sa.String(), nullable=False),
        sa.Column("contributors", _string_list, nullable=False),
        sa.Column("content", sa.LargeBinary(), nullable=False),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("file_name", sa.String(), nullable=True),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("image", sa.LargeBinary(), nullable=True),
        sa.Column("material_type", sa.String(), nullable=True),
        sa.Column("technical_type", sa.String(), nullable=True),
        sa.Column("target_audience", sa.String(), nullable=True),
        sa.Column("disciplines", _string_list, nullable=False),
        sa.Column("accessibility", _string_list, nullable=True),
        sa.Column("author_permission", sa.Boolean(), nullable=False),
        sa.Column(
            "date_uploaded",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("total_reads", sa.Integer(), nullable=False),
        sa.Column("total_comments", sa.Integer(), nullable=False),
        sa.Column("average_rating", sa.Float(), nullable=False),
    )
    op.create_index("ix_materials_primary_author", "materials", ["primary_author"])

    for table, timestamp in (
        ("material_comments", "created_at"),
        ("material_ratings", "rated_at"),
    ):
        columns = [
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "material_id",
                sa.String(length=36),
                sa.ForeignKey("materials.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("user_id", sa.String(length=36), nullable=False),
        ]
        if table == "material_comments":
            columns.append(sa.Column("content", sa.Text(), nullable=False))
        else:
            columns.append(sa.Column("value", sa.Integer(), nullable=False))
            columns.append(
                sa.UniqueConstraint("material_id", "user_id", name="uq_material_rating_user")
            )
        columns.append(
            sa.Column(
                timestamp,
                sa.DateTime(timezone=True),
                server_default=sa.text("CURRENT_TIMESTAMP"),
            )
        )
        op.create_table(table, *columns)
        op.create_index(f"ix_{table}_id", table, ["id"])
        op.create_index(f"ix_{table}_material_id", table, ["material_id"])

    op.create_table(
        "reading_list_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column(
            "material_id",
            sa.String(length=36),
            sa.ForeignKey("materials.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "added_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("read_count", sa.Integer(), nullable=False),
        sa.Column("download_count", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_id", "material_id", name="uq_reading_list_user_material"),
    )
    op.create_index("ix_reading_list_entries_user_id", "reading_list_entries", ["user_id"])
    op.create_index(
        "ix_reading_list_entries_material_id", "reading_list_entries", ["material_id"]
    )

    op.create_table(
        "collaboration_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "material_id",
            sa.String(length=36),
            sa.ForeignKey("materials.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("requested_by", sa.String(length=36), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*[a.upper() for a in _actions], name="collaboration_request_status"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index(
        "ix_collaboration_requests_material_id", "collaboration_requests", ["material_id"]
    )
    op.create_index(
        "ix_collaboration_requests_requested_by", "collaboration_requests", ["requested_by"]
    )
    op.create_table(
        "collaboration_invitees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "request_id",
            sa.Integer(),
            sa.ForeignKey("collaboration_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column(
            "action",
            sa.Enum(*[a.upper() for a in _actions], name="collaboration_invitee_action"),
            nullable=False,
        ),
        sa.UniqueConstraint("request_id", "author_id", name="uq_invitee_request_author"),
    )
    op.create_table(
        "pending_collaborations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "request_id",
            sa.Integer(),
            sa.ForeignKey("collaboration_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("requested_to", sa.String(length=36), nullable=False),
        sa.Column(
            "user_action",
            sa.Enum(*[a.upper() for a in _actions], name="pending_collaboration_action"),
            nullable=False,
        ),
        sa.UniqueConstraint("request_id", "requested_to", name="uq_pending_request_user"),
    )
    op.create_index(
        "ix_pending_collaborations_requested_to", "pending_collaborations", ["requested_to"]
    )
    op.create_table(
        "collaborations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "material_id",
            sa.String(length=36),
            sa.ForeignKey("materials.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_table(
        "collaboration_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "collaboration_id",
            sa.Integer(),
            sa.ForeignKey("collaborations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.String(length=36), nullable=False),
        sa.Column(
            "accepted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint(
            "collaboration_id", "author_id", name="uq_collaboration_member_author"
        ),
    )


def downgrade() -> None:
    op.drop_table("collaboration_members")
    op.drop_table("collaborations")
    op.drop_index("ix_pending_collaborations_requested_to", table_name="pending_collaborations")
    op.drop_table("pending_collaborations")
    op.drop_table("collaboration_invitees")
    op.drop_index("ix_collaboration_requests_requested_by", table_name="collaboration_requests")
    op.drop_index("ix_collaboration_requests_material_id", table_name="collaboration_requests")
    op.drop_table("collaboration_requests")
    op.drop_table("reading_list_entries")
    op.drop_table("material_ratings")
    op.drop_table("material_comments")
    op.drop_index("ix_materials_primary_author", table_name="materials")
    op.drop_table("materials")
    op.drop_table("user_profiles")
    op.drop_table("users")
    for enum_name in (
        "pending_collaboration_action",
        "collaboration_invitee_action",
        "collaboration_request_status",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
