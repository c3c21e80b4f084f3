from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from app.core.enums import Category, Governorate, SubCategory, enum_values

revision = "0001_advertisements"
down_revision = None
branch_labels = None
depends_on = None


def _enum(enum_cls, name: str) -> sa.Enum:
    return sa.Enum(
        *enum_values(enum_cls),
        name=name,
        native_enum=False,
        create_constraint=True,
        length=40,
    )


def upgrade():
    op.create_table(
        "advertisements",
        sa.Column("id", sa.String(), primary_key=True),

        sa.Column("name_ar", sa.String(length=300), nullable=False),
        sa.Column("name_en", sa.String(length=300), nullable=False),
        sa.Column("description_ar", sa.Text(), nullable=False),
        sa.Column("description_en", sa.Text(), nullable=False),

        sa.Column("images", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("videos", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),

        sa.Column("category", _enum(Category, "advertisement_category"), nullable=False),
        sa.Column("sub_category", _enum(SubCategory, "advertisement_sub_category"), nullable=False),
        sa.Column("governorate", _enum(Governorate, "advertisement_governorate"), nullable=False),
        sa.Column("audience", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),

        sa.Column("social_media", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),

        sa.Column("subscription_end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),

        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_index("ix_advertisements_public_order", "advertisements", ["display_order", "created_at"])
    op.create_index("ix_advertisements_visibility", "advertisements", ["is_active", "subscription_end_date"])
    op.create_index(
        "ix_advertisements_audience",
        "advertisements",
        ["audience"],
        postgresql_using="gin",
    )


def downgrade():
    op.drop_index("ix_advertisements_audience", table_name="advertisements")
    op.drop_index("ix_advertisements_visibility", table_name="advertisements")
    op.drop_index("ix_advertisements_public_order", table_name="advertisements")
    op.drop_table("advertisements")
