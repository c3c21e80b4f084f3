from datetime import datetime

from sqlalchemy import Boolean, Enum, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from app.core.enums import Category, Governorate, SubCategory, enum_values
from app.core.ids import gen_id

from app.models.base import Base, TimestampMixin


def _enum_column(enum_cls, name: str) -> Enum:
    # VARCHAR + CHECK built from the same enum the request schemas validate against
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=40,
        values_callable=enum_values,
        validate_strings=True,
    )


class Listing(TimestampMixin, Base):
    __tablename__ = "advertisements"
    __table_args__ = (
        Index("ix_advertisements_public_order", "display_order", "created_at"),
        Index("ix_advertisements_visibility", "is_active", "subscription_end_date"),
        Index("ix_advertisements_audience", "audience", postgresql_using="gin"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("adv"))

    name_ar: Mapped[str] = mapped_column(String(300), nullable=False)
    name_en: Mapped[str] = mapped_column(String(300), nullable=False)
    description_ar: Mapped[str] = mapped_column(Text, nullable=False)
    description_en: Mapped[str] = mapped_column(Text, nullable=False)

    # Ordered logical references (root-relative paths or remote URLs)
    images: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    videos: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    category: Mapped[Category] = mapped_column(_enum_column(Category, "advertisement_category"), nullable=False)
    sub_category: Mapped[SubCategory] = mapped_column(
        _enum_column(SubCategory, "advertisement_sub_category"), nullable=False
    )
    governorate: Mapped[Governorate] = mapped_column(
        _enum_column(Governorate, "advertisement_governorate"), nullable=False
    )

    # Category values this listing targets; empty list = every audience
    audience: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    social_media: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    subscription_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
