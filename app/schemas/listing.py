from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.enums import Category, Governorate, SubCategory

SOCIAL_KEYS = (
    "twitter",
    "instagram",
    "facebook",
    "snapchat",
    "whatsapp",
    "phone",
    "website",
    "mapLink",
    "tiktok",
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SocialMedia(CamelModel):
    """
    Contact block of a listing. Immutable; updates build a new value.
    Keys outside the known set are ignored.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    twitter: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    snapchat: str | None = None
    whatsapp: str | None = None
    phone: str | None = None
    website: str | None = None
    map_link: str | None = None
    tiktok: str | None = None

    @classmethod
    def from_stored(cls, data: dict[str, Any] | None) -> "SocialMedia":
        return cls.model_validate({k: v for k, v in (data or {}).items() if isinstance(v, str)})

    def merged(self, patch: dict[str, Any]) -> "SocialMedia":
        changes = {k: v for k, v in patch.items() if k in SOCIAL_KEYS and isinstance(v, str)}
        return SocialMedia.model_validate({**self.to_stored(), **changes})

    def to_stored(self) -> dict[str, str]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_public(self) -> dict[str, str]:
        return {k: v or "" for k, v in self.model_dump(by_alias=True).items()}


def _parse_audience(v: Any) -> Any:
    if v is None or isinstance(v, list):
        return v
    if isinstance(v, str):
        text = v.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                return json.loads(text)
            except ValueError:
                return v
        return [p.strip() for p in text.split(",") if p.strip()]
    return v


def _as_utc(v: datetime | None) -> datetime | None:
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class ListingCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name_ar: str = Field(min_length=1, max_length=300)
    name_en: str = Field(min_length=1, max_length=300)
    description_ar: str = Field(min_length=1)
    description_en: str = Field(min_length=1)

    category: Category
    sub_category: SubCategory
    governorate: Governorate
    audience: list[Category] = Field(default_factory=list)

    subscription_end_date: datetime
    display_order: int = 0
    is_active: bool = True

    @field_validator("audience", mode="before")
    @classmethod
    def parse_audience(cls, v: Any) -> Any:
        return _parse_audience(v)

    @field_validator("subscription_end_date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class ListingUpdate(CamelModel):
    """Every field optional; only fields present in the request are applied."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name_ar: str | None = Field(default=None, min_length=1, max_length=300)
    name_en: str | None = Field(default=None, min_length=1, max_length=300)
    description_ar: str | None = Field(default=None, min_length=1)
    description_en: str | None = Field(default=None, min_length=1)

    category: Category | None = None
    sub_category: SubCategory | None = None
    governorate: Governorate | None = None
    audience: list[Category] | None = None

    subscription_end_date: datetime | None = None
    display_order: int | None = None
    is_active: bool | None = None

    @field_validator("audience", mode="before")
    @classmethod
    def parse_audience(cls, v: Any) -> Any:
        return _parse_audience(v)

    @field_validator("subscription_end_date")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class ListingOut(CamelModel):
    id: str
    name_ar: str
    name_en: str
    description_ar: str
    description_en: str

    images: list[str]
    videos: list[str]

    category: Category
    sub_category: SubCategory
    governorate: Governorate
    audience: list[str]
    category_key: str = Field(alias="category_key")

    social_media: dict[str, str]

    subscription_end_date: datetime
    is_active: bool
    display_order: int

    created_at: datetime | None = None
    updated_at: datetime | None = None


class AdminListingOut(ListingOut):
    is_expired: bool


class ListingListOut(BaseModel):
    success: bool = True
    count: int
    total: int | None = None
    data: list[ListingOut]


class AdminListingListOut(BaseModel):
    success: bool = True
    count: int
    data: list[AdminListingOut]


class ListingOneOut(BaseModel):
    success: bool = True
    message: str | None = None
    data: ListingOut | None = None


class AdminListingOneOut(BaseModel):
    success: bool = True
    message: str | None = None
    data: AdminListingOut
