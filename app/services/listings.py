from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from fastapi import HTTPException
from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import FormData, UploadFile

from app.core.config import settings
from app.models.listing import Listing
from app.schemas.listing import SOCIAL_KEYS, ListingCreate, ListingUpdate, SocialMedia
from app.services.media_intake import (
    accepted_uploads,
    collect_uploads,
    count_errors,
    discard_references,
    ingest_uploads,
)
from app.services.media_merge import merge_media, removed_references
from app.services.storage import StorageBackend

log = logging.getLogger(__name__)

KEPT_FIELDS = {"images": "existingImages", "videos": "existingVideos"}
IMAGE_REQUIRED = {"type": "missing", "loc": ["images"], "msg": "At least one image is required"}


@dataclass
class ListingForm:
    """Multipart admin request split into text fields and file parts."""
    fields: dict[str, str] = field(default_factory=dict)
    social: dict[str, str] = field(default_factory=dict)
    kept: dict[str, str | None] = field(default_factory=dict)
    images: list[UploadFile] = field(default_factory=list)
    videos: list[UploadFile] = field(default_factory=list)


def split_form(form: FormData | Mapping[str, Any]) -> ListingForm:
    getlist = form.getlist if hasattr(form, "getlist") else (lambda k: [form[k]] if k in form else [])
    out = ListingForm(
        images=collect_uploads(getlist("images")),
        videos=collect_uploads(getlist("videos")),
    )
    for key in form.keys():
        if key in ("images", "videos"):
            continue
        value = form.get(key)
        if not isinstance(value, str):
            continue
        if key in SOCIAL_KEYS:
            out.social[key] = value.strip()
        elif key in KEPT_FIELDS.values():
            out.kept[key] = value
        elif value.strip():
            # blank text means "not provided"
            out.fields[key] = value
    return out


def _validate(model: type[BaseModel], data: dict[str, Any]) -> tuple[BaseModel | None, list[dict]]:
    try:
        return model.model_validate(data), []
    except ValidationError as e:
        # Pydantic v2 error format is already structured
        return None, e.errors(include_url=False, include_context=False, include_input=False)


def _raise_validation(errors: list[dict]) -> None:
    raise HTTPException(status_code=422, detail={"errors": errors})


async def get_listing_or_404(db: AsyncSession, listing_id: str) -> Listing:
    listing = (await db.execute(select(Listing).where(Listing.id == listing_id))).scalar_one_or_none()
    if not listing:
        raise HTTPException(status_code=404, detail="Advertisement not found")
    return listing


async def list_all_listings(db: AsyncSession) -> list[Listing]:
    stmt = select(Listing).order_by(Listing.created_at.desc(), Listing.id.desc())
    return list((await db.execute(stmt)).scalars().all())


async def create_listing(db: AsyncSession, storage: StorageBackend, form: ListingForm) -> Listing:
    """
    Validate a create request, store its media and insert the listing.

    Every violated field is reported together; at least one accepted image is required.
    """
    payload, errors = _validate(ListingCreate, form.fields)
    errors += count_errors(images=form.images, videos=form.videos, backend=storage)
    if not accepted_uploads(form.images)[0]:
        errors.append(IMAGE_REQUIRED)
    if errors:
        _raise_validation(errors)

    media = await ingest_uploads(storage, images=form.images, videos=form.videos)
    if not media.images:
        await discard_references(storage, media.videos)
        _raise_validation([IMAGE_REQUIRED])

    assert isinstance(payload, ListingCreate)
    listing = Listing(
        name_ar=payload.name_ar,
        name_en=payload.name_en,
        description_ar=payload.description_ar,
        description_en=payload.description_en,
        images=media.images,
        videos=media.videos,
        category=payload.category,
        sub_category=payload.sub_category,
        governorate=payload.governorate,
        audience=[a.value for a in payload.audience],
        social_media=SocialMedia.from_stored(form.social).to_stored(),
        subscription_end_date=payload.subscription_end_date,
        is_active=payload.is_active,
        display_order=payload.display_order,
    )
    db.add(listing)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        await discard_references(storage, media.images + media.videos)
        raise
    await db.refresh(listing)
    log.info("created advertisement %s (%d images, %d videos)", listing.id, len(media.images), len(media.videos))
    return listing


def apply_listing_update(
    listing: Listing,
    patch: ListingUpdate,
    *,
    social: Mapping[str, str],
    kept: Mapping[str, str | None],
    new_images: list[str],
    new_videos: list[str],
) -> list[str]:
    """
    Apply an update to a loaded listing in place. Returns the media references the
    update dropped, for the caller to delete once the change is committed.
    """
    before = list(listing.images or []) + list(listing.videos or [])

    for name in patch.model_fields_set:
        value = getattr(patch, name)
        if value is None:
            continue
        if name == "audience":
            value = [a.value for a in value]
        setattr(listing, name, value)

    if social:
        listing.social_media = SocialMedia.from_stored(listing.social_media).merged(dict(social)).to_stored()

    opts = dict(fmt=settings.kept_list_format, base_url=settings.base_url, project_root=settings.project_root)
    listing.images = merge_media(listing.images, kept.get(KEPT_FIELDS["images"]), new_images, **opts)
    listing.videos = merge_media(listing.videos, kept.get(KEPT_FIELDS["videos"]), new_videos, **opts)

    return removed_references(before, listing.images + listing.videos, project_root=settings.project_root)


async def update_listing(db: AsyncSession, storage: StorageBackend, listing_id: str, form: ListingForm) -> Listing:
    listing = await get_listing_or_404(db, listing_id)

    payload, errors = _validate(ListingUpdate, form.fields)
    errors += count_errors(images=form.images, videos=form.videos, backend=storage)
    if errors:
        _raise_validation(errors)
    assert isinstance(payload, ListingUpdate)

    media = await ingest_uploads(storage, images=form.images, videos=form.videos)
    dropped = apply_listing_update(
        listing,
        payload,
        social=form.social,
        kept=form.kept,
        new_images=media.images,
        new_videos=media.videos,
    )
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        await discard_references(storage, media.images + media.videos)
        raise
    await db.refresh(listing)

    await discard_references(storage, dropped)
    log.info("updated advertisement %s (dropped %d media)", listing.id, len(dropped))
    return listing


async def toggle_listing(db: AsyncSession, listing_id: str) -> Listing:
    listing = await get_listing_or_404(db, listing_id)
    listing.is_active = not listing.is_active
    await db.commit()
    await db.refresh(listing)
    log.info("advertisement %s is_active=%s", listing.id, listing.is_active)
    return listing


async def delete_listing(db: AsyncSession, storage: StorageBackend, listing_id: str) -> None:
    listing = await get_listing_or_404(db, listing_id)
    media = list(listing.images or []) + list(listing.videos or [])
    await db.delete(listing)
    await db.commit()
    await discard_references(storage, media)
    log.info("deleted advertisement %s", listing_id)
