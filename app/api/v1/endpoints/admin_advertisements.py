from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.schemas.listing import AdminListingListOut, AdminListingOneOut
from app.services.admin_auth import require_admin
from app.services.listing_query import shape_admin_listing
from app.services.listings import (
    create_listing,
    delete_listing,
    list_all_listings,
    split_form,
    toggle_listing,
    update_listing,
)
from app.services.storage import StorageBackend, get_storage

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def _shape(listing):
    return shape_admin_listing(listing, base_url=settings.base_url, project_root=settings.project_root)


@router.get("/advertisements", response_model=AdminListingListOut)
async def admin_list_advertisements(db: AsyncSession = Depends(get_db)) -> AdminListingListOut:
    """Every listing, inactive and expired included, newest first."""
    rows = await list_all_listings(db)
    return AdminListingListOut(count=len(rows), data=[_shape(r) for r in rows])


@router.post("/advertisements", response_model=AdminListingOneOut, status_code=201)
async def admin_create_advertisement(
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> AdminListingOneOut:
    form = split_form(await request.form())
    listing = await create_listing(db, storage, form)
    return AdminListingOneOut(message="Advertisement created successfully", data=_shape(listing))


@router.put("/advertisements/{listing_id}", response_model=AdminListingOneOut)
async def admin_update_advertisement(
    listing_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> AdminListingOneOut:
    form = split_form(await request.form())
    listing = await update_listing(db, storage, listing_id, form)
    return AdminListingOneOut(message="Advertisement updated successfully", data=_shape(listing))


@router.patch("/advertisements/{listing_id}/toggle", response_model=AdminListingOneOut)
async def admin_toggle_advertisement(listing_id: str, db: AsyncSession = Depends(get_db)) -> AdminListingOneOut:
    listing = await toggle_listing(db, listing_id)
    state = "activated" if listing.is_active else "deactivated"
    return AdminListingOneOut(message=f"Advertisement {state} successfully", data=_shape(listing))


@router.delete("/advertisements/{listing_id}")
async def admin_delete_advertisement(
    listing_id: str,
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> dict:
    await delete_listing(db, storage, listing_id)
    return {"success": True, "message": "Advertisement deleted successfully"}
