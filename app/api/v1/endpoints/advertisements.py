from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.schemas.listing import ListingListOut, ListingOneOut
from app.services.listing_query import (
    ListingFilters,
    get_public_listing,
    list_public_listings,
    parse_pagination,
    random_public_listing,
    shape_listing,
)

router = APIRouter()


def _shape(listing):
    return shape_listing(listing, base_url=settings.base_url, project_root=settings.project_root)


@router.get("/advertisements", response_model=ListingListOut)
async def list_advertisements(
    category: str | None = None,
    sub_category: str | None = Query(default=None, alias="subCategory"),
    governorate: str | None = None,
    audience: str | None = None,
    # raw strings on purpose: bad values fall back to defaults instead of a 422
    limit: str | None = None,
    skip: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> ListingListOut:
    filters = ListingFilters.from_params(
        category=category, sub_category=sub_category, governorate=governorate, audience=audience
    )
    lim, off = parse_pagination(limit, skip)
    rows, total = await list_public_listings(db, filters, limit=lim, skip=off)
    data = [_shape(r) for r in rows]
    return ListingListOut(count=len(data), total=total, data=data)


@router.get("/advertisements/random", response_model=ListingOneOut)
async def random_advertisement(
    category: str | None = None,
    sub_category: str | None = Query(default=None, alias="subCategory"),
    governorate: str | None = None,
    audience: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> ListingOneOut:
    filters = ListingFilters.from_params(
        category=category, sub_category=sub_category, governorate=governorate, audience=audience
    )
    listing = await random_public_listing(db, filters)
    return ListingOneOut(data=_shape(listing) if listing else None)


@router.get("/advertisements/category/{category}", response_model=ListingListOut)
async def list_category_advertisements(
    category: str,
    sub_category: str | None = Query(default=None, alias="subCategory"),
    governorate: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> ListingListOut:
    filters = ListingFilters.from_params(category=category, sub_category=sub_category, governorate=governorate)
    rows, total = await list_public_listings(db, filters, limit=None)
    data = [_shape(r) for r in rows]
    return ListingListOut(count=len(data), total=total, data=data)


@router.get("/advertisements/{listing_id}", response_model=ListingOneOut)
async def get_advertisement(listing_id: str, db: AsyncSession = Depends(get_db)) -> ListingOneOut:
    listing = await get_public_listing(db, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Advertisement not found")
    return ListingOneOut(data=_shape(listing))
