from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from fastapi import HTTPException
from starlette.datastructures import UploadFile

from app.core.config import settings
from app.services.media_paths import StoredFile, resolve_media_path
from app.services.storage import (
    StorageBackend,
    StorageUnavailableError,
    UploadTooLargeError,
    is_allowed_mime,
)

log = logging.getLogger(__name__)


@dataclass
class IntakeResult:
    images: list[str] = field(default_factory=list)
    videos: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)


def collect_uploads(values: Iterable[Any]) -> list[UploadFile]:
    # Browsers send an empty part when no file was picked
    return [v for v in values if isinstance(v, UploadFile) and (v.filename or v.size)]


def accepted_uploads(uploads: Iterable[UploadFile]) -> tuple[list[UploadFile], list[str]]:
    accepted: list[UploadFile] = []
    rejected: list[str] = []
    for upload in uploads:
        if is_allowed_mime(upload.content_type):
            accepted.append(upload)
        else:
            rejected.append(upload.filename or "")
    return accepted, rejected


def count_errors(*, images: list[UploadFile], videos: list[UploadFile], backend: StorageBackend) -> list[dict]:
    errors: list[dict] = []
    if len(images) > settings.max_images_per_request:
        errors.append({
            "type": "too_many_files",
            "loc": ["images"],
            "msg": f"At most {settings.max_images_per_request} images per request",
        })
    if len(videos) > backend.max_videos:
        errors.append({
            "type": "too_many_files",
            "loc": ["videos"],
            "msg": f"At most {backend.max_videos} videos per request",
        })
    return errors


async def _store_all(backend: StorageBackend, uploads: list[UploadFile], *, field: str) -> list[StoredFile]:
    stored: list[StoredFile] = []
    for upload in uploads:
        stored.append(await backend.store(upload, field=field))
    return stored


async def ingest_uploads(
    backend: StorageBackend,
    *,
    images: list[UploadFile],
    videos: list[UploadFile],
) -> IntakeResult:
    """
    Store the accepted files of one request and return their persisted references.

    Files outside the MIME allow-list are dropped. An oversized file fails the
    request with 413; whatever was already written for this request is removed.
    """
    ok_images, rejected_images = accepted_uploads(images)
    ok_videos, rejected_videos = accepted_uploads(videos)
    rejected = rejected_images + rejected_videos
    if rejected:
        log.info("dropped uploads with unsupported media type: %s", rejected)

    # Size check up front so nothing is written for a request that will fail
    try:
        for upload in ok_images + ok_videos:
            backend.ensure_size(upload)
    except UploadTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e)) from e

    stored: list[StoredFile] = []
    try:
        stored.extend(await _store_all(backend, ok_images, field="images"))
        n_images = len(stored)
        stored.extend(await _store_all(backend, ok_videos, field="videos"))
    except (UploadTooLargeError, StorageUnavailableError) as e:
        await discard_references(backend, [_persisted(s) for s in stored])
        if isinstance(e, UploadTooLargeError):
            raise HTTPException(status_code=413, detail=str(e)) from e
        log.error("media storage failed: %s", e)
        raise HTTPException(status_code=503, detail="Media storage unavailable") from e

    refs = [_persisted(s) for s in stored]
    return IntakeResult(
        images=[r for r in refs[:n_images] if r],
        videos=[r for r in refs[n_images:] if r],
        rejected=rejected,
    )


def _persisted(stored: StoredFile) -> str | None:
    # Persist without the public base URL; it is applied when reading
    return resolve_media_path(stored, project_root=settings.project_root)


async def discard_references(backend: StorageBackend, references: Iterable[str | None]) -> None:
    for ref in references:
        if not ref:
            continue
        try:
            await backend.delete(ref)
        except StorageUnavailableError:
            log.warning("could not delete media %s", ref, exc_info=True)
