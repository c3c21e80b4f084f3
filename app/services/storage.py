from __future__ import annotations

import abc
import logging
import os
import random
import re
import time
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO
from urllib.parse import urlparse

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from fastapi import HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from app.core.config import Settings
from app.services.media_paths import StoredFile

log = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "video/mp4",
    "video/quicktime",
})

DEFAULT_MAX_UPLOAD_BYTES = 100 * 1024 * 1024
_CHUNK = 1024 * 1024


class StorageUnavailableError(Exception):
    """Backend misconfigured or unreachable."""


class UploadTooLargeError(Exception):
    def __init__(self, filename: str | None, limit: int):
        super().__init__(f"{filename or 'upload'} exceeds {limit} bytes")
        self.filename = filename
        self.limit = limit


def is_allowed_mime(content_type: str | None) -> bool:
    return (content_type or "").lower() in ALLOWED_MIME_TYPES


def is_video_mime(content_type: str | None) -> bool:
    return (content_type or "").lower().startswith("video/")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _upload_size(upload: UploadFile) -> int | None:
    if upload.size is not None:
        return upload.size
    f = upload.file
    try:
        pos = f.tell()
        f.seek(0, os.SEEK_END)
        size = f.tell()
        f.seek(pos)
        return size
    except (AttributeError, OSError):
        return None


class StorageBackend(abc.ABC):
    """Where uploaded media ends up. One instance per process, picked at startup."""

    name: str = "abstract"
    max_videos: int = 10

    def __init__(self, *, max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES):
        self.max_upload_bytes = max_upload_bytes

    def ensure_size(self, upload: UploadFile) -> None:
        size = _upload_size(upload)
        if size is not None and size > self.max_upload_bytes:
            raise UploadTooLargeError(upload.filename, self.max_upload_bytes)

    @abc.abstractmethod
    async def store(self, upload: UploadFile, *, field: str) -> StoredFile:
        ...

    @abc.abstractmethod
    async def delete(self, reference: str) -> None:
        ...


class LocalDiskBackend(StorageBackend):
    name = "local"
    max_videos = 10

    def __init__(self, base_dir: str | Path, *, max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES):
        super().__init__(max_upload_bytes=max_upload_bytes)
        self.base = Path(base_dir)
        self.base.mkdir(parents=True, exist_ok=True)

    def make_filename(self, *, field: str, original_name: str | None) -> str:
        # timestamp + independent random suffix, no shared counter
        suffix = f"{_now_ms()}-{random.randint(0, 10**9)}"
        ext = Path(original_name or "").suffix
        return f"{field}-{suffix}{ext}"

    def _copy(self, src: BinaryIO, dest: Path) -> None:
        tmp = dest.with_name(dest.name + ".part")
        written = 0
        try:
            with tmp.open("wb") as out:
                while True:
                    chunk = src.read(_CHUNK)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_upload_bytes:
                        raise UploadTooLargeError(dest.name, self.max_upload_bytes)
                    out.write(chunk)
            os.replace(tmp, dest)
        finally:
            tmp.unlink(missing_ok=True)

    async def store(self, upload: UploadFile, *, field: str) -> StoredFile:
        self.ensure_size(upload)
        filename = self.make_filename(field=field, original_name=upload.filename)
        path = self.base / filename
        await upload.seek(0)
        try:
            await run_in_threadpool(self._copy, upload.file, path)
        except OSError as e:
            raise StorageUnavailableError(f"local write failed: {e}") from e
        log.info("stored upload %s as %s", upload.filename, path)
        return StoredFile(path=path.as_posix(), filename=filename)

    def resolve_path(self, reference: str) -> Path | None:
        """
        Map a stored reference back to a file under the uploads directory.

        Supports:
          - file:///absolute/path
          - absolute filesystem paths
          - root-relative references such as /uploads/<name>
        Anything that would land outside the uploads directory yields None.
        """
        parsed = urlparse(reference)
        if parsed.scheme not in ("", "file"):
            return None
        name = PurePosixPath(parsed.path).name
        if not name:
            return None
        candidate = self.base / name
        return candidate if candidate.parent == self.base else None

    async def delete(self, reference: str) -> None:
        path = self.resolve_path(reference)
        if path is None:
            return
        try:
            await run_in_threadpool(path.unlink, missing_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"local delete failed: {e}") from e
        log.info("deleted media file %s", path)


_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_-]+")
_VERSION_SEGMENT_RE = re.compile(r"^v\d+$")


def sanitize_basename(filename: str | None) -> str:
    base = (filename or "").split(".")[0]
    base = _SAFE_NAME_RE.sub("_", base).strip("_")
    return base or "upload"


class CloudinaryBackend(StorageBackend):
    name = "cloudinary"
    max_videos = 2

    def __init__(
        self,
        *,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "spalux",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        super().__init__(max_upload_bytes=max_upload_bytes)
        self.folder = folder.strip("/")
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def upload_params(self, *, content_type: str | None, filename: str | None) -> dict[str, Any]:
        video = is_video_mime(content_type)
        return {
            "folder": f"{self.folder}/{'videos' if video else 'images'}",
            "resource_type": "video" if video else "image",
            "public_id": f"{_now_ms()}-{sanitize_basename(filename)}",
        }

    async def store(self, upload: UploadFile, *, field: str) -> StoredFile:
        self.ensure_size(upload)
        params = self.upload_params(content_type=upload.content_type, filename=upload.filename)
        await upload.seek(0)
        try:
            result = await run_in_threadpool(cloudinary.uploader.upload, upload.file, **params)
        except cloudinary.exceptions.Error as e:
            raise StorageUnavailableError(f"cloudinary upload failed: {e}") from e

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise StorageUnavailableError("cloudinary upload returned no url")
        log.info("uploaded %s to cloudinary as %s", upload.filename, result.get("public_id"))
        return StoredFile(
            url=url,
            filename=upload.filename,
            public_id=result.get("public_id"),
            resource_type=result.get("resource_type") or params["resource_type"],
        )

    @staticmethod
    def parse_reference(reference: str) -> tuple[str, str] | None:
        """
        Extract (public_id, resource_type) from a delivery URL like
        https://res.cloudinary.com/<cloud>/video/upload/v123/spalux/videos/1700-clip.mp4
        """
        parts = [p for p in urlparse(reference).path.split("/") if p]
        if "upload" not in parts:
            return None
        idx = parts.index("upload")
        if idx == 0:
            return None
        resource_type = parts[idx - 1]
        rest = parts[idx + 1:]
        if rest and _VERSION_SEGMENT_RE.match(rest[0]):
            rest = rest[1:]
        if not rest:
            return None
        rest[-1] = rest[-1].rsplit(".", 1)[0]
        return "/".join(rest), resource_type

    async def delete(self, reference: str) -> None:
        parsed = self.parse_reference(reference)
        if parsed is None:
            return
        public_id, resource_type = parsed
        try:
            await run_in_threadpool(cloudinary.uploader.destroy, public_id, resource_type=resource_type)
        except cloudinary.exceptions.Error as e:
            raise StorageUnavailableError(f"cloudinary delete failed: {e}") from e
        log.info("deleted cloudinary asset %s", public_id)


def select_storage_backend(settings: Settings) -> StorageBackend | None:
    """
    Pick the media backend once per process. Returns None when the local uploads
    directory cannot be prepared; media requests then fail with 503.
    """
    creds = (
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret.get_secret_value(),
    )
    if all(creds):
        log.info("media storage: cloudinary (folder=%s)", settings.cloudinary_folder)
        return CloudinaryBackend(
            cloud_name=creds[0],
            api_key=creds[1],
            api_secret=creds[2],
            folder=settings.cloudinary_folder,
            max_upload_bytes=settings.max_upload_bytes,
        )
    if any(creds):
        log.warning("incomplete cloudinary configuration, falling back to local uploads")

    try:
        backend = LocalDiskBackend(settings.uploads_dir, max_upload_bytes=settings.max_upload_bytes)
    except OSError:
        log.exception("uploads directory %s is not usable, media storage disabled", settings.uploads_dir)
        return None
    log.info("media storage: local (%s)", settings.uploads_dir)
    return backend


def get_storage(request: Request) -> StorageBackend:
    backend = getattr(request.app.state, "storage", None)
    if backend is None:
        raise HTTPException(status_code=503, detail="Media storage unavailable")
    return backend
