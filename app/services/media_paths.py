from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable
from urllib.parse import unquote, urlparse

NETWORK_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class StoredFile:
    """
    What a storage backend hands back after writing one upload.

    Remote backends fill `url`; the local backend fills `path` (absolute
    filesystem path) and `filename`.
    """
    url: str | None = None
    path: str | None = None
    filename: str | None = None
    public_id: str | None = None
    resource_type: str | None = None


def _root_prefix(project_root: str | Path | None) -> str | None:
    if project_root is None:
        return None
    root = str(project_root).replace("\\", "/").strip("/")
    if not root:
        # "/" as project root would strip every absolute path
        return None
    # compared against the "/"-prefixed form built in resolve_media_path
    return "/" + root + "/"


def _raw_value(value: Any) -> str | None:
    if isinstance(value, StoredFile):
        # Prefer the most specific location the backend gave us
        return value.url or value.path or value.filename
    if isinstance(value, str):
        return value
    return None


def resolve_media_path(
    value: StoredFile | str | None,
    *,
    base_url: str | None = None,
    project_root: str | Path | None = None,
) -> str | None:
    """
    Turn a stored media reference into its public form.

    - http(s) URLs come back untouched
    - local paths (or file:// URIs) lose the project root and become root-relative
    - with a base URL, root-relative paths are joined onto it

    Returns None when nothing usable is left. Applying it twice yields the same result.
    """
    raw = _raw_value(value)
    if raw is None:
        return None

    raw = raw.strip().replace("\\", "/")
    if not raw:
        return None

    parsed = urlparse(raw)
    if parsed.scheme in NETWORK_SCHEMES and parsed.netloc:
        return raw
    if parsed.scheme == "file":
        raw = unquote(parsed.path)

    rel = "/" + raw.lstrip("/")
    prefix = _root_prefix(project_root)
    if prefix:
        while rel.startswith(prefix):
            rel = "/" + rel[len(prefix):].lstrip("/")

    if rel == "/":
        return None

    if base_url:
        return f"{base_url.rstrip('/')}{rel}"
    return rel


def resolve_media_list(
    values: Iterable[Any] | None,
    *,
    base_url: str | None = None,
    project_root: str | Path | None = None,
) -> list[str]:
    out: list[str] = []
    for v in values or []:
        resolved = resolve_media_path(v, base_url=base_url, project_root=project_root)
        if resolved:
            out.append(resolved)
    return out
