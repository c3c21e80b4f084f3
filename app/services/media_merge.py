from __future__ import annotations

import json
from typing import Any, Iterable, Literal

from app.services.media_paths import resolve_media_path

KeptListFormat = Literal["json", "csv"]


def _clean(items: Iterable[Any]) -> list[str]:
    return [s.strip() for s in items if isinstance(s, str) and s.strip()]


def parse_kept_list(raw: Any, *, fmt: KeptListFormat = "json") -> list[str] | None:
    """
    Parse the client's "keep these" list (existingImages / existingVideos).

    None means the client did not send the field. With fmt="json" the value must be
    a JSON array of strings; with fmt="csv" it is a comma-separated string. Anything
    unparseable counts as an empty list.
    """
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        return _clean(raw)
    if not isinstance(raw, str):
        return []

    text = raw.strip()
    if not text:
        return []
    if fmt == "csv":
        return _clean(text.split(","))

    try:
        data = json.loads(text)
    except ValueError:
        return []
    return _clean(data) if isinstance(data, list) else []


def _stored_key(ref: str, *, base_url: str | None, project_root) -> str | None:
    if base_url:
        base = base_url.rstrip("/")
        if ref.startswith(base + "/"):
            ref = ref[len(base):]
    return resolve_media_path(ref, project_root=project_root)


def match_current(
    kept: Iterable[str],
    current: Iterable[str] | None,
    *,
    base_url: str | None = None,
    project_root=None,
) -> list[str]:
    """
    Map kept entries, as the client echoes them from the public output, back to the
    stored references they name. Entries that name nothing in `current` are dropped.
    """
    by_key: dict[str, str] = {}
    for ref in _clean(current or []):
        key = _stored_key(ref, base_url=None, project_root=project_root)
        if key:
            by_key.setdefault(key, ref)

    out: list[str] = []
    for ref in kept:
        stored = by_key.get(_stored_key(ref, base_url=base_url, project_root=project_root))
        if stored is not None:
            out.append(stored)
    return out


def merge_media(
    current: list[str] | None,
    kept_raw: Any,
    uploaded: Iterable[str],
    *,
    fmt: KeptListFormat = "json",
    base_url: str | None = None,
    project_root=None,
) -> list[str]:
    """
    Final media array for an update: kept references first, then the new uploads
    in upload order. Without a kept list every current reference is kept.
    """
    kept = parse_kept_list(kept_raw, fmt=fmt)
    if kept is None:
        kept = _clean(current or [])
    else:
        kept = match_current(kept, current, base_url=base_url, project_root=project_root)

    out: list[str] = []
    seen: set[str] = set()
    for ref in [*kept, *_clean(uploaded)]:
        if ref in seen:
            continue
        seen.add(ref)
        out.append(ref)
    return out


def removed_references(before: Iterable[str], after: Iterable[str], *, project_root=None) -> list[str]:
    """References present before the merge and gone afterwards (compared in resolved form)."""
    def key(ref: str) -> str | None:
        return resolve_media_path(ref, project_root=project_root)

    remaining = {key(r) for r in after}
    return [r for r in before if key(r) not in remaining]
