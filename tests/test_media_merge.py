import json

import pytest

from app.services.media_merge import match_current, merge_media, parse_kept_list, removed_references


def test_kept_then_uploaded_in_order():
    kept = json.dumps(["a.jpg", "b.jpg"])
    assert merge_media(["a.jpg", "b.jpg", "z.jpg"], kept, ["c.jpg", "d.jpg"]) == ["a.jpg", "b.jpg", "c.jpg", "d.jpg"]


def test_missing_kept_list_keeps_everything():
    assert merge_media(["a.jpg", "b.jpg"], None, ["c.jpg"]) == ["a.jpg", "b.jpg", "c.jpg"]


def test_kept_list_can_reorder():
    assert merge_media(["a.jpg", "b.jpg"], '["b.jpg", "a.jpg"]', []) == ["b.jpg", "a.jpg"]


@pytest.mark.parametrize("raw", ["not-json", "[broken", '{"a": 1}', '"a.jpg"', "", 12])
def test_malformed_kept_list_behaves_like_empty(raw):
    assert parse_kept_list(raw) == []
    assert merge_media(["a.jpg"], raw, ["c.jpg"]) == merge_media(["a.jpg"], "[]", ["c.jpg"]) == ["c.jpg"]


def test_non_string_entries_are_dropped():
    assert parse_kept_list('["a.jpg", null, 3, " ", "b.jpg"]') == ["a.jpg", "b.jpg"]


def test_comma_separated_format():
    assert parse_kept_list("a.jpg, b.jpg,,", fmt="csv") == ["a.jpg", "b.jpg"]
    assert merge_media(["a.jpg", "b.jpg"], "b.jpg", ["c.jpg"], fmt="csv") == ["b.jpg", "c.jpg"]


def test_duplicates_are_not_repeated():
    assert merge_media(["a.jpg"], '["a.jpg", "a.jpg"]', ["a.jpg", "b.jpg"]) == ["a.jpg", "b.jpg"]


def test_removed_references_compares_resolved_forms():
    before = ["/uploads/a.jpg", "/uploads/b.jpg", "https://cdn.example.com/v.mp4"]
    after = ["uploads/a.jpg", "https://cdn.example.com/v.mp4"]
    assert removed_references(before, after) == ["/uploads/b.jpg"]


def test_match_current_strips_base_url_and_project_root():
    current = ["/uploads/a.jpg", "https://res.cloudinary.com/demo/image/upload/v1/b.jpg"]
    kept = [
        "https://api.example.com/uploads/a.jpg",
        "https://res.cloudinary.com/demo/image/upload/v1/b.jpg",
        "/srv/spalux/uploads/a.jpg",
        "/uploads/other.jpg",
    ]

    assert match_current(kept, current, base_url="https://api.example.com/", project_root="/srv/spalux") == [
        "/uploads/a.jpg",
        "https://res.cloudinary.com/demo/image/upload/v1/b.jpg",
        "/uploads/a.jpg",
    ]


def test_merge_with_base_url_keeps_stored_form():
    assert merge_media(
        ["/uploads/a.jpg", "/uploads/b.jpg"],
        '["https://api.example.com/uploads/b.jpg"]',
        ["/uploads/c.jpg"],
        base_url="https://api.example.com",
    ) == ["/uploads/b.jpg", "/uploads/c.jpg"]
