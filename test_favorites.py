# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Tests for favorite project persistence and ordering."""

import json
from datetime import datetime, timezone

from gitlab_mr.favorites import (
    FavoriteProjectRecord,
    favorite_key,
    get_favorites_path,
    load_favorite_projects,
    save_favorite_projects,
    sort_favorite_records,
    toggle_favorite_record,
    touch_favorite,
)


def record(ref, profile=None, **kwargs):
    return FavoriteProjectRecord(project_ref=ref, profile=profile, **kwargs)


class TestFavoriteKey:
    def test_default_profile_key(self):
        assert favorite_key("group/app") == "default:::group/app"
        assert favorite_key("group/app", "  ") == "default:::group/app"
        assert favorite_key("42", "work") == "work:::42"


class TestToggle:
    def test_toggle_adds_then_removes(self):
        original = [record("1", "a"), record("2")]
        candidate = record("3", "b", label="Three")

        added, now_favorite = toggle_favorite_record(original, candidate)
        assert now_favorite is True
        assert [r.key for r in added] == ["a:::1", "default:::2", "b:::3"]

        removed, now_favorite = toggle_favorite_record(added, candidate)
        assert now_favorite is False
        assert {r.key for r in removed} == {r.key for r in original}

    def test_double_toggle_of_existing_favorite_restores_membership(self):
        original = [record("1", "a"), record("2")]

        once, _ = toggle_favorite_record(original, record("1", "a"))
        twice, _ = toggle_favorite_record(once, record("1", "a"))

        assert {r.key for r in twice} == {r.key for r in original}

    def test_same_ref_under_other_profile_is_distinct(self):
        records, now_favorite = toggle_favorite_record([record("1", "a")], record("1", "b"))

        assert now_favorite is True
        assert len(records) == 2


class TestPersistence:
    def test_round_trip_omits_empty_fields(self, config_dir):
        path = get_favorites_path()
        save_favorite_projects([record("1", "a", label="One"), record("group/two")])

        assert path == config_dir.resolve() / "favorites.json"
        assert json.loads(path.read_text(encoding="utf-8")) == [
            {"projectRef": "1", "profile": "a", "label": "One"},
            {"projectRef": "group/two"},
        ]
        assert [r.key for r in load_favorite_projects()] == ["a:::1", "default:::group/two"]

    def test_malformed_entries_are_dropped(self, tmp_path):
        path = tmp_path / "favorites.json"
        path.write_text(
            json.dumps(
                [
                    {"projectRef": " 7 ", "profile": " "},
                    {"projectRef": ""},
                    {"label": "no ref"},
                    "string",
                    {"projectRef": "8", "label": 5},
                ]
            ),
            encoding="utf-8",
        )

        records = load_favorite_projects(path)

        assert [(r.project_ref, r.profile, r.label) for r in records] == [
            ("7", None, None),
            ("8", None, None),
        ]

    def test_non_list_document_reads_as_empty(self, tmp_path):
        path = tmp_path / "favorites.json"
        path.write_text(json.dumps({"projectRef": "1"}), encoding="utf-8")

        assert load_favorite_projects(path) == []
        assert path.read_text(encoding="utf-8") == '{"projectRef": "1"}'

    def test_missing_file_reads_as_empty(self, tmp_path):
        assert load_favorite_projects(tmp_path / "nope.json") == []


class TestOrdering:
    def test_sort_by_last_used_then_activity_then_label(self):
        records = [
            record("c", label="charlie", last_activity="2024-01-01T00:00:00Z"),
            record("b", label="Bravo", last_activity="2024-03-01T00:00:00Z"),
            record("a", label="alpha", last_activity="2024-03-01T00:00:00Z"),
            record("d", label="delta", last_used_at="2024-02-01T00:00:00Z"),
        ]

        ordered = sort_favorite_records(records)

        assert [r.project_ref for r in ordered] == ["d", "a", "b", "c"]

    def test_touch_stamps_last_used(self):
        records = [record("1", "a"), record("2")]
        when = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)

        assert touch_favorite(records, "default:::2", when) is True
        assert records[1].last_used_at == "2024-05-06T07:08:09Z"
        assert touch_favorite(records, "x:::missing", when) is False
