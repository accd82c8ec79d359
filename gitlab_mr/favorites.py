# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Favorite projects persisted next to the global config"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .config import get_global_config_path

FAVORITES_FILE_NAME = "favorites.json"
DEFAULT_PROFILE_KEY = "default"


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@dataclass
class FavoriteProjectRecord:
    project_ref: str
    profile: Optional[str] = None
    label: Optional[str] = None
    web_url: Optional[str] = None
    last_activity: Optional[str] = None
    last_used_at: Optional[str] = None

    @classmethod
    def from_dict(cls, value: Any) -> Optional["FavoriteProjectRecord"]:
        """Build a record from JSON, returning None for malformed entries"""
        if not isinstance(value, dict):
            return None
        project_ref = value.get("projectRef")
        if not isinstance(project_ref, str) or not project_ref.strip():
            return None
        profile = value.get("profile")
        profile = profile.strip() if isinstance(profile, str) else ""
        return cls(
            project_ref=project_ref.strip(),
            profile=profile or None,
            label=_optional_str(value.get("label")),
            web_url=_optional_str(value.get("webUrl")),
            last_activity=_optional_str(value.get("lastActivity")),
            last_used_at=_optional_str(value.get("lastUsedAt")),
        )

    def to_dict(self) -> Dict[str, str]:
        data = {
            "projectRef": self.project_ref,
            "profile": self.profile,
            "label": self.label,
            "webUrl": self.web_url,
            "lastActivity": self.last_activity,
            "lastUsedAt": self.last_used_at,
        }
        return {key: value for key, value in data.items() if value is not None}

    @property
    def key(self) -> str:
        return favorite_key(self.project_ref, self.profile)


def favorite_key(project_ref: str, profile: Optional[str] = None) -> str:
    normalized = profile.strip() if profile and profile.strip() else DEFAULT_PROFILE_KEY
    return f"{normalized}:::{project_ref}"


def get_favorites_path(env: Optional[Mapping[str, str]] = None) -> Path:
    config_dir, _ = get_global_config_path(env)
    return config_dir / FAVORITES_FILE_NAME


def load_favorite_projects(path: Optional[Path] = None) -> List[FavoriteProjectRecord]:
    path = path or get_favorites_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return []
    if not isinstance(data, list):
        return []
    records = (FavoriteProjectRecord.from_dict(entry) for entry in data)
    return [record for record in records if record is not None]


def save_favorite_projects(records: List[FavoriteProjectRecord], path: Optional[Path] = None):
    path = path or get_favorites_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([record.to_dict() for record in records], f, indent=2)
        f.write("\n")


def toggle_favorite_record(
    records: List[FavoriteProjectRecord], candidate: FavoriteProjectRecord
) -> Tuple[List[FavoriteProjectRecord], bool]:
    """Add or remove `candidate`; returns the new list and whether it is now a favorite"""
    key = candidate.key
    was_favorite = any(record.key == key for record in records)
    remaining = [record for record in records if record.key != key]
    if was_favorite:
        return remaining, False
    remaining.append(candidate)
    return remaining, True


def touch_favorite(
    records: List[FavoriteProjectRecord], key: str, when: Optional[datetime] = None
) -> bool:
    """Stamp lastUsedAt on the record with `key`; returns False when it is not a favorite"""
    stamp = (when or datetime.now(timezone.utc)).isoformat().replace("+00:00", "Z")
    for record in records:
        if record.key == key:
            record.last_used_at = stamp
            return True
    return False


def _timestamp(value: Optional[str]) -> float:
    if not value:
        return 0.0
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def sort_favorite_records(records: List[FavoriteProjectRecord]) -> List[FavoriteProjectRecord]:
    """Most recently used first, then most recent activity, then by label"""
    ordered = sorted(records, key=lambda r: r.project_ref)
    ordered.sort(key=lambda r: (r.label or r.project_ref).lower())
    ordered.sort(key=lambda r: _timestamp(r.last_activity), reverse=True)
    ordered.sort(key=lambda r: _timestamp(r.last_used_at), reverse=True)
    return ordered
