# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Read and edit named profiles in the global config document"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from .config import DEFAULT_BASE_URL, get_global_config_path, read_json_document

FALLBACK_PROFILE_NAME = "default"
TOP_LEVEL_PROFILE_KEYS = ("baseUrl", "token", "projectId", "projectPath")


@dataclass
class ProfileSummary:
    name: str
    profile: Dict[str, Any]
    is_default: bool

    @property
    def label(self) -> str:
        return (
            self.profile.get("displayName")
            or self.profile.get("email")
            or self.profile.get("username")
            or self.name
        )

    @property
    def base_url(self) -> str:
        return self.profile.get("baseUrl") or DEFAULT_BASE_URL


def load_profile_store(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    _, config_file = get_global_config_path(env)
    return read_json_document(config_file)


def save_profile_store(document: Dict[str, Any], env: Optional[Mapping[str, str]] = None) -> Path:
    config_dir, config_file = get_global_config_path(env)
    config_dir.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
        f.write("\n")
    return config_file


def update_profile_store(
    mutate: Callable[[Dict[str, Any]], None], env: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Re-read the document, apply `mutate` and write it back.

    Only the keys touched by `mutate` change; everything else in the file,
    including profiles it does not mention, is written back as read.
    """
    document = load_profile_store(env)
    mutate(document)
    save_profile_store(document, env)
    return document


def list_profiles(document: Dict[str, Any]) -> List[ProfileSummary]:
    profiles = document.get("profiles")
    profiles = profiles if isinstance(profiles, dict) else {}
    default_name = document.get("defaultProfile")
    summaries = [
        ProfileSummary(name=name, profile=profile, is_default=name == default_name)
        for name, profile in profiles.items()
        if isinstance(profile, dict)
    ]

    if not summaries and any(document.get(key) for key in TOP_LEVEL_PROFILE_KEYS):
        fallback = {key: document[key] for key in TOP_LEVEL_PROFILE_KEYS if document.get(key)}
        summaries.append(
            ProfileSummary(
                name=FALLBACK_PROFILE_NAME,
                profile=fallback,
                is_default=not default_name or default_name == FALLBACK_PROFILE_NAME,
            )
        )
    return summaries


def ensure_profiles(document: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    if not isinstance(document.get("profiles"), dict):
        document["profiles"] = {}
    return document["profiles"]


def upsert_profile(document: Dict[str, Any], name: str, profile: Dict[str, Any]):
    profiles = ensure_profiles(document)
    profiles[name] = {key: value for key, value in profile.items() if value is not None}
    if not document.get("defaultProfile"):
        document["defaultProfile"] = name


def delete_profile(document: Dict[str, Any], name: str) -> bool:
    """Remove a named profile; returns False when `name` is not in the profiles map"""
    profiles = document.get("profiles")
    if not isinstance(profiles, dict) or name not in profiles:
        return False
    del profiles[name]
    if document.get("defaultProfile") == name:
        next_default = next(iter(profiles), None)
        if next_default:
            document["defaultProfile"] = next_default
        else:
            document.pop("defaultProfile", None)
    return True


def set_default_profile(document: Dict[str, Any], name: Optional[str]):
    if name:
        document["defaultProfile"] = name
    else:
        document.pop("defaultProfile", None)


def set_base_url(document: Dict[str, Any], url: str, profile: Optional[str] = None):
    if profile:
        profiles = ensure_profiles(document)
        entry = profiles.get(profile)
        entry = dict(entry) if isinstance(entry, dict) else {}
        entry["baseUrl"] = url
        profiles[profile] = entry
    else:
        document["baseUrl"] = url
