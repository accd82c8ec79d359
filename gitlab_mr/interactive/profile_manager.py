# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Interactive add/switch/default/remove of named profiles"""

import re
from typing import Any, Dict, List, Optional

import gitlab

from ..colors import CYAN, GREEN, bold, dim, paint
from ..config import DEFAULT_BASE_URL, normalize_base_url
from ..errors import describe_error
from ..logging_utils import get_logger, success
from ..profile_store import (
    ProfileSummary,
    delete_profile,
    list_profiles,
    load_profile_store,
    save_profile_store,
    set_default_profile,
    upsert_profile,
)
from .prompts import prompt_select, prompt_text, prompt_yes_no
from .selector import select_from_paged_list


def slugify_profile_name(source: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", source.strip().lower()).strip("-")
    return slug or "profile"


def fetch_gitlab_user(base_url: str, token: str) -> Dict[str, Any]:
    """Current user of `token` on `base_url`"""
    gl = gitlab.Gitlab(base_url, private_token=token)
    gl.auth()
    return gl.user.asdict()


def format_profile_summary(summary: ProfileSummary, active_profile: Optional[str] = None) -> str:
    profile = summary.profile
    display = profile.get("displayName") or profile.get("username") or profile.get("email") or summary.name
    markers = [
        paint("default", GREEN) if summary.is_default else None,
        paint("active", CYAN) if summary.name == active_profile else None,
    ]
    marker_text = ", ".join(m for m in markers if m)
    marker_text = f" {dim('[')}{marker_text}{dim(']')}" if marker_text else ""
    email = dim(f"<{profile.get('email') or 'unknown'}>")
    return f"{bold(display)} {email} @ {summary.base_url}{marker_text}"


def prompt_profile_selection(
    profiles: List[ProfileSummary], active_profile: Optional[str] = None
) -> Optional[ProfileSummary]:
    return select_from_paged_list(
        profiles,
        "Manage profiles",
        lambda item, index: format_profile_summary(item, active_profile),
    )


def add_profile_flow() -> Optional[str]:
    """Prompt for credentials, look up the user and store a new profile"""
    base_url = prompt_text("GitLab Base URL", default=DEFAULT_BASE_URL, required=True)
    if not base_url:
        return None
    base_url = normalize_base_url(base_url)
    token = prompt_text("GitLab Personal Access Token", required=True)
    if not token:
        return None

    try:
        user = fetch_gitlab_user(base_url, token)
    except Exception as e:
        get_logger().error(f"Failed to fetch GitLab user: {describe_error(e)}")
        return None

    default_name = slugify_profile_name(user.get("username") or user.get("name") or "profile")
    name = prompt_text("Profile key", default=default_name, required=True)
    if not name:
        return None

    email = user.get("email") if isinstance(user.get("email"), str) else None
    display_name = user.get("name") or user.get("username") or name
    if email:
        display_name = f"{display_name} <{email}>"

    store = load_profile_store()
    upsert_profile(
        store,
        name,
        {
            "baseUrl": base_url,
            "token": token,
            "displayName": display_name,
            "email": email,
            "username": user.get("username"),
        },
    )
    save_profile_store(store)
    success(f"Added profile {name}.")
    return name


def launch_profile_manager(active_profile: Optional[str] = None) -> Optional[str]:
    """Run the profile menu until Back or Escape; returns the active profile name"""
    while True:
        store = load_profile_store()
        summaries = list_profiles(store)
        has_profiles = bool(summaries)

        choices = [("➕ Add profile", "add")]
        if has_profiles:
            choices += [
                ("🔀 Switch active profile", "switch"),
                ("★ Set default profile", "set-default"),
                ("🗑 Remove profile", "remove"),
            ]
        choices.append(("↩ Back", "back"))

        result = prompt_select(
            "Profile manager", choices, default="switch" if has_profiles else "add"
        )
        if result.cancelled or result.value == "back":
            return active_profile

        if result.value == "add":
            add_profile_flow()
            continue

        selected = prompt_profile_selection(summaries, active_profile)
        if selected is None:
            continue

        if result.value == "switch":
            active_profile = selected.name
            success(f"Active profile set to {selected.name}.")
        elif result.value == "set-default":
            set_default_profile(store, selected.name)
            save_profile_store(store)
            success(f"Default profile set to {selected.name}.")
        elif result.value == "remove":
            if not prompt_yes_no(f"Remove profile {selected.name}?", default=False):
                continue
            if not delete_profile(store, selected.name):
                get_logger().warning(
                    f"Profile {selected.name} comes from top-level config fields and cannot be removed here."
                )
                continue
            save_profile_store(store)
            if active_profile == selected.name:
                active_profile = store.get("defaultProfile")
            success(f"Removed profile {selected.name}.")
