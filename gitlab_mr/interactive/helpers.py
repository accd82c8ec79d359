# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Project choices and merge request formatting for interactive mode"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from ..colors import BLUE, GREEN, MAGENTA, YELLOW, bold, dim, paint
from ..config import ProfileOverrides
from ..favorites import FavoriteProjectRecord, favorite_key


@dataclass
class InteractiveProjectChoice:
    project_ref: str
    label: str
    profile_name: Optional[str] = None
    last_activity: Optional[str] = None
    web_url: Optional[str] = None
    is_favorite: bool = False

    @property
    def key(self) -> str:
        return favorite_key(self.project_ref, self.profile_name)

    def to_favorite(self) -> FavoriteProjectRecord:
        return FavoriteProjectRecord(
            project_ref=self.project_ref,
            profile=self.profile_name,
            label=self.label,
            web_url=self.web_url,
            last_activity=self.last_activity,
        )


def format_date(value: Optional[str]) -> str:
    if not value:
        return "unknown"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    utc = parsed.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_project_line(choice: InteractiveProjectChoice, index: int) -> List[str]:
    profile_tag = (
        paint(f"[{choice.profile_name}]", MAGENTA) if choice.profile_name else dim("[default]")
    )
    star = paint("★", YELLOW) if choice.is_favorite else dim("☆")
    web = f" {dim('|')} {paint(choice.web_url, BLUE)}" if choice.web_url else ""
    label = bold(choice.label or choice.project_ref)
    return [
        f"{star} {dim(f'#{index + 1}')} {profile_tag} {label} "
        f"{dim('(')}{paint(choice.project_ref, BLUE)}{dim(')')}",
        f"   {dim('last activity:')} {paint(format_date(choice.last_activity), GREEN)}{web}",
    ]


def build_project_options(choice: InteractiveProjectChoice) -> ProfileOverrides:
    """Resolver overrides that point commands at the chosen project"""
    overrides = ProfileOverrides(profile=choice.profile_name)
    if choice.project_ref.isdigit():
        overrides.project_id = choice.project_ref
    else:
        overrides.project_path = choice.project_ref
    return overrides


def mark_favorite_state(choices: Iterable[InteractiveProjectChoice], favorite_keys: Set[str]):
    for choice in choices:
        choice.is_favorite = choice.key in favorite_keys


def build_favorite_choice_list(
    records: List[FavoriteProjectRecord], projects: List[InteractiveProjectChoice]
) -> List[InteractiveProjectChoice]:
    """Favorites in record order, reusing live project choices where available"""
    by_key = {choice.key: choice for choice in projects}
    choices = []
    for record in records:
        existing = by_key.get(record.key)
        if existing is not None:
            existing.is_favorite = True
            choices.append(existing)
            continue
        choices.append(
            InteractiveProjectChoice(
                project_ref=record.project_ref,
                label=record.label or record.project_ref,
                profile_name=record.profile,
                last_activity=record.last_activity,
                web_url=record.web_url,
                is_favorite=True,
            )
        )
    return choices


def choice_from_project(
    project: Mapping[str, Any], profile_name: Optional[str] = None
) -> Optional[InteractiveProjectChoice]:
    """Build a choice from a GitLab project payload, or None when it has no usable ref"""
    project_id = project.get("id")
    project_id = str(project_id) if isinstance(project_id, int) else None
    path = project.get("path_with_namespace")
    label = project.get("name_with_namespace") or path or project.get("name") or project_id
    project_ref = project_id or path
    if not project_ref or not label:
        return None
    return InteractiveProjectChoice(
        project_ref=project_ref,
        label=label,
        profile_name=profile_name,
        last_activity=project.get("last_activity_at"),
        web_url=project.get("web_url"),
    )


def is_merge_request_mergeable(mr: Mapping[str, Any]) -> bool:
    if mr.get("work_in_progress") or mr.get("draft"):
        return False
    status = mr.get("merge_status") or mr.get("detailed_merge_status")
    if status and status != "can_be_merged":
        return False
    iid = mr.get("iid")
    return isinstance(iid, int) and not isinstance(iid, bool)


def _author_name(mr: Mapping[str, Any]) -> str:
    author = mr.get("author") or {}
    return author.get("username") or author.get("name") or "unknown"


def format_merge_request_lines(mr: Dict[str, Any], index: int = 0) -> List[str]:
    iid = mr.get("iid")
    iid_label = f"!{iid}" if isinstance(iid, int) else "! ?"
    status = mr.get("merge_status") or mr.get("detailed_merge_status") or mr.get("state") or ""
    badge = f"{dim(f'[{status}]')} " if status else ""
    branches = f"{mr.get('source_branch') or 'unknown'} → {mr.get('target_branch') or 'unknown'}"
    updated = format_date(mr.get("updated_at"))
    web = f" | {dim(mr['web_url'])}" if mr.get("web_url") else ""
    return [
        f"{paint(iid_label, GREEN)} {badge}{mr.get('title') or '(no title)'}",
        f"  {_author_name(mr)} | {branches}",
        f"  updated: {updated}{web}",
    ]
