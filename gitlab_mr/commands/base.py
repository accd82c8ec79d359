# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Base command class with common functionality"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import ProfileOverrides
from ..errors import ValidationError

DEFAULT_COMMENT_BODY = "review: ok"
MR_STATES = ("opened", "closed", "locked", "merged")


class BaseCommand:
    """Base class for all command handlers"""

    name = ""

    def add_arguments(self, subparsers):
        raise NotImplementedError

    def handle(self, args) -> int:
        raise NotImplementedError

    def add_project_options(self, parser):
        """Flags every GitLab command accepts for picking profiles and projects"""
        parser.add_argument("--project-id", help="GitLab project ID")
        parser.add_argument(
            "--project-path", help="GitLab namespace/project path (e.g. team/project)"
        )
        parser.add_argument("--token", help="GitLab access token (defaults to $GITLAB_TOKEN)")
        parser.add_argument("--base-url", help="GitLab base URL, defaults to https://gitlab.com")
        parser.add_argument(
            "--profile",
            help="Named profile(s) from config or $GITLAB_PROFILES (comma-separated supported)",
        )
        parser.add_argument(
            "--all-profiles",
            action="store_true",
            help="Run against all profiles from config or $GITLAB_PROFILES",
        )

    def overrides(self, args) -> ProfileOverrides:
        return ProfileOverrides.from_args(args)

    def output_json(self, data):
        print(json.dumps(data, indent=2))


def normalize_state_option(value: Optional[str]) -> Optional[str]:
    """Map a --state value to the API filter; None means no state filter"""
    if not value:
        return "opened"
    lowered = value.lower()
    if lowered == "all":
        return None
    if lowered not in MR_STATES:
        raise ValidationError("Invalid --state value. Use opened, closed, merged, locked, or all.")
    return lowered


def parse_merge_request_iid(value) -> int:
    normalized = str(value).strip()
    if normalized.startswith("!"):
        normalized = normalized[1:]
    try:
        iid = int(normalized)
    except ValueError:
        raise ValidationError(f"Invalid merge request IID: {value}")
    if iid <= 0:
        raise ValidationError(f"Invalid merge request IID: {value}")
    return iid


def parse_limit_option(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid --limit value. Provide a positive integer.")
    if limit <= 0:
        raise ValidationError("Invalid --limit value. Provide a positive integer.")
    return limit


def build_list_params(args) -> Dict[str, Any]:
    """Query parameters for listing merge requests"""
    params = {}
    state = normalize_state_option(getattr(args, "state", None))
    if state:
        params["state"] = state
    for attr, key in (
        ("author", "author_username"),
        ("target_branch", "target_branch"),
        ("source_branch", "source_branch"),
        ("labels", "labels"),
        ("search", "search"),
    ):
        value = getattr(args, attr, None)
        if value:
            params[key] = value
    return params


def apply_match_filter(items: List[Dict[str, Any]], match: Optional[str]) -> List[Dict[str, Any]]:
    needle = (match or "").strip().lower()
    if not needle:
        return items
    return [
        item
        for item in items
        if needle in f"{item.get('title') or ''}\n{item.get('description') or ''}".lower()
    ]


def format_merge_request_summary(mr: Dict[str, Any]) -> str:
    numeric_id = mr["id"] if isinstance(mr.get("id"), int) else "unknown"
    author = mr.get("author") or {}
    author_name = author.get("username") or author.get("name") or "unknown"
    labels = mr.get("labels")
    labels_text = f" | labels: {', '.join(labels)}" if isinstance(labels, list) and labels else ""
    web = f" | {mr['web_url']}" if mr.get("web_url") else ""
    return "\n".join(
        [
            f"!{mr.get('iid', '?')} (id: {numeric_id}) [{mr.get('state') or 'unknown'}] "
            f"{mr.get('title') or '(no title)'}",
            f"  author: {author_name} | branches: {mr.get('source_branch') or ''} -> "
            f"{mr.get('target_branch') or ''}{labels_text}",
            f"  updated: {mr.get('updated_at') or 'unknown'}{web}",
        ]
    )


def build_merge_options(args) -> Dict[str, Any]:
    """Keyword arguments for ProjectMergeRequest.merge()"""
    options = {}
    if getattr(args, "sha", None):
        options["sha"] = args.sha
    if getattr(args, "squash", False):
        options["squash"] = True
    if getattr(args, "remove_source_branch", False):
        options["should_remove_source_branch"] = True
    if getattr(args, "merge_when_pipeline_succeeds", False):
        options["merge_when_pipeline_succeeds"] = True
    if getattr(args, "commit_message", None):
        options["merge_commit_message"] = args.commit_message
    if getattr(args, "squash_message", None):
        options["squash_commit_message"] = args.squash_message
    return options


def read_stdin(stdin=None) -> str:
    stdin = stdin or sys.stdin
    isatty = getattr(stdin, "isatty", None)
    if isatty and isatty():
        return ""
    data = stdin.read()
    return data if data.strip() else ""


def resolve_comment_body(
    message: Optional[str] = None, message_file: Optional[str] = None, stdin=None
) -> str:
    """Comment text from --message, then --message-file, then piped stdin"""
    if message is not None:
        if not message.strip():
            raise ValidationError("Comment body is empty.")
        return message

    if message_file:
        path = Path(message_file).resolve()
        content = path.read_text(encoding="utf-8")
        if not content.strip():
            raise ValidationError(f"Comment file {path} is empty.")
        return content

    return read_stdin(stdin) or DEFAULT_COMMENT_BODY
