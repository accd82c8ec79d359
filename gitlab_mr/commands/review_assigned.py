# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Review-assigned command handler: comment on and merge your assigned MRs"""

from typing import Any, Dict, Optional

from ..client import ProfileClient, create_clients_for_profiles
from ..errors import CommentVerificationError, describe_error
from ..logging_utils import get_logger, success
from .base import DEFAULT_COMMENT_BODY, BaseCommand, build_list_params
from .mrs import fetch_merge_requests


def normalize_comment_body(comment: Optional[str]) -> str:
    trimmed = (comment or "").strip()
    return trimmed or DEFAULT_COMMENT_BODY


def is_assigned_to_user(mr: Dict[str, Any], user_id: Optional[int]) -> bool:
    if not user_id:
        return False
    assignee = mr.get("assignee")
    if isinstance(assignee, dict) and assignee.get("id") == user_id:
        return True
    if mr.get("assignee_id") == user_id:
        return True
    assignees = mr.get("assignees")
    if isinstance(assignees, list):
        return any(isinstance(a, dict) and a.get("id") == user_id for a in assignees)
    return False


def current_user_id(client: ProfileClient) -> Optional[int]:
    client.gl.auth()
    return getattr(client.gl.user, "id", None)


def verify_comment_exists(mr, note, expected_body: str):
    note_id = getattr(note, "id", None)
    if not note_id:
        raise CommentVerificationError("Unable to verify comment without note id returned by GitLab")
    fetched = mr.notes.get(note_id)
    body = fetched.body.strip() if isinstance(getattr(fetched, "body", None), str) else ""
    if expected_body not in body:
        raise CommentVerificationError("Comment verification failed: body mismatch")


def process_merge_request(
    client: ProfileClient, mr_data: Dict[str, Any], comment_body: str, dry_run: bool = False
):
    logger = get_logger()
    iid = mr_data.get("iid")
    if not iid:
        logger.warning("Skipping merge request without IID")
        return

    logger.info(f"Processing !{iid} - {mr_data.get('title') or '(no title)'}")
    if dry_run:
        logger.info(f"[dry-run] Would comment and merge !{iid}")
        return

    mr = client.project().mergerequests.get(iid, lazy=True)
    note = mr.notes.create({"body": comment_body})
    verify_comment_exists(mr, note, comment_body)
    success(f"Comment posted for !{iid}")

    mr.merge()
    success(f"Merge triggered for !{iid}")


class ReviewAssignedCommand(BaseCommand):
    """Comment on and merge merge requests assigned to the authenticated user"""

    name = "review-assigned"

    def add_arguments(self, subparsers):
        parser = subparsers.add_parser(
            self.name,
            help="Comment on and merge merge requests assigned to you",
            description=(
                "Automatically comment and merge merge requests assigned to the "
                "authenticated user"
            ),
        )
        parser.add_argument(
            "--state",
            default="opened",
            help="State filter (opened, closed, merged, locked, all; default: opened)",
        )
        parser.add_argument(
            "--comment", help=f"Override comment body (default: {DEFAULT_COMMENT_BODY})"
        )
        parser.add_argument(
            "--dry-run", action="store_true", help="Print actions instead of executing them"
        )
        self.add_project_options(parser)
        return parser

    def handle(self, args) -> int:
        logger = get_logger()
        comment_body = normalize_comment_body(args.comment)
        params = build_list_params(args)
        clients = create_clients_for_profiles(self.overrides(args))
        failed_overall = False

        for client in clients:
            suffix = f" [profile: {client.name}]" if client.name else ""
            try:
                user_id = current_user_id(client)
                assigned = [
                    mr
                    for mr in fetch_merge_requests(client, params)
                    if is_assigned_to_user(mr, user_id)
                ]
            except Exception as e:
                failed_overall = True
                logger.error(f"Failed to load merge requests{suffix}: {describe_error(e)}")
                continue

            if not assigned:
                logger.info(f"No merge requests assigned to you were found{suffix}.")
                continue

            failed = False
            for mr in assigned:
                try:
                    process_merge_request(client, mr, comment_body, dry_run=args.dry_run)
                except Exception as e:
                    failed = True
                    iid = mr.get("iid")
                    identifier = f"!{iid}" if isinstance(iid, int) else "unknown MR"
                    logger.error(f"Failed to process {identifier}{suffix}: {describe_error(e)}")

            if failed:
                failed_overall = True
                logger.warning(
                    f"At least one merge request failed{suffix}. See logs above for details."
                )

        if failed_overall:
            raise RuntimeError(
                "At least one merge request failed across profiles. See logs above for details."
            )
        return 0
