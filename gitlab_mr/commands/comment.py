# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Comment command handler"""

from typing import Optional

from ..client import ProfileClient, create_clients_for_profiles
from ..config import ProfileOverrides
from ..logging_utils import get_logger, success
from .base import BaseCommand, parse_merge_request_iid, resolve_comment_body


def post_merge_request_note(client: ProfileClient, iid: int, body: str):
    mr = client.project().mergerequests.get(iid, lazy=True)
    return mr.notes.create({"body": body})


def run_comment_workflow(
    overrides: ProfileOverrides,
    mr,
    message: Optional[str] = None,
    message_file: Optional[str] = None,
    dry_run: bool = False,
    stdin=None,
):
    """Post one note on merge request `mr` for every resolved profile"""
    iid = parse_merge_request_iid(mr)
    body = resolve_comment_body(message, message_file, stdin)
    clients = create_clients_for_profiles(overrides)

    for client in clients:
        suffix = f" [profile: {client.name}]" if client.name else ""
        if dry_run:
            get_logger().info(f"[dry-run] Would comment on !{iid}{suffix} with:\n{body}")
            continue
        post_merge_request_note(client, iid, body)
        success(f"Comment added to merge request !{iid}{suffix}")


class CommentCommand(BaseCommand):
    """Add a comment to a merge request"""

    name = "comment"

    def add_arguments(self, subparsers):
        parser = subparsers.add_parser(
            self.name,
            help="Add a comment to a merge request",
            description="Add a comment to a merge request",
        )
        parser.add_argument("--mr", required=True, help="Merge request IID (!123)")
        parser.add_argument("-m", "--message", help="Comment body text")
        parser.add_argument("-f", "--message-file", help="Read comment body from a file")
        parser.add_argument(
            "--dry-run", action="store_true", help="Print payload instead of posting to GitLab"
        )
        self.add_project_options(parser)
        return parser

    def handle(self, args) -> int:
        run_comment_workflow(
            self.overrides(args),
            args.mr,
            message=args.message,
            message_file=args.message_file,
            dry_run=args.dry_run,
        )
        return 0
