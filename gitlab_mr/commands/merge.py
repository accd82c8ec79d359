# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Merge command handler"""

import json
from typing import Any, Dict

from ..client import ProfileClient, create_clients_for_profiles
from ..config import ProfileOverrides
from ..logging_utils import get_logger, success
from .base import BaseCommand, build_merge_options, parse_merge_request_iid


def accept_merge_request(client: ProfileClient, iid: int, options: Dict[str, Any]):
    mr = client.project().mergerequests.get(iid, lazy=True)
    return mr.merge(**options)


def run_merge_workflow(overrides: ProfileOverrides, mr, options: Dict[str, Any], dry_run: bool = False):
    """Accept merge request `mr` for every resolved profile, in order"""
    iid = parse_merge_request_iid(mr)
    clients = create_clients_for_profiles(overrides)

    for client in clients:
        suffix = f" [profile: {client.name}]" if client.name else ""
        if dry_run:
            get_logger().info(
                f"[dry-run] Would merge !{iid}{suffix} with payload:\n{json.dumps(options, indent=2)}"
            )
            continue
        accept_merge_request(client, iid, options)
        success(f"Merge triggered for !{iid}{suffix}")


class MergeCommand(BaseCommand):
    """Merge a merge request"""

    name = "merge"

    def add_arguments(self, subparsers):
        parser = subparsers.add_parser(
            self.name, help="Merge a merge request", description="Merge a merge request"
        )
        parser.add_argument("--mr", required=True, help="Merge request IID (!123)")
        parser.add_argument("--sha", help="Ensure the MR is still at this SHA")
        parser.add_argument("--squash", action="store_true", help="Enable squash when merging")
        parser.add_argument(
            "--remove-source-branch",
            action="store_true",
            help="Remove the source branch after merging",
        )
        parser.add_argument(
            "--merge-when-pipeline-succeeds",
            action="store_true",
            help="Wait for the current pipeline before merging",
        )
        parser.add_argument("--commit-message", help="Custom merge commit message")
        parser.add_argument("--squash-message", help="Custom squash commit message")
        parser.add_argument("--dry-run", action="store_true", help="Print payload instead of merging")
        self.add_project_options(parser)
        return parser

    def handle(self, args) -> int:
        run_merge_workflow(
            self.overrides(args), args.mr, build_merge_options(args), dry_run=args.dry_run
        )
        return 0
