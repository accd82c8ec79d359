# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Merge request list command handler"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List

from ..client import ProfileClient, create_clients_for_profiles
from ..logging_utils import get_logger
from .base import (
    BaseCommand,
    apply_match_filter,
    build_list_params,
    format_merge_request_summary,
    parse_limit_option,
)


def fetch_merge_requests(client: ProfileClient, params: Dict[str, Any]) -> List[Dict[str, Any]]:
    """All merge requests of the client's project matching `params`, as plain dicts"""
    mrs = client.project().mergerequests.list(get_all=True, **params)
    return [mr.asdict() for mr in mrs]


class ListCommand(BaseCommand):
    """List merge requests for the configured project"""

    name = "list"

    def add_arguments(self, subparsers):
        parser = subparsers.add_parser(
            self.name,
            help="List merge requests for the configured project",
            description="List merge requests for the configured project(s)",
        )
        parser.add_argument(
            "--state",
            default="opened",
            help="State filter (opened, closed, merged, locked, all; default: opened)",
        )
        parser.add_argument("--author", help="Filter by author username")
        parser.add_argument("--target-branch", help="Filter by target branch")
        parser.add_argument("--source-branch", help="Filter by source branch")
        parser.add_argument("--labels", help="Comma-separated labels to include")
        parser.add_argument("--search", help="Server-side search query")
        parser.add_argument("--match", help="Client-side substring filter on title/description")
        parser.add_argument("--limit", help="Limit number of results displayed")
        parser.add_argument(
            "--json", action="store_true", help="Print raw JSON output instead of formatted text"
        )
        self.add_project_options(parser)
        return parser

    def handle(self, args) -> int:
        params = build_list_params(args)
        limit = parse_limit_option(getattr(args, "limit", None))
        clients = create_clients_for_profiles(self.overrides(args))

        if args.json:
            self.handle_json(clients, params, args.match, limit)
        else:
            self.handle_text(clients, params, args.match, limit)
        return 0

    def handle_json(self, clients: List[ProfileClient], params, match, limit):
        def collect(client: ProfileClient) -> Dict[str, Any]:
            filtered = apply_match_filter(fetch_merge_requests(client, params), match)
            subset = filtered[:limit] if limit else filtered
            return {
                "profile": client.name or "default",
                "projectRef": client.project_ref,
                "mergeRequests": subset,
                "total": len(filtered),
                "limited": min(limit, len(filtered)) if limit else len(filtered),
            }

        with ThreadPoolExecutor(max_workers=max(1, len(clients))) as executor:
            results = list(executor.map(collect, clients))

        # a single profile keeps the plain array output
        payload = results[0]["mergeRequests"] if len(results) == 1 else results
        self.output_json(payload)

    def handle_text(self, clients: List[ProfileClient], params, match, limit):
        logger = get_logger()
        for client in clients:
            filtered = apply_match_filter(fetch_merge_requests(client, params), match)
            subset = filtered[:limit] if limit else filtered

            logger.info(f"{client.tag} project: {client.project_ref}")
            if not subset:
                logger.info("No merge requests found.")
                continue

            for mr in subset:
                logger.info(format_merge_request_summary(mr))

            if limit and len(filtered) > limit:
                logger.info(
                    f"Displayed {limit} of {len(filtered)} merge requests "
                    f"(increase --limit to view more)."
                )
