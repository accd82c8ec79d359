# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Profile command handler"""

import sys
from typing import List, Optional

from ..config import DEFAULT_BASE_URL, load_file_config, normalize_base_url
from ..errors import ConfigurationError
from ..interactive.prompts import prompt_select, prompt_text
from ..logging_utils import get_logger, success
from ..profile_store import set_base_url, set_default_profile, update_profile_store
from ..terminal import is_tty
from .base import BaseCommand

NONE_VALUE = "__PROFILE_NONE__"


def select_profile_name(title: str, names: List[str], allow_none: bool = False) -> Optional[str]:
    if not names:
        return None
    choices = [(name, name) for name in names]
    if allow_none:
        choices.insert(0, ("(none)", NONE_VALUE))
    result = prompt_select(title, choices)
    if result.cancelled or result.value == NONE_VALUE:
        return None
    return result.value


def prompt_base_url(message: str, default: str) -> str:
    answer = prompt_text(message, default=default)
    return normalize_base_url(answer or default)


class ProfileCommand(BaseCommand):
    """Manage profiles and base URL"""

    name = "profile"

    def add_arguments(self, subparsers):
        parser = subparsers.add_parser(
            self.name,
            help="Manage profiles and base URL",
            description="Inspect and edit profiles in the global config",
        )
        profile_subparsers = parser.add_subparsers(dest="action", help="Profile action")

        profile_subparsers.add_parser("list", help="List configured profiles and current defaults")

        use_parser = profile_subparsers.add_parser(
            "use", help="Select a default profile and base URL"
        )
        use_parser.add_argument("--profile", help="Profile to set as default (skips selection)")
        use_parser.add_argument("--base-url", help="Base URL to use globally (skips selection)")

        url_parser = profile_subparsers.add_parser(
            "set-base-url", help="Set base URL globally or for a specific profile"
        )
        url_parser.add_argument("--profile", help="Profile name to update (omit to update global)")
        url_parser.add_argument("--url", help="Base URL to set")
        return parser

    def handle(self, args) -> int:
        interactive = is_tty(sys.stdin)
        action = getattr(args, "action", None) or "list"
        if action == "list":
            self.show_profiles()
        elif action == "use":
            self.use_profile(args, interactive)
        elif action == "set-base-url":
            self.update_base_url(args, interactive)
        return 0

    def show_profiles(self):
        logger = get_logger()
        config = load_file_config()
        profiles = config.get("profiles")
        names = list(profiles) if isinstance(profiles, dict) else []
        logger.info(f"Profiles: {', '.join(names) if names else '(none found)'}")
        logger.info(f"Default profile: {config.get('defaultProfile') or '(none)'}")
        logger.info(
            f"Global base URL: {config.get('baseUrl') or f'(not set, defaults to {DEFAULT_BASE_URL})'}"
        )

    def use_profile(self, args, interactive: bool):
        logger = get_logger()
        config = load_file_config()
        profiles = config.get("profiles") if isinstance(config.get("profiles"), dict) else {}
        names = list(profiles)

        selected = args.profile
        if not selected and names and interactive:
            selected = select_profile_name("Select a profile (or none)", names, allow_none=True)
        elif not selected and not names:
            logger.info("No profiles defined. Will use no default profile.")

        base_url = args.base_url
        default_base = config.get("baseUrl") or DEFAULT_BASE_URL
        if not base_url and interactive:
            known = [normalize_base_url(default_base)]
            profile_base = (profiles.get(selected) or {}).get("baseUrl") if selected else None
            if profile_base and normalize_base_url(profile_base) not in known:
                known.append(normalize_base_url(profile_base))
            print("Known base URLs:")
            for index, url in enumerate(known, 1):
                print(f"  {index}. {url}")
            base_url = prompt_base_url("Base URL", default_base)
        base_url = normalize_base_url(base_url or default_base)

        def mutate(document):
            set_default_profile(document, selected)
            document["baseUrl"] = base_url

        update_profile_store(mutate)
        success("Updated global config")
        logger.info(f"Default profile: {selected or '(none)'}")
        logger.info(f"Global base URL: {base_url}")

    def update_base_url(self, args, interactive: bool):
        config = load_file_config()
        profiles = config.get("profiles") if isinstance(config.get("profiles"), dict) else {}

        target = args.profile
        if not target and profiles and interactive:
            target = select_profile_name(
                "Select a profile (or none for global)", list(profiles), allow_none=True
            )

        url = args.url
        if not url and interactive:
            stored = (profiles.get(target) or {}).get("baseUrl") if target else None
            url = prompt_base_url("Base URL", stored or config.get("baseUrl") or DEFAULT_BASE_URL)
        if not url:
            raise ConfigurationError("Missing --url and not in interactive mode.")
        url = normalize_base_url(url)

        update_profile_store(lambda document: set_base_url(document, url, target))
        if target:
            success(f'Set base URL for profile "{target}" -> {url}')
        else:
            success(f"Set global base URL -> {url}")
