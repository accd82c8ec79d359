# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""First-run setup of the global config document"""

import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from .config import DEFAULT_BASE_URL, get_global_config_path, normalize_base_url, read_json_document
from .interactive.prompts import prompt_text
from .logging_utils import get_logger
from .profile_store import save_profile_store


def is_interactive(env: Optional[Mapping[str, str]] = None, stdin=None) -> bool:
    """True when stdin is a terminal and we are not running under CI"""
    env = os.environ if env is None else env
    stdin = stdin or sys.stdin
    isatty = getattr(stdin, "isatty", None)
    return bool(isatty and isatty()) and not env.get("CI")


def needs_bootstrap(env: Optional[Mapping[str, str]] = None) -> bool:
    _, config_file = get_global_config_path(env)
    document = read_json_document(config_file)
    profiles = document.get("profiles")
    has_profiles = isinstance(profiles, dict) and len(profiles) > 0
    return not (document.get("token") or has_profiles)


def maybe_bootstrap_global_config(
    env: Optional[Mapping[str, str]] = None, stdin=None
) -> Optional[Path]:
    """Prompt for a base URL and token when no global credentials exist yet.

    Returns the written config path, or None when nothing was written.
    """
    if not needs_bootstrap(env) or not is_interactive(env, stdin):
        return None

    base_url = prompt_text("GitLab Base URL", default=DEFAULT_BASE_URL)
    if base_url is None:
        return None
    base_url = normalize_base_url(base_url or DEFAULT_BASE_URL)
    token = prompt_text("GitLab Token (api scope)", required=True)
    if not token:
        return None

    document = {
        "token": token,
        "baseUrl": base_url,
        "profiles": {"default": {"token": token, "baseUrl": base_url}},
        "defaultProfile": "default",
    }
    config_file = save_profile_store(document, env)
    get_logger().info(f"Global config saved to {config_file}")
    return config_file
