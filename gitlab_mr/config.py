# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Resolve GitLab profiles from CLI flags, config files and environment variables"""

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigurationError

DEFAULT_BASE_URL = "https://gitlab.com"
CONFIG_DIR_NAME = "gitlab-cli"
CONFIG_FILE_NAME = "config.json"
LOCAL_CONFIG_FILE_NAME = "gitlab-cli.config.json"

PROFILE_ENV_FIELDS = ("TOKEN", "PROJECT_ID", "PROJECT_PATH", "BASE_URL")


@dataclass
class ProfileOverrides:
    """Resolver inputs taken from the command line"""

    project_id: Optional[str] = None
    project_path: Optional[str] = None
    token: Optional[str] = None
    base_url: Optional[str] = None
    # single name or comma-separated list
    profile: Optional[str] = None
    all_profiles: bool = False

    @classmethod
    def from_args(cls, args) -> "ProfileOverrides":
        return cls(
            project_id=getattr(args, "project_id", None),
            project_path=getattr(args, "project_path", None),
            token=getattr(args, "token", None),
            base_url=getattr(args, "base_url", None),
            profile=getattr(args, "profile", None),
            all_profiles=bool(getattr(args, "all_profiles", False)),
        )

    @property
    def project_ref(self) -> Optional[str]:
        return normalize(self.project_id) or normalize(self.project_path)


@dataclass(frozen=True)
class ResolvedProfile:
    base_url: str
    token: str
    project_ref: Optional[str] = None
    name: Optional[str] = None


def normalize(value: Any) -> Optional[str]:
    """Trim a config value, mapping blanks and non-strings to None"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_base_url(url: str) -> str:
    trimmed = url.strip()
    return trimmed.rstrip("/") or trimmed


def parse_csv(value: Optional[str]) -> List[str]:
    """Split a comma-separated list, dropping blanks and repeated names"""
    names: List[str] = []
    for part in (value or "").split(","):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    return names


def env_key_for(profile_name: str, field: str) -> str:
    """Environment variable holding `field` for a named profile"""
    if field not in PROFILE_ENV_FIELDS:
        raise ValueError(f"Unknown profile field: {field}")
    if not profile_name or not profile_name.strip():
        raise ConfigurationError("Invalid profile name: profile names cannot be empty.")
    suffix = re.sub(r"[^A-Z0-9_]", "_", profile_name.upper())
    return f"GITLAB_{suffix}_{field}"


def get_global_config_path(env: Optional[Mapping[str, str]] = None) -> Tuple[Path, Path]:
    """Return (directory, file) of the per-user config document"""
    env = os.environ if env is None else env
    config_home = env.get("XDG_CONFIG_HOME")
    if config_home:
        base = Path(config_home).resolve()
    else:
        home = env.get("HOME")
        base = (Path(home) if home else Path.home()) / ".config"
    config_dir = base / CONFIG_DIR_NAME
    return config_dir, config_dir / CONFIG_FILE_NAME


def read_json_document(path: Path) -> Dict[str, Any]:
    """Read a JSON object, treating missing or malformed files as empty"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_file_config(
    cwd: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Global config document with the project-local file layered on top"""
    _, global_file = get_global_config_path(env)
    local_file = Path(cwd or Path.cwd()) / LOCAL_CONFIG_FILE_NAME
    return deep_merge(read_json_document(global_file), read_json_document(local_file))


def _configured_profiles(document: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    profiles = document.get("profiles")
    if not isinstance(profiles, dict):
        return {}
    return {name: value for name, value in profiles.items() if isinstance(value, dict)}


class ProfileResolver:
    """Turns CLI overrides, config documents and environment into resolved profiles.

    Sources are tried in order and the first one that yields profiles wins:

    1. --token / --base-url on the command line (single profile)
    2. named profiles from the config documents
    3. top-level fields of the config documents
    4. $GITLAB_PROFILES with per-profile $GITLAB_<NAME>_* variables
    5. $GITLAB_TOKEN / $GITLAB_PROJECT_ID / $GITLAB_PROJECT_PATH
    """

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        config_loader: Optional[Callable[[], Dict[str, Any]]] = None,
    ):
        self.env = os.environ if env is None else env
        self.config_loader = config_loader or (lambda: load_file_config(env=self.env))

    def _env(self, key: str) -> Optional[str]:
        return normalize(self.env.get(key))

    def _env_base_url(self) -> str:
        return self._env("GITLAB_BASE_URL") or DEFAULT_BASE_URL

    def resolve_single(
        self, overrides: ProfileOverrides, require_project: bool = True
    ) -> ResolvedProfile:
        """Build one profile from CLI values with the legacy environment as fallback"""
        base_url = normalize(overrides.base_url) or self._env_base_url()
        token = normalize(overrides.token) or self._env("GITLAB_TOKEN")
        project_ref = (
            overrides.project_ref
            or self._env("GITLAB_PROJECT_ID")
            or self._env("GITLAB_PROJECT_PATH")
        )

        if not token:
            raise ConfigurationError("Missing GitLab token. Provide --token or set GITLAB_TOKEN.")
        if not project_ref and require_project:
            raise ConfigurationError(
                "Missing project reference. Use --project-id/--project-path or set "
                "GITLAB_PROJECT_ID/GITLAB_PROJECT_PATH."
            )
        return ResolvedProfile(
            base_url=normalize_base_url(base_url), token=token, project_ref=project_ref
        )

    def resolve(
        self, overrides: ProfileOverrides, require_project: bool = True
    ) -> List[ResolvedProfile]:
        if normalize(overrides.token) or normalize(overrides.base_url):
            return [self.resolve_single(overrides, require_project)]

        document = self.config_loader()
        requested_from_flag = parse_csv(normalize(overrides.profile))

        resolved = self._from_config_profiles(
            document, overrides, requested_from_flag, require_project
        )
        if resolved:
            return resolved

        fallback = self._from_config_top_level(document, overrides, require_project)
        if fallback:
            return [fallback]

        resolved = self._from_env_profiles(overrides, requested_from_flag, require_project)
        if resolved:
            return resolved

        legacy = self._from_legacy_env(overrides, require_project)
        if legacy:
            return [legacy]

        return [self.resolve_single(overrides, require_project)]

    def _from_config_profiles(
        self,
        document: Dict[str, Any],
        overrides: ProfileOverrides,
        requested_from_flag: List[str],
        require_project: bool,
    ) -> List[ResolvedProfile]:
        profiles = _configured_profiles(document)
        if overrides.all_profiles:
            requested = list(profiles)
        elif requested_from_flag:
            requested = requested_from_flag
        elif profiles:
            default = normalize(document.get("defaultProfile"))
            # a default naming a removed profile counts as no default
            requested = [default if default in profiles else next(iter(profiles))]
        else:
            requested = []

        resolved = []
        for name in requested:
            profile = profiles.get(name)
            if profile is None:
                continue
            base_url = (
                normalize(profile.get("baseUrl"))
                or normalize(document.get("baseUrl"))
                or DEFAULT_BASE_URL
            )
            token = normalize(profile.get("token")) or normalize(document.get("token"))
            project_ref = overrides.project_ref or (
                normalize(profile.get("projectId"))
                or normalize(profile.get("projectPath"))
                or normalize(document.get("projectId"))
                or normalize(document.get("projectPath"))
            )
            if not token:
                raise ConfigurationError(
                    f'Missing token for profile "{name}" in config. '
                    f'Add "token" to the profile or provide --token.'
                )
            if not project_ref and require_project:
                raise ConfigurationError(
                    f'Missing project reference for profile "{name}" in config. '
                    f"Provide --project-id/--project-path to override."
                )
            resolved.append(
                ResolvedProfile(
                    base_url=normalize_base_url(base_url),
                    token=token,
                    project_ref=project_ref,
                    name=name,
                )
            )
        return resolved

    def _from_config_top_level(
        self, document: Dict[str, Any], overrides: ProfileOverrides, require_project: bool
    ) -> Optional[ResolvedProfile]:
        token = normalize(document.get("token"))
        project_ref = overrides.project_ref or (
            normalize(document.get("projectId")) or normalize(document.get("projectPath"))
        )
        if not token or (not project_ref and require_project):
            return None
        base_url = normalize(document.get("baseUrl")) or DEFAULT_BASE_URL
        return ResolvedProfile(
            base_url=normalize_base_url(base_url), token=token, project_ref=project_ref
        )

    def _from_env_profiles(
        self,
        overrides: ProfileOverrides,
        requested_from_flag: List[str],
        require_project: bool,
    ) -> List[ResolvedProfile]:
        declared = parse_csv(self._env("GITLAB_PROFILES"))
        if overrides.all_profiles:
            requested = declared
        elif requested_from_flag:
            requested = requested_from_flag
        else:
            requested = declared[:1]

        resolved = []
        for name in requested:
            token_key = env_key_for(name, "TOKEN")
            token = self._env(token_key)
            if not token:
                raise ConfigurationError(f'Missing token for profile "{name}". Set {token_key}.')

            project_ref = overrides.project_ref or (
                self._env(env_key_for(name, "PROJECT_ID"))
                or self._env(env_key_for(name, "PROJECT_PATH"))
            )
            if not project_ref and require_project:
                raise ConfigurationError(
                    f'Missing project reference for profile "{name}". '
                    f"Set {env_key_for(name, 'PROJECT_ID')} or {env_key_for(name, 'PROJECT_PATH')}, "
                    f"or provide --project-id/--project-path."
                )
            base_url = self._env(env_key_for(name, "BASE_URL")) or self._env_base_url()
            resolved.append(
                ResolvedProfile(
                    base_url=normalize_base_url(base_url),
                    token=token,
                    project_ref=project_ref,
                    name=name,
                )
            )
        return resolved

    def _from_legacy_env(
        self, overrides: ProfileOverrides, require_project: bool
    ) -> Optional[ResolvedProfile]:
        token = self._env("GITLAB_TOKEN")
        project_ref = (
            overrides.project_ref
            or self._env("GITLAB_PROJECT_ID")
            or self._env("GITLAB_PROJECT_PATH")
        )
        if not token or (not project_ref and require_project):
            return None
        return ResolvedProfile(
            base_url=normalize_base_url(self._env_base_url()),
            token=token,
            project_ref=project_ref,
        )


def resolve_gitlab_profiles(
    overrides: ProfileOverrides,
    require_project: bool = True,
    env: Optional[Mapping[str, str]] = None,
) -> List[ResolvedProfile]:
    return ProfileResolver(env=env).resolve(overrides, require_project=require_project)
