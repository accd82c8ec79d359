# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""python-gitlab clients for resolved profiles"""

from dataclasses import dataclass
from typing import List, Mapping, Optional

import gitlab

from .bootstrap import maybe_bootstrap_global_config
from .config import ProfileOverrides, ResolvedProfile, resolve_gitlab_profiles
from .logging_utils import get_logger


@dataclass
class ProfileClient:
    name: Optional[str]
    gl: gitlab.Gitlab
    project_ref: Optional[str]

    @property
    def tag(self) -> str:
        return profile_tag(self.name)

    def project(self):
        """Project manager for the resolved project, without an extra GET"""
        return self.gl.projects.get(self.project_ref, lazy=True)


def profile_tag(name: Optional[str]) -> str:
    return f"[{name}]" if name else "[default]"


def create_gitlab_client(profile: ResolvedProfile) -> gitlab.Gitlab:
    get_logger().debug(f"Creating GitLab client for {profile.base_url} ({profile_tag(profile.name)})")
    return gitlab.Gitlab(profile.base_url, private_token=profile.token)


def create_clients_for_profiles(
    overrides: ProfileOverrides,
    require_project: bool = True,
    env: Optional[Mapping[str, str]] = None,
) -> List[ProfileClient]:
    """One client per resolved profile, in resolution order"""
    maybe_bootstrap_global_config(env)
    profiles = resolve_gitlab_profiles(overrides, require_project=require_project, env=env)

    clients = []
    for profile in profiles:
        clients.append(
            ProfileClient(
                name=profile.name,
                gl=create_gitlab_client(profile),
                project_ref=profile.project_ref,
            )
        )
    return clients
