# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Interactive home: pick a repository, then comment on or merge its MRs"""

import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from itertools import islice
from typing import Any, Dict, List, Optional

from ..client import ProfileClient, create_clients_for_profiles
from ..colors import bold, dim
from ..commands.base import DEFAULT_COMMENT_BODY
from ..commands.comment import run_comment_workflow
from ..commands.merge import run_merge_workflow
from ..config import ProfileOverrides
from ..errors import describe_error
from ..favorites import (
    FavoriteProjectRecord,
    load_favorite_projects,
    save_favorite_projects,
    sort_favorite_records,
    toggle_favorite_record,
    touch_favorite,
)
from ..logging_utils import get_logger, success
from ..profile_store import ProfileSummary, list_profiles, load_profile_store
from ..terminal import is_tty
from .helpers import (
    InteractiveProjectChoice,
    build_favorite_choice_list,
    build_project_options,
    choice_from_project,
    format_merge_request_lines,
    format_project_line,
    is_merge_request_mergeable,
    mark_favorite_state,
)
from .profile_manager import launch_profile_manager
from .prompts import prompt_comment_body, prompt_repo_action_menu, prompt_repo_list_mode, prompt_yes_no
from .selector import FAVORITE_HELP_TEXT, PAGER_HELP_TEXT, SelectorHooks, select_from_paged_list

PROJECT_FETCH_PER_PAGE = 50
PROJECT_FETCH_LIMIT = 500
MR_FETCH_PER_PAGE = 50
MR_FETCH_LIMIT = 250


@dataclass
class InteractiveSession:
    """State owned by one run of the interactive loop"""

    active_profile: Optional[str] = None
    profiles: List[ProfileSummary] = field(default_factory=list)
    favorites: List[FavoriteProjectRecord] = field(default_factory=list)
    projects: List[InteractiveProjectChoice] = field(default_factory=list)
    favorite_choices: List[InteractiveProjectChoice] = field(default_factory=list)

    @property
    def active_profile_label(self) -> str:
        for summary in self.profiles:
            if summary.name == self.active_profile:
                return summary.label
        return self.active_profile or "default"

    def overrides_for(self, choice: InteractiveProjectChoice) -> ProfileOverrides:
        overrides = build_project_options(choice)
        overrides.profile = overrides.profile or self.active_profile
        return overrides


def _recent_projects_for(client: ProfileClient) -> List[InteractiveProjectChoice]:
    projects = client.gl.projects.list(
        membership=True,
        order_by="last_activity_at",
        sort="desc",
        per_page=PROJECT_FETCH_PER_PAGE,
        iterator=True,
    )
    choices = []
    for project in islice(projects, PROJECT_FETCH_LIMIT):
        choice = choice_from_project(project.asdict(), client.name)
        if choice is not None:
            choices.append(choice)
    return choices


def collect_recent_projects(profile_name: Optional[str] = None) -> List[InteractiveProjectChoice]:
    """Recently active projects across the resolved profiles, newest first.

    Profiles are queried concurrently; a profile that fails is logged and
    contributes nothing.
    """
    clients = create_clients_for_profiles(ProfileOverrides(profile=profile_name), require_project=False)
    if not clients:
        return []

    def load(client: ProfileClient) -> List[InteractiveProjectChoice]:
        try:
            return _recent_projects_for(client)
        except Exception as e:
            get_logger().warning(f"{client.tag} Failed to load recent projects: {describe_error(e)}")
            return []

    with ThreadPoolExecutor(max_workers=len(clients)) as executor:
        results = list(executor.map(load, clients))

    choices = [choice for batch in results for choice in batch]
    choices.sort(key=lambda c: c.last_activity or "", reverse=True)
    return choices


def fetch_merge_requests_for_choice(
    choice: InteractiveProjectChoice, active_profile: Optional[str] = None
) -> List[Dict[str, Any]]:
    overrides = build_project_options(choice)
    overrides.profile = choice.profile_name or active_profile
    clients = create_clients_for_profiles(overrides)
    if choice.profile_name:
        target = next((c for c in clients if c.name == choice.profile_name), None)
    else:
        target = clients[0] if clients else None
    if target is None:
        raise RuntimeError("Failed to resolve a GitLab profile for the selected project.")

    mrs = target.project().mergerequests.list(
        state="opened",
        order_by="updated_at",
        sort="desc",
        per_page=MR_FETCH_PER_PAGE,
        iterator=True,
    )
    return [mr.asdict() for mr in islice(mrs, MR_FETCH_LIMIT)]


def prompt_merge_request_selection(
    choice: InteractiveProjectChoice, action: str, active_profile: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    logger = get_logger()
    logger.info(dim("Fetching merge requests..."))
    candidates = [
        mr for mr in fetch_merge_requests_for_choice(choice, active_profile)
        if is_merge_request_mergeable(mr)
    ]
    if not candidates:
        logger.warning("No merge requests ready for action in this project.")
        return None

    title = "Select a merge request to comment" if action == "comment" else "Select a merge request to merge"
    return select_from_paged_list(candidates, title, format_merge_request_lines)


def handle_comment_flow(session: InteractiveSession, choice: InteractiveProjectChoice, mr) -> bool:
    message = prompt_comment_body(DEFAULT_COMMENT_BODY)
    if message is None:
        return False
    run_comment_workflow(session.overrides_for(choice), str(mr["iid"]), message=message)
    return True


def handle_merge_flow(session: InteractiveSession, choice: InteractiveProjectChoice, mr) -> bool:
    answers = []
    for question in (
        "Squash commits?",
        "Remove source branch after merge?",
        "Merge when pipeline succeeds?",
    ):
        answer = prompt_yes_no(question, default=False)
        if answer is None:
            return False
        answers.append(answer)

    squash, remove_source_branch, when_pipeline_succeeds = answers
    options = {}
    if squash:
        options["squash"] = True
    if remove_source_branch:
        options["should_remove_source_branch"] = True
    if when_pipeline_succeeds:
        options["merge_when_pipeline_succeeds"] = True
    run_merge_workflow(session.overrides_for(choice), str(mr["iid"]), options)
    return True


def apply_favorite_state(session: InteractiveSession):
    mark_favorite_state(session.projects, {record.key for record in session.favorites})
    session.favorite_choices = build_favorite_choice_list(
        sort_favorite_records(session.favorites), session.projects
    )


def toggle_favorite(session: InteractiveSession, choice: InteractiveProjectChoice) -> bool:
    """Add or remove `choice` from the favorites file; returns the new favorite state"""
    records, now_favorite = toggle_favorite_record(load_favorite_projects(), choice.to_favorite())
    save_favorite_projects(records)
    session.favorites = records
    apply_favorite_state(session)
    choice.is_favorite = now_favorite

    verb = "Added" if now_favorite else "Removed"
    where = "to" if now_favorite else "from"
    get_logger().info(dim(f"{verb} {choice.label} {where} favorites."))
    return now_favorite


def mark_favorite_used(session: InteractiveSession, choice: InteractiveProjectChoice):
    records = load_favorite_projects()
    if touch_favorite(records, choice.key):
        save_favorite_projects(records)
        session.favorites = records
        apply_favorite_state(session)


def refresh_profiles(session: InteractiveSession):
    session.profiles = list_profiles(load_profile_store())
    names = [summary.name for summary in session.profiles]
    if session.active_profile in names:
        return
    default = next((s.name for s in session.profiles if s.is_default), None)
    session.active_profile = default or (names[0] if names else None)


def refresh_projects(session: InteractiveSession):
    session.projects = collect_recent_projects(session.active_profile)
    if not session.projects:
        get_logger().warning(
            "No recent projects found. Configure a GitLab profile or run a command first."
        )
    apply_favorite_state(session)


def run_repository_menu(session: InteractiveSession, selection: InteractiveProjectChoice) -> bool:
    """Action loop for one repository; returns False when the user chose to exit"""
    logger = get_logger()
    while True:
        action = prompt_repo_action_menu(selection.label, selection.is_favorite)
        if action == "toggle":
            toggle_favorite(session, selection)
            continue
        if action == "back":
            return True
        if action == "cancel":
            logger.info(dim("Cancelled."))
            return False

        mr = prompt_merge_request_selection(selection, action, session.active_profile)
        if mr is None:
            logger.info(dim("No merge request selected. Returning to menu..."))
            continue

        if action == "comment":
            completed = handle_comment_flow(session, selection, mr)
        else:
            completed = handle_merge_flow(session, selection, mr)
        if not completed:
            logger.info(dim("Action cancelled. Returning to menu..."))
            continue

        profile_label = f"profile {selection.profile_name}" if selection.profile_name else "default profile"
        success(f"{bold(selection.label)} {dim(f'({selection.project_ref})')} !{mr['iid']} via {profile_label}.")
        logger.info(dim("Action completed. Choose another option or back to repositories."))


def launch_interactive_home(stdin=None, stdout=None) -> bool:
    """Run the interactive loop; returns False when no terminal or no projects are available"""
    if not (is_tty(stdin or sys.stdin) and is_tty(stdout or sys.stdout)):
        return False

    logger = get_logger()
    session = InteractiveSession(favorites=load_favorite_projects())
    refresh_profiles(session)
    refresh_projects(session)
    if not session.projects:
        return False

    hooks = SelectorHooks(
        toggle_favorite=lambda item, index: toggle_favorite(session, item),
        notify_failure=logger.warning,
    )

    while True:
        mode = prompt_repo_list_mode(len(session.favorites), session.active_profile_label)
        if mode is None:
            logger.info(dim("Cancelled."))
            return True

        if mode == "profiles":
            session.active_profile = launch_profile_manager(session.active_profile)
            refresh_profiles(session)
            refresh_projects(session)
            continue

        pool = session.favorite_choices if mode == "favorites" else session.projects
        if not pool:
            if mode == "favorites":
                logger.info(dim('No favorites yet. Choose "All repositories" to add some.'))
                continue
            logger.warning("No repositories available.")
            return True

        selection = select_from_paged_list(
            pool,
            "Select a repository",
            format_project_line,
            help_text=f"{PAGER_HELP_TEXT}  ·  {FAVORITE_HELP_TEXT}",
            hooks=hooks,
        )
        if selection is None:
            logger.info(dim("Cancelled."))
            continue

        if selection.is_favorite:
            mark_favorite_used(session, selection)

        if not run_repository_menu(session, selection):
            return True
