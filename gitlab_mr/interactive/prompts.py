# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""questionary prompts that can be cancelled with Escape"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import questionary
from prompt_toolkit.key_binding import KeyBindings, merge_key_bindings

_CANCELLED = object()


@dataclass
class PromptResult:
    cancelled: bool
    value: Any = None


def _bind_escape(question: questionary.Question):
    bindings = KeyBindings()

    @bindings.add("escape", eager=True)
    def _cancel(event):
        event.app.exit(result=_CANCELLED)

    app = question.application
    app.key_bindings = merge_key_bindings(
        [kb for kb in (app.key_bindings, bindings) if kb is not None]
    )


def run_prompt_with_esc(question: questionary.Question) -> PromptResult:
    """Ask `question`; Escape yields a cancelled result, Ctrl-C propagates"""
    _bind_escape(question)
    value = question.unsafe_ask()
    if value is _CANCELLED:
        return PromptResult(cancelled=True)
    return PromptResult(cancelled=False, value=value)


def prompt_select(
    message: str, choices: Sequence[Tuple[str, Any]], default: Any = None, **kwargs
) -> PromptResult:
    question = questionary.select(
        message,
        choices=[questionary.Choice(title, value=value) for title, value in choices],
        default=default,
        **kwargs,
    )
    return run_prompt_with_esc(question)


def prompt_yes_no(message: str, default: bool = False, **kwargs) -> Optional[bool]:
    result = run_prompt_with_esc(questionary.confirm(message, default=default, **kwargs))
    if result.cancelled:
        return None
    return bool(result.value)


def prompt_text(
    message: str, default: str = "", required: bool = False, **kwargs
) -> Optional[str]:
    def validate(value: str):
        if required and not value.strip():
            return "This field is required."
        return True

    result = run_prompt_with_esc(
        questionary.text(message, default=default, validate=validate, **kwargs)
    )
    if result.cancelled:
        return None
    return (result.value or "").strip()


def prompt_comment_body(default_message: str) -> Optional[str]:
    text = prompt_text(f"Comment message (default: {default_message})", default=default_message)
    if text is None:
        return None
    return text or default_message


def prompt_repo_list_mode(
    favorite_count: int, active_profile_label: Optional[str] = None
) -> Optional[str]:
    profile_info = f" (profile: {active_profile_label})" if active_profile_label else ""
    favorites_label = (
        f"★ Favorite repositories ({favorite_count})"
        if favorite_count
        else "★ Favorite repositories (empty)"
    )
    choices: List[Tuple[str, str]] = [
        (f"All repositories{profile_info}", "all"),
        (favorites_label, "favorites"),
        ("👥 Manage profiles", "profiles"),
        ("Cancel", "cancel"),
    ]
    result = prompt_select(
        "Choose repository list", choices, default="favorites" if favorite_count else "all"
    )
    if result.cancelled or result.value == "cancel":
        return None
    return result.value


def prompt_repo_action_menu(label: str, is_favorite: bool) -> str:
    toggle_label = "★ Remove from favorites" if is_favorite else "☆ Add to favorites"
    result = prompt_select(
        f"What do you want to do with {label}?",
        [
            ("📝 Comment on merge request", "comment"),
            ("🚀 Merge merge request", "merge"),
            (toggle_label, "toggle"),
            ("↩ Back to repository list", "back"),
            ("✖ Exit", "cancel"),
        ],
        default="comment",
    )
    if result.cancelled:
        return "back"
    return result.value
