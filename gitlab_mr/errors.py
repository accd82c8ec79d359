# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Error types and the top-level error reporter"""

from gitlab.exceptions import GitlabError

from .logging_utils import get_logger


class ConfigurationError(ValueError):
    """A profile value (token, project reference, name) could not be resolved"""


class ValidationError(ValueError):
    """User input rejected before any request is sent"""


class CommentVerificationError(RuntimeError):
    """A posted note could not be found again with the expected body"""


def describe_gitlab_error(error: GitlabError) -> str:
    body = error.response_body
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    parts = [
        error.error_message,
        f"status: {error.response_code}" if error.response_code else None,
        body if body and body != error.error_message else None,
    ]
    details = " | ".join(str(part) for part in parts if part)
    return details or "GitLab request failed"


def describe_error(error: BaseException) -> str:
    if isinstance(error, GitlabError):
        return describe_gitlab_error(error)
    return str(error) or "Unknown error occurred"


def handle_cli_error(error: BaseException) -> int:
    """Log an uncaught error and return the process exit status"""
    logger = get_logger()
    if isinstance(error, KeyboardInterrupt):
        logger.info("Interrupted by user")
        return 130
    logger.error(describe_error(error))
    return 1
