"""gitlab-mr command modules"""

from .mrs import ListCommand
from .comment import CommentCommand
from .merge import MergeCommand
from .review_assigned import ReviewAssignedCommand
from .profile import ProfileCommand

__all__ = [
    'ListCommand',
    'CommentCommand',
    'MergeCommand',
    'ReviewAssignedCommand',
    'ProfileCommand',
]
