"""Stage implementations for the publish pipeline."""

from .commit import commit_changes
from .copy import copy_contents
from .push import push_changes, should_push
from .reset import find_existing_repo, fresh_repo, remove_unpreserved, reset_repo

__all__ = [
    "commit_changes",
    "copy_contents",
    "find_existing_repo",
    "fresh_repo",
    "push_changes",
    "remove_unpreserved",
    "reset_repo",
    "should_push",
]
