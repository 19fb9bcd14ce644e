"""Git related helpers for gitpublish."""

from gitpublish.git.facade import GitCommandError, GitFacade, GitTimeoutError, RepositoryClosedError
from gitpublish.git.uri import RemoteLocation, same_remote

__all__ = [
    "GitCommandError",
    "GitFacade",
    "GitTimeoutError",
    "RemoteLocation",
    "RepositoryClosedError",
    "same_remote",
]
