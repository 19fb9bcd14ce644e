"""Exceptions raised by the publish pipeline."""

from __future__ import annotations


class PublishError(RuntimeError):
    """Base class for publish pipeline failures."""


class ConfigurationError(PublishError):
    """Raised when the configured mirror or content cannot be used."""


class PublishStateError(PublishError):
    """Raised when a stage runs before the repository handle is available."""


__all__ = ["ConfigurationError", "PublishError", "PublishStateError"]
