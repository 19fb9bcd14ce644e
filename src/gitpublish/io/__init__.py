"""Input/output helpers for gitpublish."""

from .config import load_config
from .logging import StructuredLogger

__all__ = ["StructuredLogger", "load_config"]
