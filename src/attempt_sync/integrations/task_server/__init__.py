"""Task server integration."""

from .base import ProcessFetcher
from .client import TaskServerClient

__all__ = ["ProcessFetcher", "TaskServerClient"]
