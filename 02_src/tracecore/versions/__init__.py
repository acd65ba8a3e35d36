"""Version history module."""

from .diff import build_patch, generate_diff
from .store import IVersionStore, VersionStore

__all__ = ["IVersionStore", "VersionStore", "build_patch", "generate_diff"]
