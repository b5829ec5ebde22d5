"""
Error taxonomy for a provisioning run.

Subprocess failures are not exceptions: they travel in Receipts and
stop the plan. Everything here is a condition detected before or
around command execution.
"""

from __future__ import annotations


class ReposetupError(Exception):
    """Base class for all reposetup errors."""


class DetectionError(ReposetupError):
    """No readable OS-release source and no lsb_release fallback."""


class PrivilegeUnavailable(ReposetupError):
    """Not root, and neither sudo nor su is available."""


class UnsupportedDistribution(ReposetupError):
    """The detected distribution belongs to no known packaging family."""

    def __init__(self, distro_id: str):
        self.distro_id = distro_id
        super().__init__(f"Unsupported distribution '{distro_id}'")


class ConfigError(ReposetupError):
    """Raised when the settings file or environment overrides are invalid."""
