"""
Elevation strategy selector.

Root runs commands directly. Anyone else needs ``sudo`` (preferred)
or ``su``; with neither, the run cannot proceed.
"""

from __future__ import annotations

import logging
import os
import pwd
import shutil

from reposetup.core.errors import PrivilegeUnavailable
from reposetup.core.models.host import ElevationStrategy

logger = logging.getLogger(__name__)

ROOT_USER = "root"


def _command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def current_user() -> str:
    """Name of the effective user."""
    try:
        return pwd.getpwuid(os.geteuid()).pw_name
    except KeyError:
        return os.environ.get("USER", "")


def select(user: str | None = None) -> ElevationStrategy:
    """Choose how privileged commands will be run.

    Args:
        user: User name to decide for (default: the effective user).

    Raises:
        PrivilegeUnavailable: Not root and neither sudo nor su exists.
    """
    if user is None:
        user = current_user()

    if user == ROOT_USER:
        strategy = ElevationStrategy.NONE
    elif _command_exists("sudo"):
        strategy = ElevationStrategy.SUDO
    elif _command_exists("su"):
        strategy = ElevationStrategy.SU
    else:
        raise PrivilegeUnavailable(
            "Error: this installer needs the ability to run commands as root.\n"
            'We are unable to find either "sudo" or "su" available to make this happen.'
        )

    logger.debug("Elevation for user %r: %s", user, strategy.value)
    return strategy
