"""
Host models — who we are running on and how we reach root.

HostIdentity is produced once by the distribution resolver and passed
by value to the dispatcher. ElevationStrategy is chosen once and wraps
every privileged command for the rest of the run.
"""

from __future__ import annotations

import shlex
from enum import Enum

from pydantic import BaseModel, ConfigDict

from reposetup.core.errors import PrivilegeUnavailable


class HostIdentity(BaseModel):
    """Normalized (distro_id, version_codename) pair."""

    model_config = ConfigDict(frozen=True)

    distro_id: str = ""             # lowercase, e.g. "debian", "centos"
    version_codename: str = ""      # "bookworm", "jammy", "9", or empty

    @classmethod
    def empty(cls) -> HostIdentity:
        """The identity reported when nothing could be detected."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.distro_id

    def __str__(self) -> str:
        if self.version_codename:
            return f"{self.distro_id} {self.version_codename}"
        return self.distro_id or "<unknown>"


class ElevationStrategy(str, Enum):
    """How privileged commands are executed."""

    NONE = "none"
    SUDO = "sudo"
    SU = "su"
    UNAVAILABLE = "unavailable"

    def wrap(self, argv: list[str]) -> list[str]:
        """Return ``argv`` in its elevated form.

        ``su`` takes a single shell string, so the command is
        re-quoted with ``shlex.join``.
        """
        if self is ElevationStrategy.NONE:
            return list(argv)
        if self is ElevationStrategy.SUDO:
            return ["sudo", "-E", *argv]
        if self is ElevationStrategy.SU:
            return ["su", "-c", shlex.join(argv)]
        raise PrivilegeUnavailable(
            "No elevation method available to run: " + shlex.join(argv)
        )


class PackagingFamily(str, Enum):
    """Groups of distributions sharing a package manager."""

    DEBIAN = "debian_family"
    RPM = "rpm_family"


FAMILY_MEMBERS: dict[PackagingFamily, tuple[str, ...]] = {
    PackagingFamily.DEBIAN: ("debian", "ubuntu"),
    PackagingFamily.RPM: ("amzn", "centos", "fedora", "rhel"),
}


def family_for(distro_id: str) -> PackagingFamily | None:
    """Return the packaging family of ``distro_id``, or None if unknown."""
    for family, members in FAMILY_MEMBERS.items():
        if distro_id in members:
            return family
    return None
