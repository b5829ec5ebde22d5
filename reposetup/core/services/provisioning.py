"""
Provisioning dispatcher — build and run the repository setup plan.

Two fixed procedures, chosen by packaging family:

    debian_family (debian, ubuntu)
        prerequisites → signing key → sources.list.d entry → apt-get update
        → [install products]

    rpm_family (amzn, centos, fedora, rhel)
        config-manager plugin → add .repo → makecache → [install products]

Every command goes through the elevation strategy. Execution stops at
the first failed step and nothing is rolled back.
"""

from __future__ import annotations

import logging
import platform
import shutil
import subprocess
from dataclasses import dataclass

from reposetup.adapters.registry import AdapterRegistry, default_registry
from reposetup.core.engine.executor import (
    ExecutionPlan,
    ExecutionReport,
    execute_plan,
    generate_operation_id,
)
from reposetup.core.errors import UnsupportedDistribution
from reposetup.core.models.host import (
    ElevationStrategy,
    HostIdentity,
    PackagingFamily,
    family_for,
)
from reposetup.core.models.settings import Settings

logger = logging.getLogger(__name__)

APT_KEYRINGS_DIR = "/etc/apt/keyrings"
APT_PREREQUISITES = ["ca-certificates", "curl"]

_ARCH_MAP = {"x86_64": "amd64", "aarch64": "arm64", "armv7l": "armhf"}


def _command_exists(name: str) -> bool:
    return shutil.which(name) is not None


# ── Debian family ───────────────────────────────────────────────


def apt_architecture() -> str:
    """Debian architecture name of this host (``amd64``, ``arm64``...)."""
    try:
        result = subprocess.run(
            ["dpkg", "--print-architecture"],
            capture_output=True,
            text=True,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except OSError:
        pass
    machine = platform.machine().lower()
    return _ARCH_MAP.get(machine, machine)


def apt_source_line(identity: HostIdentity, settings: Settings, arch: str) -> str:
    """The one-line deb entry for the vendor repository."""
    return (
        f"deb [arch={arch} signed-by={settings.apt_key_path}] "
        f"{settings.repository_root(identity.distro_id)} "
        f"{identity.version_codename} {settings.channel}"
    )


def build_debian_plan(
    identity: HostIdentity,
    elevation: ElevationStrategy,
    settings: Settings,
    install: bool = False,
    arch: str | None = None,
) -> ExecutionPlan:
    """Plan the apt repository setup for debian/ubuntu."""
    if arch is None:
        arch = apt_architecture()

    plan = ExecutionPlan(
        operation_id=generate_operation_id(),
        procedure=PackagingFamily.DEBIAN.value,
        install=install,
    )
    key_path = settings.apt_key_path
    source_line = apt_source_line(identity, settings, arch)

    plan.add("apt-update", ["apt-get", "update", "-qq"], elevation=elevation)
    plan.add(
        "apt-install-prerequisites",
        ["apt-get", "install", "-y", "-qq", *APT_PREREQUISITES],
        elevation=elevation,
    )
    plan.add(
        "create-keyrings-dir",
        ["install", "-m", "0755", "-d", APT_KEYRINGS_DIR],
        elevation=elevation,
    )
    plan.add(
        "fetch-signing-key",
        ["curl", "-fsSL", settings.key_url(identity.distro_id), "-o", key_path],
        elevation=elevation,
    )
    plan.add("chmod-signing-key", ["chmod", "a+r", key_path], elevation=elevation)
    plan.add(
        "write-apt-source",
        ["tee", settings.apt_source_path],
        elevation=elevation,
        input=source_line + "\n",
    )
    plan.add("apt-update-repository", ["apt-get", "update", "-qq"], elevation=elevation)

    if install:
        plan.add(
            "install-packages",
            ["apt-get", "install", "-y", "-qq", *settings.product_packages],
            elevation=elevation,
        )

    return plan


# ── RPM family ──────────────────────────────────────────────────


@dataclass(frozen=True)
class RpmTooling:
    """Package manager and repository-registration commands of an rpm host."""

    manager: str
    flags: tuple[str, ...]
    config_manager: tuple[str, ...]
    prerequisites: tuple[str, ...]

    def add_repo_args(self, url: str) -> list[str]:
        if self.manager == "dnf5":
            return ["addrepo", "--overwrite", f"--from-repofile={url}"]
        return ["--add-repo", url]


DNF5 = RpmTooling(
    manager="dnf5",
    flags=("--best",),
    config_manager=("dnf5", "config-manager"),
    prerequisites=("dnf-plugins-core",),
)
DNF = RpmTooling(
    manager="dnf",
    flags=("--best",),
    config_manager=("dnf", "config-manager"),
    prerequisites=("dnf-plugins-core",),
)
YUM = RpmTooling(
    manager="yum",
    flags=(),
    config_manager=("yum-config-manager",),
    prerequisites=("yum-utils",),
)


def select_rpm_tooling() -> RpmTooling:
    """dnf if present, else dnf5 (hosts shipping only dnf5), else yum."""
    if _command_exists("dnf"):
        return DNF
    if _command_exists("dnf5"):
        return DNF5
    return YUM


def build_rpm_plan(
    identity: HostIdentity,
    elevation: ElevationStrategy,
    settings: Settings,
    install: bool = False,
    tooling: RpmTooling | None = None,
) -> ExecutionPlan:
    """Plan the dnf/yum repository setup for amzn/centos/fedora/rhel."""
    if tooling is None:
        tooling = select_rpm_tooling()
    logger.debug("Using package manager %s", tooling.manager)

    plan = ExecutionPlan(
        operation_id=generate_operation_id(),
        procedure=PackagingFamily.RPM.value,
        install=install,
    )
    pm, flags = tooling.manager, list(tooling.flags)

    plan.add(
        "rpm-install-prerequisites",
        [pm, *flags, "install", "-y", "-q", *tooling.prerequisites],
        elevation=elevation,
    )
    plan.add(
        "add-repository",
        [
            *tooling.config_manager,
            *tooling.add_repo_args(settings.repo_file_url(identity.distro_id)),
        ],
        elevation=elevation,
    )
    plan.add("makecache", [pm, "makecache"], elevation=elevation)

    if install:
        plan.add(
            "install-packages",
            [pm, *flags, "install", "-y", "-q", *settings.product_packages],
            elevation=elevation,
        )

    return plan


# ── Dispatch ────────────────────────────────────────────────────


def build_plan(
    identity: HostIdentity,
    elevation: ElevationStrategy,
    settings: Settings,
    install: bool = False,
) -> ExecutionPlan:
    """Pick the procedure for ``identity``'s packaging family.

    Raises:
        UnsupportedDistribution: The distro belongs to neither family.
    """
    family = family_for(identity.distro_id)
    if family is PackagingFamily.DEBIAN:
        return build_debian_plan(identity, elevation, settings, install=install)
    if family is PackagingFamily.RPM:
        return build_rpm_plan(identity, elevation, settings, install=install)
    raise UnsupportedDistribution(identity.distro_id)


def dispatch(
    identity: HostIdentity,
    elevation: ElevationStrategy,
    settings: Settings,
    install: bool = False,
    registry: AdapterRegistry | None = None,
) -> ExecutionReport:
    """Build the plan for ``identity`` and run it fail-fast.

    Returns:
        ExecutionReport; ``report.exit_code`` is the process status.

    Raises:
        UnsupportedDistribution: Before any command runs.
    """
    plan = build_plan(identity, elevation, settings, install=install)
    if registry is None:
        registry = default_registry()

    logger.info(
        "Running %s setup for %s (%d steps%s)",
        plan.procedure,
        identity,
        plan.total_actions,
        ", dry run" if settings.dry_run else "",
    )
    logger.debug("Steps: %s", ", ".join(plan.action_ids()))
    return execute_plan(plan, registry, dry_run=settings.dry_run)
