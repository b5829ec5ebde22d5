"""
Tests for the provisioning dispatcher — plan shapes per packaging
family, rpm tooling selection, and fail-fast dispatch.
"""

import pytest

from reposetup.core.errors import UnsupportedDistribution
from reposetup.core.models.host import ElevationStrategy, HostIdentity
from reposetup.core.models.settings import Settings
from reposetup.core.services import provisioning
from reposetup.core.services.provisioning import (
    DNF,
    DNF5,
    YUM,
    apt_source_line,
    build_debian_plan,
    build_plan,
    build_rpm_plan,
    dispatch,
    select_rpm_tooling,
)

DEBIAN = HostIdentity(distro_id="debian", version_codename="bookworm")
UBUNTU = HostIdentity(distro_id="ubuntu", version_codename="jammy")
CENTOS = HostIdentity(distro_id="centos", version_codename="9")


def _argv(plan, action_id):
    return next(a.params["argv"] for a in plan.actions if a.id == action_id)


# ── Debian family ────────────────────────────────────────────────────


class TestDebianPlan:
    def test_steps_without_install(self, settings):
        plan = build_debian_plan(DEBIAN, ElevationStrategy.NONE, settings, arch="amd64")
        assert plan.action_ids() == [
            "apt-update",
            "apt-install-prerequisites",
            "create-keyrings-dir",
            "fetch-signing-key",
            "chmod-signing-key",
            "write-apt-source",
            "apt-update-repository",
        ]
        assert plan.procedure == "debian_family"

    def test_install_appends_products(self, settings):
        plan = build_debian_plan(DEBIAN, ElevationStrategy.NONE, settings, install=True, arch="amd64")
        assert plan.action_ids()[-1] == "install-packages"
        assert _argv(plan, "install-packages") == [
            "apt-get", "install", "-y", "-qq",
            "docker-ce", "docker-ce-cli", "containerd.io", "docker-compose-plugin",
        ]

    def test_source_line(self, settings):
        line = apt_source_line(UBUNTU, settings, "arm64")
        assert line == (
            "deb [arch=arm64 signed-by=/etc/apt/keyrings/docker.asc] "
            "https://download.docker.com/linux/ubuntu jammy stable"
        )

    def test_source_written_through_tee(self, settings):
        plan = build_debian_plan(UBUNTU, ElevationStrategy.SUDO, settings, arch="amd64")
        action = next(a for a in plan.actions if a.id == "write-apt-source")
        assert action.params["argv"] == ["tee", "/etc/apt/sources.list.d/docker.list"]
        assert action.params["input"].startswith("deb [arch=amd64 ")
        assert action.params["input"].endswith(" jammy stable\n")

    def test_overridden_urls(self):
        settings = Settings(
            download_url="https://mirror.example.org/",
            setup_url="https://keys.example.org",
        )
        plan = build_debian_plan(DEBIAN, ElevationStrategy.NONE, settings, arch="amd64")
        assert _argv(plan, "fetch-signing-key") == [
            "curl", "-fsSL", "https://keys.example.org/linux/debian/gpg",
            "-o", "/etc/apt/keyrings/docker.asc",
        ]
        source = next(a for a in plan.actions if a.id == "write-apt-source")
        assert "https://mirror.example.org/linux/debian bookworm" in source.params["input"]

    def test_every_step_carries_elevation(self, settings):
        plan = build_debian_plan(DEBIAN, ElevationStrategy.SU, settings, arch="amd64")
        assert {a.params["elevation"] for a in plan.actions} == {ElevationStrategy.SU}

    def test_architecture_fallback(self, monkeypatch):
        def _no_dpkg(*args, **kwargs):
            raise FileNotFoundError("dpkg")

        monkeypatch.setattr(provisioning.subprocess, "run", _no_dpkg)
        monkeypatch.setattr(provisioning.platform, "machine", lambda: "aarch64")
        assert provisioning.apt_architecture() == "arm64"


# ── RPM family ───────────────────────────────────────────────────────


class TestRpmTooling:
    def test_dnf_present(self, monkeypatch):
        monkeypatch.setattr(provisioning, "_command_exists", lambda name: name == "dnf")
        tooling = select_rpm_tooling()
        assert tooling is DNF
        assert tooling.manager == "dnf"
        assert tooling.flags == ("--best",)
        assert tooling.config_manager == ("dnf", "config-manager")

    def test_dnf_absent(self, monkeypatch):
        monkeypatch.setattr(provisioning, "_command_exists", lambda name: False)
        tooling = select_rpm_tooling()
        assert tooling is YUM
        assert tooling.manager == "yum"
        assert tooling.flags == ()
        assert tooling.config_manager == ("yum-config-manager",)

    def test_dnf_wins_over_dnf5(self, monkeypatch):
        monkeypatch.setattr(provisioning, "_command_exists", lambda name: name in ("dnf", "dnf5"))
        tooling = select_rpm_tooling()
        assert tooling is DNF
        assert tooling.config_manager == ("dnf", "config-manager")

    def test_dnf5_only(self, monkeypatch):
        monkeypatch.setattr(provisioning, "_command_exists", lambda name: name == "dnf5")
        assert select_rpm_tooling() is DNF5


class TestRpmPlan:
    def test_dnf_plan(self, settings):
        plan = build_rpm_plan(CENTOS, ElevationStrategy.NONE, settings, install=True, tooling=DNF)
        assert plan.procedure == "rpm_family"
        assert [a.params["argv"] for a in plan.actions] == [
            ["dnf", "--best", "install", "-y", "-q", "dnf-plugins-core"],
            ["dnf", "config-manager", "--add-repo",
             "https://download.docker.com/linux/centos/docker-ce.repo"],
            ["dnf", "makecache"],
            ["dnf", "--best", "install", "-y", "-q",
             "docker-ce", "docker-ce-cli", "containerd.io", "docker-compose-plugin"],
        ]

    def test_yum_plan_without_install(self, settings):
        plan = build_rpm_plan(CENTOS, ElevationStrategy.NONE, settings, tooling=YUM)
        assert [a.params["argv"] for a in plan.actions] == [
            ["yum", "install", "-y", "-q", "yum-utils"],
            ["yum-config-manager", "--add-repo",
             "https://download.docker.com/linux/centos/docker-ce.repo"],
            ["yum", "makecache"],
        ]

    def test_dnf5_addrepo(self, settings):
        plan = build_rpm_plan(
            HostIdentity(distro_id="fedora", version_codename="41"),
            ElevationStrategy.NONE,
            settings,
            tooling=DNF5,
        )
        assert _argv(plan, "add-repository") == [
            "dnf5", "config-manager", "addrepo", "--overwrite",
            "--from-repofile=https://download.docker.com/linux/fedora/docker-ce.repo",
        ]


# ── Dispatch ─────────────────────────────────────────────────────────


class TestBuildPlan:
    @pytest.mark.parametrize("distro_id", ["debian", "ubuntu"])
    def test_debian_family(self, monkeypatch, settings, distro_id):
        monkeypatch.setattr(provisioning, "apt_architecture", lambda: "amd64")
        plan = build_plan(HostIdentity(distro_id=distro_id), ElevationStrategy.NONE, settings)
        assert plan.procedure == "debian_family"

    @pytest.mark.parametrize("distro_id", ["amzn", "centos", "fedora", "rhel"])
    def test_rpm_family(self, monkeypatch, settings, distro_id):
        monkeypatch.setattr(provisioning, "_command_exists", lambda name: False)
        plan = build_plan(HostIdentity(distro_id=distro_id), ElevationStrategy.NONE, settings)
        assert plan.procedure == "rpm_family"

    @pytest.mark.parametrize("distro_id", ["arch", "alpine", "sles", ""])
    def test_unsupported(self, settings, distro_id):
        with pytest.raises(UnsupportedDistribution):
            build_plan(HostIdentity(distro_id=distro_id), ElevationStrategy.NONE, settings)


class TestDispatch:
    def test_runs_every_step(self, monkeypatch, settings, mock_registry):
        monkeypatch.setattr(provisioning, "_command_exists", lambda name: name == "dnf")
        registry, mock = mock_registry
        report = dispatch(CENTOS, ElevationStrategy.NONE, settings, install=True, registry=registry)
        assert report.all_ok
        assert report.exit_code == 0
        assert mock.executed_ids == [
            "rpm-install-prerequisites", "add-repository", "makecache", "install-packages",
        ]

    def test_centos_with_dnf_and_dnf5_uses_dnf(self, monkeypatch, settings, mock_registry):
        monkeypatch.setattr(provisioning, "_command_exists", lambda name: name in ("dnf", "dnf5"))
        registry, mock = mock_registry
        dispatch(CENTOS, ElevationStrategy.SUDO, settings, registry=registry)
        assert mock.commands == [
            "sudo -E dnf --best install -y -q dnf-plugins-core",
            "sudo -E dnf config-manager --add-repo "
            "https://download.docker.com/linux/centos/docker-ce.repo",
            "sudo -E dnf makecache",
        ]

    def test_stops_at_first_failure(self, monkeypatch, settings, mock_registry):
        monkeypatch.setattr(provisioning, "apt_architecture", lambda: "amd64")
        registry, mock = mock_registry
        mock.fail("write-apt-source", stderr="tee: Permission denied")
        report = dispatch(DEBIAN, ElevationStrategy.NONE, settings, install=True, registry=registry)
        assert report.status == "partial"
        assert report.exit_code == 1
        assert mock.executed_ids[-1] == "write-apt-source"
        assert "apt-update-repository" not in mock.executed_ids
        assert report.not_run == 2

    def test_failing_command_exit_code_propagates(self, monkeypatch, settings, mock_registry):
        monkeypatch.setattr(provisioning, "apt_architecture", lambda: "amd64")
        registry, mock = mock_registry
        mock.fail("apt-update", return_code=100)
        report = dispatch(DEBIAN, ElevationStrategy.NONE, settings, registry=registry)
        assert report.exit_code == 100
        assert report.status == "failed"

    def test_unsupported_runs_nothing(self, settings, mock_registry):
        registry, mock = mock_registry
        with pytest.raises(UnsupportedDistribution):
            dispatch(HostIdentity.empty(), ElevationStrategy.NONE, settings, registry=registry)
        assert mock.call_count == 0

    def test_dry_run_executes_nothing(self, monkeypatch, mock_registry):
        monkeypatch.setattr(provisioning, "apt_architecture", lambda: "amd64")
        registry, mock = mock_registry
        report = dispatch(
            UBUNTU, ElevationStrategy.SUDO, Settings(dry_run=True), registry=registry,
        )
        assert mock.call_count == 0
        assert report.skipped == report.planned == 7
        assert report.exit_code == 0
