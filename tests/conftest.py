"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from reposetup.adapters.mock import MockCommandAdapter
from reposetup.adapters.registry import AdapterRegistry
from reposetup.core.models.settings import Settings
from reposetup.core.services import distro


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    """An empty fake filesystem root with an etc/ directory."""
    root = tmp_path / "root"
    (root / "etc").mkdir(parents=True)
    return root


@pytest.fixture
def write_host_file(host_root: Path):
    """Write ``content`` at ``rel`` under the fake root."""

    def _write(rel: str, content: str) -> Path:
        path = host_root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def no_lsb_release(monkeypatch):
    """Pretend lsb_release is not installed."""
    monkeypatch.setattr(distro, "_command_exists", lambda name: False)


@pytest.fixture
def fake_lsb_release(monkeypatch):
    """Install a scripted lsb_release: {args tuple: stdout or None}."""

    def _install(responses: dict[tuple[str, ...], str | None]) -> list[tuple[str, ...]]:
        calls: list[tuple[str, ...]] = []

        def _run(*args: str) -> str | None:
            calls.append(args)
            return responses.get(args)

        monkeypatch.setattr(distro, "_command_exists", lambda name: name == "lsb_release")
        monkeypatch.setattr(distro, "_lsb_release", _run)
        return calls

    return _install


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def mock_registry() -> tuple[AdapterRegistry, MockCommandAdapter]:
    """A registry whose command adapter records instead of running."""
    mock = MockCommandAdapter()
    registry = AdapterRegistry()
    registry.register(mock)
    return registry, mock
