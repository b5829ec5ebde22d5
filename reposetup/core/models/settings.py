"""
Settings model — everything a run can be configured with.

Built by the config loader from defaults, an optional YAML file, and
environment overrides (in that order of increasing precedence).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_DOWNLOAD_URL = "https://download.docker.com"

# The vendor publishes its signing key and .repo files next to the
# packages, so both hosts start out equal. They are overridden separately.
DEFAULT_SETUP_URL = "https://download.docker.com"

DEFAULT_PRODUCT_PACKAGES = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-compose-plugin",
]


class Settings(BaseModel):
    """Resolved run configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    download_url: str = DEFAULT_DOWNLOAD_URL   # package repository root
    setup_url: str = DEFAULT_SETUP_URL         # signing key / .repo host
    channel: str = "stable"
    repo_name: str = "docker"
    repo_file: str = "docker-ce.repo"
    product_packages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PRODUCT_PACKAGES),
    )

    dry_run: bool = False

    log_level: str = "INFO"
    log_file: str | None = None
    log_file_level: str | None = None

    @field_validator("download_url", "setup_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("channel", "repo_name", "repo_file")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @property
    def apt_key_path(self) -> str:
        """Where the ASCII-armored signing key is stored on apt hosts."""
        return f"/etc/apt/keyrings/{self.repo_name}.asc"

    @property
    def apt_source_path(self) -> str:
        """Where the apt repository definition is written."""
        return f"/etc/apt/sources.list.d/{self.repo_name}.list"

    def key_url(self, distro_id: str) -> str:
        return f"{self.setup_url}/linux/{distro_id}/gpg"

    def repo_file_url(self, distro_id: str) -> str:
        return f"{self.setup_url}/linux/{distro_id}/{self.repo_file}"

    def repository_root(self, distro_id: str) -> str:
        return f"{self.download_url}/linux/{distro_id}"
