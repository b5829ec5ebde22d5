"""
Distribution resolver — turn the host's release metadata into a
normalized (distro_id, version_codename) pair.

Sources, in order:
    /etc/os-release (or /usr/lib/os-release)   → ID, VERSION_ID
    /etc/debian_version                        → Debian codename via numeral table
    lsb_release --codename / /etc/lsb-release  → Ubuntu codename
    lsb_release -a -u                          → upstream of a derivative

All paths are resolved under ``root`` so tests can point the resolver
at a fake filesystem.
"""

from __future__ import annotations

import ast
import logging
import re
import shutil
import subprocess
from pathlib import Path

from reposetup.core.errors import DetectionError
from reposetup.core.models.host import HostIdentity

logger = logging.getLogger(__name__)

OS_RELEASE_PATHS = ("etc/os-release", "usr/lib/os-release")
DEBIAN_VERSION_PATH = "etc/debian_version"
LSB_RELEASE_PATH = "etc/lsb-release"

DEBIAN_CODENAMES: dict[str, str] = {
    "13": "trixie",
    "12": "bookworm",
    "11": "bullseye",
    "10": "buster",
    "9": "stretch",
    "8": "jessie",
}

_ASSIGNMENT = re.compile(r"([A-Za-z_][A-Za-z_0-9]*)=(.*)")


# ── Release-file parsing ────────────────────────────────────────


def parse_release_file(text: str, source: str = "<string>") -> dict[str, str]:
    """Parse shell-style ``KEY=value`` lines.

    Quoted values are unquoted, comments and blank lines are skipped,
    malformed lines are logged and ignored.
    """
    values: dict[str, str] = {}
    for line_number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        m = _ASSIGNMENT.match(line)
        if not m:
            logger.debug("%s:%d: bad line %r", source, line_number, line)
            continue
        key, val = m.groups()
        if val and val[0] in "\"'":
            try:
                val = ast.literal_eval(val)
            except (SyntaxError, ValueError):
                val = val.strip("\"'")
        values[key] = str(val)
    return values


def read_os_release(root: Path) -> dict[str, str]:
    """Read the first readable os-release file under ``root``.

    Raises:
        DetectionError: If neither /etc/os-release nor
            /usr/lib/os-release can be read.
    """
    for rel in OS_RELEASE_PATHS:
        path = root / rel
        try:
            text = path.read_text(encoding="utf-8")
        except OSError:
            continue
        logger.debug("Read release metadata from %s", path)
        return parse_release_file(text, str(path))
    raise DetectionError(f"No readable os-release file under {root}")


def _read_first_line(path: Path) -> str:
    try:
        with open(path, encoding="utf-8") as f:
            return f.readline().strip()
    except OSError:
        return ""


def debian_codename(root: Path) -> str:
    """Codename for the numeral in /etc/debian_version.

    ``"11.0"`` → ``"bullseye"``; ``"bookworm/sid"`` → ``"bookworm"``;
    an unmapped numeral is returned as is; a missing file gives ``""``.
    """
    raw = _read_first_line(root / DEBIAN_VERSION_PATH)
    numeral = raw.split("/", 1)[0].split(".", 1)[0].strip()
    return DEBIAN_CODENAMES.get(numeral, numeral)


# ── lsb_release queries ─────────────────────────────────────────


def _command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def _lsb_release(*args: str) -> str | None:
    """Run ``lsb_release`` and return its stdout, or None on failure."""
    try:
        result = subprocess.run(
            ["lsb_release", *args],
            capture_output=True,
            text=True,
        )
    except OSError:
        return None
    if result.returncode != 0:
        logger.debug("lsb_release %s exited %d", " ".join(args), result.returncode)
        return None
    return result.stdout


def _lsb_fields(output: str) -> dict[str, str]:
    """``Distributor ID:\\tUbuntu`` lines → {"distributor id": "ubuntu"}."""
    fields: dict[str, str] = {}
    for line in output.lower().splitlines():
        if ":" not in line:
            continue
        key, _, value = line.partition(":")
        fields[key.strip()] = "".join(value.split())
    return fields


def ubuntu_codename(root: Path) -> str:
    """Codename from ``lsb_release``, else DISTRIB_CODENAME in /etc/lsb-release."""
    codename = ""
    if _command_exists("lsb_release"):
        codename = (_lsb_release("--codename", "--short") or "").strip()
    if not codename:
        try:
            text = (root / LSB_RELEASE_PATH).read_text(encoding="utf-8")
        except OSError:
            text = ""
        codename = parse_release_file(text, LSB_RELEASE_PATH).get("DISTRIB_CODENAME", "")
    return codename


# ── Resolution ──────────────────────────────────────────────────


def _primary_codename(distro_id: str, os_release: dict[str, str], root: Path) -> str:
    if distro_id == "debian":
        return debian_codename(root)
    if distro_id == "ubuntu":
        return ubuntu_codename(root)
    return os_release.get("VERSION_ID", "")


def check_forked(distro_id: str, codename: str, root: Path) -> tuple[str, str]:
    """Re-derive the identity of a derivative distribution from its upstream.

    Only runs when ``lsb_release`` exists. Upstream values win whenever
    ``lsb_release -a -u`` succeeds. Otherwise a readable
    /etc/debian_version turns any id other than ubuntu into
    debian.
    """
    if not _command_exists("lsb_release"):
        return distro_id, codename

    upstream = _lsb_release("-a", "-u")
    if upstream is not None:
        fields = _lsb_fields(upstream)
        forked_id = fields.get("distributor id", "")
        forked_codename = fields.get("codename", "")
        if (forked_id, forked_codename) != (distro_id, codename):
            logger.info(
                "Derivative of %s %s detected (was %s %s)",
                forked_id, forked_codename, distro_id, codename,
            )
        return forked_id, forked_codename

    debian_version = root / DEBIAN_VERSION_PATH
    if debian_version.is_file() and distro_id != "ubuntu":
        forced = debian_codename(root)
        if distro_id != "debian":
            logger.info("Treating %s as a Debian derivative (%s)", distro_id, forced)
        return "debian", forced

    return distro_id, codename


def resolve(root: Path | str = "/", *, strict: bool = False) -> HostIdentity:
    """Detect the host distribution.

    Args:
        root: Filesystem root to read release files from.
        strict: Raise instead of returning an empty identity when
            nothing can be detected.

    Returns:
        HostIdentity; empty when detection failed and ``strict`` is off.

    Raises:
        DetectionError: Only with ``strict=True``.
    """
    root = Path(root)

    try:
        os_release = read_os_release(root)
    except DetectionError as e:
        logger.debug("%s", e)
        os_release = {}

    distro_id = os_release.get("ID", "")
    if not distro_id and _command_exists("lsb_release"):
        distro_id = (_lsb_release("-is") or "").strip()

    if not distro_id:
        if strict:
            raise DetectionError(
                "Cannot detect the distribution: no os-release file and no lsb_release"
            )
        logger.warning("Could not detect the host distribution")
        return HostIdentity.empty()

    distro_id = distro_id.lower()
    codename = _primary_codename(distro_id, os_release, root)
    distro_id, codename = check_forked(distro_id, codename, root)

    identity = HostIdentity(distro_id=distro_id, version_codename=codename)
    logger.info("Detected distribution: %s", identity)
    return identity
