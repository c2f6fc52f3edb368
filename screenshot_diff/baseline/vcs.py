"""Version-control collaborators: read the committed content of a file."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path, PurePosixPath
from typing import Protocol

from screenshot_diff.errors import VcsError

logger = logging.getLogger(__name__)


class VersionControl(Protocol):
    def read_committed(self, path: str) -> bytes | None:
        """Committed bytes of ``path`` (relative to the repository root), or None."""
        ...


class GitRepository:
    """Reads committed files with ``git show <revision>:./<path>``.

    Any non-zero exit (untracked file, empty repository, path missing at the
    revision) means "not committed".
    """

    def __init__(self, root: str | Path = ".", revision: str = "HEAD", use_lfs: bool = False, timeout: float = 30):
        self.root = Path(root)
        self.revision = revision
        self.use_lfs = use_lfs
        self.timeout = timeout

    def read_committed(self, path: str) -> bytes | None:
        spec = f"{self.revision}:./{PurePosixPath(path)}"
        result = self._run(["git", "show", spec])
        if result.returncode != 0:
            logger.debug("No committed version of %s: %s", path,
                         result.stderr.decode(errors="replace").strip()[:200])
            return None
        data = result.stdout
        if self.use_lfs:
            smudged = self._run(["git", "lfs", "smudge"], input=data)
            if smudged.returncode != 0:
                raise VcsError(
                    f"git lfs smudge failed for {path}: "
                    f"{smudged.stderr.decode(errors='replace').strip()[:200]}"
                )
            data = smudged.stdout
        return data

    def _run(self, cmd: list[str], input: bytes | None = None) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                cmd,
                cwd=self.root,
                input=input,
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise VcsError(f"'{cmd[0]}' executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise VcsError(f"'{' '.join(cmd)}' timed out after {self.timeout}s") from e


class SubversionWorkingCopy:
    """Reads the pristine (last checked-out) copy kept by Subversion."""

    def __init__(self, root: str | Path = ".", timeout: float = 30):
        self.root = Path(root)
        self.timeout = timeout

    def read_committed(self, path: str) -> bytes | None:
        # Subversion < 1.7 keeps text-base copies beside each directory
        legacy = self.root / PurePosixPath(path).parent / ".svn" / "text-base" / f"{PurePosixPath(path).name}.svn-base"
        if legacy.exists():
            return legacy.read_bytes()

        info = self._info(path)
        if info is None:
            return None
        wc_root = _info_field(info, "Working Copy Root Path")
        checksum = _info_field(info, "Checksum")
        if not wc_root or not checksum:
            return None
        pristine = Path(wc_root) / ".svn" / "pristine" / checksum[:2] / f"{checksum}.svn-base"
        if not pristine.exists():
            logger.debug("Pristine copy missing for %s: %s", path, pristine)
            return None
        return pristine.read_bytes()

    def _info(self, path: str) -> str | None:
        try:
            result = subprocess.run(
                ["svn", "info", str(PurePosixPath(path))],
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise VcsError("'svn' executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise VcsError(f"'svn info' timed out after {self.timeout}s") from e
        if result.returncode != 0:
            return None
        return result.stdout


def _info_field(info: str, field: str) -> str | None:
    match = re.search(rf"^{re.escape(field)}: (.*)$", info, re.MULTILINE)
    return match.group(1).strip() if match else None


def detect_vcs(root: str | Path = ".", use_lfs: bool = False) -> VersionControl:
    """Subversion if ``root`` is inside an svn working copy, Git otherwise."""
    root = Path(root).resolve()
    for directory in (root, *root.parents):
        if (directory / ".svn").is_dir():
            logger.debug("Using Subversion working copy at %s", directory)
            return SubversionWorkingCopy(root)
        if (directory / ".git").exists():
            break
    return GitRepository(root, use_lfs=use_lfs)


def make_vcs(kind: str, root: str | Path = ".", use_lfs: bool = False) -> VersionControl:
    if kind == "git":
        return GitRepository(root, use_lfs=use_lfs)
    if kind == "svn":
        return SubversionWorkingCopy(root)
    if kind == "auto":
        return detect_vcs(root, use_lfs=use_lfs)
    raise ValueError(f"Unknown version control system: {kind}")
