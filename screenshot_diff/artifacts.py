"""Artifact store: deterministic file locations for every screenshot identity."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path, PurePosixPath

from screenshot_diff.imaging.buffer import ImageBuffer
from screenshot_diff.models.config import DiffConfig
from screenshot_diff.models.identity import Identity, IdentityBuilder

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Owns ``<area>/<group-path>/<label>.png`` and its sibling files.

    Captures sit at ``<label>.png``, diff images at ``<label>.diff.png`` and
    leftovers of an unstable capture at ``<label>_xNN.png~``.
    """

    def __init__(self, repository_root: str | Path, screenshot_area: str):
        self.repository_root = Path(repository_root)
        self.screenshot_area = screenshot_area
        self.area_dir = self.repository_root / screenshot_area

    @classmethod
    def from_config(cls, config: DiffConfig) -> "ArtifactStore":
        return cls(config.repository_root, config.screenshot_area)

    def _dir(self, identity: Identity) -> Path:
        return self.area_dir.joinpath(*identity.group_parts)

    def capture_path(self, identity: Identity) -> Path:
        return self._dir(identity) / f"{identity.file_label}.png"

    def diff_path(self, identity: Identity) -> Path:
        return self._dir(identity) / f"{identity.file_label}.diff.png"

    def stabilization_path(self, identity: Identity, index: int) -> Path:
        return self._dir(identity) / f"{identity.file_label}_x{index:02d}.png~"

    def repository_path(self, identity: Identity) -> str:
        """Capture path relative to the repository root, as the VCS knows it."""
        return str(PurePosixPath(self.screenshot_area.replace(os.sep, "/")) / f"{identity.name}.png")

    def write_capture(self, identity: Identity, buffer: ImageBuffer, data: bytes | None = None) -> Path:
        """Write the capture, replacing any previous file in one step."""
        path = self.capture_path(identity)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(data if data is not None else buffer.encoded())
        os.replace(tmp, path)
        logger.debug("Saved capture %s", path)
        return path

    def remove_diff(self, identity: Identity) -> None:
        path = self.diff_path(identity)
        if path.exists():
            path.unlink()
            logger.debug("Removed stale diff image %s", path)

    def write_stabilization_images(self, identity: Identity, buffers: list[ImageBuffer]) -> list[str]:
        self.clean_stabilization_images(identity)
        paths = []
        for index, buffer in enumerate(buffers):
            path = self.stabilization_path(identity, index)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(buffer.encoded())
            paths.append(str(path))
        return paths

    def clean_stabilization_images(self, identity: Identity) -> None:
        directory = self._dir(identity)
        if not directory.exists():
            return
        for path in directory.glob(f"{identity.file_label}_x[0-9][0-9].png~"):
            path.unlink()

    def purge_group(self, builder: IdentityBuilder) -> Path | None:
        """Delete every artifact of the builder's current group."""
        if not builder.group:
            return None
        directory = self.area_dir.joinpath(*builder.group_identity_parts)
        if directory.exists():
            shutil.rmtree(directory)
            logger.info("Purged screenshot group %s", directory)
        return directory
