"""Baseline resolver: the last accepted image of an identity, read from VCS history."""

from __future__ import annotations

import logging

from screenshot_diff.artifacts import ArtifactStore
from screenshot_diff.errors import BaselineDecodeFailure, ImageDecodeError
from screenshot_diff.imaging.buffer import ImageBuffer
from screenshot_diff.models.identity import Identity

from .vcs import VersionControl

logger = logging.getLogger(__name__)


class BaselineResolver:
    """Looks up committed baselines.

    The working-tree file is never consulted: the current run may already
    have overwritten it with a fresh capture.
    """

    def __init__(self, vcs: VersionControl, store: ArtifactStore):
        self.vcs = vcs
        self.store = store

    def resolve(self, identity: Identity) -> ImageBuffer | None:
        """Return the committed baseline, or None if it was never committed.

        Raises BaselineDecodeFailure if committed bytes exist but are not an image.
        """
        path = self.store.repository_path(identity)
        data = self.vcs.read_committed(path)
        if data is None:
            logger.info("No committed baseline for %s", identity.name)
            return None
        try:
            buffer = ImageBuffer.from_bytes(data)
        except ImageDecodeError as e:
            raise BaselineDecodeFailure(identity.name, path, str(e)) from e
        logger.debug("Loaded baseline %s (%dx%d)", path, buffer.width, buffer.height)
        return buffer
