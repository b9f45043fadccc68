"""Artifact storage and publishing for rendered reports.

``LocalArtifactStore`` keeps PDFs as flat files under one directory.
``ReportPublisher`` owns the naming scheme and acts as a self-healing
cache: a download for a name whose file has vanished (ephemeral disk,
cleared cache) re-renders the report from the id embedded in the name and
stores it again under the same name, so published links keep working.

Naming::

    sugb-report-<survey_response_id>-<epoch_ms>.pdf
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable

from sugb_reports.constants import (
    ARTIFACT_NAME_RE,
    ARTIFACT_PREFIX,
    DEFAULT_ARTIFACT_DIR,
    DEFAULT_DOWNLOAD_PREFIX,
)
from sugb_reports.exceptions import ArtifactNotFoundError
from sugb_reports.interfaces import ArtifactStore, ReportRenderer
from sugb_reports.models import ReportOptions

logger = logging.getLogger(__name__)


def validate_artifact_name(name: str) -> str:
    """Return ``name`` if it is a bare file name; raise ``ValueError`` otherwise."""
    if (
        not name
        or name in (".", "..")
        or name.startswith(".")
        or "/" in name
        or "\\" in name
        or "\x00" in name
    ):
        raise ValueError(f"Invalid artifact name: {name!r}")
    return name


def artifact_name_from_ref(ref: str) -> str:
    """``/api/v1/reports/download/x.pdf -> x.pdf``"""
    return ref.rstrip("/").rsplit("/", 1)[-1]


class LocalArtifactStore(ArtifactStore):
    """Artifacts as files in a single directory (created on first write).

    Writes go to a temporary file first and are renamed into place, so a
    concurrent reader never sees a half-written PDF.
    """

    def __init__(self, directory: str | Path = DEFAULT_ARTIFACT_DIR) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, name: str) -> Path:
        return self._dir / validate_artifact_name(name)

    async def write(self, name: str, data: bytes) -> None:
        path = self._path(name)
        await asyncio.to_thread(self._write_sync, path, data)

    def _write_sync(self, path: Path, data: bytes) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=".tmp-", suffix=".pdf")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except Exception:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def read(self, name: str) -> bytes:
        path = self._path(name)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            raise ArtifactNotFoundError(f"Artifact not found: {name}") from None

    async def exists(self, name: str) -> bool:
        return await asyncio.to_thread(self._path(name).is_file)


class ReportPublisher:
    """Renders reports into an :class:`ArtifactStore` and serves them back.

    Args:
        renderer: produces the PDF bytes for a survey response
        store: where artifacts are kept
        download_prefix: public path the returned references point under
        clock: returns seconds since the epoch; injectable for tests
    """

    def __init__(
        self,
        renderer: ReportRenderer,
        store: ArtifactStore,
        *,
        download_prefix: str = DEFAULT_DOWNLOAD_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._renderer = renderer
        self._store = store
        self._prefix = download_prefix.rstrip("/")
        self._clock = clock

    @property
    def store(self) -> ArtifactStore:
        return self._store

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    async def publish(self, survey_response_id: str, options: ReportOptions) -> str:
        """Render, store under a fresh name, and return the download reference."""
        data = await self._renderer.render(survey_response_id, options)
        name = await self._allocate_name(survey_response_id)
        await self._store.write(name, data)
        logger.info("Published %s (%d bytes)", name, len(data))
        return f"{self._prefix}/{name}"

    async def _allocate_name(self, survey_response_id: str) -> str:
        stamp = int(self._clock() * 1000)
        name = f"{ARTIFACT_PREFIX}{survey_response_id}-{stamp}.pdf"
        # Two publishes in the same millisecond must not overwrite each other
        while await self._store.exists(name):
            stamp += 1
            name = f"{ARTIFACT_PREFIX}{survey_response_id}-{stamp}.pdf"
        return name

    # ------------------------------------------------------------------
    # Fetch (self-healing)
    # ------------------------------------------------------------------

    async def fetch(self, name: str) -> bytes:
        """Return the artifact bytes, rebuilding a missing report if possible.

        Raises ``ValueError`` for names that are not bare ``.pdf`` file
        names, ``ArtifactNotFoundError`` when the file is missing and the
        name does not follow the report naming scheme, and
        ``ReportNotFoundError`` when the response it names is gone.
        """
        validate_artifact_name(name)
        if not name.lower().endswith(".pdf"):
            raise ValueError(f"Invalid artifact name: {name!r}")

        try:
            return await self._store.read(name)
        except ArtifactNotFoundError:
            match = ARTIFACT_NAME_RE.match(name)
            if match is None:
                raise

        survey_response_id = match.group(1)
        logger.info("Artifact %s missing; regenerating for %s", name, survey_response_id)
        data = await self._renderer.render(survey_response_id, ReportOptions())
        await self._store.write(name, data)
        return data
