"""Abstract interfaces for the report pipeline.

The queue only knows a :class:`~sugb_reports.artifacts.ReportPublisher`;
the publisher combines a :class:`ReportRenderer` (bytes from a survey
response) with an :class:`ArtifactStore` (where those bytes live).  Both
are swappable: the shipped implementations draw with ReportLab and write
to a local directory, tests plug in in-memory fakes.
"""

from abc import ABC, abstractmethod

from sugb_reports.models import ReportOptions


class ReportRenderer(ABC):
    """Turns one survey response into a finished document."""

    @abstractmethod
    async def render(self, survey_response_id: str, options: ReportOptions) -> bytes:
        """Render the report for ``survey_response_id``.

        Raises
        ------
        ReportNotFoundError
            The survey response does not exist.
        RenderError
            The document could not be produced.
        """
        ...


class ArtifactStore(ABC):
    """Flat, name-addressed storage for rendered artifacts."""

    @abstractmethod
    async def write(self, name: str, data: bytes) -> None:
        """Store ``data`` under ``name``, replacing any previous content."""
        ...

    @abstractmethod
    async def read(self, name: str) -> bytes:
        """Return the bytes stored under ``name``.

        Raises ``ArtifactNotFoundError`` when nothing is stored there.
        """
        ...

    @abstractmethod
    async def exists(self, name: str) -> bool:
        ...
