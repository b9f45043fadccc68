"""Exceptions raised by the report pipeline.

``ReportNotFoundError`` and ``ArtifactNotFoundError`` subclass
``LookupError`` so callers that only care about "missing" can catch one
type.  The server maps both to 404.
"""


class ReportError(Exception):
    """Base class for report pipeline failures."""


class ReportNotFoundError(ReportError, LookupError):
    """The survey response a report was requested for does not exist."""


class RenderError(ReportError):
    """Rendering the report document failed."""


class ArtifactNotFoundError(ReportError, LookupError):
    """No stored artifact under the requested name, and none can be rebuilt."""
