"""Pydantic models for report options and job status."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ReportOptions(BaseModel):
    """Rendering options stored in the job payload as ``{"options": ...}``.

    Unknown keys are ignored so that older payloads keep working.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    format: Literal["A4", "Letter"] = "A4"
    orientation: Literal["portrait", "landscape"] = "portrait"
    include_charts: bool = Field(True, alias="includeCharts")
    include_benchmarking: bool = Field(True, alias="includeBenchmarking")


class JobStatusInfo(BaseModel):
    """Public status of one report job."""

    id: str
    status: str
    attempts: int
    max_attempts: int
    error: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    # Download reference; falls back to the response's latest report
    artifact_ref: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")
