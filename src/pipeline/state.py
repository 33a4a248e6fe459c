# src/pipeline/state.py - v2
"""Per-run stage status tracking for the generation pipeline.

Each stage moves not_started -> running -> done | error. The run is done
only when every stage is done.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

StageStatus = Literal["not_started", "running", "done", "error"]

PIPELINE_STAGES: tuple[str, ...] = ("intelligence", "landing", "ads")


def _initial() -> dict[str, StageStatus]:
    return {stage: "not_started" for stage in PIPELINE_STAGES}


class PipelineRunState(BaseModel):
    """Mutable status board for one full-pipeline run."""

    stages: dict[str, StageStatus] = Field(default_factory=_initial)
    failed_stage: str | None = None
    error_message: str | None = None

    def start(self, stage: str) -> None:
        self.stages[stage] = "running"

    def complete(self, stage: str) -> None:
        self.stages[stage] = "done"

    def fail(self, stage: str, error: BaseException) -> None:
        self.stages[stage] = "error"
        self.failed_stage = stage
        self.error_message = str(error)

    @property
    def done(self) -> bool:
        return all(status == "done" for status in self.stages.values())

    @property
    def completed_stages(self) -> list[str]:
        return [s for s in PIPELINE_STAGES if self.stages.get(s) == "done"]
