import enum
from datetime import UTC
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import Field
from pydantic import computed_field


class StepStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class RunStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionMode(str, enum.Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class StepOutcome(BaseModel):
    name: str = Field(..., description="Name of the step.")
    language: str = Field(..., description="Language tag of the step.")
    status: StepStatus = Field(default=StepStatus.PENDING)
    start_time: datetime | None = None
    end_time: datetime | None = None
    output: Any | None = Field(None, description="JSON output of a successful step.")
    error: str | None = Field(None, description="Error message of a failed step.")
    error_type: str | None = None

    model_config = {"validate_assignment": True}

    @computed_field(return_type=float | None)
    @property
    def duration_seconds(self) -> float | None:
        """Step duration in seconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None


class ExecutionTrace(BaseModel):
    run_id: str = Field(..., description="Unique identifier for the run.")
    workflow_name: str = Field(..., description="Name of the executed workflow.")
    workflow_file: Path | None = Field(None, description="Path to the workflow file.")
    mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    max_concurrency: int = 1
    status: RunStatus = Field(default=RunStatus.NOT_STARTED, description="Run status.")
    start_time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    steps: list[StepOutcome] = Field(default_factory=list)
    levels: list[list[str]] = Field(default_factory=list)
    error_message: str | None = None

    model_config = {
        "arbitrary_types_allowed": True,
        "validate_assignment": True,
    }

    @computed_field(return_type=float | None)
    @property
    def duration_seconds(self) -> float | None:
        """Run duration in seconds."""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def results(self) -> dict[str, Any]:
        """Outputs of the successful steps, keyed by step name."""
        return {s.name: s.output for s in self.steps if s.status == StepStatus.SUCCESS}

    def outcome(self, name: str) -> StepOutcome | None:
        return next((s for s in self.steps if s.name == name), None)
