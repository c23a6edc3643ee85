"""Outcome of a pipeline step. Every status counts as success for the build."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class StepStatus(Enum):
    OK = "ok"
    SKIPPED = "skipped"
    WARNED = "warned"


@dataclass(frozen=True)
class StepResult:
    step: str
    status: StepStatus
    reason: str = ""
    outputs: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, step: str, outputs: dict | None = None) -> StepResult:
        return cls(step, StepStatus.OK, outputs=outputs or {})

    @classmethod
    def skipped(cls, step: str, reason: str, outputs: dict | None = None) -> StepResult:
        return cls(step, StepStatus.SKIPPED, reason, outputs or {})

    @classmethod
    def warned(cls, step: str, reason: str, outputs: dict | None = None) -> StepResult:
        return cls(step, StepStatus.WARNED, reason, outputs or {})

    def __str__(self) -> str:
        if self.reason:
            return f"{self.step}: {self.status.value} ({self.reason})"
        return f"{self.step}: {self.status.value}"
