"""
Step Trace
==========

Every request produces an ordered, append-only trace of what the agent
did. The trace is returned with the final answer so the caller can store
it as metadata on the assistant message (and render a thought sidebar).

Variants:
    PlanStep         the initial plan
    ThoughtStep      reasoning from one iteration
    ActionStep       a tool call extracted by the low tier
    ObservationStep  what the tool returned
    PlanUpdateStep   a plan replaced after review
    ErrorStep        a recoverable problem (e.g. extraction parse failure)
"""

import json
from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class PlanStep:
    kind: ClassVar[str] = "plan"
    plan: str

    def to_dict(self) -> dict:
        return {"type": self.kind, **asdict(self)}


@dataclass(frozen=True)
class ThoughtStep:
    kind: ClassVar[str] = "thought"
    thought: str
    iteration: int

    def to_dict(self) -> dict:
        return {"type": self.kind, **asdict(self)}


@dataclass(frozen=True)
class ActionStep:
    kind: ClassVar[str] = "action"
    tool: str
    param: str

    def to_dict(self) -> dict:
        return {"type": self.kind, **asdict(self)}


@dataclass(frozen=True)
class ObservationStep:
    kind: ClassVar[str] = "observation"
    value: Any

    def to_dict(self) -> dict:
        """Tool output is stored as-is; values JSON cannot encode become strings."""
        value = json.loads(json.dumps(self.value, ensure_ascii=False, default=str))
        return {"type": self.kind, "value": value}


@dataclass(frozen=True)
class PlanUpdateStep:
    kind: ClassVar[str] = "planUpdate"
    plan: str

    def to_dict(self) -> dict:
        return {"type": self.kind, **asdict(self)}


@dataclass(frozen=True)
class ErrorStep:
    kind: ClassVar[str] = "error"
    error: str

    def to_dict(self) -> dict:
        return {"type": self.kind, **asdict(self)}


StepRecord = Union[PlanStep, ThoughtStep, ActionStep, ObservationStep, PlanUpdateStep, ErrorStep]


def trace_to_dicts(trace: list[StepRecord]) -> list[dict]:
    """Serialize a trace for storage alongside the answer."""
    return [step.to_dict() for step in trace]
