# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass
class WorkflowGenError(Exception):
    """
    Structured generation error with enough context for:
      - clean CLI output
      - tests asserting on what went wrong
      - debugging without full tracebacks

    `context` collects one line per enclosing level (innermost first) as the
    error travels up through the materializer; the class never changes.
    """
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    context: List[str] = field(default_factory=list)

    kind = "error"

    def add_context(self, line: str) -> "WorkflowGenError":
        self.context.append(line)
        return self

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        for line in self.context:
            lines.append(f"  while {line}")
        return "\n".join(lines)


@dataclass
class ConfigurationError(WorkflowGenError):
    """A type or project declaration is inconsistent."""
    kind = "configuration_error"


@dataclass
class ProjectFileError(ConfigurationError):
    """A projects.yaml file could not be turned into projects."""
    kind = "project_file_error"


@dataclass
class ResolutionError(WorkflowGenError):
    """A dependency names a project that does not exist."""
    kind = "resolution_error"


@dataclass
class CycleError(WorkflowGenError):
    """A chain of job dependencies comes back to a job still being built."""
    chain: Tuple[str, ...] = ()

    kind = "cycle_error"

    def __str__(self) -> str:
        text = super().__str__()
        if self.chain:
            text += "\ncycle: " + " -> ".join(self.chain)
        return text


@dataclass
class TemplateError(WorkflowGenError):
    """A step template could not be rendered for a job."""
    kind = "template_error"
