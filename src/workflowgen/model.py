# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError


class WorkflowIdentifier(Enum):
    """
    The pipelines jobs are generated for.

    Each variant carries its title, the GitHub trigger key (the `pull_request`
    in `on: pull_request: ...`) and the output file name, so every variant is
    fully described where it is declared.
    """
    PULL_REQUEST = ("Pull Request", "pull_request", "pull-request.yaml")
    MERGE = ("Merge", "push", "merge.yaml")

    def __init__(self, title: str, trigger: str, file_name: str):
        self.title = title
        self.trigger = trigger
        self.file_name = file_name

    def __str__(self) -> str:
        return self.title


@dataclass(frozen=True)
class Step:
    """A single GitHub Actions step template inside a job type."""
    name: str | None = None
    run: str | None = None
    uses: str | None = None
    env: Mapping[str, str] = field(default_factory=dict, hash=False)
    with_: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not self.run and not self.uses:
            raise ConfigurationError(
                message=f"step {self.name!r} must define `run` or `uses`",
            )
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))
        object.__setattr__(self, "with_", MappingProxyType(dict(self.with_)))


@dataclass(frozen=True)
class JobTypeDependency:
    """
    Points at another job: `dependency_name` is a dependency slot declared on
    the owning ProjectType, `job_index` indexes that dependency type's jobs in
    the same workflow.
    """
    dependency_name: str
    job_index: int = 0


@dataclass(frozen=True)
class JobType:
    """The prototype concrete Jobs are created from."""
    name: str
    steps: Tuple[Step, ...]
    dependencies: Tuple[JobTypeDependency, ...] = ()
    runs_on: str = "ubuntu-latest"


@dataclass(frozen=True, eq=False)
class ProjectType:
    """
    A kind of project (a Go module, a lambda, a terraform target...).

    `dependencies` maps a dependency slot name to the type a project bound to
    that slot must have. `workflows` lists, per workflow, the job types a
    project of this type contributes. Both mappings are read-only; types are
    shared by reference between the registry, other types and projects.
    """
    identifier: str
    dependencies: Mapping[str, "ProjectType"] = field(default_factory=dict)
    workflows: Mapping[WorkflowIdentifier, Tuple[JobType, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))
        object.__setattr__(
            self,
            "workflows",
            MappingProxyType({wid: tuple(jts) for wid, jts in self.workflows.items()}),
        )

    def job_types(self, workflow: WorkflowIdentifier) -> Tuple[JobType, ...]:
        return self.workflows.get(workflow, ())

    def __repr__(self) -> str:
        return f"ProjectType({self.identifier!r})"


def project_name(type_identifier: str, path: str) -> str:
    # "svc/foo" -> "golang-foo"; a project at the repo root takes its type's name
    base = PurePosixPath(path).name
    return f"{type_identifier}-{base}" if base else type_identifier


@dataclass(frozen=True, eq=False)
class ProjectIdentifier:
    """Value key for one concrete project: (path, type identifier)."""
    path: str
    type: ProjectType

    @property
    def key(self) -> Tuple[str, str]:
        return (self.path, self.type.identifier)

    @property
    def name(self) -> str:
        return project_name(self.type.identifier, self.path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProjectIdentifier):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"(path={self.path}, type={self.type.identifier})"


@dataclass(frozen=True, eq=False)
class Project:
    """
    One instance of a ProjectType at a repository path, with its dependency
    slots bound to concrete projects.
    """
    type: ProjectType
    path: str
    dependencies: Mapping[str, ProjectIdentifier] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for dep_name, pid in self.dependencies.items():
            expected = self.type.dependencies.get(dep_name)
            if expected is None:
                raise ConfigurationError(
                    message=(
                        f"unknown dependency {dep_name!r} for project type "
                        f"{self.type.identifier!r}"
                    ),
                    details={"project": self.path, "declared": sorted(self.type.dependencies)},
                )
            if pid.type.identifier != expected.identifier:
                raise ConfigurationError(
                    message=(
                        f"expected type {expected.identifier!r} for dependency "
                        f"{dep_name!r}, found {pid.type.identifier!r}"
                    ),
                    details={"project": self.path, "type": self.type.identifier},
                )
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))

    @property
    def identifier(self) -> ProjectIdentifier:
        return ProjectIdentifier(path=self.path, type=self.type)

    @property
    def name(self) -> str:
        return project_name(self.type.identifier, self.path)

    def __repr__(self) -> str:
        return f"Project(path={self.path!r}, type={self.type.identifier!r})"


@dataclass(frozen=True)
class Job:
    """
    A concrete job of one workflow, ready to be rendered.

    Canonical dependency field: `dependencies`
    Rendered as / alias: `needs`
    """
    identifier: str
    name: str
    project_name: str
    project_path: str
    dependencies: Tuple[str, ...] = ()
    runs_on: str = "ubuntu-latest"
    steps: Tuple[Step, ...] = ()

    @property
    def needs(self) -> Tuple[str, ...]:
        return self.dependencies


@dataclass(frozen=True)
class Workflow:
    identifier: WorkflowIdentifier
    jobs: Tuple[Job, ...] = ()

    def job(self, identifier: str) -> Optional[Job]:
        for j in self.jobs:
            if j.identifier == identifier:
                return j
        return None


Workflows = Dict[WorkflowIdentifier, Workflow]
