# src/workflowgen/dsl.py
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Union

from .errors import ConfigurationError
from .model import JobType, JobTypeDependency, ProjectType, Step, WorkflowIdentifier

# Workflow shorthands for types files
PULL_REQUEST = WorkflowIdentifier.PULL_REQUEST
MERGE = WorkflowIdentifier.MERGE


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(name: str, cmd: str, *, env: Optional[Dict[str, str]] = None) -> Step:
    """Create a shell step. `cmd` may use {{ name }} and {{ path }}."""
    return Step(name=name, run=cmd, env=dict(env or {}))


def uses(action: str, name: str | None = None, **with_: str) -> Step:
    """Create a step running a published action, e.g. uses("actions/checkout@v2")."""
    return Step(name=name, uses=action, with_={k: str(v) for k, v in with_.items()})


def needs(dependency_name: str, job_index: int = 0) -> JobTypeDependency:
    """Reference job #job_index of the project bound to `dependency_name`."""
    return JobTypeDependency(dependency_name=dependency_name, job_index=job_index)


# ---------------------------------------------------------------------
# Functional job type helper
# ---------------------------------------------------------------------

def job_type(
    name: str,
    *steps: Step,  # allow: job_type("x", sh(...), sh(...))
    steps_list: Optional[List[Step]] = None,  # allow: job_type("x", steps_list=[...])
    needs: Optional[Sequence[Union[JobTypeDependency, str]]] = None,
    runs_on: str = "ubuntu-latest",
) -> JobType:
    steps_final: List[Step] = []
    if steps_list:
        steps_final.extend(list(steps_list))
    steps_final.extend(list(steps))

    if not steps_final:
        raise ConfigurationError(message=f"job_type({name!r}) must have at least one step")

    # a bare string means job #0 of that dependency
    deps = [d if isinstance(d, JobTypeDependency) else JobTypeDependency(d) for d in (needs or [])]

    return JobType(name=name, steps=tuple(steps_final), dependencies=tuple(deps), runs_on=runs_on)


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class ProjectTypeBuilder:
    def __init__(self, identifier: str):
        self.identifier = identifier
        self._dependencies: Dict[str, ProjectType] = {}
        self._workflows: Dict[WorkflowIdentifier, List[JobType]] = {}

    def depends_on(self, name: str, project_type: ProjectType):
        if name in self._dependencies:
            raise ConfigurationError(
                message=f"project type {self.identifier!r} declares dependency {name!r} twice",
            )
        self._dependencies[name] = project_type
        return self

    def on(self, workflow: WorkflowIdentifier, *job_types: JobType):
        self._workflows.setdefault(workflow, []).extend(job_types)
        return self

    # sugar for the two workflows
    def on_pull_request(self, *job_types: JobType):
        return self.on(WorkflowIdentifier.PULL_REQUEST, *job_types)

    def on_merge(self, *job_types: JobType):
        return self.on(WorkflowIdentifier.MERGE, *job_types)

    def build(self) -> ProjectType:
        return ProjectType(
            identifier=self.identifier,
            dependencies=self._dependencies,
            workflows=self._workflows,
        )


def project_type(
    identifier: str,
    *,
    dependencies: Optional[Mapping[str, ProjectType]] = None,
    workflows: Optional[Mapping[WorkflowIdentifier, Sequence[JobType]]] = None,
) -> ProjectType:
    """Convenience: project_type('golang', workflows={PULL_REQUEST: [...]})"""
    b = ProjectTypeBuilder(identifier)
    for name, pt in (dependencies or {}).items():
        b.depends_on(name, pt)
    for wid, jts in (workflows or {}).items():
        b.on(wid, *jts)
    return b.build()


def build(identifier: str) -> ProjectTypeBuilder:
    """Convenience: build('lambda').depends_on('source', golang).on_merge(...).build()"""
    return ProjectTypeBuilder(identifier)


def types(*project_types: ProjectType) -> List[ProjectType]:
    """
    Types file helper:

        from workflowgen.dsl import types, project_type, job_type, sh

        def project_types():
            return types(
                project_type(...),
                project_type(...),
            )
    """
    return list(project_types)
