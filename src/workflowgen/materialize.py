# materialize.py
from __future__ import annotations

from typing import Dict, Iterable, List, NamedTuple, Sequence, Tuple

from .errors import ConfigurationError, CycleError, ResolutionError, WorkflowGenError
from .model import (
    Job,
    JobType,
    Project,
    ProjectIdentifier,
    Workflow,
    WorkflowIdentifier,
    Workflows,
)

# ---------------------------------------------------------------------
# Core idea
# ---------------------------------------------------------------------
# Project types declare their job dependencies abstractly:
#     lambda.deploy needs ("source", 0)
# i.e. "job #0 of whatever project is bound to my `source` slot, in the same
# workflow". The materializer walks every project and every job type and turns
# those references into concrete job identifiers, creating each job exactly
# once per (workflow, project type, project path, job type name) and always
# appending a job after the jobs it needs.
# ---------------------------------------------------------------------


class CacheKey(NamedTuple):
    workflow: WorkflowIdentifier
    project_type: str
    project_path: str
    job_type: str

    def __str__(self) -> str:
        return f"{self.project_type}:{self.project_path}:{self.job_type}@{self.workflow.name}"


def materialize_workflows(projects: Iterable[Project]) -> Workflows:
    """
    Turn projects into one Workflow per WorkflowIdentifier.

    Every variant is present in the result, possibly without jobs. Any error
    aborts the whole run: no partial result is returned.
    """
    return Materializer(projects).materialize_all()


class Materializer:
    """
    Single-use: the cache and output belong to one run.
    """

    def __init__(self, projects: Iterable[Project]):
        self.projects: List[Project] = list(projects)
        self._by_key: Dict[Tuple[str, str], Project] = {}
        for p in self.projects:
            # first declaration wins; discovery rejects duplicates upstream
            self._by_key.setdefault(p.identifier.key, p)

        self._cache: Dict[CacheKey, Job] = {}
        self._in_progress: List[CacheKey] = []
        self._owners: Dict[Tuple[WorkflowIdentifier, str], CacheKey] = {}
        self._jobs: Dict[WorkflowIdentifier, List[Job]] = {w: [] for w in WorkflowIdentifier}

    def materialize_all(self) -> Workflows:
        for project in self.projects:
            for workflow in WorkflowIdentifier:
                for job_type in project.type.job_types(workflow):
                    self.materialize_job(workflow, job_type, project)

        return {w: Workflow(identifier=w, jobs=tuple(jobs)) for w, jobs in self._jobs.items()}

    def materialize_job(self, workflow: WorkflowIdentifier, job_type: JobType, project: Project) -> Job:
        key = CacheKey(workflow, project.type.identifier, project.path, job_type.name)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if key in self._in_progress:
            start = self._in_progress.index(key)
            chain = tuple(str(k) for k in self._in_progress[start:]) + (str(key),)
            raise CycleError(
                message=f"job {job_type.name!r} of project {project.name!r} depends on itself",
                details={"workflow": workflow.title},
                chain=chain,
            )

        self._in_progress.append(key)
        try:
            needs = [self._resolve_dependency(workflow, job_type, project, i) for i in range(len(job_type.dependencies))]
        except WorkflowGenError as e:
            raise e.add_context(
                f"materializing job {job_type.name!r} of project "
                f"(path={project.path}, type={project.type.identifier}) "
                f"in workflow {workflow.title!r}"
            )
        finally:
            self._in_progress.pop()

        identifier = f"{project.name}-{job_type.name}"
        owner = self._owners.setdefault((workflow, identifier), key)
        if owner != key:
            raise ConfigurationError(
                message=(
                    f"job identifier {identifier!r} is produced by projects {owner.project_path!r} "
                    f"and {project.path!r} in workflow {workflow.title!r}"
                ),
                details={"type": project.type.identifier},
            )

        job = Job(
            identifier=identifier,
            name=f"{project.name} {job_type.name}",
            project_name=project.name,
            project_path=project.path,
            dependencies=tuple(needs),
            runs_on=job_type.runs_on,
            steps=tuple(job_type.steps),
        )
        self._jobs[workflow].append(job)
        self._cache[key] = job
        return job

    def _resolve_dependency(
        self,
        workflow: WorkflowIdentifier,
        job_type: JobType,
        project: Project,
        index: int,
    ) -> str:
        dependency = job_type.dependencies[index]
        name = dependency.dependency_name

        dependency_type = project.type.dependencies.get(name)
        if dependency_type is None:
            raise ConfigurationError(
                message=(
                    f"job type {job_type.name!r} of project type {project.type.identifier!r} "
                    f"needs dependency {name!r}, which the project type does not declare"
                ),
                details={"declared": sorted(project.type.dependencies)},
            )

        pid = project.dependencies.get(name)
        if pid is None:
            raise ConfigurationError(
                message=(
                    f"projects of type {project.type.identifier!r} must have a dependency "
                    f"called {name!r}, but no such dependency exists on project {project.path!r}"
                ),
                details={"project": project.path, "dependency": name},
            )

        dependency_jobs: Sequence[JobType] = dependency_type.job_types(workflow)
        if not 0 <= dependency.job_index < len(dependency_jobs):
            raise ConfigurationError(
                message=(
                    f"job index {dependency.job_index} for dependency {name!r} is out of range: "
                    f"type {dependency_type.identifier!r} has {len(dependency_jobs)} job(s) "
                    f"in workflow {workflow.title!r}"
                ),
                details={"job_type": job_type.name, "project_type": project.type.identifier},
            )

        target = self.find_project(pid)
        prerequisite = self.materialize_job(workflow, dependency_jobs[dependency.job_index], target)
        return prerequisite.identifier

    def find_project(self, pid: ProjectIdentifier) -> Project:
        project = self._by_key.get(pid.key)
        if project is None:
            raise ResolutionError(
                message=f"project not found (path={pid.path}, type={pid.type.identifier})",
                details={"path": pid.path, "type": pid.type.identifier},
            )
        return project
