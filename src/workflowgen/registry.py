# registry.py
from __future__ import annotations

import runpy
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from .errors import ConfigurationError, CycleError
from .model import ProjectType, WorkflowIdentifier

DEFAULT_TYPES_FILE = "workflowgen_types.py"

# (project type identifier, workflow, job type name)
JobNode = Tuple[str, WorkflowIdentifier, str]


class TypeRegistry(Mapping[str, ProjectType]):
    """
    Immutable catalog of project types, validated once at construction so
    broken type declarations fail before any project is looked at:

      - identifiers are unique
      - every dependency type is itself registered
      - job names are unique per (type, workflow)
      - every job dependency names a declared slot and a valid job index
      - job dependencies never loop back on themselves
    """

    def __init__(self, project_types: Iterable[ProjectType]):
        by_id: Dict[str, ProjectType] = {}
        for pt in project_types:
            if pt.identifier in by_id:
                raise ConfigurationError(message=f"duplicate project type {pt.identifier!r}")
            by_id[pt.identifier] = pt
        self._types = MappingProxyType(by_id)
        self._validate()

    def __getitem__(self, identifier: str) -> ProjectType:
        return self._types[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def get_type(self, identifier: str) -> ProjectType:
        try:
            return self._types[identifier]
        except KeyError:
            raise ConfigurationError(
                message=f"project type {identifier!r} not found",
                details={"known": sorted(self._types)},
            ) from None

    # -----------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------

    def _validate(self) -> None:
        for pt in self._types.values():
            for dep_name, dep_type in pt.dependencies.items():
                if self._types.get(dep_type.identifier) is not dep_type:
                    raise ConfigurationError(
                        message=(
                            f"dependency {dep_name!r} of project type {pt.identifier!r} has "
                            f"type {dep_type.identifier!r}, which is not registered"
                        ),
                    )

            for workflow, job_types in pt.workflows.items():
                names = [jt.name for jt in job_types]
                if len(set(names)) != len(names):
                    dupes = sorted({n for n in names if names.count(n) > 1})
                    raise ConfigurationError(
                        message=f"project type {pt.identifier!r} repeats job names {dupes} in workflow {workflow.title!r}",
                    )

                for jt in job_types:
                    for dep in jt.dependencies:
                        dep_type = pt.dependencies.get(dep.dependency_name)
                        if dep_type is None:
                            raise ConfigurationError(
                                message=(
                                    f"job type {jt.name!r} of project type {pt.identifier!r} needs "
                                    f"dependency {dep.dependency_name!r}, which the project type does not declare"
                                ),
                                details={"workflow": workflow.title, "declared": sorted(pt.dependencies)},
                            )
                        available = dep_type.job_types(workflow)
                        if not 0 <= dep.job_index < len(available):
                            raise ConfigurationError(
                                message=(
                                    f"job type {jt.name!r} of project type {pt.identifier!r} needs job "
                                    f"#{dep.job_index} of {dep_type.identifier!r}, which has "
                                    f"{len(available)} job(s) in workflow {workflow.title!r}"
                                ),
                            )

        self._check_cycles()

    def _edges(self, node: JobNode) -> List[JobNode]:
        type_id, workflow, job_name = node
        pt = self._types[type_id]
        jt = next(j for j in pt.job_types(workflow) if j.name == job_name)
        out: List[JobNode] = []
        for dep in jt.dependencies:
            dep_type = pt.dependencies[dep.dependency_name]
            out.append((dep_type.identifier, workflow, dep_type.job_types(workflow)[dep.job_index].name))
        return out

    def _check_cycles(self) -> None:
        # Every project must bind every slot its jobs use, so a loop between
        # job types can never be satisfied by a finite set of projects.
        done: Set[JobNode] = set()

        for pt in self._types.values():
            for workflow, job_types in pt.workflows.items():
                for jt in job_types:
                    start = (pt.identifier, workflow, jt.name)
                    if start in done:
                        continue
                    path: List[JobNode] = []
                    on_path: Set[JobNode] = set()
                    # iterative DFS: (node, remaining edges)
                    stack: List[Tuple[JobNode, List[JobNode]]] = [(start, self._edges(start))]
                    path.append(start)
                    on_path.add(start)
                    while stack:
                        node, edges = stack[-1]
                        if not edges:
                            stack.pop()
                            path.pop()
                            on_path.discard(node)
                            done.add(node)
                            continue
                        nxt = edges.pop(0)
                        if nxt in done:
                            continue
                        if nxt in on_path:
                            loop = path[path.index(nxt):] + [nxt]
                            raise CycleError(
                                message=f"job types of {nxt[0]!r} depend on themselves in workflow {workflow.title!r}",
                                chain=tuple(f"{t}:{j}" for t, _, j in loop),
                            )
                        stack.append((nxt, self._edges(nxt)))
                        path.append(nxt)
                        on_path.add(nxt)

    def describe(self) -> List[str]:
        lines: List[str] = []
        for identifier in sorted(self._types):
            pt = self._types[identifier]
            deps = ", ".join(f"{n}: {t.identifier}" for n, t in pt.dependencies.items())
            lines.append(f"{identifier}" + (f" (depends on {deps})" if deps else ""))
            for workflow in WorkflowIdentifier:
                jobs = pt.job_types(workflow)
                if jobs:
                    lines.append(f"  {workflow.title}: {', '.join(jt.name for jt in jobs)}")
        return lines


# ----------------------------------------------------------------------
# Loading
# ----------------------------------------------------------------------

@dataclass
class TypesConfig:
    """What a types file provides."""
    registry: TypeRegistry
    static_files: Dict[str, str] = field(default_factory=dict)
    source: Optional[Path] = None


def load_types_file(path: str | Path) -> TypesConfig:
    """
    Load project types from a python file path.

    The file must define either:
      - project_types() -> List[ProjectType]
      - PROJECT_TYPES = [ProjectType, ...]
    and may define:
      - STATIC_FILES = {"file-name.yaml": "contents", ...}
    """
    types_path = Path(path).expanduser().resolve()
    if not types_path.exists():
        raise FileNotFoundError(f"Types file not found: {types_path}")
    if types_path.suffix != ".py":
        raise ValueError(f"Types file must be a .py file, got: {types_path.name}")

    module_name = f"workflowgen_types_{types_path.stem}"
    globals_dict = runpy.run_path(str(types_path), run_name=module_name)

    project_types = None
    if "project_types" in globals_dict and callable(globals_dict["project_types"]):
        project_types = globals_dict["project_types"]()
    elif "PROJECT_TYPES" in globals_dict:
        project_types = globals_dict["PROJECT_TYPES"]

    if not isinstance(project_types, (list, tuple)) or not all(isinstance(t, ProjectType) for t in project_types):
        raise ConfigurationError(
            message=(
                "Types file must return/define a List[ProjectType]. "
                "Define project_types() -> List[ProjectType] or PROJECT_TYPES = [ProjectType, ...]."
            ),
            details={"file": str(types_path)},
        )

    static_files = globals_dict.get("STATIC_FILES", {}) or {}
    if not isinstance(static_files, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in static_files.items()
    ):
        raise ConfigurationError(
            message="STATIC_FILES must be a dict of file name -> contents",
            details={"file": str(types_path)},
        )

    return TypesConfig(registry=TypeRegistry(project_types), static_files=dict(static_files), source=types_path)


def builtin_types() -> TypesConfig:
    from . import builtin

    return TypesConfig(registry=TypeRegistry(builtin.project_types()), static_files=dict(builtin.STATIC_FILES))


def resolve_types(types_file: str | Path | None, repo_root: str | Path) -> TypesConfig:
    """
    Pick the types to generate with:
      1. an explicit types file
      2. <repo_root>/workflowgen_types.py when present
      3. the built-in catalog
    """
    if types_file:
        return load_types_file(types_file)
    default = Path(repo_root) / DEFAULT_TYPES_FILE
    if default.exists():
        return load_types_file(default)
    return builtin_types()
