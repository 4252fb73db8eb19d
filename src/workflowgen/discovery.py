# discovery.py
from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .errors import ConfigurationError, ProjectFileError
from .model import Project, ProjectIdentifier
from .registry import TypeRegistry
from .ui.console import get_console

PROJECTS_FILE = "projects.yaml"


def find_projects(registry: TypeRegistry, repo_root: str | Path) -> List[Project]:
    """
    Walk the repository and build a Project for every entry of every
    projects.yaml file.

    Returns projects sorted by (type, name, path). Two projects of the same
    type may not share a directory basename: their job identifiers would
    collide.
    """
    root = Path(repo_root).resolve()
    projects: List[Project] = []
    _walk(registry, root, root, projects)

    projects.sort(key=lambda p: (p.type.identifier, p.name, p.path))

    for a, b in zip(projects, projects[1:]):
        if a.type.identifier == b.type.identifier and a.name == b.name:
            raise ProjectFileError(
                message=(
                    f"duplicate projects detected: {a.path!r} and {b.path!r}: two projects "
                    "may not share the same basename and project type"
                ),
                details={"type": a.type.identifier},
            )

    return projects


def _walk(registry: TypeRegistry, root: Path, directory: Path, out: List[Project]) -> None:
    # deterministic traversal
    for entry in sorted(directory.iterdir()):
        if entry.name == PROJECTS_FILE and entry.is_file():
            get_console().print_debug(f"parsing projects directory {directory}")
            out.extend(parse_projects_file(registry, root, entry))
        elif entry.is_symlink() or entry.name.startswith("."):
            continue
        elif entry.is_dir():
            _walk(registry, root, entry, out)


def _rel(root: Path, directory: Path) -> str:
    rel = directory.resolve().relative_to(root).as_posix()
    return rel or "."


def _normalize(path: str) -> str:
    # "", "./" and "/" all mean the repository root
    return posixpath.normpath(path.strip("/") or ".")


def parse_projects_file(registry: TypeRegistry, root: Path, file_path: Path) -> List[Project]:
    """Parse one projects.yaml; paths are made relative to `root`."""
    try:
        payload = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ProjectFileError(message=f"could not read {file_path}: {e}", details={"file": str(file_path)}) from e

    path = _rel(root, file_path.parent)
    try:
        return parse_projects(registry, payload, path)
    except ConfigurationError as e:
        raise e.add_context(f"parsing project(s) file {file_path}")


def parse_projects(registry: TypeRegistry, payload: Any, path: str) -> List[Project]:
    """
    Build projects from a parsed projects.yaml payload:

        projects:
          - type: lambda
            dependencies:
              source:
                type: golang
                path: svc/bar   # optional, defaults to `path`
    """
    if payload is None:
        return []
    if not isinstance(payload, dict) or not isinstance(payload.get("projects", []), list):
        raise ProjectFileError(message="expected a mapping with a `projects` list", details={"path": path})

    projects: List[Project] = []
    for entry in payload.get("projects") or []:
        if not isinstance(entry, dict) or not isinstance(entry.get("type"), str):
            raise ProjectFileError(message=f"each project needs a `type` string, got {entry!r}", details={"path": path})

        project_type = registry.get_type(entry["type"])
        raw_deps = entry.get("dependencies") or {}
        if not isinstance(raw_deps, dict):
            raise ProjectFileError(message="`dependencies` must be a mapping", details={"path": path})

        dependencies: Dict[str, ProjectIdentifier] = {}
        for dep_name, dep in raw_deps.items():
            dep_type = project_type.dependencies.get(dep_name)
            if dep_type is None:
                raise ProjectFileError(
                    message=f"unknown dependency {dep_name!r} for project type {project_type.identifier!r}",
                    details={"path": path, "declared": sorted(project_type.dependencies)},
                )
            if not isinstance(dep, dict) or not isinstance(dep.get("type"), str):
                raise ProjectFileError(
                    message=f"dependency {dep_name!r} needs a `type` string",
                    details={"path": path},
                )
            if dep["type"] != dep_type.identifier:
                raise ProjectFileError(
                    message=(
                        f"expected type {dep_type.identifier!r} for dependency {dep_name!r} of "
                        f"(path={path}, type={project_type.identifier}); found type {dep['type']!r}"
                    ),
                )
            dep_path = dep.get("path", path)
            if not isinstance(dep_path, str):
                raise ProjectFileError(message=f"dependency {dep_name!r} has a non-string `path`", details={"path": path})
            dependencies[dep_name] = ProjectIdentifier(path=_normalize(dep_path), type=dep_type)

        get_console().print_debug(f"adding project (path={path}, type={project_type.identifier})")
        projects.append(Project(type=project_type, path=path, dependencies=dependencies))

    return projects
