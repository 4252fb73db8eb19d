# generator.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .dag import stages, verify_order
from .discovery import find_projects
from .materialize import materialize_workflows
from .model import Project, WorkflowIdentifier, Workflows
from .registry import TypesConfig, resolve_types
from .render import DEFAULT_BRANCHES, diff_output, render_files

DEFAULT_OUT_DIR = ".github/workflows"


@dataclass
class Generation:
    """Everything one run produced, before anything touches the disk."""
    repo_root: Path
    types: TypesConfig
    projects: List[Project]
    workflows: Workflows
    files: Dict[str, str] = field(default_factory=dict)

    def stages(self) -> Dict[WorkflowIdentifier, List[List[str]]]:
        return {wid: stages(self.workflows[wid].jobs) for wid in WorkflowIdentifier}

    def job_counts(self) -> Dict[str, int]:
        return {wid.title: len(self.workflows[wid].jobs) for wid in WorkflowIdentifier}


def collect(
    repo_root: str | Path,
    *,
    types_file: str | Path | None = None,
    branches: Sequence[str] = DEFAULT_BRANCHES,
) -> Generation:
    """
    Discover -> materialize -> render (in memory).

    Raises on the first error; the caller must not write anything then.
    """
    root = Path(repo_root).resolve()
    types = resolve_types(types_file, root)
    projects = find_projects(types.registry, root)
    workflows = materialize_workflows(projects)
    for workflow in workflows.values():
        verify_order(workflow.jobs)
    files = render_files(workflows, types.static_files, branches)
    return Generation(repo_root=root, types=types, projects=projects, workflows=workflows, files=files)


def resolve_out_dir(repo_root: Path, out_dir: Optional[str | Path]) -> Path:
    if out_dir is None:
        return repo_root / DEFAULT_OUT_DIR
    p = Path(out_dir)
    return p if p.is_absolute() else Path.cwd() / p


def check_output(
    repo_root: str | Path,
    *,
    out_dir: str | Path | None = None,
    types_file: str | Path | None = None,
    branches: Sequence[str] = DEFAULT_BRANCHES,
) -> List[str]:
    """Return diffs between what would be generated and what is on disk."""
    gen = collect(repo_root, types_file=types_file, branches=branches)
    return diff_output(resolve_out_dir(gen.repo_root, out_dir), gen.files)
