# render.py
from __future__ import annotations

import difflib
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .errors import TemplateError
from .model import Job, Step, Workflow, WorkflowIdentifier, Workflows
from .ui.console import get_console

DEFAULT_BRANCHES = ("master",)

HEADER = "# Code generated by workflowgen. DO NOT EDIT.\n# Edit projects.yaml files or the project types, then run `workflowgen generate`.\n"

# {{ name }} / {{ path }}. Dotted expressions (`${{ secrets.X }}`) never match.
PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


# ---------------------------------------------------------------------
# Step templates
# ---------------------------------------------------------------------

def substitute(text: str, job: Job) -> str:
    values = {"name": job.project_name, "path": job.project_path}

    def repl(m: re.Match) -> str:
        key = m.group(1)
        if key not in values:
            raise TemplateError(
                message=f"unknown placeholder {m.group(0)!r}",
                details={"job": job.identifier, "known": sorted(values)},
            )
        return values[key]

    return PLACEHOLDER.sub(repl, text)


def render_step(step: Step, job: Job) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if step.name:
        out["name"] = substitute(step.name, job)
    if step.uses:
        out["uses"] = step.uses
    if step.with_:
        out["with"] = {k: substitute(v, job) for k, v in step.with_.items()}
    if step.env:
        out["env"] = {k: substitute(v, job) for k, v in step.env.items()}
    if step.run:
        out["run"] = substitute(step.run, job)
    return out


def render_job(job: Job) -> Dict[str, Any]:
    out: Dict[str, Any] = {"name": job.name}
    if job.needs:
        out["needs"] = list(job.needs)
    out["runs-on"] = job.runs_on
    steps: List[Dict[str, Any]] = []
    for i, step in enumerate(job.steps):
        try:
            steps.append(render_step(step, job))
        except TemplateError as e:
            raise e.add_context(f"rendering step #{i} ({step.name or step.uses}) of job {job.identifier!r}")
    out["steps"] = steps
    return out


# ---------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------

class WorkflowDumper(yaml.SafeDumper):
    """Block style for multi-line scripts, indented sequences."""

    def increase_indent(self, flow: bool = False, indentless: bool = False):
        return super().increase_indent(flow, False)


def _str_representer(dumper: yaml.SafeDumper, data: str):
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


WorkflowDumper.add_representer(str, _str_representer)


def render_workflow(workflow: Workflow, branches: Sequence[str] = DEFAULT_BRANCHES) -> str:
    wid = workflow.identifier
    doc: Dict[str, Any] = {
        "name": wid.title,
        "on": {wid.trigger: {"branches": list(branches)}},
        "jobs": {},
    }
    for job in workflow.jobs:
        try:
            doc["jobs"][job.identifier] = render_job(job)
        except TemplateError as e:
            raise e.add_context(f"rendering workflow {wid.title!r}")

    body = yaml.dump(doc, Dumper=WorkflowDumper, sort_keys=False, default_flow_style=False, width=120)
    return HEADER + "\n" + body


def render_files(
    workflows: Workflows,
    static_files: Optional[Mapping[str, str]] = None,
    branches: Sequence[str] = DEFAULT_BRANCHES,
) -> Dict[str, str]:
    """
    Render every workflow to {file name: contents}, in memory. A workflow
    without jobs produces no file.
    """
    files: Dict[str, str] = {}
    for wid in WorkflowIdentifier:
        workflow = workflows.get(wid)
        if workflow is None or not workflow.jobs:
            continue
        files[wid.file_name] = render_workflow(workflow, branches)

    for name, contents in (static_files or {}).items():
        if name in files:
            raise TemplateError(message=f"static file {name!r} collides with a generated workflow file")
        files[name] = contents
    return files


# ---------------------------------------------------------------------
# Output directory
# ---------------------------------------------------------------------

def write_atomically(out_dir: str | Path, files: Mapping[str, str]) -> Path:
    """
    Stage every file in a temporary sibling directory, then promote it to
    `out_dir` with renames. `out_dir` is owned by the generator: files not in
    `files` disappear. If anything fails the previous directory stays in place.
    """
    console = get_console()
    target = Path(out_dir).resolve()
    target.parent.mkdir(parents=True, exist_ok=True)

    staging = Path(tempfile.mkdtemp(prefix=f".{target.name}.staging-", dir=str(target.parent)))
    try:
        for name, contents in sorted(files.items()):
            (staging / name).write_text(contents, encoding="utf-8")
            console.print_staged(name)

        if target.exists():
            backup = Path(tempfile.mkdtemp(prefix=f".{target.name}.old-", dir=str(target.parent)))
            backup.rmdir()
            os.rename(target, backup)
            try:
                os.rename(staging, target)
            except OSError:
                os.rename(backup, target)
                raise
            shutil.rmtree(backup, ignore_errors=True)
        else:
            os.rename(staging, target)
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)

    console.print_promoted(str(target))
    return target


def diff_output(out_dir: str | Path, files: Mapping[str, str]) -> List[str]:
    """
    Compare rendered files with what is on disk. Returns one unified diff
    per stale, missing or unexpected file (empty when up to date).
    """
    target = Path(out_dir)
    on_disk: Dict[str, str] = {}
    if target.is_dir():
        for p in sorted(target.iterdir()):
            if p.is_file():
                on_disk[p.name] = p.read_text(encoding="utf-8")

    diffs: List[str] = []
    for name in sorted(set(on_disk) | set(files)):
        old = on_disk.get(name, "")
        new = files.get(name, "")
        if old == new:
            continue
        diff = difflib.unified_diff(
            old.splitlines(keepends=True),
            new.splitlines(keepends=True),
            fromfile=f"a/{name}" if name in on_disk else "/dev/null",
            tofile=f"b/{name}" if name in files else "/dev/null",
        )
        diffs.append("".join(diff))
    return diffs
