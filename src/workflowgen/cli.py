# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from workflowgen.errors import WorkflowGenError
from workflowgen.generator import check_output, collect, resolve_out_dir
from workflowgen.render import write_atomically
from workflowgen.git_facts.git import repo_root as find_repo_root
from workflowgen.registry import resolve_types
from workflowgen.ui.console import Console, get_console, set_console


def _repo_root(repo_root_arg: str | None) -> Path:
    if repo_root_arg:
        path = Path(repo_root_arg)
        if not path.is_dir():
            get_console().print_error(
                "Repository root not found",
                f"Not a directory: {repo_root_arg}",
            )
            sys.exit(1)
        return path.resolve()
    return find_repo_root()


def _fail(ctx, exc: Exception) -> None:
    """Report an error and exit 1. Nothing has been written at this point."""
    console = get_console()
    if isinstance(exc, WorkflowGenError):
        console.print_error(
            "Workflow generation failed",
            str(exc),
            suggestion="No workflow files were written.",
        )
        if ctx.obj.get("debug", False):
            console.print_exception(exc)
    else:
        console.print_exception(exc)
    sys.exit(1)


def generation_options(f):
    """Options shared by the commands that build workflows."""
    f = click.option(
        "--branch",
        "branches",
        multiple=True,
        default=("master",),
        show_default=True,
        help="Branch the workflows trigger on (repeatable)",
    )(f)
    f = click.option(
        "--types",
        "types_file",
        default=None,
        envvar="WORKFLOWGEN_TYPES",
        help="Project types file (defaults to workflowgen_types.py in the repo root, else built-in types)",
    )(f)
    f = click.option(
        "--out-dir",
        default=None,
        envvar="WORKFLOWGEN_OUT_DIR",
        help="Output directory (defaults to <repo-root>/.github/workflows)",
    )(f)
    f = click.option(
        "--repo-root",
        default=None,
        help="Repository root (defaults to the git top-level directory)",
    )(f)
    return f


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """workflowgen - generate GitHub Actions workflows from project declarations."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@generation_options
@click.option("--print-plan/--no-print-plan", default=False, show_default=True, help="Print jobs per workflow stage")
@click.pass_context
def generate(ctx, repo_root, out_dir, types_file, branches, print_plan):
    """Generate workflow files and atomically replace the output directory."""
    console = get_console()
    root = _repo_root(repo_root)

    try:
        gen = collect(root, types_file=types_file, branches=branches)

        console.print_run_started(
            repository=root.name,
            types_source=str(gen.types.source) if gen.types.source else "built-in",
            project_count=len(gen.projects),
        )
        if print_plan:
            for wid, levels in gen.stages().items():
                console.print_plan(wid.title, levels)

        write_atomically(resolve_out_dir(gen.repo_root, out_dir), gen.files)
        console.print_summary(gen.job_counts())
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        _fail(ctx, e)


@cli.command()
@generation_options
@click.pass_context
def check(ctx, repo_root, out_dir, types_file, branches):
    """Fail if the output directory is not what `generate` would write."""
    console = get_console()
    root = _repo_root(repo_root)

    try:
        diffs = check_output(root, out_dir=out_dir, types_file=types_file, branches=branches)
    except Exception as e:
        _fail(ctx, e)
        return

    console.print_check_results(diffs)
    if diffs:
        sys.exit(1)


@cli.command()
@generation_options
@click.pass_context
def plan(ctx, repo_root, out_dir, types_file, branches):
    """Print the jobs of each workflow grouped in stages, without writing."""
    console = get_console()
    root = _repo_root(repo_root)

    try:
        gen = collect(root, types_file=types_file, branches=branches)
    except Exception as e:
        _fail(ctx, e)
        return

    for wid, levels in gen.stages().items():
        console.print_plan(wid.title, levels)


@cli.command(name="types")
@click.option("--repo-root", default=None, help="Repository root (defaults to the git top-level directory)")
@click.option("--types", "types_file", default=None, envvar="WORKFLOWGEN_TYPES", help="Project types file")
@click.pass_context
def list_types(ctx, repo_root, types_file):
    """List the registered project types and their jobs."""
    console = get_console()
    root = _repo_root(repo_root)

    try:
        types = resolve_types(types_file, root)
    except Exception as e:
        _fail(ctx, e)
        return

    for line in types.registry.describe():
        console.print_info(line)


if __name__ == "__main__":
    cli()
