"""Console output formatting utilities for workflowgen."""

from __future__ import annotations

import sys
from typing import Dict, List, Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(
        self,
        repository: str,
        types_source: str,
        project_count: int,
    ) -> None:
        """Print generation start information."""
        print("\nGENERATION STARTED")
        print(f"Repository: {repository}")
        print(f"Project types: {types_source}")
        print(f"Projects: {project_count}")
        print()

    def print_plan(self, workflow: str, stages: List[List[str]]) -> None:
        """Print the jobs of one workflow grouped by stage."""
        self.print_header(workflow)
        if not stages:
            print("  (no jobs)")
            return
        for idx, stage in enumerate(stages):
            print(f"  stage {idx + 1}: {', '.join(stage)}")

    def print_staged(self, file_name: str) -> None:
        """Print a staged output file."""
        print(f"STAGED: {file_name}")

    def print_promoted(self, out_dir: str) -> None:
        """Print promotion of the staged directory."""
        print(f"PROMOTED: {out_dir}")

    def print_check_results(self, diffs: List[str]) -> None:
        """Print the result of comparing generated output with disk."""
        if not diffs:
            print("Generated workflows are up to date.")
            return
        print("Unexpected differences in the workflows directory:", file=sys.stderr)
        for diff in diffs:
            print(diff, file=sys.stderr)
        print("Run `workflowgen generate` from the repo root and commit the results.", file=sys.stderr)

    def print_summary(self, counts: Dict[str, int]) -> None:
        """Print job counts per workflow."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for workflow, count in counts.items():
            print(f"  {workflow}: {count} job(s)")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
