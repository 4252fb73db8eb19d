# git.py
# Small, focused wrapper around the Git CLI.
# The generator only needs to know where the repository starts.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional


def _git(args: list[str], cwd: Optional[str] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Args:
        args: List of git arguments (e.g. ["rev-parse", "--show-toplevel"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=cwd,
        text=True,
        stderr=subprocess.DEVNULL,
    )
    return out.strip()


def repo_root(start: Optional[str | Path] = None) -> Path:
    """
    Return the absolute path to the root of the repository containing `start`
    (defaults to the current directory).

    Git is the source of truth when available. Without git on PATH, or outside
    a work tree, the nearest ancestor holding a `.git` entry is used, and
    finally `start` itself.
    """
    here = Path(start or ".").resolve()
    try:
        return Path(_git(["rev-parse", "--show-toplevel"], cwd=str(here)))
    except (subprocess.CalledProcessError, FileNotFoundError):
        pass

    for candidate in (here, *here.parents):
        if (candidate / ".git").exists():
            return candidate
    return here
