# dag.py
from __future__ import annotations

from typing import Dict, Iterable, List

from .errors import ConfigurationError
from .model import Job


def stage_numbers(jobs: Iterable[Job]) -> Dict[str, int]:
    """
    Assign every job its stage: 0 without needs, otherwise one past the
    latest stage among the jobs it needs.

    Jobs must come in materialization order (each job after all the jobs it
    needs), so one pass is enough. Raises ConfigurationError on a duplicate
    identifier or a need that has not been seen yet.
    """
    numbers: Dict[str, int] = {}
    for job in jobs:
        if job.identifier in numbers:
            raise ConfigurationError(message=f"duplicate job identifier {job.identifier!r}")
        for need in job.needs:
            if need not in numbers:
                raise ConfigurationError(
                    message=f"job {job.identifier!r} appears before the job it needs, {need!r}",
                    details={"known": sorted(numbers)},
                )
        numbers[job.identifier] = 1 + max((numbers[n] for n in job.needs), default=-1)
    return numbers


def stages(jobs: Iterable[Job]) -> List[List[str]]:
    """
    Group jobs into stages; jobs of one stage can run in parallel on the CI
    runner. Within a stage, jobs keep their workflow order.
    """
    levels: List[List[str]] = []
    for identifier, number in stage_numbers(jobs).items():
        if number == len(levels):
            levels.append([])
        levels[number].append(identifier)
    return levels


def verify_order(jobs: Iterable[Job]) -> None:
    """Raise unless every job comes after all the jobs it needs."""
    stage_numbers(jobs)
