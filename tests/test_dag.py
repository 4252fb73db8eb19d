import pytest

from workflowgen.dag import stage_numbers, stages, verify_order
from workflowgen.errors import ConfigurationError
from workflowgen.model import Job


def job(identifier, *needs):
    return Job(identifier=identifier, name=identifier, project_name="p", project_path="p", dependencies=needs)


def test_stages_group_independent_jobs():
    jobs = [
        job("setup"),
        job("lint", "setup"),
        job("unit", "setup"),
        job("package", "lint", "unit"),
        job("e2e", "package"),
        job("docs"),
    ]
    assert stages(jobs) == [["setup", "docs"], ["lint", "unit"], ["package"], ["e2e"]]


def test_stage_follows_latest_need():
    numbers = stage_numbers([job("a"), job("b", "a"), job("c", "a", "b")])
    assert numbers == {"a": 0, "b": 1, "c": 2}


def test_no_jobs():
    assert stages([]) == []


def test_duplicate_identifiers():
    with pytest.raises(ConfigurationError, match="duplicate job identifier 'a'"):
        stages([job("a"), job("a")])


def test_unknown_need():
    with pytest.raises(ConfigurationError, match="before the job it needs, 'b'"):
        stages([job("a", "b")])


def test_verify_order():
    verify_order([job("a"), job("b", "a")])
    with pytest.raises(ConfigurationError, match="appears before"):
        verify_order([job("b", "a"), job("a")])
