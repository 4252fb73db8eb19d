import pytest

from workflowgen.dsl import MERGE, PULL_REQUEST, build, job_type, needs, sh
from workflowgen.model import Project, ProjectIdentifier
from workflowgen.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))


@pytest.fixture
def golang():
    test = job_type("test", sh("Test", "cd {{ path }} && go test ./..."))
    lint = job_type("lint", sh("Lint", "cd {{ path }} && go vet ./..."))
    return build("golang").on(PULL_REQUEST, test, lint).on(MERGE, test).build()


@pytest.fixture
def lambda_type(golang):
    deploy = job_type("deploy", sh("Deploy", "deploy {{ name }}"), needs=[needs("source", 0)])
    return build("lambda").depends_on("source", golang).on(PULL_REQUEST, deploy).build()


@pytest.fixture
def lambda_project(lambda_type, golang):
    return Project(
        type=lambda_type,
        path="svc/bar",
        dependencies={"source": ProjectIdentifier(path="svc/bar", type=golang)},
    )


@pytest.fixture
def repo(tmp_path):
    """A repository with a go module and a lambda built from it."""
    (tmp_path / ".git").mkdir()
    bar = tmp_path / "svc" / "bar"
    bar.mkdir(parents=True)
    (bar / "projects.yaml").write_text(
        "projects:\n"
        "  - type: golang\n"
        "  - type: lambda\n"
        "    dependencies:\n"
        "      source:\n"
        "        type: golang\n",
        encoding="utf-8",
    )
    foo = tmp_path / "svc" / "foo"
    foo.mkdir(parents=True)
    (foo / "projects.yaml").write_text("projects:\n  - type: golang\n", encoding="utf-8")
    return tmp_path
