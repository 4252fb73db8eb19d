import pytest
import yaml

from workflowgen.dsl import MERGE, PULL_REQUEST, build, job_type, sh, uses
from workflowgen.errors import TemplateError
from workflowgen.materialize import materialize_workflows
from workflowgen.model import Job, Project, Step, Workflow
from workflowgen.render import diff_output, render_files, render_workflow, substitute, write_atomically


def make_job(**kw):
    defaults = dict(identifier="golang-foo-test", name="golang-foo test", project_name="golang-foo", project_path="svc/foo")
    defaults.update(kw)
    return Job(**defaults)


def test_substitute_placeholders():
    job = make_job()
    assert substitute("cd {{ path }} && echo {{name}}", job) == "cd svc/foo && echo golang-foo"


def test_substitute_leaves_github_expressions_alone():
    job = make_job()
    text = "${{ secrets.TOKEN }} ${{ github.sha }}"
    assert substitute(text, job) == text


def test_substitute_unknown_placeholder():
    with pytest.raises(TemplateError, match="unknown placeholder"):
        substitute("{{ version }}", make_job())


def test_render_workflow(golang, lambda_type, lambda_project):
    workflows = materialize_workflows([lambda_project, Project(type=golang, path="svc/bar")])

    text = render_workflow(workflows[PULL_REQUEST], branches=["main"])
    assert text.startswith("# Code generated by workflowgen. DO NOT EDIT.")

    doc = yaml.safe_load(text)
    assert doc["name"] == "Pull Request"
    assert doc["on"] == {"pull_request": {"branches": ["main"]}}
    assert list(doc["jobs"]) == ["golang-bar-test", "lambda-bar-deploy", "golang-bar-lint"]

    deploy = doc["jobs"]["lambda-bar-deploy"]
    assert deploy["needs"] == ["golang-bar-test"]
    assert deploy["runs-on"] == "ubuntu-latest"
    assert deploy["steps"] == [{"name": "Deploy", "run": "deploy lambda-bar"}]
    assert "needs" not in doc["jobs"]["golang-bar-test"]


def test_render_step_fields():
    step_job = job_type(
        "x",
        uses("actions/setup-go@v2", name="Setup", go_version="1.21"),
        sh("Script", "set -e\ncd {{ path }}\nmake\n", env={"WHERE": "{{ path }}"}),
    )
    t = build("t").on(MERGE, step_job).build()
    text = render_workflow(materialize_workflows([Project(type=t, path="a/b")])[MERGE])

    assert "run: |" in text
    steps = yaml.safe_load(text)["jobs"]["t-b-x"]["steps"]
    assert steps[0] == {"name": "Setup", "uses": "actions/setup-go@v2", "with": {"go_version": "1.21"}}
    assert steps[1] == {"name": "Script", "env": {"WHERE": "a/b"}, "run": "set -e\ncd a/b\nmake\n"}


def test_render_error_names_job_and_workflow():
    job = make_job(steps=(Step(name="bad", run="{{ nope }}"),))

    with pytest.raises(TemplateError) as excinfo:
        render_workflow(Workflow(identifier=MERGE, jobs=(job,)))
    assert "golang-foo-test" in excinfo.value.context[0]
    assert "Merge" in excinfo.value.context[1]


def test_render_files_skips_empty_workflows():
    t = build("t").on(PULL_REQUEST, job_type("x", sh("X", "true"))).build()
    files = render_files(materialize_workflows([Project(type=t, path="p")]), {"static.yaml": "name: Static\n"})

    assert sorted(files) == ["pull-request.yaml", "static.yaml"]
    assert files["static.yaml"] == "name: Static\n"


def test_static_file_collision():
    t = build("t").on(PULL_REQUEST, job_type("x", sh("X", "true"))).build()
    with pytest.raises(TemplateError, match="collides"):
        render_files(materialize_workflows([Project(type=t, path="p")]), {"pull-request.yaml": ""})


def test_write_atomically_replaces_directory(tmp_path):
    out = tmp_path / ".github" / "workflows"
    out.mkdir(parents=True)
    (out / "stale.yaml").write_text("old", encoding="utf-8")

    write_atomically(out, {"merge.yaml": "new"})

    assert sorted(p.name for p in out.iterdir()) == ["merge.yaml"]
    assert (out / "merge.yaml").read_text(encoding="utf-8") == "new"
    # no staging or backup directories are left behind
    assert [p.name for p in out.parent.iterdir()] == ["workflows"]


def test_write_atomically_creates_directory(tmp_path):
    out = tmp_path / "fresh"
    write_atomically(out, {"a.yaml": "a"})
    assert (out / "a.yaml").read_text(encoding="utf-8") == "a"


def test_write_failure_keeps_previous_output(tmp_path):
    out = tmp_path / "workflows"
    out.mkdir()
    (out / "merge.yaml").write_text("old", encoding="utf-8")

    with pytest.raises(OSError):
        write_atomically(out, {"missing-dir/merge.yaml": "new"})

    assert (out / "merge.yaml").read_text(encoding="utf-8") == "old"
    assert [p.name for p in tmp_path.iterdir()] == ["workflows"]


def test_diff_output(tmp_path):
    out = tmp_path / "workflows"
    out.mkdir()
    (out / "same.yaml").write_text("x\n", encoding="utf-8")
    (out / "stale.yaml").write_text("old\n", encoding="utf-8")
    (out / "extra.yaml").write_text("extra\n", encoding="utf-8")

    diffs = diff_output(out, {"same.yaml": "x\n", "stale.yaml": "new\n", "missing.yaml": "m\n"})

    assert len(diffs) == 3
    joined = "".join(diffs)
    assert "-old" in joined and "+new" in joined
    assert "+++ /dev/null" in joined
    assert "--- /dev/null" in joined
    assert diff_output(out, {"same.yaml": "x\n", "stale.yaml": "old\n", "extra.yaml": "extra\n"}) == []
