import pytest

from workflowgen.dsl import MERGE, PULL_REQUEST, build, job_type, needs, sh
from workflowgen.errors import ConfigurationError, CycleError
from workflowgen.model import JobType, JobTypeDependency, ProjectType, Step
from workflowgen.registry import TypeRegistry, builtin_types, load_types_file, resolve_types


def test_registry_is_a_read_only_mapping(golang, lambda_type):
    registry = TypeRegistry([golang, lambda_type])

    assert sorted(registry) == ["golang", "lambda"]
    assert registry["lambda"] is lambda_type
    assert registry.get_type("golang") is golang
    with pytest.raises(TypeError):
        registry._types["x"] = golang


def test_unknown_type(golang):
    with pytest.raises(ConfigurationError, match="'rust' not found"):
        TypeRegistry([golang]).get_type("rust")


def test_duplicate_identifier(golang):
    other = build("golang").build()
    with pytest.raises(ConfigurationError, match="duplicate project type"):
        TypeRegistry([golang, other])


def test_dependency_type_must_be_registered(lambda_type):
    with pytest.raises(ConfigurationError, match="not registered"):
        TypeRegistry([lambda_type])


def test_job_index_checked_up_front(golang):
    bad = build("bad").depends_on("go", golang).on(MERGE, job_type("x", sh("X", "true"), needs=[needs("go", 3)])).build()
    with pytest.raises(ConfigurationError, match="job #3 of 'golang'"):
        TypeRegistry([golang, bad])


def test_undeclared_dependency_checked_up_front(golang):
    bad = build("bad").on(PULL_REQUEST, job_type("x", sh("X", "true"), needs=["go"])).build()
    with pytest.raises(ConfigurationError, match="does not declare"):
        TypeRegistry([golang, bad])


def test_duplicate_job_names(golang):
    bad = build("bad").on(PULL_REQUEST, job_type("x", sh("X", "true")), job_type("x", sh("Y", "true"))).build()
    with pytest.raises(ConfigurationError, match="repeats job names"):
        TypeRegistry([bad])


def test_type_level_cycle_is_rejected():
    a = ProjectType(
        identifier="a",
        workflows={PULL_REQUEST: (JobType("one", (Step(run="true"),), (JobTypeDependency("peer", 0),)),)},
    )
    b = ProjectType(
        identifier="b",
        dependencies={"peer": a},
        workflows={PULL_REQUEST: (JobType("two", (Step(run="true"),), (JobTypeDependency("peer", 0),)),)},
    )
    object.__setattr__(a, "dependencies", {"peer": b})

    with pytest.raises(CycleError) as excinfo:
        TypeRegistry([a, b])
    assert excinfo.value.chain[0] == excinfo.value.chain[-1]


def test_chains_without_cycles_are_accepted(golang, lambda_type):
    wrapper = build("wrapper").depends_on("fn", lambda_type).on(PULL_REQUEST, job_type("e2e", sh("E2E", "true"), needs=["fn"])).build()
    registry = TypeRegistry([golang, lambda_type, wrapper])
    assert len(registry) == 3


def test_builtin_types_are_valid():
    config = builtin_types()
    assert {"golang", "lambda", "terraform"} <= set(config.registry)
    assert "generate-workflows-check.yaml" in config.static_files
    assert config.source is None


def test_describe(golang, lambda_type):
    lines = TypeRegistry([golang, lambda_type]).describe()
    assert lines[0] == "golang"
    assert "  Pull Request: test, lint" in lines
    assert "lambda (depends on source: golang)" in lines


TYPES_FILE = """
from workflowgen.dsl import PULL_REQUEST, build, job_type, sh

def project_types():
    py = build("python").on(PULL_REQUEST, job_type("pytest", sh("Test", "cd {{ path }} && pytest"))).build()
    return [py]

STATIC_FILES = {"extra.yaml": "name: Extra\\n"}
"""


def test_load_types_file(tmp_path):
    path = tmp_path / "my_types.py"
    path.write_text(TYPES_FILE, encoding="utf-8")

    config = load_types_file(path)

    assert list(config.registry) == ["python"]
    assert config.static_files == {"extra.yaml": "name: Extra\n"}
    assert config.source == path.resolve()


def test_load_types_file_constant(tmp_path):
    path = tmp_path / "types.py"
    path.write_text("from workflowgen.dsl import build\nPROJECT_TYPES = [build('empty').build()]\n", encoding="utf-8")
    assert list(load_types_file(path).registry) == ["empty"]


def test_load_types_file_rejects_wrong_shape(tmp_path):
    path = tmp_path / "types.py"
    path.write_text("PROJECT_TYPES = ['golang']\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="List\\[ProjectType\\]"):
        load_types_file(path)


def test_load_types_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_types_file(tmp_path / "nope.py")


def test_resolve_types_prefers_repo_file(tmp_path):
    assert resolve_types(None, tmp_path).source is None

    (tmp_path / "workflowgen_types.py").write_text(TYPES_FILE, encoding="utf-8")
    assert list(resolve_types(None, tmp_path).registry) == ["python"]
