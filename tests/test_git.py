from workflowgen.git_facts import git


def test_repo_root_falls_back_to_git_directory(tmp_path, monkeypatch):
    def no_git(args, cwd=None):
        raise FileNotFoundError("git")

    monkeypatch.setattr(git, "_git", no_git)
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "svc" / "foo"
    nested.mkdir(parents=True)

    assert git.repo_root(nested) == tmp_path.resolve()


def test_repo_root_prefers_git(tmp_path, monkeypatch):
    monkeypatch.setattr(git, "_git", lambda args, cwd=None: str(tmp_path))
    assert git.repo_root(tmp_path / "anything") == tmp_path
