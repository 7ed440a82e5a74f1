import subprocess

import pytest

from clean_git_history.git import ExternalCommandError, GitError, GitRepo, OutputMode


class Recorder:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.calls = []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def recorder(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr("clean_git_history.git.subprocess.run", rec)
    return rec


def test_run_uses_argument_vector_without_shell(recorder, tmp_path):
    recorder.stdout = "main\n"
    result = GitRepo(tmp_path).run("rev-parse", "--abbrev-ref", "HEAD")

    cmd, kwargs = recorder.calls[0]
    assert cmd == ["git", "rev-parse", "--abbrev-ref", "HEAD"]
    assert "shell" not in kwargs
    assert kwargs["cwd"] == tmp_path
    assert kwargs["env"] is None
    assert result.stdout == "main\n"
    assert result.exit_status == 0


def test_run_layers_env_over_os_environ(recorder, tmp_path, monkeypatch):
    monkeypatch.setenv("EXISTING", "1")
    GitRepo(tmp_path).run("status", env={"EXTRA": "$(rm -rf /)"})

    env = recorder.calls[0][1]["env"]
    assert env["EXISTING"] == "1"
    assert env["EXTRA"] == "$(rm -rf /)"


def test_inherit_mode_lets_stdout_through(recorder, tmp_path):
    GitRepo(tmp_path).run("filter-branch", mode=OutputMode.INHERIT)

    kwargs = recorder.calls[0][1]
    assert kwargs["stdout"] is None
    assert kwargs["stderr"] == subprocess.PIPE


def test_nonzero_exit_raises_with_stderr(recorder, tmp_path):
    recorder.returncode = 1
    recorder.stderr = "Cannot create a new backup.\nA previous backup already exists in refs/original/\n"

    with pytest.raises(ExternalCommandError) as excinfo:
        GitRepo(tmp_path).run("filter-branch", "--all", operation="Rewriting history")

    error = excinfo.value
    assert error.operation == "Rewriting history"
    assert error.exit_status == 1
    assert error.command == ["git", "filter-branch", "--all"]
    assert "previous backup already exists" in str(error)
    assert "Rewriting history failed" in str(error)


def test_missing_git_binary(monkeypatch, tmp_path):
    def boom(cmd, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr("clean_git_history.git.subprocess.run", boom)
    with pytest.raises(GitError, match="git executable not found"):
        GitRepo(tmp_path).run("status")


def test_get_config_unset_is_none(recorder, tmp_path):
    recorder.returncode = 1
    assert GitRepo(tmp_path).get_config("user.name") is None


def test_get_config_strips_value(recorder, tmp_path):
    recorder.stdout = "Jane Doe\n"
    assert GitRepo(tmp_path).get_config("user.name") == "Jane Doe"
    assert recorder.calls[0][0] == ["git", "config", "--get", "user.name"]


@pytest.mark.parametrize("stdout,returncode", [("HEAD\n", 0), ("", 0), ("", 128)])
def test_current_branch_undeterminable(recorder, tmp_path, stdout, returncode):
    recorder.stdout = stdout
    recorder.returncode = returncode
    assert GitRepo(tmp_path).get_current_branch() is None


def test_push_with_lease_never_plain_force(recorder, tmp_path):
    GitRepo(tmp_path).push_with_lease("main")

    cmd = recorder.calls[0][0]
    assert cmd == ["git", "push", "--force-with-lease", "origin", "main"]
    assert "--force" not in cmd


def test_backup_refs(recorder, tmp_path):
    recorder.stdout = "refs/original/refs/heads/main\n"
    repo = GitRepo(tmp_path)
    assert repo.get_backup_refs() == ["refs/original/refs/heads/main"]
    assert repo.has_backup_refs()


def test_check_repository_outside_repo(recorder, tmp_path):
    recorder.returncode = 128
    with pytest.raises(GitError, match="Not a git repository"):
        GitRepo(tmp_path).check_repository()


def test_inherit_mode_error_is_marked_echoed(recorder, tmp_path, capsys):
    recorder.returncode = 1
    recorder.stderr = "Cannot rewrite branches: You have unstaged changes.\n"

    with pytest.raises(ExternalCommandError) as excinfo:
        GitRepo(tmp_path).run("filter-branch", mode=OutputMode.INHERIT)

    assert excinfo.value.echoed
    assert "unstaged changes" in capsys.readouterr().err


def test_capture_mode_error_is_not_echoed(recorder, tmp_path):
    recorder.returncode = 1
    recorder.stderr = "fatal: bad revision\n"

    with pytest.raises(ExternalCommandError) as excinfo:
        GitRepo(tmp_path).run("log")

    assert not excinfo.value.echoed


def test_push_streams_stderr_to_terminal(recorder, tmp_path):
    GitRepo(tmp_path).push_with_lease("main")

    kwargs = recorder.calls[0][1]
    assert kwargs["stdout"] is None
    assert kwargs["stderr"] is None


def test_check_repository_moves_to_toplevel(recorder, tmp_path):
    toplevel = tmp_path / "checkout"
    recorder.stdout = f"{toplevel}\n"
    repo = GitRepo(tmp_path / "checkout" / "sub")

    repo.check_repository()

    assert recorder.calls[-1][0] == ["git", "rev-parse", "--show-toplevel"]
    assert repo.path == toplevel


def test_check_repository_bare_keeps_path(monkeypatch, tmp_path):
    def fake_run(cmd, **kwargs):
        returncode = 128 if "--show-toplevel" in cmd else 0
        return subprocess.CompletedProcess(cmd, returncode, ".\n", "fatal: not a work tree\n")

    monkeypatch.setattr("clean_git_history.git.subprocess.run", fake_run)
    repo = GitRepo(tmp_path)
    repo.check_repository()
    assert repo.path == tmp_path
