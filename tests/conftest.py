"""Test fixtures and helper functions."""

from pathlib import Path
from typing import Generator

import pytest
from git.exc import GitCommandError
from git.repo.base import Repo

from tests.fakes import ScriptedRunner


@pytest.fixture(autouse=True)
def git_ceiling(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Stop git from discovering repositories above the test directory."""
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))


@pytest.fixture
def scripted_runner() -> ScriptedRunner:
    """Runner reporting a repository on ``main`` with one feature branch."""
    return ScriptedRunner(
        {
            ("rev-parse",): "main\n",
            ("branch",): "* main\n  feature\n",
            ("branch", "-a"): "* main\n  feature\n  remotes/origin/HEAD -> origin/main\n  remotes/origin/main\n",
        }
    )


@pytest.fixture
def remote_path(tmp_path: Path) -> Path:
    """Path of the bare repository used as ``origin`` by ``temp_repo``."""
    return tmp_path / "remote"


@pytest.fixture
def temp_repo(remote_path: Path) -> Generator[Repo, None, None]:
    """Create a temporary git repository with a remote.

    Yields
    -------
    Repo
        GitPython repository instance
    """
    # Create a bare repository to act as remote
    remote_path.mkdir()
    Repo.init(remote_path, bare=True)

    # Initialize local git repository
    repo_path = remote_path.parent / "test_repo"
    repo_path.mkdir()
    repo = Repo.init(repo_path, initial_branch="main")

    # Configure repository
    repo.git.config("core.autocrlf", "false")
    repo.git.config("core.filemode", "false")

    # Configure git user
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit
    readme_path = repo_path / "README.md"
    readme_path.write_text("# Test Repository")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Add remote and push with tracking
    repo.create_remote("origin", str(remote_path))
    repo.git.push("--set-upstream", "origin", "main")

    yield repo

    # Clean up any remaining changes
    try:
        repo.git.reset("--hard")
        repo.git.clean("-fd")
    except GitCommandError:
        pass
