"""Git client: runs git, interprets its output and keeps branch state."""

import logging
from contextlib import closing
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from tendril.config import TendrilConfig
from tendril.errors import ErrorCode, GitError
from tendril.git.models import BranchName, ChangedFile, CloneProgress, CommitHistory, StateField
from tendril.git.parsers import (
    CHECKOUT_SUCCESS_PHRASES,
    classify,
    history_format,
    parse_branch_names,
    parse_changed_files,
    parse_clone_progress,
    parse_commit_history,
    parse_remote_url,
)
from tendril.git.runner import CommandRunner, GitCommandRunner
from tendril.git.state import RepositoryState, RepositoryStateView

logger = logging.getLogger(__name__)


class GitClient:
    """Git operations for one working directory.

    Construction never fails because of the repository itself: the initial
    branch refresh is best effort and its errors are only logged. Every
    other public method raises :class:`GitError` on failure.
    """

    def __init__(
        self,
        path: Union[str, Path],
        runner: Optional[CommandRunner] = None,
        config: Optional[TendrilConfig] = None,
    ) -> None:
        """Initialize the client and load the initial branch state.

        Parameters
        ----------
        path : str | Path
            Working directory of the repository. It does not have to exist
            yet when the client is used to clone into it.
        runner : Optional[CommandRunner]
            Command runner, defaults to a :class:`GitCommandRunner`
        config : Optional[TendrilConfig]
            Configuration, defaults to ``TendrilConfig()``
        """
        self.config = config or TendrilConfig()
        self.path = Path(path).expanduser().resolve()
        self.runner = runner or GitCommandRunner(self.config.git.executable)
        self._state = RepositoryState(self.config.unknown_branch_name)
        self._refresh_quietly()

    @property
    def state(self) -> RepositoryStateView:
        """Read-only, subscribable branch state."""
        return self._state.view()

    def _run(self, *args: str) -> str:
        return self.runner.run(list(args), self.path)

    def _refresh_quietly(self) -> None:
        """Refresh all branch state, ignoring failures."""
        for refresh in (
            self.refresh_current_branch,
            lambda: self.refresh_branches(all_branches=False),
            lambda: self.refresh_branches(all_branches=True),
        ):
            try:
                refresh()
            except GitError as err:
                logger.debug("Skipping branch state refresh for %s: %s", self.path, err)

    # Branch state
    def refresh_current_branch(self) -> BranchName:
        """Read the current branch name and publish it.

        Returns
        -------
        str
            The current branch name, ``HEAD`` when detached

        Raises
        ------
        GitError
            If the directory is not a git repository
        """
        output = classify(self._run("rev-parse", "--abbrev-ref", "HEAD"), check_fatal=False)
        # Only the first line is the name, anything after it comes from stderr
        name = output.split("\n", 1)[0]
        self._state.publish(StateField.CURRENT_BRANCH, name)
        return name

    def refresh_branches(self, all_branches: bool = False) -> List[BranchName]:
        """Read the branch list and publish it.

        Parameters
        ----------
        all_branches : bool
            Include remote-tracking branches

        Returns
        -------
        List[str]
            Branch names in the order git reports them

        Raises
        ------
        GitError
            If the directory is not a git repository
        """
        args = ["branch", "-a"] if all_branches else ["branch"]
        names = parse_branch_names(classify(self._run(*args), check_fatal=False))
        field = StateField.ALL_BRANCHES if all_branches else StateField.BRANCHES
        self._state.publish(field, names)
        return names

    def current_branch_name(self) -> BranchName:
        """Return the current branch name, refreshing the published state."""
        return self.refresh_current_branch()

    def branches(self, all_branches: bool = False) -> List[BranchName]:
        """Return branch names, refreshing the published state."""
        return self.refresh_branches(all_branches)

    def checkout(self, name: BranchName) -> None:
        """Switch to a branch.

        Does nothing when ``name`` is already the known current branch.

        Parameters
        ----------
        name : str
            Branch to switch to

        Raises
        ------
        GitError
            If git does not report a switch
        """
        if self._state.value(StateField.CURRENT_BRANCH) == name:
            return

        output = self._run("checkout", name)
        try:
            classify(output, expected_phrases=CHECKOUT_SUCCESS_PHRASES)
        except GitError as err:
            logger.error(output)
            err.branch_name = name
            raise

        try:
            self.refresh_current_branch()
        except GitError as err:
            logger.debug("Checked out '%s' but could not refresh current branch: %s", name, err)

    # Remote sync
    def pull(self) -> None:
        """Pull from the tracked remote.

        Only a missing repository is treated as a failure; merge conflicts
        and other messages are not inspected.
        """
        classify(self._run("pull"), check_fatal=False)

    def clone(self, source: str, branch: BranchName, all_branches: bool = False) -> Iterator[CloneProgress]:
        """Clone ``source`` into this client's directory.

        Parameters
        ----------
        source : str
            URL or path of the repository to clone
        branch : str
            Branch to check out
        all_branches : bool
            Clone every branch and then check out ``branch``, instead of
            cloning only ``branch``

        Returns
        -------
        Iterator[CloneProgress]
            Progress events in the order git writes them. Closing the
            iterator stops the clone.

        Raises
        ------
        GitError
            While iterating: NOT_A_REPOSITORY if git reports it, OUTPUT_ERROR
            for any other failure of the underlying command
        """
        target = str(self.path)
        if all_branches:
            steps = [
                (["clone", "--progress", source, target], self.path.parent),
                (["checkout", branch], self.path),
            ]
        else:
            steps = [(["clone", "--progress", "-b", branch, "--single-branch", source, target], self.path.parent)]
        return self._clone_progress(steps)

    def _clone_progress(self, steps: Sequence) -> Iterator[CloneProgress]:
        # git creates the target itself, but clone runs from its parent
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise GitError(
                f"Failed to create clone directory: {err}",
                code=ErrorCode.COMMAND_ERROR,
                details=str(self.path.parent),
                cause=err,
            ) from err

        for args, cwd in steps:
            with closing(self.runner.run_incremental(args, cwd)) as lines:
                try:
                    for line in lines:
                        classify(line, check_fatal=False)
                        yield parse_clone_progress(line)
                except GitError:
                    raise
                except Exception as err:
                    raise GitError(
                        f"Failed to read clone output: {err}",
                        code=ErrorCode.OUTPUT_ERROR,
                        details=str(err),
                        cause=err,
                    ) from err
        logger.info("Cloned into %s", self.path)
        self._refresh_quietly()

    # Working tree
    def changed_files(self) -> List[ChangedFile]:
        """List files with uncommitted changes, untracked files included.

        Raises
        ------
        GitError
            NOT_A_REPOSITORY, or URL_DECODE_FAILURE if any status line is
            malformed
        """
        output = classify(self._run("status", "-s", "--porcelain", "-u"), check_fatal=False)
        return parse_changed_files(output, self.path)

    def commit_history(self, max_entries: Optional[int] = None, path_filter: Optional[str] = None) -> List[CommitHistory]:
        """Return the commit log, newest first.

        Parameters
        ----------
        max_entries : Optional[int]
            Maximum number of commits, unlimited when None
        path_filter : Optional[str]
            Only commits touching this path, following renames

        Returns
        -------
        List[CommitHistory]
            Commits sharing one resolved remote URL
        """
        separator = self.config.git.history_separator
        args = ["log", history_format(separator)]
        if max_entries is not None:
            args += ["-n", str(max_entries)]
        if path_filter:
            args += ["--follow", "--", path_filter]
        output = classify(self._run(*args), check_fatal=False)

        remote_url = parse_remote_url(self._run("ls-remote", "--get-url"))
        return parse_commit_history(output, remote_url, separator)

    def discard_file_changes(self, path: str) -> None:
        """Restore one file to its committed state."""
        classify(self._run("restore", "--", path))
        logger.info("Successfully discarded changes in %s", path)

    def discard_all_changes(self) -> None:
        """Restore every tracked file to its committed state."""
        classify(self._run("restore", "."))
        logger.info("Successfully discarded all changes")

    def stash_changes(self, message: Optional[str] = None) -> None:
        """Stash the working tree, optionally with a message."""
        args = ["stash", "push", "-m", message] if message else ["stash"]
        classify(self._run(*args))
        logger.info("Successfully stashed changes")

    def stage(self, paths: Sequence[str]) -> None:
        """Add files to the index."""
        classify(self._run("add", "--", *paths))
        logger.info("Successfully staged files: %s", ", ".join(paths))

    def unstage(self, paths: Sequence[str]) -> None:
        """Remove files from the index, keeping working tree changes."""
        classify(self._run("restore", "--staged", "--", *paths))
        logger.info("Successfully unstaged files: %s", ", ".join(paths))

    def commit(self, message: str) -> None:
        """Commit the index.

        Note that the output echoes the subject line, so a message containing
        "fatal" is reported as a failure.
        """
        classify(self._run("commit", "-m", message))
        logger.info('Successfully committed with message "%s"', message)
