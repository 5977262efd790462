"""Git command execution."""

import logging
import re
from pathlib import Path
from subprocess import PIPE, STDOUT, Popen
from typing import Iterator, List, Protocol, Sequence

from git.cmd import Git
from git.exc import CommandError

from tendril.errors import ErrorCode, GitError

logger = logging.getLogger(__name__)

LINE_BREAK = re.compile(rb"[\r\n]")
READ_SIZE = 4096


class CommandRunner(Protocol):
    """Runs git commands in a working directory."""

    def run(self, args: Sequence[str], cwd: Path) -> str:
        """Run a command and return its combined output."""

    def run_incremental(self, args: Sequence[str], cwd: Path) -> Iterator[str]:
        """Run a command and yield its combined output line by line."""


class GitCommandRunner:
    """Command runner backed by the local git executable."""

    def __init__(self, executable: str = "git") -> None:
        """Initialize the runner.

        Parameters
        ----------
        executable : str
            Name or path of the git executable
        """
        self.executable = executable

    def _command(self, args: Sequence[str]) -> List[str]:
        return [self.executable, *args]

    def run(self, args: Sequence[str], cwd: Path) -> str:
        """Run a git command and return its output.

        Parameters
        ----------
        args : Sequence[str]
            Command arguments, without the executable
        cwd : Path
            Working directory

        Returns
        -------
        str
            Stdout followed by stderr. A non-zero exit status is not an
            error here; callers classify the output.

        Raises
        ------
        GitError
            If the command cannot be launched
        """
        command = self._command(args)
        logger.debug("Running %s in %s", command, cwd)
        # Git() silently falls back to the process cwd for missing directories
        if not Path(cwd).is_dir():
            raise GitError(
                f"Working directory does not exist: {cwd}",
                code=ErrorCode.COMMAND_ERROR,
                details=" ".join(command),
            )
        try:
            _, stdout, stderr = Git(cwd).execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
            )
        except (CommandError, OSError) as err:
            raise GitError(
                f"Failed to run git command: {err}",
                code=ErrorCode.COMMAND_ERROR,
                details=" ".join(command),
                cause=err,
            ) from err
        return "\n".join(part for part in (stdout, stderr) if part)

    def run_incremental(self, args: Sequence[str], cwd: Path) -> Iterator[str]:
        """Run a git command and yield its output as it is written.

        Output is split on both carriage returns and newlines so that
        progress meters come through one update at a time. Closing the
        iterator kills the process.

        Parameters
        ----------
        args : Sequence[str]
            Command arguments, without the executable
        cwd : Path
            Working directory

        Yields
        ------
        str
            One non-empty output line

        Raises
        ------
        GitError
            If the command cannot be launched or exits with a non-zero status
        """
        command = self._command(args)
        logger.debug("Streaming %s in %s", command, cwd)
        try:
            proc = Popen(command, stdout=PIPE, stderr=STDOUT, cwd=cwd)
        except OSError as err:
            raise GitError(
                f"Failed to run git command: {err}",
                code=ErrorCode.COMMAND_ERROR,
                details=" ".join(command),
                cause=err,
            ) from err

        last_line = ""
        try:
            assert proc.stdout is not None
            pending = b""
            for chunk in iter(lambda: proc.stdout.read1(READ_SIZE), b""):
                *lines, pending = LINE_BREAK.split(pending + chunk)
                for raw in lines:
                    if raw:
                        last_line = raw.decode(errors="replace")
                        yield last_line
            if pending:
                last_line = pending.decode(errors="replace")
                yield last_line

            if proc.wait() != 0:
                raise GitError(
                    f"Git command exited with status {proc.returncode}",
                    code=ErrorCode.OUTPUT_ERROR,
                    details=last_line,
                )
        finally:
            if proc.poll() is None:
                logger.debug("Killing %s", command)
                proc.kill()
                proc.wait()
            if proc.stdout is not None:
                proc.stdout.close()
