"""Parsers for git command output.

Everything in this module is pure: raw text goes in, values come out.
"""

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import List, Optional, Sequence

from tendril.errors import ErrorCode, GitError
from tendril.git.models import (
    BranchName,
    ChangedFile,
    ChangeType,
    CloneProgress,
    CloneProgressKind,
    CommitHistory,
)

logger = logging.getLogger(__name__)

NOT_A_REPOSITORY_SENTINEL = "fatal: not a git repository"
FATAL_MARKER = "fatal"
# git log in a repository whose current branch has no commits
NO_COMMITS_PHRASE = "does not have any commits yet"

CHECKOUT_SUCCESS_PHRASES = ("Switched to branch", "Switched to a new branch")

# Short status line: two status columns (either may be blank), a space, the path
STATUS_LINE_PATTERN = re.compile(r"(?P<index>[A-Z?! ])(?P<worktree>[A-Z?! ])? (?P<path>.+)")
RENAME_ARROW = " -> "

# Escapes git uses inside quoted paths (core.quotePath)
C_ESCAPE_PATTERN = re.compile(r"\\([0-7]{3}|.)")
C_ESCAPES = {
    "a": b"\a",
    "b": b"\b",
    "f": b"\f",
    "n": b"\n",
    "r": b"\r",
    "t": b"\t",
    "v": b"\v",
    '"': b'"',
    "\\": b"\\",
}

HISTORY_FIELDS = ("%h", "%H", "%s", "%aN", "%ae", "%cn", "%ce", "%aD")
DEFAULT_HISTORY_SEPARATOR = "¦"

STARTED_LABEL = "Cloning into"
PROGRESS_LABELS = (
    ("Counting objects: ", CloneProgressKind.COUNTING_OBJECTS),
    ("Compressing objects: ", CloneProgressKind.COMPRESSING_OBJECTS),
    ("Receiving objects: ", CloneProgressKind.RECEIVING_OBJECTS),
    ("Resolving deltas: ", CloneProgressKind.RESOLVING_DELTAS),
)


def classify(
    output: str,
    expected_phrases: Optional[Sequence[str]] = None,
    check_fatal: bool = True,
) -> str:
    """Decide whether raw command output represents a failure.

    Parameters
    ----------
    output : str
        Combined stdout/stderr of the command
    expected_phrases : Optional[Sequence[str]]
        Phrases of which at least one must appear for the command to count
        as successful
    check_fatal : bool
        Whether any occurrence of "fatal" marks the output as failed. Ignored
        when ``expected_phrases`` is given.

    Returns
    -------
    str
        The unchanged output

    Raises
    ------
    GitError
        NOT_A_REPOSITORY when the output carries the not-a-repository
        sentinel, OUTPUT_ERROR for any other failure
    """
    if NOT_A_REPOSITORY_SENTINEL in output:
        raise GitError("Not a git repository", code=ErrorCode.NOT_A_REPOSITORY, details=output)

    if expected_phrases:
        if not any(phrase in output for phrase in expected_phrases):
            raise GitError("Unexpected git output", code=ErrorCode.OUTPUT_ERROR, details=output)
    elif check_fatal and FATAL_MARKER in output:
        raise GitError("Git command failed", code=ErrorCode.OUTPUT_ERROR, details=output)

    return output


def parse_branch_names(output: str) -> List[BranchName]:
    """Parse the output of ``git branch``.

    The current-branch marker is removed, symbolic aliases such as
    ``remotes/origin/HEAD -> origin/main`` and detached HEAD entries are
    skipped. Order is preserved.
    """
    names = []
    for line in output.splitlines():
        name = line.strip().lstrip("*+ ")
        if not name or "->" in name or name.startswith("("):
            continue
        names.append(name)
    return names


def unquote_path(value: str) -> str:
    """Undo git's C-style quoting of a path.

    Unquoted values are returned unchanged. Octal escapes are bytes of the
    UTF-8 encoded name, e.g. ``"\\303\\251.txt"`` is ``é.txt``.
    """
    if len(value) < 2 or not (value.startswith('"') and value.endswith('"')):
        return value

    inner = value[1:-1]
    decoded = bytearray()
    position = 0
    for match in C_ESCAPE_PATTERN.finditer(inner):
        decoded += inner[position : match.start()].encode("utf-8")
        escape = match.group(1)
        if len(escape) == 3:
            decoded.append(int(escape, 8))
        else:
            decoded += C_ESCAPES.get(escape, escape.encode("utf-8"))
        position = match.end()
    decoded += inner[position:].encode("utf-8")
    return decoded.decode("utf-8", errors="surrogateescape")


def parse_status_line(line: str, root: Path) -> ChangedFile:
    """Parse one line of ``git status --short --porcelain``.

    Parameters
    ----------
    line : str
        A single status line, e.g. ``"M  src/app.py"`` or ``"?? notes.txt"``
    root : Path
        Repository root the reported path is relative to

    Returns
    -------
    ChangedFile
        The file with its absolute path and change type

    Raises
    ------
    GitError
        URL_DECODE_FAILURE if the line does not have the status shape
    """
    match = STATUS_LINE_PATTERN.fullmatch(line)
    letters = (match.group("index") + (match.group("worktree") or "")).strip() if match else ""
    if match is None or not letters:
        raise GitError(
            "Failed to decode status line",
            code=ErrorCode.URL_DECODE_FAILURE,
            details=f"Line: {line}",
        )

    file_name = match.group("path")
    if RENAME_ARROW in file_name:
        file_name = file_name.split(RENAME_ARROW, 1)[1]
    file_name = unquote_path(file_name)

    return ChangedFile(path=root / file_name, change_type=ChangeType.from_letter(letters[0]))


def parse_changed_files(output: str, root: Path) -> List[ChangedFile]:
    """Parse short status output; one malformed line fails the whole batch."""
    return [parse_status_line(line, root) for line in output.splitlines() if line]


def history_format(separator: str = DEFAULT_HISTORY_SEPARATOR) -> str:
    """Build the ``--pretty`` argument for the commit history query."""
    return "--pretty=" + separator.join(HISTORY_FIELDS) + separator


def parse_commit_date(value: str) -> datetime:
    """Parse an RFC 2822 author date, falling back to the current time.

    Day and month names are always English in git output, independent of
    the process locale.
    """
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError):
        logger.debug("Unparsable commit date %r, using current time", value)
        return datetime.now().astimezone()
    # "-0000" means the zone is unknown
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_remote_url(output: str) -> Optional[str]:
    """Parse ``git ls-remote --get-url`` output into a URL, if any."""
    url = output.strip()
    if not url or FATAL_MARKER in url:
        return None
    return url


def parse_commit_history(
    output: str,
    remote_url: Optional[str] = None,
    separator: str = DEFAULT_HISTORY_SEPARATOR,
) -> List[CommitHistory]:
    """Parse ``git log`` output produced with :func:`history_format`.

    Parameters
    ----------
    output : str
        Log output, one commit per line
    remote_url : Optional[str]
        Remote URL shared by every record
    separator : str
        Field separator used in the log format

    Returns
    -------
    List[CommitHistory]
        One record per non-empty line, in input order. Missing fields are
        empty strings. Empty when the current branch has no commits yet.
    """
    history = []
    for line in output.splitlines():
        if not line:
            continue
        if line.startswith(FATAL_MARKER) and NO_COMMITS_PHRASE in line:
            logger.debug("No commits yet: %s", line)
            continue
        fields = line.split(separator)
        fields += [""] * (len(HISTORY_FIELDS) - len(fields))
        history.append(
            CommitHistory(
                hash=fields[0],
                commit_hash=fields[1],
                message=fields[2],
                author=fields[3],
                author_email=fields[4],
                committer=fields[5],
                committer_email=fields[6],
                remote_url=remote_url,
                date=parse_commit_date(fields[7]),
            )
        )
    return history


def _leading_percent(text: str) -> int:
    value = text.replace(" ", "").split("%", 1)[0]
    try:
        return int(value)
    except ValueError:
        return 0


def parse_clone_progress(line: str) -> CloneProgress:
    """Classify one line of ``git clone --progress`` output.

    Never raises: a percentage that cannot be read is reported as 0 and
    unrecognised lines come back as OTHER with the raw text.
    """
    if STARTED_LABEL in line:
        return CloneProgress(CloneProgressKind.STARTED)

    for label, kind in PROGRESS_LABELS:
        index = line.find(label)
        if index != -1:
            return CloneProgress(kind, percent=_leading_percent(line[index + len(label) :]))

    return CloneProgress(CloneProgressKind.OTHER, raw=line)
