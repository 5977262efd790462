"""Tests for git output parsers."""

import locale
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from tendril.errors import ErrorCode, GitError
from tendril.git.models import ChangeType, CloneProgress, CloneProgressKind
from tendril.git.parsers import (
    CHECKOUT_SUCCESS_PHRASES,
    classify,
    history_format,
    parse_branch_names,
    parse_changed_files,
    parse_clone_progress,
    parse_commit_date,
    parse_commit_history,
    parse_remote_url,
    parse_status_line,
)

ROOT = Path("/work/repo")
NOT_A_REPO = "fatal: not a git repository (or any of the parent directories): .git"


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"check_fatal": False},
        {"expected_phrases": CHECKOUT_SUCCESS_PHRASES},
    ],
)
def test_classify_not_a_repository(kwargs) -> None:
    """Test that the sentinel wins over every other rule."""
    output = f"Switched to branch 'main'\n{NOT_A_REPO}"
    with pytest.raises(GitError) as exc_info:
        classify(output, **kwargs)
    assert exc_info.value.code == ErrorCode.NOT_A_REPOSITORY


def test_classify_expected_phrase() -> None:
    """Test the expected phrase rule."""
    assert classify("Switched to a new branch 'x'", CHECKOUT_SUCCESS_PHRASES)

    with pytest.raises(GitError) as exc_info:
        classify("error: pathspec 'x' did not match", CHECKOUT_SUCCESS_PHRASES)
    assert exc_info.value.code == ErrorCode.OUTPUT_ERROR
    assert exc_info.value.details == "error: pathspec 'x' did not match"


def test_classify_fatal_substring() -> None:
    """Test the generic fatal rule and its opt-out."""
    with pytest.raises(GitError, match="Git command failed"):
        classify("fatal: pathspec 'nope' did not match any files")

    assert classify("fatal: refusing to merge", check_fatal=False) == "fatal: refusing to merge"
    assert classify("") == ""


def test_parse_branch_names() -> None:
    """Test parsing git branch output."""
    output = "\n".join(
        [
            "  feature/login",
            "* main",
            "+ worktree-branch",
            "  remotes/origin/HEAD -> origin/main",
            "  remotes/origin/main",
            "",
        ]
    )
    assert parse_branch_names(output) == [
        "feature/login",
        "main",
        "worktree-branch",
        "remotes/origin/main",
    ]


def test_parse_branch_names_detached() -> None:
    """Test that a detached HEAD entry is skipped."""
    assert parse_branch_names("* (HEAD detached at 1a2b3c4)\n  main\n") == ["main"]


@pytest.mark.parametrize(
    "line, change_type, relative",
    [
        ("M  src/app.go", ChangeType.MODIFIED, "src/app.go"),
        ("M src/app.go", ChangeType.MODIFIED, "src/app.go"),
        (" M src/app.go", ChangeType.MODIFIED, "src/app.go"),
        ("A  new file.txt", ChangeType.ADDED, "new file.txt"),
        (" D gone.txt", ChangeType.DELETED, "gone.txt"),
        ("R  old.txt -> new.txt", ChangeType.RENAMED, "new.txt"),
        ("C  a.txt -> b.txt", ChangeType.COPIED, "b.txt"),
        ("UU conflict.txt", ChangeType.UPDATED_UNMERGED, "conflict.txt"),
        ("?? notes.txt", ChangeType.UNTRACKED, "notes.txt"),
        ('?? "new file.txt"', ChangeType.UNTRACKED, "new file.txt"),
        ('R  "a b.txt" -> "c d.txt"', ChangeType.RENAMED, "c d.txt"),
        ('?? "\\303\\251t\\303\\251.txt"', ChangeType.UNTRACKED, "\u00e9t\u00e9.txt"),
        ('?? "tab\\there.txt"', ChangeType.UNTRACKED, "tab\there.txt"),
        ('?? "say \\"hi\\" \\\\ bye.txt"', ChangeType.UNTRACKED, 'say "hi" \\ bye.txt'),
        ('R  "\\303\\251.txt" -> "\\303\\250.txt"', ChangeType.RENAMED, "\u00e8.txt"),
        ("!! build/", ChangeType.IGNORED, "build/"),
        ("T  link", ChangeType.UNKNOWN, "link"),
    ],
)
def test_parse_status_line(line: str, change_type: ChangeType, relative: str) -> None:
    """Test parsing of individual status lines."""
    item = parse_status_line(line, ROOT)
    assert item.change_type == change_type
    assert item.path == ROOT / relative
    assert item.path.is_absolute()


@pytest.mark.parametrize("line", ["not-a-status-line", "M", "   ", "m  lowercase.txt"])
def test_parse_status_line_malformed(line: str) -> None:
    """Test that malformed lines raise a decode failure."""
    with pytest.raises(GitError) as exc_info:
        parse_status_line(line, ROOT)
    assert exc_info.value.code == ErrorCode.URL_DECODE_FAILURE


def test_parse_changed_files_aborts_on_bad_line() -> None:
    """Test that one bad line fails the whole batch."""
    assert [item.change_type for item in parse_changed_files("M  a.txt\n?? b.txt\n", ROOT)] == [
        ChangeType.MODIFIED,
        ChangeType.UNTRACKED,
    ]

    with pytest.raises(GitError) as exc_info:
        parse_changed_files("M  a.txt\nnot-a-status-line\n?? b.txt\n", ROOT)
    assert exc_info.value.code == ErrorCode.URL_DECODE_FAILURE


def test_history_format() -> None:
    """Test the log format argument."""
    assert history_format() == "--pretty=%h¦%H¦%s¦%aN¦%ae¦%cn¦%ce¦%aD¦"
    assert history_format("|") == "--pretty=%h|%H|%s|%aN|%ae|%cn|%ce|%aD|"


def test_parse_commit_history() -> None:
    """Test parsing two complete log lines."""
    output = (
        "abc1234¦abc1234ffff¦Add parser¦Ada¦ada@example.com¦Bob¦bob@example.com¦Mon, 03 Feb 2025 10:00:00 +0100¦\n"
        "def5678¦def5678eeee¦Initial commit¦Bob¦bob@example.com¦Bob¦bob@example.com¦Sun, 02 Feb 2025 09:30:15 +0000¦\n"
    )
    history = parse_commit_history(output, "git@example.com:org/repo.git")

    assert [entry.hash for entry in history] == ["abc1234", "def5678"]
    first = history[0]
    assert first.commit_hash == "abc1234ffff"
    assert first.message == "Add parser"
    assert first.author == "Ada"
    assert first.author_email == "ada@example.com"
    assert first.committer == "Bob"
    assert first.committer_email == "bob@example.com"
    assert first.date == datetime(2025, 2, 3, 10, 0, tzinfo=timezone(timedelta(hours=1)))
    assert first.is_merge is None
    assert {entry.remote_url for entry in history} == {"git@example.com:org/repo.git"}


def test_parse_commit_history_missing_fields() -> None:
    """Test that short lines default missing fields."""
    before = datetime.now().astimezone()
    history = parse_commit_history("abc1234¦abc1234ffff¦Subject¦Ada¦ada@example.com")
    after = datetime.now().astimezone()

    assert len(history) == 1
    entry = history[0]
    assert entry.author_email == "ada@example.com"
    assert entry.committer == ""
    assert entry.committer_email == ""
    assert entry.remote_url is None
    assert before <= entry.date <= after


def test_parse_commit_history_without_commits() -> None:
    """Test that the no-commits message yields no records."""
    output = "fatal: your current branch 'main' does not have any commits yet"
    assert parse_commit_history(output) == []


def test_parse_commit_date_fallback() -> None:
    """Test that an unparsable date falls back to now."""
    before = datetime.now().astimezone()
    assert before <= parse_commit_date("yesterday-ish") <= datetime.now().astimezone()


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Mon, 3 Feb 2025 10:00:00 +0100", datetime(2025, 2, 3, 9, 0, tzinfo=timezone.utc)),
        ("Sun, 02 Feb 2025 09:30:15 -0530", datetime(2025, 2, 2, 15, 0, 15, tzinfo=timezone.utc)),
        ("Sun, 02 Feb 2025 09:30:15 -0000", datetime(2025, 2, 2, 9, 30, 15, tzinfo=timezone.utc)),
    ],
)
def test_parse_commit_date(value: str, expected: datetime) -> None:
    """Test RFC 2822 dates, including an unknown zone."""
    parsed = parse_commit_date(value)
    assert parsed.tzinfo is not None
    assert parsed == expected


def test_parse_commit_date_ignores_locale() -> None:
    """Test that English names parse under a non-English time locale."""
    previous = locale.setlocale(locale.LC_TIME)
    try:
        locale.setlocale(locale.LC_TIME, "de_DE.UTF-8")
    except locale.Error:
        pytest.skip("de_DE.UTF-8 locale not available")
    try:
        parsed = parse_commit_date("Thu, 06 Mar 2025 12:00:00 +0000")
    finally:
        locale.setlocale(locale.LC_TIME, previous)

    assert parsed == datetime(2025, 3, 6, 12, 0, tzinfo=timezone.utc)


def test_parse_remote_url() -> None:
    """Test remote URL resolution."""
    assert parse_remote_url("https://example.com/repo.git\n") == "https://example.com/repo.git"
    assert parse_remote_url("\n") is None
    assert parse_remote_url("fatal: No remote configured to list refs from.") is None


@pytest.mark.parametrize(
    "line, expected",
    [
        ("Cloning into 'x'...", CloneProgress(CloneProgressKind.STARTED)),
        ("remote: Counting objects:  50% (1/2)", CloneProgress(CloneProgressKind.COUNTING_OBJECTS, percent=50)),
        ("remote: Compressing objects: 100% (3/3), done.", CloneProgress(CloneProgressKind.COMPRESSING_OBJECTS, 100)),
        ("Receiving objects:   7% (7/100), 1.00 MiB | 2.00 MiB/s", CloneProgress(CloneProgressKind.RECEIVING_OBJECTS, 7)),
        ("Resolving deltas:  33% (1/3)", CloneProgress(CloneProgressKind.RESOLVING_DELTAS, 33)),
        ("remote: Counting objects: 3, done.", CloneProgress(CloneProgressKind.COUNTING_OBJECTS, 0)),
        ("Receiving objects: abc%", CloneProgress(CloneProgressKind.RECEIVING_OBJECTS, 0)),
        ("remote: Enumerating objects: 5, done.", CloneProgress(CloneProgressKind.OTHER, raw="remote: Enumerating objects: 5, done.")),
    ],
)
def test_parse_clone_progress(line: str, expected: CloneProgress) -> None:
    """Test classification of clone output lines."""
    assert parse_clone_progress(line) == expected


def test_parse_clone_progress_priority() -> None:
    """Test that the first matching label wins."""
    assert parse_clone_progress("Cloning into 'Counting objects: 10%'").kind == CloneProgressKind.STARTED
    line = "Counting objects: 10% Receiving objects: 90%"
    assert parse_clone_progress(line) == CloneProgress(CloneProgressKind.COUNTING_OBJECTS, 10)


@pytest.mark.parametrize("line", ["", "%", "Resolving deltas: ", "Resolving deltas: %%%", "\x00\udcff", "💥"])
def test_parse_clone_progress_is_total(line: str) -> None:
    """Test that odd input never raises."""
    event = parse_clone_progress(line)
    assert isinstance(event, CloneProgress)
    if event.kind is not CloneProgressKind.OTHER:
        assert event.percent == 0
