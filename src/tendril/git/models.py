"""Value types produced by the git client."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Optional

BranchName = str


class ChangeType(Enum):
    """Change classification of a file in the working tree, keyed by status letter."""

    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"
    UPDATED_UNMERGED = "U"
    UNTRACKED = "?"
    IGNORED = "!"
    UNKNOWN = ""

    @classmethod
    def from_letter(cls, letter: str) -> "ChangeType":
        """Map a status letter to a change type, falling back to UNKNOWN."""
        if not letter:
            return cls.UNKNOWN
        try:
            return cls(letter)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class ChangedFile:
    """A file with uncommitted changes."""

    path: Path
    change_type: ChangeType


@dataclass(frozen=True)
class CommitHistory:
    """One entry of the commit log."""

    hash: str
    commit_hash: str
    message: str
    author: str
    author_email: str
    committer: str
    committer_email: str
    remote_url: Optional[str]
    date: datetime
    is_merge: Optional[bool] = None


class CloneProgressKind(Enum):
    """Kinds of progress reported while cloning."""

    STARTED = auto()
    COUNTING_OBJECTS = auto()
    COMPRESSING_OBJECTS = auto()
    RECEIVING_OBJECTS = auto()
    RESOLVING_DELTAS = auto()
    OTHER = auto()


@dataclass(frozen=True)
class CloneProgress:
    """One classified line of clone output.

    ``percent`` is set for the four object/delta kinds, ``raw`` for OTHER.
    """

    kind: CloneProgressKind
    percent: Optional[int] = None
    raw: Optional[str] = None


class StateField(Enum):
    """Observable fields of the repository state."""

    CURRENT_BRANCH = auto()
    BRANCHES = auto()
    ALL_BRANCHES = auto()
