"""Git repository operations."""

from tendril.git.client import GitClient
from tendril.git.models import ChangedFile, ChangeType, CloneProgress, CloneProgressKind, CommitHistory, StateField
from tendril.git.runner import CommandRunner, GitCommandRunner

__all__ = [
    "ChangeType",
    "ChangedFile",
    "CloneProgress",
    "CloneProgressKind",
    "CommandRunner",
    "CommitHistory",
    "GitClient",
    "GitCommandRunner",
    "StateField",
]
