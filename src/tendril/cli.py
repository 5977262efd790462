"""Command line interface for tendril."""

import logging
import sys
from pathlib import Path
from typing import Annotated, List, Optional

import typer
from rich import print
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from tendril.config import TendrilConfig
from tendril.errors import GitError
from tendril.git.client import GitClient
from tendril.git.models import CloneProgressKind

logger = logging.getLogger(__name__)

app = typer.Typer(help="Local git client")
console = Console()

PathOption = Annotated[Path, typer.Option(help="Path to git repository")]

PROGRESS_DESCRIPTIONS = {
    CloneProgressKind.STARTED: "Cloning",
    CloneProgressKind.COUNTING_OBJECTS: "Counting objects",
    CloneProgressKind.COMPRESSING_OBJECTS: "Compressing objects",
    CloneProgressKind.RECEIVING_OBJECTS: "Receiving objects",
    CloneProgressKind.RESOLVING_DELTAS: "Resolving deltas",
}


def _handle_git_error(err: GitError, exit_code: int = 1) -> None:
    """Handle git errors by printing them and exiting.

    Parameters
    ----------
    err : GitError
        The error to handle
    exit_code : int
        The exit code to use
    """
    print(f"Error: {err}")
    if err.details:
        console.print(err.details, markup=False, highlight=False)
    sys.exit(exit_code)


def _client(path: Path) -> GitClient:
    """Load configuration, set up logging and open a client for ``path``."""
    config = TendrilConfig.load_config()
    logging.basicConfig(level=config.log_level)
    logger.debug(f"Using repository at: {path}")
    return GitClient(path, config=config)


@app.command()
def branch(path: PathOption = Path(".")) -> None:
    """Show the current branch."""
    try:
        print(_client(path).current_branch_name())
    except GitError as err:
        _handle_git_error(err)


@app.command()
def branches(
    path: PathOption = Path("."),
    all_branches: bool = typer.Option(False, "--all", "-a", help="Include remote-tracking branches"),
) -> None:
    """List branches."""
    try:
        client = _client(path)
        names = client.branches(all_branches)
        current = client.state.current_branch

        table = Table(title="Branches")
        table.add_column("Branch", style="cyan")
        table.add_column("Current", style="green")
        for name in names:
            table.add_row(name, "*" if name == current else "")

        console.print(table)
    except GitError as err:
        _handle_git_error(err)


@app.command()
def status(path: PathOption = Path(".")) -> None:
    """List changed files."""
    try:
        client = _client(path)
        changed = client.changed_files()
        if not changed:
            print("Working tree clean")
            return

        table = Table(title="Changes")
        table.add_column("Status", style="magenta")
        table.add_column("File", style="cyan")
        for item in changed:
            table.add_row(item.change_type.name.lower(), str(item.path.relative_to(client.path)))

        console.print(table)
    except GitError as err:
        _handle_git_error(err)


@app.command()
def log(
    path: PathOption = Path("."),
    max_entries: Optional[int] = typer.Option(None, "--max-count", "-n", help="Number of commits to show"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Only show commits touching this file"),
) -> None:
    """Show commit history."""
    try:
        history = _client(path).commit_history(max_entries, file)

        table = Table(title="History")
        table.add_column("Commit", style="yellow")
        table.add_column("Date", style="green")
        table.add_column("Author", style="cyan")
        table.add_column("Message")
        for entry in history:
            table.add_row(entry.hash, entry.date.strftime("%Y-%m-%d %H:%M"), entry.author, entry.message)

        console.print(table)
    except GitError as err:
        _handle_git_error(err)


@app.command()
def checkout(
    branch_name: Annotated[str, typer.Argument(help="Name of the branch to switch to")],
    path: PathOption = Path("."),
) -> None:
    """Switch to a branch."""
    try:
        client = _client(path)
        client.checkout(branch_name)
        print(f"On branch '{client.state.current_branch}'")
    except GitError as err:
        _handle_git_error(err)


@app.command()
def pull(path: PathOption = Path(".")) -> None:
    """Pull from the tracked remote."""
    try:
        _client(path).pull()
        print("Pulled")
    except GitError as err:
        _handle_git_error(err)


@app.command()
def clone(
    source: Annotated[str, typer.Argument(help="Repository to clone")],
    destination: Annotated[Path, typer.Argument(help="Directory to clone into")],
    branch_name: str = typer.Option("main", "--branch", "-b", help="Branch to check out"),
    all_branches: bool = typer.Option(False, "--all-branches", help="Fetch every branch, not only the checked out one"),
) -> None:
    """Clone a repository, showing progress."""
    try:
        client = _client(destination)
        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Cloning", total=100)
            for event in client.clone(source, branch_name, all_branches):
                if event.kind is CloneProgressKind.OTHER:
                    logger.debug(event.raw)
                    continue
                progress.update(task, description=PROGRESS_DESCRIPTIONS[event.kind], completed=event.percent or 0)
        print(f"Cloned '{source}' into {client.path}")
    except GitError as err:
        _handle_git_error(err)


@app.command()
def stage(
    paths: Annotated[List[str], typer.Argument(help="Files to stage")],
    path: PathOption = Path("."),
) -> None:
    """Stage files."""
    try:
        _client(path).stage(paths)
        print(f"Staged {', '.join(paths)}")
    except GitError as err:
        _handle_git_error(err)


@app.command()
def unstage(
    paths: Annotated[List[str], typer.Argument(help="Files to unstage")],
    path: PathOption = Path("."),
) -> None:
    """Unstage files."""
    try:
        _client(path).unstage(paths)
        print(f"Unstaged {', '.join(paths)}")
    except GitError as err:
        _handle_git_error(err)


@app.command()
def commit(
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
    path: PathOption = Path("."),
) -> None:
    """Commit staged changes."""
    try:
        _client(path).commit(message)
        print("Committed")
    except GitError as err:
        _handle_git_error(err)


@app.command()
def stash(
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Stash message"),
    path: PathOption = Path("."),
) -> None:
    """Stash working tree changes."""
    try:
        _client(path).stash_changes(message)
        print("Stashed")
    except GitError as err:
        _handle_git_error(err)


@app.command()
def discard(
    file: Annotated[Optional[str], typer.Argument(help="File to restore")] = None,
    path: PathOption = Path("."),
    all_changes: bool = typer.Option(False, "--all", help="Restore every tracked file"),
) -> None:
    """Discard working tree changes."""
    if not file and not all_changes:
        print("Error: pass a file or --all")
        sys.exit(1)
    try:
        client = _client(path)
        if all_changes:
            client.discard_all_changes()
        else:
            client.discard_file_changes(file)
        print("Discarded changes")
    except GitError as err:
        _handle_git_error(err)


@app.command()
def config(
    save: bool = typer.Option(False, "--save", help="Write the effective settings to the config file"),
    file: Annotated[Optional[Path], typer.Option("--file", help="Config file, ~/.tendrilrc by default")] = None,
) -> None:
    """Show the effective settings and the environment overrides."""
    try:
        settings = TendrilConfig.load_config(str(file) if file else None)

        table = Table(title="Settings")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        table.add_row("git.executable", settings.git.executable)
        table.add_row("git.history_separator", settings.git.history_separator)
        table.add_row("unknown_branch_name", settings.unknown_branch_name)
        table.add_row("log_level", settings.log_level)
        console.print(table)

        overrides = settings.get_env_settings()
        if overrides:
            env_table = Table(title="Environment")
            env_table.add_column("Variable", style="cyan")
            env_table.add_column("Value")
            for key, value in sorted(overrides.items()):
                env_table.add_row(key, value)
            console.print(env_table)

        if save:
            settings.save_config(file)
            print(f"Saved settings to {file or Path.home() / '.tendrilrc'}")
    except GitError as err:
        _handle_git_error(err)


if __name__ == "__main__":
    app()
