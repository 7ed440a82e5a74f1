"""Git operations wrapper using subprocess."""

from __future__ import annotations

import os
import shlex
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.markup import escape


class OutputMode(Enum):
    """How a git subprocess talks to the terminal."""

    # stdout and stderr are captured and returned
    CAPTURE = "capture"
    # stdout goes straight to the terminal for live progress; stderr is
    # captured for error reporting and replayed once the command exits
    INHERIT = "inherit"
    # both streams go straight to the terminal (git push reports progress on stderr)
    TERMINAL = "terminal"


@dataclass(frozen=True)
class CommandResult:
    """Result of a successful git command."""

    stdout: str
    exit_status: int


class GitError(Exception):
    """Error during git operations."""

    pass


class ExternalCommandError(GitError):
    """A git command exited with a nonzero status."""

    def __init__(
        self,
        operation: str,
        command: list[str],
        exit_status: int,
        stderr: str = "",
        echoed: bool = False,
    ) -> None:
        self.operation = operation
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr.strip()
        # the user already saw git's output on the terminal
        self.echoed = echoed
        message = f"{operation} failed (exit code {exit_status}): {' '.join(command[:2])}"
        if self.stderr:
            message += f"\n{self.stderr_excerpt}"
        super().__init__(message)

    @property
    def stderr_excerpt(self) -> str:
        """Last few lines of stderr, which is where git puts the actual reason."""
        lines = self.stderr.splitlines()
        return "\n".join(lines[-10:])


class GitRepo:
    """Wrapper for git operations using subprocess.

    Every command is run from an argument vector; nothing is ever handed to a
    shell, so values such as names and emails are passed as data only.
    """

    BACKUP_NAMESPACE = "refs/original/"

    def __init__(
        self,
        path: str | Path | None = None,
        console: Console | None = None,
        verbose: bool = False,
    ) -> None:
        """Initialize git repository wrapper.

        Args:
            path: Path to the repository (defaults to current directory)
            console: Console used to echo commands in verbose mode
            verbose: Echo every git command before running it
        """
        self.path = Path(path) if path else Path.cwd()
        self.console = console or Console(stderr=True)
        self.verbose = verbose

    def run(
        self,
        *args: str,
        env: Mapping[str, str] | None = None,
        mode: OutputMode = OutputMode.CAPTURE,
        operation: str | None = None,
    ) -> CommandResult:
        """Run a git command.

        Args:
            *args: Git command arguments
            env: Extra environment variables layered over os.environ
            mode: Capture output, or let it through to the terminal
            operation: Human readable name used in error messages

        Returns:
            CommandResult with the captured stdout

        Raises:
            ExternalCommandError: If the command exits nonzero
            GitError: If git itself cannot be started
        """
        cmd = ["git", *args]
        operation = operation or f"git {args[0]}"
        if self.verbose:
            self.console.print(f"[dim]$ {escape(shlex.join(cmd))}[/]")

        full_env = None
        if env:
            full_env = {**os.environ, **env}

        try:
            result = subprocess.run(
                cmd,
                cwd=self.path,
                env=full_env,
                stdout=subprocess.PIPE if mode is OutputMode.CAPTURE else None,
                stderr=None if mode is OutputMode.TERMINAL else subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found. Is git installed and on PATH?") from e

        if mode is OutputMode.INHERIT and result.stderr:
            sys.stderr.write(result.stderr)
            sys.stderr.flush()

        if result.returncode != 0:
            raise ExternalCommandError(
                operation,
                cmd,
                result.returncode,
                result.stderr or "",
                echoed=mode is not OutputMode.CAPTURE,
            )

        return CommandResult(stdout=result.stdout or "", exit_status=result.returncode)

    def is_repository(self) -> bool:
        """Check if this is a valid git repository."""
        try:
            self.run("rev-parse", "--git-dir")
            return True
        except GitError:
            return False

    def check_repository(self) -> None:
        """Check if this is a valid git repository and move to its top level.

        git filter-branch only runs from the top of the working tree, so every
        later command is run from there even when started in a subdirectory.

        Raises:
            GitError: If not a git repository
        """
        if not self.is_repository():
            raise GitError(f"Not a git repository: {self.path}")
        try:
            result = self.run("rev-parse", "--show-toplevel")
        except GitError:
            # bare repository, there is no working tree to move to
            return
        toplevel = result.stdout.strip()
        if toplevel:
            self.path = Path(toplevel)

    def has_uncommitted_changes(self) -> bool:
        """Check if there are uncommitted changes."""
        result = self.run("status", "--porcelain", "--untracked-files=no")
        return bool(result.stdout.strip())

    def get_config(self, key: str) -> str | None:
        """Read a git config value, returning None when it is unset."""
        try:
            result = self.run("config", "--get", key)
        except GitError:
            return None
        value = result.stdout.strip()
        return value or None

    def get_current_branch(self) -> str | None:
        """Get the current branch name, or None on a detached or unborn HEAD."""
        try:
            result = self.run("rev-parse", "--abbrev-ref", "HEAD")
        except GitError:
            return None
        branch = result.stdout.strip()
        if not branch or branch == "HEAD":
            return None
        return branch

    def get_backup_refs(self) -> list[str]:
        """List refs left behind by a previous filter-branch run."""
        try:
            result = self.run("for-each-ref", "--format=%(refname)", self.BACKUP_NAMESPACE)
        except GitError:
            return []
        return [line for line in result.stdout.splitlines() if line]

    def has_backup_refs(self) -> bool:
        """Check whether refs/original/ holds a stale backup."""
        return bool(self.get_backup_refs())

    def push_with_lease(self, branch: str, remote: str = "origin") -> None:
        """Force-push a branch, but only if the remote tip is what we last fetched."""
        self.run(
            "push",
            "--force-with-lease",
            remote,
            branch,
            mode=OutputMode.TERMINAL,
            operation=f"Push to {remote}/{branch}",
        )
