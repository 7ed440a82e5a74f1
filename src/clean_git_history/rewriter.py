"""Running a rewrite plan against the repository."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console

from .git import GitError, GitRepo, OutputMode
from .planner import RewritePlan


class PushFailure(Exception):
    """The rewritten branch could not be pushed."""

    pass


@dataclass(frozen=True)
class PushOutcome:
    """Result of the optional push after a rewrite."""

    pushed: bool
    branch: str | None = None
    remote: str = "origin"
    error: str | None = None

    @property
    def retry_command(self) -> str:
        branch = self.branch or "<branch>"
        return f"git push --force-with-lease {self.remote} {branch}"


@dataclass(frozen=True)
class RewriteOutcome:
    """Result of a successful rewrite.

    A failed rewrite never produces an outcome: the ExternalCommandError
    propagates instead.
    """

    succeeded: bool
    push: PushOutcome | None = None


class HistoryRewriter:
    """Runs git filter-branch for a plan and optionally pushes the result."""

    def __init__(
        self,
        repo: GitRepo | None = None,
        console: Console | None = None,
        auto_push: bool = False,
        remote: str = "origin",
    ) -> None:
        self.repo = repo or GitRepo()
        self.console = console or Console()
        self.auto_push = auto_push
        self.remote = remote

    def execute(self, plan: RewritePlan) -> RewriteOutcome:
        """Rewrite every commit on every branch and tag.

        Raises:
            ExternalCommandError: If filter-branch exits nonzero
        """
        self.console.print("\n[blue]Rewriting git history...[/]")
        self.repo.run(
            *plan.command(),
            env=plan.env(),
            mode=OutputMode.INHERIT,
            operation="Rewriting history with git filter-branch",
        )

        push = None
        if self.auto_push:
            push = self._push()
        return RewriteOutcome(succeeded=True, push=push)

    def _push(self) -> PushOutcome:
        branch = None
        try:
            branch = self.repo.get_current_branch()
            if branch is None:
                raise PushFailure("Could not determine the current branch (detached HEAD?)")
            self.console.print(f"[blue]Pushing {branch} to {self.remote}...[/]")
            try:
                self.repo.push_with_lease(branch, self.remote)
            except GitError as e:
                raise PushFailure(str(e)) from e
        except PushFailure as e:
            return PushOutcome(pushed=False, branch=branch, remote=self.remote, error=str(e))
        return PushOutcome(pushed=True, branch=branch, remote=self.remote)
