"""CLI interface for clean-git-history."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import ENV_FILE, IdentityResolver, Invocation, MissingIdentity
from .confirm import ConfirmationGate, GateState, UserCancelled
from .git import ExternalCommandError, GitError, GitRepo
from .planner import plan_rewrite
from .rewriter import HistoryRewriter, RewriteOutcome


console = Console()


def report_missing_identity(error: MissingIdentity) -> None:
    console.print(f"\n[red]❌ Error: {escape(str(error))}[/]")
    console.print("[yellow]Provide it with any of (highest priority first):[/]")
    for i, hint in enumerate(error.remediation, start=1):
        console.print(f"[dim]  {i}. {escape(hint)}[/]")


def report_command_error(error: ExternalCommandError, repo: GitRepo) -> None:
    console.print(
        f"\n[red]❌ Error: {escape(error.operation)} failed (exit code {error.exit_status})[/]"
    )
    if error.stderr and not error.echoed:
        console.print(f"[red]{escape(error.stderr_excerpt)}[/]")
    if repo.has_backup_refs():
        console.print("\n[yellow]A backup from a previous rewrite exists in refs/original/.[/]")
        console.print("[yellow]Delete it before retrying:[/]")
        console.print(
            "[dim]   git for-each-ref --format='delete %(refname)' refs/original/ "
            "| git update-ref --stdin[/]"
        )


def report_outcome(outcome: RewriteOutcome, repo: GitRepo) -> None:
    console.print("\n[bold green]✅ History rewritten.[/]")
    console.print("[blue]Review it with 'git log' before force pushing.[/]")
    console.print(
        f"[dim]Original history is kept under {repo.BACKUP_NAMESPACE} until you delete it.[/]"
    )

    push = outcome.push
    if push is None:
        branch = repo.get_current_branch() or "<branch>"
        console.print(f"[dim]To push: git push --force-with-lease origin {escape(branch)}[/]")
    elif push.pushed:
        console.print(f"[green]✅ Pushed to {escape(push.remote)}/{escape(push.branch or '')}[/]")
    else:
        console.print(f"[yellow]⚠️  Push skipped or failed: {escape(push.error or '')}[/]")
        console.print("[yellow]History was rewritten locally. Push manually with:[/]")
        console.print(f"[dim]   {escape(push.retry_command)}[/]")


def run(invocation: Invocation) -> None:
    """Resolve, plan, confirm, execute and report."""
    # .env is read from where the tool was started, git runs from the top level
    env_file = Path.cwd() / ENV_FILE
    repo = GitRepo(console=console, verbose=invocation.verbose)
    repo.check_repository()

    identity = IdentityResolver(repo=repo, env_file=env_file).resolve(invocation)
    plan = plan_rewrite(identity)

    if repo.has_uncommitted_changes():
        if not invocation.dry_run:
            raise GitError(
                "You have uncommitted changes and git filter-branch refuses to rewrite "
                "with a dirty working tree. Commit or stash them first."
            )
        console.print(
            "\n[yellow]⚠️  Warning: You have uncommitted changes; "
            "commit or stash them before the real run.[/]"
        )
    if not invocation.dry_run:
        if repo.has_backup_refs():
            console.print(
                f"\n[yellow]⚠️  Warning: {repo.BACKUP_NAMESPACE} already holds a backup; "
                "git will refuse to rewrite until it is removed.[/]"
            )

    gate = ConfirmationGate(console, dry_run=invocation.dry_run)
    if gate.pass_through(plan) is GateState.PREVIEW:
        return

    rewriter = HistoryRewriter(repo=repo, console=console, auto_push=invocation.auto_push)
    outcome = rewriter.execute(plan)
    report_outcome(outcome, repo)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-n", "--name", help="Author/committer name for every commit")
@click.option("-e", "--email", help="Author/committer email for every commit")
@click.option(
    "-d",
    "--dry-run",
    is_flag=True,
    help="Show what would be changed without modifying repository",
)
@click.option(
    "-p",
    "--auto-push",
    is_flag=True,
    help="Force-push (with lease) the current branch after rewriting",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Show git commands as they run and full tracebacks",
)
@click.version_option(__version__)
def main(
    name: str | None,
    email: str | None,
    dry_run: bool,
    auto_push: bool,
    verbose: bool,
) -> None:
    """Rewrite every commit's author and committer, and strip AI attribution
    lines from commit messages.

    The identity is taken from --name/--email, then the GIT_AUTHOR_NAME and
    GIT_AUTHOR_EMAIL environment variables, then a .env file in the current
    directory, then git's user.name and user.email.

    \b
    Examples:
      # Preview without touching anything
      clean-git-history --name "Jane Doe" --email "jane@example.com" --dry-run

      # Rewrite using git config identity and push afterwards
      clean-git-history --auto-push
    """
    invocation = Invocation(
        name=name,
        email=email,
        dry_run=dry_run,
        auto_push=auto_push,
        verbose=verbose,
    )
    try:
        run(invocation)
    except UserCancelled:
        console.print("\n[yellow]Cancelled. Nothing was changed.[/]")
    except MissingIdentity as e:
        report_missing_identity(e)
        sys.exit(1)
    except ExternalCommandError as e:
        report_command_error(e, GitRepo(console=console))
        sys.exit(1)
    except Exception as e:
        if verbose:
            console.print_exception()
        else:
            console.print(f"\n[red]❌ Error: {escape(str(e))}[/]")
        sys.exit(1)


if __name__ == "__main__":
    main()
