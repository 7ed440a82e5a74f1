"""The last stop before history is rewritten."""

from __future__ import annotations

from enum import Enum

from rich.console import Console
from rich.markup import escape

from .planner import RewritePlan


class GateState(Enum):
    PREVIEW = "preview"
    AWAIT_CONFIRM = "await-confirm"
    PROCEED = "proceed"


class UserCancelled(Exception):
    """The user interrupted the confirmation prompt."""

    pass


class ConfirmationGate:
    """Preview the plan in dry-run mode, otherwise wait for Enter.

    There is no "no" answer: any line of input proceeds, and Ctrl+C (or a
    closed stdin) cancels before anything is touched.
    """

    def __init__(self, console: Console, dry_run: bool = False) -> None:
        self.console = console
        self.state = GateState.PREVIEW if dry_run else GateState.AWAIT_CONFIRM

    def show_plan(self, plan: RewritePlan) -> None:
        identity = plan.identity
        self.console.print(f"[blue]Author will be set to:[/] {escape(str(identity))}")
        for field_name in ("name", "email"):
            source = identity.sources.get(field_name)
            if source:
                self.console.print(f"[dim]  {field_name} from {source}[/]")
        self.console.print("[blue]Lines removed from every commit message:[/]")
        for pattern in plan.patterns:
            self.console.print(f"  /{pattern.pattern}/", style="dim", markup=False)

    def pass_through(self, plan: RewritePlan) -> GateState:
        """Run the gate.

        Returns:
            PREVIEW when nothing should be changed, PROCEED when the rewrite may run

        Raises:
            UserCancelled: If the prompt was interrupted
        """
        if self.state is GateState.PREVIEW:
            self.console.print("\n[bold cyan]🔍 Dry run: no commits will be changed[/]\n")
            self.show_plan(plan)
            self.console.print("\n[blue]Command that would run:[/]")
            self.console.print(plan.describe(), markup=False, soft_wrap=True)
            return self.state

        self.console.print(
            "\n[bold red]⚠️  WARNING: This will REWRITE your git history! "
            "Make sure you have a backup![/]\n"
        )
        self.show_plan(plan)
        try:
            self.console.input("\nPress Ctrl+C to cancel, or Enter to continue...")
        except (KeyboardInterrupt, EOFError) as e:
            raise UserCancelled() from e
        self.state = GateState.PROCEED
        return self.state
