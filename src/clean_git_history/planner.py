"""Construction of the git filter-branch invocation for a history rewrite."""

from __future__ import annotations

import shlex
import sys
from dataclasses import dataclass, field
from re import Pattern

from .config import Identity
from .message_filter import MARKER_PATTERNS

NAME_BINDING = "CLEAN_HISTORY_NAME"
EMAIL_BINDING = "CLEAN_HISTORY_EMAIL"
PYTHON_BINDING = "CLEAN_HISTORY_PYTHON"

# filter-branch evals these snippets with sh. They are constants: the
# identity and interpreter path only ever reach them as environment values,
# and a quoted "$VAR" expansion is never re-parsed as shell code.
ENV_FILTER = f"""\
GIT_AUTHOR_NAME="${NAME_BINDING}"
GIT_AUTHOR_EMAIL="${EMAIL_BINDING}"
GIT_COMMITTER_NAME="${NAME_BINDING}"
GIT_COMMITTER_EMAIL="${EMAIL_BINDING}"
export GIT_AUTHOR_NAME GIT_AUTHOR_EMAIL GIT_COMMITTER_NAME GIT_COMMITTER_EMAIL
"""

MSG_FILTER = f'"${PYTHON_BINDING}" -m clean_git_history.message_filter'


@dataclass(frozen=True)
class RewritePlan:
    """Everything needed to rewrite all refs: identity and message transform."""

    identity: Identity
    patterns: tuple[Pattern[str], ...] = field(default_factory=lambda: tuple(MARKER_PATTERNS))
    python: str = field(default_factory=lambda: sys.executable)

    def command(self) -> list[str]:
        """Arguments for ``git`` that perform the rewrite over every ref."""
        return [
            "filter-branch",
            "--env-filter",
            ENV_FILTER,
            "--msg-filter",
            MSG_FILTER,
            "--tag-name-filter",
            "cat",
            "--",
            "--all",
        ]

    def env(self) -> dict[str, str]:
        """Environment bindings carrying the untrusted values into the filters."""
        return {
            NAME_BINDING: self.identity.name,
            EMAIL_BINDING: self.identity.email,
            PYTHON_BINDING: self.python,
            # confirmation already happened, skip git's own 10 second warning
            "FILTER_BRANCH_SQUELCH_WARNING": "1",
        }

    def describe(self) -> str:
        """Shell-style rendering of the command, for previews."""
        bindings = " ".join(f"{key}={shlex.quote(value)}" for key, value in self.env().items())
        return f"{bindings} {shlex.join(['git', *self.command()])}"


def plan_rewrite(identity: Identity) -> RewritePlan:
    """Build the rewrite plan for an identity. Pure; never fails."""
    return RewritePlan(identity=identity)
