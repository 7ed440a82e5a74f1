"""Resolution of the author identity stamped onto rewritten commits."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import dotenv_values

from .git import GitRepo

NAME_VAR = "GIT_AUTHOR_NAME"
EMAIL_VAR = "GIT_AUTHOR_EMAIL"
ENV_FILE = ".env"

NAME_CONFIG_KEY = "user.name"
EMAIL_CONFIG_KEY = "user.email"

# Source labels, highest priority first
SOURCE_FLAGS = "command-line flags"
SOURCE_ENV = "environment"
SOURCE_FILE = f"{ENV_FILE} file"
SOURCE_GIT = "git config"


@dataclass(frozen=True)
class Invocation:
    """The parsed command-line request."""

    name: str | None = None
    email: str | None = None
    dry_run: bool = False
    auto_push: bool = False
    verbose: bool = False


@dataclass(frozen=True)
class Identity:
    """Name and email written as author and committer of every commit."""

    name: str
    email: str
    # field -> label of the source that supplied it
    sources: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


class MissingIdentity(Exception):
    """No combination of sources yielded both a name and an email."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Could not determine author {' and '.join(missing)}")

    @property
    def remediation(self) -> list[str]:
        """Ways the user can supply the missing values, highest priority first."""
        return [
            '--name "Your Name" --email "you@example.com"',
            f'export {NAME_VAR}="Your Name" {EMAIL_VAR}="you@example.com"',
            f'add {NAME_VAR}=... and {EMAIL_VAR}=... to {ENV_FILE} in the working directory',
            f'git config --global {NAME_CONFIG_KEY} "Your Name"; '
            f'git config --global {EMAIL_CONFIG_KEY} "you@example.com"',
        ]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_env_file(path: str | Path) -> dict[str, str]:
    """Load KEY=VALUE pairs from a dotenv file.

    A missing file gives an empty mapping. Values are taken literally: no
    variable interpolation is performed.

    Args:
        path: Path to the file

    Returns:
        Mapping of keys to values (keys without a value are dropped)
    """
    path = Path(path)
    if not path.is_file():
        return {}
    values = dotenv_values(path, interpolate=False, encoding="utf-8")
    return {key: value for key, value in values.items() if value is not None}


class IdentityResolver:
    """Fill name and email field by field from ranked sources."""

    def __init__(
        self,
        repo: GitRepo | None = None,
        environ: Mapping[str, str] | None = None,
        env_file: str | Path | None = None,
    ) -> None:
        self.repo = repo or GitRepo()
        self.environ = os.environ if environ is None else environ
        self.env_file = Path(env_file) if env_file else self.repo.path / ENV_FILE

    def resolve(self, invocation: Invocation) -> Identity:
        """Resolve the identity for an invocation.

        Raises:
            MissingIdentity: If name or email is still unset after every source
        """
        name = _clean(invocation.name)
        email = _clean(invocation.email)
        if name and email:
            return Identity(name, email, {"name": SOURCE_FLAGS, "email": SOURCE_FLAGS})

        sources: dict[str, str] = {}
        if name:
            sources["name"] = SOURCE_FLAGS
        if email:
            sources["email"] = SOURCE_FLAGS

        lookups = (
            (SOURCE_ENV, lambda: self.environ),
            (SOURCE_FILE, lambda: load_env_file(self.env_file)),
        )
        for label, load in lookups:
            values = load()
            if not name and _clean(values.get(NAME_VAR)):
                name = _clean(values.get(NAME_VAR))
                sources["name"] = label
            if not email and _clean(values.get(EMAIL_VAR)):
                email = _clean(values.get(EMAIL_VAR))
                sources["email"] = label
            if name and email:
                return Identity(name, email, sources)

        if not name:
            name = self.repo.get_config(NAME_CONFIG_KEY)
            if name:
                sources["name"] = SOURCE_GIT
        if not email:
            email = self.repo.get_config(EMAIL_CONFIG_KEY)
            if email:
                sources["email"] = SOURCE_GIT

        missing = [label for label, value in (("name", name), ("email", email)) if not value]
        if missing:
            raise MissingIdentity(missing)
        return Identity(name, email, sources)
