"""Terminal rendering for login results, token bundles and role lists.

stdout carries only the data a script would capture (tokens, roles);
every status line, warning and error goes to stderr. Three renderings are
available through :class:`OutputFormat`:

* ``json`` -- the wire-shaped payload (``user_name``, ``roleName``...), for
  piping into ``jq`` or another program.
* ``plain`` -- tab-separated ``field<TAB>value`` lines and role rows, easy
  to ``grep``/``cut``.
* ``rich`` -- an identity summary, the tokens and a role table, styled for
  an interactive terminal.

``auto`` picks ``rich`` on a colour-capable TTY and ``plain`` otherwise.
``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` disable colour.

Library modules never print; only the CLI commands use this module, through
the process-wide manager installed by :func:`set_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.table import Table

from ucloud_login.models import LoginResult, Role, TokenBundle

# Identity fields shown first in plain and rich output, in this order.
_IDENTITY_FIELDS = (
    ("real_name", "Name"),
    ("student_id", "Student ID"),
    ("user_id", "User ID"),
    ("account", "Account"),
    ("tenant_id", "Tenant"),
)
_TOKEN_FIELDS = (
    ("access_token", "Access token"),
    ("refresh_token", "Refresh token"),
    ("token_type", "Token type"),
    ("expires_in", "Expires in (s)"),
)
_ROLE_HEADERS = ("ID", "Role", "Domain")


class OutputFormat(str, Enum):
    """How data on stdout is rendered. ``AUTO`` resolves at construction."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _role_row(role: Role) -> list[str]:
    return [role.id, str(role.role_name), role.domain_name or ""]


class OutputManager:
    """Renders CLI data to stdout and diagnostics to stderr.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational and success messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def stderr_console(self) -> Console:
        """The Rich console bound to stderr, for log handlers."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def show_login(self, result: LoginResult) -> None:
        """Render a full login: identity, tokens and every role."""
        if self._format == OutputFormat.JSON:
            self._emit_json(result.model_dump(mode="json", by_alias=True))
            return
        if self._format == OutputFormat.PLAIN:
            self._emit_fields(result)
            for role in result.roles:
                self._emit_line("\t".join(["role", *_role_row(role)]))
            return
        self._stdout.print(self._field_table(result, "Login"))
        self._stdout.print(self._role_table(result.roles))

    def show_tokens(self, bundle: TokenBundle) -> None:
        """Render a token bundle from a refresh."""
        if self._format == OutputFormat.JSON:
            self._emit_json(bundle.model_dump(mode="json", by_alias=True))
        elif self._format == OutputFormat.PLAIN:
            self._emit_fields(bundle)
        else:
            self._stdout.print(self._field_table(bundle, "Tokens"))

    def show_roles(self, roles: list[Role]) -> None:
        """Render a role list: JSON records, TSV with a header, or a table."""
        if self._format == OutputFormat.JSON:
            self._emit_json([role.model_dump(mode="json", by_alias=True) for role in roles])
        elif self._format == OutputFormat.PLAIN:
            self._emit_line("\t".join(_ROLE_HEADERS))
            for role in roles:
                self._emit_line("\t".join(_role_row(role)))
        else:
            self._stdout.print(self._role_table(roles))

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, f"[green]{message}[/green]")

    def suggest(self, message: str) -> None:
        """Print a next-step hint such as another command to try."""
        if not self._quiet:
            self._diagnostic(f"→ {message}", f"[dim]→ {message}[/dim]")

    def error(self, message: str) -> None:
        """Print an error; shown even with ``--quiet``."""
        self._diagnostic(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _diagnostic(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)

    def _emit_line(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def _emit_json(self, payload: Any) -> None:
        self._emit_line(json.dumps(payload, indent=2, ensure_ascii=False))

    def _emit_fields(self, bundle: TokenBundle) -> None:
        for name, value in _bundle_fields(bundle):
            self._emit_line(f"{name}\t{value}")

    def _field_table(self, bundle: TokenBundle, title: str) -> Table:
        table = Table(title=title, show_header=False, box=None, padding=(0, 2))
        table.add_column(style="bold cyan", no_wrap=True)
        table.add_column(overflow="fold")
        labels = dict(_IDENTITY_FIELDS + _TOKEN_FIELDS)
        for name, value in _bundle_fields(bundle):
            table.add_row(labels.get(name, name), str(value))
        return table

    def _role_table(self, roles: Iterable[Role]) -> Table:
        table = Table(title="Roles", show_header=True, header_style="bold cyan")
        for header in _ROLE_HEADERS:
            table.add_column(header)
        for role in roles:
            table.add_row(*_role_row(role))
        return table


def _bundle_fields(bundle: TokenBundle) -> list[tuple[str, Any]]:
    """Non-empty identity and token fields of *bundle*, identity first."""
    names = [name for name, _ in _IDENTITY_FIELDS + _TOKEN_FIELDS]
    fields = []
    for name in names:
        value = getattr(bundle, name)
        if value not in (None, ""):
            fields.append((name, value))
    return fields


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set (any value) or TERM=dumb."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide manager used by the CLI commands
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager; used between CLI invocations in tests."""
    global _output
    _output = None


def show_login(result: LoginResult) -> None:
    get_output().show_login(result)


def show_tokens(bundle: TokenBundle) -> None:
    get_output().show_tokens(bundle)


def show_roles(roles: list[Role]) -> None:
    get_output().show_roles(roles)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def error(message: str) -> None:
    get_output().error(message)
