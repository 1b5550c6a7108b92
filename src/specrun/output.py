"""Diagnostics on stderr with Rich support.

specrun never prints data itself: rendering results is the caller's job.
What it does emit is diagnostics (retry notices, token minting, page fetches,
fixture I/O), and those always go to **stderr** so they cannot end up in a
data stream.

Colour is disabled by the ``no_color`` flag, by ``NO_COLOR`` (any value) or
by ``TERM=dumb``. In quiet mode ``info`` is dropped; ``debug`` needs verbose
mode; warnings and errors always get through.

Library code calls the module-level :func:`info`, :func:`warning`,
:func:`error` and :func:`debug`, which forward to whichever
:class:`OutputManager` was installed with :func:`set_output`.
"""

from __future__ import annotations

import os
import sys
from typing import Mapping, Optional

from rich.console import Console
from rich.markup import escape

REDACTED = "<redacted>"
_SECRET_HEADERS = frozenset({"authorization", "proxy-authorization"})

# level -> (plain prefix, Rich markup template)
_STYLES = {
    "info": ("", "{message}"),
    "warning": ("Warning: ", "[yellow]Warning:[/yellow] {message}"),
    "error": ("Error: ", "[bold red]Error:[/bold red] {message}"),
    "debug": ("[debug] ", "[dim]\\[debug] {message}[/dim]"),
}


class OutputManager:
    """Routes diagnostic messages to stderr.

    Args:
        no_color: Disable all colour and Rich markup.
        quiet: Drop informational messages.
        verbose: Show debug messages.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._console = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit("info", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit("debug", message)

    def _emit(self, level: str, message: str) -> None:
        prefix, template = _STYLES[level]
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._console.print(template.format(message=escape(message)))


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy *headers*, masking ``Authorization`` and ``Proxy-Authorization`` values."""
    return {
        name: (REDACTED if name.lower() in _SECRET_HEADERS else value)
        for name, value in headers.items()
    }


def _should_disable_color() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide manager
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, installing a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests call this between cases)."""
    global _output
    _output = None


def info(message: str) -> None:
    get_output().info(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
