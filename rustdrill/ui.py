"""Terminal styling and the warning/success status lines."""

from __future__ import annotations

import os
import sys

_RESET = "\x1b[0m"
_BOLD = "1"
_RED = "31"
_GREEN = "32"
_BLUE = "34"


def no_emoji() -> bool:
    """Return True when the NO_EMOJI environment variable is set."""
    return "NO_EMOJI" in os.environ


def _colors_enabled() -> bool:
    force = os.environ.get("CLICOLOR_FORCE")
    if force is not None and force != "0":
        return True
    if os.environ.get("CLICOLOR") == "0":
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _style(text: object, code: str) -> str:
    rendered = str(text)
    if not _colors_enabled():
        return rendered
    return f"\x1b[{code}m{rendered}{_RESET}"


def bold(text: object) -> str:
    """Render text in bold when the terminal supports colours."""
    return _style(text, _BOLD)


def red(text: object) -> str:
    """Render text in red when the terminal supports colours."""
    return _style(text, _RED)


def green(text: object) -> str:
    """Render text in green when the terminal supports colours."""
    return _style(text, _GREEN)


def blue(text: object) -> str:
    """Render text in blue when the terminal supports colours."""
    return _style(text, _BLUE)


def warn(message: str) -> None:
    """Print a red warning line."""
    symbol = "!" if no_emoji() else "⚠️ "
    print(f"{red(symbol)} {red(message)}")


def success(message: str) -> None:
    """Print a green success line."""
    symbol = "✓" if no_emoji() else "✅"
    print(f"{green(symbol)} {green(message)}")