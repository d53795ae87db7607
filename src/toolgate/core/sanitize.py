"""Output hygiene for captured process streams."""

from __future__ import annotations

import re

_ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")

_UNIX_HOME_RE = re.compile(r"/(?:home|Users)/[^/\s]+/")
_ROOT_HOME_RE = re.compile(r"(?<![\w.~/-])/root/")
_WINDOWS_HOME_RE = re.compile(r"[A-Za-z]:\\Users\\[^\\\s]+\\")

# Applied after home replacement; `~` in the lookbehind keeps `~/x/y` intact.
_UNIX_ABSOLUTE_RE = re.compile(r"(?<![\w.~<>/-])/(?:[^/\s:]+/)+([^/\s:]+)")
_WINDOWS_ABSOLUTE_RE = re.compile(r"[A-Za-z]:\\(?:[^\\\n]+\\)+([^\\\s]+)")

REDACTED_PATH = "<redacted-path>"


def strip_ansi(text: str) -> str:
    """Remove ANSI color and cursor escape sequences."""
    return _ANSI_RE.sub("", text)


def sanitize_error_output(text: str, *, all_paths: bool = False) -> str:
    """Hide user home directories in error text.

    With ``all_paths`` every other absolute path is reduced to
    ``<redacted-path>/<basename>``.
    """
    if not text:
        return text

    sanitized = _UNIX_HOME_RE.sub("~/", text)
    sanitized = _ROOT_HOME_RE.sub("~/", sanitized)
    sanitized = _WINDOWS_HOME_RE.sub(lambda _m: "~\\", sanitized)

    if all_paths:
        sanitized = _UNIX_ABSOLUTE_RE.sub(lambda m: f"{REDACTED_PATH}/{m.group(1)}", sanitized)
        sanitized = _WINDOWS_ABSOLUTE_RE.sub(
            lambda m: f"{REDACTED_PATH}\\{m.group(1)}", sanitized
        )

    return sanitized


__all__ = ["REDACTED_PATH", "sanitize_error_output", "strip_ansi"]
