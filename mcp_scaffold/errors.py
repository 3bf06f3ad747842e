"""Exception hierarchy for project generation.

Every fatal error carries a one-line, actionable ``suggestion`` that is
appended to its message, so the CLI can print remediation guidance without
knowing which step failed.  The orchestrator stamps the failing
``GenerationStep`` on the instance as ``step`` before re-raising it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class ScaffoldError(Exception):
    """Base class for all generation failures."""

    def __init__(self, message: str, suggestion: str = "") -> None:
        self.message = message
        self.suggestion = suggestion
        self.step: Any = None
        text = message
        if suggestion:
            text = f"{message}\nSuggestion: {suggestion}"
        super().__init__(text)


class TargetExistsError(ScaffoldError):
    """Raised when the destination project directory already exists."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(
            f"Directory already exists: {self.path}",
            suggestion=(
                "Choose a different project name, or move the existing "
                "directory out of the way and try again."
            ),
        )


class TemplateNotFoundError(ScaffoldError):
    """Raised when a template tree or template file is missing on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(
            f"Template not found: {self.path}",
            suggestion=(
                "The bundled templates appear to be missing; reinstall "
                "mcp-scaffold or point --templates-dir at a valid template root."
            ),
        )


class TemplateCopyError(ScaffoldError):
    """Raised when the template tree cannot be written to the destination."""

    def __init__(self, dest: str | Path, reason: str) -> None:
        self.dest = Path(dest)
        self.reason = reason
        super().__init__(
            f"Could not create project files in {self.dest}: {reason}",
            suggestion=(
                f"Check free disk space and write permission in {self.dest.parent}, "
                "then try again."
            ),
        )


class ProcessFailedError(ScaffoldError):
    """Raised when an external tool exits with a nonzero status."""

    def __init__(
        self,
        command: str,
        exit_code: int,
        stderr_tail: str = "",
        suggestion: str = "",
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        details = stderr_tail.strip() or "unknown error"
        super().__init__(
            f"'{command}' failed (exit code {exit_code})\nDetails: {details}",
            suggestion=suggestion,
        )


class ProcessTimeoutError(ProcessFailedError):
    """Raised when an external tool exceeds its configured timeout."""

    def __init__(
        self,
        command: str,
        timeout: float,
        stderr_tail: str = "",
        suggestion: str = "",
    ) -> None:
        self.timeout = timeout
        tail = stderr_tail.strip()
        note = f"timed out after {timeout:g}s"
        super().__init__(
            command,
            -1,
            stderr_tail=f"{tail}\n{note}" if tail else note,
            suggestion=suggestion,
        )


class ProcessSpawnError(ScaffoldError):
    """Raised when an external tool cannot be launched at all."""

    def __init__(self, command: str, reason: str, suggestion: str = "") -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Unable to run '{command}': {reason}", suggestion=suggestion)
