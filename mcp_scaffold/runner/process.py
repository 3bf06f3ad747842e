"""External command execution for the generation pipeline.

One primitive, :meth:`ProcessRunner.run`, serves both call sites (dependency
installation and ``git init``).  What differs between them is captured in a
:class:`CommandSpec`: the command line, which output lines are worth showing
and where, and the remediation hints attached to failures.

Both output streams are read line by line while the child runs.  Each line is
kept for the error message and, depending on the command's routers, relayed to
the user's stdout, stderr, or dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import subprocess
import sys
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from mcp_scaffold.config import Settings
from mcp_scaffold.errors import ProcessFailedError, ProcessSpawnError, ProcessTimeoutError
from mcp_scaffold.utils import echo_line

Route = Literal["stdout", "stderr"] | None
LineRouter = Callable[[str], Route]

# Windows ships these tools as batch shims or executables with a suffix.
WINDOWS_SUFFIXES: dict[str, str] = {
    "npm": ".cmd",
    "npx": ".cmd",
    "pnpm": ".cmd",
    "yarn": ".cmd",
    "git": ".exe",
    "node": ".exe",
}


def is_windows(platform: str | None = None) -> bool:
    return (platform or sys.platform).startswith("win")


def resolve_executable(command: str, platform: str | None = None) -> tuple[str, bool]:
    """Return ``(executable, use_shell)`` for *command* on *platform*.

    On Windows known tools get their ``.cmd``/``.exe`` suffix and are launched
    through the shell; elsewhere the bare name is executed directly.
    """
    if not is_windows(platform):
        return command, False
    suffix = WINDOWS_SUFFIXES.get(command.lower(), "")
    if suffix and not command.lower().endswith(suffix):
        return command + suffix, True
    return command, True


# ---------------------------------------------------------------------------
# Output routing
# ---------------------------------------------------------------------------


def route_quiet(line: str) -> Route:
    return None


def route_all_stdout(line: str) -> Route:
    return "stdout"


def route_install_stdout(line: str) -> Route:
    """Only package-count progress lines from the installer are worth showing."""
    if any(marker in line for marker in ("added", "found", "audited")):
        return "stdout"
    return None


def route_install_stderr(line: str) -> Route:
    if "WARN" in line or "ERR" in line:
        return "stderr"
    return None


def route_git_stderr(line: str) -> Route:
    """git prints normal progress on stderr; only real errors go to stderr."""
    if "error" in line or "fatal" in line:
        return "stderr"
    return "stdout"


# ---------------------------------------------------------------------------
# Command description / result
# ---------------------------------------------------------------------------


@dataclass
class CommandSpec:
    """Everything :class:`ProcessRunner` needs to launch and judge a command."""

    command: str
    args: list[str] = field(default_factory=list)
    stdout_router: LineRouter = route_quiet
    stderr_router: LineRouter = route_quiet
    spawn_suggestion: str = ""
    failure_suggestion: str = ""
    timeout: float | None = None

    @property
    def display(self) -> str:
        return " ".join([self.command, *self.args])


@dataclass
class ProcessOutcome:
    """Captured result of a successful command."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0


def npm_install_spec(settings: Settings) -> CommandSpec:
    """Dependency installation with the configured package manager."""
    manager = settings.package_manager
    manual = " ".join([manager, *settings.install_args])
    return CommandSpec(
        command=manager,
        args=list(settings.install_args),
        stdout_router=route_install_stdout,
        stderr_router=route_install_stderr,
        spawn_suggestion=(
            f"Make sure Node.js and {manager} are installed and on PATH, "
            f"or run '{manual}' manually in the project directory."
        ),
        failure_suggestion=(
            f"Check your network connection, or run '{manual}' manually "
            "in the project directory."
        ),
        timeout=settings.install_timeout,
    )


def git_init_spec(settings: Settings) -> CommandSpec:
    """Repository initialisation in the generated project."""
    return CommandSpec(
        command=settings.git_binary,
        args=["init"],
        stdout_router=route_all_stdout,
        stderr_router=route_git_stderr,
        spawn_suggestion=(
            "Make sure Git is installed (https://git-scm.com/), "
            "or run 'git init' manually in the project directory."
        ),
        failure_suggestion="Check your Git installation, or run 'git init' manually in the project directory.",
        timeout=settings.git_timeout,
    )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class ProcessRunner:
    """Launches external commands and maps their exit status to exceptions."""

    def __init__(self, platform: str | None = None, stderr_tail_lines: int = 20) -> None:
        self.platform = platform or sys.platform
        self.stderr_tail_lines = stderr_tail_lines

    async def run(self, spec: CommandSpec, cwd: str | Path) -> ProcessOutcome:
        """Run *spec* in *cwd* and wait for it to exit.

        Raises:
            ProcessSpawnError: If the executable cannot be launched.
            ProcessFailedError: If it exits with a nonzero status.
            ProcessTimeoutError: If ``spec.timeout`` elapses first.
        """
        executable, use_shell = resolve_executable(spec.command, self.platform)
        start = time.monotonic()

        try:
            process = await self._spawn(executable, spec.args, Path(cwd), use_shell)
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            raise ProcessSpawnError(
                spec.display, exc.strerror or str(exc), suggestion=spec.spawn_suggestion
            ) from exc

        stdout_lines: list[str] = []
        stderr_tail: deque[str] = deque(maxlen=self.stderr_tail_lines)
        stderr_lines: list[str] = []

        async def _pump() -> int:
            await asyncio.gather(
                _read_lines(process.stdout, spec.stdout_router, stdout_lines),
                _read_lines(process.stderr, spec.stderr_router, stderr_lines, stderr_tail),
            )
            return await process.wait()

        try:
            if spec.timeout is None:
                exit_code = await _pump()
            else:
                exit_code = await asyncio.wait_for(_pump(), timeout=spec.timeout)
        except asyncio.TimeoutError:
            raise ProcessTimeoutError(
                spec.display,
                spec.timeout or 0,
                stderr_tail="\n".join(stderr_tail),
                suggestion=spec.failure_suggestion,
            ) from None
        finally:
            # reap the child on every exit path
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        if exit_code != 0:
            raise ProcessFailedError(
                spec.display,
                exit_code,
                stderr_tail="\n".join(stderr_tail),
                suggestion=spec.failure_suggestion,
            )

        return ProcessOutcome(
            exit_code=exit_code,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
            duration_seconds=time.monotonic() - start,
        )

    async def _spawn(
        self, executable: str, args: list[str], cwd: Path, use_shell: bool
    ) -> asyncio.subprocess.Process:
        if use_shell:
            return await asyncio.create_subprocess_shell(
                subprocess.list2cmdline([executable, *args]),
                stdin=None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
            )
        return await asyncio.create_subprocess_exec(
            executable,
            *args,
            stdin=None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
        )


async def _read_lines(
    stream: asyncio.StreamReader | None,
    router: LineRouter,
    sink: list[str],
    tail: deque[str] | None = None,
) -> None:
    if stream is None:
        return
    while True:
        raw = await _next_line(stream)
        if not raw:
            break
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        sink.append(line)
        if tail is not None:
            tail.append(line)
        route = router(line)
        if route is not None:
            echo_line(line, stderr=route == "stderr")


async def _next_line(stream: asyncio.StreamReader) -> bytes:
    """Read one line of any length; ``b""`` at EOF.

    ``readline`` gives up on lines longer than the reader's buffer limit, so
    oversized lines are drained in limit-sized pieces instead.
    """
    chunks: list[bytes] = []
    while True:
        try:
            chunks.append(await stream.readuntil(b"\n"))
            break
        except asyncio.IncompleteReadError as exc:
            chunks.append(exc.partial)
            break
        except asyncio.LimitOverrunError as exc:
            chunks.append(await stream.readexactly(exc.consumed))
    return b"".join(chunks)
