"""Pre-flight checks for the external tools a generation run relies on.

Checks never raise: every outcome, including "command not found", is returned
as a :class:`SystemCheckResult` so the CLI can print all problems at once.
"""

from __future__ import annotations

import asyncio
import re
import subprocess

from pydantic import BaseModel, Field
from rich.markup import escape
from rich.table import Table

from mcp_scaffold.utils import console, print_error, print_success

from .process import resolve_executable

_VERSION_RE = re.compile(r"(\d+\.\d+\.\d+\S*)")

INSTALL_HINTS: dict[str, str] = {
    "Node.js": "Node.js: https://nodejs.org/",
    "npm": "npm: usually installed together with Node.js",
    "git": "Git: https://git-scm.com/",
}


class SystemCheckResult(BaseModel):
    """Outcome of checking one dependency."""

    passed: bool
    dependency: str
    version: str | None = None
    error: str | None = Field(default=None)


def extract_version(output: str) -> str:
    """Return the first ``x.y.z`` token in *output*, or ``"unknown"``."""
    match = _VERSION_RE.search(output)
    return match.group(1) if match else "unknown"


def _version_tuple(version: str) -> tuple[int, int, int]:
    parts = re.findall(r"\d+", version)[:3]
    numbers = [int(p) for p in parts] + [0] * (3 - len(parts))
    return numbers[0], numbers[1], numbers[2]


class SystemChecker:
    """Verifies that Node.js, the package manager and Git are usable."""

    def __init__(self, platform: str | None = None, timeout: float = 10.0) -> None:
        self.platform = platform
        self.timeout = timeout

    async def check_command(
        self, command: str, version_flag: str = "--version"
    ) -> SystemCheckResult:
        """Run ``<command> <version_flag>`` and report whether it succeeded."""
        executable, use_shell = resolve_executable(command, self.platform)
        try:
            if use_shell:
                process = await asyncio.create_subprocess_shell(
                    subprocess.list2cmdline([executable, version_flag]),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            else:
                process = await asyncio.create_subprocess_exec(
                    executable,
                    version_flag,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
        except OSError as exc:
            return SystemCheckResult(
                passed=False,
                dependency=command,
                error=f"Unable to run {command}: {exc.strerror or exc}",
            )

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return SystemCheckResult(
                passed=False,
                dependency=command,
                error=f"{command} {version_flag} timed out after {self.timeout:g}s",
            )

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        if process.returncode == 0:
            return SystemCheckResult(
                passed=True, dependency=command, version=extract_version(stdout or stderr)
            )
        return SystemCheckResult(
            passed=False,
            dependency=command,
            error=stderr.strip() or f"Command {command} is not available",
        )

    async def check_node_version(
        self, min_version: str = "16.0.0", node_binary: str = "node"
    ) -> SystemCheckResult:
        """Check that ``node`` is installed and at least *min_version*."""
        result = await self.check_command(node_binary)
        if not result.passed:
            return SystemCheckResult(passed=False, dependency="Node.js", error=result.error)

        current = result.version or "unknown"
        if current == "unknown" or _version_tuple(current) < _version_tuple(min_version):
            return SystemCheckResult(
                passed=False,
                dependency="Node.js",
                version=current,
                error=f"Node.js {min_version} or newer is required (found {current})",
            )
        return SystemCheckResult(passed=True, dependency="Node.js", version=current)

    async def perform_system_check(
        self,
        include_git: bool = True,
        package_manager: str = "npm",
        git_binary: str = "git",
    ) -> list[SystemCheckResult]:
        """Run every check concurrently, print the results, and return them."""
        console.print("[blue]Checking system dependencies...[/blue]")
        checks = [self.check_node_version(), self.check_command(package_manager)]
        if include_git:
            checks.append(self.check_command(git_binary))

        results = list(await asyncio.gather(*checks))
        self.display_results(results)
        return results

    def display_results(self, results: list[SystemCheckResult]) -> None:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Status")
        table.add_column("Dependency", style="bold")
        table.add_column("Detail")
        for result in results:
            if result.passed:
                table.add_row("[green]+[/green]", result.dependency, f"[dim]{result.version or ''}[/dim]")
            else:
                table.add_row("[red]x[/red]", result.dependency, f"[red]{escape(result.error or '')}[/red]")
        console.print(table)

        failed = [r for r in results if not r.passed]
        if not failed:
            print_success("All system dependencies are available.")
            return

        print_error("System check failed; install the missing dependencies and retry.")
        for result in failed:
            hint = INSTALL_HINTS.get(result.dependency)
            if hint:
                console.print(f"  [dim]- {hint}[/dim]")

    @staticmethod
    def has_all_required(results: list[SystemCheckResult]) -> bool:
        return all(r.passed for r in results)
