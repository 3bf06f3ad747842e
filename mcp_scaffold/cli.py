"""Command-line entry point for ``create-fastmcp`` / ``python -m mcp_scaffold``.

Collects a ``GenerationConfig`` from flags (and, in interactive mode, from
prompts), runs an optional system check, then drives ``ProjectGenerator``
while printing its progress events.

Usage::

    create-fastmcp my-server
    create-fastmcp my-server -t httpStream -p 8080 --git --no-interactive
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from mcp_scaffold import __version__
from mcp_scaffold.config import GenerationConfig, Settings, Transport, default_description
from mcp_scaffold.errors import ScaffoldError
from mcp_scaffold.runner.system_check import SystemChecker
from mcp_scaffold.scaffolder.generator import GenerationResult, ProgressEvent, ProjectGenerator
from mcp_scaffold.utils import (
    console,
    format_duration,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)
from mcp_scaffold.validator import (
    ValidationResult,
    format_project_name_suggestion,
    validate_port,
    validate_project_name,
    validate_transport,
)


class UsageError(Exception):
    """Raised when flags cannot be turned into a valid ``GenerationConfig``."""


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="create-fastmcp",
        description="Create a FastMCP TypeScript MCP server project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  create-fastmcp my-server\n"
            "  create-fastmcp my-server -t httpStream -p 8080 --git --no-interactive\n"
        ),
    )
    parser.add_argument("project_name", nargs="?", default=None, help="Project name")
    parser.add_argument(
        "--transport", "-t",
        default=Transport.STDIO.value,
        help="Transport type (stdio|httpStream|sse, default: stdio)",
    )
    parser.add_argument(
        "--port", "-p",
        default="3000",
        help="HTTP port, used by httpStream and sse only (default: 3000)",
    )
    parser.add_argument(
        "--description", "-d",
        default=None,
        help="Project description (default: derived from the transport)",
    )
    parser.add_argument(
        "--git",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Initialize a Git repository in the new project",
    )
    parser.add_argument(
        "--interactive",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Prompt for missing values (default: on when attached to a terminal)",
    )
    parser.add_argument(
        "--skip-check",
        action="store_true",
        help="Skip the Node.js/npm/Git availability check",
    )
    parser.add_argument(
        "--templates-dir",
        type=Path,
        default=None,
        help="Use template trees from this directory instead of the bundled ones",
    )
    parser.add_argument(
        "--package-manager",
        default=None,
        help="Package manager used to install dependencies (default: npm)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    updates: dict[str, object] = {}
    if args.templates_dir is not None:
        updates["templates_dir"] = args.templates_dir
    if args.package_manager:
        updates["package_manager"] = args.package_manager
    return settings.model_copy(update=updates) if updates else settings


# ---------------------------------------------------------------------------
# Configuration producers
# ---------------------------------------------------------------------------


def _report(result: ValidationResult) -> None:
    if result.error:
        print_error(result.error)
    if result.warning:
        print_warning(result.warning)
    if result.suggestion:
        console.print(f"  [dim]{escape(result.suggestion)}[/dim]")


def config_from_args(args: argparse.Namespace) -> GenerationConfig:
    """Build a config from flags alone.

    Raises:
        UsageError: If any value fails validation.
    """
    if not args.project_name:
        raise UsageError("A project name is required in non-interactive mode")

    checks = [
        validate_project_name(args.project_name),
        validate_transport(args.transport),
    ]
    if args.transport != Transport.STDIO.value:
        checks.append(validate_port(args.port))

    for result in checks:
        if not result.is_valid:
            message = result.error or "Invalid input"
            if result.suggestion:
                message = f"{message} ({result.suggestion})"
            raise UsageError(message)
        if result.warning:
            _report(result)

    transport = Transport(args.transport)
    return GenerationConfig(
        project_name=args.project_name.strip(),
        transport=transport,
        port=args.port.strip(),
        description=args.description or default_description(transport),
        init_git=args.git,
    )


def prompt_config(args: argparse.Namespace) -> GenerationConfig:
    """Ask for each value, re-prompting until it validates."""
    name = (args.project_name or "").strip()
    if name:
        result = validate_project_name(name)
        if not result.is_valid:
            _report(result)
            name = ""
    while not name:
        answer = Prompt.ask("Project name", default="my-mcp-server")
        result = validate_project_name(answer)
        if not result.is_valid:
            _report(result)
            suggestion = format_project_name_suggestion(answer)
            if suggestion and validate_project_name(suggestion).is_valid:
                console.print(f"  [dim]Try: {escape(suggestion)}[/dim]")
            continue
        if result.warning:
            _report(result)
        name = answer.strip()

    default_transport = args.transport if validate_transport(args.transport).is_valid else "stdio"
    transport = Transport(
        Prompt.ask(
            "Transport",
            choices=[t.value for t in Transport],
            default=default_transport,
        )
    )

    port = args.port
    if transport is not Transport.STDIO:
        while True:
            port = Prompt.ask("Port", default=args.port).strip()
            result = validate_port(port)
            if result.is_valid:
                if result.warning:
                    _report(result)
                break
            _report(result)

    init_git = Confirm.ask("Initialize a Git repository?", default=args.git)

    return GenerationConfig(
        project_name=name,
        transport=transport,
        port=port,
        description=args.description or default_description(transport),
        init_git=init_git,
    )


# ---------------------------------------------------------------------------
# Progress rendering
# ---------------------------------------------------------------------------


class ProgressPrinter:
    """Prints ``ProgressEvent``s as they arrive, one line per event."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)
        message = escape(event.message)
        if event.error and event.completed:
            console.print(f"  [yellow]![/yellow] {message}")
        elif event.error:
            console.print(f"  [red]x[/red] {message}")
        elif event.completed:
            console.print(f"  [green]+[/green] {message}")
        else:
            console.print(f"[cyan]>[/cyan] {message}")


def print_next_steps(config: GenerationConfig, result: GenerationResult) -> None:
    rows = {
        "Project": config.project_name,
        "Location": str(result.project_path),
        "Transport": config.transport.display_name,
    }
    if config.has_port:
        rows["Port"] = config.port
    rows["Files rendered"] = str(result.rendered_files)
    rows["Duration"] = format_duration(result.duration_seconds)
    print_summary_table(rows, title="Project created")

    for warning in result.warnings:
        print_warning(warning)

    console.print("Get started with:")
    console.print(f"  [bold]cd {escape(config.project_name)} && npm run dev[/bold]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def run(config: GenerationConfig, settings: Settings, skip_check: bool = False) -> int:
    """Run the system check and the generator; return the process exit code."""
    if not skip_check:
        checker = SystemChecker()
        results = await checker.perform_system_check(
            include_git=config.init_git,
            package_manager=settings.package_manager,
            git_binary=settings.git_binary,
        )
        if not checker.has_all_required(results):
            return 1

    console.print(
        Panel(
            f"Project   : {escape(config.project_name)}\n"
            f"Transport : {config.transport.display_name}"
            + (f"\nPort      : {config.port}" if config.has_port else ""),
            title="[bold]FastMCP project generator[/bold]",
            border_style="bright_cyan",
        )
    )

    generator = ProjectGenerator(settings=settings, on_progress=ProgressPrinter())
    try:
        result = await generator.generate(config)
    except ScaffoldError as exc:
        print_error("Project creation failed:")
        print_error(str(exc))
        return 1

    print_next_steps(config, result)
    print_success("Done!")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``create-fastmcp``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = build_settings(args)

    interactive = args.interactive and sys.stdin.isatty()
    try:
        config = prompt_config(args) if interactive else config_from_args(args)
    except UsageError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        print_warning("Aborted.")
        sys.exit(130)

    sys.exit(asyncio.run(run(config, settings, skip_check=args.skip_check)))


if __name__ == "__main__":
    main()
