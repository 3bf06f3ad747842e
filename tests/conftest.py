"""Shared pytest fixtures for the mcp-scaffold test suite.

Provides reusable fixtures for:
- Temporary template roots with one tree per transport
- Settings pointed at those template roots
- A fake process runner that records calls instead of spawning processes
- Progress event collection
- Ready-made GenerationConfig records
"""

from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest

from mcp_scaffold.config import GenerationConfig, Settings, Transport
from mcp_scaffold.errors import ProcessFailedError
from mcp_scaffold.runner.process import CommandSpec, ProcessOutcome
from mcp_scaffold.scaffolder.generator import ProgressEvent


# ---------------------------------------------------------------------------
# Template trees
# ---------------------------------------------------------------------------

TEMPLATE_FILES: dict[str, str] = {
    "package.json": '{"name":"{{projectName}}"}',
    "README.md": (
        "# {{projectName}}\n\n{{description}}\n"
        "{{#if hasPort}}Port: {{port}}\n{{/if}}"
        "{{#if isStdio}}Runs over stdio.\n{{/if}}"
    ),
    ".gitignore.template": "node_modules/\ndist/\n",
    ".env.example": "# PORT={{port}}\n",
    "src/index.ts": "const name = '{{projectName}}'; // {{transport}}\n",
    "src/config.yml": "name: {{projectName}}\nport: {{port}}\n",
    "node_modules/dep/index.js": "module.exports = '{{projectName}}';\n",
    "dist/index.js": "// {{projectName}}\n",
    "bin/start.sh": "#!/bin/sh\necho {{projectName}}\n",
}


def _write_template_tree(root: Path) -> None:
    for rel_path, content in TEMPLATE_FILES.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    script = root / "bin" / "start.sh"
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """A template root holding ``<transport>-template`` for every transport."""
    root = tmp_path / "templates"
    for transport in Transport:
        _write_template_tree(root / f"{transport.value}-template")
    return root


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Directory that generated projects are created in."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def settings(template_root: Path) -> Settings:
    return Settings(templates_dir=template_root)


# ---------------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------------


@pytest.fixture
def stdio_config() -> GenerationConfig:
    return GenerationConfig(
        project_name="demo-app",
        transport=Transport.STDIO,
        port="3000",
        description="x",
        init_git=False,
    )


@pytest.fixture
def http_config() -> GenerationConfig:
    return GenerationConfig(
        project_name="http-app",
        transport=Transport.HTTP_STREAM,
        port="8080",
        description="An HTTP stream server",
        init_git=True,
    )


# ---------------------------------------------------------------------------
# Fake runner / progress collection
# ---------------------------------------------------------------------------


class FakeRunner:
    """Stands in for ``ProcessRunner``.

    Records every ``(command, args, cwd)`` call.  A successful install
    creates ``node_modules/.installed`` in the project, like a real install
    would leave ``node_modules`` behind.  ``failures`` maps a command name to
    the exception raised when that command runs.
    """

    def __init__(self, failures: dict[str, Exception] | None = None) -> None:
        self.failures = failures or {}
        self.calls: list[tuple[str, list[str], Path]] = []

    async def run(self, spec: CommandSpec, cwd: str | Path) -> ProcessOutcome:
        cwd = Path(cwd)
        self.calls.append((spec.command, list(spec.args), cwd))
        if spec.command in self.failures:
            raise self.failures[spec.command]
        if spec.args[:1] == ["install"]:
            marker = cwd / "node_modules" / ".installed"
            marker.parent.mkdir(parents=True, exist_ok=True)
            marker.write_text("ok", encoding="utf-8")
        return ProcessOutcome(exit_code=0)

    @property
    def commands(self) -> list[str]:
        return [command for command, _, _ in self.calls]


@pytest.fixture
def make_runner() -> type[FakeRunner]:
    """The ``FakeRunner`` class, for tests that need custom failures."""
    return FakeRunner


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def failing_install_runner() -> FakeRunner:
    return FakeRunner(
        failures={"npm": ProcessFailedError("npm install", 1, "ERR! network", "retry later")}
    )


@pytest.fixture
def events() -> list[ProgressEvent]:
    """List that collects progress events; pass ``events.append`` as callback."""
    return []


# ---------------------------------------------------------------------------
# Real-process helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def python_install_settings(template_root: Path) -> Settings:
    """Settings whose install step runs a real process that creates node_modules."""
    code = (
        "import pathlib; p = pathlib.Path('node_modules'); p.mkdir(exist_ok=True); "
        "(p / '.installed').write_text('ok'); print('added 1 package')"
    )
    return Settings(
        templates_dir=template_root,
        package_manager=sys.executable,
        install_args=["-c", code],
    )

