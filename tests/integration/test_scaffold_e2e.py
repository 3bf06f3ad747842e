"""Integration tests for end-to-end project generation.

These tests run the real generator against the bundled template trees and
spawn real child processes.  The install step is played by the Python
interpreter (so no Node.js toolchain is needed); git initialization uses the
system ``git`` when it is available.
"""

from __future__ import annotations

import json
import shutil
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from mcp_scaffold.config import GenerationConfig, Settings, Transport
from mcp_scaffold.errors import ProcessFailedError, ProcessSpawnError
from mcp_scaffold.scaffolder.generator import GenerationStep, ProgressEvent, ProjectGenerator

INSTALL_SCRIPT = (
    "import pathlib; p = pathlib.Path('node_modules'); p.mkdir(exist_ok=True); "
    "(p / '.installed').write_text('ok'); print('added 1 package')"
)


def _settings(**overrides) -> Settings:
    """Bundled templates with the interpreter standing in for the package manager."""
    values = {"package_manager": sys.executable, "install_args": ["-c", INSTALL_SCRIPT]}
    values.update(overrides)
    return Settings(**values)


async def _generate(
    config: GenerationConfig, cwd: Path, settings: Settings | None = None
) -> tuple[Path, list[ProgressEvent]]:
    events: list[ProgressEvent] = []
    generator = ProjectGenerator(settings=settings or _settings(), on_progress=events.append)
    with patch("mcp_scaffold.runner.process.echo_line"):
        result = await generator.generate(config, cwd=cwd)
    return result.project_path, events


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestScaffoldEndToEnd:
    """Generate real projects from the bundled templates."""

    async def test_stdio_project(self, tmp_path: Path) -> None:
        config = GenerationConfig(project_name="demo-app", description="x")

        project, events = await _generate(config, tmp_path)

        package = json.loads((project / "package.json").read_text(encoding="utf-8"))
        assert package["name"] == "demo-app"
        assert package["description"] == "x"
        assert (project / ".gitignore").is_file()
        assert not (project / ".gitignore.template").exists()
        assert (project / "node_modules" / ".installed").is_file()

        readme = (project / "README.md").read_text(encoding="utf-8")
        assert "standard input/output" in readme
        assert "listens on port" not in readme
        assert "{{" not in readme

        assert GenerationStep.INIT_GIT not in {e.step for e in events}
        assert all(e.error is None for e in events)

    @pytest.mark.parametrize("transport", [Transport.HTTP_STREAM, Transport.SSE])
    async def test_network_projects(self, tmp_path: Path, transport: Transport) -> None:
        config = GenerationConfig(project_name="net-app", transport=transport, port="8123")

        project, _ = await _generate(config, tmp_path)

        index = (project / "src" / "index.ts").read_text(encoding="utf-8")
        assert "'8123'" in index
        assert transport.value in index
        readme = (project / "README.md").read_text(encoding="utf-8")
        assert "listens on port `8123`" in readme
        assert "standard input/output" not in readme

    async def test_no_unresolved_markers_in_rendered_files(self, tmp_path: Path) -> None:
        for transport in Transport:
            config = GenerationConfig(
                project_name=f"{transport.value.lower()}-app", transport=transport
            )
            project, _ = await _generate(config, tmp_path)
            for path in project.rglob("*"):
                if "node_modules" in path.parts or not path.is_file():
                    continue
                if path.suffix in {".ts", ".json", ".md", ".yml"}:
                    assert "{{" not in path.read_text(encoding="utf-8"), path

    async def test_ci_workflow_valid_yaml(self, tmp_path: Path) -> None:
        config = GenerationConfig(project_name="sse-app", transport=Transport.SSE, port="9100")

        project, _ = await _generate(config, tmp_path)

        workflow = project / ".github" / "workflows" / "ci.yml"
        parsed = yaml.safe_load(workflow.read_text(encoding="utf-8"))
        assert parsed["name"] == "sse-app CI"
        assert "build" in parsed["jobs"]

    async def test_tsconfig_is_valid_json(self, tmp_path: Path) -> None:
        project, _ = await _generate(GenerationConfig(project_name="demo-app"), tmp_path)
        tsconfig = json.loads((project / "tsconfig.json").read_text(encoding="utf-8"))
        assert "compilerOptions" in tsconfig

    async def test_install_failure_removes_project(self, tmp_path: Path) -> None:
        settings = _settings(install_args=["-c", "import sys; sys.exit('npm ERR! offline')"])
        config = GenerationConfig(project_name="demo-app")

        with pytest.raises(ProcessFailedError) as exc_info:
            await _generate(config, tmp_path, settings)

        assert exc_info.value.step == GenerationStep.INSTALL_DEPENDENCIES
        assert "npm ERR! offline" in exc_info.value.stderr_tail
        assert not (tmp_path / "demo-app").exists()

    async def test_missing_package_manager_removes_project(
        self, tmp_path: Path, http_config: GenerationConfig
    ) -> None:
        settings = _settings(
            package_manager=str(tmp_path / "no-such-npm"), install_args=["install"]
        )
        events: list[ProgressEvent] = []
        generator = ProjectGenerator(settings=settings, on_progress=events.append)

        with pytest.raises(ProcessSpawnError) as exc_info:
            await generator.generate(http_config, cwd=tmp_path)

        assert exc_info.value.step == GenerationStep.INSTALL_DEPENDENCIES
        assert exc_info.value.suggestion
        assert not (tmp_path / "http-app").exists()
        assert GenerationStep.INIT_GIT not in {e.step for e in events}
        assert events[-1].step == GenerationStep.CLEANUP and events[-1].completed

    async def test_missing_git_keeps_project(self, tmp_path: Path) -> None:
        settings = _settings(git_binary=str(tmp_path / "no-such-git"))
        config = GenerationConfig(project_name="demo-app", init_git=True)

        with patch("mcp_scaffold.scaffolder.generator.print_warning"):
            project, events = await _generate(config, tmp_path, settings)

        assert (project / "package.json").is_file()
        assert (project / "node_modules" / ".installed").is_file()
        git_events = [e for e in events if e.step == GenerationStep.INIT_GIT]
        assert git_events[-1].completed is True
        assert "no-such-git" in git_events[-1].error

    @pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
    async def test_git_repository_initialized(self, tmp_path: Path) -> None:
        config = GenerationConfig(project_name="demo-app", init_git=True)

        project, events = await _generate(config, tmp_path)

        assert (project / ".git").is_dir()
        assert events[-1].step == GenerationStep.INIT_GIT
        assert events[-1].completed and events[-1].error is None
