"""Main scaffolding orchestrator.

Takes a ``GenerationConfig`` and produces a ready-to-run FastMCP server
project under ``<cwd>/<project_name>``:

    validation -> copy_template -> process_files -> install_dependencies
               -> [init_git] -> complete

Any fatal step failure diverts to ``cleanup``, which removes the partially
created project directory, and then re-raises the original error.  ``init_git``
is the exception: its failure is reported as a warning and the run still
completes, since a project without a repository is still usable.

Known limitation: the existence check in ``validation`` is not atomic with the
directory creation in ``copy_template``.  Two processes targeting the same
path at the same moment are not defended against.
"""

from __future__ import annotations

import asyncio
import shutil
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mcp_scaffold.config import GenerationConfig, Settings
from mcp_scaffold.errors import ScaffoldError, TargetExistsError
from mcp_scaffold.runner.process import ProcessRunner, git_init_spec, npm_install_spec
from mcp_scaffold.utils import print_warning

from .materializer import copy_template_tree, process_tree
from .templates import TemplateRenderer, build_context


class GenerationStep(str, Enum):
    """Named steps of a generation run, in execution order."""

    VALIDATION = "validation"
    COPY_TEMPLATE = "copy_template"
    PROCESS_FILES = "process_files"
    INSTALL_DEPENDENCIES = "install_dependencies"
    INIT_GIT = "init_git"
    CLEANUP = "cleanup"

    @property
    def label(self) -> str:
        return STEP_LABELS[self]


STEP_LABELS: dict[GenerationStep, str] = {
    GenerationStep.VALIDATION: "Validate target",
    GenerationStep.COPY_TEMPLATE: "Copy template",
    GenerationStep.PROCESS_FILES: "Process files",
    GenerationStep.INSTALL_DEPENDENCIES: "Install dependencies",
    GenerationStep.INIT_GIT: "Initialize Git repository",
    GenerationStep.CLEANUP: "Clean up",
}


class ProgressEvent(BaseModel):
    """One progress notification.

    ``completed=False`` with no ``error`` means the step has started;
    ``completed=True`` means it finished (``error`` set if it finished with a
    downgraded failure); ``completed=False`` with ``error`` means it failed.
    """

    model_config = ConfigDict(frozen=True)

    step: GenerationStep
    message: str
    completed: bool = False
    error: str | None = None


ProgressCallback = Callable[[ProgressEvent], None]


class GenerationResult(BaseModel):
    """Summary of a successful generation run."""

    project_path: Path
    steps_completed: list[GenerationStep] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    rendered_files: int = 0
    duration_seconds: float = 0.0


@dataclass
class _Step:
    step: GenerationStep
    message: str
    action: Callable[[], Awaitable[None]]
    fatal: bool = True


@dataclass
class _RunState:
    project_path: Path
    owns_target: bool = False
    rendered_files: int = 0
    warnings: list[str] = field(default_factory=list)
    completed: list[GenerationStep] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Runs the generation steps for one project at a time.

    All collaborators are injected so tests can substitute a fake runner or
    renderer; anything left as ``None`` gets its default implementation.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        runner: ProcessRunner | None = None,
        renderer: TemplateRenderer | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.runner = runner or ProcessRunner(stderr_tail_lines=self.settings.stderr_tail_lines)
        self.renderer = renderer or TemplateRenderer(self.settings.templates_dir)
        self.on_progress = on_progress

    # -- Public API --------------------------------------------------------

    async def generate(
        self, config: GenerationConfig, cwd: str | Path | None = None
    ) -> GenerationResult:
        """Generate the project described by *config* under *cwd*.

        Returns:
            A ``GenerationResult`` for the finished project.

        Raises:
            ScaffoldError: The error of the first fatal step, with ``step``
                set to the failing ``GenerationStep``.  Other exceptions (e.g. from an
                injected collaborator) propagate unchanged after cleanup.
        """
        start = time.monotonic()
        state = _RunState(project_path=config.project_path(cwd))
        context = build_context(config)

        for step in self._plan(config, context, state):
            self._emit(step.step, step.message)
            try:
                await step.action()
            except Exception as exc:
                if not step.fatal:
                    self._downgrade(step, exc, state)
                    continue
                self._emit(step.step, f"{step.step.label} failed", error=str(exc))
                if isinstance(exc, ScaffoldError):
                    exc.step = step.step
                if state.owns_target:
                    await self._cleanup(state.project_path)
                raise
            state.completed.append(step.step)
            self._emit(step.step, f"{step.step.label} done", completed=True)

        return GenerationResult(
            project_path=state.project_path,
            steps_completed=state.completed,
            warnings=state.warnings,
            rendered_files=state.rendered_files,
            duration_seconds=time.monotonic() - start,
        )

    # -- Step plan ---------------------------------------------------------

    def _plan(
        self, config: GenerationConfig, context: dict[str, Any], state: _RunState
    ) -> list[_Step]:
        path = state.project_path

        async def validate() -> None:
            if await asyncio.to_thread(path.exists):
                raise TargetExistsError(path)

        async def copy() -> None:
            state.owns_target = True
            await copy_template_tree(self.settings.template_dir_for(config.transport), path)

        async def process() -> None:
            report = await process_tree(path, context, self.renderer)
            state.rendered_files = len(report.rendered)
            state.warnings.extend(
                f"Could not render {p}: {reason}" for p, reason in report.failed.items()
            )

        async def install() -> None:
            await self.runner.run(npm_install_spec(self.settings), path)

        async def init_git() -> None:
            await self.runner.run(git_init_spec(self.settings), path)

        steps = [
            _Step(GenerationStep.VALIDATION, f"Checking that {path} does not exist", validate),
            _Step(
                GenerationStep.COPY_TEMPLATE,
                f"Copying the {config.transport.value} template",
                copy,
            ),
            _Step(GenerationStep.PROCESS_FILES, "Substituting project variables", process),
            _Step(
                GenerationStep.INSTALL_DEPENDENCIES,
                f"Running {' '.join([self.settings.package_manager, *self.settings.install_args])}",
                install,
            ),
        ]
        if config.init_git:
            steps.append(
                _Step(GenerationStep.INIT_GIT, "Initializing Git repository", init_git, fatal=False)
            )
        return steps

    # -- Failure handling --------------------------------------------------

    def _downgrade(self, step: _Step, exc: Exception, state: _RunState) -> None:
        message = str(exc)
        state.warnings.append(message)
        print_warning(f"{step.step.label} failed, but the project was created: {message}")
        self._emit(step.step, f"{step.step.label} skipped", completed=True, error=message)

    async def _cleanup(self, path: Path) -> None:
        """Remove *path*; failures are reported, never raised."""
        self._emit(GenerationStep.CLEANUP, f"Removing {path}")
        try:
            if await asyncio.to_thread(path.exists):
                await asyncio.to_thread(shutil.rmtree, path)
        except OSError as exc:
            print_warning(f"Could not remove {path}: {exc}")
            self._emit(GenerationStep.CLEANUP, "Cleanup failed", error=str(exc))
            return
        self._emit(GenerationStep.CLEANUP, f"Removed {path}", completed=True)

    def _emit(
        self,
        step: GenerationStep,
        message: str,
        completed: bool = False,
        error: str | None = None,
    ) -> None:
        if self.on_progress is not None:
            self.on_progress(
                ProgressEvent(step=step, message=message, completed=completed, error=error)
            )
