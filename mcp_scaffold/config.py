"""mcp-scaffold configuration.

Two layers of typed configuration, both Pydantic v2 models:

* ``GenerationConfig`` -- the validated, immutable record describing the one
  project a run produces.  Produced by the CLI (or any other caller) and owned
  by exactly one ``ProjectGenerator.generate`` call.
* ``Settings`` -- tool-level knobs (where the templates live, which binaries to
  invoke, timeouts).  Loadable from environment variables or a JSON file.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


class Transport(str, Enum):
    """Communication mode of the generated server; selects the template tree."""

    STDIO = "stdio"
    HTTP_STREAM = "httpStream"
    SSE = "sse"

    @property
    def display_name(self) -> str:
        return TRANSPORT_DISPLAY[self]


TRANSPORT_DISPLAY: dict[Transport, str] = {
    Transport.STDIO: "STDIO (standard input/output)",
    Transport.HTTP_STREAM: "HTTP Stream",
    Transport.SSE: "Server-Sent Events",
}


class GenerationConfig(BaseModel):
    """Everything needed to generate one project.

    ``port`` is only meaningful when ``transport`` is not ``stdio``; it is
    kept as a string because it is substituted verbatim into template text.
    """

    model_config = ConfigDict(frozen=True)

    project_name: str = Field(..., min_length=1, description="Directory and package name")
    transport: Transport = Field(default=Transport.STDIO)
    port: str = Field(default="3000")
    description: str = Field(default="")
    init_git: bool = Field(default=False, description="Run 'git init' after installing")

    @property
    def has_port(self) -> bool:
        return self.transport is not Transport.STDIO

    def project_path(self, cwd: str | Path | None = None) -> Path:
        """Absolute path of the project directory under *cwd* (default: the CWD)."""
        base = Path(cwd) if cwd is not None else Path.cwd()
        return (base / self.project_name).resolve()


def default_description(transport: Transport) -> str:
    """Description used when the caller does not supply one."""
    return f"A FastMCP server using the {transport.value} transport"


class Settings(BaseModel):
    """Tool-level settings shared by every generation run."""

    templates_dir: Path = Field(default=_DEFAULT_TEMPLATES_DIR)
    package_manager: str = Field(default="npm")
    install_args: list[str] = Field(default_factory=lambda: ["install"])
    git_binary: str = Field(default="git")
    install_timeout: float | None = Field(
        default=None, gt=0, description="Seconds before the install step is killed"
    )
    git_timeout: float | None = Field(
        default=None, gt=0, description="Seconds before 'git init' is killed"
    )
    stderr_tail_lines: int = Field(
        default=20, ge=1, description="Lines of stderr kept for error messages"
    )

    def template_dir_for(self, transport: Transport) -> Path:
        """Root of the template tree for *transport*."""
        return self.templates_dir / f"{transport.value}-template"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the settings to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Settings":
        """Load previously saved settings from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            MCP_SCAFFOLD_TEMPLATES_DIR, MCP_SCAFFOLD_PACKAGE_MANAGER,
            MCP_SCAFFOLD_GIT, MCP_SCAFFOLD_INSTALL_TIMEOUT,
            MCP_SCAFFOLD_GIT_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("MCP_SCAFFOLD_TEMPLATES_DIR"):
            kwargs["templates_dir"] = Path(os.environ["MCP_SCAFFOLD_TEMPLATES_DIR"])
        if os.environ.get("MCP_SCAFFOLD_PACKAGE_MANAGER"):
            kwargs["package_manager"] = os.environ["MCP_SCAFFOLD_PACKAGE_MANAGER"]
        if os.environ.get("MCP_SCAFFOLD_GIT"):
            kwargs["git_binary"] = os.environ["MCP_SCAFFOLD_GIT"]
        if os.environ.get("MCP_SCAFFOLD_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = float(os.environ["MCP_SCAFFOLD_INSTALL_TIMEOUT"])
        if os.environ.get("MCP_SCAFFOLD_GIT_TIMEOUT"):
            kwargs["git_timeout"] = float(os.environ["MCP_SCAFFOLD_GIT_TIMEOUT"])
        return cls(**kwargs)
